"""Helpers for IP addresses, interfaces and the link and route messages built from them."""

__all__ = ["addr", "routes", "links"]