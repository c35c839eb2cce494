"""Encoding and decoding of Linux route netlink link, route, rule and neighbour messages."""

__version__ = "2.0.0"

__all__ = ["nlattr", "netns", "linkstats", "link", "route", "rule", "neigh", "rtnl"]