# rtnetlink

Pure-Python encoding and decoding of Linux route netlink (rtnetlink)
message payloads for links, routes, policy rules and neighbour entries,
plus helpers for IP addresses, interfaces and route requests.

The package works on bytes only. Each message type turns itself into the
payload that follows the netlink message header, and parses such payloads
back. It has no dependencies outside the standard library.

Multi-byte fields in the fixed headers and in attributes use the host's
native byte order, as the kernel does; MPLS labels are packed big endian.

## Modules

Message types and attribute handling, in the top-level package:

- `rtnetlink.nlattr` – netlink attributes: `AttributeEncoder` (with
  `uint8`, `uint16`, `uint32`, `uint64`, `int32`, `string`, `bytes`, `ip`,
  `nested` and `encode`), `decode_attributes`, the decoded `Attribute`
  (with typed readers and `nested()`), `encode_ip`, `decode_ip`, and the
  errors `RtnetlinkError`, `MessageTooShortError` and
  `InvalidAttributeError`.
- `rtnetlink.link` – `LinkMessage`, `LinkAttributes`, `LinkInfo`, `LinkXDP`,
  `OperationalState`, and the driver registry: `LinkDriver`, `LinkData`,
  `register_driver`, `get_driver`.
- `rtnetlink.linkstats` – `LinkStats` and `LinkStats64` interface counters,
  each with `from_bytes`.
- `rtnetlink.route` – `RouteMessage`, `RouteAttributes`, `RouteMetrics`,
  and multipath next hops: `NextHop`, `RTNextHop`, `MPLSNextHop`.
- `rtnetlink.rule` – `RuleMessage`, `RuleAttributes`, `RulePortRange`,
  `RuleUIDRange`.
- `rtnetlink.neigh` – `NeighMessage`, `NeighAttributes`, `NeighCacheInfo`.
- `rtnetlink.netns` – `NetNS`, a network namespace handle made with
  `NetNS.for_pid` or `NetNS.for_fd`; set it as `LinkAttributes.netns`.

Helpers, in `rtnetlink.rtnl`:

- `rtnetlink.rtnl.addr` – `parse_addr`, `addr_family`, `addr_scope`,
  `broadcast_addr`, `is_subnet_addr` and the `AddrError` exception.
- `rtnetlink.rtnl.links` – `Interface`, `InterfaceFlags`, `link_flags`,
  `interface_from_link_message`, and the message builders
  `hardware_addr_message`, `link_up_message` and `link_down_message`.
- `rtnetlink.rtnl.routes` – `Route`, `RouteOptions`,
  `default_route_options`, `with_route_src`, `with_route_attrs`, and the
  message builders `build_route_message`, `build_route_delete_message`
  and `build_route_get_message`.

## Encoding and decoding

Every message type has `marshal()` to produce bytes and a class method
`unmarshal(data)` to parse them:

```python
import ipaddress

from rtnetlink.route import RouteAttributes, RouteMessage

message = RouteMessage(
    family=2,
    dst_length=8,
    table=254,
    type=1,
    attributes=RouteAttributes(
        dst=ipaddress.ip_address("10.0.0.0"),
        gateway=ipaddress.ip_address("10.0.0.1"),
        out_iface=5,
    ),
)
payload = message.marshal()
assert RouteMessage.unmarshal(payload) == message
```

Only some link attributes are sent by `LinkMessage.marshal()` (name, link
type, queueing discipline, MTU, addresses, operational state, link info,
XDP settings, master and network namespace), and the family is always sent
as zero; the rest are read from the kernel's replies only.

Malformed input raises an exception derived from `RtnetlinkError`: a
payload shorter than its fixed header raises `MessageTooShortError`, and
malformed attributes or attributes of the wrong length raise
`InvalidAttributeError`. `RuleMessage.unmarshal` also raises
`InvalidAttributeError` for an attribute type it does not know. Header or
attribute values that do not fit their fields raise `ValueError` when
encoding.

## Addresses

```python
from rtnetlink.rtnl.addr import AddrError, parse_addr

host = parse_addr("10.0.0.1/8")      # IPv4Interface('10.0.0.1/8')

try:
    parse_addr("10.0.0.0/8")
except AddrError as exc:
    print(exc)  # address 10.0.0.0: attempted to parse a subnet address into a host address
```

Text that is not in CIDR notation raises `ValueError`.

## Link drivers

Kind-specific link data (`IFLA_INFO_DATA` and `IFLA_INFO_SLAVE_DATA`) is
kept as raw bytes in a `LinkData` unless a driver for that kind has been
registered with `register_driver`. A driver is a `LinkDriver` subclass with
`encode(encoder)`, `decode(attribute)` and `kind()`; its `decode` receives
the whole data attribute and may call `attribute.nested()`. A driver whose
`slave` attribute is true is registered for slave data. Each kind may be
registered once; registering it again raises `ValueError`. A driver may
define `verify(message)`, which `LinkMessage.marshal()` calls before
encoding.

## What this package does not do

It opens no netlink sockets and sends nothing to the kernel. The helpers in
`rtnetlink.rtnl` build `LinkMessage` and `RouteMessage` values and convert
received ones; sending them, and reading the replies, is up to the caller.
There is no message type for interface addresses (`RTM_NEWADDR` and
related), so adding, deleting or listing addresses is not covered beyond the
address helpers in `rtnetlink.rtnl.addr`.