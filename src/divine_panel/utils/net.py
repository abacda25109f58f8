# src/divine_panel/utils/net.py
"""Source-address helpers used for IP bans."""

from __future__ import annotations

import ipaddress


def normalize_address(raw: str | None) -> str:
    """Return a canonical form of an IP address.

    IPv4-mapped IPv6 addresses (`::ffff:1.2.3.4`) are unwrapped so a ban on
    the IPv4 form matches either way. Values that do not parse as an address
    are returned trimmed but otherwise unchanged.
    """
    text = (raw or "").strip()
    if not text:
        return ""
    try:
        address = ipaddress.ip_address(text)
    except ValueError:
        return text
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return str(address.ipv4_mapped)
    return str(address)


def is_ip_address(raw: str) -> bool:
    """Return True when `raw` parses as an IPv4 or IPv6 address."""
    try:
        ipaddress.ip_address(raw.strip())
    except ValueError:
        return False
    return True


def resolve_source_address(
    peer: str | None,
    forwarded_for: str | None,
    *,
    trust_proxy: bool,
) -> str:
    """Pick the address treated as the request's source.

    Args:
        peer: Address of the directly connected peer.
        forwarded_for: Raw `X-Forwarded-For` header value, if any.
        trust_proxy: Whether the service sits behind a proxy that sets the header.

    Returns:
        The first forwarded address when the proxy is trusted and the header is
        present, otherwise the peer address; normalized either way.
    """
    if trust_proxy and forwarded_for:
        first = forwarded_for.split(",", 1)[0]
        if first.strip():
            return normalize_address(first)
    return normalize_address(peer)
