"""
CIDR arithmetic used when laying out VPC subnets.

Splits a parent network into consecutive, equally sized subnets, the way the
public/private subnet pairs are carved out of a VPC block per availability zone.
"""

from __future__ import annotations

import ipaddress


def calculate_cidr_subnets(parent_cidr: str, count: int, prefix_length: int) -> list[str]:
    """Return ``count`` consecutive ``/prefix_length`` subnets of ``parent_cidr``.

    Args:
        parent_cidr: Parent network, e.g. "10.0.0.0/16"
        count: Number of subnets to carve out
        prefix_length: Prefix length of each subnet, e.g. 24

    Returns:
        Subnet CIDR strings, starting at the parent's network address

    Raises:
        ValueError: if the CIDR is invalid, the prefix is out of range, or the
            parent network is too small to hold ``count`` subnets
    """
    network = ipaddress.ip_network(parent_cidr, strict=False)

    if count < 0:
        raise ValueError("count must not be negative")
    if prefix_length > network.max_prefixlen:
        raise ValueError(
            f"Prefix length {prefix_length} exceeds the available bits in {parent_cidr}"
        )
    if prefix_length < network.prefixlen:
        raise ValueError(
            f"Prefix length {prefix_length} is shorter than the parent prefix /{network.prefixlen}"
        )

    available = 2 ** (prefix_length - network.prefixlen)
    if count > available:
        raise ValueError(
            f"{parent_cidr} holds only {available} /{prefix_length} subnets, {count} requested"
        )

    subnets = network.subnets(new_prefix=prefix_length)
    return [str(next(subnets)) for _ in range(count)]
