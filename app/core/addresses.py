"""Helpers for "host:port" style settings."""

from __future__ import annotations

from typing import Tuple


def parse_address(addr: str, default_port: int) -> Tuple[str, int]:
    """
    Split "host:port" into a tuple. Accepts bare hosts and "[v6]:port".

    Raises ValueError when the port is not an integer.
    """
    addr = addr.strip()
    if addr.startswith("["):
        host, _, rest = addr[1:].partition("]")
        port = rest.lstrip(":")
        return host, int(port) if port else default_port
    if addr.count(":") == 1:
        host, port = addr.split(":")
        return host, int(port) if port else default_port
    return addr, default_port
