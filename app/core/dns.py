"""
Optional custom DNS resolver (e.g. Consul DNS on port 8600).

When DNS_SERVER or CONSUL_DNS_ADDR is set, backend hostnames are resolved
through that server instead of the system resolver. Python clients that
go through `socket.getaddrinfo` (redis-py) pick this up automatically;
libpq resolves names itself, so the SQL stores ask the resolver directly
and pass the address as `hostaddr`.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
from typing import TYPE_CHECKING, Optional, Tuple

import dns.exception
import dns.resolver

from app.core.addresses import parse_address
from errors import InvalidConfigurationError
from observability import build_log_context, log_event

if TYPE_CHECKING:
    from app.core.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_DNS_PORT = 53

_original_getaddrinfo = socket.getaddrinfo
_active_resolver: Optional["CustomResolver"] = None
_install_lock = threading.Lock()


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def normalize_dns_server_addr(server: str) -> Tuple[str, int]:
    """Split "host[:port]" (or "[v6]:port") into host and port, defaulting to 53."""
    return parse_address(server, DEFAULT_DNS_PORT)


class CustomResolver:
    """A-record lookups against one fixed nameserver."""

    def __init__(self, server: str, network: str = "udp", timeout_sec: float = 1.5):
        try:
            host, port = normalize_dns_server_addr(server)
            if not _is_ip(host):
                # The nameserver itself is addressed by name; look it up once, via the system.
                host = _original_getaddrinfo(host, port, socket.AF_INET)[0][4][0]
        except (ValueError, OSError) as e:
            raise InvalidConfigurationError("DNS_SERVER", server, ["host[:port]", "[ipv6]:port"]) from e
        self.server = host
        self.port = port
        self.network = network
        self.timeout_sec = timeout_sec

        self._resolver = dns.resolver.Resolver(configure=False)
        self._resolver.nameservers = [host]
        self._resolver.port = port
        self._resolver.timeout = timeout_sec
        self._resolver.lifetime = timeout_sec

    def resolve(self, hostname: str) -> Optional[str]:
        """Return the first IPv4 address for `hostname`, or None if the server can't answer."""
        if _is_ip(hostname) or hostname == "localhost":
            return None
        try:
            answer = self._resolver.resolve(hostname, "A", tcp=self.network == "tcp")
        except dns.exception.DNSException as e:
            logger.debug(f"Custom DNS lookup failed for {hostname}: {e}")
            return None
        for rdata in answer:
            return rdata.address
        return None

    def getaddrinfo(self, host, port, family=0, type=0, proto=0, flags=0):
        if isinstance(host, bytes):
            host = host.decode("idna")
        if host:
            addr = self.resolve(host)
            if addr:
                return _original_getaddrinfo(addr, port, family, type, proto, flags)
        return _original_getaddrinfo(host, port, family, type, proto, flags)


def configure_custom_dns_resolver(settings: "Settings") -> Optional[CustomResolver]:
    """
    Install a process-wide resolver if DNS_SERVER / CONSUL_DNS_ADDR is set.

    Returns the installed resolver, or None when no override is configured.
    """
    global _active_resolver

    if not settings.DNS_SERVER:
        return None

    resolver = CustomResolver(settings.DNS_SERVER, network=settings.DNS_NETWORK, timeout_sec=settings.dns_timeout_sec)
    with _install_lock:
        _active_resolver = resolver
        socket.getaddrinfo = resolver.getaddrinfo

    log_event(
        "dns_resolver_enabled",
        ctx=build_log_context(tool="dns"),
        data={"server": f"{resolver.network}://{resolver.server}:{resolver.port}", "timeout_ms": settings.DNS_TIMEOUT_MS},
    )
    return resolver


def get_custom_resolver() -> Optional[CustomResolver]:
    return _active_resolver


def reset_custom_dns_resolver() -> None:
    """Restore the system resolver."""
    global _active_resolver

    with _install_lock:
        _active_resolver = None
        socket.getaddrinfo = _original_getaddrinfo
