"""Fly Proxy request headers"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Union

HeaderValue = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class FlyProxyHeaders:
    """Raw values of the headers Fly Proxy adds to each request."""

    client_ip: Optional[str] = None
    forwarded_port: Optional[str] = None
    region: Optional[str] = None
    forwarded_for: Optional[str] = None
    forwarded_proto: Optional[str] = None
    forwarded_port_client: Optional[str] = None
    forwarded_ssl: Optional[str] = None
    via: Optional[str] = None


@dataclass(frozen=True)
class FlyProxyInfo:
    """Request facts derived from Fly Proxy headers."""

    headers: FlyProxyHeaders = field(default_factory=FlyProxyHeaders)
    client_ip: Optional[str] = None
    region: Optional[str] = None
    is_ssl: bool = False
    protocol: Optional[str] = None
    port: Optional[str] = None

    def forwarded_ips(self) -> List[str]:
        """Client and proxy IPs from X-Forwarded-For, in order."""
        if not self.headers.forwarded_for:
            return []
        return [ip.strip() for ip in self.headers.forwarded_for.split(",") if ip.strip()]

    def is_from_region(self, region_code: str) -> bool:
        return bool(self.region) and self.region.lower() == region_code.lower()

    def original_client_ip(self) -> Optional[str]:
        ips = self.forwarded_ips()
        return ips[0] if ips else None


def _normalize(headers: Mapping[str, HeaderValue]) -> Dict[str, str]:
    normalized = {}
    for key, value in headers.items():
        if value is None:
            continue
        if not isinstance(value, str):
            value = value[0] if len(value) else ""
        normalized[key.lower()] = value
    return normalized


def parse_fly_proxy_headers(headers: Mapping[str, HeaderValue]) -> FlyProxyInfo:
    """
    Parse Fly Proxy headers from a request header mapping.

    Lookup is case-insensitive; list-valued headers use their first value.
    """
    values = _normalize(headers)
    raw = FlyProxyHeaders(
        client_ip=values.get("fly-client-ip"),
        forwarded_port=values.get("fly-forwarded-port"),
        region=values.get("fly-region"),
        forwarded_for=values.get("x-forwarded-for"),
        forwarded_proto=values.get("x-forwarded-proto"),
        forwarded_port_client=values.get("x-forwarded-port"),
        forwarded_ssl=values.get("x-forwarded-ssl"),
        via=values.get("via"),
    )

    client_ip = raw.client_ip
    if not client_ip and raw.forwarded_for:
        client_ip = raw.forwarded_for.split(",")[0].strip() or None

    return FlyProxyInfo(
        headers=raw,
        client_ip=client_ip,
        region=raw.region or None,
        is_ssl=raw.forwarded_ssl == "on" or raw.forwarded_proto == "https",
        protocol=raw.forwarded_proto or None,
        port=raw.forwarded_port or raw.forwarded_port_client or None,
    )
