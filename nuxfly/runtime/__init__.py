"""
nuxfly Runtime

In-app helpers for a deployed Nuxt server: database and bucket clients, and
Fly Proxy header parsing.
"""

from .context import BucketSettings, RuntimeContext, RuntimeSettings, StorageClient
from .proxy_headers import FlyProxyHeaders, FlyProxyInfo, parse_fly_proxy_headers

__all__ = [
    "BucketSettings",
    "RuntimeContext",
    "RuntimeSettings",
    "StorageClient",
    "FlyProxyHeaders",
    "FlyProxyInfo",
    "parse_fly_proxy_headers",
]
