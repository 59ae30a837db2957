"""DNS providers for ACME challenge validation."""

from dnscert.providers.base import DnsProvider
from dnscert.providers.desec import DeSecProvider
from dnscert.providers.manual import ManualProvider
from dnscert.providers.registry import DEFAULT_PROVIDER, ProviderRegistry
from dnscert.providers.zoneee import ZoneEEProvider

__all__ = [
    "DEFAULT_PROVIDER",
    "DeSecProvider",
    "DnsProvider",
    "ManualProvider",
    "ProviderRegistry",
    "ZoneEEProvider",
]
