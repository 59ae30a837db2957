"""Lookup of DNS providers by name."""

from collections.abc import Mapping
from typing import Any

from dnscert.exceptions import ConfigurationError
from dnscert.providers.base import DnsProvider
from dnscert.providers.desec import DeSecProvider
from dnscert.providers.manual import ManualProvider
from dnscert.providers.zoneee import ZoneEEProvider
from dnscert.resolver import DnsResolver

DEFAULT_PROVIDER = ManualProvider.name


class ProviderRegistry:
    """Maps provider names to provider classes.

    Usage::

        registry = ProviderRegistry.default()
        provider = registry.create("desec", {"API_TOKEN": "..."}, DnsResolver())
    """

    def __init__(self) -> None:
        self._providers: dict[str, type[DnsProvider]] = {}

    @classmethod
    def default(cls) -> "ProviderRegistry":
        """Registry holding the built-in providers."""
        registry = cls()
        for provider in (ManualProvider, DeSecProvider, ZoneEEProvider):
            registry.register(provider)
        return registry

    def register(self, provider: type[DnsProvider]) -> None:
        self._providers[provider.name] = provider

    def names(self) -> list[str]:
        return sorted(self._providers)

    def get(self, name: str) -> type[DnsProvider]:
        """Get the provider class registered under ``name``.

        Raises:
            ConfigurationError: If no provider has that name.
        """
        try:
            return self._providers[name]
        except KeyError:
            raise ConfigurationError(
                f"No suitable provider found: '{name}'. Available: {', '.join(self.names())}"
            ) from None

    def validate_name(self, name: str) -> str:
        """Check a user-supplied provider name.

        The default provider is used implicitly and cannot be named.

        Raises:
            ConfigurationError: If the name is unknown or is the default.
        """
        choices = [n for n in self.names() if n != DEFAULT_PROVIDER]
        if name == DEFAULT_PROVIDER or name not in self._providers:
            raise ConfigurationError(
                f"Invalid provider '{name}'. Possible values are: {', '.join(choices)}"
            )
        return name

    def create(self, name: str, properties: Mapping[str, Any], resolver: DnsResolver) -> DnsProvider:
        return self.get(name).from_properties(properties, resolver)
