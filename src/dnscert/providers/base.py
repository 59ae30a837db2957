"""Abstract base class for DNS providers."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from dnscert.exceptions import ConfigurationError
from dnscert.resolver import DnsResolver


class DnsProvider(ABC):
    """Abstract interface for DNS providers.

    DNS providers publish and retract the TXT record used for ACME
    DNS-01 challenge validation. A provider instance serves one
    authorization: it remembers what ``add_txt_record`` created so that
    ``delete_txt_record`` can remove exactly that.
    """

    name: ClassVar[str]

    @classmethod
    @abstractmethod
    def from_properties(cls, properties: Mapping[str, Any], resolver: DnsResolver) -> "DnsProvider":
        """Build the provider from its configuration properties.

        Args:
            properties: Provider-specific key/value settings.
            resolver: Resolver used to locate the zone apex.

        Raises:
            ConfigurationError: If required properties are missing.
        """
        ...

    @abstractmethod
    def add_txt_record(self, fqdn: str, value: str) -> bool:
        """Publish a TXT record.

        Args:
            fqdn: Full record name (``_acme-challenge.<identifier>``).
            value: The TXT value to publish.

        Returns:
            True if the record was published by the provider.
        """
        ...

    @abstractmethod
    def delete_txt_record(self) -> bool:
        """Retract the record published by ``add_txt_record``.

        Returns:
            True if the record was removed.
        """
        ...


def parse_properties(model: type[BaseModel], provider: str, properties: Mapping[str, Any]):
    """Validate provider properties against ``model``.

    Raises:
        ConfigurationError: If validation fails.
    """
    try:
        return model.model_validate(dict(properties))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration for provider '{provider}': {e}") from e


def relative_name(fqdn: str, apex: str) -> str:
    """Name of ``fqdn`` relative to its zone apex ('' for the apex itself)."""
    if fqdn == apex:
        return ""
    suffix = f".{apex}"
    if fqdn.endswith(suffix):
        return fqdn[: -len(suffix)]
    return fqdn
