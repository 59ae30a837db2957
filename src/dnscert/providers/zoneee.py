"""Zone.ee DNS provider for ACME DNS-01 challenges."""

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, Field

from dnscert._logging import get_logger
from dnscert.exceptions import DnsProviderError
from dnscert.providers.base import DnsProvider, parse_properties
from dnscert.resolver import DnsResolver

logger = get_logger(__name__)


class ZoneEESettings(BaseModel):
    """Properties of the ``zoneee`` provider."""

    api_url: str = Field(default="https://api.zone.eu/v2/dns", alias="API_URL")
    api_key: str = Field(alias="API_KEY")
    user_id: str = Field(alias="USER_ID")


class ZoneEEProvider(DnsProvider):
    """DNS provider for the Zone.ee v2 API.

    Each TXT value is an individual record with a server-issued id;
    the id from the create response is used to delete the record.

    Endpoints: ``{api_url}/{zone}/txt`` and ``{api_url}/{zone}/txt/{id}``.

    Args:
        user_id: Zone.ee user name.
        api_key: Zone.ee API key.
        resolver: Resolver used to follow CNAMEs and find the zone apex.
        api_url: Base URL of the DNS API.
        timeout: HTTP request timeout in seconds (default: 30).
    """

    name = "zoneee"

    def __init__(
        self,
        user_id: str,
        api_key: str,
        resolver: DnsResolver,
        api_url: str = "https://api.zone.eu/v2/dns",
        timeout: int = 30,
    ):
        self.api_url = api_url.rstrip("/")
        self.user_id = user_id
        self.api_key = api_key
        self.resolver = resolver
        self.timeout = timeout

        self._delete_url: str | None = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any], resolver: DnsResolver) -> "ZoneEEProvider":
        settings = parse_properties(ZoneEESettings, cls.name, properties)
        return cls(
            user_id=settings.user_id,
            api_key=settings.api_key,
            resolver=resolver,
            api_url=settings.api_url,
        )

    def _request(self, method: str, url: str, body: dict | None = None) -> httpx.Response:
        try:
            return httpx.request(
                method,
                url,
                json=body,
                auth=(self.user_id, self.api_key),
                timeout=self.timeout,
            )
        except httpx.TransportError as e:
            raise DnsProviderError(f"Zone.ee API unreachable: {e}") from e

    def add_txt_record(self, fqdn: str, value: str) -> bool:
        """Create a TXT record at ``fqdn`` (or its CNAME target).

        Raises:
            DnsProviderError: If the zone apex cannot be determined.
        """
        target = self.resolver.resolve_cname(fqdn)
        apex = self.resolver.zone_apex(target)
        if apex is None:
            raise DnsProviderError(f"No zone apex available for {target}")

        records_url = f"{self.api_url}/{apex}/txt"
        logger.info("Adding TXT record", extra={"record_name": target, "apex": apex})
        response = self._request("POST", records_url, {"name": target, "destination": value})

        if not response.is_success:
            logger.warning(
                "Zone.ee API refused the TXT record",
                extra={"status_code": response.status_code, "detail": response.text},
            )
            return False

        try:
            record_id = response.json()[0]["id"]
        except (ValueError, LookupError, TypeError) as e:
            raise DnsProviderError(f"Unexpected Zone.ee API response: {response.text}") from e
        self._delete_url = f"{records_url}/{record_id}"
        logger.info("TXT record created", extra={"record_name": target, "record_id": record_id})
        return True

    def delete_txt_record(self) -> bool:
        if self._delete_url is None:
            logger.warning("No URL is defined for the DELETE operation. No record deleted.")
            return False

        logger.info("Deleting TXT record", extra={"url": self._delete_url})
        response = self._request("DELETE", self._delete_url)
        if response.status_code == 204:
            self._delete_url = None
            return True

        logger.warning(
            "Zone.ee API refused the deletion",
            extra={"status_code": response.status_code, "detail": response.text},
        )
        return False
