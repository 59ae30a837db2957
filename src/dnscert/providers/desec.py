"""deSEC DNS provider for ACME DNS-01 challenges."""

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, Field

from dnscert._logging import get_logger
from dnscert.exceptions import DnsProviderError
from dnscert.providers.base import DnsProvider, parse_properties, relative_name
from dnscert.resolver import DnsResolver

logger = get_logger(__name__)


class DeSecSettings(BaseModel):
    """Properties of the ``desec`` provider."""

    api_url: str = Field(default="https://desec.io/api/v1", alias="API_URL")
    api_token: str = Field(alias="API_TOKEN")


class DeSecRecordSet(BaseModel):
    """Writable part of a deSEC RRset."""

    subname: str
    type: str
    ttl: int = 3600
    records: list[str]


class DeSecProvider(DnsProvider):
    """DNS provider for the deSEC.io REST API.

    Records are managed per RRset: a new TXT value is merged into any
    RRset already present at the name, and deletion removes just that
    value and writes the remainder back.

    If the challenge name has a CNAME, the record goes to the CNAME
    target inside the target's zone.

    Args:
        api_token: deSEC API token.
        resolver: Resolver used to follow CNAMEs and find the zone apex.
        api_url: Base URL of the deSEC API.
        timeout: HTTP request timeout in seconds (default: 30).
    """

    name = "desec"
    RRSET_TYPE = "TXT"

    def __init__(
        self,
        api_token: str,
        resolver: DnsResolver,
        api_url: str = "https://desec.io/api/v1",
        timeout: int = 30,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.resolver = resolver
        self.timeout = timeout

        # Set by add_txt_record() for the later cleanup
        self._delete_url: str | None = None
        self._delete_record: str | None = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any], resolver: DnsResolver) -> "DeSecProvider":
        settings = parse_properties(DeSecSettings, cls.name, properties)
        return cls(api_token=settings.api_token, resolver=resolver, api_url=settings.api_url)

    def _request(self, method: str, url: str, rrset: DeSecRecordSet | None = None) -> httpx.Response:
        headers = {
            "Authorization": f"Token {self.api_token}",
            "Content-Type": "application/json",
        }
        body = rrset.model_dump() if rrset is not None else None
        try:
            return httpx.request(method, url, headers=headers, json=body, timeout=self.timeout)
        except httpx.TransportError as e:
            raise DnsProviderError(f"deSEC API unreachable: {e}") from e

    def _rrsets_url(self, zone: str) -> str:
        return f"{self.api_url}/domains/{zone}/rrsets/"

    def add_txt_record(self, fqdn: str, value: str) -> bool:
        """Add ``value`` to the TXT RRset at ``fqdn`` (or its CNAME target).

        Raises:
            DnsProviderError: If the zone apex cannot be determined.
        """
        target = self.resolver.resolve_cname(fqdn)
        apex = self.resolver.zone_apex(target)
        if apex is None:
            raise DnsProviderError(f"No zone apex available for {target}")

        subname = relative_name(target, apex)
        record = f'"{value}"'
        rrsets_url = self._rrsets_url(apex)
        # '@' addresses the RRset at the zone apex itself
        rrset_url = f"{rrsets_url}{subname or '@'}/{self.RRSET_TYPE}/"

        logger.debug("Resolved record location", extra={"apex": apex, "subname": subname})

        response = self._request("GET", rrset_url)
        if response.status_code == 200:
            rrset = DeSecRecordSet.model_validate(response.json())
            rrset.records.append(record)
            logger.info("Merging TXT value into existing RRset", extra={"records": rrset.records})
            response = self._request("PUT", rrset_url, rrset)
        elif response.status_code == 404:
            rrset = DeSecRecordSet(subname=subname, type=self.RRSET_TYPE, records=[record])
            logger.info("Creating TXT RRset", extra={"records": rrset.records})
            response = self._request("POST", rrsets_url, rrset)

        if response.status_code in (200, 201):
            self._delete_url = rrset_url
            self._delete_record = record
            logger.info("TXT record created", extra={"record_name": target})
            return True

        logger.warning(
            "deSEC API refused the TXT record",
            extra={"status_code": response.status_code, "detail": response.text},
        )
        return False

    def delete_txt_record(self) -> bool:
        """Remove the value added by ``add_txt_record`` from its RRset."""
        if not self._delete_url or not self._delete_record:
            logger.info("No TXT record to delete")
            return False

        response = self._request("GET", self._delete_url)
        if response.status_code != 200:
            logger.warning(
                "TXT RRset not found for deletion",
                extra={"url": self._delete_url, "status_code": response.status_code},
            )
            return False

        rrset = DeSecRecordSet.model_validate(response.json())
        if self._delete_record in rrset.records:
            rrset.records.remove(self._delete_record)
        logger.info("Deleting TXT record", extra={"record": self._delete_record})

        # An empty record list makes deSEC drop the RRset (204)
        response = self._request("PUT", self._delete_url, rrset)
        if response.status_code in (200, 204):
            self._delete_url = None
            self._delete_record = None
            return True

        logger.warning(
            "deSEC API refused the deletion",
            extra={"status_code": response.status_code, "detail": response.text},
        )
        return False
