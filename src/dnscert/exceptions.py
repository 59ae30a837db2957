"""Errors raised while issuing a certificate."""

from collections.abc import Mapping
from typing import Any


class CertClientError(Exception):
    """Base class for every error that aborts an issuance run."""


class TransportError(CertClientError):
    """The connection to a remote server could not be established."""


class InvalidStatusError(CertClientError):
    """An ACME resource reported a status that ends the run (e.g. ``invalid``)."""

    def __init__(self, resource: str, status: str):
        self.resource = resource
        self.status = status
        super().__init__(f"{resource} status is {status}")


class UnsupportedOperationError(CertClientError):
    """The server requires something this client does not implement."""


class DnsProviderError(CertClientError):
    """A DNS provider could not publish or retract a TXT record."""


class ConfigurationError(CertClientError):
    """A configuration file is missing or malformed."""


class AcmeError(CertClientError):
    """Error reported by the ACME server.

    Represents errors returned by the ACME server in the standard
    problem document format (RFC 7807). When the server answers with
    a non-problem body, ``detail`` carries the HTTP status text.
    """

    def __init__(
        self,
        type: str,
        detail: str,
        status_code: int | None = None,
        subproblems: list[dict[str, Any]] | None = None,
        retry_after: int | None = None,
    ):
        self.type = type
        self.detail = detail
        self.status_code = status_code
        self.subproblems = subproblems
        self.retry_after = retry_after
        super().__init__(f"{type}: {detail}")

    @classmethod
    def from_response(
        cls,
        data: dict[str, Any],
        status_code: int | None,
        headers: Mapping[str, str] | None = None,
    ) -> "AcmeError":
        """Create an AcmeError from a problem document.

        Routes to the matching subclass based on the problem type.

        Args:
            data: Parsed problem document.
            status_code: HTTP status code (None when the problem was
                embedded in a resource).
            headers: Response headers (for Retry-After extraction); keys
                are matched case-insensitively when given httpx headers.

        Returns:
            AcmeError instance (or appropriate subclass).
        """
        retry_after = None
        if headers:
            retry_after = _parse_retry_after(headers.get("retry-after"))
        error_type = data.get("type", "about:blank")
        error_cls = _ERROR_TYPES.get(error_type, cls)

        return error_cls(
            type=error_type,
            detail=data.get("detail", "Unknown error"),
            status_code=status_code if status_code is not None else data.get("status"),
            subproblems=data.get("subproblems"),
            retry_after=retry_after,
        )


class ChallengeError(AcmeError):
    """A polled challenge carries an error detail."""


class OrderError(AcmeError):
    """A polled order carries an error detail."""


class RateLimitError(AcmeError):
    """Rate limit exceeded (urn:ietf:params:acme:error:rateLimited)."""


class BadNonceError(AcmeError):
    """The server rejected the replay nonce (urn:ietf:params:acme:error:badNonce)."""


class DnsValidationError(AcmeError):
    """DNS validation failed (urn:ietf:params:acme:error:dns)."""


class CAAError(AcmeError):
    """CAA record forbids issuance (urn:ietf:params:acme:error:caa)."""


_ERROR_TYPES: dict[str, type[AcmeError]] = {
    "urn:ietf:params:acme:error:rateLimited": RateLimitError,
    "urn:ietf:params:acme:error:badNonce": BadNonceError,
    "urn:ietf:params:acme:error:dns": DnsValidationError,
    "urn:ietf:params:acme:error:caa": CAAError,
}


def _parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After header given in seconds."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None
