"""Pydantic models for ACME protocol resources and local identities."""

import json
from enum import StrEnum
from typing import Any

from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, Field

from dnscert.crypto import generate_rsa_key

ACCOUNT_KEY_SIZE = 2048
DOMAINS_KEY_SIZE = 4096

# =============================================================================
# ACME Protocol Enums (RFC 8555)
# =============================================================================


class ChallengeStatus(StrEnum):
    """Challenge statuses (RFC 8555 Section 7.1.6)."""

    PENDING = "pending"
    PROCESSING = "processing"
    VALID = "valid"
    INVALID = "invalid"


class AuthorizationStatus(StrEnum):
    """Authorization statuses (RFC 8555 Section 7.1.6)."""

    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"
    DEACTIVATED = "deactivated"
    EXPIRED = "expired"
    REVOKED = "revoked"


class OrderStatus(StrEnum):
    """Order statuses (RFC 8555 Section 7.1.6)."""

    PENDING = "pending"
    READY = "ready"
    PROCESSING = "processing"
    VALID = "valid"
    INVALID = "invalid"


class AccountStatus(StrEnum):
    """Account statuses (RFC 8555 Section 7.1.6)."""

    VALID = "valid"
    DEACTIVATED = "deactivated"
    REVOKED = "revoked"


class ChallengeType(StrEnum):
    """Challenge type this client can complete."""

    DNS_01 = "dns-01"


class IdentifierType(StrEnum):
    """Identifier types (RFC 8555 Section 9.7.7)."""

    DNS = "dns"


# =============================================================================
# Pydantic Models
# =============================================================================


class ProblemDetail(BaseModel):
    """Problem document (RFC 7807) embedded in ACME responses."""

    type: str = "about:blank"
    detail: str | None = None
    status: int | None = None
    subproblems: list[dict[str, Any]] | None = None

    def __str__(self) -> str:
        if self.detail:
            return f"{self.type}: {self.detail}"
        return self.type


class JsonWebKey(BaseModel):
    """Public part of the RSA account key (RFC 7517).

    Field order is ``e``, ``kty``, ``n``; the thumbprint is computed over
    this exact serialization.
    """

    e: str
    kty: str = "RSA"
    n: str

    model_config = ConfigDict(frozen=True)

    def to_json(self) -> str:
        """Serialize compactly as ``{"e":..,"kty":..,"n":..}``."""
        return json.dumps({"e": self.e, "kty": self.kty, "n": self.n}, separators=(",", ":"))


class Directory(BaseModel):
    """ACME directory resource (RFC 8555 Section 7.1.1)."""

    new_nonce: str = Field(alias="newNonce")
    new_account: str = Field(alias="newAccount")
    new_order: str = Field(alias="newOrder")
    revoke_cert: str = Field(alias="revokeCert")
    key_change: str = Field(alias="keyChange")
    meta: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def external_account_required(self) -> bool:
        """Whether the server mandates external account binding."""
        if not self.meta:
            return False
        return bool(self.meta.get("externalAccountRequired", False))


class Account(BaseModel):
    """ACME account resource (RFC 8555 Section 7.1.2)."""

    status: AccountStatus
    contact: list[str] | None = None
    orders: str | None = None
    terms_of_service_agreed: bool | None = Field(default=None, alias="termsOfServiceAgreed")
    only_return_existing: bool | None = Field(default=None, alias="onlyReturnExisting")

    model_config = ConfigDict(populate_by_name=True)


class Identifier(BaseModel):
    """ACME identifier (RFC 8555 Section 7.1.3)."""

    type: IdentifierType
    value: str


class Challenge(BaseModel):
    """ACME challenge resource (RFC 8555 Section 7.5.1)."""

    type: str
    url: str
    status: ChallengeStatus
    token: str | None = None
    error: ProblemDetail | None = None


class Authorization(BaseModel):
    """ACME authorization resource (RFC 8555 Section 7.1.4)."""

    status: AuthorizationStatus
    identifier: Identifier
    challenges: list[Challenge]
    wildcard: bool | None = None


class Order(BaseModel):
    """ACME order resource (RFC 8555 Section 7.1.3).

    ``url`` is not part of the resource body; the client reattaches it
    from the ``Location`` header or the URL it fetched.
    """

    status: OrderStatus
    identifiers: list[Identifier]
    authorizations: list[str]
    finalize: str
    certificate: str | None = None
    error: ProblemDetail | None = None
    url: str | None = Field(default=None, exclude=True)


# =============================================================================
# Local identities
# =============================================================================


class AccountIdentity(BaseModel):
    """Local counterpart of the remote ACME account: its key and contacts."""

    key: rsa.RSAPrivateKey
    contacts: list[str]
    external: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def generate(cls, contacts: list[str]) -> "AccountIdentity":
        """Create an identity with a freshly generated 2048-bit key."""
        return cls(key=generate_rsa_key(ACCOUNT_KEY_SIZE), contacts=contacts)

    @classmethod
    def from_key(cls, contacts: list[str], key: rsa.RSAPrivateKey) -> "AccountIdentity":
        """Create an identity around an existing key (e.g. loaded from disk)."""
        return cls(key=key, contacts=contacts, external=True)

    @property
    def formatted_contacts(self) -> list[str]:
        return [f"mailto:{contact}" for contact in self.contacts]


class DomainsIdentity(BaseModel):
    """Certificate key and the domains the certificate is requested for.

    The first domain becomes the subject common name; all of them are
    subject alternative names.
    """

    key: rsa.RSAPrivateKey
    domains: list[str]

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def generate(cls, domains: list[str]) -> "DomainsIdentity":
        """Create an identity with a freshly generated 4096-bit key."""
        return cls(key=generate_rsa_key(DOMAINS_KEY_SIZE), domains=domains)
