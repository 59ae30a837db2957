"""State shared between the steps of one issuance run."""

from pydantic import BaseModel, ConfigDict

from dnscert.models import AccountIdentity, Directory, DomainsIdentity, JsonWebKey


class Session(BaseModel):
    """Typed record of everything one issuance run produces.

    Created at bootstrap and updated in place by each step that yields
    a new artifact (directory, key id, CSR, certificate).
    """

    account_identity: AccountIdentity
    domains_identity: DomainsIdentity
    directory_url: str
    provider: str | None = None
    auto_mode: bool = False

    directory: Directory | None = None
    jwk: JsonWebKey | None = None
    account_key_id: str | None = None
    csr: bytes | None = None
    certificate: bytes | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)
