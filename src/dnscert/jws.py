"""JWS envelopes for signed ACME requests (RFC 8555 Section 6.2)."""

import json
from collections.abc import Callable

from dnscert import crypto
from dnscert._logging import get_logger
from dnscert.session import Session

logger = get_logger(__name__)

ALGORITHM = "RS256"


class JwsSigner:
    """Build the flattened JWS body of a signed ACME request.

    The protected header carries the full account JWK for the
    new-account and revoke-cert URLs and the account key id for every
    other URL. Each envelope consumes a freshly fetched nonce.

    Args:
        session: Session holding the account key, JWK, key id and directory.
        nonce_source: Callable returning a new replay nonce on every call.
    """

    def __init__(self, session: Session, nonce_source: Callable[[], str]):
        self.session = session
        self._nonce_source = nonce_source

    def uses_jwk(self, url: str) -> bool:
        """Whether requests to ``url`` identify the account by its JWK."""
        directory = self.session.directory
        if directory is None:
            raise ValueError("Directory not loaded. Bootstrap the client first.")
        return url in (directory.new_account, directory.revoke_cert)

    def protected_header(self, url: str, nonce: str) -> dict:
        header: dict = {"alg": ALGORITHM}
        if self.uses_jwk(url):
            if self.session.jwk is None:
                raise ValueError("Account JWK not computed. Bootstrap the client first.")
            header["jwk"] = self.session.jwk.model_dump()
        else:
            header["kid"] = self.session.account_key_id
        header["nonce"] = nonce
        header["url"] = url
        return header

    def sign(self, url: str, payload: str) -> dict[str, str]:
        """Sign ``payload`` for a POST to ``url``.

        Args:
            url: Target URL, also placed in the protected header.
            payload: Raw JSON body, or "" for POST-as-GET.

        Returns:
            The ``{protected, payload, signature}`` request body.
        """
        logger.debug("Signing request", extra={"url": url, "payload": payload})

        header = self.protected_header(url, self._nonce_source())
        protected_b64 = crypto.base64url_encode(json.dumps(header, separators=(",", ":")))
        payload_b64 = crypto.base64url_encode(payload)

        signing_input = f"{protected_b64}.{payload_b64}".encode("ascii")
        signature = crypto.sign(signing_input, self.session.account_identity.key)

        return {
            "protected": protected_b64,
            "payload": payload_b64,
            "signature": crypto.base64url_encode(signature),
        }
