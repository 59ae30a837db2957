"""DNS-01 challenge values (RFC 8555 Section 8.4)."""

from dnscert.crypto import base64url_encode, digest
from dnscert.models import JsonWebKey

CHALLENGE_LABEL = "_acme-challenge"


def challenge_fqdn(identifier: str) -> str:
    """Name that carries the TXT record for ``identifier``."""
    return f"{CHALLENGE_LABEL}.{identifier}"


def jwk_thumbprint(jwk: JsonWebKey) -> str:
    """Compute the base64url SHA-256 thumbprint of the account JWK.

    Hashes the compact ``{"e":..,"kty":..,"n":..}`` serialization.
    """
    return base64url_encode(digest(jwk.to_json().encode("utf-8")))


def compute_key_authorization(token: str, thumbprint: str) -> str:
    """Compute the key authorization string.

    The key authorization is the token concatenated with the account
    key thumbprint, separated by a period.

    Args:
        token: The challenge token from the ACME server.
        thumbprint: The base64url-encoded SHA-256 thumbprint of the account key.

    Returns:
        The key authorization string (token.thumbprint).
    """
    return f"{token}.{thumbprint}"


def compute_dns_txt_value(key_authorization: str) -> str:
    """Compute the DNS TXT record value for DNS-01 challenge.

    The TXT record value is the base64url-encoded SHA-256 digest
    of the key authorization string.

    Args:
        key_authorization: The key authorization string.

    Returns:
        The base64url-encoded SHA-256 digest (without padding).
    """
    return base64url_encode(digest(key_authorization.encode("utf-8")))
