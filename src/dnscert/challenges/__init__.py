"""ACME challenge helpers."""

from dnscert.challenges.dns01 import (
    challenge_fqdn,
    compute_dns_txt_value,
    compute_key_authorization,
    jwk_thumbprint,
)

__all__ = [
    "challenge_fqdn",
    "compute_dns_txt_value",
    "compute_key_authorization",
    "jwk_thumbprint",
]
