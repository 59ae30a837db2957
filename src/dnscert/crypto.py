"""Cryptographic primitives used by the ACME client."""

import base64
import hashlib

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID


def generate_rsa_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    """Generate an RSA private key.

    Args:
        key_size: Key size in bits (2048 for accounts, 4096 for domains).

    Returns:
        RSA private key.
    """
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def load_private_key_pem(pem_data: bytes, password: bytes | None = None) -> rsa.RSAPrivateKey:
    """Load an RSA private key from PEM-encoded data.

    Args:
        pem_data: PEM-encoded private key.
        password: Optional password for encrypted keys.

    Returns:
        RSA private key.

    Raises:
        ValueError: If the PEM data is invalid or not an RSA key.
    """
    try:
        key = serialization.load_pem_private_key(pem_data, password=password)
    except TypeError as e:
        # raised when an encrypted key is loaded without password
        raise ValueError("Encrypted key requires a password") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError(f"Unsupported key type: {type(key).__name__}")

    return key


def private_key_to_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def public_key_to_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def csr_der_to_pem(csr_der: bytes) -> bytes:
    csr = x509.load_der_x509_csr(csr_der)
    return csr.public_bytes(serialization.Encoding.PEM)


def create_csr(key: rsa.RSAPrivateKey, domains: list[str]) -> bytes:
    """Create a DER-encoded Certificate Signing Request.

    The first domain is the subject common name; every domain is listed
    in the subject alternative name extension.

    Args:
        key: Private key to sign the CSR.
        domains: Domain names to include in the CSR.

    Returns:
        The CSR in DER form.

    Raises:
        ValueError: If domains list is empty.
    """
    if not domains:
        raise ValueError("At least one domain is required")

    subject = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, domains[0]),
        ]
    )
    san = x509.SubjectAlternativeName([x509.DNSName(domain) for domain in domains])

    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(subject)
        .add_extension(san, critical=False)
        .sign(key, hashes.SHA256())
    )
    return csr.public_bytes(serialization.Encoding.DER)


def base64url_encode(data: bytes | str) -> str:
    """Base64url encode without padding."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def digest(message: bytes) -> bytes:
    """SHA-256 digest of ``message``."""
    return hashlib.sha256(message).digest()


def sign(message: bytes, key: rsa.RSAPrivateKey) -> bytes:
    """RSASSA-PKCS1-v1_5 signature with SHA-256 (JWS ``RS256``)."""
    return key.sign(message, padding.PKCS1v15(), hashes.SHA256())


def _int_to_bytes(n: int) -> bytes:
    """Big-endian bytes without leading zeros."""
    return n.to_bytes((n.bit_length() + 7) // 8, byteorder="big")


def get_jwk_fields(key: rsa.RSAPrivateKey) -> dict[str, str]:
    """Get the ``e``/``kty``/``n`` members of the account key's public JWK."""
    public_numbers = key.public_key().public_numbers()
    return {
        "e": base64url_encode(_int_to_bytes(public_numbers.e)),
        "kty": "RSA",
        "n": base64url_encode(_int_to_bytes(public_numbers.n)),
    }
