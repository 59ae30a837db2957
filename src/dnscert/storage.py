"""Persist the keys, CSR and certificate of a finished run."""

from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import rsa

from dnscert._logging import get_logger
from dnscert.crypto import csr_der_to_pem, private_key_to_pem, public_key_to_pem
from dnscert.session import Session

logger = get_logger(__name__)

PRIVATE_KEY_FILE = "private.pem"
PUBLIC_KEY_FILE = "public.pem"


def first_free_path(path: Path) -> Path:
    """First of ``<path>.1``, ``<path>.2``... that does not exist yet."""
    index = 1
    while True:
        candidate = path.with_name(f"{path.name}.{index}")
        if not candidate.exists():
            return candidate
        index += 1


def write_key_pair(directory: Path, key: rsa.RSAPrivateKey) -> None:
    (directory / PRIVATE_KEY_FILE).write_bytes(private_key_to_pem(key))
    (directory / PUBLIC_KEY_FILE).write_bytes(public_key_to_pem(key))


class FileStorage:
    """Directory tree of issued certificates.

    Layout::

        <root>/<environment>/<contact>/{private,public}.pem
        <root>/<environment>/<contact>/<domain>/<domain>.csr
        <root>/<environment>/<contact>/<domain>/<domain>.cer
        <root>/<environment>/<contact>/<domain>/{private,public}.pem

    ``contact`` is the first account contact and ``domain`` the first
    requested domain without its wildcard prefix. An account directory
    left by an earlier run is moved aside to ``<contact>.<n>``.

    Args:
        root: Base data directory.
        environment: Environment name (``production`` or ``staging``).
        contact: First contact of the account.
        primary_domain: First domain of the certificate.
    """

    def __init__(self, root: Path | str, environment: str, contact: str, primary_domain: str):
        self.root = Path(root)
        self.environment = environment
        self.contact = contact
        self.domain = primary_domain.replace("*.", "")

    @property
    def account_dir(self) -> Path:
        return self.root / self.environment / self.contact

    @property
    def domain_dir(self) -> Path:
        return self.account_dir / self.domain

    def persist(self, session: Session) -> Path:
        """Write the account key, domain key, CSR and certificate.

        Returns:
            The domain directory the certificate was written to.
        """
        account_dir = self.account_dir
        if account_dir.exists():
            moved = first_free_path(account_dir)
            account_dir.rename(moved)
            logger.info("Moved existing account directory", extra={"path": str(moved)})

        account_dir.mkdir(parents=True)
        write_key_pair(account_dir, session.account_identity.key)

        domain_dir = self.domain_dir
        domain_dir.mkdir()
        write_key_pair(domain_dir, session.domains_identity.key)

        if session.csr is not None:
            (domain_dir / f"{self.domain}.csr").write_bytes(csr_der_to_pem(session.csr))
        if session.certificate is not None:
            (domain_dir / f"{self.domain}.cer").write_bytes(session.certificate)

        logger.info("Persisted certificate data", extra={"path": str(domain_dir)})
        return domain_dir
