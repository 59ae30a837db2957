"""Unit tests for on-disk persistence."""

from cryptography import x509

from dnscert.crypto import create_csr, load_private_key_pem
from dnscert.storage import PRIVATE_KEY_FILE, PUBLIC_KEY_FILE, FileStorage, first_free_path

CERTIFICATE = b"-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n"


def finished(session):
    session.csr = create_csr(session.domains_identity.key, session.domains_identity.domains)
    session.certificate = CERTIFICATE
    return session


class TestFileStorage:
    """Tests for FileStorage.persist."""

    def test_layout(self, tmp_path, session):
        storage = FileStorage(tmp_path, "staging", "admin@example.com", "example.com")

        domain_dir = storage.persist(finished(session))

        account_dir = tmp_path / "staging" / "admin@example.com"
        assert domain_dir == account_dir / "example.com"
        assert (account_dir / PRIVATE_KEY_FILE).exists()
        assert (account_dir / PUBLIC_KEY_FILE).exists()
        assert (domain_dir / PRIVATE_KEY_FILE).exists()
        assert (domain_dir / "example.com.cer").read_bytes() == CERTIFICATE

        csr = x509.load_pem_x509_csr((domain_dir / "example.com.csr").read_bytes())
        assert csr.is_signature_valid

        key = load_private_key_pem((account_dir / PRIVATE_KEY_FILE).read_bytes())
        assert key.private_numbers() == session.account_identity.key.private_numbers()

    def test_wildcard_prefix_removed(self, tmp_path, session):
        storage = FileStorage(tmp_path, "production", "admin@example.com", "*.example.com")

        domain_dir = storage.persist(finished(session))

        assert domain_dir.name == "example.com"
        assert (domain_dir / "example.com.cer").exists()

    def test_existing_account_moved_aside(self, tmp_path, session):
        storage = FileStorage(tmp_path, "staging", "admin@example.com", "example.com")

        storage.persist(finished(session))
        storage.persist(session)
        storage.persist(session)

        env_dir = tmp_path / "staging"
        assert sorted(p.name for p in env_dir.iterdir()) == [
            "admin@example.com",
            "admin@example.com.1",
            "admin@example.com.2",
        ]

    def test_without_certificate(self, tmp_path, session):
        storage = FileStorage(tmp_path, "staging", "admin@example.com", "example.com")

        domain_dir = storage.persist(session)

        assert not (domain_dir / "example.com.cer").exists()
        assert not (domain_dir / "example.com.csr").exists()


def test_first_free_path(tmp_path):
    (tmp_path / "acct.1").mkdir()

    assert first_free_path(tmp_path / "acct") == tmp_path / "acct.2"
