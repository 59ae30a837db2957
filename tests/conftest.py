"""Pytest fixtures for dnscert test suite."""

import logging
import logging.handlers
from collections.abc import Generator

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from dnscert.crypto import generate_rsa_key
from dnscert.models import AccountIdentity, DomainsIdentity
from dnscert.session import Session

ACME_BASE_URL = "https://acme.test"
DIRECTORY_URL = f"{ACME_BASE_URL}/directory"

DIRECTORY = {
    "newNonce": f"{ACME_BASE_URL}/new-nonce",
    "newAccount": f"{ACME_BASE_URL}/new-account",
    "newOrder": f"{ACME_BASE_URL}/new-order",
    "revokeCert": f"{ACME_BASE_URL}/revoke-cert",
    "keyChange": f"{ACME_BASE_URL}/key-change",
}


@pytest.fixture
def directory_data() -> dict[str, str]:
    """Directory body served by the mocked ACME server."""
    return dict(DIRECTORY)


@pytest.fixture(scope="session")
def account_key() -> rsa.RSAPrivateKey:
    """Account key shared by the whole test session (generation is slow)."""
    return generate_rsa_key(2048)


@pytest.fixture(scope="session")
def domains_key() -> rsa.RSAPrivateKey:
    """Domain key shared by the whole test session."""
    return generate_rsa_key(2048)


@pytest.fixture
def session(account_key: rsa.RSAPrivateKey, domains_key: rsa.RSAPrivateKey) -> Session:
    """Fresh session for example.com with a generated (non-external) account."""
    return Session(
        account_identity=AccountIdentity(key=account_key, contacts=["admin@example.com"]),
        domains_identity=DomainsIdentity(key=domains_key, domains=["example.com", "www.example.com"]),
        directory_url=DIRECTORY_URL,
    )


class LogCapture:
    """Helper class to capture and inspect log records."""

    def __init__(self, handler: logging.handlers.MemoryHandler) -> None:
        self._handler = handler

    @property
    def records(self) -> list[logging.LogRecord]:
        """Get all captured log records."""
        return self._handler.buffer

    def get_records(
        self, level: int | None = None, name: str | None = None
    ) -> list[logging.LogRecord]:
        """Get log records filtered by level and/or logger name.

        Args:
            level: Filter by log level (e.g., logging.INFO).
            name: Filter by logger name prefix (e.g., "dnscert.client").

        Returns:
            List of matching log records.
        """
        records = self.records
        if level is not None:
            records = [r for r in records if r.levelno == level]
        if name is not None:
            records = [r for r in records if r.name.startswith(name)]
        return records

    def get_messages(self, level: int | None = None, name: str | None = None) -> list[str]:
        """Get log messages filtered by level and/or logger name.

        Args:
            level: Filter by log level (e.g., logging.INFO).
            name: Filter by logger name prefix (e.g., "dnscert.client").

        Returns:
            List of log message strings.
        """
        return [r.getMessage() for r in self.get_records(level, name)]

    def clear(self) -> None:
        """Clear all captured log records."""
        self._handler.buffer.clear()


@pytest.fixture
def log_capture() -> Generator[LogCapture]:
    """Capture logs from the dnscert library during a test.

    Usage:
        def test_something(log_capture):
            # do something that logs
            assert "Certificate downloaded" in log_capture.get_messages(logging.INFO)
    """
    # capacity high enough that the buffer is never flushed mid-test
    handler = logging.handlers.MemoryHandler(capacity=100000)
    handler.setLevel(logging.DEBUG)

    # Attach to the dnscert root logger
    dnscert_logger = logging.getLogger("dnscert")
    original_level = dnscert_logger.level
    dnscert_logger.setLevel(logging.DEBUG)
    dnscert_logger.addHandler(handler)

    try:
        yield LogCapture(handler)
    finally:
        dnscert_logger.removeHandler(handler)
        dnscert_logger.setLevel(original_level)
        handler.close()
