"""dnscert command-line entry point.

Usage::

    dnscert -c admin@example.com -d example.com www.example.com -e staging
    dnscert -c admin@example.com -d '*.example.com' -e production -p desec --auto
    python -m dnscert -c admin@example.com -d example.com -e staging --account-key account.pem
"""

import argparse
import re
from pathlib import Path

from dnscert._logging import configure_logging, get_logger
from dnscert.config import DEFAULT_DATA_DIR, Environment
from dnscert.crypto import load_private_key_pem
from dnscert.exceptions import AcmeError, CertClientError
from dnscert.orchestrator import CertClient
from dnscert.providers import ProviderRegistry
from dnscert.storage import FileStorage

logger = get_logger(__name__)

_DOMAIN_RE = re.compile(
    r"^(\*\.)?([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$",
    re.IGNORECASE,
)


def contact(value: str) -> str:
    """argparse type for an account contact (an email address)."""
    local, sep, host = value.partition("@")
    if not sep or not local or not host:
        raise argparse.ArgumentTypeError(f"Invalid contact: {value!r}")
    return value


def domain(value: str) -> str:
    """argparse type for a certificate domain, wildcards allowed."""
    if not _DOMAIN_RE.match(value):
        raise argparse.ArgumentTypeError(f"Invalid domain: {value!r}")
    return value.lower()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dnscert",
        description="Request a certificate from Let's Encrypt using DNS-01 validation.",
    )
    parser.add_argument(
        "-c",
        "--contacts",
        required=True,
        nargs="+",
        type=contact,
        metavar="CONTACT",
        help="Account contact email addresses.",
    )
    parser.add_argument(
        "-d",
        "--domains",
        required=True,
        nargs="+",
        type=domain,
        metavar="DOMAIN",
        help="Certificate domains; the first one is the subject.",
    )
    parser.add_argument(
        "-e",
        "--environment",
        required=True,
        choices=[e.value for e in Environment],
        help="ACME environment.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        default=None,
        help="DNS provider publishing the TXT record (default: manual).",
    )
    parser.add_argument(
        "--auto",
        action="store_true",
        default=False,
        help="Check DNS propagation instead of waiting for ENTER (requires a provider).",
    )
    parser.add_argument(
        "--account-key",
        type=Path,
        default=None,
        metavar="PEM",
        help="PEM file of an existing account key; the account is looked up.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(DEFAULT_DATA_DIR),
        metavar="DIR",
        help="Directory the keys and certificate are written to.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Process exit code: 0 on success, 1 on failure.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(debug=args.debug)

    if args.provider is not None:
        try:
            ProviderRegistry.default().validate_name(args.provider)
        except CertClientError as e:
            parser.error(str(e))

    environment = Environment(args.environment)
    storage = FileStorage(args.data_dir, environment.value, args.contacts[0], args.domains[0])

    try:
        account_key = None
        if args.account_key is not None:
            try:
                account_key = load_private_key_pem(args.account_key.read_bytes())
            except (OSError, ValueError) as e:
                logger.error("Cannot load account key", extra={"path": str(args.account_key), "error": str(e)})
                return 1

        with CertClient.bootstrap(
            contacts=args.contacts,
            domains=args.domains,
            directory_url=environment.directory_url,
            provider=args.provider,
            auto_mode=args.auto,
            account_key=account_key,
            storage=storage,
        ) as client:
            client.request_new_certificate()
    except AcmeError as e:
        logger.error("Certificate request failed: %s", e, extra={"status_code": e.status_code})
        if e.retry_after is not None:
            logger.error("The ACME server asks to retry in %d seconds", e.retry_after)
        return 1
    except CertClientError as e:
        logger.error("Certificate request failed: %s", e)
        return 1

    logger.info("Certificate issued", extra={"path": str(storage.domain_dir)})
    return 0
