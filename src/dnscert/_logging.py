"""Logging utilities for dnscert."""

import logging
import time
from contextvars import ContextVar, Token

# NullHandler on the package logger; the CLI installs real handlers
_root = logging.getLogger("dnscert")
_root.addHandler(logging.NullHandler())

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Handler installed by configure_logging(), replaced on reconfiguration
_cli_handler: logging.Handler | None = None

# Identifier currently being authorized
_current_domain: ContextVar[str | None] = ContextVar("current_domain", default=None)


def set_domain(domain: str | None) -> Token[str | None]:
    """Set the identifier being authorized for logging context.

    Args:
        domain: Identifier value of the authorization.

    Returns:
        Token to reset the context.
    """
    return _current_domain.set(domain)


def reset_domain(token: Token[str | None]) -> None:
    """Reset the identifier context."""
    _current_domain.reset(token)


def get_domain_extra() -> dict[str, str]:
    """Get the current identifier for log extra fields.

    Returns:
        Dict with 'domain', or empty dict outside of an authorization.
    """
    domain = _current_domain.get()
    if domain is None:
        return {}
    return {"domain": domain}


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the dnscert namespace.

    Args:
        name: The module name (typically __name__).

    Returns:
        A logger instance for the module.
    """
    return logging.getLogger(name)


def configure_logging(debug: bool = False) -> None:
    """Attach a stderr handler to the dnscert logger.

    Args:
        debug: Log at DEBUG instead of INFO.
    """
    global _cli_handler
    if _cli_handler is not None:
        _root.removeHandler(_cli_handler)

    _cli_handler = logging.StreamHandler()
    _cli_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    _root.addHandler(_cli_handler)
    _root.setLevel(logging.DEBUG if debug else logging.INFO)


class Timer:
    """Context manager for timing operations.

    Usage:
        with Timer() as t:
            # do work
        print(f"Elapsed: {t.elapsed_ms}ms")
    """

    def __init__(self) -> None:
        self.elapsed_ms: float = 0
        self._start: float = 0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
