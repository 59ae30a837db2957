"""ACME environments and provider configuration files."""

import os
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml

from dnscert._logging import get_logger
from dnscert.exceptions import ConfigurationError

logger = get_logger(__name__)

CONFIG_DIR_ENV = "DNSCERT_CONFIG_DIR"
DEFAULT_CONFIG_DIR = "conf"
DEFAULT_DATA_DIR = "data"


class Environment(StrEnum):
    """Let's Encrypt environments a certificate can be requested from."""

    PRODUCTION = "production"
    STAGING = "staging"

    @property
    def directory_url(self) -> str:
        return _DIRECTORY_URLS[self]


_DIRECTORY_URLS = {
    Environment.PRODUCTION: "https://acme-v02.api.letsencrypt.org/directory",
    Environment.STAGING: "https://acme-staging-v02.api.letsencrypt.org/directory",
}


def config_dir() -> Path:
    """Directory holding the provider configuration files."""
    return Path(os.environ.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))


def load_provider_properties(provider: str, directory: Path | None = None) -> dict[str, Any]:
    """Load ``<config_dir>/<provider>.yaml``.

    The file holds a flat mapping, e.g.::

        API_URL: https://desec.io/api/v1
        API_TOKEN: secret

    Args:
        provider: Provider name.
        directory: Configuration directory (default: ``config_dir()``).

    Returns:
        The properties as a dict.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    path = (directory or config_dir()) / f"{provider}.yaml"
    logger.debug("Loading provider configuration", extra={"path": str(path)})

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data
