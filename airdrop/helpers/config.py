"""Configuration management and environment variable utilities."""

import os
import re
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from airdrop.helpers.constants import (
    DEFAULT_NETWORK,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SNAPSHOT_DIR,
    DEFAULT_TIMEOUT,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from airdrop.helpers.parsers import normalize_address


# Load environment variables from .env file
load_dotenv()

_ADDRESS_SEPARATORS = re.compile(r"[\s,;]+")


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from airdrop.helpers.config import get_required_env

        api_uri = get_required_env("ANKR_API_URI")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def parse_address_list(raw: str | None) -> frozenset[str]:
    """Parse a comma or whitespace separated list of addresses.

    Args:
        raw: Raw list, e.g. the EXCLUDE_ADDRESSES environment variable

    Returns:
        Set of lower-cased addresses

    Raises:
        ValueError: If any entry is not a hex address
    """
    if not raw:
        return frozenset()
    return frozenset(
        normalize_address(item) for item in _ADDRESS_SEPARATORS.split(raw) if item
    )


def parse_max_retries(raw: str | None) -> int | None:
    """Parse MAX_RETRIES where ``0``, ``none`` or ``unbounded`` disable the limit."""
    if raw is None or raw.strip() == "":
        return MAX_RETRIES
    value = raw.strip().lower()
    if value in {"0", "none", "unbounded", "inf"}:
        return None
    retries = int(value)
    if retries < 0:
        msg = f"MAX_RETRIES must be non-negative, got {retries}"
        raise ValueError(msg)
    return retries


class RetryPolicy(BaseModel):
    """Exponential backoff policy for log page requests.

    ``max_retries=None`` retries forever. Callers choosing that must bound
    the run time externally.
    """

    max_retries: int | None = Field(default=MAX_RETRIES, ge=1)
    base_delay: float = Field(default=RETRY_BASE_DELAY, ge=0)
    max_delay: float = Field(default=RETRY_MAX_DELAY, ge=0)

    model_config = ConfigDict(frozen=True)


class HarvestConfig(BaseModel):
    """Explicit configuration for a harvest run.

    Built once by ``load_harvest_config`` (or directly in tests) and passed
    into the harvester; nothing in the pipeline reads the environment.
    """

    api_url: str = Field(..., min_length=1, description="Ankr multichain API URI")
    network: str = Field(default=DEFAULT_NETWORK, description="Ankr blockchain id")
    exclusions: frozenset[str] = Field(default_factory=frozenset)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    snapshot_dir: Path = Field(default=Path(DEFAULT_SNAPSHOT_DIR))

    model_config = ConfigDict(frozen=True)

    @field_validator("exclusions", mode="before")
    @classmethod
    def _normalize_exclusions(cls, value: object) -> frozenset[str]:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return parse_address_list(value)
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(normalize_address(item) for item in value)
        msg = f"Invalid exclusions: {value!r}"
        raise ValueError(msg)


def load_harvest_config(
    api_url: str | None = None,
    network: str | None = None,
) -> HarvestConfig:
    """Build a HarvestConfig from parameters and environment variables.

    Recognized variables: ANKR_API_URI, NETWORK, EXCLUDE_ADDRESSES,
    PAGE_SIZE, HTTP_TIMEOUT, MAX_RETRIES, RETRY_BASE_DELAY, RETRY_MAX_DELAY,
    SNAPSHOT_DIR.

    Args:
        api_url: Optional API URI overriding ANKR_API_URI
        network: Optional network overriding NETWORK

    Returns:
        Validated configuration

    Raises:
        ValueError: If the API URI is missing or a value is malformed

    Example:
        ```python
        from airdrop.helpers.config import load_harvest_config

        config = load_harvest_config(network="metis")
        ```
    """
    retry = RetryPolicy(
        max_retries=parse_max_retries(get_optional_env("MAX_RETRIES")),
        base_delay=float(get_optional_env("RETRY_BASE_DELAY", str(RETRY_BASE_DELAY))),
        max_delay=float(get_optional_env("RETRY_MAX_DELAY", str(RETRY_MAX_DELAY))),
    )
    return HarvestConfig(
        api_url=api_url or get_required_env("ANKR_API_URI"),
        network=network or get_optional_env("NETWORK", DEFAULT_NETWORK),
        exclusions=parse_address_list(get_optional_env("EXCLUDE_ADDRESSES")),
        page_size=int(get_optional_env("PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
        timeout=float(get_optional_env("HTTP_TIMEOUT", str(DEFAULT_TIMEOUT))),
        retry=retry,
        snapshot_dir=Path(get_optional_env("SNAPSHOT_DIR", DEFAULT_SNAPSHOT_DIR)),
    )


__all__ = [
    "HarvestConfig",
    "RetryPolicy",
    "get_optional_env",
    "get_required_env",
    "load_harvest_config",
    "parse_address_list",
    "parse_max_retries",
]
