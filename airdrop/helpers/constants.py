"""Common configuration constants used across the pipeline."""

# Log API Constants
DEFAULT_PAGE_SIZE = 10_000
"""Maximum number of logs requested per ankr_getLogs page"""

DEFAULT_NETWORK = "eth"
"""Default Ankr blockchain identifier"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

# Retry Configuration
MAX_RETRIES = 10
"""Default maximum number of attempts per log page"""

RETRY_BASE_DELAY = 1.0
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 60.0
"""Maximum delay between retries in seconds"""

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})
"""HTTP status codes treated as transient by the log client"""

# Storage
DEFAULT_SNAPSHOT_DIR = "snapshots"
"""Directory for snapshot and merkle tree artifacts"""

JSON_INDENT = 4
"""Indentation of written JSON artifacts"""


__all__ = [
    "DEFAULT_NETWORK",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_SNAPSHOT_DIR",
    "DEFAULT_TIMEOUT",
    "JSON_INDENT",
    "MAX_RETRIES",
    "RETRYABLE_STATUS_CODES",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
]
