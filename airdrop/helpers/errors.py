"""Exception types raised by the snapshot and merkle pipeline."""


class AirdropError(Exception):
    """Base class for all pipeline errors."""


class TransientFetchError(AirdropError):
    """A log page request failed in a way that may succeed on retry.

    Raised for network failures, timeouts and rate limiting. The harvester
    retries the same page token until its retry budget is exhausted.
    """


class LogApiError(AirdropError):
    """The log API rejected a request with an unrecoverable error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class DecodeError(AirdropError):
    """A single log could not be decoded into a ledger event."""


class InvalidLeaf(AirdropError):
    """A snapshot entry cannot be encoded as a merkle leaf."""


class NotFound(AirdropError):
    """No leaf exists for the requested address."""


class InvalidTreeFormat(AirdropError):
    """A dumped merkle tree is malformed or inconsistent."""


__all__ = [
    "AirdropError",
    "DecodeError",
    "InvalidLeaf",
    "InvalidTreeFormat",
    "LogApiError",
    "NotFound",
    "TransientFetchError",
]
