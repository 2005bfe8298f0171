"""Parsing utilities for addresses and on-chain integer amounts.

Amounts are always handled as Python ``int``. Floating point is never used
for balances, not even for display.
"""

from typing import Any

from eth_utils import is_address, is_hex_address


def parse_amount(value: Any) -> int:
    """Parse an amount given as int, hex string or decimal string.

    Snapshot files store amounts as hex strings, merkle dumps as decimal
    strings, and decoded log inputs may be either.

    Args:
        value: Amount to parse

    Returns:
        int: Parsed integer amount (may be negative)

    Raises:
        ValueError: If the value is not an integer representation

    Example:
        >>> parse_amount("0x64")
        100
        >>> parse_amount("100")
        100
    """
    if isinstance(value, bool):
        msg = f"Invalid amount: {value!r}"
        raise ValueError(msg)
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        msg = f"Invalid amount: {value!r}"
        raise ValueError(msg)

    text = value.strip()
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    try:
        if text[:2].lower() == "0x":
            parsed = int(text, 16)
        elif text.isdigit():
            parsed = int(text, 10)
        else:
            msg = f"Invalid amount: {value!r}"
            raise ValueError(msg)
    except (IndexError, ValueError) as e:
        msg = f"Invalid amount: {value!r}"
        raise ValueError(msg) from e
    return -parsed if negative else parsed


def normalize_address(address: Any) -> str:
    """Lower-case a 0x-prefixed 20-byte hex address.

    Args:
        address: Address string in any case

    Returns:
        str: Lower-cased address

    Raises:
        ValueError: If the value is not a 20-byte hex address
    """
    if (
        not isinstance(address, str)
        or address[:2].lower() != "0x"
        or not is_hex_address(address)
    ):
        msg = f"Invalid address: {address!r}"
        raise ValueError(msg)
    return address.lower()


def is_valid_address(address: Any) -> bool:
    """Check 0x-prefixed hex format and, for mixed-case input, the EIP-55 checksum."""
    return (
        isinstance(address, str)
        and address[:2].lower() == "0x"
        and is_address(address)
    )


def topic_to_address(topic: str) -> str:
    """Extract the lower-cased address from a 32-byte indexed topic."""
    raw = topic[2:] if topic.startswith("0x") else topic
    if len(raw) != 64:
        msg = f"Invalid address topic: {topic!r}"
        raise ValueError(msg)
    return normalize_address("0x" + raw[-40:])


def int_to_topic(value: int) -> str:
    """Encode an unsigned integer as a 32-byte topic filter."""
    return "0x" + value.to_bytes(32, byteorder="big").hex()


def to_hex_amount(value: int) -> str:
    """Encode a non-negative amount the way snapshot files store it.

    Example:
        >>> to_hex_amount(255)
        '0xff'
    """
    return hex(value)


def format_units(value: int, decimals: int = 18) -> str:
    """Format a raw token amount with the given number of decimals.

    Example:
        >>> format_units(1_500_000_000_000_000_000)
        '1.5'
    """
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"
    frac_text = f"{frac:0{decimals}d}".rstrip("0")
    return f"{sign}{whole}.{frac_text}"


__all__ = [
    "format_units",
    "int_to_topic",
    "is_valid_address",
    "normalize_address",
    "parse_amount",
    "to_hex_amount",
    "topic_to_address",
]
