"""Base-62 encoding between non-negative integers and short codes.

Codes use the fixed alphabet ``0-9``, ``a-z``, ``A-Z`` with digit values 0–61.
The alphabet still contains visually confusable symbols (``0``/``O``,
``1``/``l``/``I``); the ordering is part of the public code format and must
not be changed without migrating every issued code.

Example:
    >>> encode(12345)
    '3d7'
    >>> decode("3d7")
    12345
"""

from shortener.exceptions import InvalidEncoding

__all__ = ["ALPHABET", "BASE", "encode", "decode", "is_valid"]

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)

_DIGIT_VALUES = {char: index for index, char in enumerate(ALPHABET)}


def encode(number: int) -> str:
    """Encode a non-negative integer as a base-62 string.

    Args:
        number: Value to encode.

    Returns:
        str: Encoded code; ``encode(0)`` is ``"0"``, never the empty string.

    Raises:
        InvalidEncoding: If ``number`` is negative or not an integer.
    """
    if isinstance(number, bool) or not isinstance(number, int):
        raise InvalidEncoding(f"Only integers can be encoded, got {number!r}")
    if number < 0:
        raise InvalidEncoding(f"Number must be non-negative, got {number}")

    if number == 0:
        return ALPHABET[0]

    result = []
    while number > 0:
        number, remainder = divmod(number, BASE)
        result.append(ALPHABET[remainder])

    return "".join(reversed(result))


def decode(code: str) -> int:
    """Decode a base-62 string back to its integer value.

    Raises:
        InvalidEncoding: If ``code`` is empty or contains a character outside
            the alphabet.
    """
    if not code:
        raise InvalidEncoding("Short code cannot be null or empty")

    value = 0
    for char in code:
        digit = _DIGIT_VALUES.get(char)
        if digit is None:
            raise InvalidEncoding(f"Invalid character in short code: {char!r}")
        value = value * BASE + digit
    return value


def is_valid(code: str | None) -> bool:
    """Return True when every character of a non-empty code is in the alphabet."""
    if not code or not isinstance(code, str):
        return False
    return all(char in _DIGIT_VALUES for char in code)
