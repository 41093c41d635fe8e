"""Unit tests for base-62 short-code encoding."""

import pytest

from shortener.encoder import ALPHABET, decode, encode, is_valid
from shortener.exceptions import InvalidEncoding


def test_alphabet_order() -> None:
    assert len(ALPHABET) == 62
    assert ALPHABET[:10] == "0123456789"
    assert ALPHABET[10] == "a"
    assert ALPHABET[36] == "A"
    assert ALPHABET[-1] == "Z"


def test_encode_basic() -> None:
    assert encode(0) == "0"
    assert encode(1) == "1"
    assert encode(61) == "Z"
    assert encode(62) == "10"


def test_encode_large_numbers() -> None:
    assert encode(12345) == "3d7"
    assert encode(999999) == "4c91"
    assert encode(62**6 - 1) == "ZZZZZZ"
    assert encode(62**6) == "1000000"


def test_encode_negative() -> None:
    with pytest.raises(InvalidEncoding, match="non-negative"):
        encode(-1)


def test_encode_rejects_non_integers() -> None:
    with pytest.raises(InvalidEncoding):
        encode(1.5)
    with pytest.raises(InvalidEncoding):
        encode(True)


def test_decode_known_values() -> None:
    assert decode("0") == 0
    assert decode("10") == 62
    assert decode("3d7") == 12345
    assert decode("0001") == 1


@pytest.mark.parametrize("number", [0, 1, 61, 62, 3843, 3844, 2**31 - 1, 2**63 - 1, 10**30])
def test_round_trip(number: int) -> None:
    assert decode(encode(number)) == number


@pytest.mark.parametrize("code", ["abc-1", "hello world", "ümlaut", "a/b", "x_y", "%20"])
def test_out_of_alphabet_codes(code: str) -> None:
    assert is_valid(code) is False
    with pytest.raises(InvalidEncoding):
        decode(code)


def test_invalid_encoding_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        decode("!")


def test_decode_empty() -> None:
    with pytest.raises(InvalidEncoding, match="empty"):
        decode("")


def test_is_valid() -> None:
    assert is_valid("promo")
    assert is_valid("0aZ9")
    assert not is_valid("")
    assert not is_valid(None)
