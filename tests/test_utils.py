import pytest

from libdigest import exc
from libdigest._utils.str import as_str, check_field, is_ascii_codec


@pytest.mark.parametrize("codec", ["utf-8", "latin-1", "ascii", "cp1252"])
def test_is_ascii_codec(codec: str) -> None:
    assert is_ascii_codec(codec)


@pytest.mark.parametrize("codec", ["utf-16", "utf-32"])
def test_is_not_ascii_codec(codec: str) -> None:
    assert not is_ascii_codec(codec)


def test_as_str() -> None:
    assert as_str("abc") == "abc"
    assert as_str(b"abc") == "abc"
    assert as_str(b"\xe6", "latin-1") == "æ"


@pytest.mark.parametrize("value", ["user1", "useræ", "x" * 255])
def test_check_field_ok(value: str) -> None:
    assert check_field(value, "user") == value


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("", "user must not be empty"),
        ("x" * 256, "user must be at most 255 characters"),
        ("user:", "user contains invalid characters: 'user:'"),
        ("us\ter", "user contains invalid characters"),
        ("us\rer", "user contains invalid characters"),
        ("us\x00er", "user contains invalid characters"),
    ],
)
def test_check_field_invalid(value: str, message: str) -> None:
    with pytest.raises(ValueError) as exc_info:
        check_field(value, "user")
    assert str(exc_info.value).startswith(message)


def test_check_field_not_string() -> None:
    with pytest.raises(exc.ExpectedStringError) as exc_info:
        check_field(b"user", "user")
    assert str(exc_info.value) == "user must be str, not bytes"
