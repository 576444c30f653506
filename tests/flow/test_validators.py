import pytest

from support_form.flow.validators import (
    IMAGE_CONTENT_TYPES,
    MEDIA_CONTENT_TYPES,
    check_file,
    check_length,
    file_size_message,
    is_valid_email,
    is_valid_wallet_address,
)


@pytest.mark.parametrize("value", ["a@b.co", "first.last+tag@example.org", "x@sub.domain.io"])
def test_valid_emails(value):
    assert is_valid_email(value)


@pytest.mark.parametrize("value", ["", None, "plain", "a@b", "a b@c.de", "@b.co", "a@.co "])
def test_invalid_emails(value):
    assert not is_valid_email(value)


def test_wallet_address():
    assert is_valid_wallet_address("0x" + "aB3" * 13 + "f")
    assert not is_valid_wallet_address("0x" + "a" * 39)
    assert not is_valid_wallet_address("0x" + "a" * 41)
    assert not is_valid_wallet_address("0x" + "g" * 40)
    assert not is_valid_wallet_address("1x" + "a" * 40)
    assert not is_valid_wallet_address(None)


def test_file_size_message():
    assert file_size_message(8 * 1024 * 1024) == "File size must be less than 8MB."
    assert file_size_message(1536 * 1024) == "File size must be less than 1.5MB."


def test_check_file_size_before_type():
    limit = 8 * 1024 * 1024
    assert check_file(limit, "image/png", limit, IMAGE_CONTENT_TYPES) is None
    assert check_file(limit + 1, "application/pdf", limit, IMAGE_CONTENT_TYPES) == "File size must be less than 8MB."
    assert check_file(10, "application/pdf", limit, IMAGE_CONTENT_TYPES) == "Only JPG, PNG, and GIF files are allowed."


def test_check_file_other_accept_lists():
    assert check_file(10, "video/mp4", 0, MEDIA_CONTENT_TYPES) is None
    msg = check_file(10, "text/plain", 0, MEDIA_CONTENT_TYPES)
    assert msg.startswith("Unsupported file type.")
    assert "video/mp4" in msg
    # No accept list means any type
    assert check_file(10, "text/plain", 0, ()) is None


def test_check_length():
    assert check_length("x" * 512, 512, "Description") is None
    assert check_length("x" * 513, 512, "Description") == "Description must be at most 512 characters."
    assert check_length("anything", None, "Name") is None
