"""Tests for master password and account field validation."""

import pytest

from roostlib.errors import InvalidAccountError
from roostlib.validation import (
    MAX_FIELD_LENGTHS,
    validate_account_fields,
    validate_email,
    validate_master_password,
    validate_url,
)


class TestMasterPassword:

    @pytest.mark.parametrize("password", ["", "short", "1234567", "        "])
    def test_rejected(self, password):
        is_valid, _ = validate_master_password(password)
        assert is_valid is False

    def test_minimum_length_accepted(self):
        assert validate_master_password("eightchr") == (True, "Master password accepted")


class TestFormats:

    @pytest.mark.parametrize("url", [
        "", "https://github.com/login", "example.org", "http://localhost:8080/x",
        "http://192.168.1.10/admin",
    ])
    def test_valid_urls(self, url):
        assert validate_url(url)

    @pytest.mark.parametrize("url", ["not a url", "ftp//broken", "https://"])
    def test_invalid_urls(self, url):
        assert not validate_url(url)

    def test_emails(self):
        assert validate_email("")
        assert validate_email("alice@proton.me")
        assert not validate_email("alice@")
        assert not validate_email("no-at-sign")


class TestAccountFields:

    def test_strips_and_keeps_notes(self):
        cleaned = validate_account_fields({"platform": "  GitHub ", "notes": "  indented\n"})
        assert cleaned == {"platform": "GitHub", "notes": "  indented\n"}

    def test_none_becomes_empty(self):
        assert validate_account_fields({"platform": "X", "url": None})["url"] == ""

    def test_platform_required_on_create(self):
        with pytest.raises(InvalidAccountError, match="platform is required"):
            validate_account_fields({"username": "bob"})

    def test_partial_update_without_platform(self):
        assert validate_account_fields({"username": "bob"}, require_platform=False) == {"username": "bob"}

    def test_unknown_field(self):
        with pytest.raises(InvalidAccountError, match="unknown account fields: created_at"):
            validate_account_fields({"platform": "X", "created_at": 1.0})

    def test_too_long(self):
        with pytest.raises(InvalidAccountError):
            validate_account_fields({"platform": "x" * (MAX_FIELD_LENGTHS["platform"] + 1)})

    @pytest.mark.parametrize("value", ["3", 1.5, True])
    def test_sort_order_must_be_int(self, value):
        with pytest.raises(InvalidAccountError):
            validate_account_fields({"platform": "X", "sort_order": value})

    def test_non_text_value(self):
        with pytest.raises(InvalidAccountError):
            validate_account_fields({"platform": "X", "username": 42})

    def test_bad_url(self):
        with pytest.raises(InvalidAccountError, match="invalid URL format"):
            validate_account_fields({"platform": "X", "url": "not a url"})
