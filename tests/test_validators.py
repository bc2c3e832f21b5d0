"""
Tests for the client-side field validators and formatters
"""

from datetime import date

import pytest

from leadcapture.forms.validators import (
    MSG_DOB_DATE,
    MSG_DOB_DAY,
    MSG_DOB_FORMAT,
    MSG_DOB_FUTURE,
    MSG_DOB_LIVE,
    MSG_DOB_MONTH,
    MSG_DOB_REQUIRED,
    MSG_DOB_YEAR,
    MSG_EMAIL_INVALID,
    MSG_EMAIL_REQUIRED,
    MSG_NAME_INVALID,
    MSG_NAME_REQUIRED,
    apply_dob_input,
    dob_display_to_iso,
    dob_iso_to_display,
    format_dob_input,
    format_postcode,
    is_valid_email,
    is_valid_name,
    parse_uk_mobile,
    validate_dob,
    validate_email,
    validate_name,
    validate_uk_mobile,
)

TODAY = date(2025, 10, 1)


class TestNameValidation:
    """Tests for full-name validation."""

    @pytest.mark.parametrize(
        "name",
        ["Jane Smith", "Mary-Jane O'Neil", "  Ali   Khan ", "Jo De La Cruz"],
    )
    def test_valid_names(self, name):
        """Test realistic full names."""
        assert is_valid_name(name) is True

    @pytest.mark.parametrize(
        "name",
        [
            "Jane",
            "Jane Sm1th",
            "jane@smith",
            "www.jane smith",
            "Jaaaane Smith",
            "Test User",
            "Jane N/A",
            "J Smith",
            "Jane -Smith",
        ],
    )
    def test_invalid_names(self, name):
        """Test names that are rejected."""
        assert is_valid_name(name) is False

    def test_denylist_is_token_based(self):
        """Test that denied words only match whole tokens."""
        assert is_valid_name("Testa Nashville") is True

    def test_messages(self):
        """Test required and invalid messages and the collapsed value."""
        assert validate_name("   ").message == MSG_NAME_REQUIRED
        assert validate_name("Jane").message == MSG_NAME_INVALID
        assert validate_name(" Jane   Smith ").value == "Jane Smith"


class TestEmailValidation:
    """Tests for email validation."""

    @pytest.mark.parametrize(
        "email",
        ["jane.smith@example.co.uk", "jo+claims@mail-host.org", "ab@c.io"],
    )
    def test_valid(self, email):
        """Test acceptable addresses."""
        assert is_valid_email(email) is True

    @pytest.mark.parametrize(
        "email",
        [
            "a@b.co",
            "jane smith@example.com",
            "jane@@example.com",
            ".jane@example.com",
            "jane..smith@example.com",
            "jane@example",
            "jane@-example.com",
            "jane@example.c0m",
            "test@example.com",
            "jane@mailinator.com",
        ],
    )
    def test_invalid(self, email):
        """Test addresses that are rejected."""
        assert is_valid_email(email) is False

    def test_messages(self):
        """Test required and invalid messages."""
        assert validate_email("").message == MSG_EMAIL_REQUIRED
        assert validate_email("nope").message == MSG_EMAIL_INVALID
        assert validate_email(" jane@example.com ").value == "jane@example.com"


class TestUkMobile:
    """Tests for UK mobile parsing."""

    @pytest.mark.parametrize(
        "raw",
        ["7700900123", "07700 900123", "+44 7700 900123", "447700900123", "0044 7700-900123"],
    )
    def test_accepted_forms(self, raw):
        """Test that every accepted notation yields the local form."""
        assert parse_uk_mobile(raw) == "7700900123"

    @pytest.mark.parametrize("raw", ["020 7946 0958", "0770090012", "+1 555 0100", ""])
    def test_rejected(self, raw):
        """Test that landlines and foreign numbers are rejected."""
        assert parse_uk_mobile(raw) is None

    def test_validate_returns_e164(self):
        """Test that validation yields the E.164 value."""
        result = validate_uk_mobile("07700 900123")

        assert result.ok is True
        assert result.value == "+447700900123"
        assert validate_uk_mobile("123").message == "Enter a valid UK mobile (7xxxxxxxxx)"


class TestPostcode:
    """Tests for postcode formatting."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("sw1a1aa", "SW1A 1AA"), ("M1 1AE", "M1 1AE"), (" b33  8th ", "B33 8TH")],
    )
    def test_format(self, raw, expected):
        """Test that valid postcodes are upper-cased with one space."""
        assert format_postcode(raw) == expected

    @pytest.mark.parametrize("raw", ["", "12345", "SW1A", "SW1A 1A1"])
    def test_invalid(self, raw):
        """Test that malformed postcodes are rejected."""
        assert format_postcode(raw) is None


class TestDateOfBirth:
    """Tests for date-of-birth formatting and validation."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1", "1"),
            ("150", "15/0"),
            ("1506", "15/06"),
            ("15061", "15/06/1"),
            ("15/06/1985", "15/06/1985"),
            ("150619851234", "15/06/1985"),
        ],
    )
    def test_live_format(self, raw, expected):
        """Test reformatting while typing."""
        assert format_dob_input(raw) == expected

    def test_display_iso_conversion(self):
        """Test conversion between display and ISO forms."""
        assert dob_display_to_iso("15/06/1985") == "1985-06-15"
        assert dob_iso_to_display("1985-06-15") == "15/06/1985"
        assert dob_display_to_iso("15/06") is None

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("", MSG_DOB_REQUIRED),
            ("15-06-1985", MSG_DOB_FORMAT),
            ("15/6/1985", MSG_DOB_FORMAT),
            ("15/06/1899", MSG_DOB_YEAR),
            ("15/06/2026", MSG_DOB_YEAR),
            ("15/13/1985", MSG_DOB_MONTH),
            ("32/01/1985", MSG_DOB_DAY),
            ("30/02/1985", MSG_DOB_DATE),
            ("02/10/2025", MSG_DOB_FUTURE),
        ],
    )
    def test_invalid(self, value, message):
        """Test each date-of-birth failure message."""
        assert validate_dob(value, TODAY).message == message

    def test_valid_returns_iso(self):
        """Test that a valid date yields the ISO value."""
        result = validate_dob("29/02/2000", TODAY)

        assert result.ok is True
        assert result.value == "2000-02-29"

    def test_today_is_allowed(self):
        """Test that a birth date of today is not in the future."""
        assert validate_dob("01/10/2025", TODAY).ok is True

    def test_live_input_state(self):
        """Test that errors only appear once the date is complete."""
        partial = apply_dob_input("1506", TODAY)
        complete = apply_dob_input("15061985", TODAY)
        bad = apply_dob_input("31021985", TODAY)

        assert partial.display == "15/06"
        assert partial.iso is None
        assert partial.error is None
        assert complete.iso == "1985-06-15"
        assert complete.error is None
        assert bad.iso is None
        assert bad.error == MSG_DOB_LIVE
