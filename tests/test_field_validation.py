"""
Tests for server-side field validation
"""

import pytest

from leadcapture.api.modules.leads.services.validation import (
    LeadFieldValidator,
    is_valid_postcode,
)
from leadcapture.api.modules.leads.services.validation.fields import (
    MSG_EMAIL,
    MSG_PHONE,
    MSG_POSTCODE,
    MSG_SPAM,
)

SPAM_TERMS = ["viagra", "cialis", "porn", "seo", "crypto"]


@pytest.fixture
def validator():
    return LeadFieldValidator(spam_terms=SPAM_TERMS)


def person(**overrides):
    fields = {
        "fullName": "Jane Smith",
        "email": "jane@example.com",
        "phone_e164": "+447700900123",
        "postcode": "SW1A 1AA",
    }
    fields.update(overrides)
    return fields


def business(**overrides):
    fields = {
        "companyName": "Acme Ltd",
        "contactName": "Sam Patel",
        "email": "sam@acme.co.uk",
        "phone": "020 7946 0958",
        "postcode": "EC1A 1BB",
    }
    fields.update(overrides)
    return fields


class TestPersonForms:
    """Tests for the IVA and query form rules."""

    @pytest.mark.parametrize("form_id", ["iva-claim-form", "claimForm"])
    def test_valid(self, validator, form_id):
        """Test that a clean submission has no errors."""
        assert validator.validate(form_id, person()) == []

    def test_name_too_short(self, validator):
        """Test that a one-character name fails."""
        errors = validator.validate("iva-claim-form", person(fullName="J"))

        assert errors == ["Name must be at least 2 characters long"]

    def test_name_with_url(self, validator):
        """Test that URLs in the name field are refused."""
        errors = validator.validate("claimForm", person(fullName="visit www.spam.test"))

        assert errors == ["Name cannot contain URLs"]

    def test_invalid_email(self, validator):
        """Test that a malformed email is reported."""
        assert validator.validate("claimForm", person(email="jane@example")) == [MSG_EMAIL]

    def test_phone_is_optional(self, validator):
        """Test that a missing phone is not an error."""
        fields = person()
        del fields["phone_e164"]

        assert validator.validate("claimForm", fields) == []

    @pytest.mark.parametrize(
        "phone",
        ["07700 900123", "+44 7700 900123", "447700900123", "0044 7700 900123"],
    )
    def test_accepted_phone_formats(self, validator, phone):
        """Test that common UK notations are accepted."""
        fields = person(phone=phone)
        del fields["phone_e164"]

        assert validator.validate("iva-claim-form", fields) == []

    def test_invalid_phone(self, validator):
        """Test that a non-UK number is reported."""
        fields = person(phone_e164="+1 555 0100")

        assert validator.validate("iva-claim-form", fields) == [MSG_PHONE]

    def test_invalid_postcode(self, validator):
        """Test that a malformed postcode is reported."""
        assert validator.validate("iva-claim-form", person(postcode="12345")) == [MSG_POSTCODE]

    def test_spam_term_in_notes(self, validator):
        """Test that spam vocabulary anywhere in free text is refused."""
        errors = validator.validate("iva-claim-form", person(notes="Buy CRYPTO now"))

        assert errors == [MSG_SPAM]

    def test_spam_terms_match_whole_words(self, validator):
        """Test that a spam term inside a longer word is not flagged."""
        errors = validator.validate("iva-claim-form", person(notes="Please see our museum"))

        assert errors == []

    def test_errors_in_order(self, validator):
        """Test that every failure is reported in field order."""
        errors = validator.validate(
            "iva-claim-form",
            person(fullName="", email="", phone_e164="123", postcode="nope"),
        )

        assert errors == [
            "Name must be at least 2 characters long",
            MSG_EMAIL,
            MSG_PHONE,
            MSG_POSTCODE,
        ]


class TestBusinessForm:
    """Tests for the business energy claim rules."""

    def test_valid(self, validator):
        """Test that a clean business submission has no errors."""
        assert validator.validate("bec-claim-form", business()) == []

    def test_company_and_contact_required(self, validator):
        """Test that both business names are required."""
        errors = validator.validate("bec-claim-form", business(companyName="", contactName=None))

        assert errors == ["Company name is required", "Contact name is required"]

    def test_company_name_with_url(self, validator):
        """Test that URLs in the company name are refused."""
        errors = validator.validate(
            "bec-claim-form",
            business(companyName="https://acme.example"),
        )

        assert errors == ["Company name cannot contain URLs"]

    def test_spam_in_additional_notes(self, validator):
        """Test that additional notes are scanned for spam."""
        errors = validator.validate(
            "bec-claim-form",
            business(additionalNotes="Cheap viagra"),
        )

        assert errors == [MSG_SPAM]


class TestPostcode:
    """Tests for the permissive server postcode check."""

    @pytest.mark.parametrize("postcode", ["SW1A 1AA", "sw1a1aa", "M1 1AE", "B33 8TH"])
    def test_valid(self, postcode):
        """Test well-formed UK postcodes."""
        assert is_valid_postcode(postcode) is True

    @pytest.mark.parametrize("postcode", ["", None, "12345", "SW1A"])
    def test_invalid(self, postcode):
        """Test malformed postcodes."""
        assert is_valid_postcode(postcode) is False


def test_unknown_form(validator):
    """Test that an unknown form id is itself an error."""
    assert validator.validate("newsletter", {}) == ["Unknown form ID: newsletter"]
