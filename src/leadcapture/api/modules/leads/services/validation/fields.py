import re
from collections.abc import Callable
from typing import Any

from leadcapture.api.modules.leads.services.core import contains_url, field_text
from leadcapture.api.modules.leads.services.normalize.contact import (
    pick_phone,
    uk_phone_to_e164,
)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_POSTCODE_PATTERN = re.compile(r"^[A-Z]{1,2}\d[A-Z\d]?\s?\d[A-Z]{2}$", re.IGNORECASE)

MSG_EMAIL = "Valid email address is required"
MSG_PHONE = "Valid UK phone number is required"
MSG_POSTCODE = "Valid UK postcode is required"
MSG_SPAM = "Submission contains inappropriate content"


def _check_name(
    errors: list[str],
    value: str | None,
    required: str,
    no_urls: str,
) -> None:
    if not value or len(value) < 2:
        errors.append(required)
    elif contains_url(value):
        errors.append(no_urls)


def is_valid_postcode(value: str | None) -> bool:
    return bool(value and _POSTCODE_PATTERN.match(value.replace(" ", "")))


class LeadFieldValidator:
    """Server-side field rules per form. Returns every failure in order."""

    def __init__(self, spam_terms: list[str]):
        terms = [re.escape(term) for term in spam_terms if term]
        self._spam_pattern = (
            re.compile(r"\b(" + "|".join(terms) + r")\b", re.IGNORECASE) if terms else None
        )
        self._rules: dict[str, Callable[[dict[str, Any]], list[str]]] = {
            "iva-claim-form": self._validate_person,
            "claimForm": self._validate_person,
            "bec-claim-form": self._validate_business,
        }

    def contains_spam(self, *values: str | None) -> bool:
        if self._spam_pattern is None:
            return False
        text = " ".join(value for value in values if value)
        return bool(self._spam_pattern.search(text))

    def validate(self, form_id: str, fields: dict[str, Any]) -> list[str]:
        rule = self._rules.get(form_id)
        if rule is None:
            return [f"Unknown form ID: {form_id}"]
        return rule(fields)

    def _validate_contact(self, errors: list[str], fields: dict[str, Any]) -> None:
        email = field_text(fields.get("email"))
        if not email or not _EMAIL_PATTERN.match(email):
            errors.append(MSG_EMAIL)

        phone = pick_phone(fields)
        if phone and uk_phone_to_e164(phone) is None:
            errors.append(MSG_PHONE)

        postcode = field_text(fields.get("postcode"))
        if postcode and not is_valid_postcode(postcode):
            errors.append(MSG_POSTCODE)

    def _validate_person(self, fields: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        name = field_text(fields.get("fullName"))
        _check_name(
            errors,
            name,
            "Name must be at least 2 characters long",
            "Name cannot contain URLs",
        )
        self._validate_contact(errors, fields)

        notes = field_text(fields.get("notes"))
        if self.contains_spam(name, field_text(fields.get("email")), notes):
            errors.append(MSG_SPAM)
        return errors

    def _validate_business(self, fields: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        company = field_text(fields.get("companyName"))
        contact = field_text(fields.get("contactName"))
        _check_name(
            errors,
            company,
            "Company name is required",
            "Company name cannot contain URLs",
        )
        _check_name(
            errors,
            contact,
            "Contact name is required",
            "Contact name cannot contain URLs",
        )
        self._validate_contact(errors, fields)

        if self.contains_spam(
            company,
            contact,
            field_text(fields.get("email")),
            field_text(fields.get("additionalNotes")),
        ):
            errors.append(MSG_SPAM)
        return errors


__all__ = (
    "MSG_EMAIL",
    "MSG_PHONE",
    "MSG_POSTCODE",
    "MSG_SPAM",
    "LeadFieldValidator",
    "is_valid_postcode",
)
