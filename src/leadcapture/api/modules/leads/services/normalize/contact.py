import re
from datetime import date
from typing import Any

from leadcapture.api.modules.leads.services.core import field_text

_PHONE_NOISE = re.compile(r"[\s\-().]")
_UK_NATIONAL = re.compile(r"[1-9]\d{8,9}")
_DOB_DISPLAY = re.compile(r"(\d{2})/(\d{2})/(\d{4})")
_DOB_ISO = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

PHONE_FIELDS = ("phone_e164", "phone", "phone_local", "mobile", "phoneNumber")


def pick_phone(fields: dict[str, Any]) -> str | None:
    for name in PHONE_FIELDS:
        value = field_text(fields.get(name))
        if value:
            return value
    return None


def uk_phone_to_e164(value: str | None) -> str | None:
    """Return ``+44`` E.164 for any common UK notation, ``None`` when invalid."""
    if not value:
        return None

    phone = _PHONE_NOISE.sub("", value)
    if phone.startswith("00"):
        phone = "+" + phone[2:]

    if phone.startswith("+44"):
        national = phone[3:]
    elif phone.startswith("+"):
        return None
    elif phone.startswith("44") and len(phone) >= 12:
        national = phone[2:]
    elif phone.startswith("0"):
        national = phone[1:]
    else:
        national = phone

    if national.startswith("0"):
        national = national[1:]
    if not _UK_NATIONAL.fullmatch(national):
        return None
    return f"+44{national}"


def normalize_dob(value: object) -> tuple[str | None, str | None]:
    """Return ``(DD/MM/YYYY, YYYY-MM-DD)`` for a display or ISO date."""
    text = field_text(value)
    if not text:
        return None, None

    if match := _DOB_DISPLAY.fullmatch(text):
        day, month, year = match.groups()
    elif match := _DOB_ISO.fullmatch(text):
        year, month, day = match.groups()
    else:
        return None, None

    try:
        date(int(year), int(month), int(day))
    except ValueError:
        return f"{day}/{month}/{year}", None
    return f"{day}/{month}/{year}", f"{year}-{month}-{day}"


__all__ = ("PHONE_FIELDS", "normalize_dob", "pick_phone", "uk_phone_to_e164")
