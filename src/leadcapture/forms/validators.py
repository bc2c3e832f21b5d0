import re
from dataclasses import dataclass
from datetime import date

MSG_NAME_REQUIRED = "Please enter your full name"
MSG_NAME_INVALID = (
    "Please enter your full name (at least two words, 2-80 characters, "
    "letters only with optional hyphens or apostrophes)"
)
MSG_EMAIL_REQUIRED = "Please enter your email address"
MSG_EMAIL_INVALID = "Please enter a valid email address"
MSG_MOBILE_INVALID = "Enter a valid UK mobile (7xxxxxxxxx)"
MSG_POSTCODE_INVALID = "Please enter a valid UK postcode"
MSG_DOB_REQUIRED = "Please enter your date of birth"
MSG_DOB_FORMAT = "Please enter your date of birth in DD/MM/YYYY format"
MSG_DOB_YEAR = "Please enter a valid year"
MSG_DOB_MONTH = "Please enter a valid month"
MSG_DOB_DAY = "Please enter a valid day"
MSG_DOB_DATE = "Please enter a valid date"
MSG_DOB_FUTURE = "Date of birth cannot be in the future"
MSG_DOB_LIVE = "Please enter a valid date of birth"

MIN_BIRTH_YEAR = 1900

_NAME_TOKEN = re.compile(r"(?=.{2,40}$)[A-Za-z]+(?:['-][A-Za-z]+)*")
_NAME_FORBIDDEN = re.compile(r"[0-9@/\\]|https?://|www\.", re.IGNORECASE)
_REPEATED_CHAR = re.compile(r"(.)\1{3,}")
_NAME_DENYLIST = frozenset(
    {"test", "asdf", "qwerty", "none", "na", "n/a", "aaa", "unknown"}
)

_DOMAIN_CHARS = re.compile(r"[A-Za-z0-9.-]+")
_DOMAIN_LABEL = re.compile(r"[A-Za-z0-9-]{1,63}")
_TLD = re.compile(r"[A-Za-z]{2,63}")
_EMAIL_DENIED_PREFIXES = (
    "test@",
    "example@",
    "invalid@",
    "none@",
    "no@",
    "fake@",
    "spam@",
)
DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "mailinator.com",
        "guerrillamail.com",
        "10minutemail.com",
        "tempmail.com",
        "yopmail.com",
        "tmpmail.org",
        "discard.email",
        "getnada.com",
        "trashmail.com",
        "sharklasers.com",
    }
)

_POSTCODE = re.compile(r"[A-Z]{1,2}\d[A-Z\d]?\d[A-Z]{2}")


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    message: str | None = None
    value: str | None = None


def _fail(message: str) -> ValidationResult:
    return ValidationResult(ok=False, message=message)


def collapse_whitespace(value: str | None) -> str:
    return " ".join((value or "").split())


def is_valid_name(value: str | None) -> bool:
    name = collapse_whitespace(value)
    if not 2 <= len(name) <= 80:
        return False
    if _NAME_FORBIDDEN.search(name):
        return False

    tokens = name.split(" ")
    if len(tokens) < 2:
        return False
    if not all(_NAME_TOKEN.fullmatch(token) for token in tokens):
        return False
    if _REPEATED_CHAR.search(name):
        return False
    return not any(token.lower() in _NAME_DENYLIST for token in tokens)


def validate_name(value: str | None) -> ValidationResult:
    name = collapse_whitespace(value)
    if not name:
        return _fail(MSG_NAME_REQUIRED)
    if not is_valid_name(name):
        return _fail(MSG_NAME_INVALID)
    return ValidationResult(ok=True, value=name)


def is_valid_email(value: str | None) -> bool:
    email = (value or "").strip()
    if not 6 <= len(email) <= 254:
        return False
    if any(ch.isspace() for ch in email):
        return False

    at = email.find("@")
    if at <= 0 or at == len(email) - 1:
        return False

    local, domain = email[:at], email[at + 1 :]
    if not 2 <= len(local) <= 64:
        return False
    if local.startswith(".") or local.endswith(".") or ".." in local:
        return False

    if not _DOMAIN_CHARS.fullmatch(domain):
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    for label in labels:
        if not _DOMAIN_LABEL.fullmatch(label):
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
    if not _TLD.fullmatch(labels[-1]):
        return False

    lowered = email.lower()
    if lowered.startswith(_EMAIL_DENIED_PREFIXES):
        return False
    return domain.lower() not in DISPOSABLE_EMAIL_DOMAINS


def validate_email(value: str | None) -> ValidationResult:
    email = (value or "").strip()
    if not email:
        return _fail(MSG_EMAIL_REQUIRED)
    if not is_valid_email(email):
        return _fail(MSG_EMAIL_INVALID)
    return ValidationResult(ok=True, value=email)


def parse_uk_mobile(value: str | None) -> str | None:
    """Canonical local form ``7xxxxxxxxx`` or ``None``.

    Accepts ``7xxxxxxxxx``, ``07xxxxxxxxx``, ``447xxxxxxxxx`` and
    ``00447xxxxxxxxx`` with any punctuation or a leading ``+``.
    """
    digits = re.sub(r"\D", "", value or "")
    if len(digits) == 11 and digits.startswith("07"):
        return digits[1:]
    if len(digits) == 10 and digits.startswith("7"):
        return digits
    if len(digits) == 12 and digits.startswith("447"):
        return digits[2:]
    if len(digits) == 14 and digits.startswith("00447"):
        return digits[4:]
    return None


def uk_mobile_to_e164(value: str | None) -> str | None:
    local = parse_uk_mobile(value)
    return f"+44{local}" if local else None


def validate_uk_mobile(value: str | None) -> ValidationResult:
    e164 = uk_mobile_to_e164(value)
    if e164 is None:
        return _fail(MSG_MOBILE_INVALID)
    return ValidationResult(ok=True, value=e164)


def format_postcode(value: str | None) -> str | None:
    compact = "".join((value or "").split()).upper()
    if not _POSTCODE.fullmatch(compact):
        return None
    return f"{compact[:-3]} {compact[-3:]}"


def validate_postcode(value: str | None) -> ValidationResult:
    postcode = format_postcode(value)
    if postcode is None:
        return _fail(MSG_POSTCODE_INVALID)
    return ValidationResult(ok=True, value=postcode)


def format_dob_input(raw: str | None) -> str:
    """Live reformat of typed text into ``DD/MM/YYYY`` (at most 8 digits)."""
    digits = re.sub(r"\D", "", raw or "")[:8]
    if len(digits) <= 2:
        return digits
    if len(digits) <= 4:
        return f"{digits[:2]}/{digits[2:]}"
    return f"{digits[:2]}/{digits[2:4]}/{digits[4:]}"


def dob_display_to_iso(display: str | None) -> str | None:
    parts = (display or "").split("/")
    if len(parts) != 3:
        return None
    day, month, year = parts
    return f"{year}-{month}-{day}"


def dob_iso_to_display(iso: str | None) -> str | None:
    parts = (iso or "").split("-")
    if len(parts) != 3:
        return None
    year, month, day = parts
    return f"{day}/{month}/{year}"


def validate_dob(value: str | None, today: date | None = None) -> ValidationResult:
    """Full date-of-birth check; ``value`` on success is ISO ``YYYY-MM-DD``."""
    today = today or date.today()
    display = (value or "").strip()
    if not display:
        return _fail(MSG_DOB_REQUIRED)

    parts = display.split("/")
    if (
        len(parts) != 3
        or [len(part) for part in parts] != [2, 2, 4]
        or not all(part.isdigit() for part in parts)
    ):
        return _fail(MSG_DOB_FORMAT)

    day, month, year = (int(part) for part in parts)
    if year < MIN_BIRTH_YEAR or year > today.year:
        return _fail(MSG_DOB_YEAR)
    if not 1 <= month <= 12:
        return _fail(MSG_DOB_MONTH)
    if not 1 <= day <= 31:
        return _fail(MSG_DOB_DAY)

    try:
        born = date(year, month, day)
    except ValueError:
        return _fail(MSG_DOB_DATE)
    if born > today:
        return _fail(MSG_DOB_FUTURE)
    return ValidationResult(ok=True, value=born.isoformat())


@dataclass(frozen=True, slots=True)
class DobInputState:
    display: str
    iso: str | None = None
    error: str | None = None


def apply_dob_input(raw: str | None, today: date | None = None) -> DobInputState:
    """Reformat a keystroke and derive the parallel ISO value.

    The ISO value is set only for a valid date. An error is reported only
    once all ten characters are present.
    """
    display = format_dob_input(raw)
    result = validate_dob(display, today)
    if result.ok:
        return DobInputState(display=display, iso=result.value)
    if len(display) == 10:
        return DobInputState(display=display, error=MSG_DOB_LIVE)
    return DobInputState(display=display)


__all__ = (
    "DISPOSABLE_EMAIL_DOMAINS",
    "DobInputState",
    "ValidationResult",
    "apply_dob_input",
    "collapse_whitespace",
    "dob_display_to_iso",
    "dob_iso_to_display",
    "format_dob_input",
    "format_postcode",
    "is_valid_email",
    "is_valid_name",
    "parse_uk_mobile",
    "uk_mobile_to_e164",
    "validate_dob",
    "validate_email",
    "validate_name",
    "validate_postcode",
    "validate_uk_mobile",
)
