import re
from datetime import UTC, datetime
from hashlib import sha256

_UNSAFE_CHARS = re.compile(r"[<>\"'&]")
_URL_PATTERN = re.compile(r"(https?://|www\.)\S+", re.IGNORECASE)


def field_text(value: object) -> str | None:
    """Coerce a raw form value to stripped text, ``None`` when blank."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, list):
        parts = [str(item).strip() for item in value if str(item).strip()]
        return ", ".join(parts) or None
    text = str(value).strip()
    return text or None


def sanitize_text(value: object) -> str | None:
    text = field_text(value)
    if text is None:
        return None
    return _UNSAFE_CHARS.sub("", text) or None


def contains_url(value: str | None) -> bool:
    return bool(value and _URL_PATTERN.search(value))


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


def sha256_hex(value: str) -> str:
    return sha256(value.encode("utf-8")).hexdigest()


def parse_client_timestamp(value: object) -> datetime | None:
    """Parse epoch milliseconds or an ISO-8601 string into an aware datetime."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int | float):
        millis = float(value)
    else:
        candidate = str(value).strip()
        if not candidate:
            return None
        try:
            millis = float(candidate)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(candidate.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed

    try:
        return datetime.fromtimestamp(millis / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def utc_now_iso(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")


__all__ = (
    "contains_url",
    "digits_only",
    "field_text",
    "parse_client_timestamp",
    "sanitize_text",
    "sha256_hex",
    "utc_now_iso",
)
