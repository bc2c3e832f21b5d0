from datetime import UTC, datetime, timedelta
from typing import Any

from leadcapture.api.modules.leads.services.core import (
    field_text,
    parse_client_timestamp,
)


class HoneypotCheck:
    def __init__(self, field_name: str):
        self._field_name = field_name

    @property
    def field_name(self) -> str:
        return self._field_name

    def is_tripped(self, fields: dict[str, Any]) -> bool:
        value = fields.get(self._field_name)
        if value is None or value is False:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, list):
            return field_text(value) is not None
        return True


class TimeTrapCheck:
    def __init__(self, min_fill_seconds: float, field_name: str = "form_started_at"):
        self._min_fill = timedelta(seconds=min_fill_seconds)
        self._field_name = field_name

    def elapsed(
        self,
        fields: dict[str, Any],
        now: datetime | None = None,
    ) -> timedelta | None:
        started_at = parse_client_timestamp(fields.get(self._field_name))
        if started_at is None:
            return None
        return (now or datetime.now(UTC)) - started_at

    def is_too_fast(
        self,
        fields: dict[str, Any],
        now: datetime | None = None,
    ) -> bool:
        elapsed = self.elapsed(fields, now)
        if elapsed is None:
            return True
        return elapsed < self._min_fill


__all__ = ("HoneypotCheck", "TimeTrapCheck")
