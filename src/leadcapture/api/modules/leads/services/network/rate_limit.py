import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic

_PURGE_EVERY = 512


@dataclass(slots=True)
class RateLimitEntry:
    window_start: float
    count: int


def build_rate_limit_keys(
    ip: str | None,
    email: str | None,
    phone: str | None,
) -> list[str]:
    email_key = email.strip().lower() if email else None
    keys: list[str] = []
    if ip:
        keys.append(f"ip:{ip}")
        if email_key:
            keys.append(f"ip-email:{ip}:{email_key}")
        if phone:
            keys.append(f"ip-phone:{ip}:{phone}")
    else:
        if email_key:
            keys.append(f"email:{email_key}")
        if phone:
            keys.append(f"phone:{phone}")
    return keys


class InMemoryRateLimiter:
    """Fixed-window submission counter keyed by identity strings.

    Process-local and best-effort. Keys are checked in order and checking
    stops at the first key over its limit.
    """

    def __init__(
        self,
        window_seconds: int,
        max_submissions: int,
        clock: Callable[[], float] = monotonic,
    ):
        self._window_seconds = window_seconds
        self._max_submissions = max_submissions
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()
        self._call_count = 0

    def _purge_stale(self, now: float) -> None:
        stale = [
            key
            for key, entry in self._entries.items()
            if now - entry.window_start > self._window_seconds
        ]
        for key in stale:
            del self._entries[key]

    def _hit(self, key: str, now: float) -> bool:
        entry = self._entries.get(key)
        if entry is None or now - entry.window_start > self._window_seconds:
            self._entries[key] = RateLimitEntry(window_start=now, count=1)
            return True

        entry.count += 1
        return entry.count <= self._max_submissions

    async def allow(self, keys: list[str]) -> bool:
        if not keys:
            return True

        now = self._clock()
        async with self._lock:
            self._call_count += 1
            if self._call_count >= _PURGE_EVERY:
                self._call_count = 0
                self._purge_stale(now)

            for key in keys:
                if not self._hit(key, now):
                    return False
            return True

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ("InMemoryRateLimiter", "RateLimitEntry", "build_rate_limit_keys")
