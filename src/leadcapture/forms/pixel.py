import logging
import secrets
import string
from collections.abc import Callable
from time import time
from typing import Any

from leadcapture.forms.storage import ClientStorage

logger = logging.getLogger(__name__)

EVENT_ID_KEY = "vlm_lead_eid"
FIRED_KEY_PREFIX = "lead_fired_"

Tracker = Callable[[str, str, dict[str, Any], dict[str, Any]], None]

_ALPHABET = string.ascii_lowercase + string.digits


def new_event_id(clock: Callable[[], float] = time) -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(7))
    return f"vlm-{int(clock() * 1000)}-{suffix}"


class LeadPixel:
    """Browser-side Lead event with a session-stable event id.

    The same id is sent to the server, which relays it to the Conversions
    API, so both events deduplicate. A Lead fires at most once per id.
    """

    def __init__(
        self,
        session_storage: ClientStorage,
        tracker: Tracker | None = None,
        has_consent: Callable[[], bool] = lambda: True,
        id_factory: Callable[[], str] = new_event_id,
    ):
        self._storage = session_storage
        self._tracker = tracker
        self._has_consent = has_consent
        self._id_factory = id_factory

    def event_id(self) -> str:
        event_id = self._storage.get(EVENT_ID_KEY)
        if not event_id:
            event_id = self._id_factory()
            self._storage.set(EVENT_ID_KEY, event_id)
        return event_id

    def has_fired(self, event_id: str) -> bool:
        return self._storage.get(FIRED_KEY_PREFIX + event_id) == "1"

    def track_lead(self) -> str:
        event_id = self.event_id()
        if self._tracker is None or not self._has_consent():
            logger.debug("Pixel unavailable, skipping browser Lead")
            return event_id
        if self.has_fired(event_id):
            logger.debug("Lead already fired for event", extra={"event_id": event_id})
            return event_id

        try:
            self._tracker("track", "Lead", {}, {"eventID": event_id})
        except Exception as exc:  # noqa: BLE001
            logger.warning("Browser Lead pixel failed", extra={"event_id": event_id})
            logger.debug("Pixel tracker error: %s", exc)
            return event_id

        self._storage.set(FIRED_KEY_PREFIX + event_id, "1")
        return event_id

    def reset(self) -> None:
        event_id = self._storage.get(EVENT_ID_KEY)
        if event_id:
            self._storage.remove(FIRED_KEY_PREFIX + event_id)
        self._storage.remove(EVENT_ID_KEY)


__all__ = ("EVENT_ID_KEY", "FIRED_KEY_PREFIX", "LeadPixel", "Tracker", "new_event_id")
