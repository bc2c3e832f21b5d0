import logging
from collections.abc import Callable, Iterable
from time import monotonic

from leadcapture.api.modules.leads.schema import BehaviorScore

logger = logging.getLogger(__name__)


class BehaviorCollector:
    """Counts human-interaction signals for one form session.

    The honeypot and any other excluded fields never contribute. A new
    :class:`BehaviorScore` is built on every :meth:`snapshot` call.
    """

    def __init__(
        self,
        excluded_fields: Iterable[str] = (),
        clock: Callable[[], float] = monotonic,
    ):
        self._excluded = frozenset(excluded_fields)
        self._clock = clock
        self._started_at = clock()
        self.interactions = 0
        self.keystrokes = 0
        self.field_focuses = 0
        self.paste_events = 0
        self._fields_changed: set[str] = set()
        self._fields_pasted: set[str] = set()

    def _tracked(self, field: str) -> bool:
        return field not in self._excluded

    def record_interaction(self) -> None:
        self.interactions += 1

    def record_keystroke(self, field: str | None = None) -> None:
        if field is None or self._tracked(field):
            self.keystrokes += 1

    def record_focus(self, field: str) -> None:
        if self._tracked(field):
            self.field_focuses += 1

    def record_paste(self, field: str) -> None:
        if self._tracked(field):
            self.paste_events += 1
            self._fields_pasted.add(field)

    def record_change(self, field: str) -> None:
        if self._tracked(field):
            self._fields_changed.add(field)

    @property
    def form_changes(self) -> int:
        return len(self._fields_changed)

    def paste_ratio(self) -> float:
        touched = self._fields_changed | self._fields_pasted
        if not touched:
            return 0.0
        return round(len(self._fields_pasted) / len(touched), 2)

    def snapshot(self) -> BehaviorScore:
        score = BehaviorScore(
            interactions=self.interactions,
            keystrokes=self.keystrokes,
            field_focuses=self.field_focuses,
            paste_events=self.paste_events,
            form_changes=self.form_changes,
            time_on_page=max(int(self._clock() - self._started_at), 0),
            paste_ratio=self.paste_ratio(),
        )
        logger.debug("Behavior snapshot taken", extra={"score": score.model_dump()})
        return score


__all__ = ("BehaviorCollector",)
