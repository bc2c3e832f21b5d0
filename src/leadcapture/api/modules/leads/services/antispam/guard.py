import logging
from datetime import datetime

from leadcapture.api.modules.leads.schema import SubmissionPayload
from leadcapture.api.modules.leads.services.antispam.behavior import (
    BehaviorScoreService,
)
from leadcapture.api.modules.leads.services.antispam.traps import (
    HoneypotCheck,
    TimeTrapCheck,
)
from leadcapture.api.modules.leads.services.core import SubmissionRejected

logger = logging.getLogger(__name__)

HONEYPOT_MESSAGE = "Invalid submission."
TIME_TRAP_MESSAGE = "Please take a moment to complete the form."
BEHAVIOR_MESSAGE = "Please complete the form naturally before submitting."


class SpamGuard:
    """Runs the anti-automation checks in order. The first failure wins."""

    def __init__(
        self,
        honeypot: HoneypotCheck,
        time_trap: TimeTrapCheck,
        behavior: BehaviorScoreService,
    ):
        self._honeypot = honeypot
        self._time_trap = time_trap
        self._behavior = behavior

    def check(self, payload: SubmissionPayload, now: datetime | None = None) -> None:
        if self._honeypot.is_tripped(payload.fields):
            logger.warning(
                "Honeypot field filled",
                extra={"form_id": payload.form_id, "field": self._honeypot.field_name},
            )
            raise SubmissionRejected(
                status_code=400,
                code="HONEYPOT",
                message=HONEYPOT_MESSAGE,
            )

        if self._time_trap.is_too_fast(payload.fields, now):
            elapsed = self._time_trap.elapsed(payload.fields, now)
            logger.warning(
                "Form submitted faster than the time trap allows",
                extra={"form_id": payload.form_id},
            )
            raise SubmissionRejected(
                status_code=400,
                code="TOO_FAST",
                message=TIME_TRAP_MESSAGE,
                details={
                    "elapsedSeconds": (
                        round(elapsed.total_seconds(), 3) if elapsed is not None else None
                    ),
                },
            )

        evaluation = self._behavior.evaluate(payload.form_id, payload.behavior_score)
        if not evaluation.passed:
            logger.warning(
                "Behavioral check failed",
                extra={"form_id": payload.form_id, "fails": evaluation.fails},
            )
            raise SubmissionRejected(
                status_code=400,
                code="BEHAVIOR_FAILED",
                message=BEHAVIOR_MESSAGE,
                error="Behavioral check failed",
                details={"behaviorResult": evaluation.as_dict()},
            )


__all__ = ("BEHAVIOR_MESSAGE", "HONEYPOT_MESSAGE", "TIME_TRAP_MESSAGE", "SpamGuard")
