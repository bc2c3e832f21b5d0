from dataclasses import dataclass, field

from leadcapture.api.modules.leads.schema import BehaviorScore

# More failed thresholds than this rejects the submission
_MAX_MARGINAL_FAILS = 1


@dataclass(frozen=True, slots=True)
class BehaviorThresholds:
    min_interactions: int
    min_keystrokes: int
    min_field_focuses: int
    min_time_on_page: int
    max_paste_ratio: float
    min_form_changes: int


@dataclass(slots=True)
class BehaviorEvaluation:
    passed: bool
    fails: list[str] = field(default_factory=list)
    reason: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {"pass": self.passed, "fails": self.fails, "reason": self.reason}


FORM_BEHAVIOR_THRESHOLDS: dict[str, BehaviorThresholds] = {
    "iva-claim-form": BehaviorThresholds(
        min_interactions=6,
        min_keystrokes=12,
        min_field_focuses=3,
        min_time_on_page=20,
        max_paste_ratio=0.7,
        min_form_changes=4,
    ),
    "bec-claim-form": BehaviorThresholds(
        min_interactions=5,
        min_keystrokes=8,
        min_field_focuses=2,
        min_time_on_page=12,
        max_paste_ratio=0.8,
        min_form_changes=3,
    ),
    "claimForm": BehaviorThresholds(
        min_interactions=4,
        min_keystrokes=6,
        min_field_focuses=2,
        min_time_on_page=8,
        max_paste_ratio=0.85,
        min_form_changes=2,
    ),
}


class BehaviorScoreService:
    def __init__(
        self,
        thresholds: dict[str, BehaviorThresholds] | None = None,
    ):
        self._thresholds = thresholds or FORM_BEHAVIOR_THRESHOLDS

    def thresholds_for(self, form_id: str) -> BehaviorThresholds:
        return self._thresholds.get(form_id, self._thresholds["claimForm"])

    def evaluate(
        self,
        form_id: str,
        score: BehaviorScore | None,
    ) -> BehaviorEvaluation:
        if score is None:
            return BehaviorEvaluation(passed=False, reason="No behavioral data")

        limits = self.thresholds_for(form_id)
        fails: list[str] = []
        if score.interactions < limits.min_interactions:
            fails.append("interactions")
        if score.keystrokes < limits.min_keystrokes:
            fails.append("keystrokes")
        if score.field_focuses < limits.min_field_focuses:
            fails.append("fieldFocuses")
        if score.time_on_page < limits.min_time_on_page:
            fails.append("timeOnPage")
        if score.paste_ratio > limits.max_paste_ratio:
            fails.append("pasteRatio")
        if score.form_changes < limits.min_form_changes:
            fails.append("formChanges")

        return BehaviorEvaluation(
            passed=len(fails) <= _MAX_MARGINAL_FAILS,
            fails=fails,
        )


__all__ = (
    "FORM_BEHAVIOR_THRESHOLDS",
    "BehaviorEvaluation",
    "BehaviorScoreService",
    "BehaviorThresholds",
)
