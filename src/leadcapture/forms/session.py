from dataclasses import dataclass, field
from enum import StrEnum

FieldValue = str | bool


class SessionStatus(StrEnum):
    ACTIVE = "active"
    SUBMITTED = "submitted"
    EXCLUDED = "excluded"


@dataclass(slots=True)
class FormSession:
    """Mutable state of one form in one browser session."""

    total_steps: int
    current_step: int = 0
    fields: dict[str, FieldValue] = field(default_factory=dict)
    status: SessionStatus = SessionStatus.ACTIVE
    errors: dict[str, str] = field(default_factory=dict)
    hidden: set[str] = field(default_factory=set)
    required: dict[str, bool] = field(default_factory=dict)
    challenge_rendered: bool = False
    challenge_token: str | None = None
    submitting: bool = False

    @property
    def is_final_step(self) -> bool:
        return self.current_step == self.total_steps - 1

    @property
    def progress(self) -> float:
        return (self.current_step + 1) / self.total_steps

    @property
    def progress_label(self) -> str:
        return f"Step {self.current_step + 1} of {self.total_steps}"

    def value(self, name: str) -> FieldValue | None:
        return self.fields.get(name)

    def text(self, name: str) -> str:
        value = self.fields.get(name)
        if value is None or isinstance(value, bool):
            return ""
        return str(value).strip()

    def is_visible(self, name: str) -> bool:
        return name not in self.hidden


__all__ = ("FieldValue", "FormSession", "SessionStatus")
