from collections.abc import Callable, Iterable
from dataclasses import dataclass

from leadcapture.forms.session import FieldValue, FormSession


def equals(expected: str) -> Callable[[FieldValue | None], bool]:
    def predicate(value: FieldValue | None) -> bool:
        return isinstance(value, str) and value == expected

    return predicate


@dataclass(frozen=True, slots=True)
class VisibilityRule:
    """Shows ``dependents`` while ``predicate(driver value)`` holds.

    Hidden dependents lose their value and error and stop being required.
    Applying a rule reads only the driver's value, so replaying it is safe.
    """

    driver: str
    predicate: Callable[[FieldValue | None], bool]
    dependents: tuple[str, ...]
    required_when_shown: bool = True

    def apply(self, session: FormSession) -> bool:
        shown = self.predicate(session.value(self.driver))
        for name in self.dependents:
            if shown:
                session.hidden.discard(name)
                session.required[name] = self.required_when_shown
            else:
                session.hidden.add(name)
                session.required[name] = False
                session.fields.pop(name, None)
                session.errors.pop(name, None)
        return shown


class VisibilityController:
    def __init__(self, rules: Iterable[VisibilityRule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[VisibilityRule, ...]:
        return self._rules

    def on_change(self, session: FormSession, field: str) -> None:
        for rule in self._rules:
            if rule.driver == field:
                rule.apply(session)

    def replay(self, session: FormSession) -> None:
        for rule in self._rules:
            rule.apply(session)


__all__ = ("VisibilityController", "VisibilityRule", "equals")
