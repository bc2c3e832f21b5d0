import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from yarl import URL

from leadcapture.forms.behavior import BehaviorCollector
from leadcapture.forms.definitions import (
    CONSENT_VERSION,
    CONSENT_WORDING,
    NOT_ELIGIBLE_URL,
    FieldSpec,
    FormDefinition,
    StepSpec,
)
from leadcapture.forms.session import FieldValue, FormSession, SessionStatus
from leadcapture.forms.storage import ClientStorage
from leadcapture.forms.validators import (
    ValidationResult,
    apply_dob_input,
    dob_iso_to_display,
    validate_dob,
    validate_email,
    validate_name,
    validate_postcode,
    validate_uk_mobile,
)
from leadcapture.forms.visibility import VisibilityController

logger = logging.getLogger(__name__)

MSG_REQUIRED = "This field is required"
MSG_SELECTION = "Please make a selection"
MSG_CHALLENGE = "Please complete the verification."

CHALLENGE_FIELD = "cf-turnstile-response"
FORM_STARTED_FIELD = "form_started_at"
EXCLUSION_REDIRECT_DELAY = 3.0

ATTRIBUTION_KEYS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "gclid",
    "fbclid",
    "msclkid",
)

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True, slots=True)
class TransitionResult:
    ok: bool
    step: int
    status: SessionStatus
    first_invalid: str | None = None
    errors: dict[str, str] = field(default_factory=dict)
    redirect_to: str | None = None


def _is_empty(value: FieldValue | None) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, str) and not value.strip()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FormStateMachine:
    """Drives one form definition through its steps for a single session.

    Every step transition is persisted to ``storage`` under the form's
    storage key. Exclusion at an eligibility gate is terminal.
    """

    def __init__(
        self,
        definition: FormDefinition,
        storage: ClientStorage,
        behavior: BehaviorCollector | None = None,
        render_challenge: Callable[[], None] | None = None,
        on_exclude: Callable[[str, float], None] | None = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = _utc_now,
        bypass_challenge: bool = False,
    ):
        self._definition = definition
        self._storage = storage
        self._behavior = behavior or BehaviorCollector(
            excluded_fields=(definition.honeypot_field,),
        )
        self._render_challenge = render_challenge
        self._on_exclude = on_exclude
        self._today = today
        self._now = now
        self._bypass_challenge = bypass_challenge
        self._visibility = VisibilityController(definition.rules)
        self._session = FormSession(total_steps=definition.total_steps)
        self._visibility.replay(self._session)

    @property
    def definition(self) -> FormDefinition:
        return self._definition

    @property
    def session(self) -> FormSession:
        return self._session

    @property
    def behavior(self) -> BehaviorCollector:
        return self._behavior

    @property
    def current_step(self) -> StepSpec:
        return self._definition.steps[self._session.current_step]

    def _result(self, ok: bool, **kwargs: Any) -> TransitionResult:
        return TransitionResult(
            ok=ok,
            step=self._session.current_step,
            status=self._session.status,
            **kwargs,
        )

    # Field events

    def stamp_form_start(self) -> None:
        if FORM_STARTED_FIELD not in self._session.fields:
            millis = int(self._now().timestamp() * 1000)
            self._session.fields[FORM_STARTED_FIELD] = str(millis)

    def capture_attribution(self, landing_url: str, referrer: str | None = None) -> None:
        """Keeps the first touch: later landings never overwrite it."""
        fields = self._session.fields
        if fields.get("utm_timestamp_utc"):
            return

        try:
            landing = URL(landing_url)
        except ValueError:
            return

        found = {key: landing.query[key] for key in ATTRIBUTION_KEYS if landing.query.get(key)}
        if not found:
            return

        fields.update(found)
        fields["utm_landing_page"] = str(landing.with_fragment(None))
        fields["utm_referrer"] = referrer or ""
        fields["utm_timestamp_utc"] = self._now().isoformat().replace("+00:00", "Z")

    def set_field(self, name: str, value: FieldValue) -> None:
        session = self._session
        if session.status is not SessionStatus.ACTIVE:
            logger.debug("Ignoring field change on inactive form", extra={"field": name})
            return

        self.stamp_form_start()
        self._behavior.record_change(name)
        session.errors.pop(name, None)

        if name == "dob" and isinstance(value, str):
            state = apply_dob_input(value, self._today())
            session.fields["dob"] = state.display
            if state.iso:
                session.fields["dob_iso"] = state.iso
            else:
                session.fields.pop("dob_iso", None)
            if state.error:
                session.errors["dob"] = state.error
        else:
            session.fields[name] = value

        self._visibility.on_change(session, name)

    def set_challenge_token(self, token: str | None) -> None:
        self._session.challenge_token = token or None
        if token:
            self._session.errors.pop(CHALLENGE_FIELD, None)

    # Validation

    def _is_required(self, spec: FieldSpec) -> bool:
        return self._session.required.get(spec.name, spec.required)

    def _required_message(self, spec: FieldSpec) -> str:
        if spec.error_message:
            return spec.error_message
        if spec.check in ("name", "email", "dob"):
            result = self._run_check(spec, "")
            return result.message or MSG_REQUIRED
        if spec.kind == "radio":
            return MSG_SELECTION
        return MSG_REQUIRED

    def _run_check(self, spec: FieldSpec, value: str) -> ValidationResult:
        if spec.check == "name":
            return validate_name(value)
        if spec.check == "email":
            return validate_email(value)
        if spec.check == "mobile":
            return validate_uk_mobile(value)
        if spec.check == "postcode":
            return validate_postcode(value)
        if spec.check == "dob":
            return validate_dob(value, self._today())
        return ValidationResult(ok=True, value=value)

    def _store_checked(self, spec: FieldSpec, result: ValidationResult) -> None:
        fields = self._session.fields
        if spec.check == "mobile" and result.value:
            fields["phone_e164"] = result.value
            fields["phone_local"] = result.value[3:]
        elif spec.check == "dob" and result.value:
            fields["dob_iso"] = result.value
        elif spec.check in ("name", "email", "postcode") and result.value:
            fields[spec.name] = result.value

    def validate_step(self, step: StepSpec | None = None) -> dict[str, str]:
        step = step or self.current_step
        session = self._session
        errors: dict[str, str] = {}

        for spec in step.fields:
            session.errors.pop(spec.name, None)
            if not session.is_visible(spec.name):
                continue

            value = session.value(spec.name)
            if _is_empty(value):
                if self._is_required(spec):
                    errors[spec.name] = self._required_message(spec)
                continue

            if spec.check:
                result = self._run_check(spec, str(value))
                if not result.ok:
                    errors[spec.name] = result.message or MSG_REQUIRED
                    continue
                self._store_checked(spec, result)

        session.errors.update(errors)
        return errors

    # Transitions

    def next(self) -> TransitionResult:
        session = self._session
        if session.status is SessionStatus.EXCLUDED:
            return self._result(False, redirect_to=NOT_ELIGIBLE_URL)
        if session.status is SessionStatus.SUBMITTED:
            return self._result(False)

        errors = self.validate_step()
        if errors:
            return self._result(False, first_invalid=next(iter(errors)), errors=errors)

        if self.current_step.eligibility_gate and self._check_exclusion():
            return self._result(False, redirect_to=NOT_ELIGIBLE_URL)

        if session.is_final_step:
            return self._result(True)

        session.current_step += 1
        self.persist()
        if session.is_final_step:
            self._ensure_challenge_rendered()
        return self._result(True)

    def prev(self) -> TransitionResult:
        session = self._session
        if session.status is SessionStatus.EXCLUDED:
            return self._result(False, redirect_to=NOT_ELIGIBLE_URL)

        if session.current_step > 0:
            session.current_step -= 1
            self.persist()
        return self._result(True)

    def request_submit(self) -> TransitionResult:
        session = self._session
        if session.status is not SessionStatus.ACTIVE or not session.is_final_step:
            return self.next()

        errors = self.validate_step()
        if (
            self._definition.requires_challenge
            and not self._bypass_challenge
            and not session.challenge_token
        ):
            errors[CHALLENGE_FIELD] = MSG_CHALLENGE
            session.errors[CHALLENGE_FIELD] = MSG_CHALLENGE

        if errors:
            return self._result(False, first_invalid=next(iter(errors)), errors=errors)

        self._stamp_consent()
        return self._result(True)

    def _check_exclusion(self) -> bool:
        is_excluded = self._definition.is_excluded
        if is_excluded is None or not is_excluded(self._session.fields):
            return False

        self._session.status = SessionStatus.EXCLUDED
        logger.info(
            "Session excluded at eligibility gate",
            extra={"form_id": self._definition.form_id},
        )
        if self._on_exclude is not None:
            self._on_exclude(NOT_ELIGIBLE_URL, EXCLUSION_REDIRECT_DELAY)
        return True

    def _ensure_challenge_rendered(self) -> None:
        if self._session.challenge_rendered or not self._definition.requires_challenge:
            return
        self._session.challenge_rendered = True
        if self._render_challenge is not None:
            self._render_challenge()

    def _stamp_consent(self) -> None:
        consent_field = self._definition.consent_field
        if not consent_field:
            return
        fields = self._session.fields
        fields["consent_wording"] = CONSENT_WORDING
        fields["consent_version"] = CONSENT_VERSION
        fields["consent_timestamp_utc"] = self._now().isoformat().replace("+00:00", "Z")
        fields["consent_given"] = self._session.text(consent_field)

    # Payload

    def payload_fields(self) -> dict[str, Any]:
        session = self._session
        fields: dict[str, Any] = {}
        for name, value in session.fields.items():
            if name in session.hidden:
                continue
            if name == self._definition.honeypot_field and _is_empty(value):
                continue
            fields[name] = value
        if session.challenge_token:
            fields[CHALLENGE_FIELD] = session.challenge_token
        return fields

    # Persistence

    def persist(self) -> None:
        key = self._definition.storage_key
        if not key:
            return
        form_data = {
            name: value
            for name, value in self._session.fields.items()
            if name not in ("dob_iso", self._definition.honeypot_field)
        }
        state = {"formData": form_data, "currentStep": self._session.current_step}
        self._storage.set(key, json.dumps(state))

    def restore(self) -> bool:
        key = self._definition.storage_key
        raw = self._storage.get(key) if key else None
        if not raw:
            return False

        try:
            state = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable saved form state", extra={"key": key})
            self.clear_persisted()
            return False

        form_data = state.get("formData") if isinstance(state, dict) else None
        if not isinstance(form_data, dict):
            return False

        session = self._session
        session.fields = {
            name: value
            for name, value in form_data.items()
            if isinstance(value, str | bool)
        }

        dob = session.fields.get("dob")
        if isinstance(dob, str):
            if _ISO_DATE.fullmatch(dob):
                dob = dob_iso_to_display(dob) or ""
            state_dob = apply_dob_input(dob, self._today())
            session.fields["dob"] = state_dob.display
            if state_dob.iso:
                session.fields["dob_iso"] = state_dob.iso

        self._visibility.replay(session)

        step = state.get("currentStep")
        if isinstance(step, int) and 0 <= step < session.total_steps:
            session.current_step = step
        else:
            session.current_step = 0
        if session.is_final_step:
            self._ensure_challenge_rendered()
        return True

    def clear_persisted(self) -> None:
        if self._definition.storage_key:
            self._storage.remove(self._definition.storage_key)

    def mark_submitted(self) -> None:
        self._session.status = SessionStatus.SUBMITTED
        self.clear_persisted()

    def reset(self) -> None:
        """Back to a blank first step, keeping first-touch attribution."""
        attribution = {
            name: value
            for name, value in self._session.fields.items()
            if name.startswith("utm_") or name in ATTRIBUTION_KEYS
        }
        self._session = FormSession(
            total_steps=self._definition.total_steps,
            fields=attribution,
        )
        self._visibility.replay(self._session)
        self.clear_persisted()


__all__ = (
    "ATTRIBUTION_KEYS",
    "CHALLENGE_FIELD",
    "EXCLUSION_REDIRECT_DELAY",
    "FORM_STARTED_FIELD",
    "FormStateMachine",
    "MSG_CHALLENGE",
    "MSG_REQUIRED",
    "MSG_SELECTION",
    "TransitionResult",
)
