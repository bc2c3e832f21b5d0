import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from time import time
from typing import Any

import httpx

from leadcapture.api.modules.leads.schema import SubmissionPayload
from leadcapture.forms.definitions import SUBMISSION_COOLDOWN_SECONDS, FormDefinition
from leadcapture.forms.pixel import LeadPixel
from leadcapture.forms.session import SessionStatus
from leadcapture.forms.state_machine import FormStateMachine
from leadcapture.forms.storage import ClientStorage

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "/api/submit"
MSG_SUBMIT_FAILED = "Sorry, we couldn't submit your form. Please try again."
MSG_NETWORK = "Network error. Please check your connection and try again."
FORM_ERROR_KEY = "form"


class SubmitStatus(StrEnum):
    SUCCESS = "success"
    INVALID = "invalid"
    FAILED = "failed"
    BUSY = "busy"
    COOLDOWN = "cooldown"
    EXCLUDED = "excluded"


@dataclass(frozen=True, slots=True)
class SubmitOutcome:
    status: SubmitStatus
    message: str | None = None
    event_id: str | None = None
    toast: str | None = None
    first_invalid: str | None = None
    errors: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is SubmitStatus.SUCCESS


class SubmissionClient:
    """Posts a validated form session to the submission endpoint.

    One submission per form at a time. Transport failures are retried once
    after ``retry_backoff`` seconds. On success the saved answers are
    cleared, a cooldown is stored and the browser Lead pixel fires.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        pixel: LeadPixel,
        storage: ClientStorage,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 15.0,
        retry_backoff: float = 1.0,
        min_indicator_seconds: float = 0.0,
        cooldown_seconds: int = SUBMISSION_COOLDOWN_SECONDS,
        bypass_key: str | None = None,
        source_url: str | None = None,
        user_agent: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time,
    ):
        self._client = client
        self._pixel = pixel
        self._storage = storage
        self._endpoint = endpoint
        self._timeout = timeout
        self._retry_backoff = retry_backoff
        self._min_indicator_seconds = min_indicator_seconds
        self._cooldown_ms = cooldown_seconds * 1000
        self._bypass_key = bypass_key
        self._source_url = source_url
        self._user_agent = user_agent
        self._sleep = sleep
        self._clock = clock

    # Cooldown

    @staticmethod
    def _cooldown_keys(definition: FormDefinition) -> tuple[str, str] | None:
        if not definition.cooldown_key:
            return None
        return f"{definition.cooldown_key}At", f"{definition.cooldown_key}CooldownMs"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def in_cooldown(self, definition: FormDefinition) -> bool:
        keys = self._cooldown_keys(definition)
        if keys is None:
            return False
        try:
            submitted_at = int(self._storage.get(keys[0]) or 0)
            cooldown = int(self._storage.get(keys[1]) or 0)
        except ValueError:
            return False
        return bool(submitted_at and cooldown and self._now_ms() - submitted_at < cooldown)

    def clear_cooldown(self, definition: FormDefinition) -> None:
        keys = self._cooldown_keys(definition)
        if keys is None:
            return
        for key in keys:
            self._storage.remove(key)

    def _start_cooldown(self, definition: FormDefinition) -> None:
        keys = self._cooldown_keys(definition)
        if keys is None:
            return
        self._storage.set(keys[0], str(self._now_ms()))
        self._storage.set(keys[1], str(self._cooldown_ms))

    # Submission

    def build_payload(self, machine: FormStateMachine) -> SubmissionPayload:
        return SubmissionPayload(
            form_id=machine.definition.form_id,
            fields=machine.payload_fields(),
            behavior_score=machine.behavior.snapshot(),
            turnstile_token=machine.session.challenge_token,
            source_url=self._source_url,
            user_agent=self._user_agent,
            event_id=self._pixel.event_id(),
        )

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        params: dict[str, str] = {}
        headers = {"Accept": "application/json"}
        if self._bypass_key:
            params = {"dev": "1", "bypass": "1"}
            headers["x-debug-key"] = self._bypass_key

        try:
            return await self._client.post(
                self._endpoint,
                json=body,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            logger.warning("Submission request failed, retrying once")
            logger.debug("Submission transport error: %s", exc)
            await self._sleep(self._retry_backoff)
            return await self._client.post(
                self._endpoint,
                json=body,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )

    async def _send(self, payload: SubmissionPayload) -> SubmitOutcome:
        body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            response = await self._post(body)
        except httpx.HTTPError as exc:
            logger.warning("Submission failed after retry", extra={"event_id": payload.event_id})
            logger.debug("Submission network error: %s", exc)
            return SubmitOutcome(
                status=SubmitStatus.FAILED,
                message=MSG_NETWORK,
                toast=MSG_NETWORK,
                event_id=payload.event_id,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        if not response.is_success or data.get("ok") is not True:
            message = data.get("message") or data.get("error") or MSG_SUBMIT_FAILED
            logger.warning(
                "Submission rejected",
                extra={"status_code": response.status_code, "event_id": payload.event_id},
            )
            return SubmitOutcome(
                status=SubmitStatus.FAILED,
                message=str(message),
                toast=str(message),
                event_id=payload.event_id,
                status_code=response.status_code,
            )

        return SubmitOutcome(
            status=SubmitStatus.SUCCESS,
            event_id=str(data.get("eventId") or payload.event_id),
            status_code=response.status_code,
        )

    async def _pace(self, started_at: float) -> None:
        remaining = self._min_indicator_seconds - (self._clock() - started_at)
        if remaining > 0:
            await self._sleep(remaining)

    async def submit(self, machine: FormStateMachine) -> SubmitOutcome:
        session = machine.session
        definition = machine.definition
        if session.submitting:
            return SubmitOutcome(status=SubmitStatus.BUSY)
        if self.in_cooldown(definition):
            return SubmitOutcome(
                status=SubmitStatus.COOLDOWN,
                message=definition.thank_you_message,
            )

        session.submitting = True
        started_at = self._clock()
        try:
            result = machine.request_submit()
            if not result.ok:
                if result.status is SessionStatus.EXCLUDED:
                    return SubmitOutcome(status=SubmitStatus.EXCLUDED)
                return SubmitOutcome(
                    status=SubmitStatus.INVALID,
                    first_invalid=result.first_invalid,
                    errors=result.errors,
                )

            session.errors.pop(FORM_ERROR_KEY, None)
            outcome = await self._send(self.build_payload(machine))
            await self._pace(started_at)

            if not outcome.ok:
                session.errors[FORM_ERROR_KEY] = outcome.message or MSG_SUBMIT_FAILED
                return outcome

            machine.mark_submitted()
            self._start_cooldown(definition)
            event_id = self._pixel.track_lead()
            logger.info(
                "Form submitted",
                extra={"form_id": definition.form_id, "event_id": event_id},
            )
            return SubmitOutcome(
                status=SubmitStatus.SUCCESS,
                message=definition.thank_you_message,
                event_id=outcome.event_id or event_id,
                status_code=outcome.status_code,
            )
        finally:
            session.submitting = False


__all__ = (
    "DEFAULT_ENDPOINT",
    "MSG_NETWORK",
    "MSG_SUBMIT_FAILED",
    "SubmissionClient",
    "SubmitOutcome",
    "SubmitStatus",
)
