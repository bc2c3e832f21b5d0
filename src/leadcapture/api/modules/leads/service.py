import hmac
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from leadcapture.api.modules.leads.schema import (
    FORM_IDS,
    NormalizedLead,
    SubmissionPayload,
)
from leadcapture.api.modules.leads.services.antispam import SpamGuard
from leadcapture.api.modules.leads.services.core import (
    SubmissionRejected,
    field_text,
)
from leadcapture.api.modules.leads.services.network import (
    AutomationWebhookClient,
    ConversionResult,
    InMemoryRateLimiter,
    LeadConversion,
    MetaConversionsClient,
    RequestIpResolver,
    TurnstileVerifierService,
    build_rate_limit_keys,
)
from leadcapture.api.modules.leads.services.normalize import (
    LeadNormalizer,
    RequestMetadata,
    pick_phone,
    uk_phone_to_e164,
)
from leadcapture.api.modules.leads.services.validation import LeadFieldValidator
from leadcapture.settings import Config

logger = logging.getLogger(__name__)

DIAGNOSTIC_HEADER = "x-vlm-dev"
DEBUG_KEY_HEADER = "x-debug-key"
TURNSTILE_FIELD = "cf-turnstile-response"

MSG_MISCONFIGURED = "Server misconfigured"
MSG_RATE_LIMITED = "Too many submissions. Please try again later."


def _utc_now() -> datetime:
    return datetime.now(UTC)


class LeadSubmissionService:
    """Single submission pipeline behind ``POST /api/submit``.

    Stages run in a fixed order and any of them may stop the request by
    raising :class:`SubmissionRejected`. The webhook is the record of
    truth and is called before the best-effort Conversions API relay.
    """

    def __init__(
        self,
        config: Config,
        rate_limiter: InMemoryRateLimiter,
        ip_resolver: RequestIpResolver,
        spam_guard: SpamGuard,
        field_validator: LeadFieldValidator,
        normalizer: LeadNormalizer,
        turnstile_verifier: TurnstileVerifierService,
        webhook_client: AutomationWebhookClient,
        conversions_client: MetaConversionsClient,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._config = config
        self._rate_limiter = rate_limiter
        self._ip_resolver = ip_resolver
        self._spam_guard = spam_guard
        self._field_validator = field_validator
        self._normalizer = normalizer
        self._turnstile_verifier = turnstile_verifier
        self._webhook_client = webhook_client
        self._conversions_client = conversions_client
        self._clock = clock

    @staticmethod
    def is_diagnostic(request: Request) -> bool:
        return (
            request.query_params.get("dev") == "1"
            or request.headers.get(DIAGNOSTIC_HEADER) == "1"
        )

    async def submit_request(self, request: Request) -> JSONResponse:
        diagnostic = self.is_diagnostic(request)
        try:
            content = await self._process(request, diagnostic)
        except SubmissionRejected as exc:
            return self._render_rejection(exc, diagnostic)
        return JSONResponse(status_code=200, content=content)

    def _render_rejection(
        self,
        exc: SubmissionRejected,
        diagnostic: bool,
    ) -> JSONResponse:
        content: dict[str, Any] = {"ok": False, "message": exc.message}
        if diagnostic:
            content["code"] = exc.code
            if exc.error:
                content["error"] = exc.error
            if exc.event_id:
                content["eventId"] = exc.event_id
            content.update(exc.details)
        return JSONResponse(status_code=exc.status_code, content=content)

    def _authorize_bypass(self, request: Request) -> None:
        expected = self._config.debug.bypass_key
        if not expected:
            logger.error("Bypass requested but no bypass key is configured")
            raise SubmissionRejected(
                status_code=500,
                code="BYPASS_NOT_CONFIGURED",
                message=MSG_MISCONFIGURED,
            )

        provided = request.headers.get(DEBUG_KEY_HEADER, "")
        if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Bypass requested with an invalid debug key")
            raise SubmissionRejected(
                status_code=403,
                code="BYPASS_UNAUTHORIZED",
                message="Forbidden",
            )

    async def _read_payload(self, request: Request) -> SubmissionPayload:
        raw = await request.body()
        try:
            body = json.loads(raw)
        except ValueError as exc:
            raise SubmissionRejected(
                status_code=400,
                code="BAD_JSON",
                message="Invalid JSON body",
                error=str(exc),
                event_id=str(uuid4()),
            ) from exc

        if (
            not isinstance(body, dict)
            or not body.get("formId")
            or not isinstance(body.get("fields"), dict)
        ):
            raise SubmissionRejected(
                status_code=400,
                code="BAD_PAYLOAD",
                message="Missing formId or fields",
                details={
                    "expectedShape": (
                        "{formId, fields, behaviorScore, userAgent, sourceUrl, eventId}"
                    ),
                    "gotKeys": sorted(body) if isinstance(body, dict) else [],
                },
                event_id=str(uuid4()),
            )

        form_id = body["formId"]
        if form_id not in FORM_IDS:
            raise SubmissionRejected(
                status_code=400,
                code="UNKNOWN_FORM_ID",
                message=f"Unknown form ID: {form_id}",
                event_id=str(uuid4()),
            )

        try:
            return SubmissionPayload.model_validate(body)
        except ValidationError as exc:
            raise SubmissionRejected(
                status_code=400,
                code="BAD_PAYLOAD",
                message="Missing formId or fields",
                error=str(exc),
                details={
                    "errors": exc.errors(
                        include_url=False,
                        include_context=False,
                        include_input=False,
                    ),
                },
                event_id=str(uuid4()),
            ) from exc

    async def _verify_challenge(
        self,
        payload: SubmissionPayload,
        request_ip: str | None,
    ) -> None:
        if not self._turnstile_verifier.is_configured():
            return

        token = payload.turnstile_token or field_text(payload.fields.get(TURNSTILE_FIELD))
        if not token:
            raise SubmissionRejected(
                status_code=400,
                code="TURNSTILE_MISSING",
                message="Please complete the verification.",
            )

        result = await self._turnstile_verifier.verify(token=token, remote_ip=request_ip)
        if not result.success:
            logger.warning(
                "Bot challenge rejected",
                extra={"form_id": payload.form_id, "error_codes": result.error_codes},
            )
            raise SubmissionRejected(
                status_code=403,
                code="TURNSTILE_FAILED",
                message="Verification failed. Please try again.",
                details={"errorCodes": result.error_codes},
            )

    async def _check_rate_limit(
        self,
        payload: SubmissionPayload,
        request_ip: str | None,
    ) -> None:
        phone = pick_phone(payload.fields)
        keys = build_rate_limit_keys(
            ip=request_ip,
            email=field_text(payload.fields.get("email")),
            phone=uk_phone_to_e164(phone) or phone,
        )
        if not await self._rate_limiter.allow(keys):
            logger.warning(
                "Submission rate limit exceeded",
                extra={"form_id": payload.form_id, "ip": request_ip},
            )
            raise SubmissionRejected(
                status_code=429,
                code="RATE_LIMITED",
                message=MSG_RATE_LIMITED,
            )

    def _validate_fields(self, payload: SubmissionPayload) -> None:
        errors = self._field_validator.validate(payload.form_id, payload.fields)
        if errors:
            raise SubmissionRejected(
                status_code=400,
                code="VALIDATION_FAILED",
                message=errors[0],
                details={"errors": errors},
            )

    async def _forward(self, url: str, lead: NormalizedLead) -> None:
        result = await self._webhook_client.forward(url, lead)
        if result.ok:
            return

        if result.status_code is None:
            raise SubmissionRejected(
                status_code=504,
                code="NETWORK_ERROR",
                message="Upstream timeout" if result.timed_out else "Network error",
                error=result.error,
            )

        raise SubmissionRejected(
            status_code=502,
            code="MAKE_UPSTREAM",
            message="Upstream error",
            details={"status": result.status_code, "textSnippet": result.text_snippet},
        )

    async def _relay_conversion(
        self,
        request: Request,
        lead: NormalizedLead,
    ) -> ConversionResult:
        if not self._conversions_client.is_configured():
            return ConversionResult(
                ok=False,
                text="Conversions API credentials not set",
            )

        return await self._conversions_client.send_lead(
            LeadConversion(
                event_id=lead.event_id,
                source_url=lead.source_url,
                client_ip=lead.ip_address,
                user_agent=lead.user_agent,
                email=lead.email,
                phone=lead.phone,
                fbp=request.cookies.get("_fbp"),
                fbc=request.cookies.get("_fbc"),
            )
        )

    async def _process(self, request: Request, diagnostic: bool) -> dict[str, Any]:
        received_at = self._clock()

        bypass = diagnostic and request.query_params.get("bypass") == "1"
        if bypass:
            self._authorize_bypass(request)

        payload = await self._read_payload(request)
        event_id = payload.event_id or str(uuid4())

        try:
            webhook_url = self._webhook_client.url_for(payload.form_id)
            if not webhook_url:
                logger.error(
                    "No automation webhook configured for form",
                    extra={"form_id": payload.form_id},
                )
                raise SubmissionRejected(
                    status_code=500,
                    code="WEBHOOK_NOT_CONFIGURED",
                    message=MSG_MISCONFIGURED,
                )

            if bypass:
                logger.info(
                    "Bypass submission accepted",
                    extra={"form_id": payload.form_id, "event_id": event_id},
                )
                return {
                    "ok": True,
                    "bypass": True,
                    "eventId": event_id,
                    "formId": payload.form_id,
                    "received_fields_keys": list(payload.fields),
                }

            request_ip = self._ip_resolver.get_request_ip(request)

            await self._verify_challenge(payload, request_ip)
            self._spam_guard.check(payload, received_at)
            await self._check_rate_limit(payload, request_ip)
            self._validate_fields(payload)

            lead = self._normalizer.normalize(
                payload,
                RequestMetadata(
                    event_id=event_id,
                    ip_address=request_ip,
                    user_agent=request.headers.get("user-agent"),
                    received_at=received_at,
                ),
            )
            await self._forward(webhook_url, lead)
        except SubmissionRejected as exc:
            exc.event_id = exc.event_id or event_id
            raise

        logger.info(
            "Lead forwarded",
            extra={"form_id": payload.form_id, "event_id": event_id},
        )
        capi = await self._relay_conversion(request, lead)

        content: dict[str, Any] = {"ok": True, "eventId": event_id}
        if diagnostic:
            content["capi"] = capi.as_dict()
        return content


__all__ = ("LeadSubmissionService",)
