import logging
from dataclasses import dataclass

import httpx

from leadcapture.api.modules.leads.schema import NormalizedLead
from leadcapture.settings import Config

logger = logging.getLogger(__name__)

_SNIPPET_LENGTH = 200


@dataclass(slots=True)
class WebhookResult:
    ok: bool
    status_code: int | None = None
    text_snippet: str = ""
    timed_out: bool = False
    error: str | None = None


def _snippet(text: str) -> str:
    if len(text) > _SNIPPET_LENGTH:
        return text[:_SNIPPET_LENGTH] + "..."
    return text


class AutomationWebhookClient:
    """Forwards normalized leads to the per-form automation webhook."""

    def __init__(self, client: httpx.AsyncClient, config: Config):
        self._client = client
        self._webhooks = config.webhooks
        self._timeout = config.webhooks.timeout_seconds

    def url_for(self, form_id: str) -> str | None:
        return self._webhooks.url_for(form_id)

    async def forward(self, url: str, lead: NormalizedLead) -> WebhookResult:
        try:
            response = await self._client.post(
                url,
                json=lead.model_dump(mode="json"),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning(
                "Automation webhook timed out",
                extra={"form_id": lead.form_id, "event_id": lead.event_id},
            )
            return WebhookResult(ok=False, timed_out=True, error=str(exc) or "timeout")
        except httpx.HTTPError as exc:
            logger.warning(
                "Automation webhook request failed",
                extra={"form_id": lead.form_id, "event_id": lead.event_id},
            )
            logger.debug("Automation webhook network error: %s", exc)
            return WebhookResult(ok=False, error=str(exc) or exc.__class__.__name__)

        if not response.is_success:
            logger.warning(
                "Automation webhook rejected lead",
                extra={
                    "form_id": lead.form_id,
                    "event_id": lead.event_id,
                    "status_code": response.status_code,
                },
            )
            return WebhookResult(
                ok=False,
                status_code=response.status_code,
                text_snippet=_snippet(response.text),
            )

        return WebhookResult(ok=True, status_code=response.status_code)


__all__ = ("AutomationWebhookClient", "WebhookResult")
