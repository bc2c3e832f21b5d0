import logging
from collections.abc import Callable
from dataclasses import dataclass
from time import time
from typing import Any

import httpx
from yarl import URL

from leadcapture.api.modules.leads.services.core import digits_only, sha256_hex
from leadcapture.settings import Config

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConversionResult:
    ok: bool
    status_code: int = 0
    text: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "status": self.status_code, "text": self.text}


@dataclass(slots=True)
class LeadConversion:
    event_id: str
    source_url: str | None
    client_ip: str | None
    user_agent: str | None
    email: str | None
    phone: str | None
    fbp: str | None = None
    fbc: str | None = None


def fbc_from_source_url(source_url: str | None, now_seconds: int) -> str | None:
    if not source_url:
        return None
    try:
        fbclid = URL(source_url).query.get("fbclid")
    except ValueError:
        return None
    if not fbclid:
        return None
    return f"fb.1.{now_seconds}.{fbclid}"


class MetaConversionsClient:
    """Server-side Lead event relay sharing the browser pixel's event id."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: Config,
        clock: Callable[[], float] = time,
    ):
        self._client = client
        self._meta = config.meta
        self._clock = clock

    def is_configured(self) -> bool:
        return self._meta.is_configured

    def build_event(self, conversion: LeadConversion) -> dict[str, Any]:
        now_seconds = int(self._clock())

        fbc = conversion.fbc or fbc_from_source_url(
            conversion.source_url,
            now_seconds,
        )
        user_data: dict[str, Any] = {
            "client_ip_address": conversion.client_ip,
            "client_user_agent": conversion.user_agent,
            "fbp": conversion.fbp,
            "fbc": fbc,
        }
        if conversion.email:
            user_data["em"] = [sha256_hex(conversion.email.strip().lower())]
        if conversion.phone:
            phone = digits_only(conversion.phone)
            if phone:
                user_data["ph"] = [sha256_hex(phone)]

        event: dict[str, Any] = {
            "event_name": "Lead",
            "event_time": now_seconds,
            "action_source": "website",
            "event_id": conversion.event_id,
            "user_data": {k: v for k, v in user_data.items() if v},
        }
        if conversion.source_url:
            event["event_source_url"] = conversion.source_url

        body: dict[str, Any] = {"data": [event]}
        if self._meta.test_event_code:
            body["test_event_code"] = self._meta.test_event_code
        return body

    async def send_lead(self, conversion: LeadConversion) -> ConversionResult:
        if not self.is_configured():
            return ConversionResult(
                ok=False,
                text="Conversions API credentials not set",
            )

        try:
            response = await self._client.post(
                self._meta.events_url,
                params={"access_token": self._meta.access_token or ""},
                json=self.build_event(conversion),
                timeout=self._meta.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Conversions API request failed",
                extra={"event_id": conversion.event_id},
            )
            logger.debug("Conversions API network error: %s", exc)
            return ConversionResult(ok=False, text=str(exc) or exc.__class__.__name__)

        if not response.is_success:
            logger.warning(
                "Conversions API rejected lead event",
                extra={
                    "event_id": conversion.event_id,
                    "status_code": response.status_code,
                },
            )

        return ConversionResult(
            ok=response.is_success,
            status_code=response.status_code,
            text=response.text,
        )


__all__ = (
    "ConversionResult",
    "LeadConversion",
    "MetaConversionsClient",
    "fbc_from_source_url",
)
