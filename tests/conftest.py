"""Pytest configuration and shared fixtures for the lead-capture test suite."""

import json
from collections.abc import Callable, Iterator
from time import time
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from leadcapture.application import create_app
from leadcapture.ioc import get_async_container
from leadcapture.settings import (
    AntispamConfig,
    Config,
    DebugConfig,
    MetaConfig,
    TurnstileConfig,
    WebhooksConfig,
)

IVA_WEBHOOK = "https://hook.example.test/iva"
QUERY_WEBHOOK = "https://hook.example.test/query"
BEC_WEBHOOK = "https://hook.example.test/bec"
CLIENT_IP = "203.0.113.7"


class Upstream:
    """Records outbound calls and answers them from per-host handlers."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.webhook_status = 200
        self.webhook_body = '{"accepted": true}'
        self.webhook_error: Exception | None = None
        self.graph_status = 200
        self.turnstile_success = True

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "hook.example.test":
            if self.webhook_error is not None:
                raise self.webhook_error
            return httpx.Response(self.webhook_status, text=self.webhook_body)
        if host == "graph.facebook.com":
            return httpx.Response(self.graph_status, json={"events_received": 1})
        if host == "challenges.cloudflare.com":
            if self.turnstile_success:
                return httpx.Response(200, json={"success": True, "hostname": "example.test"})
            return httpx.Response(
                200,
                json={"success": False, "error-codes": ["invalid-input-response"]},
            )
        return httpx.Response(404)

    def to_host(self, host: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    @property
    def webhook_calls(self) -> list[httpx.Request]:
        return self.to_host("hook.example.test")

    @property
    def graph_calls(self) -> list[httpx.Request]:
        return self.to_host("graph.facebook.com")

    def webhook_json(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.webhook_calls[index].content)


def build_config(**sections: Any) -> Config:
    defaults: dict[str, Any] = {
        "env": "local",
        "webhooks": WebhooksConfig(
            iva_url=IVA_WEBHOOK,
            query_url=QUERY_WEBHOOK,
            bec_url=BEC_WEBHOOK,
        ),
        "meta": MetaConfig(),
        "turnstile": TurnstileConfig(),
        "antispam": AntispamConfig(),
        "debug": DebugConfig(bypass_key="letmein"),
    }
    defaults.update(sections)
    return Config(**defaults)


def started_ms(seconds_ago: float = 60.0) -> str:
    return str(int((time() - seconds_ago) * 1000))


def good_behavior() -> dict[str, Any]:
    return {
        "interactions": 24,
        "keystrokes": 180,
        "fieldFocuses": 14,
        "pasteEvents": 0,
        "formChanges": 12,
        "timeOnPage": 140,
        "pasteRatio": 0.0,
    }


def iva_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "fullName": "Jane Smith",
        "email": "Jane.Smith@example.co.uk",
        "phone_local": "7700900123",
        "phone_e164": "+447700900123",
        "postcode": "sw1a 1aa",
        "city": "London",
        "currentAddress": "1 High Street",
        "dob": "15/06/1985",
        "ivaProvider": "GrantThornton",
        "ivaStatus": "completed",
        "paymentAffordable": "No",
        "warnedOfRisks": "No",
        "salesApproach": "Cold call",
        "consentGiven": "Yes",
        "notes": "Payments were never affordable",
        "form_started_at": started_ms(),
    }
    fields.update(overrides)
    return fields


def bec_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "contactName": "Sam Patel",
        "contactPosition": "Director",
        "email": "sam@patel-bakery.co.uk",
        "phone_local": "01632 960123",
        "companyName": "Patel Bakery Ltd",
        "addressLine1": "4 Mill Lane",
        "city": "Leeds",
        "postcode": "ls1 4ap",
        "energySupplier": "British Gas",
        "usedBroker": "Yes",
        "privacyConsent": True,
        "form_started_at": started_ms(),
    }
    fields.update(overrides)
    return fields


def query_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "fullName": "Tom Jones",
        "email": "tom.jones@example.org",
        "phone": "07700 900456",
        "claimType": "IVA",
        "ivaRef": "IVA-9981",
        "notes": "Can you check my IVA?",
        "form_started_at": started_ms(),
    }
    fields.update(overrides)
    return fields


def submission(
    form_id: str = "iva-claim-form",
    fields: dict[str, Any] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "formId": form_id,
        "fields": fields if fields is not None else iva_fields(),
        "behaviorScore": good_behavior(),
        "sourceUrl": "https://claims.example.test/iva/?utm_source=fb&fbclid=AbC123",
        "userAgent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
        "eventId": "vlm-1700000000000-abc1234",
    }
    body.update(extra)
    return body


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def make_client(upstream: Upstream) -> Iterator[Callable[..., TestClient]]:
    """Build a TestClient around a fresh container and the fake upstream."""
    clients: list[TestClient] = []

    def factory(config: Config | None = None) -> TestClient:
        config = config or build_config()
        container = get_async_container(
            config,
            transport=httpx.MockTransport(upstream.handler),
        )
        client = TestClient(create_app(config, container))
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def api(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


@pytest.fixture
def ip_headers() -> dict[str, str]:
    return {"x-forwarded-for": f"{CLIENT_IP}, 10.0.0.1"}
