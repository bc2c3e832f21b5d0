"""HTTP clients provider for dependency injection."""

from collections.abc import AsyncIterator

import httpx
from dishka import Provider, Scope, provide

from leadcapture.api.modules.leads.services.network import (
    AutomationWebhookClient,
    MetaConversionsClient,
    TurnstileVerifierService,
)
from leadcapture.settings import Config


class HttpClientsProvider(Provider):
    """Provider for the outbound HTTP integrations of the submission pipeline.

    A single pooled ``httpx.AsyncClient`` lives for the whole APP scope and
    is shared by the bot-challenge verifier, the automation webhook client
    and the Conversions API client. Each integration applies its own
    per-request timeout on top of the pool default.

    ``transport`` lets tests swap the network for ``httpx.MockTransport``.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__()
        self._transport = transport

    @provide(scope=Scope.APP)
    async def get_httpx_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Provide httpx AsyncClient with connection pooling.

        Scope: APP - single instance for the entire application lifecycle.

        :return: Configured httpx AsyncClient instance
        """
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(30.0),
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            yield client

    @provide(scope=Scope.APP)
    def get_turnstile_verifier(
        self,
        client: httpx.AsyncClient,
        config: Config,
    ) -> TurnstileVerifierService:
        return TurnstileVerifierService(client, config)

    @provide(scope=Scope.APP)
    def get_webhook_client(
        self,
        client: httpx.AsyncClient,
        config: Config,
    ) -> AutomationWebhookClient:
        return AutomationWebhookClient(client, config)

    @provide(scope=Scope.APP)
    def get_conversions_client(
        self,
        client: httpx.AsyncClient,
        config: Config,
    ) -> MetaConversionsClient:
        return MetaConversionsClient(client, config)
