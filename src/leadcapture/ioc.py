import httpx
from dishka import AsyncContainer, Provider, Scope, make_async_container, provide

from leadcapture.api.modules.leads.service import LeadSubmissionService
from leadcapture.api.modules.leads.services.antispam import (
    BehaviorScoreService,
    HoneypotCheck,
    SpamGuard,
    TimeTrapCheck,
)
from leadcapture.api.modules.leads.services.network import (
    AutomationWebhookClient,
    InMemoryRateLimiter,
    MetaConversionsClient,
    RequestIpResolver,
    TurnstileVerifierService,
)
from leadcapture.api.modules.leads.services.normalize import LeadNormalizer
from leadcapture.api.modules.leads.services.validation import LeadFieldValidator
from leadcapture.clients.providers import HttpClientsProvider
from leadcapture.settings import Config, get_config


class AppProvider(Provider):
    """Application provider for dependency injection."""

    def __init__(self, config: Config | None = None):
        super().__init__()
        self._config = config

    @provide(scope=Scope.APP)
    def get_config(self) -> Config:
        return self._config or get_config()


class ServicesProvider(Provider):
    """Services provider for dependency injection."""

    @provide(scope=Scope.APP)
    def get_submission_rate_limiter(self, config: Config) -> InMemoryRateLimiter:
        return InMemoryRateLimiter(
            window_seconds=config.antispam.rate_limit_window_seconds,
            max_submissions=config.antispam.rate_limit_max_submissions,
        )

    @provide(scope=Scope.APP)
    def get_request_ip_resolver(self, config: Config) -> RequestIpResolver:
        return RequestIpResolver(config)

    @provide(scope=Scope.APP)
    def get_spam_guard(self, config: Config) -> SpamGuard:
        return SpamGuard(
            honeypot=HoneypotCheck(config.antispam.honeypot_field),
            time_trap=TimeTrapCheck(config.antispam.min_fill_seconds),
            behavior=BehaviorScoreService(),
        )

    @provide(scope=Scope.APP)
    def get_field_validator(self, config: Config) -> LeadFieldValidator:
        return LeadFieldValidator(spam_terms=config.antispam.spam_terms)

    @provide(scope=Scope.APP)
    def get_lead_normalizer(self) -> LeadNormalizer:
        return LeadNormalizer()

    @provide(scope=Scope.REQUEST)
    def get_lead_submission_service(
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
    ) -> LeadSubmissionService:
        return LeadSubmissionService(
            config=config,
            rate_limiter=rate_limiter,
            ip_resolver=ip_resolver,
            spam_guard=spam_guard,
            field_validator=field_validator,
            normalizer=normalizer,
            turnstile_verifier=turnstile_verifier,
            webhook_client=webhook_client,
            conversions_client=conversions_client,
        )


def get_async_container(
    config: Config | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncContainer:
    return make_async_container(
        AppProvider(config),
        ServicesProvider(),
        HttpClientsProvider(transport),
    )
