from leadcapture.api.modules.leads.services.network.common import (
    RequestIpResolver,
    normalize_ip,
)
from leadcapture.api.modules.leads.services.network.conversions import (
    ConversionResult,
    LeadConversion,
    MetaConversionsClient,
)
from leadcapture.api.modules.leads.services.network.rate_limit import (
    InMemoryRateLimiter,
    build_rate_limit_keys,
)
from leadcapture.api.modules.leads.services.network.turnstile import (
    TurnstileVerificationResult,
    TurnstileVerifierService,
)
from leadcapture.api.modules.leads.services.network.webhook import (
    AutomationWebhookClient,
    WebhookResult,
)

__all__ = (
    "AutomationWebhookClient",
    "ConversionResult",
    "InMemoryRateLimiter",
    "LeadConversion",
    "MetaConversionsClient",
    "RequestIpResolver",
    "TurnstileVerificationResult",
    "TurnstileVerifierService",
    "WebhookResult",
    "build_rate_limit_keys",
    "normalize_ip",
)
