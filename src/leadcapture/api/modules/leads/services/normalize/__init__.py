from leadcapture.api.modules.leads.services.normalize.contact import (
    normalize_dob,
    pick_phone,
    uk_phone_to_e164,
)
from leadcapture.api.modules.leads.services.normalize.leads import (
    LeadNormalizer,
    RequestMetadata,
)
from leadcapture.api.modules.leads.services.normalize.providers import (
    PROVIDER_MAP,
    ProviderInfo,
    ResolvedProvider,
    format_provider_name,
    resolve_provider,
)

__all__ = (
    "PROVIDER_MAP",
    "LeadNormalizer",
    "ProviderInfo",
    "RequestMetadata",
    "ResolvedProvider",
    "format_provider_name",
    "normalize_dob",
    "pick_phone",
    "resolve_provider",
    "uk_phone_to_e164",
)
