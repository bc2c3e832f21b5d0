from leadcapture.api.modules.leads.services.validation.fields import (
    LeadFieldValidator,
    is_valid_postcode,
)

__all__ = ("LeadFieldValidator", "is_valid_postcode")
