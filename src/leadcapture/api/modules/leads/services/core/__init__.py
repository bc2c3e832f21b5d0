from leadcapture.api.modules.leads.services.core.errors import SubmissionRejected
from leadcapture.api.modules.leads.services.core.utils import (
    contains_url,
    digits_only,
    field_text,
    parse_client_timestamp,
    sanitize_text,
    sha256_hex,
    utc_now_iso,
)

__all__ = (
    "SubmissionRejected",
    "contains_url",
    "digits_only",
    "field_text",
    "parse_client_timestamp",
    "sanitize_text",
    "sha256_hex",
    "utc_now_iso",
)
