from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from leadcapture.settings import FormId

FORM_IDS: tuple[str, ...] = ("iva-claim-form", "bec-claim-form", "claimForm")


class BehaviorScore(BaseModel):
    interactions: int = Field(default=0, ge=0)
    keystrokes: int = Field(default=0, ge=0)
    field_focuses: int = Field(default=0, ge=0, alias="fieldFocuses")
    paste_events: int = Field(default=0, ge=0, alias="pasteEvents")
    form_changes: int = Field(default=0, ge=0, alias="formChanges")
    time_on_page: int = Field(default=0, ge=0, alias="timeOnPage")
    paste_ratio: float = Field(default=0.0, ge=0, le=1, alias="pasteRatio")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SubmissionPayload(BaseModel):
    form_id: FormId = Field(..., alias="formId")
    fields: dict[str, Any]
    behavior_score: BehaviorScore | None = Field(default=None, alias="behaviorScore")
    turnstile_token: str | None = Field(
        default=None,
        alias="turnstileToken",
        max_length=4096,
    )
    source_url: str | None = Field(default=None, alias="sourceUrl", max_length=4096)
    user_agent: str | None = Field(default=None, alias="userAgent", max_length=2048)
    event_id: str | None = Field(default=None, alias="eventId", max_length=128)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SubmitResponse(BaseModel):
    ok: bool
    event_id: str | None = Field(default=None, alias="eventId")
    message: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class UtmAttribution(BaseModel):
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None
    gclid: str | None = None
    fbclid: str | None = None
    msclkid: str | None = None
    utm_landing_page: str | None = None
    utm_referrer: str | None = None
    utm_timestamp_utc: str | None = None


class ConsentRecord(BaseModel):
    consent_given: str | None = None
    consent_wording: str | None = None
    consent_version: str | None = None
    consent_timestamp_utc: str | None = None


class LeadBase(BaseModel):
    """Request metadata shared by every forwarded lead."""

    form_id: FormId
    event_id: str
    source_url: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    submitted_at: str
    utm: UtmAttribution = Field(default_factory=UtmAttribution)


class IvaLead(LeadBase):
    claim_type: Literal["iva"] = "iva"

    name: str | None = None
    email: str
    phone: str | None = None
    postcode: str | None = None
    city: str | None = None
    current_address: str | None = None
    dob: str | None = None
    dob_iso: str | None = None

    iva_provider: str | None = None
    other_provider: str | None = None
    iva_provider_display: str | None = None
    iva_provider_loa: str | None = None
    dsar_email: str | None = None
    iva_ref: str | None = None
    iva_status: str | None = None
    iva_type: str | None = None
    partner_name: str | None = None

    payment_affordable: str | None = None
    warned_of_risks: str | None = None
    sales_approach: str | None = None
    notes: str | None = None
    uploads_opt_in: str | None = None

    consent: ConsentRecord = Field(default_factory=ConsentRecord)


class BecLead(LeadBase):
    claim_type: Literal["bec"] = "bec"

    contact_name: str | None = None
    contact_position: str | None = None
    email: str
    phone: str | None = None
    preferred_contact: str | None = None

    company_name: str | None = None
    company_number: str | None = None
    industry_sector: str | None = None
    employee_count: str | None = None

    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    county: str | None = None
    postcode: str | None = None

    energy_supplier: str | None = None
    used_broker: str | None = None
    broker_name: str | None = None
    annual_energy_spend: str | None = None
    commission_disclosed: str | None = None
    additional_notes: str | None = None

    privacy_consent: str | None = None


class QueryLead(LeadBase):
    claim_type: Literal["query"] = "query"

    name: str | None = None
    email: str
    phone: str | None = None
    postcode: str | None = None
    message: str | None = None
    query_claim_type: str | None = None
    iva_ref: str | None = None


NormalizedLead = IvaLead | BecLead | QueryLead


__all__ = (
    "FORM_IDS",
    "BecLead",
    "BehaviorScore",
    "ConsentRecord",
    "IvaLead",
    "LeadBase",
    "NormalizedLead",
    "QueryLead",
    "SubmissionPayload",
    "SubmitResponse",
    "UtmAttribution",
)
