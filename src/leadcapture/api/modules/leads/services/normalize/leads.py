from dataclasses import dataclass
from datetime import datetime
from typing import Any

from leadcapture.api.modules.leads.schema import (
    BecLead,
    ConsentRecord,
    IvaLead,
    NormalizedLead,
    QueryLead,
    SubmissionPayload,
    UtmAttribution,
)
from leadcapture.api.modules.leads.services.core import (
    field_text,
    sanitize_text,
    utc_now_iso,
)
from leadcapture.api.modules.leads.services.normalize.contact import (
    normalize_dob,
    pick_phone,
    uk_phone_to_e164,
)
from leadcapture.api.modules.leads.services.normalize.providers import (
    resolve_provider,
)


@dataclass(slots=True)
class RequestMetadata:
    event_id: str
    ip_address: str | None
    user_agent: str | None
    received_at: datetime


def _email(fields: dict[str, Any]) -> str:
    return (field_text(fields.get("email")) or "").lower()


def _upper(value: object) -> str | None:
    text = field_text(value)
    return text.upper() if text else None


class LeadNormalizer:
    """Maps raw form fields onto the per-claim-type webhook records."""

    def normalize(
        self,
        payload: SubmissionPayload,
        meta: RequestMetadata,
    ) -> NormalizedLead:
        fields = payload.fields
        base: dict[str, Any] = {
            "form_id": payload.form_id,
            "event_id": meta.event_id,
            "source_url": payload.source_url or field_text(fields.get("source_url")),
            "user_agent": payload.user_agent or meta.user_agent,
            "ip_address": meta.ip_address,
            "submitted_at": utc_now_iso(meta.received_at),
            "utm": self._utm(fields),
        }

        if payload.form_id == "iva-claim-form":
            return self._iva(fields, base)
        if payload.form_id == "bec-claim-form":
            return self._bec(fields, base)
        return self._query(fields, base)

    def _utm(self, fields: dict[str, Any]) -> UtmAttribution:
        values = {
            name: sanitize_text(fields.get(name))
            for name in UtmAttribution.model_fields
        }
        return UtmAttribution(**values)

    def _phone(self, fields: dict[str, Any]) -> str | None:
        raw = pick_phone(fields)
        return uk_phone_to_e164(raw) or raw

    def _iva(self, fields: dict[str, Any], base: dict[str, Any]) -> IvaLead:
        dob, dob_iso = normalize_dob(fields.get("dob_iso") or fields.get("dob"))
        provider_id = field_text(fields.get("ivaProvider"))
        other_provider = sanitize_text(fields.get("otherProvider"))
        provider = resolve_provider(provider_id, other_provider)

        return IvaLead(
            **base,
            name=sanitize_text(fields.get("fullName")),
            email=_email(fields),
            phone=self._phone(fields),
            postcode=_upper(fields.get("postcode")),
            city=sanitize_text(fields.get("city")),
            current_address=sanitize_text(fields.get("currentAddress")),
            dob=dob,
            dob_iso=dob_iso,
            iva_provider=provider_id,
            other_provider=other_provider,
            iva_provider_display=provider.display,
            iva_provider_loa=provider.loa,
            dsar_email=provider.dsar_email,
            iva_ref=sanitize_text(fields.get("ivaRef")),
            iva_status=field_text(fields.get("ivaStatus")),
            iva_type=field_text(fields.get("ivaType")),
            partner_name=sanitize_text(fields.get("partnerName")),
            payment_affordable=field_text(fields.get("paymentAffordable")),
            warned_of_risks=field_text(fields.get("warnedOfRisks")),
            sales_approach=field_text(fields.get("salesApproach")),
            notes=sanitize_text(fields.get("notes")),
            uploads_opt_in=field_text(fields.get("uploads_opt_in")),
            consent=ConsentRecord(
                consent_given=field_text(fields.get("consentGiven")),
                consent_wording=field_text(fields.get("consent_wording")),
                consent_version=field_text(fields.get("consent_version")),
                consent_timestamp_utc=field_text(fields.get("consent_timestamp_utc")),
            ),
        )

    def _bec(self, fields: dict[str, Any], base: dict[str, Any]) -> BecLead:
        return BecLead(
            **base,
            contact_name=sanitize_text(fields.get("contactName")),
            contact_position=sanitize_text(fields.get("contactPosition")),
            email=_email(fields),
            phone=self._phone(fields),
            preferred_contact=field_text(fields.get("preferredContact")),
            company_name=sanitize_text(fields.get("companyName")),
            company_number=sanitize_text(fields.get("companyNumber")),
            industry_sector=field_text(fields.get("industrySector")),
            employee_count=field_text(fields.get("employeeCount")),
            address_line1=sanitize_text(fields.get("addressLine1")),
            address_line2=sanitize_text(fields.get("addressLine2")),
            city=sanitize_text(fields.get("city")),
            county=sanitize_text(fields.get("county")),
            postcode=_upper(fields.get("postcode")),
            energy_supplier=sanitize_text(
                fields.get("otherSupplier") or fields.get("energySupplier")
            ),
            used_broker=field_text(fields.get("usedBroker")),
            broker_name=sanitize_text(fields.get("brokerName")),
            annual_energy_spend=field_text(fields.get("annualEnergySpend")),
            commission_disclosed=field_text(fields.get("commissionDisclosed")),
            additional_notes=sanitize_text(fields.get("additionalNotes")),
            privacy_consent=field_text(fields.get("privacyConsent")),
        )

    def _query(self, fields: dict[str, Any], base: dict[str, Any]) -> QueryLead:
        return QueryLead(
            **base,
            name=sanitize_text(fields.get("fullName")),
            email=_email(fields),
            phone=self._phone(fields),
            postcode=_upper(fields.get("postcode")),
            message=sanitize_text(fields.get("notes")),
            query_claim_type=field_text(fields.get("claimType")),
            iva_ref=sanitize_text(fields.get("ivaRef")),
        )


__all__ = ("LeadNormalizer", "RequestMetadata")
