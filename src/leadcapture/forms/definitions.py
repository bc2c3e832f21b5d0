import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from leadcapture.forms.session import FieldValue
from leadcapture.forms.visibility import VisibilityRule, equals

FieldKind = Literal["text", "email", "tel", "select", "radio", "checkbox", "textarea"]
SemanticCheck = Literal["name", "email", "mobile", "dob", "postcode"]

HONEYPOT_FIELD = "company_website"
NOT_ELIGIBLE_URL = "./not-eligible.html"

CONSENT_VERSION = "2025-09-25"
CONSENT_WORDING = " ".join(
    (
        "I consent to Visible Legal Marketing processing my personal data to "
        "assess my IVA claim and to contact me about my case.",
        "I understand my details may be shared with a panel solicitor solely to "
        "review my case and, if appropriate, to act on my instructions.",
        "I understand I can withdraw consent at any time, and that my data will "
        "be handled in line with the Privacy Policy.",
    )
)

SUBMISSION_COOLDOWN_SECONDS = 600


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    kind: FieldKind = "text"
    required: bool = False
    check: SemanticCheck | None = None
    error_message: str | None = None


@dataclass(frozen=True, slots=True)
class StepSpec:
    title: str
    fields: tuple[FieldSpec, ...]
    eligibility_gate: bool = False


@dataclass(frozen=True, slots=True)
class FormDefinition:
    form_id: str
    steps: tuple[StepSpec, ...]
    rules: tuple[VisibilityRule, ...] = ()
    storage_key: str | None = None
    cooldown_key: str | None = None
    is_excluded: Callable[[dict[str, FieldValue]], bool] | None = None
    requires_challenge: bool = False
    consent_field: str | None = None
    honeypot_field: str = HONEYPOT_FIELD
    thank_you_message: str = "Thank you. We will be in touch shortly."

    @property
    def total_steps(self) -> int:
        return len(self.steps)


_PAYMENT_NOISE = re.compile(r"[£,\s]")
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_payment(value: FieldValue | None) -> float | None:
    """Monthly payment in pounds from its leading number.

    Blank counts as zero; text with no leading number is unknown.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    text = _PAYMENT_NOISE.sub("", str(value))
    if not text:
        return 0.0
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return None
    return float(match.group())


def iva_is_excluded(fields: dict[str, FieldValue]) -> bool:
    status = fields.get("ivaStatus")
    if isinstance(status, str) and status.strip().lower() == "active":
        return True

    if fields.get("debtLevel") == "0-7500":
        payment = parse_payment(fields.get("monthlyPayment"))
        return payment is not None and payment < 150
    return False


def _radio(name: str, required: bool = True, message: str | None = None) -> FieldSpec:
    return FieldSpec(name, kind="radio", required=required, error_message=message)


IVA_FORM = FormDefinition(
    form_id="iva-claim-form",
    storage_key="ivaFormState",
    cooldown_key="ivaSubmitted",
    requires_challenge=True,
    consent_field="consentGiven",
    is_excluded=iva_is_excluded,
    steps=(
        StepSpec(
            title="Your details",
            eligibility_gate=True,
            fields=(
                FieldSpec("fullName", required=True, check="name"),
                FieldSpec("email", kind="email", required=True, check="email"),
                FieldSpec("phone", kind="tel", required=True, check="mobile"),
                FieldSpec("dob", required=True, check="dob"),
                FieldSpec("currentAddress", required=True),
                FieldSpec("city", required=True),
                FieldSpec("postcode", required=True, check="postcode"),
                _radio("livedAtAddress"),
                FieldSpec("previousAddress"),
                FieldSpec("previousCity"),
                FieldSpec("previousPostcode", check="postcode"),
                _radio("ivaStatus"),
                _radio("debtLevel"),
                FieldSpec("monthlyPayment", required=True),
            ),
        ),
        StepSpec(
            title="Your IVA",
            fields=(
                FieldSpec("ivaProvider", kind="select", required=True),
                FieldSpec("otherProvider"),
                FieldSpec("ivaRef"),
                _radio("ivaType"),
                FieldSpec("partnerName"),
                FieldSpec("residentialStatus", kind="select", required=True),
                FieldSpec("otherResidentialDetails"),
                _radio("hadDependants"),
                FieldSpec("dependantDetails", kind="textarea"),
            ),
        ),
        StepSpec(
            title="How your IVA was sold",
            fields=(
                _radio("paymentAffordable"),
                _radio("warnedOfRisks"),
                FieldSpec("salesApproach", kind="select", required=True),
                _radio("signedElectronically"),
                _radio("signedOnPhone", required=False),
                FieldSpec("notes", kind="textarea"),
                FieldSpec("uploads_opt_in", kind="checkbox"),
            ),
        ),
        StepSpec(
            title="Consent",
            fields=(
                _radio("consentGiven", message="Please indicate if you give consent."),
            ),
        ),
    ),
    rules=(
        VisibilityRule("ivaProvider", equals("Other"), ("otherProvider",)),
        VisibilityRule(
            "residentialStatus",
            equals("Other"),
            ("otherResidentialDetails",),
        ),
        VisibilityRule(
            "livedAtAddress",
            equals("No"),
            ("previousAddress", "previousCity", "previousPostcode"),
        ),
        VisibilityRule("hadDependants", equals("Yes"), ("dependantDetails",)),
        VisibilityRule("ivaType", equals("Joint"), ("partnerName",)),
        VisibilityRule("signedElectronically", equals("Yes"), ("signedOnPhone",)),
    ),
)

BEC_FORM = FormDefinition(
    form_id="bec-claim-form",
    storage_key="becFormState",
    cooldown_key="becSubmitted",
    steps=(
        StepSpec(
            title="Business energy claim",
            fields=(
                FieldSpec("contactName", required=True),
                FieldSpec("contactPosition"),
                FieldSpec("email", kind="email", required=True, check="email"),
                FieldSpec("phone", kind="tel", required=True),
                _radio("preferredContact", required=False),
                FieldSpec("companyName", required=True),
                FieldSpec("companyNumber"),
                FieldSpec("industrySector", kind="select"),
                FieldSpec("employeeCount", kind="select"),
                FieldSpec("addressLine1", required=True),
                FieldSpec("addressLine2"),
                FieldSpec("city", required=True),
                FieldSpec("county"),
                FieldSpec("postcode", required=True, check="postcode"),
                FieldSpec("energySupplier", kind="select", required=True),
                FieldSpec("otherSupplier"),
                _radio("usedBroker"),
                FieldSpec("brokerName"),
                FieldSpec("annualEnergySpend", kind="select"),
                _radio("commissionDisclosed", required=False),
                FieldSpec("additionalNotes", kind="textarea"),
                FieldSpec(
                    "privacyConsent",
                    kind="checkbox",
                    required=True,
                    error_message="Please confirm you have read the Privacy Policy.",
                ),
            ),
        ),
    ),
    rules=(VisibilityRule("energySupplier", equals("Other"), ("otherSupplier",)),),
)

QUERY_FORM = FormDefinition(
    form_id="claimForm",
    storage_key="queryFormState",
    cooldown_key="querySubmitted",
    steps=(
        StepSpec(
            title="Ask us a question",
            fields=(
                FieldSpec("fullName", required=True, check="name"),
                FieldSpec("email", kind="email", required=True, check="email"),
                FieldSpec("phone", kind="tel", check="mobile"),
                FieldSpec("postcode", check="postcode"),
                FieldSpec("claimType", kind="select", required=True),
                FieldSpec("ivaRef"),
                FieldSpec("notes", kind="textarea", required=True),
            ),
        ),
    ),
    rules=(
        VisibilityRule(
            "claimType",
            equals("IVA"),
            ("ivaRef",),
            required_when_shown=False,
        ),
    ),
)

FORMS: dict[str, FormDefinition] = {
    form.form_id: form for form in (IVA_FORM, BEC_FORM, QUERY_FORM)
}


__all__ = (
    "BEC_FORM",
    "CONSENT_VERSION",
    "CONSENT_WORDING",
    "FORMS",
    "HONEYPOT_FIELD",
    "IVA_FORM",
    "NOT_ELIGIBLE_URL",
    "QUERY_FORM",
    "SUBMISSION_COOLDOWN_SECONDS",
    "FieldSpec",
    "FormDefinition",
    "StepSpec",
    "iva_is_excluded",
    "parse_payment",
)
