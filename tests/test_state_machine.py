"""
Tests for the multi-step form state machine
"""

import json
from datetime import UTC, date, datetime

import pytest

from leadcapture.forms.definitions import (
    BEC_FORM,
    CONSENT_VERSION,
    CONSENT_WORDING,
    IVA_FORM,
    NOT_ELIGIBLE_URL,
    QUERY_FORM,
    iva_is_excluded,
    parse_payment,
)
from leadcapture.forms.session import SessionStatus
from leadcapture.forms.state_machine import CHALLENGE_FIELD, FormStateMachine
from leadcapture.forms.storage import JsonFileStorage, MemoryStorage

TODAY = date(2025, 10, 1)
NOW = datetime(2025, 10, 1, 9, 30, tzinfo=UTC)

ELIGIBILITY = {
    "fullName": "Jane  Smith",
    "email": "jane@example.com",
    "phone": "07700 900123",
    "dob": "15061985",
    "currentAddress": "1 High Street",
    "city": "London",
    "postcode": "sw1a1aa",
    "livedAtAddress": "Yes",
    "ivaStatus": "completed",
    "debtLevel": "15000-30000",
    "monthlyPayment": "£250",
}
IVA_DETAILS = {
    "ivaProvider": "GrantThornton",
    "ivaType": "Single",
    "residentialStatus": "Tenant",
    "hadDependants": "No",
}
SALE_DETAILS = {
    "paymentAffordable": "No",
    "warnedOfRisks": "No",
    "salesApproach": "Cold call",
    "signedElectronically": "No",
    "notes": "Nobody checked my budget",
}
CONSENT = {"consentGiven": "Yes"}


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)


def make_machine(definition=IVA_FORM, storage=None, **kwargs) -> FormStateMachine:
    return FormStateMachine(
        definition,
        storage if storage is not None else MemoryStorage(),
        today=lambda: TODAY,
        now=lambda: NOW,
        **kwargs,
    )


def fill(machine: FormStateMachine, values: dict) -> None:
    for name, value in values.items():
        machine.set_field(name, value)


def advance_to_consent(machine: FormStateMachine) -> None:
    for values in (ELIGIBILITY, IVA_DETAILS, SALE_DETAILS):
        fill(machine, values)
        assert machine.next().ok
    fill(machine, CONSENT)


class TestInitialState:
    """Tests for a freshly created session."""

    def test_starts_on_first_step(self):
        """Test the starting step, status and progress."""
        machine = make_machine()

        assert machine.session.current_step == 0
        assert machine.session.status is SessionStatus.ACTIVE
        assert machine.session.progress_label == "Step 1 of 4"
        assert machine.session.progress == 0.25

    def test_conditional_fields_start_hidden(self):
        """Test that every dependent starts hidden."""
        hidden = make_machine().session.hidden

        assert {"otherProvider", "previousAddress", "partnerName", "signedOnPhone"} <= hidden


class TestStepValidation:
    """Tests for per-step validation and messages."""

    def test_empty_step_errors(self):
        """Test the message for each kind of empty required field."""
        machine = make_machine()

        result = machine.next()

        assert result.ok is False
        assert result.step == 0
        assert result.first_invalid == "fullName"
        assert result.errors["fullName"] == "Please enter your full name"
        assert result.errors["email"] == "Please enter your email address"
        assert result.errors["phone"] == "This field is required"
        assert result.errors["dob"] == "Please enter your date of birth"
        assert result.errors["livedAtAddress"] == "Please make a selection"
        assert "previousAddress" not in result.errors
        assert machine.session.errors == result.errors

    def test_valid_step_advances_and_persists(self):
        """Test that a valid step moves forward and saves progress."""
        storage = MemoryStorage()
        machine = make_machine(storage=storage)
        fill(machine, ELIGIBILITY)

        result = machine.next()

        assert result.ok is True
        assert result.step == 1
        fields = machine.session.fields
        assert fields["fullName"] == "Jane Smith"
        assert fields["postcode"] == "SW1A 1AA"
        assert fields["phone_e164"] == "+447700900123"
        assert fields["phone_local"] == "7700900123"
        assert fields["dob"] == "15/06/1985"
        assert fields["dob_iso"] == "1985-06-15"

        saved = json.loads(storage.get("ivaFormState"))
        assert saved["currentStep"] == 1
        assert saved["formData"]["dob"] == "15/06/1985"
        assert "dob_iso" not in saved["formData"]

    def test_semantic_errors(self):
        """Test that filled but invalid values get their own messages."""
        machine = make_machine()
        fill(machine, {**ELIGIBILITY, "postcode": "12345", "phone": "020 7946 0958"})

        result = machine.next()

        assert result.errors == {
            "phone": "Enter a valid UK mobile (7xxxxxxxxx)",
            "postcode": "Please enter a valid UK postcode",
        }
        assert result.first_invalid == "phone"

    def test_revealed_fields_become_required(self):
        """Test that answering No to the address question requires the old address."""
        machine = make_machine()
        fill(machine, {**ELIGIBILITY, "livedAtAddress": "No"})

        result = machine.next()

        assert set(result.errors) == {"previousAddress", "previousCity", "previousPostcode"}

    def test_editing_clears_field_error(self):
        """Test that changing a field removes its error."""
        machine = make_machine()
        machine.next()

        machine.set_field("fullName", "Jane Smith")

        assert "fullName" not in machine.session.errors
        assert "email" in machine.session.errors

    def test_live_dob_formatting(self):
        """Test the date-of-birth field while typing."""
        machine = make_machine()

        machine.set_field("dob", "1506")
        assert machine.session.fields["dob"] == "15/06"
        assert "dob_iso" not in machine.session.fields
        assert "dob" not in machine.session.errors

        machine.set_field("dob", "31021985")
        assert machine.session.fields["dob"] == "31/02/1985"
        assert machine.session.errors["dob"] == "Please enter a valid date of birth"

        machine.set_field("dob", "28021985")
        assert machine.session.fields["dob_iso"] == "1985-02-28"
        assert "dob" not in machine.session.errors


class TestEligibility:
    """Tests for exclusion at the eligibility gate."""

    @pytest.mark.parametrize(
        ("fields", "excluded"),
        [
            ({"ivaStatus": "Active"}, True),
            ({"ivaStatus": "completed"}, False),
            ({"debtLevel": "0-7500", "monthlyPayment": "£120"}, True),
            ({"debtLevel": "0-7500", "monthlyPayment": "£1,200"}, False),
            ({"debtLevel": "0-7500", "monthlyPayment": ""}, True),
            ({"debtLevel": "0-7500", "monthlyPayment": "about a hundred"}, False),
            ({"debtLevel": "7500-15000", "monthlyPayment": "£50"}, False),
        ],
    )
    def test_exclusion_rules(self, fields, excluded):
        """Test each exclusion condition."""
        assert iva_is_excluded(fields) is excluded

    def test_parse_payment(self):
        """Test the monthly payment parser."""
        assert parse_payment("£1,250.50") == 1250.5
        assert parse_payment(" ") == 0.0
        assert parse_payment("n/a") is None

    def test_parse_payment_leading_number(self):
        """Test that trailing text after the amount is ignored."""
        assert parse_payment("100abc") == 100.0
        assert parse_payment("£99.50 per month") == 99.5
        assert iva_is_excluded({"debtLevel": "0-7500", "monthlyPayment": "100abc"}) is True

    def test_active_iva_excluded(self):
        """Test that an active IVA ends the session with a redirect."""
        redirects = Recorder()
        machine = make_machine(on_exclude=redirects)
        fill(machine, {**ELIGIBILITY, "ivaStatus": "active"})

        result = machine.next()

        assert result.ok is False
        assert result.redirect_to == NOT_ELIGIBLE_URL
        assert result.status is SessionStatus.EXCLUDED
        assert machine.session.current_step == 0
        assert redirects.calls == [(NOT_ELIGIBLE_URL, 3.0)]

    def test_exclusion_is_terminal(self):
        """Test that nothing moves an excluded session."""
        machine = make_machine()
        fill(machine, {**ELIGIBILITY, "debtLevel": "0-7500", "monthlyPayment": "100"})
        machine.next()

        machine.set_field("monthlyPayment", "£900")

        assert machine.session.fields["monthlyPayment"] == "100"
        assert machine.next().redirect_to == NOT_ELIGIBLE_URL
        assert machine.prev().redirect_to == NOT_ELIGIBLE_URL
        assert machine.request_submit().ok is False
        assert machine.session.status is SessionStatus.EXCLUDED


class TestNavigation:
    """Tests for moving between steps."""

    def test_prev_floor(self):
        """Test that going back from the first step stays put."""
        machine = make_machine()

        result = machine.prev()

        assert result.ok is True
        assert result.step == 0

    def test_prev_keeps_answers(self):
        """Test that going back preserves entered values."""
        machine = make_machine()
        fill(machine, ELIGIBILITY)
        machine.next()

        result = machine.prev()

        assert result.step == 0
        assert machine.session.fields["email"] == "jane@example.com"

    def test_challenge_rendered_once_on_final_step(self):
        """Test that the bot challenge renders when the last step is reached."""
        renders = Recorder()
        machine = make_machine(render_challenge=renders)

        advance_to_consent(machine)
        machine.prev()
        assert machine.next().ok is True

        assert machine.session.is_final_step
        assert machine.session.challenge_rendered is True
        assert len(renders.calls) == 1

    def test_next_on_final_step_does_not_advance(self):
        """Test that the final step never goes past the end."""
        machine = make_machine()
        advance_to_consent(machine)

        result = machine.next()

        assert result.ok is True
        assert result.step == 3


class TestSubmitReadiness:
    """Tests for the final-step checks before sending."""

    def test_challenge_token_required(self):
        """Test that a missing challenge token blocks submission."""
        machine = make_machine()
        advance_to_consent(machine)

        result = machine.request_submit()

        assert result.ok is False
        assert result.first_invalid == CHALLENGE_FIELD
        assert result.errors[CHALLENGE_FIELD] == "Please complete the verification."

    def test_consent_required(self):
        """Test the consent step message."""
        machine = make_machine(bypass_challenge=True)
        advance_to_consent(machine)
        machine.set_field("consentGiven", "")

        result = machine.request_submit()

        assert result.errors == {"consentGiven": "Please indicate if you give consent."}

    def test_consent_stamped(self):
        """Test that the consent record is attached once ready."""
        machine = make_machine()
        advance_to_consent(machine)
        machine.set_challenge_token("tok")

        result = machine.request_submit()

        fields = machine.session.fields
        assert result.ok is True
        assert fields["consent_given"] == "Yes"
        assert fields["consent_version"] == CONSENT_VERSION
        assert fields["consent_wording"] == CONSENT_WORDING
        assert fields["consent_timestamp_utc"] == "2025-10-01T09:30:00Z"

    def test_request_submit_before_final_step_validates_current(self):
        """Test that an early submit behaves like next."""
        machine = make_machine()

        result = machine.request_submit()

        assert result.ok is False
        assert result.first_invalid == "fullName"


class TestPayload:
    """Tests for the fields sent to the server."""

    def test_hidden_fields_skipped(self):
        """Test that values of hidden fields are never sent."""
        machine = make_machine()
        machine.set_field("otherProvider", "Should not be sent")

        assert "otherProvider" not in machine.payload_fields()

    def test_honeypot(self):
        """Test that an empty honeypot is dropped and a filled one is sent."""
        machine = make_machine()
        machine.set_field("company_website", "")
        assert "company_website" not in machine.payload_fields()

        machine.set_field("company_website", "bot.example")
        assert machine.payload_fields()["company_website"] == "bot.example"

    def test_start_time_and_token(self):
        """Test that the start stamp and challenge token are included."""
        machine = make_machine()
        machine.set_field("fullName", "Jane Smith")
        machine.set_challenge_token("tok")

        fields = machine.payload_fields()

        assert fields["form_started_at"] == str(int(NOW.timestamp() * 1000))
        assert fields[CHALLENGE_FIELD] == "tok"

    def test_first_touch_attribution(self):
        """Test that the first landing's click ids are kept."""
        machine = make_machine()

        machine.capture_attribution(
            "https://claims.test/iva?utm_source=facebook&fbclid=F1#form",
            "https://facebook.com/",
        )
        machine.capture_attribution("https://claims.test/iva?utm_source=google")

        fields = machine.session.fields
        assert fields["utm_source"] == "facebook"
        assert fields["fbclid"] == "F1"
        assert fields["utm_landing_page"] == "https://claims.test/iva?utm_source=facebook&fbclid=F1"
        assert fields["utm_referrer"] == "https://facebook.com/"
        assert fields["utm_timestamp_utc"] == "2025-10-01T09:30:00Z"

    def test_attribution_decodes_query(self):
        """Test that encoded click ids are stored decoded."""
        machine = make_machine()

        machine.capture_attribution("https://claims.test/iva?utm_campaign=spring%20sale&gclid=G%2B1")

        fields = machine.session.fields
        assert fields["utm_campaign"] == "spring sale"
        assert fields["gclid"] == "G+1"

    def test_no_attribution_without_params(self):
        """Test that a plain landing records nothing."""
        machine = make_machine()

        machine.capture_attribution("https://claims.test/iva")

        assert machine.session.fields == {}


class TestPersistence:
    """Tests for saving and restoring progress."""

    def test_restore_round_trip(self):
        """Test that a new page load resumes where the user left off."""
        storage = MemoryStorage()
        first = make_machine(storage=storage)
        fill(first, {**ELIGIBILITY, "company_website": "x"})
        first.next()
        first.set_field("ivaProvider", "Other")
        first.set_field("otherProvider", "Local Debt Co")
        first.prev()
        first.next()

        second = make_machine(storage=storage)

        assert second.restore() is True
        assert second.session.current_step == 1
        assert second.session.fields["otherProvider"] == "Local Debt Co"
        assert second.session.is_visible("otherProvider") is True
        assert second.session.fields["dob_iso"] == "1985-06-15"
        assert "company_website" not in second.session.fields

    def test_restore_iso_dob_and_bad_step(self):
        """Test that an ISO dob is shown in display form and the step clamped."""
        storage = MemoryStorage(
            {
                "ivaFormState": json.dumps(
                    {"formData": {"dob": "1985-06-15", "ivaProvider": "Payplan"}, "currentStep": 9}
                )
            }
        )
        machine = make_machine(storage=storage)

        assert machine.restore() is True
        assert machine.session.fields["dob"] == "15/06/1985"
        assert machine.session.fields["dob_iso"] == "1985-06-15"
        assert machine.session.current_step == 0

    def test_restore_final_step_renders_challenge(self):
        """Test that resuming on the last step shows the challenge."""
        renders = Recorder()
        storage = MemoryStorage(
            {"ivaFormState": json.dumps({"formData": {}, "currentStep": 3})}
        )
        machine = make_machine(storage=storage, render_challenge=renders)

        machine.restore()

        assert len(renders.calls) == 1

    def test_corrupt_state_discarded(self):
        """Test that unreadable saved state is removed."""
        storage = MemoryStorage({"ivaFormState": "{oops"})
        machine = make_machine(storage=storage)

        assert machine.restore() is False
        assert "ivaFormState" not in storage

    def test_nothing_saved(self):
        """Test restoring with no saved state."""
        assert make_machine().restore() is False

    def test_json_file_storage(self, tmp_path):
        """Test that progress survives in a JSON file."""
        path = tmp_path / "state" / "storage.json"
        machine = make_machine(storage=JsonFileStorage(path))
        fill(machine, ELIGIBILITY)
        machine.next()

        resumed = make_machine(storage=JsonFileStorage(path))

        assert resumed.restore() is True
        assert resumed.session.current_step == 1

    def test_mark_submitted_clears_state(self):
        """Test that a submitted session is final and its save removed."""
        storage = MemoryStorage()
        machine = make_machine(storage=storage)
        fill(machine, ELIGIBILITY)
        machine.next()

        machine.mark_submitted()

        assert "ivaFormState" not in storage
        assert machine.session.status is SessionStatus.SUBMITTED
        assert machine.next().ok is False
        machine.set_field("email", "other@example.com")
        assert machine.session.fields["email"] == "jane@example.com"

    def test_reset_keeps_attribution(self):
        """Test that a reset blanks answers but keeps first-touch data."""
        machine = make_machine()
        machine.capture_attribution("https://claims.test/?gclid=G1")
        fill(machine, ELIGIBILITY)
        machine.next()

        machine.reset()

        assert machine.session.current_step == 0
        assert machine.session.fields["gclid"] == "G1"
        assert "email" not in machine.session.fields


class TestOtherForms:
    """Tests for the single-step business and query forms."""

    def test_bec_privacy_consent(self):
        """Test the business form checkbox message."""
        machine = make_machine(BEC_FORM)
        fill(
            machine,
            {
                "contactName": "Sam Patel",
                "email": "sam@acme.co.uk",
                "phone": "020 7946 0958",
                "companyName": "Acme Ltd",
                "addressLine1": "4 Mill Lane",
                "city": "Leeds",
                "postcode": "LS1 4AP",
                "energySupplier": "Other",
                "usedBroker": "No",
                "privacyConsent": False,
            },
        )

        result = machine.request_submit()

        assert result.errors == {
            "otherSupplier": "This field is required",
            "privacyConsent": "Please confirm you have read the Privacy Policy.",
        }

    def test_bec_ready_without_challenge(self):
        """Test that the business form needs no challenge token."""
        machine = make_machine(BEC_FORM)
        fill(
            machine,
            {
                "contactName": "Sam Patel",
                "email": "sam@acme.co.uk",
                "phone": "020 7946 0958",
                "companyName": "Acme Ltd",
                "addressLine1": "4 Mill Lane",
                "city": "Leeds",
                "postcode": "LS1 4AP",
                "energySupplier": "British Gas",
                "usedBroker": "No",
                "privacyConsent": True,
            },
        )

        assert machine.request_submit().ok is True
        assert "consent_version" not in machine.session.fields

    def test_query_iva_ref_optional(self):
        """Test that the revealed IVA reference stays optional."""
        machine = make_machine(QUERY_FORM)
        fill(
            machine,
            {
                "fullName": "Tom Jones",
                "email": "tom@example.org",
                "claimType": "IVA",
                "notes": "Question about my IVA",
            },
        )

        assert machine.session.is_visible("ivaRef") is True
        assert machine.request_submit().ok is True

    def test_query_optional_phone_still_checked(self):
        """Test that an optional phone is validated when given."""
        machine = make_machine(QUERY_FORM)
        fill(
            machine,
            {
                "fullName": "Tom Jones",
                "email": "tom@example.org",
                "phone": "12345",
                "claimType": "BEC",
                "notes": "Question",
            },
        )

        result = machine.request_submit()

        assert result.errors == {"phone": "Enter a valid UK mobile (7xxxxxxxxx)"}
