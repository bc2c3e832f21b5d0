"""Headless form engine mirroring the browser side of the lead forms."""

from leadcapture.forms.behavior import BehaviorCollector
from leadcapture.forms.client import SubmissionClient, SubmitOutcome, SubmitStatus
from leadcapture.forms.definitions import (
    BEC_FORM,
    FORMS,
    IVA_FORM,
    QUERY_FORM,
    FieldSpec,
    FormDefinition,
    StepSpec,
)
from leadcapture.forms.pixel import LeadPixel
from leadcapture.forms.session import FormSession, SessionStatus
from leadcapture.forms.state_machine import FormStateMachine, TransitionResult
from leadcapture.forms.storage import ClientStorage, JsonFileStorage, MemoryStorage
from leadcapture.forms.visibility import VisibilityController, VisibilityRule

__all__ = (
    "BEC_FORM",
    "FORMS",
    "IVA_FORM",
    "QUERY_FORM",
    "BehaviorCollector",
    "ClientStorage",
    "FieldSpec",
    "FormDefinition",
    "FormSession",
    "FormStateMachine",
    "JsonFileStorage",
    "LeadPixel",
    "MemoryStorage",
    "SessionStatus",
    "StepSpec",
    "SubmissionClient",
    "SubmitOutcome",
    "SubmitStatus",
    "TransitionResult",
    "VisibilityController",
    "VisibilityRule",
)
