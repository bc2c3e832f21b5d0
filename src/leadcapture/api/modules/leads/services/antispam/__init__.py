from leadcapture.api.modules.leads.services.antispam.behavior import (
    FORM_BEHAVIOR_THRESHOLDS,
    BehaviorEvaluation,
    BehaviorScoreService,
    BehaviorThresholds,
)
from leadcapture.api.modules.leads.services.antispam.guard import SpamGuard
from leadcapture.api.modules.leads.services.antispam.traps import (
    HoneypotCheck,
    TimeTrapCheck,
)

__all__ = (
    "FORM_BEHAVIOR_THRESHOLDS",
    "BehaviorEvaluation",
    "BehaviorScoreService",
    "BehaviorThresholds",
    "HoneypotCheck",
    "SpamGuard",
    "TimeTrapCheck",
)
