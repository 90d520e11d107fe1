from courtbook.rules.intake import BookingIntake
from courtbook.rules.slot_rules import RuleResult, SlotRulePipeline
from courtbook.rules.status import get_valid_targets, transition

__all__ = [
    "BookingIntake",
    "RuleResult",
    "SlotRulePipeline",
    "get_valid_targets",
    "transition",
]
