"""
Domain layer - Pure business logic without external dependencies.
"""

from .date_range import DateRangeBuilder
from .models import DateRange, MinuteWindow, ResolvedDaySlots, StaffHours, StoreHours, TimeRange
from .rule_set import AvailabilityRuleSet
from .slot_resolver import SlotResolver
from .time_arithmetic import TimeArithmetic

__all__ = [
    "AvailabilityRuleSet",
    "DateRange",
    "DateRangeBuilder",
    "MinuteWindow",
    "ResolvedDaySlots",
    "SlotResolver",
    "StaffHours",
    "StoreHours",
    "TimeArithmetic",
    "TimeRange",
]
