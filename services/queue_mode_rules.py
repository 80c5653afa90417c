from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, time
from enum import Enum, IntEnum
from typing import Callable, Iterable, Optional, Sequence

from services.exceptions import MalformedRuleSetError, MalformedScheduleError

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class RoutingRule(IntEnum):
    FORCED_BUSINESS_HOURS = 1
    ONE_OFF_SPECIAL_DAY = 2
    NORMAL_BUSINESS_HOURS = 3
    NORMAL_AFTER_HOURS = 4

    @property
    def label(self) -> str:
        return RULE_LABELS[self]


class RoutingMode(IntEnum):
    INDETERMINATE = 0
    NORMAL = 1
    FORCED_BUSINESS_HOURS = 2
    FORCED_AFTER_HOURS = 3

    @property
    def label(self) -> str:
        return MODE_LABELS[self]

    @classmethod
    def from_param(cls, value: str | None) -> Optional["RoutingMode"]:
        """Parse the `mode` query parameter; only 1, 2 and 3 request a change."""
        raw = str(value or "").strip()
        if raw not in {"1", "2", "3"}:
            return None
        return cls(int(raw))


class EventForm(str, Enum):
    DATE_RANGE = "dateRange"
    WEEKLY = "weekly"


RULE_LABELS = {
    RoutingRule.FORCED_BUSINESS_HOURS: "Forced Business Hours Routing",
    RoutingRule.ONE_OFF_SPECIAL_DAY: "One-Off Special Day Routing",
    RoutingRule.NORMAL_BUSINESS_HOURS: "Normal Business Hours Routing",
    RoutingRule.NORMAL_AFTER_HOURS: "Normal After Hours Routing",
}

MODE_LABELS = {
    RoutingMode.INDETERMINATE: "Custom Routing (no mode matches)",
    RoutingMode.NORMAL: "Normal Call Routing",
    RoutingMode.FORCED_BUSINESS_HOURS: "Forced Business Hours Routing",
    RoutingMode.FORCED_AFTER_HOURS: "Forced After Hours Routing",
}

# Rules each target mode switches off, starting from all four enabled.
MODE_DISABLED_RULES = {
    RoutingMode.NORMAL: {RoutingRule.FORCED_BUSINESS_HOURS},
    RoutingMode.FORCED_BUSINESS_HOURS: set(),
    RoutingMode.FORCED_AFTER_HOURS: {
        RoutingRule.FORCED_BUSINESS_HOURS,
        RoutingRule.ONE_OFF_SPECIAL_DAY,
        RoutingRule.NORMAL_BUSINESS_HOURS,
    },
}


@dataclass(frozen=True)
class ForwardingRule:
    index: RoutingRule
    id: str
    name: str
    enabled: bool


def weekday_name(day: date) -> str:
    return DAY_NAMES[day.weekday()]


def parse_hhmm(value: str | None) -> time:
    raw = str(value or "").strip()
    parts = raw.split(":")
    if len(parts) < 2:
        raise MalformedScheduleError(f"Invalid time value: {value!r}")
    try:
        hh = int(parts[0])
        mm = int(parts[1])
    except (TypeError, ValueError) as exc:
        raise MalformedScheduleError(f"Invalid time value: {value!r}") from exc
    if hh < 0 or hh > 23 or mm < 0 or mm > 59:
        raise MalformedScheduleError(f"Invalid time value: {value!r}")
    return time(hour=hh, minute=mm)


def parse_event_date(value: str | None) -> date:
    raw = str(value or "").strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise MalformedScheduleError(f"Invalid date value: {value!r}") from exc


def _recur_weekly(event: dict) -> Optional[dict]:
    recurrence = event.get("recurrence")
    if not isinstance(recurrence, dict):
        return None
    weekly = recurrence.get("recurWeekly")
    return weekly if isinstance(weekly, dict) else None


def _weekly_matches(event: dict, today: date) -> bool:
    weekly = _recur_weekly(event)
    if weekly is None:
        raise MalformedScheduleError(f"Event {event.get('name')!r} has no weekly recurrence")
    return bool(weekly.get(weekday_name(today)))


def _date_range_matches(event: dict, today: date) -> bool:
    if not event.get("startDate") or not event.get("endDate"):
        raise MalformedScheduleError(f"Event {event.get('name')!r} has no start/end date")
    start_date = parse_event_date(event.get("startDate"))
    end_date = parse_event_date(event.get("endDate"))
    return start_date <= today <= end_date


def _day_matches(event: dict, today: date, form: Optional[EventForm]) -> bool:
    if form is None:
        form = EventForm.WEEKLY if _recur_weekly(event) is not None else EventForm.DATE_RANGE
    if form == EventForm.WEEKLY:
        return _weekly_matches(event, today)
    return _date_range_matches(event, today)


def _time_matches(event: dict, now: time) -> bool:
    start_time = parse_hhmm(event.get("startTime"))
    end_time = parse_hhmm(event.get("endTime"))
    current = now.replace(second=0, microsecond=0, tzinfo=None)
    return start_time <= current <= end_time


def event_matches(event: dict, today: date, now: time, form: Optional[EventForm] = None) -> bool:
    """
    True when the event covers `today`, and `now` too unless it is an all-day event.
    `form` pins how the day is tested; without it the event's own shape decides.
    """
    if not _day_matches(event, today, form):
        return False
    if event.get("allDayEnabled"):
        return True
    return _time_matches(event, now)


def first_matching_event(
    events: Iterable[dict] | None, today: date, now: time, form: Optional[EventForm] = None
) -> Optional[dict]:
    for event in events or []:
        if event_matches(event, today, now, form):
            return event
    return None


def schedule_matches(schedule: dict | None, today: date, now: time, form: Optional[EventForm] = None) -> bool:
    if not schedule:
        return False
    return first_matching_event(schedule.get("events"), today, now, form) is not None


def validate_rule_set(rules: Sequence[ForwardingRule]) -> None:
    if len(rules) != len(RoutingRule):
        raise MalformedRuleSetError(f"Expected {len(RoutingRule)} forwarding rules, got {len(rules)}")
    for position, rule in enumerate(rules, start=1):
        if int(rule.index) != position:
            raise MalformedRuleSetError(f"Forwarding rule at position {position} has index {int(rule.index)}")


def enabled_vector(rules: Sequence[ForwardingRule]) -> tuple[bool, bool, bool, bool]:
    validate_rule_set(rules)
    return tuple(bool(rule.enabled) for rule in rules)  # type: ignore[return-value]


def classify_mode(enabled: Sequence[bool]) -> RoutingMode:
    rule1, rule2, rule3, rule4 = enabled
    if not rule1 and rule2 and rule3 and rule4:
        return RoutingMode.NORMAL
    if rule1:
        return RoutingMode.FORCED_BUSINESS_HOURS
    if not rule1 and not rule2 and not rule3 and rule4:
        return RoutingMode.FORCED_AFTER_HOURS
    return RoutingMode.INDETERMINATE


def resolve_active_rule(
    enabled: Sequence[bool],
    holiday_matches: Callable[[], bool],
    business_matches: Callable[[], bool],
) -> RoutingRule:
    """
    Decide which rule is routing calls right now.
    The schedule callables are only invoked when rule 2 or rule 3 has to be checked.
    """
    rule1, rule2, rule3, rule4 = enabled
    if rule1:
        return RoutingRule.FORCED_BUSINESS_HOURS
    if not rule2 and not rule3 and rule4:
        return RoutingRule.NORMAL_AFTER_HOURS
    if rule2 and holiday_matches():
        return RoutingRule.ONE_OFF_SPECIAL_DAY
    if rule3 and business_matches():
        return RoutingRule.NORMAL_BUSINESS_HOURS
    return RoutingRule.NORMAL_AFTER_HOURS


def plan_mode_change(rules: Sequence[ForwardingRule], target_mode: RoutingMode) -> list[ForwardingRule]:
    if target_mode not in MODE_DISABLED_RULES:
        raise ValueError(f"Cannot switch a queue into mode {target_mode!r}")
    validate_rule_set(rules)
    disabled = MODE_DISABLED_RULES[target_mode]
    return [replace(rule, enabled=rule.index not in disabled) for rule in rules]
