from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Dict, List, Optional, Tuple

from services.exceptions import (
    FatalUpstreamError,
    MalformedRuleSetError,
    MalformedScheduleError,
    PartialMutationError,
    QueueNotFoundError,
    ScheduleNotFoundError,
    TimeSourceError,
)
from services.queue_mode_rules import (
    EventForm,
    ForwardingRule,
    RoutingMode,
    RoutingRule,
    classify_mode,
    enabled_vector,
    plan_mode_change,
    resolve_active_rule,
    schedule_matches,
)
from services.time_source import Clock

logger = logging.getLogger(__name__)


@dataclass
class QueueStatus:
    queue: dict
    rules: List[ForwardingRule]
    mode: RoutingMode
    active_rule: RoutingRule
    today: Optional[date] = None
    now: Optional[time] = None


class UpdateStatus(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RuleUpdateResult:
    rule_id: str
    name: str
    enabled: bool
    status: UpdateStatus
    error: Optional[str] = None


@dataclass
class _ScheduleContext:
    """Per-request lazy cache so each upstream lookup happens at most once."""

    location_id: str
    queue_id: str
    schedules: Optional[List[dict]] = None
    clock_value: Optional[Tuple[date, time]] = None
    timezone: Optional[str] = None
    bound: Dict[str, dict] = field(default_factory=dict)


class QueueModeService:
    def __init__(self, client, clock: Clock) -> None:
        self.client = client
        self.clock = clock

    def find_queue(self, location_name: str, queue_name: str) -> dict:
        for queue in self.client.list_queues():
            if queue.get("locationName") == location_name and queue.get("name") == queue_name:
                if not queue.get("id") or not queue.get("locationId"):
                    raise FatalUpstreamError(f"Queue listing for {queue_name!r} has no id or locationId")
                logger.info("Found queue %s (%s) in %s", queue_name, queue.get("id"), location_name)
                return dict(queue)
        raise QueueNotFoundError(location_name, queue_name)

    def load_rules(self, queue: dict) -> List[ForwardingRule]:
        forwarding = self.client.get_call_forwarding(queue["locationId"], queue["id"])
        raw_rules = forwarding.get("rules")
        if not isinstance(raw_rules, list):
            raise MalformedRuleSetError("Call forwarding settings have no rule list")
        if len(raw_rules) != len(RoutingRule):
            raise MalformedRuleSetError(f"Expected {len(RoutingRule)} forwarding rules, got {len(raw_rules)}")
        rules = []
        for index, item in zip(RoutingRule, raw_rules):
            if not isinstance(item, dict) or not item.get("id"):
                raise MalformedRuleSetError(f"Forwarding rule {int(index)} has no id")
            rules.append(
                ForwardingRule(
                    index=index,
                    id=str(item["id"]),
                    name=str(item.get("name") or ""),
                    enabled=bool(item.get("enabled")),
                )
            )
        logger.info("Rule states: %s", {int(rule.index): rule.enabled for rule in rules})
        return rules

    def report_status(self, location_name: str, queue_name: str) -> QueueStatus:
        queue = self.find_queue(location_name, queue_name)
        rules = self.load_rules(queue)
        enabled = enabled_vector(rules)
        mode = classify_mode(enabled)
        ctx = _ScheduleContext(location_id=queue["locationId"], queue_id=queue["id"])

        def _holiday_matches() -> bool:
            return self._rule_schedule_matches(
                ctx, rules[RoutingRule.ONE_OFF_SPECIAL_DAY - 1], "holidaySchedule", EventForm.DATE_RANGE
            )

        def _business_matches() -> bool:
            return self._rule_schedule_matches(
                ctx, rules[RoutingRule.NORMAL_BUSINESS_HOURS - 1], "businessSchedule", EventForm.WEEKLY
            )

        active_rule = resolve_active_rule(enabled, _holiday_matches, _business_matches)
        logger.info("Queue %s mode=%s active rule=%s", queue_name, mode.label, active_rule.label)
        today, now = ctx.clock_value if ctx.clock_value else (None, None)
        return QueueStatus(queue=queue, rules=rules, mode=mode, active_rule=active_rule, today=today, now=now)

    def change_mode(self, location_name: str, queue_name: str, target_mode: RoutingMode) -> List[RuleUpdateResult]:
        queue = self.find_queue(location_name, queue_name)
        rules = self.load_rules(queue)
        planned = plan_mode_change(rules, target_mode)
        logger.info("Switching %s to %s: %s", queue_name, target_mode.label, [rule.enabled for rule in planned])
        return self.apply_rule_updates(queue, planned)

    def apply_rule_updates(self, queue: dict, planned: List[ForwardingRule]) -> List[RuleUpdateResult]:
        """
        Push each rule's enabled flag one at a time.
        Stops at the first failure; later rules are reported as skipped.
        """
        results: List[RuleUpdateResult] = []
        failed = False
        for rule in planned:
            if failed:
                results.append(RuleUpdateResult(rule.id, rule.name, rule.enabled, UpdateStatus.SKIPPED))
                continue
            try:
                self.client.update_selective_rule(queue["locationId"], queue["id"], rule.id, rule.name, rule.enabled)
            except FatalUpstreamError as exc:
                failed = True
                results.append(RuleUpdateResult(rule.id, rule.name, rule.enabled, UpdateStatus.FAILED, str(exc)))
                continue
            results.append(RuleUpdateResult(rule.id, rule.name, rule.enabled, UpdateStatus.APPLIED))

        if failed:
            error = PartialMutationError(
                results,
                succeeded=[item.rule_id for item in results if item.status == UpdateStatus.APPLIED],
                failed=[item.rule_id for item in results if item.status == UpdateStatus.FAILED],
            )
            logger.error(
                "Mode change for queue %s incomplete; applied=%s failed=%s",
                queue.get("name"),
                error.succeeded,
                error.failed,
            )
            raise error
        return results

    def fetch_schedule_events(self, location_id: str, schedule: dict) -> List[dict]:
        schedule_type = schedule.get("type")
        schedule_id = schedule.get("id")
        if not schedule_type or not schedule_id:
            raise MalformedScheduleError(f"Schedule {schedule.get('name')!r} has no id or type")
        detail = self.client.get_schedule(location_id, schedule_type, schedule_id)
        events = []
        for item in detail.get("events") or []:
            event_id = (item or {}).get("id")
            if not event_id:
                raise MalformedScheduleError(f"Schedule {schedule.get('name')!r} lists an event without an id")
            events.append(self.client.get_schedule_event(location_id, schedule_type, schedule_id, event_id))
        return events

    def _current_time(self, ctx: _ScheduleContext) -> Tuple[date, time]:
        if ctx.clock_value is None:
            detail = self.client.get_queue(ctx.location_id, ctx.queue_id)
            ctx.timezone = detail.get("timeZone")
            if not ctx.timezone:
                raise TimeSourceError("Queue has no timeZone configured")
            ctx.clock_value = self.clock(ctx.timezone)
            logger.info("Local time in %s: %s %s", ctx.timezone, ctx.clock_value[0], ctx.clock_value[1])
        return ctx.clock_value

    def _bound_schedule(self, ctx: _ScheduleContext, schedule_name: str) -> dict:
        if schedule_name in ctx.bound:
            return ctx.bound[schedule_name]
        if ctx.schedules is None:
            ctx.schedules = self.client.list_schedules(ctx.location_id)
        for schedule in ctx.schedules:
            if schedule.get("name") == schedule_name:
                bound = dict(schedule)
                bound["events"] = self.fetch_schedule_events(schedule.get("locationId") or ctx.location_id, schedule)
                ctx.bound[schedule_name] = bound
                return bound
        raise ScheduleNotFoundError(schedule_name)

    def _rule_schedule_matches(
        self, ctx: _ScheduleContext, rule: ForwardingRule, binding_key: str, form: EventForm
    ) -> bool:
        logger.info("Rule %s (%s) is enabled; checking its schedule", int(rule.index), rule.index.label)
        today, now = self._current_time(ctx)
        detail = self.client.get_selective_rule(ctx.location_id, ctx.queue_id, rule.id)
        schedule_name = detail.get(binding_key)
        if not schedule_name:
            logger.info("Rule %s has no %s; treating as no match", int(rule.index), binding_key)
            return False
        schedule = self._bound_schedule(ctx, schedule_name)
        matched = schedule_matches(schedule, today, now, form)
        logger.info("Schedule %s match=%s", schedule_name, matched)
        return matched
