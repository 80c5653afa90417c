import unittest
from datetime import date, time

from services.exceptions import (
    MalformedRuleSetError,
    MalformedScheduleError,
    PartialMutationError,
    QueueNotFoundError,
    ScheduleNotFoundError,
    WebexApiError,
)
from services.queue_mode_rules import RoutingMode, RoutingRule
from services.queue_mode_service import QueueModeService, UpdateStatus

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class FakeWebexClient:
    def __init__(self, enabled, business_days=("monday",), holiday_range=None, fail_update_for=None):
        self.calls = []
        self.updates = []
        self.enabled = list(enabled)
        self.business_days = set(business_days)
        self.holiday_range = holiday_range
        self.fail_update_for = fail_update_for
        self.event_overrides = {}
        self.schedules = [
            {"id": "hol-1", "name": "Holidays", "type": "holidays", "locationId": "loc-1"},
            {"id": "biz-1", "name": "Office Hours", "type": "businessHours", "locationId": "loc-1"},
        ]

    def _record(self, name, *args):
        self.calls.append((name,) + args)

    def list_queues(self):
        self._record("list_queues")
        return [
            {"id": "q-0", "name": "Support", "locationName": "Elsewhere", "locationId": "loc-9"},
            {
                "id": "q-1",
                "name": "Support",
                "locationName": "Main Office",
                "locationId": "loc-1",
                "phoneNumber": "+15550001111",
                "extension": "2001",
            },
        ]

    def get_call_forwarding(self, location_id, queue_id):
        self._record("get_call_forwarding", location_id, queue_id)
        return {
            "rules": [
                {"id": f"r{idx}", "name": f"Rule {idx}", "enabled": flag}
                for idx, flag in enumerate(self.enabled, start=1)
            ]
        }

    def get_queue(self, location_id, queue_id):
        self._record("get_queue", location_id, queue_id)
        return {"id": queue_id, "timeZone": "America/New_York"}

    def get_selective_rule(self, location_id, queue_id, rule_id):
        self._record("get_selective_rule", rule_id)
        if rule_id == "r2":
            return {"id": rule_id, "holidaySchedule": "Holidays"}
        return {"id": rule_id, "businessSchedule": "Office Hours"}

    def list_schedules(self, location_id):
        self._record("list_schedules", location_id)
        return [dict(item) for item in self.schedules]

    def get_schedule(self, location_id, schedule_type, schedule_id):
        self._record("get_schedule", schedule_id)
        return {"id": schedule_id, "events": [{"id": f"{schedule_id}-ev1"}]}

    def get_schedule_event(self, location_id, schedule_type, schedule_id, event_id):
        self._record("get_schedule_event", event_id)
        if schedule_id in self.event_overrides:
            return dict(self.event_overrides[schedule_id], id=event_id)
        if schedule_id == "hol-1":
            start, end = self.holiday_range or ("2000-01-01", "2000-01-02")
            return {"id": event_id, "name": "Holiday", "allDayEnabled": True, "startDate": start, "endDate": end}
        return {
            "id": event_id,
            "name": "Weekdays",
            "allDayEnabled": False,
            "startTime": "09:00",
            "endTime": "17:00",
            "recurrence": {"recurWeekly": {day: day in self.business_days for day in WEEKDAYS}},
        }

    def update_selective_rule(self, location_id, queue_id, rule_id, name, enabled):
        self._record("update_selective_rule", rule_id, enabled)
        if rule_id == self.fail_update_for:
            raise WebexApiError("PUT", f"selectiveRules/{rule_id}", 500, "boom")
        self.updates.append((rule_id, name, enabled))


def fixed_clock(today, now):
    seen = []

    def _clock(timezone_name):
        seen.append(timezone_name)
        return today, now

    _clock.seen = seen
    return _clock


class QueueModeServiceTests(unittest.TestCase):
    def test_forced_business_hours_needs_no_schedules(self):
        client = FakeWebexClient([True, True, True, False])
        clock = fixed_clock(date(2024, 1, 15), time(10, 0))
        status = QueueModeService(client, clock).report_status("Main Office", "Support")
        self.assertEqual(status.active_rule, RoutingRule.FORCED_BUSINESS_HOURS)
        self.assertEqual(status.mode, RoutingMode.FORCED_BUSINESS_HOURS)
        self.assertEqual([call[0] for call in client.calls], ["list_queues", "get_call_forwarding"])
        self.assertEqual(clock.seen, [])
        self.assertIsNone(status.today)

    def test_business_schedule_not_matching_falls_back_to_after_hours(self):
        # 2024-01-16 is a Tuesday; the business schedule only covers Mondays.
        client = FakeWebexClient([False, True, True, True], business_days=("monday",))
        clock = fixed_clock(date(2024, 1, 16), time(10, 0))
        status = QueueModeService(client, clock).report_status("Main Office", "Support")
        self.assertEqual(status.active_rule, RoutingRule.NORMAL_AFTER_HOURS)
        self.assertEqual(status.mode, RoutingMode.NORMAL)
        self.assertEqual(clock.seen, ["America/New_York"])
        self.assertEqual(status.today, date(2024, 1, 16))
        self.assertEqual(len([call for call in client.calls if call[0] == "list_schedules"]), 1)

    def test_business_schedule_matching(self):
        client = FakeWebexClient([False, True, True, True], business_days=("monday",))
        status = QueueModeService(client, fixed_clock(date(2024, 1, 15), time(16, 59))).report_status(
            "Main Office", "Support"
        )
        self.assertEqual(status.active_rule, RoutingRule.NORMAL_BUSINESS_HOURS)
        self.assertEqual(status.queue["extension"], "2001")

    def test_holiday_schedule_matching(self):
        client = FakeWebexClient([False, True, True, True], holiday_range=("2024-01-01", "2024-01-31"))
        status = QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).report_status(
            "Main Office", "Support"
        )
        self.assertEqual(status.active_rule, RoutingRule.ONE_OFF_SPECIAL_DAY)
        self.assertNotIn(("get_selective_rule", "r3"), client.calls)

    def test_indeterminate_mode_still_resolves_a_rule(self):
        client = FakeWebexClient([False, False, True, False], business_days=("monday",))
        status = QueueModeService(client, fixed_clock(date(2024, 1, 15), time(12, 0))).report_status(
            "Main Office", "Support"
        )
        self.assertEqual(status.mode, RoutingMode.INDETERMINATE)
        self.assertEqual(status.active_rule, RoutingRule.NORMAL_BUSINESS_HOURS)

    def test_unknown_queue(self):
        client = FakeWebexClient([False, True, True, True])
        with self.assertRaises(QueueNotFoundError):
            QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).report_status("Main Office", "Sales")

    def test_missing_bound_schedule(self):
        client = FakeWebexClient([False, False, True, True])
        client.schedules = [item for item in client.schedules if item["name"] != "Office Hours"]
        with self.assertRaises(ScheduleNotFoundError):
            QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).report_status(
                "Main Office", "Support"
            )

    def test_business_event_without_weekly_recurrence_is_malformed(self):
        client = FakeWebexClient([False, False, True, True])
        client.event_overrides["biz-1"] = {
            "name": "January",
            "allDayEnabled": True,
            "startDate": "2024-01-01",
            "endDate": "2024-01-31",
        }
        with self.assertRaises(MalformedScheduleError):
            QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).report_status(
                "Main Office", "Support"
            )

    def test_holiday_event_is_checked_by_date_range(self):
        # The weekday flag covers Monday 2024-01-15, but the holiday dates do not.
        client = FakeWebexClient([False, True, False, True])
        client.event_overrides["hol-1"] = {
            "name": "Company day",
            "allDayEnabled": True,
            "startDate": "2024-03-01",
            "endDate": "2024-03-01",
            "recurrence": {"recurWeekly": {day: day == "monday" for day in WEEKDAYS}},
        }
        status = QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).report_status(
            "Main Office", "Support"
        )
        self.assertEqual(status.active_rule, RoutingRule.NORMAL_AFTER_HOURS)

    def test_wrong_rule_count(self):
        client = FakeWebexClient([False, True, True])
        with self.assertRaises(MalformedRuleSetError):
            QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).report_status(
                "Main Office", "Support"
            )

    def test_change_mode_applies_every_rule_in_order(self):
        client = FakeWebexClient([False, True, True, True])
        results = QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0))).change_mode(
            "Main Office", "Support", RoutingMode.FORCED_AFTER_HOURS
        )
        self.assertEqual(
            client.updates,
            [("r1", "Rule 1", False), ("r2", "Rule 2", False), ("r3", "Rule 3", False), ("r4", "Rule 4", True)],
        )
        self.assertTrue(all(item.status == UpdateStatus.APPLIED for item in results))

    def test_change_mode_partial_failure_reports_progress(self):
        client = FakeWebexClient([True, True, True, True], fail_update_for="r2")
        service = QueueModeService(client, fixed_clock(date(2024, 1, 15), time(10, 0)))
        with self.assertRaises(PartialMutationError) as ctx:
            service.change_mode("Main Office", "Support", RoutingMode.NORMAL)
        error = ctx.exception
        self.assertEqual(error.succeeded, ["r1"])
        self.assertEqual(error.failed, ["r2"])
        self.assertEqual(
            [item.status for item in error.results],
            [UpdateStatus.APPLIED, UpdateStatus.FAILED, UpdateStatus.SKIPPED, UpdateStatus.SKIPPED],
        )
        self.assertEqual(client.updates, [("r1", "Rule 1", False)])


if __name__ == "__main__":
    unittest.main()
