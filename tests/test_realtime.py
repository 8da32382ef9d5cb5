from __future__ import annotations

import unittest

from hrdesk.models import BreakType, Employee
from hrdesk.services.realtime import (
    DASHBOARD_CHANNEL,
    DashboardBroadcaster,
    build_attendance_event,
    emit_best_effort,
)
from tests.helpers import utc


class DashboardBroadcasterTests(unittest.TestCase):
    def test_listeners_receive_events_until_unsubscribed(self) -> None:
        broadcaster = DashboardBroadcaster()
        received: list[tuple[str, dict]] = []
        unsubscribe = broadcaster.subscribe(lambda channel, event: received.append((channel, event)))

        broadcaster.emit(DASHBOARD_CHANNEL, {"type": "checkin"})
        unsubscribe()
        broadcaster.emit(DASHBOARD_CHANNEL, {"type": "checkout"})

        self.assertEqual(received, [(DASHBOARD_CHANNEL, {"type": "checkin"})])

    def test_recent_events_newest_first_and_bounded(self) -> None:
        broadcaster = DashboardBroadcaster(history_size=3)
        for index in range(5):
            broadcaster.emit(DASHBOARD_CHANNEL, {"seq": index})

        self.assertEqual(
            [item["seq"] for item in broadcaster.recent_events(DASHBOARD_CHANNEL)],
            [4, 3, 2],
        )
        self.assertEqual(len(broadcaster.recent_events(DASHBOARD_CHANNEL, 1)), 1)
        self.assertEqual(broadcaster.recent_events("other"), [])


class AttendanceEventTests(unittest.TestCase):
    def test_event_shape(self) -> None:
        employee = Employee(id=7, employee_code="EMP007", first_name="Meera", last_name="Iyer")

        event = build_attendance_event(
            "break-start",
            employee,
            employee_id=7,
            time=utc(2026, 3, 2, 6, 30),
            break_type=BreakType.LUNCH,
        )

        self.assertEqual(
            event,
            {
                "type": "break-start",
                "employee": {"id": 7, "name": "Meera Iyer", "employeeId": "EMP007"},
                "time": "2026-03-02T06:30:00+00:00",
                "breakType": "lunch",
            },
        )

    def test_emit_best_effort_swallows_sink_errors(self) -> None:
        class _Broken:
            def emit(self, channel, event):  # type: ignore[no-untyped-def]
                raise ConnectionError("gone")

        with self.assertLogs("hrdesk.realtime", level="ERROR"):
            self.assertFalse(emit_best_effort(_Broken(), DASHBOARD_CHANNEL, {"type": "checkin"}))
        self.assertFalse(emit_best_effort(None, DASHBOARD_CHANNEL, {"type": "checkin"}))
        self.assertTrue(emit_best_effort(DashboardBroadcaster(), DASHBOARD_CHANNEL, {"type": "checkin"}))


if __name__ == "__main__":
    unittest.main()
