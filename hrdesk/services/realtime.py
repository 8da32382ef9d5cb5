from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from fastapi import Request

from hrdesk.models import BreakType, Employee
from hrdesk.services.timeutils import normalize_ts

logger = logging.getLogger("hrdesk.realtime")

DASHBOARD_CHANNEL = "dashboard"
EVENT_CHECKIN = "checkin"
EVENT_CHECKOUT = "checkout"
EVENT_BREAK_START = "break-start"
EVENT_BREAK_END = "break-end"
EVENT_LEAVE_UPDATE = "leave-update"

RECENT_EVENT_LIMIT = 50

Listener = Callable[[str, dict[str, Any]], None]


class NotificationSink(Protocol):
    def emit(self, channel: str, event: dict[str, Any]) -> None: ...


class DashboardBroadcaster:
    """In-process fan-out of dashboard events with a short replay buffer."""

    def __init__(self, *, history_size: int = RECENT_EVENT_LIMIT) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._recent: dict[str, deque[dict[str, Any]]] = {}
        self._history_size = history_size

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, channel: str, event: dict[str, Any]) -> None:
        with self._lock:
            buffer = self._recent.setdefault(channel, deque(maxlen=self._history_size))
            buffer.append(event)
            listeners = list(self._listeners)

        for listener in listeners:
            listener(channel, event)

    def recent_events(self, channel: str, limit: int = RECENT_EVENT_LIMIT) -> list[dict[str, Any]]:
        with self._lock:
            buffer = list(self._recent.get(channel, ()))
        if limit <= 0:
            return []
        return list(reversed(buffer[-limit:]))


def build_attendance_event(
    event_type: str,
    employee: Employee | None,
    *,
    employee_id: int,
    time: datetime,
    break_type: BreakType | None = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "type": event_type,
        "employee": {
            "id": employee_id,
            "name": employee.full_name if employee is not None else None,
            "employeeId": employee.employee_code if employee is not None else None,
        },
        "time": normalize_ts(time).isoformat(),
    }
    if break_type is not None:
        event["breakType"] = BreakType(break_type).value
    return event


def emit_best_effort(sink: NotificationSink | None, channel: str, event: dict[str, Any]) -> bool:
    if sink is None:
        return False
    try:
        sink.emit(channel, event)
    except Exception:
        logger.exception(
            "realtime_emit_failed",
            extra={"channel": channel, "event_type": event.get("type")},
        )
        return False
    return True


def get_notifier(request: Request) -> NotificationSink | None:
    return getattr(request.app.state, "broadcaster", None)
