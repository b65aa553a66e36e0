"""Progress state for the UI: monotonic, capped at 99 until a run succeeds."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable

from models import Notification, NotificationLevel, ProgressPhase, ProgressState

logger = logging.getLogger(__name__)

RUNNING_CAP = 99.0

Listener = Callable[[dict[str, Any]], None]


def progress_payload(state: ProgressState) -> dict[str, Any]:
    return {
        "type": "progress",
        "phase": state.phase.value,
        "current_scene_number": state.current_scene_number,
        "total_eligible_scenes": state.total_eligible_scenes,
        "percent_complete": state.percent_complete,
    }


def notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "type": "notification",
        "level": notification.level.value,
        "message": notification.message,
    }


class ProgressTracker:
    def __init__(self) -> None:
        self._state = ProgressState()
        self._listeners: list[Listener] = []
        self._last_notification: Notification | None = None

    @property
    def state(self) -> ProgressState:
        return replace(self._state)

    @property
    def last_notification(self) -> Notification | None:
        return self._last_notification

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, payload: dict[str, Any]) -> None:
        for listener in self._listeners:
            listener(payload)

    def _publish(self) -> None:
        self._emit(progress_payload(self._state))

    def reset(self) -> None:
        self._state = ProgressState()
        self._publish()

    def start(self, total_eligible_scenes: int) -> None:
        self._state = ProgressState(
            phase=ProgressPhase.RUNNING,
            total_eligible_scenes=total_eligible_scenes,
        )
        self._last_notification = None
        self._publish()

    def scene(self, number: int) -> None:
        if self._state.phase is not ProgressPhase.RUNNING:
            return
        self._state.current_scene_number = number
        self._publish()

    def update(self, percent: float) -> None:
        """Record a running percentage; lower or post-run values are ignored."""
        if self._state.phase is not ProgressPhase.RUNNING:
            return
        value = min(RUNNING_CAP, percent)
        if value <= self._state.percent_complete:
            return
        self._state.percent_complete = value
        self._publish()

    def complete(self) -> None:
        self._state.phase = ProgressPhase.DONE
        self._state.percent_complete = 100.0
        self._publish()

    def notify(self, notification: Notification) -> None:
        self._last_notification = notification
        log = logger.info if notification.level is NotificationLevel.SUCCESS else logger.warning
        log("[progress] %s: %s", notification.level.value, notification.message)
        self._emit(notification_payload(notification))
