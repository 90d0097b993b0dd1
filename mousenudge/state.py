"""
Toggle state machine.

States:
- idle: Button reads "Start", activating it nudges the cursor
- running: Button reads "Stop", activating it returns to idle
"""

import time
import logging
from enum import Enum, auto
from typing import Callable, List, Protocol
from dataclasses import dataclass

from .cursor import CursorService

log = logging.getLogger(__name__)

START_LABEL = "Start"
STOP_LABEL = "Stop"
DEFAULT_OFFSET_Y = 100


class ToggleState(Enum):
    IDLE = auto()
    RUNNING = auto()


@dataclass
class StateChange:
    """Represents a state transition."""
    old_state: ToggleState
    new_state: ToggleState
    reason: str
    timestamp: float


class Control(Protocol):
    """The single user-facing control the toggle is bound to."""

    def set_label(self, text: str) -> None:
        ...


class ToggleController:
    """
    Owns the Start/Stop toggle for one control.

    activate() is the only entry point that mutates state. It dispatches on
    the current state: idle runs _start(), running runs _stop(). A failure while
    nudging the cursor in _start() rolls the label back and leaves the state
    at idle before the error propagates.
    """

    def __init__(self, control: Control, cursor: CursorService,
                 offset_y: int = DEFAULT_OFFSET_Y):
        self._control = control
        self._cursor = cursor
        self._offset_y = offset_y
        self._state = ToggleState.IDLE
        self._in_transition = False
        self._listeners: List[Callable[[StateChange], None]] = []

        self._control.set_label(START_LABEL)

    @property
    def state(self) -> ToggleState:
        """Current toggle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ToggleState.RUNNING

    @property
    def offset_y(self) -> int:
        """Vertical offset applied when starting."""
        return self._offset_y

    @property
    def active_handler(self) -> Callable[[], None]:
        """The handler the next activation will run."""
        if self._state == ToggleState.IDLE:
            return self._start
        return self._stop

    def add_listener(self, callback: Callable[[StateChange], None]):
        """Add a state change listener."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[StateChange], None]):
        """Remove a state change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_listeners(self, change: StateChange):
        """Notify all listeners of a state change."""
        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                log.exception(f"State listener {listener!r} failed")

    def _transition_to(self, new_state: ToggleState, reason: str):
        """Internal state transition."""
        old_state = self._state
        self._state = new_state

        self._notify_listeners(StateChange(
            old_state=old_state,
            new_state=new_state,
            reason=reason,
            timestamp=time.time()
        ))

    def activate(self):
        """
        Handle one activation of the control.

        Activations that arrive while a transition is still running are
        ignored.
        """
        if self._in_transition:
            log.warning("Activation ignored, transition already in progress")
            return

        self._in_transition = True
        try:
            self.active_handler()
        finally:
            self._in_transition = False

    def _start(self):
        """Idle -> running: nudge the cursor down by the offset."""
        log.info("Application started")
        self._control.set_label(STOP_LABEL)

        try:
            x, y = self._cursor.get_position()
            log.info(f"Mouse is at x:{x} y:{y}")
            self._cursor.move_to(x, y + self._offset_y)
        except Exception as e:
            log.error(f"Start aborted: {e}")
            self._control.set_label(START_LABEL)
            raise

        self._transition_to(ToggleState.RUNNING, "start")

    def _stop(self):
        """Running -> idle. No cursor action."""
        log.info("Application stopped")
        self._control.set_label(START_LABEL)
        self._transition_to(ToggleState.IDLE, "stop")
