"""Viewer event surface and command routing.

The viewer only reports intent: a :class:`SeatPressed` event for the seat
under the finger.  The caller decides what the press means, wraps it in a
:class:`SeatCommand` and hands it to :class:`SeatCommandRouter`, which
validates it against the status machine / assignment protocol and returns a
fresh snapshot to re-render from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from seatplan.assignment.manager import AssignmentManager
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import Seat
from seatplan.status.machine import SeatEvent, SeatStatusMachine
from seatplan.viewer.scene import Scene, Viewport, hit_test

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeatPressed:
    seat_id: str
    seat: Seat


SeatPressCallback = Callable[[Seat], None]


class SeatPressDispatcher:
    """Turns taps on a rendered scene into ``on_seat_press`` callbacks."""

    def __init__(self, snapshot: LayoutDocument, hit_radius: float = 40.0) -> None:
        self.snapshot = snapshot
        self.hit_radius = hit_radius
        self._callbacks: list[SeatPressCallback] = []

    def on_seat_press(self, callback: SeatPressCallback) -> SeatPressCallback:
        """Register ``callback``; usable as a decorator."""
        self._callbacks.append(callback)
        return callback

    def press(self, seat_id: str) -> SeatPressed:
        seat = self.snapshot.get_seat(seat_id)
        event = SeatPressed(seat_id, seat)
        for cb in self._callbacks:
            cb(seat)
        return event

    def tap(self, scene: Scene, viewport: Viewport, screen_x: float, screen_y: float) -> Optional[SeatPressed]:
        """Resolve a screen tap to the nearest seat, if one is close enough."""
        x, y = viewport.screen_to_layout(screen_x, screen_y)
        seat_id = hit_test(scene, x, y, self.hit_radius)
        if seat_id is None:
            logger.debug("Tap at (%.1f, %.1f) hit no seat", x, y)
            return None
        return self.press(seat_id)


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


class CommandKind(str, Enum):
    STATUS = "status"
    ASSIGN = "assign"
    UNASSIGN = "unassign"


@dataclass(frozen=True)
class SeatCommand:
    seat_id: str
    kind: CommandKind
    event: Optional[SeatEvent] = None
    person_id: Optional[str] = None

    @classmethod
    def status(cls, seat_id: str, event: SeatEvent | str) -> "SeatCommand":
        ev = event if isinstance(event, SeatEvent) else SeatEvent.from_str(event)
        return cls(seat_id, CommandKind.STATUS, event=ev)

    @classmethod
    def assign(cls, seat_id: str, person_id: str) -> "SeatCommand":
        return cls(seat_id, CommandKind.ASSIGN, person_id=person_id)

    @classmethod
    def unassign(cls, seat_id: str, person_id: str) -> "SeatCommand":
        return cls(seat_id, CommandKind.UNASSIGN, person_id=person_id)


class SeatCommandRouter:
    """Apply :class:`SeatCommand` objects to the live document.

    Domain errors propagate unchanged; the caller presents
    ``exc.user_message``.
    """

    def __init__(self, manager: AssignmentManager) -> None:
        self.manager = manager

    @property
    def machine(self) -> SeatStatusMachine:
        return self.manager.machine

    @property
    def document(self) -> LayoutDocument:
        return self.manager.document

    def handle(self, command: SeatCommand) -> LayoutDocument:
        if command.kind == CommandKind.STATUS:
            if command.event is None:
                raise ValueError("Status command needs an event")
            self.machine.apply(command.seat_id, command.event)
        elif command.kind == CommandKind.ASSIGN:
            self.manager.assign_fixed(command.seat_id, command.person_id or "")
        elif command.kind == CommandKind.UNASSIGN:
            self.manager.unassign_fixed(command.seat_id, command.person_id or "")
        else:
            raise ValueError(f"Unknown command kind: {command.kind}")
        logger.debug("Handled %s on seat %s", command.kind.value, command.seat_id)
        return self.document.snapshot()
