"""Seat status state machine.

Normal cycle ``available → reserved → occupied → available``; any seat can
be taken out for maintenance and only comes back as ``available``.

    from         event               to
    available    reserve             reserved
    available    check_in            occupied
    reserved     check_in            occupied
    reserved     cancel_reservation  available
    occupied     check_out           available
    (any other)  mark_maintenance    maintenance
    maintenance  clear_maintenance   available

The machine keeps no cross-seat state.  Its only coupling is with fixed
assignments: a fixed seat cannot be checked out (it is released by
unassigning), and sending it to maintenance drops the binding and notifies
the registered release listeners.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Callable, Iterable

from seatplan.errors import InvalidTransitionError
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import Seat, SeatStatus

logger = logging.getLogger(__name__)


class SeatEvent(str, Enum):
    RESERVE = "reserve"
    CHECK_IN = "check_in"
    CANCEL_RESERVATION = "cancel_reservation"
    CHECK_OUT = "check_out"
    MARK_MAINTENANCE = "mark_maintenance"
    CLEAR_MAINTENANCE = "clear_maintenance"

    @classmethod
    def from_str(cls, value: str) -> "SeatEvent":
        """Accept ``check_in``, ``checkIn`` or ``check-in``."""
        raw = value.strip().replace("-", "_")
        if not raw.isupper():
            raw = re.sub(r"(?<!^)(?<!_)(?=[A-Z])", "_", raw)
        normalized = raw.lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown seat event: {value!r}")


TRANSITIONS: dict[tuple[SeatStatus, SeatEvent], SeatStatus] = {
    (SeatStatus.AVAILABLE, SeatEvent.RESERVE): SeatStatus.RESERVED,
    (SeatStatus.AVAILABLE, SeatEvent.CHECK_IN): SeatStatus.OCCUPIED,
    (SeatStatus.RESERVED, SeatEvent.CHECK_IN): SeatStatus.OCCUPIED,
    (SeatStatus.RESERVED, SeatEvent.CANCEL_RESERVATION): SeatStatus.AVAILABLE,
    (SeatStatus.OCCUPIED, SeatEvent.CHECK_OUT): SeatStatus.AVAILABLE,
    (SeatStatus.AVAILABLE, SeatEvent.MARK_MAINTENANCE): SeatStatus.MAINTENANCE,
    (SeatStatus.RESERVED, SeatEvent.MARK_MAINTENANCE): SeatStatus.MAINTENANCE,
    (SeatStatus.OCCUPIED, SeatEvent.MARK_MAINTENANCE): SeatStatus.MAINTENANCE,
    (SeatStatus.MAINTENANCE, SeatEvent.CLEAR_MAINTENANCE): SeatStatus.AVAILABLE,
}

ReleaseListener = Callable[[Seat, str], None]


def allowed_events(status: SeatStatus) -> list[SeatEvent]:
    """Events legal from ``status``, in declaration order."""
    return [ev for ev in SeatEvent if (status, ev) in TRANSITIONS]


class SeatStatusMachine:
    """Apply status events to seats of one :class:`LayoutDocument`."""

    def __init__(self, document: LayoutDocument) -> None:
        self.document = document
        self.release_listeners: list[ReleaseListener] = []

    def next_status(self, seat: Seat, event: SeatEvent) -> SeatStatus:
        """Return the target status or raise :class:`InvalidTransitionError`."""
        target = TRANSITIONS.get((seat.status, event))
        if target is None:
            raise InvalidTransitionError(seat.id, seat.status.value, event.value)
        if event == SeatEvent.CHECK_OUT and seat.is_fixed:
            raise InvalidTransitionError(
                seat.id, seat.status.value, event.value,
                reason=f"fixed to '{seat.assigned_person_id}', unassign instead",
            )
        return target

    def apply(self, seat_id: str, event: SeatEvent | str) -> Seat:
        released: list[tuple[Seat, str]] = []
        seat = self._transition(seat_id, _coerce(event), released)
        self._notify(released)
        return seat

    def apply_many(self, seat_ids: Iterable[str], event: SeatEvent | str) -> list[Seat]:
        """Apply one event to several seats; all succeed or none change."""
        ev = _coerce(event)
        released: list[tuple[Seat, str]] = []
        with self.document.batch():
            seats = [self._transition(sid, ev, released) for sid in seat_ids]
        self._notify(released)
        logger.info("Applied %s to %d seats", ev.value, len(seats))
        return seats

    def _transition(self, seat_id: str, ev: SeatEvent, released: list) -> Seat:
        seat = self.document.get_seat(seat_id)
        before = seat.status
        target = self.next_status(seat, ev)
        person_id = seat.assigned_person_id if target == SeatStatus.MAINTENANCE else None
        if person_id is not None:
            self.document.update_seat_state(seat_id, target, assigned_person_id=None)
            released.append((seat, person_id))
            logger.info("Seat %s sent to maintenance; fixed assignment of %s dropped", seat_id, person_id)
        else:
            self.document.update_seat_state(seat_id, target)
        logger.debug("Seat %s: %s -(%s)-> %s", seat_id, before.value, ev.value, target.value)
        return seat

    def _notify(self, released: list[tuple[Seat, str]]) -> None:
        for seat, person_id in released:
            for listener in self.release_listeners:
                listener(seat, person_id)

    def live_statuses(self) -> dict[str, SeatStatus]:
        return {s.id: s.status for s in self.document.seats}


def _coerce(event: SeatEvent | str) -> SeatEvent:
    return event if isinstance(event, SeatEvent) else SeatEvent.from_str(event)
