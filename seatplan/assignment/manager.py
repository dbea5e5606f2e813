"""Fixed-seat assignment protocol.

A fixed seat is bound to one person through ``Seat.assigned_person_id``.
At most one person per seat and one seat per person per layout; changing a
binding always takes an explicit unassign first.  Every bind/unbind produces
an :class:`AuditEntry` that is handed to the audit sink (normally the
persistence adapter) and kept in :attr:`AssignmentManager.audit_log`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from seatplan.errors import (
    NotAssigned,
    PersonAlreadyAssigned,
    SeatUnavailable,
    SectionNotAssignable,
)
from seatplan.layout.document import LayoutDocument
from seatplan.layout.model import Seat, SeatStatus
from seatplan.status.machine import SeatEvent, SeatStatusMachine

logger = logging.getLogger(__name__)


class AssignmentAction(str, Enum):
    ASSIGN = "assign"
    UNASSIGN = "unassign"


@dataclass(frozen=True)
class AuditEntry:
    seat_id: str
    person_id: str
    action: AssignmentAction
    timestamp: datetime
    reason: str = ""

    def to_dict(self) -> dict:
        out = {
            "seatId": self.seat_id,
            "personId": self.person_id,
            "action": self.action.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.reason:
            out["reason"] = self.reason
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            seat_id=data["seatId"],
            person_id=data["personId"],
            action=AssignmentAction(data["action"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            reason=data.get("reason", ""),
        )


AuditSink = Callable[[AuditEntry], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentManager:
    """Bind and unbind people to seats of one :class:`LayoutDocument`."""

    def __init__(
        self,
        document: LayoutDocument,
        machine: Optional[SeatStatusMachine] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.document = document
        self.machine = machine or SeatStatusMachine(document)
        self.audit_sink = audit_sink
        self.audit_log: list[AuditEntry] = []
        self._clock = clock
        self.machine.release_listeners.append(self._on_forced_release)

    # ------------------------------------------------------------------ #
    # Protocol
    # ------------------------------------------------------------------ #

    def assign_fixed(self, seat_id: str, person_id: str) -> Seat:
        """Bind ``person_id`` to ``seat_id`` and occupy the seat.

        Raises
        ------
        SectionNotAssignable
            The seat's section is free seating.
        SeatUnavailable
            The seat is not ``available``.
        PersonAlreadyAssigned
            The person already holds a fixed seat in this layout.
        """
        if not person_id:
            raise ValueError("person_id must be a non-empty string")
        seat = self.document.get_seat(seat_id)
        section = self.document.get_section(seat.section_id)
        if section.free_seating:
            raise SectionNotAssignable(
                f"Seat '{seat_id}' is in free-seating section '{section.name}'."
            )
        if seat.status != SeatStatus.AVAILABLE:
            raise SeatUnavailable(f"Seat '{seat_id}' is {seat.status.value}.")
        holder = self.document.seat_for_person(person_id)
        if holder is not None:
            raise PersonAlreadyAssigned(
                f"Person '{person_id}' already holds seat '{holder.id}'."
            )

        target = self.machine.next_status(seat, SeatEvent.CHECK_IN)
        self.document.update_seat_state(seat_id, target, assigned_person_id=person_id)
        self._record(seat_id, person_id, AssignmentAction.ASSIGN)
        logger.info("Assigned seat %s to %s", seat_id, person_id)
        return seat

    def unassign_fixed(self, seat_id: str, person_id: str) -> Seat:
        """Release the binding and make the seat available again."""
        seat = self.document.get_seat(seat_id)
        if seat.assigned_person_id is None or seat.assigned_person_id != person_id:
            raise NotAssigned(f"Seat '{seat_id}' is not assigned to '{person_id}'.")
        self.document.update_seat_state(seat_id, SeatStatus.AVAILABLE, assigned_person_id=None)
        self._record(seat_id, person_id, AssignmentAction.UNASSIGN)
        logger.info("Unassigned seat %s from %s", seat_id, person_id)
        return seat

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def seat_for_person(self, person_id: str) -> Optional[Seat]:
        return self.document.seat_for_person(person_id)

    def assignments(self) -> dict[str, str]:
        """``{seat_id: person_id}`` for every fixed seat."""
        return {
            s.id: s.assigned_person_id
            for s in self.document.seats
            if s.assigned_person_id is not None
        }

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _record(self, seat_id: str, person_id: str, action: AssignmentAction, reason: str = "") -> None:
        entry = AuditEntry(seat_id, person_id, action, self._clock(), reason)
        self.audit_log.append(entry)
        if self.audit_sink is not None:
            self.audit_sink(entry)

    def _on_forced_release(self, seat: Seat, person_id: str) -> None:
        self._record(seat.id, person_id, AssignmentAction.UNASSIGN, reason="maintenance")
