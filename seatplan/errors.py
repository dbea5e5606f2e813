"""Error taxonomy for the seat-layout engine.

SeatPlanError          – base class, carries a short ``user_message``
IntegrityError         – document-level referential violations (fatal to publish)
LayoutReferenceError   – mutation references an unknown section/category
DependencyError        – entity still referenced, cannot be removed
InvalidTransitionError – seat status machine guard failure
AssignmentError        – fixed-seat assignment protocol violations
PublishInProgress      – a publish for the same library is already running
PersistenceError       – storage failures (ConflictError, NotFound)
"""

from __future__ import annotations

from typing import Iterable


class SeatPlanError(Exception):
    """Base class for every error raised by :mod:`seatplan`."""

    user_message = "Something went wrong with the seat layout."

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Document
# --------------------------------------------------------------------------- #


class IntegrityError(SeatPlanError):
    user_message = "The layout has broken references and cannot be published."

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "Layout integrity check failed.")


class LayoutReferenceError(SeatPlanError):
    user_message = "The seat refers to a section or category that does not exist."


class DependencyError(SeatPlanError):
    user_message = "This item is still in use and cannot be removed."


class ReadOnlyDocumentError(SeatPlanError):
    user_message = "This layout snapshot cannot be edited."


class LayoutFormatError(SeatPlanError):
    user_message = "The layout file is malformed."


# --------------------------------------------------------------------------- #
# Status machine
# --------------------------------------------------------------------------- #


class InvalidTransitionError(SeatPlanError):
    user_message = "Action not allowed right now."

    def __init__(self, seat_id: str, status: str, event: str, reason: str = "") -> None:
        self.seat_id = seat_id
        self.status = status
        self.event = event
        msg = f"Seat '{seat_id}': cannot apply '{event}' while '{status}'"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg + ".")


# --------------------------------------------------------------------------- #
# Assignment protocol
# --------------------------------------------------------------------------- #


class AssignmentError(SeatPlanError):
    user_message = "The seat could not be assigned."


class SeatUnavailable(AssignmentError):
    user_message = "This seat is not available."


class SectionNotAssignable(AssignmentError):
    user_message = "Seats in this section are free seating and cannot be assigned."


class PersonAlreadyAssigned(AssignmentError):
    user_message = "This person already has a fixed seat."


class NotAssigned(AssignmentError):
    user_message = "This seat is not assigned to that person."


# --------------------------------------------------------------------------- #
# Publishing / persistence
# --------------------------------------------------------------------------- #


class PublishInProgress(SeatPlanError):
    user_message = "The layout is being published. Try again in a moment."


class PersistenceError(SeatPlanError):
    user_message = "The layout could not be stored."


class ConflictError(PersistenceError):
    user_message = "The layout was changed elsewhere. Reload and try again."


class NotFound(PersistenceError):
    user_message = "No layout found."
