from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from ..models import EventKind, Level
from .errors import (
    InvalidAgeRangeError,
    InvalidAssistanceDateError,
    InvalidEventDurationError,
    InvalidPositionError,
    InvalidRequirementLevelError,
    InvalidReservationTimeError,
    InvalidUserAgeError,
    MissingNameError,
    PositionAlreadyTakenError,
    RegistrationClosedError,
    ReservationPurposeConflictError,
    ReservationPurposeMissingError,
    UserDoesNotMeetRequirementsError,
)
from .interval import TimeInterval

MIN_EVENT_DURATION = timedelta(minutes=10)
MAX_EVENT_DURATION = timedelta(hours=5)


@dataclass(frozen=True)
class ReservationPurpose:
    kind: EventKind
    event_id: uuid.UUID

    def links(self) -> dict[str, uuid.UUID | None]:
        if self.kind is EventKind.TRAINING:
            return {"training_id": self.event_id, "tournament_id": None}
        return {"training_id": None, "tournament_id": self.event_id}


@dataclass(frozen=True)
class PositionClaim:
    user_id: uuid.UUID
    position: int


@dataclass(frozen=True)
class EventDraft:
    """Field values of a training or tournament before they are persisted."""

    name: str
    category_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    trainer_id: uuid.UUID | None = None
    minimum_payment: Decimal = Decimal("0")


def validate_category_fields(*, name: str, min_age: int, max_age: int) -> str:
    """Return the trimmed name; raise if it is blank or the age range is empty."""
    cleaned = name.strip()
    if not cleaned:
        raise MissingNameError()
    if min_age >= max_age:
        raise InvalidAgeRangeError()
    return cleaned


def validate_reservation_window(start: datetime, end: datetime) -> TimeInterval:
    window = TimeInterval(start, end)
    if window.is_empty:
        raise InvalidReservationTimeError()
    return window


def validate_event_duration(start: datetime, end: datetime) -> TimeInterval:
    """
    An event window is valid when start < end and its length lies within
    [MIN_EVENT_DURATION, MAX_EVENT_DURATION], both bounds inclusive.
    """
    window = TimeInterval(start, end)
    if window.is_empty:
        raise InvalidEventDurationError("start must be before end")
    if not MIN_EVENT_DURATION <= window.duration <= MAX_EVENT_DURATION:
        raise InvalidEventDurationError(f"duration {window.duration} out of bounds")
    return window


def validate_reservation_purpose(
    training_id: uuid.UUID | None,
    tournament_id: uuid.UUID | None,
) -> ReservationPurpose:
    if training_id is not None and tournament_id is not None:
        raise ReservationPurposeConflictError()
    if training_id is not None:
        return ReservationPurpose(EventKind.TRAINING, training_id)
    if tournament_id is not None:
        return ReservationPurpose(EventKind.TOURNAMENT, tournament_id)
    raise ReservationPurposeMissingError()


def age_on(birth_date: date, today: date) -> int:
    """Whole years elapsed between ``birth_date`` and ``today``."""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return max(years, 0)


def validate_age(age: int, *, min_age: int, max_age: int) -> None:
    if age < min_age or age > max_age:
        raise InvalidUserAgeError(f"age {age} outside [{min_age}, {max_age}]")


def validate_requirement(required_level: Level, held_level: Level | None) -> None:
    """Check one prerequisite: the user must hold it at ``required_level`` or above."""
    if held_level is None:
        raise UserDoesNotMeetRequirementsError()
    if held_level.rank < required_level.rank:
        raise InvalidRequirementLevelError(f"{held_level} < {required_level}")


def validate_registration_time(now: datetime, starts_at: datetime) -> None:
    if now >= starts_at:
        raise RegistrationClosedError()


def validate_attendance_time(now: datetime, window: TimeInterval) -> None:
    if not window.contains(now):
        raise InvalidAssistanceDateError()


def validate_position(position: int, *, user_id: uuid.UUID, claims: Iterable[PositionClaim]) -> None:
    """
    Pure validation: the position must be positive and not held by another
    user of the same tournament. The user's own current claim is ignored.
    """
    if position < 1:
        raise InvalidPositionError()
    for claim in claims:
        if claim.user_id != user_id and claim.position == position:
            raise PositionAlreadyTakenError()
