from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Protocol, TypeVar

from ..models import (
    ApprovalRequest,
    Category,
    CategoryRequirement,
    Court,
    CourtReservation,
    EventKind,
    Level,
    Tournament,
    TournamentAttendance,
    TournamentRegistration,
    Training,
    TrainingRegistration,
    Tuition,
    User,
    UserCategory,
    UserRole,
)
from .services import EventDraft

EventT = TypeVar("EventT", Training, Tournament)


class UserRepository(Protocol):
    async def get(self, user_id: uuid.UUID) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def create(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        birth_date: date,
        role: UserRole,
    ) -> User: ...

    async def list(self) -> list[User]: ...

    async def set_role(self, user_id: uuid.UUID, role: UserRole) -> User | None: ...


class CategoryRepository(Protocol):
    async def get(self, category_id: uuid.UUID) -> Category | None: ...

    async def get_by_name(self, name: str) -> Category | None: ...

    async def create(self, *, name: str, min_age: int, max_age: int) -> Category: ...

    async def update(self, category_id: uuid.UUID, *, name: str, min_age: int, max_age: int) -> Category | None: ...

    async def delete(self, category_id: uuid.UUID) -> bool: ...

    async def list(self) -> list[Category]: ...


class CategoryRequirementRepository(Protocol):
    async def get(self, requirement_id: uuid.UUID) -> CategoryRequirement | None: ...

    async def create(
        self,
        *,
        category_id: uuid.UUID,
        prerequisite_category_id: uuid.UUID,
        required_level: Level,
        description: str,
    ) -> CategoryRequirement: ...

    async def list_for_category(self, category_id: uuid.UUID) -> list[CategoryRequirement]:
        """Requirements of ``category_id`` in insertion order."""
        ...

    async def delete(self, requirement_id: uuid.UUID) -> bool: ...


class UserCategoryRepository(Protocol):
    async def get(self, user_id: uuid.UUID, category_id: uuid.UUID) -> UserCategory | None: ...

    async def create(self, *, user_id: uuid.UUID, category_id: uuid.UUID, level: Level) -> UserCategory: ...

    async def update_level(self, user_id: uuid.UUID, category_id: uuid.UUID, level: Level) -> UserCategory | None: ...

    async def delete(self, user_id: uuid.UUID, category_id: uuid.UUID) -> bool: ...

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserCategory]: ...


class CourtRepository(Protocol):
    async def get(self, court_id: uuid.UUID) -> Court | None: ...

    async def get_by_name(self, name: str) -> Court | None: ...

    async def create(self, *, name: str) -> Court: ...

    async def delete(self, court_id: uuid.UUID) -> bool: ...

    async def list(self) -> list[Court]: ...


class CourtReservationRepository(Protocol):
    async def get(self, reservation_id: uuid.UUID) -> CourtReservation | None: ...

    async def get_for_event(self, kind: EventKind, event_id: uuid.UUID) -> CourtReservation | None: ...

    async def list_overlapping(self, court_id: uuid.UUID, start: datetime, end: datetime) -> list[CourtReservation]:
        """Live reservations of the court whose interval overlaps ``[start, end)``."""
        ...

    async def create(
        self,
        *,
        court_id: uuid.UUID,
        starts_at: datetime,
        ends_at: datetime,
        training_id: uuid.UUID | None,
        tournament_id: uuid.UUID | None,
    ) -> CourtReservation:
        """
        Insert the reservation while holding the court's write lock.

        Raises CourtUnavailableError when an overlapping reservation was
        committed after the caller's availability pre-check.
        """
        ...

    async def delete(self, reservation_id: uuid.UUID) -> bool: ...

    async def delete_for_event(self, kind: EventKind, event_id: uuid.UUID) -> int: ...

    async def restore(self, reservation_id: uuid.UUID) -> bool: ...

    async def court_has_reservations(self, court_id: uuid.UUID) -> bool: ...


class EventRepository(Protocol[EventT]):
    async def get(self, event_id: uuid.UUID) -> EventT | None: ...

    async def create(self, draft: EventDraft) -> EventT: ...

    async def update(self, event_id: uuid.UUID, draft: EventDraft) -> EventT | None: ...

    async def delete(self, event_id: uuid.UUID) -> bool: ...

    async def list(self) -> list[EventT]: ...

    async def list_for_categories(self, category_ids: Iterable[uuid.UUID]) -> list[EventT]: ...


class TrainingRepository(EventRepository[Training], Protocol):
    async def list_by_trainer(self, trainer_id: uuid.UUID) -> list[Training]: ...


class TournamentRepository(EventRepository[Tournament], Protocol):
    pass


class TrainingRegistrationRepository(Protocol):
    async def get(self, training_id: uuid.UUID, user_id: uuid.UUID) -> TrainingRegistration | None: ...

    async def create(
        self,
        *,
        training_id: uuid.UUID,
        user_id: uuid.UUID,
        registered_at: datetime,
    ) -> TrainingRegistration: ...

    async def mark_attendance(
        self,
        training_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        attended: bool,
        attended_at: datetime | None,
    ) -> TrainingRegistration | None: ...

    async def delete(self, training_id: uuid.UUID, user_id: uuid.UUID) -> bool: ...

    async def list_for_training(self, training_id: uuid.UUID) -> list[TrainingRegistration]: ...

    async def list_for_user(self, user_id: uuid.UUID) -> list[TrainingRegistration]: ...


class TournamentRegistrationRepository(Protocol):
    async def get(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> TournamentRegistration | None: ...

    async def create(
        self,
        *,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        registered_at: datetime,
    ) -> TournamentRegistration: ...

    async def delete(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> bool: ...

    async def list_for_tournament(self, tournament_id: uuid.UUID) -> list[TournamentRegistration]: ...

    async def list_for_user(self, user_id: uuid.UUID) -> list[TournamentRegistration]: ...


class TournamentAttendanceRepository(Protocol):
    async def get(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> TournamentAttendance | None: ...

    async def create(
        self,
        *,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        attended_at: datetime,
        position: int,
    ) -> TournamentAttendance: ...

    async def update_position(
        self,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        position: int,
    ) -> TournamentAttendance | None: ...

    async def list_for_tournament(self, tournament_id: uuid.UUID) -> list[TournamentAttendance]: ...


class TuitionRepository(Protocol):
    async def create(self, *, user_id: uuid.UUID, amount: Decimal, paid_at: datetime) -> Tuition: ...

    async def has_paid_at_least_since(self, user_id: uuid.UUID, amount: Decimal, since: datetime) -> bool: ...

    async def list_for_user(self, user_id: uuid.UUID) -> list[Tuition]: ...

    async def list(self) -> list[Tuition]: ...


class ApprovalRequestRepository(Protocol):
    async def get(self, request_id: uuid.UUID) -> ApprovalRequest | None: ...

    async def create(
        self,
        *,
        requester_id: uuid.UUID,
        requested_command: str,
        justification: str,
    ) -> ApprovalRequest: ...

    async def complete(
        self,
        request_id: uuid.UUID,
        *,
        approved: bool,
        approver_id: uuid.UUID,
        decided_at: datetime,
    ) -> ApprovalRequest | None:
        """Record the decision unless one exists already; None when nothing was updated."""
        ...

    async def list(self) -> list[ApprovalRequest]: ...

    async def list_for_user(self, user_id: uuid.UUID) -> list[ApprovalRequest]: ...
