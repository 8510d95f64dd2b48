from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

import pytest
from sportsclub.domain.errors import (
    AlreadyAttendedError,
    AlreadyRegisteredError,
    CourtNotFoundError,
    CourtUnavailableError,
    EventAlreadyReservedError,
    PositionAlreadyTakenError,
    UserAlreadyHasCategoryError,
)
from sportsclub.domain.interval import TimeInterval
from sportsclub.domain.services import EventDraft
from sportsclub.models import (
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
from sportsclub.usecases.categories import CategoryStores
from sportsclub.usecases.courts import CourtStores
from sportsclub.usecases.events import EventStores
from sportsclub.usecases.tournaments import TournamentStores
from sportsclub.usecases.trainings import TrainingStores

NOW = datetime(2030, 6, 1, 12, 0, 0)


def _live(rows: Iterable[Any]) -> list[Any]:
    return [row for row in rows if row.deleted_at is None]


class FakeUserRepo:
    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, User] = {}

    async def get(self, user_id: uuid.UUID) -> User | None:
        user = self.rows.get(user_id)
        return user if user is not None and user.deleted_at is None else None

    async def get_by_email(self, email: str) -> User | None:
        return next((u for u in _live(self.rows.values()) if u.email == email), None)

    async def create(self, *, first_name: str, last_name: str, email: str, birth_date: date, role: UserRole) -> User:
        user = User(
            id=uuid.uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            birth_date=birth_date,
            role=role,
            created_at=NOW,
            updated_at=NOW,
            deleted_at=None,
        )
        self.rows[user.id] = user
        return user

    async def list(self) -> list[User]:
        return _live(self.rows.values())

    async def set_role(self, user_id: uuid.UUID, role: UserRole) -> User | None:
        user = await self.get(user_id)
        if user is None:
            return None
        user.role = role
        return user


class FakeCategoryRepo:
    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, Category] = {}

    async def get(self, category_id: uuid.UUID) -> Category | None:
        category = self.rows.get(category_id)
        return category if category is not None and category.deleted_at is None else None

    async def get_by_name(self, name: str) -> Category | None:
        return next((c for c in _live(self.rows.values()) if c.name == name), None)

    async def create(self, *, name: str, min_age: int, max_age: int) -> Category:
        category = Category(
            id=uuid.uuid4(),
            name=name,
            min_age=min_age,
            max_age=max_age,
            created_at=NOW,
            updated_at=NOW,
            deleted_at=None,
        )
        self.rows[category.id] = category
        return category

    async def update(self, category_id: uuid.UUID, *, name: str, min_age: int, max_age: int) -> Category | None:
        category = await self.get(category_id)
        if category is None:
            return None
        category.name, category.min_age, category.max_age = name, min_age, max_age
        return category

    async def delete(self, category_id: uuid.UUID) -> bool:
        category = await self.get(category_id)
        if category is None:
            return False
        category.deleted_at = NOW
        return True

    async def list(self) -> list[Category]:
        return _live(self.rows.values())


class FakeRequirementRepo:
    def __init__(self) -> None:
        self.rows: list[CategoryRequirement] = []

    async def get(self, requirement_id: uuid.UUID) -> CategoryRequirement | None:
        return next((r for r in _live(self.rows) if r.id == requirement_id), None)

    async def create(
        self,
        *,
        category_id: uuid.UUID,
        prerequisite_category_id: uuid.UUID,
        required_level: Level,
        description: str,
    ) -> CategoryRequirement:
        requirement = CategoryRequirement(
            id=uuid.uuid4(),
            category_id=category_id,
            prerequisite_category_id=prerequisite_category_id,
            required_level=required_level,
            description=description,
            created_at=NOW,
            deleted_at=None,
        )
        self.rows.append(requirement)
        return requirement

    async def list_for_category(self, category_id: uuid.UUID) -> list[CategoryRequirement]:
        return [r for r in _live(self.rows) if r.category_id == category_id]

    async def delete(self, requirement_id: uuid.UUID) -> bool:
        requirement = await self.get(requirement_id)
        if requirement is None:
            return False
        requirement.deleted_at = NOW
        return True


class FakeMembershipRepo:
    def __init__(self) -> None:
        self.rows: list[UserCategory] = []

    async def get(self, user_id: uuid.UUID, category_id: uuid.UUID) -> UserCategory | None:
        return next((m for m in _live(self.rows) if m.user_id == user_id and m.category_id == category_id), None)

    async def create(self, *, user_id: uuid.UUID, category_id: uuid.UUID, level: Level) -> UserCategory:
        if await self.get(user_id, category_id) is not None:
            raise UserAlreadyHasCategoryError("unique index")
        membership = UserCategory(
            id=uuid.uuid4(),
            user_id=user_id,
            category_id=category_id,
            level=level,
            created_at=NOW,
            updated_at=NOW,
            deleted_at=None,
        )
        self.rows.append(membership)
        return membership

    async def update_level(self, user_id: uuid.UUID, category_id: uuid.UUID, level: Level) -> UserCategory | None:
        membership = await self.get(user_id, category_id)
        if membership is None:
            return None
        membership.level = level
        return membership

    async def delete(self, user_id: uuid.UUID, category_id: uuid.UUID) -> bool:
        membership = await self.get(user_id, category_id)
        if membership is None:
            return False
        membership.deleted_at = NOW
        return True

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserCategory]:
        return [m for m in _live(self.rows) if m.user_id == user_id]


class FakeCourtRepo:
    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, Court] = {}

    async def get(self, court_id: uuid.UUID) -> Court | None:
        court = self.rows.get(court_id)
        return court if court is not None and court.deleted_at is None else None

    async def get_by_name(self, name: str) -> Court | None:
        return next((c for c in _live(self.rows.values()) if c.name == name), None)

    async def create(self, *, name: str) -> Court:
        court = Court(id=uuid.uuid4(), name=name, created_at=NOW, deleted_at=None)
        self.rows[court.id] = court
        return court

    async def delete(self, court_id: uuid.UUID) -> bool:
        court = await self.get(court_id)
        if court is None:
            return False
        court.deleted_at = NOW
        return True

    async def list(self) -> list[Court]:
        return _live(self.rows.values())


class FakeReservationRepo:
    """Mirrors the store: the insert re-checks overlap, as if under the court lock."""

    def __init__(self, courts: FakeCourtRepo) -> None:
        self.courts = courts
        self.rows: list[CourtReservation] = []
        self.fail_delete: Optional[Exception] = None
        self.fail_restore: Optional[Exception] = None
        self.hide_overlaps = False

    def _clash(self, court_id: uuid.UUID, start: datetime, end: datetime) -> CourtReservation | None:
        window = TimeInterval(start, end)
        for row in _live(self.rows):
            if row.court_id == court_id and window.overlaps(TimeInterval(row.starts_at, row.ends_at)):
                return row
        return None

    async def get(self, reservation_id: uuid.UUID) -> CourtReservation | None:
        return next((r for r in _live(self.rows) if r.id == reservation_id), None)

    async def get_for_event(self, kind: EventKind, event_id: uuid.UUID) -> CourtReservation | None:
        return next((r for r in _live(self.rows) if r.event_kind == kind and r.event_id == event_id), None)

    async def list_overlapping(self, court_id: uuid.UUID, start: datetime, end: datetime) -> list[CourtReservation]:
        if self.hide_overlaps:
            return []
        return [
            r
            for r in _live(self.rows)
            if r.court_id == court_id and r.starts_at < end and r.ends_at > start
        ]

    async def create(
        self,
        *,
        court_id: uuid.UUID,
        starts_at: datetime,
        ends_at: datetime,
        training_id: uuid.UUID | None,
        tournament_id: uuid.UUID | None,
    ) -> CourtReservation:
        if await self.courts.get(court_id) is None:
            raise CourtNotFoundError()
        if self._clash(court_id, starts_at, ends_at) is not None:
            raise CourtUnavailableError("store re-check")
        reservation = CourtReservation(
            id=uuid.uuid4(),
            court_id=court_id,
            starts_at=starts_at,
            ends_at=ends_at,
            training_id=training_id,
            tournament_id=tournament_id,
            created_at=NOW,
            deleted_at=None,
        )
        if await self.get_for_event(reservation.event_kind, reservation.event_id) is not None:
            raise EventAlreadyReservedError("unique index")
        self.rows.append(reservation)
        return reservation

    async def delete(self, reservation_id: uuid.UUID) -> bool:
        if self.fail_delete is not None:
            raise self.fail_delete
        reservation = await self.get(reservation_id)
        if reservation is None:
            return False
        reservation.deleted_at = NOW
        return True

    async def delete_for_event(self, kind: EventKind, event_id: uuid.UUID) -> int:
        if self.fail_delete is not None:
            raise self.fail_delete
        released = 0
        for row in _live(self.rows):
            if row.event_kind == kind and row.event_id == event_id:
                row.deleted_at = NOW
                released += 1
        return released

    async def restore(self, reservation_id: uuid.UUID) -> bool:
        if self.fail_restore is not None:
            raise self.fail_restore
        reservation = next((r for r in self.rows if r.id == reservation_id), None)
        if reservation is None or reservation.deleted_at is None:
            return False
        if self._clash(reservation.court_id, reservation.starts_at, reservation.ends_at) is not None:
            raise CourtUnavailableError("slot taken meanwhile")
        reservation.deleted_at = None
        return True

    async def court_has_reservations(self, court_id: uuid.UUID) -> bool:
        return any(r.court_id == court_id for r in _live(self.rows))


class FakeEventRepo:
    def __init__(self, model: type) -> None:
        self.model = model
        self.rows: dict[uuid.UUID, Any] = {}
        self.fail_delete: Optional[Exception] = None
        self.fail_update: Optional[Exception] = None

    def _fields(self, draft: EventDraft) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "name": draft.name,
            "category_id": draft.category_id,
            "starts_at": draft.starts_at,
            "ends_at": draft.ends_at,
        }
        if self.model is Training:
            fields["trainer_id"] = draft.trainer_id
            fields["minimum_payment"] = draft.minimum_payment
        return fields

    async def get(self, event_id: uuid.UUID) -> Any:
        event = self.rows.get(event_id)
        return event if event is not None and event.deleted_at is None else None

    async def create(self, draft: EventDraft) -> Any:
        event = self.model(id=uuid.uuid4(), created_at=NOW, updated_at=NOW, deleted_at=None, **self._fields(draft))
        self.rows[event.id] = event
        return event

    async def update(self, event_id: uuid.UUID, draft: EventDraft) -> Any:
        if self.fail_update is not None:
            raise self.fail_update
        event = await self.get(event_id)
        if event is None:
            return None
        for name, value in self._fields(draft).items():
            setattr(event, name, value)
        return event

    async def delete(self, event_id: uuid.UUID) -> bool:
        if self.fail_delete is not None:
            raise self.fail_delete
        event = await self.get(event_id)
        if event is None:
            return False
        event.deleted_at = NOW
        return True

    async def list(self) -> list[Any]:
        return sorted(_live(self.rows.values()), key=lambda e: e.starts_at)

    async def list_for_categories(self, category_ids: Iterable[uuid.UUID]) -> list[Any]:
        ids = set(category_ids)
        return [e for e in await self.list() if e.category_id in ids]

    async def list_by_trainer(self, trainer_id: uuid.UUID) -> list[Any]:
        return [e for e in await self.list() if e.trainer_id == trainer_id]


class FakeTrainingRegistrationRepo:
    def __init__(self) -> None:
        self.rows: list[TrainingRegistration] = []

    async def get(self, training_id: uuid.UUID, user_id: uuid.UUID) -> TrainingRegistration | None:
        return next((r for r in _live(self.rows) if r.training_id == training_id and r.user_id == user_id), None)

    async def create(self, *, training_id: uuid.UUID, user_id: uuid.UUID, registered_at: datetime) -> TrainingRegistration:
        if await self.get(training_id, user_id) is not None:
            raise AlreadyRegisteredError("unique index")
        registration = TrainingRegistration(
            id=uuid.uuid4(),
            training_id=training_id,
            user_id=user_id,
            registered_at=registered_at,
            attended=False,
            attended_at=None,
            deleted_at=None,
        )
        self.rows.append(registration)
        return registration

    async def mark_attendance(
        self,
        training_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        attended: bool,
        attended_at: datetime | None,
    ) -> TrainingRegistration | None:
        registration = await self.get(training_id, user_id)
        if registration is None:
            return None
        registration.attended = attended
        registration.attended_at = attended_at
        return registration

    async def delete(self, training_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        registration = await self.get(training_id, user_id)
        if registration is None:
            return False
        registration.deleted_at = NOW
        return True

    async def list_for_training(self, training_id: uuid.UUID) -> list[TrainingRegistration]:
        return [r for r in _live(self.rows) if r.training_id == training_id]

    async def list_for_user(self, user_id: uuid.UUID) -> list[TrainingRegistration]:
        return [r for r in _live(self.rows) if r.user_id == user_id]


class FakeTournamentRegistrationRepo:
    def __init__(self) -> None:
        self.rows: list[TournamentRegistration] = []

    async def get(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> TournamentRegistration | None:
        return next((r for r in _live(self.rows) if r.tournament_id == tournament_id and r.user_id == user_id), None)

    async def create(
        self,
        *,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        registered_at: datetime,
    ) -> TournamentRegistration:
        if await self.get(tournament_id, user_id) is not None:
            raise AlreadyRegisteredError("unique index")
        registration = TournamentRegistration(
            id=uuid.uuid4(),
            tournament_id=tournament_id,
            user_id=user_id,
            registered_at=registered_at,
            deleted_at=None,
        )
        self.rows.append(registration)
        return registration

    async def delete(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        registration = await self.get(tournament_id, user_id)
        if registration is None:
            return False
        registration.deleted_at = NOW
        return True

    async def list_for_tournament(self, tournament_id: uuid.UUID) -> list[TournamentRegistration]:
        return [r for r in _live(self.rows) if r.tournament_id == tournament_id]

    async def list_for_user(self, user_id: uuid.UUID) -> list[TournamentRegistration]:
        return [r for r in _live(self.rows) if r.user_id == user_id]


class FakeAttendanceRepo:
    def __init__(self) -> None:
        self.rows: list[TournamentAttendance] = []

    async def get(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> TournamentAttendance | None:
        return next((a for a in _live(self.rows) if a.tournament_id == tournament_id and a.user_id == user_id), None)

    async def create(
        self,
        *,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        attended_at: datetime,
        position: int,
    ) -> TournamentAttendance:
        if await self.get(tournament_id, user_id) is not None:
            raise AlreadyAttendedError("unique index")
        if any(a.tournament_id == tournament_id and a.position == position for a in _live(self.rows)):
            raise PositionAlreadyTakenError("unique index")
        attendance = TournamentAttendance(
            id=uuid.uuid4(),
            tournament_id=tournament_id,
            user_id=user_id,
            attended_at=attended_at,
            position=position,
            deleted_at=None,
        )
        self.rows.append(attendance)
        return attendance

    async def update_position(
        self,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        position: int,
    ) -> TournamentAttendance | None:
        attendance = await self.get(tournament_id, user_id)
        if attendance is None:
            return None
        attendance.position = position
        return attendance

    async def list_for_tournament(self, tournament_id: uuid.UUID) -> list[TournamentAttendance]:
        return sorted((a for a in _live(self.rows) if a.tournament_id == tournament_id), key=lambda a: a.position)


class FakeTuitionRepo:
    def __init__(self) -> None:
        self.rows: list[Tuition] = []

    async def create(self, *, user_id: uuid.UUID, amount: Decimal, paid_at: datetime) -> Tuition:
        tuition = Tuition(id=uuid.uuid4(), user_id=user_id, amount=amount, paid_at=paid_at, deleted_at=None)
        self.rows.append(tuition)
        return tuition

    async def has_paid_at_least_since(self, user_id: uuid.UUID, amount: Decimal, since: datetime) -> bool:
        return any(t.user_id == user_id and t.paid_at >= since and t.amount >= amount for t in _live(self.rows))

    async def list_for_user(self, user_id: uuid.UUID) -> list[Tuition]:
        return [t for t in _live(self.rows) if t.user_id == user_id]

    async def list(self) -> list[Tuition]:
        return _live(self.rows)


class FakeRequestRepo:
    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, ApprovalRequest] = {}

    async def get(self, request_id: uuid.UUID) -> ApprovalRequest | None:
        return self.rows.get(request_id)

    async def create(self, *, requester_id: uuid.UUID, requested_command: str, justification: str) -> ApprovalRequest:
        request = ApprovalRequest(
            id=uuid.uuid4(),
            requester_id=requester_id,
            requested_command=requested_command,
            justification=justification,
            approved=None,
            approver_id=None,
            created_at=NOW,
            decided_at=None,
            deleted_at=None,
        )
        self.rows[request.id] = request
        return request

    async def complete(
        self,
        request_id: uuid.UUID,
        *,
        approved: bool,
        approver_id: uuid.UUID,
        decided_at: datetime,
    ) -> ApprovalRequest | None:
        request = self.rows.get(request_id)
        if request is None or request.approved is not None:
            return None
        request.approved, request.approver_id, request.decided_at = approved, approver_id, decided_at
        return request

    async def list(self) -> list[ApprovalRequest]:
        return list(self.rows.values())

    async def list_for_user(self, user_id: uuid.UUID) -> list[ApprovalRequest]:
        return [r for r in self.rows.values() if r.requester_id == user_id]


@dataclass
class Club:
    """Every store of the club, in memory, plus shortcuts to seed them."""

    users: FakeUserRepo = field(default_factory=FakeUserRepo)
    categories: FakeCategoryRepo = field(default_factory=FakeCategoryRepo)
    requirements: FakeRequirementRepo = field(default_factory=FakeRequirementRepo)
    memberships: FakeMembershipRepo = field(default_factory=FakeMembershipRepo)
    courts: FakeCourtRepo = field(default_factory=FakeCourtRepo)
    trainings: FakeEventRepo = field(default_factory=lambda: FakeEventRepo(Training))
    tournaments: FakeEventRepo = field(default_factory=lambda: FakeEventRepo(Tournament))
    training_registrations: FakeTrainingRegistrationRepo = field(default_factory=FakeTrainingRegistrationRepo)
    tournament_registrations: FakeTournamentRegistrationRepo = field(default_factory=FakeTournamentRegistrationRepo)
    attendances: FakeAttendanceRepo = field(default_factory=FakeAttendanceRepo)
    tuitions: FakeTuitionRepo = field(default_factory=FakeTuitionRepo)
    requests: FakeRequestRepo = field(default_factory=FakeRequestRepo)
    reservations: FakeReservationRepo = field(init=False)

    def __post_init__(self) -> None:
        self.reservations = FakeReservationRepo(self.courts)

    async def add_user(self, *, birth_date: date = date(2000, 1, 1), role: UserRole = UserRole.USER) -> User:
        return await self.users.create(
            first_name="Ana",
            last_name="Lopez",
            email=f"{uuid.uuid4().hex}@club.test",
            birth_date=birth_date,
            role=role,
        )

    async def add_category(self, name: str = "open", *, min_age: int = 5, max_age: int = 99) -> Category:
        return await self.categories.create(name=name, min_age=min_age, max_age=max_age)

    async def add_court(self, name: str = "Court X") -> Court:
        return await self.courts.create(name=name)

    @property
    def category_stores(self) -> CategoryStores:
        return CategoryStores(
            categories=self.categories,
            requirements=self.requirements,
            memberships=self.memberships,
            users=self.users,
        )

    @property
    def court_stores(self) -> CourtStores:
        return CourtStores(courts=self.courts, reservations=self.reservations)

    def event_stores(self, kind: EventKind) -> EventStores:
        return EventStores(
            kind=kind,
            events=self.trainings if kind is EventKind.TRAINING else self.tournaments,
            categories=self.categories,
            users=self.users,
            courts=self.courts,
            reservations=self.reservations,
        )

    @property
    def training_stores(self) -> TrainingStores:
        return TrainingStores(
            trainings=self.trainings,
            registrations=self.training_registrations,
            tuitions=self.tuitions,
            eligibility=self.category_stores,
        )

    @property
    def tournament_stores(self) -> TournamentStores:
        return TournamentStores(
            tournaments=self.tournaments,
            registrations=self.tournament_registrations,
            attendances=self.attendances,
            eligibility=self.category_stores,
        )


@pytest.fixture
def club() -> Club:
    return Club()
