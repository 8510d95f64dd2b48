from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Generic, Iterable, Optional

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.errors import (
    AlreadyAttendedError,
    AlreadyRegisteredError,
    CategoryAlreadyExistsError,
    CourtNameExistsError,
    CourtNotFoundError,
    CourtUnavailableError,
    DomainError,
    EmailAlreadyExistsError,
    EventAlreadyReservedError,
    PositionAlreadyTakenError,
    StorageUnavailableError,
    UserAlreadyHasCategoryError,
)
from ..domain.repositories import (
    ApprovalRequestRepository,
    CategoryRepository,
    CategoryRequirementRepository,
    CourtRepository,
    CourtReservationRepository,
    EventT,
    TournamentAttendanceRepository,
    TournamentRegistrationRepository,
    TournamentRepository,
    TrainingRegistrationRepository,
    TrainingRepository,
    TuitionRepository,
    UserCategoryRepository,
    UserRepository,
)
from ..domain.services import EventDraft
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
from ..utils.time import utc_now

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]
ConflictFactory = Callable[[str], DomainError]


class _SqlAlchemyStore:
    """
    Base for the stores. Every call runs in its own session and transaction,
    so each store commits independently of the others.
    """

    store_name = "store"

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def _unit_of_work(self, on_conflict: Optional[ConflictFactory] = None) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session, session.begin():
                yield session
        except IntegrityError as exc:
            detail = str(exc.orig)
            if on_conflict is None:
                logger.error("%s: unexpected integrity error: %s", self.store_name, detail)
                raise StorageUnavailableError(self.store_name, detail) from exc
            raise on_conflict(detail) from exc
        except SQLAlchemyError as exc:
            logger.error("%s: storage failure: %s", self.store_name, exc)
            raise StorageUnavailableError(self.store_name, str(exc)) from exc

    @staticmethod
    async def _soft_delete(session: AsyncSession, model: Any, *criteria: Any) -> int:
        result = await session.execute(
            update(model).where(model.deleted_at.is_(None), *criteria).values(deleted_at=utc_now())
        )
        return int(result.rowcount or 0)


class SqlAlchemyUserRepository(_SqlAlchemyStore, UserRepository):
    store_name = "users"

    async def get(self, user_id: uuid.UUID) -> User | None:
        async with self._unit_of_work() as session:
            return await session.scalar(select(User).where(User.id == user_id, User.deleted_at.is_(None)))

    async def get_by_email(self, email: str) -> User | None:
        async with self._unit_of_work() as session:
            return await session.scalar(select(User).where(User.email == email, User.deleted_at.is_(None)))

    async def create(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        birth_date: date,
        role: UserRole,
    ) -> User:
        now = utc_now()
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            birth_date=birth_date,
            role=role,
            created_at=now,
            updated_at=now,
        )
        async with self._unit_of_work(EmailAlreadyExistsError) as session:
            session.add(user)
            await session.flush()
        return user

    async def list(self) -> list[User]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(User).where(User.deleted_at.is_(None)).order_by(User.last_name, User.first_name)
            )
            return list(rows)

    async def set_role(self, user_id: uuid.UUID, role: UserRole) -> User | None:
        async with self._unit_of_work() as session:
            user = await session.scalar(
                select(User).where(User.id == user_id, User.deleted_at.is_(None)).with_for_update()
            )
            if user is None:
                return None
            user.role = role
            user.updated_at = utc_now()
            return user


class SqlAlchemyCategoryRepository(_SqlAlchemyStore, CategoryRepository):
    store_name = "categories"

    async def get(self, category_id: uuid.UUID) -> Category | None:
        async with self._unit_of_work() as session:
            return await session.scalar(
                select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
            )

    async def get_by_name(self, name: str) -> Category | None:
        async with self._unit_of_work() as session:
            return await session.scalar(select(Category).where(Category.name == name, Category.deleted_at.is_(None)))

    async def create(self, *, name: str, min_age: int, max_age: int) -> Category:
        now = utc_now()
        category = Category(name=name, min_age=min_age, max_age=max_age, created_at=now, updated_at=now)
        async with self._unit_of_work(CategoryAlreadyExistsError) as session:
            session.add(category)
            await session.flush()
        return category

    async def update(self, category_id: uuid.UUID, *, name: str, min_age: int, max_age: int) -> Category | None:
        async with self._unit_of_work(CategoryAlreadyExistsError) as session:
            category = await session.scalar(
                select(Category).where(Category.id == category_id, Category.deleted_at.is_(None)).with_for_update()
            )
            if category is None:
                return None
            category.name = name
            category.min_age = min_age
            category.max_age = max_age
            category.updated_at = utc_now()
            await session.flush()
            return category

    async def delete(self, category_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            return await self._soft_delete(session, Category, Category.id == category_id) > 0

    async def list(self) -> list[Category]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(select(Category).where(Category.deleted_at.is_(None)).order_by(Category.name))
            return list(rows)


class SqlAlchemyCategoryRequirementRepository(_SqlAlchemyStore, CategoryRequirementRepository):
    store_name = "category_requirements"

    async def get(self, requirement_id: uuid.UUID) -> CategoryRequirement | None:
        async with self._unit_of_work() as session:
            return await session.scalar(
                select(CategoryRequirement).where(
                    CategoryRequirement.id == requirement_id,
                    CategoryRequirement.deleted_at.is_(None),
                )
            )

    async def create(
        self,
        *,
        category_id: uuid.UUID,
        prerequisite_category_id: uuid.UUID,
        required_level: Level,
        description: str,
    ) -> CategoryRequirement:
        requirement = CategoryRequirement(
            category_id=category_id,
            prerequisite_category_id=prerequisite_category_id,
            required_level=required_level,
            description=description,
            created_at=utc_now(),
        )
        async with self._unit_of_work() as session:
            session.add(requirement)
            await session.flush()
        return requirement

    async def list_for_category(self, category_id: uuid.UUID) -> list[CategoryRequirement]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(CategoryRequirement)
                .where(CategoryRequirement.category_id == category_id, CategoryRequirement.deleted_at.is_(None))
                .order_by(CategoryRequirement.created_at, CategoryRequirement.id)
            )
            return list(rows)

    async def delete(self, requirement_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            return await self._soft_delete(session, CategoryRequirement, CategoryRequirement.id == requirement_id) > 0


class SqlAlchemyUserCategoryRepository(_SqlAlchemyStore, UserCategoryRepository):
    store_name = "user_categories"

    @staticmethod
    def _live(user_id: uuid.UUID, category_id: uuid.UUID) -> Select[tuple[UserCategory]]:
        return select(UserCategory).where(
            UserCategory.user_id == user_id,
            UserCategory.category_id == category_id,
            UserCategory.deleted_at.is_(None),
        )

    async def get(self, user_id: uuid.UUID, category_id: uuid.UUID) -> UserCategory | None:
        async with self._unit_of_work() as session:
            return await session.scalar(self._live(user_id, category_id))

    async def create(self, *, user_id: uuid.UUID, category_id: uuid.UUID, level: Level) -> UserCategory:
        now = utc_now()
        membership = UserCategory(user_id=user_id, category_id=category_id, level=level, created_at=now, updated_at=now)
        async with self._unit_of_work(UserAlreadyHasCategoryError) as session:
            session.add(membership)
            await session.flush()
        return membership

    async def update_level(self, user_id: uuid.UUID, category_id: uuid.UUID, level: Level) -> UserCategory | None:
        async with self._unit_of_work() as session:
            membership = await session.scalar(self._live(user_id, category_id).with_for_update())
            if membership is None:
                return None
            membership.level = level
            membership.updated_at = utc_now()
            return membership

    async def delete(self, user_id: uuid.UUID, category_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            deleted = await self._soft_delete(
                session,
                UserCategory,
                UserCategory.user_id == user_id,
                UserCategory.category_id == category_id,
            )
            return deleted > 0

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserCategory]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(UserCategory)
                .where(UserCategory.user_id == user_id, UserCategory.deleted_at.is_(None))
                .order_by(UserCategory.created_at)
            )
            return list(rows)


class SqlAlchemyCourtRepository(_SqlAlchemyStore, CourtRepository):
    store_name = "courts"

    async def get(self, court_id: uuid.UUID) -> Court | None:
        async with self._unit_of_work() as session:
            return await session.scalar(select(Court).where(Court.id == court_id, Court.deleted_at.is_(None)))

    async def get_by_name(self, name: str) -> Court | None:
        async with self._unit_of_work() as session:
            return await session.scalar(select(Court).where(Court.name == name, Court.deleted_at.is_(None)))

    async def create(self, *, name: str) -> Court:
        court = Court(name=name, created_at=utc_now())
        async with self._unit_of_work(CourtNameExistsError) as session:
            session.add(court)
            await session.flush()
        return court

    async def delete(self, court_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            return await self._soft_delete(session, Court, Court.id == court_id) > 0

    async def list(self) -> list[Court]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(select(Court).where(Court.deleted_at.is_(None)).order_by(Court.name))
            return list(rows)


def _overlapping(court_id: uuid.UUID, start: datetime, end: datetime) -> Select[tuple[CourtReservation]]:
    return (
        select(CourtReservation)
        .where(
            CourtReservation.court_id == court_id,
            CourtReservation.deleted_at.is_(None),
            CourtReservation.starts_at < end,
            CourtReservation.ends_at > start,
        )
        .order_by(CourtReservation.starts_at)
    )


def _event_link(kind: EventKind, event_id: uuid.UUID) -> Any:
    if kind is EventKind.TRAINING:
        return CourtReservation.training_id == event_id
    return CourtReservation.tournament_id == event_id


class SqlAlchemyCourtReservationRepository(_SqlAlchemyStore, CourtReservationRepository):
    store_name = "court_reservations"

    async def get(self, reservation_id: uuid.UUID) -> CourtReservation | None:
        async with self._unit_of_work() as session:
            return await session.scalar(
                select(CourtReservation).where(
                    CourtReservation.id == reservation_id,
                    CourtReservation.deleted_at.is_(None),
                )
            )

    async def get_for_event(self, kind: EventKind, event_id: uuid.UUID) -> CourtReservation | None:
        async with self._unit_of_work() as session:
            return await session.scalar(
                select(CourtReservation).where(_event_link(kind, event_id), CourtReservation.deleted_at.is_(None))
            )

    async def list_overlapping(self, court_id: uuid.UUID, start: datetime, end: datetime) -> list[CourtReservation]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(_overlapping(court_id, start, end))
            return list(rows)

    async def _lock_court(self, session: AsyncSession, court_id: uuid.UUID) -> None:
        # Serializes reservation writes per court for the rest of the transaction.
        locked = await session.scalar(
            select(Court.id).where(Court.id == court_id, Court.deleted_at.is_(None)).with_for_update()
        )
        if locked is None:
            raise CourtNotFoundError()

    async def create(
        self,
        *,
        court_id: uuid.UUID,
        starts_at: datetime,
        ends_at: datetime,
        training_id: uuid.UUID | None,
        tournament_id: uuid.UUID | None,
    ) -> CourtReservation:
        reservation = CourtReservation(
            court_id=court_id,
            starts_at=starts_at,
            ends_at=ends_at,
            training_id=training_id,
            tournament_id=tournament_id,
            created_at=utc_now(),
        )
        async with self._unit_of_work(EventAlreadyReservedError) as session:
            await self._lock_court(session, court_id)
            clash = await session.scalar(_overlapping(court_id, starts_at, ends_at).limit(1))
            if clash is not None:
                raise CourtUnavailableError(f"overlaps reservation {clash.id}")
            session.add(reservation)
            await session.flush()
        return reservation

    async def delete(self, reservation_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            return await self._soft_delete(session, CourtReservation, CourtReservation.id == reservation_id) > 0

    async def delete_for_event(self, kind: EventKind, event_id: uuid.UUID) -> int:
        async with self._unit_of_work() as session:
            return await self._soft_delete(session, CourtReservation, _event_link(kind, event_id))

    async def restore(self, reservation_id: uuid.UUID) -> bool:
        async with self._unit_of_work(EventAlreadyReservedError) as session:
            reservation = await session.get(CourtReservation, reservation_id)
            if reservation is None or reservation.deleted_at is None:
                return False
            await self._lock_court(session, reservation.court_id)
            clash = await session.scalar(_overlapping(reservation.court_id, reservation.starts_at, reservation.ends_at).limit(1))
            if clash is not None:
                raise CourtUnavailableError(f"overlaps reservation {clash.id}")
            reservation.deleted_at = None
            return True

    async def court_has_reservations(self, court_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            found = await session.scalar(
                select(CourtReservation.id)
                .where(CourtReservation.court_id == court_id, CourtReservation.deleted_at.is_(None))
                .limit(1)
            )
            return found is not None


class _SqlAlchemyEventStore(_SqlAlchemyStore, Generic[EventT]):
    model: type[EventT]

    def _fields(self, draft: EventDraft) -> dict[str, Any]:
        return {
            "name": draft.name,
            "category_id": draft.category_id,
            "starts_at": draft.starts_at,
            "ends_at": draft.ends_at,
        }

    def _live(self) -> Select[tuple[EventT]]:
        return select(self.model).where(self.model.deleted_at.is_(None))

    async def get(self, event_id: uuid.UUID) -> EventT | None:
        async with self._unit_of_work() as session:
            return await session.scalar(self._live().where(self.model.id == event_id))

    async def create(self, draft: EventDraft) -> EventT:
        now = utc_now()
        event = self.model(**self._fields(draft), created_at=now, updated_at=now)
        async with self._unit_of_work() as session:
            session.add(event)
            await session.flush()
        return event

    async def update(self, event_id: uuid.UUID, draft: EventDraft) -> EventT | None:
        async with self._unit_of_work() as session:
            event = await session.scalar(self._live().where(self.model.id == event_id).with_for_update())
            if event is None:
                return None
            for field, value in self._fields(draft).items():
                setattr(event, field, value)
            event.updated_at = utc_now()
            return event

    async def delete(self, event_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            return await self._soft_delete(session, self.model, self.model.id == event_id) > 0

    async def list(self) -> list[EventT]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(self._live().order_by(self.model.starts_at))
            return list(rows)

    async def list_for_categories(self, category_ids: Iterable[uuid.UUID]) -> list[EventT]:
        ids = list(category_ids)
        if not ids:
            return []
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                self._live().where(self.model.category_id.in_(ids)).order_by(self.model.starts_at)
            )
            return list(rows)


class SqlAlchemyTrainingRepository(_SqlAlchemyEventStore[Training], TrainingRepository):
    store_name = "trainings"
    model = Training

    def _fields(self, draft: EventDraft) -> dict[str, Any]:
        fields = super()._fields(draft)
        fields["trainer_id"] = draft.trainer_id
        fields["minimum_payment"] = draft.minimum_payment
        return fields

    async def list_by_trainer(self, trainer_id: uuid.UUID) -> list[Training]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                self._live().where(Training.trainer_id == trainer_id).order_by(Training.starts_at)
            )
            return list(rows)


class SqlAlchemyTournamentRepository(_SqlAlchemyEventStore[Tournament], TournamentRepository):
    store_name = "tournaments"
    model = Tournament


class SqlAlchemyTrainingRegistrationRepository(_SqlAlchemyStore, TrainingRegistrationRepository):
    store_name = "training_registrations"

    @staticmethod
    def _live(training_id: uuid.UUID, user_id: uuid.UUID) -> Select[tuple[TrainingRegistration]]:
        return select(TrainingRegistration).where(
            TrainingRegistration.training_id == training_id,
            TrainingRegistration.user_id == user_id,
            TrainingRegistration.deleted_at.is_(None),
        )

    async def get(self, training_id: uuid.UUID, user_id: uuid.UUID) -> TrainingRegistration | None:
        async with self._unit_of_work() as session:
            return await session.scalar(self._live(training_id, user_id))

    async def create(
        self,
        *,
        training_id: uuid.UUID,
        user_id: uuid.UUID,
        registered_at: datetime,
    ) -> TrainingRegistration:
        registration = TrainingRegistration(
            training_id=training_id,
            user_id=user_id,
            registered_at=registered_at,
            attended=False,
        )
        async with self._unit_of_work(AlreadyRegisteredError) as session:
            session.add(registration)
            await session.flush()
        return registration

    async def mark_attendance(
        self,
        training_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        attended: bool,
        attended_at: datetime | None,
    ) -> TrainingRegistration | None:
        async with self._unit_of_work() as session:
            registration = await session.scalar(self._live(training_id, user_id).with_for_update())
            if registration is None:
                return None
            registration.attended = attended
            registration.attended_at = attended_at
            return registration

    async def delete(self, training_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            deleted = await self._soft_delete(
                session,
                TrainingRegistration,
                TrainingRegistration.training_id == training_id,
                TrainingRegistration.user_id == user_id,
            )
            return deleted > 0

    async def list_for_training(self, training_id: uuid.UUID) -> list[TrainingRegistration]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(TrainingRegistration)
                .where(TrainingRegistration.training_id == training_id, TrainingRegistration.deleted_at.is_(None))
                .order_by(TrainingRegistration.registered_at)
            )
            return list(rows)

    async def list_for_user(self, user_id: uuid.UUID) -> list[TrainingRegistration]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(TrainingRegistration)
                .where(TrainingRegistration.user_id == user_id, TrainingRegistration.deleted_at.is_(None))
                .order_by(TrainingRegistration.registered_at)
            )
            return list(rows)


class SqlAlchemyTournamentRegistrationRepository(_SqlAlchemyStore, TournamentRegistrationRepository):
    store_name = "tournament_registrations"

    async def get(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> TournamentRegistration | None:
        async with self._unit_of_work() as session:
            return await session.scalar(
                select(TournamentRegistration).where(
                    TournamentRegistration.tournament_id == tournament_id,
                    TournamentRegistration.user_id == user_id,
                    TournamentRegistration.deleted_at.is_(None),
                )
            )

    async def create(
        self,
        *,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        registered_at: datetime,
    ) -> TournamentRegistration:
        registration = TournamentRegistration(tournament_id=tournament_id, user_id=user_id, registered_at=registered_at)
        async with self._unit_of_work(AlreadyRegisteredError) as session:
            session.add(registration)
            await session.flush()
        return registration

    async def delete(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        async with self._unit_of_work() as session:
            deleted = await self._soft_delete(
                session,
                TournamentRegistration,
                TournamentRegistration.tournament_id == tournament_id,
                TournamentRegistration.user_id == user_id,
            )
            return deleted > 0

    async def list_for_tournament(self, tournament_id: uuid.UUID) -> list[TournamentRegistration]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(TournamentRegistration)
                .where(
                    TournamentRegistration.tournament_id == tournament_id,
                    TournamentRegistration.deleted_at.is_(None),
                )
                .order_by(TournamentRegistration.registered_at)
            )
            return list(rows)

    async def list_for_user(self, user_id: uuid.UUID) -> list[TournamentRegistration]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(TournamentRegistration)
                .where(TournamentRegistration.user_id == user_id, TournamentRegistration.deleted_at.is_(None))
                .order_by(TournamentRegistration.registered_at)
            )
            return list(rows)


def _attendance_conflict(detail: str) -> DomainError:
    if "uq_attendance_position" in detail:
        return PositionAlreadyTakenError(detail)
    return AlreadyAttendedError(detail)


class SqlAlchemyTournamentAttendanceRepository(_SqlAlchemyStore, TournamentAttendanceRepository):
    store_name = "tournament_attendances"

    @staticmethod
    def _live(tournament_id: uuid.UUID, user_id: uuid.UUID) -> Select[tuple[TournamentAttendance]]:
        return select(TournamentAttendance).where(
            TournamentAttendance.tournament_id == tournament_id,
            TournamentAttendance.user_id == user_id,
            TournamentAttendance.deleted_at.is_(None),
        )

    async def get(self, tournament_id: uuid.UUID, user_id: uuid.UUID) -> TournamentAttendance | None:
        async with self._unit_of_work() as session:
            return await session.scalar(self._live(tournament_id, user_id))

    async def create(
        self,
        *,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        attended_at: datetime,
        position: int,
    ) -> TournamentAttendance:
        attendance = TournamentAttendance(
            tournament_id=tournament_id,
            user_id=user_id,
            attended_at=attended_at,
            position=position,
        )
        async with self._unit_of_work(_attendance_conflict) as session:
            session.add(attendance)
            await session.flush()
        return attendance

    async def update_position(
        self,
        tournament_id: uuid.UUID,
        user_id: uuid.UUID,
        position: int,
    ) -> TournamentAttendance | None:
        async with self._unit_of_work(PositionAlreadyTakenError) as session:
            attendance = await session.scalar(self._live(tournament_id, user_id).with_for_update())
            if attendance is None:
                return None
            attendance.position = position
            await session.flush()
            return attendance

    async def list_for_tournament(self, tournament_id: uuid.UUID) -> list[TournamentAttendance]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(TournamentAttendance)
                .where(
                    TournamentAttendance.tournament_id == tournament_id,
                    TournamentAttendance.deleted_at.is_(None),
                )
                .order_by(TournamentAttendance.position)
            )
            return list(rows)


class SqlAlchemyTuitionRepository(_SqlAlchemyStore, TuitionRepository):
    store_name = "tuitions"

    async def create(self, *, user_id: uuid.UUID, amount: Decimal, paid_at: datetime) -> Tuition:
        tuition = Tuition(user_id=user_id, amount=amount, paid_at=paid_at)
        async with self._unit_of_work() as session:
            session.add(tuition)
            await session.flush()
        return tuition

    async def has_paid_at_least_since(self, user_id: uuid.UUID, amount: Decimal, since: datetime) -> bool:
        async with self._unit_of_work() as session:
            found = await session.scalar(
                select(Tuition.id)
                .where(
                    Tuition.user_id == user_id,
                    Tuition.deleted_at.is_(None),
                    Tuition.paid_at >= since,
                    Tuition.amount >= amount,
                )
                .limit(1)
            )
            return found is not None

    async def list_for_user(self, user_id: uuid.UUID) -> list[Tuition]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(Tuition)
                .where(Tuition.user_id == user_id, Tuition.deleted_at.is_(None))
                .order_by(Tuition.paid_at.desc())
            )
            return list(rows)

    async def list(self) -> list[Tuition]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(Tuition).where(Tuition.deleted_at.is_(None)).order_by(Tuition.paid_at.desc())
            )
            return list(rows)


class SqlAlchemyApprovalRequestRepository(_SqlAlchemyStore, ApprovalRequestRepository):
    store_name = "approval_requests"

    async def get(self, request_id: uuid.UUID) -> ApprovalRequest | None:
        async with self._unit_of_work() as session:
            return await session.scalar(
                select(ApprovalRequest).where(ApprovalRequest.id == request_id, ApprovalRequest.deleted_at.is_(None))
            )

    async def create(
        self,
        *,
        requester_id: uuid.UUID,
        requested_command: str,
        justification: str,
    ) -> ApprovalRequest:
        request = ApprovalRequest(
            requester_id=requester_id,
            requested_command=requested_command,
            justification=justification,
            created_at=utc_now(),
        )
        async with self._unit_of_work() as session:
            session.add(request)
            await session.flush()
        return request

    async def complete(
        self,
        request_id: uuid.UUID,
        *,
        approved: bool,
        approver_id: uuid.UUID,
        decided_at: datetime,
    ) -> ApprovalRequest | None:
        async with self._unit_of_work() as session:
            request = await session.scalar(
                select(ApprovalRequest)
                .where(
                    ApprovalRequest.id == request_id,
                    ApprovalRequest.deleted_at.is_(None),
                    ApprovalRequest.approved.is_(None),
                )
                .with_for_update()
            )
            if request is None:
                return None
            request.approved = approved
            request.approver_id = approver_id
            request.decided_at = decided_at
            return request

    async def list(self) -> list[ApprovalRequest]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(ApprovalRequest)
                .where(ApprovalRequest.deleted_at.is_(None))
                .order_by(ApprovalRequest.created_at.desc())
            )
            return list(rows)

    async def list_for_user(self, user_id: uuid.UUID) -> list[ApprovalRequest]:
        async with self._unit_of_work() as session:
            rows = await session.scalars(
                select(ApprovalRequest)
                .where(ApprovalRequest.requester_id == user_id, ApprovalRequest.deleted_at.is_(None))
                .order_by(ApprovalRequest.created_at.desc())
            )
            return list(rows)
