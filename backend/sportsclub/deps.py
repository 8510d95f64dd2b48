import logging
import uuid
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import get_settings
from .database import async_session
from .infrastructure.repositories import (
    SqlAlchemyApprovalRequestRepository,
    SqlAlchemyCategoryRepository,
    SqlAlchemyCategoryRequirementRepository,
    SqlAlchemyCourtRepository,
    SqlAlchemyCourtReservationRepository,
    SqlAlchemyTournamentAttendanceRepository,
    SqlAlchemyTournamentRegistrationRepository,
    SqlAlchemyTournamentRepository,
    SqlAlchemyTrainingRegistrationRepository,
    SqlAlchemyTrainingRepository,
    SqlAlchemyTuitionRepository,
    SqlAlchemyUserCategoryRepository,
    SqlAlchemyUserRepository,
)
from .models import EventKind, User
from .usecases.categories import CategoryStores
from .usecases.courts import CourtStores
from .usecases.events import EventStores
from .usecases.tournaments import TournamentStores
from .usecases.trainings import TrainingStores
from .utils.auth import InvalidTokenError, member_id_from_token

logger = logging.getLogger(__name__)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> uuid.UUID:
    if authorization is None:
        raise _unauthorized("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")

    settings = get_settings()
    try:
        user_id = member_id_from_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    try:
        found = await session.scalar(select(User.id).where(User.id == user_id, User.deleted_at.is_(None)))
    except SQLAlchemyError as exc:
        logger.error("user lookup for token failed: %s", exc)
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user lookup failed") from exc
    if found is None:
        raise _unauthorized("Unknown user")
    return user_id


def get_user_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyUserRepository:
    return SqlAlchemyUserRepository(factory)


def get_category_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyCategoryRepository:
    return SqlAlchemyCategoryRepository(factory)


def get_membership_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyUserCategoryRepository:
    return SqlAlchemyUserCategoryRepository(factory)


def get_requirement_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyCategoryRequirementRepository:
    return SqlAlchemyCategoryRequirementRepository(factory)


def get_court_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyCourtRepository:
    return SqlAlchemyCourtRepository(factory)


def get_reservation_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyCourtReservationRepository:
    return SqlAlchemyCourtReservationRepository(factory)


def get_training_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyTrainingRepository:
    return SqlAlchemyTrainingRepository(factory)


def get_tournament_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyTournamentRepository:
    return SqlAlchemyTournamentRepository(factory)


def get_training_registration_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyTrainingRegistrationRepository:
    return SqlAlchemyTrainingRegistrationRepository(factory)


def get_tournament_registration_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyTournamentRegistrationRepository:
    return SqlAlchemyTournamentRegistrationRepository(factory)


def get_tuition_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyTuitionRepository:
    return SqlAlchemyTuitionRepository(factory)


def get_request_repo(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyApprovalRequestRepository:
    return SqlAlchemyApprovalRequestRepository(factory)


def get_category_stores(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> CategoryStores:
    return CategoryStores(
        categories=SqlAlchemyCategoryRepository(factory),
        requirements=SqlAlchemyCategoryRequirementRepository(factory),
        memberships=SqlAlchemyUserCategoryRepository(factory),
        users=SqlAlchemyUserRepository(factory),
    )


def get_court_stores(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> CourtStores:
    return CourtStores(
        courts=SqlAlchemyCourtRepository(factory),
        reservations=SqlAlchemyCourtReservationRepository(factory),
    )


def _event_stores(kind: EventKind, factory: async_sessionmaker[AsyncSession]) -> EventStores:
    events = SqlAlchemyTrainingRepository(factory) if kind is EventKind.TRAINING else SqlAlchemyTournamentRepository(factory)
    return EventStores(
        kind=kind,
        events=events,
        categories=SqlAlchemyCategoryRepository(factory),
        users=SqlAlchemyUserRepository(factory),
        courts=SqlAlchemyCourtRepository(factory),
        reservations=SqlAlchemyCourtReservationRepository(factory),
    )


def get_training_event_stores(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> EventStores:
    return _event_stores(EventKind.TRAINING, factory)


def get_tournament_event_stores(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> EventStores:
    return _event_stores(EventKind.TOURNAMENT, factory)


def get_training_stores(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    eligibility: CategoryStores = Depends(get_category_stores),
) -> TrainingStores:
    return TrainingStores(
        trainings=SqlAlchemyTrainingRepository(factory),
        registrations=SqlAlchemyTrainingRegistrationRepository(factory),
        tuitions=SqlAlchemyTuitionRepository(factory),
        eligibility=eligibility,
    )


def get_tournament_stores(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    eligibility: CategoryStores = Depends(get_category_stores),
) -> TournamentStores:
    return TournamentStores(
        tournaments=SqlAlchemyTournamentRepository(factory),
        registrations=SqlAlchemyTournamentRegistrationRepository(factory),
        attendances=SqlAlchemyTournamentAttendanceRepository(factory),
        eligibility=eligibility,
    )
