import uuid
from datetime import date, datetime
from typing import Any, Optional

import pytest
from sportsclub.domain.errors import (
    AlreadyAttendedError,
    CourtNotFoundError,
    CourtUnavailableError,
    EmailAlreadyExistsError,
    PositionAlreadyTakenError,
    StorageUnavailableError,
)
from sportsclub.infrastructure.repositories import (
    SqlAlchemyCourtReservationRepository,
    SqlAlchemyTournamentAttendanceRepository,
    SqlAlchemyUserRepository,
)
from sportsclub.models import CourtReservation, UserRole
from sqlalchemy.exc import IntegrityError, OperationalError


class DummyTransaction:
    def __init__(self, session: "DummySession") -> None:
        self.session = session

    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        if exc_type is None:
            self.session.committed = True
        else:
            self.session.rolled_back = True
        return False


class DummySession:
    """Async session stub: scalar() answers from a script, flush() may raise."""

    def __init__(self, scalars: Optional[list[Any]] = None, flush_error: Optional[Exception] = None) -> None:
        self.scalars = list(scalars or [])
        self.flush_error = flush_error
        self.added: list[Any] = []
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> DummyTransaction:
        return DummyTransaction(self)

    async def scalar(self, *args: Any, **kwargs: Any) -> Any:
        value = self.scalars.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def add(self, obj: Any) -> None:
        self.added.append(obj)

    async def flush(self) -> None:
        if self.flush_error is not None:
            raise self.flush_error


def _factory(session: DummySession):
    return lambda: session


def _integrity(constraint: str) -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception(f"Duplicate entry for key '{constraint}'"))


@pytest.mark.asyncio
async def test_integrity_error_maps_to_conflict() -> None:
    session = DummySession(flush_error=_integrity("uq_users_email"))
    repo = SqlAlchemyUserRepository(_factory(session))

    with pytest.raises(EmailAlreadyExistsError):
        await repo.create(
            first_name="Ana",
            last_name="Lopez",
            email="ana@club.test",
            birth_date=date(2000, 1, 1),
            role=UserRole.USER,
        )
    assert session.rolled_back


@pytest.mark.asyncio
async def test_driver_failure_maps_to_storage_unavailable() -> None:
    session = DummySession(scalars=[OperationalError("SELECT", {}, Exception("server has gone away"))])
    repo = SqlAlchemyUserRepository(_factory(session))

    with pytest.raises(StorageUnavailableError) as excinfo:
        await repo.get(uuid.uuid4())
    assert excinfo.value.source == "users"


@pytest.mark.asyncio
async def test_attendance_conflicts_are_told_apart() -> None:
    position_clash = DummySession(flush_error=_integrity("uq_attendance_position"))
    with pytest.raises(PositionAlreadyTakenError):
        await SqlAlchemyTournamentAttendanceRepository(_factory(position_clash)).create(
            tournament_id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            attended_at=datetime(2030, 6, 1, 10, 0),
            position=1,
        )

    user_clash = DummySession(flush_error=_integrity("uq_attendance_user"))
    with pytest.raises(AlreadyAttendedError):
        await SqlAlchemyTournamentAttendanceRepository(_factory(user_clash)).create(
            tournament_id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            attended_at=datetime(2030, 6, 1, 10, 0),
            position=1,
        )


async def _reserve(session: DummySession) -> CourtReservation:
    return await SqlAlchemyCourtReservationRepository(_factory(session)).create(
        court_id=uuid.uuid4(),
        starts_at=datetime(2030, 6, 1, 10, 0),
        ends_at=datetime(2030, 6, 1, 11, 0),
        training_id=uuid.uuid4(),
        tournament_id=None,
    )


@pytest.mark.asyncio
async def test_reservation_insert_rechecks_overlap_under_court_lock() -> None:
    court_id = uuid.uuid4()
    existing = CourtReservation(id=uuid.uuid4(), court_id=court_id)
    session = DummySession(scalars=[court_id, existing])

    with pytest.raises(CourtUnavailableError):
        await _reserve(session)
    assert session.added == []
    assert session.rolled_back


@pytest.mark.asyncio
async def test_reservation_insert_needs_live_court() -> None:
    with pytest.raises(CourtNotFoundError):
        await _reserve(DummySession(scalars=[None]))


@pytest.mark.asyncio
async def test_reservation_insert_commits_when_free() -> None:
    session = DummySession(scalars=[uuid.uuid4(), None])

    reservation = await _reserve(session)

    assert session.added == [reservation]
    assert session.committed
