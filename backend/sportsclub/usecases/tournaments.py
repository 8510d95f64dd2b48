import uuid
from dataclasses import dataclass
from datetime import datetime

from ..domain.errors import (
    AlreadyAttendedError,
    AlreadyRegisteredError,
    NotRegisteredError,
    RegistrationNotFoundError,
    TournamentNotFoundError,
    UserDidNotAttendError,
    UserNotFoundError,
)
from ..domain.interval import TimeInterval
from ..domain.repositories import (
    TournamentAttendanceRepository,
    TournamentRegistrationRepository,
    TournamentRepository,
)
from ..domain.services import PositionClaim, validate_attendance_time, validate_position, validate_registration_time
from ..models import Tournament, TournamentAttendance, TournamentRegistration
from ..utils.time import utc_now
from . import categories as category_usecase


@dataclass(frozen=True)
class TournamentStores:
    tournaments: TournamentRepository
    registrations: TournamentRegistrationRepository
    attendances: TournamentAttendanceRepository
    eligibility: category_usecase.CategoryStores


async def _get_tournament(tournaments: TournamentRepository, tournament_id: uuid.UUID) -> Tournament:
    tournament = await tournaments.get(tournament_id)
    if tournament is None:
        raise TournamentNotFoundError()
    return tournament


async def _position_claims(stores: TournamentStores, tournament_id: uuid.UUID) -> list[PositionClaim]:
    return [PositionClaim(a.user_id, a.position) for a in await stores.attendances.list_for_tournament(tournament_id)]


async def get_tournament(tournament_repo: TournamentRepository, *, tournament_id: uuid.UUID) -> Tournament:
    return await _get_tournament(tournament_repo, tournament_id)


async def list_tournaments(tournament_repo: TournamentRepository) -> list[Tournament]:
    return await tournament_repo.list()


async def register_for_tournament(
    stores: TournamentStores,
    *,
    tournament_id: uuid.UUID,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> TournamentRegistration:
    now = now or utc_now()
    tournament = await _get_tournament(stores.tournaments, tournament_id)
    validate_registration_time(now, tournament.starts_at)
    await category_usecase.check_eligibility(
        stores.eligibility,
        user_id=user_id,
        category_id=tournament.category_id,
        today=now.date(),
    )
    if await stores.registrations.get(tournament_id, user_id) is not None:
        raise AlreadyRegisteredError()
    return await stores.registrations.create(tournament_id=tournament_id, user_id=user_id, registered_at=now)


async def record_attendance(
    stores: TournamentStores,
    *,
    tournament_id: uuid.UUID,
    user_id: uuid.UUID,
    position: int,
    now: datetime | None = None,
) -> TournamentAttendance:
    """
    Attendance is only accepted while the tournament is running, from a
    registered user, once per user, with a position no one else holds.
    """
    now = now or utc_now()
    tournament = await _get_tournament(stores.tournaments, tournament_id)
    validate_attendance_time(now, TimeInterval(tournament.starts_at, tournament.ends_at))
    if await stores.registrations.get(tournament_id, user_id) is None:
        raise NotRegisteredError()
    if await stores.attendances.get(tournament_id, user_id) is not None:
        raise AlreadyAttendedError()
    validate_position(position, user_id=user_id, claims=await _position_claims(stores, tournament_id))
    return await stores.attendances.create(
        tournament_id=tournament_id,
        user_id=user_id,
        attended_at=now,
        position=position,
    )


async def update_position(
    stores: TournamentStores,
    *,
    tournament_id: uuid.UUID,
    user_id: uuid.UUID,
    position: int,
) -> TournamentAttendance:
    await _get_tournament(stores.tournaments, tournament_id)
    if await stores.attendances.get(tournament_id, user_id) is None:
        raise UserDidNotAttendError()
    # Keeping one's own current position is not a collision.
    validate_position(position, user_id=user_id, claims=await _position_claims(stores, tournament_id))
    attendance = await stores.attendances.update_position(tournament_id, user_id, position)
    if attendance is None:
        raise UserDidNotAttendError("attendance removed concurrently")
    return attendance


async def list_attendance(stores: TournamentStores, *, tournament_id: uuid.UUID) -> list[TournamentAttendance]:
    await _get_tournament(stores.tournaments, tournament_id)
    return await stores.attendances.list_for_tournament(tournament_id)


async def cancel_registration(stores: TournamentStores, *, tournament_id: uuid.UUID, user_id: uuid.UUID) -> None:
    await _get_tournament(stores.tournaments, tournament_id)
    if not await stores.registrations.delete(tournament_id, user_id):
        raise RegistrationNotFoundError()


async def list_registrations(stores: TournamentStores, *, tournament_id: uuid.UUID) -> list[TournamentRegistration]:
    await _get_tournament(stores.tournaments, tournament_id)
    return await stores.registrations.list_for_tournament(tournament_id)


async def list_user_registrations(
    registration_repo: TournamentRegistrationRepository,
    *,
    user_id: uuid.UUID,
) -> list[TournamentRegistration]:
    return await registration_repo.list_for_user(user_id)


async def list_eligible_tournaments(stores: TournamentStores, *, user_id: uuid.UUID) -> list[Tournament]:
    if await stores.eligibility.users.get(user_id) is None:
        raise UserNotFoundError()
    memberships = await stores.eligibility.memberships.list_for_user(user_id)
    return await stores.tournaments.list_for_categories(m.category_id for m in memberships)
