import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status

from ..deps import (
    get_current_user_id,
    get_tournament_event_stores,
    get_tournament_registration_repo,
    get_tournament_repo,
    get_tournament_stores,
)
from ..domain.errors import DomainError
from ..domain.repositories import TournamentRegistrationRepository, TournamentRepository
from ..domain.services import EventDraft
from ..models import EventKind
from ..schemas import (
    AttendanceCreate,
    AttendanceRead,
    PositionUpdate,
    TournamentRead,
    TournamentRegistrationRead,
    TournamentWrite,
)
from ..usecases import events as event_usecase
from ..usecases import tournaments as tournament_usecase
from ..usecases.events import EventStores
from ..usecases.tournaments import TournamentStores
from .common import audit, http_error, utc_naive_or_400

router = APIRouter(prefix="", tags=["tournaments"])


def _draft(payload: TournamentWrite) -> EventDraft:
    starts_at, ends_at = utc_naive_or_400(payload.starts_at, payload.ends_at)
    return EventDraft(name=payload.name, category_id=payload.category_id, starts_at=starts_at, ends_at=ends_at)


@router.post("/tournaments", response_model=TournamentRead, status_code=status.HTTP_201_CREATED)
async def create_tournament(
    payload: TournamentWrite,
    stores: EventStores = Depends(get_tournament_event_stores),
) -> TournamentRead:
    draft = _draft(payload)
    try:
        tournament, reservation = await event_usecase.create_event(stores, draft=draft, court_id=payload.court_id)
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(action="event.created", initiator="admin", entity_id=tournament.id, event_kind=EventKind.TOURNAMENT)
    if reservation is not None:
        audit(
            action="reservation.created",
            initiator="system",
            entity_id=tournament.id,
            event_kind=EventKind.TOURNAMENT,
            court_id=reservation.court_id,
            reservation_id=reservation.id,
        )
    return TournamentRead.from_db(tournament=tournament, reservation=reservation)


@router.get("/tournaments", response_model=List[TournamentRead])
async def list_tournaments(
    tournament_repo: TournamentRepository = Depends(get_tournament_repo),
) -> list[TournamentRead]:
    try:
        tournaments = await tournament_usecase.list_tournaments(tournament_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TournamentRead.from_db(tournament=tournament) for tournament in tournaments]


@router.get("/tournaments/{tournament_id}", response_model=TournamentRead)
async def get_tournament(
    tournament_id: uuid.UUID,
    tournament_repo: TournamentRepository = Depends(get_tournament_repo),
) -> TournamentRead:
    try:
        tournament = await tournament_usecase.get_tournament(tournament_repo, tournament_id=tournament_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return TournamentRead.from_db(tournament=tournament)


@router.put("/tournaments/{tournament_id}", response_model=TournamentRead)
async def update_tournament(
    tournament_id: uuid.UUID,
    payload: TournamentWrite,
    stores: EventStores = Depends(get_tournament_event_stores),
) -> TournamentRead:
    draft = _draft(payload)
    try:
        tournament, reservation = await event_usecase.update_event(
            stores,
            event_id=tournament_id,
            draft=draft,
            court_id=payload.court_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="event.updated",
        initiator="admin",
        entity_id=tournament.id,
        event_kind=EventKind.TOURNAMENT,
        court_id=reservation.court_id if reservation is not None else None,
        reservation_id=reservation.id if reservation is not None else None,
    )
    return TournamentRead.from_db(tournament=tournament, reservation=reservation)


@router.delete("/tournaments/{tournament_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tournament(
    tournament_id: uuid.UUID,
    stores: EventStores = Depends(get_tournament_event_stores),
) -> Response:
    try:
        released = await event_usecase.delete_event(stores, event_id=tournament_id)
    except DomainError as exc:
        raise http_error(exc) from exc

    if released:
        audit(
            action="reservation.released",
            initiator="system",
            entity_id=tournament_id,
            event_kind=EventKind.TOURNAMENT,
            extra={"reservations_released": released},
        )
    audit(
        action="event.deleted",
        initiator="admin",
        entity_id=tournament_id,
        event_kind=EventKind.TOURNAMENT,
        extra={"reservations_released": released},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/tournaments/{tournament_id}/register",
    response_model=TournamentRegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_tournament(
    tournament_id: uuid.UUID,
    stores: TournamentStores = Depends(get_tournament_stores),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> TournamentRegistrationRead:
    try:
        registration = await tournament_usecase.register_for_tournament(
            stores,
            tournament_id=tournament_id,
            user_id=user_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="registration.created",
        initiator="user",
        entity_id=tournament_id,
        event_kind=EventKind.TOURNAMENT,
        user_id=user_id,
    )
    return TournamentRegistrationRead.from_db(registration=registration)


@router.delete("/tournaments/{tournament_id}/registrations/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_registration(
    tournament_id: uuid.UUID,
    user_id: uuid.UUID,
    stores: TournamentStores = Depends(get_tournament_stores),
) -> Response:
    try:
        await tournament_usecase.cancel_registration(stores, tournament_id=tournament_id, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="registration.cancelled",
        initiator="admin",
        entity_id=tournament_id,
        event_kind=EventKind.TOURNAMENT,
        user_id=user_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/tournaments/{tournament_id}/registrations", response_model=List[TournamentRegistrationRead])
async def list_registrations(
    tournament_id: uuid.UUID,
    stores: TournamentStores = Depends(get_tournament_stores),
) -> list[TournamentRegistrationRead]:
    try:
        registrations = await tournament_usecase.list_registrations(stores, tournament_id=tournament_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TournamentRegistrationRead.from_db(registration=registration) for registration in registrations]


@router.post(
    "/tournaments/{tournament_id}/attendance",
    response_model=AttendanceRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_attendance(
    tournament_id: uuid.UUID,
    payload: AttendanceCreate,
    stores: TournamentStores = Depends(get_tournament_stores),
) -> AttendanceRead:
    try:
        attendance = await tournament_usecase.record_attendance(
            stores,
            tournament_id=tournament_id,
            user_id=payload.user_id,
            position=payload.position,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="attendance.recorded",
        initiator="admin",
        entity_id=tournament_id,
        event_kind=EventKind.TOURNAMENT,
        user_id=payload.user_id,
        extra={"position": attendance.position},
    )
    return AttendanceRead.from_db(attendance=attendance)


@router.get("/tournaments/{tournament_id}/attendance", response_model=List[AttendanceRead])
async def list_attendance(
    tournament_id: uuid.UUID,
    stores: TournamentStores = Depends(get_tournament_stores),
) -> list[AttendanceRead]:
    try:
        attendances = await tournament_usecase.list_attendance(stores, tournament_id=tournament_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [AttendanceRead.from_db(attendance=attendance) for attendance in attendances]


@router.put("/tournaments/{tournament_id}/users/{user_id}/position", response_model=AttendanceRead)
async def update_position(
    tournament_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: PositionUpdate,
    stores: TournamentStores = Depends(get_tournament_stores),
) -> AttendanceRead:
    try:
        attendance = await tournament_usecase.update_position(
            stores,
            tournament_id=tournament_id,
            user_id=user_id,
            position=payload.position,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="position.updated",
        initiator="admin",
        entity_id=tournament_id,
        event_kind=EventKind.TOURNAMENT,
        user_id=user_id,
        extra={"position": attendance.position},
    )
    return AttendanceRead.from_db(attendance=attendance)


@router.get("/users/{user_id}/tournament-registrations", response_model=List[TournamentRegistrationRead])
async def list_user_registrations(
    user_id: uuid.UUID,
    registration_repo: TournamentRegistrationRepository = Depends(get_tournament_registration_repo),
) -> list[TournamentRegistrationRead]:
    try:
        registrations = await tournament_usecase.list_user_registrations(registration_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TournamentRegistrationRead.from_db(registration=registration) for registration in registrations]


@router.get("/users/{user_id}/eligible-tournaments", response_model=List[TournamentRead])
async def list_eligible_tournaments(
    user_id: uuid.UUID,
    stores: TournamentStores = Depends(get_tournament_stores),
) -> list[TournamentRead]:
    try:
        tournaments = await tournament_usecase.list_eligible_tournaments(stores, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TournamentRead.from_db(tournament=tournament) for tournament in tournaments]
