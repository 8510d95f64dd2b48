import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..deps import get_court_repo, get_court_stores, get_reservation_repo
from ..domain.errors import DomainError
from ..domain.repositories import CourtRepository, CourtReservationRepository
from ..domain.services import validate_reservation_window
from ..models import EventKind
from ..schemas import CourtAvailability, CourtCreate, CourtRead, ReservationRead
from ..usecases import courts as court_usecase
from ..usecases.courts import CourtStores
from .common import http_error, utc_naive_or_400

router = APIRouter(prefix="", tags=["courts"])


@router.post("/courts", response_model=CourtRead, status_code=status.HTTP_201_CREATED)
async def create_court(
    payload: CourtCreate,
    court_repo: CourtRepository = Depends(get_court_repo),
) -> CourtRead:
    try:
        court = await court_usecase.create_court(court_repo, name=payload.name)
    except DomainError as exc:
        raise http_error(exc) from exc
    return CourtRead.from_db(court=court)


@router.get("/courts", response_model=List[CourtRead])
async def list_courts(court_repo: CourtRepository = Depends(get_court_repo)) -> list[CourtRead]:
    try:
        courts = await court_usecase.list_courts(court_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [CourtRead.from_db(court=court) for court in courts]


@router.get("/courts/{court_id}", response_model=CourtRead)
async def get_court(court_id: uuid.UUID, court_repo: CourtRepository = Depends(get_court_repo)) -> CourtRead:
    try:
        court = await court_usecase.get_court(court_repo, court_id=court_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return CourtRead.from_db(court=court)


@router.delete("/courts/{court_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_court(court_id: uuid.UUID, stores: CourtStores = Depends(get_court_stores)) -> Response:
    try:
        await court_usecase.delete_court(stores, court_id=court_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/courts/{court_id}/reservations", response_model=List[ReservationRead])
async def list_court_reservations(
    court_id: uuid.UUID,
    start: Optional[datetime] = Query(default=None, description="window start (ISO 8601 with offset)"),
    end: Optional[datetime] = Query(default=None, description="window end (ISO 8601 with offset)"),
    stores: CourtStores = Depends(get_court_stores),
) -> list[ReservationRead]:
    utc_start = utc_naive_or_400(start)[0] if start is not None else None
    utc_end = utc_naive_or_400(end)[0] if end is not None else None
    try:
        reservations = await court_usecase.list_court_reservations(
            stores,
            court_id=court_id,
            start=utc_start,
            end=utc_end,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [ReservationRead.from_db(reservation=reservation) for reservation in reservations]


@router.get("/courts/{court_id}/availability", response_model=CourtAvailability)
async def check_availability(
    court_id: uuid.UUID,
    start: datetime = Query(..., description="window start (ISO 8601 with offset)"),
    end: datetime = Query(..., description="window end (ISO 8601 with offset)"),
    exclude_reservation_id: Optional[uuid.UUID] = Query(default=None),
    stores: CourtStores = Depends(get_court_stores),
) -> CourtAvailability:
    utc_start, utc_end = utc_naive_or_400(start, end)
    try:
        window = validate_reservation_window(utc_start, utc_end)
        await court_usecase.get_court(stores.courts, court_id=court_id)
        available = await court_usecase.is_court_available(
            stores.reservations,
            court_id=court_id,
            window=window,
            exclude_reservation_id=exclude_reservation_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return CourtAvailability(court_id=court_id, available=available)


@router.get("/court-reservations/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: uuid.UUID,
    reservation_repo: CourtReservationRepository = Depends(get_reservation_repo),
) -> ReservationRead:
    try:
        reservation = await court_usecase.get_reservation(reservation_repo, reservation_id=reservation_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return ReservationRead.from_db(reservation=reservation)


async def _reservation_for_event(
    reservation_repo: CourtReservationRepository,
    kind: EventKind,
    event_id: uuid.UUID,
) -> ReservationRead:
    try:
        reservation = await court_usecase.get_reservation_for_event(reservation_repo, kind=kind, event_id=event_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return ReservationRead.from_db(reservation=reservation)


@router.get("/court-reservations/by-training/{training_id}", response_model=ReservationRead)
async def get_reservation_by_training(
    training_id: uuid.UUID,
    reservation_repo: CourtReservationRepository = Depends(get_reservation_repo),
) -> ReservationRead:
    return await _reservation_for_event(reservation_repo, EventKind.TRAINING, training_id)


@router.get("/court-reservations/by-tournament/{tournament_id}", response_model=ReservationRead)
async def get_reservation_by_tournament(
    tournament_id: uuid.UUID,
    reservation_repo: CourtReservationRepository = Depends(get_reservation_repo),
) -> ReservationRead:
    return await _reservation_for_event(reservation_repo, EventKind.TOURNAMENT, tournament_id)
