import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from ..domain.errors import (
    CourtHasReservationsError,
    CourtNameExistsError,
    CourtNotFoundError,
    CourtUnavailableError,
    EventAlreadyReservedError,
    MissingNameError,
    ReservationNotFoundError,
)
from ..domain.interval import TimeInterval
from ..domain.repositories import CourtRepository, CourtReservationRepository
from ..domain.services import validate_reservation_purpose, validate_reservation_window
from ..models import Court, CourtReservation, EventKind

logger = logging.getLogger(__name__)

_EARLIEST = datetime(1970, 1, 1)
_LATEST = datetime(9999, 12, 31, 23, 59, 59)


@dataclass(frozen=True)
class CourtStores:
    courts: CourtRepository
    reservations: CourtReservationRepository


async def is_court_available(
    reservation_repo: CourtReservationRepository,
    *,
    court_id: uuid.UUID,
    window: TimeInterval,
    exclude_reservation_id: uuid.UUID | None = None,
) -> bool:
    """
    True when no live reservation of the court overlaps ``window``.

    ``window`` must already be validated as non-empty. A reservation that
    ends exactly when the window starts does not conflict.
    """
    for reservation in await reservation_repo.list_overlapping(court_id, window.start, window.end):
        if reservation.id == exclude_reservation_id:
            continue
        if window.overlaps(TimeInterval(reservation.starts_at, reservation.ends_at)):
            return False
    return True


async def create_reservation(
    stores: CourtStores,
    *,
    court_id: uuid.UUID,
    starts_at: datetime,
    ends_at: datetime,
    training_id: uuid.UUID | None = None,
    tournament_id: uuid.UUID | None = None,
) -> CourtReservation:
    window = validate_reservation_window(starts_at, ends_at)
    purpose = validate_reservation_purpose(training_id, tournament_id)

    if await stores.courts.get(court_id) is None:
        raise CourtNotFoundError()
    if await stores.reservations.get_for_event(purpose.kind, purpose.event_id) is not None:
        raise EventAlreadyReservedError()
    if not await is_court_available(stores.reservations, court_id=court_id, window=window):
        raise CourtUnavailableError()

    # The store repeats the overlap check under the court lock.
    return await stores.reservations.create(
        court_id=court_id,
        starts_at=window.start,
        ends_at=window.end,
        **purpose.links(),
    )


async def get_reservation(
    reservation_repo: CourtReservationRepository,
    *,
    reservation_id: uuid.UUID,
) -> CourtReservation:
    reservation = await reservation_repo.get(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError()
    return reservation


async def get_reservation_for_event(
    reservation_repo: CourtReservationRepository,
    *,
    kind: EventKind,
    event_id: uuid.UUID,
) -> CourtReservation:
    reservation = await reservation_repo.get_for_event(kind, event_id)
    if reservation is None:
        raise ReservationNotFoundError()
    return reservation


async def list_court_reservations(
    stores: CourtStores,
    *,
    court_id: uuid.UUID,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[CourtReservation]:
    if await stores.courts.get(court_id) is None:
        raise CourtNotFoundError()
    window = validate_reservation_window(start or _EARLIEST, end or _LATEST)
    return await stores.reservations.list_overlapping(court_id, window.start, window.end)


async def release_reservation(reservation_repo: CourtReservationRepository, *, reservation_id: uuid.UUID) -> None:
    if not await reservation_repo.delete(reservation_id):
        raise ReservationNotFoundError()


async def release_reservation_for_event(
    reservation_repo: CourtReservationRepository,
    *,
    kind: EventKind,
    event_id: uuid.UUID,
) -> int:
    released = await reservation_repo.delete_for_event(kind, event_id)
    if released:
        logger.info("released %d reservation(s) for %s %s", released, kind, event_id)
    return released


async def restore_reservation(reservation_repo: CourtReservationRepository, *, reservation_id: uuid.UUID) -> None:
    if not await reservation_repo.restore(reservation_id):
        raise ReservationNotFoundError("nothing to restore")


async def create_court(court_repo: CourtRepository, *, name: str) -> Court:
    name = name.strip()
    if not name:
        raise MissingNameError()
    if await court_repo.get_by_name(name) is not None:
        raise CourtNameExistsError()
    return await court_repo.create(name=name)


async def get_court(court_repo: CourtRepository, *, court_id: uuid.UUID) -> Court:
    court = await court_repo.get(court_id)
    if court is None:
        raise CourtNotFoundError()
    return court


async def list_courts(court_repo: CourtRepository) -> list[Court]:
    return await court_repo.list()


async def delete_court(stores: CourtStores, *, court_id: uuid.UUID) -> None:
    if await stores.courts.get(court_id) is None:
        raise CourtNotFoundError()
    if await stores.reservations.court_has_reservations(court_id):
        raise CourtHasReservationsError()
    await stores.courts.delete(court_id)
