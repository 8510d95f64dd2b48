"""
Create, update and delete trainings and tournaments together with their
optional court reservation.

The event store and the reservation store commit independently, so every
multi-store workflow runs as a saga: ordered steps, each with a
compensation that undoes it if a later step fails.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from ..domain.errors import (
    CategoryNotFoundError,
    DomainError,
    InvalidAmountError,
    MissingNameError,
    NotATrainerError,
    NotFoundError,
    TournamentNotFoundError,
    TrainingNotFoundError,
    UserNotFoundError,
)
from ..domain.repositories import (
    CategoryRepository,
    CourtRepository,
    CourtReservationRepository,
    EventRepository,
    UserRepository,
)
from ..domain.saga import Saga
from ..domain.services import EventDraft, ReservationPurpose, validate_event_duration
from ..models import CourtReservation, EventKind, UserRole
from . import courts as court_usecase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventStores:
    kind: EventKind
    events: EventRepository[Any]
    categories: CategoryRepository
    users: UserRepository
    courts: CourtRepository
    reservations: CourtReservationRepository

    @property
    def court_stores(self) -> court_usecase.CourtStores:
        return court_usecase.CourtStores(courts=self.courts, reservations=self.reservations)

    def not_found(self) -> NotFoundError:
        if self.kind is EventKind.TRAINING:
            return TrainingNotFoundError()
        return TournamentNotFoundError()


async def validate_draft(stores: EventStores, draft: EventDraft, *, current: Any = None) -> None:
    """
    Check a create or update payload. On update (``current`` given) the
    category and trainer are only looked up when they change.
    """
    if not draft.name.strip():
        raise MissingNameError()
    validate_event_duration(draft.starts_at, draft.ends_at)
    if current is None or draft.category_id != current.category_id:
        if await stores.categories.get(draft.category_id) is None:
            raise CategoryNotFoundError()
    if stores.kind is EventKind.TRAINING:
        if draft.minimum_payment < 0:
            raise InvalidAmountError("minimum payment must not be negative")
        if current is not None and draft.trainer_id == current.trainer_id:
            return
        if draft.trainer_id is None:
            raise NotATrainerError("trainer missing")
        trainer = await stores.users.get(draft.trainer_id)
        if trainer is None:
            raise UserNotFoundError("trainer not found")
        if trainer.role != UserRole.TRAINER:
            raise NotATrainerError()


async def _reserve(
    stores: EventStores,
    *,
    court_id: uuid.UUID,
    event_id: uuid.UUID,
    draft: EventDraft,
) -> CourtReservation:
    purpose = ReservationPurpose(stores.kind, event_id)
    return await court_usecase.create_reservation(
        stores.court_stores,
        court_id=court_id,
        starts_at=draft.starts_at,
        ends_at=draft.ends_at,
        **purpose.links(),
    )


async def create_event(
    stores: EventStores,
    *,
    draft: EventDraft,
    court_id: uuid.UUID | None = None,
) -> tuple[Any, Optional[CourtReservation]]:
    await validate_draft(stores, draft)

    saga = Saga(f"create_{stores.kind}", event_kind=stores.kind)

    async def insert_event(_: dict[str, Any]) -> Any:
        event = await stores.events.create(draft)
        saga.context["entity_id"] = event.id
        return event

    async def drop_event(event: Any) -> None:
        if not await stores.events.delete(event.id):
            raise stores.not_found()

    saga.step("insert_event", insert_event, drop_event)
    if court_id is not None:
        saga.step(
            "reserve_court",
            lambda results: _reserve(stores, court_id=court_id, event_id=results["insert_event"].id, draft=draft),
        )

    results = await saga.run()
    return results["insert_event"], results.get("reserve_court")


def _needs_release(current: CourtReservation, draft: EventDraft, court_id: uuid.UUID | None) -> bool:
    return (
        court_id is None
        or current.court_id != court_id
        or current.starts_at != draft.starts_at
        or current.ends_at != draft.ends_at
    )


async def update_event(
    stores: EventStores,
    *,
    event_id: uuid.UUID,
    draft: EventDraft,
    court_id: uuid.UUID | None = None,
) -> tuple[Any, Optional[CourtReservation]]:
    """
    Release a reservation that no longer matches before acquiring a new
    one, so the availability check never conflicts with the event's own
    booking. The event row is written last.
    """
    existing = await stores.events.get(event_id)
    if existing is None:
        raise stores.not_found()
    await validate_draft(stores, draft, current=existing)

    current = await stores.reservations.get_for_event(stores.kind, event_id)
    release = current is not None and _needs_release(current, draft, court_id)

    saga = Saga(f"update_{stores.kind}", entity_id=event_id, event_kind=stores.kind)

    if current is not None and release:
        released_id = current.id

        async def release_reservation(_: dict[str, Any]) -> uuid.UUID:
            await court_usecase.release_reservation(stores.reservations, reservation_id=released_id)
            return released_id

        async def restore_reservation(reservation_id: uuid.UUID) -> None:
            await court_usecase.restore_reservation(stores.reservations, reservation_id=reservation_id)

        saga.step("release_reservation", release_reservation, restore_reservation)

    if court_id is not None and (current is None or release):

        async def reserve(_: dict[str, Any]) -> CourtReservation:
            return await _reserve(stores, court_id=court_id, event_id=event_id, draft=draft)

        async def drop_reservation(reservation: CourtReservation) -> None:
            await court_usecase.release_reservation(stores.reservations, reservation_id=reservation.id)

        saga.step("reserve_court", reserve, drop_reservation)

    async def persist_event(_: dict[str, Any]) -> Any:
        updated = await stores.events.update(event_id, draft)
        if updated is None:
            raise stores.not_found()
        return updated

    saga.step("persist_event", persist_event)

    results = await saga.run()
    reservation = results.get("reserve_court")
    if reservation is None and not release:
        reservation = current
    return results["persist_event"], reservation


async def delete_event(stores: EventStores, *, event_id: uuid.UUID) -> int:
    """Soft-delete the event; returns how many reservations were released alongside it."""
    if await stores.events.get(event_id) is None:
        raise stores.not_found()

    released = 0
    try:
        released = await court_usecase.release_reservation_for_event(
            stores.reservations,
            kind=stores.kind,
            event_id=event_id,
        )
    except DomainError as exc:
        logger.warning(
            "could not release reservation of %s %s, continuing with delete: %s",
            stores.kind,
            event_id,
            exc,
        )

    if not await stores.events.delete(event_id):
        raise stores.not_found()
    return released
