import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status

from ..config import Settings, get_settings
from ..deps import (
    get_current_user_id,
    get_training_event_stores,
    get_training_registration_repo,
    get_training_repo,
    get_training_stores,
)
from ..domain.errors import DomainError
from ..domain.repositories import TrainingRegistrationRepository, TrainingRepository
from ..domain.services import EventDraft
from ..models import EventKind
from ..schemas import TrainingAttendanceMark, TrainingRead, TrainingRegistrationRead, TrainingWrite
from ..usecases import events as event_usecase
from ..usecases import trainings as training_usecase
from ..usecases.events import EventStores
from ..usecases.trainings import TrainingStores
from .common import audit, http_error, utc_naive_or_400

router = APIRouter(prefix="", tags=["trainings"])


def _draft(payload: TrainingWrite) -> EventDraft:
    starts_at, ends_at = utc_naive_or_400(payload.starts_at, payload.ends_at)
    return EventDraft(
        name=payload.name,
        category_id=payload.category_id,
        starts_at=starts_at,
        ends_at=ends_at,
        trainer_id=payload.trainer_id,
        minimum_payment=payload.minimum_payment,
    )


@router.post("/trainings", response_model=TrainingRead, status_code=status.HTTP_201_CREATED)
async def create_training(
    payload: TrainingWrite,
    stores: EventStores = Depends(get_training_event_stores),
) -> TrainingRead:
    draft = _draft(payload)
    try:
        training, reservation = await event_usecase.create_event(stores, draft=draft, court_id=payload.court_id)
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(action="event.created", initiator="admin", entity_id=training.id, event_kind=EventKind.TRAINING)
    if reservation is not None:
        audit(
            action="reservation.created",
            initiator="system",
            entity_id=training.id,
            event_kind=EventKind.TRAINING,
            court_id=reservation.court_id,
            reservation_id=reservation.id,
        )
    return TrainingRead.from_db(training=training, reservation=reservation)


@router.get("/trainings", response_model=List[TrainingRead])
async def list_trainings(training_repo: TrainingRepository = Depends(get_training_repo)) -> list[TrainingRead]:
    try:
        trainings = await training_usecase.list_trainings(training_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TrainingRead.from_db(training=training) for training in trainings]


@router.get("/trainings/{training_id}", response_model=TrainingRead)
async def get_training(
    training_id: uuid.UUID,
    training_repo: TrainingRepository = Depends(get_training_repo),
) -> TrainingRead:
    try:
        training = await training_usecase.get_training(training_repo, training_id=training_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return TrainingRead.from_db(training=training)


@router.put("/trainings/{training_id}", response_model=TrainingRead)
async def update_training(
    training_id: uuid.UUID,
    payload: TrainingWrite,
    stores: EventStores = Depends(get_training_event_stores),
) -> TrainingRead:
    draft = _draft(payload)
    try:
        training, reservation = await event_usecase.update_event(
            stores,
            event_id=training_id,
            draft=draft,
            court_id=payload.court_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="event.updated",
        initiator="admin",
        entity_id=training.id,
        event_kind=EventKind.TRAINING,
        court_id=reservation.court_id if reservation is not None else None,
        reservation_id=reservation.id if reservation is not None else None,
    )
    return TrainingRead.from_db(training=training, reservation=reservation)


@router.delete("/trainings/{training_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_training(
    training_id: uuid.UUID,
    stores: EventStores = Depends(get_training_event_stores),
) -> Response:
    try:
        released = await event_usecase.delete_event(stores, event_id=training_id)
    except DomainError as exc:
        raise http_error(exc) from exc

    if released:
        audit(
            action="reservation.released",
            initiator="system",
            entity_id=training_id,
            event_kind=EventKind.TRAINING,
            extra={"reservations_released": released},
        )
    audit(
        action="event.deleted",
        initiator="admin",
        entity_id=training_id,
        event_kind=EventKind.TRAINING,
        extra={"reservations_released": released},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/trainings/{training_id}/register",
    response_model=TrainingRegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_training(
    training_id: uuid.UUID,
    stores: TrainingStores = Depends(get_training_stores),
    settings: Settings = Depends(get_settings),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> TrainingRegistrationRead:
    try:
        registration = await training_usecase.register_for_training(
            stores,
            training_id=training_id,
            user_id=user_id,
            tuition_validity_days=settings.tuition_validity_days,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="registration.created",
        initiator="user",
        entity_id=training_id,
        event_kind=EventKind.TRAINING,
        user_id=user_id,
    )
    return TrainingRegistrationRead.from_db(registration=registration)


@router.delete("/trainings/{training_id}/registrations/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_registration(
    training_id: uuid.UUID,
    user_id: uuid.UUID,
    stores: TrainingStores = Depends(get_training_stores),
) -> Response:
    try:
        await training_usecase.cancel_registration(stores, training_id=training_id, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="registration.cancelled",
        initiator="admin",
        entity_id=training_id,
        event_kind=EventKind.TRAINING,
        user_id=user_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/trainings/{training_id}/registrations", response_model=List[TrainingRegistrationRead])
async def list_registrations(
    training_id: uuid.UUID,
    stores: TrainingStores = Depends(get_training_stores),
) -> list[TrainingRegistrationRead]:
    try:
        registrations = await training_usecase.list_registrations(stores, training_id=training_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TrainingRegistrationRead.from_db(registration=registration) for registration in registrations]


@router.post("/trainings/{training_id}/attendance", response_model=TrainingRegistrationRead)
async def mark_attendance(
    training_id: uuid.UUID,
    payload: TrainingAttendanceMark,
    stores: TrainingStores = Depends(get_training_stores),
) -> TrainingRegistrationRead:
    try:
        registration = await training_usecase.mark_attendance(
            stores,
            training_id=training_id,
            user_id=payload.user_id,
            attended=payload.attended,
        )
    except DomainError as exc:
        raise http_error(exc) from exc

    audit(
        action="attendance.recorded",
        initiator="admin",
        entity_id=training_id,
        event_kind=EventKind.TRAINING,
        user_id=payload.user_id,
        extra={"attended": payload.attended},
    )
    return TrainingRegistrationRead.from_db(registration=registration)


@router.get("/users/{user_id}/training-registrations", response_model=List[TrainingRegistrationRead])
async def list_user_registrations(
    user_id: uuid.UUID,
    registration_repo: TrainingRegistrationRepository = Depends(get_training_registration_repo),
) -> list[TrainingRegistrationRead]:
    try:
        registrations = await training_usecase.list_user_registrations(registration_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TrainingRegistrationRead.from_db(registration=registration) for registration in registrations]


@router.get("/users/{user_id}/eligible-trainings", response_model=List[TrainingRead])
async def list_eligible_trainings(
    user_id: uuid.UUID,
    stores: TrainingStores = Depends(get_training_stores),
) -> list[TrainingRead]:
    try:
        trainings = await training_usecase.list_eligible_trainings(stores, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TrainingRead.from_db(training=training) for training in trainings]


@router.get("/trainers/{trainer_id}/trainings", response_model=List[TrainingRead])
async def list_trainings_by_trainer(
    trainer_id: uuid.UUID,
    stores: TrainingStores = Depends(get_training_stores),
) -> list[TrainingRead]:
    try:
        trainings = await training_usecase.list_trainings_by_trainer(stores, trainer_id=trainer_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TrainingRead.from_db(training=training) for training in trainings]
