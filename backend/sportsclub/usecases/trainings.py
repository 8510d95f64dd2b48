import uuid
from dataclasses import dataclass
from datetime import datetime

from ..domain.errors import (
    AlreadyRegisteredError,
    InsufficientTuitionError,
    InvalidAssistanceDateError,
    NotATrainerError,
    NotRegisteredError,
    RegistrationNotFoundError,
    TrainingNotFoundError,
    UserNotFoundError,
)
from ..domain.repositories import TrainingRegistrationRepository, TrainingRepository, TuitionRepository
from ..domain.services import validate_registration_time
from ..models import Training, TrainingRegistration, UserRole
from ..utils.time import utc_now
from . import categories as category_usecase
from . import tuitions as tuition_usecase


@dataclass(frozen=True)
class TrainingStores:
    trainings: TrainingRepository
    registrations: TrainingRegistrationRepository
    tuitions: TuitionRepository
    eligibility: category_usecase.CategoryStores


async def _get_training(trainings: TrainingRepository, training_id: uuid.UUID) -> Training:
    training = await trainings.get(training_id)
    if training is None:
        raise TrainingNotFoundError()
    return training


async def get_training(training_repo: TrainingRepository, *, training_id: uuid.UUID) -> Training:
    return await _get_training(training_repo, training_id)


async def list_trainings(training_repo: TrainingRepository) -> list[Training]:
    return await training_repo.list()


async def register_for_training(
    stores: TrainingStores,
    *,
    training_id: uuid.UUID,
    user_id: uuid.UUID,
    now: datetime | None = None,
    tuition_validity_days: int = tuition_usecase.DEFAULT_VALIDITY_DAYS,
) -> TrainingRegistration:
    now = now or utc_now()
    training = await _get_training(stores.trainings, training_id)
    validate_registration_time(now, training.starts_at)
    await category_usecase.check_eligibility(
        stores.eligibility,
        user_id=user_id,
        category_id=training.category_id,
        today=now.date(),
    )
    if await stores.registrations.get(training_id, user_id) is not None:
        raise AlreadyRegisteredError()
    if training.minimum_payment > 0:
        paid = await tuition_usecase.has_active_tuition_at_least(
            stores.tuitions,
            user_id=user_id,
            amount=training.minimum_payment,
            now=now,
            validity_days=tuition_validity_days,
        )
        if not paid:
            raise InsufficientTuitionError()
    return await stores.registrations.create(training_id=training_id, user_id=user_id, registered_at=now)


async def mark_attendance(
    stores: TrainingStores,
    *,
    training_id: uuid.UUID,
    user_id: uuid.UUID,
    attended: bool = True,
    now: datetime | None = None,
) -> TrainingRegistration:
    now = now or utc_now()
    training = await _get_training(stores.trainings, training_id)
    if now < training.starts_at:
        raise InvalidAssistanceDateError("training has not started")
    if await stores.registrations.get(training_id, user_id) is None:
        raise NotRegisteredError()
    registration = await stores.registrations.mark_attendance(
        training_id,
        user_id,
        attended=attended,
        attended_at=now if attended else None,
    )
    if registration is None:
        raise NotRegisteredError("registration removed concurrently")
    return registration


async def cancel_registration(stores: TrainingStores, *, training_id: uuid.UUID, user_id: uuid.UUID) -> None:
    await _get_training(stores.trainings, training_id)
    if not await stores.registrations.delete(training_id, user_id):
        raise RegistrationNotFoundError()


async def list_registrations(stores: TrainingStores, *, training_id: uuid.UUID) -> list[TrainingRegistration]:
    await _get_training(stores.trainings, training_id)
    return await stores.registrations.list_for_training(training_id)


async def list_user_registrations(
    registration_repo: TrainingRegistrationRepository,
    *,
    user_id: uuid.UUID,
) -> list[TrainingRegistration]:
    return await registration_repo.list_for_user(user_id)


async def list_eligible_trainings(stores: TrainingStores, *, user_id: uuid.UUID) -> list[Training]:
    """Trainings in any category the user currently holds."""
    if await stores.eligibility.users.get(user_id) is None:
        raise UserNotFoundError()
    memberships = await stores.eligibility.memberships.list_for_user(user_id)
    return await stores.trainings.list_for_categories(m.category_id for m in memberships)


async def list_trainings_by_trainer(stores: TrainingStores, *, trainer_id: uuid.UUID) -> list[Training]:
    trainer = await stores.eligibility.users.get(trainer_id)
    if trainer is None:
        raise UserNotFoundError()
    if trainer.role != UserRole.TRAINER:
        raise NotATrainerError()
    return await stores.trainings.list_by_trainer(trainer_id)
