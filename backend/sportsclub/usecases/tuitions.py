import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from ..domain.errors import InvalidAmountError, UserNotFoundError
from ..domain.repositories import TuitionRepository, UserRepository
from ..models import Tuition
from ..utils.time import utc_now

DEFAULT_VALIDITY_DAYS = 30


async def pay_tuition(
    tuition_repo: TuitionRepository,
    user_repo: UserRepository,
    *,
    user_id: uuid.UUID,
    amount: Decimal,
    now: datetime | None = None,
) -> Tuition:
    if amount <= 0:
        raise InvalidAmountError(f"amount {amount}")
    if await user_repo.get(user_id) is None:
        raise UserNotFoundError()
    return await tuition_repo.create(user_id=user_id, amount=amount, paid_at=now or utc_now())


async def has_active_tuition_at_least(
    tuition_repo: TuitionRepository,
    *,
    user_id: uuid.UUID,
    amount: Decimal,
    now: datetime | None = None,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
) -> bool:
    """True when the user paid at least ``amount`` in a single payment within the validity window."""
    since = (now or utc_now()) - timedelta(days=validity_days)
    return await tuition_repo.has_paid_at_least_since(user_id, amount, since)


async def list_user_tuitions(tuition_repo: TuitionRepository, *, user_id: uuid.UUID) -> list[Tuition]:
    return await tuition_repo.list_for_user(user_id)


async def list_tuitions(tuition_repo: TuitionRepository) -> list[Tuition]:
    return await tuition_repo.list()
