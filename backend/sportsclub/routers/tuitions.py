import uuid
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query, status

from ..config import Settings, get_settings
from ..deps import get_current_user_id, get_tuition_repo, get_user_repo
from ..domain.errors import DomainError
from ..domain.repositories import TuitionRepository, UserRepository
from ..schemas import ActiveTuitionRead, TuitionPay, TuitionRead
from ..usecases import tuitions as tuition_usecase
from .common import http_error

router = APIRouter(prefix="", tags=["tuitions"])


@router.post("/tuitions", response_model=TuitionRead, status_code=status.HTTP_201_CREATED)
async def pay_tuition(
    payload: TuitionPay,
    tuition_repo: TuitionRepository = Depends(get_tuition_repo),
    user_repo: UserRepository = Depends(get_user_repo),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> TuitionRead:
    try:
        tuition = await tuition_usecase.pay_tuition(tuition_repo, user_repo, user_id=user_id, amount=payload.amount)
    except DomainError as exc:
        raise http_error(exc) from exc
    return TuitionRead.from_db(tuition=tuition)


@router.get("/tuitions", response_model=List[TuitionRead])
async def list_tuitions(tuition_repo: TuitionRepository = Depends(get_tuition_repo)) -> list[TuitionRead]:
    try:
        tuitions = await tuition_usecase.list_tuitions(tuition_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TuitionRead.from_db(tuition=tuition) for tuition in tuitions]


@router.get("/users/{user_id}/tuitions", response_model=List[TuitionRead])
async def list_user_tuitions(
    user_id: uuid.UUID,
    tuition_repo: TuitionRepository = Depends(get_tuition_repo),
) -> list[TuitionRead]:
    try:
        tuitions = await tuition_usecase.list_user_tuitions(tuition_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [TuitionRead.from_db(tuition=tuition) for tuition in tuitions]


@router.get("/users/{user_id}/tuitions/active", response_model=ActiveTuitionRead)
async def has_active_tuition(
    user_id: uuid.UUID,
    amount: Decimal = Query(default=Decimal("0"), ge=0),
    tuition_repo: TuitionRepository = Depends(get_tuition_repo),
    settings: Settings = Depends(get_settings),
) -> ActiveTuitionRead:
    try:
        active = await tuition_usecase.has_active_tuition_at_least(
            tuition_repo,
            user_id=user_id,
            amount=amount,
            validity_days=settings.tuition_validity_days,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return ActiveTuitionRead(user_id=user_id, amount=amount, active=active)
