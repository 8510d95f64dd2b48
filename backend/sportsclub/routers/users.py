import uuid
from typing import List

from fastapi import APIRouter, Depends, status

from ..deps import get_current_user_id, get_user_repo
from ..domain.errors import DomainError
from ..domain.repositories import UserRepository
from ..schemas import RoleUpdate, UserCreate, UserRead
from ..usecases import users as user_usecase
from .common import http_error

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    user_repo: UserRepository = Depends(get_user_repo),
) -> UserRead:
    try:
        user = await user_usecase.create_user(
            user_repo,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            birth_date=payload.birth_date,
            role=payload.role,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserRead.from_db(user=user)


@router.get("", response_model=List[UserRead])
async def list_users(user_repo: UserRepository = Depends(get_user_repo)) -> list[UserRead]:
    try:
        users = await user_usecase.list_users(user_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [UserRead.from_db(user=user) for user in users]


@router.get("/me", response_model=UserRead)
async def get_me(
    user_repo: UserRepository = Depends(get_user_repo),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> UserRead:
    try:
        user = await user_usecase.get_user(user_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserRead.from_db(user=user)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: uuid.UUID, user_repo: UserRepository = Depends(get_user_repo)) -> UserRead:
    try:
        user = await user_usecase.get_user(user_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserRead.from_db(user=user)


@router.put("/{user_id}/role", response_model=UserRead)
async def change_role(
    user_id: uuid.UUID,
    payload: RoleUpdate,
    user_repo: UserRepository = Depends(get_user_repo),
) -> UserRead:
    try:
        user = await user_usecase.change_role(user_repo, user_id=user_id, role=payload.role)
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserRead.from_db(user=user)
