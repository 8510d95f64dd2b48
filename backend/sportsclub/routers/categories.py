import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status

from ..deps import get_category_repo, get_category_stores, get_membership_repo, get_requirement_repo
from ..domain.errors import DomainError, PermissionDeniedError
from ..domain.repositories import CategoryRepository, CategoryRequirementRepository, UserCategoryRepository
from ..schemas import (
    CategoryRead,
    CategoryWrite,
    EligibilityRead,
    LevelUpdate,
    RequirementCreate,
    RequirementRead,
    UserCategoryRead,
)
from ..usecases import categories as category_usecase
from ..usecases.categories import CategoryStores
from .common import http_error

router = APIRouter(prefix="", tags=["categories"])


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryWrite,
    category_repo: CategoryRepository = Depends(get_category_repo),
) -> CategoryRead:
    try:
        category = await category_usecase.create_category(
            category_repo,
            name=payload.name,
            min_age=payload.min_age,
            max_age=payload.max_age,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return CategoryRead.from_db(category=category)


@router.get("/categories", response_model=List[CategoryRead])
async def list_categories(category_repo: CategoryRepository = Depends(get_category_repo)) -> list[CategoryRead]:
    try:
        categories = await category_usecase.list_categories(category_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [CategoryRead.from_db(category=category) for category in categories]


@router.get("/categories/{category_id}", response_model=CategoryRead)
async def get_category(
    category_id: uuid.UUID,
    category_repo: CategoryRepository = Depends(get_category_repo),
) -> CategoryRead:
    try:
        category = await category_usecase.get_category(category_repo, category_id=category_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return CategoryRead.from_db(category=category)


@router.put("/categories/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: uuid.UUID,
    payload: CategoryWrite,
    category_repo: CategoryRepository = Depends(get_category_repo),
) -> CategoryRead:
    try:
        category = await category_usecase.update_category(
            category_repo,
            category_id=category_id,
            name=payload.name,
            min_age=payload.min_age,
            max_age=payload.max_age,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return CategoryRead.from_db(category=category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: uuid.UUID,
    category_repo: CategoryRepository = Depends(get_category_repo),
) -> Response:
    try:
        await category_usecase.delete_category(category_repo, category_id=category_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/categories/{category_id}/requirements",
    response_model=RequirementRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_requirement(
    category_id: uuid.UUID,
    payload: RequirementCreate,
    category_repo: CategoryRepository = Depends(get_category_repo),
    requirement_repo: CategoryRequirementRepository = Depends(get_requirement_repo),
) -> RequirementRead:
    try:
        requirement = await category_usecase.add_requirement(
            category_repo,
            requirement_repo,
            category_id=category_id,
            prerequisite_category_id=payload.prerequisite_category_id,
            required_level=payload.required_level,
            description=payload.description,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return RequirementRead.from_db(requirement=requirement)


@router.get("/categories/{category_id}/requirements", response_model=List[RequirementRead])
async def list_requirements(
    category_id: uuid.UUID,
    category_repo: CategoryRepository = Depends(get_category_repo),
    requirement_repo: CategoryRequirementRepository = Depends(get_requirement_repo),
) -> list[RequirementRead]:
    try:
        requirements = await category_usecase.list_requirements(
            category_repo,
            requirement_repo,
            category_id=category_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [RequirementRead.from_db(requirement=requirement) for requirement in requirements]


@router.delete("/categories/{category_id}/requirements/{requirement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_requirement(
    category_id: uuid.UUID,
    requirement_id: uuid.UUID,
    requirement_repo: CategoryRequirementRepository = Depends(get_requirement_repo),
) -> Response:
    try:
        await category_usecase.remove_requirement(
            requirement_repo,
            category_id=category_id,
            requirement_id=requirement_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/categories/{category_id}/users/{user_id}",
    response_model=UserCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_user_to_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    stores: CategoryStores = Depends(get_category_stores),
) -> UserCategoryRead:
    try:
        membership = await category_usecase.add_user_to_category(stores, user_id=user_id, category_id=category_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserCategoryRead.from_db(membership=membership)


@router.get("/categories/{category_id}/users/{user_id}", response_model=UserCategoryRead)
async def get_user_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    membership_repo: UserCategoryRepository = Depends(get_membership_repo),
) -> UserCategoryRead:
    try:
        membership = await category_usecase.get_user_category(
            membership_repo,
            user_id=user_id,
            category_id=category_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserCategoryRead.from_db(membership=membership)


@router.put("/categories/{category_id}/users/{user_id}/level", response_model=UserCategoryRead)
async def update_user_level(
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: LevelUpdate,
    membership_repo: UserCategoryRepository = Depends(get_membership_repo),
) -> UserCategoryRead:
    try:
        membership = await category_usecase.update_user_level(
            membership_repo,
            user_id=user_id,
            category_id=category_id,
            level=payload.level,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return UserCategoryRead.from_db(membership=membership)


@router.delete("/categories/{category_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    membership_repo: UserCategoryRepository = Depends(get_membership_repo),
) -> Response:
    try:
        await category_usecase.remove_user_from_category(membership_repo, user_id=user_id, category_id=category_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/categories/{category_id}/users/{user_id}/eligible", response_model=EligibilityRead)
async def check_eligibility(
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    stores: CategoryStores = Depends(get_category_stores),
) -> EligibilityRead:
    try:
        await category_usecase.check_eligibility(stores, user_id=user_id, category_id=category_id)
    except PermissionDeniedError as exc:
        return EligibilityRead(user_id=user_id, category_id=category_id, eligible=False, reason=exc.message)
    except DomainError as exc:
        raise http_error(exc) from exc
    return EligibilityRead(user_id=user_id, category_id=category_id, eligible=True)


@router.get("/users/{user_id}/categories", response_model=List[UserCategoryRead])
async def list_user_categories(
    user_id: uuid.UUID,
    membership_repo: UserCategoryRepository = Depends(get_membership_repo),
) -> list[UserCategoryRead]:
    try:
        memberships = await category_usecase.list_user_categories(membership_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [UserCategoryRead.from_db(membership=membership) for membership in memberships]
