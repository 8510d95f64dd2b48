import uuid
from dataclasses import dataclass
from datetime import date

from ..domain.errors import (
    CategoryAlreadyExistsError,
    CategoryNotFoundError,
    InvalidRequirementError,
    RequirementNotFoundError,
    UserAlreadyHasCategoryError,
    UserCategoryNotFoundError,
    UserNotFoundError,
)
from ..domain.repositories import (
    CategoryRepository,
    CategoryRequirementRepository,
    UserCategoryRepository,
    UserRepository,
)
from ..domain.services import age_on, validate_age, validate_category_fields, validate_requirement
from ..models import Category, CategoryRequirement, Level, UserCategory
from ..utils.time import utc_today


@dataclass(frozen=True)
class CategoryStores:
    categories: CategoryRepository
    requirements: CategoryRequirementRepository
    memberships: UserCategoryRepository
    users: UserRepository


async def check_eligibility(
    stores: CategoryStores,
    *,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
    today: date | None = None,
) -> Category:
    """
    Decide whether a user may join ``category_id``.

    Checks run in a fixed order and stop at the first failure: the category
    must exist, the user's age must lie inside its range, then every
    requirement (in insertion order) must be met by the user's membership in
    the prerequisite category at the required level or above.
    """
    category = await stores.categories.get(category_id)
    if category is None:
        raise CategoryNotFoundError()

    user = await stores.users.get(user_id)
    if user is None:
        raise UserNotFoundError()
    validate_age(age_on(user.birth_date, today or utc_today()), min_age=category.min_age, max_age=category.max_age)

    for requirement in await stores.requirements.list_for_category(category_id):
        membership = await stores.memberships.get(user_id, requirement.prerequisite_category_id)
        validate_requirement(requirement.required_level, membership.level if membership is not None else None)
    return category


async def add_user_to_category(
    stores: CategoryStores,
    *,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
    today: date | None = None,
) -> UserCategory:
    if await stores.memberships.get(user_id, category_id) is not None:
        raise UserAlreadyHasCategoryError()
    await check_eligibility(stores, user_id=user_id, category_id=category_id, today=today)
    return await stores.memberships.create(user_id=user_id, category_id=category_id, level=Level.BEGINNER)


async def update_user_level(
    membership_repo: UserCategoryRepository,
    *,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
    level: Level,
) -> UserCategory:
    membership = await membership_repo.update_level(user_id, category_id, level)
    if membership is None:
        raise UserCategoryNotFoundError()
    return membership


async def remove_user_from_category(
    membership_repo: UserCategoryRepository,
    *,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
) -> None:
    if not await membership_repo.delete(user_id, category_id):
        raise UserCategoryNotFoundError()


async def get_user_category(
    membership_repo: UserCategoryRepository,
    *,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
) -> UserCategory:
    membership = await membership_repo.get(user_id, category_id)
    if membership is None:
        raise UserCategoryNotFoundError()
    return membership


async def list_user_categories(membership_repo: UserCategoryRepository, *, user_id: uuid.UUID) -> list[UserCategory]:
    return await membership_repo.list_for_user(user_id)


async def create_category(category_repo: CategoryRepository, *, name: str, min_age: int, max_age: int) -> Category:
    name = validate_category_fields(name=name, min_age=min_age, max_age=max_age)
    if await category_repo.get_by_name(name) is not None:
        raise CategoryAlreadyExistsError()
    return await category_repo.create(name=name, min_age=min_age, max_age=max_age)


async def update_category(
    category_repo: CategoryRepository,
    *,
    category_id: uuid.UUID,
    name: str,
    min_age: int,
    max_age: int,
) -> Category:
    name = validate_category_fields(name=name, min_age=min_age, max_age=max_age)
    existing = await category_repo.get(category_id)
    if existing is None:
        raise CategoryNotFoundError()
    if name != existing.name:
        clash = await category_repo.get_by_name(name)
        if clash is not None and clash.id != category_id:
            raise CategoryAlreadyExistsError()
    updated = await category_repo.update(category_id, name=name, min_age=min_age, max_age=max_age)
    if updated is None:
        raise CategoryNotFoundError()
    return updated


async def get_category(category_repo: CategoryRepository, *, category_id: uuid.UUID) -> Category:
    category = await category_repo.get(category_id)
    if category is None:
        raise CategoryNotFoundError()
    return category


async def list_categories(category_repo: CategoryRepository) -> list[Category]:
    return await category_repo.list()


async def delete_category(category_repo: CategoryRepository, *, category_id: uuid.UUID) -> None:
    if not await category_repo.delete(category_id):
        raise CategoryNotFoundError()


async def add_requirement(
    category_repo: CategoryRepository,
    requirement_repo: CategoryRequirementRepository,
    *,
    category_id: uuid.UUID,
    prerequisite_category_id: uuid.UUID,
    required_level: Level,
    description: str = "",
) -> CategoryRequirement:
    if category_id == prerequisite_category_id:
        raise InvalidRequirementError()
    if await category_repo.get(category_id) is None:
        raise CategoryNotFoundError()
    if await category_repo.get(prerequisite_category_id) is None:
        raise CategoryNotFoundError("prerequisite category not found")
    return await requirement_repo.create(
        category_id=category_id,
        prerequisite_category_id=prerequisite_category_id,
        required_level=required_level,
        description=description.strip(),
    )


async def list_requirements(
    category_repo: CategoryRepository,
    requirement_repo: CategoryRequirementRepository,
    *,
    category_id: uuid.UUID,
) -> list[CategoryRequirement]:
    if await category_repo.get(category_id) is None:
        raise CategoryNotFoundError()
    return await requirement_repo.list_for_category(category_id)


async def remove_requirement(
    requirement_repo: CategoryRequirementRepository,
    *,
    category_id: uuid.UUID,
    requirement_id: uuid.UUID,
) -> None:
    requirement = await requirement_repo.get(requirement_id)
    if requirement is None or requirement.category_id != category_id:
        raise RequirementNotFoundError()
    await requirement_repo.delete(requirement_id)
