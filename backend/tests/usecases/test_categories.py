import uuid
from datetime import date

import pytest
from sportsclub.domain.errors import (
    CategoryAlreadyExistsError,
    CategoryNotFoundError,
    InvalidAgeRangeError,
    InvalidRequirementError,
    InvalidRequirementLevelError,
    InvalidUserAgeError,
    RequirementNotFoundError,
    UserAlreadyHasCategoryError,
    UserCategoryNotFoundError,
    UserDoesNotMeetRequirementsError,
    UserNotFoundError,
)
from sportsclub.models import Level
from sportsclub.usecases import categories as uc

TODAY = date(2030, 6, 1)


@pytest.mark.asyncio
async def test_eligibility_follows_prerequisite_levels(club) -> None:
    prerequisite = await club.add_category("P")
    target = await club.add_category("C")
    await uc.add_requirement(
        club.categories,
        club.requirements,
        category_id=target.id,
        prerequisite_category_id=prerequisite.id,
        required_level=Level.AMATEUR,
    )
    user = await club.add_user(birth_date=date(2010, 1, 1))

    with pytest.raises(UserDoesNotMeetRequirementsError):
        await uc.check_eligibility(club.category_stores, user_id=user.id, category_id=target.id, today=TODAY)

    await uc.add_user_to_category(club.category_stores, user_id=user.id, category_id=prerequisite.id, today=TODAY)
    with pytest.raises(InvalidRequirementLevelError):
        await uc.check_eligibility(club.category_stores, user_id=user.id, category_id=target.id, today=TODAY)

    await uc.update_user_level(club.memberships, user_id=user.id, category_id=prerequisite.id, level=Level.AMATEUR)
    membership = await uc.add_user_to_category(
        club.category_stores,
        user_id=user.id,
        category_id=target.id,
        today=TODAY,
    )
    assert membership.level is Level.BEGINNER
    assert [m.category_id for m in await uc.list_user_categories(club.memberships, user_id=user.id)] == [
        prerequisite.id,
        target.id,
    ]


@pytest.mark.asyncio
async def test_eligibility_check_order(club) -> None:
    category = await club.add_category("U12", min_age=8, max_age=12)
    user = await club.add_user(birth_date=date(2000, 1, 1))

    with pytest.raises(CategoryNotFoundError):
        await uc.check_eligibility(club.category_stores, user_id=uuid.uuid4(), category_id=uuid.uuid4(), today=TODAY)
    with pytest.raises(UserNotFoundError):
        await uc.check_eligibility(club.category_stores, user_id=uuid.uuid4(), category_id=category.id, today=TODAY)
    with pytest.raises(InvalidUserAgeError):
        await uc.check_eligibility(club.category_stores, user_id=user.id, category_id=category.id, today=TODAY)


@pytest.mark.asyncio
async def test_requirements_are_evaluated_in_insertion_order(club) -> None:
    first = await club.add_category("first")
    second = await club.add_category("second")
    target = await club.add_category("target")
    for prerequisite in (first, second):
        await uc.add_requirement(
            club.categories,
            club.requirements,
            category_id=target.id,
            prerequisite_category_id=prerequisite.id,
            required_level=Level.AMATEUR,
        )
    user = await club.add_user()
    # Holds the second prerequisite too low and misses the first entirely.
    await club.memberships.create(user_id=user.id, category_id=second.id, level=Level.BEGINNER)

    with pytest.raises(UserDoesNotMeetRequirementsError):
        await uc.check_eligibility(club.category_stores, user_id=user.id, category_id=target.id, today=TODAY)


@pytest.mark.asyncio
async def test_add_user_twice_conflicts(club) -> None:
    category = await club.add_category()
    user = await club.add_user()
    await uc.add_user_to_category(club.category_stores, user_id=user.id, category_id=category.id, today=TODAY)

    with pytest.raises(UserAlreadyHasCategoryError):
        await uc.add_user_to_category(club.category_stores, user_id=user.id, category_id=category.id, today=TODAY)


@pytest.mark.asyncio
async def test_membership_lifecycle(club) -> None:
    category = await club.add_category()
    user = await club.add_user()
    await uc.add_user_to_category(club.category_stores, user_id=user.id, category_id=category.id, today=TODAY)

    held = await uc.get_user_category(club.memberships, user_id=user.id, category_id=category.id)
    assert held.level is Level.BEGINNER

    await uc.remove_user_from_category(club.memberships, user_id=user.id, category_id=category.id)
    with pytest.raises(UserCategoryNotFoundError):
        await uc.get_user_category(club.memberships, user_id=user.id, category_id=category.id)
    with pytest.raises(UserCategoryNotFoundError):
        await uc.remove_user_from_category(club.memberships, user_id=user.id, category_id=category.id)
    with pytest.raises(UserCategoryNotFoundError):
        await uc.update_user_level(club.memberships, user_id=user.id, category_id=category.id, level=Level.AMATEUR)


@pytest.mark.asyncio
async def test_create_and_update_category(club) -> None:
    category = await uc.create_category(club.categories, name=" Seniors ", min_age=18, max_age=40)
    assert category.name == "Seniors"

    with pytest.raises(CategoryAlreadyExistsError):
        await uc.create_category(club.categories, name="Seniors", min_age=18, max_age=40)
    with pytest.raises(InvalidAgeRangeError):
        await uc.create_category(club.categories, name="Broken", min_age=20, max_age=10)

    other = await uc.create_category(club.categories, name="Masters", min_age=40, max_age=90)
    with pytest.raises(CategoryAlreadyExistsError):
        await uc.update_category(club.categories, category_id=other.id, name="Seniors", min_age=40, max_age=90)

    renamed = await uc.update_category(club.categories, category_id=category.id, name="Adults", min_age=18, max_age=60)
    assert (renamed.name, renamed.max_age) == ("Adults", 60)

    await uc.delete_category(club.categories, category_id=category.id)
    with pytest.raises(CategoryNotFoundError):
        await uc.get_category(club.categories, category_id=category.id)
    # The name is free again once the old row is soft-deleted.
    await uc.create_category(club.categories, name="Adults", min_age=18, max_age=60)


@pytest.mark.asyncio
async def test_requirement_management(club) -> None:
    category = await club.add_category("C")
    prerequisite = await club.add_category("P")

    with pytest.raises(InvalidRequirementError):
        await uc.add_requirement(
            club.categories,
            club.requirements,
            category_id=category.id,
            prerequisite_category_id=category.id,
            required_level=Level.BEGINNER,
        )
    with pytest.raises(CategoryNotFoundError):
        await uc.add_requirement(
            club.categories,
            club.requirements,
            category_id=category.id,
            prerequisite_category_id=uuid.uuid4(),
            required_level=Level.BEGINNER,
        )

    requirement = await uc.add_requirement(
        club.categories,
        club.requirements,
        category_id=category.id,
        prerequisite_category_id=prerequisite.id,
        required_level=Level.PROFESSIONAL,
        description="  pro in P  ",
    )
    assert requirement.description == "pro in P"
    assert await uc.list_requirements(club.categories, club.requirements, category_id=category.id) == [requirement]

    with pytest.raises(RequirementNotFoundError):
        await uc.remove_requirement(club.requirements, category_id=prerequisite.id, requirement_id=requirement.id)
    await uc.remove_requirement(club.requirements, category_id=category.id, requirement_id=requirement.id)
    assert await uc.list_requirements(club.categories, club.requirements, category_id=category.id) == []
