import uuid
from datetime import date

from ..domain.errors import EmailAlreadyExistsError, MissingNameError, UserNotFoundError
from ..domain.repositories import UserRepository
from ..models import User, UserRole


async def create_user(
    user_repo: UserRepository,
    *,
    first_name: str,
    last_name: str,
    email: str,
    birth_date: date,
    role: UserRole = UserRole.USER,
) -> User:
    first_name, last_name = first_name.strip(), last_name.strip()
    if not first_name or not last_name:
        raise MissingNameError()
    email = email.strip().lower()
    # Pre-check for a specific error; the unique index still decides under races.
    if await user_repo.get_by_email(email) is not None:
        raise EmailAlreadyExistsError()
    return await user_repo.create(
        first_name=first_name,
        last_name=last_name,
        email=email,
        birth_date=birth_date,
        role=role,
    )


async def get_user(user_repo: UserRepository, *, user_id: uuid.UUID) -> User:
    user = await user_repo.get(user_id)
    if user is None:
        raise UserNotFoundError()
    return user


async def list_users(user_repo: UserRepository) -> list[User]:
    return await user_repo.list()


async def change_role(user_repo: UserRepository, *, user_id: uuid.UUID, role: UserRole) -> User:
    user = await user_repo.set_role(user_id, role)
    if user is None:
        raise UserNotFoundError()
    return user
