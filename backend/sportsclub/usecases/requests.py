import uuid
from datetime import datetime

from ..domain.errors import (
    MissingNameError,
    RequestAlreadyCompletedError,
    RequestNotFoundError,
    SelfApprovalNotAllowedError,
    UserNotFoundError,
)
from ..domain.repositories import ApprovalRequestRepository, UserRepository
from ..models import ApprovalRequest
from ..utils.time import utc_now


async def create_request(
    request_repo: ApprovalRequestRepository,
    user_repo: UserRepository,
    *,
    requester_id: uuid.UUID,
    requested_command: str,
    justification: str,
) -> ApprovalRequest:
    requested_command = requested_command.strip()
    if not requested_command:
        raise MissingNameError("requested command is empty")
    if await user_repo.get(requester_id) is None:
        raise UserNotFoundError()
    return await request_repo.create(
        requester_id=requester_id,
        requested_command=requested_command,
        justification=justification.strip(),
    )


async def complete_request(
    request_repo: ApprovalRequestRepository,
    *,
    request_id: uuid.UUID,
    approver_id: uuid.UUID,
    approved: bool,
    now: datetime | None = None,
) -> ApprovalRequest:
    request = await request_repo.get(request_id)
    if request is None:
        raise RequestNotFoundError()
    if request.requester_id == approver_id:
        raise SelfApprovalNotAllowedError()
    if request.approved is not None:
        raise RequestAlreadyCompletedError()

    completed = await request_repo.complete(
        request_id,
        approved=approved,
        approver_id=approver_id,
        decided_at=now or utc_now(),
    )
    if completed is None:
        # Someone else decided between the read and the conditional update.
        raise RequestAlreadyCompletedError("decided concurrently")
    return completed


async def get_request(request_repo: ApprovalRequestRepository, *, request_id: uuid.UUID) -> ApprovalRequest:
    request = await request_repo.get(request_id)
    if request is None:
        raise RequestNotFoundError()
    return request


async def list_requests(request_repo: ApprovalRequestRepository) -> list[ApprovalRequest]:
    return await request_repo.list()


async def list_user_requests(request_repo: ApprovalRequestRepository, *, user_id: uuid.UUID) -> list[ApprovalRequest]:
    return await request_repo.list_for_user(user_id)
