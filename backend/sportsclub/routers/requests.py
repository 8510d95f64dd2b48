import uuid
from typing import List

from fastapi import APIRouter, Depends, status

from ..deps import get_current_user_id, get_request_repo, get_user_repo
from ..domain.errors import DomainError
from ..domain.repositories import ApprovalRequestRepository, UserRepository
from ..schemas import RequestCreate, RequestDecision, RequestRead
from ..usecases import requests as request_usecase
from .common import http_error

router = APIRouter(prefix="", tags=["requests"])


@router.post("/requests", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    request_repo: ApprovalRequestRepository = Depends(get_request_repo),
    user_repo: UserRepository = Depends(get_user_repo),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> RequestRead:
    try:
        request = await request_usecase.create_request(
            request_repo,
            user_repo,
            requester_id=user_id,
            requested_command=payload.requested_command,
            justification=payload.justification,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return RequestRead.from_db(request=request)


@router.get("/requests", response_model=List[RequestRead])
async def list_requests(
    request_repo: ApprovalRequestRepository = Depends(get_request_repo),
) -> list[RequestRead]:
    try:
        requests = await request_usecase.list_requests(request_repo)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [RequestRead.from_db(request=request) for request in requests]


@router.get("/requests/{request_id}", response_model=RequestRead)
async def get_request(
    request_id: uuid.UUID,
    request_repo: ApprovalRequestRepository = Depends(get_request_repo),
) -> RequestRead:
    try:
        request = await request_usecase.get_request(request_repo, request_id=request_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return RequestRead.from_db(request=request)


@router.post("/requests/{request_id}/decision", response_model=RequestRead)
async def complete_request(
    request_id: uuid.UUID,
    payload: RequestDecision,
    request_repo: ApprovalRequestRepository = Depends(get_request_repo),
    approver_id: uuid.UUID = Depends(get_current_user_id),
) -> RequestRead:
    try:
        request = await request_usecase.complete_request(
            request_repo,
            request_id=request_id,
            approver_id=approver_id,
            approved=payload.approved,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return RequestRead.from_db(request=request)


@router.get("/users/{user_id}/requests", response_model=List[RequestRead])
async def list_user_requests(
    user_id: uuid.UUID,
    request_repo: ApprovalRequestRepository = Depends(get_request_repo),
) -> list[RequestRead]:
    try:
        requests = await request_usecase.list_user_requests(request_repo, user_id=user_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [RequestRead.from_db(request=request) for request in requests]
