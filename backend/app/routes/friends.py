"""
Tripmark Backend — Friend Route Handlers
==========================================

What:  Invitations and friendships of the calling user.
How:   Thin handlers over FriendService.

Route Table (prefix /api/users/me):
    POST   /friend-invitations                 send
    GET    /friend-invitations/received        pending, addressed to me
    GET    /friend-invitations/sent            pending, sent by me
    POST   /friend-invitations/{id}/accept     accept
    DELETE /friend-invitations/{id}            decline
    GET    /friends                            accepted edges
    DELETE /friends/{id}                       unfriend (id is the invitation id)
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id, pagination_params
from app.schemas.common import ErrorResponse, PaginationParams
from app.schemas.friend import (
    FriendInviteCreate,
    FriendInviteListResponse,
    FriendInviteResponse,
    FriendListResponse,
)
from app.services.friend_service import friend_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users/me", tags=["Friends"])

_ANSWER_ERRORS = {
    403: {"description": "Caller may not answer this invitation", "model": ErrorResponse},
    404: {"description": "Invitation not found", "model": ErrorResponse},
    409: {"description": "Invitation is in the wrong state", "model": ErrorResponse},
}


@router.post(
    "/friend-invitations",
    status_code=201,
    response_model=FriendInviteResponse,
    responses={
        400: {"description": "Inviting yourself", "model": ErrorResponse},
        409: {"description": "Invitation or friendship already exists", "model": ErrorResponse},
    },
    summary="Send a friend invitation",
)
async def send_invite(
    payload: FriendInviteCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendInviteResponse:
    return await friend_service.send_invite(db, user_id, payload.friend_id)


@router.get(
    "/friend-invitations/received",
    response_model=FriendInviteListResponse,
    summary="Pending invitations addressed to me",
)
async def list_received_invitations(
    response: Response,
    pagination: PaginationParams = Depends(pagination_params),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendInviteListResponse:
    result = await friend_service.list_received_invitations(
        db, user_id, page=pagination.page, limit=pagination.limit
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/friend-invitations/sent",
    response_model=FriendInviteListResponse,
    summary="Pending invitations I have sent",
)
async def list_sent_invitations(
    response: Response,
    pagination: PaginationParams = Depends(pagination_params),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendInviteListResponse:
    result = await friend_service.list_sent_invitations(
        db, user_id, page=pagination.page, limit=pagination.limit
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "/friend-invitations/{invitation_id}/accept",
    response_model=FriendInviteResponse,
    responses=_ANSWER_ERRORS,
    summary="Accept a friend invitation",
)
async def accept_invitation(
    invitation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendInviteResponse:
    return await friend_service.accept_invitation(db, user_id, invitation_id)


@router.delete(
    "/friend-invitations/{invitation_id}",
    response_model=FriendInviteResponse,
    responses=_ANSWER_ERRORS,
    summary="Decline a friend invitation",
)
async def decline_invitation(
    invitation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendInviteResponse:
    return await friend_service.decline_invitation(db, user_id, invitation_id)


@router.get(
    "/friends",
    response_model=FriendListResponse,
    summary="List my friends",
)
async def list_friends(
    response: Response,
    pagination: PaginationParams = Depends(pagination_params),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendListResponse:
    result = await friend_service.list_friends(
        db, user_id, page=pagination.page, limit=pagination.limit
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.delete(
    "/friends/{invitation_id}",
    response_model=FriendInviteResponse,
    responses=_ANSWER_ERRORS,
    summary="Remove a friend",
)
async def remove_friend(
    invitation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> FriendInviteResponse:
    return await friend_service.remove_friend(db, user_id, invitation_id)
