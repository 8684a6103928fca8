"""
Tripmark Backend — Friend Graph Schemas
=========================================

What:  Request and response models for friend invitations and friend lists.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.models.friend_invite import FriendInviteStatus


class FriendInviteCreate(BaseModel):
    """Body of POST /api/users/me/friend-invitations."""
    friend_id: int = Field(ge=1, description="User to invite")


class FriendInviteResponse(BaseModel):
    """A single invitation edge as stored (inviter → invitee)."""
    id: int
    user_id: int = Field(description="Inviter")
    friend_id: int = Field(description="Invitee")
    status: FriendInviteStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class FriendInviteListResponse(BaseModel):
    items: List[FriendInviteResponse]
    total_count: int


class FriendResponse(BaseModel):
    """
    One accepted friendship seen from the caller's side.

    invitation_id is what DELETE /api/users/me/friends/{id} expects.
    """
    invitation_id: int
    friend_id: int
    since: datetime


class FriendListResponse(BaseModel):
    items: List[FriendResponse]
    total_count: int
