from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from app.models import GroupMemberRole, GroupPrivacy, GroupStatus, JoinRequestStatus


class GroupCreate(SQLModel):
    name: str
    description: str = ""
    max_members: int = Field(default=700, ge=1)
    privacy: GroupPrivacy = GroupPrivacy.public


class GroupRead(SQLModel):
    id: int
    leader_id: int
    name: str
    description: str
    max_members: int
    current_members: int
    privacy: GroupPrivacy
    status: GroupStatus
    created_at: datetime
    updated_at: datetime


class GroupMemberRead(SQLModel):
    id: int
    group_id: int
    freelancer_id: int
    role: GroupMemberRole
    joined_at: datetime


class GroupJoinRequestRead(SQLModel):
    id: int
    group_id: int
    freelancer_id: int
    status: JoinRequestStatus
    created_at: datetime
    reviewed_at: Optional[datetime] = None


class JoinRequestReview(SQLModel):
    status: JoinRequestStatus


class CommissionPreviewRead(SQLModel):
    budget: Decimal
    member_count: int
    platform_fee: Decimal
    leader_commission: Decimal
    distributable: Decimal
    reward_per_member: Decimal
    residual: Decimal
    platform_take: Decimal
