from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


class GroupStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class GroupPrivacy(str, Enum):
    public = "public"
    private = "private"


class JoinRequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class GroupMemberRole(str, Enum):
    leader = "leader"
    member = "member"


class Group(SQLModel, table=True):
    __tablename__ = "groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    leader_id: int = Field(foreign_key="users.id", index=True)
    name: str
    description: str = Field(default="")
    max_members: int = Field(default=700, ge=1)
    current_members: int = Field(default=0, ge=0)
    privacy: GroupPrivacy = Field(default=GroupPrivacy.public)
    status: GroupStatus = Field(default=GroupStatus.active, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    members: List["GroupMember"] = Relationship(back_populates="group")


class GroupMember(SQLModel, table=True):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "freelancer_id", name="uq_group_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="groups.id", index=True)
    freelancer_id: int = Field(foreign_key="users.id", index=True)
    role: GroupMemberRole = Field(default=GroupMemberRole.member)
    joined_at: datetime = Field(default_factory=datetime.utcnow)

    group: "Group" = Relationship(back_populates="members")


class GroupJoinRequest(SQLModel, table=True):
    __tablename__ = "group_join_requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="groups.id", index=True)
    freelancer_id: int = Field(foreign_key="users.id", index=True)
    status: JoinRequestStatus = Field(default=JoinRequestStatus.pending, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = Field(default=None, foreign_key="users.id")
