from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from app.db.types import Money


class ProjectStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


# Forward order; cancelled sits outside it.
PROJECT_STATUS_ORDER = (
    ProjectStatus.pending,
    ProjectStatus.accepted,
    ProjectStatus.in_progress,
    ProjectStatus.completed,
)


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_owner_id: int = Field(foreign_key="users.id", index=True)
    title: str
    description: str = Field(default="")
    budget: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    tasks_count: int = Field(default=1, ge=1)
    target_country: str = Field(default="")
    deadline: Optional[datetime] = None
    status: ProjectStatus = Field(default=ProjectStatus.pending, index=True)
    accepted_by_group_id: Optional[int] = Field(default=None, foreign_key="groups.id", index=True)

    # Split recorded when a group accepts the project.
    platform_fee: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    leader_commission: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    member_reward: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    residual: Decimal = Field(default=Decimal("0.00"), sa_type=Money)

    accepted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
