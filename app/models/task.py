from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel

from app.db.types import Money
from .campaign import ServiceType


class TaskStatus(str, Enum):
    available = "available"
    assigned = "assigned"
    in_progress = "in_progress"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"


class ReviewDecision(str, Enum):
    approved = "approved"
    rejected = "rejected"


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: Optional[int] = Field(default=None, foreign_key="projects.id", index=True)
    campaign_id: Optional[int] = Field(default=None, foreign_key="campaigns.id", index=True)
    group_id: Optional[int] = Field(default=None, foreign_key="groups.id", index=True)
    freelancer_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)

    title: str
    description: str = Field(default="")
    service_type: ServiceType = Field(default=ServiceType.app_testing)
    task_url: str = Field(default="")

    # reward == platform_fee + leader_commission + net_reward
    reward: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    platform_fee: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    leader_commission: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    net_reward: Decimal = Field(default=Decimal("0.00"), sa_type=Money)

    status: TaskStatus = Field(default=TaskStatus.available, index=True)
    submission: Optional[str] = None
    proof_image_url: Optional[str] = None

    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    review_notes: List["TaskReviewNote"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"order_by": "TaskReviewNote.id"},
    )


class TaskReviewNote(SQLModel, table=True):
    """Append-only review history; rows are never updated."""

    __tablename__ = "task_review_notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    reviewer_id: int = Field(foreign_key="users.id", index=True)
    decision: ReviewDecision
    feedback: str = Field(default="")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    task: "Task" = Relationship(back_populates="review_notes")
