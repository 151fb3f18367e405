from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from app.models import ReviewDecision, ServiceType, TaskStatus


class TaskReviewNoteRead(SQLModel):
    id: int
    reviewer_id: int
    decision: ReviewDecision
    feedback: str
    created_at: datetime


class TaskRead(SQLModel):
    id: int
    project_id: Optional[int] = None
    campaign_id: Optional[int] = None
    group_id: Optional[int] = None
    freelancer_id: Optional[int] = None
    title: str
    description: str
    service_type: ServiceType
    task_url: str
    reward: Decimal
    platform_fee: Decimal
    leader_commission: Decimal
    net_reward: Decimal
    status: TaskStatus
    submission: Optional[str] = None
    proof_image_url: Optional[str] = None
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    review_notes: list[TaskReviewNoteRead] = Field(default_factory=list)


class TaskAssign(SQLModel):
    freelancer_id: int


class TaskSubmit(SQLModel):
    submission: str
    proof_image_url: Optional[str] = None


class TaskApprove(SQLModel):
    feedback: Optional[str] = None


class TaskReject(SQLModel):
    # Emptiness is checked by the state machine so it reports a ValidationError kind.
    feedback: str = ""
