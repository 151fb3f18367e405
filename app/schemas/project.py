from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from app.models import ProjectStatus, ServiceType


class ProjectCreate(SQLModel):
    title: str
    description: str = ""
    # Negative budgets reach the service so they fail as InvalidBudgetError.
    budget: Decimal = Field(max_digits=12, decimal_places=2)
    tasks_count: int = Field(ge=1)
    target_country: str = ""
    deadline: Optional[datetime] = None


class ProjectAccept(SQLModel):
    group_id: int


class ProjectRead(SQLModel):
    id: int
    product_owner_id: int
    title: str
    description: str
    budget: Decimal
    tasks_count: int
    target_country: str
    deadline: Optional[datetime] = None
    status: ProjectStatus
    accepted_by_group_id: Optional[int] = None
    platform_fee: Decimal
    leader_commission: Decimal
    member_reward: Decimal
    residual: Decimal
    accepted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TaskDraftCreate(SQLModel):
    title: str
    reward: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    description: str = ""
    service_type: ServiceType = ServiceType.app_testing
    task_url: str = ""
    freelancer_id: Optional[int] = None


class TaskBatchCreate(SQLModel):
    tasks: list[TaskDraftCreate] = Field(default_factory=list)
