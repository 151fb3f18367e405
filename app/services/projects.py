from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.core.errors import (
    AuthorizationError,
    InvalidBudgetError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models import (
    PROJECT_STATUS_ORDER,
    Group,
    GroupStatus,
    Project,
    ProjectStatus,
    ServiceType,
    Task,
    TaskStatus,
    User,
)
from app.services.commission import (
    TaskRewardSplit,
    allocate_evenly,
    calculate_commission_split,
    split_task_reward,
    to_money,
)
from app.services.groups import is_group_member, require_group_leader
from app.services.notifications import notify
from app.services.wallet import lock_escrow, refund_escrow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskDraft:
    title: str
    reward: Decimal
    description: str = ""
    service_type: ServiceType = ServiceType.app_testing
    task_url: str = ""
    freelancer_id: Optional[int] = None


def get_project_or_404(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


def _advance(session: Session, project: Project, target: ProjectStatus, **values) -> None:
    """Move forward only; cancelled is handled by ``cancel_project``."""
    current_index = PROJECT_STATUS_ORDER.index(project.status) if project.status in PROJECT_STATUS_ORDER else None
    if current_index is None or PROJECT_STATUS_ORDER.index(target) != current_index + 1:
        raise InvalidStateTransitionError(project.status.value, target.value)

    result = session.exec(
        update(Project)
        .where(Project.id == project.id)
        .where(Project.status == project.status)
        .values(status=target, updated_at=datetime.utcnow(), **values)
    )
    session.refresh(project)
    if result.rowcount != 1:
        raise InvalidStateTransitionError(project.status.value, target.value)


def create_project(
    session: Session,
    owner: User,
    *,
    title: str,
    budget: object,
    tasks_count: int,
    description: str = "",
    target_country: str = "",
    deadline: Optional[datetime] = None,
) -> Project:
    if not title or not title.strip():
        raise ValidationError("Project title is required")
    if tasks_count < 1:
        raise ValidationError("A project needs at least one task")
    amount = to_money(budget)
    if amount < 0:
        raise InvalidBudgetError(f"Budget must not be negative, got {amount}")

    project = Project(
        product_owner_id=owner.id,
        title=title.strip(),
        description=(description or "").strip(),
        budget=amount,
        tasks_count=tasks_count,
        target_country=target_country or "",
        deadline=deadline,
        status=ProjectStatus.pending,
    )
    session.add(project)
    session.flush()
    return project


def accept_project(session: Session, project: Project, group: Group, leader: User) -> Project:
    require_group_leader(group, leader)
    if group.status != GroupStatus.active:
        raise ValidationError("The group is not active")
    if project.status != ProjectStatus.pending:
        raise InvalidStateTransitionError(
            project.status.value,
            ProjectStatus.accepted.value,
            message="This project was already accepted or closed",
        )

    split = calculate_commission_split(project.budget, project.tasks_count)
    # The owner funds the whole budget up front; tasks draw from it as they are approved.
    lock_escrow(session, project.product_owner_id, project.budget, project_id=project.id)
    _advance(
        session,
        project,
        ProjectStatus.accepted,
        accepted_by_group_id=group.id,
        accepted_at=datetime.utcnow(),
        platform_fee=split.platform_fee,
        leader_commission=split.leader_commission,
        member_reward=split.reward_per_member,
        residual=split.residual,
    )
    notify(
        session,
        user_id=project.product_owner_id,
        event_type="project_accepted",
        title="تم قبول المشروع",
        message=f'تم قبول مشروع "{project.title}" من قبل جروب "{group.name}"',
    )
    return project


def _require_project_leader(session: Session, project: Project, leader: User) -> Group:
    if project.accepted_by_group_id is None:
        raise ValidationError("The project must be accepted by a group first")
    group = session.get(Group, project.accepted_by_group_id)
    if group is None or group.leader_id != leader.id:
        raise AuthorizationError("Only the group leader can create tasks for this project")
    return group


def _allocated_rewards(session: Session, project_id: int) -> Decimal:
    total = session.exec(
        select(func.coalesce(func.sum(Task.reward), 0)).where(Task.project_id == project_id)
    ).one()
    return to_money(total or 0)


def generate_project_tasks(session: Session, project: Project, leader: User) -> list[Task]:
    """Create ``tasks_count`` open tasks whose rewards sum to the budget."""
    group = _require_project_leader(session, project, leader)
    if project.status != ProjectStatus.accepted:
        raise InvalidStateTransitionError(project.status.value, ProjectStatus.in_progress.value)
    if _allocated_rewards(session, project.id) > 0:
        raise ValidationError("Tasks were already created for this project")

    count = project.tasks_count
    fees = allocate_evenly(project.platform_fee + project.residual, count)
    commissions = allocate_evenly(project.leader_commission, count)

    tasks: list[Task] = []
    for index in range(count):
        net_reward = project.member_reward
        task = Task(
            project_id=project.id,
            group_id=group.id,
            title=f"{project.title} - مهمة {index + 1}",
            description=project.description or f"مهمة رقم {index + 1} من مشروع {project.title}",
            reward=fees[index] + commissions[index] + net_reward,
            platform_fee=fees[index],
            leader_commission=commissions[index],
            net_reward=net_reward,
            status=TaskStatus.available,
        )
        session.add(task)
        tasks.append(task)

    _advance(session, project, ProjectStatus.in_progress)
    session.flush()
    logger.info("Generated %s task(s) for project %s", count, project.id)
    return tasks


def create_project_tasks(
    session: Session,
    project: Project,
    leader: User,
    drafts: Sequence[TaskDraft],
) -> list[Task]:
    group = _require_project_leader(session, project, leader)
    if project.status not in {ProjectStatus.accepted, ProjectStatus.in_progress}:
        raise InvalidStateTransitionError(project.status.value, ProjectStatus.in_progress.value)
    if not drafts:
        raise ValidationError("At least one task is required")

    splits = [split_task_reward(draft.reward, with_leader=True) for draft in drafts]
    requested = sum((split.reward for split in splits), Decimal("0.00"))
    if _allocated_rewards(session, project.id) + requested > project.budget:
        raise ValidationError(
            f"Task rewards ({requested}) exceed the remaining project budget",
            budget=str(project.budget),
        )

    tasks = [
        build_task(session, draft, split, project_id=project.id, group_id=group.id)
        for draft, split in zip(drafts, splits)
    ]
    if project.status == ProjectStatus.accepted:
        _advance(session, project, ProjectStatus.in_progress)
    session.flush()
    return tasks


def build_task(
    session: Session,
    draft: TaskDraft,
    split: TaskRewardSplit,
    *,
    group_id: Optional[int],
    **parent: Optional[int],
) -> Task:
    if not draft.title or not draft.title.strip():
        raise ValidationError("Task title is required")
    if draft.freelancer_id is not None and (
        group_id is None or not is_group_member(session, group_id, draft.freelancer_id)
    ):
        raise ValidationError("Tasks can only be pre-assigned to group members")

    assigned = draft.freelancer_id is not None
    task = Task(
        group_id=group_id,
        freelancer_id=draft.freelancer_id,
        title=draft.title.strip(),
        description=draft.description or "",
        service_type=draft.service_type,
        task_url=draft.task_url or "",
        reward=split.reward,
        platform_fee=split.platform_fee,
        leader_commission=split.leader_commission,
        net_reward=split.net_reward,
        status=TaskStatus.assigned if assigned else TaskStatus.available,
        assigned_at=datetime.utcnow() if assigned else None,
        **parent,
    )
    session.add(task)
    if assigned:
        notify(
            session,
            user_id=draft.freelancer_id,
            event_type="task_assigned",
            title="تم تعيين مهمة جديدة لك",
            message=f'تم تعيين مهمة "{task.title}" لك بمكافأة {split.net_reward} (بعد خصم رسوم المنصة)',
        )
    return task


def cancel_project(session: Session, project: Project, owner: User) -> Project:
    if project.product_owner_id != owner.id:
        raise AuthorizationError("Only the project owner can cancel it")
    if project.status not in {ProjectStatus.pending, ProjectStatus.accepted}:
        raise InvalidStateTransitionError(project.status.value, ProjectStatus.cancelled.value)

    result = session.exec(
        update(Project)
        .where(Project.id == project.id)
        .where(Project.status.in_([ProjectStatus.pending, ProjectStatus.accepted]))
        .values(status=ProjectStatus.cancelled, updated_at=datetime.utcnow())
    )
    session.refresh(project)
    if result.rowcount != 1:
        raise InvalidStateTransitionError(project.status.value, ProjectStatus.cancelled.value)
    refund_escrow(session, project.product_owner_id, project_id=project.id)
    return project
