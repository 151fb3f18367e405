"""Task state machine.

available -> assigned -> in_progress -> submitted -> approved | rejected,
and rejected -> in_progress when the assignee resubmits. Every transition is a
compare-and-set on the current status, so two concurrent approvals of the
same task cannot both settle it.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.core.errors import (
    AlreadyFinalizedError,
    AuthorizationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models import (
    Campaign,
    CampaignStatus,
    Group,
    Project,
    ProjectStatus,
    ReviewDecision,
    Task,
    TaskReviewNote,
    TaskStatus,
    User,
)
from app.services.groups import is_group_member
from app.services.notifications import notify
from app.services.settlement import settle_task
from app.services.wallet import refund_escrow

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, tuple[TaskStatus, TaskStatus]] = {
    "accept": (TaskStatus.available, TaskStatus.assigned),
    "assign": (TaskStatus.available, TaskStatus.assigned),
    "start": (TaskStatus.assigned, TaskStatus.in_progress),
    "submit": (TaskStatus.in_progress, TaskStatus.submitted),
    "approve": (TaskStatus.submitted, TaskStatus.approved),
    "reject": (TaskStatus.submitted, TaskStatus.rejected),
    "resubmit": (TaskStatus.rejected, TaskStatus.in_progress),
}


def get_task_or_404(session: Session, task_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def _check_transition(task: Task, action: str) -> None:
    expected, target = TRANSITIONS[action]
    if task.status == expected:
        return
    if action in {"approve", "reject"} and task.status == TaskStatus.approved:
        raise AlreadyFinalizedError(f"Task {task.id} is already approved", current_status=task.status.value)
    raise InvalidStateTransitionError(
        task.status.value,
        target.value,
        message=f"Cannot {action} task {task.id} while it is '{task.status.value}'",
    )


def _compare_and_set(session: Session, task: Task, action: str, *conditions: Any, **values: Any) -> None:
    expected, target = TRANSITIONS[action]
    result = session.exec(
        update(Task)
        .where(Task.id == task.id)
        .where(Task.status == expected)
        .where(*conditions)
        .values(status=target, updated_at=datetime.utcnow(), **values)
    )
    session.refresh(task)
    if result.rowcount != 1:
        # Lost the race; report against the state the winner left behind.
        _check_transition(task, action)
        raise InvalidStateTransitionError(task.status.value, target.value)


def _require_assignee(task: Task, actor: User) -> None:
    if task.freelancer_id is None or task.freelancer_id != actor.id:
        raise AuthorizationError("This task is not assigned to you")


def reviewer_ids(session: Session, task: Task) -> set[int]:
    ids: set[int] = set()
    if task.project_id is not None:
        project = session.get(Project, task.project_id)
        if project is not None:
            ids.add(project.product_owner_id)
    if task.campaign_id is not None:
        campaign = session.get(Campaign, task.campaign_id)
        if campaign is not None:
            ids.add(campaign.product_owner_id)
    if task.group_id is not None:
        group = session.get(Group, task.group_id)
        if group is not None:
            ids.add(group.leader_id)
    return ids


def _require_reviewer(session: Session, task: Task, actor: User) -> None:
    if actor.id not in reviewer_ids(session, task):
        raise AuthorizationError("Only the product owner or the group leader can review this task")


def accept_task(session: Session, task: Task, freelancer: User) -> Task:
    if task.group_id is not None and not is_group_member(session, task.group_id, freelancer.id):
        raise AuthorizationError("Only members of the task's group can accept it")
    if task.campaign_id is not None:
        campaign = session.get(Campaign, task.campaign_id)
        if campaign is None or campaign.status != CampaignStatus.active:
            raise ValidationError("The campaign of this task is not active")
    if task.freelancer_id is not None and task.status == TaskStatus.available:
        raise InvalidStateTransitionError(task.status.value, TaskStatus.assigned.value, "Task already has an assignee")
    _check_transition(task, "accept")

    now = datetime.utcnow()
    _compare_and_set(
        session,
        task,
        "accept",
        Task.freelancer_id.is_(None),
        freelancer_id=freelancer.id,
        assigned_at=now,
    )
    logger.info("Task %s accepted by freelancer %s", task.id, freelancer.id)
    return task


def assign_task(session: Session, task: Task, leader: User, freelancer_id: int) -> Task:
    if task.group_id is None:
        raise ValidationError("This task is not attached to a group")
    group = session.get(Group, task.group_id)
    if group is None or group.leader_id != leader.id:
        raise AuthorizationError("Only the group leader can assign tasks")
    if not is_group_member(session, task.group_id, freelancer_id):
        raise ValidationError("The selected freelancer is not a member of the group")
    _check_transition(task, "assign")

    _compare_and_set(
        session,
        task,
        "assign",
        Task.freelancer_id.is_(None),
        freelancer_id=freelancer_id,
        assigned_at=datetime.utcnow(),
    )
    notify(
        session,
        user_id=freelancer_id,
        event_type="task_assigned",
        title="تم تعيين مهمة جديدة لك",
        message=f'تم تعيين مهمة "{task.title}" لك بمكافأة {task.net_reward}',
    )
    return task


def start_work(session: Session, task: Task, actor: User) -> Task:
    _require_assignee(task, actor)
    _check_transition(task, "start")
    _compare_and_set(session, task, "start", started_at=datetime.utcnow())
    return task


def submit_proof(
    session: Session,
    task: Task,
    actor: User,
    *,
    submission: str,
    proof_image_url: Optional[str] = None,
) -> Task:
    _require_assignee(task, actor)
    if not submission or not submission.strip():
        raise ValidationError("Submission text is required")
    _check_transition(task, "submit")

    _compare_and_set(
        session,
        task,
        "submit",
        submission=submission.strip(),
        proof_image_url=proof_image_url,
        submitted_at=datetime.utcnow(),
    )
    for reviewer_id in reviewer_ids(session, task):
        notify(
            session,
            user_id=reviewer_id,
            event_type="task_submitted",
            title="تم تسليم مهمة للمراجعة",
            message=f'تم تسليم مهمة "{task.title}" وهي بانتظار المراجعة',
        )
    return task


def approve_task(
    session: Session,
    task: Task,
    reviewer: User,
    *,
    feedback: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Task:
    _require_reviewer(session, task, reviewer)
    _check_transition(task, "approve")

    now = now or datetime.utcnow()
    _compare_and_set(session, task, "approve", approved_at=now)
    session.add(
        TaskReviewNote(
            task_id=task.id,
            reviewer_id=reviewer.id,
            decision=ReviewDecision.approved,
            feedback=(feedback or "").strip(),
            created_at=now,
        )
    )
    settle_task(session, task, now=now)
    notify(
        session,
        user_id=task.freelancer_id,
        event_type="task_approved",
        title="تمت الموافقة على مهمتك",
        message=f'تمت الموافقة على مهمة "{task.title}" وتمت إضافة {task.net_reward} إلى رصيدك المعلق',
    )
    _complete_project_if_done(session, task)
    return task


def reject_task(session: Session, task: Task, reviewer: User, *, feedback: str) -> Task:
    _require_reviewer(session, task, reviewer)
    if not feedback or not feedback.strip():
        raise ValidationError("Rejection feedback is required")
    _check_transition(task, "reject")

    _compare_and_set(session, task, "reject")
    session.add(
        TaskReviewNote(
            task_id=task.id,
            reviewer_id=reviewer.id,
            decision=ReviewDecision.rejected,
            feedback=feedback.strip(),
        )
    )
    notify(
        session,
        user_id=task.freelancer_id,
        event_type="task_rejected",
        title="تم رفض المهمة",
        message=f'تم رفض مهمة "{task.title}". يرجى مراجعة الملاحظات وإعادة التسليم',
    )
    return task


def resubmit_task(session: Session, task: Task, actor: User) -> Task:
    _require_assignee(task, actor)
    _check_transition(task, "resubmit")
    _compare_and_set(
        session,
        task,
        "resubmit",
        submission=None,
        proof_image_url=None,
        submitted_at=None,
        started_at=datetime.utcnow(),
    )
    return task


def _complete_project_if_done(session: Session, task: Task) -> None:
    if task.project_id is None:
        return

    remaining = session.exec(
        select(func.count(Task.id))
        .where(Task.project_id == task.project_id)
        .where(Task.status != TaskStatus.approved)
    ).one()
    if remaining:
        return

    result = session.exec(
        update(Project)
        .where(Project.id == task.project_id)
        .where(Project.status == ProjectStatus.in_progress)
        .values(status=ProjectStatus.completed, updated_at=datetime.utcnow())
    )
    if result.rowcount == 1:
        project = session.get(Project, task.project_id)
        refunded = refund_escrow(session, project.product_owner_id, project_id=project.id)
        logger.info("Project %s completed, %s returned from escrow", project.id, refunded)
