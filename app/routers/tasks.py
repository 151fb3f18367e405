from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlmodel import Session, select

from app.dependencies import get_current_active_user, get_current_freelancer, get_db
from app.models import (
    Campaign,
    CampaignStatus,
    GroupMember,
    Task,
    TaskStatus,
    User,
)
from app.schemas.task import TaskApprove, TaskAssign, TaskRead, TaskReject, TaskSubmit
from app.services.task_lifecycle import (
    accept_task,
    approve_task,
    assign_task,
    get_task_or_404,
    reject_task,
    resubmit_task,
    start_work,
    submit_proof,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _ensure_task_relations_loaded(task: Task) -> None:
    _ = task.review_notes


def _commit_and_refresh(db: Session, task: Task) -> Task:
    db.commit()
    db.refresh(task)
    _ensure_task_relations_loaded(task)
    return task


@router.get("/available", response_model=list[TaskRead])
def list_available_tasks(
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> list[Task]:
    group_ids = db.exec(
        select(GroupMember.group_id).where(GroupMember.freelancer_id == current_user.id)
    ).all()
    active_campaign_ids = select(Campaign.id).where(Campaign.status == CampaignStatus.active)

    statement = (
        select(Task)
        .where(Task.status == TaskStatus.available)
        .where(or_(Task.campaign_id.is_(None), Task.campaign_id.in_(active_campaign_ids)))
    )
    if group_ids:
        statement = statement.where(or_(Task.group_id.is_(None), Task.group_id.in_(group_ids)))
    else:
        statement = statement.where(Task.group_id.is_(None))

    tasks = db.exec(statement.order_by(Task.created_at.desc())).all()
    for task in tasks:
        _ensure_task_relations_loaded(task)
    return tasks


@router.get("/mine", response_model=list[TaskRead])
def list_my_tasks(
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> list[Task]:
    tasks = db.exec(
        select(Task)
        .where(Task.freelancer_id == current_user.id)
        .order_by(Task.updated_at.desc())
    ).all()
    for task in tasks:
        _ensure_task_relations_loaded(task)
    return tasks


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Task:
    del current_user
    task = get_task_or_404(db, task_id)
    _ensure_task_relations_loaded(task)
    return task


@router.post("/{task_id}/accept", response_model=TaskRead)
def accept(
    task_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Task:
    task = accept_task(db, get_task_or_404(db, task_id), current_user)
    return _commit_and_refresh(db, task)


@router.patch("/{task_id}/assign", response_model=TaskRead)
def assign(
    task_id: int,
    payload: TaskAssign,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Task:
    task = assign_task(db, get_task_or_404(db, task_id), current_user, payload.freelancer_id)
    return _commit_and_refresh(db, task)


@router.patch("/{task_id}/start-work", response_model=TaskRead)
def start(
    task_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Task:
    task = start_work(db, get_task_or_404(db, task_id), current_user)
    return _commit_and_refresh(db, task)


@router.patch("/{task_id}/submit-proof", response_model=TaskRead)
def submit(
    task_id: int,
    payload: TaskSubmit,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Task:
    task = submit_proof(
        db,
        get_task_or_404(db, task_id),
        current_user,
        submission=payload.submission,
        proof_image_url=payload.proof_image_url,
    )
    return _commit_and_refresh(db, task)


@router.patch("/{task_id}/approve", response_model=TaskRead)
def approve(
    task_id: int,
    payload: TaskApprove | None = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Task:
    feedback = payload.feedback if payload else None
    task = approve_task(db, get_task_or_404(db, task_id), current_user, feedback=feedback)
    return _commit_and_refresh(db, task)


@router.patch("/{task_id}/reject", response_model=TaskRead)
def reject(
    task_id: int,
    payload: TaskReject,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Task:
    task = reject_task(db, get_task_or_404(db, task_id), current_user, feedback=payload.feedback)
    return _commit_and_refresh(db, task)


@router.patch("/{task_id}/resubmit", response_model=TaskRead)
def resubmit(
    task_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Task:
    task = resubmit_task(db, get_task_or_404(db, task_id), current_user)
    return _commit_and_refresh(db, task)
