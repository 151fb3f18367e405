from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from app.dependencies import (
    get_current_active_user,
    get_current_freelancer,
    get_current_product_owner,
    get_db,
)
from app.models import Project, ProjectStatus, Role, Task, User
from app.schemas.project import ProjectAccept, ProjectCreate, ProjectRead, TaskBatchCreate
from app.schemas.task import TaskRead
from app.services.groups import get_group_or_404
from app.services.projects import (
    TaskDraft,
    accept_project,
    cancel_project,
    create_project,
    create_project_tasks,
    generate_project_tasks,
    get_project_or_404,
)

router = APIRouter(prefix="/projects", tags=["projects"])


def _loaded(tasks: list[Task]) -> list[Task]:
    for task in tasks:
        _ = task.review_notes
    return tasks


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create(
    payload: ProjectCreate,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> Project:
    project = create_project(
        db,
        current_user,
        title=payload.title,
        budget=payload.budget,
        tasks_count=payload.tasks_count,
        description=payload.description,
        target_country=payload.target_country,
        deadline=payload.deadline,
    )
    db.commit()
    db.refresh(project)
    return project


@router.get("", response_model=list[ProjectRead])
def list_projects(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> list[Project]:
    statement = select(Project)
    if current_user.role == Role.product_owner:
        statement = statement.where(Project.product_owner_id == current_user.id)
    elif current_user.role == Role.freelancer:
        statement = statement.where(Project.status == ProjectStatus.pending)
    return db.exec(statement.order_by(Project.created_at.desc())).all()


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Project:
    del current_user
    return get_project_or_404(db, project_id)


@router.post("/{project_id}/accept", response_model=ProjectRead)
def accept(
    project_id: int,
    payload: ProjectAccept,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Project:
    project = get_project_or_404(db, project_id)
    group = get_group_or_404(db, payload.group_id)
    accept_project(db, project, group, current_user)
    db.commit()
    db.refresh(project)
    return project


@router.post("/{project_id}/cancel", response_model=ProjectRead)
def cancel(
    project_id: int,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> Project:
    project = cancel_project(db, get_project_or_404(db, project_id), current_user)
    db.commit()
    db.refresh(project)
    return project


@router.post("/{project_id}/tasks", response_model=list[TaskRead], status_code=status.HTTP_201_CREATED)
def create_tasks(
    project_id: int,
    payload: TaskBatchCreate,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> list[Task]:
    drafts = [TaskDraft(**item.model_dump()) for item in payload.tasks]
    tasks = create_project_tasks(db, get_project_or_404(db, project_id), current_user, drafts)
    db.commit()
    for task in tasks:
        db.refresh(task)
    return _loaded(tasks)


@router.post(
    "/{project_id}/tasks/generate",
    response_model=list[TaskRead],
    status_code=status.HTTP_201_CREATED,
)
def generate_tasks(
    project_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> list[Task]:
    tasks = generate_project_tasks(db, get_project_or_404(db, project_id), current_user)
    db.commit()
    for task in tasks:
        db.refresh(task)
    return _loaded(tasks)


@router.get("/{project_id}/tasks", response_model=list[TaskRead])
def list_project_tasks(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> list[Task]:
    del current_user
    get_project_or_404(db, project_id)
    tasks = db.exec(select(Task).where(Task.project_id == project_id).order_by(Task.id)).all()
    return _loaded(list(tasks))
