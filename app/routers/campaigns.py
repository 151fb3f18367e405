from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from app.dependencies import (
    get_current_active_user,
    get_current_freelancer,
    get_current_product_owner,
    get_db,
)
from app.models import Campaign, CampaignStatus, Role, Task, User
from app.schemas.campaign import CampaignAccept, CampaignCreate, CampaignRead
from app.schemas.project import TaskBatchCreate
from app.schemas.task import TaskRead
from app.services.campaigns import (
    accept_campaign,
    activate_campaign,
    cancel_campaign,
    complete_campaign,
    create_campaign,
    create_campaign_tasks,
    get_campaign_or_404,
)
from app.services.groups import get_group_or_404
from app.services.projects import TaskDraft

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", response_model=CampaignRead, status_code=status.HTTP_201_CREATED)
def create(
    payload: CampaignCreate,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> Campaign:
    campaign = create_campaign(
        db,
        current_user,
        title=payload.title,
        package=payload.package,
        service_type=payload.service_type,
        description=payload.description,
        target_country=payload.target_country,
    )
    db.commit()
    db.refresh(campaign)
    return campaign


@router.get("", response_model=list[CampaignRead])
def list_campaigns(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> list[Campaign]:
    statement = select(Campaign)
    if current_user.role == Role.product_owner:
        statement = statement.where(Campaign.product_owner_id == current_user.id)
    elif current_user.role == Role.freelancer:
        statement = statement.where(Campaign.status == CampaignStatus.active)
    return db.exec(statement.order_by(Campaign.created_at.desc())).all()


@router.get("/{campaign_id}", response_model=CampaignRead)
def get_campaign(
    campaign_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Campaign:
    del current_user
    return get_campaign_or_404(db, campaign_id)


@router.post("/{campaign_id}/activate", response_model=CampaignRead)
def activate(
    campaign_id: int,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> Campaign:
    campaign = activate_campaign(db, get_campaign_or_404(db, campaign_id), current_user)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.post("/{campaign_id}/accept", response_model=CampaignRead)
def accept(
    campaign_id: int,
    payload: CampaignAccept,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Campaign:
    campaign = get_campaign_or_404(db, campaign_id)
    accept_campaign(db, campaign, get_group_or_404(db, payload.group_id), current_user)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.post("/{campaign_id}/cancel", response_model=CampaignRead)
def cancel(
    campaign_id: int,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> Campaign:
    campaign = cancel_campaign(db, get_campaign_or_404(db, campaign_id), current_user)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.post("/{campaign_id}/complete", response_model=CampaignRead)
def complete(
    campaign_id: int,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> Campaign:
    campaign = complete_campaign(db, get_campaign_or_404(db, campaign_id), current_user)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.post("/{campaign_id}/tasks", response_model=list[TaskRead], status_code=status.HTTP_201_CREATED)
def create_tasks(
    campaign_id: int,
    payload: TaskBatchCreate,
    current_user: User = Depends(get_current_product_owner),
    db: Session = Depends(get_db),
) -> list[Task]:
    drafts = [TaskDraft(**item.model_dump()) for item in payload.tasks]
    tasks = create_campaign_tasks(db, get_campaign_or_404(db, campaign_id), current_user, drafts)
    db.commit()
    for task in tasks:
        db.refresh(task)
        _ = task.review_notes
    return tasks
