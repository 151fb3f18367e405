from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import (
    AuthorizationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models import (
    Campaign,
    CampaignPackage,
    CampaignStatus,
    Group,
    GroupStatus,
    ServiceType,
    Task,
    TaskStatus,
    User,
)
from app.services.commission import split_task_reward, to_money
from app.services.groups import require_group_leader
from app.services.notifications import notify
from app.services.projects import TaskDraft, build_task
from app.services.wallet import lock_escrow, refund_escrow


def get_campaign_or_404(session: Session, campaign_id: int) -> Campaign:
    campaign = session.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    return campaign


def _require_owner(campaign: Campaign, owner: User) -> None:
    if campaign.product_owner_id != owner.id:
        raise AuthorizationError("Only the campaign owner can do this")


def _set_status(session: Session, campaign: Campaign, allowed: set[CampaignStatus], target: CampaignStatus) -> None:
    if campaign.status not in allowed:
        raise InvalidStateTransitionError(campaign.status.value, target.value)
    result = session.exec(
        update(Campaign)
        .where(Campaign.id == campaign.id)
        .where(Campaign.status.in_(list(allowed)))
        .values(status=target, updated_at=datetime.utcnow())
    )
    session.refresh(campaign)
    if result.rowcount != 1:
        raise InvalidStateTransitionError(campaign.status.value, target.value)


def create_campaign(
    session: Session,
    owner: User,
    *,
    title: str,
    package: CampaignPackage,
    service_type: ServiceType = ServiceType.app_testing,
    description: str = "",
    target_country: str = "",
) -> Campaign:
    if not title or not title.strip():
        raise ValidationError("Campaign title is required")

    campaign = Campaign(
        product_owner_id=owner.id,
        title=title.strip(),
        description=(description or "").strip(),
        service_type=service_type,
        package=package,
        budget=settings.campaign_package_price(package.value),
        target_country=target_country or "",
        status=CampaignStatus.draft,
    )
    session.add(campaign)
    session.flush()
    return campaign


def activate_campaign(session: Session, campaign: Campaign, owner: User) -> Campaign:
    _require_owner(campaign, owner)
    if campaign.status == CampaignStatus.draft:
        lock_escrow(session, owner.id, campaign.budget, campaign_id=campaign.id)
    _set_status(session, campaign, {CampaignStatus.draft}, CampaignStatus.active)
    return campaign


def cancel_campaign(session: Session, campaign: Campaign, owner: User) -> Campaign:
    _require_owner(campaign, owner)
    _set_status(session, campaign, {CampaignStatus.draft, CampaignStatus.active}, CampaignStatus.cancelled)
    refund_escrow(session, campaign.product_owner_id, campaign_id=campaign.id)
    return campaign


def accept_campaign(session: Session, campaign: Campaign, group: Group, leader: User) -> Campaign:
    require_group_leader(group, leader)
    if group.status != GroupStatus.active:
        raise ValidationError("The group is not active")
    if campaign.status != CampaignStatus.active:
        raise ValidationError("Only active campaigns can be accepted")
    if campaign.accepted_by_group_id is not None:
        raise ValidationError("This campaign was already accepted by a group")

    campaign.accepted_by_group_id = group.id
    campaign.updated_at = datetime.utcnow()
    session.add(campaign)
    notify(
        session,
        user_id=campaign.product_owner_id,
        event_type="campaign_accepted",
        title="تم قبول الحملة",
        message=f'قبل الفريق "{group.name}" حملتك "{campaign.title}"',
    )
    return campaign


def create_campaign_tasks(
    session: Session,
    campaign: Campaign,
    owner: User,
    drafts: Sequence[TaskDraft],
) -> list[Task]:
    _require_owner(campaign, owner)
    if campaign.status not in {CampaignStatus.draft, CampaignStatus.active}:
        raise InvalidStateTransitionError(campaign.status.value, CampaignStatus.active.value)
    if not drafts:
        raise ValidationError("At least one task is required")

    with_leader = campaign.accepted_by_group_id is not None
    splits = [split_task_reward(draft.reward, with_leader=with_leader) for draft in drafts]
    requested = sum((split.reward for split in splits), Decimal("0.00"))
    allocated = session.exec(
        select(func.coalesce(func.sum(Task.reward), 0)).where(Task.campaign_id == campaign.id)
    ).one()
    if to_money(allocated or 0) + requested > campaign.budget:
        raise ValidationError(
            f"Task rewards ({requested}) exceed the remaining campaign budget",
            budget=str(campaign.budget),
        )

    tasks = [
        build_task(
            session,
            draft,
            split,
            campaign_id=campaign.id,
            group_id=campaign.accepted_by_group_id,
        )
        for draft, split in zip(drafts, splits)
    ]
    session.flush()
    return tasks


def complete_campaign(session: Session, campaign: Campaign, owner: User) -> Campaign:
    _require_owner(campaign, owner)
    open_tasks = session.exec(
        select(func.count(Task.id))
        .where(Task.campaign_id == campaign.id)
        .where(Task.status != TaskStatus.approved)
    ).one()
    if open_tasks:
        raise ValidationError(f"{open_tasks} task(s) of this campaign are not approved yet")
    _set_status(session, campaign, {CampaignStatus.active}, CampaignStatus.completed)
    refund_escrow(session, campaign.product_owner_id, campaign_id=campaign.id)
    return campaign
