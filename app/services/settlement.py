from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Session

from app.core.errors import ValidationError
from app.models import Campaign, CreditSource, Group, Project, Task, WalletCredit
from app.services.wallet import credit_pending, spend_escrow

logger = logging.getLogger(__name__)


def settle_task(session: Session, task: Task, *, now: Optional[datetime] = None) -> list[WalletCredit]:
    """Credit an approved task's rewards to pending balances.

    Must run in the same transaction as the approval; the caller commits.
    """
    if task.freelancer_id is None:
        raise ValidationError(f"Task {task.id} has no assignee to settle")

    now = now or datetime.utcnow()
    _draw_from_escrow(session, task)
    credits: list[WalletCredit] = []

    if task.net_reward > 0:
        credits.append(
            credit_pending(
                session,
                user_id=task.freelancer_id,
                task_id=task.id,
                amount=task.net_reward,
                source=CreditSource.task_reward,
                now=now,
            )
        )

    if task.group_id is not None and task.leader_commission > Decimal("0"):
        group = session.get(Group, task.group_id)
        if group is not None:
            credits.append(
                credit_pending(
                    session,
                    user_id=group.leader_id,
                    task_id=task.id,
                    amount=task.leader_commission,
                    source=CreditSource.leader_commission,
                    now=now,
                )
            )

    logger.info("Settled task %s with %s credit(s)", task.id, len(credits))
    return credits


def _draw_from_escrow(session: Session, task: Task) -> None:
    """The gross reward leaves the funding owner's escrow before anyone is credited."""
    if task.project_id is not None:
        project = session.get(Project, task.project_id)
        spend_escrow(session, project.product_owner_id, task.reward, task_id=task.id, project_id=project.id)
    elif task.campaign_id is not None:
        campaign = session.get(Campaign, task.campaign_id)
        spend_escrow(session, campaign.product_owner_id, task.reward, task_id=task.id, campaign_id=campaign.id)
