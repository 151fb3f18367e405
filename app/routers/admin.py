from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.errors import NotFoundError
from app.dependencies import get_current_active_admin_user, get_db
from app.models import (
    Group,
    Role,
    Task,
    TaskStatus,
    User,
    Wallet,
    Withdrawal,
    WithdrawalStatus,
)
from app.schemas.admin import AdminSummaryRead, MaturationResultRead
from app.schemas.wallet import DepositCreate, WalletRead
from app.schemas.withdrawal import WithdrawalRead
from app.services.commission import to_money
from app.services.wallet import deposit_funds, mature_credits
from app.services.withdrawals import approve_withdrawal, get_withdrawal_or_404, reject_withdrawal

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


def _sum(db: Session, column, *conditions) -> Decimal:
    statement = select(func.coalesce(func.sum(column), 0))
    if conditions:
        statement = statement.where(*conditions)
    return to_money(db.exec(statement).one() or 0)


def _count(db: Session, column, *conditions) -> int:
    statement = select(func.count(column))
    if conditions:
        statement = statement.where(*conditions)
    return db.exec(statement).one() or 0


@router.get("/withdrawals", response_model=list[WithdrawalRead])
def list_withdrawals(
    status_filter: WithdrawalStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_active_admin_user),
) -> list[Withdrawal]:
    del current_admin
    statement = select(Withdrawal).order_by(Withdrawal.created_at.desc())
    if status_filter is not None:
        statement = statement.where(Withdrawal.status == status_filter)
    return db.exec(statement).all()


@router.patch("/withdrawals/{withdrawal_id}/approve", response_model=WithdrawalRead)
def approve(
    withdrawal_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_active_admin_user),
) -> Withdrawal:
    withdrawal = approve_withdrawal(db, get_withdrawal_or_404(db, withdrawal_id), current_admin)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal


@router.patch("/withdrawals/{withdrawal_id}/reject", response_model=WithdrawalRead)
def reject(
    withdrawal_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_active_admin_user),
) -> Withdrawal:
    withdrawal = reject_withdrawal(db, get_withdrawal_or_404(db, withdrawal_id), current_admin)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal


@router.post("/wallets/mature", response_model=MaturationResultRead)
def run_maturation(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_active_admin_user),
) -> MaturationResultRead:
    ran_at = datetime.utcnow()
    matured = mature_credits(db, now=ran_at)
    db.commit()
    logger.info("Admin %s ran wallet maturation: %s credit(s)", current_admin.id, matured)
    return MaturationResultRead(matured_credits=matured, ran_at=ran_at)


@router.post("/wallets/{user_id}/deposit", response_model=WalletRead)
def deposit(
    user_id: int,
    payload: DepositCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_active_admin_user),
) -> Wallet:
    owner = db.get(User, user_id)
    if owner is None or owner.role != Role.product_owner:
        raise NotFoundError("Product owner not found")
    wallet = deposit_funds(db, owner.id, payload.amount)
    db.commit()
    db.refresh(wallet)
    logger.info("Admin %s deposited %s for product owner %s", current_admin.id, payload.amount, owner.id)
    return wallet


@router.get("/summary", response_model=AdminSummaryRead)
def get_summary(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_active_admin_user),
) -> AdminSummaryRead:
    del current_admin
    pending = Withdrawal.status == WithdrawalStatus.pending
    return AdminSummaryRead(
        generated_at=datetime.utcnow(),
        freelancer_count=_count(db, User.id, User.role == Role.freelancer),
        product_owner_count=_count(db, User.id, User.role == Role.product_owner),
        group_count=_count(db, Group.id),
        pending_withdrawals=_count(db, Withdrawal.id, pending),
        pending_withdrawal_amount=_sum(db, Withdrawal.amount, pending),
        total_balance=_sum(db, Wallet.balance),
        total_pending_balance=_sum(db, Wallet.pending_balance),
        total_earned=_sum(db, Wallet.total_earned),
        total_withdrawn=_sum(db, Wallet.total_withdrawn),
        total_escrow=_sum(db, Wallet.escrow_balance),
        platform_fees_collected=_sum(db, Task.platform_fee, Task.status == TaskStatus.approved),
    )
