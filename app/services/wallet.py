"""Wallet ledger.

Balances change only through the helpers in this module, and always as SQL
expressions (``balance = balance + :x``) so concurrent requests cannot
overwrite each other's increments. Money columns hold whole cents, so the
guards (``balance >= :x``) compare exact integers on every backend.

Product owners fund their wallet, lock escrow when a project or campaign is
funded, spend it as tasks settle and get the remainder back when the work
closes. ``EscrowTransaction`` rows record each of those moves.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import InsufficientFundsError, ValidationError
from app.models import CreditSource, EscrowKind, EscrowTransaction, Wallet, WalletCredit
from app.services.commission import CENT

logger = logging.getLogger(__name__)


def get_or_create_wallet(session: Session, user_id: int, *, for_update: bool = False) -> Wallet:
    statement = select(Wallet).where(Wallet.user_id == user_id)
    if for_update:
        statement = statement.with_for_update()
    wallet = session.exec(statement).first()
    if wallet is not None:
        return wallet

    wallet = Wallet(user_id=user_id)
    session.add(wallet)
    session.flush()
    return wallet


def credit_pending(
    session: Session,
    *,
    user_id: int,
    task_id: int,
    amount: Decimal,
    source: CreditSource,
    now: Optional[datetime] = None,
) -> WalletCredit:
    now = now or datetime.utcnow()
    wallet = get_or_create_wallet(session, user_id, for_update=True)

    credit = WalletCredit(
        wallet_id=wallet.id,
        task_id=task_id,
        source=source,
        amount=amount,
        credited_at=now,
        available_at=now + timedelta(days=settings.hold_period_days),
    )
    session.add(credit)
    session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(
            pending_balance=Wallet.pending_balance + amount,
            total_earned=Wallet.total_earned + amount,
            updated_at=now,
        )
    )
    session.flush()
    session.refresh(wallet)
    logger.info(
        "Credited %s %s to wallet %s (task=%s, source=%s, available_at=%s)",
        amount,
        settings.currency,
        wallet.id,
        task_id,
        source.value,
        credit.available_at.isoformat(),
    )
    return credit


def mature_credits(
    session: Session,
    *,
    now: Optional[datetime] = None,
    wallet_id: Optional[int] = None,
) -> int:
    """Move every due credit from pending to withdrawable balance.

    Each credit is claimed with ``matured_at IS NULL`` as a guard, so running
    the sweep twice, or from two workers at once, moves the money once.
    """
    now = now or datetime.utcnow()
    statement = (
        select(WalletCredit)
        .where(WalletCredit.matured_at.is_(None))
        .where(WalletCredit.available_at <= now)
    )
    if wallet_id is not None:
        statement = statement.where(WalletCredit.wallet_id == wallet_id)

    matured = 0
    for credit in session.exec(statement.order_by(WalletCredit.id)).all():
        claimed = session.exec(
            update(WalletCredit)
            .where(WalletCredit.id == credit.id)
            .where(WalletCredit.matured_at.is_(None))
            .values(matured_at=now)
        )
        if claimed.rowcount != 1:
            continue

        session.exec(
            update(Wallet)
            .where(Wallet.id == credit.wallet_id)
            .values(
                pending_balance=Wallet.pending_balance - credit.amount,
                balance=Wallet.balance + credit.amount,
                updated_at=now,
            )
        )
        matured += 1

    if matured:
        session.flush()
        session.expire_all()
        logger.info("Matured %s wallet credit(s)", matured)
    return matured


def reserve_balance(session: Session, wallet: Wallet, amount: Decimal) -> None:
    result = session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .where(Wallet.balance >= amount)
        .values(balance=Wallet.balance - amount, updated_at=datetime.utcnow())
    )
    if result.rowcount != 1:
        session.refresh(wallet)
        raise InsufficientFundsError(
            f"Requested {amount} exceeds available balance {wallet.balance}",
            available=str(wallet.balance),
        )
    session.refresh(wallet)


def release_balance(session: Session, user_id: int, amount: Decimal) -> Wallet:
    wallet = get_or_create_wallet(session, user_id, for_update=True)
    session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(balance=Wallet.balance + amount, updated_at=datetime.utcnow())
    )
    session.refresh(wallet)
    return wallet


def record_payout(session: Session, user_id: int, amount: Decimal) -> Wallet:
    wallet = get_or_create_wallet(session, user_id, for_update=True)
    session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(total_withdrawn=Wallet.total_withdrawn + amount, updated_at=datetime.utcnow())
    )
    session.refresh(wallet)
    return wallet


def deposit_funds(session: Session, user_id: int, amount: Decimal) -> Wallet:
    if amount is None or amount <= 0:
        raise ValidationError("Deposit amount must be greater than zero")
    if amount != amount.quantize(CENT):
        raise ValidationError("Deposit amount cannot have more than two decimal places")

    wallet = get_or_create_wallet(session, user_id, for_update=True)
    session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(
            balance=Wallet.balance + amount,
            total_deposited=Wallet.total_deposited + amount,
            updated_at=datetime.utcnow(),
        )
    )
    session.refresh(wallet)
    logger.info("Deposited %s %s to wallet %s", amount, settings.currency, wallet.id)
    return wallet


def escrow_outstanding(
    session: Session,
    *,
    project_id: Optional[int] = None,
    campaign_id: Optional[int] = None,
) -> Decimal:
    """Locked minus spent minus refunded for one project or campaign."""
    statement = select(EscrowTransaction.kind, func.sum(EscrowTransaction.amount)).group_by(EscrowTransaction.kind)
    if project_id is not None:
        statement = statement.where(EscrowTransaction.project_id == project_id)
    else:
        statement = statement.where(EscrowTransaction.campaign_id == campaign_id)

    totals = {kind: amount for kind, amount in session.exec(statement).all()}
    locked = totals.get(EscrowKind.lock) or Decimal("0.00")
    released = (totals.get(EscrowKind.spend) or Decimal("0.00")) + (totals.get(EscrowKind.refund) or Decimal("0.00"))
    return locked - released


def lock_escrow(
    session: Session,
    owner_id: int,
    amount: Decimal,
    *,
    project_id: Optional[int] = None,
    campaign_id: Optional[int] = None,
) -> Optional[EscrowTransaction]:
    if amount <= 0:
        return None
    wallet = get_or_create_wallet(session, owner_id, for_update=True)
    result = session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .where(Wallet.balance >= amount)
        .values(
            balance=Wallet.balance - amount,
            escrow_balance=Wallet.escrow_balance + amount,
            updated_at=datetime.utcnow(),
        )
    )
    session.refresh(wallet)
    if result.rowcount != 1:
        raise InsufficientFundsError(
            f"Funding {amount} needs more than the available balance {wallet.balance}",
            available=str(wallet.balance),
            required=str(amount),
        )

    entry = EscrowTransaction(
        wallet_id=wallet.id,
        kind=EscrowKind.lock,
        amount=amount,
        project_id=project_id,
        campaign_id=campaign_id,
    )
    session.add(entry)
    session.flush()
    logger.info(
        "Locked %s %s in escrow from wallet %s (project=%s, campaign=%s)",
        amount,
        settings.currency,
        wallet.id,
        project_id,
        campaign_id,
    )
    return entry


def spend_escrow(
    session: Session,
    owner_id: int,
    amount: Decimal,
    *,
    task_id: int,
    project_id: Optional[int] = None,
    campaign_id: Optional[int] = None,
) -> Optional[EscrowTransaction]:
    if amount <= 0:
        return None
    if escrow_outstanding(session, project_id=project_id, campaign_id=campaign_id) < amount:
        raise InsufficientFundsError(
            f"Task {task_id} reward {amount} is not covered by escrow",
            required=str(amount),
        )

    wallet = get_or_create_wallet(session, owner_id, for_update=True)
    result = session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .where(Wallet.escrow_balance >= amount)
        .values(
            escrow_balance=Wallet.escrow_balance - amount,
            total_spent=Wallet.total_spent + amount,
            updated_at=datetime.utcnow(),
        )
    )
    if result.rowcount != 1:
        raise InsufficientFundsError(f"Task {task_id} reward {amount} is not covered by escrow", required=str(amount))

    entry = EscrowTransaction(
        wallet_id=wallet.id,
        kind=EscrowKind.spend,
        amount=amount,
        project_id=project_id,
        campaign_id=campaign_id,
        task_id=task_id,
    )
    session.add(entry)
    session.flush()
    session.refresh(wallet)
    return entry


def refund_escrow(
    session: Session,
    owner_id: int,
    *,
    project_id: Optional[int] = None,
    campaign_id: Optional[int] = None,
) -> Decimal:
    """Return whatever is still locked for a project or campaign to the owner's balance."""
    remaining = escrow_outstanding(session, project_id=project_id, campaign_id=campaign_id)
    if remaining <= 0:
        return Decimal("0.00")

    wallet = get_or_create_wallet(session, owner_id, for_update=True)
    session.exec(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(
            escrow_balance=Wallet.escrow_balance - remaining,
            balance=Wallet.balance + remaining,
            updated_at=datetime.utcnow(),
        )
    )
    session.add(
        EscrowTransaction(
            wallet_id=wallet.id,
            kind=EscrowKind.refund,
            amount=remaining,
            project_id=project_id,
            campaign_id=campaign_id,
        )
    )
    session.flush()
    session.refresh(wallet)
    logger.info("Refunded %s %s of escrow to wallet %s", remaining, settings.currency, wallet.id)
    return remaining
