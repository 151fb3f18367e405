from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlmodel import Session

from app.core.config import settings
from app.core.errors import (
    AlreadyProcessedError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from app.models import PaymentMethod, Role, User, Withdrawal, WithdrawalStatus
from app.services.commission import CENT
from app.services.notifications import notify
from app.services.wallet import (
    get_or_create_wallet,
    mature_credits,
    record_payout,
    release_balance,
    reserve_balance,
)

logger = logging.getLogger(__name__)


def get_withdrawal_or_404(session: Session, withdrawal_id: int) -> Withdrawal:
    withdrawal = session.get(Withdrawal, withdrawal_id)
    if withdrawal is None:
        raise NotFoundError("Withdrawal not found")
    return withdrawal


def _require_admin(actor: User) -> None:
    if actor.role != Role.admin:
        raise AuthorizationError("Only an admin can process withdrawals")


def _close(session: Session, withdrawal: Withdrawal, target: WithdrawalStatus, **values) -> None:
    if withdrawal.status != WithdrawalStatus.pending:
        raise AlreadyProcessedError(
            f"Withdrawal {withdrawal.id} was already {withdrawal.status.value}",
            current_status=withdrawal.status.value,
        )
    result = session.exec(
        update(Withdrawal)
        .where(Withdrawal.id == withdrawal.id)
        .where(Withdrawal.status == WithdrawalStatus.pending)
        .values(status=target, **values)
    )
    session.refresh(withdrawal)
    if result.rowcount != 1:
        raise AlreadyProcessedError(
            f"Withdrawal {withdrawal.id} was already {withdrawal.status.value}",
            current_status=withdrawal.status.value,
        )


def request_withdrawal(
    session: Session,
    freelancer: User,
    *,
    amount: Decimal,
    payment_method: PaymentMethod,
    account_number: str,
) -> Withdrawal:
    if amount is None or amount <= 0:
        raise ValidationError("Withdrawal amount must be greater than zero")
    if amount != amount.quantize(CENT):
        raise ValidationError("Withdrawal amount cannot have more than two decimal places")
    if not account_number or not account_number.strip():
        raise ValidationError("Payment method and account number are required")

    wallet = get_or_create_wallet(session, freelancer.id, for_update=True)
    mature_credits(session, wallet_id=wallet.id)
    reserve_balance(session, wallet, amount)

    withdrawal = Withdrawal(
        freelancer_id=freelancer.id,
        amount=amount,
        payment_method=payment_method,
        account_number=account_number.strip(),
        status=WithdrawalStatus.pending,
    )
    session.add(withdrawal)
    session.flush()
    notify(
        session,
        user_id=freelancer.id,
        event_type="withdrawal_created",
        title="طلب سحب جديد",
        message=f"تم إنشاء طلب سحب بقيمة {amount} {settings.currency}. سيتم مراجعة الطلب قريباً",
    )
    logger.info("Withdrawal %s requested by user %s for %s", withdrawal.id, freelancer.id, amount)
    return withdrawal


def cancel_withdrawal(session: Session, withdrawal: Withdrawal, actor: User) -> Withdrawal:
    if withdrawal.freelancer_id != actor.id:
        raise AuthorizationError("Only the requester can cancel this withdrawal")
    _close(session, withdrawal, WithdrawalStatus.cancelled, processed_at=datetime.utcnow())
    release_balance(session, withdrawal.freelancer_id, withdrawal.amount)
    logger.info("Withdrawal %s cancelled by requester", withdrawal.id)
    return withdrawal


def approve_withdrawal(session: Session, withdrawal: Withdrawal, admin: User) -> Withdrawal:
    _require_admin(admin)
    _close(
        session,
        withdrawal,
        WithdrawalStatus.completed,
        processed_at=datetime.utcnow(),
        processed_by=admin.id,
    )
    # Balance was reserved when the request was made.
    record_payout(session, withdrawal.freelancer_id, withdrawal.amount)
    notify(
        session,
        user_id=withdrawal.freelancer_id,
        event_type="withdrawal_approved",
        title="تم اعتماد طلب السحب",
        message=f"تم تحويل {withdrawal.amount} {settings.currency} إلى حسابك",
    )
    logger.info("Withdrawal %s approved by admin %s", withdrawal.id, admin.id)
    return withdrawal


def reject_withdrawal(session: Session, withdrawal: Withdrawal, admin: User) -> Withdrawal:
    _require_admin(admin)
    _close(
        session,
        withdrawal,
        WithdrawalStatus.rejected,
        processed_at=datetime.utcnow(),
        processed_by=admin.id,
    )
    release_balance(session, withdrawal.freelancer_id, withdrawal.amount)
    notify(
        session,
        user_id=withdrawal.freelancer_id,
        event_type="withdrawal_rejected",
        title="تم رفض طلب السحب",
        message=f"تم رفض طلب السحب وإعادة {withdrawal.amount} {settings.currency} إلى رصيدك",
    )
    logger.info("Withdrawal %s rejected by admin %s", withdrawal.id, admin.id)
    return withdrawal
