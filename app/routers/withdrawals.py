from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from app.dependencies import get_current_freelancer, get_db
from app.models import User, Withdrawal
from app.schemas.withdrawal import WithdrawalCreate, WithdrawalRead
from app.services.withdrawals import cancel_withdrawal, get_withdrawal_or_404, request_withdrawal

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


@router.post("", response_model=WithdrawalRead, status_code=status.HTTP_201_CREATED)
def create_withdrawal(
    payload: WithdrawalCreate,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Withdrawal:
    withdrawal = request_withdrawal(
        db,
        current_user,
        amount=payload.amount,
        payment_method=payload.payment_method,
        account_number=payload.account_number,
    )
    db.commit()
    db.refresh(withdrawal)
    return withdrawal


@router.get("/mine", response_model=list[WithdrawalRead])
def list_my_withdrawals(
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> list[Withdrawal]:
    return db.exec(
        select(Withdrawal)
        .where(Withdrawal.freelancer_id == current_user.id)
        .order_by(Withdrawal.created_at.desc())
    ).all()


@router.post("/{withdrawal_id}/cancel", response_model=WithdrawalRead)
def cancel(
    withdrawal_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Withdrawal:
    withdrawal = cancel_withdrawal(db, get_withdrawal_or_404(db, withdrawal_id), current_user)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal
