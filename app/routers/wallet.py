from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.dependencies import get_current_wallet_holder, get_db
from app.models import EscrowTransaction, User, Wallet, WalletCredit
from app.schemas.wallet import EscrowTransactionRead, WalletCreditRead, WalletRead
from app.services.wallet import get_or_create_wallet, mature_credits

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=WalletRead)
def read_wallet(
    current_user: User = Depends(get_current_wallet_holder),
    db: Session = Depends(get_db),
) -> Wallet:
    wallet = get_or_create_wallet(db, current_user.id)
    # Due credits become withdrawable on read even if the sweep has not run yet.
    mature_credits(db, wallet_id=wallet.id)
    db.commit()
    db.refresh(wallet)
    return wallet


@router.get("/credits", response_model=list[WalletCreditRead])
def list_wallet_credits(
    current_user: User = Depends(get_current_wallet_holder),
    db: Session = Depends(get_db),
) -> list[WalletCredit]:
    wallet = get_or_create_wallet(db, current_user.id)
    db.commit()
    return db.exec(
        select(WalletCredit)
        .where(WalletCredit.wallet_id == wallet.id)
        .order_by(WalletCredit.credited_at.desc(), WalletCredit.id.desc())
    ).all()


@router.get("/escrow", response_model=list[EscrowTransactionRead])
def list_escrow_transactions(
    current_user: User = Depends(get_current_wallet_holder),
    db: Session = Depends(get_db),
) -> list[EscrowTransaction]:
    wallet = get_or_create_wallet(db, current_user.id)
    db.commit()
    return db.exec(
        select(EscrowTransaction)
        .where(EscrowTransaction.wallet_id == wallet.id)
        .order_by(EscrowTransaction.id)
    ).all()
