from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel

from app.models import CreditSource, EscrowKind


class WalletRead(SQLModel):
    id: int
    user_id: int
    balance: Decimal
    pending_balance: Decimal
    escrow_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    total_deposited: Decimal
    total_spent: Decimal
    updated_at: datetime


class WalletCreditRead(SQLModel):
    id: int
    task_id: int
    source: CreditSource
    amount: Decimal
    credited_at: datetime
    available_at: datetime
    matured_at: Optional[datetime] = None


class EscrowTransactionRead(SQLModel):
    id: int
    kind: EscrowKind
    amount: Decimal
    project_id: Optional[int] = None
    campaign_id: Optional[int] = None
    task_id: Optional[int] = None
    created_at: datetime


class DepositCreate(SQLModel):
    amount: Decimal
