from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from app.db.types import Money


class PaymentMethod(str, Enum):
    somow_wallet = "somow_wallet"
    paypal = "paypal"
    stc_pay = "stc_pay"
    bank_transfer = "bank_transfer"


class WithdrawalStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    rejected = "rejected"
    cancelled = "cancelled"


class Withdrawal(SQLModel, table=True):
    __tablename__ = "withdrawals"

    id: Optional[int] = Field(default=None, primary_key=True)
    freelancer_id: int = Field(foreign_key="users.id", index=True)
    amount: Decimal = Field(sa_type=Money)
    payment_method: PaymentMethod = Field(default=PaymentMethod.bank_transfer)
    account_number: str
    status: WithdrawalStatus = Field(default=WithdrawalStatus.pending, index=True)
    processed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    processed_at: Optional[datetime] = None
