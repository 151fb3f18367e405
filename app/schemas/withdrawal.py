from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from app.models import PaymentMethod, WithdrawalStatus


class WithdrawalCreate(SQLModel):
    # Sign and precision are checked by the service so they fail as a ValidationError kind.
    amount: Decimal = Field(max_digits=12)
    payment_method: PaymentMethod
    account_number: str


class WithdrawalRead(SQLModel):
    id: int
    freelancer_id: int
    amount: Decimal
    payment_method: PaymentMethod
    account_number: str
    status: WithdrawalStatus
    processed_by: Optional[int] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
