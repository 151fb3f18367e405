from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel


class MaturationResultRead(SQLModel):
    matured_credits: int
    ran_at: datetime


class AdminSummaryRead(SQLModel):
    generated_at: datetime
    freelancer_count: int
    product_owner_count: int
    group_count: int
    pending_withdrawals: int
    pending_withdrawal_amount: Decimal
    total_balance: Decimal
    total_pending_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    total_escrow: Decimal
    platform_fees_collected: Decimal
