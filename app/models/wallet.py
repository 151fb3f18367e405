from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.db.types import Money


class CreditSource(str, Enum):
    task_reward = "task_reward"
    leader_commission = "leader_commission"


class EscrowKind(str, Enum):
    lock = "lock"
    spend = "spend"
    refund = "refund"


class Wallet(SQLModel, table=True):
    """Freelancers earn into ``balance``; product owners fund it and lock escrow out of it."""

    __tablename__ = "wallets"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True, sa_column_kwargs={"unique": True})
    balance: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    pending_balance: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    escrow_balance: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    total_earned: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    total_withdrawn: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    total_deposited: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    total_spent: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    user: "User" = Relationship(back_populates="wallet")
    credits: List["WalletCredit"] = Relationship(back_populates="wallet")

    @property
    def is_consistent(self) -> bool:
        funded = self.total_earned + self.total_deposited - self.total_withdrawn - self.total_spent
        return funded >= self.balance + self.pending_balance + self.escrow_balance


class WalletCredit(SQLModel, table=True):
    """One settled amount, maturing on its own clock."""

    __tablename__ = "wallet_credits"
    __table_args__ = (UniqueConstraint("task_id", "source", name="uq_wallet_credit_task_source"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_id: int = Field(foreign_key="wallets.id", index=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    source: CreditSource = Field(default=CreditSource.task_reward)
    amount: Decimal = Field(sa_type=Money)
    credited_at: datetime = Field(default_factory=datetime.utcnow)
    available_at: datetime = Field(index=True)
    matured_at: Optional[datetime] = Field(default=None, index=True)

    wallet: "Wallet" = Relationship(back_populates="credits")


class EscrowTransaction(SQLModel, table=True):
    __tablename__ = "escrow_transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_id: int = Field(foreign_key="wallets.id", index=True)
    kind: EscrowKind = Field(index=True)
    amount: Decimal = Field(sa_type=Money)
    project_id: Optional[int] = Field(default=None, foreign_key="projects.id", index=True)
    campaign_id: Optional[int] = Field(default=None, foreign_key="campaigns.id", index=True)
    task_id: Optional[int] = Field(default=None, foreign_key="tasks.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
