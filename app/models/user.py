from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


class Role(str, Enum):
    admin = "admin"
    freelancer = "freelancer"
    product_owner = "product_owner"


class UserBase(SQLModel):
    email: str = Field(index=True, sa_column_kwargs={"unique": True})
    username: str = Field(index=True, sa_column_kwargs={"unique": True})
    full_name: str
    phone: Optional[str] = None
    country_code: str = Field(default="+966")
    company_name: Optional[str] = None


class User(UserBase, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    hashed_password: str
    role: Role = Field(default=Role.freelancer, index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    wallet: Optional["Wallet"] = Relationship(back_populates="user")
    notifications: List["Notification"] = Relationship(back_populates="user")
