from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from app.db.types import Money


class CampaignPackage(str, Enum):
    basic = "basic"
    pro = "pro"
    growth = "growth"


class CampaignStatus(str, Enum):
    draft = "draft"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class ServiceType(str, Enum):
    app_testing = "app_testing"
    google_maps_reviews = "google_maps_reviews"
    android_app_reviews = "android_app_reviews"
    ios_app_reviews = "ios_app_reviews"
    website_reviews = "website_reviews"
    software_testing = "software_testing"
    ux_reviews = "ux_reviews"
    social_engagement = "social_engagement"


class Campaign(SQLModel, table=True):
    __tablename__ = "campaigns"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_owner_id: int = Field(foreign_key="users.id", index=True)
    title: str
    description: str = Field(default="")
    service_type: ServiceType = Field(default=ServiceType.app_testing)
    package: CampaignPackage = Field(default=CampaignPackage.basic)
    budget: Decimal = Field(default=Decimal("0.00"), sa_type=Money)
    target_country: str = Field(default="")
    status: CampaignStatus = Field(default=CampaignStatus.draft, index=True)
    accepted_by_group_id: Optional[int] = Field(default=None, foreign_key="groups.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
