from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel

from app.models import CampaignPackage, CampaignStatus, ServiceType


class CampaignCreate(SQLModel):
    title: str
    package: CampaignPackage
    service_type: ServiceType = ServiceType.app_testing
    description: str = ""
    target_country: str = ""


class CampaignAccept(SQLModel):
    group_id: int


class CampaignRead(SQLModel):
    id: int
    product_owner_id: int
    title: str
    description: str
    service_type: ServiceType
    package: CampaignPackage
    budget: Decimal
    target_country: str
    status: CampaignStatus
    accepted_by_group_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
