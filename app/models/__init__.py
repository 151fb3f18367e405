from .campaign import Campaign, CampaignPackage, CampaignStatus, ServiceType
from .group import (
    Group,
    GroupJoinRequest,
    GroupMember,
    GroupMemberRole,
    GroupPrivacy,
    GroupStatus,
    JoinRequestStatus,
)
from .notification import Notification
from .project import PROJECT_STATUS_ORDER, Project, ProjectStatus
from .task import ReviewDecision, Task, TaskReviewNote, TaskStatus
from .user import Role, User
from .wallet import CreditSource, EscrowKind, EscrowTransaction, Wallet, WalletCredit
from .withdrawal import PaymentMethod, Withdrawal, WithdrawalStatus

__all__ = [
    "Campaign",
    "CampaignPackage",
    "CampaignStatus",
    "ServiceType",
    "Group",
    "GroupJoinRequest",
    "GroupMember",
    "GroupMemberRole",
    "GroupPrivacy",
    "GroupStatus",
    "JoinRequestStatus",
    "Notification",
    "PROJECT_STATUS_ORDER",
    "Project",
    "ProjectStatus",
    "ReviewDecision",
    "Task",
    "TaskReviewNote",
    "TaskStatus",
    "Role",
    "User",
    "CreditSource",
    "EscrowKind",
    "EscrowTransaction",
    "Wallet",
    "WalletCredit",
    "PaymentMethod",
    "Withdrawal",
    "WithdrawalStatus",
]
