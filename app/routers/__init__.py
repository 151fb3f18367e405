from . import (
    admin,
    auth,
    campaigns,
    groups,
    notifications,
    projects,
    tasks,
    users,
    wallet,
    withdrawals,
)

__all__ = [
    "auth",
    "users",
    "groups",
    "projects",
    "campaigns",
    "tasks",
    "wallet",
    "withdrawals",
    "notifications",
    "admin",
]
