import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.core.security import get_password_hash
from app.db.database import create_db_and_tables, engine
from app.models import Role, User
from app.routers import (
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
from app.services.scheduler import maturation_sweep_loop

setup_logging(settings.log_level)


def _seed_default_admin() -> None:
    with Session(engine) as session:
        admin_user = session.exec(select(User).where(User.role == Role.admin)).first()
        if admin_user is not None:
            return

        session.add(
            User(
                email=settings.default_admin_email,
                username="admin",
                full_name="مدير المنصة",
                hashed_password=get_password_hash(settings.default_admin_password),
                role=Role.admin,
            )
        )
        session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    _seed_default_admin()

    stop_event = asyncio.Event()
    scheduler_task = None

    if settings.maturation_sweep_interval_seconds > 0:
        scheduler_task = asyncio.create_task(maturation_sweep_loop(stop_event))

    try:
        yield
    finally:
        if scheduler_task is not None:
            stop_event.set()
            scheduler_task.cancel()
            await asyncio.gather(scheduler_task, return_exceptions=True)


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
register_exception_handlers(app)

for router in (
    auth.router,
    users.router,
    groups.router,
    projects.router,
    campaigns.router,
    tasks.router,
    wallet.router,
    withdrawals.router,
    notifications.router,
    admin.router,
):
    app.include_router(router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "app": settings.app_name}
