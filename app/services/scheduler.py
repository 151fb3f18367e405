import asyncio
import logging

from sqlmodel import Session

from app.core.config import settings
from app.db.database import engine
from app.services.wallet import mature_credits

logger = logging.getLogger(__name__)


def run_maturation_sweep() -> int:
    with Session(engine) as session:
        matured = mature_credits(session)
        session.commit()
    return matured


async def maturation_sweep_loop(stop_event: asyncio.Event) -> None:
    interval = settings.maturation_sweep_interval_seconds
    if interval <= 0:
        return

    try:
        while not stop_event.is_set():
            try:
                await asyncio.to_thread(run_maturation_sweep)
            except Exception:
                logger.exception("Wallet maturation sweep failed; retrying in %ss", interval)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
    except asyncio.CancelledError:
        return
