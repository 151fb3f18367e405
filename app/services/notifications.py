import logging

from sqlmodel import Session

from app.models import Notification

logger = logging.getLogger(__name__)


def notify(
    session: Session,
    *,
    user_id: int,
    event_type: str,
    title: str,
    message: str = "",
) -> None:
    session.add(
        Notification(
            user_id=user_id,
            type=event_type,
            title=title,
            message=message,
        )
    )
    logger.info("event=%s user_id=%s", event_type, user_id)
