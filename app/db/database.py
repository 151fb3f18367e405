from typing import Any, Iterator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from app.core.config import settings


def build_engine(database_url: str, **kwargs: Any) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, echo=settings.debug, connect_args=connect_args, **kwargs)


engine = build_engine(settings.database_url)


def create_db_and_tables(bind: Optional[Engine] = None) -> None:
    # Table classes register on SQLModel.metadata at import time.
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
