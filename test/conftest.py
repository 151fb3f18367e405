import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MATURATION_SWEEP_INTERVAL_SECONDS", "0")

from decimal import Decimal
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from app.core.security import create_access_token, get_password_hash
from app.db.database import build_engine, create_db_and_tables
from app.dependencies import get_db
from app.main import app
from app.models import Role, User, Wallet

TEST_PASSWORD = "password123"


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(engine) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        with Session(engine) as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def password_hash() -> str:
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture()
def make_user(engine, password_hash) -> Callable[..., User]:
    def _make_user(username: str, role: Role = Role.freelancer, *, balance: str | None = None) -> User:
        with Session(engine) as db:
            user = User(
                email=f"{username}@example.com",
                username=username,
                full_name=username.title(),
                hashed_password=password_hash,
                role=role,
            )
            db.add(user)
            db.flush()
            amount = Decimal(balance or "0.00")
            if role == Role.freelancer:
                db.add(Wallet(user_id=user.id, balance=amount, total_earned=amount))
            elif role == Role.product_owner:
                db.add(Wallet(user_id=user.id, balance=amount, total_deposited=amount))
            db.commit()
            db.refresh(user)
            return user

    return _make_user


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}
