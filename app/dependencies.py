from typing import Annotated, Callable, Coroutine, Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.database import get_session
from app.models import Role, User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/token")

_ROLE_LABELS = {
    Role.freelancer: "Freelancer",
    Role.product_owner: "Product owner",
    Role.admin: "Admin",
}


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    try:
        claims = decode_access_token(token)
    except ValueError:
        claims = None

    user = db.get(User, claims.user_id) if claims is not None else None
    # A token minted before a role change no longer speaks for the account.
    if user is None or user.role.value != claims.role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return current_user


def require_roles(*roles: Role) -> Callable[..., Coroutine[None, None, User]]:
    """Build a dependency that admits active users holding one of ``roles``."""
    detail = " or ".join(_ROLE_LABELS[role] for role in roles) + " role required"

    async def dependency(current_user: Annotated[User, Depends(get_current_active_user)]) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return dependency


get_current_freelancer = require_roles(Role.freelancer)
get_current_product_owner = require_roles(Role.product_owner)
get_current_wallet_holder = require_roles(Role.freelancer, Role.product_owner)
get_current_active_admin_user = require_roles(Role.admin)
