from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from app.core.config import settings

password_hasher = PasswordHasher()


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str
    expires_at: datetime


def get_password_hash(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return password_hasher.verify(hashed_password, password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode(
        {"sub": str(user_id), "role": role, "exp": expire},
        settings.secret_key,
        algorithm=settings.algorithm,
    )


def decode_access_token(token: str) -> TokenClaims:
    """Parse a bearer token; ``ValueError`` covers bad signatures, expiry and malformed claims."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc

    subject = str(payload.get("sub", ""))
    role = payload.get("role")
    if not subject.isdigit() or not role:
        raise ValueError("Token does not name a user and role")
    return TokenClaims(
        user_id=int(subject),
        role=role,
        expires_at=datetime.utcfromtimestamp(payload["exp"]),
    )
