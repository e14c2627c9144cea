"""
Auth module: password hashing, JWT creation/validation and the FastAPI
dependencies that resolve the caller on every protected request.

Every request re-reads the user row named in the token, so a deactivated
account or a changed role takes effect immediately rather than when the
24-hour token runs out.
"""

import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from fastapi import Depends, Request
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from medrep_portal.config import get_settings
from medrep_portal.database import get_db
from medrep_portal.exceptions import Forbidden, InvalidToken, StaleIdentity
from medrep_portal.models.user import PRIVILEGED_ROLES, User


@dataclass
class UserPrincipal:
    """Resolved identity attached to each request. Carries no credentials."""
    id: int
    username: str
    name: str
    email: str
    role: str                     # "medrep" | "supervisor" | "admin"
    region: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def can_access_report(self, owner_id: int) -> bool:
        return self.is_privileged or owner_id == self.id

    @classmethod
    def from_user(cls, user: User) -> "UserPrincipal":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            email=user.email,
            role=user.role,
            region=user.region,
        )


# ---------- passwords ----------

@lru_cache()
def get_password_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)


async def hash_password(password: str) -> str:
    """Salted bcrypt hash, computed off the event loop."""
    return await run_in_threadpool(get_password_context().hash, password)


async def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Constant-time check. With no stored hash a dummy verification still runs,
    so an unknown username costs as much as a wrong password.
    """
    context = get_password_context()
    if not password_hash:
        await run_in_threadpool(context.dummy_verify)
        return False
    return await run_in_threadpool(context.verify, password, password_hash)


# ---------- tokens ----------

def create_token(user: User) -> str:
    """Create a signed JWT for the given User model instance."""
    settings = get_settings()
    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "name": user.name,
        "email": user.email,
        "region": user.region,
        "iat": now,
        "exp": now + settings.token_expire_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Verify signature and expiry. Raises InvalidToken on any failure."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise InvalidToken()
    if not isinstance(payload.get("id"), int):
        raise InvalidToken()
    return payload


# ---------- dependencies ----------

async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> UserPrincipal:
    """
    FastAPI dependency. Extracts the bearer token, validates it and re-fetches
    the user; missing or inactive users are rejected even with a valid token.
    """
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidToken("Access token required")

    claims = decode_token(token.strip())
    user = await db.get(User, claims["id"])
    if user is None or not user.is_active:
        raise StaleIdentity()
    return UserPrincipal.from_user(user)


async def require_privileged(current_user: UserPrincipal = Depends(get_current_user)) -> UserPrincipal:
    if not current_user.is_privileged:
        raise Forbidden("Access denied. Supervisor or admin role required.")
    return current_user
