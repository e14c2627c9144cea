import logging
from typing import Optional
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal, hash_password
from medrep_portal.exceptions import DuplicateIdentity, NotFound, ValidationError
from medrep_portal.models.user import PRIVILEGED_ROLES, ROLE_MEDREP, User
from medrep_portal.schemas.user import ProfileUpdate, UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def _clean_region(region: Optional[str]) -> Optional[str]:
    region = (region or "").strip()
    return region or None


class UserService:
    async def _ensure_unique(
        self,
        db: AsyncSession,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> None:
        clauses = []
        if username:
            clauses.append(func.lower(User.username) == username.lower())
        if email:
            clauses.append(func.lower(User.email) == email.lower())
        if not clauses:
            return
        query = select(User.id).where(or_(*clauses))
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if await db.scalar(query.limit(1)) is not None:
            raise DuplicateIdentity()

    async def _flush(self, db: AsyncSession, user: User) -> User:
        # The lower(username)/lower(email) indexes catch what the pre-check races past.
        try:
            await db.flush()
        except IntegrityError:
            raise DuplicateIdentity() from None
        await db.refresh(user)
        return user

    async def create_user(
        self,
        data: UserCreate,
        db: AsyncSession,
        created_by: Optional[UserPrincipal] = None,
    ) -> User:
        await self._ensure_unique(db, username=data.username, email=data.email)
        user = User(
            username=data.username,
            email=data.email,
            name=data.name,
            role=data.role,
            region=_clean_region(data.region),
            is_active=True,
            password_hash=await hash_password(data.password),
        )
        db.add(user)
        await self._flush(db, user)
        logger.info(
            "Created user %s (%s) by %s",
            user.username, user.role, created_by.username if created_by else "system",
        )
        return user

    async def get_user(self, user_id: int, db: AsyncSession) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def list_users(self, db: AsyncSession) -> list[User]:
        result = await db.execute(select(User).order_by(User.role, User.name))
        return list(result.scalars().all())

    async def list_active_medreps(self, db: AsyncSession) -> list[User]:
        result = await db.execute(
            select(User)
            .where(User.role == ROLE_MEDREP, User.is_active.is_(True))
            .order_by(User.name)
        )
        return list(result.scalars().all())

    async def list_supervisors(self, db: AsyncSession) -> list[User]:
        result = await db.execute(
            select(User)
            .where(User.role.in_(PRIVILEGED_ROLES), User.is_active.is_(True))
            .order_by(User.name)
        )
        return list(result.scalars().all())

    async def update_user(self, user_id: int, data: UserUpdate, actor: UserPrincipal, db: AsyncSession) -> User:
        user = await self.get_user(user_id, db)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("is_active") is False and user.id == actor.id:
            raise ValidationError("You cannot deactivate your own account")
        if changes.get("email"):
            await self._ensure_unique(db, email=changes["email"], exclude_id=user.id)
        for key, value in changes.items():
            if key == "region":
                value = _clean_region(value)
            elif value is None:
                continue
            setattr(user, key, value)
        await self._flush(db, user)
        logger.info("Updated user %s: %s", user.username, sorted(changes))
        return user

    async def set_active(self, user_id: int, active: bool, actor: UserPrincipal, db: AsyncSession) -> User:
        user = await self.get_user(user_id, db)
        if not active and user.id == actor.id:
            raise ValidationError("You cannot deactivate your own account")
        user.is_active = active
        await self._flush(db, user)
        logger.info("%s user %s by %s", "Activated" if active else "Deactivated", user.username, actor.username)
        return user

    async def update_profile(self, current_user: UserPrincipal, data: ProfileUpdate, db: AsyncSession) -> User:
        user = await self.get_user(current_user.id, db)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("email"):
            await self._ensure_unique(db, email=changes["email"], exclude_id=user.id)
        for key, value in changes.items():
            if key == "region":
                value = _clean_region(value)
            elif value is None:
                continue
            setattr(user, key, value)
        return await self._flush(db, user)


user_service = UserService()
