import logging
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal, create_token, hash_password, verify_password
from medrep_portal.exceptions import InvalidCredentials, ValidationError
from medrep_portal.models.user import User
from medrep_portal.schemas.auth import ChangePasswordRequest
from medrep_portal.schemas.user import UserCreate, UserResponse
from medrep_portal.services.user_service import user_service

logger = logging.getLogger(__name__)


class AuthService:
    async def login(self, username: str, password: str, db: AsyncSession) -> dict:
        result = await db.execute(
            select(User).where(
                func.lower(User.username) == username.strip().lower(),
                User.is_active.is_(True),
            )
        )
        user = result.scalar_one_or_none()

        if not await verify_password(password, user.password_hash if user else None):
            logger.info("Failed login attempt for %r", username)
            raise InvalidCredentials()

        logger.info("User %s logged in", user.username)
        return {
            "token": create_token(user),
            "user": UserResponse.model_validate(user).model_dump(mode="json"),
        }

    async def register(self, data: UserCreate, db: AsyncSession, created_by: UserPrincipal) -> User:
        return await user_service.create_user(data, db, created_by=created_by)

    async def change_password(self, current_user: UserPrincipal, data: ChangePasswordRequest, db: AsyncSession) -> None:
        user = await user_service.get_user(current_user.id, db)
        if not await verify_password(data.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        user.password_hash = await hash_password(data.new_password)
        await db.flush()
        logger.info("User %s changed password", user.username)


auth_service = AuthService()
