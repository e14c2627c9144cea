from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal, get_current_user, require_privileged
from medrep_portal.database import get_db
from medrep_portal.responses import envelope
from medrep_portal.schemas.auth import ChangePasswordRequest, LoginRequest
from medrep_portal.schemas.user import UserCreate, UserResponse
from medrep_portal.services.auth_service import auth_service
from medrep_portal.services.user_service import user_service

router = APIRouter()


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await auth_service.login(body.username, body.password, db)
    return envelope(result, "Login successful")


@router.post("/logout")
async def logout():
    """Tokens are stateless; the client discards its copy."""
    return envelope(message="Logout successful")


@router.post("/register", status_code=201)
async def register(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    user = await auth_service.register(body, db, created_by=current_user)
    return envelope(
        {"user": UserResponse.model_validate(user).model_dump(mode="json")},
        "User registered successfully",
    )


@router.get("/profile")
async def profile(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    user = await user_service.get_user(current_user.id, db)
    return envelope(UserResponse.model_validate(user).model_dump(mode="json"))


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    await auth_service.change_password(current_user, body, db)
    return envelope(message="Password changed successfully")
