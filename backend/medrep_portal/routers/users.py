from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal, get_current_user, require_privileged
from medrep_portal.database import get_db
from medrep_portal.responses import envelope
from medrep_portal.schemas.user import ProfileUpdate, UserCreate, UserResponse, UserUpdate
from medrep_portal.services.user_service import user_service

router = APIRouter()


def _serialize(user) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


# Static paths first: /{user_id} would otherwise shadow them.

@router.get("")
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    users = await user_service.list_users(db)
    return envelope([_serialize(u) for u in users], count=len(users))


@router.post("", status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    user = await user_service.create_user(body, db, created_by=current_user)
    return envelope(_serialize(user), "User created successfully")


@router.get("/active-medreps")
async def active_medreps(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    users = await user_service.list_active_medreps(db)
    return envelope([_serialize(u) for u in users], count=len(users))


@router.get("/supervisors")
async def supervisors(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    users = await user_service.list_supervisors(db)
    return envelope([_serialize(u) for u in users], count=len(users))


@router.get("/profile/me")
async def my_profile(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    user = await user_service.get_user(current_user.id, db)
    return envelope(_serialize(user))


@router.put("/profile/me")
async def update_my_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    user = await user_service.update_profile(current_user, body, db)
    return envelope(_serialize(user), "Profile updated successfully")


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    return envelope(_serialize(await user_service.get_user(user_id, db)))


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    user = await user_service.update_user(user_id, body, current_user, db)
    return envelope(_serialize(user), "User updated successfully")


@router.put("/{user_id}/activate")
async def activate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    user = await user_service.set_active(user_id, True, current_user, db)
    return envelope(_serialize(user), "User activated successfully")


@router.put("/{user_id}/deactivate")
async def deactivate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    user = await user_service.set_active(user_id, False, current_user, db)
    return envelope(_serialize(user), "User deactivated successfully")
