from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal, get_current_user, require_privileged
from medrep_portal.database import get_db
from medrep_portal.responses import envelope
from medrep_portal.services.analytics_service import analytics_service

router = APIRouter()


@router.get("/weekly")
async def weekly_stats(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    rows = await analytics_service.personal_weekly(current_user.id, db)
    return envelope(rows, user=current_user.username)


@router.get("/monthly")
async def monthly_stats(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    rows = await analytics_service.personal_monthly(current_user.id, db)
    return envelope(rows, user=current_user.username)


@router.get("/team-performance")
async def team_performance(
    period: str = Query("month", description="week, month, or anything else for all time"),
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    rows = await analytics_service.team_performance(period, db)
    return envelope(rows, period=period, count=len(rows), requested_by=current_user.username)


@router.get("/region-performance")
async def region_performance(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    rows = await analytics_service.region_performance(db)
    return envelope(rows, count=len(rows), requested_by=current_user.username)


@router.get("/dashboard-summary")
async def dashboard_summary(
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    return envelope(await analytics_service.dashboard_summary(current_user, db))
