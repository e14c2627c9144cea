from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal, get_current_user, require_privileged
from medrep_portal.database import get_db
from medrep_portal.responses import envelope
from medrep_portal.schemas.report import DailyReportCreate, DailyReportResponse, DailyReportUpdate
from medrep_portal.services.report_service import report_service

router = APIRouter()


def _serialize(report) -> dict:
    return DailyReportResponse.model_validate(report).model_dump(mode="json")


@router.post("/daily", status_code=201)
async def submit_daily_report(
    body: DailyReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    report = await report_service.submit(current_user, body, db)
    return envelope({"report_id": report.id, **_serialize(report)}, "Report submitted successfully")


@router.get("/my-reports")
async def my_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    reports, pagination = await report_service.list_for_user(current_user.id, page, limit, db)
    return envelope({"reports": [_serialize(r) for r in reports], "pagination": pagination})


@router.get("/all")
async def all_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(require_privileged),
):
    reports, pagination = await report_service.list_all(page, limit, db, user_id=user_id)
    return envelope({"reports": [_serialize(r) for r in reports], "pagination": pagination})


@router.get("/date-range/{start}/{end}")
async def reports_in_range(
    start: date,
    end: date,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    reports = await report_service.list_in_range(current_user, start, end, db)
    return envelope(
        [_serialize(r) for r in reports],
        count=len(reports),
        date_range={"start": start.isoformat(), "end": end.isoformat()},
    )


@router.get("/{report_id}")
async def get_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    report = await report_service.get(report_id, current_user, db)
    return envelope(_serialize(report))


@router.put("/{report_id}")
async def update_report(
    report_id: int,
    body: DailyReportUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserPrincipal = Depends(get_current_user),
):
    report = await report_service.update(report_id, current_user, body, db)
    return envelope(_serialize(report), "Report updated successfully")
