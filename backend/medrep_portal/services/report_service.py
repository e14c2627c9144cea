import logging
import math
from datetime import date
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal.auth import UserPrincipal
from medrep_portal.exceptions import DuplicateReport, Forbidden, NotFound, ValidationError
from medrep_portal.models.daily_report import DailyReport
from medrep_portal.schemas.report import DailyReportCreate, DailyReportUpdate

logger = logging.getLogger(__name__)


def paginate(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


class ReportService:
    async def _find_existing(
        self,
        db: AsyncSession,
        user_id: int,
        report_date: date,
        exclude_id: Optional[int] = None,
    ) -> Optional[DailyReport]:
        query = select(DailyReport).where(
            DailyReport.user_id == user_id,
            DailyReport.report_date == report_date,
        )
        if exclude_id is not None:
            query = query.where(DailyReport.id != exclude_id)
        return await db.scalar(query.limit(1))

    async def _flush(self, db: AsyncSession, report: DailyReport) -> DailyReport:
        # UNIQUE(user_id, report_date) rejects whatever races past the pre-check.
        try:
            await db.flush()
        except IntegrityError:
            logger.info("Duplicate report rejected by unique constraint")
            raise DuplicateReport() from None
        await db.refresh(report)
        return report

    async def submit(self, owner: UserPrincipal, data: DailyReportCreate, db: AsyncSession) -> DailyReport:
        region = data.region or (owner.region or "").strip()
        if not region:
            raise ValidationError(errors=["region: Region is required"])

        if await self._find_existing(db, owner.id, data.report_date):
            logger.info("User %s already reported for %s", owner.username, data.report_date)
            raise DuplicateReport()

        report = DailyReport(user_id=owner.id, region=region, **data.model_dump(exclude={"region"}))
        db.add(report)
        await self._flush(db, report)
        logger.info(
            "Report %s submitted by %s for %s (doctors=%s, orders=%s)",
            report.id, owner.username, report.report_date, report.total_doctors, report.orders_count,
        )
        return report

    async def get(self, report_id: int, requester: UserPrincipal, db: AsyncSession) -> DailyReport:
        report = await db.get(DailyReport, report_id)
        if report is None:
            raise NotFound("Report not found")
        if not requester.can_access_report(report.user_id):
            raise Forbidden("You do not have permission to access this report")
        return report

    async def update(
        self,
        report_id: int,
        requester: UserPrincipal,
        data: DailyReportUpdate,
        db: AsyncSession,
    ) -> DailyReport:
        report = await self.get(report_id, requester, db)
        changes = data.changes()

        new_date = changes.get("report_date")
        if new_date and new_date != report.report_date:
            if await self._find_existing(db, report.user_id, new_date, exclude_id=report.id):
                raise DuplicateReport("A report already exists for this date")

        for key, value in changes.items():
            setattr(report, key, value)
        await self._flush(db, report)
        logger.info("Report %s updated by %s: %s", report.id, requester.username, sorted(changes))
        return report

    async def list_for_user(self, user_id: int, page: int, limit: int, db: AsyncSession) -> tuple[list, dict]:
        return await self._page(db, page, limit, DailyReport.user_id == user_id)

    async def list_all(
        self,
        page: int,
        limit: int,
        db: AsyncSession,
        user_id: Optional[int] = None,
    ) -> tuple[list, dict]:
        criteria = [DailyReport.user_id == user_id] if user_id is not None else []
        return await self._page(db, page, limit, *criteria)

    async def list_in_range(
        self,
        requester: UserPrincipal,
        start: date,
        end: date,
        db: AsyncSession,
    ) -> list[DailyReport]:
        if start > end:
            raise ValidationError(errors=["start: Start date must not be after end date"])
        query = select(DailyReport).where(DailyReport.report_date.between(start, end))
        # Representatives only ever see their own reports.
        if not requester.is_privileged:
            query = query.where(DailyReport.user_id == requester.id)
        result = await db.execute(query.order_by(DailyReport.report_date.desc(), DailyReport.id.desc()))
        return list(result.scalars().all())

    async def _page(self, db: AsyncSession, page: int, limit: int, *criteria) -> tuple[list, dict]:
        query = select(DailyReport).where(*criteria)

        count_query = select(func.count()).select_from(query.subquery())
        total = await db.scalar(count_query) or 0

        query = (
            query.order_by(DailyReport.report_date.desc(), DailyReport.created_at.desc(), DailyReport.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), paginate(page, limit, total)


report_service = ReportService()
