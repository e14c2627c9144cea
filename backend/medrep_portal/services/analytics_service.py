from datetime import date
from typing import Optional
from sqlalchemy import and_, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from medrep_portal import aggregation
from medrep_portal.auth import UserPrincipal
from medrep_portal.models.daily_report import DailyReport
from medrep_portal.models.user import ROLE_MEDREP, User

# SQL source of every metric in aggregation.METRICS
METRIC_COLUMNS = {
    "total_doctors": DailyReport.total_doctors,
    "total_pharmacies": DailyReport.pharmacies,
    "total_dispensaries": DailyReport.dispensaries,
    "total_visits": DailyReport.total_visits,
    "total_orders": DailyReport.orders_count,
    "total_value": DailyReport.orders_value,
}


def _sums() -> list:
    return [
        func.coalesce(func.sum(METRIC_COLUMNS[name]), 0).label(name)
        for name in aggregation.METRICS
    ]


def _totals(row) -> dict:
    return {name: getattr(row, name) for name in aggregation.METRICS}


class AnalyticsService:
    async def personal_weekly(self, user_id: int, db: AsyncSession, today: Optional[date] = None) -> list[dict]:
        start = aggregation.window_start(aggregation.WEEKLY_PERIOD, today)
        result = await db.execute(
            select(DailyReport.report_date, *_sums())
            .where(DailyReport.user_id == user_id, DailyReport.report_date >= start)
            .group_by(DailyReport.report_date)
            .order_by(DailyReport.report_date.desc())
        )
        return [aggregation.date_row(row.report_date, _totals(row)) for row in result.all()]

    async def personal_monthly(self, user_id: int, db: AsyncSession) -> list[dict]:
        year = extract("year", DailyReport.report_date).label("year")
        month = extract("month", DailyReport.report_date).label("month")
        result = await db.execute(
            select(year, month, *_sums())
            .where(DailyReport.user_id == user_id)
            .group_by(year, month)
            .order_by(year.desc(), month.desc())
            .limit(aggregation.MONTHLY_LIMIT)
        )
        return [aggregation.month_row(row.year, row.month, _totals(row)) for row in result.all()]

    async def team_performance(
        self,
        period: Optional[str],
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> list[dict]:
        start = aggregation.window_start(period, today)
        on_clause = DailyReport.user_id == User.id
        if start is not None:
            on_clause = and_(on_clause, DailyReport.report_date >= start)

        # Outer join keeps representatives with no reports in the window.
        result = await db.execute(
            select(
                User.id, User.name, User.username, User.region,
                func.count(DailyReport.id).label("reports_count"),
                *_sums(),
            )
            .select_from(User)
            .outerjoin(DailyReport, on_clause)
            .where(User.role == ROLE_MEDREP, User.is_active.is_(True))
            .group_by(User.id, User.name, User.username, User.region)
        )
        return aggregation.rank_team([
            aggregation.team_row(row, row.reports_count, _totals(row)) for row in result.all()
        ])

    async def region_performance(self, db: AsyncSession, today: Optional[date] = None) -> list[dict]:
        start = aggregation.window_start(aggregation.REGION_PERIOD, today)
        # Grouped by the reducer's label: blank regions fold into "Unassigned".
        region = func.coalesce(
            func.nullif(func.trim(User.region), ""), aggregation.UNASSIGNED_REGION
        ).label("region")
        result = await db.execute(
            select(
                region,
                func.count(DailyReport.user_id.distinct()).label("active_reps"),
                func.count(DailyReport.id).label("reports_count"),
                *_sums(),
            )
            .select_from(DailyReport)
            .join(User, User.id == DailyReport.user_id)
            .where(DailyReport.report_date >= start)
            .group_by(region)
        )
        return aggregation.rank_regions([
            aggregation.region_row(row.region, row.active_reps, row.reports_count, _totals(row))
            for row in result.all()
        ])

    async def dashboard_summary(
        self,
        current_user: UserPrincipal,
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> dict:
        today = today or date.today()
        week_start = aggregation.window_start(aggregation.WEEKLY_PERIOD, today)

        todays_report = await db.scalar(
            select(DailyReport).where(
                DailyReport.user_id == current_user.id,
                DailyReport.report_date == today,
            )
        )
        weekly = (await db.execute(
            select(*_sums()).where(
                DailyReport.user_id == current_user.id,
                DailyReport.report_date >= week_start,
            )
        )).one()

        summary = {
            "user": {
                "submitted_today": todays_report is not None,
                "today": aggregation.finalize(
                    aggregation.report_metrics(todays_report) if todays_report else aggregation.empty_totals()
                ),
                "weekly": aggregation.finalize(_totals(weekly)),
            },
            "team": {},
            "user_role": current_user.role,
            "username": current_user.username,
        }

        if current_user.is_privileged:
            active_medreps = await db.scalar(
                select(func.count(User.id)).where(User.role == ROLE_MEDREP, User.is_active.is_(True))
            ) or 0
            team_week = (await db.execute(
                select(
                    func.count(DailyReport.id).label("reports"),
                    func.coalesce(func.sum(DailyReport.orders_count), 0).label("orders"),
                    func.coalesce(func.sum(DailyReport.orders_value), 0).label("value"),
                ).where(DailyReport.report_date >= week_start)
            )).one()
            summary["team"] = {
                "active_medreps": active_medreps,
                "weekly_reports": team_week.reports,
                "weekly_orders": int(team_week.orders),
                "weekly_value": round(float(team_week.value), 2),
            }

        return summary


analytics_service = AnalyticsService()
