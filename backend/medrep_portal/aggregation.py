"""
Report aggregation shared by the API and by the client-side fallback.

The server sums report fields in SQL while the client re-derives the same
figures from raw reports it has paged through. Both paths take the category
lists, time windows, row shapes and ordering from this module, so a report
set always yields the same rows whichever side computed them.

Report and user arguments may be ORM instances or plain dicts (decoded JSON).
"""

from datetime import date, timedelta
from typing import Any, Iterable, Optional

DOCTOR_CATEGORIES = (
    "dentists",
    "physiotherapists",
    "gynecologists",
    "internists",
    "general_practitioners",
    "pediatricians",
    "dermatologists",
)
FACILITY_CATEGORIES = ("pharmacies", "dispensaries")
COUNTER_FIELDS = DOCTOR_CATEGORIES + FACILITY_CATEGORIES

METRICS = (
    "total_doctors",
    "total_pharmacies",
    "total_dispensaries",
    "total_visits",
    "total_orders",
    "total_value",
)

PERIOD_DAYS = {"week": 7, "month": 30}
WEEKLY_PERIOD = "week"
REGION_PERIOD = "month"
MONTHLY_LIMIT = 12
UNASSIGNED_REGION = "Unassigned"


def _raw(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _count(obj: Any, name: str) -> int:
    return int(_raw(obj, name) or 0)


# ---------- per-report figures ----------

def total_doctors(report: Any) -> int:
    return sum(_count(report, f) for f in DOCTOR_CATEGORIES)


def total_visits(report: Any) -> int:
    return total_doctors(report) + sum(_count(report, f) for f in FACILITY_CATEGORIES)


def report_metrics(report: Any) -> dict:
    return {
        "total_doctors": total_doctors(report),
        "total_pharmacies": _count(report, "pharmacies"),
        "total_dispensaries": _count(report, "dispensaries"),
        "total_visits": total_visits(report),
        "total_orders": _count(report, "orders_count"),
        "total_value": float(_raw(report, "orders_value") or 0),
    }


def empty_totals() -> dict:
    return dict.fromkeys(METRICS, 0)


def add_report(totals: dict, report: Any) -> dict:
    for name, value in report_metrics(report).items():
        totals[name] += value
    return totals


def finalize(row: dict) -> dict:
    """Normalise metric types: integer counts, money rounded to 2 places."""
    out = dict(row)
    for name in METRICS:
        value = out.get(name) or 0
        out[name] = round(float(value), 2) if name == "total_value" else int(value)
    return out


# ---------- windows & keys ----------

def as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def window_start(period: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """First day (inclusive) of a trailing window; None means unrestricted."""
    days = PERIOD_DAYS.get(period or "")
    if days is None:
        return None
    return (today or date.today()) - timedelta(days=days)


def in_window(report_date: Any, start: Optional[date]) -> bool:
    return start is None or as_date(report_date) >= start


def month_key(year: int, month: int) -> str:
    return f"{int(year):04d}-{int(month):02d}"


def region_label(region: Optional[str]) -> str:
    if region and region.strip():
        return region.strip()
    return UNASSIGNED_REGION


# ---------- row shapes ----------

def date_row(day: Any, totals: dict) -> dict:
    return finalize({"date": as_date(day).isoformat(), **totals})


def month_row(year: int, month: int, totals: dict) -> dict:
    return finalize({"month": month_key(year, month), **totals})


def team_row(user: Any, reports_count: int, totals: dict) -> dict:
    return finalize({
        "user_id": _raw(user, "id"),
        "user_name": _raw(user, "name"),
        "username": _raw(user, "username"),
        "region": _raw(user, "region"),
        "reports_count": int(reports_count or 0),
        **totals,
    })


def region_row(region: Optional[str], active_reps: int, reports_count: int, totals: dict) -> dict:
    return finalize({
        "region": region_label(region),
        "active_reps": int(active_reps or 0),
        "reports_count": int(reports_count or 0),
        **totals,
    })


# ---------- ordering ----------

def newest_first(rows: list[dict], key: str) -> list[dict]:
    return sorted(rows, key=lambda r: r[key], reverse=True)


def rank_team(rows: list[dict]) -> list[dict]:
    return sorted(rows, key=lambda r: (-r["total_value"], r["username"] or "", r["user_id"]))


def rank_regions(rows: list[dict]) -> list[dict]:
    return sorted(rows, key=lambda r: (-r["total_value"], r["region"]))


# ---------- in-memory reducers ----------

def weekly_rows(reports: Iterable[Any], today: Optional[date] = None) -> list[dict]:
    start = window_start(WEEKLY_PERIOD, today)
    groups: dict[date, dict] = {}
    for report in reports:
        day = as_date(_raw(report, "report_date"))
        if not in_window(day, start):
            continue
        add_report(groups.setdefault(day, empty_totals()), report)
    return newest_first([date_row(day, totals) for day, totals in groups.items()], "date")


def monthly_rows(reports: Iterable[Any]) -> list[dict]:
    groups: dict[tuple, dict] = {}
    for report in reports:
        day = as_date(_raw(report, "report_date"))
        add_report(groups.setdefault((day.year, day.month), empty_totals()), report)
    rows = [month_row(year, month, totals) for (year, month), totals in groups.items()]
    return newest_first(rows, "month")[:MONTHLY_LIMIT]


def team_rows(
    users: Iterable[Any],
    reports: Iterable[Any],
    period: Optional[str],
    today: Optional[date] = None,
) -> list[dict]:
    start = window_start(period, today)
    reps = [u for u in users if _raw(u, "role") == "medrep" and _raw(u, "is_active")]
    per_user = {_raw(u, "id"): [0, empty_totals()] for u in reps}
    for report in reports:
        entry = per_user.get(_raw(report, "user_id"))
        if entry is None or not in_window(_raw(report, "report_date"), start):
            continue
        entry[0] += 1
        add_report(entry[1], report)
    return rank_team([team_row(u, *per_user[_raw(u, "id")]) for u in reps])


def region_rows(
    users: Iterable[Any],
    reports: Iterable[Any],
    today: Optional[date] = None,
) -> list[dict]:
    start = window_start(REGION_PERIOD, today)
    region_of = {_raw(u, "id"): _raw(u, "region") for u in users}
    groups: dict[str, dict] = {}
    for report in reports:
        user_id = _raw(report, "user_id")
        if user_id not in region_of or not in_window(_raw(report, "report_date"), start):
            continue
        group = groups.setdefault(
            region_label(region_of[user_id]),
            {"users": set(), "count": 0, "totals": empty_totals()},
        )
        group["users"].add(user_id)
        group["count"] += 1
        add_report(group["totals"], report)
    return rank_regions([
        region_row(label, len(g["users"]), g["count"], g["totals"])
        for label, g in groups.items()
    ])
