from datetime import date, timedelta

from medrep_portal import aggregation

TODAY = date(2024, 3, 15)


def report(user_id=1, day=TODAY, **fields):
    base = {"user_id": user_id, "report_date": day.isoformat()}
    base.update(fields)
    return base


def test_total_doctors_sums_the_seven_categories_only():
    r = report(dentists=2, physiotherapists=1, gynecologists=1, internists=1,
               general_practitioners=3, pediatricians=1, dermatologists=1,
               pharmacies=4, dispensaries=2)
    assert aggregation.total_doctors(r) == 10
    assert aggregation.total_visits(r) == 16


def test_missing_and_null_counters_count_as_zero():
    assert aggregation.total_doctors({"dentists": None}) == 0
    assert aggregation.report_metrics({})["total_value"] == 0.0


def test_window_start():
    assert aggregation.window_start("week", TODAY) == date(2024, 3, 8)
    assert aggregation.window_start("month", TODAY) == date(2024, 2, 14)
    assert aggregation.window_start("all", TODAY) is None
    assert aggregation.window_start(None, TODAY) is None


def test_finalize_types():
    row = aggregation.finalize({"total_doctors": 3.0, "total_value": 10.126, "extra": "x"})
    assert row["total_doctors"] == 3 and isinstance(row["total_doctors"], int)
    assert row["total_value"] == 10.13
    assert row["total_orders"] == 0
    assert row["extra"] == "x"


def test_weekly_rows_window_and_order():
    reports = [
        report(day=TODAY, dentists=1, orders_value=100),
        report(day=TODAY - timedelta(days=7), pharmacies=2),
        report(day=TODAY - timedelta(days=8), dentists=9),
        report(day=TODAY - timedelta(days=2), orders_count=3, orders_value="250.50"),
    ]
    rows = aggregation.weekly_rows(reports, TODAY)
    assert [r["date"] for r in rows] == ["2024-03-15", "2024-03-13", "2024-03-08"]
    assert rows[0]["total_doctors"] == 1
    assert rows[1]["total_value"] == 250.5
    assert rows[2]["total_pharmacies"] == 2
    assert all(r["total_doctors"] != 9 for r in rows)


def test_monthly_rows_grouped_and_capped():
    reports = [report(day=date(2023, m, 1), dentists=1) for m in range(1, 13)]
    reports += [report(day=date(2024, 1, 5), dentists=2), report(day=date(2024, 1, 20), dentists=3)]
    rows = aggregation.monthly_rows(reports)
    assert len(rows) == aggregation.MONTHLY_LIMIT
    assert rows[0]["month"] == "2024-01"
    assert rows[0]["total_doctors"] == 5
    assert rows[-1]["month"] == "2023-02"


def test_team_rows_include_reps_without_reports():
    users = [
        {"id": 1, "name": "Alice", "username": "alice", "region": "Kigali", "role": "medrep", "is_active": True},
        {"id": 2, "name": "Bob", "username": "bob", "region": "Eastern", "role": "medrep", "is_active": True},
        {"id": 3, "name": "Sup", "username": "sup", "region": "Kigali", "role": "supervisor", "is_active": True},
        {"id": 4, "name": "Gone", "username": "gone", "region": "Kigali", "role": "medrep", "is_active": False},
    ]
    reports = [
        report(user_id=1, day=TODAY, orders_value=500, dentists=2),
        report(user_id=1, day=TODAY - timedelta(days=20), orders_value=1000),
        report(user_id=3, day=TODAY, orders_value=9999),
        report(user_id=4, day=TODAY, orders_value=9999),
    ]
    week = aggregation.team_rows(users, reports, "week", TODAY)
    assert [r["username"] for r in week] == ["alice", "bob"]
    assert week[0]["reports_count"] == 1 and week[0]["total_value"] == 500.0
    assert week[1]["reports_count"] == 0 and week[1]["total_doctors"] == 0

    month = aggregation.team_rows(users, reports, "month", TODAY)
    assert month[0]["reports_count"] == 2 and month[0]["total_value"] == 1500.0


def test_region_rows_count_distinct_reps():
    users = [
        {"id": 1, "region": "Eastern"},
        {"id": 2, "region": "Eastern"},
        {"id": 3, "region": "Western"},
        {"id": 4, "region": None},
    ]
    reports = [
        report(user_id=1, day=TODAY, orders_value=100),
        report(user_id=1, day=TODAY - timedelta(days=1), orders_value=100),
        report(user_id=2, day=TODAY, orders_value=50),
        report(user_id=3, day=TODAY - timedelta(days=45), orders_value=10_000),
        report(user_id=4, day=TODAY, orders_value=10),
    ]
    rows = aggregation.region_rows(users, reports, TODAY)
    assert [r["region"] for r in rows] == ["Eastern", aggregation.UNASSIGNED_REGION]
    assert rows[0]["active_reps"] == 2
    assert rows[0]["reports_count"] == 3
    assert rows[0]["total_value"] == 250.0
