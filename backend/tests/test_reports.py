from datetime import date, timedelta

from tests.conftest import days_ago

BONTE_REPORT = {
    "report_date": "2024-03-01",
    "region": "Kigali",
    "dentists": 2,
    "general_practitioners": 3,
    "pharmacies": 1,
    "orders_count": 2,
    "orders_value": 5000,
    "summary": "Visited two clinics in Nyarugenge",
}


async def test_submit_daily_report_derives_totals(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")

    response = await submit(headers, **BONTE_REPORT)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    report = body["data"]
    assert report["report_id"] == report["id"]
    assert report["total_doctors"] == 5
    assert report["total_visits"] == 6
    assert report["orders_value"] == 5000.0
    assert report["internists"] == 0

    response = await client.get("/api/reports/my-reports", headers=headers)
    listed = response.json()["data"]["reports"]
    assert [r["id"] for r in listed] == [report["id"]]
    assert listed[0]["report_date"] == "2024-03-01"


async def test_second_report_for_same_date_rejected(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")
    assert (await submit(headers, **BONTE_REPORT)).status_code == 201

    response = await submit(headers, **{**BONTE_REPORT, "dentists": 9})
    assert response.status_code == 400
    assert "already submitted" in response.json()["message"]

    listed = (await client.get("/api/reports/my-reports", headers=headers)).json()["data"]["reports"]
    assert len(listed) == 1
    assert listed[0]["dentists"] == 2


async def test_same_date_allowed_for_different_users(make_user, login, submit):
    await make_user("bonte")
    await make_user("keza")
    assert (await submit(await login("bonte"), **BONTE_REPORT)).status_code == 201
    assert (await submit(await login("keza"), **BONTE_REPORT)).status_code == 201


async def test_report_date_defaults_to_today(make_user, login, submit):
    await make_user("bonte")
    response = await submit(await login("bonte"), region="Kigali")
    assert response.status_code == 201
    assert response.json()["data"]["report_date"] == date.today().isoformat()


async def test_future_date_rejected(make_user, login, submit):
    await make_user("bonte")
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    response = await submit(await login("bonte"), report_date=tomorrow, region="Kigali")
    assert response.status_code == 400
    assert "report_date: Report date cannot be in the future" in response.json()["errors"]


async def test_all_zero_report_accepted(make_user, login, submit):
    await make_user("bonte")
    response = await submit(await login("bonte"), report_date=days_ago(1))
    assert response.status_code == 201
    report = response.json()["data"]
    assert report["total_doctors"] == 0
    assert report["total_visits"] == 0
    assert report["orders_value"] == 0.0
    assert report["summary"] == ""


async def test_null_counters_mean_zero(make_user, login, submit):
    await make_user("bonte")
    response = await submit(await login("bonte"), dentists=None, orders_value=None, summary=None)
    assert response.status_code == 201
    assert response.json()["data"]["dentists"] == 0


async def test_numeric_strings_accepted(make_user, login, submit):
    await make_user("bonte")
    response = await submit(await login("bonte"), dentists="3", orders_value="1250.50")
    assert response.status_code == 201
    report = response.json()["data"]
    assert report["dentists"] == 3
    assert report["orders_value"] == 1250.5


async def test_invalid_counters_rejected(make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")

    for bad in (
        {"dentists": -1},
        {"pharmacies": 1.5},
        {"orders_count": "many"},
        {"orders_value": -10},
        {"dentists": True},
        {"orders_value": False},
        {"orders_value": 10 ** 13},
    ):
        response = await submit(headers, **bad)
        assert response.status_code == 400, bad
        field = next(iter(bad))
        assert any(e.startswith(f"{field}:") for e in response.json()["errors"])


async def test_overlong_summary_rejected(make_user, login, submit):
    await make_user("bonte")
    response = await submit(await login("bonte"), summary="x" * 1001)
    assert response.status_code == 400


async def test_region_falls_back_to_owner_region(make_user, login, submit):
    await make_user("bonte", region="Eastern")
    response = await submit(await login("bonte"))
    assert response.json()["data"]["region"] == "Eastern"


async def test_region_required_when_owner_has_none(make_user, login, submit):
    await make_user("drifter", region=None)
    response = await submit(await login("drifter"))
    assert response.status_code == 400
    assert response.json()["errors"] == ["region: Region is required"]


async def test_report_access_matrix(client, make_user, login, submit):
    await make_user("bonte")
    await make_user("keza")
    await make_user("boss", role="supervisor")
    await make_user("root", role="admin", region=None)
    owner = await login("bonte")
    report_id = (await submit(owner, **BONTE_REPORT)).json()["data"]["id"]

    other = await login("keza")
    assert (await client.get(f"/api/reports/{report_id}", headers=other)).status_code == 403
    response = await client.put(f"/api/reports/{report_id}", json={"dentists": 0}, headers=other)
    assert response.status_code == 403

    for headers in (owner, await login("boss"), await login("root")):
        assert (await client.get(f"/api/reports/{report_id}", headers=headers)).status_code == 200


async def test_missing_report_is_404(client, make_user, login):
    await make_user("bonte")
    response = await client.get("/api/reports/999", headers=await login("bonte"))
    assert response.status_code == 404
    assert response.json()["message"] == "Report not found"


async def test_update_recomputes_totals(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")
    report_id = (await submit(headers, **BONTE_REPORT)).json()["data"]["id"]

    response = await client.put(
        f"/api/reports/{report_id}",
        json={"dermatologists": 4, "summary": "  revised  "},
        headers=headers,
    )
    assert response.status_code == 200
    report = response.json()["data"]
    assert report["total_doctors"] == 9
    assert report["total_visits"] == 10
    assert report["summary"] == "revised"
    assert report["dentists"] == 2


async def test_update_applies_submission_rules(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")
    report_id = (await submit(headers, **BONTE_REPORT)).json()["data"]["id"]

    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    for bad in ({"dentists": -2}, {"report_date": tomorrow}, {"summary": "y" * 1001}):
        response = await client.put(f"/api/reports/{report_id}", json=bad, headers=headers)
        assert response.status_code == 400, bad

    report = (await client.get(f"/api/reports/{report_id}", headers=headers)).json()["data"]
    assert report["dentists"] == 2


async def test_update_cannot_move_onto_existing_date(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")
    await submit(headers, **BONTE_REPORT)
    other_id = (await submit(headers, report_date="2024-03-02")).json()["data"]["id"]

    response = await client.put(f"/api/reports/{other_id}", json={"report_date": "2024-03-01"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "A report already exists for this date"

    response = await client.put(f"/api/reports/{other_id}", json={"report_date": "2024-03-03"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["report_date"] == "2024-03-03"


async def test_supervisor_can_update_any_report(client, make_user, login, submit):
    await make_user("bonte")
    await make_user("boss", role="supervisor")
    report_id = (await submit(await login("bonte"), **BONTE_REPORT)).json()["data"]["id"]

    response = await client.put(f"/api/reports/{report_id}", json={"orders_value": 7200.456}, headers=await login("boss"))
    assert response.status_code == 200
    assert response.json()["data"]["orders_value"] == 7200.46


async def test_my_reports_pagination_newest_first(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")
    for n in (3, 1, 2):
        await submit(headers, report_date=days_ago(n))

    response = await client.get("/api/reports/my-reports", params={"page": 1, "limit": 2}, headers=headers)
    data = response.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert [r["report_date"] for r in data["reports"]] == [days_ago(1), days_ago(2)]

    response = await client.get("/api/reports/my-reports", params={"page": 2, "limit": 2}, headers=headers)
    assert [r["report_date"] for r in response.json()["data"]["reports"]] == [days_ago(3)]


async def test_my_reports_only_own(client, make_user, login, submit):
    await make_user("bonte")
    await make_user("keza")
    await submit(await login("keza"), **BONTE_REPORT)
    response = await client.get("/api/reports/my-reports", headers=await login("bonte"))
    assert response.json()["data"]["reports"] == []
    assert response.json()["data"]["pagination"]["total"] == 0


async def test_all_reports_privileged_only(client, make_user, login, submit):
    await make_user("bonte")
    keza = await make_user("keza")
    await make_user("boss", role="supervisor")
    await submit(await login("bonte"), **BONTE_REPORT)
    await submit(await login("keza"), **BONTE_REPORT)

    assert (await client.get("/api/reports/all", headers=await login("bonte"))).status_code == 403

    boss = await login("boss")
    response = await client.get("/api/reports/all", headers=boss)
    assert response.json()["data"]["pagination"]["total"] == 2

    response = await client.get("/api/reports/all", params={"user_id": keza.id}, headers=boss)
    reports = response.json()["data"]["reports"]
    assert [r["user_id"] for r in reports] == [keza.id]


async def test_date_range(client, make_user, login, submit):
    await make_user("bonte")
    await make_user("keza")
    await make_user("boss", role="supervisor")
    bonte = await login("bonte")
    for day in ("2024-03-01", "2024-03-05", "2024-03-10"):
        await submit(bonte, report_date=day)
    await submit(await login("keza"), report_date="2024-03-05")

    response = await client.get("/api/reports/date-range/2024-03-01/2024-03-05", headers=bonte)
    body = response.json()
    assert [r["report_date"] for r in body["data"]] == ["2024-03-05", "2024-03-01"]
    assert body["count"] == 2
    assert body["date_range"] == {"start": "2024-03-01", "end": "2024-03-05"}

    response = await client.get("/api/reports/date-range/2024-03-05/2024-03-05", headers=await login("boss"))
    assert response.json()["count"] == 2

    response = await client.get("/api/reports/date-range/2024-03-10/2024-03-01", headers=bonte)
    assert response.status_code == 400

    response = await client.get("/api/reports/date-range/march/2024-03-01", headers=bonte)
    assert response.status_code == 400


async def test_update_rejects_boolean_counters(client, make_user, login, submit):
    await make_user("bonte")
    headers = await login("bonte")
    report_id = (await submit(headers, **BONTE_REPORT)).json()["data"]["id"]

    response = await client.put(f"/api/reports/{report_id}", json={"pharmacies": True}, headers=headers)
    assert response.status_code == 400
    report = (await client.get(f"/api/reports/{report_id}", headers=headers)).json()["data"]
    assert report["pharmacies"] == 1


async def test_largest_storable_order_value_accepted(make_user, login, submit):
    await make_user("bonte")
    response = await submit(await login("bonte"), orders_value=9_999_999.99)
    assert response.status_code == 201
    assert response.json()["data"]["orders_value"] == 9_999_999.99
