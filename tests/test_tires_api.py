"""HTTP tests for /tires."""

import uuid

from sqlalchemy import func, select

import routers.tires as tires_router
from core.stock import adjust_stock
from db.stock_change_log import StockChangeLog
from db.tire import Tire

NEW_TIRE = {
    "name": "Bridgestone Blizzak",
    "brand": "Bridgestone",
    "size": "215/65R16",
    "season": "WINTER",
    "price": 2800.0,
    "description": "Premium winter tire",
    "image_url": "https://example.com/bridgestone-blizzak.jpg",
    "stock_quantity": 15,
}


async def test_list_tires_is_public_and_paginated(client, make_tire):
    await make_tire(name="Michelin Pilot Sport 4", brand="Michelin", season="SUMMER")
    await make_tire(name="Bridgestone Blizzak", brand="Bridgestone", size="215/65R16", season="WINTER")
    await make_tire(name="Continental AllSeasonContact", brand="Continental", size="225/45R17", season="ALL_SEASON")

    res = await client.get("/tires/", params={"limit": 2})
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}
    assert len(body["items"]) == 2
    # Newest first
    assert body["items"][0]["name"] == "Continental AllSeasonContact"


async def test_list_tires_filters(client, make_tire):
    await make_tire(name="Michelin Pilot Sport 4", brand="Michelin", season="SUMMER")
    await make_tire(name="Bridgestone Blizzak", brand="Bridgestone", size="215/65R16", season="WINTER")

    res = await client.get("/tires/", params={"brand": "michel"})
    assert [t["brand"] for t in res.json()["items"]] == ["Michelin"]

    res = await client.get("/tires/", params={"season": "WINTER"})
    assert [t["name"] for t in res.json()["items"]] == ["Bridgestone Blizzak"]

    res = await client.get("/tires/", params={"size": "215/65"})
    assert res.json()["pagination"]["total"] == 1

    res = await client.get("/tires/", params={"season": "MONSOON"})
    assert res.status_code == 422


async def test_list_tires_filters_match_wildcards_literally(client, make_tire):
    await make_tire(name="Michelin Pilot Sport 4", brand="Michelin", size="225/45R17")
    await make_tire(name="Bridgestone Blizzak", brand="Bridgestone", size="215/65R16")

    for pattern in ("%", "_", "Mich%"):
        res = await client.get("/tires/", params={"brand": pattern})
        assert res.json()["pagination"]["total"] == 0, pattern

    res = await client.get("/tires/", params={"size": "2_5/"})
    assert res.json()["pagination"]["total"] == 0


async def test_get_tire_includes_recent_changes(client, make_tire):
    t = await make_tire(stock=20)

    res = await client.get(f"/tires/{t.id}")
    assert res.status_code == 200
    body = res.json()
    assert body["stock_quantity"] == 20
    assert body["stock_change_logs"][0]["change"] == 20
    assert body["stock_change_logs"][0]["reason"] == "Initial stock"
    assert body["stock_change_logs"][0]["user"]["email"] == "admin@example.com"


async def test_get_unknown_tire_is_404(client):
    res = await client.get(f"/tires/{uuid.uuid4()}")
    assert res.status_code == 404


async def test_get_tire_by_qr_code(client, make_tire):
    t = await make_tire()

    res = await client.get(f"/tires/qr/{t.qr_code_id}")
    assert res.status_code == 200
    assert res.json()["id"] == str(t.id)

    res = await client.get("/tires/qr/does-not-exist")
    assert res.status_code == 404


async def test_generate_qr_code_requires_staff(client, make_tire, staff_headers, customer_headers):
    t = await make_tire()

    res = await client.get(f"/tires/{t.id}/qr-code", headers=customer_headers)
    assert res.status_code == 403

    res = await client.get(f"/tires/{t.id}/qr-code", headers=staff_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["qr_code"].startswith("data:image/png;base64,")
    assert body["qr_code_id"] == t.qr_code_id
    assert body["brand"] == "Michelin"


async def test_create_tire_logs_initial_stock(client, admin_headers, session_maker):
    res = await client.post("/tires/", json=NEW_TIRE, headers=admin_headers)
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["stock_quantity"] == 15
    assert body["qr_code_id"]

    async with session_maker() as session:
        logs = (
            await session.execute(select(StockChangeLog).where(StockChangeLog.tire_id == uuid.UUID(body["id"])))
        ).scalars().all()
    assert [(log.change, log.reason) for log in logs] == [(15, "Initial stock")]


async def test_create_tire_without_stock_writes_no_log(client, admin_headers, session_maker):
    res = await client.post("/tires/", json={**NEW_TIRE, "stock_quantity": 0}, headers=admin_headers)
    assert res.status_code == 201

    async with session_maker() as session:
        count = (await session.execute(select(func.count(StockChangeLog.id)))).scalar_one()
    assert count == 0


async def test_create_tire_validation(client, admin_headers):
    res = await client.post("/tires/", json={**NEW_TIRE, "price": 0}, headers=admin_headers)
    assert res.status_code == 422

    res = await client.post("/tires/", json={**NEW_TIRE, "stock_quantity": -1}, headers=admin_headers)
    assert res.status_code == 422

    res = await client.post("/tires/", json={**NEW_TIRE, "name": "   "}, headers=admin_headers)
    assert res.status_code == 422


async def test_create_tire_requires_admin(client, staff_headers):
    res = await client.post("/tires/", json=NEW_TIRE)
    assert res.status_code == 401

    res = await client.post("/tires/", json=NEW_TIRE, headers=staff_headers)
    assert res.status_code == 403


async def test_update_tire_quantity_is_logged_as_delta(client, admin_headers, make_tire, session_maker):
    t = await make_tire(stock=20)

    res = await client.put(f"/tires/{t.id}", json={"price": 2600, "stock_quantity": 12}, headers=admin_headers)
    assert res.status_code == 200, res.text
    assert res.json()["price"] == 2600
    assert res.json()["stock_quantity"] == 12

    async with session_maker() as session:
        logs = (
            await session.execute(
                select(StockChangeLog).where(StockChangeLog.tire_id == t.id).order_by(StockChangeLog.created_at.desc())
            )
        ).scalars().all()
    assert (logs[0].change, logs[0].reason) == (-8, "Manual update")


async def test_update_tire_without_quantity_change_writes_no_log(client, admin_headers, make_tire, session_maker):
    t = await make_tire(stock=20)

    res = await client.put(f"/tires/{t.id}", json={"name": "Pilot Sport 5", "stock_quantity": 20}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["name"] == "Pilot Sport 5"

    async with session_maker() as session:
        count = (await session.execute(select(func.count(StockChangeLog.id)))).scalar_one()
    assert count == 1


async def test_update_tire_quantity_conflicts_with_concurrent_change(
    client, admin, admin_headers, make_tire, session_maker, mocker
):
    t = await make_tire(stock=20)
    real_apply = tires_router.apply_stock_change

    async def _sale_lands_first(db, **kwargs):
        async with session_maker() as other:
            await adjust_stock(other, tire_id=t.id, delta=-5, reason="sold", actor_id=admin.id)
        return await real_apply(db, **kwargs)

    mocker.patch.object(tires_router, "apply_stock_change", side_effect=_sale_lands_first)

    res = await client.put(f"/tires/{t.id}", json={"stock_quantity": 30}, headers=admin_headers)
    assert res.status_code == 409
    assert res.json()["detail"] == "Stock changed concurrently. Expected: 20, Current: 15"

    async with session_maker() as session:
        quantity = (await session.execute(select(Tire.stock_quantity).where(Tire.id == t.id))).scalar_one()
        reasons = (
            await session.execute(select(StockChangeLog.reason).where(StockChangeLog.tire_id == t.id))
        ).scalars().all()
    assert quantity == 15
    assert sorted(reasons) == ["Initial stock", "sold"]


async def test_delete_tire_is_soft_and_keeps_history(client, admin_headers, make_tire, session_maker):
    t = await make_tire(stock=20)

    res = await client.delete(f"/tires/{t.id}", headers=admin_headers)
    assert res.status_code == 204

    assert (await client.get(f"/tires/{t.id}")).status_code == 404
    assert (await client.get("/tires/")).json()["pagination"]["total"] == 0

    async with session_maker() as session:
        row = await session.get(Tire, t.id)
        assert row is not None and row.is_active is False
        count = (await session.execute(select(func.count(StockChangeLog.id)))).scalar_one()
    assert count == 1


async def test_update_stock_endpoint(client, staff_headers, make_tire):
    t = await make_tire(stock=20)

    res = await client.post(f"/tires/{t.id}/stock", json={"change": -5, "reason": "sold"}, headers=staff_headers)
    assert res.status_code == 200, res.text
    assert res.json()["stock_quantity"] == 15

    res = await client.post(f"/tires/{t.id}/stock", json={"change": -100, "reason": "bulk return"}, headers=staff_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "Insufficient stock. Current: 15, Requested change: -100"

    res = await client.get(f"/tires/{t.id}")
    assert res.json()["stock_quantity"] == 15
    assert [log["change"] for log in res.json()["stock_change_logs"]] == [-5, 20]


async def test_update_stock_input_errors(client, staff_headers, customer_headers, make_tire):
    t = await make_tire(stock=20)

    res = await client.post(f"/tires/{t.id}/stock", json={"change": 2, "reason": "  "}, headers=staff_headers)
    assert res.status_code == 422

    res = await client.post(f"/tires/{t.id}/stock", json={"change": 1.5, "reason": "restock"}, headers=staff_headers)
    assert res.status_code == 422

    res = await client.post(f"/tires/{uuid.uuid4()}/stock", json={"change": 1, "reason": "restock"}, headers=staff_headers)
    assert res.status_code == 404
    assert res.json()["detail"] == "Tire not found"

    res = await client.post(f"/tires/{t.id}/stock", json={"change": 1, "reason": "restock"}, headers=customer_headers)
    assert res.status_code == 403

    res = await client.post(f"/tires/{t.id}/stock", json={"change": 1, "reason": "restock"})
    assert res.status_code == 401


async def test_stock_history_endpoint(client, staff_headers, make_tire):
    t = await make_tire(stock=20)
    for change in (-1, -2):
        await client.post(f"/tires/{t.id}/stock", json={"change": change, "reason": "sold"}, headers=staff_headers)

    res = await client.get(f"/tires/{t.id}/stock-history", params={"limit": 2}, headers=staff_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}
    assert [log["change"] for log in body["logs"]] == [-2, -1]
    assert body["logs"][0]["user"]["email"] == "staff@example.com"
