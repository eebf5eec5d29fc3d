from __future__ import annotations

from datetime import date
from typing import Any, Callable

from httpx import AsyncClient

PRODUCTS: list[dict[str, Any]] = [
    {"sku": "10001", "name": "Whole milk", "shelf_life_days": 180, "reminder_days": 7, "location": "Chiller, row 1"},
    {"sku": "10002", "name": "Yoghurt", "shelf_life_days": 21, "reminder_days": 3, "location": "Chiller, row 2"},
    {"sku": "20001", "name": "Biscuits", "shelf_life_days": 365, "reminder_days": 30, "location": "Dry goods, row 2"},
]


async def _seed_products(client: AsyncClient, headers: dict[str, str]) -> None:
    for product in PRODUCTS:
        response = await client.post("/products", json=product, headers=headers)
        assert response.status_code == 200


async def _log(
    client: AsyncClient, headers: dict[str, str], sku: str, production_date: Any, **extra: Any
):
    return await client.post(
        "/records",
        json={"sku": sku, "production_date": production_date, **extra},
        headers=headers,
    )


async def test_record_is_classified_against_today(
    client: AsyncClient, auth: Callable[..., dict], clock
) -> None:
    headers = auth()
    await _seed_products(client, headers)

    response = await _log(client, headers, "10001", "2024-01-01")
    assert response.status_code == 200
    created = response.json()
    assert created["expiry_date"] == "2024-06-29"
    assert created["reminder_date"] == "2024-06-22"
    assert created["remaining_days"] == 1
    assert created["status"] == "warning"
    assert created["location"] == "Chiller, row 1"

    clock.today = date(2024, 6, 30)
    listing = (await client.get("/records", headers=headers)).json()
    assert listing[0]["remaining_days"] == -1
    assert listing[0]["status"] == "expired"


async def test_unknown_sku_cannot_be_logged(client: AsyncClient, auth: Callable[..., dict]) -> None:
    response = await _log(client, auth(), "10001", "2024-01-01")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


async def test_production_date_must_be_a_calendar_date(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    headers = auth()
    await _seed_products(client, headers)
    response = await _log(client, headers, "10001", "2024-01-01T00:00:00Z")
    assert response.status_code == 422

    for value in (1704067200, 1704067200.5, "2024-W01-1"):
        response = await _log(client, headers, "10001", value)
        assert response.status_code == 422, value

    assert (await client.get("/records", headers=headers)).json() == []


async def test_duplicate_batch_returns_conflict_then_confirm_creates(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    headers = auth()
    await _seed_products(client, headers)

    original = (await _log(client, headers, "10001", "2024-01-01")).json()

    conflict = await _log(client, headers, "10001", "2024-01-01", location="Back room")
    assert conflict.status_code == 409
    body = conflict.json()
    assert body["code"] == "CONFLICT"
    assert body["conflict"]["id"] == original["id"]
    assert body["conflict"]["production_date"] == "2024-01-01"
    assert body["conflict"]["location"] == "Chiller, row 1"
    assert len((await client.get("/records", headers=headers)).json()) == 1

    confirmed = await _log(
        client, headers, "10001", "2024-01-01", location="Back room", confirm_duplicate=True
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["duplicate_index"] == 1
    assert confirmed.json()["location"] == "Back room"

    records = (await client.get("/records", headers=headers)).json()
    assert len(records) == 2
    assert [record["duplicate_index"] for record in records] == [0, 1]


async def test_confirm_without_existing_batch_creates_first_batch(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    headers = auth()
    await _seed_products(client, headers)
    response = await _log(client, headers, "10002", "2024-06-20", confirm_duplicate=True)
    assert response.status_code == 200
    assert response.json()["duplicate_index"] == 0


async def test_delete_record_is_idempotent(client: AsyncClient, auth: Callable[..., dict]) -> None:
    headers = auth()
    await _seed_products(client, headers)
    await _log(client, headers, "10001", "2024-01-01")
    await _log(client, headers, "10001", "2024-01-01", confirm_duplicate=True)

    first = await client.delete("/records/10001/2024-01-01", headers=headers)
    assert first.json() == {"deleted": 1}
    remaining = (await client.get("/records", headers=headers)).json()
    assert [record["duplicate_index"] for record in remaining] == [0]

    second = await client.delete("/records/10001/2024-01-01", headers=headers)
    assert second.json() == {"deleted": 1}

    third = await client.delete("/records/10001/2024-01-01", headers=headers)
    assert third.status_code == 200
    assert third.json() == {"deleted": 0}
    assert (await client.get("/records", headers=headers)).json() == []


async def test_delete_record_rejects_malformed_date(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    headers = auth()
    await _seed_products(client, headers)
    await _log(client, headers, "10001", "2024-01-01")

    for malformed in ("01-01-2024", "2024-W01-1"):
        response = await client.delete(f"/records/10001/{malformed}", headers=headers)
        assert response.status_code == 400, malformed

    assert len((await client.get("/records", headers=headers)).json()) == 1


async def test_records_are_snapshots_of_the_product(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    headers = auth()
    await _seed_products(client, headers)
    await _log(client, headers, "10001", "2024-01-01")

    await client.put(
        "/products/10001", json={"name": "Skimmed milk", "shelf_life_days": 30}, headers=headers
    )
    record = (await client.get("/records", headers=headers)).json()[0]
    assert record["name"] == "Whole milk"
    assert record["shelf_life_days"] == 180

    await client.delete("/products/10001", headers=headers)
    records = (await client.get("/records", headers=headers)).json()
    assert len(records) == 1
    assert records[0]["sku"] == "10001"


async def test_listing_order_and_expiring_prefix(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    headers = auth()
    await _seed_products(client, headers)
    for sku, produced in [
        ("20001", "2024-06-01"),
        ("10001", "2024-01-01"),
        ("10002", "2024-06-20"),
        ("20001", "2023-07-15"),
        ("10002", "2024-06-04"),
        ("10001", "2023-12-01"),
    ]:
        assert (await _log(client, headers, sku, produced)).status_code == 200

    records = (await client.get("/records", headers=headers)).json()
    assert [(r["sku"], r["production_date"], r["remaining_days"], r["status"]) for r in records] == [
        ("10001", "2023-12-01", -30, "expired"),
        ("10002", "2024-06-04", -3, "expired"),
        ("10001", "2024-01-01", 1, "warning"),
        ("20001", "2023-07-15", 16, "warning"),
        ("10002", "2024-06-20", 13, "normal"),
        ("20001", "2024-06-01", 338, "normal"),
    ]

    expiring = (await client.get("/records/expiring", headers=headers)).json()
    assert expiring == records[: len(expiring)]
    assert expiring == [record for record in records if record["status"] != "normal"]
    assert len(expiring) == 4


async def test_records_filtered_by_sku(client: AsyncClient, auth: Callable[..., dict]) -> None:
    headers = auth()
    await _seed_products(client, headers)
    await _log(client, headers, "10001", "2024-01-01")
    await _log(client, headers, "10002", "2024-06-20")

    by_query = (await client.get("/records", params={"sku": "10002"}, headers=headers)).json()
    by_path = (await client.get("/records/by-sku/10002", headers=headers)).json()
    assert [record["sku"] for record in by_query] == ["10002"]
    assert by_query == by_path


async def test_preview_does_not_persist(client: AsyncClient, auth: Callable[..., dict]) -> None:
    headers = auth()
    await _seed_products(client, headers)

    response = await client.get(
        "/records/preview", params={"sku": "10001", "production_date": "2024-01-01"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json() == {
        "sku": "10001",
        "name": "Whole milk",
        "production_date": "2024-01-01",
        "expiry_date": "2024-06-29",
        "reminder_date": "2024-06-22",
        "remaining_days": 1,
        "status": "warning",
    }
    assert (await client.get("/records", headers=headers)).json() == []

    unknown = await client.get(
        "/records/preview", params={"sku": "99999", "production_date": "2024-01-01"}, headers=headers
    )
    assert unknown.json() is None


async def test_ledger_isolation_between_accounts(
    client: AsyncClient, auth: Callable[..., dict]
) -> None:
    owner = auth("account-a")
    other = auth("account-b")
    await _seed_products(client, owner)
    await _log(client, owner, "10001", "2024-01-01")

    assert (await client.get("/records", headers=other)).json() == []
    assert (await client.get("/records/expiring", headers=other)).json() == []
    assert (await client.get("/records/by-sku/10001", headers=other)).json() == []
    assert (await _log(client, other, "10001", "2024-01-01")).status_code == 400
    assert (await client.delete("/records/10001/2024-01-01", headers=other)).json() == {"deleted": 0}

    await _seed_products(client, other)
    assert (await _log(client, other, "10001", "2024-01-01")).status_code == 200
    assert len((await client.get("/records", headers=owner)).json()) == 1
    assert len((await client.get("/records", headers=other)).json()) == 1
