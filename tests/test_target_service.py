from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from herbal_retail.models.target import TargetModel
from herbal_retail.services.target_service import TargetService, TargetProgressService

MARCH = date(2025, 3, 1)


async def count_targets(db) -> int:
    result = await db.execute(select(func.count()).select_from(TargetModel))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_set_target_creates_then_replaces(db):
    created = await TargetService.set_target(db, "r1", date(2025, 3, 18), Decimal("150000"), created_by="m1")
    assert created["month"] == MARCH
    assert created["target_amount"] == Decimal("150000")

    updated = await TargetService.set_target(db, "r1", MARCH, Decimal("175000"), created_by="m2")
    assert updated["target_amount"] == Decimal("175000")
    assert updated["created_by"] == "m2"
    assert updated["id"] == created["id"]
    assert await count_targets(db) == 1


@pytest.mark.asyncio
async def test_bulk_set_targets_covers_every_rep(db, seed):
    seed.rep("r1")
    seed.rep("r2")
    seed.rep("c1", role="counter_staff")
    seed.target("r1", MARCH, 90000)
    await db.commit()

    count = await TargetService.bulk_set_targets(db, MARCH, Decimal("120000"), created_by="m1")
    assert count == 2

    targets = await TargetService.get_monthly_targets(db, MARCH)
    assert {t["user_id"]: t["target_amount"] for t in targets} == {"r1": Decimal("120000"),
                                                                    "r2": Decimal("120000")}


@pytest.mark.asyncio
async def test_bulk_set_targets_without_reps(db, seed):
    seed.rep("c1", role="counter_staff")
    await db.commit()

    with pytest.raises(ValueError, match="No health representatives found"):
        await TargetService.bulk_set_targets(db, MARCH, Decimal("120000"))


@pytest.mark.asyncio
async def test_import_targets_last_duplicate_wins(db):
    rows = [
        {"user_id": "r1", "month": MARCH, "target_amount": Decimal("100")},
        {"user_id": "r2", "month": MARCH, "target_amount": Decimal("200")},
        {"user_id": "r1", "month": MARCH, "target_amount": Decimal("300")},
    ]
    assert await TargetService.import_targets(db, rows, created_by="m1") == 2
    assert (await TargetService.get_my_target(db, "r1", MARCH))["target_amount"] == Decimal("300")
    assert await TargetService.import_targets(db, []) == 0


@pytest.mark.asyncio
async def test_progress_is_live_and_sorted(db, seed):
    seed.rep("r1", "Ayesha Khan")
    seed.rep("r2", "Bilal Ahmed")
    seed.target("r1", MARCH, 50000)
    seed.sale("r1", 25000, datetime(2025, 3, 2))
    seed.sale("r2", 90000, datetime(2025, 3, 3), currency="USD")
    seed.appointment("r2", 10000, datetime(2025, 3, 4))
    await db.commit()

    progress = await TargetProgressService.get_targets_with_progress(db, MARCH)
    assert progress["month"] == MARCH
    r2, r1 = progress["data"]

    assert r2["user_id"] == "r2"
    assert r2["target_amount"] == Decimal("100000")
    assert r2["achieved_amount"] == Decimal("100000")
    assert r2["achievement_percentage"] == Decimal("100.00")
    assert r2["remaining"] == 0

    assert r1["achievement_percentage"] == Decimal("50.00")
    assert r1["remaining"] == Decimal("25000")


@pytest.mark.asyncio
async def test_quarterly_targets(db, seed):
    seed.rep("r1", "Ayesha Khan")
    seed.target("r1", date(2025, 4, 1), 80000)
    seed.target("r1", date(2025, 5, 1), 120000)
    seed.sale("r1", 40000, datetime(2025, 4, 10))
    seed.sale("r1", 60000, datetime(2025, 6, 30, 18, 0))
    seed.sale("r1", 70000, datetime(2025, 7, 1))
    await db.commit()

    result = await TargetProgressService.get_quarterly_targets(db, date(2025, 5, 20))
    assert result["months"] == [date(2025, 4, 1), date(2025, 5, 1), date(2025, 6, 1)]

    [summary] = result["data"]
    assert summary["quarterly_target"] == Decimal("300000")
    assert summary["quarterly_achieved"] == Decimal("100000")
    assert summary["quarterly_percentage"] == Decimal("33.33")
    assert [m["target"] for m in summary["monthly_breakdown"]] == [Decimal("80000"), Decimal("120000"),
                                                                   Decimal("100000")]
