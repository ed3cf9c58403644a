from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from herbal_retail.config import RateTable
from herbal_retail.core.exceptions import FetchError, WriteError
from herbal_retail.models.commission import Base as CommissionBase, CommissionModel
from herbal_retail.models.sales import Base as SalesBase
from herbal_retail.services.commission_service import CommissionService

MARCH = date(2025, 3, 1)


async def count_commissions(db) -> int:
    result = await db.execute(select(func.count()).select_from(CommissionModel))
    return result.scalar_one()


async def seed_march(db, seed):
    seed.rep("r1", "Ayesha Khan")
    seed.rep("r2", "Bilal Ahmed")
    seed.rep("r3", "Sana Malik")
    seed.rep("c1", "Counter Staff", role="counter_staff")

    seed.sale("r1", 80000, datetime(2025, 3, 5))
    seed.sale("r2", 95000, datetime(2025, 3, 6))
    seed.appointment("r2", 5000, datetime(2025, 3, 7))
    seed.sale("r3", 100000, datetime(2025, 3, 8))
    seed.sale("r3", 60000, datetime(2025, 3, 9), currency="USD")
    seed.sale("c1", 50000, datetime(2025, 3, 9))

    seed.target("r3", MARCH, 200000)
    await db.commit()


@pytest.mark.asyncio
async def test_calculate_writes_one_row_per_rep(db, seed):
    await seed_march(db, seed)

    computed = await CommissionService.calculate_commissions(db, date(2025, 3, 20))
    assert {row["user_id"] for row in computed} == {"r1", "r2", "r3"}

    stored = {row["user_id"]: row for row in await CommissionService.get_monthly_commissions(db, MARCH)}
    assert set(stored) == {"r1", "r2", "r3"}

    assert stored["r1"]["total_commission"] == Decimal("3200")
    assert stored["r1"]["is_released"] is False

    assert stored["r2"]["achieved_amount"] == Decimal("100000")
    assert stored["r2"]["total_commission"] == Decimal("4300")
    assert stored["r2"]["is_released"] is True

    # 100000 domestic + 60000 international against a 200000 target
    assert stored["r3"]["target_amount"] == Decimal("200000")
    assert stored["r3"]["international_commission"] == Decimal("1200")
    assert stored["r3"]["total_commission"] == Decimal("5200")
    assert stored["r3"]["achievement_percentage"] == Decimal("80.00")
    assert stored["r3"]["month"] == MARCH


@pytest.mark.asyncio
async def test_recalculate_replaces_rows(db, seed):
    await seed_march(db, seed)

    await CommissionService.calculate_commissions(db, MARCH)
    first = await CommissionService.get_monthly_commissions(db, MARCH)
    await CommissionService.calculate_commissions(db, MARCH)
    second = await CommissionService.get_monthly_commissions(db, MARCH)

    assert await count_commissions(db) == 3
    strip = lambda rows: sorted(({k: v for k, v in r.items() if k != "updated_at"} for r in rows),
                                key=lambda r: r["user_id"])
    assert strip(first) == strip(second)


@pytest.mark.asyncio
async def test_recalculate_picks_up_new_sales(db, seed):
    await seed_march(db, seed)
    await CommissionService.calculate_commissions(db, MARCH)

    seed.sale("r1", 20000, datetime(2025, 3, 28))
    await db.commit()
    await CommissionService.calculate_commissions(db, MARCH)

    mine = await CommissionService.get_my_commission(db, "r1", MARCH)
    assert mine["achieved_amount"] == Decimal("100000")
    assert mine["is_released"] is True
    assert await count_commissions(db) == 3


@pytest.mark.asyncio
async def test_only_completed_sales_inside_the_month_count(db, seed):
    seed.rep("r1")
    seed.sale("r1", 10000, datetime(2025, 3, 1))
    seed.sale("r1", 20000, datetime(2025, 3, 31, 23, 59, 59))
    seed.sale("r1", 40000, datetime(2025, 2, 28, 23, 59, 59))
    seed.sale("r1", 80000, datetime(2025, 4, 1))
    seed.sale("r1", 160000, datetime(2025, 3, 15), status="cancelled")
    seed.appointment("r1", 1000, datetime(2025, 3, 15), linked=False)
    seed.appointment("r1", 2000, datetime(2025, 3, 16), status="no_show")
    await db.commit()

    [row] = await CommissionService.calculate_commissions(db, MARCH)
    assert row["domestic_sales"] == Decimal("30000")
    assert row["appointment_sales"] == Decimal("0")
    assert row["target_amount"] == Decimal("100000")


@pytest.mark.asyncio
async def test_no_representatives_writes_nothing(db, seed):
    seed.rep("c1", role="counter_staff")
    seed.rep(None, "Pending Invite")
    await db.commit()

    assert await CommissionService.calculate_commissions(db, MARCH) == []
    assert await count_commissions(db) == 0


@pytest.mark.asyncio
async def test_rate_table_override(db, seed):
    seed.rep("r1")
    seed.sale("r1", 1000, datetime(2025, 3, 3))
    await db.commit()

    rates = RateTable(domestic_rate="0.10", default_target="2000", release_threshold="0.50")
    [row] = await CommissionService.calculate_commissions(db, MARCH, rates=rates)
    assert row["domestic_commission"] == Decimal("100")
    assert row["achievement_percentage"] == Decimal("50.00")
    assert row["is_released"] is True


@pytest.mark.asyncio
async def test_fetch_failure_names_source_and_writes_nothing(engine, db, seed):
    seed.rep("r1")
    await db.commit()
    async with engine.begin() as conn:
        await conn.run_sync(SalesBase.metadata.drop_all)

    with pytest.raises(FetchError) as exc_info:
        await CommissionService.calculate_commissions(db, MARCH)

    assert exc_info.value.source == "sales"
    assert "sales" in str(exc_info.value)
    assert await count_commissions(db) == 0


@pytest.mark.asyncio
async def test_write_failure_raises_write_error(engine, db, seed):
    seed.rep("r1")
    seed.sale("r1", 5000, datetime(2025, 3, 3))
    await db.commit()
    async with engine.begin() as conn:
        await conn.run_sync(CommissionBase.metadata.drop_all)

    with pytest.raises(WriteError):
        await CommissionService.calculate_commissions(db, MARCH)


@pytest.mark.asyncio
async def test_summary_joins_names_and_orders_by_payout(db, seed):
    await seed_march(db, seed)
    await CommissionService.calculate_commissions(db, MARCH)

    summary = await CommissionService.get_commission_summary(db, MARCH)
    assert summary["month"] == MARCH
    assert [row["full_name"] for row in summary["data"]] == ["Sana Malik", "Bilal Ahmed", "Ayesha Khan"]
    assert summary["data"][1]["total_sales"] == Decimal("100000")
    assert summary["field_translations"]["total_commission"]["en"] == "Total Commission"


@pytest.mark.asyncio
async def test_my_commission_missing(db):
    assert await CommissionService.get_my_commission(db, "nobody", MARCH) is None
