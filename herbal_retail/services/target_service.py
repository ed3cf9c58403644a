from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from herbal_retail.config import RateTable, rate_table as default_rate_table
from herbal_retail.models.target import TargetModel
from herbal_retail.services.commission_engine import build_target_progress, build_quarterly_rollup
from herbal_retail.services.commission_service import CommissionFetcher
from herbal_retail.utils.logger import app_logger
from herbal_retail.utils.period import month_start, month_bounds, quarter_months, quarter_bounds
from herbal_retail.utils.upsert import bulk_upsert

TARGET_UPDATE_COLUMNS = ["target_amount", "created_by", "updated_at"]

PROGRESS_FIELD_TRANSLATIONS = {
    "full_name": {"en": "Representative"},
    "target_amount": {"en": "Target"},
    "achieved_amount": {"en": "Achieved"},
    "achievement_percentage": {"en": "Achievement %"},
    "remaining": {"en": "Remaining"},
}


def target_to_dict(target: TargetModel) -> dict:
    return {
        "id": target.id,
        "user_id": target.user_id,
        "month": target.month,
        "target_amount": target.target_amount,
        "created_by": target.created_by,
        "created_at": target.created_at,
        "updated_at": target.updated_at,
    }


def _target_row(user_id: str, month: date, target_amount: Decimal, created_by: Optional[str], now: datetime) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "month": month_start(month),
        "target_amount": target_amount,
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
    }


class TargetService:

    @staticmethod
    async def get_monthly_targets(db: AsyncSession, month: date) -> List[dict]:
        result = await db.execute(
            select(TargetModel)
                .where(TargetModel.month == month_start(month))
                .order_by(TargetModel.target_amount.desc())
                .execution_options(populate_existing=True)
        )
        return [target_to_dict(t) for t in result.scalars().all()]

    @staticmethod
    async def get_my_target(db: AsyncSession, user_id: str, month: date) -> Optional[dict]:
        result = await db.execute(
            select(TargetModel)
                .where(TargetModel.user_id == user_id)
                .where(TargetModel.month == month_start(month))
                .execution_options(populate_existing=True)
        )
        target = result.scalar_one_or_none()
        return target_to_dict(target) if target else None

    @staticmethod
    async def _upsert_targets(db: AsyncSession, rows: List[dict]) -> int:
        try:
            count = await bulk_upsert(db, TargetModel, rows,
                                      conflict_columns=["user_id", "month"],
                                      update_columns=TARGET_UPDATE_COLUMNS)
            await db.commit()
            return count
        except SQLAlchemyError as e:
            app_logger.error(f"Target upsert failed: {e}")
            await db.rollback()
            raise

    @staticmethod
    async def set_target(db: AsyncSession, user_id: str, month: date, target_amount: Decimal,
                         created_by: Optional[str] = None) -> Optional[dict]:
        """Create or replace the target for (user_id, month)."""
        app_logger.info(f"set_target {user_id} {month_start(month)} {target_amount} by {created_by}")
        row = _target_row(user_id, month, target_amount, created_by, datetime.utcnow())
        await TargetService._upsert_targets(db, [row])
        return await TargetService.get_my_target(db, user_id, month)

    @staticmethod
    async def bulk_set_targets(db: AsyncSession, month: date, target_amount: Decimal,
                               created_by: Optional[str] = None, rates: RateTable = None) -> int:
        """Give every eligible representative the same target for month."""
        rates = rates or default_rate_table
        representatives = await CommissionFetcher.fetch_representatives(db, rates.eligible_role)
        now = datetime.utcnow()
        rows = [_target_row(rep.user_id, month, target_amount, created_by, now)
                for rep in representatives if rep.user_id]
        if not rows:
            raise ValueError("No health representatives found")

        count = await TargetService._upsert_targets(db, rows)
        app_logger.info(f"bulk_set_targets {month_start(month)}: {count} targets set")
        return count

    @staticmethod
    async def import_targets(db: AsyncSession, targets: List[dict], created_by: Optional[str] = None) -> int:
        """
        Upsert already-validated rows of {user_id, month, target_amount}.

        A later row for the same (user_id, month) wins, matching what the
        upsert would do had the rows been written one by one.
        """
        now = datetime.utcnow()
        deduplicated = {}
        for item in targets:
            row = _target_row(item["user_id"], item["month"], item["target_amount"], created_by, now)
            deduplicated[(row["user_id"], row["month"])] = row
        if not deduplicated:
            return 0
        return await TargetService._upsert_targets(db, list(deduplicated.values()))


class TargetProgressService:
    """
    Live progress, always recomputed from sales and targets.

    Never reads the commissions table: being on track this month is not the
    same thing as a released commission, which only the explicit batch run
    produces.
    """

    @staticmethod
    async def get_targets_with_progress(db: AsyncSession, month: date, rates: RateTable = None) -> dict:
        rates = rates or default_rate_table
        month = month_start(month)
        start, end = month_bounds(month)

        representatives = await CommissionFetcher.fetch_representatives(db, rates.eligible_role)
        sales = await CommissionFetcher.fetch_completed_sales(db, start, end)
        appointments = await CommissionFetcher.fetch_completed_appointments(db, start, end)
        targets = await CommissionFetcher.fetch_targets(db, [month])

        data = build_target_progress(month, representatives, sales, appointments, targets, rates)
        app_logger.debug(f"get_targets_with_progress {month}: {len(data)} representatives")
        return {"data": data, "field_translations": PROGRESS_FIELD_TRANSLATIONS, "month": month}

    @staticmethod
    async def get_quarterly_targets(db: AsyncSession, any_day: date, rates: RateTable = None) -> dict:
        rates = rates or default_rate_table
        months = quarter_months(any_day)
        start, end = quarter_bounds(any_day)

        representatives = await CommissionFetcher.fetch_representatives(db, rates.eligible_role)
        sales = await CommissionFetcher.fetch_completed_sales(db, start, end)
        appointments = await CommissionFetcher.fetch_completed_appointments(db, start, end)
        targets = await CommissionFetcher.fetch_targets(db, months)

        data = build_quarterly_rollup(months, representatives, sales, appointments, targets, rates)
        app_logger.debug(f"get_quarterly_targets {months[0]}: {len(data)} representatives")
        return {"data": data, "months": months}
