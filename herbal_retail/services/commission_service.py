from datetime import date, datetime
from typing import List, Optional
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from herbal_retail.config import RateTable, rate_table as default_rate_table
from herbal_retail.core.exceptions import FetchError, WriteError
from herbal_retail.models.commission import CommissionModel
from herbal_retail.models.sales import SaleModel, AppointmentModel
from herbal_retail.models.target import TargetModel
from herbal_retail.models.team import TeamMemberModel
from herbal_retail.services.commission_engine import build_commissions, COMPLETED
from herbal_retail.utils.logger import app_logger
from herbal_retail.utils.period import month_start, month_bounds
from herbal_retail.utils.upsert import bulk_upsert

COMMISSION_VALUE_COLUMNS = [
    "domestic_sales", "international_sales", "appointment_sales",
    "domestic_commission", "international_commission", "appointment_commission",
    "total_commission", "target_amount", "achieved_amount", "achievement_percentage",
    "is_released", "is_bonus_eligible",
]

COMMISSION_FIELD_TRANSLATIONS = {
    "full_name": {"en": "Representative"},
    "domestic_sales": {"en": "Domestic Sales"},
    "international_sales": {"en": "International Sales"},
    "appointment_sales": {"en": "Appointment Sales"},
    "total_sales": {"en": "Total Sales"},
    "domestic_commission": {"en": "Domestic Commission"},
    "international_commission": {"en": "International Commission"},
    "appointment_commission": {"en": "Appointment Commission"},
    "total_commission": {"en": "Total Commission"},
    "target": {"en": "Target"},
    "achievement": {"en": "Achievement %"},
    "is_released": {"en": "Released"},
    "is_bonus_eligible": {"en": "Bonus Eligible"},
}


class CommissionFetcher:
    """Batch inputs for one month. Each fetch failure is reported with its source name."""

    @staticmethod
    async def fetch_representatives(db: AsyncSession, role: str) -> list:
        try:
            result = await db.execute(select(TeamMemberModel).where(TeamMemberModel.role == role))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise FetchError("representatives", e) from e

    @staticmethod
    async def fetch_completed_sales(db: AsyncSession, start: datetime, end: datetime) -> list:
        try:
            result = await db.execute(
                select(SaleModel)
                    .where(SaleModel.status == COMPLETED)
                    .where(SaleModel.created_at.between(start, end))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise FetchError("sales", e) from e

    @staticmethod
    async def fetch_completed_appointments(db: AsyncSession, start: datetime, end: datetime) -> list:
        try:
            result = await db.execute(
                select(AppointmentModel)
                    .where(AppointmentModel.status == COMPLETED)
                    .where(AppointmentModel.scheduled_at.between(start, end))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise FetchError("appointments", e) from e

    @staticmethod
    async def fetch_targets(db: AsyncSession, months: List[date]) -> list:
        try:
            result = await db.execute(select(TargetModel).where(TargetModel.month.in_(months)))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise FetchError("targets", e) from e


def commission_to_dict(commission: CommissionModel) -> dict:
    data = {
        "id": commission.id,
        "user_id": commission.user_id,
        "month": commission.month,
        "created_at": commission.created_at,
        "updated_at": commission.updated_at,
    }
    for column in COMMISSION_VALUE_COLUMNS:
        data[column] = getattr(commission, column)
    return data


class CommissionService:

    @staticmethod
    async def calculate_commissions(db: AsyncSession, month: date, rates: RateTable = None) -> List[dict]:
        """
        Recompute every eligible representative's commission for month and
        upsert the whole set in one statement keyed by (user_id, month).

        Any fetch failure aborts before computing; a failed upsert is rolled
        back, so a run writes all rows or none. Re-running with unchanged
        source data replaces the rows with identical values.
        """
        rates = rates or default_rate_table
        month = month_start(month)
        start, end = month_bounds(month)
        app_logger.info(f"Calculating commissions for {month} ({start} - {end})")

        try:
            representatives = await CommissionFetcher.fetch_representatives(db, rates.eligible_role)
            sales = await CommissionFetcher.fetch_completed_sales(db, start, end)
            appointments = await CommissionFetcher.fetch_completed_appointments(db, start, end)
            targets = await CommissionFetcher.fetch_targets(db, [month])
        except FetchError as e:
            app_logger.error(f"calculate_commissions {month}: {e}")
            await db.rollback()
            raise

        app_logger.debug(f"Fetched {len(representatives)} representatives, {len(sales)} sales, "
                         f"{len(appointments)} appointments, {len(targets)} targets")

        commissions = build_commissions(month, representatives, sales, appointments, targets, rates)
        if not commissions:
            app_logger.info(f"No eligible representatives for {month}, nothing to save")
            return []

        now = datetime.utcnow()
        rows = [dict(c, id=str(uuid.uuid4()), created_at=now, updated_at=now) for c in commissions]
        try:
            await bulk_upsert(db, CommissionModel, rows,
                              conflict_columns=["user_id", "month"],
                              update_columns=COMMISSION_VALUE_COLUMNS + ["updated_at"])
            await db.commit()
        except SQLAlchemyError as e:
            app_logger.error(f"calculate_commissions {month}: upsert failed: {e}")
            await db.rollback()
            raise WriteError(e) from e

        app_logger.info(f"Saved {len(commissions)} commission records for {month}")
        return commissions

    @staticmethod
    async def get_monthly_commissions(db: AsyncSession, month: date) -> List[dict]:
        result = await db.execute(
            select(CommissionModel)
                .where(CommissionModel.month == month_start(month))
                .order_by(CommissionModel.total_commission.desc())
                .execution_options(populate_existing=True)
        )
        return [commission_to_dict(c) for c in result.scalars().all()]

    @staticmethod
    async def get_my_commission(db: AsyncSession, user_id: str, month: date) -> Optional[dict]:
        result = await db.execute(
            select(CommissionModel)
                .where(CommissionModel.user_id == user_id)
                .where(CommissionModel.month == month_start(month))
                .execution_options(populate_existing=True)
        )
        commission = result.scalar_one_or_none()
        return commission_to_dict(commission) if commission else None

    @staticmethod
    async def get_commission_summary(db: AsyncSession, month: date) -> dict:
        """Stored commissions for the month with representative names, highest payout first."""
        month = month_start(month)
        app_logger.info(f"Starting get_commission_summary for month: {month}")

        result = await db.execute(
            select(CommissionModel, TeamMemberModel.full_name)
                .select_from(CommissionModel)
                .join(TeamMemberModel, TeamMemberModel.user_id == CommissionModel.user_id, isouter=True)
                .where(CommissionModel.month == month)
                .order_by(CommissionModel.total_commission.desc())
                .execution_options(populate_existing=True)
        )
        rows = result.all()
        app_logger.info(f"Fetched {len(rows)} commission rows for {month}")

        data = [
            {
                "user_id": commission.user_id,
                "full_name": full_name or "Unknown",
                "domestic_sales": commission.domestic_sales,
                "international_sales": commission.international_sales,
                "appointment_sales": commission.appointment_sales,
                "total_sales": commission.achieved_amount,
                "domestic_commission": commission.domestic_commission,
                "international_commission": commission.international_commission,
                "appointment_commission": commission.appointment_commission,
                "total_commission": commission.total_commission,
                "target": commission.target_amount,
                "achievement": commission.achievement_percentage,
                "is_released": commission.is_released,
                "is_bonus_eligible": commission.is_bonus_eligible,
            }
            for commission, full_name in rows
        ]

        return {
            "data": data,
            "field_translations": COMMISSION_FIELD_TRANSLATIONS,
            "month": month,
        }
