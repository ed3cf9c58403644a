"""
Commission and target arithmetic.

Everything here is a pure function of the records handed in: the services
fetch sales, appointments, targets and representatives for a period and
pass them through. Records are read by attribute, so ORM rows and plain
objects both work.

    aggregate_sales      -> domestic / international / appointment totals for one rep
    resolve_target       -> the rep's target for a month, or the default
    calculate_commission -> commission amounts, achievement and release/bonus flags
    build_commissions    -> one commission row per representative (batch input to the upsert)
    build_target_progress / build_quarterly_rollup -> live progress views
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, NamedTuple, Optional

from herbal_retail.config import RateTable, rate_table as default_rate_table
from herbal_retail.utils.period import month_bounds, month_start

COMPLETED = "completed"
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_percentage(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class SalesAggregate(NamedTuple):
    domestic_sales: Decimal = ZERO
    international_sales: Decimal = ZERO
    appointment_sales: Decimal = ZERO

    @property
    def achieved_amount(self) -> Decimal:
        return self.domestic_sales + self.international_sales + self.appointment_sales


def aggregate_sales(user_id: str, sales: Iterable, appointments: Iterable,
                    home_currency: str = default_rate_table.home_currency) -> SalesAggregate:
    """
    Sum a representative's completed sales by currency class and their
    converted appointments.

    A sale is domestic when its currency equals home_currency, international
    otherwise. Amounts are assumed to be in the home currency already.
    An appointment counts only when completed and linked to a sale.
    """
    domestic = ZERO
    international = ZERO
    for sale in sales:
        if sale.created_by != user_id or sale.status != COMPLETED:
            continue
        if sale.currency == home_currency:
            domestic += to_decimal(sale.total_amount)
        else:
            international += to_decimal(sale.total_amount)

    appointment_total = ZERO
    for appointment in appointments:
        if appointment.user_id != user_id or appointment.status != COMPLETED:
            continue
        if not appointment.sale_id:
            continue
        appointment_total += to_decimal(appointment.commission_amount)

    return SalesAggregate(domestic, international, appointment_total)


def resolve_target(user_id: str, targets: Iterable, default_target: Decimal = default_rate_table.default_target,
                   month: Optional[date] = None) -> Decimal:
    """
    Target amount for user_id, falling back to default_target when no row
    exists or the stored amount is not positive. Pass month to pick from a
    multi-month target list.
    """
    for target in targets:
        if target.user_id != user_id:
            continue
        if month is not None and month_start(target.month) != month_start(month):
            continue
        amount = to_decimal(target.target_amount)
        return amount if amount > 0 else default_target
    return default_target


def achievement_percentage(achieved_amount: Decimal, target_amount: Decimal,
                           default_target: Decimal = default_rate_table.default_target) -> Decimal:
    if target_amount <= 0:
        target_amount = default_target
    return round_percentage(HUNDRED * achieved_amount / target_amount)


def calculate_commission(aggregate: SalesAggregate, target_amount, rates: RateTable = None) -> dict:
    """
    Apply the rate table to one representative's monthly totals.

    Commission amounts are returned at full precision; only the achievement
    percentage is rounded (2 dp). The release and bonus flags compare the
    rounded percentage.
    """
    rates = rates or default_rate_table
    target_amount = to_decimal(target_amount)
    if target_amount <= 0:
        target_amount = rates.default_target

    domestic_commission = aggregate.domestic_sales * rates.domestic_rate
    international_commission = aggregate.international_sales * rates.international_rate
    appointment_commission = aggregate.appointment_sales * rates.appointment_rate
    achieved_amount = aggregate.achieved_amount
    percentage = achievement_percentage(achieved_amount, target_amount, rates.default_target)

    return {
        "domestic_sales": aggregate.domestic_sales,
        "international_sales": aggregate.international_sales,
        "appointment_sales": aggregate.appointment_sales,
        "domestic_commission": domestic_commission,
        "international_commission": international_commission,
        "appointment_commission": appointment_commission,
        "total_commission": domestic_commission + international_commission + appointment_commission,
        "target_amount": target_amount,
        "achieved_amount": achieved_amount,
        "achievement_percentage": percentage,
        "is_released": percentage >= rates.release_threshold * HUNDRED,
        "is_bonus_eligible": percentage >= rates.bonus_threshold * HUNDRED,
    }


def build_commissions(month: date, representatives: Iterable, sales: list, appointments: list,
                      targets: list, rates: RateTable = None) -> List[dict]:
    """One commission row per representative with a user_id, keyed by (user_id, month)."""
    rates = rates or default_rate_table
    month = month_start(month)
    rows = []
    for rep in representatives:
        if not rep.user_id:
            continue
        aggregate = aggregate_sales(rep.user_id, sales, appointments, rates.home_currency)
        target_amount = resolve_target(rep.user_id, targets, rates.default_target)
        row = calculate_commission(aggregate, target_amount, rates)
        row.update({"user_id": rep.user_id, "month": month})
        rows.append(row)
    return rows


def build_target_progress(month: date, representatives: Iterable, sales: list, appointments: list,
                          targets: list, rates: RateTable = None) -> List[dict]:
    """Live month progress per representative, best performer first."""
    rates = rates or default_rate_table
    month = month_start(month)
    progress = []
    for rep in representatives:
        if not rep.user_id:
            continue
        target_amount = resolve_target(rep.user_id, targets, rates.default_target)
        achieved = aggregate_sales(rep.user_id, sales, appointments, rates.home_currency).achieved_amount
        progress.append({
            "user_id": rep.user_id,
            "full_name": rep.full_name or "Unknown",
            "month": month,
            "target_amount": target_amount,
            "achieved_amount": achieved,
            "achievement_percentage": achievement_percentage(achieved, target_amount, rates.default_target),
            "remaining": max(ZERO, target_amount - achieved),
        })
    progress.sort(key=lambda item: item["achievement_percentage"], reverse=True)
    return progress


def _in_month(value, month: date) -> bool:
    start, end = month_bounds(month)
    return value is not None and start <= value <= end


def build_quarterly_rollup(months: List[date], representatives: Iterable, sales: list, appointments: list,
                           targets: list, rates: RateTable = None) -> List[dict]:
    """
    Quarter totals per representative plus a month-by-month breakdown.

    Each month resolves its own target, so a month without a target row
    contributes the default to the quarterly target.
    """
    rates = rates or default_rate_table
    months = [month_start(m) for m in months]
    sales_by_month = {m: [s for s in sales if _in_month(s.created_at, m)] for m in months}
    appointments_by_month = {m: [a for a in appointments if _in_month(a.scheduled_at, m)] for m in months}

    summaries = []
    for rep in representatives:
        if not rep.user_id:
            continue
        breakdown = []
        for m in months:
            target_amount = resolve_target(rep.user_id, targets, rates.default_target, month=m)
            achieved = aggregate_sales(rep.user_id, sales_by_month[m], appointments_by_month[m],
                                       rates.home_currency).achieved_amount
            breakdown.append({"month": m, "target": target_amount, "achieved": achieved})

        quarterly_target = sum((item["target"] for item in breakdown), ZERO)
        quarterly_achieved = sum((item["achieved"] for item in breakdown), ZERO)
        summaries.append({
            "user_id": rep.user_id,
            "full_name": rep.full_name or "Unknown",
            "quarterly_target": quarterly_target,
            "quarterly_achieved": quarterly_achieved,
            "quarterly_percentage": achievement_percentage(quarterly_achieved, quarterly_target,
                                                           rates.default_target),
            "monthly_breakdown": breakdown,
        })
    return summaries
