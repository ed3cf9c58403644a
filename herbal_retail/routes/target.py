from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from herbal_retail.core.exceptions import CommissionError
from herbal_retail.core.security import get_current_user, require_manager
from herbal_retail.database import get_db
from herbal_retail.schemas.target import TargetSet, BulkTargetSet
from herbal_retail.services.target_service import TargetService, TargetProgressService
from herbal_retail.utils.logger import app_logger
from herbal_retail.utils.period import quarter_start

router = APIRouter()


@router.get("/list")
async def get_monthly_targets(month: Optional[date] = None, db: AsyncSession = Depends(get_db),
                              current_user: dict = Depends(get_current_user)):
    try:
        data = await TargetService.get_monthly_targets(db, month or date.today())
        return {"code": 200, "data": data}
    except SQLAlchemyError as e:
        app_logger.error(f"get_monthly_targets An error occurred while fetching targets: {str(e)}")
        return {"code": 500, "msg": "Database error occurred while fetching targets"}


@router.get("/mine")
async def get_my_target(month: Optional[date] = None, db: AsyncSession = Depends(get_db),
                        current_user: dict = Depends(get_current_user)):
    try:
        data = await TargetService.get_my_target(db, current_user['user_code'], month or date.today())
        if data is None:
            return {"code": 404, "data": None,
                    "msg": "No target has been assigned for this month yet. Contact your manager."}
        return {"code": 200, "data": data}
    except SQLAlchemyError as e:
        app_logger.error(f"get_my_target An error occurred while fetching targets: {str(e)}")
        return {"code": 500, "msg": "Database error occurred while fetching targets"}


@router.put("/set")
async def set_target(request: TargetSet, db: AsyncSession = Depends(get_db),
                     current_user: dict = Depends(require_manager)):
    try:
        data = await TargetService.set_target(db, request.user_id, request.month, request.target_amount,
                                              created_by=current_user['user_code'])
        return {"code": 200, "data": data, "msg": "Target updated successfully"}
    except SQLAlchemyError as e:
        app_logger.error(f"set_target Database error: {str(e)}")
        return {"code": 500, "msg": "Failed to update target"}


@router.post("/bulk")
async def bulk_set_targets(request: BulkTargetSet, db: AsyncSession = Depends(get_db),
                           current_user: dict = Depends(require_manager)):
    try:
        count = await TargetService.bulk_set_targets(db, request.month, request.target_amount,
                                                     created_by=current_user['user_code'])
        return {"code": 200, "data": count,
                "msg": f"Targets set for {count} representative{'s' if count > 1 else ''}"}
    except ValueError as e:
        return {"code": 404, "msg": str(e)}
    except (CommissionError, SQLAlchemyError) as e:
        app_logger.error(f"bulk_set_targets {request.month}: {e}")
        return {"code": 500, "msg": "Failed to set bulk targets"}


@router.get("/progress")
async def get_targets_with_progress(month: Optional[date] = None, db: AsyncSession = Depends(get_db),
                                    current_user: dict = Depends(get_current_user)):
    try:
        data = await TargetProgressService.get_targets_with_progress(db, month or date.today())
        return {"code": 200, "data": data['data'], "field_translations": data['field_translations'],
                "month": data['month']}
    except CommissionError as e:
        app_logger.error(f"get_targets_with_progress {month}: {e}")
        return {"code": 500, "msg": str(e)}


@router.get("/quarterly")
async def get_quarterly_targets(year: int = Query(..., ge=2000, le=2100),
                                quarter: int = Query(..., ge=1, le=4),
                                db: AsyncSession = Depends(get_db),
                                current_user: dict = Depends(get_current_user)):
    try:
        data = await TargetProgressService.get_quarterly_targets(db, quarter_start(year, quarter))
        return {"code": 200, "data": data['data'], "months": data['months']}
    except CommissionError as e:
        app_logger.error(f"get_quarterly_targets {year}-Q{quarter}: {e}")
        return {"code": 500, "msg": str(e)}
