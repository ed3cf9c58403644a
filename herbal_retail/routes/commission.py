from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from herbal_retail.core.exceptions import CommissionError
from herbal_retail.core.security import get_current_user, require_manager
from herbal_retail.database import get_db
from herbal_retail.schemas.commission import CommissionCalculate
from herbal_retail.services.commission_service import CommissionService
from herbal_retail.utils.logger import app_logger

router = APIRouter()


@router.post("/calculate")
async def calculate_commissions(request: CommissionCalculate, db: AsyncSession = Depends(get_db),
                                current_user: dict = Depends(require_manager)):
    try:
        app_logger.info(f"calculate_commissions {request.month} by {current_user['user_code']}")
        data = await CommissionService.calculate_commissions(db, request.month)
        return {"code": 200, "data": data, "msg": f"Commissions calculated for {len(data)} representatives"}
    except CommissionError as e:
        app_logger.error(f"calculate_commissions {request.month}: {e}")
        return {"code": 500, "msg": str(e)}


@router.get("/list")
async def get_monthly_commissions(month: Optional[date] = None, db: AsyncSession = Depends(get_db),
                                  current_user: dict = Depends(require_manager)):
    try:
        data = await CommissionService.get_monthly_commissions(db, month or date.today())
        return {"code": 200, "data": data}
    except SQLAlchemyError as e:
        app_logger.error(f"get_monthly_commissions An error occurred while fetching commissions: {str(e)}")
        return {"code": 500, "msg": "Database error occurred while fetching commissions"}


@router.get("/summary")
async def get_commission_summary(month: Optional[date] = None, db: AsyncSession = Depends(get_db),
                                 current_user: dict = Depends(require_manager)):
    try:
        data = await CommissionService.get_commission_summary(db, month or date.today())
        return {"code": 200, "data": data['data'], "field_translations": data['field_translations'],
                "month": data['month']}
    except SQLAlchemyError as e:
        app_logger.error(f"get_commission_summary An error occurred while fetching commissions: {str(e)}")
        return {"code": 500, "msg": "Database error occurred while fetching commissions"}


@router.get("/mine")
async def get_my_commission(month: Optional[date] = None, db: AsyncSession = Depends(get_db),
                            current_user: dict = Depends(get_current_user)):
    try:
        data = await CommissionService.get_my_commission(db, current_user['user_code'], month or date.today())
        if data is None:
            return {"code": 404, "data": None, "msg": "No commission has been calculated for this month yet"}
        return {"code": 200, "data": data}
    except SQLAlchemyError as e:
        app_logger.error(f"get_my_commission An error occurred while fetching commissions: {str(e)}")
        return {"code": 500, "msg": "Database error occurred while fetching commissions"}
