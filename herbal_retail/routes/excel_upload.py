# routes/excel_upload.py
from typing import List, Dict, Any, Tuple
import io

from fastapi import APIRouter, UploadFile, File, Depends, HTTPException
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import pandas as pd

from herbal_retail.core.security import require_manager
from herbal_retail.database import get_db
from herbal_retail.schemas.target import TargetSet
from herbal_retail.services.target_service import TargetService
from herbal_retail.utils.logger import app_logger

router = APIRouter(tags=["excel"])

TARGET_COLUMNS = ["user_id", "month", "target_amount"]


class ImportResult(BaseModel):
    success: bool
    message: str
    data_type: str
    rows_processed: int
    rows_with_errors: int = 0
    errors: List[str] = []


def normalise_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case headers and turn 'Target Amount' into 'target_amount'."""
    df.columns = [str(col).strip().lower().replace(" ", "_") for col in df.columns]
    return df


def parse_target_rows(df: pd.DataFrame) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Validate each sheet row against the target schema.

    Returns the valid rows and one message per rejected row; Excel row
    numbers count the header as row 1.
    """
    valid, errors = [], []
    for index, row in df.iterrows():
        excel_row = index + 2
        raw = {col: row.get(col) for col in TARGET_COLUMNS}
        if any(pd.isna(raw[col]) or str(raw[col]).strip() == "" for col in TARGET_COLUMNS):
            errors.append(f"Row {excel_row}: user_id, month and target_amount are required")
            continue

        month = raw["month"]
        if isinstance(month, pd.Timestamp):
            month = month.date()
        try:
            target = TargetSet(user_id=str(raw["user_id"]).strip(), month=month,
                               target_amount=str(raw["target_amount"]))
        except ValidationError as e:
            errors.append(f"Row {excel_row}: {e.errors()[0]['msg']}")
            continue
        valid.append(target.model_dump())
    return valid, errors


@router.post("/targets", response_model=ImportResult)
async def upload_targets(file: UploadFile = File(...), db: AsyncSession = Depends(get_db),
                         current_user: dict = Depends(require_manager)):
    if not file.filename.lower().endswith((".xlsx", ".xls")):
        raise HTTPException(status_code=400, detail="Only Excel files are supported")

    contents = await file.read()
    try:
        df = normalise_columns(pd.read_excel(io.BytesIO(contents)))
    except Exception as e:
        app_logger.error(f"upload_targets could not read {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Could not read Excel file: {e}")

    missing = [col for col in TARGET_COLUMNS if col not in df.columns]
    if missing:
        return ImportResult(success=False, message=f"Missing columns: {', '.join(missing)}", data_type="target",
                            rows_processed=0)

    targets, errors = parse_target_rows(df)
    try:
        written = await TargetService.import_targets(db, targets, created_by=current_user['user_code'])
    except SQLAlchemyError as e:
        app_logger.error(f"upload_targets Database error: {e}")
        return ImportResult(success=False, message="Database error occurred while importing targets",
                            data_type="target", rows_processed=0, rows_with_errors=len(errors), errors=errors[:10])

    app_logger.info(f"upload_targets {file.filename}: {written} written, {len(errors)} rejected")
    return ImportResult(
        success=True,
        message=f"Imported {written} targets",
        data_type="target",
        rows_processed=written,
        rows_with_errors=len(errors),
        errors=errors[:10],  # first 10 messages only
    )
