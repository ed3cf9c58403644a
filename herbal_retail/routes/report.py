from datetime import date
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from herbal_retail.core.exceptions import CommissionError
from herbal_retail.core.security import require_manager
from herbal_retail.database import get_db
from herbal_retail.services.commission_service import CommissionService
from herbal_retail.services.target_service import TargetProgressService
from herbal_retail.utils.logger import app_logger
from herbal_retail.utils.period import month_start

router = APIRouter()

# 报表类型
REPORT_TYPES = ["commission_summary", "target_progress", "quarterly_targets"]

QUARTERLY_FIELD_TRANSLATIONS = {
    "full_name": {"en": "Representative"},
    "quarterly_target": {"en": "Quarterly Target"},
    "quarterly_achieved": {"en": "Quarterly Achieved"},
    "quarterly_percentage": {"en": "Achievement %"},
}


@router.get("/data")
async def get_report_data(
        month: Optional[date] = Query(None, description="Any day in the report month, defaults to today"),
        report_type: str = Query("commission_summary", description=f"报表类型: {', '.join(REPORT_TYPES)}"),
        format: str = Query("json", description="返回格式: json 或 excel"),
        session: AsyncSession = Depends(get_db),
        current_user: dict = Depends(require_manager)
):
    """
    获取报表数据
    - month: 报表月份；quarterly_targets 取该月所在季度
    - format: json or excel (field_translations become the sheet headers)
    """
    if report_type not in REPORT_TYPES:
        return {"code": 400, "msg": f"Invalid report_type. Must be one of: {', '.join(REPORT_TYPES)}"}

    month = month_start(month or date.today())
    report_data = {}

    try:
        if report_type == "commission_summary":
            report_data[report_type] = await CommissionService.get_commission_summary(session, month)

        elif report_type == "target_progress":
            report_data[report_type] = await TargetProgressService.get_targets_with_progress(session, month)

        elif report_type == "quarterly_targets":
            quarterly = await TargetProgressService.get_quarterly_targets(session, month)
            report_data[report_type] = {
                "data": quarterly["data"],
                "months": quarterly["months"],
                "field_translations": QUARTERLY_FIELD_TRANSLATIONS,
            }

        report_data.update({"month": month, "report_type": report_type})
        app_logger.info(f"Report {report_type} for {month} requested by {current_user['user_code']} ({format})")

        if format.lower() == "excel":
            return _export_to_excel(report_data, report_type)
        return {"code": 200, "data": report_data}

    except (CommissionError, SQLAlchemyError) as e:
        app_logger.error(f"Error generating report: {str(e)}")
        return {"code": 500, "msg": f"Error generating report: {str(e)}"}


def _flatten_quarterly(rows: list) -> list:
    """One column pair per month instead of the nested monthly_breakdown."""
    flat = []
    for row in rows:
        item = {k: v for k, v in row.items() if k != "monthly_breakdown"}
        for breakdown in row.get("monthly_breakdown", []):
            label = breakdown["month"].strftime("%Y-%m")
            item[f"{label} Target"] = breakdown["target"]
            item[f"{label} Achieved"] = breakdown["achieved"]
        flat.append(item)
    return flat


def _export_to_excel(report_data: dict, report_type: str):
    """
    将报告数据导出为 Excel 文件，使用 field_translations 的英文字段名作为表头
    """
    output = BytesIO()
    section = report_data.get(report_type, {})
    rows = section.get("data", [])
    if report_type == "quarterly_targets":
        rows = _flatten_quarterly(rows)

    df = pd.DataFrame(rows)
    # Decimal 列转成 float，Excel 中才是数字
    for column in df.columns:
        if df[column].map(lambda v: hasattr(v, "as_tuple")).any():
            df[column] = df[column].astype(float)

    field_translations = section.get("field_translations") or {}
    column_mapping = {
        old_name: translations["en"]
        for old_name, translations in field_translations.items()
        if "en" in translations
    }
    df.rename(columns=column_mapping, inplace=True)

    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Sheet1", index=False)
    output.seek(0)

    month = report_data.get("month")
    headers = {
        "Content-Disposition": f'attachment; filename="report_{month:%Y-%m}_{report_type}.xlsx"',
        "Content-Type": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
    return Response(content=output.getvalue(), headers=headers)
