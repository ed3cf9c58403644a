from pydantic import BaseModel, Field, field_validator
from datetime import date
from decimal import Decimal

from herbal_retail.utils.period import month_start


class TargetSet(BaseModel):
    user_id: str
    month: date
    target_amount: Decimal = Field(gt=0)

    @field_validator("month")
    @classmethod
    def normalise_month(cls, value: date) -> date:
        return month_start(value)


class BulkTargetSet(BaseModel):
    month: date
    target_amount: Decimal = Field(gt=0)

    @field_validator("month")
    @classmethod
    def normalise_month(cls, value: date) -> date:
        return month_start(value)

