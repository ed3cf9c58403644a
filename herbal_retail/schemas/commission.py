from pydantic import BaseModel, field_validator
from datetime import date

from herbal_retail.utils.period import month_start


class CommissionCalculate(BaseModel):
    month: date

    @field_validator("month")
    @classmethod
    def normalise_month(cls, value: date) -> date:
        return month_start(value)
