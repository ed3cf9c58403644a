from sqlalchemy import Column, String, DateTime, Date, Numeric, Boolean, UniqueConstraint
from sqlalchemy.orm import declarative_base
from datetime import datetime
import uuid

Base = declarative_base()


class CommissionModel(Base):
    """
    月度佣金结果
    Fully derived by the commission batch; each run replaces the row for
    (user_id, month). Amounts are kept at full precision.
    """
    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_commissions_user_month"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    month = Column(Date, nullable=False, index=True)
    domestic_sales = Column(Numeric(18, 6), nullable=False, default=0)
    international_sales = Column(Numeric(18, 6), nullable=False, default=0)
    appointment_sales = Column(Numeric(18, 6), nullable=False, default=0)
    domestic_commission = Column(Numeric(18, 6), nullable=False, default=0)
    international_commission = Column(Numeric(18, 6), nullable=False, default=0)
    appointment_commission = Column(Numeric(18, 6), nullable=False, default=0)
    total_commission = Column(Numeric(18, 6), nullable=False, default=0)
    target_amount = Column(Numeric(18, 2), nullable=False)
    achieved_amount = Column(Numeric(18, 6), nullable=False, default=0)
    achievement_percentage = Column(Numeric(9, 2), nullable=False, default=0)
    is_released = Column(Boolean, nullable=False, default=False)
    is_bonus_eligible = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
