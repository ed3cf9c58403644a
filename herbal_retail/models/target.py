from sqlalchemy import Column, String, DateTime, Date, Numeric, UniqueConstraint
from sqlalchemy.orm import declarative_base
from datetime import datetime
import uuid

Base = declarative_base()


class TargetModel(Base):
    """
    月度销售目标
    One row per (user_id, month); month is always the first day of the month.
    """
    __tablename__ = "targets"
    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_targets_user_month"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    month = Column(Date, nullable=False, index=True)
    target_amount = Column(Numeric(18, 2), nullable=False)
    created_by = Column(String(36))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
