from sqlalchemy import Column, String, DateTime, Numeric, Text, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime
import uuid

Base = declarative_base()


class SaleModel(Base):
    """
    POS / field sale
    total_amount is already converted to the home currency at checkout;
    currency records what the customer paid in.
    """
    __tablename__ = "sales"
    __table_args__ = (
        Index("ix_sales_status_created_at", "status", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_number = Column(String(30), unique=True)
    created_by = Column(String(36), index=True)  # user_id of the seller, null for walk-in counter sales
    customer_name = Column(String(120))
    payment_method = Column(String(20), default="cash")  # cash, card, bank_transfer, mobile_wallet
    subtotal_amount = Column(Numeric(18, 6), default=0)
    discount_amount = Column(Numeric(18, 6), default=0)
    total_amount = Column(Numeric(18, 6), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="PKR")
    status = Column(String(20), nullable=False, default="pending")  # pending, completed, cancelled, refunded
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AppointmentModel(Base):
    """
    Field visit booked by a health rep; converts when sale_id is set.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_status_scheduled_at", "status", "scheduled_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    customer_name = Column(String(120), nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")
    sale_id = Column(String(36))
    commission_amount = Column(Numeric(18, 6))  # commission-eligible amount of the linked sale
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
