from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Date
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    pay_date = Column(Date, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    # total_amount - sum(adjustments for this payment); never negative
    unadjusted_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    reference = Column(String(128), nullable=True)
    remarks = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("Customer", backref="payments")


class Adjustment(Base):
    """Links a payment to an invoice for an amount. Append-only."""
    __tablename__ = "adjustments"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    adjust_amount = Column(Numeric(12, 2), nullable=False)
    user_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    invoice = relationship("Invoice", backref="adjustments")
    payment = relationship("Payment", backref="adjustments")
