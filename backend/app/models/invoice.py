from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Date, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    invoice_no = Column(String(64), nullable=False)
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    ship_state_id = Column(Integer, nullable=True)  # overrides the customer's place of supply
    sub_total = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    cgst = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    sgst = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    igst = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total = Column(Numeric(12, 2), nullable=False)
    amount_due = Column(Numeric(12, 2), nullable=False)  # total - sum(adjustments)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("Customer", backref="invoices")
    company = relationship("Company", backref="invoices")


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    rate = Column(Numeric(12, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # quantity * rate
    discount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    cgst_percent = Column(Numeric(6, 3), nullable=False, default=Decimal("0"))
    sgst_percent = Column(Numeric(6, 3), nullable=False, default=Decimal("0"))
    igst_percent = Column(Numeric(6, 3), nullable=False, default=Decimal("0"))
    tax_total = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    line_total = Column(Numeric(12, 2), nullable=False)  # amount - discount + tax_total

    invoice = relationship("Invoice", backref="line_items")
    item = relationship("Item")


class InvoiceTax(Base):
    """One row per distinct tax percentage on an invoice."""
    __tablename__ = "invoice_taxes"
    __table_args__ = (UniqueConstraint("invoice_id", "serial", name="uq_invoice_tax_serial"),)

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    serial = Column(Integer, nullable=False)  # 1-based, continues from max(serial) + 1
    percentage = Column(Numeric(6, 3), nullable=False)  # half of a 2-place rate needs 3 places
    cgst = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    sgst = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    igst = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    invoice = relationship("Invoice", backref="tax_rows")


class InvoiceSetting(Base):
    """Invoice numbering per company."""
    __tablename__ = "invoice_settings"

    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True)
    is_manual = Column(Boolean, nullable=False, default=False)
    prefix = Column(String(16), nullable=False, default="INV-")
    next_no = Column(Integer, nullable=False, default=1)
