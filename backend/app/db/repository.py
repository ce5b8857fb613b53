"""Data access for the billing services.

BillingRepository is handed to every service function instead of a shared
connection. Fetches return a row or None; sums return Decimal (0 when empty).
``for_update=True`` takes a row lock for the rest of the transaction so a
recomputation reads and writes one invoice/payment/customer atomically.
"""
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.company import Company
from app.models.customer import Customer
from app.models.item import Item
from app.models.invoice import Invoice, InvoiceItem, InvoiceTax, InvoiceSetting
from app.models.payment import Payment, Adjustment


def _as_decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class BillingRepository:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ reads

    def _get(self, model, row_id: int, for_update: bool = False):
        q = self.db.query(model).filter(model.id == row_id)
        if for_update:
            # re-read locked rows instead of trusting the identity map
            q = q.with_for_update().populate_existing()
        return q.first()

    def get_company(self, company_id: int) -> Optional[Company]:
        return self._get(Company, company_id)

    def get_customer(self, customer_id: int, for_update: bool = False) -> Optional[Customer]:
        return self._get(Customer, customer_id, for_update)

    def get_item(self, item_id: int) -> Optional[Item]:
        return self._get(Item, item_id)

    def get_invoice(self, invoice_id: int, for_update: bool = False) -> Optional[Invoice]:
        return self._get(Invoice, invoice_id, for_update)

    def get_payment(self, payment_id: int, for_update: bool = False) -> Optional[Payment]:
        return self._get(Payment, payment_id, for_update)

    def get_invoice_setting(self, company_id: int, for_update: bool = False) -> Optional[InvoiceSetting]:
        q = self.db.query(InvoiceSetting).filter(InvoiceSetting.company_id == company_id)
        if for_update:
            q = q.with_for_update()
        return q.first()

    def list_invoice_items(self, invoice_id: int) -> List[InvoiceItem]:
        return (
            self.db.query(InvoiceItem)
            .filter(InvoiceItem.invoice_id == invoice_id)
            .order_by(InvoiceItem.id)
            .all()
        )

    def list_invoice_taxes(self, invoice_id: int) -> List[InvoiceTax]:
        return (
            self.db.query(InvoiceTax)
            .filter(InvoiceTax.invoice_id == invoice_id)
            .order_by(InvoiceTax.serial)
            .all()
        )

    def list_adjustments_for_payment(self, payment_id: int) -> List[Adjustment]:
        return (
            self.db.query(Adjustment)
            .filter(Adjustment.payment_id == payment_id)
            .order_by(Adjustment.id)
            .all()
        )

    def max_tax_serial(self, invoice_id: int) -> int:
        value = (
            self.db.query(func.max(InvoiceTax.serial))
            .filter(InvoiceTax.invoice_id == invoice_id)
            .scalar()
        )
        return int(value or 0)

    # ------------------------------------------------------------------- sums

    def sum_adjustments_for_invoice(self, invoice_id: int) -> Decimal:
        value = (
            self.db.query(func.coalesce(func.sum(Adjustment.adjust_amount), 0))
            .filter(Adjustment.invoice_id == invoice_id)
            .scalar()
        )
        return _as_decimal(value)

    def sum_adjustments_for_payment(self, payment_id: int) -> Decimal:
        value = (
            self.db.query(func.coalesce(func.sum(Adjustment.adjust_amount), 0))
            .filter(Adjustment.payment_id == payment_id)
            .scalar()
        )
        return _as_decimal(value)

    def sum_unadjusted_for_customer(self, customer_id: int) -> Decimal:
        value = (
            self.db.query(func.coalesce(func.sum(Payment.unadjusted_amount), 0))
            .filter(Payment.customer_id == customer_id)
            .scalar()
        )
        return _as_decimal(value)

    # ----------------------------------------------------------------- writes

    def add(self, row):
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row

    def delete_invoice_lines(self, invoice_id: int) -> None:
        self.db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice_id).delete(synchronize_session=False)
        self.db.query(InvoiceTax).filter(InvoiceTax.invoice_id == invoice_id).delete(synchronize_session=False)

    def delete_adjustments_for_payment(self, payment_id: int) -> List[Adjustment]:
        rows = self.list_adjustments_for_payment(payment_id)
        for row in rows:
            self.db.delete(row)
        self.db.flush()
        return rows

    def flush(self) -> None:
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, row) -> None:
        self.db.refresh(row)
