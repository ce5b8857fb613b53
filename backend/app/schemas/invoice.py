from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class InvoiceSave(BaseModel):
    id: Optional[int] = None  # set to update an existing invoice
    company_id: int
    customer_id: int
    invoice_no: Optional[str] = None  # None: take the next number from invoice settings
    invoice_date: date
    due_date: Optional[date] = None
    ship_state_id: Optional[int] = None
    sub_total: Decimal = Decimal("0")
    cgst: Decimal = Decimal("0")
    sgst: Decimal = Decimal("0")
    igst: Decimal = Decimal("0")
    total: Decimal
    user_id: Optional[int] = None


class InvoiceResponse(BaseModel):
    id: int
    company_id: int
    customer_id: int
    invoice_no: str
    invoice_date: date
    due_date: Optional[date] = None
    ship_state_id: Optional[int] = None
    sub_total: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total: Decimal
    amount_due: Decimal
    payment_status: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceItemCreate(BaseModel):
    item_id: int
    quantity: Decimal
    rate: Optional[Decimal] = None  # overrides the item's sell price
    discount: Decimal = Decimal("0")
    user_id: Optional[int] = None


class InvoiceItemResponse(BaseModel):
    id: int
    invoice_id: int
    item_id: int
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    discount: Decimal
    cgst_percent: Decimal
    sgst_percent: Decimal
    igst_percent: Decimal
    tax_total: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class TaxPreviewRequest(BaseModel):
    item_id: int
    company_id: int
    customer_id: int
    quantity: Decimal
    rate: Optional[Decimal] = None
    discount: Decimal = Decimal("0")
    ship_state_id: Optional[int] = None


class LineTaxResponse(BaseModel):
    amount: Decimal
    cgst_percent: Decimal
    sgst_percent: Decimal
    igst_percent: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax_total: Decimal
    line_total: Decimal


class InvoiceTaxResponse(BaseModel):
    serial: int
    percentage: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal

    class Config:
        from_attributes = True


class SaveInvoiceTaxResponse(BaseModel):
    message: str
    serials: List[int]


class InvoiceSettingSave(BaseModel):
    is_manual: bool = False
    prefix: str = "INV-"
    next_no: int = 1


class InvoiceSettingResponse(BaseModel):
    company_id: int
    is_manual: bool
    prefix: str
    next_no: int

    class Config:
        from_attributes = True


class NextInvoiceNumber(BaseModel):
    company_id: int
    invoice_no: str
