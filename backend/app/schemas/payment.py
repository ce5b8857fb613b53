from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel


class PaymentSave(BaseModel):
    customer_id: int
    pay_date: Optional[date] = None
    total_amount: Decimal
    reference: Optional[str] = None
    remarks: Optional[str] = None
    user_id: Optional[int] = None


class PaymentResponse(BaseModel):
    id: int
    customer_id: int
    pay_date: Optional[date] = None
    total_amount: Decimal
    unadjusted_amount: Decimal
    reference: Optional[str] = None
    remarks: Optional[str] = None

    class Config:
        from_attributes = True


class AdjustmentCreate(BaseModel):
    invoice_id: int
    payment_id: int
    adjust_amount: Decimal
    user_id: Optional[int] = None


class AdjustmentResponse(BaseModel):
    adjustment_id: int
    new_amount_due: Decimal
    new_unadjusted_amount: Decimal
    payment_unadjusted_amount: Decimal
    invoice_status: str


class DeleteAdjustmentResponse(BaseModel):
    message: str
    invoice_ids: List[int]
    amounts_due: Dict[int, Decimal]
    payment_unadjusted_amount: Decimal
    customer_unadjusted_amount: Decimal


class CustomerBalance(BaseModel):
    customer_id: int
    unadjusted_amount: Decimal
