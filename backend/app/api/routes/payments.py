"""Payments and their adjustments against invoices."""
from fastapi import APIRouter, Depends

from app.api.deps import get_repository
from app.core.exceptions import BusinessError
from app.db.repository import BillingRepository
from app.schemas.payment import (
    PaymentSave, PaymentResponse,
    AdjustmentCreate, AdjustmentResponse, DeleteAdjustmentResponse,
    CustomerBalance,
)
from app.services import payment_service
from app.services.ledger_service import (
    apply_adjustment,
    delete_adjustment,
    payment_status,
    recompute_balances,
    recompute_customer_unadjusted,
)

router = APIRouter()


@router.post("", response_model=PaymentResponse)
def create_payment(data: PaymentSave, repo: BillingRepository = Depends(get_repository)):
    return payment_service.save_payment(repo, data, user_id=data.user_id)


@router.put("/{payment_id}", response_model=PaymentResponse)
def update_payment(payment_id: int, data: PaymentSave, repo: BillingRepository = Depends(get_repository)):
    return payment_service.save_payment(repo, data, payment_id=payment_id, user_id=data.user_id)


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, repo: BillingRepository = Depends(get_repository)):
    return payment_service.get_payment(repo, payment_id)


@router.post("/adjustments", response_model=AdjustmentResponse)
def create_adjustment(data: AdjustmentCreate, repo: BillingRepository = Depends(get_repository)):
    """Adjust part of a payment against an invoice; returns the recomputed balances."""
    result = apply_adjustment(repo, data.invoice_id, data.payment_id, data.adjust_amount, user_id=data.user_id)
    invoice = repo.get_invoice(data.invoice_id)
    return AdjustmentResponse(
        adjustment_id=result.adjustment_id,
        new_amount_due=result.new_amount_due,
        new_unadjusted_amount=result.new_unadjusted_amount,
        payment_unadjusted_amount=result.payment_unadjusted_amount,
        invoice_status=payment_status(invoice.total, result.new_amount_due).value,
    )


@router.delete("/{payment_id}/adjustments", response_model=DeleteAdjustmentResponse)
def remove_adjustments(payment_id: int, repo: BillingRepository = Depends(get_repository)):
    """Delete all adjustments of a payment, then recompute the affected balances."""
    payment = repo.get_payment(payment_id)
    if not payment:
        raise BusinessError.not_found("Payment", reason=f"id={payment_id}")
    customer_id = payment.customer_id

    invoice_ids = delete_adjustment(repo, payment_id)
    balances = recompute_balances(
        repo, invoice_ids=invoice_ids, payment_ids=[payment_id], customer_ids=[customer_id]
    )
    return DeleteAdjustmentResponse(
        message="Adjustments deleted successfully",
        invoice_ids=invoice_ids,
        amounts_due=balances["invoices"],
        payment_unadjusted_amount=balances["payments"][payment_id],
        customer_unadjusted_amount=balances["customers"][customer_id],
    )


@router.put("/customers/{customer_id}/unadjusted", response_model=CustomerBalance)
def update_customer_unadjusted(customer_id: int, repo: BillingRepository = Depends(get_repository)):
    """Re-derive the customer's unadjusted amount from their payments."""
    amount = recompute_customer_unadjusted(repo, customer_id)
    return CustomerBalance(customer_id=customer_id, unadjusted_amount=amount)


@router.get("/customers/{customer_id}/unadjusted", response_model=CustomerBalance)
def get_customer_unadjusted(customer_id: int, repo: BillingRepository = Depends(get_repository)):
    customer = repo.get_customer(customer_id)
    if not customer:
        raise BusinessError.not_found("Customer", reason=f"id={customer_id}")
    return CustomerBalance(customer_id=customer_id, unadjusted_amount=customer.unadjusted_amount)
