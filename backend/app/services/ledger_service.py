"""Invoice and payment balances.

Every balance here is derived by summing adjustment rows again, never by
adding or subtracting a delta:

    invoice.amount_due           = invoice.total - sum(adjustments on the invoice)
    payment.unadjusted_amount    = payment.total_amount - sum(adjustments of the payment)
    customer.unadjusted_amount   = sum(payment.unadjusted_amount for the customer's payments)

The recompute_* functions are idempotent and can be re-run at any time to
repair a drifted balance. Each one locks the row it writes.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from app.core.audit import AuditLog
from app.core.exceptions import BillingError, NegativeAmountError, NotFoundError, ValidationError
from app.db.repository import BillingRepository
from app.models.payment import Adjustment
from app.services.tax_calculator import to_decimal, to_money

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    NOT_PAID = "not_paid"
    PARTIALLY_PAID = "partially_paid"
    FULLY_PAID = "fully_paid"


@dataclass(frozen=True)
class AdjustmentResult:
    adjustment_id: int
    new_amount_due: Decimal
    new_unadjusted_amount: Decimal  # customer level
    payment_unadjusted_amount: Decimal


def payment_status(total, amount_due) -> PaymentStatus:
    """Derive an invoice's payment status. Never stored."""
    total = to_decimal(total, "total")
    amount_due = to_decimal(amount_due, "amount_due")
    if amount_due <= 0:
        return PaymentStatus.FULLY_PAID
    if amount_due == total:
        return PaymentStatus.NOT_PAID
    return PaymentStatus.PARTIALLY_PAID


def _require_id(value, name: str) -> int:
    if not value:
        raise ValidationError(f"{name} is required")
    return value


def recompute_invoice_due(repo: BillingRepository, invoice_id: int, auto_commit: bool = True) -> Decimal:
    """Set invoice.amount_due = total - sum(adjustments). Returns the new amount due."""
    _require_id(invoice_id, "invoice_id")
    repo.flush()
    invoice = repo.get_invoice(invoice_id, for_update=True)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)

    amount_due = to_decimal(invoice.total, "total") - repo.sum_adjustments_for_invoice(invoice_id)
    if amount_due < 0:
        raise NegativeAmountError(f"Invoice {invoice_id} has {-amount_due} more adjusted than its total")
    invoice.amount_due = amount_due
    repo.flush()
    if auto_commit:
        repo.commit()
    logger.debug(f"Invoice {invoice_id} amount_due recomputed: {amount_due}")
    return amount_due


def recompute_payment_unadjusted(repo: BillingRepository, payment_id: int, auto_commit: bool = True) -> Decimal:
    """Set payment.unadjusted_amount = total_amount - sum(adjustments of the payment)."""
    _require_id(payment_id, "payment_id")
    repo.flush()
    payment = repo.get_payment(payment_id, for_update=True)
    if payment is None:
        raise NotFoundError("Payment", payment_id)

    unadjusted = to_decimal(payment.total_amount, "total_amount") - repo.sum_adjustments_for_payment(payment_id)
    if unadjusted < 0:
        raise NegativeAmountError(
            f"Payment {payment_id} has {-unadjusted} more adjusted than its total amount"
        )
    payment.unadjusted_amount = unadjusted
    repo.flush()
    if auto_commit:
        repo.commit()
    logger.debug(f"Payment {payment_id} unadjusted_amount recomputed: {unadjusted}")
    return unadjusted


def recompute_customer_unadjusted(repo: BillingRepository, customer_id: int, auto_commit: bool = True) -> Decimal:
    """Set customer.unadjusted_amount = sum of the customer's payments' unadjusted amounts."""
    _require_id(customer_id, "customer_id")
    repo.flush()
    customer = repo.get_customer(customer_id, for_update=True)
    if customer is None:
        raise NotFoundError("Customer", customer_id)

    unadjusted = repo.sum_unadjusted_for_customer(customer_id)
    customer.unadjusted_amount = unadjusted
    repo.flush()
    if auto_commit:
        repo.commit()
    logger.debug(f"Customer {customer_id} unadjusted_amount recomputed: {unadjusted}")
    return unadjusted


def apply_adjustment(
    repo: BillingRepository,
    invoice_id: int,
    payment_id: int,
    adjust_amount,
    user_id: Optional[int] = None,
) -> AdjustmentResult:
    """Adjust part of a payment against an invoice and recompute all balances.

    The adjustment row and the three recomputations commit together or not at all.

    Raises:
        ValidationError: Missing ids, non-positive amount, payment of another customer
        NotFoundError: Invoice or payment does not exist
        NegativeAmountError: Amount exceeds the payment's unadjusted amount or the invoice's amount due
    """
    try:
        _require_id(invoice_id, "invoice_id")
        _require_id(payment_id, "payment_id")
        amount = to_money(adjust_amount, "adjust_amount")
        if amount <= 0:
            raise ValidationError(f"Adjustment amount must be positive: {amount}")

        invoice = repo.get_invoice(invoice_id, for_update=True)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        payment = repo.get_payment(payment_id, for_update=True)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        if payment.customer_id != invoice.customer_id:
            raise ValidationError(
                f"Payment {payment_id} belongs to customer {payment.customer_id}, "
                f"invoice {invoice_id} to customer {invoice.customer_id}"
            )

        available = to_decimal(payment.total_amount, "total_amount") - repo.sum_adjustments_for_payment(payment_id)
        if amount > available:
            raise NegativeAmountError(f"Adjustment {amount} exceeds payment's unadjusted amount {available}")
        outstanding = to_decimal(invoice.total, "total") - repo.sum_adjustments_for_invoice(invoice_id)
        if amount > outstanding:
            raise NegativeAmountError(f"Adjustment {amount} exceeds invoice amount due {outstanding}")

        adjustment = repo.add(
            Adjustment(invoice_id=invoice_id, payment_id=payment_id, adjust_amount=amount, user_id=user_id)
        )
        adjustment_id = adjustment.id
        amount_due = recompute_invoice_due(repo, invoice_id, auto_commit=False)
        payment_unadjusted = recompute_payment_unadjusted(repo, payment_id, auto_commit=False)
        customer_unadjusted = recompute_customer_unadjusted(repo, payment.customer_id, auto_commit=False)
        repo.commit()
    except BillingError as e:
        repo.rollback()
        logger.warning(f"Adjustment of payment {payment_id} against invoice {invoice_id} rejected: {e}")
        AuditLog.log_rejected("create", "adjustment", None, str(e), user_id=user_id)
        raise
    except Exception:
        repo.rollback()
        raise

    logger.info(
        f"Adjusted {amount} of payment {payment_id} against invoice {invoice_id}; "
        f"amount_due={amount_due}, customer_unadjusted={customer_unadjusted}"
    )
    AuditLog.log_action(
        "create", "adjustment", adjustment_id, user_id,
        changes={"invoice_id": invoice_id, "payment_id": payment_id, "adjust_amount": amount},
    )
    return AdjustmentResult(
        adjustment_id=adjustment_id,
        new_amount_due=amount_due,
        new_unadjusted_amount=customer_unadjusted,
        payment_unadjusted_amount=payment_unadjusted,
    )


def delete_adjustment(repo: BillingRepository, payment_id: int, user_id: Optional[int] = None) -> List[int]:
    """Delete every adjustment of a payment. Returns the affected invoice ids.

    Balances are NOT recomputed here: callers run recompute_balances (or the
    individual recompute_* functions) afterwards.
    """
    _require_id(payment_id, "payment_id")
    try:
        rows = repo.delete_adjustments_for_payment(payment_id)
        if not rows:
            raise NotFoundError("Adjustments of payment", payment_id)
        invoice_ids = sorted({row.invoice_id for row in rows})
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    logger.info(f"Deleted {len(rows)} adjustment(s) of payment {payment_id}; invoices {invoice_ids} need recompute")
    AuditLog.log_action("delete", "adjustment", payment_id, user_id, changes={"invoice_ids": invoice_ids})
    return invoice_ids


def recompute_balances(
    repo: BillingRepository,
    invoice_ids: Iterable[int] = (),
    payment_ids: Iterable[int] = (),
    customer_ids: Iterable[int] = (),
) -> dict:
    """Reconcile a set of invoices, payments and customers in one transaction.

    Payments are recomputed before customers since a customer's balance sums them.
    """
    result = {"invoices": {}, "payments": {}, "customers": {}}
    try:
        for invoice_id in invoice_ids:
            result["invoices"][invoice_id] = recompute_invoice_due(repo, invoice_id, auto_commit=False)
        for payment_id in payment_ids:
            result["payments"][payment_id] = recompute_payment_unadjusted(repo, payment_id, auto_commit=False)
        for customer_id in customer_ids:
            result["customers"][customer_id] = recompute_customer_unadjusted(repo, customer_id, auto_commit=False)
        repo.commit()
    except Exception:
        repo.rollback()
        raise
    return result
