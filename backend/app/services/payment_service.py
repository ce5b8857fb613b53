"""Payments received from customers."""
import logging
from typing import Optional

from app.core.audit import AuditLog
from app.core.exceptions import NotFoundError, ValidationError
from app.db.repository import BillingRepository
from app.models.payment import Payment
from app.services.ledger_service import recompute_customer_unadjusted, recompute_payment_unadjusted
from app.services.tax_calculator import to_money

logger = logging.getLogger(__name__)


def save_payment(repo: BillingRepository, data, payment_id: Optional[int] = None, user_id: Optional[int] = None) -> Payment:
    """Create a payment, or update the one with ``payment_id``.

    unadjusted_amount is never taken from the caller: a new payment is fully
    unadjusted, an updated one is recomputed against its adjustments.
    """
    total = to_money(data.total_amount, "total_amount")
    if total <= 0:
        raise ValidationError(f"Payment amount must be positive: {total}")
    if repo.get_customer(data.customer_id) is None:
        raise NotFoundError("Customer", data.customer_id)

    try:
        if payment_id:
            payment = repo.get_payment(payment_id, for_update=True)
            if payment is None:
                raise NotFoundError("Payment", payment_id)
            previous_customer = payment.customer_id
            if previous_customer != data.customer_id and repo.list_adjustments_for_payment(payment_id):
                raise ValidationError(
                    f"Payment {payment_id} has adjustments; delete them before moving it to another customer"
                )
            payment.customer_id = data.customer_id
            payment.pay_date = data.pay_date
            payment.total_amount = total
            payment.reference = data.reference
            payment.remarks = data.remarks
            recompute_payment_unadjusted(repo, payment_id, auto_commit=False)
            if previous_customer != data.customer_id:
                recompute_customer_unadjusted(repo, previous_customer, auto_commit=False)
            action = "update"
        else:
            payment = repo.add(Payment(
                customer_id=data.customer_id,
                pay_date=data.pay_date,
                total_amount=total,
                unadjusted_amount=total,
                reference=data.reference,
                remarks=data.remarks,
            ))
            action = "create"
        recompute_customer_unadjusted(repo, data.customer_id, auto_commit=False)
        saved_id = payment.id
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    repo.refresh(payment)
    logger.info(f"Payment {saved_id} {action}d for customer {data.customer_id}: {total}")
    AuditLog.log_action(action, "payment", saved_id, user_id, changes={"customer_id": data.customer_id, "total_amount": total})
    return payment


def get_payment(repo: BillingRepository, payment_id: int) -> Payment:
    payment = repo.get_payment(payment_id)
    if payment is None:
        raise NotFoundError("Payment", payment_id)
    return payment
