"""Invoice header, line items, tax rows and numbering.

Line taxes come from tax_calculator, invoice tax rows from tax_aggregator;
this module only resolves rows through the repository and persists results.
"""
import logging
from typing import List, Optional

from app.core.audit import AuditLog
from app.core.exceptions import NegativeAmountError, NotFoundError, ValidationError
from app.db.repository import BillingRepository
from app.models.invoice import Invoice, InvoiceItem, InvoiceTax, InvoiceSetting
from app.services.ledger_service import recompute_invoice_due
from app.services.tax_aggregator import aggregate_invoice_tax
from app.services.tax_calculator import LineTax, compute_line_tax, to_decimal, to_money

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "company_id", "customer_id", "invoice_no", "invoice_date", "due_date",
    "ship_state_id", "sub_total", "cgst", "sgst", "igst", "total",
)


def _get_invoice(repo: BillingRepository, invoice_id: int, for_update: bool = False) -> Invoice:
    if not invoice_id:
        raise ValidationError("invoice_id is required")
    invoice = repo.get_invoice(invoice_id, for_update=for_update)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def resolve_locations(repo: BillingRepository, company_id: int, customer_id: int, ship_state_id: Optional[int] = None):
    """Return (seller_state_id, place_of_supply_id).

    The invoice's ship-to state wins over the customer's place of supply.
    Either value may be None; the calculator rejects that.
    """
    company = repo.get_company(company_id)
    if company is None:
        raise NotFoundError("Company", company_id)
    customer = repo.get_customer(customer_id)
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    if customer.company_id != company.id:
        raise ValidationError(f"Customer {customer_id} does not belong to company {company_id}")
    place_of_supply = ship_state_id if ship_state_id is not None else customer.place_of_supply_state_id
    return company.state_id, place_of_supply


def _consume_invoice_number(repo: BillingRepository, company_id: int) -> str:
    setting = repo.get_invoice_setting(company_id, for_update=True)
    if setting is None or setting.is_manual:
        raise ValidationError("invoice_no is required")
    invoice_no = f"{setting.prefix}{setting.next_no}"
    setting.next_no += 1
    return invoice_no


def save_invoice(repo: BillingRepository, data, user_id: Optional[int] = None) -> Invoice:
    """Create an invoice, or update it when ``data.id`` is set.

    A new invoice starts with amount_due == total. Updating an invoice drops
    its line items and tax rows (the caller adds them again) and recomputes
    amount_due against the existing adjustments.
    """
    if not data.invoice_date:
        raise ValidationError("invoice_date is required")
    total = to_money(data.total, "total")
    if total < 0:
        raise NegativeAmountError(f"Invoice total cannot be negative: {total}")

    try:
        resolve_locations(repo, data.company_id, data.customer_id)
        values = {field: getattr(data, field) for field in HEADER_FIELDS}
        if not values["invoice_no"]:
            values["invoice_no"] = _consume_invoice_number(repo, data.company_id)

        if data.id:
            invoice = _get_invoice(repo, data.id, for_update=True)
            adjusted = repo.sum_adjustments_for_invoice(invoice.id)
            if total < adjusted:
                raise NegativeAmountError(
                    f"Invoice {invoice.id} already has {adjusted} adjusted; total {total} would leave a negative amount due"
                )
            for field, value in values.items():
                setattr(invoice, field, value)
            repo.delete_invoice_lines(invoice.id)
            recompute_invoice_due(repo, invoice.id, auto_commit=False)
            action = "update"
        else:
            invoice = repo.add(Invoice(amount_due=total, **values))
            action = "create"
        invoice_id = invoice.id
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    repo.refresh(invoice)
    logger.info(f"Invoice {invoice.invoice_no} ({action}d) id={invoice_id} total={total}")
    AuditLog.log_action(action, "invoice", invoice_id, user_id, changes={"invoice_no": invoice.invoice_no, "total": total})
    return invoice


def preview_line_tax(
    repo: BillingRepository,
    item_id: int,
    company_id: int,
    customer_id: int,
    quantity,
    rate=None,
    discount=0,
    ship_state_id: Optional[int] = None,
) -> LineTax:
    """Compute a line's tax without persisting anything."""
    if not item_id:
        raise ValidationError("item_id is required")
    item = repo.get_item(item_id)
    if item is None:
        raise NotFoundError("Item", item_id)
    seller_state, place_of_supply = resolve_locations(repo, company_id, customer_id, ship_state_id)
    return compute_line_tax(item.sell_price, item.tax_rate, quantity, discount, seller_state, place_of_supply, rate=rate)


def add_invoice_item(
    repo: BillingRepository,
    invoice_id: int,
    item_id: int,
    quantity,
    rate=None,
    discount=0,
    user_id: Optional[int] = None,
) -> InvoiceItem:
    """Compute and store one invoice line."""
    invoice = _get_invoice(repo, invoice_id)
    if not item_id:
        raise ValidationError("item_id is required")
    item = repo.get_item(item_id)
    if item is None:
        raise NotFoundError("Item", item_id)

    seller_state, place_of_supply = resolve_locations(repo, invoice.company_id, invoice.customer_id, invoice.ship_state_id)
    tax = compute_line_tax(item.sell_price, item.tax_rate, quantity, discount, seller_state, place_of_supply, rate=rate)

    try:
        line = repo.add(InvoiceItem(
            invoice_id=invoice.id,
            item_id=item.id,
            quantity=to_decimal(quantity, "quantity"),
            rate=to_decimal(rate if rate is not None else item.sell_price, "rate"),
            amount=tax.amount,
            discount=to_decimal(discount or 0, "discount"),
            cgst_percent=tax.cgst_percent,
            sgst_percent=tax.sgst_percent,
            igst_percent=tax.igst_percent,
            tax_total=tax.tax_total,
            line_total=tax.line_total,
        ))
        line_id = line.id
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    repo.refresh(line)
    logger.info(f"Invoice {invoice_id}: added item {item_id} line_total={tax.line_total}")
    AuditLog.log_action("create", "invoice_item", line_id, user_id, changes={"invoice_id": invoice_id, "item_id": item_id})
    return line


def get_invoice_items(repo: BillingRepository, invoice_id: int) -> List[InvoiceItem]:
    _get_invoice(repo, invoice_id)
    return repo.list_invoice_items(invoice_id)


def save_invoice_tax(repo: BillingRepository, invoice_id: int, user_id: Optional[int] = None) -> List[InvoiceTax]:
    """Materialize the invoice's tax rows from its saved line items.

    Serials continue after the highest serial already stored for the invoice.
    Returns an empty list when no line carries tax.
    """
    try:
        # lock the invoice so two callers cannot hand out the same serials
        _get_invoice(repo, invoice_id, for_update=True)
        rows = aggregate_invoice_tax(repo.list_invoice_items(invoice_id), repo.max_tax_serial(invoice_id))
        if not rows:
            repo.rollback()
            logger.info(f"Invoice {invoice_id}: no taxable lines, no tax rows saved")
            return []
        saved = [
            repo.add(InvoiceTax(
                invoice_id=invoice_id,
                serial=row.serial,
                percentage=row.percentage,
                cgst=row.cgst,
                sgst=row.sgst,
                igst=row.igst,
            ))
            for row in rows
        ]
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    serials = [row.serial for row in rows]
    logger.info(f"Invoice {invoice_id}: saved tax rows {serials}")
    AuditLog.log_action("create", "invoice_tax", invoice_id, user_id, changes={"serials": serials})
    return saved


def get_invoice_tax(repo: BillingRepository, invoice_id: int) -> List[InvoiceTax]:
    _get_invoice(repo, invoice_id)
    return repo.list_invoice_taxes(invoice_id)


def save_invoice_setting(
    repo: BillingRepository,
    company_id: int,
    is_manual: bool = False,
    prefix: str = "INV-",
    next_no: int = 1,
) -> InvoiceSetting:
    """Create or update the company's invoice numbering."""
    if repo.get_company(company_id) is None:
        raise NotFoundError("Company", company_id)
    if next_no < 1:
        raise ValidationError(f"next_no must be at least 1: {next_no}")

    setting = repo.get_invoice_setting(company_id, for_update=True)
    if setting is None:
        setting = repo.add(InvoiceSetting(company_id=company_id))
    setting.is_manual = is_manual
    setting.prefix = prefix
    setting.next_no = next_no
    repo.commit()
    repo.refresh(setting)
    return setting


def next_invoice_number(repo: BillingRepository, company_id: int) -> str:
    """Peek at the number the next automatically numbered invoice will get."""
    setting = repo.get_invoice_setting(company_id)
    if setting is None:
        raise NotFoundError("Invoice setting", company_id)
    return f"{setting.prefix}{setting.next_no}"
