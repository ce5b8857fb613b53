"""Invoices: header, line items with GST, invoice tax rows and numbering."""
from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_repository
from app.core.exceptions import BusinessError
from app.db.repository import BillingRepository
from app.schemas.invoice import (
    InvoiceSave, InvoiceResponse,
    InvoiceItemCreate, InvoiceItemResponse,
    TaxPreviewRequest, LineTaxResponse,
    InvoiceTaxResponse, SaveInvoiceTaxResponse,
    InvoiceSettingSave, InvoiceSettingResponse, NextInvoiceNumber,
)
from app.services import invoice_service
from app.services.ledger_service import payment_status, recompute_invoice_due

router = APIRouter()


def _invoice_response(invoice) -> InvoiceResponse:
    response = InvoiceResponse.model_validate(invoice)
    response.payment_status = payment_status(invoice.total, invoice.amount_due).value
    return response


@router.post("", response_model=InvoiceResponse)
def save_invoice(data: InvoiceSave, repo: BillingRepository = Depends(get_repository)):
    """Create an invoice, or update it (dropping its lines and tax rows) when id is given."""
    invoice = invoice_service.save_invoice(repo, data, user_id=data.user_id)
    return _invoice_response(invoice)


@router.post("/tax-preview", response_model=LineTaxResponse)
def preview_line_tax(data: TaxPreviewRequest, repo: BillingRepository = Depends(get_repository)):
    """Amount, CGST/SGST/IGST and total for a prospective line. Nothing is saved."""
    return invoice_service.preview_line_tax(
        repo,
        item_id=data.item_id,
        company_id=data.company_id,
        customer_id=data.customer_id,
        quantity=data.quantity,
        rate=data.rate,
        discount=data.discount,
        ship_state_id=data.ship_state_id,
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, repo: BillingRepository = Depends(get_repository)):
    invoice = repo.get_invoice(invoice_id)
    if not invoice:
        raise BusinessError.not_found("Invoice", reason=f"id={invoice_id}")
    return _invoice_response(invoice)


@router.post("/{invoice_id}/items", response_model=InvoiceItemResponse)
def add_invoice_item(invoice_id: int, data: InvoiceItemCreate, repo: BillingRepository = Depends(get_repository)):
    return invoice_service.add_invoice_item(
        repo,
        invoice_id,
        data.item_id,
        data.quantity,
        rate=data.rate,
        discount=data.discount,
        user_id=data.user_id,
    )


@router.get("/{invoice_id}/items", response_model=List[InvoiceItemResponse])
def list_invoice_items(invoice_id: int, repo: BillingRepository = Depends(get_repository)):
    return invoice_service.get_invoice_items(repo, invoice_id)


@router.post("/{invoice_id}/tax", response_model=SaveInvoiceTaxResponse)
def save_invoice_tax(invoice_id: int, repo: BillingRepository = Depends(get_repository)):
    """Build invoice tax rows from the saved line items."""
    rows = invoice_service.save_invoice_tax(repo, invoice_id)
    if not rows:
        return SaveInvoiceTaxResponse(message="No taxable line items; no tax rows saved", serials=[])
    return SaveInvoiceTaxResponse(message="Saved invoice tax", serials=[row.serial for row in rows])


@router.get("/{invoice_id}/tax", response_model=List[InvoiceTaxResponse])
def get_invoice_tax(invoice_id: int, repo: BillingRepository = Depends(get_repository)):
    return invoice_service.get_invoice_tax(repo, invoice_id)


@router.post("/{invoice_id}/recompute-due", response_model=InvoiceResponse)
def recompute_due(invoice_id: int, repo: BillingRepository = Depends(get_repository)):
    """Re-derive amount_due from the adjustments. Safe to repeat."""
    recompute_invoice_due(repo, invoice_id)
    return _invoice_response(repo.get_invoice(invoice_id))


@router.put("/settings/{company_id}", response_model=InvoiceSettingResponse)
def save_invoice_setting(company_id: int, data: InvoiceSettingSave, repo: BillingRepository = Depends(get_repository)):
    return invoice_service.save_invoice_setting(
        repo, company_id, is_manual=data.is_manual, prefix=data.prefix, next_no=data.next_no
    )


@router.get("/settings/{company_id}/next-number", response_model=NextInvoiceNumber)
def next_invoice_number(company_id: int, repo: BillingRepository = Depends(get_repository)):
    return NextInvoiceNumber(company_id=company_id, invoice_no=invoice_service.next_invoice_number(repo, company_id))
