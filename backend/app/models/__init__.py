from app.models.company import Company
from app.models.customer import Customer
from app.models.item import Item
from app.models.invoice import Invoice, InvoiceItem, InvoiceTax, InvoiceSetting
from app.models.payment import Payment, Adjustment

__all__ = [
    "Company", "Customer", "Item",
    "Invoice", "InvoiceItem", "InvoiceTax", "InvoiceSetting",
    "Payment", "Adjustment",
]
