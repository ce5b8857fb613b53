from decimal import Decimal

import pytest

from app.core.exceptions import MissingLocationError, NegativeAmountError, NotFoundError, ValidationError
from app.models import InvoiceItem, InvoiceTax, Item
from app.services.invoice_service import (
    add_invoice_item,
    get_invoice_items,
    get_invoice_tax,
    next_invoice_number,
    preview_line_tax,
    save_invoice_setting,
    save_invoice_tax,
)
from app.services.ledger_service import apply_adjustment

MAHARASHTRA = 27
KARNATAKA = 29


def test_intra_state_line_is_split_into_cgst_and_sgst(repo, seed, make_invoice):
    invoice = make_invoice()
    line = add_invoice_item(repo, invoice.id, seed.almirah_id, 1)

    assert line.amount == Decimal("1000")
    assert line.cgst_percent == Decimal("9")
    assert line.sgst_percent == Decimal("9")
    assert line.igst_percent == 0
    assert line.tax_total == Decimal("180")
    assert line.line_total == Decimal("1180")


def test_ship_to_state_overrides_place_of_supply(repo, seed, make_invoice):
    invoice = make_invoice(ship_state_id=KARNATAKA)
    line = add_invoice_item(repo, invoice.id, seed.almirah_id, 1)

    assert line.igst_percent == Decimal("18")
    assert line.cgst_percent == 0
    assert line.tax_total == Decimal("180")


def test_rate_override_and_discount_are_stored(repo, seed, make_invoice):
    invoice = make_invoice(customer_id=seed.remote_customer_id)
    line = add_invoice_item(repo, invoice.id, seed.almirah_id, 2, rate="900", discount="100")

    assert line.rate == Decimal("900")
    assert line.amount == Decimal("1800")
    assert line.discount == Decimal("100")
    assert line.tax_total == Decimal("306")
    assert line.line_total == Decimal("2006")


def test_discount_larger_than_amount_stores_nothing(repo, db, seed, make_invoice):
    invoice = make_invoice()
    with pytest.raises(NegativeAmountError):
        add_invoice_item(repo, invoice.id, seed.rice_id, 1, discount="250")
    assert db.query(InvoiceItem).count() == 0


def test_company_without_state_is_rejected(repo, seed, make_invoice):
    invoice = make_invoice(company_id=seed.stateless_company_id, customer_id=seed.stateless_customer_id)
    with pytest.raises(MissingLocationError):
        add_invoice_item(repo, invoice.id, seed.almirah_id, 1)


def test_customer_without_place_of_supply_is_rejected(repo, seed, make_invoice):
    invoice = make_invoice(customer_id=seed.unknown_customer_id)
    with pytest.raises(MissingLocationError):
        add_invoice_item(repo, invoice.id, seed.almirah_id, 1)


def test_customer_of_another_company_is_rejected(seed, make_invoice):
    with pytest.raises(ValidationError):
        make_invoice(customer_id=seed.stateless_customer_id)


def test_negative_total_is_rejected(make_invoice):
    with pytest.raises(NegativeAmountError):
        make_invoice(total="-1")


def test_unknown_invoice_or_item(repo, seed, make_invoice):
    with pytest.raises(NotFoundError):
        get_invoice_items(repo, 999)
    invoice = make_invoice()
    with pytest.raises(NotFoundError):
        add_invoice_item(repo, invoice.id, 999, 1)


def test_preview_does_not_persist(repo, db, seed):
    tax = preview_line_tax(repo, seed.rice_id, seed.company_id, seed.remote_customer_id, 3)

    assert tax.igst == Decimal("30")
    assert tax.line_total == Decimal("630")
    assert db.query(InvoiceItem).count() == 0


def test_preview_with_ship_state(repo, seed):
    tax = preview_line_tax(
        repo, seed.rice_id, seed.company_id, seed.remote_customer_id, 3, ship_state_id=MAHARASHTRA
    )
    assert tax.cgst == Decimal("15")
    assert tax.sgst == Decimal("15")
    assert tax.igst == 0


def test_save_invoice_tax_groups_by_percentage(repo, seed, make_invoice):
    invoice = make_invoice(total="1600")
    add_invoice_item(repo, invoice.id, seed.almirah_id, 1)
    add_invoice_item(repo, invoice.id, seed.rice_id, 2)
    add_invoice_item(repo, invoice.id, seed.milk_id, 4)

    rows = save_invoice_tax(repo, invoice.id)

    assert [row.serial for row in rows] == [1, 2]
    assert [row.percentage for row in rows] == [Decimal("2.5"), Decimal("9")]
    assert rows[0].cgst == Decimal("10")
    assert rows[0].sgst == Decimal("10")
    assert rows[1].cgst == Decimal("90")
    assert rows[1].igst == 0


def test_save_invoice_tax_again_continues_serials(repo, seed, make_invoice):
    invoice = make_invoice()
    add_invoice_item(repo, invoice.id, seed.almirah_id, 1)
    add_invoice_item(repo, invoice.id, seed.rice_id, 2)
    save_invoice_tax(repo, invoice.id)

    rows = save_invoice_tax(repo, invoice.id)

    assert [row.serial for row in rows] == [3, 4]
    assert [row.serial for row in get_invoice_tax(repo, invoice.id)] == [1, 2, 3, 4]


def test_zero_rated_invoice_has_no_tax_rows(repo, db, seed, make_invoice):
    invoice = make_invoice(total="100")
    add_invoice_item(repo, invoice.id, seed.milk_id, 2)

    assert save_invoice_tax(repo, invoice.id) == []
    assert db.query(InvoiceTax).count() == 0


def test_update_drops_lines_and_keeps_adjustments(repo, seed, make_invoice, make_payment):
    invoice = make_invoice(total="1180")
    add_invoice_item(repo, invoice.id, seed.almirah_id, 1)
    save_invoice_tax(repo, invoice.id)
    payment = make_payment(total_amount="2000")
    apply_adjustment(repo, invoice.id, payment.id, "180")

    updated = make_invoice(id=invoice.id, total="1500", invoice_no="INV-1A")

    assert updated.id == invoice.id
    assert updated.invoice_no == "INV-1A"
    assert updated.amount_due == Decimal("1320")
    assert get_invoice_items(repo, invoice.id) == []
    assert get_invoice_tax(repo, invoice.id) == []


def test_update_of_unknown_invoice(make_invoice):
    with pytest.raises(NotFoundError):
        make_invoice(id=999)


def test_automatic_numbering(repo, seed, make_invoice):
    save_invoice_setting(repo, seed.company_id, is_manual=False, prefix="GST/", next_no=7)

    first = make_invoice(invoice_no=None)
    second = make_invoice(invoice_no=None)

    assert first.invoice_no == "GST/7"
    assert second.invoice_no == "GST/8"
    assert next_invoice_number(repo, seed.company_id) == "GST/9"


def test_manual_numbering_requires_invoice_no(repo, seed, make_invoice):
    with pytest.raises(ValidationError):
        make_invoice(invoice_no=None)

    save_invoice_setting(repo, seed.company_id, is_manual=True)
    with pytest.raises(ValidationError):
        make_invoice(invoice_no=None)
    assert make_invoice(invoice_no="M-1").invoice_no == "M-1"


def test_invoice_setting_validation(repo, seed):
    with pytest.raises(NotFoundError):
        save_invoice_setting(repo, 999)
    with pytest.raises(ValidationError):
        save_invoice_setting(repo, seed.company_id, next_no=0)
    with pytest.raises(NotFoundError):
        next_invoice_number(repo, seed.company_id)


def test_quarter_percent_rate_keeps_its_half_rates(repo, db, seed, make_invoice):
    diamonds = Item(company_id=seed.company_id, name="Rough Diamond", sell_price=Decimal("10000"), tax_rate=Decimal("0.25"))
    db.add(diamonds)
    db.commit()
    invoice = make_invoice(total="10025")

    line = add_invoice_item(repo, invoice.id, diamonds.id, 1)
    repo.refresh(line)
    assert line.cgst_percent == Decimal("0.125")
    assert line.sgst_percent == Decimal("0.125")
    assert line.cgst_percent + line.sgst_percent + line.igst_percent == Decimal("0.25")
    assert line.tax_total == Decimal("25")

    rows = save_invoice_tax(repo, invoice.id)
    assert len(rows) == 1
    assert rows[0].percentage == Decimal("0.125")
    assert rows[0].cgst == Decimal("12.50")
    assert rows[0].sgst == Decimal("12.50")
    assert rows[0].cgst + rows[0].sgst == line.tax_total


def test_total_below_adjusted_amount_is_rejected(repo, seed, make_invoice, make_payment):
    invoice = make_invoice(total="1180")
    add_invoice_item(repo, invoice.id, seed.almirah_id, 1)
    payment = make_payment(total_amount="2000")
    apply_adjustment(repo, invoice.id, payment.id, "1180")

    with pytest.raises(NegativeAmountError):
        make_invoice(id=invoice.id, total="1000")

    repo.refresh(invoice)
    assert invoice.total == Decimal("1180")
    assert invoice.amount_due == 0
    assert len(get_invoice_items(repo, invoice.id)) == 1


def test_total_with_fraction_of_a_paisa_is_rejected(make_invoice):
    with pytest.raises(ValidationError):
        make_invoice(total="1180.005")
