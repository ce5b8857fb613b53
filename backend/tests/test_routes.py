from decimal import Decimal


def D(value) -> Decimal:
    return Decimal(str(value))


def _create_invoice(client, seed, customer_id=None, total="1180", **extra):
    payload = {
        "company_id": seed.company_id,
        "customer_id": customer_id or seed.local_customer_id,
        "invoice_no": "INV-100",
        "invoice_date": "2024-04-01",
        "total": total,
    }
    payload.update(extra)
    response = client.post("/invoices", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_invoice_tax_and_adjustment_flow(client, seed):
    invoice = _create_invoice(client, seed)
    assert D(invoice["amount_due"]) == Decimal("1180")
    assert invoice["payment_status"] == "not_paid"

    line = client.post(f"/invoices/{invoice['id']}/items", json={"item_id": seed.almirah_id, "quantity": "1"})
    assert line.status_code == 200, line.text
    assert D(line.json()["line_total"]) == Decimal("1180")

    saved = client.post(f"/invoices/{invoice['id']}/tax")
    assert saved.json()["serials"] == [1]
    rows = client.get(f"/invoices/{invoice['id']}/tax").json()
    assert len(rows) == 1
    assert D(rows[0]["percentage"]) == Decimal("9")
    assert D(rows[0]["cgst"]) == Decimal("90")

    payment = client.post("/payments", json={"customer_id": seed.local_customer_id, "total_amount": "2000"}).json()
    assert D(payment["unadjusted_amount"]) == Decimal("2000")

    adjusted = client.post(
        "/payments/adjustments",
        json={"invoice_id": invoice["id"], "payment_id": payment["id"], "adjust_amount": "500"},
    )
    assert adjusted.status_code == 200, adjusted.text
    body = adjusted.json()
    assert D(body["new_amount_due"]) == Decimal("680")
    assert D(body["new_unadjusted_amount"]) == Decimal("1500")
    assert body["invoice_status"] == "partially_paid"

    deleted = client.delete(f"/payments/{payment['id']}/adjustments")
    assert deleted.status_code == 200, deleted.text
    body = deleted.json()
    assert body["invoice_ids"] == [invoice["id"]]
    assert D(body["amounts_due"][str(invoice["id"])]) == Decimal("1180")
    assert D(body["customer_unadjusted_amount"]) == Decimal("2000")

    refreshed = client.get(f"/invoices/{invoice['id']}").json()
    assert refreshed["payment_status"] == "not_paid"
    balance = client.get(f"/payments/customers/{seed.local_customer_id}/unadjusted").json()
    assert D(balance["unadjusted_amount"]) == Decimal("2000")


def test_tax_preview(client, seed):
    response = client.post(
        "/invoices/tax-preview",
        json={
            "item_id": seed.rice_id,
            "company_id": seed.company_id,
            "customer_id": seed.remote_customer_id,
            "quantity": "3",
        },
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert D(body["igst"]) == Decimal("30")
    assert D(body["line_total"]) == Decimal("630")


def test_invoice_numbering_routes(client, seed):
    setting = client.put(f"/invoices/settings/{seed.company_id}", json={"prefix": "GST/", "next_no": 7})
    assert setting.status_code == 200, setting.text

    invoice = _create_invoice(client, seed, invoice_no=None)
    assert invoice["invoice_no"] == "GST/7"
    next_no = client.get(f"/invoices/settings/{seed.company_id}/next-number").json()
    assert next_no["invoice_no"] == "GST/8"


def test_domain_errors_map_to_http_status(client, seed):
    assert client.get("/invoices/999").status_code == 404
    assert client.post("/invoices/999/items", json={"item_id": seed.almirah_id, "quantity": "1"}).status_code == 404
    assert client.delete("/payments/999/adjustments").status_code == 404

    invoice = _create_invoice(client, seed, customer_id=seed.unknown_customer_id)
    missing = client.post(f"/invoices/{invoice['id']}/items", json={"item_id": seed.almirah_id, "quantity": "1"})
    assert missing.status_code == 400
    assert "Place of supply" in missing.json()["detail"]

    payment = client.post("/payments", json={"customer_id": seed.unknown_customer_id, "total_amount": "100"}).json()
    over = client.post(
        "/payments/adjustments",
        json={"invoice_id": invoice["id"], "payment_id": payment["id"], "adjust_amount": "500"},
    )
    assert over.status_code == 400


def test_recompute_routes_repair_balances(client, seed):
    invoice = _create_invoice(client, seed)
    payment = client.post("/payments", json={"customer_id": seed.local_customer_id, "total_amount": "300"}).json()
    client.post(
        "/payments/adjustments",
        json={"invoice_id": invoice["id"], "payment_id": payment["id"], "adjust_amount": "300"},
    )

    due = client.post(f"/invoices/{invoice['id']}/recompute-due").json()
    assert D(due["amount_due"]) == Decimal("880")
    balance = client.put(f"/payments/customers/{seed.local_customer_id}/unadjusted").json()
    assert D(balance["unadjusted_amount"]) == 0
