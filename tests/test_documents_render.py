"""
Customer and supplier documents: field separation, PDF output and PO email.
"""

import pytest


@pytest.fixture
def owner(login_as):
    client = login_as("owner@alpha.test")
    resp = client.put(
        "/company-settings",
        json={"company_name": "Alpha Wholesale Pty Ltd", "abn": "12 345 678 901", "email": "hello@alpha.test"},
    )
    assert resp.status_code == 200
    return client


@pytest.fixture
def quote_id(owner):
    customer = owner.post("/customers", json={"company_name": "Acme <Builders> & Sons"}).get_json()
    quote = owner.post("/quotes", json={"customer_id": customer["id"], "notes": "Prices valid 30 days"}).get_json()
    owner.post(
        f"/quotes/{quote['id']}/items/manual",
        json={"item_name": "Labour", "quantity": 10, "sell_price": "18.00", "buy_price": "12.00"},
    )
    return quote["id"]


@pytest.fixture
def po_id(owner):
    supplier = owner.post("/suppliers", json={"company_name": "Pipe Supply Co", "po_email": "orders@pipes.test"}).get_json()
    po = owner.post("/purchase-orders", json={"supplier_id": supplier["id"]}).get_json()
    owner.post(
        f"/purchase-orders/{po['id']}/items/manual",
        json={"item_name": "Copper Pipe", "quantity": 60, "buy_price": "70.00"},
    )
    return po["id"]


def test_quote_document_has_no_buy_side(owner, quote_id):
    resp = owner.get(f"/quotes/{quote_id}/document")
    assert resp.status_code == 200
    doc = resp.get_json()

    assert doc["kind"] == "quote"
    assert doc["number"] == "Q00001"
    assert doc["company"]["company_name"] == "Alpha Wholesale Pty Ltd"
    assert doc["recipient"]["company_name"] == "Acme <Builders> & Sons"
    assert doc["total_amount"] == "180.00"
    assert "total_margin" not in doc
    assert "margin_percentage" not in doc
    assert doc["items"] == [
        {"item_name": "Labour", "quantity": "10.00", "sell_price": "18.00", "line_total": "180.00"}
    ]


def test_purchase_order_document_has_no_sell_side(owner, po_id):
    owner.patch(
        f"/purchase-orders/{po_id}",
        json={"delivery_method": "in_store_delivery", "shipping_address": "1 Dock Rd, Perth"},
    )
    doc = owner.get(f"/purchase-orders/{po_id}/document").get_json()

    assert doc["kind"] == "purchase_order"
    assert doc["number"] == "PO00001"
    assert doc["recipient"]["email"] == "orders@pipes.test"
    assert doc["delivery"] == {"method": "in_store_delivery", "shipping_address": "1 Dock Rd, Perth"}
    assert doc["total_amount"] == "4200.00"
    assert doc["items"] == [
        {"item_name": "Copper Pipe", "quantity": "60.00", "buy_price": "70.00", "line_total": "4200.00"}
    ]
    for item in doc["items"]:
        assert "sell_price" not in item
        assert "margin" not in item


def test_quote_pdf(owner, quote_id):
    resp = owner.get(f"/quotes/{quote_id}/pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    assert "Q00001.pdf" in resp.headers["Content-Disposition"]

    assert owner.get(f"/quotes/{quote_id}").get_json()["pdf_url"].endswith(f"/quotes/{quote_id}/pdf")


def test_purchase_order_email_needs_pdf_first(owner, po_id):
    resp = owner.post(f"/purchase-orders/{po_id}/send-email")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "PDF not generated yet. Please generate the PDF first."

    pdf = owner.get(f"/purchase-orders/{po_id}/pdf")
    assert pdf.status_code == 200
    assert pdf.data.startswith(b"%PDF")

    resp = owner.post(f"/purchase-orders/{po_id}/send-email")
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True}


def test_documents_are_tenant_scoped(quote_id, po_id, login_as):
    beta = login_as("staff@beta.test")
    assert beta.get(f"/quotes/{quote_id}/document").status_code == 404
    assert beta.get(f"/quotes/{quote_id}/pdf").status_code == 404
    assert beta.get(f"/purchase-orders/{po_id}/pdf").status_code == 404


def test_company_settings_round_trip(owner, login_as):
    settings = owner.get("/company-settings").get_json()
    assert settings["abn"] == "12 345 678 901"

    resp = owner.put("/company-settings", json={"phone": "08 9000 0000", "abn": ""})
    assert resp.get_json()["phone"] == "08 9000 0000"
    assert resp.get_json()["abn"] is None
    assert resp.get_json()["company_name"] == "Alpha Wholesale Pty Ltd"

    assert login_as("staff@beta.test").get("/company-settings").get_json() is None
