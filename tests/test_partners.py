"""
Customers, suppliers and shipping addresses.
"""

import pytest


@pytest.fixture
def staff(login_as):
    return login_as("staff@alpha.test")


def test_customer_crud(staff):
    resp = staff.post(
        "/customers",
        json={"company_name": "  Acme Builders ", "contact_name": "", "email": "Buyer@Acme.test"},
    )
    assert resp.status_code == 201
    customer = resp.get_json()
    assert customer["company_name"] == "Acme Builders"
    assert customer["contact_name"] is None
    assert customer["email"] == "buyer@acme.test"

    resp = staff.patch(f"/customers/{customer['id']}", json={"phone": "0400 000 000"})
    assert resp.get_json()["phone"] == "0400 000 000"
    assert resp.get_json()["company_name"] == "Acme Builders"

    assert staff.patch(f"/customers/{customer['id']}", json={"company_name": ""}).status_code == 400

    assert staff.delete(f"/customers/{customer['id']}").status_code == 200
    assert staff.get(f"/customers/{customer['id']}").status_code == 404


def test_customer_validation(staff):
    resp = staff.post("/customers", json={"email": "not-an-email"})
    assert resp.status_code == 400
    details = resp.get_json()["details"]
    assert "company_name is required." in details
    assert "email must be a valid email address." in details


def test_supplier_requires_po_email(staff):
    assert staff.post("/suppliers", json={"company_name": "Pipe Supply Co"}).status_code == 400

    resp = staff.post("/suppliers", json={"company_name": "Pipe Supply Co", "po_email": "orders@pipes.test"})
    assert resp.status_code == 201
    supplier = resp.get_json()

    assert staff.patch(f"/suppliers/{supplier['id']}", json={"po_email": ""}).status_code == 400
    listed = staff.get("/suppliers").get_json()
    assert [s["company_name"] for s in listed] == ["Pipe Supply Co"]


def test_shipping_address_defaults_country(staff):
    resp = staff.post("/shipping-addresses", json={"street_address": "1 Dock Rd", "state": "WA", "postcode": "6000"})
    assert resp.status_code == 201
    address = resp.get_json()
    assert address["country"] == "Australia"

    resp = staff.patch(f"/shipping-addresses/{address['id']}", json={"attention_to": "Receiving"})
    assert resp.get_json()["attention_to"] == "Receiving"
    assert staff.delete(f"/shipping-addresses/{address['id']}").status_code == 200
    assert staff.get("/shipping-addresses").get_json() == []


def test_partners_are_tenant_scoped(staff, login_as):
    customer = staff.post("/customers", json={"company_name": "Acme"}).get_json()
    supplier = staff.post("/suppliers", json={"company_name": "Pipes", "po_email": "po@pipes.test"}).get_json()

    beta = login_as("staff@beta.test")
    assert beta.get("/customers").get_json() == []
    assert beta.get(f"/customers/{customer['id']}").status_code == 404
    assert beta.patch(f"/suppliers/{supplier['id']}", json={"notes": "mine"}).status_code == 404
    assert beta.delete(f"/suppliers/{supplier['id']}").status_code == 404
