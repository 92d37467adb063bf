"""
Pricelists, pricelist items and CSV import.
"""

from io import BytesIO

import pytest


@pytest.fixture
def owner(login_as):
    return login_as("owner@alpha.test")


@pytest.fixture
def pricelist_id(owner):
    resp = owner.post("/pricelists", json={"name": "Spring 2024"})
    assert resp.status_code == 201
    return resp.get_json()["id"]


def _items(client, pricelist_id):
    resp = client.get(f"/pricelists/{pricelist_id}/items")
    assert resp.status_code == 200
    return resp.get_json()


# ---------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------
def test_create_item_defaults_sell_price_to_rrp(owner, pricelist_id):
    resp = owner.post(
        f"/pricelists/{pricelist_id}/items",
        json={"item_name": "Widget", "loose_buy_price": "76", "rrp_ex_gst": "95.5"},
    )
    assert resp.status_code == 201
    item = resp.get_json()[0]
    assert item["sell_price"] == "95.50"
    assert item["pack_size"] is None
    assert item["pack_buy_price"] is None


def test_create_item_requires_pricing_columns(owner, pricelist_id):
    resp = owner.post(f"/pricelists/{pricelist_id}/items", json={"item_name": "Widget"})
    assert resp.status_code == 400
    details = resp.get_json()["details"]
    assert "loose_buy_price is required." in details
    assert "rrp_ex_gst is required." in details


def test_bulk_create_and_search(owner, pricelist_id):
    resp = owner.post(
        f"/pricelists/{pricelist_id}/items",
        json={
            "items": [
                {"item_name": "Hex Bolt", "sku_code": "HB-10", "loose_buy_price": "1", "rrp_ex_gst": "2"},
                {"item_name": "Washer", "sku_code": "WS-02", "loose_buy_price": "0.1", "rrp_ex_gst": "0.3"},
            ]
        },
    )
    assert resp.status_code == 201
    assert len(resp.get_json()) == 2

    found = owner.get("/pricelists/items?q=bolt").get_json()
    assert [i["item_name"] for i in found] == ["Hex Bolt"]
    found = owner.get("/pricelists/items?q=WS-").get_json()
    assert [i["item_name"] for i in found] == ["Washer"]


def test_update_item_cannot_clear_required_price(owner, pricelist_id):
    item = owner.post(
        f"/pricelists/{pricelist_id}/items",
        json={"item_name": "Widget", "loose_buy_price": "76", "rrp_ex_gst": "95"},
    ).get_json()[0]

    resp = owner.patch(f"/pricelists/items/{item['id']}", json={"loose_buy_price": ""})
    assert resp.status_code == 400

    resp = owner.patch(f"/pricelists/items/{item['id']}", json={"pack_size": "60", "pack_buy_price": "70"})
    assert resp.status_code == 200
    assert resp.get_json()["pack_size"] == "60.00"
    assert resp.get_json()["loose_buy_price"] == "76.00"


def test_bulk_sell_price_update(owner, pricelist_id):
    created = owner.post(
        f"/pricelists/{pricelist_id}/items",
        json={
            "items": [
                {"item_name": "A", "loose_buy_price": "1", "rrp_ex_gst": "2"},
                {"item_name": "B", "loose_buy_price": "1", "rrp_ex_gst": "2"},
            ]
        },
    ).get_json()

    updates = [{"id": created[0]["id"], "sell_price": "2.50"}, {"id": created[1]["id"], "sell_price": 3}]
    resp = owner.post("/pricelists/items/sell-prices", json={"updates": updates})
    assert resp.status_code == 200
    assert [i["sell_price"] for i in resp.get_json()] == ["2.50", "3.00"]


def test_delete_pricelist_removes_items(owner, pricelist_id):
    owner.post(
        f"/pricelists/{pricelist_id}/items",
        json={"item_name": "Widget", "loose_buy_price": "76", "rrp_ex_gst": "95"},
    )
    assert owner.delete(f"/pricelists/{pricelist_id}").status_code == 200
    assert owner.get(f"/pricelists/{pricelist_id}").status_code == 404
    assert owner.get("/pricelists/items").get_json() == []


def test_pricelists_are_tenant_scoped(owner, pricelist_id, login_as):
    other = login_as("staff@beta.test")
    assert other.get("/pricelists").get_json() == []
    assert other.get(f"/pricelists/{pricelist_id}").status_code == 404
    assert other.patch(f"/pricelists/{pricelist_id}", json={"name": "Mine"}).status_code == 404
    assert other.delete(f"/pricelists/{pricelist_id}").status_code == 404


# ---------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------
def test_import_rows_with_loose_headers(owner, pricelist_id):
    rows = [
        {
            "ITEM NAME": "Copper Pipe 15mm",
            "  Loose Buy Price ex GST ": "$1,200.50",
            "rrp ex gst": "1500",
            "Pack Size": "",
            "Pack buy price": "",
            "SKU Code": "CP-15",
            "Colour": "ignored",
        }
    ]
    resp = owner.post(f"/pricelists/{pricelist_id}/import", json={"rows": rows})
    assert resp.status_code == 201
    assert resp.get_json() == {"success": True, "items_created": 1}

    item = _items(owner, pricelist_id)[0]
    assert item["item_name"] == "Copper Pipe 15mm"
    assert item["sku_code"] == "CP-15"
    assert item["loose_buy_price"] == "1200.50"
    assert item["rrp_ex_gst"] == "1500.00"
    assert item["sell_price"] == "1500.00"
    assert item["pack_size"] is None
    assert item["pack_buy_price"] is None


def test_import_is_all_or_nothing(owner, pricelist_id):
    rows = [
        {"Item Name": "Good", "Loose buy price ex gst": "10", "RRP ex gst": "12"},
        {"Item Name": "Missing RRP", "Loose buy price ex gst": "10", "RRP ex gst": ""},
        {"Item Name": "Bad number", "Loose buy price ex gst": "abc", "RRP ex gst": "12"},
    ]
    resp = owner.post(f"/pricelists/{pricelist_id}/import", json={"rows": rows})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "CSV validation failed."
    assert "Row 2: RRP ex gst is required" in body["details"]
    assert "Row 3: Invalid Loose buy price ex gst" in body["details"]

    assert _items(owner, pricelist_id) == []


def test_import_rejects_zero_price(owner, pricelist_id):
    rows = [{"Item Name": "Free", "Loose buy price ex gst": "0", "RRP ex gst": "5"}]
    resp = owner.post(f"/pricelists/{pricelist_id}/import", json={"rows": rows})
    assert resp.status_code == 400
    assert resp.get_json()["details"] == ["Row 1: Invalid Loose buy price ex gst"]


def test_import_empty_rows(owner, pricelist_id):
    resp = owner.post(f"/pricelists/{pricelist_id}/import", json={"rows": []})
    assert resp.status_code == 400


def test_import_csv_file_upload(owner, pricelist_id):
    csv_text = (
        "\ufeffItem Name,SKU Code,Pack size,Pack buy price ex gst,Loose buy price ex gst,RRP ex gst,RRP inc gst\n"
        "Widget,W-1,60pcs,$70.00,$76.00,95,104.50\n"
        "Gadget,,,,12,18,\n"
        ",,,,,,\n"
    )
    resp = owner.post(
        f"/pricelists/{pricelist_id}/import",
        data={"file": (BytesIO(csv_text.encode("utf-8")), "items.csv")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    assert resp.get_json()["items_created"] == 2

    items = {i["item_name"]: i for i in _items(owner, pricelist_id)}
    assert items["Widget"]["pack_size"] == "60.00"
    assert items["Widget"]["pack_buy_price"] == "70.00"
    assert items["Widget"]["rrp_inc_gst"] == "104.50"
    assert items["Gadget"]["sku_code"] is None
    assert items["Gadget"]["pack_size"] is None


def test_import_into_other_organization_pricelist(pricelist_id, login_as):
    other = login_as("staff@beta.test")
    rows = [{"Item Name": "X", "Loose buy price ex gst": "1", "RRP ex gst": "2"}]
    assert other.post(f"/pricelists/{pricelist_id}/import", json={"rows": rows}).status_code == 404
