from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from models.processed_order import ProcessedOrderLine
from models.product import IncomingOrder, Product
from models.transaction import StockTransaction
from services import order_cascade, stock_ledger
from services.exceptions import InvalidArgumentError
from services.order_cascade import (
    KIND_FULFILLMENT, handle_fulfillment, handle_order_created, order_ref_of, parse_line_items,
)


def stock_of(db, product_id):
    db.expire_all()
    return Decimal(db.get(Product, product_id).current_stock)


def rows_for(db, product_id):
    return db.query(StockTransaction).filter(StockTransaction.product_id == product_id).all()


@pytest.fixture()
def cartridge_setup(make_product, make_bom):
    make_product("OILS_1", stock=5000, skus={"SA_CA": "SA_CA_00001", "SA_1L": "SA_1L_00001"})
    make_product("RAW_MATERIALS_1", stock=100, unit="units", category="RAW_MATERIALS", code="RM_BOTTLE_400")
    make_bom("SA_CA", ("RM_BOTTLE_400", 2))


def test_fan_out_removes_oil_volume_and_components(db, cartridge_setup):
    items = parse_line_items({"line_items": [{"sku": "SA_CA_00001", "quantity": 3}]})

    report = handle_fulfillment(db, items, "#1001")

    assert stock_of(db, "OILS_1") == Decimal(3800)
    assert stock_of(db, "RAW_MATERIALS_1") == Decimal(94)

    oil_rows = rows_for(db, "OILS_1")
    bottle_rows = rows_for(db, "RAW_MATERIALS_1")
    assert len(oil_rows) == 1 and len(bottle_rows) == 1
    assert Decimal(oil_rows[0].quantity) == Decimal(1200)
    assert Decimal(bottle_rows[0].quantity) == Decimal(6)
    assert {r.shopify_order_id for r in oil_rows + bottle_rows} == {"#1001"}
    assert oil_rows[0].notes.startswith("Shopify Order #1001 - Fulfilled (3x 400")
    assert bottle_rows[0].notes == "Shopify Order #1001 - BOM Component (3x SA_CA)"
    assert len(report.applied) == 1
    assert report.skipped == []


def test_sku_lookup_is_case_insensitive_and_exact(db, cartridge_setup):
    items = parse_line_items({"line_items": [
        {"sku": " sa_ca_00001 ", "quantity": 1},
        {"sku": "SA_CA_0000", "quantity": 1},
    ]})

    report = handle_fulfillment(db, items, "#1002")

    assert stock_of(db, "OILS_1") == Decimal(4600)
    assert [s["reason"] for s in report.skipped] == ["sku_not_found"]


def test_unresolvable_line_does_not_block_the_rest(db, cartridge_setup):
    items = parse_line_items({"line_items": [
        {"sku": "UNKNOWN-SKU", "quantity": 1},
        {"sku": "SA_1L_00001", "quantity": 2},
    ]})

    report = handle_fulfillment(db, items, "#1003")

    assert stock_of(db, "OILS_1") == Decimal(3000)
    assert len(rows_for(db, "OILS_1")) == 1
    assert report.skipped == [{"line": 0, "sku": "UNKNOWN-SKU", "reason": "sku_not_found"}]
    assert report.applied[0]["line"] == 1


def test_missing_component_is_skipped(db, make_product, make_bom):
    make_product("OILS_1", stock=1000, skus={"SA_CA": "SA_CA_00001"})
    make_bom("SA_CA", ("RM_DOES_NOT_EXIST", 1))

    report = handle_fulfillment(db, parse_line_items({"line_items": [{"sku": "SA_CA_00001", "quantity": 1}]}), "#1004")

    assert stock_of(db, "OILS_1") == Decimal(600)
    assert report.skipped[0]["reason"] == "component_not_found"
    assert report.skipped[0]["component"] == "RM_DOES_NOT_EXIST"


def test_shortfall_is_clamped_to_zero(db, cartridge_setup):
    items = parse_line_items({"line_items": [{"sku": "SA_CA_00001", "quantity": 60}]})

    report = handle_fulfillment(db, items, "#1005")

    # 60 x 400 mL requested from 5000 mL, 120 bottles from 100
    assert stock_of(db, "OILS_1") == 0
    assert stock_of(db, "RAW_MATERIALS_1") == 0
    oil_row = rows_for(db, "OILS_1")[0]
    assert Decimal(oil_row.quantity) == Decimal(5000)
    assert "[clamped: requested" in oil_row.notes
    assert all(m["clamped"] for m in report.applied[0]["movements"])


def test_nothing_recorded_when_already_empty(db, make_product):
    make_product("OILS_1", stock=0, skus={"SA_HF": "SA_HF_00001"})

    report = handle_fulfillment(db, parse_line_items({"line_items": [{"sku": "SA_HF_00001", "quantity": 1}]}), "#1006")

    assert rows_for(db, "OILS_1") == []
    assert report.applied[0]["movements"] == []


def test_redelivery_is_ignored(db, cartridge_setup):
    payload = {"name": "#1007", "line_items": [{"sku": "SA_CA_00001", "quantity": 1}]}

    handle_fulfillment(db, parse_line_items(payload), order_ref_of(payload))
    second = handle_fulfillment(db, parse_line_items(payload), order_ref_of(payload))

    assert stock_of(db, "OILS_1") == Decimal(4600)
    assert len(rows_for(db, "OILS_1")) == 1
    assert second.applied == []
    assert second.skipped[0]["reason"] == "duplicate"
    assert db.query(ProcessedOrderLine).count() == 1


def test_unresolved_line_can_apply_on_redelivery(db, make_product):
    payload = {"name": "#1008", "line_items": [{"sku": "SA_RM_00009", "quantity": 4}]}
    handle_fulfillment(db, parse_line_items(payload), "#1008")

    make_product("RAW_MATERIALS_9", stock=10, unit="units", category="RAW_MATERIALS", skus={"SA_RM": "SA_RM_00009"})
    report = handle_fulfillment(db, parse_line_items(payload), "#1008")

    assert stock_of(db, "RAW_MATERIALS_9") == Decimal(6)
    assert len(report.applied) == 1


@pytest.mark.parametrize("payload", [None, [], {"line_items": None}, {"line_items": "x"}, {}])
def test_malformed_event_rejected(payload):
    with pytest.raises(InvalidArgumentError):
        parse_line_items(payload)


def test_unusable_lines_are_dropped():
    items = parse_line_items({"line_items": [
        {"sku": "", "quantity": 1},
        {"sku": "SA_CA_1", "quantity": 0},
        {"sku": "SA_CA_2", "quantity": "many"},
        "not-an-object",
        {"sku": "sa_ca_3", "quantity": "2"},
    ]})
    assert [(i.index, i.sku, i.quantity) for i in items] == [(4, "SA_CA_3", Decimal(2))]


def test_order_reference_falls_back_to_id():
    assert order_ref_of({"name": "#1", "id": 99}) == "#1"
    assert order_ref_of({"id": 99}) == "99"
    assert order_ref_of({}) is None


def test_order_created_queues_incoming_orders(db, cartridge_setup):
    items = parse_line_items({"line_items": [
        {"sku": "SA_CA_00001", "quantity": 2},
        {"sku": "NOPE", "quantity": 1},
    ]})

    report = handle_order_created(db, items, "#2001")

    assert stock_of(db, "OILS_1") == Decimal(5000)
    assert rows_for(db, "OILS_1") == []
    queue = db.query(IncomingOrder).filter(IncomingOrder.product_id == "OILS_1").all()
    assert len(queue) == 1
    assert queue[0].order_number == "#2001"
    assert Decimal(queue[0].quantity) == Decimal(2)
    assert report.skipped[0]["reason"] == "sku_not_found"

    # Same order delivered again adds nothing
    handle_order_created(db, items, "#2001")
    assert db.query(IncomingOrder).count() == 1


def test_line_quantities_fit_the_stock_columns():
    items = parse_line_items({"line_items": [
        {"sku": "SA_CA_1", "quantity": "0.0004"},
        {"sku": "SA_CA_2", "quantity": "0.0006"},
        {"sku": "SA_CA_3", "quantity": 1e15},
    ]})
    assert [(i.sku, i.quantity) for i in items] == [("SA_CA_2", Decimal("0.001"))]


def test_rows_locked_in_identifier_order(db, cartridge_setup, make_product, make_bom, monkeypatch):
    make_product("MACHINES_SPARES_1", stock=50, unit="units", category="MACHINES_SPARES", code="SP_CAP")
    make_bom("SA_CA", ("SP_CAP", 1))
    locked = []
    original = stock_ledger.lock_product

    def recording_lock(db, product_id):
        locked.append(product_id)
        return original(db, product_id)

    monkeypatch.setattr(stock_ledger, "lock_product", recording_lock)

    report = handle_fulfillment(db, parse_line_items({"line_items": [{"sku": "SA_CA_00001", "quantity": 1}]}), "#1010")

    assert locked == ["MACHINES_SPARES_1", "OILS_1", "RAW_MATERIALS_1"]
    # Movements still follow the BOM: product first, then components
    assert [m["productId"] for m in report.applied[0]["movements"]] == ["OILS_1", "RAW_MATERIALS_1", "MACHINES_SPARES_1"]
    assert stock_of(db, "MACHINES_SPARES_1") == Decimal(49)


def test_constraint_failure_is_an_error_not_a_duplicate(db, cartridge_setup, monkeypatch):
    def failing_line(db, item, order_ref, report):
        raise IntegrityError("UPDATE products", {}, Exception("CHECK constraint failed: current_stock >= 0"))

    monkeypatch.setattr(order_cascade, "_fulfil_line", failing_line)

    report = handle_fulfillment(db, parse_line_items({"line_items": [{"sku": "SA_CA_00001", "quantity": 1}]}), "#1011")

    assert report.skipped == [{"line": 0, "sku": "SA_CA_00001", "reason": "error"}]
    assert db.query(ProcessedOrderLine).count() == 0


def test_line_recorded_by_concurrent_delivery_is_a_duplicate(db, cartridge_setup, monkeypatch):
    def raced_line(db, item, order_ref, report):
        # The other delivery commits the same line first
        db.add(ProcessedOrderLine(order_ref=order_ref, topic=KIND_FULFILLMENT, line_index=item.index, sku=item.sku))
        db.commit()
        raise IntegrityError("INSERT INTO processed_order_lines", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(order_cascade, "_fulfil_line", raced_line)

    report = handle_fulfillment(db, parse_line_items({"line_items": [{"sku": "SA_CA_00001", "quantity": 1}]}), "#1012")

    assert [s["reason"] for s in report.skipped] == ["duplicate"]
    assert stock_of(db, "OILS_1") == Decimal(5000)
