import pytest
from django.utils import timezone

from stock.models import Order, Product, Transaction
from stock.services import (
    OrderService, BusinessRuleError, InsufficientStockError, ValidationError, NotFoundError,
)
from stock.tests.conftest import line


def create_order(order_type, partner, items, **kwargs):
    result = OrderService.create(type=order_type, partner_id=partner.id, items=items, **kwargs)
    return Order.objects.get(id=result["id"])


@pytest.mark.django_db
class TestOrderLifecycle:

    def test_new_order_is_draft_with_generated_number(self, product, supplier):
        order = create_order("po", supplier, [line(product, 2)])

        today = timezone.localdate().strftime("%Y%m%d")
        assert order.status == Order.Status.DRAFT
        assert order.type == "PO"
        assert order.order_number == f"PO-{today}-0001"

        second = create_order("PO", supplier, [line(product, 1)])
        assert second.order_number == f"PO-{today}-0002"

    def test_manual_order_number_must_be_unique(self, product, supplier):
        create_order("PO", supplier, [line(product, 1)], order_number="PO-MANUAL")
        with pytest.raises(ValidationError):
            create_order("PO", supplier, [line(product, 1)], order_number="PO-MANUAL")

    def test_partner_is_required(self, product):
        with pytest.raises(ValidationError):
            OrderService.create(type="PO", partner_id=None, items=[line(product, 1)])
        with pytest.raises(NotFoundError):
            OrderService.create(type="PO", partner_id=9999, items=[line(product, 1)])

    def test_draft_can_be_edited_until_confirmed(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 2)])
        OrderService.update(order.id, items=[line(product, 4, "1000")], notes="urgent")

        order.refresh_from_db()
        assert order.items[0]["quantity"] == 4
        assert str(order.total_value) == "4000.00"

        OrderService.confirm(order.id)
        with pytest.raises(BusinessRuleError):
            OrderService.update(order.id, notes="too late")

    def test_cancel_records_reason_and_is_terminal(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 2)])
        OrderService.cancel(order.id, reason="supplier out of business")

        order.refresh_from_db()
        assert order.status == Order.Status.CANCELLED
        assert order.cancel_reason == "supplier out of business"

        with pytest.raises(BusinessRuleError):
            OrderService.confirm(order.id)

    def test_draft_cannot_be_fulfilled(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 2)])
        with pytest.raises(BusinessRuleError):
            OrderService.fulfill(order.id)
        assert Transaction.objects.count() == 0

    def test_reopen_only_from_partially_fulfilled(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 2)])
        OrderService.confirm(order.id)
        with pytest.raises(BusinessRuleError):
            OrderService.reopen(order.id)

        Order.objects.filter(id=order.id).update(status=Order.Status.PARTIALLY_FULFILLED)
        result = OrderService.reopen(order.id)
        assert result["order"]["status"] == Order.Status.OPEN

    def test_serialized_order_lists_allowed_transitions(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 2)])
        data = OrderService.get(order.id)["order"]
        assert data["allowed_transitions"] == ["OPEN", "CANCELLED"]
        assert data["partner_name"] == "PT Sumber Baja"


@pytest.mark.django_db
class TestFulfillment:

    def test_po_fulfillment_books_in_transaction(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 20)])
        OrderService.confirm(order.id)

        result = OrderService.fulfill(order.id)

        order.refresh_from_db()
        tx = Transaction.objects.get(id=order.related_transaction_id)
        assert order.status == Order.Status.COMPLETED
        assert tx.type == "IN"
        assert tx.partner_id == supplier.id
        assert tx.reference_no == order.order_number
        assert tx.items[0]["quantity"] == 20
        assert result["transaction"]["id"] == tx.id
        assert Product.objects.get(id=product.id).current_stock == 30

    def test_completed_order_cannot_be_fulfilled_twice(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 1)])
        OrderService.confirm(order.id)
        OrderService.fulfill(order.id)

        with pytest.raises(BusinessRuleError):
            OrderService.fulfill(order.id)
        assert Product.objects.get(id=product.id).current_stock == 11

    def test_so_fulfillment_books_out_transaction(self, product, customer):
        order = create_order("SO", customer, [line(product, 4)])
        OrderService.confirm(order.id)
        OrderService.fulfill(order.id)

        assert Product.objects.get(id=product.id).current_stock == 6
        assert Transaction.objects.get().type == "OUT"

    def test_so_shortage_aborts_everything(self, product, second_product, customer):
        order = create_order("SO", customer, [line(product, 2), line(second_product, 5)])
        OrderService.confirm(order.id)

        with pytest.raises(InsufficientStockError) as exc:
            OrderService.fulfill(order.id)

        shortages = exc.value.details["items"]
        assert [s["product_id"] for s in shortages] == [second_product.id]
        assert Product.objects.get(id=product.id).current_stock == 10
        assert Product.objects.get(id=second_product.id).current_stock == 4
        order.refresh_from_db()
        assert order.status == Order.Status.OPEN
        assert order.related_transaction_id is None
        assert Transaction.objects.count() == 0

    def test_so_shortage_sums_lines_of_same_product(self, product, customer):
        order = create_order("SO", customer, [line(product, 6), line(product, 5)])
        OrderService.confirm(order.id)

        lines = OrderService.check_stock(order)
        assert lines == [{
            "product_id": product.id,
            "name": "Steel Plate",
            "required": 11,
            "available": 10,
            "missing_product": False,
            "sufficient": False,
        }]

        with pytest.raises(InsufficientStockError):
            OrderService.fulfill(order.id)

    def test_deleting_fulfilled_order_keeps_transaction(self, product, supplier):
        order = create_order("PO", supplier, [line(product, 3)])
        OrderService.confirm(order.id)
        OrderService.fulfill(order.id)

        OrderService.delete(order.id)
        assert Transaction.objects.count() == 1
        assert Product.objects.get(id=product.id).current_stock == 13


@pytest.mark.django_db
def test_widget_end_to_end(supplier, customer):
    widget = Product.objects.create(code="W1", name="Widget", min_stock=5, price=1000, current_stock=0)

    po = create_order("PO", supplier, [line(widget, 20)])
    OrderService.confirm(po.id)
    po.refresh_from_db()
    assert po.status == Order.Status.OPEN

    OrderService.fulfill(po.id)
    po.refresh_from_db()
    widget.refresh_from_db()
    assert widget.current_stock == 20
    assert po.status == Order.Status.COMPLETED
    assert po.related_transaction_id is not None

    tx = Transaction.objects.get(id=po.related_transaction_id)
    assert tx.type == "IN"
    assert tx.items[0]["quantity"] == 20

    so = create_order("SO", customer, [line(widget, 25)])
    OrderService.confirm(so.id)
    with pytest.raises(InsufficientStockError):
        OrderService.fulfill(so.id)

    widget.refresh_from_db()
    so.refresh_from_db()
    assert widget.current_stock == 20
    assert so.status == Order.Status.OPEN
