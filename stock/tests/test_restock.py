import pytest

from stock.models import Order, Partner, Product
from stock.services import (
    RestockService, RestockPlan, TransactionService, NotFoundError, ValidationError, to_quantity,
)
from stock.services.restock_service import UNKNOWN_SUPPLIER, AUTO_PO_NOTES, default_order_quantity


@pytest.fixture
def low_stock_setup(db):
    s1 = Partner.objects.create(name="Supplier One", type=Partner.PartnerType.SUPPLIER)
    a = Product.objects.create(code="A", name="Alpha", min_stock=5, current_stock=0, price=100)
    b = Product.objects.create(code="B", name="Bravo", min_stock=10, current_stock=1, price=50)
    Product.objects.create(code="C", name="Charlie", min_stock=2, current_stock=40)

    # Alpha's last receipt came from S1, leaving it at 2
    TransactionService.add_transaction(
        "IN", [{"product_id": a.id, "quantity": 2, "price_per_unit": "100"}], partner_id=s1.id
    )
    return s1, a, b


def test_default_order_quantity():
    assert default_order_quantity(5) == 15
    assert default_order_quantity(10) == 30
    assert default_order_quantity(2) == 10
    assert default_order_quantity(0) == 10


@pytest.mark.django_db
class TestRestockPlan:

    def test_groups_low_stock_by_last_supplier(self, low_stock_setup):
        s1, a, b = low_stock_setup
        plan = RestockService.build_plan()

        groups = {g.group_id: g for g in plan.groups}
        assert set(groups) == {str(s1.id), UNKNOWN_SUPPLIER}

        s1_items = groups[str(s1.id)].items
        assert [(i.product_id, i.order_qty) for i in s1_items] == [(a.id, 15)]
        assert groups[str(s1.id)].supplier_name == "Supplier One"

        unknown_items = groups[UNKNOWN_SUPPLIER].items
        assert [(i.product_id, i.order_qty) for i in unknown_items] == [(b.id, 30)]

    def test_commit_skips_groups_without_supplier(self, low_stock_setup):
        s1, a, b = low_stock_setup
        result = RestockService.commit(RestockService.build_plan())

        assert result["created"] == 1
        assert result["skipped_groups"] == 1

        order = Order.objects.get()
        assert order.type == "PO"
        assert order.status == Order.Status.DRAFT
        assert order.partner_id == s1.id
        assert order.order_number.startswith("PO-AUTO-")
        assert order.notes == AUTO_PO_NOTES
        assert order.items[0]["product_id"] == a.id
        assert order.items[0]["quantity"] == 15

    def test_assigning_unknown_group_to_existing_supplier_merges(self, low_stock_setup):
        s1, a, b = low_stock_setup
        plan = RestockService.build_plan()

        RestockService.assign_supplier(plan, UNKNOWN_SUPPLIER, s1.id)

        assert len(plan.groups) == 1
        assert [i.product_id for i in plan.groups[0].items] == [a.id, b.id]

        result = RestockService.commit(plan)
        assert result["created"] == 1
        assert result["skipped_groups"] == 0
        assert len(Order.objects.get().items) == 2

    def test_assigning_new_supplier_renames_group(self, low_stock_setup):
        s1, a, b = low_stock_setup
        s2 = Partner.objects.create(name="Supplier Two", type=Partner.PartnerType.SUPPLIER)
        plan = RestockService.build_plan()

        RestockService.assign_supplier(plan, UNKNOWN_SUPPLIER, s2.id)

        group = plan.get_group(str(s2.id))
        assert group.supplier_name == "Supplier Two"
        assert RestockService.commit(plan)["created"] == 2

    def test_assign_unknown_partner_fails(self, low_stock_setup):
        plan = RestockService.build_plan()
        with pytest.raises(NotFoundError):
            RestockService.assign_supplier(plan, UNKNOWN_SUPPLIER, 98765)

    def test_quantity_and_selection_edits(self, low_stock_setup):
        s1, a, b = low_stock_setup
        plan = RestockService.build_plan()

        plan.set_quantity(str(s1.id), a.id, 40)
        with pytest.raises(ValidationError):
            plan.set_quantity(str(s1.id), a.id, 0)

        plan.toggle_item(UNKNOWN_SUPPLIER, b.id)
        assert plan.get_item(UNKNOWN_SUPPLIER, b.id).selected is False

        result = RestockService.commit(plan)
        # Group with nothing selected is neither drafted nor counted as skipped
        assert result["created"] == 1
        assert result["skipped_groups"] == 0
        assert Order.objects.get().items[0]["quantity"] == 40

    def test_plan_survives_dict_round_trip(self, low_stock_setup):
        s1, a, b = low_stock_setup
        plan = RestockService.build_plan()
        plan.set_quantity(str(s1.id), a.id, 22)

        restored = RestockPlan.from_dict(plan.to_dict())

        assert restored == plan
        assert restored.get_group(str(s1.id)).supplier_id == s1.id
        assert restored.get_group(UNKNOWN_SUPPLIER).supplier_id is None

    def test_dangling_supplier_group_is_skipped(self, low_stock_setup):
        s1, a, b = low_stock_setup
        plan = RestockService.build_plan()
        Partner.objects.filter(id=s1.id).delete()

        result = RestockService.commit(plan)
        assert result["created"] == 0
        assert result["skipped_groups"] == 2

    def test_commit_prices_from_catalog(self, low_stock_setup):
        s1, a, b = low_stock_setup
        data = RestockService.build_plan().to_dict()
        for group in data["groups"]:
            for item in group["items"]:
                item["price"] = "1"
                item["name"] = "Renamed"

        RestockService.commit(RestockPlan.from_dict(data))

        item = Order.objects.get().items[0]
        assert item["price_per_unit"] == "100.00"
        assert item["product_name"] == "Alpha"

    def test_non_numeric_group_is_rejected(self, low_stock_setup):
        data = RestockService.build_plan().to_dict()
        data["groups"][0]["group_id"] = "abc"

        with pytest.raises(ValidationError) as exc:
            RestockPlan.from_dict(data)
        assert exc.value.field == "group_id"

    @pytest.mark.parametrize("quantity", ["2.5", "many", None, -3])
    def test_quantity_must_be_positive_whole_number(self, low_stock_setup, quantity):
        s1, a, b = low_stock_setup
        plan = RestockService.build_plan()

        with pytest.raises(ValidationError):
            plan.set_quantity(str(s1.id), a.id, to_quantity(quantity))
        assert plan.get_item(str(s1.id), a.id).order_qty == 15
