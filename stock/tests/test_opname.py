import pytest

from stock.models import Product, StockOpname
from stock.services import StockOpnameService, BusinessRuleError, ValidationError


@pytest.fixture
def counted(db):
    steady = Product.objects.create(code="S", name="Steady", min_stock=5, current_stock=8)
    shrunk = Product.objects.create(code="T", name="Shrunk", min_stock=5, current_stock=8)
    return steady, shrunk


@pytest.mark.django_db
class TestStockOpname:

    def test_overwrites_stock_and_keeps_only_discrepancies(self, counted):
        steady, shrunk = counted
        result = StockOpnameService.create(items=[
            {"product_id": steady.id, "physical_qty": 8},
            {"product_id": shrunk.id, "physical_qty": 3},
        ])

        steady.refresh_from_db()
        shrunk.refresh_from_db()
        assert steady.current_stock == 8
        assert shrunk.current_stock == 3

        opname = StockOpname.objects.get(id=result["id"])
        assert opname.status == StockOpname.Status.COMPLETED
        assert opname.completed_at is not None
        assert [(i["product_id"], i["difference"]) for i in opname.items] == [(shrunk.id, -5)]

    def test_physical_quantity_is_absolute_even_after_later_drift(self, counted):
        steady, shrunk = counted
        snapshot = StockOpnameService.snapshot()["items"]
        Product.objects.filter(id=shrunk.id).update(current_stock=12)

        items = [dict(i, physical_qty=6) if i["product_id"] == shrunk.id else i for i in snapshot]
        StockOpnameService.create(items=items)

        shrunk.refresh_from_db()
        assert shrunk.current_stock == 6

    def test_snapshot_defaults_physical_to_system(self, counted):
        items = StockOpnameService.snapshot()["items"]
        assert {(i["product_name"], i["system_qty"], i["physical_qty"], i["difference"]) for i in items} == {
            ("Steady", 8, 8, 0),
            ("Shrunk", 8, 8, 0),
        }

    def test_draft_does_not_touch_stock_until_completed(self, counted):
        steady, shrunk = counted
        result = StockOpnameService.create(
            items=[{"product_id": shrunk.id, "physical_qty": 1}], status="DRAFT"
        )
        assert Product.objects.get(id=shrunk.id).current_stock == 8

        StockOpnameService.update(result["id"], items=[{"product_id": shrunk.id, "physical_qty": 2}])
        StockOpnameService.complete(result["id"])

        assert Product.objects.get(id=shrunk.id).current_stock == 2
        with pytest.raises(BusinessRuleError):
            StockOpnameService.complete(result["id"])
        with pytest.raises(BusinessRuleError):
            StockOpnameService.update(result["id"], notes="late")

    def test_physical_quantity_is_required(self, counted):
        steady, _ = counted
        with pytest.raises(ValidationError):
            StockOpnameService.create(items=[{"product_id": steady.id}])

    @pytest.mark.parametrize("physical_qty", ["lots", "", "2.5", -7])
    def test_invalid_physical_count_leaves_stock_alone(self, counted, physical_qty):
        steady, shrunk = counted
        with pytest.raises(ValidationError) as exc:
            StockOpnameService.create(items=[
                {"product_id": steady.id, "physical_qty": 8},
                {"product_id": shrunk.id, "physical_qty": physical_qty},
            ])

        assert exc.value.field == "physical_qty"
        assert Product.objects.get(id=shrunk.id).current_stock == 8
        assert not StockOpname.objects.exists()

    def test_zero_count_is_allowed(self, counted):
        _, shrunk = counted
        StockOpnameService.create(items=[{"product_id": shrunk.id, "physical_qty": "0"}])

        assert Product.objects.get(id=shrunk.id).current_stock == 0
