from decimal import Decimal

import pytest

from stock.models import Partner, Product, StorageLocation


@pytest.fixture
def location(db):
    return StorageLocation.objects.create(name="Rack A")


@pytest.fixture
def supplier(db):
    return Partner.objects.create(name="PT Sumber Baja", type=Partner.PartnerType.SUPPLIER)


@pytest.fixture
def customer(db):
    return Partner.objects.create(name="CV Maju Jaya", type=Partner.PartnerType.CUSTOMER)


@pytest.fixture
def product(db, location):
    return Product.objects.create(
        code="P-001",
        name="Steel Plate",
        category="Raw Material",
        unit="Sheet",
        min_stock=5,
        price=Decimal("25000"),
        current_stock=10,
        location=location,
    )


@pytest.fixture
def second_product(db):
    return Product.objects.create(
        code="P-002",
        name="Bolt M8",
        unit="Pcs",
        min_stock=20,
        price=Decimal("500"),
        current_stock=4,
    )


def line(product, quantity, price=None):
    item = {"product_id": product.id, "quantity": quantity}
    if price is not None:
        item["price_per_unit"] = price
    return item
