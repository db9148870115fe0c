import logging
from typing import Dict, Any, Optional
from decimal import Decimal

from django.db import transaction
from django.db.models import Q, F

from stock.models import Product, StorageLocation
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, to_decimal, to_int
)
from stock.services.location_service import StorageLocationService

logger = logging.getLogger(__name__)


class ProductService(BaseService):
    model = Product

    EDITABLE_FIELDS = ["code", "name", "category", "unit", "min_stock", "price", "current_stock"]

    @classmethod
    def serialize(cls, product: Product, location_names: Dict[int, str] = None) -> Dict[str, Any]:
        if location_names is None:
            location_names = StorageLocationService.name_map()

        location_name = location_names.get(product.location_id) if product.location_id else None

        return {
            "id": product.id,
            "uuid": str(product.uuid),
            "code": product.code,
            "name": product.name,
            "category": product.category,
            "unit": product.unit,
            "min_stock": product.min_stock,
            "price": str(product.price),
            "current_stock": product.current_stock,
            # Dangling ids read as unassigned
            "location_id": product.location_id if location_name else None,
            "location_name": location_name,
            "is_low_stock": product.is_low_stock,
            "stock_value": str(product.stock_value),
            "created_at": product.created_at.isoformat(),
            "updated_at": product.updated_at.isoformat(),
        }

    @classmethod
    def filter_queryset(cls,
                        search: str = None,
                        category: str = None,
                        location_id: int = None,
                        low_stock_only: bool = False,
                        min_price: Decimal = None,
                        max_price: Decimal = None):
        queryset = cls.model.objects.all()

        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(code__icontains=search)
            )

        if category:
            queryset = queryset.filter(category__iexact=category)

        if location_id:
            queryset = queryset.filter(location_id=location_id)

        if low_stock_only:
            queryset = queryset.filter(current_stock__lte=F("min_stock"))

        if min_price is not None:
            queryset = queryset.filter(price__gte=min_price)

        if max_price is not None:
            queryset = queryset.filter(price__lte=max_price)

        return queryset.order_by("name")

    @classmethod
    def list(cls,
             page: int = 1,
             per_page: int = 20,
             **filters) -> Dict[str, Any]:
        queryset = cls.filter_queryset(**filters)
        products, pagination = paginate_queryset(queryset, page, per_page)
        location_names = StorageLocationService.name_map()

        return success_response({
            "products": [cls.serialize(p, location_names) for p in products],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, product_id: int) -> Dict[str, Any]:
        product = cls.get_or_404(product_id)
        return success_response({
            "product": cls.serialize(product)
        })

    @classmethod
    def categories(cls) -> Dict[str, Any]:
        categories = list(
            cls.model.objects.order_by("category").values_list("category", flat=True).distinct()
        )
        return success_response({
            "categories": categories,
            "count": len(categories),
        })

    @classmethod
    def _clean(cls, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        cleaned = {}

        for field in ("code", "name"):
            if field in data or not partial:
                value = (data.get(field) or "").strip()
                if not value:
                    raise ValidationError(f"Product {field} is required", field)
                cleaned[field] = value

        if "category" in data or not partial:
            cleaned["category"] = (data.get("category") or "").strip() or "General"

        if "unit" in data or not partial:
            cleaned["unit"] = (data.get("unit") or "").strip() or "Pcs"

        if "min_stock" in data or not partial:
            min_stock = to_int(data.get("min_stock"), 5)
            if min_stock < 0:
                raise ValidationError("Minimum stock cannot be negative", "min_stock")
            cleaned["min_stock"] = min_stock

        if "price" in data or not partial:
            price = to_decimal(data.get("price"), None)
            if price is None and data.get("price") not in (None, ""):
                raise ValidationError(f"Invalid price: {data.get('price')}", "price")
            price = price if price is not None else Decimal("0")
            if price < 0:
                raise ValidationError("Price cannot be negative", "price")
            cleaned["price"] = price

        if "current_stock" in data or not partial:
            cleaned["current_stock"] = to_int(data.get("current_stock"), 0)

        return cleaned

    @classmethod
    def _resolve_location(cls, data: Dict[str, Any]) -> Optional[StorageLocation]:
        """A free-text location_name wins over location_id."""
        if "location_name" in data:
            return StorageLocationService.resolve(data.get("location_name"))

        location_id = data.get("location_id")
        if not location_id:
            return None

        location = StorageLocationService.get_by_id(location_id)
        if not location:
            raise NotFoundError("Location", location_id)
        return location

    @classmethod
    @transaction.atomic
    def create(cls, **data) -> Dict[str, Any]:
        cleaned = cls._clean(data)
        cleaned["location"] = cls._resolve_location(data)

        product = cls.model.objects.create(**cleaned)
        logger.info("Product %s '%s' created with stock %s", product.code, product.name, product.current_stock)

        return success_response({
            "id": product.id,
            "product": cls.serialize(product)
        }, f"Product '{product.name}' created")

    @classmethod
    @transaction.atomic
    def update(cls, product_id: int, **data) -> Dict[str, Any]:
        product = cls.get_or_404(product_id)

        cleaned = cls._clean(data, partial=True)
        for field, value in cleaned.items():
            setattr(product, field, value)

        if "location_name" in data or "location_id" in data:
            product.location = cls._resolve_location(data)

        product.save()

        return success_response({
            "product": cls.serialize(product)
        }, "Product updated")

    @classmethod
    @transaction.atomic
    def delete(cls, product_id: int) -> Dict[str, Any]:
        product = cls.get_or_404(product_id)
        name = product.name

        # Transactions, orders and opnames keep their snapshots
        product.delete()

        return success_response(message=f"Product '{name}' deleted")
