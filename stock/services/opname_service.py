import logging
from typing import Dict, Any, List

from django.db import transaction
from django.utils import timezone

from stock.models import StockOpname, Product
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, BusinessRuleError, to_int, to_quantity, parse_date
)

logger = logging.getLogger(__name__)


class StockOpnameService(BaseService):
    model = StockOpname

    @classmethod
    def serialize(cls, opname: StockOpname) -> Dict[str, Any]:
        return {
            "id": opname.id,
            "uuid": str(opname.uuid),
            "date": opname.date.isoformat(),
            "notes": opname.notes,
            "status": opname.status,
            "status_display": opname.get_status_display(),
            "items": opname.items,
            "item_count": len(opname.items),
            "total_difference": sum(item["difference"] for item in opname.items),
            "completed_at": opname.completed_at.isoformat() if opname.completed_at else None,
            "created_at": opname.created_at.isoformat(),
        }

    @classmethod
    def snapshot(cls) -> Dict[str, Any]:
        """Every product with its system quantity; physical defaults to system."""
        items = [
            {
                "product_id": product.id,
                "product_code": product.code,
                "product_name": product.name,
                "unit": product.unit,
                "system_qty": product.current_stock,
                "physical_qty": product.current_stock,
                "difference": 0,
            }
            for product in Product.objects.order_by("name")
        ]

        return success_response({
            "items": items,
            "count": len(items),
        })

    @classmethod
    def _build_items(cls, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not items:
            raise ValidationError("At least one item is required", "items")

        product_ids = [to_int(item.get("product_id"), None) for item in items]
        products = Product.objects.in_bulk([pid for pid in product_ids if pid])

        built = []
        for item, product_id in zip(items, product_ids):
            product = products.get(product_id)
            if product is None:
                raise ValidationError(f"Unknown product: {item.get('product_id')}", "items")

            if item.get("physical_qty") in (None, ""):
                raise ValidationError(f"Physical quantity missing for {product.name}", "physical_qty")

            physical_qty = to_quantity(item.get("physical_qty"))
            if physical_qty is None:
                raise ValidationError(
                    f"Invalid physical quantity for {product.name}: {item.get('physical_qty')}", "physical_qty"
                )
            if physical_qty < 0:
                raise ValidationError(f"Physical quantity for {product.name} cannot be negative", "physical_qty")

            system_qty = to_int(item.get("system_qty"), product.current_stock)

            built.append({
                "product_id": product.id,
                "product_code": product.code,
                "product_name": item.get("product_name") or product.name,
                "unit": product.unit,
                "system_qty": system_qty,
                "physical_qty": physical_qty,
                "difference": physical_qty - system_qty,
            })
        return built

    @classmethod
    def _apply(cls, opname: StockOpname):
        """Keep only discrepant lines and overwrite each product's stock with the count."""
        opname.items = [item for item in opname.items if item["physical_qty"] != item["system_qty"]]

        for item in opname.items:
            # Absolute set, not a delta
            updated = Product.objects.filter(id=item["product_id"]).update(
                current_stock=item["physical_qty"],
                updated_at=timezone.now(),
            )
            if not updated:
                logger.warning(
                    "Skipped opname adjustment for missing product %s (opname %s)",
                    item["product_id"], opname.id
                )

        opname.status = StockOpname.Status.COMPLETED
        opname.completed_at = timezone.now()

    @classmethod
    @transaction.atomic
    def create(cls,
               items: List[Dict[str, Any]],
               notes: str = "",
               date=None,
               status: str = StockOpname.Status.COMPLETED) -> Dict[str, Any]:
        status = (status or StockOpname.Status.COMPLETED).upper()
        if status not in StockOpname.Status.values:
            raise ValidationError(f"Invalid opname status: {status}", "status")

        opname = cls.model(
            date=parse_date(date, default=timezone.localdate()),
            notes=notes or "",
            items=cls._build_items(items),
            status=StockOpname.Status.DRAFT,
            created_at=timezone.now(),
        )
        opname.save()

        if status == StockOpname.Status.COMPLETED:
            cls._apply(opname)
            opname.save()
            logger.info("Opname %s completed with %d adjustment(s)", opname.id, len(opname.items))

        return success_response({
            "id": opname.id,
            "opname": cls.serialize(opname)
        }, "Stock opname saved")

    @classmethod
    @transaction.atomic
    def update(cls, opname_id: int, **kwargs) -> Dict[str, Any]:
        opname = cls.get_or_404(opname_id)
        if opname.status != StockOpname.Status.DRAFT:
            raise BusinessRuleError("Only draft opnames can be edited", "draft_only")

        if "items" in kwargs:
            opname.items = cls._build_items(kwargs["items"])
        if "notes" in kwargs:
            opname.notes = kwargs["notes"] or ""
        if "date" in kwargs:
            opname.date = parse_date(kwargs["date"], default=opname.date)

        opname.save()

        return success_response({
            "opname": cls.serialize(opname)
        }, "Stock opname updated")

    @classmethod
    @transaction.atomic
    def complete(cls, opname_id: int) -> Dict[str, Any]:
        opname = cls.get_or_404(opname_id)
        if opname.status != StockOpname.Status.DRAFT:
            raise BusinessRuleError("Opname already completed", "already_completed")

        cls._apply(opname)
        opname.save()

        logger.info("Opname %s completed with %d adjustment(s)", opname.id, len(opname.items))

        return success_response({
            "opname": cls.serialize(opname)
        }, "Stock opname completed")

    @classmethod
    def list(cls, page: int = 1, per_page: int = 20, status: str = None) -> Dict[str, Any]:
        queryset = cls.model.objects.all()
        if status:
            queryset = queryset.filter(status=status.upper())

        opnames, pagination = paginate_queryset(queryset, page, per_page)

        return success_response({
            "opnames": [cls.serialize(o) for o in opnames],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, opname_id: int) -> Dict[str, Any]:
        opname = cls.get_or_404(opname_id)
        return success_response({
            "opname": cls.serialize(opname)
        })
