"""
Auto-restock planning.

A plan groups low-stock products by the supplier of their most recent IN
transaction. The plan is plain data: callers may edit it (assign a supplier
to a group, change quantities, deselect items) and post it back to
``RestockService.commit`` which drafts one purchase order per supplier.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

from django.db import transaction
from django.db.models import F

from stock.models import Product, Transaction, Partner
from stock.services.base_service import (
    success_response, ValidationError, NotFoundError, to_int
)
from stock.services.order_service import OrderService

logger = logging.getLogger(__name__)


UNKNOWN_SUPPLIER = "unknown"
UNKNOWN_SUPPLIER_NAME = "Unassigned supplier"
MISSING_SUPPLIER_NAME = "Unknown supplier"
AUTO_PO_PREFIX = "PO-AUTO"
AUTO_PO_NOTES = "Generated via Auto Restock based on low stock analysis."


def default_order_quantity(min_stock: int) -> int:
    return max(min_stock * 3, 10)


@dataclass
class RestockItem:
    product_id: int
    code: str
    name: str
    unit: str
    price: str
    current_stock: int
    min_stock: int
    order_qty: int
    selected: bool = True


@dataclass
class SupplierGroup:
    group_id: str
    supplier_name: str
    items: List[RestockItem] = field(default_factory=list)

    @property
    def supplier_id(self) -> Optional[int]:
        if self.group_id == UNKNOWN_SUPPLIER:
            return None
        return int(self.group_id)

    @property
    def selected_items(self) -> List[RestockItem]:
        return [item for item in self.items if item.selected]


@dataclass
class RestockPlan:
    groups: List[SupplierGroup] = field(default_factory=list)

    def get_group(self, group_id: str) -> SupplierGroup:
        group_id = str(group_id)
        for group in self.groups:
            if group.group_id == group_id:
                return group
        raise NotFoundError("Restock group", group_id)

    def get_item(self, group_id: str, product_id: int) -> RestockItem:
        group = self.get_group(group_id)
        for item in group.items:
            if item.product_id == product_id:
                return item
        raise NotFoundError("Restock item", product_id)

    def assign_supplier(self, group_id: str, supplier_id: int, supplier_name: str):
        """Move a group to a supplier, merging into that supplier's group if one exists."""
        group = self.get_group(group_id)
        target_id = str(supplier_id)

        if target_id == group.group_id:
            return

        existing = next((g for g in self.groups if g.group_id == target_id), None)
        if existing:
            existing.items.extend(group.items)
            self.groups.remove(group)
        else:
            group.group_id = target_id
            group.supplier_name = supplier_name

    def set_quantity(self, group_id: str, product_id: int, quantity: Optional[int]):
        if quantity is None or quantity <= 0:
            raise ValidationError("Order quantity must be positive", "quantity")
        self.get_item(group_id, product_id).order_qty = quantity

    def toggle_item(self, group_id: str, product_id: int):
        item = self.get_item(group_id, product_id)
        item.selected = not item.selected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": [
                {**asdict(group), "supplier_id": group.supplier_id}
                for group in self.groups
            ]
        }

    @staticmethod
    def _clean_group_id(value) -> str:
        group_id = str(value or UNKNOWN_SUPPLIER).strip()
        if group_id != UNKNOWN_SUPPLIER and not group_id.isdigit():
            raise ValidationError(f"Invalid restock group: {value}", "group_id")
        return group_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RestockPlan":
        groups = []
        for raw_group in (data or {}).get("groups", []):
            items = [
                RestockItem(
                    product_id=to_int(raw.get("product_id")),
                    code=raw.get("code", ""),
                    name=raw.get("name", ""),
                    unit=raw.get("unit", ""),
                    price=str(raw.get("price", "0")),
                    current_stock=to_int(raw.get("current_stock")),
                    min_stock=to_int(raw.get("min_stock")),
                    order_qty=to_int(raw.get("order_qty")),
                    selected=bool(raw.get("selected", True)),
                )
                for raw in raw_group.get("items", [])
            ]
            groups.append(SupplierGroup(
                group_id=cls._clean_group_id(raw_group.get("group_id")),
                supplier_name=raw_group.get("supplier_name", ""),
                items=items,
            ))
        return cls(groups=groups)


class RestockService:

    @classmethod
    def last_supplier_map(cls) -> Dict[int, Optional[int]]:
        """product_id -> partner of the most recent IN transaction that contains it."""
        suppliers = {}
        queryset = Transaction.objects.filter(
            type=Transaction.TransactionType.IN
        ).order_by("-created_at", "-id").only("partner_id", "items")

        for tx in queryset.iterator():
            for item in tx.items:
                suppliers.setdefault(item["product_id"], tx.partner_id)
        return suppliers

    @classmethod
    def build_plan(cls) -> RestockPlan:
        products = Product.objects.filter(current_stock__lte=F("min_stock")).order_by("name")
        suppliers = cls.last_supplier_map()
        partner_names = dict(Partner.objects.values_list("id", "name"))

        groups: Dict[str, SupplierGroup] = {}

        for product in products:
            supplier_id = suppliers.get(product.id)
            if supplier_id:
                group_id = str(supplier_id)
                supplier_name = partner_names.get(supplier_id, MISSING_SUPPLIER_NAME)
            else:
                group_id = UNKNOWN_SUPPLIER
                supplier_name = UNKNOWN_SUPPLIER_NAME

            group = groups.setdefault(group_id, SupplierGroup(group_id, supplier_name))
            group.items.append(RestockItem(
                product_id=product.id,
                code=product.code,
                name=product.name,
                unit=product.unit,
                price=str(product.price),
                current_stock=product.current_stock,
                min_stock=product.min_stock,
                order_qty=default_order_quantity(product.min_stock),
            ))

        return RestockPlan(groups=list(groups.values()))

    @classmethod
    def plan(cls) -> Dict[str, Any]:
        plan = cls.build_plan()
        return success_response({
            "plan": plan.to_dict(),
            "group_count": len(plan.groups),
            "item_count": sum(len(g.items) for g in plan.groups),
        })

    @classmethod
    def assign_supplier(cls, plan: RestockPlan, group_id: str, supplier_id: int) -> RestockPlan:
        supplier = Partner.objects.filter(id=to_int(supplier_id, None)).first()
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        plan.assign_supplier(group_id, supplier.id, supplier.name)
        return plan

    @classmethod
    @transaction.atomic
    def commit(cls, plan: RestockPlan) -> Dict[str, Any]:
        """
        Draft one PO per resolved supplier group with selected items, priced
        and described from the catalog.
        Groups without an existing supplier are skipped and counted.
        """
        existing_partners = set(Partner.objects.values_list("id", flat=True))
        created = []
        skipped_groups = 0

        for group in plan.groups:
            selected = group.selected_items
            if not selected:
                continue

            if group.supplier_id is None or group.supplier_id not in existing_partners:
                skipped_groups += 1
                continue

            result = OrderService.create(
                type="PO",
                partner_id=group.supplier_id,
                items=[
                    {"product_id": item.product_id, "quantity": item.order_qty}
                    for item in selected
                ],
                notes=AUTO_PO_NOTES,
                number_prefix=AUTO_PO_PREFIX,
            )
            created.append(result["order"])

        if skipped_groups:
            logger.info("Auto restock skipped %d group(s) without a supplier", skipped_groups)

        return success_response({
            "created": len(created),
            "orders": created,
            "skipped_groups": skipped_groups,
        }, f"{len(created)} draft purchase order(s) created")
