"""
Transaction engine.

Every stock-affecting movement goes through ``add_transaction``,
``update_transaction`` and ``delete_transaction``. ``current_stock`` is a
running balance: edits reverse the stored version and apply the new one,
deletes reverse the stored version. Nothing is ever recomputed from history.
"""

import logging
from typing import Dict, Any, Optional, List
from decimal import Decimal
from datetime import date

from django.db import transaction
from django.db.models import Q, F
from django.utils import timezone

from stock.models import Transaction, Product, Partner
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, InsufficientStockError,
    to_decimal, to_int, to_quantity, round_decimal, parse_date
)
from stock.services.partner_service import PartnerService

logger = logging.getLogger(__name__)


def item_total(items: List[Dict[str, Any]]) -> Decimal:
    total = sum(
        (Decimal(item["quantity"]) * to_decimal(item["price_per_unit"]) for item in items),
        Decimal("0"),
    )
    return round_decimal(total)


def quantity_for(items: List[Dict[str, Any]], product_id: int) -> int:
    return sum(item["quantity"] for item in items if item["product_id"] == product_id)


class TransactionService(BaseService):
    model = Transaction

    @classmethod
    def serialize(cls, tx: Transaction, partner_names: Dict[int, str] = None) -> Dict[str, Any]:
        if partner_names is None:
            partner_names = PartnerService.name_map()

        return {
            "id": tx.id,
            "uuid": str(tx.uuid),
            "type": tx.type,
            "type_display": tx.get_type_display(),
            "date": tx.date.isoformat(),
            "partner_id": tx.partner_id,
            "partner_name": partner_names.get(tx.partner_id) if tx.partner_id else None,
            "reference_no": tx.reference_no,
            "notes": tx.notes,
            "items": tx.items,
            "item_count": len(tx.items),
            "total_value": str(tx.total_value),
            "created_at": tx.created_at.isoformat(),
        }

    # ------------------------------------------------------------------
    # Item normalization
    # ------------------------------------------------------------------

    @classmethod
    def normalize_item(cls, item: Dict[str, Any], product: Optional[Product] = None) -> Dict[str, Any]:
        """Coerce an item dict to its stored shape, snapshotting product fields when missing."""
        quantity = to_quantity(item.get("quantity"))
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be a positive whole number", "quantity")

        if item.get("price_per_unit") in (None, ""):
            price = product.price if product else Decimal("0")
        else:
            price = to_decimal(item.get("price_per_unit"), None)
            if price is None:
                raise ValidationError(f"Invalid price: {item.get('price_per_unit')}", "price_per_unit")
        if price < 0:
            raise ValidationError("Price cannot be negative", "price_per_unit")

        return {
            "product_id": to_int(item.get("product_id"), None) or (product.id if product else None),
            "product_name": item.get("product_name") or (product.name if product else ""),
            "product_code": item.get("product_code") or (product.code if product else ""),
            "unit": item.get("unit") or (product.unit if product else ""),
            "quantity": quantity,
            "price_per_unit": str(round_decimal(price)),
        }

    @classmethod
    def clean_items(cls, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Validate user-supplied items: at least one, every product exists,
        positive quantities, non-negative prices.
        """
        if not items:
            raise ValidationError("At least one item is required", "items")

        product_ids = [to_int(item.get("product_id"), None) for item in items]
        missing_ids = [pid for pid in product_ids if pid is None]
        if missing_ids:
            raise ValidationError("Every item needs a product_id", "items")

        products = Product.objects.in_bulk(product_ids)
        unknown = [pid for pid in product_ids if pid not in products]
        if unknown:
            raise ValidationError(
                f"Unknown product(s): {', '.join(str(pid) for pid in unknown)}",
                "items",
                {"product_ids": unknown}
            )

        return [
            cls.normalize_item(item, products[pid])
            for item, pid in zip(items, product_ids)
        ]

    # ------------------------------------------------------------------
    # Stock effect
    # ------------------------------------------------------------------

    @classmethod
    def _shift_stock(cls, tx: Transaction, sign: int):
        direction = sign if tx.type == Transaction.TransactionType.IN else -sign

        for item in tx.items:
            delta = direction * item["quantity"]
            updated = Product.objects.filter(id=item["product_id"]).update(
                current_stock=F("current_stock") + delta,
                updated_at=timezone.now(),
            )
            if not updated:
                logger.warning(
                    "Skipped stock change of %+d for missing product %s (transaction %s)",
                    delta, item["product_id"], tx.id
                )

    @classmethod
    def apply(cls, tx: Transaction):
        """IN adds each item's quantity to current stock, OUT subtracts it."""
        cls._shift_stock(tx, 1)

    @classmethod
    def reverse(cls, tx: Transaction):
        cls._shift_stock(tx, -1)

    # ------------------------------------------------------------------
    # Engine operations
    # ------------------------------------------------------------------

    @classmethod
    @transaction.atomic
    def add_transaction(cls,
                        type: str,
                        items: List[Dict[str, Any]],
                        date: date = None,
                        partner_id: int = None,
                        reference_no: str = "",
                        notes: str = "") -> Transaction:
        """Record a movement as the newest transaction and apply it. No availability checks."""
        if type not in Transaction.TransactionType.values:
            raise ValidationError(f"Invalid transaction type: {type}", "type")

        items = [cls.normalize_item(item) for item in items]

        tx = cls.model.objects.create(
            type=type,
            date=date or timezone.localdate(),
            partner_id=partner_id,
            reference_no=reference_no or "",
            notes=notes or "",
            items=items,
            total_value=item_total(items),
            created_at=timezone.now(),
        )
        cls.apply(tx)

        logger.info(
            "Transaction %s (%s, %d item(s), total %s) recorded",
            tx.id, tx.type, len(items), tx.total_value
        )
        return tx

    @classmethod
    @transaction.atomic
    def update_transaction(cls,
                           tx_id: int,
                           type: str,
                           items: List[Dict[str, Any]],
                           date: date = None,
                           partner_id: int = None,
                           reference_no: str = "",
                           notes: str = "") -> Transaction:
        """Revert the stored version, replace every field, then apply the new version."""
        tx = cls.model.objects.select_for_update().filter(id=tx_id).first()
        if not tx:
            raise NotFoundError("Transaction", tx_id)

        if type not in Transaction.TransactionType.values:
            raise ValidationError(f"Invalid transaction type: {type}", "type")

        cls.reverse(tx)

        tx.type = type
        tx.items = [cls.normalize_item(item) for item in items]
        tx.date = date or tx.date
        tx.partner_id = partner_id
        tx.reference_no = reference_no or ""
        tx.notes = notes or ""
        tx.total_value = item_total(tx.items)
        tx.save()

        cls.apply(tx)

        logger.info("Transaction %s replaced (%s, total %s)", tx.id, tx.type, tx.total_value)
        return tx

    @classmethod
    @transaction.atomic
    def delete_transaction(cls, tx_id: int) -> bool:
        """Reverse and remove. Unknown ids are a no-op."""
        tx = cls.model.objects.select_for_update().filter(id=tx_id).first()
        if not tx:
            return False

        cls.reverse(tx)
        tx.delete()

        logger.info("Transaction %s deleted and reversed", tx_id)
        return True

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    @staticmethod
    def available_stock(product: Product,
                        pending_items: List[Dict[str, Any]],
                        original: Optional[Transaction] = None) -> int:
        """
        Stock a new OUT line for ``product`` may draw on.

        When editing, an OUT original's quantities for the product are still
        deducted from current stock, so they count as available again. Lines
        already staged in the same edit are subtracted.
        """
        available = product.current_stock

        if original is not None and original.type == Transaction.TransactionType.OUT:
            available += quantity_for(original.items, product.id)

        available -= quantity_for(pending_items, product.id)
        return available

    @classmethod
    def validate_out_items(cls,
                           items: List[Dict[str, Any]],
                           original: Optional[Transaction] = None):
        products = Product.objects.in_bulk([item["product_id"] for item in items])
        staged = []
        shortages = []

        for item in items:
            product = products.get(item["product_id"])
            if product is None:
                available = 0
            else:
                available = cls.available_stock(product, staged, original)

            if item["quantity"] > available:
                shortages.append({
                    "product_id": item["product_id"],
                    "name": item["product_name"],
                    "required": item["quantity"],
                    "available": max(available, 0),
                })
            staged.append(item)

        if shortages:
            raise InsufficientStockError(shortages)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @classmethod
    def _clean_header(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        tx_type = (data.get("type") or "").upper()
        if tx_type not in Transaction.TransactionType.values:
            raise ValidationError(f"Invalid transaction type: {data.get('type')}", "type")

        partner_id = to_int(data.get("partner_id"), None)
        if partner_id and not Partner.objects.filter(id=partner_id).exists():
            raise NotFoundError("Partner", partner_id)

        return {
            "type": tx_type,
            "date": parse_date(data.get("date"), default=timezone.localdate()),
            "partner_id": partner_id,
            "reference_no": data.get("reference_no") or "",
            "notes": data.get("notes") or "",
        }

    @classmethod
    def create(cls, **data) -> Dict[str, Any]:
        header = cls._clean_header(data)
        items = cls.clean_items(data.get("items"))

        if header["type"] == Transaction.TransactionType.OUT:
            cls.validate_out_items(items)

        tx = cls.add_transaction(items=items, **header)

        return success_response({
            "id": tx.id,
            "transaction": cls.serialize(tx)
        }, "Transaction recorded")

    @classmethod
    def update(cls, tx_id: int, **data) -> Dict[str, Any]:
        original = cls.get_or_404(tx_id)

        header = cls._clean_header(data)
        items = cls.clean_items(data.get("items"))

        if header["type"] == Transaction.TransactionType.OUT:
            cls.validate_out_items(items, original=original)

        tx = cls.update_transaction(tx_id, items=items, **header)

        return success_response({
            "transaction": cls.serialize(tx)
        }, "Transaction updated")

    @classmethod
    def delete(cls, tx_id: int) -> Dict[str, Any]:
        deleted = cls.delete_transaction(tx_id)
        return success_response({
            "deleted": deleted
        }, "Transaction deleted" if deleted else "Transaction already removed")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @classmethod
    def list(cls,
             page: int = 1,
             per_page: int = 20,
             type_filter: str = None,
             partner_id: int = None,
             date_from: date = None,
             date_to: date = None,
             search: str = None) -> Dict[str, Any]:
        queryset = cls.model.objects.all()

        if type_filter:
            queryset = queryset.filter(type=type_filter.upper())

        if partner_id:
            queryset = queryset.filter(partner_id=partner_id)

        if date_from:
            queryset = queryset.filter(date__gte=date_from)

        if date_to:
            queryset = queryset.filter(date__lte=date_to)

        if search:
            queryset = queryset.filter(
                Q(reference_no__icontains=search) | Q(notes__icontains=search)
            )

        transactions, pagination = paginate_queryset(queryset, page, per_page)
        partner_names = PartnerService.name_map()

        return success_response({
            "transactions": [cls.serialize(tx, partner_names) for tx in transactions],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, tx_id: int) -> Dict[str, Any]:
        tx = cls.get_or_404(tx_id)
        return success_response({
            "transaction": cls.serialize(tx)
        })
