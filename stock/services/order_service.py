import logging
from typing import Dict, Any, List
from collections import OrderedDict
from datetime import date

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from stock.models import Order, Transaction, Partner, Product
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, BusinessRuleError, InsufficientStockError,
    generate_number, to_int, parse_date
)
from stock.services.partner_service import PartnerService
from stock.services.transaction_service import TransactionService, item_total

logger = logging.getLogger(__name__)


class OrderService(BaseService):
    model = Order

    FULFILLMENT_TYPES = {
        Order.OrderType.PO: Transaction.TransactionType.IN,
        Order.OrderType.SO: Transaction.TransactionType.OUT,
    }

    TRANSITIONS = {
        Order.Status.DRAFT: [Order.Status.OPEN, Order.Status.CANCELLED],
        Order.Status.OPEN: [Order.Status.COMPLETED, Order.Status.PARTIALLY_FULFILLED, Order.Status.CANCELLED],
        Order.Status.PARTIALLY_FULFILLED: [Order.Status.OPEN, Order.Status.COMPLETED, Order.Status.CANCELLED],
        Order.Status.COMPLETED: [],
        Order.Status.CANCELLED: [],
    }

    @classmethod
    def serialize(cls, order: Order, partner_names: Dict[int, str] = None) -> Dict[str, Any]:
        if partner_names is None:
            partner_names = PartnerService.name_map()

        return {
            "id": order.id,
            "uuid": str(order.uuid),
            "order_number": order.order_number,
            "type": order.type,
            "type_display": order.get_type_display(),
            "partner_id": order.partner_id,
            "partner_name": partner_names.get(order.partner_id) if order.partner_id else None,
            "date": order.date.isoformat(),
            "expected_date": order.expected_date.isoformat() if order.expected_date else None,
            "status": order.status,
            "status_display": order.get_status_display(),
            "items": order.items,
            "item_count": len(order.items),
            "total_value": str(order.total_value),
            "notes": order.notes,
            "related_transaction_id": order.related_transaction_id,
            "cancel_reason": order.cancel_reason,
            "allowed_transitions": list(cls.TRANSITIONS[order.status]),
            "created_at": order.created_at.isoformat(),
        }

    @classmethod
    def _transition(cls, order: Order, target: str):
        if target not in cls.TRANSITIONS[order.status]:
            raise BusinessRuleError(
                f"Cannot move order {order.order_number} from {order.status} to {target}",
                f"{order.status}->{target}"
            )
        order.status = target

    @classmethod
    def _get_locked(cls, order_id: int) -> Order:
        order = cls.model.objects.select_for_update().filter(id=order_id).first()
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    @classmethod
    def _clean_partner(cls, partner_id) -> int:
        partner_id = to_int(partner_id, None)
        if not partner_id:
            raise ValidationError("Partner is required", "partner_id")
        if not Partner.objects.filter(id=partner_id).exists():
            raise NotFoundError("Partner", partner_id)
        return partner_id

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @classmethod
    def list(cls,
             page: int = 1,
             per_page: int = 20,
             type_filter: str = None,
             status: str = None,
             partner_id: int = None,
             date_from: date = None,
             date_to: date = None,
             search: str = None) -> Dict[str, Any]:
        queryset = cls.model.objects.all()

        if type_filter:
            queryset = queryset.filter(type=type_filter.upper())

        if status:
            queryset = queryset.filter(status=status.upper())

        if partner_id:
            queryset = queryset.filter(partner_id=partner_id)

        if date_from:
            queryset = queryset.filter(date__gte=date_from)

        if date_to:
            queryset = queryset.filter(date__lte=date_to)

        if search:
            queryset = queryset.filter(
                Q(order_number__icontains=search) | Q(notes__icontains=search)
            )

        orders, pagination = paginate_queryset(queryset, page, per_page)
        partner_names = PartnerService.name_map()

        return success_response({
            "orders": [cls.serialize(o, partner_names) for o in orders],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, order_id: int) -> Dict[str, Any]:
        order = cls.get_or_404(order_id)
        data = cls.serialize(order)
        if order.type == Order.OrderType.SO and not order.is_terminal:
            data["stock_check"] = cls.check_stock(order)
        return success_response({"order": data})

    @classmethod
    @transaction.atomic
    def create(cls,
               type: str,
               partner_id: int,
               items: List[Dict[str, Any]],
               order_number: str = None,
               date: date = None,
               expected_date: date = None,
               notes: str = "",
               number_prefix: str = None) -> Dict[str, Any]:
        order_type = (type or "").upper()
        if order_type not in Order.OrderType.values:
            raise ValidationError(f"Invalid order type: {type}", "type")

        partner_id = cls._clean_partner(partner_id)
        items = TransactionService.clean_items(items)

        order_number = (order_number or "").strip()
        if order_number:
            if cls.model.objects.filter(order_number=order_number).exists():
                raise ValidationError(f"Order number '{order_number}' already exists", "order_number")
        else:
            order_number = generate_number(number_prefix or order_type, cls.model)

        order = cls.model.objects.create(
            order_number=order_number,
            type=order_type,
            partner_id=partner_id,
            date=parse_date(date, default=timezone.localdate()),
            expected_date=parse_date(expected_date, "expected_date"),
            status=Order.Status.DRAFT,
            items=items,
            total_value=item_total(items),
            notes=notes or "",
            created_at=timezone.now(),
        )

        logger.info("Order %s created (%s, %d item(s))", order.order_number, order.type, len(items))

        return success_response({
            "id": order.id,
            "order": cls.serialize(order)
        }, f"Order {order.order_number} created")

    @classmethod
    @transaction.atomic
    def update(cls, order_id: int, **kwargs) -> Dict[str, Any]:
        order = cls._get_locked(order_id)

        if order.status != Order.Status.DRAFT:
            raise BusinessRuleError("Can only update orders in DRAFT status", "draft_only")

        if "partner_id" in kwargs:
            order.partner_id = cls._clean_partner(kwargs["partner_id"])

        if "items" in kwargs:
            order.items = TransactionService.clean_items(kwargs["items"])
            order.total_value = item_total(order.items)

        if "date" in kwargs:
            order.date = parse_date(kwargs["date"], default=order.date)

        if "expected_date" in kwargs:
            order.expected_date = parse_date(kwargs["expected_date"], "expected_date")

        if "notes" in kwargs:
            order.notes = kwargs["notes"] or ""

        order.save()

        return success_response({
            "order": cls.serialize(order)
        }, "Order updated")

    @classmethod
    @transaction.atomic
    def delete(cls, order_id: int) -> Dict[str, Any]:
        order = cls.get_or_404(order_id)
        number = order.order_number

        # A fulfilled order's transaction stays in the ledger
        order.delete()

        return success_response(message=f"Order {number} deleted")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    @transaction.atomic
    def confirm(cls, order_id: int) -> Dict[str, Any]:
        order = cls._get_locked(order_id)
        cls._transition(order, Order.Status.OPEN)
        order.save(update_fields=["status", "updated_at"])

        return success_response({
            "order": cls.serialize(order)
        }, f"Order {order.order_number} confirmed")

    @classmethod
    @transaction.atomic
    def cancel(cls, order_id: int, reason: str = "") -> Dict[str, Any]:
        order = cls._get_locked(order_id)
        cls._transition(order, Order.Status.CANCELLED)
        order.cancel_reason = reason or ""
        order.save(update_fields=["status", "cancel_reason", "updated_at"])

        logger.info("Order %s cancelled", order.order_number)

        return success_response({
            "order": cls.serialize(order)
        }, f"Order {order.order_number} cancelled")

    @classmethod
    @transaction.atomic
    def reopen(cls, order_id: int) -> Dict[str, Any]:
        order = cls._get_locked(order_id)
        if order.status != Order.Status.PARTIALLY_FULFILLED:
            raise BusinessRuleError(
                f"Only partially fulfilled orders can be reopened, order is {order.status}",
                "reopen"
            )
        cls._transition(order, Order.Status.OPEN)
        order.save(update_fields=["status", "updated_at"])

        return success_response({
            "order": cls.serialize(order)
        }, f"Order {order.order_number} reopened")

    @classmethod
    def check_stock(cls, order: Order) -> List[Dict[str, Any]]:
        """Requested quantity per product against current stock. Missing products have none."""
        required = OrderedDict()
        for item in order.items:
            line = required.setdefault(item["product_id"], {
                "product_id": item["product_id"],
                "name": item.get("product_name") or str(item["product_id"]),
                "required": 0,
            })
            line["required"] += item["quantity"]

        products = Product.objects.in_bulk(list(required.keys()))

        lines = []
        for product_id, line in required.items():
            product = products.get(product_id)
            available = product.current_stock if product else 0
            lines.append({
                **line,
                "available": available,
                "missing_product": product is None,
                "sufficient": product is not None and line["required"] <= available,
            })
        return lines

    @classmethod
    @transaction.atomic
    def fulfill(cls, order_id: int) -> Dict[str, Any]:
        """
        Realize the order as a stock movement: IN for PO, OUT for SO.
        SO shortages abort before anything is written.
        """
        order = cls._get_locked(order_id)

        if order.status not in (Order.Status.OPEN, Order.Status.PARTIALLY_FULFILLED):
            raise BusinessRuleError(
                f"Cannot fulfill order in {order.status} status", "fulfill"
            )

        if order.type == Order.OrderType.SO:
            shortages = [
                {k: line[k] for k in ("product_id", "name", "required", "available")}
                for line in cls.check_stock(order) if not line["sufficient"]
            ]
            if shortages:
                logger.info("Fulfillment of %s blocked by %d shortage(s)", order.order_number, len(shortages))
                raise InsufficientStockError(shortages)

        tx = TransactionService.add_transaction(
            type=cls.FULFILLMENT_TYPES[order.type],
            items=order.items,
            date=timezone.localdate(),
            partner_id=order.partner_id,
            reference_no=order.order_number,
            notes=f"Auto-generated fulfillment of {order.type} #{order.order_number}",
        )

        cls._transition(order, Order.Status.COMPLETED)
        order.related_transaction = tx
        order.save(update_fields=["status", "related_transaction", "updated_at"])

        logger.info("Order %s fulfilled by transaction %s", order.order_number, tx.id)

        return success_response({
            "order": cls.serialize(order),
            "transaction": TransactionService.serialize(tx),
        }, f"Order {order.order_number} fulfilled")
