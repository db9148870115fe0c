from typing import Dict, Any, List, Optional, Tuple
from collections import OrderedDict
from decimal import Decimal
from datetime import date

from django.db.models import Count, Sum, F, Q, DecimalField, ExpressionWrapper
from django.utils import timezone

from stock.models import Product, Transaction, StorageLocation, Order
from stock.services.base_service import (
    success_response, ValidationError, get_date_range, parse_date
)
from stock.services.partner_service import PartnerService
from stock.services.transaction_service import TransactionService

UNASSIGNED_LOCATION = "Unassigned"
REPORT_TYPES = ("ALL", "IN", "OUT")


def stock_value_expression():
    return ExpressionWrapper(F("current_stock") * F("price"), output_field=DecimalField())


def low_stock_status(product: Product) -> str:
    return "OUT" if product.current_stock <= 0 else "LOW"


def suggested_order(product: Product) -> int:
    return product.min_stock * 2 - product.current_stock


class ReportService:

    @classmethod
    def resolve_period(cls,
                       date_from: Optional[date] = None,
                       date_to: Optional[date] = None,
                       period: Optional[str] = None) -> Tuple[date, date]:
        if period:
            return get_date_range(period)

        today = timezone.localdate()
        start = parse_date(date_from, "date_from", default=today.replace(day=1))
        end = parse_date(date_to, "date_to", default=today)
        if start > end:
            raise ValidationError("date_from must not be after date_to", "date_from")
        return start, end

    @classmethod
    def period_transactions(cls, start: date, end: date, type_filter: str = "ALL"):
        queryset = Transaction.objects.filter(date__gte=start, date__lte=end)
        if type_filter and type_filter != "ALL":
            queryset = queryset.filter(type=type_filter)
        return queryset

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    @classmethod
    def summary(cls) -> Dict[str, Any]:
        totals = Product.objects.aggregate(
            total_products=Count("id"),
            total_value=Sum(stock_value_expression()),
            total_items=Sum("current_stock"),
        )
        tx_counts = Transaction.objects.aggregate(
            transactions_in=Count("id", filter=Q(type=Transaction.TransactionType.IN)),
            transactions_out=Count("id", filter=Q(type=Transaction.TransactionType.OUT)),
        )

        return {
            "total_products": totals["total_products"] or 0,
            "low_stock": Product.objects.filter(current_stock__lte=F("min_stock")).count(),
            "total_value": str(totals["total_value"] or Decimal("0")),
            "total_items": totals["total_items"] or 0,
            "transactions_in": tx_counts["transactions_in"],
            "transactions_out": tx_counts["transactions_out"],
        }

    @classmethod
    def location_stats(cls) -> List[Dict[str, Any]]:
        """Quantity and value per location, with an unassigned bucket for products without one."""
        locations = dict(StorageLocation.objects.values_list("id", "name"))
        buckets = {
            loc_id: {"id": loc_id, "name": name, "total_qty": 0, "total_value": Decimal("0")}
            for loc_id, name in locations.items()
        }
        unassigned = {"id": None, "name": UNASSIGNED_LOCATION, "total_qty": 0, "total_value": Decimal("0")}

        has_unassigned = False
        for product in Product.objects.only("location_id", "current_stock", "price"):
            bucket = buckets.get(product.location_id)
            if bucket is None:
                bucket = unassigned
                has_unassigned = True
            bucket["total_qty"] += product.current_stock
            bucket["total_value"] += product.current_stock * product.price

        rows = list(buckets.values())
        if has_unassigned:
            rows.append(unassigned)

        rows.sort(key=lambda row: row["name"].lower())
        for row in rows:
            row["total_value"] = str(row["total_value"])
        return rows

    @classmethod
    def daily_values(cls, transactions) -> List[Dict[str, Any]]:
        days = OrderedDict()
        for tx in transactions.order_by("date", "created_at"):
            key = tx.date.isoformat()
            entry = days.setdefault(key, {"date": key, "value_in": Decimal("0"), "value_out": Decimal("0")})
            if tx.type == Transaction.TransactionType.IN:
                entry["value_in"] += tx.total_value
            else:
                entry["value_out"] += tx.total_value

        return [
            {"date": e["date"], "value_in": str(e["value_in"]), "value_out": str(e["value_out"])}
            for e in days.values()
        ]

    @classmethod
    def dashboard(cls,
                  date_from: Optional[date] = None,
                  date_to: Optional[date] = None,
                  period: Optional[str] = None) -> Dict[str, Any]:
        start, end = cls.resolve_period(date_from, date_to, period)
        in_period = cls.period_transactions(start, end)

        period_totals = in_period.aggregate(
            period_in=Sum("total_value", filter=Q(type=Transaction.TransactionType.IN)),
            period_out=Sum("total_value", filter=Q(type=Transaction.TransactionType.OUT)),
        )
        period_in = period_totals["period_in"] or Decimal("0")
        period_out = period_totals["period_out"] or Decimal("0")

        partner_names = PartnerService.name_map()
        recent = Transaction.objects.order_by("-created_at", "-id")[:5]

        # OUT value is income, IN value is expense
        trend = [
            {"date": row["date"], "income": row["value_out"], "expense": row["value_in"]}
            for row in cls.daily_values(in_period)
        ]

        return success_response({
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "stats": {
                **cls.summary(),
                "period_in_value": str(period_in),
                "period_out_value": str(period_out),
                "net": str(period_out - period_in),
            },
            "recent_activity": [TransactionService.serialize(tx, partner_names) for tx in recent],
            "financial_trend": trend,
            "locations": cls.location_stats(),
            "open_orders": Order.objects.filter(
                status__in=[Order.Status.OPEN, Order.Status.PARTIALLY_FULFILLED]
            ).count(),
        })

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @classmethod
    def movement_rows(cls, start: date, end: date, type_filter: str = "ALL") -> List[Dict[str, Any]]:
        type_filter = (type_filter or "ALL").upper()
        if type_filter not in REPORT_TYPES:
            raise ValidationError(f"Invalid report type: {type_filter}", "type")

        moved_in: Dict[int, int] = {}
        moved_out: Dict[int, int] = {}
        for tx in cls.period_transactions(start, end, type_filter).only("type", "items"):
            target = moved_in if tx.type == Transaction.TransactionType.IN else moved_out
            for item in tx.items:
                target[item["product_id"]] = target.get(item["product_id"], 0) + item["quantity"]

        return [
            {
                "product_id": product.id,
                "code": product.code,
                "name": product.name,
                "category": product.category,
                "period_in": moved_in.get(product.id, 0),
                "period_out": moved_out.get(product.id, 0),
                "ending_stock": product.current_stock,
                "unit": product.unit,
            }
            for product in Product.objects.order_by("name")
        ]

    @classmethod
    def movement(cls,
                 date_from: Optional[date] = None,
                 date_to: Optional[date] = None,
                 type_filter: str = "ALL") -> Dict[str, Any]:
        start, end = cls.resolve_period(date_from, date_to)
        rows = cls.movement_rows(start, end, type_filter)

        return success_response({
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "type": (type_filter or "ALL").upper(),
            "rows": rows,
            "chart": cls.daily_values(cls.period_transactions(start, end, (type_filter or "ALL").upper())),
        })

    @classmethod
    def low_stock_rows(cls) -> List[Dict[str, Any]]:
        products = Product.objects.filter(
            current_stock__lte=F("min_stock")
        ).order_by("current_stock", "name")

        return [
            {
                "product_id": product.id,
                "code": product.code,
                "name": product.name,
                "category": product.category,
                "current_stock": product.current_stock,
                "min_stock": product.min_stock,
                "unit": product.unit,
                "status": low_stock_status(product),
                "suggested_order": suggested_order(product),
            }
            for product in products
        ]

    @classmethod
    def low_stock(cls) -> Dict[str, Any]:
        rows = cls.low_stock_rows()
        return success_response({
            "rows": rows,
            "count": len(rows),
        })

    @classmethod
    def product_movement(cls,
                         product_id: int,
                         date_from: Optional[date] = None,
                         date_to: Optional[date] = None) -> Dict[str, Any]:
        """Movement lines for one product, newest first."""
        start, end = cls.resolve_period(date_from, date_to)
        partner_names = PartnerService.name_map()

        lines = []
        for tx in cls.period_transactions(start, end).order_by("-created_at", "-id"):
            for item in tx.items:
                if item["product_id"] != product_id:
                    continue
                lines.append({
                    "transaction_id": tx.id,
                    "date": tx.date.isoformat(),
                    "type": tx.type,
                    "reference_no": tx.reference_no,
                    "partner_name": partner_names.get(tx.partner_id),
                    "quantity": item["quantity"],
                    "price_per_unit": item["price_per_unit"],
                })

        return success_response({
            "product_id": product_id,
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "lines": lines,
            "total_in": sum(l["quantity"] for l in lines if l["type"] == Transaction.TransactionType.IN),
            "total_out": sum(l["quantity"] for l in lines if l["type"] == Transaction.TransactionType.OUT),
        })
