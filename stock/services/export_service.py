"""
Spreadsheet exports and the product catalog import.

Workbooks are built with openpyxl and returned as bytes so views can
stream them as downloads and management commands can write them to disk.
"""

import io
import zipfile
import logging
from typing import Dict, Any, List, Iterable, Optional
from datetime import date

from django.db import transaction
from django.utils import timezone
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException

from stock.models import Product, Order
from stock.services.base_service import (
    success_response, ValidationError, to_decimal, to_int
)
from stock.services.location_service import StorageLocationService
from stock.services.partner_service import PartnerService
from stock.services.order_service import OrderService
from stock.services.report_service import ReportService

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PRODUCT_COLUMNS = ["Code", "Name", "Category", "Location", "Unit", "Price", "Stock", "Min Stock"]
ORDER_COLUMNS = ["Date", "Order No.", "Type", "Partner", "Categories", "Item Count", "Total Value", "Status", "Notes"]
LOW_STOCK_COLUMNS = ["Code", "Name", "Category", "Stock", "Min Stock", "Status", "Suggested Order"]
ORDER_ITEM_COLUMNS = ["Code", "Name", "Qty", "Unit", "Unit Price", "Line Total"]

ORDER_TYPE_LABELS = {
    Order.OrderType.PO: "Purchase Order",
    Order.OrderType.SO: "Sales Order",
}


def _workbook_bytes(workbook: Workbook) -> bytes:
    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


def _sheet(title: str, headers: List[str], rows: Iterable[List[Any]]) -> Workbook:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        sheet.append(row)
    return workbook


class ExportService:

    @classmethod
    def filename(cls, prefix: str) -> str:
        return f"{prefix}_{timezone.localdate().isoformat()}.xlsx"

    @classmethod
    def products(cls) -> bytes:
        location_names = StorageLocationService.name_map()
        rows = (
            [
                p.code,
                p.name,
                p.category,
                location_names.get(p.location_id, "") if p.location_id else "",
                p.unit,
                float(p.price),
                p.current_stock,
                p.min_stock,
            ]
            for p in Product.objects.order_by("name")
        )
        return _workbook_bytes(_sheet("Products", PRODUCT_COLUMNS, rows))

    @classmethod
    def orders(cls, type_filter: str = None, status: str = None) -> bytes:
        queryset = Order.objects.all()
        if type_filter:
            queryset = queryset.filter(type=type_filter.upper())
        if status:
            queryset = queryset.filter(status=status.upper())

        partner_names = PartnerService.name_map()
        categories = dict(Product.objects.values_list("id", "category"))

        def order_categories(order: Order) -> str:
            names = []
            for item in order.items:
                category = categories.get(item["product_id"])
                if category and category not in names:
                    names.append(category)
            return ", ".join(names)

        rows = (
            [
                o.date.isoformat(),
                o.order_number,
                ORDER_TYPE_LABELS.get(o.type, o.type),
                partner_names.get(o.partner_id, "Unknown"),
                order_categories(o),
                len(o.items),
                float(o.total_value),
                o.status,
                o.notes,
            ]
            for o in queryset
        )
        return _workbook_bytes(_sheet("Orders", ORDER_COLUMNS, rows))

    @classmethod
    def low_stock(cls) -> bytes:
        rows = (
            [
                r["code"],
                r["name"],
                r["category"],
                r["current_stock"],
                r["min_stock"],
                r["status"],
                r["suggested_order"],
            ]
            for r in ReportService.low_stock_rows()
        )
        return _workbook_bytes(_sheet("Low Stock", LOW_STOCK_COLUMNS, rows))

    @classmethod
    def movement(cls, date_from: Optional[date] = None, date_to: Optional[date] = None,
                 type_filter: str = "ALL") -> bytes:
        start, end = ReportService.resolve_period(date_from, date_to)
        headers = [
            "Code", "Name", "Category",
            f"In ({start.isoformat()} to {end.isoformat()})",
            f"Out ({start.isoformat()} to {end.isoformat()})",
            "Ending Stock", "Unit",
        ]
        rows = (
            [r["code"], r["name"], r["category"], r["period_in"], r["period_out"], r["ending_stock"], r["unit"]]
            for r in ReportService.movement_rows(start, end, type_filter)
        )
        return _workbook_bytes(_sheet("Movement", headers, rows))

    @classmethod
    def order_detail(cls, order_id: int) -> bytes:
        order = OrderService.get_or_404(order_id)
        partner = PartnerService.get_by_id(order.partner_id) if order.partner_id else None

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = order.order_number[:31]

        header_rows = [
            [ORDER_TYPE_LABELS.get(order.type, order.type)],
            ["Order No.", order.order_number],
            ["Date", order.date.isoformat()],
            ["Status", order.status],
            ["Partner", partner.name if partner else "Unknown"],
            ["Address", partner.address if partner else ""],
            ["Contact", partner.contact if partner else ""],
            [],
        ]
        for row in header_rows:
            sheet.append(row)
        sheet["A1"].font = Font(bold=True, size=14)

        sheet.append(ORDER_ITEM_COLUMNS)
        for cell in sheet[sheet.max_row]:
            cell.font = Font(bold=True)

        for item in order.items:
            price = to_decimal(item["price_per_unit"])
            sheet.append([
                item.get("product_code", ""),
                item.get("product_name", ""),
                item["quantity"],
                item.get("unit", ""),
                float(price),
                float(price * item["quantity"]),
            ])

        sheet.append(["", "", "", "", "TOTAL", float(order.total_value)])
        for cell in sheet[sheet.max_row]:
            cell.font = Font(bold=True)

        return _workbook_bytes(workbook)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    @classmethod
    def read_rows(cls, content: bytes) -> List[List[Any]]:
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
            raise ValidationError(f"Could not read spreadsheet: {exc}", "file")

        sheet = workbook.worksheets[0]
        rows = [list(row) for row in sheet.iter_rows(min_row=2, values_only=True)]
        workbook.close()
        return rows

    @classmethod
    @transaction.atomic
    def import_products(cls, content: bytes) -> Dict[str, Any]:
        """
        Create products from the first sheet (header row skipped), columns as
        in the catalog export. Rows without a code or name are skipped.
        """
        created = 0
        skipped = 0
        errors = []

        for index, row in enumerate(cls.read_rows(content), start=2):
            row = (row + [None] * len(PRODUCT_COLUMNS))[:len(PRODUCT_COLUMNS)]
            code, name, category, location_name, unit, price, stock, min_stock = row

            code = str(code).strip() if code is not None else ""
            name = str(name).strip() if name is not None else ""
            if not code or not name:
                if any(value not in (None, "") for value in row):
                    skipped += 1
                    errors.append({"row": index, "error": "Code and name are required"})
                continue

            price = to_decimal(price)
            if price < 0:
                skipped += 1
                errors.append({"row": index, "error": "Price cannot be negative"})
                continue

            Product.objects.create(
                code=code,
                name=name,
                category=(str(category).strip() if category else "") or "General",
                unit=(str(unit).strip() if unit else "") or "Pcs",
                price=price,
                current_stock=to_int(stock, 0),
                min_stock=max(to_int(min_stock, 5), 0),
                location=StorageLocationService.resolve(str(location_name) if location_name else ""),
            )
            created += 1

        logger.info("Product import: %d created, %d skipped", created, skipped)

        return success_response({
            "created": created,
            "skipped": skipped,
            "errors": errors,
        }, f"{created} product(s) imported")
