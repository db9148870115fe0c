import io
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from openpyxl import Workbook, load_workbook

from stock.models import Order, Product, StorageLocation
from stock.services import (
    ReportService, ExportService, OrderService, TransactionService, ValidationError,
)
from stock.services.export_service import PRODUCT_COLUMNS, ORDER_COLUMNS, LOW_STOCK_COLUMNS
from stock.tests.conftest import line


def header(content):
    sheet = load_workbook(io.BytesIO(content)).active
    return [cell.value for cell in sheet[1]]


@pytest.mark.django_db
class TestReports:

    def test_summary_counts_value_and_low_stock(self, product, second_product):
        summary = ReportService.summary()

        assert summary["total_products"] == 2
        assert summary["low_stock"] == 1
        assert summary["total_items"] == 14
        assert Decimal(summary["total_value"]) == Decimal("252000")

    def test_location_stats_has_unassigned_bucket(self, product, second_product):
        rows = ReportService.location_stats()

        by_name = {row["name"]: row for row in rows}
        assert by_name["Rack A"]["total_qty"] == 10
        assert by_name["Unassigned"]["total_qty"] == 4

    def test_dangling_location_reads_as_unassigned(self, product):
        StorageLocation.objects.filter(id=product.location_id).delete()
        rows = ReportService.location_stats()
        assert [(row["name"], row["total_qty"]) for row in rows] == [("Unassigned", 10)]

    def test_dashboard_period_values(self, product, supplier, customer):
        TransactionService.add_transaction("IN", [line(product, 4, "1000")], partner_id=supplier.id)
        TransactionService.add_transaction("OUT", [line(product, 2, "3000")], partner_id=customer.id)

        data = ReportService.dashboard(period="today")

        assert data["stats"]["period_in_value"] == "4000.00"
        assert data["stats"]["period_out_value"] == "6000.00"
        assert data["stats"]["net"] == "2000.00"
        assert len(data["recent_activity"]) == 2
        assert data["financial_trend"][0]["income"] == "6000.00"
        assert data["financial_trend"][0]["expense"] == "4000.00"

    def test_dashboard_counts_open_orders(self, product, supplier):
        result = OrderService.create(type="PO", partner_id=supplier.id, items=[line(product, 1)])
        assert ReportService.dashboard()["open_orders"] == 0

        OrderService.confirm(result["id"])
        assert ReportService.dashboard()["open_orders"] == 1

    def test_movement_rows(self, product, second_product):
        TransactionService.add_transaction("IN", [line(product, 5)])
        TransactionService.add_transaction("OUT", [line(product, 3), line(second_product, 1)])

        today = timezone.localdate()
        rows = {r["code"]: r for r in ReportService.movement_rows(today, today)}

        assert (rows["P-001"]["period_in"], rows["P-001"]["period_out"]) == (5, 3)
        assert rows["P-001"]["ending_stock"] == 12
        assert (rows["P-002"]["period_in"], rows["P-002"]["period_out"]) == (0, 1)

        out_only = {r["code"]: r for r in ReportService.movement_rows(today, today, "OUT")}
        assert out_only["P-001"]["period_in"] == 0

    def test_movement_outside_period_is_ignored(self, product):
        TransactionService.add_transaction(
            "IN", [line(product, 5)], date=timezone.localdate() - timedelta(days=40)
        )
        today = timezone.localdate()
        rows = ReportService.movement_rows(today - timedelta(days=7), today)
        assert rows[0]["period_in"] == 0

    def test_invalid_period_and_type(self):
        with pytest.raises(ValidationError):
            ReportService.movement(date_from="2026-02-01", date_to="2026-01-01")
        with pytest.raises(ValidationError):
            ReportService.movement(type_filter="SIDEWAYS")

    def test_low_stock_rows(self, product, second_product):
        Product.objects.create(code="Z", name="Zero", min_stock=3, current_stock=0)
        rows = ReportService.low_stock_rows()

        assert [(r["code"], r["status"], r["suggested_order"]) for r in rows] == [
            ("Z", "OUT", 6),
            ("P-002", "LOW", 36),
        ]


@pytest.mark.django_db
class TestExports:

    def test_product_export_columns(self, product):
        content = ExportService.products()
        assert header(content) == PRODUCT_COLUMNS

        sheet = load_workbook(io.BytesIO(content)).active
        row = [cell.value for cell in sheet[2]]
        assert row[:5] == ["P-001", "Steel Plate", "Raw Material", "Rack A", "Sheet"]

    def test_order_export_columns(self, product, supplier):
        OrderService.create(type="PO", partner_id=supplier.id, items=[line(product, 1)])
        content = ExportService.orders(type_filter="PO")
        assert header(content) == ORDER_COLUMNS

        sheet = load_workbook(io.BytesIO(content)).active
        assert sheet.max_row == 2
        assert sheet["C2"].value == "Purchase Order"
        assert sheet["D2"].value == "PT Sumber Baja"
        assert sheet["E2"].value == "Raw Material"

    def test_low_stock_export_columns(self, second_product):
        assert header(ExportService.low_stock()) == LOW_STOCK_COLUMNS

    def test_movement_export_has_period_headers(self, product):
        content = ExportService.movement(date_from="2026-01-01", date_to="2026-01-31")
        assert header(content)[3] == "In (2026-01-01 to 2026-01-31)"

    def test_order_detail_ends_with_total(self, product, supplier):
        result = OrderService.create(
            type="PO", partner_id=supplier.id, items=[line(product, 3, "2000")]
        )
        sheet = load_workbook(io.BytesIO(ExportService.order_detail(result["id"]))).active

        last = [cell.value for cell in sheet[sheet.max_row]]
        assert last[4:] == ["TOTAL", 6000]
        assert sheet["B2"].value == Order.objects.get().order_number

    def test_filename_is_dated(self):
        assert ExportService.filename("products") == f"products_{timezone.localdate().isoformat()}.xlsx"


def workbook_bytes(rows):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(PRODUCT_COLUMNS)
    for row in rows:
        sheet.append(row)
    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


@pytest.mark.django_db
class TestProductImport:

    def test_imports_rows_with_defaults(self):
        content = workbook_bytes([
            ["X-1", "Cable", None, "Rack B", None, 1500, 12, None],
            ["X-2", "Drill", "Tools", None, "Unit", None, None, 2],
        ])

        result = ExportService.import_products(content)

        assert result["created"] == 2
        cable = Product.objects.get(code="X-1")
        assert (cable.category, cable.unit, cable.min_stock, cable.current_stock) == ("General", "Pcs", 5, 12)
        assert StorageLocation.objects.get(id=cable.location_id).name == "Rack B"

        drill = Product.objects.get(code="X-2")
        assert drill.location_id is None
        assert drill.price == 0

    def test_rows_missing_code_or_name_are_skipped(self):
        content = workbook_bytes([
            [None, "No code", None, None, None, 10, 1, 1],
            ["Y-1", "Kept", None, None, None, 10, 1, 1],
        ])

        result = ExportService.import_products(content)

        assert result["created"] == 1
        assert result["skipped"] == 1
        assert result["errors"][0]["row"] == 2

    def test_existing_location_is_reused(self, location):
        ExportService.import_products(workbook_bytes([["L-1", "Item", None, "rack a", None, 1, 1, 1]]))
        assert StorageLocation.objects.count() == 1
        assert Product.objects.get(code="L-1").location_id == location.id

    def test_unreadable_file(self):
        with pytest.raises(ValidationError):
            ExportService.import_products(b"not a spreadsheet")
