"""
Inventory ledger services.

Usage:
    from stock.services import TransactionService, OrderService

    # Record goods received
    TransactionService.create(type="IN", partner_id=1, items=[{"product_id": 1, "quantity": 10}])

    # Ship a confirmed sales order
    OrderService.fulfill(order_id=3)
"""

# Base utilities
from stock.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    BusinessRuleError,
    InsufficientStockError,
    success_response,
    paginate_queryset,
    to_decimal,
    to_int,
    to_quantity,
    round_decimal,
    parse_date,
    generate_number,
    get_date_range,
    BaseService,
)

# Catalog
from .settings_service import CompanySettingsService
from .location_service import StorageLocationService
from .product_service import ProductService
from .partner_service import PartnerService

# Ledger
from .transaction_service import TransactionService
from .order_service import OrderService
from .opname_service import StockOpnameService
from .restock_service import RestockService, RestockPlan, SupplierGroup, RestockItem

# Reporting
from .report_service import ReportService
from .export_service import ExportService, XLSX_CONTENT_TYPE
from .ai_assistant_service import InventoryAnalysisService

from . import backup_service


__all__ = [
    'ServiceError', 'ValidationError', 'NotFoundError', 'BusinessRuleError', 'InsufficientStockError',
    'success_response', 'paginate_queryset', 'to_decimal', 'to_int', 'to_quantity', 'round_decimal',
    'parse_date', 'generate_number', 'get_date_range', 'BaseService',
    'CompanySettingsService', 'StorageLocationService', 'ProductService', 'PartnerService',
    'TransactionService', 'OrderService', 'StockOpnameService',
    'RestockService', 'RestockPlan', 'SupplierGroup', 'RestockItem',
    'ReportService', 'ExportService', 'XLSX_CONTENT_TYPE', 'InventoryAnalysisService',
    'backup_service',
]
