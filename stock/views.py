import json
import logging

from django.http import JsonResponse, HttpResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from main.helpers.request import get_bearer_token
from main.services.auth_service import AuthService
from main.services.role_service import RoleService
from stock.services import (
    ServiceError, ValidationError, NotFoundError, BusinessRuleError, InsufficientStockError,
    to_int, to_quantity, parse_date,
    StorageLocationService, ProductService, PartnerService,
    TransactionService, OrderService, StockOpnameService,
    RestockService, RestockPlan,
    CompanySettingsService, ReportService,
    ExportService, XLSX_CONTENT_TYPE,
    backup_service,
)

logger = logging.getLogger(__name__)


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return JsonResponse(data, status=status)


def handle_service_error(e: Exception):
    if isinstance(e, ValidationError):
        return error_response(str(e), "validation_error", 400, {"field": e.field, **e.details})
    elif isinstance(e, NotFoundError):
        return error_response(str(e), "not_found", 404)
    elif isinstance(e, InsufficientStockError):
        return error_response(str(e), "insufficient_stock", 400, e.details)
    elif isinstance(e, BusinessRuleError):
        return error_response(str(e), "business_rule", 400, e.details)
    elif isinstance(e, ServiceError):
        return error_response(str(e), e.code.lower(), 400)
    else:
        logger.exception("Unhandled error in stock API")
        return error_response("Internal server error", "server_error", 500)


class BaseStockView(View):
    """
    Token-authenticated JSON view. ``permissions`` maps a lowercase HTTP
    method to the permission (or tuple of alternatives) it requires.
    """

    permissions = {}

    @method_decorator(csrf_exempt)
    def dispatch(self, request, *args, **kwargs):
        user = AuthService.get_user_from_token(get_bearer_token(request))
        if user is None:
            return error_response("Authentication required", "unauthorized", 401)
        request.user = user

        required = self.permissions.get(request.method.lower())
        if required:
            if isinstance(required, str):
                required = (required,)
            if not any(RoleService.has_permission(user.role, perm) for perm in required):
                return error_response(
                    "You do not have permission to perform this action", "forbidden", 403
                )

        return super().dispatch(request, *args, **kwargs)

    def get_json_body(self, request):
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Invalid JSON body", "body")
        if not isinstance(data, dict):
            raise ValidationError("JSON body must be an object", "body")
        return data

    def get_page(self, request, default_per_page: int = 20):
        return (
            to_int(request.GET.get("page"), 1),
            to_int(request.GET.get("per_page"), default_per_page),
        )

    def success(self, data: dict, status: int = 200):
        return JsonResponse({"success": True, **data}, status=status)

    def xlsx(self, content: bytes, filename: str):
        response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


# ==================== LOCATIONS ====================

class LocationListView(BaseStockView):
    permissions = {"get": "view_inventory", "post": "manage_inventory"}

    def get(self, request):
        try:
            result = StorageLocationService.list(
                search=request.GET.get("search"),
                include_stats=request.GET.get("stats", "false").lower() == "true",
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = StorageLocationService.create(
                name=data.get("name"),
                description=data.get("description", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class LocationDetailView(BaseStockView):
    permissions = {"get": "view_inventory", "put": "manage_inventory", "delete": "manage_inventory"}

    def get(self, request, location_id):
        try:
            return self.success(StorageLocationService.get(location_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, location_id):
        try:
            data = self.get_json_body(request)
            return self.success(StorageLocationService.update(location_id, **data))
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, location_id):
        try:
            return self.success(StorageLocationService.delete(location_id))
        except Exception as e:
            return handle_service_error(e)


# ==================== PRODUCTS ====================

class ProductListView(BaseStockView):
    permissions = {"get": "view_inventory", "post": "manage_inventory"}

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            min_price = request.GET.get("min_price")
            max_price = request.GET.get("max_price")

            result = ProductService.list(
                page=page,
                per_page=per_page,
                search=request.GET.get("search"),
                category=request.GET.get("category"),
                location_id=to_int(request.GET.get("location_id"), None),
                low_stock_only=request.GET.get("low_stock", "false").lower() == "true",
                min_price=min_price or None,
                max_price=max_price or None,
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = ProductService.create(**data)
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class ProductDetailView(BaseStockView):
    permissions = {"get": "view_inventory", "put": "manage_inventory", "delete": "manage_inventory"}

    def get(self, request, product_id):
        try:
            return self.success(ProductService.get(product_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, product_id):
        try:
            data = self.get_json_body(request)
            return self.success(ProductService.update(product_id, **data))
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, product_id):
        try:
            return self.success(ProductService.delete(product_id))
        except Exception as e:
            return handle_service_error(e)


class ProductCategoriesView(BaseStockView):
    permissions = {"get": "view_inventory"}

    def get(self, request):
        try:
            return self.success(ProductService.categories())
        except Exception as e:
            return handle_service_error(e)


class ProductMovementView(BaseStockView):
    permissions = {"get": ("view_inventory", "view_reports")}

    def get(self, request, product_id):
        try:
            ProductService.get_or_404(product_id)
            result = ReportService.product_movement(
                product_id,
                date_from=request.GET.get("date_from"),
                date_to=request.GET.get("date_to"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class ProductImportView(BaseStockView):
    permissions = {"post": "manage_inventory"}

    def post(self, request):
        try:
            upload = request.FILES.get("file")
            if upload is None:
                raise ValidationError("An .xlsx file is required", "file")
            result = ExportService.import_products(upload.read())
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


# ==================== PARTNERS ====================

class PartnerListView(BaseStockView):
    permissions = {"get": "view_partners", "post": "manage_partners"}

    def get(self, request):
        try:
            page, per_page = self.get_page(request, 50)
            result = PartnerService.list(
                page=page,
                per_page=per_page,
                type_filter=request.GET.get("type"),
                search=request.GET.get("search"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = PartnerService.create(
                name=data.get("name"),
                type=data.get("type"),
                contact=data.get("contact", ""),
                address=data.get("address", ""),
                email=data.get("email", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class PartnerDetailView(BaseStockView):
    permissions = {"get": "view_partners", "put": "manage_partners", "delete": "manage_partners"}

    def get(self, request, partner_id):
        try:
            return self.success(PartnerService.get(partner_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, partner_id):
        try:
            data = self.get_json_body(request)
            return self.success(PartnerService.update(partner_id, **data))
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, partner_id):
        try:
            return self.success(PartnerService.delete(partner_id))
        except Exception as e:
            return handle_service_error(e)


# ==================== TRANSACTIONS ====================

class TransactionListView(BaseStockView):
    permissions = {"get": "view_transactions", "post": "manage_transactions"}

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = TransactionService.list(
                page=page,
                per_page=per_page,
                type_filter=request.GET.get("type"),
                partner_id=to_int(request.GET.get("partner_id"), None),
                date_from=parse_date(request.GET.get("date_from"), "date_from"),
                date_to=parse_date(request.GET.get("date_to"), "date_to"),
                search=request.GET.get("search"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = TransactionService.create(**data)
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class TransactionDetailView(BaseStockView):
    permissions = {"get": "view_transactions", "put": "manage_transactions", "delete": "manage_transactions"}

    def get(self, request, tx_id):
        try:
            return self.success(TransactionService.get(tx_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, tx_id):
        try:
            data = self.get_json_body(request)
            return self.success(TransactionService.update(tx_id, **data))
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, tx_id):
        try:
            return self.success(TransactionService.delete(tx_id))
        except Exception as e:
            return handle_service_error(e)


# ==================== ORDERS ====================

class OrderListView(BaseStockView):
    permissions = {"get": "view_orders", "post": "manage_orders"}

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = OrderService.list(
                page=page,
                per_page=per_page,
                type_filter=request.GET.get("type"),
                status=request.GET.get("status"),
                partner_id=to_int(request.GET.get("partner_id"), None),
                date_from=parse_date(request.GET.get("date_from"), "date_from"),
                date_to=parse_date(request.GET.get("date_to"), "date_to"),
                search=request.GET.get("search"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = OrderService.create(
                type=data.get("type"),
                partner_id=data.get("partner_id"),
                items=data.get("items"),
                order_number=data.get("order_number"),
                date=data.get("date"),
                expected_date=data.get("expected_date"),
                notes=data.get("notes", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class OrderDetailView(BaseStockView):
    permissions = {"get": "view_orders", "put": "manage_orders", "delete": "manage_orders"}

    def get(self, request, order_id):
        try:
            return self.success(OrderService.get(order_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, order_id):
        try:
            data = self.get_json_body(request)
            return self.success(OrderService.update(order_id, **data))
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, order_id):
        try:
            return self.success(OrderService.delete(order_id))
        except Exception as e:
            return handle_service_error(e)


class OrderConfirmView(BaseStockView):
    permissions = {"post": ("manage_orders", "approve_orders")}

    def post(self, request, order_id):
        try:
            return self.success(OrderService.confirm(order_id))
        except Exception as e:
            return handle_service_error(e)


class OrderFulfillView(BaseStockView):
    permissions = {"post": "manage_orders"}

    def post(self, request, order_id):
        try:
            return self.success(OrderService.fulfill(order_id))
        except Exception as e:
            return handle_service_error(e)


class OrderCancelView(BaseStockView):
    permissions = {"post": "manage_orders"}

    def post(self, request, order_id):
        try:
            data = self.get_json_body(request)
            return self.success(OrderService.cancel(order_id, reason=data.get("reason", "")))
        except Exception as e:
            return handle_service_error(e)


class OrderReopenView(BaseStockView):
    permissions = {"post": "manage_orders"}

    def post(self, request, order_id):
        try:
            return self.success(OrderService.reopen(order_id))
        except Exception as e:
            return handle_service_error(e)


class OrderStockCheckView(BaseStockView):
    permissions = {"get": "view_orders"}

    def get(self, request, order_id):
        try:
            order = OrderService.get_or_404(order_id)
            lines = OrderService.check_stock(order)
            return self.success({
                "order_id": order.id,
                "lines": lines,
                "sufficient": all(line["sufficient"] for line in lines),
            })
        except Exception as e:
            return handle_service_error(e)


# ==================== RESTOCK ====================

class RestockPlanView(BaseStockView):
    """
    GET builds a fresh plan from low-stock products. POST applies one edit
    (assign, quantity, toggle) to a plan sent back by the client.
    """

    permissions = {"get": ("view_inventory", "view_orders"), "post": "manage_orders"}

    def get(self, request):
        try:
            return self.success(RestockService.plan())
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            plan = RestockPlan.from_dict(data.get("plan"))
            action = data.get("action")
            group_id = data.get("group_id")
            product_id = to_int(data.get("product_id"), None)

            if action == "assign":
                RestockService.assign_supplier(plan, group_id, data.get("supplier_id"))
            elif action == "quantity":
                plan.set_quantity(group_id, product_id, to_quantity(data.get("quantity")))
            elif action == "toggle":
                plan.toggle_item(group_id, product_id)
            else:
                raise ValidationError(f"Unknown restock action: {action}", "action")

            return self.success({"plan": plan.to_dict()})
        except Exception as e:
            return handle_service_error(e)


class RestockCommitView(BaseStockView):
    permissions = {"post": "manage_orders"}

    def post(self, request):
        try:
            data = self.get_json_body(request)
            plan = RestockPlan.from_dict(data.get("plan"))
            return self.success(RestockService.commit(plan), 201)
        except Exception as e:
            return handle_service_error(e)


# ==================== STOCK OPNAME ====================

class OpnameListView(BaseStockView):
    permissions = {"get": "view_inventory", "post": "manage_inventory"}

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = StockOpnameService.list(
                page=page,
                per_page=per_page,
                status=request.GET.get("status"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = StockOpnameService.create(
                items=data.get("items"),
                notes=data.get("notes", ""),
                date=data.get("date"),
                status=data.get("status", "COMPLETED"),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class OpnameSnapshotView(BaseStockView):
    permissions = {"get": "manage_inventory"}

    def get(self, request):
        try:
            return self.success(StockOpnameService.snapshot())
        except Exception as e:
            return handle_service_error(e)


class OpnameDetailView(BaseStockView):
    permissions = {"get": "view_inventory", "put": "manage_inventory"}

    def get(self, request, opname_id):
        try:
            return self.success(StockOpnameService.get(opname_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, opname_id):
        try:
            data = self.get_json_body(request)
            return self.success(StockOpnameService.update(opname_id, **data))
        except Exception as e:
            return handle_service_error(e)


class OpnameCompleteView(BaseStockView):
    permissions = {"post": "manage_inventory"}

    def post(self, request, opname_id):
        try:
            return self.success(StockOpnameService.complete(opname_id))
        except Exception as e:
            return handle_service_error(e)


# ==================== SETTINGS ====================

class CompanySettingsView(BaseStockView):
    permissions = {"put": "manage_settings"}

    def get(self, request):
        try:
            return self.success(CompanySettingsService.get_all())
        except Exception as e:
            return handle_service_error(e)

    def put(self, request):
        try:
            data = self.get_json_body(request)
            return self.success(CompanySettingsService.update(**data))
        except Exception as e:
            return handle_service_error(e)


# ==================== REPORTS ====================

class DashboardView(BaseStockView):
    permissions = {"get": "view_dashboard"}

    def get(self, request):
        try:
            result = ReportService.dashboard(
                date_from=request.GET.get("date_from"),
                date_to=request.GET.get("date_to"),
                period=request.GET.get("period"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class MovementReportView(BaseStockView):
    permissions = {"get": "view_reports"}

    def get(self, request):
        try:
            result = ReportService.movement(
                date_from=request.GET.get("date_from"),
                date_to=request.GET.get("date_to"),
                type_filter=request.GET.get("type", "ALL"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class LowStockReportView(BaseStockView):
    permissions = {"get": ("view_inventory", "view_reports")}

    def get(self, request):
        try:
            return self.success(ReportService.low_stock())
        except Exception as e:
            return handle_service_error(e)


# ==================== EXPORTS ====================

class ProductExportView(BaseStockView):
    permissions = {"get": "view_inventory"}

    def get(self, request):
        try:
            return self.xlsx(ExportService.products(), ExportService.filename("products"))
        except Exception as e:
            return handle_service_error(e)


class OrderExportView(BaseStockView):
    permissions = {"get": "view_orders"}

    def get(self, request):
        try:
            content = ExportService.orders(
                type_filter=request.GET.get("type"),
                status=request.GET.get("status"),
            )
            return self.xlsx(content, ExportService.filename("orders"))
        except Exception as e:
            return handle_service_error(e)


class OrderDetailExportView(BaseStockView):
    permissions = {"get": "view_orders"}

    def get(self, request, order_id):
        try:
            content = ExportService.order_detail(order_id)
            return self.xlsx(content, ExportService.filename(f"order_{order_id}"))
        except Exception as e:
            return handle_service_error(e)


class LowStockExportView(BaseStockView):
    permissions = {"get": ("view_inventory", "view_reports")}

    def get(self, request):
        try:
            return self.xlsx(ExportService.low_stock(), ExportService.filename("low_stock"))
        except Exception as e:
            return handle_service_error(e)


class MovementExportView(BaseStockView):
    permissions = {"get": "view_reports"}

    def get(self, request):
        try:
            content = ExportService.movement(
                date_from=request.GET.get("date_from"),
                date_to=request.GET.get("date_to"),
                type_filter=request.GET.get("type", "ALL"),
            )
            return self.xlsx(content, ExportService.filename("movement"))
        except Exception as e:
            return handle_service_error(e)


# ==================== BACKUP ====================

class BackupExportView(BaseStockView):
    permissions = {"get": "manage_settings"}

    def get(self, request):
        try:
            response = HttpResponse(
                backup_service.dumps(backup_service.export_collections()),
                content_type="application/json",
            )
            response["Content-Disposition"] = 'attachment; filename="inventory_backup.json"'
            return response
        except Exception as e:
            return handle_service_error(e)


class BackupImportView(BaseStockView):
    permissions = {"post": "manage_settings"}

    def post(self, request):
        try:
            upload = request.FILES.get("file")
            content = upload.read().decode("utf-8") if upload else request.body.decode("utf-8")
            counts = backup_service.import_collections(backup_service.loads(content))
            return self.success({"message": "Backup restored", "counts": counts})
        except UnicodeDecodeError:
            return error_response("Backup must be UTF-8 encoded JSON", "validation_error", 400)
        except Exception as e:
            return handle_service_error(e)


class ResetDataView(BaseStockView):
    permissions = {"post": "manage_settings"}

    def post(self, request):
        try:
            backup_service.reset_data()
            return self.success({"message": "All data reset to defaults"})
        except Exception as e:
            return handle_service_error(e)
