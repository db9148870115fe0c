from django.urls import path
from . import views, ai_views

app_name = "stock"

urlpatterns = [
    path("settings/", views.CompanySettingsView.as_view(), name="settings"),

    path("locations/", views.LocationListView.as_view(), name="location-list"),
    path("locations/<int:location_id>/", views.LocationDetailView.as_view(), name="location-detail"),

    path("products/", views.ProductListView.as_view(), name="product-list"),
    path("products/categories/", views.ProductCategoriesView.as_view(), name="product-categories"),
    path("products/import/", views.ProductImportView.as_view(), name="product-import"),
    path("products/<int:product_id>/", views.ProductDetailView.as_view(), name="product-detail"),
    path("products/<int:product_id>/movement/", views.ProductMovementView.as_view(), name="product-movement"),

    path("partners/", views.PartnerListView.as_view(), name="partner-list"),
    path("partners/<int:partner_id>/", views.PartnerDetailView.as_view(), name="partner-detail"),

    path("transactions/", views.TransactionListView.as_view(), name="transaction-list"),
    path("transactions/<int:tx_id>/", views.TransactionDetailView.as_view(), name="transaction-detail"),

    path("orders/", views.OrderListView.as_view(), name="order-list"),
    path("orders/<int:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),
    path("orders/<int:order_id>/confirm/", views.OrderConfirmView.as_view(), name="order-confirm"),
    path("orders/<int:order_id>/fulfill/", views.OrderFulfillView.as_view(), name="order-fulfill"),
    path("orders/<int:order_id>/cancel/", views.OrderCancelView.as_view(), name="order-cancel"),
    path("orders/<int:order_id>/reopen/", views.OrderReopenView.as_view(), name="order-reopen"),
    path("orders/<int:order_id>/stock-check/", views.OrderStockCheckView.as_view(), name="order-stock-check"),

    path("restock/", views.RestockPlanView.as_view(), name="restock-plan"),
    path("restock/commit/", views.RestockCommitView.as_view(), name="restock-commit"),

    path("opnames/", views.OpnameListView.as_view(), name="opname-list"),
    path("opnames/snapshot/", views.OpnameSnapshotView.as_view(), name="opname-snapshot"),
    path("opnames/<int:opname_id>/", views.OpnameDetailView.as_view(), name="opname-detail"),
    path("opnames/<int:opname_id>/complete/", views.OpnameCompleteView.as_view(), name="opname-complete"),

    path("reports/dashboard/", views.DashboardView.as_view(), name="report-dashboard"),
    path("reports/movement/", views.MovementReportView.as_view(), name="report-movement"),
    path("reports/low-stock/", views.LowStockReportView.as_view(), name="report-low-stock"),

    path("export/products/", views.ProductExportView.as_view(), name="export-products"),
    path("export/orders/", views.OrderExportView.as_view(), name="export-orders"),
    path("export/orders/<int:order_id>/", views.OrderDetailExportView.as_view(), name="export-order-detail"),
    path("export/low-stock/", views.LowStockExportView.as_view(), name="export-low-stock"),
    path("export/movement/", views.MovementExportView.as_view(), name="export-movement"),

    path("backup/export/", views.BackupExportView.as_view(), name="backup-export"),
    path("backup/import/", views.BackupImportView.as_view(), name="backup-import"),
    path("backup/reset/", views.ResetDataView.as_view(), name="backup-reset"),

    path("ai/analysis/", ai_views.InventoryAnalysisView.as_view(), name="ai-analysis"),
]
