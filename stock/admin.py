from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin
from unfold.decorators import display
from unfold.contrib.filters.admin import (
    RangeDateFilter,
    RangeNumericFilter,
)
from .models import (
    StorageLocation, Product, Partner, Transaction, Order, StockOpname, CompanySettings
)


def _money(value):
    return f"{value:,.2f}"


@admin.register(StorageLocation)
class StorageLocationAdmin(ModelAdmin):
    list_display = ['id', 'name', 'description', 'product_count', 'created_at']
    search_fields = ['name', 'description']

    @display(description=_("Products"))
    def product_count(self, obj):
        return Product.objects.filter(location_id=obj.id).count()


@admin.register(Product)
class ProductAdmin(ModelAdmin):
    list_display = ['code', 'name', 'category', 'location_name', 'stock_badge', 'min_stock', 'price_display']
    list_filter = [
        'category',
        ('price', RangeNumericFilter),
        ('current_stock', RangeNumericFilter),
    ]
    search_fields = ['code', 'name', 'category']
    list_filter_submit = True
    list_fullwidth = True
    raw_id_fields = ['location']

    fieldsets = (
        (_('Product'), {
            'fields': ('code', 'name', 'category', 'unit', 'location')
        }),
        (_('Stock & Price'), {
            'fields': ('current_stock', 'min_stock', 'price')
        }),
    )

    @display(description=_("Location"))
    def location_name(self, obj):
        # Weak reference: the location row may be gone
        if not obj.location_id:
            return "-"
        location = StorageLocation.objects.filter(id=obj.location_id).first()
        return location.name if location else "-"

    @display(description=_("Stock"), label=True)
    def stock_badge(self, obj):
        if obj.current_stock <= 0:
            return 'danger', obj.current_stock
        if obj.is_low_stock:
            return 'warning', obj.current_stock
        return 'success', obj.current_stock

    @display(description=_("Price"), ordering='price')
    def price_display(self, obj):
        return _money(obj.price)


@admin.register(Partner)
class PartnerAdmin(ModelAdmin):
    list_display = ['id', 'name', 'type_badge', 'contact', 'email']
    list_filter = ['type']
    search_fields = ['name', 'contact', 'email']

    @display(description=_("Type"), label=True)
    def type_badge(self, obj):
        if obj.type == Partner.PartnerType.SUPPLIER:
            return 'info', obj.get_type_display()
        return 'success', obj.get_type_display()


class LedgerAdminMixin:
    """Ledger rows carry stock effects; edits go through the API services."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(LedgerAdminMixin, ModelAdmin):
    list_display = ['id', 'date', 'type_badge', 'reference_no', 'partner_id', 'item_count', 'total_display', 'created_at']
    list_filter = [
        'type',
        ('date', RangeDateFilter),
    ]
    search_fields = ['reference_no', 'notes']
    list_filter_submit = True

    @display(description=_("Type"), label=True)
    def type_badge(self, obj):
        if obj.type == Transaction.TransactionType.IN:
            return 'success', obj.get_type_display()
        return 'danger', obj.get_type_display()

    @display(description=_("Items"))
    def item_count(self, obj):
        return len(obj.items)

    @display(description=_("Total"), ordering='total_value')
    def total_display(self, obj):
        return _money(obj.total_value)


@admin.register(Order)
class OrderAdmin(LedgerAdminMixin, ModelAdmin):
    list_display = ['order_number', 'type', 'date', 'partner_id', 'status_badge', 'total_display']
    list_filter = [
        'type',
        'status',
        ('date', RangeDateFilter),
    ]
    search_fields = ['order_number', 'notes']
    list_filter_submit = True

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        colors = {
            Order.Status.DRAFT: 'info',
            Order.Status.OPEN: 'warning',
            Order.Status.PARTIALLY_FULFILLED: 'warning',
            Order.Status.COMPLETED: 'success',
            Order.Status.CANCELLED: 'danger',
        }
        return colors.get(obj.status, 'info'), obj.get_status_display()

    @display(description=_("Total"), ordering='total_value')
    def total_display(self, obj):
        return _money(obj.total_value)


@admin.register(StockOpname)
class StockOpnameAdmin(LedgerAdminMixin, ModelAdmin):
    list_display = ['id', 'date', 'status', 'adjusted_count', 'completed_at']
    list_filter = ['status', ('date', RangeDateFilter)]
    search_fields = ['notes']

    @display(description=_("Adjusted lines"))
    def adjusted_count(self, obj):
        return len(obj.items)


@admin.register(CompanySettings)
class CompanySettingsAdmin(ModelAdmin):
    list_display = ['name', 'phone', 'email', 'currency', 'updated_at']

    def has_add_permission(self, request):
        return not CompanySettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
