import uuid as uuid_lib

from django.db import models
from django.utils import timezone


class StorageLocation(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    code = models.CharField(max_length=50, db_index=True)
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=100, default="General")
    unit = models.CharField(max_length=30, default="Pcs")
    min_stock = models.PositiveIntegerField(default=5)
    price = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    # Running balance, adjusted by transactions and opname. May go negative.
    current_stock = models.IntegerField(default=0)

    # Weak reference: a deleted location leaves a dangling id that reads as unassigned
    location = models.ForeignKey(
        StorageLocation,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def is_low_stock(self):
        return self.current_stock <= self.min_stock

    @property
    def stock_value(self):
        return self.current_stock * self.price


class Partner(models.Model):
    class PartnerType(models.TextChoices):
        SUPPLIER = "SUPPLIER", "Supplier"
        CUSTOMER = "CUSTOMER", "Customer"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=PartnerType.choices)
    contact = models.CharField(max_length=100, blank=True, default="")
    address = models.TextField(blank=True, default="")
    email = models.CharField(max_length=254, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.get_type_display()})"


class Transaction(models.Model):
    """
    A stock movement. Items are stored as a snapshot list of
    {product_id, product_name, product_code, unit, quantity, price_per_unit}
    so the record survives product edits and deletions.
    """

    class TransactionType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    type = models.CharField(max_length=3, choices=TransactionType.choices)
    date = models.DateField(default=timezone.localdate)
    partner = models.ForeignKey(
        Partner,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="+",
    )
    reference_no = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    items = models.JSONField(default=list)
    total_value = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.type} {self.reference_no or self.id} ({self.date})"


class Order(models.Model):
    class OrderType(models.TextChoices):
        PO = "PO", "Purchase Order"
        SO = "SO", "Sales Order"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        OPEN = "OPEN", "Open"
        PARTIALLY_FULFILLED = "PARTIALLY_FULFILLED", "Partially Fulfilled"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    order_number = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=2, choices=OrderType.choices)
    partner = models.ForeignKey(
        Partner,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="+",
    )
    date = models.DateField(default=timezone.localdate)
    expected_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )
    items = models.JSONField(default=list)
    total_value = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    notes = models.TextField(blank=True, default="")
    related_transaction = models.ForeignKey(
        Transaction,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="+",
    )
    cancel_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.order_number} ({self.get_status_display()})"

    @property
    def is_terminal(self):
        return self.status in (self.Status.COMPLETED, self.Status.CANCELLED)


class StockOpname(models.Model):
    """Physical stock count. Items: {product_id, product_name, system_qty, physical_qty, difference}."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        COMPLETED = "COMPLETED", "Completed"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True, default="")
    items = models.JSONField(default=list)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "stock opname"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Opname {self.date} ({self.get_status_display()})"


class CompanySettings(models.Model):
    """
    Singleton settings table. Use CompanySettings.load() to get the instance.
    """

    DEFAULTS = {
        "name": "PT MODULAR GLOBAL TEKINDO",
        "address": "Jl. manglid NO.42, Margahayu Selatan, Kec.Margahayu, Kab.Bandung, Jawa barat 40226",
        "phone": "02254439313",
        "email": "admin@modularglobal.com",
        "logo_url": "",
        "currency": "IDR",
    }

    name = models.CharField(max_length=200, default=DEFAULTS["name"])
    address = models.TextField(blank=True, default=DEFAULTS["address"])
    phone = models.CharField(max_length=50, blank=True, default=DEFAULTS["phone"])
    email = models.CharField(max_length=254, blank=True, default=DEFAULTS["email"])
    logo_url = models.CharField(max_length=500, blank=True, default="")
    currency = models.CharField(max_length=10, default=DEFAULTS["currency"])

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "company settings"
        verbose_name_plural = "company settings"

    def save(self, *args, **kwargs):
        # Enforce singleton: always use pk=1
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def __str__(self):
        return "Company Settings"
