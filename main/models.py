"""
Users and login sessions.
"""

import uuid

from django.db import models


class User(models.Model):
    class RoleChoices(models.TextChoices):
        ADMIN = "ADMIN", "Admin"
        INVENTORY = "INVENTORY", "Inventory Staff"
        PPIC = "PPIC", "PPIC Staff"
        PROJECT = "PROJECT", "Project Staff"
        MANAGER = "MANAGER", "Manager"

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    username = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    password = models.CharField(max_length=128)

    role = models.CharField(
        max_length=10,
        choices=RoleChoices.choices,
        default=RoleChoices.INVENTORY
    )

    last_login_at = models.DateTimeField(null=True, blank=True)
    last_login_api = models.CharField(max_length=45, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["username"]

    @property
    def is_authenticated(self):
        return True

    def __str__(self):
        return f"{self.name} ({self.username})"


class Session(models.Model):
    user_id = models.ForeignKey(User, on_delete=models.CASCADE, null=True, blank=True)
    ip_address = models.CharField(max_length=45)
    user_agent = models.CharField(max_length=200, null=True, blank=True, default='Chrome')
    payload = models.CharField(max_length=20, null=True, blank=True)
    last_activity = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Session of {self.user_id} from {self.ip_address}"
