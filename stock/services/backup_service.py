"""
Whole-collection backup and restore.

Each collection is exported under its storage key as a list of records in
Django's "python" serialization format, so primary keys (and therefore every
weak reference between documents) survive a round trip. Restoring a
collection overwrites it entirely; collections missing from the backup are
emptied, or reset to their defaults for settings and users.
"""

import json
import logging
from typing import Dict, Any

from django.core import serializers
from django.core.serializers.base import DeserializationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from main.models import User, Session
from main.services.user_service import UserService
from stock.models import (
    Product, Partner, Transaction, StockOpname, Order, StorageLocation, CompanySettings
)
from stock.services.base_service import ValidationError

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "inv_products": Product,
    "inv_partners": Partner,
    "inv_transactions": Transaction,
    "inv_opnames": StockOpname,
    "inv_orders": Order,
    "inv_locations": StorageLocation,
    "inv_settings": CompanySettings,
    "inv_all_users": User,
}


def _serialize(model) -> list:
    return serializers.serialize("python", model.objects.all())


def export_collections() -> Dict[str, Any]:
    CompanySettings.load()
    return {key: _serialize(model) for key, model in COLLECTIONS.items()}


def dumps(blobs: Dict[str, Any]) -> str:
    return json.dumps(blobs, cls=DjangoJSONEncoder, indent=2)


def loads(content: str) -> Dict[str, Any]:
    try:
        blobs = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Backup is not valid JSON: {exc}", "file")
    if not isinstance(blobs, dict):
        raise ValidationError("Backup must be a JSON object keyed by collection", "file")
    return blobs


def _restore(key: str, model, records: list) -> int:
    try:
        objects = list(serializers.deserialize("python", records, ignorenonexistent=True))
    except DeserializationError as exc:
        raise ValidationError(f"Could not restore {key}: {exc}", key)

    for deserialized in objects:
        if not isinstance(deserialized.object, model):
            raise ValidationError(f"{key} contains records of another collection", key)
        deserialized.save()
    return len(objects)


@transaction.atomic
def import_collections(blobs: Dict[str, Any]) -> Dict[str, int]:
    counts = {}

    Session.objects.all().delete()
    for key, model in COLLECTIONS.items():
        model.objects.all().delete()
        counts[key] = _restore(key, model, blobs.get(key) or [])

    if not counts["inv_settings"]:
        CompanySettings.load()
    if not counts["inv_all_users"]:
        UserService.seed_defaults()

    logger.warning("Collections restored from backup: %s", counts)
    return counts


@transaction.atomic
def reset_data() -> None:
    Session.objects.all().delete()
    for model in COLLECTIONS.values():
        model.objects.all().delete()

    CompanySettings.load()
    UserService.seed_defaults()
    logger.warning("All inventory data reset to defaults")
