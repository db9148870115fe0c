import logging
from typing import Dict, Any, Optional

from django.db import transaction
from django.db.models import Count, Sum, F, DecimalField, ExpressionWrapper

from stock.models import StorageLocation, Product
from stock.services.base_service import (
    BaseService, success_response, ValidationError, NotFoundError
)

logger = logging.getLogger(__name__)


class StorageLocationService(BaseService):
    model = StorageLocation

    @classmethod
    def serialize(cls, location: StorageLocation, include_stats: bool = False) -> Dict[str, Any]:
        data = {
            "id": location.id,
            "uuid": str(location.uuid),
            "name": location.name,
            "description": location.description,
            "created_at": location.created_at.isoformat(),
        }

        if include_stats:
            stats = Product.objects.filter(location_id=location.id).aggregate(
                product_count=Count("id"),
                total_quantity=Sum("current_stock"),
                total_value=Sum(
                    ExpressionWrapper(F("current_stock") * F("price"), output_field=DecimalField())
                ),
            )
            data["stats"] = {
                "product_count": stats["product_count"] or 0,
                "total_quantity": stats["total_quantity"] or 0,
                "total_value": str(stats["total_value"] or 0),
            }

        return data

    @classmethod
    def list(cls, search: str = None, include_stats: bool = False) -> Dict[str, Any]:
        queryset = cls.model.objects.all()

        if search:
            queryset = queryset.filter(name__icontains=search)

        locations = [cls.serialize(loc, include_stats=include_stats) for loc in queryset.order_by("name")]

        return success_response({
            "locations": locations,
            "count": len(locations),
        })

    @classmethod
    def get(cls, location_id: int) -> Dict[str, Any]:
        location = cls.get_or_404(location_id)
        return success_response({
            "location": cls.serialize(location, include_stats=True)
        })

    @classmethod
    def find_by_name(cls, name: str) -> Optional[StorageLocation]:
        name = (name or "").strip()
        if not name:
            return None
        return cls.model.objects.filter(name__iexact=name).order_by("id").first()

    @classmethod
    @transaction.atomic
    def resolve(cls, name: str) -> Optional[StorageLocation]:
        """
        Get-or-create a location by case-insensitive name.
        An empty name resolves to no location.
        """
        name = (name or "").strip()
        if not name:
            return None

        location = cls.find_by_name(name)
        if location:
            return location

        location = cls.model.objects.create(name=name)
        logger.info("Created storage location '%s' on demand", name)
        return location

    @classmethod
    @transaction.atomic
    def create(cls, name: str, description: str = "") -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Location name is required", "name")

        if cls.find_by_name(name):
            raise ValidationError(f"Location '{name}' already exists", "name")

        location = cls.model.objects.create(name=name, description=description or "")

        return success_response({
            "id": location.id,
            "location": cls.serialize(location)
        }, f"Location '{name}' created")

    @classmethod
    @transaction.atomic
    def update(cls, location_id: int, **kwargs) -> Dict[str, Any]:
        location = cls.get_or_404(location_id)

        if "name" in kwargs:
            name = (kwargs["name"] or "").strip()
            if not name:
                raise ValidationError("Location name is required", "name")
            duplicate = cls.model.objects.filter(name__iexact=name).exclude(id=location.id)
            if duplicate.exists():
                raise ValidationError(f"Location '{name}' already exists", "name")
            location.name = name

        if "description" in kwargs:
            location.description = kwargs["description"] or ""

        location.save()

        return success_response({
            "location": cls.serialize(location)
        }, "Location updated")

    @classmethod
    @transaction.atomic
    def delete(cls, location_id: int) -> Dict[str, Any]:
        location = cls.get_by_id(location_id)
        if not location:
            raise NotFoundError("Location", location_id)

        # Products keep the id; lookups treat it as unassigned
        orphaned = Product.objects.filter(location_id=location.id).count()
        name = location.name
        location.delete()

        if orphaned:
            logger.info("Deleted location '%s' still referenced by %d product(s)", name, orphaned)

        return success_response({
            "orphaned_products": orphaned
        }, f"Location '{name}' deleted")

    @classmethod
    def name_map(cls) -> Dict[int, str]:
        return dict(cls.model.objects.values_list("id", "name"))
