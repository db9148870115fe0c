from typing import Dict, Any
from django.db import transaction

from stock.models import CompanySettings
from stock.services.base_service import BaseService, success_response, ValidationError


class CompanySettingsService(BaseService):
    model = CompanySettings

    FIELDS = ["name", "address", "phone", "email", "logo_url", "currency"]

    @classmethod
    def load(cls) -> CompanySettings:
        return CompanySettings.load()

    @classmethod
    def serialize(cls, settings: CompanySettings) -> Dict[str, Any]:
        data = {field: getattr(settings, field) for field in cls.FIELDS}
        data["updated_at"] = settings.updated_at.isoformat() if settings.updated_at else None
        return data

    @classmethod
    def get_all(cls) -> Dict[str, Any]:
        return success_response({
            "settings": cls.serialize(cls.load())
        })

    @classmethod
    @transaction.atomic
    def update(cls, **kwargs) -> Dict[str, Any]:
        settings = cls.load()

        if "name" in kwargs and not (kwargs["name"] or "").strip():
            raise ValidationError("Company name is required", "name")

        if "currency" in kwargs:
            currency = (kwargs["currency"] or "").strip().upper()
            if not currency:
                raise ValidationError("Currency is required", "currency")
            kwargs["currency"] = currency

        for field in cls.FIELDS:
            if field in kwargs:
                setattr(settings, field, (kwargs[field] or "").strip())

        settings.save()

        return success_response({
            "settings": cls.serialize(settings)
        }, "Settings updated")

    @classmethod
    @transaction.atomic
    def reset(cls) -> CompanySettings:
        CompanySettings.objects.all().delete()
        settings = CompanySettings(**CompanySettings.DEFAULTS)
        settings.save()
        return settings
