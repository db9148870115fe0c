from typing import Dict, Any

from django.db import transaction
from django.db.models import Q

from stock.models import Partner, Transaction, Order
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset, ValidationError
)


class PartnerService(BaseService):
    model = Partner

    @classmethod
    def serialize(cls, partner: Partner) -> Dict[str, Any]:
        return {
            "id": partner.id,
            "uuid": str(partner.uuid),
            "name": partner.name,
            "type": partner.type,
            "type_display": partner.get_type_display(),
            "contact": partner.contact,
            "address": partner.address,
            "email": partner.email,
            "created_at": partner.created_at.isoformat(),
        }

    @classmethod
    def list(cls,
             page: int = 1,
             per_page: int = 50,
             type_filter: str = None,
             search: str = None) -> Dict[str, Any]:
        queryset = cls.model.objects.all()

        if type_filter:
            queryset = queryset.filter(type=type_filter.upper())

        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(contact__icontains=search) |
                Q(email__icontains=search)
            )

        partners, pagination = paginate_queryset(queryset.order_by("name"), page, per_page)

        return success_response({
            "partners": [cls.serialize(p) for p in partners],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, partner_id: int) -> Dict[str, Any]:
        partner = cls.get_or_404(partner_id)
        data = cls.serialize(partner)
        data["transaction_count"] = Transaction.objects.filter(partner_id=partner.id).count()
        data["order_count"] = Order.objects.filter(partner_id=partner.id).count()

        return success_response({"partner": data})

    @classmethod
    def _validate_type(cls, partner_type: str) -> str:
        partner_type = (partner_type or "").upper()
        if partner_type not in Partner.PartnerType.values:
            raise ValidationError(f"Invalid partner type: {partner_type}", "type")
        return partner_type

    @classmethod
    @transaction.atomic
    def create(cls,
               name: str,
               type: str,
               contact: str = "",
               address: str = "",
               email: str = "") -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Partner name is required", "name")

        partner = cls.model.objects.create(
            name=name,
            type=cls._validate_type(type),
            contact=contact or "",
            address=address or "",
            email=email or "",
        )

        return success_response({
            "id": partner.id,
            "partner": cls.serialize(partner)
        }, f"Partner '{name}' created")

    @classmethod
    @transaction.atomic
    def update(cls, partner_id: int, **kwargs) -> Dict[str, Any]:
        partner = cls.get_or_404(partner_id)

        if "name" in kwargs:
            name = (kwargs["name"] or "").strip()
            if not name:
                raise ValidationError("Partner name is required", "name")
            partner.name = name

        if "type" in kwargs:
            partner.type = cls._validate_type(kwargs["type"])

        for field in ["contact", "address", "email"]:
            if field in kwargs:
                setattr(partner, field, kwargs[field] or "")

        partner.save()

        return success_response({
            "partner": cls.serialize(partner)
        }, "Partner updated")

    @classmethod
    @transaction.atomic
    def delete(cls, partner_id: int) -> Dict[str, Any]:
        partner = cls.get_or_404(partner_id)
        name = partner.name

        # Transactions and orders keep the id; they render as unknown partner
        partner.delete()

        return success_response(message=f"Partner '{name}' deleted")

    @classmethod
    def name_map(cls) -> Dict[int, str]:
        return dict(cls.model.objects.values_list("id", "name"))
