import json

import pytest
from django.test import Client
from django.urls import reverse

from stock.models import Order, Partner, Product, Transaction
from stock.services import OrderService, XLSX_CONTENT_TYPE
from stock.tests.conftest import line


@pytest.fixture
def api():
    return Client()


def post_json(api, url, data, headers):
    return api.post(url, data=json.dumps(data), content_type="application/json", **headers)


def put_json(api, url, data, headers):
    return api.put(url, data=json.dumps(data), content_type="application/json", **headers)


@pytest.mark.django_db
class TestAccess:

    def test_token_required(self, api, users):
        response = api.get(reverse("stock:product-list"))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_garbage_token(self, api, users):
        response = api.get(reverse("stock:product-list"), HTTP_AUTHORIZATION="Bearer nope")
        assert response.status_code == 401

    def test_role_without_permission(self, api, auth_header):
        response = post_json(api, reverse("stock:product-list"), {"code": "X", "name": "Y"}, auth_header("ppic"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"
        assert not Product.objects.exists()

    def test_read_only_role_can_list(self, api, auth_header, product):
        response = api.get(reverse("stock:product-list"), **auth_header("ppic"))
        assert response.status_code == 200

    def test_token_in_query_string(self, api, auth_header, product, users):
        token = auth_header("manager")["HTTP_AUTHORIZATION"].split(" ", 1)[1]
        response = api.get(reverse("stock:report-low-stock") + f"?token={token}")
        assert response.status_code == 200


@pytest.mark.django_db
class TestCatalogApi:

    def test_create_product_with_new_location(self, api, auth_header):
        response = post_json(api, reverse("stock:product-list"), {
            "code": "K-10",
            "name": "Kabel NYM",
            "price": "12000",
            "current_stock": 3,
            "location_name": "Rack Z",
        }, auth_header("inventory"))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        product = Product.objects.get(id=body["id"])
        assert (product.category, product.unit, product.min_stock) == ("General", "Pcs", 5)

    def test_missing_name_is_validation_error(self, api, auth_header):
        response = post_json(api, reverse("stock:product-list"), {"code": "K-10"}, auth_header("inventory"))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["details"]["field"] == "name"

    def test_unknown_product(self, api, auth_header):
        response = api.get(reverse("stock:product-detail", args=[999]), **auth_header("inventory"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_invalid_json(self, api, auth_header):
        response = api.post(
            reverse("stock:product-list"), data="{oops", content_type="application/json",
            **auth_header("inventory")
        )
        assert response.status_code == 400

    def test_only_admin_manages_partners(self, api, auth_header):
        payload = {"name": "PT Baru", "type": "supplier"}

        assert post_json(api, reverse("stock:partner-list"), payload, auth_header("manager")).status_code == 403

        response = post_json(api, reverse("stock:partner-list"), payload, auth_header("admin"))
        assert response.status_code == 201
        assert Partner.objects.get().type == Partner.PartnerType.SUPPLIER


@pytest.mark.django_db
class TestLedgerApi:

    def test_record_and_reverse_transaction(self, api, auth_header, product, supplier):
        headers = auth_header("inventory")
        response = post_json(api, reverse("stock:transaction-list"), {
            "type": "IN",
            "partner_id": supplier.id,
            "items": [line(product, 6)],
        }, headers)

        assert response.status_code == 201
        product.refresh_from_db()
        assert product.current_stock == 16

        tx_id = response.json()["id"]
        response = api.delete(reverse("stock:transaction-detail", args=[tx_id]), **headers)
        assert response.status_code == 200
        product.refresh_from_db()
        assert product.current_stock == 10

    def test_out_beyond_stock(self, api, auth_header, product):
        response = post_json(api, reverse("stock:transaction-list"), {
            "type": "OUT",
            "items": [line(product, 11)],
        }, auth_header("inventory"))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "insufficient_stock"
        assert error["details"]["items"][0]["available"] == 10
        assert not Transaction.objects.exists()

    def test_edit_transaction(self, api, auth_header, product):
        headers = auth_header("inventory")
        tx_id = post_json(api, reverse("stock:transaction-list"), {
            "type": "IN", "items": [line(product, 4)],
        }, headers).json()["id"]

        response = put_json(api, reverse("stock:transaction-detail", args=[tx_id]), {
            "type": "IN", "items": [line(product, 1)],
        }, headers)

        assert response.status_code == 200
        product.refresh_from_db()
        assert product.current_stock == 11

    def test_order_lifecycle(self, api, auth_header, product, supplier):
        headers = auth_header("project")
        response = post_json(api, reverse("stock:order-list"), {
            "type": "PO",
            "partner_id": supplier.id,
            "items": [line(product, 20, "24000")],
        }, headers)
        assert response.status_code == 201
        order_id = response.json()["id"]

        assert api.post(reverse("stock:order-confirm", args=[order_id]), **headers).status_code == 200
        response = api.post(reverse("stock:order-fulfill", args=[order_id]), **headers)

        assert response.status_code == 200
        assert response.json()["order"]["status"] == "COMPLETED"
        product.refresh_from_db()
        assert product.current_stock == 30

        response = api.post(reverse("stock:order-fulfill", args=[order_id]), **headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "business_rule"

    def test_manager_confirms_but_cannot_fulfill(self, api, auth_header, product, supplier):
        order_id = OrderService.create(type="PO", partner_id=supplier.id, items=[line(product, 1)])["id"]
        headers = auth_header("manager")

        assert api.post(reverse("stock:order-confirm", args=[order_id]), **headers).status_code == 200
        assert api.post(reverse("stock:order-fulfill", args=[order_id]), **headers).status_code == 403
        assert Order.objects.get().status == Order.Status.OPEN

    def test_sales_order_shortage(self, api, auth_header, product, customer):
        order_id = OrderService.create(type="SO", partner_id=customer.id, items=[line(product, 50)])["id"]
        OrderService.confirm(order_id)
        headers = auth_header("project")

        check = api.get(reverse("stock:order-stock-check", args=[order_id]), **headers).json()
        assert check["sufficient"] is False

        response = api.post(reverse("stock:order-fulfill", args=[order_id]), **headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "insufficient_stock"
        product.refresh_from_db()
        assert product.current_stock == 10


@pytest.mark.django_db
class TestExportAndSettingsApi:

    def test_product_export_download(self, api, auth_header, product):
        response = api.get(reverse("stock:export-products"), **auth_header("inventory"))

        assert response.status_code == 200
        assert response["Content-Type"] == XLSX_CONTENT_TYPE
        assert response["Content-Disposition"].startswith('attachment; filename="products_')

    def test_settings_read_and_update(self, api, auth_header):
        response = api.get(reverse("stock:settings"), **auth_header("ppic"))
        assert response.status_code == 200
        assert response.json()["settings"]["currency"] == "IDR"

        payload = {"name": "PT Baru", "currency": "usd"}
        assert put_json(api, reverse("stock:settings"), payload, auth_header("ppic")).status_code == 403

        response = put_json(api, reverse("stock:settings"), payload, auth_header("admin"))
        assert response.status_code == 200
        assert response.json()["settings"]["currency"] == "USD"

    def test_backup_export_is_admin_only(self, api, auth_header, product):
        assert api.get(reverse("stock:backup-export"), **auth_header("inventory")).status_code == 403

        response = api.get(reverse("stock:backup-export"), **auth_header("admin"))
        assert response.status_code == 200
        assert len(json.loads(response.content)["inv_products"]) == 1

    def test_ai_analysis_without_key(self, api, auth_header, product):
        response = api.post(reverse("stock:ai-analysis"), **auth_header("ppic"))

        assert response.status_code == 200
        assert "GEMINI_API_KEY" in response.json()["analysis"]


@pytest.mark.django_db
class TestCountsAndRestock:

    def test_unreadable_opname_count_is_rejected(self, api, auth_header, product):
        response = post_json(api, reverse("stock:opname-list"), {
            "items": [{"product_id": product.id, "physical_qty": "lots"}],
        }, auth_header("inventory"))

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "physical_qty"
        assert Product.objects.get(id=product.id).current_stock == 10

    def test_restock_commit_with_bad_group(self, api, auth_header):
        plan = {"groups": [{"group_id": "abc", "supplier_name": "X", "items": []}]}
        response = post_json(api, reverse("stock:restock-commit"), {"plan": plan}, auth_header("project"))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"
        assert not Order.objects.exists()

    def test_restock_fractional_quantity(self, api, auth_header, second_product):
        headers = auth_header("project")
        plan = api.get(reverse("stock:restock-plan"), **headers).json()["plan"]
        group = plan["groups"][0]

        response = post_json(api, reverse("stock:restock-plan"), {
            "plan": plan,
            "action": "quantity",
            "group_id": group["group_id"],
            "product_id": second_product.id,
            "quantity": "2.5",
        }, headers)

        assert response.status_code == 400
