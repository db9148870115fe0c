import json

import pytest
from django.test import RequestFactory

from main.utils.dashboard import dashboard_callback
from stock.models import Product, StorageLocation


@pytest.mark.django_db
def test_dashboard_callback_builds_admin_context():
    rack = StorageLocation.objects.create(name='Rack A')
    Product.objects.create(code='P-1', name='Plate', price=100, current_stock=3, min_stock=5, location=rack)

    request = RequestFactory().get('/admin/', {'period': 'bogus'})
    context = dashboard_callback(request, {})

    assert context['period'] == 'this_month'
    kpi = {item['title']: item['metric'] for item in context['kpi']}
    assert kpi['Products'] == 1
    assert kpi['Low stock'] == 1
    assert context['order_status_counts']['Draft'] == 0

    location_chart = json.loads(context['location_chart_json'])
    assert location_chart['labels'] == ['Rack A']
    assert location_chart['datasets'][0]['data'] == [300.0]
