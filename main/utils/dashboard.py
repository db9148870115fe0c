from django.conf import settings
from django.utils import timezone
from stock.models import Order
from stock.services.report_service import ReportService
import json
import pytz


LOCAL_TZ = pytz.timezone(settings.TIME_ZONE)

PERIODS = ['today', 'this_week', 'this_month', 'last_month', 'this_year']


def dashboard_callback(request, context):
    period = request.GET.get('period', 'this_month')
    if period not in PERIODS:
        period = 'this_month'

    now = timezone.now().astimezone(LOCAL_TZ)
    data = ReportService.dashboard(period=period)
    stats = data['stats']

    trend_chart = {
        'labels': [row['date'] for row in data['financial_trend']],
        'datasets': [
            {'label': 'Out (income)', 'data': [float(row['income']) for row in data['financial_trend']]},
            {'label': 'In (expense)', 'data': [float(row['expense']) for row in data['financial_trend']]},
        ],
    }

    location_chart = {
        'labels': [loc['name'] for loc in data['locations']],
        'datasets': [
            {'label': 'Stock value', 'data': [float(loc['total_value']) for loc in data['locations']]},
        ],
    }

    order_status_counts = {
        status.label: Order.objects.filter(status=status.value).count()
        for status in Order.Status
    }

    context.update({
        'period': period,
        'periods': PERIODS,
        'generated_at': now.strftime('%d.%m.%Y %H:%M'),
        'period_start': data['period']['start'],
        'period_end': data['period']['end'],

        'kpi': [
            {'title': 'Products', 'metric': stats['total_products']},
            {'title': 'Low stock', 'metric': stats['low_stock']},
            {'title': 'Stock value', 'metric': stats['total_value']},
            {'title': 'Net (out - in)', 'metric': stats['net']},
            {'title': 'Open orders', 'metric': data['open_orders']},
        ],

        'recent_activity': data['recent_activity'],
        'order_status_counts': order_status_counts,

        'trend_chart_json': json.dumps(trend_chart),
        'location_chart_json': json.dumps(location_chart),
    })

    return context
