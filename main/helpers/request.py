import json

from .response import APIResponse


def parse_json_body(request):
    """Returns (data, error_response). An empty body parses as an empty dict."""
    raw = request.body
    if not raw:
        return {}, None

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, APIResponse.error(message='Invalid JSON body')

    if not isinstance(data, dict):
        return None, APIResponse.error(message='JSON body must be an object')

    return data, None


def get_client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')


def get_bearer_token(request):
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if header.startswith('Bearer '):
        return header[7:].strip()
    return request.GET.get('token')
