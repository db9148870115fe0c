from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view
from ..services.auth_service import AuthService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, get_client_ip, get_bearer_token
from main.helpers.require_login import user_required


@csrf_exempt
@api_view(["POST"])
def login(request):
    data, error = parse_json_body(request)
    if error:
        return error

    username = data.get('username')
    password = data.get('password')

    if not username or not password:
        return APIResponse.validation_error(
            errors={'username': 'Username and password are required'},
            message='Username and password are required'
        )

    result = AuthService.login(
        username=username,
        password=password,
        ip_address=get_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', '')
    )

    if not result['success']:
        return APIResponse.error(message=result['message'], status_code=401)

    return APIResponse.success(
        data={
            'token': result['token'],
            'user': AuthService.serialize_session_user(result['user'])
        },
        message=result['message']
    )


@csrf_exempt
@api_view(["POST"])
@user_required
def logout(request):
    result = AuthService.logout(get_bearer_token(request))

    if result['success']:
        return APIResponse.success(message=result['message'])

    return APIResponse.error(message=result['message'], status_code=401)


@csrf_exempt
@api_view(["GET"])
@user_required
def me(request):
    return APIResponse.success(data=AuthService.serialize_session_user(request.user))
