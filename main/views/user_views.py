from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view
from ..services.user_service import UserService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body
from main.helpers.require_login import user_required, permission_required


@csrf_exempt
@api_view(["GET"])
@user_required
@permission_required('manage_users')
def list_users(request):
    try:
        page = int(request.GET.get('page', 1))
        per_page = int(request.GET.get('per_page', 20))
    except ValueError:
        return APIResponse.validation_error(errors={'page': 'page and per_page must be integers'})

    result = UserService.get_all_users(
        page=page,
        per_page=per_page,
        search=request.GET.get('search'),
        role=request.GET.get('role'),
    )

    return APIResponse.success(data=result)


@csrf_exempt
@api_view(["GET"])
@user_required
@permission_required('manage_users')
def get_stats(request):
    return APIResponse.success(data=UserService.get_stats())


@csrf_exempt
@api_view(["GET"])
@user_required
@permission_required('manage_users')
def get_user(request, user_id):
    result = UserService.get_user_by_id(user_id)

    if result['success']:
        return APIResponse.success(data=result['user'])

    return APIResponse.not_found(message=result['message'])


@csrf_exempt
@api_view(["POST"])
@user_required
@permission_required('manage_users')
def create_user(request):
    data, error = parse_json_body(request)
    if error:
        return error

    result = UserService.create_user(
        username=data.get('username'),
        name=data.get('name'),
        password=data.get('password'),
        role=data.get('role', 'INVENTORY'),
    )

    if result['success']:
        return APIResponse.created(data=result['user'], message=result['message'])

    if result['error_code'] == 'VALIDATION_ERROR':
        return APIResponse.validation_error(errors={'detail': result['message']}, message=result['message'])

    return APIResponse.error(message=result['message'])


@csrf_exempt
@api_view(["PUT", "PATCH"])
@user_required
@permission_required('manage_users')
def update_user(request, user_id):
    data, error = parse_json_body(request)
    if error:
        return error

    allowed = {key: data[key] for key in ('username', 'name', 'password', 'role') if key in data}
    result = UserService.update_user(user_id, **allowed)

    return APIResponse.from_result(result, data_key='user')


@csrf_exempt
@api_view(["DELETE", "POST"])
@user_required
@permission_required('manage_users')
def delete_user(request, user_id):
    result = UserService.delete_user(user_id, acting_user_id=request.user.id)
    return APIResponse.from_result(result)


@csrf_exempt
@api_view(["POST"])
@user_required
@permission_required('manage_users')
def reset_users(request):
    result = UserService.reset_to_defaults()
    return APIResponse.success(data=result, message='Users reset to defaults')
