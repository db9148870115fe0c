from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view
from ..services.role_service import RoleService
from main.helpers.response import APIResponse
from main.helpers.require_login import user_required


@csrf_exempt
@api_view(["GET"])
@user_required
def list_roles(request):
    result = RoleService.get_all_roles()
    for role in result['roles']:
        role['menu'] = RoleService.menu_for_role(role['code'])
    return APIResponse.from_result(result)


@csrf_exempt
@api_view(["GET"])
@user_required
def get_role(request, role_code):
    return APIResponse.from_result(RoleService.get_role(role_code), data_key='role')


@csrf_exempt
@api_view(["GET"])
@user_required
def my_access(request):
    """Permissions and sidebar menu of the signed-in user."""
    return APIResponse.from_result(RoleService.access_for_user(request.user), data_key='access')


@csrf_exempt
@api_view(["GET"])
@user_required
def check_permission(request, role_code, permission):
    return APIResponse.from_result(RoleService.check_permission(role_code, permission))
