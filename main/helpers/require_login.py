from functools import wraps

from main.services.auth_service import AuthService
from main.services.role_service import RoleService
from .request import get_bearer_token
from .response import APIResponse


def user_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        user = AuthService.get_user_from_token(get_bearer_token(request))
        if user is None:
            return APIResponse.unauthorized()
        request.user = user
        return view_func(request, *args, **kwargs)
    return wrapper


def permission_required(permission):
    """Must sit below @user_required."""
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not RoleService.has_permission(request.user.role, permission):
                return APIResponse.forbidden()
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
