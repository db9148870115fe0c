import logging

from django.db.models import Q
from django.db import transaction
from django.core.paginator import Paginator
from django.contrib.auth.hashers import make_password
from main.models import User, Session
from .role_service import RoleService

logger = logging.getLogger(__name__)


class UserService:

    MIN_PASSWORD_LENGTH = 3

    DEFAULT_USERS = [
        {'username': 'admin', 'name': 'Super Admin', 'role': 'ADMIN', 'password': '123'},
        {'username': 'inventory', 'name': 'Staf Gudang', 'role': 'INVENTORY', 'password': '123'},
        {'username': 'ppic', 'name': 'Staf PPIC', 'role': 'PPIC', 'password': '123'},
        {'username': 'project', 'name': 'Staf Project', 'role': 'PROJECT', 'password': '123'},
        {'username': 'manager', 'name': 'Bapak Manager', 'role': 'MANAGER', 'password': '123'},
    ]

    @staticmethod
    def _serialize_user(user):
        return {
            'id': user.id,
            'uuid': str(user.uuid),
            'username': user.username,
            'name': user.name,
            'role': user.role,
            'role_name': RoleService.ROLES.get(user.role, {}).get('name', user.role),
            'last_login_at': user.last_login_at.isoformat() if user.last_login_at else None,
            'last_login_api': user.last_login_api,
            'created_at': user.created_at.isoformat() if user.created_at else None,
        }

    @staticmethod
    def _validation_error(message):
        return {'success': False, 'message': message, 'error_code': 'VALIDATION_ERROR'}

    @staticmethod
    def get_all_users(page=1, per_page=20, search=None, role=None, order_by='username'):
        queryset = User.objects.all()

        if search:
            queryset = queryset.filter(
                Q(username__icontains=search) |
                Q(name__icontains=search)
            )

        if role:
            queryset = queryset.filter(role=role.upper())

        queryset = queryset.order_by(order_by)

        paginator = Paginator(queryset, per_page)
        page_obj = paginator.get_page(page)

        return {
            'success': True,
            'users': [UserService._serialize_user(user) for user in page_obj.object_list],
            'pagination': {
                'current_page': page_obj.number,
                'total_pages': paginator.num_pages,
                'total_users': paginator.count,
                'per_page': per_page,
                'has_next': page_obj.has_next(),
                'has_previous': page_obj.has_previous()
            }
        }

    @staticmethod
    def get_user_by_id(user_id):
        try:
            user = User.objects.get(id=user_id)
        except User.DoesNotExist:
            return {'success': False, 'message': 'User not found', 'error_code': 'NOT_FOUND'}

        return {'success': True, 'user': UserService._serialize_user(user)}

    @staticmethod
    def create_user(username, name, password, role='INVENTORY'):
        username = (username or '').strip()
        name = (name or '').strip()

        if not username:
            return UserService._validation_error('Username is required')

        if not name:
            return UserService._validation_error('Name is required')

        if not password or len(str(password)) < UserService.MIN_PASSWORD_LENGTH:
            return UserService._validation_error(
                f'Password must be at least {UserService.MIN_PASSWORD_LENGTH} characters'
            )

        role = (role or '').upper()
        if not RoleService.is_valid_role(role):
            return UserService._validation_error(
                f'Invalid role. Must be one of: {", ".join(RoleService.ROLES)}'
            )

        if User.objects.filter(username__iexact=username).exists():
            return {'success': False, 'message': 'Username already exists', 'error_code': 'DUPLICATE_USERNAME'}

        user = User.objects.create(
            username=username,
            name=name,
            password=make_password(str(password)),
            role=role,
        )
        logger.info("Created user '%s' with role %s", user.username, user.role)

        return {
            'success': True,
            'message': 'User created successfully',
            'user': UserService._serialize_user(user)
        }

    @staticmethod
    def update_user(user_id, **kwargs):
        try:
            user = User.objects.get(id=user_id)
        except User.DoesNotExist:
            return {'success': False, 'message': 'User not found', 'error_code': 'NOT_FOUND'}

        if 'username' in kwargs:
            username = (kwargs['username'] or '').strip()
            if not username:
                return UserService._validation_error('Username is required')
            if User.objects.filter(username__iexact=username).exclude(id=user.id).exists():
                return {'success': False, 'message': 'Username already exists', 'error_code': 'DUPLICATE_USERNAME'}
            user.username = username

        if 'name' in kwargs:
            name = (kwargs['name'] or '').strip()
            if not name:
                return UserService._validation_error('Name is required')
            user.name = name

        if 'role' in kwargs:
            role = (kwargs['role'] or '').upper()
            if not RoleService.is_valid_role(role):
                return UserService._validation_error(
                    f'Invalid role. Must be one of: {", ".join(RoleService.ROLES)}'
                )
            user.role = role

        # Blank password keeps the current one
        password = kwargs.get('password')
        if password:
            if len(str(password)) < UserService.MIN_PASSWORD_LENGTH:
                return UserService._validation_error(
                    f'Password must be at least {UserService.MIN_PASSWORD_LENGTH} characters'
                )
            user.password = make_password(str(password))
            Session.objects.filter(user_id=user).delete()

        user.save()

        return {
            'success': True,
            'message': 'User updated successfully',
            'user': UserService._serialize_user(user)
        }

    @staticmethod
    def delete_user(user_id, acting_user_id=None):
        try:
            user = User.objects.get(id=user_id)
        except User.DoesNotExist:
            return {'success': False, 'message': 'User not found', 'error_code': 'NOT_FOUND'}

        if acting_user_id is not None and user.id == acting_user_id:
            return {'success': False, 'message': 'You cannot delete your own account', 'error_code': 'SELF_DELETE'}

        username = user.username
        user.delete()
        logger.info("Deleted user '%s'", username)

        return {'success': True, 'message': 'User deleted successfully'}

    @staticmethod
    def get_stats():
        return {
            'success': True,
            'total': User.objects.count(),
            'by_role': {
                code: User.objects.filter(role=code).count()
                for code in RoleService.ROLES
            },
        }

    @staticmethod
    def seed_defaults():
        """Create the default accounts that are missing. Existing usernames are left alone."""
        created = 0
        for entry in UserService.DEFAULT_USERS:
            _, was_created = User.objects.get_or_create(
                username=entry['username'],
                defaults={
                    'name': entry['name'],
                    'role': entry['role'],
                    'password': make_password(entry['password']),
                }
            )
            if was_created:
                created += 1
        return {'success': True, 'created': created}

    @staticmethod
    @transaction.atomic
    def reset_to_defaults():
        User.objects.all().delete()
        result = UserService.seed_defaults()
        logger.warning("User list reset to %d default accounts", result['created'])
        return result
