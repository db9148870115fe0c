from django.db.models import Count
from main.models import User


class RoleService:

    ROLES = {
        'ADMIN': {
            'name': 'Super Admin',
            'description': 'Full system access, manages partners, users and settings',
            'permissions': ['all'],
            'level': 100,
        },
        'MANAGER': {
            'name': 'Manager',
            'description': 'Read access to every area and reports, approves orders',
            'permissions': [
                'view_dashboard', 'view_inventory', 'view_orders', 'approve_orders',
                'view_transactions', 'view_partners', 'view_reports',
            ],
            'level': 80,
        },
        'INVENTORY': {
            'name': 'Warehouse Staff',
            'description': 'Maintains the catalog and records stock movements',
            'permissions': [
                'view_dashboard', 'view_inventory', 'manage_inventory',
                'view_transactions', 'manage_transactions', 'view_partners',
            ],
            'level': 50,
        },
        'PROJECT': {
            'name': 'Project Staff',
            'description': 'Creates and fulfills purchase and sales orders',
            'permissions': ['view_dashboard', 'view_orders', 'manage_orders'],
            'level': 40,
        },
        'PPIC': {
            'name': 'PPIC Staff',
            'description': 'Production planning, read access to inventory and orders',
            'permissions': ['view_dashboard', 'view_inventory', 'view_orders'],
            'level': 30,
        },
    }

    MENU = [
        ('DASHBOARD', 'view_dashboard'),
        ('INVENTORY', 'view_inventory'),
        ('ORDERS', 'view_orders'),
        ('TRANSACTIONS', 'view_transactions'),
        ('PARTNERS', 'view_partners'),
        ('REPORTS', 'view_reports'),
        ('SETTINGS', 'manage_settings'),
    ]

    @staticmethod
    def get_all_roles():
        counts = dict(User.objects.values('role').annotate(count=Count('id')).values_list('role', 'count'))

        roles = []
        for code, data in RoleService.ROLES.items():
            roles.append({
                'code': code,
                'name': data['name'],
                'description': data['description'],
                'permissions': data['permissions'],
                'level': data['level'],
                'user_count': counts.get(code, 0),
            })

        roles.sort(key=lambda x: x['level'], reverse=True)

        return {
            'success': True,
            'roles': roles,
            'count': len(roles)
        }

    @staticmethod
    def get_role(role_code):
        role_code = role_code.upper()

        if role_code not in RoleService.ROLES:
            return {'success': False, 'message': 'Role not found', 'error_code': 'NOT_FOUND'}

        data = RoleService.ROLES[role_code]

        return {
            'success': True,
            'role': {
                'code': role_code,
                'name': data['name'],
                'description': data['description'],
                'permissions': data['permissions'],
                'level': data['level'],
                'menu': RoleService.menu_for_role(role_code),
                'user_count': User.objects.filter(role=role_code).count(),
            }
        }

    @staticmethod
    def has_permission(role_code, permission):
        role = RoleService.ROLES.get((role_code or '').upper())
        if not role:
            return False
        return 'all' in role['permissions'] or permission in role['permissions']

    @staticmethod
    def check_permission(role_code, permission):
        role_code = role_code.upper()

        if role_code not in RoleService.ROLES:
            return {'success': False, 'message': 'Role not found', 'error_code': 'NOT_FOUND'}

        return {
            'success': True,
            'role': role_code,
            'permission': permission,
            'has_permission': RoleService.has_permission(role_code, permission)
        }

    @staticmethod
    def menu_for_role(role_code):
        return [
            section for section, permission in RoleService.MENU
            if RoleService.has_permission(role_code, permission)
        ]

    @staticmethod
    def is_valid_role(role_code):
        return (role_code or '').upper() in RoleService.ROLES

    @staticmethod
    def access_for_user(user):
        role = RoleService.ROLES.get(user.role, {})
        return {
            'success': True,
            'access': {
                'username': user.username,
                'role': user.role,
                'role_name': role.get('name', user.role),
                'permissions': role.get('permissions', []),
                'menu': RoleService.menu_for_role(user.role),
            }
        }
