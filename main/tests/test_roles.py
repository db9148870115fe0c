import pytest
from django.test import Client
from django.urls import reverse

from main.services.role_service import RoleService


@pytest.mark.parametrize('role,permission,expected', [
    ('ADMIN', 'manage_settings', True),
    ('ADMIN', 'anything_at_all', True),
    ('INVENTORY', 'manage_inventory', True),
    ('INVENTORY', 'manage_orders', False),
    ('PROJECT', 'manage_orders', True),
    ('PROJECT', 'view_transactions', False),
    ('PPIC', 'view_inventory', True),
    ('PPIC', 'manage_inventory', False),
    ('MANAGER', 'approve_orders', True),
    ('MANAGER', 'manage_partners', False),
    ('inventory', 'view_inventory', True),
    ('GHOST', 'view_dashboard', False),
    (None, 'view_dashboard', False),
])
def test_has_permission(role, permission, expected):
    assert RoleService.has_permission(role, permission) is expected


def test_menu_for_role():
    assert RoleService.menu_for_role('ADMIN') == [section for section, _ in RoleService.MENU]
    assert RoleService.menu_for_role('PPIC') == ['DASHBOARD', 'INVENTORY', 'ORDERS']
    assert RoleService.menu_for_role('MANAGER') == [
        'DASHBOARD', 'INVENTORY', 'ORDERS', 'TRANSACTIONS', 'PARTNERS', 'REPORTS',
    ]


def test_is_valid_role():
    assert RoleService.is_valid_role('project')
    assert not RoleService.is_valid_role('CASHIER')


@pytest.mark.django_db
class TestRoleQueries:

    def test_roles_sorted_by_level_with_counts(self, users):
        result = RoleService.get_all_roles()

        assert [role['code'] for role in result['roles']] == ['ADMIN', 'MANAGER', 'INVENTORY', 'PROJECT', 'PPIC']
        assert all(role['user_count'] == 1 for role in result['roles'])

    def test_check_permission(self):
        assert RoleService.check_permission('ppic', 'manage_inventory')['has_permission'] is False
        assert RoleService.check_permission('nobody', 'x')['error_code'] == 'NOT_FOUND'


@pytest.mark.django_db
class TestRoleApi:

    @pytest.fixture
    def api(self):
        return Client()

    def test_list_roles_includes_menu(self, api, auth_header):
        response = api.get(reverse('main:role-list'), **auth_header('inventory'))

        assert response.status_code == 200
        roles = {role['code']: role for role in response.json()['data']['roles']}
        assert roles['PPIC']['menu'] == ['DASHBOARD', 'INVENTORY', 'ORDERS']
        assert roles['ADMIN']['user_count'] == 1

    def test_role_detail(self, api, auth_header):
        response = api.get(reverse('main:role-detail', args=['project']), **auth_header('ppic'))

        data = response.json()['data']
        assert data['code'] == 'PROJECT'
        assert data['menu'] == ['DASHBOARD', 'ORDERS']
        assert 'manage_orders' in data['permissions']

    def test_unknown_role_is_404(self, api, auth_header):
        response = api.get(reverse('main:role-detail', args=['cashier']), **auth_header('admin'))

        assert response.status_code == 404

    def test_my_access(self, api, auth_header):
        response = api.get(reverse('main:my-access'), **auth_header('manager'))

        data = response.json()['data']
        assert data['username'] == 'manager'
        assert data['role'] == 'MANAGER'
        assert 'SETTINGS' not in data['menu']
        assert 'REPORTS' in data['menu']

    def test_check_permission(self, api, auth_header):
        url = reverse('main:role-check-permission', args=['inventory', 'manage_inventory'])
        response = api.get(url, **auth_header('inventory'))

        assert response.json()['data']['has_permission'] is True

    def test_requires_login(self, api):
        assert api.get(reverse('main:my-access')).status_code == 401
