import json

import pytest
from django.contrib.auth.hashers import check_password
from django.test import Client
from django.urls import reverse

from main.models import Session, User
from main.services.user_service import UserService


@pytest.mark.django_db
class TestUserService:

    def test_seed_defaults_is_idempotent(self):
        assert UserService.seed_defaults()['created'] == 5
        assert UserService.seed_defaults()['created'] == 0

        admin = User.objects.get(username='admin')
        assert admin.role == 'ADMIN'
        assert check_password('123', admin.password)

    def test_create_user_hashes_password(self, users):
        result = UserService.create_user('gudang2', 'Staf Gudang 2', 'rahasia', 'inventory')

        assert result['success'] is True
        user = User.objects.get(username='gudang2')
        assert user.role == 'INVENTORY'
        assert user.password != 'rahasia'
        assert check_password('rahasia', user.password)

    def test_duplicate_username_is_case_insensitive(self, users):
        result = UserService.create_user('ADMIN', 'Another', '123', 'ADMIN')

        assert result['success'] is False
        assert result['error_code'] == 'DUPLICATE_USERNAME'

    @pytest.mark.parametrize('username,name,password,role', [
        ('', 'Name', '123', 'ADMIN'),
        ('user', '', '123', 'ADMIN'),
        ('user', 'Name', '12', 'ADMIN'),
        ('user', 'Name', '123', 'CASHIER'),
    ])
    def test_create_validation(self, users, username, name, password, role):
        result = UserService.create_user(username, name, password, role)
        assert result['error_code'] == 'VALIDATION_ERROR'

    def test_blank_password_keeps_current(self, users):
        user = users['PPIC']
        old_hash = user.password

        result = UserService.update_user(user.id, name='PPIC Lead', password='')

        assert result['success'] is True
        user.refresh_from_db()
        assert user.name == 'PPIC Lead'
        assert user.password == old_hash

    def test_new_password_ends_sessions(self, users, auth_header):
        auth_header('ppic')
        user = users['PPIC']

        UserService.update_user(user.id, password='baru123')

        assert not Session.objects.filter(user_id=user).exists()
        user.refresh_from_db()
        assert check_password('baru123', user.password)

    def test_cannot_delete_self(self, users):
        admin = users['ADMIN']
        result = UserService.delete_user(admin.id, acting_user_id=admin.id)

        assert result['error_code'] == 'SELF_DELETE'
        assert User.objects.filter(id=admin.id).exists()

    def test_reset_restores_default_accounts(self, users):
        UserService.create_user('extra', 'Extra', '123', 'PPIC')
        UserService.delete_user(users['MANAGER'].id)

        UserService.reset_to_defaults()

        assert sorted(User.objects.values_list('username', flat=True)) == [
            'admin', 'inventory', 'manager', 'ppic', 'project',
        ]


@pytest.mark.django_db
class TestUserApi:

    @pytest.fixture
    def api(self):
        return Client()

    def test_only_admin_manages_users(self, api, auth_header):
        assert api.get(reverse('main:user-list'), **auth_header('manager')).status_code == 403

        response = api.get(reverse('main:user-list'), **auth_header('admin'))
        assert response.status_code == 200
        assert response.json()['data']['pagination']['total_users'] == 5

    def test_create_and_update(self, api, auth_header):
        headers = auth_header('admin')
        response = api.post(
            reverse('main:user-create'),
            data=json.dumps({'username': 'qc', 'name': 'QC', 'password': 'abc', 'role': 'PPIC'}),
            content_type='application/json',
            **headers
        )
        assert response.status_code == 201
        user_id = response.json()['data']['id']

        response = api.put(
            reverse('main:user-update', args=[user_id]),
            data=json.dumps({'role': 'MANAGER'}),
            content_type='application/json',
            **headers
        )
        assert response.status_code == 200
        assert response.json()['data']['role'] == 'MANAGER'

    def test_invalid_role_is_unprocessable(self, api, auth_header):
        response = api.post(
            reverse('main:user-create'),
            data=json.dumps({'username': 'qc', 'name': 'QC', 'password': 'abc', 'role': 'BOSS'}),
            content_type='application/json',
            **auth_header('admin')
        )
        assert response.status_code == 422

    def test_admin_cannot_delete_own_account(self, api, auth_header, users):
        response = api.delete(reverse('main:user-delete', args=[users['ADMIN'].id]), **auth_header('admin'))

        assert response.status_code == 400
        assert User.objects.filter(username='admin').exists()

    def test_unknown_user(self, api, auth_header):
        assert api.get(reverse('main:user-detail', args=[9999]), **auth_header('admin')).status_code == 404
