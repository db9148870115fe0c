import json

import pytest
from django.test import Client
from django.urls import reverse

from main.models import Session, User
from main.services.auth_service import AuthService


@pytest.fixture
def api():
    return Client()


def login(api, username, password):
    return api.post(
        reverse('main:login'),
        data=json.dumps({'username': username, 'password': password}),
        content_type='application/json',
    )


@pytest.mark.django_db
class TestAuthService:

    def test_login_creates_single_session(self, users):
        first = AuthService.login('admin', '123', '10.0.0.1')
        second = AuthService.login('admin', '123', '10.0.0.2')

        assert first['success'] and second['success']
        assert Session.objects.filter(user_id=users['ADMIN']).count() == 1
        assert AuthService.get_user_from_token(second['token']) == users['ADMIN']

    def test_login_records_ip(self, users):
        AuthService.login('inventory', '123', '10.0.0.9')

        user = User.objects.get(username='inventory')
        assert user.last_login_api == '10.0.0.9'
        assert user.last_login_at is not None

    def test_wrong_password(self, users):
        result = AuthService.login('admin', 'wrong', '10.0.0.1')

        assert result['success'] is False
        assert not Session.objects.exists()

    def test_logout_invalidates_token(self, users):
        token = AuthService.login('ppic', '123', '10.0.0.1')['token']

        assert AuthService.logout(token)['success'] is True
        assert AuthService.get_user_from_token(token) is None

    def test_session_user_carries_menu(self, users):
        data = AuthService.serialize_session_user(users['PROJECT'])

        assert data['menu'] == ['DASHBOARD', 'ORDERS']
        assert 'manage_orders' in data['permissions']


@pytest.mark.django_db
class TestAuthApi:

    def test_login_returns_token_and_profile(self, api, users):
        response = login(api, 'manager', '123')

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['data']['user']['role'] == 'MANAGER'
        assert body['data']['token']

    def test_invalid_credentials(self, api, users):
        response = login(api, 'manager', 'nope')

        assert response.status_code == 401
        assert response.json()['success'] is False

    def test_missing_fields(self, api, users):
        assert login(api, 'manager', '').status_code == 422

    def test_me_and_logout(self, api, users):
        token = login(api, 'inventory', '123').json()['data']['token']
        headers = {'HTTP_AUTHORIZATION': f'Bearer {token}'}

        response = api.get(reverse('main:me'), **headers)
        assert response.status_code == 200
        assert response.json()['data']['username'] == 'inventory'

        assert api.post(reverse('main:logout'), **headers).status_code == 200
        assert api.get(reverse('main:me'), **headers).status_code == 401

    def test_me_requires_token(self, api, users):
        assert api.get(reverse('main:me')).status_code == 401
