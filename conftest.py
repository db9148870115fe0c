import pytest
from django.core.cache import cache

from main.models import User
from main.services.auth_service import AuthService
from main.services.user_service import UserService


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def users(db):
    UserService.seed_defaults()
    return {user.role: user for user in User.objects.all()}


@pytest.fixture
def auth_header(users):
    def build(username, password="123"):
        result = AuthService.login(username, password, "127.0.0.1", "pytest")
        return {"HTTP_AUTHORIZATION": f"Bearer {result['token']}"}
    return build
