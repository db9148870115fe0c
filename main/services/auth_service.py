import logging
from datetime import timedelta

import jwt
from django.conf import settings
from django.contrib.auth.hashers import check_password
from django.db import transaction
from django.utils import timezone

from ..models import User, Session
from .role_service import RoleService

logger = logging.getLogger(__name__)


class AuthService:
    JWT_SECRET = getattr(settings, 'JWT_SECRET_KEY', settings.SECRET_KEY)
    JWT_ALGORITHM = getattr(settings, 'JWT_ALGORITHM', 'HS256')
    JWT_EXPIRY_DAYS = getattr(settings, 'JWT_EXPIRY_DAYS', 30)

    @classmethod
    @transaction.atomic
    def login(cls, username, password, ip_address, user_agent='Chrome'):
        user = User.objects.filter(username=(username or '').strip()).first()

        if not user or not check_password(password or '', user.password):
            logger.info("Failed login for username '%s' from %s", username, ip_address)
            return {'success': False, 'token': None, 'user': None, 'message': 'Invalid credentials'}

        # One active session per user
        Session.objects.filter(user_id=user).delete()

        token = cls._generate_token(user)

        Session.objects.create(
            user_id=user,
            ip_address=ip_address or '',
            user_agent=(user_agent or '')[:200],
            payload=token[-20:]
        )

        User.objects.filter(id=user.id).update(
            last_login_at=timezone.now(),
            last_login_api=ip_address
        )

        logger.info("User '%s' logged in from %s", user.username, ip_address)

        return {'success': True, 'token': token, 'user': user, 'message': 'Login successful'}

    @classmethod
    def logout(cls, token):
        user = cls._verify_token(token)
        if not user:
            return {'success': False, 'message': 'Invalid token'}

        Session.objects.filter(user_id=user).delete()
        return {'success': True, 'message': 'Logged out successfully'}

    @classmethod
    def get_user_from_token(cls, token):
        return cls._verify_token(token)

    @classmethod
    def serialize_session_user(cls, user):
        return {
            'id': user.id,
            'username': user.username,
            'name': user.name,
            'role': user.role,
            'permissions': RoleService.ROLES[user.role]['permissions'],
            'menu': RoleService.menu_for_role(user.role),
        }

    @classmethod
    def _generate_token(cls, user):
        now = timezone.now()
        payload = {
            'user_id': user.id,
            'username': user.username,
            'role': user.role,
            'exp': now + timedelta(days=cls.JWT_EXPIRY_DAYS),
            'iat': now
        }
        return jwt.encode(payload, cls.JWT_SECRET, algorithm=cls.JWT_ALGORITHM)

    @classmethod
    def _verify_token(cls, token):
        if not token:
            return None

        try:
            payload = jwt.decode(token, cls.JWT_SECRET, algorithms=[cls.JWT_ALGORITHM])
        except jwt.InvalidTokenError:
            return None

        user = User.objects.filter(id=payload.get('user_id')).first()
        if not user:
            return None

        if not Session.objects.filter(user_id=user, payload=token[-20:]).exists():
            return None

        return user
