# tests/test_auth.py

import json
from datetime import timedelta

import pytest
from django.conf import settings
from django.test import Client
from django.utils import timezone
from jose import jwt

from apps.core.auth_service import auth_service
from apps.core.models import User

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


class TestRegister:

    def test_register_creates_user_and_returns_token(self, api):
        response = api().post('/api/auth/register', {
            'name': 'New Person',
            'email': 'New@Example.com',
            'password': 'secret123',
        })

        assert response.status_code == 201
        body = response.json()
        assert body['success'] is True
        assert body['data']['user']['email'] == 'new@example.com'
        assert body['data']['user']['role'] == User.ROLE_USER
        assert 'password' not in body['data']['user']
        assert auth_service.authenticate_token(body['data']['token']).email == 'new@example.com'

    def test_duplicate_email_is_rejected(self, api, user):
        response = api().post('/api/auth/register', {
            'name': 'Someone',
            'email': user.email.upper(),
            'password': 'secret123',
        })

        assert response.status_code == 400
        assert response.json()['error'] == 'USER_EXISTS'

    def test_short_password_is_rejected(self, api):
        response = api().post('/api/auth/register', {
            'name': 'Someone', 'email': 'short@example.com', 'password': '123',
        })

        assert response.status_code == 400
        assert response.json()['error'] == 'VALIDATION_ERROR'
        assert not User.objects.filter(email='short@example.com').exists()

    def test_invalid_payload_reports_fields(self, api):
        response = api().post('/api/auth/register', {'name': 'X', 'email': 'not-an-email'})

        assert response.status_code == 400
        fields = response.json()['details']['fields']
        assert {'name', 'email', 'password'} <= set(fields)


class TestLogin:

    def test_login_success_updates_last_login(self, api, user):
        response = api().post('/api/auth/login', {'email': user.email, 'password': PASSWORD})

        assert response.status_code == 200
        assert response.json()['data']['user']['id'] == str(user.id)
        user.refresh_from_db()
        assert user.last_login is not None

    def test_wrong_password(self, api, user):
        response = api().post('/api/auth/login', {'email': user.email, 'password': 'wrong-pass'})

        assert response.status_code == 401
        assert response.json()['error'] == 'INVALID_CREDENTIALS'

    def test_inactive_user_cannot_login(self, api, user):
        user.is_active = False
        user.save()

        response = api().post('/api/auth/login', {'email': user.email, 'password': PASSWORD})

        assert response.status_code == 401

    def test_account_locked_after_repeated_failures(self, api, user):
        client = api()
        for _ in range(settings.LOGIN_MAX_ATTEMPTS):
            assert client.post('/api/auth/login', {'email': user.email, 'password': 'nope1234'}).status_code == 401

        # Mesmo com a senha certa o email continua bloqueado
        response = client.post('/api/auth/login', {'email': user.email, 'password': PASSWORD})

        assert response.status_code == 429
        assert response.json()['error'] == 'ACCOUNT_LOCKED'

    def test_successful_login_resets_attempts(self, api, user):
        client = api()
        for _ in range(settings.LOGIN_MAX_ATTEMPTS - 1):
            client.post('/api/auth/login', {'email': user.email, 'password': 'nope1234'})

        assert client.post('/api/auth/login', {'email': user.email, 'password': PASSWORD}).status_code == 200
        assert client.post('/api/auth/login', {'email': user.email, 'password': 'nope1234'}).status_code == 401
        assert client.post('/api/auth/login', {'email': user.email, 'password': PASSWORD}).status_code == 200


class TestTokens:

    def test_missing_token(self, api):
        response = api().get('/api/auth/me')

        assert response.status_code == 401
        assert response.json()['error'] == 'AUTH_REQUIRED'

    def test_admin_session_is_not_accepted(self, admin_user):
        client = Client(enforce_csrf_checks=True)
        client.force_login(admin_user)

        me = client.get('/api/auth/me')
        created = client.post(
            '/api/users',
            json.dumps({'email': 'sneaky@example.com', 'name': 'Sneaky', 'password': 'secret123', 'role': 'ADMIN'}),
            content_type='text/plain',
        )

        assert me.status_code == 401
        assert me.json()['error'] == 'AUTH_REQUIRED'
        assert created.status_code == 401
        assert not User.objects.filter(email='sneaky@example.com').exists()

    def test_garbage_token(self, api):
        response = api(token='not-a-jwt').get('/api/auth/me')

        assert response.status_code == 403
        assert response.json()['error'] == 'INVALID_TOKEN'

    def test_expired_token(self, api, user):
        past = timezone.now() - timedelta(hours=2)
        token = jwt.encode(
            {'sub': str(user.pk), 'iat': int(past.timestamp()), 'exp': int((past + timedelta(hours=1)).timestamp())},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        response = api(token=token).get('/api/auth/me')

        assert response.status_code == 401
        assert response.json()['error'] == 'TOKEN_EXPIRED'

    def test_token_of_deactivated_user(self, api, user):
        token = auth_service.issue_token(user)
        user.is_active = False
        user.save()

        response = api(token=token).get('/api/auth/me')

        assert response.status_code == 401
        assert response.json()['error'] == 'INVALID_TOKEN'

    def test_me_returns_current_user(self, api, user):
        response = api(user).get('/api/auth/me')

        assert response.status_code == 200
        assert response.json()['data']['user']['email'] == user.email
        assert response['X-User-Role'] == User.ROLE_USER

    def test_logout(self, api, user):
        response = api(user).post('/api/auth/logout')

        assert response.status_code == 200
        assert response.json()['message'] == 'Logout successful'


class TestProfile:

    def test_update_profile(self, api, user):
        response = api(user).put('/api/auth/profile', {
            'name': 'Ursula Renamed',
            'avatar': 'https://cdn.example.com/u.png',
        })

        assert response.status_code == 200
        user.refresh_from_db()
        assert user.name == 'Ursula Renamed'
        assert user.avatar == 'https://cdn.example.com/u.png'

    def test_change_password(self, api, user):
        response = api(user).put('/api/auth/change-password', {
            'currentPassword': PASSWORD,
            'newPassword': 'brand-new-pass',
        })

        assert response.status_code == 200
        user.refresh_from_db()
        assert user.check_password('brand-new-pass')

    def test_change_password_requires_current(self, api, user):
        response = api(user).put('/api/auth/change-password', {
            'currentPassword': 'wrong',
            'newPassword': 'brand-new-pass',
        })

        assert response.status_code == 400
        assert response.json()['error'] == 'INVALID_PASSWORD'
