# tests/conftest.py

import json

import pytest
from django.core.cache import cache
from django.test import Client

from apps.core.auth_service import auth_service
from apps.core.models import Project, ProjectMember, Task, User

PASSWORD = 'secret123'


# === Setup ===

@pytest.fixture(autouse=True)
def clear_cache():
    """Tentativas de login ficam no cache entre testes"""
    cache.clear()
    yield
    cache.clear()


class ApiClient:
    """Client de teste que fala JSON e envia o Bearer token"""

    def __init__(self, user=None, token=None):
        self.client = Client()
        self.token = token or (auth_service.issue_token(user) if user else None)

    def _headers(self):
        if not self.token:
            return {}
        return {'HTTP_AUTHORIZATION': f'Bearer {self.token}'}

    def _send(self, method, path, data=None):
        call = getattr(self.client, method)
        if method == 'get':
            return call(path, data or {}, **self._headers())
        body = json.dumps(data) if data is not None else ''
        return call(path, body, content_type='application/json', **self._headers())

    def get(self, path, params=None):
        return self._send('get', path, params)

    def post(self, path, data=None):
        return self._send('post', path, data)

    def put(self, path, data=None):
        return self._send('put', path, data)

    def patch(self, path, data=None):
        return self._send('patch', path, data)

    def delete(self, path):
        return self._send('delete', path)


# === Usuários ===

def make_user(email, name, role=User.ROLE_USER, **extra):
    return User.objects.create_user(email=email, password=PASSWORD, name=name, role=role, **extra)


@pytest.fixture
def admin_user(db):
    return make_user('admin@example.com', 'Alice Admin', User.ROLE_ADMIN)


@pytest.fixture
def manager_user(db):
    return make_user('manager@example.com', 'Mario Manager', User.ROLE_MANAGER)


@pytest.fixture
def user(db):
    return make_user('user@example.com', 'Ursula User')


@pytest.fixture
def other_user(db):
    return make_user('other@example.com', 'Otto Outsider')


@pytest.fixture
def api():
    """Fábrica de clients: api(user) ou api() anônimo"""

    def build(user=None, token=None):
        return ApiClient(user=user, token=token)

    return build


# === Projetos e tarefas ===

@pytest.fixture
def project(admin_user):
    """Projeto do admin (OWNER via signal)"""
    return Project.objects.create(
        name='Website Redesign',
        description='New marketing site',
        owner=admin_user,
        created_by=admin_user,
    )


@pytest.fixture
def add_member(project):
    def add(user, role=ProjectMember.ROLE_MEMBER, target=None):
        return ProjectMember.objects.create(project=target or project, user=user, role=role)

    return add


@pytest.fixture
def make_task(project, admin_user):
    def make(title='Write copy', target=None, **fields):
        target = target or project
        fields.setdefault('created_by', admin_user)
        status = fields.setdefault('status', Task.STATUS_TODO)
        fields.setdefault('position', Task.next_position(target, status))
        return Task.objects.create(project=target, title=title, **fields)

    return make
