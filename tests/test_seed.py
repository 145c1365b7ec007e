# tests/test_seed.py

from io import StringIO

import pytest
from django.core.management import call_command

from apps.core.models import Comment, Project, ProjectMember, Task, TimeEntry, User

pytestmark = pytest.mark.django_db


def counts():
    return {
        model.__name__: model.objects.count()
        for model in (User, Project, ProjectMember, Task, Comment, TimeEntry)
    }


def test_seed_creates_demo_data():
    call_command('seed', stdout=StringIO())

    admin = User.objects.get(email='admin@trackboard.dev')
    assert admin.role == User.ROLE_ADMIN
    assert admin.check_password('Admin@123')

    project = Project.objects.get(name='Projeto Demo')
    roles = dict(project.memberships.values_list('user__email', 'role'))
    assert roles['admin@trackboard.dev'] == ProjectMember.ROLE_OWNER
    assert roles['bruno@trackboard.dev'] == ProjectMember.ROLE_VIEWER
    assert project.tasks.count() == 4
    assert TimeEntry.objects.get().duration == 90


def test_seed_twice_does_not_duplicate():
    call_command('seed', stdout=StringIO())
    first = counts()
    out = StringIO()

    call_command('seed', stdout=out)

    assert counts() == first
    assert 'já existe' in out.getvalue()


def test_custom_admin_password():
    call_command('seed', '--admin-password', 'Other@456', stdout=StringIO())

    assert User.objects.get(email='admin@trackboard.dev').check_password('Other@456')
