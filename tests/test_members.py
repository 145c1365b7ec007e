# tests/test_members.py

import pytest

from apps.core.models import Notification, ProjectMember

pytestmark = pytest.mark.django_db


def members_url(project, member=None):
    url = f'/api/roles/projects/{project.id}/members'
    return f'{url}/{member.id}' if member else url


class TestListMembers:

    def test_owner_membership_created_with_project(self, project, admin_user):
        membership = project.get_membership(admin_user)

        assert membership is not None
        assert membership.role == ProjectMember.ROLE_OWNER

    def test_viewer_can_list(self, api, project, user, add_member):
        add_member(user, ProjectMember.ROLE_VIEWER)

        response = api(user).get(members_url(project))

        assert response.status_code == 200
        roles = {m['user']['email']: m['role'] for m in response.json()['data']['members']}
        assert roles == {'admin@example.com': 'OWNER', user.email: 'VIEWER'}

    def test_outsider_cannot_list(self, api, project, other_user):
        response = api(other_user).get(members_url(project))

        assert response.status_code == 403


class TestAddMember:

    def test_project_admin_adds_member_and_invites(self, api, project, user, other_user, add_member):
        add_member(user, ProjectMember.ROLE_ADMIN)

        response = api(user).post(members_url(project), {'userId': str(other_user.id), 'role': 'VIEWER'})

        assert response.status_code == 201
        assert response.json()['data']['member']['role'] == 'VIEWER'
        invite = Notification.objects.get(user=other_user)
        assert invite.type == Notification.TYPE_PROJECT_INVITE
        assert invite.data['projectId'] == str(project.id)

    def test_default_role_is_member(self, api, project, admin_user, user):
        response = api(admin_user).post(members_url(project), {'userId': str(user.id)})

        assert response.status_code == 201
        assert project.get_membership(user).role == ProjectMember.ROLE_MEMBER

    def test_member_role_cannot_add(self, api, project, user, other_user, add_member):
        add_member(user, ProjectMember.ROLE_MEMBER)

        response = api(user).post(members_url(project), {'userId': str(other_user.id)})

        assert response.status_code == 403

    def test_duplicate_member(self, api, project, admin_user, user, add_member):
        add_member(user)

        response = api(admin_user).post(members_url(project), {'userId': str(user.id)})

        assert response.status_code == 400
        assert response.json()['error'] == 'MEMBER_EXISTS'

    def test_unknown_user(self, api, project, admin_user):
        response = api(admin_user).post(members_url(project), {'userId': '00000000-0000-0000-0000-000000000000'})

        assert response.status_code == 404
        assert response.json()['error'] == 'USER_NOT_FOUND'

    def test_removed_member_is_reactivated(self, api, project, admin_user, user, add_member):
        membership = add_member(user, ProjectMember.ROLE_VIEWER)
        client = api(admin_user)
        assert client.delete(members_url(project, membership)).status_code == 200

        response = client.post(members_url(project), {'userId': str(user.id), 'role': 'ADMIN'})

        assert response.status_code == 201
        membership.refresh_from_db()
        assert membership.is_active is True
        assert membership.left_at is None
        assert membership.role == ProjectMember.ROLE_ADMIN


class TestUpdateAndRemove:

    def test_owner_changes_role(self, api, project, admin_user, user, add_member):
        membership = add_member(user)

        response = api(admin_user).put(members_url(project, membership), {'role': 'ADMIN'})

        assert response.status_code == 200
        membership.refresh_from_db()
        assert membership.role == ProjectMember.ROLE_ADMIN

    def test_project_admin_cannot_change_roles(self, api, project, user, other_user, add_member):
        add_member(user, ProjectMember.ROLE_ADMIN)
        target = add_member(other_user)

        response = api(user).put(members_url(project, target), {'role': 'VIEWER'})

        assert response.status_code == 403

    def test_owner_role_is_fixed(self, api, project, admin_user):
        owner = project.get_membership(admin_user)

        response = api(admin_user).put(members_url(project, owner), {'role': 'MEMBER'})

        assert response.status_code == 400
        assert response.json()['error'] == 'CANNOT_CHANGE_OWNER'

    def test_owner_cannot_be_removed(self, api, project, admin_user):
        owner = project.get_membership(admin_user)

        response = api(admin_user).delete(members_url(project, owner))

        assert response.status_code == 400
        assert response.json()['error'] == 'CANNOT_REMOVE_OWNER'

    def test_remove_is_soft(self, api, project, admin_user, user, add_member):
        membership = add_member(user)

        response = api(admin_user).delete(members_url(project, membership))

        assert response.status_code == 200
        membership.refresh_from_db()
        assert membership.is_active is False
        assert membership.left_at is not None
        assert project.get_membership(user) is None
