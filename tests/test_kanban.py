# tests/test_kanban.py

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from apps.board.realtime import project_group_name
from apps.core.models import ProjectMember, Task

pytestmark = pytest.mark.django_db


@pytest.fixture
def project_listener(project):
    """Canal inscrito no grupo do projeto, como um cliente WebSocket"""
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(project_group_name(project.id), channel)
    yield lambda: async_to_sync(layer.receive)(channel)
    async_to_sync(layer.group_discard)(project_group_name(project.id), channel)


class TestBoard:

    def test_columns_grouped_by_status(self, api, project, user, add_member, make_task):
        add_member(user, ProjectMember.ROLE_VIEWER)
        make_task('second todo')
        make_task('in progress', status=Task.STATUS_IN_PROGRESS)
        first = make_task('first todo', position=0)
        Task.objects.filter(title='second todo').update(position=5)

        response = api(user).get(f'/api/kanban/projects/{project.id}/kanban')

        assert response.status_code == 200
        columns = response.json()['data']['columns']
        assert list(columns) == ['TODO', 'IN_PROGRESS', 'IN_REVIEW', 'DONE']
        assert [t['id'] for t in columns['TODO']][0] == str(first.id)
        assert [t['title'] for t in columns['IN_PROGRESS']] == ['in progress']
        assert columns['DONE'] == []

    def test_outsider_forbidden(self, api, project, other_user):
        assert api(other_user).get(f'/api/kanban/projects/{project.id}/kanban').status_code == 403

    def test_progress(self, api, admin_user, project, make_task):
        make_task('a', status=Task.STATUS_DONE)
        make_task('b')

        data = api(admin_user).get(f'/api/kanban/projects/{project.id}/progress').json()['data']

        assert data['totalTasks'] == 2
        assert data['completedTasks'] == 1
        assert data['progressPercentage'] == 50.0
        assert data['taskCounts']['DONE'] == 1


class TestMoveTask:

    def test_move_appends_to_target_column_and_broadcasts(self, api, admin_user, make_task, project_listener):
        make_task('already reviewing', status=Task.STATUS_IN_REVIEW)
        task = make_task('moving')

        response = api(admin_user).put(f'/api/kanban/tasks/{task.id}/status', {'status': 'REVIEW'})

        assert response.status_code == 200
        data = response.json()['data']['task']
        assert data['status'] == 'IN_REVIEW'
        assert data['position'] == 1

        event = project_listener()
        assert event['type'] == 'task_moved'
        assert event['message']['fromStatus'] == 'TODO'
        assert event['message']['toStatus'] == 'IN_REVIEW'
        assert event['message']['user']['id'] == str(admin_user.id)

    def test_move_with_explicit_position(self, api, admin_user, make_task):
        task = make_task()

        data = api(admin_user).put(
            f'/api/kanban/tasks/{task.id}/status', {'status': 'DONE', 'position': 7}
        ).json()['data']['task']

        assert data['position'] == 7

    def test_invalid_status(self, api, admin_user, make_task):
        task = make_task()

        response = api(admin_user).put(f'/api/kanban/tasks/{task.id}/status', {'status': 'SOMEDAY'})

        assert response.status_code == 400

    def test_plain_member_cannot_move_others_task(self, api, user, add_member, make_task):
        add_member(user)
        task = make_task()

        response = api(user).put(f'/api/kanban/tasks/{task.id}/status', {'status': 'DONE'})

        assert response.status_code == 403
        assert response.json()['error'] == 'PERMISSION_DENIED'

    def test_assignee_can_move(self, api, user, add_member, make_task):
        add_member(user)
        task = make_task(assignee=user)

        assert api(user).put(f'/api/kanban/tasks/{task.id}/status', {'status': 'IN_PROGRESS'}).status_code == 200

    def test_reorder_position(self, api, admin_user, make_task):
        task = make_task()

        response = api(admin_user).put(f'/api/kanban/tasks/{task.id}/position', {'position': 3})

        assert response.status_code == 200
        task.refresh_from_db()
        assert task.position == 3
        assert task.status == Task.STATUS_TODO

    def test_negative_position(self, api, admin_user, make_task):
        task = make_task()

        assert api(admin_user).put(f'/api/kanban/tasks/{task.id}/position', {'position': -1}).status_code == 400


class TestRealtimeEvents:

    def test_task_created_event(self, api, admin_user, project, project_listener):
        api(admin_user).post(f'/api/tasks/projects/{project.id}', {'title': 'Realtime task'})

        event = project_listener()

        assert event['type'] == 'task_created'
        assert event['message']['task']['title'] == 'Realtime task'
        assert 'timestamp' in event['message']

    def test_task_deleted_event(self, api, admin_user, make_task, project_listener):
        task = make_task()

        api(admin_user).delete(f'/api/tasks/{task.id}')

        event = project_listener()
        assert event['type'] == 'task_deleted'
        assert event['message']['taskId'] == str(task.id)
