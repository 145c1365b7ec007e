# tests/test_tasks.py

import pytest

from apps.core.models import Comment, Notification, Project, ProjectMember, Task

pytestmark = pytest.mark.django_db


class TestCreateTask:

    def test_member_creates_task_at_end_of_column(self, api, project, user, other_user, add_member, make_task):
        add_member(user)
        add_member(other_user)
        make_task('Existing')

        response = api(user).post(f'/api/tasks/projects/{project.id}', {
            'title': 'Build header',
            'priority': 'HIGH',
            'type': 'FEATURE',
            'storyPoints': 5,
            'assigneeId': str(other_user.id),
            'dueDate': '2026-12-01T12:00:00Z',
        })

        assert response.status_code == 201
        task = response.json()['data']['task']
        assert task['status'] == 'TODO'
        assert task['position'] == 1
        assert task['creatorId'] == str(user.id)
        assert task['assignee']['id'] == str(other_user.id)

        notification = Notification.objects.get(user=other_user)
        assert notification.type == Notification.TYPE_TASK_ASSIGNED

    def test_no_notification_when_assigning_self(self, api, project, user, add_member):
        add_member(user)

        api(user).post(f'/api/tasks/projects/{project.id}', {'title': 'Mine', 'assigneeId': str(user.id)})

        assert not Notification.objects.filter(user=user).exists()

    def test_viewer_cannot_create(self, api, project, user, add_member):
        add_member(user, ProjectMember.ROLE_VIEWER)

        response = api(user).post(f'/api/tasks/projects/{project.id}', {'title': 'Nope'})

        assert response.status_code == 403

    def test_assignee_must_be_member(self, api, project, admin_user, other_user):
        response = api(admin_user).post(f'/api/tasks/projects/{project.id}', {
            'title': 'Bad assignee', 'assigneeId': str(other_user.id),
        })

        assert response.status_code == 400

    def test_review_is_alias(self, api, project, admin_user):
        response = api(admin_user).post(f'/api/tasks/projects/{project.id}', {'title': 'Check', 'status': 'REVIEW'})

        assert response.json()['data']['task']['status'] == Task.STATUS_IN_REVIEW

    def test_story_points_range(self, api, project, admin_user):
        response = api(admin_user).post(f'/api/tasks/projects/{project.id}', {'title': 'Huge', 'storyPoints': 40})

        assert response.status_code == 400

    def test_parent_from_other_project(self, api, admin_user, project, make_task):
        elsewhere = Project.objects.create(name='Elsewhere', owner=admin_user, created_by=admin_user)
        foreign = make_task('Foreign', target=elsewhere)

        response = api(admin_user).post(f'/api/tasks/projects/{project.id}', {
            'title': 'Child', 'parentTaskId': str(foreign.id),
        })

        assert response.status_code == 400


class TestListTasks:

    def test_filters_and_sort_by_priority(self, api, admin_user, make_task):
        make_task('low', priority='LOW')
        make_task('urgent', priority='URGENT')
        make_task('medium', priority='MEDIUM', status=Task.STATUS_DONE)

        client = api(admin_user)

        ordered = client.get('/api/tasks', {'sortBy': 'priority', 'sortOrder': 'desc'}).json()['data']['tasks']
        assert [t['title'] for t in ordered] == ['urgent', 'medium', 'low']

        done = client.get('/api/tasks', {'status': 'done'}).json()['data']['tasks']
        assert [t['title'] for t in done] == ['medium']

        searched = client.get('/api/tasks', {'search': 'URG'}).json()['data']['tasks']
        assert [t['title'] for t in searched] == ['urgent']

    def test_assigned_task_visible_outside_project(self, api, user, make_task):
        make_task('assigned', assignee=user)
        make_task('not mine')

        tasks = api(user).get('/api/tasks').json()['data']['tasks']

        assert [t['title'] for t in tasks] == ['assigned']

    def test_stats(self, api, admin_user, project, make_task):
        make_task('a', status=Task.STATUS_DONE)
        make_task('b', priority='HIGH')
        make_task('c', status=Task.STATUS_IN_REVIEW)

        data = api(admin_user).get('/api/tasks/stats', {'projectId': str(project.id)}).json()['data']

        assert data['total'] == 3
        assert data['done'] == 1
        assert data['inReview'] == 1
        assert data['highPriority'] == 1
        assert data['completionRate'] == 33.3


class TestTaskDetail:

    def test_detail_includes_subtasks_and_comments(self, api, admin_user, make_task):
        parent = make_task('Parent')
        make_task('Child', parent=parent)
        Comment.objects.create(task=parent, project=parent.project, author=admin_user, content='Looks good')

        data = api(admin_user).get(f'/api/tasks/{parent.id}').json()['data']['task']

        assert [s['title'] for s in data['subtasks']] == ['Child']
        assert data['comments'][0]['content'] == 'Looks good'
        assert data['project']['name'] == parent.project.name

    def test_outsider_denied(self, api, other_user, make_task):
        task = make_task()

        response = api(other_user).get(f'/api/tasks/{task.id}')

        assert response.status_code == 403
        assert response.json()['error'] == 'ACCESS_DENIED'

    def test_missing_task(self, api, admin_user):
        response = api(admin_user).get('/api/tasks/00000000-0000-0000-0000-000000000000')

        assert response.status_code == 404
        assert response.json()['error'] == 'TASK_NOT_FOUND'


class TestUpdateTask:

    def test_update_notifies_assignee(self, api, admin_user, user, add_member, make_task):
        add_member(user)
        task = make_task(assignee=user)

        response = api(admin_user).put(f'/api/tasks/{task.id}', {'title': 'Rewritten', 'priority': 'URGENT'})

        assert response.status_code == 200
        notification = Notification.objects.get(user=user)
        assert notification.type == Notification.TYPE_TASK_UPDATED
        assert notification.data['changes'] == ['priority', 'title']

    def test_status_change_moves_to_end(self, api, admin_user, make_task):
        make_task('done already', status=Task.STATUS_DONE)
        task = make_task('to finish')

        data = api(admin_user).put(f'/api/tasks/{task.id}', {'status': 'DONE'}).json()['data']['task']

        assert data['status'] == 'DONE'
        assert data['position'] == 1

    def test_viewer_cannot_edit(self, api, user, add_member, make_task):
        add_member(user, ProjectMember.ROLE_VIEWER)
        task = make_task()

        assert api(user).put(f'/api/tasks/{task.id}', {'title': 'Edited'}).status_code == 403

    def test_assignee_can_edit_as_viewer(self, api, user, add_member, make_task):
        add_member(user, ProjectMember.ROLE_VIEWER)
        task = make_task(assignee=user)

        assert api(user).put(f'/api/tasks/{task.id}', {'description': 'Notes'}).status_code == 200


class TestDeleteTask:

    def test_member_cannot_delete(self, api, user, add_member, make_task):
        add_member(user)
        task = make_task(created_by=user)

        assert api(user).delete(f'/api/tasks/{task.id}').status_code == 403

    def test_task_with_subtasks_is_kept(self, api, admin_user, make_task):
        parent = make_task('Parent')
        make_task('Child', parent=parent)

        response = api(admin_user).delete(f'/api/tasks/{parent.id}')

        assert response.status_code == 400
        assert response.json()['error'] == 'HAS_SUBTASKS'

    def test_project_admin_deletes(self, api, user, add_member, make_task):
        add_member(user, ProjectMember.ROLE_ADMIN)
        task = make_task()

        assert api(user).delete(f'/api/tasks/{task.id}').status_code == 200
        assert not Task.objects.filter(pk=task.pk).exists()
