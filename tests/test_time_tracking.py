# tests/test_time_tracking.py

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.models import TimeEntry

pytestmark = pytest.mark.django_db


@pytest.fixture
def member(user, add_member):
    add_member(user)
    return user


def make_entry(user, task, minutes=30, hours_ago=2, **fields):
    start = timezone.now() - timedelta(hours=hours_ago)
    return TimeEntry.objects.create(
        user=user, task=task, start_time=start, end_time=start + timedelta(minutes=minutes), **fields
    )


class TestTimer:

    def test_start_and_stop(self, api, member, make_task):
        task = make_task()
        client = api(member)

        started = client.post('/api/time-tracking/start', {'taskId': str(task.id), 'description': 'Coding'})
        assert started.status_code == 201
        entry = started.json()['data']['timeEntry']
        assert entry['isRunning'] is True
        assert entry['task']['title'] == task.title

        active = client.get('/api/time-tracking/active').json()['data']['activeEntry']
        assert active['id'] == entry['id']

        end_time = (timezone.now() + timedelta(minutes=45)).isoformat()
        stopped = client.post('/api/time-tracking/stop', {'timeEntryId': entry['id'], 'endTime': end_time})
        assert stopped.status_code == 200
        assert stopped.json()['data']['timeEntry']['duration'] in (44, 45)

        assert client.get('/api/time-tracking/active').json()['data']['activeEntry'] is None

    def test_second_timer_conflicts(self, api, member, make_task):
        first, second = make_task('first'), make_task('second')
        client = api(member)
        client.post('/api/time-tracking/start', {'taskId': str(first.id)})

        response = client.post('/api/time-tracking/start', {'taskId': str(second.id)})

        assert response.status_code == 409
        body = response.json()
        assert body['error'] == 'ACTIVE_TIMER_EXISTS'
        assert body['details']['activeEntry']['task']['title'] == 'first'
        assert TimeEntry.objects.filter(user=member).count() == 1

    def test_outsider_cannot_track(self, api, other_user, make_task):
        task = make_task()

        response = api(other_user).post('/api/time-tracking/start', {'taskId': str(task.id)})

        assert response.status_code == 403
        assert response.json()['error'] == 'ACCESS_DENIED'

    def test_assignee_outside_project_can_track(self, api, other_user, make_task):
        task = make_task(assignee=other_user)

        assert api(other_user).post('/api/time-tracking/start', {'taskId': str(task.id)}).status_code == 201

    def test_stop_someone_elses_timer(self, api, member, admin_user, make_task):
        task = make_task()
        entry = TimeEntry.objects.create(user=admin_user, task=task, start_time=timezone.now())

        response = api(member).post('/api/time-tracking/stop', {'timeEntryId': str(entry.id)})

        assert response.status_code == 404
        assert response.json()['error'] == 'TIME_ENTRY_NOT_FOUND'


class TestManualEntries:

    def test_entry_with_end_time_computes_duration(self, api, member, make_task):
        task = make_task()

        response = api(member).post('/api/time-tracking', {
            'taskId': str(task.id),
            'startTime': '2026-03-02T09:00:00Z',
            'endTime': '2026-03-02T10:30:00Z',
        })

        assert response.status_code == 201
        assert response.json()['data']['timeEntry']['duration'] == 90

    def test_entry_with_duration_computes_end(self, api, member, make_task):
        task = make_task()

        response = api(member).post('/api/time-tracking', {
            'taskId': str(task.id),
            'startTime': '2026-03-02T09:00:00Z',
            'duration': 25,
        })

        assert response.status_code == 201
        entry = TimeEntry.objects.get(pk=response.json()['data']['timeEntry']['id'])
        assert entry.end_time - entry.start_time == timedelta(minutes=25)

    def test_needs_end_or_duration(self, api, member, make_task):
        task = make_task()

        response = api(member).post('/api/time-tracking', {'taskId': str(task.id), 'startTime': '2026-03-02T09:00:00Z'})

        assert response.status_code == 400

    def test_end_before_start(self, api, member, make_task):
        task = make_task()

        response = api(member).post('/api/time-tracking', {
            'taskId': str(task.id),
            'startTime': '2026-03-02T09:00:00Z',
            'endTime': '2026-03-02T08:00:00Z',
        })

        assert response.status_code == 400

    def test_update_recomputes_duration(self, api, member, make_task):
        entry = make_entry(member, make_task(), minutes=30)

        response = api(member).put(f'/api/time-tracking/{entry.id}', {
            'endTime': (entry.start_time + timedelta(minutes=75)).isoformat(),
        })

        assert response.status_code == 200
        entry.refresh_from_db()
        assert entry.duration == 75

    def test_only_owner_modifies(self, api, member, admin_user, make_task):
        entry = make_entry(admin_user, make_task())

        assert api(member).put(f'/api/time-tracking/{entry.id}', {'description': 'mine now'}).status_code == 403
        assert api(member).delete(f'/api/time-tracking/{entry.id}').status_code == 403
        assert api(admin_user).delete(f'/api/time-tracking/{entry.id}').status_code == 200


class TestReports:

    def test_task_entries_and_progress(self, api, member, admin_user, make_task):
        task = make_task()
        make_entry(member, task, minutes=30)
        make_entry(admin_user, task, minutes=90, hours_ago=5)
        client = api(member)

        entries = client.get(f'/api/time-tracking/task/{task.id}').json()['data']['timeEntries']
        assert len(entries) == 2
        assert entries[0]['user']['id'] == str(member.id)

        progress = client.get(f'/api/kanban/tasks/{task.id}/progress').json()['data']
        assert progress['totalMinutes'] == 120
        assert progress['totalHours'] == 2.0

    def test_my_entries_with_date_filter(self, api, member, make_task):
        task = make_task()
        recent = make_entry(member, task, minutes=20, hours_ago=1)
        old = make_entry(member, task, minutes=40, hours_ago=24 * 10)

        start = (timezone.now() - timedelta(days=2)).date().isoformat()
        data = api(member).get('/api/time-tracking/my-entries', {'startDate': start}).json()['data']

        ids = [e['id'] for e in data['timeEntries']]
        assert str(recent.id) in ids
        assert str(old.id) not in ids
        assert data['totalMinutes'] == 20

    def test_analytics(self, api, member, admin_user, project, make_task):
        first, second = make_task('first'), make_task('second')
        make_entry(member, first, minutes=30)
        make_entry(member, first, minutes=60, hours_ago=4)
        make_entry(member, second, minutes=15)
        make_entry(admin_user, second, minutes=500)

        data = api(member).get('/api/time-tracking/analytics').json()['data']

        assert data['summary'] == {'totalEntries': 3, 'totalDuration': 105, 'totalTasks': 2, 'totalProjects': 1}
        assert data['projectStats'][0]['projectName'] == project.name
        top = data['taskStats'][0]
        assert top['taskTitle'] == 'first'
        assert top['entryCount'] == 2
        assert top['avgDuration'] == 45.0
