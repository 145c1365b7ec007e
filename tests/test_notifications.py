# tests/test_notifications.py

from datetime import timedelta
from io import StringIO

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.management import call_command
from django.utils import timezone

from apps.core.models import Notification, Task
from apps.core.notifications import notify, send_deadline_reminders, user_group_name

pytestmark = pytest.mark.django_db


def make_notification(user, title='Hello', is_read=False):
    return Notification.objects.create(
        user=user, type=Notification.TYPE_COMMENT, title=title, message='msg', is_read=is_read,
    )


class TestNotificationApi:

    def test_list_with_unread_count(self, api, user, other_user):
        make_notification(user, 'one')
        make_notification(user, 'two', is_read=True)
        make_notification(other_user, 'not yours')

        data = api(user).get('/api/notifications').json()['data']

        assert {n['title'] for n in data['notifications']} == {'one', 'two'}
        assert data['unreadCount'] == 1

    def test_unread_only_and_limit(self, api, user):
        for index in range(3):
            make_notification(user, f'unread {index}')
        make_notification(user, 'read', is_read=True)

        data = api(user).get('/api/notifications', {'unreadOnly': 'true', 'limit': 2}).json()['data']

        assert len(data['notifications']) == 2
        assert all(not n['isRead'] for n in data['notifications'])

    def test_count(self, api, user):
        make_notification(user)
        make_notification(user)

        assert api(user).get('/api/notifications/count').json()['data']['unreadCount'] == 2

    def test_mark_read(self, api, user):
        notification = make_notification(user)

        response = api(user).put(f'/api/notifications/{notification.id}/read')

        assert response.status_code == 200
        notification.refresh_from_db()
        assert notification.is_read is True
        assert notification.read_at is not None

    def test_mark_all_read(self, api, user):
        make_notification(user)
        make_notification(user)

        response = api(user).put('/api/notifications/read-all')

        assert response.json()['data']['updated'] == 2
        assert not Notification.objects.filter(user=user, is_read=False).exists()

    def test_delete(self, api, user):
        notification = make_notification(user)

        assert api(user).delete(f'/api/notifications/{notification.id}').status_code == 200
        assert not Notification.objects.filter(pk=notification.pk).exists()

    def test_other_users_notification_is_not_found(self, api, user, other_user):
        notification = make_notification(other_user)

        response = api(user).put(f'/api/notifications/{notification.id}/read')

        assert response.status_code == 404
        assert response.json()['error'] == 'NOTIFICATION_NOT_FOUND'


class TestRealtimeDelivery:

    def test_notify_pushes_to_user_group(self, user):
        layer = get_channel_layer()
        channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(user_group_name(user.pk), channel)

        notification = notify(user, Notification.TYPE_MENTION, 'Mentioned', 'You were mentioned', {'taskId': 1})

        event = async_to_sync(layer.receive)(channel)
        assert event['type'] == 'notification'
        assert event['message']['id'] == str(notification.id)
        assert event['message']['data'] == {'taskId': 1}
        async_to_sync(layer.group_discard)(user_group_name(user.pk), channel)


class TestDeadlineReminders:

    def test_reminds_open_tasks_due_soon_once(self, user, make_task):
        soon = timezone.now() + timedelta(hours=3)
        due = make_task('due soon', assignee=user, due_date=soon)
        make_task('far away', assignee=user, due_date=timezone.now() + timedelta(days=5))
        make_task('finished', assignee=user, due_date=soon, status=Task.STATUS_DONE)
        make_task('unassigned', due_date=soon)

        assert send_deadline_reminders(within_hours=24) == 1
        assert send_deadline_reminders(within_hours=24) == 0

        reminder = Notification.objects.get(user=user)
        assert reminder.type == Notification.TYPE_DEADLINE_REMINDER
        assert reminder.data['taskId'] == str(due.id)

    def test_management_command(self, user, make_task):
        make_task('due soon', assignee=user, due_date=timezone.now() + timedelta(hours=30))
        out = StringIO()

        call_command('send_deadline_reminders', '--hours', '48', stdout=out)

        assert '1 lembretes enviados' in out.getvalue()
        assert Notification.objects.filter(user=user).count() == 1
