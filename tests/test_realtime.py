# tests/test_realtime.py

import pytest
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from apps.board.realtime import TASK_MOVED, project_group_name
from apps.board.routing import websocket_urlpatterns
from apps.core.auth_service import auth_service
from apps.core.models import Notification, ProjectMember
from apps.core.notifications import notify

pytestmark = pytest.mark.django_db(transaction=True)

application = URLRouter(websocket_urlpatterns)


def project_socket(project_id, user=None):
    path = f'ws/projects/{project_id}/'
    if user is not None:
        path += f'?token={auth_service.issue_token(user)}'
    return WebsocketCommunicator(application, path)


def notification_socket(user):
    return WebsocketCommunicator(application, f'ws/notifications/?token={auth_service.issue_token(user)}')


def run(scenario):
    """Roda o cenário assíncrono num único event loop, com a camada limpa"""

    async def wrapped():
        await get_channel_layer().flush()
        return await scenario()

    return async_to_sync(wrapped)()


class TestProjectSocket:

    def test_member_connects_and_gets_pong(self, project, user, add_member):
        add_member(user, ProjectMember.ROLE_VIEWER)
        communicator = project_socket(project.id, user)

        async def scenario():
            connected, _ = await communicator.connect()
            assert connected
            await communicator.send_json_to({'type': 'ping'})
            reply = await communicator.receive_json_from()
            await communicator.disconnect()
            return reply

        reply = run(scenario)

        assert reply['type'] == 'pong'
        assert reply['timestamp']

    def test_without_token_is_rejected(self, project):
        communicator = project_socket(project.id)

        async def scenario():
            connected, _ = await communicator.connect()
            return connected

        assert run(scenario) is False

    def test_invalid_token_is_rejected(self, project):
        communicator = WebsocketCommunicator(application, f'ws/projects/{project.id}/?token=not-a-jwt')

        async def scenario():
            connected, _ = await communicator.connect()
            return connected

        assert run(scenario) is False

    def test_outsider_is_rejected(self, project, other_user):
        communicator = project_socket(project.id, other_user)

        async def scenario():
            connected, _ = await communicator.connect()
            return connected

        assert run(scenario) is False

    def test_malformed_project_id_closes_cleanly(self, admin_user):
        communicator = project_socket('a' * 36, admin_user)

        async def scenario():
            connected, _ = await communicator.connect()
            return connected

        assert run(scenario) is False

    def test_task_moved_is_relayed(self, project, user, add_member):
        add_member(user)
        communicator = project_socket(project.id, user)
        message = {'taskId': 'abc', 'oldStatus': 'TODO', 'newStatus': 'DONE', 'position': 0}

        async def scenario():
            connected, _ = await communicator.connect()
            assert connected
            await get_channel_layer().group_send(
                project_group_name(project.id), {'type': TASK_MOVED, 'message': message}
            )
            event = await communicator.receive_json_from()
            await communicator.disconnect()
            return event

        event = run(scenario)

        assert event == {'type': TASK_MOVED, 'message': message}


class TestNotificationSocket:

    def test_notification_is_pushed_to_user(self, user):
        communicator = notification_socket(user)

        async def scenario():
            connected, _ = await communicator.connect()
            assert connected
            notification = await database_sync_to_async(notify)(
                user, Notification.TYPE_COMMENT, 'New comment', 'Someone commented', {'taskId': 1}
            )
            event = await communicator.receive_json_from()
            await communicator.disconnect()
            return notification, event

        notification, event = run(scenario)

        assert event['type'] == 'notification'
        assert event['message']['id'] == str(notification.id)
        assert event['message']['title'] == 'New comment'

    def test_other_users_notification_is_not_delivered(self, user, other_user):
        communicator = notification_socket(user)

        async def scenario():
            connected, _ = await communicator.connect()
            assert connected
            await database_sync_to_async(notify)(other_user, Notification.TYPE_COMMENT, 'Hi', 'Not for you')
            nothing = await communicator.receive_nothing()
            await communicator.disconnect()
            return nothing

        assert run(scenario) is True

    def test_ping(self, user):
        communicator = notification_socket(user)

        async def scenario():
            await communicator.connect()
            await communicator.send_json_to({'type': 'ping'})
            reply = await communicator.receive_json_from()
            await communicator.disconnect()
            return reply

        assert run(scenario)['type'] == 'pong'
