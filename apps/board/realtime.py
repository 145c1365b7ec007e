# apps/board/realtime.py

"""
Envio de eventos do projeto para os clientes conectados via WebSocket
"""

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

from apps.core.notifications import to_wire

# Eventos aceitos pelo ProjectConsumer
TASK_CREATED = 'task_created'
TASK_UPDATED = 'task_updated'
TASK_MOVED = 'task_moved'
TASK_DELETED = 'task_deleted'
COMMENT_ADDED = 'comment_added'


def project_group_name(project_id):
    return f'project_{project_id}'


def broadcast_project_event(project_id, event_type, message, user=None):
    """
    Envia um evento ao grupo do projeto

    Args:
        project_id: id do projeto
        event_type: um dos eventos acima (vira o handler do consumer)
        message: payload do evento
        user: autor da alteração, se houver
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    payload = dict(message)
    if user is not None:
        payload['user'] = user.to_summary()
    payload['timestamp'] = timezone.now()

    async_to_sync(channel_layer.group_send)(
        project_group_name(project_id),
        {
            'type': event_type,
            'message': to_wire(payload),
        }
    )
