# apps/core/notifications.py

"""
Serviço de notificações

Persiste a notificação e empurra uma cópia em tempo real para o grupo
WebSocket do destinatário (user_<id>).
"""

import json
import logging
from datetime import timedelta

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from .models import Notification, Task
from .utils import truncate

logger = logging.getLogger(__name__)


def user_group_name(user_id):
    return f'user_{user_id}'


def to_wire(payload):
    """Normaliza UUIDs e datas para tipos aceitos pelo channel layer"""
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def notify(user, type, title, message, data=None):
    """Cria a notificação e envia via WebSocket"""
    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title,
        message=message,
        data=to_wire(data or {}),
    )

    channel_layer = get_channel_layer()
    if channel_layer is not None:
        async_to_sync(channel_layer.group_send)(
            user_group_name(user.pk),
            {
                'type': 'notification',
                'message': to_wire(notification.to_dict()),
            }
        )

    logger.debug(f"🔔 {type} para {user.email}")
    return notification


def notify_task_assignment(task, assigned_by):
    """Avisa o responsável de que recebeu uma tarefa"""
    if not task.assignee or task.assignee_id == assigned_by.pk:
        return None
    return notify(
        task.assignee,
        Notification.TYPE_TASK_ASSIGNED,
        'New task assigned',
        f'{assigned_by.name} assigned you to "{task.title}"',
        {'taskId': task.id, 'projectId': task.project_id, 'assignedBy': assigned_by.pk},
    )


def notify_task_update(task, updated_by, changes):
    """Avisa o responsável de alterações feitas por outra pessoa"""
    if not task.assignee or task.assignee_id == updated_by.pk or not changes:
        return None
    return notify(
        task.assignee,
        Notification.TYPE_TASK_UPDATED,
        'Task updated',
        f'{updated_by.name} updated "{task.title}"',
        {'taskId': task.id, 'projectId': task.project_id, 'changes': sorted(changes)},
    )


def notify_comment_mention(mentioned_user, comment):
    """Avisa usuário mencionado com @nome em um comentário"""
    return notify(
        mentioned_user,
        Notification.TYPE_MENTION,
        'You were mentioned in a comment',
        f'{comment.author.name} mentioned you: "{truncate(comment.content, 100)}"',
        {'commentId': comment.id, 'taskId': comment.task_id, 'projectId': comment.project_id},
    )


def notify_new_comment(recipient, comment):
    """Avisa responsável/criador da tarefa sobre um novo comentário"""
    return notify(
        recipient,
        Notification.TYPE_COMMENT,
        'New comment',
        f'{comment.author.name} commented: "{truncate(comment.content, 100)}"',
        {'commentId': comment.id, 'taskId': comment.task_id, 'projectId': comment.project_id},
    )


def notify_project_invite(membership, invited_by):
    """Avisa o usuário adicionado a um projeto"""
    if membership.user_id == invited_by.pk:
        return None
    project = membership.project
    return notify(
        membership.user,
        Notification.TYPE_PROJECT_INVITE,
        'Added to project',
        f'{invited_by.name} added you to "{project.name}" as {membership.role}',
        {'projectId': project.id, 'role': membership.role},
    )


def send_deadline_reminders(within_hours=24):
    """
    Cria lembretes para tarefas abertas que vencem nas próximas horas

    Cada par tarefa/responsável recebe no máximo um lembrete.

    Returns:
        quantidade de lembretes criados
    """
    now = timezone.now()
    tasks = Task.objects.filter(
        project__is_active=True,
        assignee__isnull=False,
        assignee__is_active=True,
        due_date__gte=now,
        due_date__lte=now + timedelta(hours=within_hours),
    ).exclude(status=Task.STATUS_DONE).select_related('assignee', 'project')

    created = 0
    for task in tasks:
        already_sent = Notification.objects.filter(
            user=task.assignee,
            type=Notification.TYPE_DEADLINE_REMINDER,
            data__taskId=str(task.id),
        ).exists()
        if already_sent:
            continue

        notify(
            task.assignee,
            Notification.TYPE_DEADLINE_REMINDER,
            'Task due soon',
            f'"{task.title}" is due {task.due_date:%Y-%m-%d %H:%M}',
            {'taskId': task.id, 'projectId': task.project_id, 'dueDate': task.due_date},
        )
        created += 1

    logger.info(f"⏰ {created} lembretes de prazo enviados")
    return created
