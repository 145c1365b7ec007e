# apps/board/views.py

import logging
import re
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Sum
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.core.exceptions import AccessDenied, Conflict, NotFound, ValidationFailed
from apps.core.forms import (
    CommentForm, CommentUpdateForm, TaskPositionForm, TaskStatusForm,
    TimeEntryForm, TimeEntryUpdateForm, TimerStartForm, TimerStopForm,
)
from apps.core.models import Comment, ProjectMember, Task, TimeEntry
from apps.core.notifications import notify_comment_mention, notify_new_comment
from apps.core.permissions import (
    ProjectPermissions,
    get_project_or_404,
    get_task_or_404,
    requires_project_role,
    token_required,
)
from apps.core.utils import api_success, parse_json_body
from apps.reports.utils import filter_time_entries, project_progress, time_totals

from .realtime import COMMENT_ADDED, TASK_MOVED, broadcast_project_event

logger = logging.getLogger(__name__)

MENTION_RE = re.compile(r'@(\w+)')


def _ensure_task_access(user, task):
    """Membro, dono, criador, admin ou responsável pela tarefa"""
    if task.assignee_id == user.pk or ProjectPermissions.has_project_access(user, task.project):
        return
    logger.warning(f"🚫 {user} sem acesso à tarefa {task.pk}")
    raise AccessDenied('You do not have access to this task', code='ACCESS_DENIED')


# =================== KANBAN ===================

@require_http_methods(['GET'])
@token_required
@requires_project_role(ProjectMember.ROLE_VIEWER)
def kanban_board_view(request, project_id):
    """
    Quadro Kanban: tarefas do projeto agrupadas por status
    """
    project = request.project
    columns = {status: [] for status, _ in Task.STATUS_CHOICES}

    tasks = project.tasks.select_related('assignee', 'created_by').order_by('position', 'created_at')
    for task in tasks:
        columns[task.status].append(task.to_dict())

    return api_success({
        'project': project.to_dict(),
        'columns': columns,
    })


def _get_movable_task(request, task_id):
    task = get_task_or_404(task_id)
    if not ProjectPermissions.can_move_task(request.user, task):
        logger.warning(f"🚫 {request.user} sem permissão para mover a tarefa {task.pk}")
        raise AccessDenied('You do not have permission to move this task', code='PERMISSION_DENIED')
    return task


@csrf_exempt
@require_http_methods(['PUT'])
@token_required
def task_status_view(request, task_id):
    """
    Move a tarefa para outra coluna

    Sem posição informada a tarefa vai para o fim da coluna de destino.
    """
    task = _get_movable_task(request, task_id)
    data = TaskStatusForm(parse_json_body(request)).validated()

    previous_status = task.status
    task.status = data['status']
    if data.get('position') is None:
        task.position = Task.next_position(task.project, task.status)
    else:
        task.position = data['position']
    task.save()

    logger.info(f"🔀 Tarefa '{task.title}' movida de {previous_status} para {task.status}")

    broadcast_project_event(task.project_id, TASK_MOVED, {
        'task': task.to_dict(),
        'fromStatus': previous_status,
        'toStatus': task.status,
    }, user=request.user)

    return api_success({'task': task.to_dict()}, message='Task status updated successfully')


@csrf_exempt
@require_http_methods(['PUT'])
@token_required
def task_position_view(request, task_id):
    task = _get_movable_task(request, task_id)
    data = TaskPositionForm(parse_json_body(request)).validated()

    task.position = data['position']
    task.save(update_fields=['position', 'updated_at'])

    broadcast_project_event(task.project_id, TASK_MOVED, {
        'task': task.to_dict(),
        'fromStatus': task.status,
        'toStatus': task.status,
    }, user=request.user)

    return api_success({'task': task.to_dict()}, message='Task position updated successfully')


@require_http_methods(['GET'])
@token_required
@requires_project_role(ProjectMember.ROLE_VIEWER)
def project_progress_view(request, project_id):
    return api_success(project_progress(request.project))


@require_http_methods(['GET'])
@token_required
def task_progress_view(request, task_id):
    """Tempo registrado na tarefa"""
    task = get_task_or_404(task_id)
    _ensure_task_access(request.user, task)

    entries = task.time_entries.select_related('user').order_by('-start_time')
    data = {'task': task.to_dict()}
    data.update(time_totals(entries))
    data['timeEntries'] = [_entry_dict(entry) for entry in entries]
    return api_success(data)


# =================== COMENTÁRIOS ===================

def _comment_target(task_id=None, project_id=None):
    """
    Resolve o alvo do comentário

    Returns:
        (tarefa ou None, projeto)
    """
    if task_id:
        task = get_task_or_404(task_id)
        return task, task.project
    return None, get_project_or_404(project_id)


def _ensure_comment_access(user, project):
    if not ProjectPermissions.has_project_access(user, project):
        logger.warning(f"🚫 {user} sem acesso aos comentários do projeto {project.pk}")
        raise AccessDenied('You do not have access to these comments', code='ACCESS_DENIED')


def _build_thread(comments):
    """Monta a árvore de respostas preservando a ordem cronológica"""
    nodes = {}
    roots = []
    for comment in comments:
        node = comment.to_dict()
        node['replies'] = []
        nodes[comment.pk] = node

    for comment in comments:
        node = nodes[comment.pk]
        parent = nodes.get(comment.parent_id)
        if parent is not None:
            parent['replies'].append(node)
        else:
            roots.append(node)
    return roots


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@token_required
def comments_view(request):
    """
    GET: comentários de uma tarefa ou projeto em árvore
    POST: novo comentário
    """
    if request.method == 'POST':
        return _create_comment(request)

    task_id = request.GET.get('taskId')
    project_id = request.GET.get('projectId')
    if not task_id and not project_id:
        raise ValidationFailed('Either taskId or projectId is required')

    task, project = _comment_target(task_id, project_id)
    _ensure_comment_access(request.user, project)

    if task is not None:
        comments = task.comments.all()
    else:
        comments = project.comments.filter(task__isnull=True)

    comments = list(comments.select_related('author').order_by('created_at'))
    return api_success({'comments': _build_thread(comments)})


def _mentioned_members(project, content, exclude):
    """Membros do projeto citados com @nome (primeiro nome ou usuário do email)"""
    handles = {handle.lower() for handle in MENTION_RE.findall(content)}
    if not handles:
        return []

    mentioned = []
    for membership in project.active_members():
        user = membership.user
        if user.pk == exclude.pk:
            continue
        names = {
            user.name.split()[0].lower() if user.name else '',
            user.name.replace(' ', '').lower(),
            user.email.split('@')[0].lower(),
        }
        if handles & names:
            mentioned.append(user)
    return mentioned


def _create_comment(request):
    data = CommentForm(parse_json_body(request)).validated()
    task, project = _comment_target(data.get('task_id'), data.get('project_id'))
    _ensure_comment_access(request.user, project)

    parent = None
    if data.get('parent_id'):
        parent = Comment.objects.filter(pk=data['parent_id'], task=task, project=project).first()
        if parent is None:
            raise NotFound('Comment')

    comment = Comment.objects.create(
        content=data['content'],
        author=request.user,
        task=task,
        project=project,
        parent=parent,
    )
    logger.info(f"💬 Comentário de {request.user.email} em {task or project}")

    mentioned = _mentioned_members(project, comment.content, exclude=request.user)
    for user in mentioned:
        notify_comment_mention(user, comment)

    if task is not None:
        recipients = {task.assignee, task.created_by} - {None, request.user, *mentioned}
        for user in recipients:
            notify_new_comment(user, comment)

    broadcast_project_event(project.pk, COMMENT_ADDED, {'comment': comment.to_dict()}, user=request.user)

    return api_success({'comment': comment.to_dict()}, message='Comment created successfully', status=201)


def _get_own_comment_or_404(user, comment_id):
    """Apenas o autor enxerga o comentário para edição/remoção"""
    comment = Comment.objects.select_related('author').filter(pk=comment_id, author=user).first()
    if comment is None:
        raise NotFound('Comment')
    return comment


@csrf_exempt
@require_http_methods(['PUT', 'DELETE'])
@token_required
def comment_detail_view(request, comment_id):
    comment = _get_own_comment_or_404(request.user, comment_id)

    if request.method == 'DELETE':
        comment.delete()
        return api_success(message='Comment deleted successfully')

    data = CommentUpdateForm(parse_json_body(request)).validated()
    comment.content = data['content']
    comment.is_edited = True
    comment.save()

    return api_success({'comment': comment.to_dict()}, message='Comment updated successfully')


# =================== CONTROLE DE TEMPO ===================

def _entry_dict(entry):
    data = entry.to_dict()
    data['user'] = entry.user.to_summary()
    return data


def _entry_with_task(entry):
    data = entry.to_dict()
    data['task'] = {
        'id': entry.task.id,
        'title': entry.task.title,
        'projectId': entry.task.project_id,
        'projectName': entry.task.project.name,
    }
    return data


@require_http_methods(['GET'])
@token_required
def task_time_entries_view(request, task_id):
    task = get_task_or_404(task_id)
    _ensure_task_access(request.user, task)

    entries = task.time_entries.select_related('user').order_by('-start_time')
    return api_success({'timeEntries': [_entry_dict(entry) for entry in entries]})


@require_http_methods(['GET'])
@token_required
def my_time_entries_view(request):
    entries = TimeEntry.objects.filter(user=request.user).select_related('task', 'task__project')
    entries = filter_time_entries(entries, request.GET).order_by('-start_time')

    data = {'timeEntries': [_entry_with_task(entry) for entry in entries]}
    data.update(time_totals(entries))
    return api_success(data)


@require_http_methods(['GET'])
@token_required
def active_timer_view(request):
    entry = TimeEntry.objects.filter(
        user=request.user, end_time__isnull=True
    ).select_related('task', 'task__project').first()
    return api_success({'activeEntry': _entry_with_task(entry) if entry else None})


@require_http_methods(['GET'])
@token_required
def time_analytics_view(request):
    """
    Resumo do tempo do usuário por projeto e por tarefa
    """
    entries = filter_time_entries(
        TimeEntry.objects.filter(user=request.user, end_time__isnull=False),
        {key: request.GET.get(key) for key in ('startDate', 'endDate', 'projectId') if request.GET.get(key)},
    )

    rows = entries.values(
        'task_id', 'task__title', 'task__project_id', 'task__project__name'
    ).annotate(
        entry_count=Count('id'),
        total_duration=Sum('duration'),
        avg_duration=Avg('duration'),
    ).order_by('-total_duration')

    summary = {'totalEntries': 0, 'totalDuration': 0, 'totalTasks': 0, 'totalProjects': 0}
    projects = {}
    task_stats = []

    for row in rows:
        duration = row['total_duration'] or 0
        summary['totalEntries'] += row['entry_count']
        summary['totalDuration'] += duration
        summary['totalTasks'] += 1

        project = projects.setdefault(row['task__project_id'], {
            'projectId': row['task__project_id'],
            'projectName': row['task__project__name'],
            'totalDuration': 0,
            'taskCount': 0,
        })
        project['totalDuration'] += duration
        project['taskCount'] += 1

        task_stats.append({
            'taskId': row['task_id'],
            'taskTitle': row['task__title'],
            'projectName': row['task__project__name'],
            'totalDuration': duration,
            'entryCount': row['entry_count'],
            'avgDuration': round(float(row['avg_duration'] or 0), 2),
        })

    summary['totalProjects'] = len(projects)
    project_stats = sorted(projects.values(), key=lambda item: item['totalDuration'], reverse=True)

    return api_success({
        'summary': summary,
        'projectStats': project_stats,
        'taskStats': task_stats,
    })


def _active_timer_conflict(entry):
    return Conflict(
        'You already have an active timer. Stop it before starting a new one',
        code='ACTIVE_TIMER_EXISTS',
        details={'activeEntry': _entry_with_task(entry)} if entry else None,
    )


@csrf_exempt
@require_http_methods(['POST'])
@token_required
def start_timer_view(request):
    """
    Inicia o cronômetro em uma tarefa

    Cada usuário pode ter apenas um cronômetro em aberto (409).
    """
    data = TimerStartForm(parse_json_body(request)).validated()
    task = get_task_or_404(data['task_id'])
    _ensure_task_access(request.user, task)

    running = TimeEntry.objects.filter(
        user=request.user, end_time__isnull=True
    ).select_related('task', 'task__project').first()
    if running:
        raise _active_timer_conflict(running)

    try:
        with transaction.atomic():
            entry = TimeEntry.objects.create(
                task=task,
                user=request.user,
                description=data.get('description') or '',
                start_time=timezone.now(),
            )
    except IntegrityError:
        # Outro request abriu um cronômetro ao mesmo tempo
        raise _active_timer_conflict(None)

    logger.info(f"⏱️ Cronômetro iniciado por {request.user.email} em '{task.title}'")
    return api_success({'timeEntry': _entry_with_task(entry)}, message='Timer started', status=201)


@csrf_exempt
@require_http_methods(['POST'])
@token_required
def stop_timer_view(request):
    data = TimerStopForm(parse_json_body(request)).validated()

    entry = TimeEntry.objects.filter(
        pk=data['time_entry_id'], user=request.user, end_time__isnull=True
    ).select_related('task', 'task__project').first()
    if entry is None:
        raise NotFound('Time entry')

    end_time = data.get('end_time') or timezone.now()
    if end_time < entry.start_time:
        raise ValidationFailed('End time must be after start time')

    entry.end_time = end_time
    entry.duration = None  # recalculada no pre_save
    entry.save()

    logger.info(f"⏹️ Cronômetro parado por {request.user.email}: {entry.duration}min")
    return api_success({'timeEntry': _entry_with_task(entry)}, message='Timer stopped')


@csrf_exempt
@require_http_methods(['POST'])
@token_required
def time_entries_view(request):
    """
    Registro manual de tempo

    Sem endTime o fim é calculado a partir de startTime + duration.
    """
    data = TimeEntryForm(parse_json_body(request)).validated()
    task = get_task_or_404(data['task_id'])
    _ensure_task_access(request.user, task)

    start_time = data['start_time']
    end_time = data.get('end_time')
    duration = data.get('duration')
    if end_time is None:
        end_time = start_time + timedelta(minutes=duration)

    entry = TimeEntry.objects.create(
        task=task,
        user=request.user,
        description=data.get('description') or '',
        start_time=start_time,
        end_time=end_time,
        duration=duration,
    )
    logger.info(f"🕒 Registro manual de {entry.duration}min por {request.user.email}")

    return api_success({'timeEntry': _entry_with_task(entry)}, message='Time entry created', status=201)


@csrf_exempt
@require_http_methods(['PUT', 'DELETE'])
@token_required
def time_entry_detail_view(request, entry_id):
    entry = TimeEntry.objects.select_related('task', 'task__project').filter(pk=entry_id).first()
    if entry is None:
        raise NotFound('Time entry')
    if entry.user_id != request.user.pk:
        raise AccessDenied('You can only modify your own time entries')

    if request.method == 'DELETE':
        entry.delete()
        return api_success(message='Time entry deleted')

    data = TimeEntryUpdateForm(parse_json_body(request)).provided_data()

    if 'description' in data:
        entry.description = data['description'] or ''
    if data.get('start_time'):
        entry.start_time = data['start_time']
    if 'end_time' in data:
        entry.end_time = data['end_time']

    if entry.end_time and entry.end_time < entry.start_time:
        raise ValidationFailed('End time must be after start time')

    if data.get('duration') is not None:
        entry.duration = data['duration']
    elif 'start_time' in data or 'end_time' in data:
        entry.duration = entry.compute_duration()

    try:
        with transaction.atomic():
            entry.save()
    except IntegrityError:
        raise _active_timer_conflict(None)

    return api_success({'timeEntry': _entry_with_task(entry)}, message='Time entry updated')
