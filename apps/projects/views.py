# apps/projects/views.py

import logging

from django.db import transaction
from django.db.models import Case, IntegerField, Q, Value, When
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.board.realtime import (
    TASK_CREATED, TASK_DELETED, TASK_UPDATED, broadcast_project_event
)
from apps.core.exceptions import AccessDenied, BadRequest, ValidationFailed
from apps.core.forms import ProjectForm, TaskForm
from apps.core.models import Project, ProjectMember, Task, User
from apps.core.notifications import notify_task_assignment, notify_task_update
from apps.core.permissions import (
    ProjectPermissions,
    get_task_or_404,
    requires_project_role,
    requires_system_role,
    token_required,
)
from apps.core.utils import api_success, paginate, parse_json_body
from apps.reports.utils import project_stats, project_summary, task_stats, with_task_counts

logger = logging.getLogger(__name__)

# Ordem de prioridade para sortBy=priority
PRIORITY_RANK = Case(
    When(priority='LOW', then=Value(1)),
    When(priority='MEDIUM', then=Value(2)),
    When(priority='HIGH', then=Value(3)),
    When(priority='URGENT', then=Value(4)),
    default=Value(0),
    output_field=IntegerField(),
)

TASK_SORT_FIELDS = {
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
    'dueDate': 'due_date',
    'priority': 'priority_rank',
    'title': 'title',
    'position': 'position',
}


# =================== PROJETOS ===================

@csrf_exempt
@require_http_methods(['GET', 'POST'])
@token_required
def projects_view(request):
    """
    GET: projetos visíveis ao usuário, com contadores
    POST: criação de projeto (apenas ADMIN do sistema)
    """
    if request.method == 'POST':
        return _create_project(request)

    projects = request.user.get_visible_projects()

    search = request.GET.get('search', '').strip()
    if search:
        projects = projects.filter(Q(name__icontains=search) | Q(description__icontains=search))

    status = request.GET.get('status')
    if status:
        projects = projects.filter(status=status.upper())

    page, pagination = paginate(with_task_counts(projects).order_by('-created_at'), request)
    return api_success({
        'projects': [project_summary(project) for project in page],
        'pagination': pagination,
    })


@requires_system_role(User.ROLE_ADMIN)
def _create_project(request):
    """
    Cria o projeto com o usuário como dono

    O vínculo OWNER é criado pelo sinal de post_save. Ids de membros
    desconhecidos são ignorados.
    """
    form = ProjectForm(parse_json_body(request))
    data = form.validated()

    with transaction.atomic():
        project = Project.objects.create(
            name=data['name'],
            description=data.get('description') or '',
            status=data.get('status') or Project.STATUS_ACTIVE,
            start_date=data.get('start_date'),
            end_date=data.get('end_date'),
            owner=request.user,
            created_by=request.user,
        )

        member_ids = [pk for pk in data.get('members') or [] if pk != request.user.pk]
        for user in User.objects.filter(pk__in=member_ids, is_active=True):
            ProjectMember.objects.get_or_create(
                project=project,
                user=user,
                defaults={'role': ProjectMember.ROLE_MEMBER},
            )

    logger.info(f"📁 Projeto '{project.name}' criado por {request.user.email}")

    summary = project_summary(with_task_counts(Project.objects.filter(pk=project.pk)).get())
    return api_success({'project': summary}, message='Project created successfully', status=201)


@require_http_methods(['GET'])
@token_required
def project_stats_view(request):
    return api_success(project_stats(request.user.get_visible_projects()))


@csrf_exempt
@require_http_methods(['GET', 'PUT', 'DELETE'])
@token_required
def project_detail_view(request, project_id):
    if request.method == 'PUT':
        return _update_project(request, project_id)
    if request.method == 'DELETE':
        return _delete_project(request, project_id)
    return _project_detail(request, project_id)


@requires_project_role(ProjectMember.ROLE_VIEWER)
def _project_detail(request, project_id):
    """
    Detalhes do projeto com membros, atividade recente e contadores
    """
    project = request.project
    recent = project.tasks.select_related('assignee', 'created_by').order_by('-updated_at')[:10]

    data = project.to_dict()
    data.update({
        'owner': project.owner.to_summary(),
        'creator': project.created_by.to_summary(),
        'members': [member.to_dict() for member in project.active_members()],
        'recentActivities': [task.to_dict() for task in recent],
        'taskCounts': project.task_counts(),
        'userRole': request.project_role,
    })
    return api_success({'project': data})


@requires_project_role(ProjectMember.ROLE_ADMIN)
def _update_project(request, project_id):
    project = request.project
    data = ProjectForm(parse_json_body(request), partial=True).provided_data()

    if data.get('name'):
        project.name = data['name']
    if 'description' in data:
        project.description = data['description'] or ''
    if data.get('status'):
        project.status = data['status']
    if 'start_date' in data:
        project.start_date = data['start_date']
    if 'end_date' in data:
        project.end_date = data['end_date']

    if project.start_date and project.end_date and project.end_date < project.start_date:
        raise ValidationFailed('End date must be after start date')

    project.save()
    logger.info(f"📝 Projeto '{project.name}' atualizado por {request.user.email}")

    summary = project_summary(with_task_counts(Project.objects.filter(pk=project.pk)).get())
    return api_success({'project': summary}, message='Project updated successfully')


@requires_project_role(ProjectMember.ROLE_OWNER)
def _delete_project(request, project_id):
    project = request.project
    project.is_active = False
    project.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"🗑️ Projeto '{project.name}' desativado por {request.user.email}")
    return api_success(message='Project deleted successfully')


# =================== TAREFAS ===================

@require_http_methods(['GET'])
@token_required
def tasks_view(request):
    """Tarefas visíveis com filtros, ordenação e paginação"""
    tasks = request.user.get_visible_tasks().select_related('assignee', 'created_by')

    search = request.GET.get('search', '').strip()
    if search:
        tasks = tasks.filter(Q(title__icontains=search) | Q(description__icontains=search))

    for param, field in (('status', 'status'), ('priority', 'priority'), ('type', 'type')):
        value = request.GET.get(param)
        if value:
            value = value.upper()
            if param == 'status' and value == 'REVIEW':
                value = Task.STATUS_IN_REVIEW
            tasks = tasks.filter(**{field: value})

    if request.GET.get('assigneeId'):
        tasks = tasks.filter(assignee_id=request.GET['assigneeId'])
    if request.GET.get('projectId'):
        tasks = tasks.filter(project_id=request.GET['projectId'])

    sort_field = TASK_SORT_FIELDS.get(request.GET.get('sortBy'), 'created_at')
    if sort_field == 'priority_rank':
        tasks = tasks.annotate(priority_rank=PRIORITY_RANK)
    descending = request.GET.get('sortOrder', 'desc').lower() != 'asc'
    tasks = tasks.order_by(f"{'-' if descending else ''}{sort_field}", 'id')

    page, pagination = paginate(tasks, request)
    return api_success({
        'tasks': [task.to_dict() for task in page],
        'pagination': pagination,
    })


@require_http_methods(['GET'])
@token_required
def task_stats_view(request):
    tasks = request.user.get_visible_tasks()
    if request.GET.get('projectId'):
        tasks = tasks.filter(project_id=request.GET['projectId'])
    return api_success(task_stats(tasks))


def _resolve_assignee(project, assignee_id):
    """Responsável precisa ser membro ativo do projeto"""
    if assignee_id is None:
        return None
    membership = project.memberships.filter(
        user_id=assignee_id, is_active=True, user__is_active=True
    ).select_related('user').first()
    if membership is None:
        raise ValidationFailed('Assignee must be an active member of the project')
    return membership.user


def _resolve_parent(project, parent_id, task=None):
    """Tarefa pai precisa ser do mesmo projeto"""
    if parent_id is None:
        return None
    if task is not None and parent_id == task.pk:
        raise ValidationFailed('A task cannot be its own parent')
    parent = Task.objects.filter(pk=parent_id, project=project).first()
    if parent is None:
        raise ValidationFailed('Parent task must belong to the same project')
    return parent


@csrf_exempt
@require_http_methods(['POST'])
@token_required
@requires_project_role(ProjectMember.ROLE_MEMBER)
def create_task_view(request, project_id):
    """
    Cria tarefa no fim da coluna do status informado
    """
    project = request.project
    data = TaskForm(parse_json_body(request)).validated()

    assignee = _resolve_assignee(project, data.get('assignee_id'))
    parent = _resolve_parent(project, data.get('parent_task_id'))
    status = data.get('status') or Task.STATUS_TODO

    task = Task.objects.create(
        title=data['title'],
        description=data.get('description') or '',
        status=status,
        priority=data.get('priority') or 'MEDIUM',
        type=data.get('type') or 'TASK',
        story_points=data.get('story_points'),
        due_date=data.get('due_date'),
        project=project,
        assignee=assignee,
        created_by=request.user,
        parent=parent,
        position=Task.next_position(project, status),
    )
    logger.info(f"📝 Tarefa '{task.title}' criada no projeto {project.name}")

    notify_task_assignment(task, request.user)
    broadcast_project_event(project.pk, TASK_CREATED, {'task': task.to_dict()}, user=request.user)

    return api_success({'task': task.to_dict()}, message='Task created successfully', status=201)


@csrf_exempt
@require_http_methods(['GET', 'PUT', 'DELETE'])
@token_required
def task_detail_view(request, task_id):
    task = get_task_or_404(task_id)

    if request.method == 'PUT':
        return _update_task(request, task)
    if request.method == 'DELETE':
        return _delete_task(request, task)

    if not ProjectPermissions.can_view_task(request.user, task):
        raise AccessDenied('You do not have access to this task', code='ACCESS_DENIED')

    subtasks = task.subtasks.select_related('assignee', 'created_by')
    comments = task.comments.select_related('author').order_by('created_at')

    data = task.to_dict()
    data.update({
        'project': {'id': task.project.id, 'name': task.project.name},
        'parentTask': {'id': task.parent.id, 'title': task.parent.title} if task.parent else None,
        'subtasks': [subtask.to_dict() for subtask in subtasks],
        'comments': [comment.to_dict() for comment in comments],
    })
    return api_success({'task': data})


def _update_task(request, task):
    """
    Atualização parcial da tarefa

    Troca de responsável notifica o novo responsável; demais alterações
    notificam o responsável atual quando ele não é quem editou.
    """
    if not ProjectPermissions.can_edit_task(request.user, task):
        raise AccessDenied('You do not have permission to edit this task', code='ACCESS_DENIED')

    data = TaskForm(parse_json_body(request), partial=True).provided_data()
    project = task.project
    changes = set()

    if 'assignee_id' in data and data['assignee_id'] != task.assignee_id:
        task.assignee = _resolve_assignee(project, data['assignee_id'])
        changes.add('assignee')

    if 'parent_task_id' in data and data['parent_task_id'] != task.parent_id:
        task.parent = _resolve_parent(project, data['parent_task_id'], task=task)
        changes.add('parent')

    if data.get('status') and data['status'] != task.status:
        task.status = data['status']
        task.position = Task.next_position(project, task.status)
        changes.add('status')

    for field in ('title', 'priority', 'type'):
        if data.get(field) and data[field] != getattr(task, field):
            setattr(task, field, data[field])
            changes.add(field)

    for field in ('description', 'story_points', 'due_date'):
        if field in data and data[field] != getattr(task, field):
            value = data[field]
            if field == 'description':
                value = value or ''
            setattr(task, field, value)
            changes.add(field)

    if changes:
        task.save()
        logger.info(f"✏️ Tarefa '{task.title}' atualizada: {', '.join(sorted(changes))}")

    if 'assignee' in changes:
        notify_task_assignment(task, request.user)
    else:
        notify_task_update(task, request.user, changes)

    broadcast_project_event(
        project.pk, TASK_UPDATED,
        {'task': task.to_dict(), 'changes': sorted(changes)},
        user=request.user,
    )
    return api_success({'task': task.to_dict()}, message='Task updated successfully')


def _delete_task(request, task):
    if not ProjectPermissions.can_delete_task(request.user, task):
        raise AccessDenied('Only project owners and admins can delete tasks', code='ACCESS_DENIED')

    if task.subtasks.exists():
        raise BadRequest('Cannot delete a task that has subtasks', code='HAS_SUBTASKS')

    project_id, payload = task.project_id, {'taskId': str(task.pk), 'title': task.title}
    task.delete()
    logger.info(f"🗑️ Tarefa '{payload['title']}' removida por {request.user.email}")

    broadcast_project_event(project_id, TASK_DELETED, payload, user=request.user)
    return api_success(message='Task deleted successfully')
