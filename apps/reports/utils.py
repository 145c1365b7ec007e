# apps/reports/utils.py

from datetime import timedelta
from typing import Dict, List

from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.core.models import Project, Task, TimeEntry
from apps.core.utils import parse_datetime_param, percentage


def with_task_counts(projects):
    """
    Anota taskCount, completedTasks e memberCount em uma queryset de projetos

    Refaz a queryset por id para que os joins dos filtros de visibilidade
    não restrinjam as contagens.
    """
    return Project.objects.filter(pk__in=projects.values('pk')).select_related('owner').annotate(
        task_count=Count('tasks', distinct=True),
        completed_tasks=Count('tasks', filter=Q(tasks__status=Task.STATUS_DONE), distinct=True),
        member_count=Count('memberships', filter=Q(memberships__is_active=True), distinct=True),
    )


def project_summary(project: Project) -> Dict:
    """Projeto com contadores e progresso (espera queryset anotada)"""
    data = project.to_dict()
    data.update({
        'owner': project.owner.to_summary(),
        'taskCount': project.task_count,
        'completedTasks': project.completed_tasks,
        'memberCount': project.member_count,
        'progress': percentage(project.completed_tasks, project.task_count),
    })
    return data


def project_stats(projects) -> Dict:
    """
    Contagem por status e taxa média de conclusão dos projetos
    """
    annotated = list(with_task_counts(projects))
    by_status = {status: 0 for status, _ in Project.STATUS_CHOICES}
    for project in annotated:
        by_status[project.status] += 1

    rates = [percentage(p.completed_tasks, p.task_count) for p in annotated]
    return {
        'total': len(annotated),
        'active': by_status[Project.STATUS_ACTIVE],
        'completed': by_status[Project.STATUS_COMPLETED],
        'archived': by_status[Project.STATUS_ARCHIVED],
        'avgCompletionRate': round(sum(rates) / len(rates), 1) if rates else 0,
    }


def task_stats(tasks) -> Dict:
    """
    Estatísticas agregadas de uma queryset de tarefas
    """
    open_tasks = ~Q(status=Task.STATUS_DONE)
    totals = tasks.aggregate(
        total=Count('id', distinct=True),
        todo=Count('id', filter=Q(status=Task.STATUS_TODO), distinct=True),
        in_progress=Count('id', filter=Q(status=Task.STATUS_IN_PROGRESS), distinct=True),
        in_review=Count('id', filter=Q(status=Task.STATUS_IN_REVIEW), distinct=True),
        done=Count('id', filter=Q(status=Task.STATUS_DONE), distinct=True),
        high_priority=Count('id', filter=Q(priority__in=['HIGH', 'URGENT']) & open_tasks, distinct=True),
        overdue=Count('id', filter=Q(due_date__lt=timezone.now()) & open_tasks, distinct=True),
    )
    return {
        'total': totals['total'],
        'todo': totals['todo'],
        'inProgress': totals['in_progress'],
        'inReview': totals['in_review'],
        'done': totals['done'],
        'highPriority': totals['high_priority'],
        'overdue': totals['overdue'],
        'completionRate': percentage(totals['done'], totals['total']),
    }


def project_progress(project: Project) -> Dict:
    """Progresso do projeto para o Kanban"""
    counts = project.task_counts()
    total = sum(counts.values())
    done = counts[Task.STATUS_DONE]
    recent = project.tasks.select_related('assignee', 'created_by').order_by('-updated_at')[:10]
    return {
        'totalTasks': total,
        'completedTasks': done,
        'progressPercentage': percentage(done, total),
        'taskCounts': counts,
        'recentActivity': [task.to_dict() for task in recent],
    }


def recent_activities(projects, limit: int = 10) -> List[Dict]:
    """
    Últimas criações de tarefas e projetos entre os projetos informados
    """
    activities = []

    tasks = Task.objects.filter(project__in=projects).select_related(
        'project', 'created_by'
    ).order_by('-created_at')[:limit]
    for task in tasks:
        activities.append({
            'type': 'task_created',
            'description': f'Task "{task.title}" created by {task.created_by.name}',
            'projectId': task.project_id,
            'projectName': task.project.name,
            'taskId': task.id,
            'createdAt': task.created_at,
        })

    for project in projects.select_related('created_by').order_by('-created_at')[:limit]:
        activities.append({
            'type': 'project_created',
            'description': f'Project "{project.name}" created by {project.created_by.name}',
            'projectId': project.id,
            'projectName': project.name,
            'createdAt': project.created_at,
        })

    activities.sort(key=lambda item: item['createdAt'], reverse=True)
    return activities[:limit]


def filter_time_entries(entries, params):
    """
    Aplica filtros startDate/endDate/taskId/projectId de query params
    """
    start = parse_datetime_param(params.get('startDate'), 'startDate')
    end = parse_datetime_param(params.get('endDate'), 'endDate')
    if start:
        entries = entries.filter(start_time__gte=start)
    if end:
        # Data simples inclui o dia inteiro
        if len(params.get('endDate', '')) <= 10:
            end = end + timedelta(days=1)
        entries = entries.filter(start_time__lt=end)
    if params.get('taskId'):
        entries = entries.filter(task_id=params['taskId'])
    if params.get('projectId'):
        entries = entries.filter(task__project_id=params['projectId'])
    return entries


def time_totals(entries) -> Dict:
    """Total de minutos e horas de uma queryset de registros"""
    minutes = entries.aggregate(total=Sum('duration'))['total'] or 0
    return {'totalMinutes': minutes, 'totalHours': round(minutes / 60, 2)}


def user_week_minutes(user) -> int:
    """Minutos registrados pelo usuário nos últimos 7 dias"""
    since = timezone.now() - timedelta(days=7)
    return TimeEntry.objects.filter(
        user=user, start_time__gte=since, end_time__isnull=False
    ).aggregate(total=Sum('duration'))['total'] or 0
