# apps/reports/views.py

import csv
import logging
from datetime import datetime
from io import BytesIO

from django.conf import settings
from django.db.models import Sum
from django.http import HttpResponse
from django.utils import timezone
from django.utils.text import slugify
from django.views.decorators.http import require_http_methods

# Imports para PDF
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

# Imports para Excel
import xlsxwriter

from apps.core.models import ProjectMember, Task, TimeEntry
from apps.core.permissions import requires_project_role, token_required
from apps.core.utils import api_success, format_duration

from .utils import (
    filter_time_entries,
    project_stats,
    recent_activities,
    task_stats,
    user_week_minutes,
)

logger = logging.getLogger(__name__)


def _report_filename(project, extension):
    return f'project_{slugify(project.name) or project.pk}.{extension}'


def _project_tasks(project):
    return project.tasks.select_related('assignee', 'created_by').order_by(
        'status', 'position'
    )[:settings.TRACKBOARD_REPORTS_MAX_ITEMS]


def _table_style(header_color, body_color):
    """Estilo padrão das tabelas do PDF"""
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), header_color),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 12),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('BACKGROUND', (0, 1), (-1, -1), body_color),
        ('GRID', (0, 0), (-1, -1), 1, colors.black)
    ])


# =================== DASHBOARD ===================

@require_http_methods(['GET'])
@token_required
def dashboard_view(request):
    """
    Visão geral do usuário: números rápidos, estatísticas e atividades
    """
    user = request.user
    projects = user.get_visible_projects()
    tasks = user.get_visible_tasks()
    tasks_summary = task_stats(tasks)

    my_open_tasks = tasks.filter(assignee=user).exclude(status=Task.STATUS_DONE).count()

    return api_success({
        'quickStats': {
            'totalProjects': projects.count(),
            'totalTasks': tasks_summary['total'],
            'completedTasks': tasks_summary['done'],
            'overdueTasks': tasks_summary['overdue'],
            'myOpenTasks': my_open_tasks,
            'minutesThisWeek': user_week_minutes(user),
        },
        'projectStats': project_stats(projects),
        'taskStats': tasks_summary,
        'activities': recent_activities(projects),
    })


# =================== EXPORTAÇÕES DE PROJETO ===================

@require_http_methods(['GET'])
@token_required
@requires_project_role(ProjectMember.ROLE_VIEWER)
def project_pdf_view(request, project_id):
    """
    Gera relatório do projeto em PDF
    """
    project = request.project
    counts = project.task_counts()
    total_tasks = sum(counts.values())
    total_minutes = TimeEntry.objects.filter(task__project=project).aggregate(
        total=Sum('duration')
    )['total'] or 0

    # Criar response HTTP para PDF
    response = HttpResponse(content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{_report_filename(project, "pdf")}"'

    doc = SimpleDocTemplate(response, pagesize=A4)
    story = []

    # Estilos
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=20,
        spaceAfter=30,
        textColor=colors.darkblue
    )
    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=14,
        spaceAfter=12,
        textColor=colors.darkblue
    )

    # Título do relatório
    story.append(Paragraph(f"Project Report: {project.name}", title_style))
    story.append(Paragraph(f"Generated at: {timezone.localtime():%Y-%m-%d %H:%M}", styles['Normal']))
    story.append(Spacer(1, 20))

    # Informações gerais
    story.append(Paragraph("General Information", heading_style))
    info_table = Table([
        ['Field', 'Value'],
        ['Project', project.name],
        ['Status', project.get_status_display()],
        ['Owner', project.owner.name],
        ['Created at', project.created_at.strftime('%Y-%m-%d')],
        ['Start date', project.start_date.isoformat() if project.start_date else '-'],
        ['End date', project.end_date.isoformat() if project.end_date else '-'],
        ['Members', str(project.active_members().count())],
    ])
    info_table.setStyle(_table_style(colors.grey, colors.beige))
    story.append(info_table)
    story.append(Spacer(1, 20))

    # Tarefas por status
    story.append(Paragraph("Tasks by Status", heading_style))
    status_rows = [['Status', 'Tasks']]
    for status, label in Task.STATUS_CHOICES:
        status_rows.append([label, str(counts[status])])
    status_rows.append(['Total', str(total_tasks)])
    status_rows.append(['Time logged', format_duration(total_minutes)])

    status_table = Table(status_rows)
    status_table.setStyle(_table_style(colors.blue, colors.lightblue))
    story.append(status_table)
    story.append(Spacer(1, 20))

    # Equipe
    story.append(Paragraph("Team", heading_style))
    team_rows = [['Name', 'Email', 'Role', 'Open Tasks']]
    for member in project.active_members():
        open_tasks = project.tasks.filter(assignee=member.user).exclude(status=Task.STATUS_DONE).count()
        team_rows.append([member.user.name, member.user.email, member.role, str(open_tasks)])

    team_table = Table(team_rows)
    team_table.setStyle(_table_style(colors.green, colors.lightgreen))
    story.append(team_table)

    # Rodapé
    story.append(Spacer(1, 30))
    story.append(Paragraph(f"Trackboard © {datetime.now().year}", styles['Normal']))

    doc.build(story)
    logger.info(f"📄 PDF do projeto '{project.name}' gerado por {request.user.email}")
    return response


@require_http_methods(['GET'])
@token_required
@requires_project_role(ProjectMember.ROLE_VIEWER)
def project_excel_view(request, project_id):
    """
    Exporta o projeto para Excel (XLSX)
    Abas: Summary, Tasks e Time
    """
    project = request.project
    counts = project.task_counts()

    # Criar arquivo Excel em memória
    output = BytesIO()
    workbook = xlsxwriter.Workbook(output, {'in_memory': True, 'remove_timezone': True})

    # Formatos
    header_format = workbook.add_format({
        'bold': True,
        'font_color': 'white',
        'bg_color': '#366092',
        'border': 1
    })
    cell_format = workbook.add_format({'border': 1})
    date_format = workbook.add_format({'num_format': 'yyyy-mm-dd hh:mm', 'border': 1})

    # Aba 1: Resumo
    summary_sheet = workbook.add_worksheet('Summary')
    summary_sheet.write('A1', 'PROJECT REPORT', header_format)
    summary_sheet.write('A3', 'Name:', header_format)
    summary_sheet.write('B3', project.name, cell_format)
    summary_sheet.write('A4', 'Status:', header_format)
    summary_sheet.write('B4', project.status, cell_format)
    summary_sheet.write('A5', 'Owner:', header_format)
    summary_sheet.write('B5', project.owner.name, cell_format)
    summary_sheet.write('A6', 'Members:', header_format)
    summary_sheet.write('B6', project.active_members().count(), cell_format)

    summary_sheet.write('A8', 'TASKS', header_format)
    for row, (status, label) in enumerate(Task.STATUS_CHOICES, 8):
        summary_sheet.write(row, 0, label, header_format)
        summary_sheet.write(row, 1, counts[status], cell_format)

    # Aba 2: Tarefas
    tasks_sheet = workbook.add_worksheet('Tasks')
    task_headers = [
        'ID', 'Title', 'Status', 'Priority', 'Type', 'Assignee',
        'Story Points', 'Due Date', 'Created At'
    ]
    for col, header in enumerate(task_headers):
        tasks_sheet.write(0, col, header, header_format)

    for row, task in enumerate(_project_tasks(project), 1):
        tasks_sheet.write(row, 0, str(task.id), cell_format)
        tasks_sheet.write(row, 1, task.title, cell_format)
        tasks_sheet.write(row, 2, task.status, cell_format)
        tasks_sheet.write(row, 3, task.priority, cell_format)
        tasks_sheet.write(row, 4, task.type, cell_format)
        tasks_sheet.write(row, 5, task.assignee.name if task.assignee else '', cell_format)
        tasks_sheet.write(row, 6, task.story_points or '', cell_format)
        if task.due_date:
            tasks_sheet.write_datetime(row, 7, task.due_date, date_format)
        else:
            tasks_sheet.write(row, 7, '', cell_format)
        tasks_sheet.write_datetime(row, 8, task.created_at, date_format)

    # Aba 3: Tempo
    time_sheet = workbook.add_worksheet('Time')
    time_headers = ['Task', 'User', 'Start', 'End', 'Minutes', 'Description']
    for col, header in enumerate(time_headers):
        time_sheet.write(0, col, header, header_format)

    entries = TimeEntry.objects.filter(task__project=project).select_related(
        'task', 'user'
    ).order_by('-start_time')[:settings.TRACKBOARD_REPORTS_MAX_ITEMS]
    for row, entry in enumerate(entries, 1):
        time_sheet.write(row, 0, entry.task.title, cell_format)
        time_sheet.write(row, 1, entry.user.name, cell_format)
        time_sheet.write_datetime(row, 2, entry.start_time, date_format)
        if entry.end_time:
            time_sheet.write_datetime(row, 3, entry.end_time, date_format)
        else:
            time_sheet.write(row, 3, '', cell_format)
        time_sheet.write(row, 4, entry.duration or 0, cell_format)
        time_sheet.write(row, 5, entry.description, cell_format)

    # Ajustar largura das colunas
    for sheet in [summary_sheet, tasks_sheet, time_sheet]:
        sheet.set_column('A:I', 18)

    workbook.close()
    output.seek(0)

    response = HttpResponse(
        output.read(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename="{_report_filename(project, "xlsx")}"'
    return response


@require_http_methods(['GET'])
@token_required
@requires_project_role(ProjectMember.ROLE_VIEWER)
def project_csv_view(request, project_id):
    """
    Exporta as tarefas do projeto para CSV
    """
    project = request.project

    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{_report_filename(project, "csv")}"'
    response.write('\ufeff')  # BOM para UTF-8

    writer = csv.writer(response)
    writer.writerow([
        'ID', 'Title', 'Description', 'Status', 'Priority', 'Type',
        'Assignee', 'Creator', 'Story Points', 'Due Date', 'Created At'
    ])

    for task in _project_tasks(project):
        writer.writerow([
            task.id,
            task.title,
            task.description,
            task.status,
            task.priority,
            task.type,
            task.assignee.name if task.assignee else '',
            task.created_by.name,
            task.story_points or '',
            task.due_date.isoformat() if task.due_date else '',
            task.created_at.isoformat(),
        ])

    return response


@require_http_methods(['GET'])
@token_required
def time_entries_csv_view(request):
    """
    Exporta os registros de tempo do usuário para CSV
    Aceita os mesmos filtros de my-entries
    """
    entries = TimeEntry.objects.filter(user=request.user).select_related('task', 'task__project')
    entries = filter_time_entries(entries, request.GET).order_by('-start_time')

    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = 'attachment; filename="time_entries.csv"'
    response.write('\ufeff')  # BOM para UTF-8

    writer = csv.writer(response)
    writer.writerow(['Project', 'Task', 'Start', 'End', 'Minutes', 'Duration', 'Description'])

    for entry in entries[:settings.TRACKBOARD_REPORTS_MAX_ITEMS]:
        writer.writerow([
            entry.task.project.name,
            entry.task.title,
            entry.start_time.isoformat(),
            entry.end_time.isoformat() if entry.end_time else '',
            entry.duration if entry.duration is not None else '',
            format_duration(entry.duration),
            entry.description,
        ])

    return response
