# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils import timezone
from django.utils.html import format_html

from .models import (
    Comment, Notification, Project, ProjectMember,
    Task, TimeEntry, User
)
from .utils import format_duration, truncate


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin customizado para o modelo User (login por email)"""

    list_display = ['email', 'name', 'role_badge', 'is_active', 'last_login', 'created_at']
    list_filter = ['role', 'is_staff', 'is_active', 'created_at']
    search_fields = ['email', 'name']
    ordering = ['name']
    readonly_fields = ['last_login', 'created_at', 'updated_at']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Informações Pessoais', {'fields': ('name', 'avatar', 'role')}),
        ('Permissões', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
        ('Datas', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'role', 'password1', 'password2'),
        }),
    )

    def role_badge(self, obj):
        """Exibe o papel de sistema com badge colorido"""
        cores = {
            User.ROLE_ADMIN: '#EF4444',  # vermelho
            User.ROLE_MANAGER: '#F59E0B',  # amarelo
            User.ROLE_USER: '#3B82F6'  # azul
        }
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cores.get(obj.role, '#6B7280'), obj.get_role_display()
        )

    role_badge.short_description = 'Papel'


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0
    fields = ['user', 'role', 'is_active', 'joined_at', 'left_at']
    readonly_fields = ['joined_at', 'left_at']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """Admin para gerenciamento de projetos"""

    list_display = ['name', 'status', 'owner', 'members_count', 'tasks_count', 'is_active', 'created_at']
    list_filter = ['status', 'is_active', 'created_at']
    search_fields = ['name', 'description', 'owner__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ProjectMemberInline]

    fieldsets = (
        ('Informações Básicas', {
            'fields': ('name', 'description', 'status', 'is_active')
        }),
        ('Equipe', {
            'fields': ('owner', 'created_by')
        }),
        ('Datas', {
            'fields': ('start_date', 'end_date', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def members_count(self, obj):
        """Conta membros ativos"""
        return obj.memberships.filter(is_active=True).count()

    members_count.short_description = 'Membros'

    def tasks_count(self, obj):
        return obj.tasks.count()

    tasks_count.short_description = 'Tarefas'


class CommentInline(admin.TabularInline):
    """Comentários da tarefa (somente leitura)"""
    model = Comment
    fk_name = 'task'
    extra = 0
    fields = ['author', 'content', 'created_at']
    readonly_fields = ['author', 'content', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin para tarefas"""

    list_display = [
        'title', 'project', 'status', 'priority_badge',
        'type', 'assignee', 'due_status', 'story_points'
    ]
    list_filter = ['status', 'priority', 'type', 'project', 'created_at']
    search_fields = ['title', 'description']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'updated_at', 'created_by']
    inlines = [CommentInline]

    fieldsets = (
        ('Informações Básicas', {
            'fields': (
                'title', 'description', 'project', 'assignee',
                'status', 'priority', 'type', 'due_date'
            )
        }),
        ('Planejamento', {
            'fields': ('story_points', 'parent', 'position')
        }),
        ('Metadados', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def priority_badge(self, obj):
        """Prioridade com ícone"""
        return obj.get_priority_display()

    priority_badge.short_description = 'Prioridade'

    def due_status(self, obj):
        """Status do prazo"""
        if not obj.due_date:
            return '-'

        if obj.status == Task.STATUS_DONE:
            return format_html('<span style="color: green;">✓ Concluída</span>')

        if obj.is_overdue():
            dias = (timezone.now() - obj.due_date).days
            return format_html('<span style="color: red;">⚠️ Atrasada {} dias</span>', dias)

        dias = (obj.due_date - timezone.now()).days
        if dias == 0:
            return format_html('<span style="color: orange;">⏰ Vence hoje</span>')
        return f"Em {dias} dias"

    due_status.short_description = 'Prazo'


@admin.register(TimeEntry)
class TimeEntryAdmin(admin.ModelAdmin):
    """Admin para registros de tempo"""

    list_display = ['user', 'task', 'start_time', 'end_time', 'duration_display', 'status']
    list_filter = ['user', 'start_time']
    search_fields = ['description', 'user__email', 'task__title']
    date_hierarchy = 'start_time'

    def duration_display(self, obj):
        return format_duration(obj.duration) if obj.duration is not None else '-'

    duration_display.short_description = 'Duração'

    def status(self, obj):
        """Status do registro"""
        if obj.end_time:
            return format_html('<span style="color: green;">✓ Finalizado</span>')
        return format_html('<span style="color: orange;">⏱️ Em andamento</span>')

    status.short_description = 'Status'


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    """Admin para comentários"""

    list_display = ['author', 'target', 'summary', 'created_at', 'is_edited']
    list_filter = ['created_at', 'is_edited']
    search_fields = ['content', 'author__email']
    date_hierarchy = 'created_at'

    def target(self, obj):
        """Tarefa ou projeto comentado"""
        if obj.task_id:
            return f"📝 {obj.task.title}"
        if obj.project_id:
            return f"📁 {obj.project.name}"
        return '-'

    target.short_description = 'Item'

    def summary(self, obj):
        return truncate(obj.content, 50)

    summary.short_description = 'Comentário'


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'is_read', 'created_at']
    list_filter = ['type', 'is_read', 'created_at']
    search_fields = ['title', 'message', 'user__email']

