# apps/core/models.py

import uuid

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class UserManager(BaseUserManager):
    """Manager para usuários identificados por email"""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('O email é obrigatório')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Usuário do sistema, autenticado por email

    O papel de sistema (role) define o que o usuário pode fazer fora
    dos projetos. Dentro de cada projeto vale o papel de membro.
    """

    ROLE_USER = 'USER'
    ROLE_MANAGER = 'MANAGER'
    ROLE_ADMIN = 'ADMIN'

    ROLE_CHOICES = [
        (ROLE_USER, 'User'),
        (ROLE_MANAGER, 'Manager'),
        (ROLE_ADMIN, 'Administrator'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None
    email = models.EmailField(unique=True)

    # === INFORMAÇÕES PESSOAIS ===
    name = models.CharField(max_length=100)
    avatar = models.URLField(max_length=500, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_USER, db_index=True)

    # === METADADOS ===
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def is_system_admin(self):
        return self.role == self.ROLE_ADMIN

    def get_visible_projects(self):
        """
        Projetos que o usuário enxerga

        Admin vê todos os projetos ativos. Demais usuários veem projetos
        onde são membros ativos, donos ou criadores.
        """
        projects = Project.objects.filter(is_active=True)
        if self.is_system_admin:
            return projects
        return projects.filter(
            Q(memberships__user=self, memberships__is_active=True)
            | Q(owner=self)
            | Q(created_by=self)
        ).distinct()

    def get_visible_tasks(self):
        """Tarefas de projetos visíveis ou atribuídas ao usuário"""
        tasks = Task.objects.filter(project__is_active=True)
        if self.is_system_admin:
            return tasks
        return tasks.filter(
            Q(project__in=self.get_visible_projects()) | Q(assignee=self)
        ).distinct()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'avatar': self.avatar or None,
            'role': self.role,
            'isActive': self.is_active,
            'lastLogin': self.last_login,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    def to_summary(self):
        """Versão resumida usada dentro de tarefas, comentários etc"""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'avatar': self.avatar or None,
        }


class Project(models.Model):
    """Projeto - agregador de tarefas e membros"""

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_ARCHIVED = 'ARCHIVED'
    STATUS_COMPLETED = 'COMPLETED'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_ARCHIVED, 'Archived'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='owned_projects'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_projects'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def active_members(self):
        return self.memberships.filter(is_active=True).select_related('user')

    def get_membership(self, user):
        """Retorna o vínculo ativo do usuário ou None"""
        return self.memberships.filter(user=user, is_active=True).first()

    def task_counts(self):
        """Quantidade de tarefas por status"""
        counts = {status: 0 for status, _ in Task.STATUS_CHOICES}
        rows = self.tasks.values('status').annotate(total=models.Count('id'))
        for row in rows:
            counts[row['status']] = row['total']
        return counts

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'status': self.status,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'ownerId': self.owner_id,
            'creatorId': self.created_by_id,
            'isActive': self.is_active,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


class ProjectMember(models.Model):
    """Vínculo de um usuário com um projeto, com papel próprio"""

    ROLE_OWNER = 'OWNER'
    ROLE_ADMIN = 'ADMIN'
    ROLE_MEMBER = 'MEMBER'
    ROLE_VIEWER = 'VIEWER'

    ROLE_CHOICES = [
        (ROLE_OWNER, 'Owner'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_MEMBER, 'Member'),
        (ROLE_VIEWER, 'Viewer'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='memberships'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='project_memberships'
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(default=timezone.now)
    left_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'project_members'
        ordering = ['joined_at']
        constraints = [
            models.UniqueConstraint(fields=['project', 'user'], name='unique_project_member'),
        ]

    def __str__(self):
        return f"{self.user.name} - {self.project.name} ({self.role})"

    def to_dict(self):
        return {
            'id': self.id,
            'projectId': self.project_id,
            'userId': self.user_id,
            'role': self.role,
            'isActive': self.is_active,
            'joinedAt': self.joined_at,
            'leftAt': self.left_at,
            'user': self.user.to_summary(),
        }


class Task(models.Model):
    """Tarefa de um projeto - a unidade de trabalho do Kanban"""

    STATUS_TODO = 'TODO'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_IN_REVIEW = 'IN_REVIEW'
    STATUS_DONE = 'DONE'

    STATUS_CHOICES = [
        (STATUS_TODO, 'To do'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_IN_REVIEW, 'In review'),
        (STATUS_DONE, 'Done'),
    ]

    PRIORITY_CHOICES = [
        ('LOW', '🟢 Low'),
        ('MEDIUM', '🟡 Medium'),
        ('HIGH', '🟠 High'),
        ('URGENT', '🔴 Urgent'),
    ]

    TYPE_CHOICES = [
        ('TASK', 'Task'),
        ('BUG', '🐛 Bug'),
        ('STORY', 'Story'),
        ('EPIC', 'Epic'),
        ('FEATURE', '✨ Feature'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_TODO)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='MEDIUM')
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='TASK')
    story_points = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(21)]
    )
    due_date = models.DateTimeField(null=True, blank=True)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='tasks'
    )
    assignee = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tasks'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_tasks'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subtasks'
    )
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tasks'
        ordering = ['position', 'created_at']
        indexes = [
            models.Index(fields=['project', 'status'], name='tasks_project_status_idx'),
        ]

    def __str__(self):
        return f"{self.get_type_display()} - {self.title}"

    def is_overdue(self):
        """Verifica se a tarefa está atrasada"""
        if self.due_date and self.status != self.STATUS_DONE:
            return timezone.now() > self.due_date
        return False

    @classmethod
    def next_position(cls, project, status):
        """Próxima posição livre no fim de uma coluna"""
        current = cls.objects.filter(project=project, status=status).aggregate(
            top=models.Max('position')
        )['top']
        return 0 if current is None else current + 1

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'type': self.type,
            'storyPoints': self.story_points,
            'dueDate': self.due_date,
            'position': self.position,
            'projectId': self.project_id,
            'assigneeId': self.assignee_id,
            'creatorId': self.created_by_id,
            'parentTaskId': self.parent_id,
            'isOverdue': self.is_overdue(),
            'assignee': self.assignee.to_summary() if self.assignee else None,
            'creator': self.created_by.to_summary(),
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


class Comment(models.Model):
    """Comentário em uma tarefa ou projeto, com respostas encadeadas"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    content = models.TextField()
    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='comments'
    )
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='comments'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='replies'
    )
    is_edited = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'comments'
        ordering = ['created_at']

    def __str__(self):
        return f"Comment by {self.author.name} on {self.created_at:%Y-%m-%d}"

    def clean(self):
        """Validação: deve pertencer a uma tarefa ou a um projeto"""
        if not self.task_id and not self.project_id:
            raise ValidationError("Comment must belong to a task or a project")

    def to_dict(self):
        return {
            'id': self.id,
            'content': self.content,
            'taskId': self.task_id,
            'projectId': self.project_id,
            'parentId': self.parent_id,
            'isEdited': self.is_edited,
            'author': self.author.to_summary(),
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


class Notification(models.Model):
    """Notificação destinada a um usuário"""

    TYPE_COMMENT = 'COMMENT'
    TYPE_TASK_ASSIGNED = 'TASK_ASSIGNED'
    TYPE_TASK_UPDATED = 'TASK_UPDATED'
    TYPE_PROJECT_INVITE = 'PROJECT_INVITE'
    TYPE_MENTION = 'MENTION'
    TYPE_DEADLINE_REMINDER = 'DEADLINE_REMINDER'

    TYPE_CHOICES = [
        (TYPE_COMMENT, 'Comment'),
        (TYPE_TASK_ASSIGNED, 'Task assigned'),
        (TYPE_TASK_UPDATED, 'Task updated'),
        (TYPE_PROJECT_INVITE, 'Project invite'),
        (TYPE_MENTION, 'Mention'),
        (TYPE_DEADLINE_REMINDER, 'Deadline reminder'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notifications_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.type} -> {self.user.email}"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'isRead': self.is_read,
            'readAt': self.read_at,
            'createdAt': self.created_at,
        }


class TimeEntry(models.Model):
    """Registro de tempo trabalhado em uma tarefa (duração em minutos)"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name='time_entries'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='time_entries'
    )
    description = models.TextField(blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'time_entries'
        ordering = ['-start_time']
        constraints = [
            # Apenas um cronômetro em aberto por usuário
            models.UniqueConstraint(
                fields=['user'],
                condition=Q(end_time__isnull=True),
                name='one_running_entry_per_user',
            ),
        ]

    def __str__(self):
        return f"{self.user.name} - {self.task.title}"

    @property
    def is_running(self):
        return self.end_time is None

    def compute_duration(self):
        """Duração em minutos inteiros entre início e fim"""
        if not self.end_time:
            return None
        delta = self.end_time - self.start_time
        return max(int(delta.total_seconds() // 60), 0)

    def clean(self):
        if self.end_time and self.end_time < self.start_time:
            raise ValidationError("End time must be after start time")

    def to_dict(self):
        return {
            'id': self.id,
            'taskId': self.task_id,
            'userId': self.user_id,
            'description': self.description,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'duration': self.duration,
            'isRunning': self.is_running,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
