# apps/core/forms.py

"""
Formulários de validação dos payloads JSON da API

As views convertem o corpo do request (camelCase) para snake_case e
validam aqui. provided_data() devolve só os campos enviados, o que
permite updates parciais.
"""

import uuid

from django import forms
from django.core.exceptions import ValidationError

from .exceptions import ValidationFailed
from .models import Project, ProjectMember, Task, User

MEMBER_ROLE_CHOICES = [
    (ProjectMember.ROLE_ADMIN, 'Admin'),
    (ProjectMember.ROLE_MEMBER, 'Member'),
    (ProjectMember.ROLE_VIEWER, 'Viewer'),
]


class ApiForm(forms.Form):
    """Form base que levanta VALIDATION_ERROR ao invés de renderizar erros"""

    def validated(self):
        if not self.is_valid():
            raise ValidationFailed.from_form(self)
        return self.cleaned_data

    def provided_data(self):
        """cleaned_data apenas com as chaves presentes no payload"""
        cleaned = self.validated()
        return {key: cleaned[key] for key in self.fields if key in self.data}


class UUIDListField(forms.Field):
    """Lista de UUIDs vinda do JSON"""

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if not isinstance(value, (list, tuple)):
            raise ValidationError('Must be a list of ids')
        try:
            return [uuid.UUID(str(item)) for item in value]
        except ValueError:
            raise ValidationError('Invalid id in list')


# === AUTENTICAÇÃO ===

class RegisterForm(ApiForm):
    name = forms.CharField(min_length=2, max_length=50)
    email = forms.EmailField()
    password = forms.CharField(strip=False)


class LoginForm(ApiForm):
    email = forms.EmailField()
    password = forms.CharField(strip=False)


class ProfileForm(ApiForm):
    name = forms.CharField(min_length=2, max_length=50, required=False)
    avatar = forms.URLField(max_length=500, required=False)


class ChangePasswordForm(ApiForm):
    current_password = forms.CharField(strip=False)
    new_password = forms.CharField(strip=False)


class SetPasswordForm(ApiForm):
    password = forms.CharField(strip=False)


# === USUÁRIOS E PAPÉIS ===

class UserCreateForm(ApiForm):
    name = forms.CharField(min_length=2, max_length=50)
    email = forms.EmailField()
    password = forms.CharField(strip=False)
    role = forms.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    avatar = forms.URLField(max_length=500, required=False)


class UserUpdateForm(ApiForm):
    name = forms.CharField(min_length=2, max_length=50, required=False)
    email = forms.EmailField(required=False)
    avatar = forms.URLField(max_length=500, required=False)
    role = forms.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    is_active = forms.BooleanField(required=False)


class SystemRoleForm(ApiForm):
    role = forms.ChoiceField(choices=User.ROLE_CHOICES)


class MemberForm(ApiForm):
    user_id = forms.UUIDField()
    role = forms.ChoiceField(choices=MEMBER_ROLE_CHOICES, required=False)

    def clean_role(self):
        return self.cleaned_data.get('role') or ProjectMember.ROLE_MEMBER


class MemberRoleForm(ApiForm):
    role = forms.ChoiceField(choices=MEMBER_ROLE_CHOICES)


# === PROJETOS E TAREFAS ===

class ProjectForm(ApiForm):
    name = forms.CharField(min_length=3, max_length=200)
    description = forms.CharField(max_length=1000, required=False)
    status = forms.ChoiceField(choices=Project.STATUS_CHOICES, required=False)
    start_date = forms.DateField(required=False)
    end_date = forms.DateField(required=False)
    members = UUIDListField(required=False)

    def __init__(self, *args, partial=False, **kwargs):
        super().__init__(*args, **kwargs)
        if partial:
            self.fields['name'].required = False
            del self.fields['members']

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get('start_date'), cleaned.get('end_date')
        if start and end and end < start:
            raise ValidationError('End date must be after start date')
        return cleaned


class TaskForm(ApiForm):
    title = forms.CharField(min_length=3, max_length=200)
    description = forms.CharField(max_length=1000, required=False)
    status = forms.CharField(required=False)
    priority = forms.ChoiceField(choices=Task.PRIORITY_CHOICES, required=False)
    type = forms.ChoiceField(choices=Task.TYPE_CHOICES, required=False)
    story_points = forms.IntegerField(min_value=1, max_value=21, required=False)
    due_date = forms.DateTimeField(required=False)
    assignee_id = forms.UUIDField(required=False)
    parent_task_id = forms.UUIDField(required=False)

    def __init__(self, *args, partial=False, **kwargs):
        super().__init__(*args, **kwargs)
        if partial:
            self.fields['title'].required = False

    def clean_status(self):
        return clean_task_status(self.cleaned_data.get('status'), required=False)


def clean_task_status(value, required=True):
    """Valida status aceitando REVIEW como apelido de IN_REVIEW"""
    if not value:
        if required:
            raise ValidationError('This field is required.')
        return value
    value = str(value).upper()
    if value == 'REVIEW':
        value = Task.STATUS_IN_REVIEW
    if value not in dict(Task.STATUS_CHOICES):
        raise ValidationError(f'Invalid status: {value}')
    return value


class TaskStatusForm(ApiForm):
    status = forms.CharField()
    position = forms.IntegerField(min_value=0, required=False)

    def clean_status(self):
        return clean_task_status(self.cleaned_data.get('status'))


class TaskPositionForm(ApiForm):
    position = forms.IntegerField(min_value=0)


# === COMENTÁRIOS E NOTIFICAÇÕES ===

class CommentForm(ApiForm):
    content = forms.CharField(max_length=2000)
    task_id = forms.UUIDField(required=False)
    project_id = forms.UUIDField(required=False)
    parent_id = forms.UUIDField(required=False)

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get('task_id') and not cleaned.get('project_id'):
            raise ValidationError('Either taskId or projectId is required')
        return cleaned


class CommentUpdateForm(ApiForm):
    content = forms.CharField(max_length=2000)


# === CONTROLE DE TEMPO ===

class TimerStartForm(ApiForm):
    task_id = forms.UUIDField()
    description = forms.CharField(max_length=1000, required=False)


class TimerStopForm(ApiForm):
    time_entry_id = forms.UUIDField()
    end_time = forms.DateTimeField(required=False)


class TimeEntryForm(ApiForm):
    task_id = forms.UUIDField()
    description = forms.CharField(max_length=1000, required=False)
    start_time = forms.DateTimeField()
    end_time = forms.DateTimeField(required=False)
    duration = forms.IntegerField(min_value=0, required=False)

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get('start_time'), cleaned.get('end_time')
        if start and end and end < start:
            raise ValidationError('End time must be after start time')
        if start and not end and cleaned.get('duration') is None:
            raise ValidationError('Either endTime or duration is required')
        return cleaned


class TimeEntryUpdateForm(ApiForm):
    description = forms.CharField(max_length=1000, required=False)
    start_time = forms.DateTimeField(required=False)
    end_time = forms.DateTimeField(required=False)
    duration = forms.IntegerField(min_value=0, required=False)
