# apps/core/permissions.py

import logging
from functools import wraps

from django.core.exceptions import ValidationError

from .exceptions import AccessDenied, AuthenticationRequired, NotFound
from .models import Project, ProjectMember, Task, User

logger = logging.getLogger(__name__)

# Hierarquias (número maior = mais permissões)
SYSTEM_ROLE_LEVELS = {
    User.ROLE_USER: 1,
    User.ROLE_MANAGER: 2,
    User.ROLE_ADMIN: 3,
}

PROJECT_ROLE_LEVELS = {
    ProjectMember.ROLE_VIEWER: 1,
    ProjectMember.ROLE_MEMBER: 2,
    ProjectMember.ROLE_ADMIN: 3,
    ProjectMember.ROLE_OWNER: 4,
}


class ProjectPermissions:
    """
    Sistema de permissões do Trackboard

    Combina o papel de sistema do usuário (USER/MANAGER/ADMIN) com o
    papel dele em cada projeto (VIEWER/MEMBER/ADMIN/OWNER).
    """

    @staticmethod
    def has_system_role(user, min_role):
        """Verifica se o papel de sistema alcança o mínimo exigido"""
        if not user.is_authenticated:
            return False
        return SYSTEM_ROLE_LEVELS.get(user.role, 0) >= SYSTEM_ROLE_LEVELS[min_role]

    @staticmethod
    def is_admin(user):
        return user.is_authenticated and user.role == User.ROLE_ADMIN

    @staticmethod
    def can_create_project(user):
        """Apenas administradores criam projetos"""
        return ProjectPermissions.is_admin(user)

    @staticmethod
    def get_project_role(user, project):
        """
        Papel efetivo do usuário no projeto, ou None sem acesso

        Regras, em ordem:
        1. Membro ativo usa o papel do vínculo
        2. Admin do sistema vale como ADMIN do projeto
        3. Gerente dono ou criador do projeto vale como ADMIN
        """
        if not user.is_authenticated:
            return None

        membership = project.get_membership(user)
        if membership:
            return membership.role

        if user.role == User.ROLE_ADMIN:
            return ProjectMember.ROLE_ADMIN

        if user.role == User.ROLE_MANAGER and user.pk in (project.owner_id, project.created_by_id):
            return ProjectMember.ROLE_ADMIN

        return None

    @staticmethod
    def role_at_least(role, min_role):
        if role is None:
            return False
        return PROJECT_ROLE_LEVELS[role] >= PROJECT_ROLE_LEVELS[min_role]

    @staticmethod
    def has_project_access(user, project):
        """Membro, dono, criador ou admin do sistema"""
        if not user.is_authenticated:
            return False
        if user.role == User.ROLE_ADMIN:
            return True
        if user.pk in (project.owner_id, project.created_by_id):
            return True
        return project.get_membership(user) is not None

    @staticmethod
    def can_view_task(user, task):
        """Admin, membro ativo do projeto ou responsável pela tarefa"""
        if not user.is_authenticated:
            return False
        if user.role == User.ROLE_ADMIN or task.assignee_id == user.pk:
            return True
        return ProjectPermissions.get_project_role(user, task.project) is not None

    @staticmethod
    def can_edit_task(user, task):
        """Admin, responsável ou membro com papel MEMBER ou acima"""
        if not user.is_authenticated:
            return False
        if task.assignee_id == user.pk:
            return True
        role = ProjectPermissions.get_project_role(user, task.project)
        return ProjectPermissions.role_at_least(role, ProjectMember.ROLE_MEMBER)

    @staticmethod
    def can_delete_task(user, task):
        """Admin do sistema ou OWNER/ADMIN do projeto"""
        if ProjectPermissions.is_admin(user):
            return True
        role = ProjectPermissions.get_project_role(user, task.project)
        return ProjectPermissions.role_at_least(role, ProjectMember.ROLE_ADMIN)

    @staticmethod
    def can_move_task(user, task):
        """
        Mover no Kanban: admin, responsável, criador da tarefa ou
        OWNER/ADMIN do projeto
        """
        if not user.is_authenticated:
            return False
        if user.role == User.ROLE_ADMIN:
            return True
        if user.pk in (task.assignee_id, task.created_by_id):
            return True
        role = ProjectPermissions.get_project_role(user, task.project)
        return ProjectPermissions.role_at_least(role, ProjectMember.ROLE_ADMIN)


# Decoradores para views

def token_required(view_func):
    """
    Exige usuário autenticado via Bearer token

    Se o middleware registrou um erro de token (expirado, inválido),
    esse erro é propagado tal como veio.
    """

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        auth_error = getattr(request, 'auth_error', None)
        if auth_error is not None:
            raise auth_error
        if not request.user.is_authenticated:
            raise AuthenticationRequired()
        return view_func(request, *args, **kwargs)

    return wrapped_view


def requires_system_role(min_role):
    """Decorador que exige papel de sistema mínimo"""

    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(request, *args, **kwargs):
            if not ProjectPermissions.has_system_role(request.user, min_role):
                logger.warning(f"🚫 {request.user} sem papel {min_role} para {request.path}")
                raise AccessDenied(f'Access denied. Required role: {min_role}')
            return view_func(request, *args, **kwargs)

        return wrapped_view

    return decorator


def get_project_or_404(project_id):
    """Busca projeto ativo ou levanta PROJECT_NOT_FOUND"""
    try:
        return Project.objects.select_related('owner', 'created_by').get(id=project_id, is_active=True)
    except (Project.DoesNotExist, ValidationError):
        raise NotFound('Project')


def get_task_or_404(task_id):
    """Busca tarefa de projeto ativo ou levanta TASK_NOT_FOUND"""
    try:
        return Task.objects.select_related(
            'project', 'assignee', 'created_by', 'parent'
        ).get(id=task_id, project__is_active=True)
    except (Task.DoesNotExist, ValidationError):
        raise NotFound('Task')


def requires_project_role(min_role=ProjectMember.ROLE_VIEWER):
    """
    Decorador que verifica acesso ao projeto
    Espera que a view receba project_id como parâmetro
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(request, project_id, *args, **kwargs):
            project = get_project_or_404(project_id)
            role = ProjectPermissions.get_project_role(request.user, project)

            if role is None:
                logger.warning(f"🚫 {request.user} sem acesso ao projeto {project_id}")
                raise AccessDenied('You do not have access to this project')

            if not ProjectPermissions.role_at_least(role, min_role):
                logger.warning(f"🚫 {request.user} com papel {role} abaixo de {min_role} no projeto {project_id}")
                raise AccessDenied(f'Access denied. Required project role: {min_role}')

            # Adiciona o projeto ao request para uso na view
            request.project = project
            request.project_role = role
            return view_func(request, project_id, *args, **kwargs)

        return wrapped_view

    return decorator
