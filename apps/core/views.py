# apps/core/views.py

import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import connection
from django.db.models import Count, Q
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .auth_service import auth_service  # Serviço encapsulado de autenticação
from .exceptions import AccessDenied, BadRequest, NotFound
from .forms import (
    ChangePasswordForm, LoginForm, MemberForm, MemberRoleForm, ProfileForm,
    RegisterForm, SetPasswordForm, SystemRoleForm, UserCreateForm, UserUpdateForm,
)
from .models import Notification, ProjectMember, User
from .notifications import notify_project_invite
from .permissions import (
    ProjectPermissions,
    requires_project_role,
    requires_system_role,
    token_required,
)
from .utils import api_success, paginate, parse_bool, parse_int, parse_json_body

logger = logging.getLogger(__name__)


# =================== AUTENTICAÇÃO ===================

@csrf_exempt
@require_http_methods(['POST'])
def register_view(request):
    """
    Cadastro público de usuário

    A view só valida o payload; regras de negócio ficam no serviço.
    """
    data = RegisterForm(parse_json_body(request)).validated()
    user, token = auth_service.register(data)
    return api_success(
        {'user': user.to_dict(), 'token': token},
        message='User registered successfully',
        status=201,
    )


@csrf_exempt
@require_http_methods(['POST'])
def login_view(request):
    """Login por email e senha, devolve o JWT"""
    data = LoginForm(parse_json_body(request)).validated()
    user, token = auth_service.login(data['email'], data['password'])
    return api_success(
        {'user': user.to_dict(), 'token': token},
        message='Login successful',
    )


@csrf_exempt
@require_http_methods(['POST'])
@token_required
def logout_view(request):
    """
    Logout sem estado: o client descarta o token
    """
    logger.info(f"👋 Logout: {request.user.email}")
    return api_success(message='Logout successful')


@require_http_methods(['GET'])
@token_required
def me_view(request):
    return api_success({'user': request.user.to_dict()})


@csrf_exempt
@require_http_methods(['PUT'])
@token_required
def profile_view(request):
    """Atualiza nome e/ou avatar do próprio usuário"""
    data = ProfileForm(parse_json_body(request)).provided_data()
    user = request.user

    if data.get('name'):
        user.name = data['name']
    if 'avatar' in data:
        user.avatar = data['avatar'] or ''
    user.save()

    return api_success({'user': user.to_dict()}, message='Profile updated successfully')


@csrf_exempt
@require_http_methods(['PUT'])
@token_required
def change_password_view(request):
    data = ChangePasswordForm(parse_json_body(request)).validated()
    auth_service.change_password(request.user, data['current_password'], data['new_password'])
    return api_success(message='Password changed successfully')


# =================== USUÁRIOS ===================

def _get_user_or_404(user_id):
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValidationError):
        raise NotFound('User')


def _ensure_email_available(email, exclude=None):
    queryset = User.objects.filter(email__iexact=email)
    if exclude is not None:
        queryset = queryset.exclude(pk=exclude.pk)
    if queryset.exists():
        raise BadRequest('Email already in use', code='EMAIL_EXISTS')


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@token_required
def users_view(request):
    """
    GET: lista paginada de usuários
    POST: criação de usuário (apenas ADMIN)
    """
    if request.method == 'POST':
        return _create_user(request)

    users = User.objects.all()

    search = request.GET.get('search', '').strip()
    if search:
        users = users.filter(Q(name__icontains=search) | Q(email__icontains=search))

    role = request.GET.get('role')
    if role:
        users = users.filter(role=role.upper())

    is_active = parse_bool(request.GET.get('isActive'))
    if is_active is not None:
        users = users.filter(is_active=is_active)

    page, pagination = paginate(users.order_by('name'), request)
    return api_success({
        'users': [user.to_dict() for user in page],
        'pagination': pagination,
    })


@requires_system_role(User.ROLE_ADMIN)
def _create_user(request):
    data = UserCreateForm(parse_json_body(request)).validated()
    _ensure_email_available(data['email'])
    user = auth_service.create_user(data, role=data.get('role') or User.ROLE_USER)
    logger.info(f"👤 Usuário {user.email} criado por {request.user.email}")
    return api_success({'user': user.to_dict()}, message='User created successfully', status=201)


@require_http_methods(['GET'])
@token_required
@requires_system_role(User.ROLE_ADMIN)
def user_stats_view(request):
    """Estatísticas gerais de usuários"""
    by_role = {role: 0 for role, _ in User.ROLE_CHOICES}
    for row in User.objects.values('role').annotate(total=Count('id')):
        by_role[row['role']] = row['total']

    total = User.objects.count()
    active = User.objects.filter(is_active=True).count()
    new_users = User.objects.filter(created_at__gte=timezone.now() - timedelta(days=30)).count()

    return api_success({
        'total': total,
        'active': active,
        'inactive': total - active,
        'byRole': by_role,
        'newUsersLast30Days': new_users,
    })


@csrf_exempt
@require_http_methods(['GET', 'PUT', 'DELETE'])
@token_required
def user_detail_view(request, user_id):
    """
    GET: dados do usuário
    PUT: atualização (o próprio usuário ou ADMIN)
    DELETE: desativação (apenas ADMIN)
    """
    user = _get_user_or_404(user_id)

    if request.method == 'GET':
        return api_success({'user': user.to_dict()})

    is_admin = ProjectPermissions.is_admin(request.user)

    if request.method == 'DELETE':
        if not is_admin:
            raise AccessDenied('Access denied. Required role: ADMIN')
        if user.pk == request.user.pk:
            raise BadRequest('You cannot delete your own account', code='CANNOT_DELETE_SELF')
        user.is_active = False
        user.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"🗑️ Usuário {user.email} desativado por {request.user.email}")
        return api_success(message='User deactivated successfully')

    # PUT
    if user.pk != request.user.pk and not is_admin:
        raise AccessDenied('You can only update your own profile')

    data = UserUpdateForm(parse_json_body(request)).provided_data()

    if not is_admin and ('role' in data or 'is_active' in data):
        raise AccessDenied('Only administrators can change role or status')

    if data.get('email') and data['email'].lower() != user.email:
        _ensure_email_available(data['email'], exclude=user)
        user.email = data['email'].lower()
    if data.get('name'):
        user.name = data['name']
    if 'avatar' in data:
        user.avatar = data['avatar'] or ''
    if data.get('role'):
        user.role = data['role']
    if 'is_active' in data:
        user.is_active = data['is_active']
    user.save()

    return api_success({'user': user.to_dict()}, message='User updated successfully')


@csrf_exempt
@require_http_methods(['PATCH'])
@token_required
@requires_system_role(User.ROLE_ADMIN)
def user_password_view(request, user_id):
    """Redefinição administrativa de senha"""
    user = _get_user_or_404(user_id)
    data = SetPasswordForm(parse_json_body(request)).validated()
    auth_service.set_password(user, data['password'])
    return api_success(message='Password updated successfully')


# =================== PAPÉIS E MEMBROS ===================

@csrf_exempt
@require_http_methods(['PUT'])
@token_required
@requires_system_role(User.ROLE_ADMIN)
def user_role_view(request, user_id):
    """Altera o papel de sistema de um usuário"""
    user = _get_user_or_404(user_id)
    data = SystemRoleForm(parse_json_body(request)).validated()

    user.role = data['role']
    user.save(update_fields=['role', 'updated_at'])
    logger.info(f"🛡️ Papel de {user.email} alterado para {user.role}")

    return api_success({'user': user.to_dict()}, message='User role updated successfully')


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@token_required
def project_members_view(request, project_id):
    if request.method == 'POST':
        return _add_member(request, project_id)
    return _list_members(request, project_id)


@requires_project_role(ProjectMember.ROLE_VIEWER)
def _list_members(request, project_id):
    members = request.project.active_members().order_by('joined_at')
    return api_success({'members': [member.to_dict() for member in members]})


@requires_project_role(ProjectMember.ROLE_ADMIN)
def _add_member(request, project_id):
    """
    Adiciona membro ao projeto

    Um vínculo removido anteriormente é reativado com o novo papel.
    """
    data = MemberForm(parse_json_body(request)).validated()
    project = request.project

    user = User.objects.filter(pk=data['user_id'], is_active=True).first()
    if user is None:
        raise NotFound('User')

    membership = ProjectMember.objects.filter(project=project, user=user).first()
    if membership and membership.is_active:
        raise BadRequest('User is already a member of this project', code='MEMBER_EXISTS')

    if membership:
        membership.role = data['role']
        membership.is_active = True
        membership.joined_at = timezone.now()
        membership.left_at = None
        membership.save()
    else:
        membership = ProjectMember.objects.create(project=project, user=user, role=data['role'])

    notify_project_invite(membership, request.user)
    logger.info(f"➕ {user.email} adicionado ao projeto {project.name} como {membership.role}")

    return api_success({'member': membership.to_dict()}, message='Member added successfully', status=201)


def _get_member_or_404(project, member_id):
    try:
        return ProjectMember.objects.select_related('user').get(
            pk=member_id, project=project, is_active=True
        )
    except (ProjectMember.DoesNotExist, ValidationError):
        raise NotFound('Member')


@csrf_exempt
@require_http_methods(['PUT', 'DELETE'])
@token_required
def project_member_detail_view(request, project_id, member_id):
    if request.method == 'PUT':
        return _update_member(request, project_id, member_id)
    return _remove_member(request, project_id, member_id)


@requires_project_role(ProjectMember.ROLE_OWNER)
def _update_member(request, project_id, member_id):
    membership = _get_member_or_404(request.project, member_id)
    if membership.role == ProjectMember.ROLE_OWNER:
        raise BadRequest('The project owner role cannot be changed', code='CANNOT_CHANGE_OWNER')

    data = MemberRoleForm(parse_json_body(request)).validated()
    membership.role = data['role']
    membership.save(update_fields=['role'])

    return api_success({'member': membership.to_dict()}, message='Member role updated successfully')


@requires_project_role(ProjectMember.ROLE_ADMIN)
def _remove_member(request, project_id, member_id):
    membership = _get_member_or_404(request.project, member_id)
    if membership.role == ProjectMember.ROLE_OWNER:
        raise BadRequest('The project owner cannot be removed', code='CANNOT_REMOVE_OWNER')

    membership.is_active = False
    membership.left_at = timezone.now()
    membership.save(update_fields=['is_active', 'left_at'])
    logger.info(f"➖ {membership.user.email} removido do projeto {request.project.name}")

    return api_success(message='Member removed successfully')


# =================== NOTIFICAÇÕES ===================

@require_http_methods(['GET'])
@token_required
def notifications_view(request):
    """Notificações do usuário, mais recentes primeiro"""
    notifications = Notification.objects.filter(user=request.user)
    if parse_bool(request.GET.get('unreadOnly')):
        notifications = notifications.filter(is_read=False)

    limit = parse_int(
        request.GET.get('limit'),
        settings.TRACKBOARD_NOTIFICATIONS_LIMIT,
        maximum=settings.TRACKBOARD_MAX_PAGE_SIZE,
    )
    unread = Notification.objects.filter(user=request.user, is_read=False).count()

    return api_success({
        'notifications': [n.to_dict() for n in notifications[:limit]],
        'unreadCount': unread,
    })


@require_http_methods(['GET'])
@token_required
def notifications_count_view(request):
    unread = Notification.objects.filter(user=request.user, is_read=False).count()
    return api_success({'unreadCount': unread})


def _get_notification_or_404(user, notification_id):
    try:
        return Notification.objects.get(pk=notification_id, user=user)
    except (Notification.DoesNotExist, ValidationError):
        raise NotFound('Notification')


@csrf_exempt
@require_http_methods(['PUT'])
@token_required
def notification_read_view(request, notification_id):
    notification = _get_notification_or_404(request.user, notification_id)
    notification.mark_as_read()
    return api_success({'notification': notification.to_dict()}, message='Notification marked as read')


@csrf_exempt
@require_http_methods(['PUT'])
@token_required
def notifications_read_all_view(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )
    return api_success({'updated': updated}, message='All notifications marked as read')


@csrf_exempt
@require_http_methods(['DELETE'])
@token_required
def notification_delete_view(request, notification_id):
    notification = _get_notification_or_404(request.user, notification_id)
    notification.delete()
    return api_success(message='Notification deleted')


# =================== MONITORAMENTO ===================

@require_http_methods(['GET'])
def health_check(request):
    """
    Health check para monitoramento
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        database = 'ok'
        status_code = 200
    except Exception as e:
        logger.error(f"❌ Health check falhou: {e}")
        database = 'unavailable'
        status_code = 503

    return JsonResponse({
        'status': 'OK' if status_code == 200 else 'ERROR',
        'timestamp': timezone.now().isoformat(),
        'database': database,
    }, status=status_code)


@csrf_exempt
def api_not_found(request, *args, **kwargs):
    """Rota inexistente sob /api/"""
    return JsonResponse(
        {'error': 'NOT_FOUND', 'message': f'Route {request.method} {request.path} not found'},
        status=404,
    )
