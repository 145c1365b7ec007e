# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # === AUTENTICAÇÃO ===
    path('auth/register', views.register_view, name='register'),
    path('auth/login', views.login_view, name='login'),
    path('auth/logout', views.logout_view, name='logout'),
    path('auth/me', views.me_view, name='me'),
    path('auth/profile', views.profile_view, name='profile'),
    path('auth/change-password', views.change_password_view, name='change_password'),

    # === USUÁRIOS ===
    path('users', views.users_view, name='users'),
    path('users/stats', views.user_stats_view, name='user_stats'),
    path('users/<uuid:user_id>', views.user_detail_view, name='user_detail'),
    path('users/<uuid:user_id>/password', views.user_password_view, name='user_password'),

    # === PAPÉIS E MEMBROS ===
    path('roles/users/<uuid:user_id>', views.user_role_view, name='user_role'),
    path('roles/projects/<uuid:project_id>/members', views.project_members_view, name='project_members'),
    path(
        'roles/projects/<uuid:project_id>/members/<uuid:member_id>',
        views.project_member_detail_view,
        name='project_member_detail'
    ),

    # === NOTIFICAÇÕES ===
    path('notifications', views.notifications_view, name='notifications'),
    path('notifications/count', views.notifications_count_view, name='notifications_count'),
    path('notifications/read-all', views.notifications_read_all_view, name='notifications_read_all'),
    path('notifications/<uuid:notification_id>/read', views.notification_read_view, name='notification_read'),
    path('notifications/<uuid:notification_id>', views.notification_delete_view, name='notification_delete'),
]
