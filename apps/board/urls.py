# apps/board/urls.py

from django.urls import path
from . import views

app_name = 'board'

urlpatterns = [
    # === KANBAN ===
    path('kanban/projects/<uuid:project_id>/kanban', views.kanban_board_view, name='kanban'),
    path('kanban/projects/<uuid:project_id>/progress', views.project_progress_view, name='project_progress'),
    path('kanban/tasks/<uuid:task_id>/status', views.task_status_view, name='task_status'),
    path('kanban/tasks/<uuid:task_id>/position', views.task_position_view, name='task_position'),
    path('kanban/tasks/<uuid:task_id>/progress', views.task_progress_view, name='task_progress'),

    # === COMENTÁRIOS ===
    path('comments', views.comments_view, name='comments'),
    path('comments/<uuid:comment_id>', views.comment_detail_view, name='comment_detail'),

    # === CONTROLE DE TEMPO ===
    path('time-tracking', views.time_entries_view, name='time_entries'),
    path('time-tracking/task/<uuid:task_id>', views.task_time_entries_view, name='task_time_entries'),
    path('time-tracking/my-entries', views.my_time_entries_view, name='my_time_entries'),
    path('time-tracking/active', views.active_timer_view, name='active_timer'),
    path('time-tracking/analytics', views.time_analytics_view, name='time_analytics'),
    path('time-tracking/start', views.start_timer_view, name='start_timer'),
    path('time-tracking/stop', views.stop_timer_view, name='stop_timer'),
    path('time-tracking/<uuid:entry_id>', views.time_entry_detail_view, name='time_entry_detail'),
]
