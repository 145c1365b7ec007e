# apps/projects/urls.py

from django.urls import path
from . import views

app_name = 'projects'

urlpatterns = [
    # === PROJETOS ===
    path('projects', views.projects_view, name='projects'),
    path('projects/stats', views.project_stats_view, name='project_stats'),
    path('projects/<uuid:project_id>', views.project_detail_view, name='project_detail'),

    # === TAREFAS ===
    path('tasks', views.tasks_view, name='tasks'),
    path('tasks/stats', views.task_stats_view, name='task_stats'),
    path('tasks/projects/<uuid:project_id>', views.create_task_view, name='create_task'),
    path('tasks/<uuid:task_id>', views.task_detail_view, name='task_detail'),
]
