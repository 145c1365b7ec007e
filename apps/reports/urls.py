# apps/reports/urls.py

from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    # Dashboard
    path('dashboard', views.dashboard_view, name='dashboard'),

    # Exportações de projeto
    path('reports/projects/<uuid:project_id>/pdf', views.project_pdf_view, name='project_pdf'),
    path('reports/projects/<uuid:project_id>/excel', views.project_excel_view, name='project_excel'),
    path('reports/projects/<uuid:project_id>/csv', views.project_csv_view, name='project_csv'),

    # Registros de tempo do usuário
    path('reports/time-entries/csv', views.time_entries_csv_view, name='time_entries_csv'),
]
