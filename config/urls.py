# config/urls.py

from django.contrib import admin
from django.urls import path, include, re_path

from apps.core import views as core_views

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Monitoramento
    path('health', core_views.health_check, name='health'),

    # API
    path('api/', include('apps.core.urls')),
    path('api/', include('apps.projects.urls')),
    path('api/', include('apps.board.urls')),
    path('api/', include('apps.reports.urls')),

    # Qualquer outra rota da API responde 404 em JSON
    re_path(r'^api/', core_views.api_not_found),
]

# Customizar títulos do admin
admin.site.site_header = 'Trackboard Admin'
admin.site.site_title = 'Trackboard'
admin.site.index_title = 'Administração do Sistema'
