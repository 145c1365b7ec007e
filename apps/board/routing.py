# apps/board/routing.py

from django.urls import re_path
from . import consumers

# Rotas WebSocket
websocket_urlpatterns = [
    # Eventos de um projeto - tarefas e comentários em tempo real
    re_path(r'ws/projects/(?P<project_id>[0-9a-fA-F-]{36})/$', consumers.ProjectConsumer.as_asgi()),

    # Notificações do usuário
    re_path(r'ws/notifications/$', consumers.NotificationConsumer.as_asgi()),
]
