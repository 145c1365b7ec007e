# apps/board/consumers.py

import json
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.core.auth_service import auth_service
from apps.core.exceptions import ApiError
from apps.core.models import Project
from apps.core.notifications import user_group_name
from apps.core.permissions import ProjectPermissions

from .realtime import project_group_name

logger = logging.getLogger(__name__)


class TokenAuthMixin:
    """
    Resolve o usuário da conexão

    Aceita ?token=<jwt> na query string; sem token, usa o usuário da
    sessão colocado no scope pelo AuthMiddlewareStack.
    """

    async def resolve_user(self):
        query = parse_qs(self.scope.get('query_string', b'').decode())
        token = (query.get('token') or [None])[0]
        if token:
            return await self.user_from_token(token)

        user = self.scope.get('user')
        if user is not None and user.is_authenticated:
            return user
        return None

    @database_sync_to_async
    def user_from_token(self, token):
        try:
            return auth_service.authenticate_token(token)
        except ApiError as e:
            logger.warning(f"❌ Token WebSocket rejeitado: {e.message}")
            return None

    def get_timestamp(self):
        """
        Retorna timestamp atual em formato ISO
        """
        return timezone.now().isoformat()


class ProjectConsumer(TokenAuthMixin, AsyncWebsocketConsumer):
    """
    Consumer WebSocket para atualizações em tempo real de um projeto

    Funcionalidades:
    - Criação, edição, movimentação e remoção de tarefas
    - Novos comentários
    - Heartbeat (ping/pong)
    """

    async def connect(self):
        """
        Conecta usuário ao grupo do projeto
        Verifica permissões antes de aceitar conexão
        """
        self.project_id = str(self.scope['url_route']['kwargs']['project_id'])
        self.project_group_name = project_group_name(self.project_id)
        self.user = await self.resolve_user()

        # Verificar se usuário está autenticado
        if self.user is None:
            logger.warning("❌ Conexão WebSocket rejeitada - usuário não autenticado")
            await self.close()
            return

        # Verificar permissão de acesso ao projeto
        has_access = await self.check_project_access()
        if not has_access:
            logger.warning(f"❌ Conexão WebSocket rejeitada - {self.user.email} sem acesso ao projeto {self.project_id}")
            await self.close()
            return

        await self.channel_layer.group_add(
            self.project_group_name,
            self.channel_name
        )
        await self.accept()

        logger.info(f"✅ WebSocket conectado - {self.user.email} no projeto {self.project_id}")

    async def disconnect(self, close_code):
        """
        Desconecta usuário do grupo
        """
        if hasattr(self, 'project_group_name') and self.user is not None:
            await self.channel_layer.group_discard(
                self.project_group_name,
                self.channel_name
            )
            logger.info(f"🔌 WebSocket desconectado - {self.user.email} do projeto {self.project_id}")

    async def receive(self, text_data=None, bytes_data=None):
        """
        Recebe mensagens do cliente WebSocket
        """
        try:
            data = json.loads(text_data or '{}')
        except json.JSONDecodeError:
            logger.error(f"❌ JSON inválido recebido via WebSocket de {self.user.email}")
            return

        # Heartbeat/Ping
        if data.get('type') == 'ping':
            await self.send(text_data=json.dumps({
                'type': 'pong',
                'timestamp': self.get_timestamp()
            }))

    # === Handlers para os eventos do projeto ===

    async def relay(self, event):
        await self.send(text_data=json.dumps({
            'type': event['type'],
            'message': event['message']
        }))

    async def task_created(self, event):
        await self.relay(event)

    async def task_updated(self, event):
        await self.relay(event)

    async def task_moved(self, event):
        """
        Notifica sobre movimentação de tarefa no Kanban
        """
        await self.relay(event)

    async def task_deleted(self, event):
        await self.relay(event)

    async def comment_added(self, event):
        await self.relay(event)

    # === Métodos auxiliares ===

    @database_sync_to_async
    def check_project_access(self):
        """
        Verifica se usuário tem acesso ao projeto
        """
        try:
            project = Project.objects.filter(id=self.project_id, is_active=True).first()
        except ValidationError:
            return False
        if project is None:
            return False
        return ProjectPermissions.get_project_role(self.user, project) is not None


class NotificationConsumer(TokenAuthMixin, AsyncWebsocketConsumer):
    """
    Consumer para notificações do usuário
    (separado do projeto para permitir notificações globais)
    """

    async def connect(self):
        """
        Conecta usuário ao seu grupo pessoal de notificações
        """
        self.user = await self.resolve_user()

        if self.user is None:
            await self.close()
            return

        self.user_group_name = user_group_name(self.user.pk)

        await self.channel_layer.group_add(
            self.user_group_name,
            self.channel_name
        )

        await self.accept()
        logger.info(f"🔔 Notificações conectadas para {self.user.email}")

    async def disconnect(self, close_code):
        """
        Desconecta das notificações
        """
        if hasattr(self, 'user_group_name'):
            await self.channel_layer.group_discard(
                self.user_group_name,
                self.channel_name
            )
            logger.info(f"🔕 Notificações desconectadas para {self.user.email}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or '{}')
        except json.JSONDecodeError:
            return

        if data.get('type') == 'ping':
            await self.send(text_data=json.dumps({
                'type': 'pong',
                'timestamp': self.get_timestamp()
            }))

    async def notification(self, event):
        """
        Envia notificação para o usuário
        """
        await self.send(text_data=json.dumps({
            'type': 'notification',
            'message': event['message']
        }))
