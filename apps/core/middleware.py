# apps/core/middleware.py

import json
import logging

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404, JsonResponse

from .auth_service import auth_service
from .exceptions import ApiError

logger = logging.getLogger(__name__)

API_PREFIX = '/api/'


class TokenAuthenticationMiddleware:
    """
    Autentica requests da API pelo header Authorization: Bearer <token>

    Na API o usuário vem só do token: a sessão do admin é descartada.
    Um token inválido não interrompe o request: o erro fica em
    request.auth_error e só é levantado pelas views que exigem
    autenticação (token_required).
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.auth_error = None

        if request.path.startswith(API_PREFIX):
            request.user = AnonymousUser()
            token = self._extract_token(request)
            if token:
                try:
                    request.user = auth_service.authenticate_token(token)
                except ApiError as e:
                    request.auth_error = e

        response = self.get_response(request)

        # Headers informativos para o client
        if request.path.startswith(API_PREFIX) and getattr(request, 'user', None) is not None \
                and request.user.is_authenticated:
            response['X-User-Role'] = request.user.role

        return response

    @staticmethod
    def _extract_token(request):
        header = request.META.get('HTTP_AUTHORIZATION', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer':
            return None
        return token.strip() or None


class ApiExceptionMiddleware:
    """
    Converte exceções das views da API no envelope JSON de erro

    Fora de /api/ (admin) o tratamento padrão do Django é mantido.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not request.path.startswith(API_PREFIX):
            return None

        if isinstance(exception, ApiError):
            return JsonResponse(exception.to_dict(), status=exception.status_code)

        if isinstance(exception, Http404):
            return JsonResponse({'error': 'NOT_FOUND', 'message': str(exception) or 'Not found'}, status=404)

        if isinstance(exception, PermissionDenied):
            return JsonResponse({'error': 'FORBIDDEN', 'message': str(exception) or 'Access denied'}, status=403)

        if isinstance(exception, ValidationError):
            return JsonResponse({'error': 'VALIDATION_ERROR', 'message': '; '.join(exception.messages)}, status=400)

        if isinstance(exception, json.JSONDecodeError):
            return JsonResponse({'error': 'INVALID_JSON', 'message': 'Request body is not valid JSON'}, status=400)

        logger.exception(f"❌ Erro inesperado em {request.method} {request.path}")
        return JsonResponse({'error': 'INTERNAL_ERROR', 'message': 'Internal server error'}, status=500)
