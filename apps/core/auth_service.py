# apps/core/auth_service.py

"""
Serviço de Autenticação - Encapsula toda lógica de auth do sistema

Responsável por cadastro, login com bloqueio por tentativas, emissão e
validação de tokens JWT (python-jose) e troca de senha. As views apenas
traduzem o resultado em JSON.
"""

import logging
from datetime import timedelta
from typing import Dict, Tuple

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.utils import timezone
from jose import jwt, JWTError, ExpiredSignatureError

from .exceptions import (
    AccountLocked,
    BadRequest,
    InvalidCredentials,
    InvalidToken,
    TokenExpired,
    ValidationFailed,
)
from .models import User

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Serviço encapsulado para gerenciar autenticação

    Métodos públicos levantam exceções da API; os privados guardam as
    regras internas (validação de senha, contagem de tentativas etc).
    """

    def __init__(self):
        self._attempts_key_prefix = 'login-attempts'

    # === CADASTRO E LOGIN ===

    def register(self, data: Dict) -> Tuple[User, str]:
        """
        Cadastra um novo usuário com papel USER

        Args:
            data: dict já validado com name, email e password

        Returns:
            Tuple[usuario, token]
        """
        if self._user_exists(data['email']):
            raise BadRequest('User with this email already exists', code='USER_EXISTS')

        user = self.create_user(data)
        logger.info(f"👤 Novo usuário cadastrado: {user.email}")
        return user, self.issue_token(user)

    def create_user(self, data: Dict, role: str = User.ROLE_USER) -> User:
        """Cria usuário validando a senha (a checagem de email fica com quem chama)"""
        self._validate_password(data['password'])
        return User.objects.create_user(
            email=data['email'],
            password=data['password'],  # Django já faz hash automaticamente
            name=data['name'],
            role=role,
            avatar=data.get('avatar') or '',
        )

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Autentica por email e senha

        Após LOGIN_MAX_ATTEMPTS falhas o email fica bloqueado por
        LOGIN_LOCKOUT_MINUTES.
        """
        email = email.strip().lower()

        if self._is_locked(email):
            logger.warning(f"🔒 Login bloqueado por excesso de tentativas: {email}")
            raise AccountLocked(
                'Account temporarily locked due to too many failed attempts'
            )

        user = User.objects.filter(email=email).first()
        if not user or not user.is_active or not user.check_password(password):
            self._register_failed_attempt(email)
            raise InvalidCredentials()

        self._reset_attempts(email)
        self._update_last_access(user)
        logger.info(f"✅ Login: {user.email}")
        return user, self.issue_token(user)

    def change_password(self, user: User, current_password: str, new_password: str):
        """Troca a senha exigindo a senha atual"""
        if not user.check_password(current_password):
            raise BadRequest('Current password is incorrect', code='INVALID_PASSWORD')

        self.set_password(user, new_password)

    def set_password(self, user: User, new_password: str):
        """Define nova senha sem exigir a atual (uso administrativo)"""
        self._validate_password(new_password)
        user.set_password(new_password)
        user.save(update_fields=['password', 'updated_at'])
        logger.info(f"🔑 Senha alterada: {user.email}")

    # === TOKENS ===

    def issue_token(self, user: User) -> str:
        """Gera o JWT de acesso do usuário"""
        now = timezone.now()
        claims = {
            'sub': str(user.pk),
            'email': user.email,
            'role': user.role,
            'iat': int(now.timestamp()),
            'exp': int((now + timedelta(hours=settings.JWT_EXPIRATION_HOURS)).timestamp()),
        }
        return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    def authenticate_token(self, token: str) -> User:
        """
        Valida o token e retorna o usuário dono dele

        Raises:
            TokenExpired: token expirado (401)
            InvalidToken: assinatura inválida (403) ou usuário inativo (401)
        """
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
            )
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError as e:
            logger.warning(f"❌ Token inválido: {e}")
            raise InvalidToken('Invalid token')

        try:
            user = User.objects.get(pk=payload.get('sub'))
        except (User.DoesNotExist, ValidationError, ValueError):
            user = None

        if user is None or not user.is_active:
            raise InvalidToken('Invalid token - user not found or inactive', status_code=401)

        return user

    # =================== MÉTODOS PRIVADOS (ENCAPSULADOS) ===================

    def _validate_password(self, password: str):
        """Valida força mínima da senha"""
        if len(password or '') < settings.PASSWORD_MIN_LENGTH:
            raise ValidationFailed(
                f'Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long'
            )

    def _user_exists(self, email: str) -> bool:
        return User.objects.filter(email__iexact=email.strip()).exists()

    def _attempts_key(self, email: str) -> str:
        return f'{self._attempts_key_prefix}:{email}'

    def _is_locked(self, email: str) -> bool:
        """Verifica se o email estourou o limite de tentativas"""
        return cache.get(self._attempts_key(email), 0) >= settings.LOGIN_MAX_ATTEMPTS

    def _register_failed_attempt(self, email: str):
        """Registra tentativa de login falhada no cache"""
        key = self._attempts_key(email)
        timeout = settings.LOGIN_LOCKOUT_MINUTES * 60
        if cache.add(key, 1, timeout):
            attempts = 1
        else:
            try:
                attempts = cache.incr(key)
            except ValueError:
                # Chave expirou entre o add e o incr
                cache.set(key, 1, timeout)
                attempts = 1
        logger.warning(f"⚠️ Tentativa de login falhada para: {email} ({attempts})")

    def _reset_attempts(self, email: str):
        cache.delete(self._attempts_key(email))

    def _update_last_access(self, user: User):
        """Atualiza timestamp do último acesso"""
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])


# Instância global do serviço (Singleton pattern)
auth_service = AuthenticationService()
