# apps/core/exceptions.py

"""
Exceções da API

Toda falha esperada é levantada como ApiError (ou subclasse) e convertida
no envelope {"error": CODE, "message": ...} pelo ApiExceptionMiddleware.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    """Exceção base da API com código e status HTTP"""

    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message: str, code: Optional[str] = None,
                 status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Converte a exceção no corpo da resposta"""
        result = {
            'error': self.code,
            'message': self.message,
        }
        if self.details:
            result['details'] = self.details
        return result


# === 400 ===

class BadRequest(ApiError):
    status_code = 400
    code = 'BAD_REQUEST'


class ValidationFailed(BadRequest):
    """Payload inválido - details traz os erros por campo"""

    code = 'VALIDATION_ERROR'

    @classmethod
    def from_form(cls, form):
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        field, messages = next(iter(errors.items()))
        label = '' if field == '__all__' else f'{field}: '
        return cls(f'{label}{messages[0]}', details={'fields': errors})


# === 401 ===

class AuthenticationRequired(ApiError):
    status_code = 401
    code = 'AUTH_REQUIRED'

    def __init__(self, message: str = 'Access token required'):
        super().__init__(message)


class TokenExpired(ApiError):
    status_code = 401
    code = 'TOKEN_EXPIRED'

    def __init__(self, message: str = 'Token has expired'):
        super().__init__(message)


class InvalidToken(ApiError):
    """Token ilegível (403) ou de usuário inexistente/inativo (401)"""

    status_code = 403
    code = 'INVALID_TOKEN'


class InvalidCredentials(ApiError):
    status_code = 401
    code = 'INVALID_CREDENTIALS'

    def __init__(self, message: str = 'Invalid email or password'):
        super().__init__(message)


# === 403 ===

class AccessDenied(ApiError):
    status_code = 403
    code = 'FORBIDDEN'


# === 404 ===

class NotFound(ApiError):
    status_code = 404
    code = 'NOT_FOUND'

    def __init__(self, entity: str = 'Resource'):
        code = f"{entity.upper().replace(' ', '_')}_NOT_FOUND"
        super().__init__(f'{entity} not found', code=code)


# === 409 ===

class Conflict(ApiError):
    status_code = 409
    code = 'CONFLICT'


# === 429 ===

class AccountLocked(ApiError):
    status_code = 429
    code = 'ACCOUNT_LOCKED'
