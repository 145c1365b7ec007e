# apps/core/utils.py

import json
import math
import re
from datetime import datetime
from typing import Any, Dict, Optional

from django.conf import settings
from django.http import JsonResponse
from django.utils.dateparse import parse_date, parse_datetime
from django.utils import timezone

from .exceptions import ValidationFailed

_CAMEL_RE = re.compile(r'(?<!^)(?=[A-Z])')


def camel_to_snake(name: str) -> str:
    """Ex: assigneeId -> assignee_id"""
    return _CAMEL_RE.sub('_', name).lower()


def parse_json_body(request) -> Dict[str, Any]:
    """
    Lê o corpo JSON do request com chaves em snake_case

    Corpo vazio vira dict vazio. JSON inválido ou que não seja objeto
    gera VALIDATION_ERROR.
    """
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationFailed('Request body is not valid JSON', code='INVALID_JSON')
    if not isinstance(data, dict):
        raise ValidationFailed('Request body must be a JSON object')
    return {camel_to_snake(key): value for key, value in data.items()}


def api_success(data: Optional[Dict] = None, message: Optional[str] = None, status: int = 200) -> JsonResponse:
    """Envelope padrão de sucesso"""
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return JsonResponse(body, status=status)


def parse_bool(value: Optional[str]) -> Optional[bool]:
    """Converte query params 'true'/'false' (None se ausente)"""
    if value is None or value == '':
        return None
    return str(value).lower() in ('1', 'true', 'yes', 'on')


def parse_int(value, default: int, minimum: int = 1, maximum: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(number, minimum)
    if maximum is not None:
        number = min(number, maximum)
    return number


def parse_datetime_param(value: Optional[str], field: str = 'date'):
    """
    Aceita datetime ISO ou data simples (meia-noite) vinda de query params

    Datas sem fuso são interpretadas no fuso corrente.
    """
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
        day = parse_date(value) if parsed is None else None
    except ValueError:
        raise ValidationFailed(f'{field}: invalid date')
    if parsed is None:
        if day is None:
            raise ValidationFailed(f'{field}: invalid date')
        parsed = datetime(day.year, day.month, day.day)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def paginate(queryset, request):
    """
    Paginação por page/limit

    Returns:
        (itens da página, dict de paginação)
    """
    page = parse_int(request.GET.get('page'), 1)
    limit = parse_int(
        request.GET.get('limit'),
        settings.TRACKBOARD_PAGE_SIZE,
        maximum=settings.TRACKBOARD_MAX_PAGE_SIZE,
    )
    total = queryset.count()
    offset = (page - 1) * limit
    items = list(queryset[offset:offset + limit])
    return items, {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': math.ceil(total / limit) if total else 0,
    }


def percentage(part: int, total: int, digits: int = 1) -> float:
    """Percentual arredondado, 0 quando não há total"""
    if not total:
        return 0
    return round(part * 100 / total, digits)


def truncate(text: str, length: int = 100) -> str:
    """Corta texto longo adicionando reticências"""
    if len(text) <= length:
        return text
    return text[:length] + '...'


def format_duration(minutes: Optional[int]) -> str:
    """
    Formata duração em minutos para formato legível
    Ex: 150 -> "2h 30min"
    """
    if not minutes:
        return "0min"

    hours, rest = divmod(int(minutes), 60)

    if hours == 0:
        return f"{rest}min"
    elif rest == 0:
        return f"{hours}h"
    else:
        return f"{hours}h {rest}min"
