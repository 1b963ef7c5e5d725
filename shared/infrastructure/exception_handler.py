"""
DRF exception handler

Turns every failure into a JSON body with at least ``error`` and ``code``.
Unknown exceptions are logged with the request context and reported as a
plain 500, never as a stack trace.
"""

import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from shared.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


def exception_handler(exc, context):
    if isinstance(exc, DomainError):
        if exc.status_code >= 500:
            logger.warning(f"{exc.__class__.__name__}: {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, (Http404, PermissionDenied, exceptions.APIException)):
        response = drf_exception_handler(exc, context)
        if response is None:
            return None
        if isinstance(exc, exceptions.ValidationError):
            response.data = {
                'error': _first_message(exc.detail),
                'code': 'invalid_input',
                'details': exc.detail,
            }
        else:
            code = getattr(exc, 'default_code', 'error')
            if isinstance(exc, Http404):
                code = 'not_found'
            elif isinstance(exc, PermissionDenied):
                code = 'forbidden'
            response.data = {'error': _first_message(response.data), 'code': code}
        return response

    view = context.get('view')
    request = context.get('request')
    logger.error(
        f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
        exc_info=exc,
        extra={
            'path': getattr(request, 'path', None),
            'method': getattr(request, 'method', None),
        },
    )
    return Response(
        {'error': 'Internal Server Error', 'code': 'internal_error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
