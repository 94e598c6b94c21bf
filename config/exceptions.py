"""
Global exception handler for consistent API error responses.
Follows DRF convention and returns uniform structure:
{ "success": false, "message": str, "detail": str, "code": str, "errors": dict (optional) }
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.core.exceptions import PermissionDenied, ValidationError as DjangoValidationError
from django.conf import settings
from django.db import DatabaseError

from retests.exceptions import StorageError

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        errors = None
        if isinstance(response.data, dict) and 'detail' not in response.data:
            # Serializer field errors
            errors = response.data
        detail = _get_detail(exc, errors)
        data = {
            'success': False,
            'message': detail,
            'detail': detail,
            'code': _get_code(exc),
        }
        if errors:
            data['errors'] = errors
        response.data = data
        return response

    if isinstance(exc, PermissionDenied):
        return _error_response('Permission denied', 'permission_denied', status.HTTP_403_FORBIDDEN, exc)
    if isinstance(exc, DjangoValidationError):
        return _error_response(str(exc), 'validation_error', status.HTTP_400_BAD_REQUEST, exc)

    view = context.get('view') if context else None
    if isinstance(exc, DatabaseError):
        logger.exception('Database error in %s: %s', type(view).__name__ if view else 'unknown', exc)
        detail = StorageError.default_detail
        if settings.DEBUG:
            detail = f'{detail}: {exc}'
        return _error_response(detail, StorageError.default_code, StorageError.status_code)

    logger.exception('Unhandled exception: %s', exc)
    # Never expose stack traces to clients; exception text only in DEBUG
    detail = 'An internal error occurred.'
    if settings.DEBUG:
        detail = f'An internal error occurred: {exc}'
    return _error_response(detail, 'internal_error', status.HTTP_500_INTERNAL_SERVER_ERROR)


def _error_response(detail, code, status_code, exc=None):
    if exc is not None and status_code < 500 and str(exc):
        detail = str(exc)
    return Response(
        {'success': False, 'message': detail, 'detail': detail, 'code': code},
        status=status_code,
    )


def _get_detail(exc, errors=None):
    if errors:
        return 'Missing or invalid fields: ' + ', '.join(sorted(errors.keys()))
    if hasattr(exc, 'detail'):
        d = exc.detail
        if isinstance(d, list):
            return str(d[0]) if d else 'Error'
        if isinstance(d, dict):
            return str(d.get('detail', d))
        return str(d)
    return str(exc)


def _get_code(exc):
    codes = {
        'AuthenticationFailed': 'invalid_credentials',
        'NotAuthenticated': 'not_authenticated',
        'NotFound': 'not_found',
        'PermissionDenied': 'permission_denied',
        'ValidationError': 'validation_error',
        'MethodNotAllowed': 'method_not_allowed',
    }
    default_code = getattr(exc, 'default_code', None)
    if type(exc).__name__ in codes:
        return codes[type(exc).__name__]
    get_codes = getattr(exc, 'get_codes', None)
    if callable(get_codes):
        c = get_codes()
        if isinstance(c, str):
            return c
    return default_code or 'error'
