"""
Retest domain errors. Rendered by config.exceptions.custom_exception_handler as
{success: false, message, detail, code}.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class RetestError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Retest submission rejected'
    default_code = 'retest_error'


class RetestNotFound(RetestError):
    default_detail = 'Retest not found or not assigned to this student'
    default_code = 'retest_not_found'


class RetestWindowClosed(RetestError):
    default_detail = 'Retest window is not active'
    default_code = 'retest_window_closed'


class RetestAlreadyCompleted(RetestError):
    default_detail = 'Retest is already completed'
    default_code = 'retest_already_completed'


class MaxAttemptsReached(RetestError):
    default_detail = 'Maximum retest attempts reached'
    default_code = 'max_attempts_reached'


class ConcurrencyConflict(APIException):
    """Target update matched no open row: completed by a concurrent submission, or gone."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Retest was updated by another submission. Reload and try again.'
    default_code = 'concurrency_conflict'


class StorageError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Database error'
    default_code = 'storage_error'
