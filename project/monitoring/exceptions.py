"""
Error taxonomy for the monitoring API and the DRF exception handler that
renders every failure as a ``{"message": ...}`` body.
"""

import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = 'Server error'


class ValidationError(exceptions.ValidationError):
    """Missing or malformed required field (400)."""


class NotFoundError(exceptions.NotFound):
    default_detail = 'Not found'


class AuthenticationError(exceptions.AuthenticationFailed):
    default_detail = 'Authentication failed'


class AuthorizationError(exceptions.PermissionDenied):
    default_detail = 'You do not have permission to perform this action'


class ConflictError(exceptions.APIException):
    """A unique field already holds the submitted value."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Resource already exists'
    default_code = 'conflict'


class StoreError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = GENERIC_ERROR_MESSAGE
    default_code = 'store_error'


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return 'Validation failed'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Validation failed'
    return str(detail)


def monitoring_exception_handler(exc, context):
    """
    Map exceptions raised by views and services to JSON error responses.

    DRF exceptions keep their status code; the body is flattened to
    ``{"message": ...}``, with field errors also exposed under ``errors``.
    Database failures and anything unexpected become a 500 carrying a
    generic message, the details going to the log only.
    """
    if isinstance(exc, DatabaseError):
        logger.exception("Database error in %s", context.get('view').__class__.__name__)
        exc = StoreError()

    response = exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled error in %s", context.get('view').__class__.__name__, exc_info=exc)
        return Response({"message": GENERIC_ERROR_MESSAGE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail = exc.detail if isinstance(exc, exceptions.APIException) else response.data
    body = {"message": _first_message(detail)}
    if isinstance(exc, exceptions.ValidationError) and isinstance(detail, dict):
        body["message"] = f"Validation failed: {body['message']}"
        body["errors"] = response.data
    response.data = body
    return response
