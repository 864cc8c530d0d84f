import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class POSError(Exception):
    """Base class for domain errors raised by the POS services"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'pos_error'
    default_message = 'The request could not be processed'

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


STATUS_MESSAGES = {
    status.HTTP_400_BAD_REQUEST: 'Validation error',
    status.HTTP_401_UNAUTHORIZED: 'Authentication required',
    status.HTTP_403_FORBIDDEN: 'Permission denied',
    status.HTTP_404_NOT_FOUND: 'Resource not found',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'Method not allowed',
}


def error_body(message, details, status_code, code=None):
    body = {
        'error': True,
        'message': message,
        'details': details,
        'status_code': status_code,
    }
    if code:
        body['code'] = code
    return body


def custom_exception_handler(exc, context):
    """
    Wrap every API error in the same envelope:
    {'error', 'message', 'details', 'status_code'} plus 'code' for POS errors.
    """
    response = exception_handler(exc, context)

    if response is not None:
        message = STATUS_MESSAGES.get(response.status_code, 'An error occurred')
        response.data = error_body(message, response.data, response.status_code)
        return response

    if isinstance(exc, POSError):
        logger.warning(f"{exc.__class__.__name__}: {exc.message}")
        return Response(
            error_body(exc.message, exc.details, exc.status_code, code=exc.code),
            status=exc.status_code,
        )

    if isinstance(exc, ValidationError):
        logger.error(f"Validation Error: {exc}")
        return Response(
            error_body('Validation error', {'non_field_errors': exc.messages}, 400),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, IntegrityError):
        logger.error(f"Integrity Error: {exc}")
        return Response(
            error_body('Database integrity error', {'error': 'This operation violates database constraints'}, 400),
            status=status.HTTP_400_BAD_REQUEST,
        )

    logger.exception(f"Unexpected Error: {exc}")
    return Response(
        error_body('An unexpected error occurred', {'error': str(exc)} if settings.DEBUG else {}, 500),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
