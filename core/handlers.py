"""
Custom exception handlers for DRF API responses.

Provides consistent error formatting across all API endpoints.
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework.exceptions import (
    ValidationError,
    NotFound,
    MethodNotAllowed,
    ParseError,
)
from django.http import Http404
from django.conf import settings
import logging

from .exceptions import AuroraError

logger = logging.getLogger('aurora.errors')


def custom_exception_handler(exc, context):
    """
    Custom exception handler for DRF that provides consistent error formatting.

    Handles:
    - AuroraError exceptions, including every Last.fm error kind
    - DRF validation errors
    - Standard HTTP errors (404, 405, etc.)
    - Unexpected exceptions with proper logging
    """
    # Get request context for logging
    request = context.get('request')
    request_id = getattr(request, 'request_id', 'unknown') if request else 'unknown'

    # Handle our custom exceptions first
    if isinstance(exc, AuroraError):
        status_code = getattr(exc, 'status_code', 500)
        error_data = {
            'error': {
                'code': exc.error_code or 'APPLICATION_ERROR',
                'message': str(exc.message),
                'details': exc.details
            }
        }

        # Add request_id for tracing
        if request_id != 'unknown':
            error_data['request_id'] = request_id

        logger.warning(
            f"Application error: {exc.__class__.__name__}: {exc.message}",
            extra={
                'request_id': request_id,
                'error_code': exc.error_code,
                'status_code': status_code,
                'path': request.path if request else 'unknown',
            }
        )

        return Response(error_data, status=status_code)

    # Call DRF's default exception handler
    response = exception_handler(exc, context)

    if response is not None:
        # Customize DRF error responses to match our format
        if isinstance(exc, ValidationError):
            error_data = {
                'error': {
                    'code': 'VALIDATION_ERROR',
                    'message': 'Request validation failed',
                    'details': response.data
                }
            }

        elif isinstance(exc, NotFound) or isinstance(exc, Http404):
            error_data = {
                'error': {
                    'code': 'NOT_FOUND',
                    'message': 'The requested resource was not found',
                    'details': {}
                }
            }

        elif isinstance(exc, MethodNotAllowed):
            error_data = {
                'error': {
                    'code': 'METHOD_NOT_ALLOWED',
                    'message': f'Method {request.method} not allowed for this endpoint',
                    'details': {
                        'method': request.method,
                    }
                }
            }

        elif isinstance(exc, ParseError):
            error_data = {
                'error': {
                    'code': 'PARSE_ERROR',
                    'message': 'Malformed request data',
                    'details': {'detail': str(exc.detail)}
                }
            }

        else:
            # Generic error formatting for other DRF errors
            error_data = {
                'error': {
                    'code': 'API_ERROR',
                    'message': str(exc) if hasattr(exc, 'detail') else 'An API error occurred',
                    'details': response.data if isinstance(response.data, dict) else {'detail': response.data}
                }
            }

        # Add request_id for tracing
        if request_id != 'unknown':
            error_data['request_id'] = request_id

        # Log the error with context
        logger.warning(
            f"API error: {exc.__class__.__name__}: {str(exc)}",
            extra={
                'request_id': request_id,
                'error_code': error_data['error']['code'],
                'status_code': response.status_code,
                'path': request.path if request else 'unknown',
                'method': request.method if request else 'unknown',
            }
        )

        return Response(error_data, status=response.status_code)

    # Handle unexpected exceptions not caught by DRF
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}: {str(exc)}",
        exc_info=True,
        extra={
            'request_id': request_id,
            'path': request.path if request else 'unknown',
            'method': request.method if request else 'unknown',
        }
    )

    # Return a properly formatted 500 error
    error_data = {
        'error': {
            'code': 'INTERNAL_SERVER_ERROR',
            'message': 'An internal server error occurred',
            'details': {}
        }
    }

    # Include exception details in development
    if settings.DEBUG:
        error_data['error']['details'] = {
            'exception_type': exc.__class__.__name__,
            'exception_message': str(exc)
        }

    if request_id != 'unknown':
        error_data['request_id'] = request_id

    return Response(error_data, status=500)
