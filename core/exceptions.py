"""
Custom exception classes for the Aurora scrobbler.

Provides structured error handling with appropriate logging and context.
"""
import logging


class AuroraError(Exception):
    """Base exception for all Aurora errors."""

    def __init__(self, message, error_code=None, details=None, logger_name=None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        # Log the error when it's created
        if logger_name:
            logger = logging.getLogger(logger_name)
            logger.error(
                f"AuroraError: {message}",
                extra={
                    'error_code': error_code,
                    'error_details': details,
                    'error_type': self.__class__.__name__
                }
            )


class APIError(AuroraError):
    """Raised when API operations fail."""

    def __init__(self, message, status_code=500, error_code=None, **kwargs):
        # Use provided error_code or default to 'API_ERROR'
        final_error_code = error_code or 'API_ERROR'
        super().__init__(message, error_code=final_error_code, **kwargs)
        self.status_code = status_code
        self.details.update({'status_code': status_code})


class NotConnectedError(APIError):
    """Raised when a write call is attempted without a Last.fm session."""

    def __init__(self, message="Connect to Last.fm first", **kwargs):
        super().__init__(message, status_code=401, error_code='NOT_CONNECTED', **kwargs)


class ExternalServiceError(AuroraError):
    """Raised when external service calls fail (e.g., Last.fm API)."""

    status_code = 502

    def __init__(self, message, service_name=None, response_code=None, error_code=None, **kwargs):
        super().__init__(message, error_code=error_code or 'EXTERNAL_SERVICE_ERROR', **kwargs)
        self.service_name = service_name
        self.response_code = response_code
        if service_name:
            self.details.update({'service_name': service_name})
        if response_code:
            self.details.update({'response_code': response_code})
