"""
Middleware for request/response logging.
"""
import logging
import time
import uuid
from django.utils.deprecation import MiddlewareMixin


# Request bodies mentioning any of these are never logged.
SENSITIVE_MARKERS = ('token', 'sessionkey', 'api_sig', 'secret')


class LoggingMiddleware(MiddlewareMixin):
    """Middleware for logging HTTP requests and responses."""

    def __init__(self, get_response):
        super().__init__(get_response)
        self.logger = logging.getLogger('aurora.middleware')

    def process_request(self, request):
        """Log incoming requests."""
        # Generate unique request ID for tracing
        request.request_id = str(uuid.uuid4())[:8]
        request.start_time = time.time()

        self.logger.info(
            f"Request started: {request.method} {request.get_full_path()}",
            extra={
                'request_id': request.request_id,
                'method': request.method,
                'path': request.path,
                'user_agent': request.META.get('HTTP_USER_AGENT', ''),
                'remote_addr': self._get_client_ip(request),
                'content_type': request.content_type,
            }
        )

        # Log request body for API endpoints (excluding credentials)
        if request.path.startswith('/api/') and request.method in ['POST', 'PUT', 'PATCH']:
            try:
                body_str = request.body.decode('utf-8') if request.body else ''
            except UnicodeDecodeError:
                body_str = ''
            lowered = body_str.lower()
            if body_str and not any(marker in lowered for marker in SENSITIVE_MARKERS):
                self.logger.debug(
                    f"Request body: {body_str[:1000]}",
                    extra={'request_id': request.request_id}
                )

    def process_response(self, request, response):
        """Log response details."""
        if hasattr(request, 'start_time'):
            duration = (time.time() - request.start_time) * 1000  # milliseconds
        else:
            duration = 0

        request_id = getattr(request, 'request_id', 'unknown')

        log_data = {
            'request_id': request_id,
            'status_code': response.status_code,
            'duration_ms': round(duration, 2),
            'content_type': response.get('Content-Type', ''),
        }

        # Determine log level based on status code
        if response.status_code >= 500:
            log_level = logging.ERROR
            message = f"Request completed with server error: {response.status_code}"
        elif response.status_code >= 400:
            log_level = logging.WARNING
            message = f"Request completed with client error: {response.status_code}"
        elif duration > 5000:  # Slow requests (>5 seconds)
            log_level = logging.WARNING
            message = f"Slow request completed: {duration:.0f}ms"
        else:
            log_level = logging.INFO
            message = f"Request completed successfully: {response.status_code}"

        self.logger.log(log_level, message, extra=log_data)

        return response

    def process_exception(self, request, exception):
        """Log unhandled exceptions."""
        request_id = getattr(request, 'request_id', 'unknown')

        self.logger.error(
            "Unhandled exception in request",
            exc_info=True,
            extra={
                'request_id': request_id,
                'exception_type': type(exception).__name__,
                'exception_message': str(exception),
                'method': request.method,
                'path': request.path,
            }
        )

        return None

    def _get_client_ip(self, request):
        """Get the real client IP address."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0].strip()
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip

