"""
Tests for core error handling, logging, and health checks.
"""
import json
from unittest.mock import patch, MagicMock
from django.test import TestCase, RequestFactory, override_settings
from django.http import HttpResponse
from django.urls import reverse
from rest_framework.exceptions import ValidationError

from .exceptions import (
    AuroraError, APIError, NotConnectedError, ExternalServiceError
)
from .handlers import custom_exception_handler
from .middleware import LoggingMiddleware
from music.lastfm.exceptions import (
    LastFmAuthenticationError,
    LastFmConfigurationError,
    LastFmConnectionError,
    LastFmRemoteError,
    LastFmTransportError,
)


class CustomExceptionTests(TestCase):
    """Test custom exception classes."""

    def setUp(self):
        self.logger_patcher = patch('core.exceptions.logging.getLogger')
        self.mock_logger = self.logger_patcher.start()

    def tearDown(self):
        self.logger_patcher.stop()

    def test_aurora_error_creation(self):
        """Test basic AuroraError creation and logging."""
        error = AuroraError(
            message="Test error",
            error_code="TEST_ERROR",
            details={"key": "value"},
            logger_name="test_logger"
        )

        self.assertEqual(error.message, "Test error")
        self.assertEqual(error.error_code, "TEST_ERROR")
        self.assertEqual(error.details, {"key": "value"})
        self.mock_logger.return_value.error.assert_called_once()

    def test_api_error(self):
        """Test APIError with status code."""
        error = APIError(message="API error", status_code=400)

        self.assertEqual(error.error_code, "API_ERROR")
        self.assertEqual(error.status_code, 400)
        self.assertIn("status_code", error.details)

    def test_not_connected_error(self):
        error = NotConnectedError()

        self.assertEqual(error.status_code, 401)
        self.assertEqual(error.error_code, 'NOT_CONNECTED')

    def test_lastfm_errors_are_distinguishable(self):
        """Configuration, transport and remote errors are separate kinds."""
        config_error = LastFmConfigurationError("Missing key", setting_name='LASTFM_API_KEY')
        transport_error = LastFmTransportError("HTTP 500", response_code=500)
        connection_error = LastFmConnectionError("refused")
        remote_error = LastFmRemoteError(6, "Invalid parameters")

        for error in (config_error, transport_error, connection_error, remote_error):
            self.assertIsInstance(error, ExternalServiceError)
            self.assertEqual(error.service_name, 'Last.fm')

        self.assertEqual(config_error.error_code, 'CONFIGURATION_ERROR')
        self.assertEqual(transport_error.error_code, 'LASTFM_TRANSPORT_ERROR')
        self.assertEqual(transport_error.details['response_code'], 500)
        self.assertEqual(connection_error.error_code, 'LASTFM_CONNECTION_ERROR')
        self.assertIsInstance(connection_error, LastFmTransportError)
        self.assertEqual(remote_error.error_code, 'LASTFM_REMOTE_ERROR')
        self.assertEqual(remote_error.code, 6)
        self.assertEqual(remote_error.message, 'Last.fm error 6: Invalid parameters')

    def test_status_codes(self):
        self.assertEqual(LastFmConfigurationError("x").status_code, 500)
        self.assertEqual(LastFmTransportError("x").status_code, 502)
        self.assertEqual(LastFmRemoteError(6, "x").status_code, 502)
        self.assertEqual(LastFmAuthenticationError(9, "x").status_code, 401)


class ExceptionHandlerTests(TestCase):
    """Test the DRF exception handler."""

    def setUp(self):
        self.factory = RequestFactory()

    def _context(self, path='/api/scrobble/'):
        request = self.factory.post(path)
        request.request_id = 'test-id'
        return {'request': request}

    def test_application_error(self):
        response = custom_exception_handler(LastFmRemoteError(6, 'Invalid parameters'), self._context())

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.data['error']['code'], 'LASTFM_REMOTE_ERROR')
        self.assertEqual(response.data['error']['details']['lastfm_code'], 6)
        self.assertEqual(response.data['request_id'], 'test-id')

    def test_validation_error(self):
        response = custom_exception_handler(ValidationError({'artist': ['required']}), self._context())

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')
        self.assertEqual(response.data['error']['details'], {'artist': ['required']})

    @override_settings(DEBUG=False)
    def test_unexpected_error(self):
        response = custom_exception_handler(RuntimeError('boom'), self._context())

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data['error']['code'], 'INTERNAL_SERVER_ERROR')
        self.assertEqual(response.data['error']['details'], {})


class LoggingMiddlewareTests(TestCase):
    """Test logging middleware functionality."""

    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = LoggingMiddleware(lambda request: HttpResponse("OK"))

    @patch('core.middleware.logging.getLogger')
    def test_process_request_logging(self, mock_get_logger):
        """Test that requests are properly logged."""
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger
        middleware = LoggingMiddleware(lambda request: HttpResponse("OK"))

        request = self.factory.get('/test/')
        middleware.process_request(request)

        self.assertTrue(hasattr(request, 'request_id'))
        self.assertTrue(hasattr(request, 'start_time'))
        mock_logger.info.assert_called_once()

    @patch('core.middleware.logging.getLogger')
    def test_request_body_with_credentials_not_logged(self, mock_get_logger):
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger
        middleware = LoggingMiddleware(lambda request: HttpResponse("OK"))

        request = self.factory.post(
            '/api/auth/session/',
            data=json.dumps({'token': 'abc'}),
            content_type='application/json'
        )
        middleware.process_request(request)

        mock_logger.debug.assert_not_called()

    @patch('core.middleware.logging.getLogger')
    def test_request_body_logged(self, mock_get_logger):
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger
        middleware = LoggingMiddleware(lambda request: HttpResponse("OK"))

        request = self.factory.put(
            '/api/theme/',
            data=json.dumps({'mode': 'dark'}),
            content_type='application/json'
        )
        middleware.process_request(request)

        mock_logger.debug.assert_called_once()

    @patch('core.middleware.logging.getLogger')
    def test_process_response_logging(self, mock_get_logger):
        """Test that responses are properly logged."""
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger
        middleware = LoggingMiddleware(lambda request: HttpResponse("OK"))

        request = self.factory.get('/test/')
        request.request_id = "test-id"
        request.start_time = 0

        response = HttpResponse("OK", status=200)

        with patch('time.time', return_value=1):
            result = middleware.process_response(request, response)

        self.assertEqual(result, response)
        mock_logger.log.assert_called()

    @patch('core.middleware.logging.getLogger')
    def test_process_exception_logging(self, mock_get_logger):
        """Test that exceptions are properly logged."""
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger
        middleware = LoggingMiddleware(lambda request: HttpResponse("OK"))

        request = self.factory.get('/api/test/')
        request.request_id = "test-id"
        exception = Exception("Test exception")

        result = middleware.process_exception(request, exception)

        mock_logger.error.assert_called_once()
        # Errors are rendered by the DRF exception handler, not here
        self.assertIsNone(result)

    def test_get_client_ip(self):
        """Test client IP extraction."""
        # Test with X-Forwarded-For header
        request = self.factory.get('/test/')
        request.META['HTTP_X_FORWARDED_FOR'] = '192.168.1.1, 10.0.0.1'
        ip = self.middleware._get_client_ip(request)
        self.assertEqual(ip, '192.168.1.1')

        # Test with REMOTE_ADDR
        request = self.factory.get('/test/')
        request.META['REMOTE_ADDR'] = '127.0.0.1'
        ip = self.middleware._get_client_ip(request)
        self.assertEqual(ip, '127.0.0.1')


class HealthCheckTests(TestCase):
    """Test health check endpoint."""

    @override_settings(
        LASTFM_API_KEY='test_api_key_12345',
        LASTFM_API_SECRET='test_api_secret_67890'
    )
    def test_health_check_configured(self):
        response = self.client.get(reverse('core:health_check'))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'healthy')
        self.assertEqual(data['checks']['lastfm']['masked_api_key'], 'tes***345')
        self.assertNotIn('test_api_secret_67890', response.content.decode())

    @override_settings(LASTFM_API_KEY='', LASTFM_API_SECRET='')
    def test_health_check_unconfigured(self):
        response = self.client.get(reverse('core:health_check'))

        self.assertEqual(response.status_code, 503)
        data = response.json()
        self.assertEqual(data['status'], 'unhealthy')
        self.assertEqual(data['checks']['lastfm']['status'], 'unhealthy')
