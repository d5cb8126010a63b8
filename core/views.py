"""
Core views for the Aurora scrobbler: health checks and monitoring.
"""
import logging
import time
from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone

from music.lastfm.config import get_lastfm_config


logger = logging.getLogger('core')


def health_check(request):
    """
    Health check endpoint for monitoring system status.

    Returns:
        - status: overall system health status
        - timestamp: current server timestamp
        - checks: configuration status (Last.fm is not contacted)
    """
    start_time = time.time()

    logger.info("Health check requested", extra={
        'remote_addr': request.META.get('REMOTE_ADDR'),
        'user_agent': request.META.get('HTTP_USER_AGENT', '')
    })

    status_data = {
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
        'checks': {},
        'response_time_ms': 0
    }

    # Last.fm credentials
    config = get_lastfm_config()
    is_valid, error_msg = config.validate()
    if is_valid:
        status_data['checks']['lastfm'] = {
            'status': 'healthy',
            'masked_api_key': config.get_masked_api_key()
        }
    else:
        status_data['status'] = 'unhealthy'
        status_data['checks']['lastfm'] = {
            'status': 'unhealthy',
            'message': error_msg
        }
        logger.error("Last.fm configuration check failed", extra={'reason': error_msg})

    # Django configuration
    config_issues = []
    if not settings.SECRET_KEY or settings.SECRET_KEY == 'django-insecure-change-me':
        config_issues.append('SECRET_KEY not properly configured')

    if settings.DEBUG and not settings.ALLOWED_HOSTS:
        config_issues.append('ALLOWED_HOSTS not configured for production')

    if config_issues:
        status_data['checks']['configuration'] = {
            'status': 'warning',
            'issues': config_issues
        }
        logger.warning("Configuration issues detected", extra={
            'issues': config_issues
        })
    else:
        status_data['checks']['configuration'] = {
            'status': 'healthy',
            'message': 'Configuration appears valid'
        }

    response_time = (time.time() - start_time) * 1000
    status_data['response_time_ms'] = round(response_time, 2)

    http_status = 503 if status_data['status'] == 'unhealthy' else 200

    logger.info("Health check completed", extra={
        'overall_status': status_data['status'],
        'http_status': http_status
    })

    return JsonResponse(status_data, status=http_status)
