"""
Configuration management for Last.fm API integration.
"""
import logging
from typing import Optional, Dict, Any
from django.conf import settings

from .exceptions import LastFmConfigurationError


logger = logging.getLogger('music.lastfm')


class LastFmConfig:
    """
    Manages Last.fm API configuration and validation.

    Handles environment variables, validation, and secure access
    to Last.fm credentials without exposing them in logs.
    """

    def __init__(self):
        self._api_key = getattr(settings, 'LASTFM_API_KEY', '')
        self._api_secret = getattr(settings, 'LASTFM_API_SECRET', '')
        self._request_timeout = getattr(settings, 'LASTFM_REQUEST_TIMEOUT', None)

    @property
    def api_key(self) -> str:
        """Get API key (never log this value)."""
        return self._api_key

    @property
    def api_secret(self) -> str:
        """Get API secret (never log this value)."""
        return self._api_secret

    @property
    def request_timeout(self) -> Optional[float]:
        """Seconds to wait for Last.fm, or None to wait indefinitely."""
        return self._request_timeout

    def is_configured(self) -> bool:
        """
        Check if Last.fm is properly configured.

        Returns:
            True if API key and shared secret are set, False otherwise
        """
        return bool(self._api_key and self._api_secret)

    def get_masked_api_key(self) -> str:
        """
        Get masked API key for display purposes.

        Returns:
            Masked string like "abc***xyz" or "Not configured"
        """
        if not self._api_key:
            return "Not configured"

        if len(self._api_key) <= 6:
            return "****hidden****"

        return f"{self._api_key[:3]}***{self._api_key[-3:]}"

    def get_status(self) -> Dict[str, Any]:
        """
        Get configuration status summary (safe for logging/display).

        Returns:
            Dictionary with configuration status information
        """
        return {
            'configured': self.is_configured(),
            'has_api_key': bool(self._api_key),
            'has_api_secret': bool(self._api_secret),
            'masked_api_key': self.get_masked_api_key(),
            'request_timeout': self._request_timeout,
        }

    def validate(self) -> tuple[bool, Optional[str]]:
        """
        Validate configuration completeness.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not self._api_key:
            return False, "Last.fm API key is not configured"

        if not self._api_secret:
            return False, "Last.fm API secret is not configured"

        if self._request_timeout is not None and self._request_timeout <= 0:
            return False, f"Invalid request timeout: {self._request_timeout}"

        return True, None

    def require(self):
        """
        Fail if the settings needed to call Last.fm are missing or invalid.

        Raises:
            LastFmConfigurationError: naming the first bad setting
        """
        if not self._api_key:
            setting_name, message = 'LASTFM_API_KEY', "Last.fm API key is not configured"
        elif not self._api_secret:
            setting_name, message = 'LASTFM_API_SECRET', "Last.fm API secret is not configured"
        elif self._request_timeout is not None and self._request_timeout <= 0:
            setting_name = 'LASTFM_REQUEST_TIMEOUT'
            message = f"Invalid request timeout: {self._request_timeout}"
        else:
            return

        logger.error(
            "Last.fm configuration rejected",
            extra={'setting_name': setting_name, 'masked_api_key': self.get_masked_api_key()}
        )
        raise LastFmConfigurationError(message, setting_name=setting_name)


def get_lastfm_config() -> LastFmConfig:
    """
    Get Last.fm configuration instance.

    Returns:
        LastFmConfig instance
    """
    return LastFmConfig()
