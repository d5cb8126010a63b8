"""
Custom exceptions for Last.fm API integration.

Three kinds of failure are kept apart so callers can tell them apart:
configuration problems, transport failures and errors reported by Last.fm
inside an otherwise successful response.
"""
from core.exceptions import ExternalServiceError


SERVICE_NAME = 'Last.fm'

# Last.fm error codes that mean the credentials, token or session are bad.
AUTHENTICATION_ERROR_CODES = frozenset({4, 9, 14, 15, 26})


class LastFmAPIError(ExternalServiceError):
    """Base exception for Last.fm API errors."""

    def __init__(self, message, error_code=None, response=None, **kwargs):
        kwargs.setdefault('service_name', SERVICE_NAME)
        super().__init__(message, error_code=error_code or 'LASTFM_ERROR', **kwargs)
        self.response = response


class LastFmConfigurationError(LastFmAPIError):
    """Exception raised when API credentials are missing."""

    status_code = 500

    def __init__(self, message, setting_name=None, **kwargs):
        super().__init__(message, error_code='CONFIGURATION_ERROR', **kwargs)
        self.setting_name = setting_name
        if setting_name:
            self.details.update({'setting_name': setting_name})


class LastFmTransportError(LastFmAPIError):
    """Exception raised when Last.fm answers with a non-success HTTP status."""

    def __init__(self, message, response_code=None, **kwargs):
        kwargs.setdefault('error_code', 'LASTFM_TRANSPORT_ERROR')
        super().__init__(message, response_code=response_code, **kwargs)


class LastFmConnectionError(LastFmTransportError):
    """Exception raised for network/connection issues."""

    def __init__(self, message, **kwargs):
        super().__init__(message, error_code='LASTFM_CONNECTION_ERROR', **kwargs)


class LastFmRemoteError(LastFmAPIError):
    """Exception raised when the response body carries a Last.fm error code."""

    def __init__(self, code, message, response=None, **kwargs):
        kwargs.setdefault('error_code', 'LASTFM_REMOTE_ERROR')
        super().__init__(f"Last.fm error {code}: {message}", response=response, **kwargs)
        self.code = code
        self.remote_message = message
        self.details.update({'lastfm_code': code})


class LastFmAuthenticationError(LastFmRemoteError):
    """Exception raised for authentication failures."""

    status_code = 401

    def __init__(self, code, message, **kwargs):
        super().__init__(code, message, error_code='LASTFM_AUTHENTICATION_ERROR', **kwargs)


class LastFmInvalidResponseError(LastFmAPIError):
    """Exception raised when API returns invalid/unexpected data."""

    def __init__(self, message, **kwargs):
        super().__init__(message, error_code='LASTFM_INVALID_RESPONSE', **kwargs)


class LastFmAuthFlowError(LastFmAPIError):
    """Exception raised when the token exchange is attempted out of order."""

    status_code = 400

    def __init__(self, message, **kwargs):
        super().__init__(message, error_code='AUTH_FLOW_ERROR', **kwargs)


def remote_error_for(code, message, response=None):
    """
    Build the exception matching a Last.fm error code.

    Args:
        code: Numeric error code from the response body
        message: Error message from the response body
        response: Decoded response body

    Returns:
        LastFmRemoteError (or LastFmAuthenticationError) instance
    """
    if code in AUTHENTICATION_ERROR_CODES:
        return LastFmAuthenticationError(code, message, response=response)
    return LastFmRemoteError(code, message, response=response)
