"""
Last.fm API integration package for Aurora.

This package provides Last.fm API client functionality including:
- API credential management
- Request signing
- Token based authorization
- Now playing updates and scrobble submission
"""

from .auth import AuthFlow, AuthState, build_auth_url
from .client import LastFmClient
from .exceptions import (
    LastFmAPIError,
    LastFmAuthenticationError,
    LastFmAuthFlowError,
    LastFmConfigurationError,
    LastFmConnectionError,
    LastFmInvalidResponseError,
    LastFmRemoteError,
    LastFmTransportError,
)
from .signer import sign
from .types import LastFmSession, NowPlaying, RequestToken, Scrobble, ScrobbleResult

__all__ = [
    'AuthFlow',
    'AuthState',
    'build_auth_url',
    'LastFmClient',
    'LastFmAPIError',
    'LastFmAuthenticationError',
    'LastFmAuthFlowError',
    'LastFmConfigurationError',
    'LastFmConnectionError',
    'LastFmInvalidResponseError',
    'LastFmRemoteError',
    'LastFmTransportError',
    'sign',
    'LastFmSession',
    'NowPlaying',
    'RequestToken',
    'Scrobble',
    'ScrobbleResult',
]
