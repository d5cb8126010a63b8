"""
Last.fm API client implementation.

Provides a thin wrapper around the Last.fm API with:
- Credential checks on first use
- Request signing for write and session calls
- A single error channel for transport and in-body API errors
"""
import logging
from typing import Optional, Dict, Any

import requests

from .config import LastFmConfig
from .exceptions import (
    LastFmConnectionError,
    LastFmInvalidResponseError,
    LastFmTransportError,
    remote_error_for,
)
from .signer import sign
from .types import (
    LastFmSession,
    NowPlaying,
    Scrobble,
    ScrobbleResult,
    parse_now_playing,
    parse_scrobble_result,
    parse_session,
    parse_token,
)


logger = logging.getLogger('music.lastfm')


class LastFmClient:
    """
    Last.fm API client with request signing and error handling.

    Implements the Last.fm API 2.0 calls needed to authorize a user and
    submit plays. Calls are never retried.
    """

    BASE_URL = "https://ws.audioscrobbler.com/2.0/"
    USER_AGENT = 'Aurora/1.0 (Last.fm Scrobbler)'

    def __init__(self, config: Optional[LastFmConfig] = None):
        """
        Initialize Last.fm client.

        Args:
            config: LastFmConfig instance (will create if not provided)
        """
        self.config = config or LastFmConfig()
        self._session = None

        is_valid, error_msg = self.config.validate()
        if not is_valid:
            logger.warning(f"Last.fm client initialized with invalid config: {error_msg}")

    def _get_session(self) -> requests.Session:
        """
        Get or create the requests session.

        Returns:
            requests.Session instance
        """
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({
                'User-Agent': self.USER_AGENT,
            })

        return self._session

    def build_params(
        self,
        method: str,
        params: Optional[Dict[str, str]] = None,
        signed: bool = False
    ) -> Dict[str, str]:
        """
        Assemble the exact parameter set sent to Last.fm.

        Args:
            method: Last.fm API method name
            params: Method-specific parameters
            signed: Whether to add api_sig

        Returns:
            Parameter dictionary, including api_sig when signed
        """
        request_params = {
            'api_key': self.config.api_key,
            'format': 'json',
            'method': method,
        }
        if params:
            request_params.update(params)

        if signed:
            request_params['api_sig'] = sign(request_params, self.config.api_secret)

        return request_params

    def execute(
        self,
        method: str,
        params: Optional[Dict[str, str]] = None,
        signed: bool = False,
        http_method: str = 'GET'
    ) -> Dict[str, Any]:
        """
        Make request to Last.fm API with error handling.

        Args:
            method: Last.fm API method name
            params: Additional parameters for the request
            signed: Whether to sign the request
            http_method: 'GET' sends a query string, 'POST' a form body

        Returns:
            Parsed JSON response

        Raises:
            LastFmConfigurationError: When credentials are missing
            LastFmTransportError: For non-success HTTP statuses
            LastFmConnectionError: For network errors
            LastFmRemoteError: For errors reported in the response body
            LastFmInvalidResponseError: When the body is not a JSON object
        """
        self.config.require()

        request_params = self.build_params(method, params, signed)

        logger.debug(
            f"Making Last.fm API request: {method}",
            extra={
                'method': method,
                'http_method': http_method,
                'signed': signed,
                'params_count': len(request_params),
            }
        )

        try:
            session = self._get_session()
            if http_method == 'POST':
                response = session.post(
                    self.BASE_URL,
                    data=request_params,
                    timeout=self.config.request_timeout
                )
            else:
                response = session.get(
                    self.BASE_URL,
                    params=request_params,
                    timeout=self.config.request_timeout
                )

        except requests.exceptions.Timeout as e:
            logger.error(f"Last.fm API request timeout: {method}")
            raise LastFmConnectionError(
                f"Request to Last.fm timed out after {self.config.request_timeout} seconds"
            ) from e

        except requests.exceptions.ConnectionError as e:
            logger.error(f"Last.fm API connection error: {method}")
            raise LastFmConnectionError(
                "Failed to connect to Last.fm API"
            ) from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Last.fm API request failed: {method}", exc_info=True)
            raise LastFmConnectionError(
                f"Request to Last.fm failed: {str(e)}"
            ) from e

        logger.debug(
            "Last.fm API response received",
            extra={
                'method': method,
                'status_code': response.status_code,
            }
        )

        if not 200 <= response.status_code < 300:
            # Last.fm reports some errors (bad session, bad signature) with a 4xx status
            self._ensure_no_error(method, self._error_body(response))
            logger.error(
                "Last.fm API returned an HTTP error",
                extra={
                    'method': method,
                    'status_code': response.status_code,
                }
            )
            raise LastFmTransportError(
                f"Last.fm request failed with {response.status_code}",
                response_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Last.fm API returned invalid JSON: {method}")
            raise LastFmInvalidResponseError(
                "Last.fm API returned invalid JSON response"
            ) from e

        if not isinstance(data, dict):
            raise LastFmInvalidResponseError(
                "Last.fm API returned an unexpected response shape",
                response=data
            )

        self._ensure_no_error(method, data)

        return data

    @staticmethod
    def _error_body(response) -> Dict[str, Any]:
        """Decoded body of a failed response, or an empty dict if it is not a JSON object."""
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _ensure_no_error(self, method: str, data: Dict[str, Any]):
        """Raise the matching remote error if the body carries one."""
        if data.get('error') is None:
            return

        error_code = data['error']
        try:
            error_code = int(error_code)
        except (TypeError, ValueError):
            pass
        error_message = data.get('message') or 'Unknown Last.fm error'

        logger.error(
            "Last.fm API error",
            extra={
                'method': method,
                'error_code': error_code,
                'error_message': error_message,
            }
        )

        raise remote_error_for(error_code, error_message, response=data)

    def get_token(self) -> str:
        """
        Request an unauthorized request token.

        Returns:
            Token string the user must approve on last.fm
        """
        data = self.execute('auth.getToken')
        return parse_token(data)

    def get_session(self, token: str) -> LastFmSession:
        """
        Exchange an approved token for a session.

        Args:
            token: Token previously returned by get_token()

        Returns:
            LastFmSession with the session key and username
        """
        data = self.execute(
            'auth.getSession',
            params={'token': token},
            signed=True
        )
        session = parse_session(data)

        logger.info(
            "Last.fm session established",
            extra={'username': session.name}
        )

        return session

    def update_now_playing(self, now_playing: NowPlaying, session_key: str) -> Dict[str, Any]:
        """
        Tell Last.fm which track is playing right now.

        Args:
            now_playing: Track metadata; blank optional fields are not sent
            session_key: Key of an authorized session

        Returns:
            Decoded response body
        """
        params = now_playing.to_params()
        params['sk'] = session_key

        data = self.execute(
            'track.updateNowPlaying',
            params=params,
            signed=True,
            http_method='POST'
        )

        return parse_now_playing(data)

    def scrobble(self, record: Scrobble, session_key: str) -> ScrobbleResult:
        """
        Submit a single play.

        Args:
            record: Track metadata and Unix timestamp; the timestamp is sent as is
            session_key: Key of an authorized session

        Returns:
            ScrobbleResult with accepted and ignored counts
        """
        params = record.to_params()
        params['sk'] = session_key

        data = self.execute(
            'track.scrobble',
            params=params,
            signed=True,
            http_method='POST'
        )
        result = parse_scrobble_result(data)

        if result.ignored:
            logger.warning(
                "Last.fm ignored a scrobble",
                extra={'ignored_code': result.ignored_code}
            )

        return result

    def close(self):
        """Close the HTTP session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
