"""
Token based authorization flow for Last.fm.

The flow has three states. A request token is issued, the user approves it
on last.fm, and the approved token is exchanged for a session key.
"""
import enum
import logging
from typing import Optional

from .client import LastFmClient
from .exceptions import LastFmAuthFlowError, LastFmRemoteError
from .types import LastFmSession, RequestToken


logger = logging.getLogger('music.lastfm')

AUTH_PAGE_URL = "https://www.last.fm/api/auth/"


class AuthState(enum.Enum):
    UNAUTHENTICATED = 'unauthenticated'
    TOKEN_ISSUED = 'token_issued'
    AUTHENTICATED = 'authenticated'


def build_auth_url(api_key: str, token: str) -> str:
    """Page where the user approves a request token."""
    return f"{AUTH_PAGE_URL}?api_key={api_key}&token={token}"


class AuthFlow:
    """
    Drives the token exchange against a LastFmClient.

    The flow keeps no storage of its own. Callers restore it from a pending
    token or a session and persist whatever it holds afterwards.
    """

    def __init__(
        self,
        client: LastFmClient,
        pending_token: Optional[str] = None,
        session: Optional[LastFmSession] = None
    ):
        self.client = client
        self.pending_token = pending_token
        self.session = session

    @property
    def state(self) -> AuthState:
        if self.session is not None:
            return AuthState.AUTHENTICATED
        if self.pending_token:
            return AuthState.TOKEN_ISSUED
        return AuthState.UNAUTHENTICATED

    def request_token(self) -> RequestToken:
        """
        Obtain a request token and the URL where the user approves it.

        Returns:
            RequestToken with token and auth_url
        """
        token = self.client.get_token()
        self.pending_token = token

        logger.info("Last.fm request token issued")

        return RequestToken(
            token=token,
            auth_url=build_auth_url(self.client.config.api_key, token),
        )

    def complete(self, token: Optional[str] = None) -> LastFmSession:
        """
        Exchange the approved token for a session.

        Args:
            token: Token to exchange; defaults to the pending one

        Returns:
            The new LastFmSession

        Raises:
            LastFmAuthFlowError: If no token was issued
            LastFmRemoteError: If the token was not approved or has expired
        """
        token = token or self.pending_token
        if not token:
            raise LastFmAuthFlowError("Start authentication first")

        try:
            session = self.client.get_session(token)
        except LastFmRemoteError as e:
            logger.warning(
                "Last.fm token exchange failed",
                extra={'lastfm_code': e.code}
            )
            self.pending_token = token
            raise

        self.session = session
        self.pending_token = None
        return session

    def disconnect(self):
        """Forget the session and any pending token. Nothing is sent to Last.fm."""
        if self.session is not None:
            logger.info(
                "Disconnected from Last.fm",
                extra={'username': self.session.name}
            )
        self.session = None
        self.pending_token = None
