"""
Typed records exchanged with the Last.fm API and parsers for its responses.

Parsers fail closed: any response that does not have the documented shape
raises LastFmInvalidResponseError instead of leaking a partial result.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .exceptions import LastFmInvalidResponseError


@dataclass(frozen=True)
class LastFmSession:
    """An authorized Last.fm session."""

    key: str
    name: str
    subscriber: bool = False


@dataclass(frozen=True)
class RequestToken:
    """A request token together with the page the user must approve it on."""

    token: str
    auth_url: str


@dataclass(frozen=True)
class NowPlaying:
    """Track metadata for a now playing update."""

    artist: str
    track: str
    album: Optional[str] = None
    duration: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params = {'artist': self.artist, 'track': self.track}
        _add_optional(params, 'album', self.album)
        _add_optional(params, 'duration', self.duration)
        return params


@dataclass(frozen=True)
class Scrobble:
    """A single play to be submitted with its Unix timestamp."""

    artist: str
    track: str
    timestamp: int
    album: Optional[str] = None
    track_number: Optional[str] = None
    duration: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params = {
            'artist': self.artist,
            'track': self.track,
            'timestamp': str(int(self.timestamp)),
        }
        _add_optional(params, 'album', self.album)
        _add_optional(params, 'trackNumber', self.track_number)
        _add_optional(params, 'duration', self.duration)
        return params


@dataclass(frozen=True)
class ScrobbleResult:
    """Outcome of a track.scrobble call."""

    accepted: int
    ignored: int
    ignored_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def _add_optional(params: Dict[str, str], key: str, value: Any):
    if value is None:
        return
    value = str(value).strip()
    if value:
        params[key] = value


def _require_dict(data: Any, key: str) -> Dict[str, Any]:
    value = data.get(key) if isinstance(data, dict) else None
    if not isinstance(value, dict):
        raise LastFmInvalidResponseError(
            f"Last.fm response is missing '{key}'",
            response=data
        )
    return value


def _require_str(data: Dict[str, Any], key: str, context: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise LastFmInvalidResponseError(
            f"Last.fm {context} response is missing '{key}'",
            response=data
        )
    return value


def _to_int(value: Any, context: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise LastFmInvalidResponseError(
            f"Last.fm {context} response has a non-numeric value: {value!r}"
        ) from e


def parse_token(data: Dict[str, Any]) -> str:
    """Extract the request token from an auth.getToken response."""
    return _require_str(data, 'token', 'auth.getToken')


def parse_session(data: Dict[str, Any]) -> LastFmSession:
    """Build a LastFmSession from an auth.getSession response."""
    session = _require_dict(data, 'session')
    subscriber = session.get('subscriber', 0)

    return LastFmSession(
        key=_require_str(session, 'key', 'auth.getSession'),
        name=_require_str(session, 'name', 'auth.getSession'),
        subscriber=bool(_to_int(subscriber, 'auth.getSession')),
    )


def parse_now_playing(data: Dict[str, Any]) -> Dict[str, Any]:
    """Check an updateNowPlaying response and return it unchanged."""
    _require_dict(data, 'nowplaying')
    return data


def parse_scrobble_result(data: Dict[str, Any]) -> ScrobbleResult:
    """Build a ScrobbleResult from a track.scrobble response."""
    scrobbles = _require_dict(data, 'scrobbles')
    attr = _require_dict(scrobbles, '@attr')

    ignored_code = None
    entries = scrobbles.get('scrobble')
    if isinstance(entries, dict):
        entries = [entries]
    if isinstance(entries, list):
        for entry in entries:
            message = entry.get('ignoredMessage') if isinstance(entry, dict) else None
            code = message.get('code') if isinstance(message, dict) else None
            if code not in (None, '0', 0):
                ignored_code = str(code)
                break

    return ScrobbleResult(
        accepted=_to_int(attr.get('accepted'), 'track.scrobble'),
        ignored=_to_int(attr.get('ignored'), 'track.scrobble'),
        ignored_code=ignored_code,
        raw=data,
    )
