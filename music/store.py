"""
Per-browser client state: Last.fm session, pending token, play history
and theme preference.

State lives in the Django session, which is kept in a signed cookie, so it
stays on the user's device. Everything read back is validated and malformed
entries are dropped.
"""
import logging
import re
import time
import uuid
from typing import Any, Dict, List, MutableMapping, Optional

from music.lastfm.types import LastFmSession


logger = logging.getLogger('music.store')

SESSION_KEY = 'aurora_lastfm_session'
PENDING_TOKEN_KEY = 'aurora_lastfm_pending_token'
HISTORY_KEY = 'aurora_scrobble_history'
THEME_KEY = 'aurora_theme'

HISTORY_LIMIT = 50
HISTORY_TYPES = ('scrobble', 'now_playing')

DEFAULT_SEED_COLOR = '#6750a4'
THEME_MODES = ('light', 'dark')

_HEX6 = re.compile(r'^#[0-9A-Fa-f]{6}$')
_HEX3 = re.compile(r'^#[0-9A-Fa-f]{3}$')


def normalize_color(color: Any) -> str:
    """Return a #rrggbb colour, expanding #rgb and falling back to the default."""
    if isinstance(color, str):
        if _HEX6.match(color):
            return color
        if _HEX3.match(color):
            return '#' + ''.join(char * 2 for char in color[1:])
    return DEFAULT_SEED_COLOR


def _parse_session(raw: Any) -> Optional[LastFmSession]:
    if not isinstance(raw, dict):
        return None
    key, name = raw.get('key'), raw.get('name')
    if not isinstance(key, str) or not key or not isinstance(name, str) or not name:
        return None
    return LastFmSession(key=key, name=name, subscriber=bool(raw.get('subscriber', False)))


def _parse_history_entry(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    if raw.get('type') not in HISTORY_TYPES:
        return None
    for key in ('id', 'artist', 'track'):
        if not isinstance(raw.get(key), str) or not raw[key]:
            return None
    for key in ('timestamp', 'created_at'):
        if not isinstance(raw.get(key), int) or isinstance(raw[key], bool):
            return None
    album = raw.get('album')
    return {
        'id': raw['id'],
        'type': raw['type'],
        'artist': raw['artist'],
        'track': raw['track'],
        'album': album if isinstance(album, str) and album else None,
        'timestamp': raw['timestamp'],
        'created_at': raw['created_at'],
    }


class ClientStore:
    """
    Explicit store for the state a browser keeps between requests.

    Use load() to read from a session mapping, mutate through the methods
    below, and call save() to write the state back.
    """

    def __init__(self, backend: MutableMapping, session=None, pending_token=None,
                 history=None, theme=None):
        self.backend = backend
        self.session = session
        self.pending_token = pending_token
        self.history: List[Dict[str, Any]] = history or []
        self.theme: Dict[str, str] = theme or {'seed_color': DEFAULT_SEED_COLOR, 'mode': 'light'}

    @classmethod
    def load(cls, backend: MutableMapping) -> 'ClientStore':
        session = _parse_session(backend.get(SESSION_KEY))
        if backend.get(SESSION_KEY) is not None and session is None:
            logger.warning("Dropping malformed stored Last.fm session")

        pending_token = backend.get(PENDING_TOKEN_KEY)
        if not isinstance(pending_token, str) or not pending_token:
            pending_token = None

        raw_history = backend.get(HISTORY_KEY)
        history = []
        if isinstance(raw_history, list):
            for raw in raw_history:
                entry = _parse_history_entry(raw)
                if entry is not None:
                    history.append(entry)

        raw_theme = backend.get(THEME_KEY)
        theme = None
        if isinstance(raw_theme, dict) and raw_theme.get('mode') in THEME_MODES:
            theme = {
                'seed_color': normalize_color(raw_theme.get('seed_color')),
                'mode': raw_theme['mode'],
            }

        return cls(
            backend,
            session=session,
            pending_token=pending_token,
            history=history[:HISTORY_LIMIT],
            theme=theme,
        )

    def save(self):
        if self.session is not None:
            self.backend[SESSION_KEY] = {
                'key': self.session.key,
                'name': self.session.name,
                'subscriber': self.session.subscriber,
            }
        else:
            self.backend.pop(SESSION_KEY, None)

        if self.pending_token:
            self.backend[PENDING_TOKEN_KEY] = self.pending_token
        else:
            self.backend.pop(PENDING_TOKEN_KEY, None)

        self.backend[HISTORY_KEY] = self.history
        self.backend[THEME_KEY] = self.theme

        # Django sessions only notice top-level assignments.
        if hasattr(self.backend, 'modified'):
            self.backend.modified = True

    @property
    def is_connected(self) -> bool:
        return self.session is not None

    def connect(self, session: LastFmSession):
        self.session = session
        self.pending_token = None

    def disconnect(self):
        self.session = None
        self.pending_token = None

    def add_history(self, entry_type: str, artist: str, track: str,
                    album: Optional[str] = None, timestamp: Optional[int] = None) -> Dict[str, Any]:
        """Record a submitted play, newest first."""
        if entry_type not in HISTORY_TYPES:
            raise ValueError(f"Unknown history entry type: {entry_type}")

        now = int(time.time())
        entry = {
            'id': uuid.uuid4().hex,
            'type': entry_type,
            'artist': artist,
            'track': track,
            'album': album or None,
            'timestamp': int(timestamp) if timestamp is not None else now,
            'created_at': now,
        }
        self.history = [entry] + self.history[:HISTORY_LIMIT - 1]
        return entry

    def clear_history(self):
        self.history = []

    def set_theme(self, seed_color: Optional[str] = None, mode: Optional[str] = None) -> Dict[str, str]:
        if seed_color is not None:
            self.theme['seed_color'] = normalize_color(seed_color)
        if mode is not None:
            if mode not in THEME_MODES:
                raise ValueError(f"Unknown theme mode: {mode}")
            self.theme['mode'] = mode
        return self.theme
