"""
Tests for the per-browser client state store.
"""
from unittest.mock import patch

from django.test import TestCase

from music.lastfm.types import LastFmSession
from music.store import (
    DEFAULT_SEED_COLOR,
    HISTORY_KEY,
    HISTORY_LIMIT,
    PENDING_TOKEN_KEY,
    SESSION_KEY,
    THEME_KEY,
    ClientStore,
    normalize_color,
)


class FakeSession(dict):
    """Dict standing in for a Django session."""
    modified = False


class ClientStoreLoadTest(TestCase):

    def test_load_empty(self):
        store = ClientStore.load(FakeSession())

        self.assertIsNone(store.session)
        self.assertIsNone(store.pending_token)
        self.assertEqual(store.history, [])
        self.assertEqual(store.theme, {'seed_color': DEFAULT_SEED_COLOR, 'mode': 'light'})
        self.assertFalse(store.is_connected)

    def test_load_valid_state(self):
        backend = FakeSession({
            SESSION_KEY: {'key': 'sk', 'name': 'testuser', 'subscriber': False},
            PENDING_TOKEN_KEY: 'abc',
            THEME_KEY: {'seed_color': '#112233', 'mode': 'dark'},
        })

        store = ClientStore.load(backend)

        self.assertEqual(store.session, LastFmSession(key='sk', name='testuser'))
        self.assertEqual(store.pending_token, 'abc')
        self.assertEqual(store.theme, {'seed_color': '#112233', 'mode': 'dark'})

    def test_malformed_entries_are_dropped(self):
        backend = FakeSession({
            SESSION_KEY: {'key': '', 'name': 'testuser'},
            PENDING_TOKEN_KEY: 42,
            HISTORY_KEY: [
                {'id': '1', 'type': 'scrobble', 'artist': 'A', 'track': 'T',
                 'timestamp': 1700000000, 'created_at': 1700000001},
                {'id': '2', 'type': 'unknown', 'artist': 'A', 'track': 'T',
                 'timestamp': 1, 'created_at': 1},
                {'id': '3', 'type': 'scrobble', 'artist': 'A', 'track': 'T',
                 'timestamp': 'yesterday', 'created_at': 1},
                'garbage',
            ],
            THEME_KEY: {'seed_color': '#112233', 'mode': 'sepia'},
        })

        store = ClientStore.load(backend)

        self.assertIsNone(store.session)
        self.assertIsNone(store.pending_token)
        self.assertEqual([entry['id'] for entry in store.history], ['1'])
        self.assertEqual(store.theme['mode'], 'light')

    def test_history_not_a_list(self):
        store = ClientStore.load(FakeSession({HISTORY_KEY: {'id': '1'}}))

        self.assertEqual(store.history, [])


class ClientStoreSaveTest(TestCase):

    def test_connect_and_save(self):
        backend = FakeSession({PENDING_TOKEN_KEY: 'abc'})
        store = ClientStore.load(backend)

        store.connect(LastFmSession(key='sk', name='testuser', subscriber=True))
        store.save()

        self.assertEqual(backend[SESSION_KEY], {'key': 'sk', 'name': 'testuser', 'subscriber': True})
        self.assertNotIn(PENDING_TOKEN_KEY, backend)
        self.assertTrue(backend.modified)

    def test_disconnect_removes_session(self):
        backend = FakeSession({SESSION_KEY: {'key': 'sk', 'name': 'testuser'}})
        store = ClientStore.load(backend)

        store.disconnect()
        store.save()

        self.assertNotIn(SESSION_KEY, backend)
        self.assertIsNone(ClientStore.load(backend).session)

    def test_round_trip(self):
        backend = FakeSession()
        store = ClientStore.load(backend)
        store.connect(LastFmSession(key='sk', name='testuser'))
        store.add_history('scrobble', 'A', 'T', album='Al', timestamp=1700000000)
        store.set_theme(seed_color='#abc', mode='dark')
        store.save()

        reloaded = ClientStore.load(backend)

        self.assertEqual(reloaded.session, store.session)
        self.assertEqual(reloaded.history, store.history)
        self.assertEqual(reloaded.theme, {'seed_color': '#aabbcc', 'mode': 'dark'})


class ClientStoreHistoryTest(TestCase):

    @patch('music.store.time.time', return_value=1700000100.5)
    def test_add_history_newest_first(self, mock_time):
        store = ClientStore(FakeSession())

        store.add_history('scrobble', 'A', 'First', timestamp=1700000000)
        entry = store.add_history('now_playing', 'A', 'Second', album='')

        self.assertEqual([e['track'] for e in store.history], ['Second', 'First'])
        self.assertEqual(entry['timestamp'], 1700000100)
        self.assertEqual(entry['created_at'], 1700000100)
        self.assertIsNone(entry['album'])

    def test_history_is_capped(self):
        store = ClientStore(FakeSession())

        for i in range(HISTORY_LIMIT + 5):
            store.add_history('scrobble', 'A', f'Track {i}', timestamp=i)

        self.assertEqual(len(store.history), HISTORY_LIMIT)
        self.assertEqual(store.history[0]['track'], f'Track {HISTORY_LIMIT + 4}')

    def test_unknown_entry_type(self):
        store = ClientStore(FakeSession())

        with self.assertRaises(ValueError):
            store.add_history('love', 'A', 'T')

    def test_clear_history(self):
        store = ClientStore(FakeSession())
        store.add_history('scrobble', 'A', 'T')

        store.clear_history()

        self.assertEqual(store.history, [])


class ThemeTest(TestCase):

    def test_normalize_color(self):
        self.assertEqual(normalize_color('#6750A4'), '#6750A4')
        self.assertEqual(normalize_color('#abc'), '#aabbcc')
        self.assertEqual(normalize_color('red'), DEFAULT_SEED_COLOR)
        self.assertEqual(normalize_color(None), DEFAULT_SEED_COLOR)

    def test_set_theme_rejects_unknown_mode(self):
        store = ClientStore(FakeSession())

        with self.assertRaises(ValueError):
            store.set_theme(mode='sepia')

    def test_set_theme_partial_update(self):
        store = ClientStore(FakeSession())

        store.set_theme(mode='dark')

        self.assertEqual(store.theme, {'seed_color': DEFAULT_SEED_COLOR, 'mode': 'dark'})
