"""
Tests for the scrobbling JSON API and management commands.
"""
from io import StringIO
from unittest.mock import Mock, patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from music.lastfm.signer import sign


API_KEY = 'test_api_key_12345'
API_SECRET = 'test_api_secret_67890'

SESSION_PAYLOAD = {'session': {'name': 'testuser', 'key': 'sk-123', 'subscriber': 0}}
NOW_PLAYING_PAYLOAD = {'nowplaying': {'track': {'#text': 'Test Track'}}}
SCROBBLE_PAYLOAD = {
    'scrobbles': {
        '@attr': {'accepted': 1, 'ignored': 0},
        'scrobble': {'ignoredMessage': {'code': '0', '#text': ''}},
    }
}


def make_response(payload, status_code=200):
    """Build a fake requests response."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


@override_settings(LASTFM_API_KEY=API_KEY, LASTFM_API_SECRET=API_SECRET)
class LastFmAPITestCase(APITestCase):
    """Base class patching the HTTP session used by LastFmClient."""

    def setUp(self):
        patcher = patch('music.lastfm.client.requests.Session')
        self.mock_session_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_session = Mock()
        self.mock_session_class.return_value = self.mock_session

    def respond_get(self, payload, status_code=200):
        self.mock_session.get.return_value = make_response(payload, status_code)

    def respond_post(self, payload, status_code=200):
        self.mock_session.post.return_value = make_response(payload, status_code)

    def sent_post_data(self):
        _, kwargs = self.mock_session.post.call_args
        return kwargs['data']

    def connect(self):
        """Run the token exchange so the browser session holds a session key."""
        self.respond_get({'token': 'abc'})
        self.client.get(reverse('music:auth-token'))
        self.respond_get(SESSION_PAYLOAD)
        response = self.client.post(reverse('music:auth-session'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class AuthEndpointTests(LastFmAPITestCase):

    def test_token_returns_auth_url(self):
        self.respond_get({'token': 'abc'})

        response = self.client.get(reverse('music:auth-token'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {
            'token': 'abc',
            'authUrl': f'https://www.last.fm/api/auth/?api_key={API_KEY}&token=abc',
        })
        status_response = self.client.get(reverse('music:auth-status'))
        self.assertEqual(status_response.json()['state'], 'token_issued')

    def test_session_uses_pending_token(self):
        self.connect()

        _, kwargs = self.mock_session.get.call_args
        self.assertEqual(kwargs['params']['token'], 'abc')
        self.assertEqual(kwargs['params']['method'], 'auth.getSession')
        self.assertIn('api_sig', kwargs['params'])

        status_response = self.client.get(reverse('music:auth-status'))
        self.assertEqual(status_response.json(), {'state': 'authenticated', 'username': 'testuser'})

    def test_session_with_explicit_token(self):
        self.respond_get(SESSION_PAYLOAD)

        response = self.client.post(reverse('music:auth-session'), {'token': 'xyz'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'sessionKey': 'sk-123', 'username': 'testuser'})

    def test_session_without_token(self):
        response = self.client.post(reverse('music:auth-session'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error']['code'], 'AUTH_FLOW_ERROR')
        self.mock_session.get.assert_not_called()

    def test_session_with_unapproved_token(self):
        self.respond_get({'error': 14, 'message': 'Unauthorized Token - This token has not been authorized'})

        response = self.client.post(reverse('music:auth-session'), {'token': 'abc'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        body = response.json()
        self.assertEqual(body['error']['code'], 'LASTFM_AUTHENTICATION_ERROR')
        self.assertEqual(body['error']['details']['lastfm_code'], 14)

    def test_disconnect(self):
        self.connect()

        response = self.client.post(reverse('music:auth-disconnect'))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        status_response = self.client.get(reverse('music:auth-status'))
        self.assertEqual(status_response.json(), {'state': 'unauthenticated', 'username': None})

    @override_settings(LASTFM_API_SECRET='')
    def test_missing_configuration(self):
        response = self.client.get(reverse('music:auth-token'))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json()['error']['code'], 'CONFIGURATION_ERROR')
        self.mock_session.get.assert_not_called()


class ScrobbleEndpointTests(LastFmAPITestCase):

    def test_scrobble_requires_connection(self):
        response = self.client.post(
            reverse('music:scrobble'),
            {'artist': 'Test Artist', 'track': 'Test Track'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['error']['code'], 'NOT_CONNECTED')
        self.mock_session.post.assert_not_called()

    def test_scrobble_with_stored_session(self):
        self.connect()
        self.respond_post(SCROBBLE_PAYLOAD)

        response = self.client.post(
            reverse('music:scrobble'),
            {
                'artist': ' Test Artist ',
                'track': 'Test Track',
                'album': '',
                'duration': '   ',
                'timestamp': 1700000000.9,
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['accepted'], 1)

        sent = self.sent_post_data()
        self.assertEqual(sent['method'], 'track.scrobble')
        self.assertEqual(sent['artist'], 'Test Artist')
        self.assertEqual(sent['timestamp'], '1700000000')
        self.assertEqual(sent['sk'], 'sk-123')
        for optional in ('album', 'duration', 'trackNumber'):
            self.assertNotIn(optional, sent)
        unsigned = {k: v for k, v in sent.items() if k != 'api_sig'}
        self.assertEqual(sent['api_sig'], sign(unsigned, API_SECRET))

        history = self.client.get(reverse('music:history')).json()
        self.assertEqual(history['count'], 1)
        self.assertEqual(history['results'][0]['type'], 'scrobble')
        self.assertEqual(history['results'][0]['timestamp'], 1700000000)

    def test_scrobble_with_session_key_in_body(self):
        self.respond_post(SCROBBLE_PAYLOAD)

        response = self.client.post(
            reverse('music:scrobble'),
            {
                'artist': 'Test Artist',
                'track': 'Test Track',
                'album': 'Test Album',
                'trackNumber': '4',
                'duration': '200',
                'sessionKey': 'sk-body',
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sent = self.sent_post_data()
        self.assertEqual(sent['sk'], 'sk-body')
        self.assertEqual(sent['album'], 'Test Album')
        self.assertEqual(sent['trackNumber'], '4')
        self.assertEqual(sent['duration'], '200')
        self.assertTrue(sent['timestamp'].isdigit())

    def test_scrobble_missing_fields(self):
        response = self.client.post(
            reverse('music:scrobble'),
            {'artist': '  ', 'sessionKey': 'sk'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body['error']['code'], 'VALIDATION_ERROR')
        self.assertIn('artist', body['error']['details'])
        self.assertIn('track', body['error']['details'])

    def test_scrobble_invalid_timestamp(self):
        response = self.client.post(
            reverse('music:scrobble'),
            {'artist': 'A', 'track': 'T', 'timestamp': 'soon', 'sessionKey': 'sk'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_scrobble_remote_error(self):
        self.respond_post({'error': 6, 'message': 'Invalid parameters'})

        response = self.client.post(
            reverse('music:scrobble'),
            {'artist': 'A', 'track': 'T', 'sessionKey': 'sk'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        body = response.json()
        self.assertEqual(body['error']['code'], 'LASTFM_REMOTE_ERROR')
        self.assertEqual(body['error']['details']['lastfm_code'], 6)
        history = self.client.get(reverse('music:history')).json()
        self.assertEqual(history['count'], 0)

    def test_scrobble_with_invalid_session_key(self):
        self.connect()
        self.respond_post({'error': 9, 'message': 'Invalid session key'}, status_code=403)

        response = self.client.post(
            reverse('music:scrobble'),
            {'artist': 'A', 'track': 'T'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['error']['code'], 'LASTFM_AUTHENTICATION_ERROR')
        auth_status = self.client.get(reverse('music:auth-status')).json()
        self.assertEqual(auth_status['username'], 'testuser')

    def test_now_playing(self):
        self.connect()
        self.respond_post(NOW_PLAYING_PAYLOAD)

        response = self.client.post(
            reverse('music:now-playing'),
            {'artist': 'Test Artist', 'track': 'Test Track', 'album': 'Test Album'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'success': True, 'data': NOW_PLAYING_PAYLOAD})
        sent = self.sent_post_data()
        self.assertEqual(sent['method'], 'track.updateNowPlaying')
        self.assertEqual(sent['album'], 'Test Album')
        self.assertNotIn('duration', sent)
        self.assertNotIn('timestamp', sent)

        history = self.client.get(reverse('music:history')).json()
        self.assertEqual(history['results'][0]['type'], 'now_playing')

    def test_now_playing_transport_error(self):
        self.respond_post(None, status_code=500)

        response = self.client.post(
            reverse('music:now-playing'),
            {'artist': 'A', 'track': 'T', 'sessionKey': 'sk'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        body = response.json()
        self.assertEqual(body['error']['code'], 'LASTFM_TRANSPORT_ERROR')
        self.assertEqual(body['error']['details']['response_code'], 500)

    @override_settings(DEBUG=False)
    def test_unexpected_error_uses_error_envelope(self):
        self.mock_session.post.side_effect = RuntimeError('boom')

        response = self.client.post(
            reverse('music:now-playing'),
            {'artist': 'A', 'track': 'T', 'sessionKey': 'sk'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        body = response.json()
        self.assertEqual(body['error']['code'], 'INTERNAL_SERVER_ERROR')
        self.assertEqual(body['error']['details'], {})


class HistoryAndThemeEndpointTests(LastFmAPITestCase):

    def test_clear_history(self):
        self.respond_post(SCROBBLE_PAYLOAD)
        self.client.post(
            reverse('music:scrobble'),
            {'artist': 'A', 'track': 'T', 'sessionKey': 'sk'},
            format='json'
        )

        response = self.client.delete(reverse('music:history'))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(reverse('music:history')).json()['count'], 0)

    def test_theme_defaults(self):
        response = self.client.get(reverse('music:theme'))

        self.assertEqual(response.json(), {'seedColor': '#6750a4', 'mode': 'light'})

    def test_theme_update(self):
        response = self.client.put(
            reverse('music:theme'),
            {'seedColor': '#0af', 'mode': 'dark'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'seedColor': '#00aaff', 'mode': 'dark'})
        self.assertEqual(
            self.client.get(reverse('music:theme')).json(),
            {'seedColor': '#00aaff', 'mode': 'dark'}
        )

    def test_theme_invalid_mode(self):
        response = self.client.put(reverse('music:theme'), {'mode': 'sepia'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(LASTFM_API_KEY=API_KEY, LASTFM_API_SECRET=API_SECRET)
class ManagementCommandTests(TestCase):

    def setUp(self):
        patcher = patch('music.lastfm.client.requests.Session')
        self.mock_session_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_session = Mock()
        self.mock_session_class.return_value = self.mock_session

    def test_lastfm_connect_with_token(self):
        self.mock_session.get.return_value = make_response(SESSION_PAYLOAD)
        out = StringIO()

        call_command('lastfm_connect', '--token', 'abc', stdout=out)

        self.assertIn('Connected as testuser', out.getvalue())
        self.assertIn('sk-123', out.getvalue())

    def test_lastfm_connect_no_input(self):
        self.mock_session.get.return_value = make_response({'token': 'abc'})
        out = StringIO()

        call_command('lastfm_connect', '--no-input', stdout=out)

        self.assertIn(f'https://www.last.fm/api/auth/?api_key={API_KEY}&token=abc', out.getvalue())
        self.assertIn('--token abc', out.getvalue())

    def test_lastfm_connect_failure(self):
        self.mock_session.get.return_value = make_response({'error': 15, 'message': 'Token has expired'})

        with self.assertRaises(CommandError):
            call_command('lastfm_connect', '--token', 'abc', stdout=StringIO())

    def test_scrobble_command(self):
        self.mock_session.post.return_value = make_response(SCROBBLE_PAYLOAD)
        out = StringIO()

        call_command(
            'scrobble', 'Test Artist', 'Test Track',
            '--session-key', 'sk-123', '--timestamp', '1700000000',
            stdout=out
        )

        self.assertIn('Track scrobbled', out.getvalue())
        _, kwargs = self.mock_session.post.call_args
        self.assertEqual(kwargs['data']['timestamp'], '1700000000')
        self.assertNotIn('album', kwargs['data'])

    def test_scrobble_command_now_playing(self):
        self.mock_session.post.return_value = make_response(NOW_PLAYING_PAYLOAD)
        out = StringIO()

        call_command(
            'scrobble', 'Test Artist', 'Test Track',
            '--session-key', 'sk-123', '--now-playing',
            stdout=out
        )

        self.assertIn('Now playing updated', out.getvalue())
        _, kwargs = self.mock_session.post.call_args
        self.assertEqual(kwargs['data']['method'], 'track.updateNowPlaying')

    @override_settings(LASTFM_API_KEY='')
    def test_scrobble_command_without_configuration(self):
        with self.assertRaises(CommandError):
            call_command(
                'scrobble', 'A', 'T', '--session-key', 'sk',
                stdout=StringIO()
            )
