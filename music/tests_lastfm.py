"""
Tests for Last.fm API integration: configuration, signing, client and auth flow.
"""
import hashlib
from unittest.mock import Mock, patch

import requests
from django.test import TestCase, override_settings

from music.lastfm.auth import AuthFlow, AuthState, build_auth_url
from music.lastfm.client import LastFmClient
from music.lastfm.config import LastFmConfig, get_lastfm_config
from music.lastfm.exceptions import (
    LastFmAPIError,
    LastFmAuthenticationError,
    LastFmAuthFlowError,
    LastFmConfigurationError,
    LastFmConnectionError,
    LastFmInvalidResponseError,
    LastFmRemoteError,
    LastFmTransportError,
)
from music.lastfm.signer import sign
from music.lastfm.types import (
    LastFmSession,
    NowPlaying,
    Scrobble,
    parse_scrobble_result,
    parse_session,
)


def make_response(payload, status_code=200):
    """Build a fake requests response."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


SCROBBLE_ACCEPTED = {
    'scrobbles': {
        '@attr': {'accepted': 1, 'ignored': 0},
        'scrobble': {
            'artist': {'#text': 'Test Artist', 'corrected': '0'},
            'track': {'#text': 'Test Track', 'corrected': '0'},
            'ignoredMessage': {'code': '0', '#text': ''},
            'timestamp': '1700000000',
        },
    }
}


class LastFmConfigTest(TestCase):
    """Test Last.fm configuration management."""

    @override_settings(
        LASTFM_API_KEY='test_api_key_12345',
        LASTFM_API_SECRET='test_api_secret_67890',
        LASTFM_REQUEST_TIMEOUT=15.0
    )
    def test_config_properly_configured(self):
        """Test configuration with all required settings."""
        config = LastFmConfig()

        self.assertEqual(config.api_key, 'test_api_key_12345')
        self.assertEqual(config.api_secret, 'test_api_secret_67890')
        self.assertEqual(config.request_timeout, 15.0)
        self.assertTrue(config.is_configured())
        self.assertEqual(config.validate(), (True, None))

    @override_settings(LASTFM_API_KEY='', LASTFM_API_SECRET='')
    def test_config_not_configured(self):
        """Test configuration with missing settings."""
        config = LastFmConfig()

        self.assertFalse(config.is_configured())
        is_valid, error_message = config.validate()
        self.assertFalse(is_valid)
        self.assertIn('API key', error_message)

    @override_settings(LASTFM_API_KEY='test_api_key_12345', LASTFM_API_SECRET='')
    def test_require_names_missing_secret(self):
        """Test require() reports the missing shared secret."""
        config = get_lastfm_config()

        with self.assertRaises(LastFmConfigurationError) as context:
            config.require()

        self.assertEqual(context.exception.setting_name, 'LASTFM_API_SECRET')
        self.assertEqual(context.exception.error_code, 'CONFIGURATION_ERROR')

    @override_settings(LASTFM_API_KEY='', LASTFM_API_SECRET='secret')
    def test_require_names_missing_key(self):
        config = LastFmConfig()

        with self.assertRaises(LastFmConfigurationError) as context:
            config.require()

        self.assertEqual(context.exception.setting_name, 'LASTFM_API_KEY')

    @override_settings(
        LASTFM_API_KEY='test_api_key_12345',
        LASTFM_API_SECRET='test_api_secret_67890',
        LASTFM_REQUEST_TIMEOUT=0
    )
    def test_require_rejects_non_positive_timeout(self):
        config = LastFmConfig()

        with self.assertRaises(LastFmConfigurationError) as context:
            config.require()

        self.assertEqual(context.exception.setting_name, 'LASTFM_REQUEST_TIMEOUT')
        self.assertEqual(context.exception.status_code, 500)

    @override_settings(LASTFM_API_KEY='test_api_key_12345')
    def test_masked_api_key(self):
        """Test API key masking for display."""
        config = LastFmConfig()

        masked = config.get_masked_api_key()

        self.assertIn('***', masked)
        self.assertNotEqual(masked, config.api_key)
        self.assertTrue(masked.startswith('tes'))
        self.assertTrue(masked.endswith('345'))

    @override_settings(LASTFM_API_KEY='')
    def test_masked_api_key_empty(self):
        """Test API key masking when not configured."""
        config = LastFmConfig()

        self.assertEqual(config.get_masked_api_key(), "Not configured")

    @override_settings(
        LASTFM_API_KEY='test_api_key_12345',
        LASTFM_API_SECRET='test_api_secret_67890'
    )
    def test_get_status(self):
        """Test configuration status reporting never exposes the secret."""
        config = LastFmConfig()

        status = config.get_status()

        self.assertTrue(status['configured'])
        self.assertTrue(status['has_api_key'])
        self.assertTrue(status['has_api_secret'])
        self.assertIn('***', status['masked_api_key'])
        self.assertNotIn('test_api_secret_67890', str(status))


class SignerTest(TestCase):
    """Test API signature building."""

    def test_matches_documented_scheme(self):
        params = {
            'method': 'auth.getSession',
            'api_key': 'KEY',
            'token': 'TOKEN',
        }
        expected = hashlib.md5(
            'api_keyKEYmethodauth.getSessiontokenTOKENSECRET'.encode('utf-8')
        ).hexdigest()

        self.assertEqual(sign(params, 'SECRET'), expected)

    def test_invariant_under_reordering(self):
        forward = {'artist': 'A', 'track': 'T', 'timestamp': '1', 'sk': 'S'}
        backward = dict(reversed(list(forward.items())))

        self.assertEqual(sign(forward, 'secret'), sign(backward, 'secret'))

    def test_deterministic(self):
        params = {'method': 'track.scrobble', 'artist': 'Björk'}

        first = sign(params, 'secret')

        self.assertEqual(first, sign(params, 'secret'))
        self.assertEqual(len(first), 32)
        self.assertEqual(first, first.lower())

    def test_sorts_by_code_point(self):
        # Uppercase sorts before lowercase.
        params = {'b': '2', 'B': '1', 'a': '3'}
        expected = hashlib.md5('B1a3b2s'.encode('utf-8')).hexdigest()

        self.assertEqual(sign(params, 's'), expected)

    def test_does_not_mutate_input(self):
        params = {'method': 'auth.getToken'}

        sign(params, 'secret')

        self.assertEqual(params, {'method': 'auth.getToken'})


class LastFmClientTest(TestCase):
    """Test Last.fm API client."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = LastFmConfig()
        self.config._api_key = 'test_api_key_12345'
        self.config._api_secret = 'test_api_secret_67890'
        self.config._request_timeout = None

    def _client_with(self, mock_session_class, response, http_method='get'):
        mock_session = Mock()
        getattr(mock_session, http_method).return_value = response
        mock_session_class.return_value = mock_session
        return LastFmClient(self.config), mock_session

    def test_client_initialization(self):
        """Test client initialization."""
        client = LastFmClient(self.config)

        self.assertEqual(client.config, self.config)
        self.assertIsNone(client._session)

    def test_client_context_manager(self):
        """Test client can be used as context manager."""
        with LastFmClient(self.config) as client:
            self.assertIsNotNone(client)
            self.assertEqual(client.config, self.config)

    @patch('music.lastfm.client.requests.Session')
    def test_close_releases_session(self, mock_session_class):
        client = LastFmClient(self.config)
        session = client._get_session()

        client.close()

        session.close.assert_called_once()
        self.assertIsNone(client._session)

    def test_build_params_unsigned(self):
        client = LastFmClient(self.config)

        params = client.build_params('auth.getToken')

        self.assertEqual(params, {
            'api_key': 'test_api_key_12345',
            'format': 'json',
            'method': 'auth.getToken',
        })

    def test_build_params_signed_covers_exact_set(self):
        client = LastFmClient(self.config)

        params = client.build_params('auth.getSession', {'token': 'abc'}, signed=True)

        unsigned = {k: v for k, v in params.items() if k != 'api_sig'}
        self.assertEqual(params['api_sig'], sign(unsigned, 'test_api_secret_67890'))
        self.assertEqual(set(unsigned), {'api_key', 'format', 'method', 'token'})

    @patch('music.lastfm.client.requests.Session')
    def test_execute_success(self, mock_session_class):
        client, mock_session = self._client_with(mock_session_class, make_response({'token': 'abc'}))

        result = client.execute('auth.getToken')

        self.assertEqual(result, {'token': 'abc'})
        _, kwargs = mock_session.get.call_args
        self.assertEqual(kwargs['params']['method'], 'auth.getToken')
        self.assertNotIn('api_sig', kwargs['params'])
        self.assertIsNone(kwargs['timeout'])

    @patch('music.lastfm.client.requests.Session')
    def test_execute_passes_configured_timeout(self, mock_session_class):
        self.config._request_timeout = 10.0
        client, mock_session = self._client_with(mock_session_class, make_response({'token': 'abc'}))

        client.execute('auth.getToken')

        _, kwargs = mock_session.get.call_args
        self.assertEqual(kwargs['timeout'], 10.0)

    @patch('music.lastfm.client.requests.Session')
    def test_error_in_success_body_raises_remote_error(self, mock_session_class):
        """An HTTP 200 carrying an error field is not a success."""
        client, _ = self._client_with(
            mock_session_class,
            make_response({'error': 6, 'message': 'Invalid parameters'})
        )

        with self.assertRaises(LastFmRemoteError) as context:
            client.execute('track.scrobble')

        self.assertNotIsInstance(context.exception, LastFmAuthenticationError)
        self.assertEqual(context.exception.code, 6)
        self.assertEqual(context.exception.remote_message, 'Invalid parameters')
        self.assertIn('Invalid parameters', str(context.exception))

    @patch('music.lastfm.client.requests.Session')
    def test_error_without_message_uses_default(self, mock_session_class):
        client, _ = self._client_with(mock_session_class, make_response({'error': '8'}))

        with self.assertRaises(LastFmRemoteError) as context:
            client.execute('auth.getToken')

        self.assertEqual(context.exception.code, 8)
        self.assertEqual(context.exception.remote_message, 'Unknown Last.fm error')

    @patch('music.lastfm.client.requests.Session')
    def test_authentication_error_codes(self, mock_session_class):
        """Test authentication error handling."""
        for code in (4, 9, 14, 15, 26):
            client, _ = self._client_with(
                mock_session_class,
                make_response({'error': code, 'message': 'Authentication Failed'})
            )

            with self.assertRaises(LastFmAuthenticationError):
                client.execute('auth.getSession', {'token': 'abc'}, signed=True)

    @patch('music.lastfm.client.requests.Session')
    def test_http_error_raises_transport_error(self, mock_session_class):
        client, _ = self._client_with(mock_session_class, make_response(None, status_code=500))

        with self.assertRaises(LastFmTransportError) as context:
            client.execute('auth.getToken')

        self.assertNotIsInstance(context.exception, LastFmRemoteError)
        self.assertEqual(context.exception.response_code, 500)

    @patch('music.lastfm.client.requests.Session')
    def test_http_error_with_error_body_raises_remote_error(self, mock_session_class):
        """Last.fm answers an invalid session key with a 403 and an error body."""
        client, _ = self._client_with(
            mock_session_class,
            make_response({'error': 9, 'message': 'Invalid session key'}, status_code=403),
            http_method='post'
        )

        with self.assertRaises(LastFmAuthenticationError) as context:
            client.execute('track.scrobble', {'sk': 'stale'}, signed=True, http_method='POST')

        self.assertEqual(context.exception.code, 9)
        self.assertEqual(context.exception.status_code, 401)

    @patch('music.lastfm.client.requests.Session')
    def test_http_error_with_non_json_body(self, mock_session_class):
        response = make_response(None, status_code=503)
        response.json.side_effect = ValueError('not json')
        client, _ = self._client_with(mock_session_class, response)

        with self.assertRaises(LastFmTransportError) as context:
            client.execute('auth.getToken')

        self.assertEqual(context.exception.response_code, 503)

    @patch('music.lastfm.client.requests.Session')
    def test_connection_error(self, mock_session_class):
        mock_session = Mock()
        mock_session.get.side_effect = requests.exceptions.ConnectionError('refused')
        mock_session_class.return_value = mock_session

        client = LastFmClient(self.config)

        with self.assertRaises(LastFmConnectionError) as context:
            client.execute('auth.getToken')

        self.assertIsInstance(context.exception, LastFmTransportError)

    @patch('music.lastfm.client.requests.Session')
    def test_invalid_json(self, mock_session_class):
        response = make_response(None)
        response.json.side_effect = ValueError('not json')
        client, _ = self._client_with(mock_session_class, response)

        with self.assertRaises(LastFmInvalidResponseError):
            client.execute('auth.getToken')

    @patch('music.lastfm.client.requests.Session')
    def test_non_object_body(self, mock_session_class):
        client, _ = self._client_with(mock_session_class, make_response(['token']))

        with self.assertRaises(LastFmInvalidResponseError):
            client.execute('auth.getToken')

    @patch('music.lastfm.client.requests.Session')
    def test_missing_credentials_fail_before_any_request(self, mock_session_class):
        self.config._api_secret = ''
        client, mock_session = self._client_with(mock_session_class, make_response({'token': 'abc'}))

        with self.assertRaises(LastFmConfigurationError):
            client.get_token()

        mock_session.get.assert_not_called()

    @patch('music.lastfm.client.requests.Session')
    def test_get_token(self, mock_session_class):
        client, _ = self._client_with(mock_session_class, make_response({'token': 'abc'}))

        self.assertEqual(client.get_token(), 'abc')

    @patch('music.lastfm.client.requests.Session')
    def test_get_token_malformed(self, mock_session_class):
        client, _ = self._client_with(mock_session_class, make_response({'token': 42}))

        with self.assertRaises(LastFmInvalidResponseError):
            client.get_token()

    @patch('music.lastfm.client.requests.Session')
    def test_get_session_is_signed_get(self, mock_session_class):
        client, mock_session = self._client_with(
            mock_session_class,
            make_response({'session': {'name': 'testuser', 'key': 'sk-123', 'subscriber': 0}})
        )

        session = client.get_session('abc')

        self.assertEqual(session, LastFmSession(key='sk-123', name='testuser', subscriber=False))
        _, kwargs = mock_session.get.call_args
        sent = kwargs['params']
        self.assertEqual(sent['token'], 'abc')
        self.assertEqual(sent['method'], 'auth.getSession')
        unsigned = {k: v for k, v in sent.items() if k != 'api_sig'}
        self.assertEqual(sent['api_sig'], sign(unsigned, 'test_api_secret_67890'))

    @patch('music.lastfm.client.requests.Session')
    def test_scrobble_posts_form_body(self, mock_session_class):
        client, mock_session = self._client_with(
            mock_session_class, make_response(SCROBBLE_ACCEPTED), http_method='post'
        )

        result = client.scrobble(
            Scrobble(artist='Test Artist', track='Test Track', timestamp=1700000000),
            'sk-123'
        )

        self.assertEqual(result.accepted, 1)
        self.assertEqual(result.ignored, 0)
        mock_session.get.assert_not_called()
        _, kwargs = mock_session.post.call_args
        sent = kwargs['data']
        self.assertEqual(sent['method'], 'track.scrobble')
        self.assertEqual(sent['timestamp'], '1700000000')
        self.assertEqual(sent['sk'], 'sk-123')
        for optional in ('album', 'trackNumber', 'duration'):
            self.assertNotIn(optional, sent)
        unsigned = {k: v for k, v in sent.items() if k != 'api_sig'}
        self.assertEqual(sent['api_sig'], sign(unsigned, 'test_api_secret_67890'))

    @patch('music.lastfm.client.requests.Session')
    def test_scrobble_sends_present_optional_fields(self, mock_session_class):
        client, mock_session = self._client_with(
            mock_session_class, make_response(SCROBBLE_ACCEPTED), http_method='post'
        )

        client.scrobble(
            Scrobble(
                artist='Test Artist',
                track='Test Track',
                timestamp=1700000000,
                album='Test Album',
                track_number='3',
                duration='241',
            ),
            'sk-123'
        )

        _, kwargs = mock_session.post.call_args
        sent = kwargs['data']
        self.assertEqual(sent['album'], 'Test Album')
        self.assertEqual(sent['trackNumber'], '3')
        self.assertEqual(sent['duration'], '241')

    @patch('music.lastfm.client.requests.Session')
    def test_scrobble_does_not_clamp_timestamp(self, mock_session_class):
        client, mock_session = self._client_with(
            mock_session_class,
            make_response({'error': 6, 'message': 'Timestamp too old'}),
            http_method='post'
        )

        with self.assertRaises(LastFmRemoteError):
            client.scrobble(Scrobble(artist='A', track='T', timestamp=1), 'sk')

        _, kwargs = mock_session.post.call_args
        self.assertEqual(kwargs['data']['timestamp'], '1')

    @patch('music.lastfm.client.requests.Session')
    def test_update_now_playing(self, mock_session_class):
        payload = {'nowplaying': {'track': {'#text': 'Test Track'}, 'ignoredMessage': {'code': '0'}}}
        client, mock_session = self._client_with(
            mock_session_class, make_response(payload), http_method='post'
        )

        result = client.update_now_playing(
            NowPlaying(artist='Test Artist', track='Test Track', album='  '),
            'sk-123'
        )

        self.assertEqual(result, payload)
        _, kwargs = mock_session.post.call_args
        sent = kwargs['data']
        self.assertEqual(sent['method'], 'track.updateNowPlaying')
        self.assertNotIn('album', sent)
        self.assertNotIn('duration', sent)
        self.assertNotIn('timestamp', sent)

    @patch('music.lastfm.client.requests.Session')
    def test_update_now_playing_malformed(self, mock_session_class):
        client, _ = self._client_with(mock_session_class, make_response({}), http_method='post')

        with self.assertRaises(LastFmInvalidResponseError):
            client.update_now_playing(NowPlaying(artist='A', track='T'), 'sk')


class ResponseParsingTest(TestCase):
    """Test typed parsing of Last.fm responses."""

    def test_parse_session_subscriber_flag(self):
        session = parse_session({'session': {'name': 'u', 'key': 'k', 'subscriber': '1'}})

        self.assertTrue(session.subscriber)

    def test_parse_session_missing_key(self):
        with self.assertRaises(LastFmInvalidResponseError):
            parse_session({'session': {'name': 'u'}})

    def test_parse_session_wrong_shape(self):
        with self.assertRaises(LastFmInvalidResponseError):
            parse_session({'session': 'k'})

    def test_parse_scrobble_ignored(self):
        data = {
            'scrobbles': {
                '@attr': {'accepted': '0', 'ignored': '1'},
                'scrobble': [{'ignoredMessage': {'code': '3', '#text': 'Timestamp too old'}}],
            }
        }

        result = parse_scrobble_result(data)

        self.assertEqual(result.accepted, 0)
        self.assertEqual(result.ignored, 1)
        self.assertEqual(result.ignored_code, '3')

    def test_parse_scrobble_missing_counts(self):
        with self.assertRaises(LastFmInvalidResponseError):
            parse_scrobble_result({'scrobbles': {'@attr': {'accepted': 'x', 'ignored': 0}}})


class AuthFlowTest(TestCase):
    """Test the token exchange state machine."""

    def setUp(self):
        self.lastfm = Mock(spec=LastFmClient)
        self.lastfm.config = Mock(api_key='KEY')

    def test_build_auth_url(self):
        self.assertEqual(
            build_auth_url('KEY', 'abc'),
            'https://www.last.fm/api/auth/?api_key=KEY&token=abc'
        )

    def test_initial_state(self):
        self.assertEqual(AuthFlow(self.lastfm).state, AuthState.UNAUTHENTICATED)

    def test_request_token(self):
        self.lastfm.get_token.return_value = 'abc'
        flow = AuthFlow(self.lastfm)

        request_token = flow.request_token()

        self.assertEqual(request_token.token, 'abc')
        self.assertEqual(
            request_token.auth_url,
            'https://www.last.fm/api/auth/?api_key=KEY&token=abc'
        )
        self.assertEqual(flow.state, AuthState.TOKEN_ISSUED)

    def test_complete_uses_pending_token(self):
        session = LastFmSession(key='sk', name='testuser')
        self.lastfm.get_session.return_value = session
        flow = AuthFlow(self.lastfm, pending_token='abc')

        self.assertEqual(flow.complete(), session)

        self.lastfm.get_session.assert_called_once_with('abc')
        self.assertEqual(flow.state, AuthState.AUTHENTICATED)
        self.assertIsNone(flow.pending_token)

    def test_complete_without_token(self):
        flow = AuthFlow(self.lastfm)

        with self.assertRaises(LastFmAuthFlowError):
            flow.complete()

        self.lastfm.get_session.assert_not_called()

    def test_complete_unauthorized_token_stays_issued(self):
        self.lastfm.get_session.side_effect = LastFmAuthenticationError(14, 'Unauthorized Token')
        flow = AuthFlow(self.lastfm, pending_token='abc')

        with self.assertRaises(LastFmAPIError):
            flow.complete()

        self.assertEqual(flow.state, AuthState.TOKEN_ISSUED)
        self.assertEqual(flow.pending_token, 'abc')

    def test_disconnect_is_local(self):
        flow = AuthFlow(self.lastfm, session=LastFmSession(key='sk', name='testuser'))
        self.assertEqual(flow.state, AuthState.AUTHENTICATED)

        flow.disconnect()

        self.assertEqual(flow.state, AuthState.UNAUTHENTICATED)
        self.lastfm.execute.assert_not_called()
