"""
JSON API used by the browser front end.

Each view loads the browser's ClientStore, talks to Last.fm through
LastFmClient and saves the store back. Errors propagate to the project
exception handler, which maps each kind to its own status and code.
"""
import logging
import time

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotConnectedError
from music.lastfm import AuthFlow, LastFmClient, NowPlaying, Scrobble
from music.serializers import (
    AuthSessionRequestSerializer,
    HistoryEntrySerializer,
    NowPlayingRequestSerializer,
    ScrobbleRequestSerializer,
    ThemeSerializer,
)
from music.store import ClientStore


logger = logging.getLogger('music.api')


class LastFmAPIView(APIView):
    """Base view with an injectable store and client."""

    store_class = ClientStore
    client_class = LastFmClient

    def get_store(self) -> ClientStore:
        return self.store_class.load(self.request.session)

    def get_client(self) -> LastFmClient:
        return self.client_class()

    def get_flow(self, store: ClientStore, client: LastFmClient) -> AuthFlow:
        return AuthFlow(client, pending_token=store.pending_token, session=store.session)

    def get_session_key(self, store: ClientStore, data) -> str:
        """Session key from the request body, else the stored session."""
        if data.get('sessionKey'):
            return data['sessionKey']
        if store.session is not None:
            return store.session.key
        raise NotConnectedError()


class AuthTokenView(LastFmAPIView):
    """Start authorization: issue a token and the URL to approve it."""

    def get(self, request):
        store = self.get_store()
        with self.get_client() as client:
            flow = self.get_flow(store, client)
            request_token = flow.request_token()

        store.pending_token = flow.pending_token
        store.save()

        return Response({
            'token': request_token.token,
            'authUrl': request_token.auth_url,
        })


class AuthSessionView(LastFmAPIView):
    """Exchange the approved token for a session key."""

    def post(self, request):
        serializer = AuthSessionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        store = self.get_store()
        with self.get_client() as client:
            flow = self.get_flow(store, client)
            session = flow.complete(serializer.validated_data['token'])

        store.connect(session)
        store.save()

        logger.info("Browser connected to Last.fm", extra={'username': session.name})

        return Response({
            'sessionKey': session.key,
            'username': session.name,
        })


class AuthDisconnectView(LastFmAPIView):
    """Forget the stored session. Last.fm is not contacted."""

    def post(self, request):
        store = self.get_store()
        store.disconnect()
        store.save()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AuthStatusView(LastFmAPIView):

    def get(self, request):
        store = self.get_store()
        flow = self.get_flow(store, client=None)
        return Response({
            'state': flow.state.value,
            'username': store.session.name if store.session else None,
        })


class NowPlayingView(LastFmAPIView):
    """Update the user's now playing track."""

    def post(self, request):
        serializer = NowPlayingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        store = self.get_store()
        session_key = self.get_session_key(store, data)

        now_playing = NowPlaying(
            artist=data['artist'],
            track=data['track'],
            album=data['album'],
            duration=data['duration'],
        )
        with self.get_client() as client:
            payload = client.update_now_playing(now_playing, session_key)

        store.add_history('now_playing', now_playing.artist, now_playing.track, album=now_playing.album)
        store.save()

        return Response({'success': True, 'data': payload})


class ScrobbleView(LastFmAPIView):
    """Submit one play."""

    def post(self, request):
        serializer = ScrobbleRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        store = self.get_store()
        session_key = self.get_session_key(store, data)

        timestamp = data.get('timestamp')
        if timestamp is None:
            timestamp = int(time.time())

        record = Scrobble(
            artist=data['artist'],
            track=data['track'],
            timestamp=timestamp,
            album=data['album'],
            track_number=data['trackNumber'],
            duration=data['duration'],
        )
        with self.get_client() as client:
            result = client.scrobble(record, session_key)

        store.add_history('scrobble', record.artist, record.track, album=record.album, timestamp=timestamp)
        store.save()

        return Response({
            'success': True,
            'data': result.raw,
            'accepted': result.accepted,
            'ignored': result.ignored,
        })


class HistoryView(LastFmAPIView):
    """Plays submitted from this browser, newest first."""

    def get(self, request):
        store = self.get_store()
        serializer = HistoryEntrySerializer(store.history, many=True)
        return Response({'results': serializer.data, 'count': len(store.history)})

    def delete(self, request):
        store = self.get_store()
        store.clear_history()
        store.save()
        return Response(status=status.HTTP_204_NO_CONTENT)


class ThemeView(LastFmAPIView):
    """Seed colour and light/dark mode for the interface."""

    def get(self, request):
        store = self.get_store()
        return Response(ThemeSerializer(store.theme).data)

    def put(self, request):
        serializer = ThemeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        store = self.get_store()
        theme = store.set_theme(
            seed_color=serializer.validated_data.get('seed_color'),
            mode=serializer.validated_data.get('mode'),
        )
        store.save()

        return Response(ThemeSerializer(theme).data)
