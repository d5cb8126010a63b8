import time

from django.core.management.base import BaseCommand, CommandError

from music.lastfm import LastFmAPIError, LastFmClient, NowPlaying, Scrobble


class Command(BaseCommand):
    help = 'Submit a single scrobble (or a now playing update) to Last.fm'

    def add_arguments(self, parser):
        parser.add_argument('artist', type=str, help='Artist name')
        parser.add_argument('track', type=str, help='Track title')
        parser.add_argument(
            '--session-key',
            required=True,
            help='Session key printed by lastfm_connect'
        )
        parser.add_argument('--album', type=str, help='Album title')
        parser.add_argument('--track-number', type=str, help='Position of the track on the album')
        parser.add_argument('--duration', type=str, help='Track length in seconds')
        parser.add_argument(
            '--timestamp',
            type=int,
            help='Unix time the track started playing (default: now)'
        )
        parser.add_argument(
            '--now-playing',
            action='store_true',
            help='Send a now playing update instead of a scrobble'
        )

    def handle(self, *args, **options):
        artist = options['artist'].strip()
        track = options['track'].strip()
        if not artist or not track:
            raise CommandError('Artist and track are required.')

        try:
            with LastFmClient() as client:
                if options['now_playing']:
                    client.update_now_playing(
                        NowPlaying(
                            artist=artist,
                            track=track,
                            album=options['album'],
                            duration=options['duration'],
                        ),
                        options['session_key']
                    )
                    self.stdout.write(self.style.SUCCESS('Now playing updated on Last.fm.'))
                    return

                timestamp = options['timestamp']
                if timestamp is None:
                    timestamp = int(time.time())

                result = client.scrobble(
                    Scrobble(
                        artist=artist,
                        track=track,
                        timestamp=timestamp,
                        album=options['album'],
                        track_number=options['track_number'],
                        duration=options['duration'],
                    ),
                    options['session_key']
                )

        except LastFmAPIError as e:
            raise CommandError(f'Last.fm request failed: {e.message}') from e

        if result.ignored:
            self.stdout.write(self.style.WARNING(
                f'Last.fm ignored the scrobble (code {result.ignored_code}).'
            ))
        else:
            self.stdout.write(self.style.SUCCESS('Track scrobbled to Last.fm.'))
