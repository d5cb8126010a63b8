from django.core.management.base import BaseCommand, CommandError

from music.lastfm import AuthFlow, LastFmAPIError, LastFmClient


class Command(BaseCommand):
    help = 'Authorize this application on Last.fm and print the resulting session key'

    def add_arguments(self, parser):
        parser.add_argument(
            '--token',
            type=str,
            help='Exchange an already approved token instead of requesting a new one'
        )
        parser.add_argument(
            '--no-input',
            action='store_true',
            dest='no_input',
            help='Print the authorization URL and token, then exit without exchanging it'
        )

    def handle(self, *args, **options):
        token = options['token']

        with LastFmClient() as client:
            flow = AuthFlow(client)

            try:
                if not token:
                    request_token = flow.request_token()
                    self.stdout.write('Open this URL and approve access:')
                    self.stdout.write(self.style.HTTP_INFO(request_token.auth_url))

                    if options['no_input']:
                        self.stdout.write(
                            f'Then run: manage.py lastfm_connect --token {request_token.token}'
                        )
                        return

                    input('Press Enter once you have approved access on Last.fm...')

                session = flow.complete(token)

            except LastFmAPIError as e:
                raise CommandError(f'Last.fm authorization failed: {e.message}') from e

        self.stdout.write(self.style.SUCCESS(f'Connected as {session.name}'))
        self.stdout.write(f'Session key: {session.key}')
