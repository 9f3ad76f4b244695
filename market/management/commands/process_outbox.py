"""
Notification worker: delivers outbox events as user notifications.
"""
import time

from django.core.management.base import BaseCommand

from market.infra.outbox import OutboxRepository
from market.infra.projector import Projector


class Command(BaseCommand):
    help = 'Turn pending outbox events into user notifications'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=100, help='Events per batch')
        parser.add_argument('--loop', action='store_true', help='Keep polling the outbox')
        parser.add_argument('--interval', type=int, default=3, help='Seconds between polls')
        parser.add_argument(
            '--purge-days',
            type=int,
            default=None,
            help='Also delete delivered events older than this many days',
        )

    def handle(self, *args, **options):
        outbox = OutboxRepository()
        projector = Projector(outbox_repo=outbox)

        if not options['loop']:
            self._run_once(projector, outbox, options)
            return

        self.stdout.write(f"Polling outbox every {options['interval']}s")
        try:
            while True:
                self._run_once(projector, outbox, options, quiet=True)
                time.sleep(options['interval'])
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('Stopped by user'))

    def _run_once(self, projector, outbox, options, quiet=False):
        processed = projector.process_outbox_events(limit=options['limit'])
        if processed or not quiet:
            self.stdout.write(self.style.SUCCESS(f'Processed {processed} events'))
        if options['purge_days'] is not None:
            purged = outbox.purge_processed(options['purge_days'])
            if purged or not quiet:
                self.stdout.write(f'Purged {purged} delivered events')
