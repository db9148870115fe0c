from django.core.management.base import BaseCommand, CommandError

from stock.services import backup_service


class Command(BaseCommand):
    help = 'Delete all inventory data and restore default settings and users'

    def add_arguments(self, parser):
        parser.add_argument(
            '--yes',
            action='store_true',
            help='Confirm that all data should be deleted'
        )

    def handle(self, *args, **options):
        if not options['yes']:
            raise CommandError('This deletes all data. Re-run with --yes to confirm.')

        backup_service.reset_data()
        self.stdout.write(self.style.SUCCESS('All data reset to defaults'))
