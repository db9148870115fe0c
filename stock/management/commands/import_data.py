from django.core.management.base import BaseCommand, CommandError

from stock.services import backup_service
from stock.services.base_service import ValidationError


class Command(BaseCommand):
    help = 'Replace every inventory collection with the contents of a JSON backup file'

    def add_arguments(self, parser):
        parser.add_argument('path', help='Backup file produced by export_data')

    def handle(self, *args, **options):
        try:
            with open(options['path'], encoding='utf-8') as fh:
                blobs = backup_service.loads(fh.read())
            counts = backup_service.import_collections(blobs)
        except OSError as exc:
            raise CommandError(f"Cannot read {options['path']}: {exc}")
        except ValidationError as exc:
            raise CommandError(exc.message)

        summary = ', '.join(f'{key}={count}' for key, count in counts.items())
        self.stdout.write(self.style.SUCCESS(f'Backup restored ({summary})'))
