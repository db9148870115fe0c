from django.core.management.base import BaseCommand

from stock.services import backup_service


class Command(BaseCommand):
    help = 'Write every inventory collection to a JSON backup file'

    def add_arguments(self, parser):
        parser.add_argument('path', help='Destination file')

    def handle(self, *args, **options):
        blobs = backup_service.export_collections()

        with open(options['path'], 'w', encoding='utf-8') as fh:
            fh.write(backup_service.dumps(blobs))

        summary = ', '.join(f'{key}={len(records)}' for key, records in blobs.items())
        self.stdout.write(self.style.SUCCESS(f"Backup written to {options['path']} ({summary})"))
