"""
Create the default user accounts (admin, inventory, ppic, project, manager).
"""

from django.core.management.base import BaseCommand

from main.services.user_service import UserService


class Command(BaseCommand):
    help = 'Create the default user accounts that do not exist yet'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset',
            action='store_true',
            help='Delete every user first, then recreate the defaults'
        )

    def handle(self, *args, **options):
        if options['reset']:
            result = UserService.reset_to_defaults()
        else:
            result = UserService.seed_defaults()

        self.stdout.write(self.style.SUCCESS(f"{result['created']} user(s) created"))
