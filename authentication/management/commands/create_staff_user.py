from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from authentication.models import CustomUser, StaffProfile


class Command(BaseCommand):
    help = 'Create a staff login account with a role (admin, cashier or kitchen)'

    def add_arguments(self, parser):
        parser.add_argument('email')
        parser.add_argument('password')
        parser.add_argument(
            '--role',
            default=StaffProfile.ROLE_KITCHEN,
            choices=[value for value, _ in StaffProfile.ROLES],
            help='Staff role for the new account',
        )
        parser.add_argument('--first-name', default='')
        parser.add_argument('--last-name', default='')
        parser.add_argument(
            '--update',
            action='store_true',
            help='Reset password and role if the account already exists',
        )

    def handle(self, *args, **options):
        email = CustomUser.objects.normalize_email(options['email'])
        role = options['role']

        with transaction.atomic():
            user = CustomUser.objects.filter(email=email).first()
            if user and not options['update']:
                raise CommandError(f'User {email} already exists (use --update to reset it)')

            if user is None:
                user = CustomUser.objects.create_user(
                    email=email,
                    password=options['password'],
                    first_name=options['first_name'],
                    last_name=options['last_name'],
                )
                self.stdout.write(f'Created user {email}')
            else:
                user.set_password(options['password'])
                user.save(update_fields=['password'])
                self.stdout.write(f'Updated user {email}')

            StaffProfile.objects.update_or_create(
                user=user,
                defaults={'role': role, 'is_active': True},
            )

        self.stdout.write(
            self.style.SUCCESS(f'{email} can now sign in as {role}')
        )
