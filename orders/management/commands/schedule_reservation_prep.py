from django.core.management.base import BaseCommand

from orders.services import start_due_reservations


class Command(BaseCommand):
    help = "Move today's confirmed reservations into preparation once they are within the lead window"

    def handle(self, *args, **options):
        started = start_due_reservations()
        for order in started:
            self.stdout.write(
                f'#{order.short_id} {order.customer_name} at {order.reservation_time:%H:%M} -> preparing'
            )
        self.stdout.write(
            self.style.SUCCESS(f'{len(started)} reservation(s) moved to preparing')
        )
