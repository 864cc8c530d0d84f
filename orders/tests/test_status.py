from datetime import timedelta

from django.test import SimpleTestCase
from django.utils import timezone

from orders.choices import DiningType, OrderStatus, PaymentMethod
from orders.exceptions import InvalidStatusTransition
from orders.models import Order
from orders.status import (
    can_transition, ensure_transition, initial_status, is_urgent, minutes_waiting,
    next_kitchen_status, progress_index, tracking_message, tracking_steps,
)


class TransitionTests(SimpleTestCase):
    """Allowed and forbidden status changes"""

    def test_happy_path(self):
        self.assertTrue(can_transition(OrderStatus.PENDING, OrderStatus.PREPARING))
        self.assertTrue(can_transition(OrderStatus.PREPARING, OrderStatus.READY))
        self.assertTrue(can_transition(OrderStatus.READY, OrderStatus.COMPLETED))

    def test_payment_verification_path(self):
        self.assertTrue(can_transition(OrderStatus.PAYMENT_VERIFICATION, OrderStatus.PAYMENT_VERIFIED))
        self.assertTrue(can_transition(OrderStatus.PAYMENT_VERIFIED, OrderStatus.PREPARING))

    def test_reservation_path(self):
        self.assertTrue(can_transition(OrderStatus.RESERVATION_CONFIRMED, OrderStatus.PREPARING))
        self.assertTrue(can_transition(OrderStatus.RESERVATION_READY, OrderStatus.COMPLETED))

    def test_terminal_statuses_are_final(self):
        for status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
            for target in OrderStatus.values:
                self.assertFalse(can_transition(status, target))

    def test_cannot_skip_steps(self):
        with self.assertRaises(InvalidStatusTransition):
            ensure_transition(OrderStatus.PENDING, OrderStatus.COMPLETED)

    def test_unknown_status(self):
        with self.assertRaises(InvalidStatusTransition) as ctx:
            ensure_transition(OrderStatus.PENDING, 'teleported')
        self.assertEqual(ctx.exception.code, 'unknown_status')

    def test_any_open_order_can_be_cancelled(self):
        for status in (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY,
                       OrderStatus.RESERVATION_CONFIRMED, OrderStatus.PAYMENT_VERIFICATION):
            ensure_transition(status, OrderStatus.CANCELLED)


class KitchenFlowTests(SimpleTestCase):

    def test_next_status(self):
        self.assertEqual(next_kitchen_status(OrderStatus.PENDING), OrderStatus.PREPARING)
        self.assertEqual(next_kitchen_status(OrderStatus.RESERVATION_CONFIRMED), OrderStatus.PREPARING)
        self.assertEqual(next_kitchen_status(OrderStatus.PREPARING), OrderStatus.READY)

    def test_ready_orders_leave_the_kitchen(self):
        with self.assertRaises(InvalidStatusTransition):
            next_kitchen_status(OrderStatus.READY)

    def test_urgency(self):
        now = timezone.now()
        self.assertFalse(is_urgent(now - timedelta(minutes=10), now))
        self.assertTrue(is_urgent(now - timedelta(minutes=16), now))
        self.assertEqual(minutes_waiting(now - timedelta(minutes=16, seconds=40), now), 16)

    def test_minutes_waiting_never_negative(self):
        now = timezone.now()
        self.assertEqual(minutes_waiting(now + timedelta(minutes=2), now), 0)


class InitialStatusTests(SimpleTestCase):

    def test_reservation(self):
        self.assertEqual(
            initial_status(DiningType.RESERVATION, PaymentMethod.CASH, False),
            OrderStatus.RESERVATION_CONFIRMED,
        )

    def test_customer_qr_needs_verification(self):
        self.assertEqual(
            initial_status(DiningType.TAKEAWAY, PaymentMethod.QR, False),
            OrderStatus.PAYMENT_VERIFICATION,
        )

    def test_staff_qr_goes_straight_to_kitchen(self):
        self.assertEqual(initial_status(DiningType.DINE_IN, PaymentMethod.QR, True), OrderStatus.PENDING)

    def test_cash(self):
        self.assertEqual(initial_status(DiningType.DINE_IN, PaymentMethod.CASH, False), OrderStatus.PENDING)


class TrackingTests(SimpleTestCase):

    def test_progress_index(self):
        self.assertEqual(progress_index(OrderStatus.PENDING), 0)
        self.assertEqual(progress_index(OrderStatus.PREPARING), 2)
        self.assertEqual(progress_index(OrderStatus.READY), 3)
        self.assertEqual(progress_index(OrderStatus.COMPLETED), 4)

    def test_order_steps(self):
        order = Order(dining_type=DiningType.DINE_IN, status=OrderStatus.PREPARING)

        steps = [step['status'] for step in tracking_steps(order)]

        self.assertEqual(steps[0], 'payment_verification')
        self.assertEqual(steps[-1], 'completed')
        self.assertEqual(tracking_message(order), 'Our baristas are preparing your order.')

    def test_reservation_steps(self):
        order = Order(dining_type=DiningType.RESERVATION, status=OrderStatus.RESERVATION_CONFIRMED)

        steps = [step['status'] for step in tracking_steps(order)]

        self.assertEqual(steps, ['reservation_confirmed', 'preparing', 'reservation_ready', 'completed'])
        self.assertIn('reservation is confirmed', tracking_message(order))

    def test_reserved_order_falls_back_to_shared_messages(self):
        order = Order(dining_type=DiningType.RESERVATION, status=OrderStatus.READY)
        self.assertEqual(tracking_message(order), 'Your order is ready for pickup!')
