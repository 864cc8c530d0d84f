import tempfile
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone

from inventory.models import StockHistory
from orders.choices import DiningType, OrderStatus, PaymentStatus
from orders.exceptions import CartError, DiscountError, InvalidStatusTransition, OrderValidationError
from orders.models import Customer, DiscountCode, Fee, Order
from orders.pricing import manual_discount
from orders.services import (
    OrderDetails, advance_kitchen_order, apply_discount_code, change_status, kitchen_queue,
    rate_order, recent_orders, resolve_cart_item, seed_customers, start_due_reservations,
    submit_order, verify_payment,
)

from .factories import add_add_on, add_size, cart_with, make_product, make_staff


class ResolveCartItemTests(TestCase):
    """Cart lines are priced from the live catalog"""

    def setUp(self):
        self.latte = make_product('Latte', '10.00')

    def test_default_multiplier_without_size_rows(self):
        item = resolve_cart_item(self.latte.id, 'L')
        self.assertEqual(item['unit_price'], Decimal('12.00'))
        self.assertEqual(item['name'], 'Latte')

    def test_configured_sizes_limit_choices(self):
        add_size(self.latte, 'M')
        add_size(self.latte, 'L', override='13.50')

        self.assertEqual(resolve_cart_item(self.latte.id, 'L')['unit_price'], Decimal('13.50'))
        with self.assertRaises(CartError):
            resolve_cart_item(self.latte.id, 'XL')

    def test_add_ons_must_belong_to_product(self):
        oat = add_add_on(self.latte)
        other = add_add_on(make_product('Mocha'), 'Cream')

        item = resolve_cart_item(self.latte.id, 'M', [oat.id])
        self.assertEqual([a.name for a in item['add_ons']], ['Oat milk'])

        with self.assertRaises(CartError):
            resolve_cart_item(self.latte.id, 'M', [other.id])

    def test_inactive_product(self):
        self.latte.active = False
        self.latte.save()
        with self.assertRaises(CartError):
            resolve_cart_item(self.latte.id, 'M')


class SubmitOrderTests(TestCase):
    """Submitting a cart persists an order and runs its side effects"""

    def setUp(self):
        self.cashier = make_staff('cashier@cafe.test')
        self.latte = make_product('Latte', '10.00', track_stock=True, stock_quantity=3)
        self.cookie = make_product('Cookie', '4.00')

    def dine_in(self, **kwargs):
        values = {'dining_type': DiningType.DINE_IN, 'payment_method': 'visa', 'table_number': 4}
        values.update(kwargs)
        return OrderDetails(**values)

    def test_snapshot_and_totals(self):
        Fee.objects.create(name='Service', amount=Decimal('10'), fee_type='percentage', applies_to='dine_in')
        cart = cart_with((self.latte, 'M', 2), (self.cookie, 'M', 1))

        order = submit_order(cart, self.dine_in(placed_by=self.cashier))

        self.assertEqual(order.subtotal, Decimal('24.00'))
        self.assertEqual(order.fees_total, Decimal('2.40'))
        self.assertEqual(order.total, Decimal('26.40'))
        self.assertEqual(order.items[0]['name'], 'Latte')
        self.assertEqual(order.items[0]['quantity'], 2)
        self.assertEqual(order.fees[0]['name'], 'Service')
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertEqual(order.placed_by, self.cashier)

    def test_empty_cart_rejected(self):
        with self.assertRaisesMessage(CartError, 'Cart is empty'):
            submit_order(cart_with(), self.dine_in())
        self.assertFalse(Order.objects.exists())

    def test_takeaway_requires_customer(self):
        cart = cart_with((self.cookie, 'M', 1))
        details = OrderDetails(dining_type=DiningType.TAKEAWAY, payment_method='visa', customer_name='Ali')

        with self.assertRaises(OrderValidationError):
            submit_order(cart, details)

    def test_reservation_requires_date_and_time(self):
        cart = cart_with((self.cookie, 'M', 1))
        details = OrderDetails(
            dining_type=DiningType.RESERVATION, payment_method='visa',
            customer_name='Ali', customer_phone='+60111111111',
        )
        with self.assertRaisesMessage(OrderValidationError, 'Reservation date and time are required'):
            submit_order(cart, details)

    def test_reservation_starts_confirmed(self):
        cart = cart_with((self.cookie, 'M', 1))
        details = OrderDetails(
            dining_type=DiningType.RESERVATION, payment_method='visa',
            customer_name='Ali', customer_phone='+60111111111',
            reservation_date=timezone.localdate(), reservation_time=timezone.localtime().time(),
            party_size=2,
        )
        order = submit_order(cart, details)
        self.assertEqual(order.status, OrderStatus.RESERVATION_CONFIRMED)

    @override_settings(MEDIA_ROOT=tempfile.mkdtemp())
    def test_customer_qr_order_awaits_verification(self):
        cart = cart_with((self.cookie, 'M', 1))
        proof = SimpleUploadedFile('proof.png', b'fake-image', content_type='image/png')

        order = submit_order(cart, self.dine_in(payment_method='qr', payment_proof=proof))

        self.assertEqual(order.status, OrderStatus.PAYMENT_VERIFICATION)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertTrue(order.payment_proof.name.startswith('payment_proofs/'))

    def test_cash_change_recorded(self):
        cart = cart_with((self.cookie, 'M', 2))
        order = submit_order(cart, self.dine_in(payment_method='cash', cash_received=Decimal('10')))
        self.assertEqual(order.change_due, Decimal('2.00'))

    def test_stock_floored_at_zero_with_ledger_row(self):
        cart = cart_with((self.latte, 'M', 2), (self.latte, 'L', 3))

        order = submit_order(cart, self.dine_in())

        self.latte.refresh_from_db()
        self.assertEqual(self.latte.stock_quantity, 0)
        sale = StockHistory.objects.get(product=self.latte, change_type=StockHistory.CHANGE_SALE)
        self.assertEqual(sale.previous_quantity, 3)
        self.assertEqual(sale.quantity_change, -3)
        self.assertEqual(sale.new_quantity, 0)
        self.assertIn(order.short_id, sale.notes)

    def test_untracked_products_write_no_sale(self):
        submit_order(cart_with((self.cookie, 'M', 1)), self.dine_in())
        self.assertFalse(StockHistory.objects.filter(product=self.cookie).exists())

    def test_customer_created_and_linked(self):
        details = self.dine_in(customer_name='Siti', customer_phone='+60112223333')
        order = submit_order(cart_with((self.cookie, 'M', 1)), details)

        customer = Customer.objects.get(phone_number='+60112223333')
        self.assertEqual(order.customer, customer)
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.total_spent, Decimal('4.00'))

    def test_returning_customer_stats_overwritten(self):
        Customer.objects.create(
            phone_number='+60112223333', name='Siti', total_orders=7, total_spent=Decimal('90.00')
        )
        details = self.dine_in(customer_name='Siti Aminah', customer_phone='+60112223333')
        submit_order(cart_with((self.cookie, 'M', 2)), details)

        customer = Customer.objects.get(phone_number='+60112223333')
        self.assertEqual(customer.name, 'Siti Aminah')
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.total_spent, Decimal('8.00'))

    def test_returning_customer_stats_accumulate(self):
        Customer.objects.create(
            phone_number='+60112223333', name='Siti', total_orders=7, total_spent=Decimal('90.00')
        )
        details = self.dine_in(customer_name='Siti', customer_phone='+60112223333')
        with self.settings(CAFE_POS={**settings.CAFE_POS, 'CUSTOMER_STATS_MODE': 'accumulate'}):
            submit_order(cart_with((self.cookie, 'M', 2)), details)

        customer = Customer.objects.get(phone_number='+60112223333')
        self.assertEqual(customer.total_orders, 8)
        self.assertEqual(customer.total_spent, Decimal('98.00'))


class DiscountSubmissionTests(TestCase):

    def setUp(self):
        self.cookie = make_product('Cookie', '10.00')
        self.code = DiscountCode.objects.create(
            code='welcome', discount_type='percentage', value=Decimal('10'), usage_limit=1
        )

    def details(self):
        return OrderDetails(dining_type=DiningType.DINE_IN, payment_method='visa')

    def test_code_is_stored_uppercase(self):
        self.assertEqual(self.code.code, 'WELCOME')

    def test_usage_counted_once_per_order(self):
        cart = cart_with((self.cookie, 'M', 3))
        applied = apply_discount_code('welcome', cart.total, DiningType.DINE_IN)

        order = submit_order(cart, self.details(), discount=applied)

        self.code.refresh_from_db()
        self.assertEqual(self.code.usage_count, 1)
        self.assertEqual(order.discount_code, self.code)
        self.assertEqual(order.discount_amount, Decimal('3.00'))
        self.assertEqual(order.total, Decimal('27.00'))

    def test_exhausted_code_rejected_at_submit(self):
        cart = cart_with((self.cookie, 'M', 1))
        applied = apply_discount_code('WELCOME', cart.total, DiningType.DINE_IN)
        DiscountCode.objects.filter(pk=self.code.pk).update(usage_count=1)

        with self.assertRaisesMessage(DiscountError, 'This discount code has reached its usage limit'):
            submit_order(cart, self.details(), discount=applied)
        self.assertFalse(Order.objects.exists())

    def test_manual_discount(self):
        cart = cart_with((self.cookie, 'M', 2))
        applied = manual_discount('5', 'Birthday', cart.total)

        order = submit_order(cart, self.details(), discount=applied)

        self.assertIsNone(order.discount_code)
        self.assertEqual(order.discount_reason, 'Birthday')
        self.assertEqual(order.total, Decimal('15.00'))


class StatusServiceTests(TestCase):

    def setUp(self):
        self.cookie = make_product('Cookie', '4.00')
        self.order = submit_order(
            cart_with((self.cookie, 'M', 1)),
            OrderDetails(dining_type=DiningType.DINE_IN, payment_method='visa'),
        )

    def test_change_status(self):
        change_status(self.order, OrderStatus.PREPARING)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PREPARING)

    def test_invalid_change_leaves_order_untouched(self):
        with self.assertRaises(InvalidStatusTransition):
            change_status(self.order, OrderStatus.COMPLETED)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_kitchen_advance(self):
        advance_kitchen_order(self.order)
        advance_kitchen_order(self.order)
        self.assertEqual(self.order.status, OrderStatus.READY)
        with self.assertRaises(InvalidStatusTransition):
            advance_kitchen_order(self.order)

    def test_verify_payment(self):
        Order.objects.filter(pk=self.order.pk).update(
            status=OrderStatus.PAYMENT_VERIFICATION, payment_status=PaymentStatus.PENDING
        )
        self.order.refresh_from_db()

        verify_payment(self.order)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)

    def test_verify_payment_requires_waiting_order(self):
        with self.assertRaises(InvalidStatusTransition):
            verify_payment(self.order)

    def test_rating(self):
        with self.assertRaisesMessage(OrderValidationError, 'Orders can be rated once they are ready'):
            rate_order(self.order, 5)

        Order.objects.filter(pk=self.order.pk).update(status=OrderStatus.READY)
        self.order.refresh_from_db()
        rating = rate_order(self.order, 4, 'Nice')

        self.assertEqual(rating.rating, 4)
        with self.assertRaisesMessage(OrderValidationError, 'This order has already been rated'):
            rate_order(self.order, 5)


class KitchenQueueTests(TestCase):

    def setUp(self):
        self.latte = make_product('Latte', '10.00')
        self.water = make_product('Bottled water', '2.00', show_in_kitchen=False)

    def place(self, *entries):
        return submit_order(
            cart_with(*entries),
            OrderDetails(dining_type=DiningType.DINE_IN, payment_method='visa'),
        )

    def test_only_kitchen_items_and_open_orders(self):
        mixed = self.place((self.latte, 'M', 1), (self.water, 'M', 1))
        self.place((self.water, 'M', 2))
        done = self.place((self.latte, 'M', 1))
        Order.objects.filter(pk=done.pk).update(status=OrderStatus.READY)

        tickets = kitchen_queue()

        self.assertEqual([t.order.pk for t in tickets], [mixed.pk])
        self.assertEqual([item['name'] for item in tickets[0].items], ['Latte'])

    def test_oldest_first_and_urgency(self):
        first = self.place((self.latte, 'M', 1))
        second = self.place((self.latte, 'M', 1))
        Order.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(minutes=20))

        tickets = kitchen_queue()

        self.assertEqual([t.order.pk for t in tickets], [first.pk, second.pk])
        self.assertTrue(tickets[0].is_urgent)
        self.assertGreaterEqual(tickets[0].minutes_waiting, 20)
        self.assertFalse(tickets[1].is_urgent)

    def test_updated_since(self):
        self.place((self.latte, 'M', 1))
        self.assertEqual(kitchen_queue(updated_since=timezone.now() + timedelta(seconds=5)), [])


class ReservationSchedulingTests(TestCase):

    def setUp(self):
        self.cookie = make_product('Cookie', '4.00')

    def reserve(self, at):
        local = timezone.localtime(at)
        return submit_order(
            cart_with((self.cookie, 'M', 1)),
            OrderDetails(
                dining_type=DiningType.RESERVATION, payment_method='visa',
                customer_name='Ali', customer_phone='+60111111111',
                reservation_date=local.date(), reservation_time=local.time().replace(microsecond=0),
            ),
        )

    def test_due_reservations_start_preparing(self):
        now = timezone.localtime().replace(hour=12, minute=0, second=0, microsecond=0)
        soon = self.reserve(now + timedelta(minutes=10))
        later = self.reserve(now + timedelta(hours=2))
        overdue = self.reserve(now - timedelta(minutes=30))

        started = start_due_reservations(now)

        self.assertEqual({o.pk for o in started}, {soon.pk, overdue.pk})
        later.refresh_from_db()
        self.assertEqual(later.status, OrderStatus.RESERVATION_CONFIRMED)
        soon.refresh_from_db()
        self.assertEqual(soon.status, OrderStatus.PREPARING)


class RecentOrdersAndCustomersTests(TestCase):

    def test_recent_orders_limit_and_images(self):
        cookie = make_product('Cookie', '4.00')
        for _ in range(3):
            submit_order(cart_with((cookie, 'M', 1)), OrderDetails(dining_type='dine_in', payment_method='visa'))

        orders, images = recent_orders(limit=2)

        self.assertEqual(len(orders), 2)
        self.assertEqual(images, {cookie.id: None})

    def test_seed_customers_is_idempotent(self):
        self.assertEqual(seed_customers(), (4, 0))
        self.assertEqual(seed_customers(), (0, 4))
        self.assertTrue(Customer.objects.filter(phone_number='+60123456789', name='John Doe').exists())
