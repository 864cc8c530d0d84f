from decimal import Decimal

from django.contrib.sessions.backends.db import SessionStore
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import StaffProfile
from orders.cart import Cart
from orders.choices import OrderStatus
from orders.exceptions import CartError
from orders.models import DiscountCode, Fee, Order
from orders.payments import SplitPayment
from orders.pricing import manual_discount
from orders.session import PosState, load_state, save_state

from .factories import add_add_on, make_product, make_staff


class PosStateTests(SimpleTestCase):
    """Parking and resuming orders in the cashier session"""

    def make_state(self):
        state = PosState()
        state.cart.add(1, 'Latte', 'M', Decimal('10.00'))
        state.context.table_number = 5
        return state

    def test_park_resets_working_order(self):
        state = self.make_state()

        parked = state.park()

        self.assertTrue(state.cart.is_empty)
        self.assertIsNone(state.context.table_number)
        self.assertEqual(parked.context.table_number, 5)
        self.assertEqual(len(state.parked), 1)

    def test_cannot_park_empty_cart(self):
        with self.assertRaisesMessage(CartError, 'Cannot park an empty cart'):
            PosState().park()

    def test_resume_parks_current_cart_first(self):
        state = self.make_state()
        first = state.park()
        state.cart.add(2, 'Mocha', 'L', Decimal('12.00'))

        state.resume(first.id)

        self.assertEqual(state.cart.lines[0].name, 'Latte')
        self.assertEqual(state.context.table_number, 5)
        self.assertEqual(len(state.parked), 1)
        self.assertEqual(state.parked[0].cart.lines[0].name, 'Mocha')

    def test_unknown_parked_order(self):
        with self.assertRaisesMessage(CartError, 'Parked order not found'):
            PosState().resume('parked-0-0')

    def test_discount_replaces_previous_and_clears_splits(self):
        state = self.make_state()
        state.split_payments = [SplitPayment('visa', Decimal('5.00'))]
        state.select_discount(manual_discount('2', 'Staff', state.cart.total))
        state.select_discount(manual_discount('3', 'Regular', state.cart.total))

        self.assertEqual(state.discount.label, 'Regular')
        self.assertEqual(state.split_payments, [])

    def test_parked_ids_stay_unique_after_discard(self):
        state = PosState()
        now = timezone.now()
        ids = []
        for name in ('Latte', 'Mocha'):
            state.cart.add(1, name, 'M', Decimal('10.00'))
            ids.append(state.park(now=now).id)
        state.discard_parked(ids[0])
        state.cart.add(1, 'Tea', 'M', Decimal('4.00'))

        third = state.park(now=now)

        self.assertNotEqual(third.id, ids[1])
        self.assertEqual(state.discard_parked(ids[1]).cart.lines[0].name, 'Mocha')
        self.assertEqual(state.resume(third.id).cart.lines[0].name, 'Tea')


class PosSessionStorageTests(TestCase):

    def test_session_round_trip(self):
        session = SessionStore()
        state = PosState()
        state.cart.add(1, 'Latte', 'M', Decimal('10.00'))
        state.context.table_number = 5
        state.discount = manual_discount('1', '', state.cart.total)
        state.split_payments = [SplitPayment('cash', Decimal('4.00'), Decimal('5.00'))]
        state.park()
        state.cart.add(3, 'Tea', 'S', Decimal('4.00'))

        save_state(session, state)
        restored = load_state(session)

        self.assertEqual(restored.cart.total, Decimal('4.00'))
        self.assertEqual(restored.parked[0].discount.value, Decimal('1.00'))
        self.assertIsInstance(restored.cart, Cart)

    def test_state_survives_saving_the_session(self):
        session = SessionStore()
        state = PosState()
        state.cart.add(1, 'Latte', 'L', Decimal('12.00'), quantity=2)
        save_state(session, state)
        session.save()

        restored = load_state(SessionStore(session_key=session.session_key))

        self.assertEqual(restored.cart.total, Decimal('24.00'))
        self.assertEqual(restored.cart.item_count, 2)


class PosTerminalTests(APITestCase):
    """The cashier terminal works through the session-backed endpoints"""

    def setUp(self):
        self.cashier = make_staff('cashier@cafe.test')
        self.latte = make_product('Latte', '10.00')
        self.oat = add_add_on(self.latte)
        self.client.force_authenticate(self.cashier)

    def add_latte(self, **extra):
        payload = {'product_id': self.latte.id, 'size': 'M'}
        payload.update(extra)
        return self.client.post(reverse('orders:pos-item-add'), payload, format='json')

    def test_requires_login(self):
        self.client.force_authenticate(None)
        response = self.client.get(reverse('orders:pos-cart'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_kitchen_staff_cannot_use_terminal(self):
        self.client.force_authenticate(make_staff('kitchen@cafe.test', StaffProfile.ROLE_KITCHEN))
        response = self.client.get(reverse('orders:pos-cart'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_merges_same_configuration(self):
        self.add_latte(add_on_ids=[self.oat.id])
        response = self.add_latte(add_on_ids=[self.oat.id], quantity=2)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['cart']), 1)
        self.assertEqual(response.data['item_count'], 3)
        self.assertEqual(response.data['quote']['subtotal'], '34.50')

    def test_cart_survives_between_requests(self):
        self.add_latte()

        response = self.client.get(reverse('orders:pos-cart'))

        self.assertEqual(response.data['cart'][0]['name'], 'Latte')

    def test_update_and_remove(self):
        self.add_latte()
        key = {'product_id': self.latte.id, 'size': 'M'}

        response = self.client.post(reverse('orders:pos-item-update'), dict(key, quantity=4), format='json')
        self.assertEqual(response.data['item_count'], 4)

        response = self.client.post(reverse('orders:pos-item-update'), dict(key, quantity=0), format='json')
        self.assertEqual(response.data['cart'], [])

        response = self.client.post(reverse('orders:pos-item-remove'), key, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'line_not_found')

    def test_edit_line(self):
        self.add_latte()
        payload = {
            'product_id': self.latte.id, 'size': 'M',
            'new_size': 'L', 'new_notes': 'Extra hot', 'new_add_on_ids': [self.oat.id],
        }

        response = self.client.post(reverse('orders:pos-item-edit'), payload, format='json')

        line = response.data['cart'][0]
        self.assertEqual(line['size'], 'L')
        self.assertEqual(line['notes'], 'Extra hot')
        self.assertEqual(line['item_price'], '13.50')

    def test_context_changes_fees(self):
        Fee.objects.create(name='Packaging', amount=Decimal('1.00'), applies_to='takeaway')
        self.add_latte()

        response = self.client.patch(
            reverse('orders:pos-context'),
            {'dining_type': 'takeaway', 'customer_name': 'Ali', 'customer_phone': '+60111111111'},
            format='json',
        )

        self.assertEqual(response.data['context']['dining_type'], 'takeaway')
        self.assertEqual(response.data['quote']['total'], '11.00')

    def test_discount_code_and_manual_discount(self):
        DiscountCode.objects.create(code='TENOFF', discount_type='percentage', value=Decimal('10'))
        self.add_latte(quantity=2)

        response = self.client.post(reverse('orders:pos-discount'), {'code': 'tenoff'}, format='json')
        self.assertEqual(response.data['quote']['discount_amount'], '2.00')

        response = self.client.post(reverse('orders:pos-discount'), {'amount': '5.00', 'reason': 'Regular'}, format='json')
        self.assertEqual(response.data['discount']['reason'], 'Regular')
        self.assertEqual(response.data['quote']['total'], '15.00')

        response = self.client.post(reverse('orders:pos-discount'), {'amount': '50.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Discount amount cannot exceed cart total')

        response = self.client.delete(reverse('orders:pos-discount'))
        self.assertIsNone(response.data['discount'])

    def test_discount_needs_code_or_amount(self):
        self.add_latte()
        response = self.client.post(reverse('orders:pos-discount'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_split_payments_and_checkout(self):
        self.add_latte(quantity=3)
        split_url = reverse('orders:pos-split-add')

        self.client.post(split_url, {'method': 'visa', 'amount': '20.00'}, format='json')
        response = self.client.post(split_url, {'method': 'cash', 'amount': '10.00', 'cash_received': '20.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['remaining_amount'], '0.00')

        over = self.client.post(split_url, {'method': 'visa', 'amount': '1.00'}, format='json')
        self.assertEqual(over.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(reverse('orders:pos-checkout'), {'payment_method': 'split'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_method'], 'split')
        self.assertEqual(response.data['change_due'], '10.00')
        self.assertEqual(len(response.data['split_payments']), 2)

        cart = self.client.get(reverse('orders:pos-cart'))
        self.assertEqual(cart.data['cart'], [])
        self.assertEqual(cart.data['split_payments'], [])

    def test_cart_change_clears_split_payments(self):
        self.add_latte(quantity=2)
        self.client.post(reverse('orders:pos-split-add'), {'method': 'visa', 'amount': '5.00'}, format='json')

        response = self.add_latte()

        self.assertEqual(response.data['split_payments'], [])

    def test_remove_split_payment(self):
        self.add_latte(quantity=2)
        self.client.post(reverse('orders:pos-split-add'), {'method': 'visa', 'amount': '5.00'}, format='json')

        response = self.client.delete(reverse('orders:pos-split-remove', kwargs={'index': 0}))
        self.assertEqual(response.data['remaining_amount'], '20.00')

        response = self.client.delete(reverse('orders:pos-split-remove', kwargs={'index': 0}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checkout_cash(self):
        self.add_latte()
        self.client.patch(reverse('orders:pos-context'), {'table_number': 9}, format='json')

        response = self.client.post(
            reverse('orders:pos-checkout'), {'payment_method': 'cash', 'cash_received': '20.00'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get()
        self.assertEqual(order.table_number, 9)
        self.assertEqual(order.change_due, Decimal('10.00'))
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.placed_by, self.cashier)

    def test_checkout_empty_cart(self):
        response = self.client.post(reverse('orders:pos-checkout'), {'payment_method': 'visa'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'cart_empty')

    def test_failed_checkout_keeps_cart(self):
        self.add_latte()

        response = self.client.post(reverse('orders:pos-checkout'), {'payment_method': 'cash'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(self.client.get(reverse('orders:pos-cart')).data['cart']), 1)

    def test_park_resume_and_discard(self):
        self.add_latte()
        parked = self.client.post(reverse('orders:pos-parked'))
        self.assertEqual(parked.status_code, status.HTTP_201_CREATED)
        self.assertEqual(parked.data['cart_total'], '10.00')

        listing = self.client.get(reverse('orders:pos-parked'))
        self.assertEqual(listing.data['count'], 1)

        response = self.client.post(reverse('orders:pos-parked-resume', kwargs={'parked_id': parked.data['id']}))
        self.assertEqual(len(response.data['cart']), 1)
        self.assertEqual(response.data['parked_count'], 0)

        parked = self.client.post(reverse('orders:pos-parked'))
        response = self.client.delete(reverse('orders:pos-parked-detail', kwargs={'parked_id': parked.data['id']}))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(reverse('orders:pos-parked')).data['count'], 0)

    def test_park_empty_cart(self):
        response = self.client.post(reverse('orders:pos-parked'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
