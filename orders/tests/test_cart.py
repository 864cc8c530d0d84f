from decimal import Decimal

from django.test import SimpleTestCase

from orders.cart import AddOnChoice, Cart, LineKey
from orders.exceptions import CartError, LineNotFound

OAT_MILK = AddOnChoice(id=1, name='Oat milk', price=Decimal('1.50'))
EXTRA_SHOT = AddOnChoice(id=2, name='Extra shot', price=Decimal('2.00'))


class CartMergeTests(SimpleTestCase):
    """Adding the same configuration merges into one line"""

    def setUp(self):
        self.cart = Cart()

    def test_same_configuration_merges(self):
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'))
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'))

        self.assertEqual(len(self.cart.lines), 1)
        self.assertEqual(self.cart.lines[0].quantity, 2)

    def test_add_on_order_does_not_matter(self):
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'), add_ons=[OAT_MILK, EXTRA_SHOT])
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'), add_ons=[EXTRA_SHOT, OAT_MILK])

        self.assertEqual(len(self.cart.lines), 1)
        self.assertEqual(self.cart.lines[0].quantity, 2)

    def test_different_size_is_a_new_line(self):
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'))
        self.cart.add(1, 'Latte', 'L', Decimal('12.00'))

        self.assertEqual(len(self.cart.lines), 2)

    def test_notes_are_compared_verbatim(self):
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'), notes='No ice')
        self.cart.add(1, 'Latte', 'M', Decimal('10.00'), notes='no ice')

        self.assertEqual(len(self.cart.lines), 2)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(CartError):
            self.cart.add(1, 'Latte', 'M', Decimal('10.00'), quantity=0)


class CartUpdateTests(SimpleTestCase):

    def setUp(self):
        self.cart = Cart()
        self.line = self.cart.add(1, 'Latte', 'M', Decimal('10.00'), add_ons=[OAT_MILK])

    def test_update_quantity(self):
        self.cart.update_quantity(self.line.key, 3)
        self.assertEqual(self.cart.lines[0].quantity, 3)

    def test_update_to_zero_removes_line(self):
        result = self.cart.update_quantity(self.line.key, 0)

        self.assertIsNone(result)
        self.assertTrue(self.cart.is_empty)

    def test_update_to_negative_removes_line(self):
        self.cart.update_quantity(self.line.key, -2)
        self.assertTrue(self.cart.is_empty)

    def test_unknown_line_raises(self):
        with self.assertRaises(LineNotFound):
            self.cart.update_quantity(LineKey.build(99, 'M'), 1)
        with self.assertRaises(LineNotFound):
            self.cart.remove(LineKey.build(1, 'L'))

    def test_remove(self):
        self.cart.remove(LineKey.build(1, 'M', '', [1]))
        self.assertTrue(self.cart.is_empty)

    def test_replace_keeps_position_and_quantity(self):
        self.cart.add(2, 'Mocha', 'M', Decimal('11.00'))
        self.cart.update_quantity(self.line.key, 2)

        edited = self.cart.replace(self.line.key, 'L', Decimal('12.00'), notes='Hot', add_ons=[])

        self.assertEqual(self.cart.lines[0], edited)
        self.assertEqual(edited.size, 'L')
        self.assertEqual(edited.quantity, 2)
        self.assertEqual(edited.add_ons, ())

    def test_replace_into_existing_configuration_merges(self):
        self.cart.add(1, 'Latte', 'L', Decimal('12.00'))

        merged = self.cart.replace(self.line.key, 'L', Decimal('12.00'))

        self.assertEqual(len(self.cart.lines), 1)
        self.assertEqual(merged.quantity, 2)

    def test_clear(self):
        self.cart.clear()
        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.cart.total, Decimal('0.00'))


class CartTotalsTests(SimpleTestCase):

    def test_item_price_includes_add_ons(self):
        cart = Cart()
        line = cart.add(1, 'Latte', 'M', Decimal('10.00'), add_ons=[OAT_MILK, EXTRA_SHOT], quantity=2)

        self.assertEqual(line.item_price, Decimal('13.50'))
        self.assertEqual(line.item_total, Decimal('27.00'))
        self.assertEqual(cart.total, Decimal('27.00'))
        self.assertEqual(cart.item_count, 2)

    def test_session_payload_restores_cart(self):
        cart = Cart()
        cart.add(1, 'Latte', 'M', Decimal('10.00'), notes='Less sugar', add_ons=[OAT_MILK], quantity=2)

        restored = Cart.from_dict(cart.to_dict())

        self.assertEqual(restored.lines[0].key, cart.lines[0].key)
        self.assertEqual(restored.total, Decimal('23.00'))
