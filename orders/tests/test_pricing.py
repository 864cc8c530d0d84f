from datetime import timedelta
from decimal import Decimal

from django.test import SimpleTestCase
from django.utils import timezone

from inventory.models import ProductSize
from orders.cart import AddOnChoice, Cart
from orders.exceptions import CartError, DiscountError
from orders.models import DiscountCode, Fee
from orders.pricing import (
    AppliedDiscount, apply_fees, applicable_fees, manual_discount, money, quote,
    size_base_price, validate_discount_code,
)


def percentage_fee(name, amount, applies_to='both'):
    return Fee(name=name, amount=Decimal(amount), fee_type='percentage', applies_to=applies_to, active=True)


def fixed_fee(name, amount, applies_to='both'):
    return Fee(name=name, amount=Decimal(amount), fee_type='fixed', applies_to=applies_to, active=True)


class SizePriceTests(SimpleTestCase):

    def test_default_multipliers(self):
        self.assertEqual(size_base_price(Decimal('10.00'), 'S'), Decimal('8.00'))
        self.assertEqual(size_base_price(Decimal('10.00'), 'M'), Decimal('10.00'))
        self.assertEqual(size_base_price(Decimal('10.00'), 'L'), Decimal('12.00'))
        self.assertEqual(size_base_price(Decimal('10.00'), 'XL'), Decimal('14.00'))

    def test_size_row_multiplier(self):
        row = ProductSize(size_name='L', price_multiplier=Decimal('1.50'))
        self.assertEqual(size_base_price(Decimal('10.00'), 'L', row), Decimal('15.00'))

    def test_price_override_wins(self):
        row = ProductSize(size_name='L', price_multiplier=Decimal('1.50'), price_override=Decimal('13.90'))
        self.assertEqual(size_base_price(Decimal('10.00'), 'L', row), Decimal('13.90'))

    def test_rounds_half_up_to_cents(self):
        self.assertEqual(size_base_price(Decimal('0.99'), 'L'), Decimal('1.19'))
        row = ProductSize(size_name='M', price_multiplier=Decimal('1.15'))
        self.assertEqual(size_base_price(Decimal('0.30'), 'M', row), Decimal('0.35'))

    def test_unknown_size(self):
        with self.assertRaises(CartError):
            size_base_price(Decimal('10.00'), 'XXL')

    def test_large_latte_with_add_on(self):
        cart = Cart()
        line = cart.add(
            1, 'Latte', 'L', size_base_price(Decimal('10.00'), 'L'),
            add_ons=[AddOnChoice(id=1, name='Syrup', price=Decimal('2.00'))],
        )
        self.assertEqual(line.item_total, Decimal('14.00'))


class FeeTests(SimpleTestCase):

    def test_fees_compound_in_order(self):
        fees_total, lines = apply_fees(Decimal('100.00'), [percentage_fee('Service', '10'), fixed_fee('Packaging', '2')])

        self.assertEqual([line.amount for line in lines], [Decimal('10.00'), Decimal('2.00')])
        self.assertEqual(fees_total, Decimal('12.00'))

    def test_percentage_after_fixed_fee_uses_running_total(self):
        fees_total, lines = apply_fees(Decimal('100.00'), [fixed_fee('Packaging', '2'), percentage_fee('Service', '10')])

        self.assertEqual(lines[1].amount, Decimal('10.20'))
        self.assertEqual(fees_total, Decimal('12.20'))

    def test_applicable_fees_by_dining_type(self):
        fees = [
            percentage_fee('Service', '10', applies_to='dine_in'),
            fixed_fee('Packaging', '1', applies_to='takeaway'),
            fixed_fee('Card', '0.50', applies_to='both'),
        ]
        inactive = fixed_fee('Old', '5')
        inactive.active = False

        names = [fee.name for fee in applicable_fees(fees + [inactive], 'takeaway')]

        self.assertEqual(names, ['Packaging', 'Card'])

    def test_quote_with_fees(self):
        priced = quote(Decimal('100.00'), [percentage_fee('Service', '10'), fixed_fee('Packaging', '2')], 'dine_in')

        self.assertEqual(priced.fees_total, Decimal('12.00'))
        self.assertEqual(priced.subtotal_with_fees, Decimal('112.00'))
        self.assertEqual(priced.total, Decimal('112.00'))


class DiscountCodeTests(SimpleTestCase):

    def make_code(self, **kwargs):
        values = {
            'code': 'SAVE10', 'discount_type': 'percentage', 'value': Decimal('10'),
            'min_order_amount': Decimal('0'), 'usage_limit': None, 'usage_count': 0,
            'applies_to': [], 'active': True, 'expires_at': None,
        }
        values.update(kwargs)
        return DiscountCode(**values)

    def test_valid_code(self):
        applied = validate_discount_code(self.make_code(), Decimal('40.00'), 'dine_in')

        self.assertEqual(applied.code, 'SAVE10')
        self.assertFalse(applied.is_manual)
        self.assertEqual(applied.amount_for(Decimal('40.00')), Decimal('4.00'))

    def test_missing_code(self):
        with self.assertRaisesMessage(DiscountError, 'Invalid or expired discount code'):
            validate_discount_code(None, Decimal('40.00'), 'dine_in')

    def test_inactive_code(self):
        with self.assertRaisesMessage(DiscountError, 'Invalid or expired discount code'):
            validate_discount_code(self.make_code(active=False), Decimal('40.00'), 'dine_in')

    def test_expired_code(self):
        code = self.make_code(expires_at=timezone.now() - timedelta(days=1))
        with self.assertRaisesMessage(DiscountError, 'Invalid or expired discount code'):
            validate_discount_code(code, Decimal('40.00'), 'dine_in')

    def test_wrong_order_type(self):
        code = self.make_code(applies_to=['takeaway'])
        with self.assertRaisesMessage(DiscountError, 'This discount is not valid for this order type.'):
            validate_discount_code(code, Decimal('40.00'), 'dine_in')

    def test_minimum_order_amount(self):
        code = self.make_code(min_order_amount=Decimal('50.00'))
        with self.assertRaisesMessage(DiscountError, 'Minimum order amount of RM50.00 required for this discount'):
            validate_discount_code(code, Decimal('40.00'), 'dine_in')

    def test_minimum_is_checked_against_fee_inclusive_subtotal(self):
        code = self.make_code(min_order_amount=Decimal('50.00'))
        applied = validate_discount_code(code, Decimal('50.00'), 'dine_in')
        self.assertEqual(applied.code, 'SAVE10')

    def test_usage_limit_reached(self):
        code = self.make_code(usage_limit=5, usage_count=5)
        with self.assertRaisesMessage(DiscountError, 'This discount code has reached its usage limit'):
            validate_discount_code(code, Decimal('40.00'), 'dine_in')

    def test_discount_uses_base_subtotal_not_fees(self):
        applied = validate_discount_code(self.make_code(), Decimal('112.00'), 'dine_in')

        priced = quote(Decimal('100.00'), [percentage_fee('Service', '10'), fixed_fee('Packaging', '2')], 'dine_in', applied)

        self.assertEqual(priced.discount_amount, Decimal('10.00'))
        self.assertEqual(priced.total, Decimal('102.00'))


class ManualDiscountTests(SimpleTestCase):

    def test_manual_discount(self):
        applied = manual_discount('5', 'Regular customer', Decimal('20.00'))

        self.assertTrue(applied.is_manual)
        self.assertEqual(applied.label, 'Regular customer')
        self.assertEqual(applied.amount_for(Decimal('20.00')), Decimal('5.00'))

    def test_default_label(self):
        self.assertEqual(manual_discount('5', '', Decimal('20.00')).label, 'Manual Discount')

    def test_rejects_non_positive(self):
        with self.assertRaisesMessage(DiscountError, 'Please enter a valid discount amount'):
            manual_discount('0', '', Decimal('20.00'))
        with self.assertRaisesMessage(DiscountError, 'Please enter a valid discount amount'):
            manual_discount('abc', '', Decimal('20.00'))

    def test_rejects_more_than_cart_total(self):
        with self.assertRaisesMessage(DiscountError, 'Discount amount cannot exceed cart total'):
            manual_discount('25', '', Decimal('20.00'))

    def test_total_never_negative(self):
        fixed = AppliedDiscount(source='code', discount_type='fixed', value=Decimal('50.00'), code='BIG')
        priced = quote(Decimal('20.00'), [], 'takeaway', fixed)

        self.assertEqual(priced.total, Decimal('0.00'))

    def test_full_manual_discount_leaves_fees(self):
        applied = manual_discount('20', '', Decimal('20.00'))
        priced = quote(Decimal('20.00'), [fixed_fee('Packaging', '1')], 'takeaway', applied)

        self.assertEqual(priced.total, Decimal('1.00'))
        self.assertEqual(money(priced.total), priced.total)
