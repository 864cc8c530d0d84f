from decimal import Decimal

from django.test import SimpleTestCase

from orders.exceptions import PaymentError
from orders.payments import (
    SplitPayment, add_split_payment, remaining_amount, remove_split_payment, validate_payment,
)


class SplitPaymentTests(SimpleTestCase):
    """Split payments against a RM30.00 total"""

    total = Decimal('30.00')

    def test_add_and_remaining(self):
        splits = add_split_payment([], SplitPayment('visa', Decimal('10.00')), self.total)
        splits = add_split_payment(splits, SplitPayment('cash', Decimal('5.00'), Decimal('10.00')), self.total)

        self.assertEqual(len(splits), 2)
        self.assertEqual(remaining_amount(self.total, splits), Decimal('15.00'))
        self.assertEqual(splits[1].change, Decimal('5.00'))

    def test_rejects_non_positive_amount(self):
        with self.assertRaisesMessage(PaymentError, 'Please enter a valid amount'):
            add_split_payment([], SplitPayment('visa', Decimal('0.00')), self.total)

    def test_rejects_amount_above_remaining(self):
        splits = [SplitPayment('visa', Decimal('25.00'))]
        with self.assertRaises(PaymentError) as ctx:
            add_split_payment(splits, SplitPayment('cash', Decimal('6.00')), self.total)
        self.assertEqual(ctx.exception.details['remaining'], '5.00')

    def test_rejects_short_cash(self):
        with self.assertRaises(PaymentError):
            add_split_payment([], SplitPayment('cash', Decimal('10.00'), Decimal('5.00')), self.total)

    def test_rejects_split_as_split_method(self):
        with self.assertRaises(PaymentError):
            add_split_payment([], SplitPayment('split', Decimal('10.00')), self.total)

    def test_remove(self):
        splits = [SplitPayment('visa', Decimal('10.00')), SplitPayment('master', Decimal('5.00'))]

        remaining = remove_split_payment(splits, 0)

        self.assertEqual([s.method for s in remaining], ['master'])
        with self.assertRaises(PaymentError):
            remove_split_payment(splits, 5)

    def test_submission_blocked_until_fully_paid(self):
        splits = [SplitPayment('visa', Decimal('20.00'))]
        with self.assertRaisesMessage(PaymentError, 'Remaining amount of RM10.00 must be paid'):
            validate_payment('split', self.total, split_payments=splits)

        splits.append(SplitPayment('cash', Decimal('10.00'), Decimal('20.00')))
        result = validate_payment('split', self.total, split_payments=splits)

        self.assertEqual(result.method, 'split')
        self.assertEqual(result.cash_received, Decimal('20.00'))
        self.assertEqual(result.change_due, Decimal('10.00'))

    def test_overpaid_splits_rejected(self):
        splits = [SplitPayment('visa', Decimal('20.00')), SplitPayment('master', Decimal('15.00'))]
        with self.assertRaisesMessage(PaymentError, 'Split payments exceed the order total'):
            validate_payment('split', self.total, split_payments=splits)

    def test_qr_split_needs_proof(self):
        splits = [SplitPayment('visa', Decimal('20.00')), SplitPayment('qr', Decimal('10.00'))]
        with self.assertRaisesMessage(PaymentError, 'Please upload payment proof for QR payment'):
            validate_payment('split', self.total, split_payments=splits)

        result = validate_payment('split', self.total, has_proof=True, split_payments=splits)
        self.assertEqual(result.method, 'split')


class SinglePaymentTests(SimpleTestCase):

    def test_cash_change(self):
        result = validate_payment('cash', Decimal('12.50'), cash_received=Decimal('20'))

        self.assertEqual(result.cash_received, Decimal('20.00'))
        self.assertEqual(result.change_due, Decimal('7.50'))

    def test_cash_short(self):
        with self.assertRaises(PaymentError):
            validate_payment('cash', Decimal('12.50'), cash_received=Decimal('10'))

    def test_cash_missing(self):
        with self.assertRaisesMessage(PaymentError, 'Please enter the cash received'):
            validate_payment('cash', Decimal('12.50'))

    def test_qr_requires_proof(self):
        with self.assertRaisesMessage(PaymentError, 'Please upload payment proof for QR payment'):
            validate_payment('qr', Decimal('12.50'))
        self.assertEqual(validate_payment('qr', Decimal('12.50'), has_proof=True).method, 'qr')

    def test_card(self):
        result = validate_payment('visa', Decimal('12.50'))
        self.assertEqual(result.change_due, Decimal('0.00'))
        self.assertIsNone(result.cash_received)

    def test_method_required(self):
        with self.assertRaisesMessage(PaymentError, 'Please select a payment method'):
            validate_payment('', Decimal('12.50'))
        with self.assertRaisesMessage(PaymentError, 'Please select a payment method'):
            validate_payment('split', Decimal('12.50'))
