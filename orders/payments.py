"""Payment validation for order submission, including split payments."""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from .choices import PaymentMethod
from .exceptions import PaymentError
from .pricing import ZERO, format_money, money

SPLIT_METHODS = [PaymentMethod.CASH, PaymentMethod.VISA, PaymentMethod.MASTER, PaymentMethod.QR]


@dataclass(frozen=True)
class SplitPayment:
    method: str
    amount: Decimal
    cash_received: Optional[Decimal] = None

    @property
    def change(self) -> Decimal:
        if self.method != PaymentMethod.CASH or self.cash_received is None:
            return ZERO
        return money(self.cash_received - self.amount)

    def to_dict(self):
        return {
            'method': self.method,
            'amount': str(self.amount),
            'cash_received': str(self.cash_received) if self.cash_received is not None else None,
        }

    @classmethod
    def from_dict(cls, data):
        cash = data.get('cash_received')
        return cls(
            method=data['method'],
            amount=money(data['amount']),
            cash_received=money(cash) if cash not in (None, '') else None,
        )


@dataclass(frozen=True)
class PaymentResult:
    method: str
    cash_received: Optional[Decimal]
    change_due: Decimal
    split_payments: List[SplitPayment]


def paid_amount(splits) -> Decimal:
    return money(sum((split.amount for split in splits), Decimal('0')))


def remaining_amount(total, splits) -> Decimal:
    return money(total) - paid_amount(splits)


def add_split_payment(splits, payment: SplitPayment, total) -> List[SplitPayment]:
    """Return a new split list with ``payment`` appended"""
    if payment.method not in SPLIT_METHODS:
        raise PaymentError(f"Unsupported split payment method '{payment.method}'")
    if payment.amount <= 0:
        raise PaymentError('Please enter a valid amount')
    remaining = remaining_amount(total, splits)
    if payment.amount > remaining:
        raise PaymentError(
            f"Amount exceeds the remaining balance of {format_money(remaining)}",
            details={'remaining': str(remaining)},
        )
    if payment.cash_received is not None and payment.cash_received < payment.amount:
        raise PaymentError('Cash received is less than the split amount')
    return list(splits) + [payment]


def remove_split_payment(splits, index) -> List[SplitPayment]:
    if index < 0 or index >= len(splits):
        raise PaymentError('Split payment not found')
    return [split for position, split in enumerate(splits) if position != index]


def validate_payment(method, total, cash_received=None, has_proof=False, split_payments=()) -> PaymentResult:
    """
    Check that the payment covers ``total``.

    Split payments must add up to the total exactly; a positive remaining
    balance blocks submission. Cash needs at least the total in hand, QR
    needs an uploaded proof of payment.
    """
    total = money(total)
    splits = list(split_payments)

    if splits:
        remaining = remaining_amount(total, splits)
        if remaining > 0:
            raise PaymentError(
                f"Remaining amount of {format_money(remaining)} must be paid",
                code='payment_remaining',
                details={'remaining': str(remaining)},
            )
        if remaining < 0:
            raise PaymentError('Split payments exceed the order total', code='payment_overpaid')
        for split in splits:
            if split.method not in SPLIT_METHODS or split.amount <= 0:
                raise PaymentError('Invalid split payment', code='payment_split_invalid')
            if split.method == PaymentMethod.QR and not has_proof:
                raise PaymentError('Please upload payment proof for QR payment', code='payment_proof_required')
        cash_splits = [s for s in splits if s.method == PaymentMethod.CASH and s.cash_received is not None]
        change = money(sum((s.change for s in cash_splits), Decimal('0')))
        cash = money(sum((s.cash_received for s in cash_splits), Decimal('0'))) if cash_splits else None
        return PaymentResult(PaymentMethod.SPLIT, cash, change, splits)

    if method not in PaymentMethod.values or method == PaymentMethod.SPLIT:
        raise PaymentError('Please select a payment method', code='payment_method_required')

    if method == PaymentMethod.QR and not has_proof:
        raise PaymentError('Please upload payment proof for QR payment', code='payment_proof_required')

    if method == PaymentMethod.CASH:
        if cash_received is None:
            raise PaymentError('Please enter the cash received', code='payment_cash_required')
        cash_received = money(cash_received)
        if cash_received < total:
            raise PaymentError(
                f"Cash received is less than the total of {format_money(total)}",
                code='payment_cash_short',
            )
        return PaymentResult(method, cash_received, cash_received - total, [])

    return PaymentResult(method, None, ZERO, [])
