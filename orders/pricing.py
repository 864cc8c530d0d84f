"""
Order pricing.

Money is handled as ``Decimal`` quantized to cents (half-up). Fees compound in
list order: a percentage fee is charged on the running total that already
contains the fees before it. Discounts are computed on the base cart subtotal,
not on the fee-inclusive subtotal, and the final total never drops below zero.

A 10% service fee followed by a 2.00 flat fee on a 100.00 subtotal gives
110.00 and then 112.00, i.e. 12.00 of fees.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from django.conf import settings
from django.utils import timezone

from .choices import DiscountType, FeeScope, FeeType
from .exceptions import CartError, DiscountError

CENT = Decimal('0.01')
HUNDRED = Decimal('100')
ZERO = Decimal('0.00')

MANUAL_DISCOUNT_LABEL = 'Manual Discount'


def money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return f"{settings.CAFE_POS['CURRENCY']}{money(value)}"


# =============== SIZES ===============

def size_base_price(price, size_name, size_row=None) -> Decimal:
    """
    Base price of one unit in the given size.

    A configured size row wins; its ``price_override`` replaces the price
    outright, otherwise its multiplier scales the product price. Without a
    row the default multipliers from settings apply.
    """
    price = Decimal(str(price))
    if size_row is not None:
        if size_row.price_override is not None:
            return money(size_row.price_override)
        return money(price * Decimal(str(size_row.price_multiplier)))

    multipliers = settings.CAFE_POS['SIZE_MULTIPLIERS']
    if size_name not in multipliers:
        raise CartError(f"Size '{size_name}' is not available")
    return money(price * Decimal(str(multipliers[size_name])))


# =============== FEES ===============

@dataclass(frozen=True)
class FeeLine:
    name: str
    fee_type: str
    rate: Decimal
    amount: Decimal

    def to_dict(self):
        return {
            'name': self.name,
            'fee_type': self.fee_type,
            'rate': str(self.rate),
            'amount': str(self.amount),
        }


def applicable_fees(fees, dining_type):
    """Active fees scoped to the dining type or to every type, order preserved"""
    return [
        fee for fee in fees
        if fee.active and fee.applies_to in (dining_type, FeeScope.BOTH)
    ]


def apply_fees(subtotal, fees):
    """
    Compound ``fees`` onto ``subtotal`` in order.

    Returns ``(fees_total, fee_lines)``.
    """
    base = money(subtotal)
    running = base
    lines = []
    for fee in fees:
        rate = Decimal(str(fee.amount))
        if fee.fee_type == FeeType.PERCENTAGE:
            amount = money(running * rate / HUNDRED)
        else:
            amount = money(rate)
        running += amount
        lines.append(FeeLine(name=fee.name, fee_type=fee.fee_type, rate=rate, amount=amount))
    return running - base, lines


# =============== DISCOUNTS ===============

@dataclass(frozen=True)
class AppliedDiscount:
    """The single discount selected for a cart, coded or manual"""
    source: str
    discount_type: str
    value: Decimal
    code: str = ''
    discount_id: Optional[int] = None
    reason: str = ''

    SOURCE_CODE = 'code'
    SOURCE_MANUAL = 'manual'

    @property
    def is_manual(self):
        return self.source == self.SOURCE_MANUAL

    @property
    def label(self):
        if self.is_manual:
            return self.reason or MANUAL_DISCOUNT_LABEL
        return self.code

    def amount_for(self, base_subtotal) -> Decimal:
        if self.discount_type == DiscountType.PERCENTAGE:
            return money(Decimal(str(base_subtotal)) * self.value / HUNDRED)
        return money(self.value)

    def to_dict(self):
        return {
            'source': self.source,
            'discount_type': self.discount_type,
            'value': str(self.value),
            'code': self.code,
            'discount_id': self.discount_id,
            'reason': self.reason,
        }

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        return cls(
            source=data['source'],
            discount_type=data['discount_type'],
            value=Decimal(data['value']),
            code=data.get('code', ''),
            discount_id=data.get('discount_id'),
            reason=data.get('reason', ''),
        )


def validate_discount_code(discount, subtotal_with_fees, dining_type, now=None) -> AppliedDiscount:
    """
    Check a discount code against the current cart.

    Raises DiscountError with a customer-facing message on the first failed
    rule: active and unexpired, valid for the order type, the fee-inclusive
    subtotal reaching the minimum order amount, and the usage limit.
    """
    now = now or timezone.now()
    if discount is None or not discount.active or (discount.expires_at and discount.expires_at < now):
        raise DiscountError('Invalid or expired discount code', code='discount_invalid')

    applies_to = discount.applies_to or []
    if applies_to and dining_type not in applies_to:
        raise DiscountError('This discount is not valid for this order type.', code='discount_order_type')

    minimum = discount.min_order_amount or ZERO
    if money(subtotal_with_fees) < money(minimum):
        raise DiscountError(
            f"Minimum order amount of {format_money(minimum)} required for this discount",
            code='discount_minimum',
            details={'min_order_amount': str(money(minimum))},
        )

    if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
        raise DiscountError('This discount code has reached its usage limit', code='discount_exhausted')

    return AppliedDiscount(
        source=AppliedDiscount.SOURCE_CODE,
        discount_type=discount.discount_type,
        value=Decimal(str(discount.value)),
        code=discount.code,
        discount_id=discount.pk,
    )


def manual_discount(amount, reason, cart_total) -> AppliedDiscount:
    """A flat staff-entered discount, capped at the base cart total"""
    try:
        amount = money(amount)
    except (ArithmeticError, ValueError, TypeError):
        raise DiscountError('Please enter a valid discount amount', code='discount_amount')
    if amount <= 0:
        raise DiscountError('Please enter a valid discount amount', code='discount_amount')
    if amount > money(cart_total):
        raise DiscountError('Discount amount cannot exceed cart total', code='discount_amount')
    return AppliedDiscount(
        source=AppliedDiscount.SOURCE_MANUAL,
        discount_type=DiscountType.FIXED,
        value=amount,
        reason=(reason or '').strip(),
    )


# =============== QUOTE ===============

@dataclass
class Quote:
    subtotal: Decimal
    fees_total: Decimal
    subtotal_with_fees: Decimal
    discount_amount: Decimal
    total: Decimal
    fee_lines: List[FeeLine] = field(default_factory=list)
    discount: Optional[AppliedDiscount] = None

    def to_dict(self):
        return {
            'subtotal': str(self.subtotal),
            'fees': [line.to_dict() for line in self.fee_lines],
            'fees_total': str(self.fees_total),
            'subtotal_with_fees': str(self.subtotal_with_fees),
            'discount': self.discount.to_dict() if self.discount else None,
            'discount_amount': str(self.discount_amount),
            'total': str(self.total),
        }


def quote(subtotal, fees, dining_type, discount=None) -> Quote:
    """Price a cart subtotal for a dining type with an optional discount"""
    subtotal = money(subtotal)
    fees_total, fee_lines = apply_fees(subtotal, applicable_fees(fees, dining_type))
    subtotal_with_fees = subtotal + fees_total
    discount_amount = discount.amount_for(subtotal) if discount else ZERO
    total = max(ZERO, subtotal_with_fees - discount_amount)
    return Quote(
        subtotal=subtotal,
        fees_total=fees_total,
        subtotal_with_fees=subtotal_with_fees,
        discount_amount=discount_amount,
        total=total,
        fee_lines=fee_lines,
        discount=discount,
    )
