"""
POS terminal state kept in the Django session.

The working cart, its order context, the selected discount, split payments
and parked orders belong to one cashier session and are never written to the
database. ``load_state``/``save_state`` convert between the session's JSON
payload and ``PosState``.
"""
import uuid
from dataclasses import dataclass, field, replace
from typing import List, Optional

from django.utils import timezone

from .cart import Cart
from .choices import DiningType
from .exceptions import CartError
from .payments import SplitPayment
from .pricing import AppliedDiscount

SESSION_KEY = 'pos_state'


@dataclass
class OrderContext:
    dining_type: str = DiningType.DINE_IN
    table_number: Optional[int] = None
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    order_notes: str = ''

    def to_dict(self):
        return {
            'dining_type': str(self.dining_type),
            'table_number': self.table_number,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'customer_email': self.customer_email,
            'order_notes': self.order_notes,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            dining_type=data.get('dining_type', DiningType.DINE_IN),
            table_number=data.get('table_number'),
            customer_name=data.get('customer_name', ''),
            customer_phone=data.get('customer_phone', ''),
            customer_email=data.get('customer_email', ''),
            order_notes=data.get('order_notes', ''),
        )


@dataclass
class ParkedOrder:
    id: str
    cart: Cart
    context: OrderContext
    discount: Optional[AppliedDiscount]
    parked_at: str

    def to_dict(self):
        return {
            'id': self.id,
            'cart': self.cart.to_dict(),
            'context': self.context.to_dict(),
            'discount': self.discount.to_dict() if self.discount else None,
            'parked_at': self.parked_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            cart=Cart.from_dict(data.get('cart')),
            context=OrderContext.from_dict(data.get('context')),
            discount=AppliedDiscount.from_dict(data.get('discount')),
            parked_at=data['parked_at'],
        )


@dataclass
class PosState:
    cart: Cart = field(default_factory=Cart)
    context: OrderContext = field(default_factory=OrderContext)
    discount: Optional[AppliedDiscount] = None
    split_payments: List[SplitPayment] = field(default_factory=list)
    parked: List[ParkedOrder] = field(default_factory=list)

    def invalidate_payments(self):
        # Split amounts were taken against the previous total
        self.split_payments = []

    def select_discount(self, discount):
        """A cart carries at most one discount; a new one replaces the old"""
        self.discount = discount
        self.invalidate_payments()

    def reset(self):
        """Clear the working order, keeping parked orders"""
        self.cart = Cart()
        self.context = OrderContext()
        self.discount = None
        self.split_payments = []

    def park(self, now=None) -> ParkedOrder:
        if self.cart.is_empty:
            raise CartError('Cannot park an empty cart')
        now = now or timezone.now()
        parked = ParkedOrder(
            id=str(uuid.uuid4()),
            cart=self.cart,
            context=replace(self.context),
            discount=self.discount,
            parked_at=now.isoformat(),
        )
        self.parked.append(parked)
        self.reset()
        return parked

    def find_parked(self, parked_id) -> ParkedOrder:
        for parked in self.parked:
            if parked.id == parked_id:
                return parked
        raise CartError('Parked order not found', code='parked_not_found')

    def resume(self, parked_id) -> ParkedOrder:
        """
        Restore a parked order as the working order and drop it from the list.
        A non-empty working cart is parked first so nothing is lost.
        """
        parked = self.find_parked(parked_id)
        self.parked.remove(parked)
        if not self.cart.is_empty:
            self.park()
        self.cart = parked.cart
        self.context = parked.context
        self.discount = parked.discount
        self.split_payments = []
        return parked

    def discard_parked(self, parked_id):
        parked = self.find_parked(parked_id)
        self.parked.remove(parked)
        return parked

    def to_dict(self):
        return {
            'cart': self.cart.to_dict(),
            'context': self.context.to_dict(),
            'discount': self.discount.to_dict() if self.discount else None,
            'split_payments': [split.to_dict() for split in self.split_payments],
            'parked': [parked.to_dict() for parked in self.parked],
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            cart=Cart.from_dict(data.get('cart')),
            context=OrderContext.from_dict(data.get('context')),
            discount=AppliedDiscount.from_dict(data.get('discount')),
            split_payments=[SplitPayment.from_dict(s) for s in data.get('split_payments', [])],
            parked=[ParkedOrder.from_dict(p) for p in data.get('parked', [])],
        )


def load_state(session) -> PosState:
    return PosState.from_dict(session.get(SESSION_KEY))


def save_state(session, state: PosState):
    session[SESSION_KEY] = state.to_dict()
    session.modified = True
