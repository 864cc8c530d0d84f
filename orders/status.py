"""
Order status machine shared by the cashier, kitchen and tracking views.
"""
from datetime import timedelta

from django.conf import settings

from .choices import DiningType, OrderStatus, PaymentMethod
from .exceptions import InvalidStatusTransition

TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

TRANSITIONS = {
    OrderStatus.PAYMENT_VERIFICATION: {OrderStatus.PAYMENT_VERIFIED, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PAYMENT_VERIFIED: {OrderStatus.PREPARING, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.RESERVATION_CONFIRMED: {OrderStatus.RESERVATION_READY, OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.RESERVATION_READY: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

# Kitchen buttons: one step forward
KITCHEN_NEXT = {
    OrderStatus.PENDING: OrderStatus.PREPARING,
    OrderStatus.RESERVATION_CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
}

KITCHEN_STATUSES = [OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.RESERVATION_CONFIRMED]
KITCHEN_DINING_TYPES = [DiningType.DINE_IN, DiningType.TAKEAWAY, DiningType.RESERVATION]

RATEABLE_STATUSES = {OrderStatus.READY, OrderStatus.COMPLETED}

# =============== TRACKING ===============

ORDER_STEPS = [
    OrderStatus.PAYMENT_VERIFICATION,
    OrderStatus.PAYMENT_VERIFIED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
]

RESERVATION_STEPS = [
    OrderStatus.RESERVATION_CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.RESERVATION_READY,
    OrderStatus.COMPLETED,
]

PROGRESS_INDEX = {
    OrderStatus.PAYMENT_VERIFICATION: 0,
    OrderStatus.PENDING: 0,
    OrderStatus.PAYMENT_VERIFIED: 1,
    OrderStatus.RESERVATION_CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.RESERVATION_READY: 3,
    OrderStatus.COMPLETED: 4,
    OrderStatus.CANCELLED: 4,
}

STATUS_MESSAGES = {
    OrderStatus.PAYMENT_VERIFICATION: 'We are verifying your payment. This usually takes a few minutes.',
    OrderStatus.PAYMENT_VERIFIED: 'Payment confirmed. Your order will be prepared shortly.',
    OrderStatus.PENDING: 'Your order has been received and is waiting for the kitchen.',
    OrderStatus.PREPARING: 'Our baristas are preparing your order.',
    OrderStatus.READY: 'Your order is ready for pickup!',
    OrderStatus.COMPLETED: 'Order completed. Thank you for visiting!',
    OrderStatus.CANCELLED: 'This order has been cancelled. Please contact staff if you have questions.',
}

RESERVATION_MESSAGES = {
    OrderStatus.RESERVATION_CONFIRMED: 'Your reservation is confirmed. We will start preparing before you arrive.',
    OrderStatus.PREPARING: 'We are preparing your reserved order.',
    OrderStatus.RESERVATION_READY: 'Your table and order are ready. See you soon!',
    OrderStatus.COMPLETED: 'Reservation completed. Thank you for dining with us!',
    OrderStatus.CANCELLED: 'This reservation has been cancelled.',
}


def can_transition(current, target):
    return target in TRANSITIONS.get(current, set())


def ensure_transition(current, target):
    if target not in OrderStatus.values:
        raise InvalidStatusTransition(f"Unknown status '{target}'", code='unknown_status')
    if not can_transition(current, target):
        raise InvalidStatusTransition(
            f"Cannot move order from {current} to {target}",
            details={'current': current, 'allowed': sorted(str(s) for s in TRANSITIONS.get(current, set()))},
        )


def next_kitchen_status(current):
    try:
        return KITCHEN_NEXT[current]
    except KeyError:
        raise InvalidStatusTransition(f"Kitchen cannot advance an order that is {current}")


def initial_status(dining_type, payment_method, placed_by_staff):
    if dining_type == DiningType.RESERVATION:
        return OrderStatus.RESERVATION_CONFIRMED
    if payment_method == PaymentMethod.QR and not placed_by_staff:
        return OrderStatus.PAYMENT_VERIFICATION
    return OrderStatus.PENDING


def is_reservation_flow(order):
    return order.dining_type == DiningType.RESERVATION or order.status in (
        OrderStatus.RESERVATION_CONFIRMED, OrderStatus.RESERVATION_READY
    )


def progress_index(status):
    return PROGRESS_INDEX.get(status, 0)


def tracking_message(order):
    messages = RESERVATION_MESSAGES if is_reservation_flow(order) else STATUS_MESSAGES
    return messages.get(order.status) or STATUS_MESSAGES.get(order.status, '')


def tracking_steps(order):
    steps = RESERVATION_STEPS if is_reservation_flow(order) else ORDER_STEPS
    return [
        {'status': step.value, 'label': step.label, 'index': PROGRESS_INDEX[step]}
        for step in steps
    ]


# =============== KITCHEN TIMING ===============

def minutes_waiting(created_at, now):
    return max(0, int((now - created_at).total_seconds() // 60))


def is_urgent(created_at, now):
    limit = timedelta(minutes=settings.CAFE_POS['KITCHEN_URGENT_MINUTES'])
    return now - created_at > limit
