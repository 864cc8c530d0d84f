"""
Order services: catalog resolution for the cart, pricing against live fees
and discount codes, order submission and its side effects, and status
changes made by the cashier and kitchen.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from inventory.models import Product
from inventory.services import record_sale
from .cart import AddOnChoice
from .choices import DiningType, OrderStatus, PaymentStatus
from .exceptions import CartError, DiscountError, InvalidStatusTransition, OrderValidationError
from .models import Customer, DiscountCode, Fee, Order, OrderRating
from .payments import validate_payment
from .pricing import manual_discount, money, quote, size_base_price, validate_discount_code
from .status import (
    KITCHEN_DINING_TYPES, KITCHEN_STATUSES, RATEABLE_STATUSES,
    ensure_transition, initial_status, is_urgent, minutes_waiting, next_kitchen_status,
)

logger = logging.getLogger(__name__)


# =============== CATALOG ===============

def resolve_cart_item(product_id, size, add_on_ids=()):
    """
    Look up the live catalog entry for a cart line.

    Returns the keyword arguments for ``Cart.add``/``Cart.replace``: the
    product name, the size's base price and the chosen add-ons.
    """
    try:
        product = Product.objects.prefetch_related('sizes', 'add_ons').get(pk=product_id, active=True)
    except Product.DoesNotExist:
        raise CartError('This product is not available', code='product_unavailable')

    sizes = product.available_sizes()
    size_row = None
    if sizes:
        if size not in sizes:
            raise CartError(f"Size '{size}' is not available for {product.name}", code='size_unavailable')
        size_row = sizes[size]

    wanted = {int(pk) for pk in add_on_ids}
    add_ons = sorted(
        (a for a in product.add_ons.all() if a.active and a.id in wanted),
        key=lambda a: a.id,
    )
    if len(add_ons) != len(wanted):
        raise CartError('One or more add-ons are not available for this product', code='add_on_unavailable')

    return {
        'product_id': product.id,
        'name': product.name,
        'size': size,
        'unit_price': size_base_price(product.price, size, size_row),
        'add_ons': tuple(AddOnChoice(id=a.id, name=a.name, price=money(a.price)) for a in add_ons),
    }


# =============== PRICING ===============

def active_fees():
    return list(Fee.objects.filter(active=True).order_by('name', 'id'))


def find_discount_code(code):
    code = (code or '').strip().upper()
    if not code:
        raise DiscountError('Please enter a discount code', code='discount_missing')
    return DiscountCode.objects.filter(code=code).first()


def apply_discount_code(code, cart_total, dining_type, fees=None):
    """Validate ``code`` for a cart total and return the applied discount"""
    discount = find_discount_code(code)
    fees = active_fees() if fees is None else fees
    priced = quote(cart_total, fees, dining_type)
    return validate_discount_code(discount, priced.subtotal_with_fees, dining_type)


def quote_cart(cart, dining_type, discount=None, fees=None):
    fees = active_fees() if fees is None else fees
    return quote(cart.total, fees, dining_type, discount)


# =============== ORDER SUBMISSION ===============

@dataclass
class OrderDetails:
    dining_type: str
    payment_method: str = ''
    table_number: Optional[int] = None
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    order_notes: str = ''
    reservation_date: Any = None
    reservation_time: Any = None
    party_size: Optional[int] = None
    cash_received: Optional[Decimal] = None
    payment_proof: Any = None
    split_payments: List[Any] = field(default_factory=list)
    placed_by: Any = None

    @property
    def placed_by_staff(self):
        return self.placed_by is not None and self.placed_by.is_authenticated


def validate_order_details(details):
    if details.dining_type not in DiningType.values:
        raise OrderValidationError('Please select a dining type', code='dining_type_required')

    if details.dining_type in (DiningType.TAKEAWAY, DiningType.RESERVATION):
        if not (details.customer_name or '').strip() or not (details.customer_phone or '').strip():
            raise OrderValidationError(
                'Customer name and phone number are required for takeaway and reservation orders',
                code='customer_required',
            )

    if details.dining_type == DiningType.RESERVATION:
        if not details.reservation_date or not details.reservation_time:
            raise OrderValidationError('Reservation date and time are required', code='reservation_required')

    if details.table_number is not None and details.table_number < 1:
        raise OrderValidationError('Table number must be a positive number', code='table_invalid')


def _confirm_discount(discount, cart_total, subtotal_with_fees, dining_type):
    """Re-check the selected discount against the cart being submitted"""
    if discount is None:
        return None, None
    if discount.is_manual:
        return manual_discount(discount.value, discount.reason, cart_total), None

    code = DiscountCode.objects.select_for_update().filter(pk=discount.discount_id).first()
    return validate_discount_code(code, subtotal_with_fees, dining_type), code


def submit_order(cart, details, discount=None):
    """
    Persist a cart as an order.

    The order row and the discount usage count are written in one
    transaction. Stock deduction and the customer record follow as separate
    best-effort steps; their failures are logged and leave the order in place.
    """
    if cart.is_empty:
        raise CartError('Cart is empty', code='cart_empty')
    validate_order_details(details)

    fees = active_fees()
    with transaction.atomic():
        base_quote = quote(cart.total, fees, details.dining_type)
        applied, code = _confirm_discount(
            discount, cart.total, base_quote.subtotal_with_fees, details.dining_type
        )
        priced = quote(cart.total, fees, details.dining_type, applied)

        payment = validate_payment(
            details.payment_method,
            priced.total,
            cash_received=details.cash_received,
            has_proof=bool(details.payment_proof),
            split_payments=details.split_payments,
        )

        status = initial_status(details.dining_type, payment.method, details.placed_by_staff)
        order = Order.objects.create(
            dining_type=details.dining_type,
            table_number=details.table_number,
            customer_name=(details.customer_name or '').strip(),
            customer_phone=(details.customer_phone or '').strip(),
            customer_email=(details.customer_email or '').strip(),
            reservation_date=details.reservation_date,
            reservation_time=details.reservation_time,
            party_size=details.party_size,
            items=[line.to_dict() for line in cart.lines],
            subtotal=priced.subtotal,
            fees=[line.to_dict() for line in priced.fee_lines],
            fees_total=priced.fees_total,
            discount_code=code,
            discount_amount=priced.discount_amount,
            discount_reason=applied.label if applied else '',
            total=priced.total,
            status=status,
            payment_method=payment.method,
            payment_status=PaymentStatus.PAID if details.placed_by_staff else PaymentStatus.PENDING,
            split_payments=[split.to_dict() for split in payment.split_payments],
            cash_received=payment.cash_received,
            change_due=payment.change_due,
            payment_proof=details.payment_proof,
            order_notes=details.order_notes or '',
            placed_by=details.placed_by if details.placed_by_staff else None,
        )

        if code is not None:
            DiscountCode.objects.filter(pk=code.pk).update(usage_count=F('usage_count') + 1)

    logger.info(
        f"Order {order.short_id} placed: {order.dining_type}, {order.item_count} items, "
        f"total {order.total}, status {order.status}"
    )

    deduct_stock_for_order(order)
    record_customer(order)
    return order


def deduct_stock_for_order(order):
    """Deduct sold quantities for tracked products; failures are logged per product"""
    quantities = defaultdict(int)
    for item in order.items:
        quantities[item['product_id']] += int(item['quantity'])

    for product_id, quantity in quantities.items():
        try:
            record_sale(product_id, quantity, reference=f"Order {order.short_id}", staff=order.placed_by)
        except Exception:
            logger.exception(f"Stock deduction failed for product {product_id} on order {order.id}")


def record_customer(order):
    """
    Upsert the customer keyed by phone number.

    In 'overwrite' mode an existing customer's totals are replaced by this
    order (total_spent = order total, total_orders = 1), matching the POS
    terminal. 'accumulate' adds to them instead.
    """
    phone = order.customer_phone
    if not phone:
        return None

    accumulate = settings.CAFE_POS['CUSTOMER_STATS_MODE'] == 'accumulate'
    try:
        with transaction.atomic():
            customer, created = Customer.objects.select_for_update().get_or_create(
                phone_number=phone,
                defaults={
                    'name': order.customer_name or phone,
                    'email': order.customer_email,
                    'total_orders': 1,
                    'total_spent': order.total,
                },
            )
            if not created:
                if order.customer_name:
                    customer.name = order.customer_name
                if order.customer_email:
                    customer.email = order.customer_email
                if accumulate:
                    customer.total_orders += 1
                    customer.total_spent += order.total
                else:
                    customer.total_orders = 1
                    customer.total_spent = order.total
                customer.save()

            order.customer = customer
            order.save(update_fields=['customer'])
    except Exception:
        logger.exception(f"Customer update failed for order {order.id}")
        return None

    return customer


# =============== STATUS CHANGES ===============

def change_status(order, target, user=None):
    ensure_transition(order.status, target)
    previous = order.status
    order.status = target
    order.save(update_fields=['status', 'updated_at'])
    actor = getattr(user, 'email', None) or 'system'
    logger.info(f"Order {order.short_id}: {previous} -> {target} by {actor}")
    return order


def advance_kitchen_order(order, user=None):
    return change_status(order, next_kitchen_status(order.status), user)


def verify_payment(order, user=None):
    """Cashier confirms a customer's QR payment; the order goes to the kitchen"""
    if order.status != OrderStatus.PAYMENT_VERIFICATION:
        raise InvalidStatusTransition('This order is not awaiting payment verification')
    order.status = OrderStatus.PENDING
    order.payment_status = PaymentStatus.PAID
    order.save(update_fields=['status', 'payment_status', 'updated_at'])
    actor = getattr(user, 'email', None) or 'system'
    logger.info(f"Order {order.short_id}: payment verified by {actor}")
    return order


def rate_order(order, rating, comment=''):
    if order.status not in RATEABLE_STATUSES:
        raise OrderValidationError('Orders can be rated once they are ready', code='rating_not_allowed')
    if OrderRating.objects.filter(order=order).exists():
        raise OrderValidationError('This order has already been rated', code='rating_exists')
    return OrderRating.objects.create(order=order, rating=rating, comment=comment or '')


def start_due_reservations(now=None):
    """
    Move today's confirmed reservations to preparing once their time is
    within the lead window. Overdue reservations are included.
    """
    now = timezone.localtime(now or timezone.now())
    lead = timedelta(minutes=settings.CAFE_POS['RESERVATION_PREP_LEAD_MINUTES'])
    cutoff = now.replace(tzinfo=None) + lead

    started = []
    due = Order.objects.filter(
        status=OrderStatus.RESERVATION_CONFIRMED,
        reservation_date=now.date(),
        reservation_time__isnull=False,
    ).order_by('reservation_time')
    for order in due:
        if datetime.combine(order.reservation_date, order.reservation_time) <= cutoff:
            change_status(order, OrderStatus.PREPARING)
            started.append(order)
    return started


# =============== KITCHEN ===============

@dataclass
class KitchenTicket:
    order: Order
    items: list
    minutes_waiting: int
    is_urgent: bool


def kitchen_queue(now=None, updated_since=None):
    """
    Open orders for the kitchen display, oldest first, with items reduced to
    products shown in the kitchen. Orders with nothing left to prepare are
    omitted.
    """
    now = now or timezone.now()
    orders = Order.objects.filter(
        status__in=KITCHEN_STATUSES,
        dining_type__in=KITCHEN_DINING_TYPES,
    ).order_by('created_at')
    if updated_since is not None:
        orders = orders.filter(updated_at__gt=updated_since)
    orders = list(orders)

    product_ids = {item.get('product_id') for order in orders for item in order.items}
    kitchen_ids = set(
        Product.objects.filter(id__in=product_ids, show_in_kitchen=True).values_list('id', flat=True)
    )

    tickets = []
    for order in orders:
        items = [item for item in order.items if item.get('product_id') in kitchen_ids]
        if not items:
            continue
        tickets.append(KitchenTicket(
            order=order,
            items=items,
            minutes_waiting=minutes_waiting(order.created_at, now),
            is_urgent=is_urgent(order.created_at, now),
        ))
    return tickets


# =============== RECENT ORDERS ===============

def product_images(orders):
    """Image URLs for the products in ``orders``; empty on lookup failure"""
    product_ids = {item.get('product_id') for order in orders for item in order.items}
    try:
        products = Product.objects.filter(id__in=product_ids).only('id', 'image')
        return {p.id: (p.image.url if p.image else None) for p in products}
    except Exception:
        logger.exception("Product image lookup failed for recent orders")
        return {}


def recent_orders(limit=None):
    limit = limit or settings.CAFE_POS['RECENT_ORDERS_LIMIT']
    orders = list(Order.objects.order_by('-created_at')[:limit])
    return orders, product_images(orders)


# =============== CUSTOMERS ===============

SAMPLE_CUSTOMERS = [
    {
        'name': 'John Doe', 'phone_number': '+60123456789', 'email': 'john.doe@example.com',
        'loyalty_points': 150, 'total_orders': 12, 'total_spent': Decimal('245.50'),
    },
    {
        'name': 'Jane Smith', 'phone_number': '+60198765432', 'email': 'jane.smith@example.com',
        'loyalty_points': 80, 'total_orders': 6, 'total_spent': Decimal('132.00'),
    },
    {
        'name': 'Ahmad Rahman', 'phone_number': '+60134567890', 'email': 'ahmad.rahman@example.com',
        'loyalty_points': 220, 'total_orders': 18, 'total_spent': Decimal('389.90'),
    },
    {
        'name': 'Mei Ling Tan', 'phone_number': '+60176543210', 'email': 'meiling.tan@example.com',
        'loyalty_points': 40, 'total_orders': 3, 'total_spent': Decimal('57.40'),
    },
]


def seed_customers():
    """Create the sample customers that do not exist yet; returns (created, skipped)"""
    created = 0
    for data in SAMPLE_CUSTOMERS:
        values = dict(data)
        phone = values.pop('phone_number')
        _, was_created = Customer.objects.get_or_create(phone_number=phone, defaults=values)
        created += int(was_created)
    skipped = len(SAMPLE_CUSTOMERS) - created
    logger.info(f"Sample customers seeded: {created} created, {skipped} already present")
    return created, skipped
