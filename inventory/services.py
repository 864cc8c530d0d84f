"""
Stock ledger operations.

Every change to ``Product.stock_quantity`` goes through this module so that a
``StockHistory`` row is written alongside it and the ledger always satisfies
``new_quantity == previous_quantity + quantity_change`` with a non-negative
``new_quantity``.
"""
import logging

from django.db import transaction
from django.db.models import F

from authentication.exceptions import POSError
from .models import Product, StockHistory

logger = logging.getLogger(__name__)


class StockError(POSError):
    default_code = 'stock_error'
    default_message = 'Invalid stock change'


def _locked(product_id):
    return Product.objects.select_for_update().get(pk=product_id)


def _write_history(product, change_type, previous, new, reason='', notes='', staff=None):
    product.stock_quantity = new
    product.save(update_fields=['stock_quantity', 'updated_at'])
    return StockHistory.objects.create(
        product=product,
        change_type=change_type,
        quantity_change=new - previous,
        previous_quantity=previous,
        new_quantity=new,
        reason=reason,
        notes=notes,
        staff=staff,
    )


@transaction.atomic
def adjust_stock(product, change_type, quantity_change, reason='', notes='', staff=None):
    """Apply a signed stock change, rejecting zero changes and negative results"""
    if change_type not in dict(StockHistory.CHANGE_TYPES):
        raise StockError(f"Unknown change type '{change_type}'")
    if quantity_change == 0:
        raise StockError('Quantity change cannot be zero')

    locked = _locked(product.pk)
    previous = locked.stock_quantity
    new = previous + quantity_change
    if new < 0:
        raise StockError('Stock quantity cannot be negative')

    entry = _write_history(locked, change_type, previous, new, reason, notes, staff)
    product.stock_quantity = new
    logger.info(f"Stock {change_type} for product {locked.pk}: {previous} -> {new}")
    return entry


@transaction.atomic
def set_stock(product, new_quantity, notes='', staff=None):
    """
    Set an absolute stock level, recorded as an adjustment.
    Returns None when the level is unchanged.
    """
    if new_quantity < 0:
        raise StockError('Stock quantity cannot be negative')

    locked = _locked(product.pk)
    previous = locked.stock_quantity
    if new_quantity == previous:
        return None

    entry = _write_history(
        locked, StockHistory.CHANGE_ADJUSTMENT, previous, new_quantity,
        reason='Set Stock', notes=notes, staff=staff,
    )
    product.stock_quantity = new_quantity
    logger.info(f"Stock set for product {locked.pk}: {previous} -> {new_quantity}")
    return entry


@transaction.atomic
def record_sale(product_id, quantity, reference='', staff=None):
    """
    Deduct sold units, floored at zero.

    Products that do not track stock are left alone. The ledger row carries
    the actual change, which is smaller than ``quantity`` when the floor kicks in.
    """
    try:
        locked = _locked(product_id)
    except Product.DoesNotExist:
        logger.warning(f"Stock deduction skipped, product {product_id} no longer exists")
        return None

    if not locked.track_stock:
        return None

    previous = locked.stock_quantity
    new = max(0, previous - quantity)
    if new == previous:
        return None

    if previous < quantity:
        logger.warning(
            f"Product {product_id} sold {quantity} with only {previous} in stock, floored at 0"
        )

    return _write_history(
        locked, StockHistory.CHANGE_SALE, previous, new,
        reason='Order', notes=reference, staff=staff,
    )


def record_initial_stock(product):
    return StockHistory.objects.create(
        product=product,
        change_type=StockHistory.CHANGE_INITIAL,
        quantity_change=product.stock_quantity,
        previous_quantity=0,
        new_quantity=product.stock_quantity,
        reason='Initial stock',
    )


def low_stock_products(threshold=None):
    """
    Active tracked products whose stock is below their own low stock
    threshold, or below ``threshold`` when one is given. Lowest stock first.
    """
    limit = F('low_stock_threshold') if threshold is None else threshold
    return Product.objects.filter(
        active=True,
        track_stock=True,
        stock_quantity__lt=limit,
    ).select_related('category').order_by('stock_quantity', 'name')
