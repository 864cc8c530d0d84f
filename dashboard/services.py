"""
Report queries over placed orders.

Cancelled orders are left out of revenue figures but still show up in the
status breakdown.
"""
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Sum
from django.utils import timezone

from orders.choices import DiningType, OrderStatus, PaymentStatus
from orders.models import Order
from orders.pricing import money
from orders.status import TERMINAL_STATUSES, minutes_waiting

ZERO = Decimal('0.00')


def most_frequent_table():
    """The table number with the most orders, or None when no dine-in table was used"""
    row = (
        Order.objects.exclude(table_number__isnull=True)
        .values('table_number')
        .annotate(order_count=Count('id'))
        .order_by('-order_count', 'table_number')
        .first()
    )
    if row is None:
        return None
    return {'table_number': row['table_number'], 'order_count': row['order_count']}


def orders_between(start_date, end_date):
    return Order.objects.filter(
        created_at__date__gte=start_date,
        created_at__date__lte=end_date,
    ).order_by('created_at')


def revenue_orders(queryset):
    return queryset.exclude(status=OrderStatus.CANCELLED)


def get_day_stats(day):
    """Count, revenue and average order value for one day"""
    orders = revenue_orders(orders_between(day, day))
    revenue = orders.aggregate(total=Sum('total'))['total'] or ZERO
    count = orders.count()
    average = money(revenue / count) if count else ZERO
    return {
        'orders_count': count,
        'revenue': money(revenue),
        'avg_order_value': average,
    }


def get_comparison_stats(today_stats, yesterday_stats):
    """Percentage change of today's revenue and order count against yesterday"""
    revenue_change = 0.0
    orders_change = 0.0
    if yesterday_stats['revenue'] > 0:
        revenue_change = float(
            (today_stats['revenue'] - yesterday_stats['revenue']) / yesterday_stats['revenue'] * 100
        )
    if yesterday_stats['orders_count'] > 0:
        orders_change = (
            (today_stats['orders_count'] - yesterday_stats['orders_count'])
            / yesterday_stats['orders_count'] * 100
        )
    return {
        'revenue_change': round(revenue_change, 1),
        'orders_change': round(orders_change, 1),
    }


def get_status_breakdown(queryset):
    rows = queryset.values('status').annotate(count=Count('id')).order_by('status')
    return {row['status']: row['count'] for row in rows}


def get_payment_breakdown(queryset):
    rows = (
        revenue_orders(queryset)
        .values('payment_method')
        .annotate(count=Count('id'), total=Sum('total'))
        .order_by('-total')
    )
    return [
        {'payment_method': row['payment_method'], 'count': row['count'], 'total': money(row['total'] or ZERO)}
        for row in rows
    ]


def get_top_selling_items(queryset, limit=10):
    """Aggregate the order item snapshots by product name"""
    quantities = defaultdict(int)
    revenue = defaultdict(lambda: ZERO)
    for items in revenue_orders(queryset).values_list('items', flat=True):
        for item in items:
            name = item.get('name', '')
            quantities[name] += int(item.get('quantity', 0))
            revenue[name] += Decimal(str(item.get('item_total', '0')))

    ranked = sorted(quantities.items(), key=lambda pair: (-pair[1], pair[0]))[:limit]
    return [
        {'name': name, 'total_quantity': quantity, 'total_revenue': money(revenue[name])}
        for name, quantity in ranked
    ]


def get_summary(day=None):
    """Dashboard summary for ``day`` (default today)"""
    day = day or timezone.localdate()
    orders = orders_between(day, day)
    today_stats = get_day_stats(day)
    yesterday_stats = get_day_stats(day - timedelta(days=1))
    return {
        'date': day,
        **today_stats,
        'comparison': get_comparison_stats(today_stats, yesterday_stats),
        'status_breakdown': get_status_breakdown(orders),
        'payment_breakdown': get_payment_breakdown(orders),
        'top_selling_items': get_top_selling_items(orders),
        'most_frequent_table': most_frequent_table(),
    }


# =============== TABLE STATUS ===============

TABLE_AVAILABLE = 'available'
TABLE_OCCUPIED = 'occupied'
TABLE_OUTSTANDING = 'outstanding'


def open_table_orders():
    """Dine-in orders that still hold their table"""
    return (
        Order.objects.filter(dining_type=DiningType.DINE_IN, table_number__isnull=False)
        .exclude(status__in=TERMINAL_STATUSES)
        .order_by('created_at')
    )


def table_status(now=None):
    """
    State of every table from its open dine-in orders.

    A table without open orders is available. It is occupied while its open
    orders are paid and outstanding while any of them still awaits payment.
    Tables above ``TABLE_COUNT`` appear when an open order uses them.
    """
    now = now or timezone.now()
    by_table = defaultdict(list)
    for order in open_table_orders():
        by_table[order.table_number].append(order)

    numbers = set(range(1, settings.CAFE_POS['TABLE_COUNT'] + 1)) | set(by_table)
    tables = []
    for number in sorted(numbers):
        orders = by_table.get(number, [])
        if not orders:
            tables.append({
                'table_number': number,
                'status': TABLE_AVAILABLE,
                'is_available': True,
                'open_orders': 0,
                'current_order_id': None,
                'order_status': None,
                'order_total': None,
                'minutes_occupied': None,
            })
            continue

        latest = orders[-1]
        unpaid = any(order.payment_status != PaymentStatus.PAID for order in orders)
        tables.append({
            'table_number': number,
            'status': TABLE_OUTSTANDING if unpaid else TABLE_OCCUPIED,
            'is_available': False,
            'open_orders': len(orders),
            'current_order_id': latest.id,
            'order_status': latest.status,
            'order_total': money(sum((order.total for order in orders), ZERO)),
            'minutes_occupied': minutes_waiting(orders[0].created_at, now),
        })

    counts = defaultdict(int)
    for table in tables:
        counts[table['status']] += 1
    return {
        'tables': tables,
        'summary': {
            TABLE_AVAILABLE: counts[TABLE_AVAILABLE],
            TABLE_OCCUPIED: counts[TABLE_OCCUPIED],
            TABLE_OUTSTANDING: counts[TABLE_OUTSTANDING],
        },
    }
