import django_filters

from .choices import DiningType, OrderStatus, PaymentMethod, PaymentStatus
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """
    Order list filters for the cashier screens.

    ``status`` accepts a comma separated list, e.g. ``?status=pending,preparing``.
    """
    status = django_filters.CharFilter(method='filter_status')
    dining_type = django_filters.ChoiceFilter(choices=DiningType.choices)
    payment_method = django_filters.ChoiceFilter(choices=PaymentMethod.choices)
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    date = django_filters.DateFilter(field_name='created_at', lookup_expr='date')
    created_at__gte = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_at__lte = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')
    updated_since = django_filters.IsoDateTimeFilter(field_name='updated_at', lookup_expr='gt')
    table_number = django_filters.NumberFilter()

    class Meta:
        model = Order
        fields = ['status', 'dining_type', 'payment_method', 'payment_status', 'table_number']

    def filter_status(self, queryset, name, value):
        statuses = [s.strip() for s in value.split(',') if s.strip()]
        unknown = [s for s in statuses if s not in OrderStatus.values]
        if unknown:
            return queryset.none()
        return queryset.filter(status__in=statuses)
