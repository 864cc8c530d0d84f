import json

from rest_framework import serializers

from inventory.models import ProductSize
from .cart import LineKey
from .choices import DiningType, OrderStatus, PaymentMethod
from .models import Customer, DiscountCode, Fee, Order, OrderRating
from .payments import SPLIT_METHODS, SplitPayment
from .pricing import money
from .status import progress_index

SIZE_CHOICES = [value for value, _ in ProductSize.SIZE_CHOICES]


def _json_list(value, field_name):
    """Multipart forms send nested lists as JSON strings"""
    if isinstance(value, str):
        try:
            value = json.loads(value) if value.strip() else []
        except ValueError:
            raise serializers.ValidationError({field_name: 'Must be a JSON list.'})
    if not isinstance(value, list):
        raise serializers.ValidationError({field_name: 'Must be a list.'})
    return value


# =============== PRICING CONFIG ===============

class FeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Fee
        fields = ['id', 'name', 'amount', 'fee_type', 'applies_to', 'active', 'created_at']
        read_only_fields = ['created_at']


class DiscountCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = DiscountCode
        fields = [
            'id', 'code', 'description', 'discount_type', 'value', 'min_order_amount',
            'usage_limit', 'usage_count', 'expires_at', 'applies_to', 'active', 'created_at'
        ]
        read_only_fields = ['usage_count', 'created_at']

    def validate_code(self, value):
        value = value.strip().upper()
        queryset = DiscountCode.objects.filter(code=value)
        if self.instance:
            queryset = queryset.exclude(id=self.instance.id)
        if queryset.exists():
            raise serializers.ValidationError("A discount with this code already exists.")
        return value

    def validate_applies_to(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Must be a list of order types.")
        unknown = [v for v in value if v not in DiningType.values]
        if unknown:
            raise serializers.ValidationError(f"Unknown order types: {unknown}")
        return value

    def validate(self, attrs):
        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', None))
        value = attrs.get('value', getattr(self.instance, 'value', None))
        if discount_type == 'percentage' and value is not None and value > 100:
            raise serializers.ValidationError({'value': 'Percentage discounts cannot exceed 100.'})
        return attrs


class DiscountValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    dining_type = serializers.ChoiceField(choices=DiningType.choices)


# =============== CUSTOMERS ===============

class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'phone_number', 'email', 'address', 'date_of_birth',
            'loyalty_points', 'total_orders', 'total_spent', 'notes', 'active',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['total_orders', 'total_spent', 'created_at', 'updated_at']


# =============== ORDERS ===============

class OrderRatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderRating
        fields = ['rating', 'comment', 'created_at']
        read_only_fields = ['created_at']


class OrderReadSerializer(serializers.ModelSerializer):
    short_id = serializers.CharField(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    progress_index = serializers.SerializerMethodField()
    item_count = serializers.IntegerField(read_only=True)
    discount_code = serializers.CharField(source='discount_code.code', read_only=True, default=None)
    rating = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'short_id', 'dining_type', 'table_number', 'customer_name', 'customer_phone',
            'customer_email', 'reservation_date', 'reservation_time', 'party_size',
            'items', 'item_count', 'subtotal', 'fees', 'fees_total', 'discount_code',
            'discount_amount', 'discount_reason', 'total', 'status', 'status_display',
            'progress_index', 'payment_method', 'payment_status', 'split_payments',
            'cash_received', 'change_due', 'payment_proof', 'order_notes', 'rating',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_progress_index(self, obj):
        return progress_index(obj.status)

    def get_rating(self, obj):
        rating = getattr(obj, 'rating', None)
        return OrderRatingSerializer(rating).data if rating else None


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    size = serializers.ChoiceField(choices=SIZE_CHOICES, default='M')
    quantity = serializers.IntegerField(min_value=1, default=1)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    add_on_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)


class SplitPaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=[(m.value, m.label) for m in SPLIT_METHODS])
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    cash_received = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)

    def to_split(self):
        data = self.validated_data
        return SplitPayment(
            method=data['method'],
            amount=money(data['amount']),
            cash_received=money(data['cash_received']) if data.get('cash_received') is not None else None,
        )


class PaymentFieldsMixin(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False, allow_blank=True, default='')
    cash_received = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    payment_proof = serializers.FileField(required=False, allow_null=True)
    reservation_date = serializers.DateField(required=False, allow_null=True)
    reservation_time = serializers.TimeField(required=False, allow_null=True)
    party_size = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class OrderCreateSerializer(PaymentFieldsMixin):
    """Customer menu checkout: explicit items plus order details"""
    dining_type = serializers.ChoiceField(choices=DiningType.choices)
    table_number = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    customer_email = serializers.EmailField(required=False, allow_blank=True, default='')
    order_notes = serializers.CharField(required=False, allow_blank=True, default='')
    discount_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    items = serializers.JSONField()
    split_payments = serializers.JSONField(required=False, default=list)

    def validate_items(self, value):
        value = _json_list(value, 'items')
        if not value:
            raise serializers.ValidationError('Cart is empty')
        item_serializer = OrderItemInputSerializer(data=value, many=True)
        item_serializer.is_valid(raise_exception=True)
        return item_serializer.validated_data

    def validate_split_payments(self, value):
        value = _json_list(value, 'split_payments')
        splits = []
        for entry in value:
            split_serializer = SplitPaymentSerializer(data=entry)
            split_serializer.is_valid(raise_exception=True)
            splits.append(split_serializer.to_split())
        return splits


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class RatingCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='')


class KitchenTicketSerializer(serializers.Serializer):
    id = serializers.UUIDField(source='order.id')
    short_id = serializers.CharField(source='order.short_id')
    dining_type = serializers.CharField(source='order.dining_type')
    table_number = serializers.IntegerField(source='order.table_number')
    customer_name = serializers.CharField(source='order.customer_name')
    status = serializers.CharField(source='order.status')
    order_notes = serializers.CharField(source='order.order_notes')
    reservation_time = serializers.TimeField(source='order.reservation_time')
    created_at = serializers.DateTimeField(source='order.created_at')
    items = serializers.ListField()
    minutes_waiting = serializers.IntegerField()
    is_urgent = serializers.BooleanField()


# =============== POS ===============

class CartLineKeySerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    size = serializers.ChoiceField(choices=SIZE_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    add_on_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)

    def to_key(self):
        data = self.validated_data
        return LineKey.build(data['product_id'], data['size'], data['notes'], data['add_on_ids'])


class CartQuantitySerializer(CartLineKeySerializer):
    quantity = serializers.IntegerField()


class CartEditSerializer(CartLineKeySerializer):
    new_size = serializers.ChoiceField(choices=SIZE_CHOICES)
    new_notes = serializers.CharField(required=False, allow_blank=True, default='')
    new_add_on_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)


class OrderContextSerializer(serializers.Serializer):
    dining_type = serializers.ChoiceField(choices=DiningType.choices, required=False)
    table_number = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    order_notes = serializers.CharField(required=False, allow_blank=True)


class DiscountApplySerializer(serializers.Serializer):
    """Either a discount code or a manual amount with a reason"""
    code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        has_code = bool((attrs.get('code') or '').strip())
        has_amount = attrs.get('amount') is not None
        if has_code == has_amount:
            raise serializers.ValidationError('Provide either a discount code or a manual amount.')
        return attrs


class PosCheckoutSerializer(PaymentFieldsMixin):
    pass
