import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from authentication.models import TimeStampedModel
from .choices import (
    DiningType, DiscountType, FeeScope, FeeType, OrderStatus, PaymentMethod, PaymentStatus
)


class Fee(TimeStampedModel):
    name = models.CharField(max_length=100)
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    fee_type = models.CharField(max_length=20, choices=FeeType.choices, default=FeeType.FIXED)
    applies_to = models.CharField(max_length=20, choices=FeeScope.choices, default=FeeScope.BOTH)
    active = models.BooleanField(default=True)

    def __str__(self):
        if self.fee_type == FeeType.PERCENTAGE:
            return f"{self.name} ({self.amount}%)"
        return f"{self.name} ({self.amount})"

    class Meta:
        db_table = 'fees'
        # Fees compound in this order
        ordering = ['name', 'id']


class DiscountCode(TimeStampedModel):
    code = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices, default=DiscountType.PERCENTAGE)
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    min_order_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    expires_at = models.DateTimeField(null=True, blank=True)
    # Empty list means every order type
    applies_to = models.JSONField(default=list, blank=True)
    active = models.BooleanField(default=True)

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.code

    class Meta:
        db_table = 'discount_codes'
        ordering = ['code']


class Customer(TimeStampedModel):
    phone_number = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    loyalty_points = models.IntegerField(default=0)
    total_orders = models.IntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.phone_number})"

    class Meta:
        db_table = 'customers'
        ordering = ['name']


class Order(models.Model):
    """
    A placed order. Items, prices and customer details are a snapshot taken
    at submission; only the status and payment reconciliation fields change
    afterwards.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    dining_type = models.CharField(max_length=20, choices=DiningType.choices, default=DiningType.DINE_IN)
    table_number = models.PositiveIntegerField(null=True, blank=True)

    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)

    reservation_date = models.DateField(null=True, blank=True)
    reservation_time = models.TimeField(null=True, blank=True)
    party_size = models.PositiveIntegerField(null=True, blank=True)

    items = models.JSONField(default=list)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    fees = models.JSONField(default=list, blank=True)
    fees_total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    discount_code = models.ForeignKey(DiscountCode, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    discount_reason = models.CharField(max_length=255, blank=True)
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(max_length=30, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True)

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    split_payments = models.JSONField(default=list, blank=True)
    cash_received = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    change_due = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    payment_proof = models.FileField(upload_to='payment_proofs', null=True, blank=True)

    order_notes = models.TextField(blank=True)
    placed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='placed_orders')

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    def __str__(self):
        where = f"Table {self.table_number}" if self.table_number else self.get_dining_type_display()
        return f"#{self.short_id} - {where} - {self.status}"

    @property
    def short_id(self):
        return str(self.id)[:8].upper()

    @property
    def item_count(self):
        return sum(item.get('quantity', 0) for item in self.items)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']


class OrderRating(models.Model):
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='rating')
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.order.short_id}: {self.rating}/5"

    class Meta:
        db_table = 'order_ratings'
