from django.contrib import admin

from .models import Customer, DiscountCode, Fee, Order, OrderRating


@admin.register(Fee)
class FeeAdmin(admin.ModelAdmin):
    list_display = ['name', 'amount', 'fee_type', 'applies_to', 'active']
    list_filter = ['fee_type', 'applies_to', 'active']


@admin.register(DiscountCode)
class DiscountCodeAdmin(admin.ModelAdmin):
    list_display = ['code', 'discount_type', 'value', 'min_order_amount', 'usage_count', 'usage_limit', 'expires_at', 'active']
    list_filter = ['discount_type', 'active']
    search_fields = ['code', 'description']
    readonly_fields = ['usage_count']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone_number', 'email', 'total_orders', 'total_spent', 'loyalty_points', 'active']
    search_fields = ['name', 'phone_number', 'email']
    list_filter = ['active']


class OrderRatingInline(admin.StackedInline):
    model = OrderRating
    can_delete = False
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['short_id', 'dining_type', 'table_number', 'customer_name', 'total', 'status', 'payment_method', 'payment_status', 'created_at']
    list_filter = ['status', 'dining_type', 'payment_method', 'payment_status']
    search_fields = ['customer_name', 'customer_phone']
    date_hierarchy = 'created_at'
    readonly_fields = [
        'id', 'items', 'subtotal', 'fees', 'fees_total', 'discount_code', 'discount_amount',
        'discount_reason', 'total', 'split_payments', 'cash_received', 'change_due',
        'placed_by', 'created_at', 'updated_at'
    ]
    inlines = [OrderRatingInline]
