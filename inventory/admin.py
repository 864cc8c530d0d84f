from django.contrib import admin

from .models import AddOn, Category, MenuPromo, Product, ProductSize, StockHistory


class ProductSizeInline(admin.TabularInline):
    model = ProductSize
    extra = 0


class AddOnInline(admin.TabularInline):
    model = AddOn
    extra = 0


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'sort_order', 'active']
    list_editable = ['sort_order', 'active']
    search_fields = ['name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'track_stock', 'stock_quantity', 'active', 'show_in_kitchen']
    list_filter = ['category', 'active', 'track_stock', 'show_in_kitchen']
    search_fields = ['name', 'description']
    # Stock changes go through the stock endpoints so the ledger stays complete
    readonly_fields = ['stock_quantity', 'rating', 'reviews_count']
    inlines = [ProductSizeInline, AddOnInline]


@admin.register(StockHistory)
class StockHistoryAdmin(admin.ModelAdmin):
    list_display = ['product', 'change_type', 'quantity_change', 'previous_quantity', 'new_quantity', 'staff', 'created_at']
    list_filter = ['change_type']
    search_fields = ['product__name', 'reason', 'notes']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(MenuPromo)
class MenuPromoAdmin(admin.ModelAdmin):
    list_display = ['title', 'sort_order', 'active']
    list_editable = ['sort_order', 'active']
