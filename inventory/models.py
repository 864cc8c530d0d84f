from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from authentication.models import TimeStampedModel


def default_low_stock_threshold():
    return settings.CAFE_POS['LOW_STOCK_THRESHOLD']


class Category(TimeStampedModel):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    image = models.FileField(upload_to='category_images', null=True, blank=True)
    sort_order = models.IntegerField(default=0)
    active = models.BooleanField(default=True)

    def __str__(self):
        return str(self.name)

    class Meta:
        db_table = 'categories'
        ordering = ['sort_order', 'name']
        verbose_name_plural = "Categories"


class Product(TimeStampedModel):
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    image = models.FileField(upload_to='product_images', null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])

    tags = models.JSONField(default=list, blank=True)
    allergens = models.JSONField(default=list, blank=True)

    track_stock = models.BooleanField(default=False)
    stock_quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    low_stock_threshold = models.IntegerField(default=default_low_stock_threshold)

    active = models.BooleanField(default=True)
    show_in_kitchen = models.BooleanField(default=True)

    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0.00'))
    reviews_count = models.IntegerField(default=0)

    def __str__(self):
        return self.name

    @property
    def is_low_stock(self):
        return self.track_stock and self.stock_quantity < self.low_stock_threshold

    def available_sizes(self):
        """Active size rows keyed by size name"""
        return {size.size_name: size for size in self.sizes.all() if size.active}

    class Meta:
        db_table = 'products'
        ordering = ['name']


class ProductSize(models.Model):
    SIZE_CHOICES = [
        ("S", "Small"),
        ("M", "Medium"),
        ("L", "Large"),
        ("XL", "Extra Large"),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='sizes')
    size_name = models.CharField(max_length=2, choices=SIZE_CHOICES)
    price_multiplier = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('1.00'))
    price_override = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.product.name} - {self.size_name}"

    class Meta:
        db_table = 'product_sizes'
        ordering = ['product', 'id']


class AddOn(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='add_ons')
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.product.name} - {self.name}"

    class Meta:
        db_table = 'product_add_ons'
        ordering = ['name']


class StockHistory(models.Model):
    """Append-only ledger of stock movements"""
    CHANGE_INITIAL = 'initial'
    CHANGE_RESTOCK = 'restock'
    CHANGE_SALE = 'sale'
    CHANGE_ADJUSTMENT = 'adjustment'
    CHANGE_WASTE = 'waste'
    CHANGE_RETURN = 'return'
    CHANGE_TYPES = [
        (CHANGE_INITIAL, 'Initial'),
        (CHANGE_RESTOCK, 'Restock'),
        (CHANGE_SALE, 'Sale'),
        (CHANGE_ADJUSTMENT, 'Adjustment'),
        (CHANGE_WASTE, 'Waste'),
        (CHANGE_RETURN, 'Return'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='stock_history')
    change_type = models.CharField(max_length=20, choices=CHANGE_TYPES)
    quantity_change = models.IntegerField()
    previous_quantity = models.IntegerField()
    new_quantity = models.IntegerField(validators=[MinValueValidator(0)])
    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    staff = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_changes')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product.name}: {self.previous_quantity} -> {self.new_quantity} ({self.change_type})"

    class Meta:
        db_table = 'stock_history'
        ordering = ['-created_at', '-id']
        verbose_name_plural = "Stock history"


class MenuPromo(TimeStampedModel):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    image = models.FileField(upload_to='promo_images', null=True, blank=True)
    link_url = models.CharField(max_length=500, blank=True)
    active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'menu_promos'
        ordering = ['sort_order', 'id']
