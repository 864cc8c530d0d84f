from rest_framework import serializers
from django.db import transaction

from .models import Category, Product, ProductSize, AddOn, StockHistory, MenuPromo
from orders.pricing import size_base_price
from .services import set_stock


class CategorySerializer(serializers.ModelSerializer):
    products_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'image', 'sort_order', 'active', 'products_count', 'created_at']
        read_only_fields = ['created_at', 'products_count']

    def get_products_count(self, obj):
        return obj.products.filter(active=True).count()


class ProductSizeSerializer(serializers.ModelSerializer):
    price = serializers.SerializerMethodField()

    class Meta:
        model = ProductSize
        fields = ['id', 'product', 'size_name', 'price_multiplier', 'price_override', 'price', 'active']
        read_only_fields = ['product']

    def get_price(self, obj):
        return str(size_base_price(obj.product.price, obj.size_name, obj))

    def validate(self, attrs):
        """Only one active row per size name for a product"""
        product = self.context.get('product') or getattr(self.instance, 'product', None)
        size_name = attrs.get('size_name', getattr(self.instance, 'size_name', None))
        active = attrs.get('active', getattr(self.instance, 'active', True))
        if product is not None and active:
            queryset = ProductSize.objects.filter(product=product, size_name=size_name, active=True)
            if self.instance:
                queryset = queryset.exclude(id=self.instance.id)
            if queryset.exists():
                raise serializers.ValidationError({
                    'size_name': f"An active {size_name} size already exists for this product."
                })
        return attrs


class AddOnSerializer(serializers.ModelSerializer):
    class Meta:
        model = AddOn
        fields = ['id', 'product', 'name', 'price', 'active']
        read_only_fields = ['product']

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Add-on price cannot be negative.")
        return value


class ProductListSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    sizes = serializers.SerializerMethodField()
    add_ons = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'image', 'price', 'category', 'category_name',
            'tags', 'allergens', 'rating', 'reviews_count', 'active', 'track_stock',
            'stock_quantity', 'show_in_kitchen', 'sizes', 'add_ons'
        ]

    def get_sizes(self, obj):
        return ProductSizeSerializer([s for s in obj.sizes.all() if s.active], many=True).data

    def get_add_ons(self, obj):
        return AddOnSerializer([a for a in obj.add_ons.all() if a.active], many=True).data


class ProductDetailSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    sizes = ProductSizeSerializer(many=True, read_only=True)
    add_ons = AddOnSerializer(many=True, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'image', 'price', 'category', 'category_name',
            'tags', 'allergens', 'rating', 'reviews_count', 'active', 'track_stock',
            'stock_quantity', 'low_stock_threshold', 'is_low_stock', 'show_in_kitchen',
            'sizes', 'add_ons', 'created_at', 'updated_at'
        ]
        read_only_fields = ['rating', 'reviews_count', 'created_at', 'updated_at']

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("Tags must be a list of strings.")
        return value

    def validate_allergens(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Allergens must be a list of strings.")
        return value

    @transaction.atomic
    def update(self, instance, validated_data):
        # Stock level edits go through the ledger
        new_stock = validated_data.pop('stock_quantity', None)
        instance = super().update(instance, validated_data)

        if new_stock is not None and new_stock != instance.stock_quantity:
            request = self.context.get('request')
            staff = request.user if request and request.user.is_authenticated else None
            set_stock(instance, new_stock, notes='Edited from product form', staff=staff)

        return instance


class StockAdjustmentSerializer(serializers.Serializer):
    ADJUSTABLE_TYPES = [
        choice for choice in StockHistory.CHANGE_TYPES
        if choice[0] not in (StockHistory.CHANGE_INITIAL, StockHistory.CHANGE_SALE)
    ]

    change_type = serializers.ChoiceField(choices=ADJUSTABLE_TYPES)
    quantity_change = serializers.IntegerField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_quantity_change(self, value):
        if value == 0:
            raise serializers.ValidationError("Quantity change cannot be zero.")
        return value


class SetStockSerializer(serializers.Serializer):
    new_quantity = serializers.IntegerField(min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StockHistorySerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    staff_email = serializers.CharField(source='staff.email', read_only=True, default=None)

    class Meta:
        model = StockHistory
        fields = [
            'id', 'product', 'product_name', 'change_type', 'quantity_change',
            'previous_quantity', 'new_quantity', 'reason', 'notes', 'staff_email',
            'created_at'
        ]
        read_only_fields = fields


class MenuPromoSerializer(serializers.ModelSerializer):
    class Meta:
        model = MenuPromo
        fields = ['id', 'title', 'description', 'image', 'link_url', 'active', 'sort_order', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class PromoReorderSerializer(serializers.Serializer):
    promo_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)

    def validate_promo_ids(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Promo ids must be unique.")
        found = set(MenuPromo.objects.filter(id__in=value).values_list('id', flat=True))
        missing = [promo_id for promo_id in value if promo_id not in found]
        if missing:
            raise serializers.ValidationError(f"Unknown promo ids: {missing}")
        return value
