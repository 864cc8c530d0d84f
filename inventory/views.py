import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import Permissions, permission_required, user_has_permission
from .models import AddOn, Category, MenuPromo, Product, ProductSize, StockHistory
from .serializers import (
    AddOnSerializer, CategorySerializer, MenuPromoSerializer, ProductDetailSerializer,
    ProductListSerializer, ProductSizeSerializer, PromoReorderSerializer, SetStockSerializer,
    StockAdjustmentSerializer, StockHistorySerializer,
)
from .services import adjust_stock, low_stock_products, set_stock

logger = logging.getLogger(__name__)


class CatalogAccessMixin:
    """
    Anyone may read the active menu; staff with inventory access also see
    inactive entries. Writes need the catalog permission.
    """
    write_permission = Permissions.MANAGE_CATALOG

    def get_permissions(self):
        if self.request.method in ('GET', 'HEAD', 'OPTIONS'):
            return [AllowAny()]
        return [permission_required(self.write_permission)()]

    def sees_inactive(self):
        return user_has_permission(self.request.user, Permissions.VIEW_INVENTORY)


# =============== CATEGORIES ===============

class CategoryListCreateView(CatalogAccessMixin, generics.ListCreateAPIView):
    """
    get: List menu categories
    post: Create a category (admins only)
    """
    serializer_class = CategorySerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['active']
    search_fields = ['name']
    ordering_fields = ['name', 'sort_order', 'created_at']
    ordering = ['sort_order', 'name']

    def get_queryset(self):
        queryset = Category.objects.all()
        if not self.sees_inactive():
            queryset = queryset.filter(active=True)
        return queryset


class CategoryRetrieveUpdateDestroyView(CatalogAccessMixin, generics.RetrieveUpdateDestroyAPIView):
    serializer_class = CategorySerializer

    def get_queryset(self):
        queryset = Category.objects.all()
        if not self.sees_inactive():
            queryset = queryset.filter(active=True)
        return queryset


# =============== PRODUCTS ===============

class ProductListCreateView(CatalogAccessMixin, generics.ListCreateAPIView):
    """
    get: List menu products with their sizes and add-ons
    post: Create a product (admins only)
    """
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category', 'active', 'track_stock', 'show_in_kitchen']
    search_fields = ['name', 'description', 'category__name']
    ordering_fields = ['name', 'price', 'stock_quantity', 'rating', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        queryset = Product.objects.select_related('category').prefetch_related('sizes', 'add_ons')
        if not self.sees_inactive():
            queryset = queryset.filter(active=True)
        return queryset

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return ProductDetailSerializer
        return ProductListSerializer


class ProductRetrieveUpdateDestroyView(CatalogAccessMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    get: Product details
    put/patch: Update a product; stock level edits are written to the ledger
    delete: Delete a product (admins only)
    """
    serializer_class = ProductDetailSerializer

    def get_queryset(self):
        queryset = Product.objects.select_related('category').prefetch_related('sizes', 'add_ons')
        if not self.sees_inactive():
            queryset = queryset.filter(active=True)
        return queryset


class ProductSizeListCreateView(CatalogAccessMixin, generics.ListCreateAPIView):
    serializer_class = ProductSizeSerializer

    def get_product(self):
        return get_object_or_404(Product, pk=self.kwargs['product_id'])

    def get_queryset(self):
        return ProductSize.objects.filter(product_id=self.kwargs['product_id']).select_related('product')

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.request.method == 'POST':
            context['product'] = self.get_product()
        return context

    def perform_create(self, serializer):
        serializer.save(product=serializer.context['product'])


class ProductSizeDetailView(CatalogAccessMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = ProductSize.objects.select_related('product')
    serializer_class = ProductSizeSerializer


class AddOnListCreateView(CatalogAccessMixin, generics.ListCreateAPIView):
    serializer_class = AddOnSerializer

    def get_queryset(self):
        return AddOn.objects.filter(product_id=self.kwargs['product_id'])

    def perform_create(self, serializer):
        product = get_object_or_404(Product, pk=self.kwargs['product_id'])
        serializer.save(product=product)


class AddOnDetailView(CatalogAccessMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = AddOn.objects.all()
    serializer_class = AddOnSerializer


# =============== STOCK ===============

@swagger_auto_schema(
    method='get',
    manual_parameters=[
        openapi.Parameter('threshold', openapi.IN_QUERY, description="Stock level considered low (defaults to each product's own threshold)", type=openapi.TYPE_INTEGER),
    ],
    responses={200: ProductListSerializer(many=True)}
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_INVENTORY)])
def low_stock(request):
    """Tracked products running low, lowest stock first"""
    threshold = request.query_params.get('threshold')
    try:
        threshold = int(threshold) if threshold else None
    except ValueError:
        raise ValidationError({'threshold': 'Must be a whole number.'})

    products = low_stock_products(threshold).prefetch_related('sizes', 'add_ons')
    return Response({
        'count': len(products),
        'results': ProductListSerializer(products, many=True).data,
    })


@swagger_auto_schema(method='post', request_body=StockAdjustmentSerializer, responses={201: StockHistorySerializer, 400: 'Invalid stock change'})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.MANAGE_STOCK)])
def adjust_product_stock(request, pk):
    """Restock, waste, return or adjust by a signed quantity"""
    product = get_object_or_404(Product, pk=pk)
    serializer = StockAdjustmentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = adjust_stock(product, staff=request.user, **serializer.validated_data)
    return Response({
        'stock_quantity': product.stock_quantity,
        'history': StockHistorySerializer(entry).data,
    }, status=status.HTTP_201_CREATED)


@swagger_auto_schema(method='post', request_body=SetStockSerializer, responses={200: StockHistorySerializer})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.MANAGE_STOCK)])
def set_product_stock(request, pk):
    """Set an absolute stock level; an unchanged level writes nothing"""
    product = get_object_or_404(Product, pk=pk)
    serializer = SetStockSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = set_stock(product, staff=request.user, **serializer.validated_data)
    return Response({
        'stock_quantity': product.stock_quantity,
        'history': StockHistorySerializer(entry).data if entry else None,
    })


class StockHistoryListView(generics.ListAPIView):
    serializer_class = StockHistorySerializer
    permission_classes = [permission_required(Permissions.VIEW_INVENTORY)]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['product', 'change_type', 'staff']
    ordering_fields = ['created_at']
    ordering = ['-created_at', '-id']

    def get_queryset(self):
        return StockHistory.objects.select_related('product', 'staff')


# =============== MENU PROMOS ===============

class MenuPromoListCreateView(generics.ListCreateAPIView):
    """
    get: Active promos in display order; admins may pass ?all=true
    post: Create a promo (admins only)
    """
    serializer_class = MenuPromoSerializer

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [permission_required(Permissions.MANAGE_CATALOG)()]

    def get_queryset(self):
        queryset = MenuPromo.objects.order_by('sort_order', 'id')
        show_all = self.request.query_params.get('all') == 'true'
        if show_all and user_has_permission(self.request.user, Permissions.MANAGE_CATALOG):
            return queryset
        return queryset.filter(active=True)


class MenuPromoDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = MenuPromo.objects.all()
    serializer_class = MenuPromoSerializer
    permission_classes = [permission_required(Permissions.MANAGE_CATALOG)]


@swagger_auto_schema(method='post', request_body=PromoReorderSerializer, responses={200: MenuPromoSerializer(many=True)})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.MANAGE_CATALOG)])
def reorder_promos(request):
    """Rewrite sort_order to follow the given id order"""
    serializer = PromoReorderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    promo_ids = serializer.validated_data['promo_ids']

    with transaction.atomic():
        for position, promo_id in enumerate(promo_ids):
            MenuPromo.objects.filter(id=promo_id).update(sort_order=position)

    logger.info(f"Menu promos reordered by {request.user.email}: {promo_ids}")
    promos = MenuPromo.objects.filter(id__in=promo_ids).order_by('sort_order', 'id')
    return Response(MenuPromoSerializer(promos, many=True).data)
