import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_datetime
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import Permissions, permission_required
from .cart import Cart
from .filters import OrderFilter
from .models import Customer, DiscountCode, Fee, Order
from .pricing import quote
from .serializers import (
    CustomerSerializer, DiscountCodeSerializer, DiscountValidateSerializer, FeeSerializer,
    KitchenTicketSerializer, OrderCreateSerializer, OrderRatingSerializer, OrderReadSerializer,
    RatingCreateSerializer, StatusUpdateSerializer,
)
from .services import (
    OrderDetails, active_fees, advance_kitchen_order, apply_discount_code, change_status,
    kitchen_queue, rate_order, recent_orders, resolve_cart_item, seed_customers,
    submit_order, verify_payment,
)
from .status import is_reservation_flow, progress_index, tracking_message, tracking_steps

logger = logging.getLogger(__name__)


def _order_queryset():
    return Order.objects.select_related('discount_code', 'rating', 'placed_by')


# =============== ORDERS ===============

class OrderListCreateView(generics.ListCreateAPIView):
    """List orders for staff, or place an order from the customer menu"""
    serializer_class = OrderReadSerializer
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = OrderFilter
    search_fields = ['customer_name', 'customer_phone', 'order_notes']
    ordering_fields = ['created_at', 'updated_at', 'total', 'table_number']
    ordering = ['-created_at']

    def get_queryset(self):
        return _order_queryset()

    def get_permissions(self):
        if self.request.method == 'POST':
            return [AllowAny()]
        return [permission_required(Permissions.VIEW_ORDERS)()]

    @swagger_auto_schema(
        operation_description="List orders",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, description="Comma separated statuses", type=openapi.TYPE_STRING),
            openapi.Parameter('dining_type', openapi.IN_QUERY, description="dine_in, takeaway or reservation", type=openapi.TYPE_STRING),
            openapi.Parameter('payment_method', openapi.IN_QUERY, description="Filter by payment method", type=openapi.TYPE_STRING),
            openapi.Parameter('date', openapi.IN_QUERY, description="Filter by date (YYYY-MM-DD)", type=openapi.TYPE_STRING),
            openapi.Parameter('updated_since', openapi.IN_QUERY, description="Only orders changed after this ISO timestamp", type=openapi.TYPE_STRING),
        ]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(
        operation_description="Place an order from the customer menu. Use multipart when attaching a QR payment proof.",
        request_body=OrderCreateSerializer,
        responses={201: OrderReadSerializer, 400: 'Bad Request'}
    )
    def post(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart = Cart()
        for item in data['items']:
            resolved = resolve_cart_item(item['product_id'], item['size'], item['add_on_ids'])
            cart.add(notes=item['notes'], quantity=item['quantity'], **resolved)

        discount = None
        if data['discount_code']:
            discount = apply_discount_code(data['discount_code'], cart.total, data['dining_type'])

        details = OrderDetails(
            dining_type=data['dining_type'],
            payment_method=data['payment_method'],
            table_number=data.get('table_number'),
            customer_name=data['customer_name'],
            customer_phone=data['customer_phone'],
            customer_email=data['customer_email'],
            order_notes=data['order_notes'],
            reservation_date=data.get('reservation_date'),
            reservation_time=data.get('reservation_time'),
            party_size=data.get('party_size'),
            cash_received=data.get('cash_received'),
            payment_proof=data.get('payment_proof'),
            split_payments=data['split_payments'],
            placed_by=request.user,
        )
        order = submit_order(cart, details, discount)
        return Response(OrderReadSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(generics.RetrieveAPIView):
    serializer_class = OrderReadSerializer
    permission_classes = [permission_required(Permissions.VIEW_ORDERS)]
    lookup_url_kwarg = 'order_id'

    def get_queryset(self):
        return _order_queryset()


@swagger_auto_schema(
    method='get',
    manual_parameters=[
        openapi.Parameter('limit', openapi.IN_QUERY, description="Number of orders (default 5)", type=openapi.TYPE_INTEGER),
    ],
    responses={200: 'Latest orders with product images'}
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_ORDERS)])
def recent_orders_view(request):
    """Latest orders for the dashboard with product image URLs"""
    limit = request.query_params.get('limit')
    try:
        limit = int(limit) if limit else None
    except ValueError:
        raise ValidationError({'limit': 'Must be a whole number.'})
    if limit is not None and limit < 1:
        raise ValidationError({'limit': 'Must be at least 1.'})

    orders, images = recent_orders(limit)
    results = []
    for order in orders:
        data = OrderReadSerializer(order).data
        data['items'] = [
            dict(item, image=images.get(item.get('product_id'))) for item in order.items
        ]
        results.append(data)
    return Response({'count': len(results), 'results': results})


@swagger_auto_schema(method='post', request_body=StatusUpdateSerializer, responses={200: OrderReadSerializer, 409: 'Invalid transition'})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.UPDATE_ORDER_STATUS)])
def update_order_status(request, order_id):
    order = get_object_or_404(Order, pk=order_id)
    serializer = StatusUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    change_status(order, serializer.validated_data['status'], request.user)
    return Response(OrderReadSerializer(order).data)


@swagger_auto_schema(method='post', responses={200: OrderReadSerializer, 409: 'Order is not awaiting verification'})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.VERIFY_PAYMENTS)])
def verify_order_payment(request, order_id):
    order = get_object_or_404(Order, pk=order_id)
    verify_payment(order, request.user)
    return Response(OrderReadSerializer(order).data)


# =============== CUSTOMER TRACKING ===============

@swagger_auto_schema(method='get', responses={200: 'Order tracking status', 404: 'Order not found'})
@api_view(['GET'])
@permission_classes([AllowAny])
def track_order(request, order_id):
    """Public tracking page data for a placed order"""
    order = get_object_or_404(Order.objects.select_related('rating'), pk=order_id)
    rating = getattr(order, 'rating', None)
    return Response({
        'id': str(order.id),
        'short_id': order.short_id,
        'status': order.status,
        'status_display': order.get_status_display(),
        'progress_index': progress_index(order.status),
        'steps': tracking_steps(order),
        'message': tracking_message(order),
        'is_reservation': is_reservation_flow(order),
        'dining_type': order.dining_type,
        'table_number': order.table_number,
        'reservation_date': order.reservation_date,
        'reservation_time': order.reservation_time,
        'items': order.items,
        'total': str(order.total),
        'payment_status': order.payment_status,
        'rating': OrderRatingSerializer(rating).data if rating else None,
        'updated_at': order.updated_at,
    })


@swagger_auto_schema(method='post', request_body=RatingCreateSerializer, responses={201: OrderRatingSerializer, 400: 'Rating not allowed'})
@api_view(['POST'])
@permission_classes([AllowAny])
def rate_order_view(request, order_id):
    order = get_object_or_404(Order, pk=order_id)
    serializer = RatingCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    rating = rate_order(order, serializer.validated_data['rating'], serializer.validated_data['comment'])
    return Response(OrderRatingSerializer(rating).data, status=status.HTTP_201_CREATED)


# =============== KITCHEN ===============

@swagger_auto_schema(
    method='get',
    manual_parameters=[
        openapi.Parameter('updated_since', openapi.IN_QUERY, description="Only orders changed after this ISO timestamp", type=openapi.TYPE_STRING),
    ],
    responses={200: KitchenTicketSerializer(many=True)}
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_KITCHEN)])
def kitchen_orders(request):
    """Open orders for the kitchen display, oldest first"""
    updated_since = request.query_params.get('updated_since')
    if updated_since:
        parsed = parse_datetime(updated_since)
        if parsed is None:
            raise ValidationError({'updated_since': 'Must be an ISO 8601 timestamp.'})
        updated_since = parsed
    else:
        updated_since = None

    tickets = kitchen_queue(updated_since=updated_since)
    return Response({
        'count': len(tickets),
        'urgent_count': sum(1 for ticket in tickets if ticket.is_urgent),
        'refresh_seconds': settings.CAFE_POS['KITCHEN_REFRESH_SECONDS'],
        'results': KitchenTicketSerializer(tickets, many=True).data,
    })


@swagger_auto_schema(method='post', responses={200: OrderReadSerializer, 409: 'Kitchen cannot advance this order'})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.UPDATE_ORDER_STATUS)])
def kitchen_advance(request, order_id):
    order = get_object_or_404(Order, pk=order_id)
    advance_kitchen_order(order, request.user)
    return Response(OrderReadSerializer(order).data)


# =============== FEES & DISCOUNTS ===============

class FeeListCreateView(generics.ListCreateAPIView):
    serializer_class = FeeSerializer

    def get_queryset(self):
        queryset = Fee.objects.all()
        if self.request.method == 'GET' and self.request.query_params.get('all') != 'true':
            queryset = queryset.filter(active=True)
        return queryset

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [permission_required(Permissions.MANAGE_PRICING)()]


class FeeDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = Fee.objects.all()
    serializer_class = FeeSerializer
    permission_classes = [permission_required(Permissions.MANAGE_PRICING)]
    lookup_url_kwarg = 'fee_id'


class DiscountCodeListCreateView(generics.ListCreateAPIView):
    queryset = DiscountCode.objects.all()
    serializer_class = DiscountCodeSerializer
    permission_classes = [permission_required(Permissions.MANAGE_PRICING)]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['code', 'description']
    ordering_fields = ['code', 'created_at', 'usage_count']


class DiscountCodeDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = DiscountCode.objects.all()
    serializer_class = DiscountCodeSerializer
    permission_classes = [permission_required(Permissions.MANAGE_PRICING)]
    lookup_url_kwarg = 'discount_id'


@swagger_auto_schema(method='post', request_body=DiscountValidateSerializer, responses={200: 'Discount and price quote', 400: 'Discount rejected'})
@api_view(['POST'])
@permission_classes([AllowAny])
def validate_discount(request):
    """Check a discount code for the customer menu and return the discounted quote"""
    serializer = DiscountValidateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    fees = active_fees()
    discount = apply_discount_code(data['code'], data['subtotal'], data['dining_type'], fees=fees)
    priced = quote(data['subtotal'], fees, data['dining_type'], discount)
    return Response({'valid': True, 'discount': discount.to_dict(), 'quote': priced.to_dict()})


# =============== CUSTOMERS ===============

class CustomerListCreateView(generics.ListCreateAPIView):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'phone_number', 'email']
    ordering_fields = ['name', 'total_spent', 'total_orders', 'created_at']

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permission_required(Permissions.VIEW_CUSTOMERS)()]
        return [permission_required(Permissions.MANAGE_CUSTOMERS)()]


class CustomerDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer
    lookup_url_kwarg = 'customer_id'

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permission_required(Permissions.VIEW_CUSTOMERS)()]
        return [permission_required(Permissions.MANAGE_CUSTOMERS)()]


@swagger_auto_schema(method='post', responses={200: 'Seed result'})
@api_view(['POST'])
@permission_classes([permission_required(Permissions.MANAGE_CUSTOMERS)])
def setup_customers(request):
    """Create the sample customers; running it again creates nothing new"""
    created, skipped = seed_customers()
    return Response({
        'message': f"{created} sample customers created",
        'created': created,
        'skipped': skipped,
    })
