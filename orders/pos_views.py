"""
Cashier terminal endpoints. Every view loads the POS state from the session,
applies one change and writes it back.
"""
import logging

from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import Permissions, permission_required
from .payments import add_split_payment, remaining_amount, remove_split_payment
from .pricing import manual_discount
from .serializers import (
    CartEditSerializer, CartLineKeySerializer, CartQuantitySerializer, DiscountApplySerializer,
    OrderContextSerializer, OrderItemInputSerializer, OrderReadSerializer, PosCheckoutSerializer,
    SplitPaymentSerializer,
)
from .services import OrderDetails, apply_discount_code, quote_cart, resolve_cart_item, submit_order
from .session import load_state, save_state

logger = logging.getLogger(__name__)


def serialize_state(state):
    priced = quote_cart(state.cart, state.context.dining_type, state.discount)
    return {
        'cart': state.cart.to_dict()['lines'],
        'item_count': state.cart.item_count,
        'context': state.context.to_dict(),
        'discount': state.discount.to_dict() if state.discount else None,
        'quote': priced.to_dict(),
        'split_payments': [split.to_dict() for split in state.split_payments],
        'remaining_amount': str(remaining_amount(priced.total, state.split_payments)),
        'parked_count': len(state.parked),
    }


class PosStateView(APIView):
    permission_classes = [permission_required(Permissions.CREATE_ORDERS)]

    def load(self):
        return load_state(self.request.session)

    def save(self, state):
        save_state(self.request.session, state)

    def respond(self, state, response_status=status.HTTP_200_OK):
        self.save(state)
        return Response(serialize_state(state), status=response_status)


# =============== CART ===============

class PosCartView(PosStateView):
    @swagger_auto_schema(responses={200: 'Cart, order context and live price quote'})
    def get(self, request):
        return Response(serialize_state(self.load()))


class PosCartClearView(PosStateView):
    @swagger_auto_schema(responses={200: 'Empty cart'})
    def post(self, request):
        state = self.load()
        state.cart.clear()
        state.invalidate_payments()
        return self.respond(state)


class PosCartItemAddView(PosStateView):
    @swagger_auto_schema(request_body=OrderItemInputSerializer, responses={201: 'Updated cart'})
    def post(self, request):
        serializer = OrderItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        state = self.load()
        resolved = resolve_cart_item(data['product_id'], data['size'], data['add_on_ids'])
        state.cart.add(notes=data['notes'], quantity=data['quantity'], **resolved)
        state.invalidate_payments()
        return self.respond(state, status.HTTP_201_CREATED)


class PosCartItemUpdateView(PosStateView):
    @swagger_auto_schema(request_body=CartQuantitySerializer, responses={200: 'Updated cart', 404: 'Line not found'})
    def post(self, request):
        serializer = CartQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        state = self.load()
        state.cart.update_quantity(serializer.to_key(), serializer.validated_data['quantity'])
        state.invalidate_payments()
        return self.respond(state)


class PosCartItemEditView(PosStateView):
    @swagger_auto_schema(request_body=CartEditSerializer, responses={200: 'Updated cart', 404: 'Line not found'})
    def post(self, request):
        serializer = CartEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        state = self.load()
        key = serializer.to_key()
        resolved = resolve_cart_item(key.product_id, data['new_size'], data['new_add_on_ids'])
        state.cart.replace(
            key,
            size=resolved['size'],
            unit_price=resolved['unit_price'],
            notes=data['new_notes'],
            add_ons=resolved['add_ons'],
        )
        state.invalidate_payments()
        return self.respond(state)


class PosCartItemRemoveView(PosStateView):
    @swagger_auto_schema(request_body=CartLineKeySerializer, responses={200: 'Updated cart', 404: 'Line not found'})
    def post(self, request):
        serializer = CartLineKeySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        state = self.load()
        state.cart.remove(serializer.to_key())
        state.invalidate_payments()
        return self.respond(state)


class PosContextView(PosStateView):
    @swagger_auto_schema(request_body=OrderContextSerializer, responses={200: 'Updated cart'})
    def patch(self, request):
        serializer = OrderContextSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        state = self.load()
        for field_name, value in serializer.validated_data.items():
            setattr(state.context, field_name, value)
        state.invalidate_payments()
        return self.respond(state)


# =============== DISCOUNT ===============

class PosDiscountView(PosStateView):
    permission_classes = [permission_required(Permissions.APPLY_DISCOUNTS)]

    @swagger_auto_schema(request_body=DiscountApplySerializer, responses={200: 'Updated cart', 400: 'Discount rejected'})
    def post(self, request):
        serializer = DiscountApplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        state = self.load()
        if data.get('code'):
            discount = apply_discount_code(data['code'], state.cart.total, state.context.dining_type)
        else:
            discount = manual_discount(data['amount'], data['reason'], state.cart.total)
        state.select_discount(discount)
        logger.info(f"POS discount '{discount.label}' applied by {request.user.email}")
        return self.respond(state)

    @swagger_auto_schema(responses={200: 'Updated cart'})
    def delete(self, request):
        state = self.load()
        state.select_discount(None)
        return self.respond(state)


# =============== SPLIT PAYMENTS ===============

class PosSplitPaymentView(PosStateView):
    @swagger_auto_schema(request_body=SplitPaymentSerializer, responses={201: 'Updated cart', 400: 'Payment rejected'})
    def post(self, request):
        serializer = SplitPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        state = self.load()
        total = quote_cart(state.cart, state.context.dining_type, state.discount).total
        state.split_payments = add_split_payment(state.split_payments, serializer.to_split(), total)
        return self.respond(state, status.HTTP_201_CREATED)


class PosSplitPaymentDetailView(PosStateView):
    @swagger_auto_schema(responses={200: 'Updated cart', 400: 'Split payment not found'})
    def delete(self, request, index):
        state = self.load()
        state.split_payments = remove_split_payment(state.split_payments, index)
        return self.respond(state)


# =============== PARKED ORDERS ===============

def serialize_parked(parked):
    return {
        'id': parked.id,
        'parked_at': parked.parked_at,
        'item_count': parked.cart.item_count,
        'cart_total': str(parked.cart.total),
        'cart': parked.cart.to_dict()['lines'],
        'context': parked.context.to_dict(),
        'discount': parked.discount.to_dict() if parked.discount else None,
    }


class PosParkedListView(PosStateView):
    @swagger_auto_schema(responses={200: 'Parked orders'})
    def get(self, request):
        state = self.load()
        return Response({
            'count': len(state.parked),
            'results': [serialize_parked(parked) for parked in state.parked],
        })

    @swagger_auto_schema(responses={201: 'Parked order', 400: 'Cart is empty'})
    def post(self, request):
        state = self.load()
        parked = state.park()
        self.save(state)
        logger.info(f"POS cart parked as {parked.id} ({parked.cart.item_count} items)")
        return Response(serialize_parked(parked), status=status.HTTP_201_CREATED)


class PosParkedResumeView(PosStateView):
    @swagger_auto_schema(responses={200: 'Restored cart', 400: 'Parked order not found'})
    def post(self, request, parked_id):
        state = self.load()
        state.resume(parked_id)
        return self.respond(state)


class PosParkedDetailView(PosStateView):
    @swagger_auto_schema(responses={204: 'Discarded', 400: 'Parked order not found'})
    def delete(self, request, parked_id):
        state = self.load()
        state.discard_parked(parked_id)
        self.save(state)
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============== CHECKOUT ===============

class PosCheckoutView(PosStateView):
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    @swagger_auto_schema(request_body=PosCheckoutSerializer, responses={201: OrderReadSerializer, 400: 'Order rejected'})
    def post(self, request):
        serializer = PosCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        state = self.load()
        context = state.context
        details = OrderDetails(
            dining_type=context.dining_type,
            payment_method=data['payment_method'],
            table_number=context.table_number,
            customer_name=context.customer_name,
            customer_phone=context.customer_phone,
            customer_email=context.customer_email,
            order_notes=context.order_notes,
            reservation_date=data.get('reservation_date'),
            reservation_time=data.get('reservation_time'),
            party_size=data.get('party_size'),
            cash_received=data.get('cash_received'),
            payment_proof=data.get('payment_proof'),
            split_payments=state.split_payments,
            placed_by=request.user,
        )
        order = submit_order(state.cart, details, state.discount)

        state.reset()
        self.save(state)
        return Response(OrderReadSerializer(order).data, status=status.HTTP_201_CREATED)
