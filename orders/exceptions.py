from rest_framework import status

from authentication.exceptions import POSError


class CartError(POSError):
    default_code = 'cart_error'
    default_message = 'Invalid cart operation'


class LineNotFound(CartError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'line_not_found'
    default_message = 'Cart line not found'


class DiscountError(POSError):
    default_code = 'discount_error'
    default_message = 'Invalid or expired discount code'


class PaymentError(POSError):
    default_code = 'payment_error'
    default_message = 'Payment details are incomplete'


class OrderValidationError(POSError):
    default_code = 'order_invalid'
    default_message = 'Order details are incomplete'


class InvalidStatusTransition(POSError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'invalid_status_transition'
    default_message = 'This status change is not allowed'
