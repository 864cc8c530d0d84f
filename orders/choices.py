from django.db import models


class DiningType(models.TextChoices):
    DINE_IN = 'dine_in', 'Dine In'
    TAKEAWAY = 'takeaway', 'Takeaway'
    RESERVATION = 'reservation', 'Reservation'


class FeeScope(models.TextChoices):
    DINE_IN = 'dine_in', 'Dine In'
    TAKEAWAY = 'takeaway', 'Takeaway'
    RESERVATION = 'reservation', 'Reservation'
    BOTH = 'both', 'All order types'


class FeeType(models.TextChoices):
    FIXED = 'fixed', 'Fixed amount'
    PERCENTAGE = 'percentage', 'Percentage'


class DiscountType(models.TextChoices):
    PERCENTAGE = 'percentage', 'Percentage'
    FIXED = 'fixed', 'Fixed amount'


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    VISA = 'visa', 'Visa'
    MASTER = 'master', 'Mastercard'
    QR = 'qr', 'QR Payment'
    SPLIT = 'split', 'Split Payment'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'


class OrderStatus(models.TextChoices):
    PAYMENT_VERIFICATION = 'payment_verification', 'Payment Verification'
    PAYMENT_VERIFIED = 'payment_verified', 'Payment Verified'
    PENDING = 'pending', 'Pending'
    PREPARING = 'preparing', 'Preparing'
    READY = 'ready', 'Ready'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    RESERVATION_CONFIRMED = 'reservation_confirmed', 'Reservation Confirmed'
    RESERVATION_READY = 'reservation_ready', 'Reservation Ready'
