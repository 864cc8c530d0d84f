from decimal import Decimal

from authentication.models import CustomUser, StaffProfile
from inventory.models import AddOn, Category, Product, ProductSize
from orders.cart import Cart
from orders.services import resolve_cart_item

PASSWORD = 'Str0ng-Passw0rd!'


def make_staff(email, role=StaffProfile.ROLE_CASHIER, **extra):
    user = CustomUser.objects.create_user(
        email=email, password=PASSWORD, first_name='Test', last_name=role.title(), **extra
    )
    StaffProfile.objects.create(user=user, role=role)
    return user


def make_product(name='Latte', price='10.00', **extra):
    category = Category.objects.get_or_create(name='Coffee')[0]
    return Product.objects.create(category=category, name=name, price=Decimal(price), **extra)


def add_size(product, size_name, multiplier='1.00', override=None):
    return ProductSize.objects.create(
        product=product,
        size_name=size_name,
        price_multiplier=Decimal(multiplier),
        price_override=Decimal(override) if override else None,
    )


def add_add_on(product, name='Oat milk', price='1.50'):
    return AddOn.objects.create(product=product, name=name, price=Decimal(price))


def cart_with(*entries):
    """Build a cart from (product, size, quantity) tuples priced from the catalog"""
    cart = Cart()
    for product, size, quantity in entries:
        cart.add(quantity=quantity, **resolve_cart_item(product.id, size))
    return cart
