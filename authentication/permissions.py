from rest_framework import permissions

from .models import StaffProfile


class Permissions:
    """Permission constants for the POS system"""

    # Orders
    CREATE_ORDERS = 'create_orders'
    VIEW_ORDERS = 'view_orders'
    UPDATE_ORDER_STATUS = 'update_order_status'
    VERIFY_PAYMENTS = 'verify_payments'
    APPLY_DISCOUNTS = 'apply_discounts'

    # Kitchen
    VIEW_KITCHEN = 'view_kitchen'

    # Catalog & stock
    VIEW_INVENTORY = 'view_inventory'
    MANAGE_CATALOG = 'manage_catalog'
    MANAGE_STOCK = 'manage_stock'

    # Pricing
    MANAGE_PRICING = 'manage_pricing'

    # Customers
    VIEW_CUSTOMERS = 'view_customers'
    MANAGE_CUSTOMERS = 'manage_customers'

    # Administration
    MANAGE_USERS = 'manage_users'
    VIEW_REPORTS = 'view_reports'


# Default permissions for each role
DEFAULT_PERMISSIONS = {
    StaffProfile.ROLE_ADMIN: ['all'],
    StaffProfile.ROLE_CASHIER: [
        Permissions.CREATE_ORDERS, Permissions.VIEW_ORDERS,
        Permissions.UPDATE_ORDER_STATUS, Permissions.VERIFY_PAYMENTS,
        Permissions.APPLY_DISCOUNTS, Permissions.VIEW_KITCHEN,
        Permissions.VIEW_INVENTORY, Permissions.VIEW_CUSTOMERS,
    ],
    StaffProfile.ROLE_KITCHEN: [
        Permissions.VIEW_KITCHEN, Permissions.UPDATE_ORDER_STATUS,
    ],
}


def get_role_permissions(role):
    return list(DEFAULT_PERMISSIONS.get(role, []))


def user_has_permission(user, permission):
    """Superusers and admins hold every permission; other roles use the role map"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    granted = DEFAULT_PERMISSIONS.get(user.role, [])
    return 'all' in granted or permission in granted


class IsStaffMember(permissions.BasePermission):
    """
    Permission to only allow users with an active staff profile
    """
    message = 'An active staff profile is required.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.role is not None


class IsAdminRole(permissions.BasePermission):
    """
    Permission to only allow the admin role
    """
    message = 'Only admins can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.role == StaffProfile.ROLE_ADMIN


class HasPermission(permissions.BasePermission):
    """
    Permission to check a named permission from the role map
    """
    required_permission = None

    def has_permission(self, request, view):
        required = self.required_permission or getattr(view, 'required_permission', None)
        if required is None:
            return IsStaffMember().has_permission(request, view)
        return user_has_permission(request.user, required)


def permission_required(permission):
    """Build a HasPermission subclass bound to a single permission"""
    return type(
        f'Requires_{permission}',
        (HasPermission,),
        {
            'required_permission': permission,
            'message': f'Missing permission: {permission}',
        },
    )
