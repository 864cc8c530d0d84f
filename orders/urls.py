from django.urls import path

from . import pos_views, views

app_name = 'orders'

urlpatterns = [
    # Orders
    path('orders/', views.OrderListCreateView.as_view(), name='order-list'),
    path('orders/recent/', views.recent_orders_view, name='order-recent'),
    path('orders/<uuid:order_id>/', views.OrderDetailView.as_view(), name='order-detail'),
    path('orders/<uuid:order_id>/status/', views.update_order_status, name='order-status'),
    path('orders/<uuid:order_id>/verify-payment/', views.verify_order_payment, name='order-verify-payment'),

    # Customer tracking
    path('orders/<uuid:order_id>/track/', views.track_order, name='order-track'),
    path('orders/<uuid:order_id>/rating/', views.rate_order_view, name='order-rating'),

    # Kitchen display
    path('kitchen/orders/', views.kitchen_orders, name='kitchen-orders'),
    path('kitchen/orders/<uuid:order_id>/advance/', views.kitchen_advance, name='kitchen-advance'),

    # Fees & discounts
    path('fees/', views.FeeListCreateView.as_view(), name='fee-list'),
    path('fees/<int:fee_id>/', views.FeeDetailView.as_view(), name='fee-detail'),
    path('discount-codes/', views.DiscountCodeListCreateView.as_view(), name='discount-list'),
    path('discount-codes/validate/', views.validate_discount, name='discount-validate'),
    path('discount-codes/<int:discount_id>/', views.DiscountCodeDetailView.as_view(), name='discount-detail'),

    # Customers
    path('customers/', views.CustomerListCreateView.as_view(), name='customer-list'),
    path('customers/<int:customer_id>/', views.CustomerDetailView.as_view(), name='customer-detail'),
    path('setup-customers/', views.setup_customers, name='setup-customers'),

    # POS terminal
    path('pos/cart/', pos_views.PosCartView.as_view(), name='pos-cart'),
    path('pos/cart/clear/', pos_views.PosCartClearView.as_view(), name='pos-cart-clear'),
    path('pos/cart/items/', pos_views.PosCartItemAddView.as_view(), name='pos-item-add'),
    path('pos/cart/items/update/', pos_views.PosCartItemUpdateView.as_view(), name='pos-item-update'),
    path('pos/cart/items/edit/', pos_views.PosCartItemEditView.as_view(), name='pos-item-edit'),
    path('pos/cart/items/remove/', pos_views.PosCartItemRemoveView.as_view(), name='pos-item-remove'),
    path('pos/context/', pos_views.PosContextView.as_view(), name='pos-context'),
    path('pos/discount/', pos_views.PosDiscountView.as_view(), name='pos-discount'),
    path('pos/payments/split/', pos_views.PosSplitPaymentView.as_view(), name='pos-split-add'),
    path('pos/payments/split/<int:index>/', pos_views.PosSplitPaymentDetailView.as_view(), name='pos-split-remove'),
    path('pos/parked/', pos_views.PosParkedListView.as_view(), name='pos-parked'),
    path('pos/parked/<str:parked_id>/resume/', pos_views.PosParkedResumeView.as_view(), name='pos-parked-resume'),
    path('pos/parked/<str:parked_id>/', pos_views.PosParkedDetailView.as_view(), name='pos-parked-detail'),
    path('pos/checkout/', pos_views.PosCheckoutView.as_view(), name='pos-checkout'),
]
