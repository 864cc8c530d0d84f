from django.urls import path

from . import views


urlpatterns = [
    # Categories
    path('categories/', views.CategoryListCreateView.as_view(), name='category-list-create'),
    path('categories/<int:pk>/', views.CategoryRetrieveUpdateDestroyView.as_view(), name='category-detail'),

    # Products
    path('products/', views.ProductListCreateView.as_view(), name='product-list-create'),
    path('products/low-stock/', views.low_stock, name='product-low-stock'),
    path('products/<int:pk>/', views.ProductRetrieveUpdateDestroyView.as_view(), name='product-detail'),
    path('products/<int:product_id>/sizes/', views.ProductSizeListCreateView.as_view(), name='product-size-list-create'),
    path('product-sizes/<int:pk>/', views.ProductSizeDetailView.as_view(), name='product-size-detail'),
    path('products/<int:product_id>/add-ons/', views.AddOnListCreateView.as_view(), name='add-on-list-create'),
    path('add-ons/<int:pk>/', views.AddOnDetailView.as_view(), name='add-on-detail'),

    # Stock
    path('products/<int:pk>/stock/adjust/', views.adjust_product_stock, name='product-stock-adjust'),
    path('products/<int:pk>/stock/set/', views.set_product_stock, name='product-stock-set'),
    path('stock-history/', views.StockHistoryListView.as_view(), name='stock-history'),

    # Menu promos
    path('menu-promos/', views.MenuPromoListCreateView.as_view(), name='menu-promo-list-create'),
    path('menu-promos/reorder/', views.reorder_promos, name='menu-promo-reorder'),
    path('menu-promos/<int:pk>/', views.MenuPromoDetailView.as_view(), name='menu-promo-detail'),
]
