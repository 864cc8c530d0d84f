from django.urls import path

from . import views

urlpatterns = [
    path('tables/most-frequent/', views.most_frequent_table_view, name='most-frequent-table'),
    path('tables/status/', views.table_status_view, name='table-status'),
    path('reports/summary/', views.sales_summary, name='report-summary'),
    path('reports/daybook/', views.DaybookReportView.as_view(), name='report-daybook'),
    path('reports/stock-history/', views.stock_history_report, name='report-stock-history'),
]
