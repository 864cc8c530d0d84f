import io
from datetime import timedelta
from decimal import Decimal

import openpyxl
from django.conf import settings
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import StaffProfile
from inventory.models import StockHistory
from orders.choices import DiningType, OrderStatus
from orders.models import Order
from orders.services import OrderDetails, submit_order
from orders.tests.factories import cart_with, make_product, make_staff
from .exports import XLSX_CONTENT_TYPE, generate_daybook_excel, generate_stock_history_excel
from .services import get_summary, get_top_selling_items, most_frequent_table, table_status


def place(product, quantity=1, table=None, method='visa', placed_by=None):
    return submit_order(
        cart_with((product, 'M', quantity)),
        OrderDetails(
            dining_type=DiningType.DINE_IN, payment_method=method, table_number=table, placed_by=placed_by,
        ),
    )


class ReportServiceTests(TestCase):
    """Dashboard figures computed from the order snapshots"""

    def setUp(self):
        self.latte = make_product('Latte', '10.00')
        self.cookie = make_product('Cookie', '4.00')

    def test_most_frequent_table(self):
        self.assertIsNone(most_frequent_table())

        place(self.latte, table=3)
        place(self.latte, table=5)
        place(self.cookie, table=5)
        place(self.cookie)

        self.assertEqual(most_frequent_table(), {'table_number': 5, 'order_count': 2})

    def test_tie_goes_to_lowest_table(self):
        place(self.latte, table=8)
        place(self.latte, table=2)
        self.assertEqual(most_frequent_table()['table_number'], 2)

    def test_summary_excludes_cancelled_revenue(self):
        place(self.latte, 2)
        place(self.cookie, 1)
        cancelled = place(self.latte, 5)
        Order.objects.filter(pk=cancelled.pk).update(status=OrderStatus.CANCELLED)

        summary = get_summary()

        self.assertEqual(summary['orders_count'], 2)
        self.assertEqual(summary['revenue'], Decimal('24.00'))
        self.assertEqual(summary['avg_order_value'], Decimal('12.00'))
        self.assertEqual(summary['status_breakdown'][OrderStatus.CANCELLED], 1)

    def test_comparison_with_yesterday(self):
        yesterday = place(self.latte, 1)
        Order.objects.filter(pk=yesterday.pk).update(created_at=timezone.now() - timedelta(days=1))
        place(self.latte, 2)

        summary = get_summary()

        self.assertEqual(summary['comparison']['revenue_change'], 100.0)
        self.assertEqual(summary['comparison']['orders_change'], 0.0)

    def test_top_selling_items(self):
        place(self.cookie, 3)
        place(self.latte, 1)
        place(self.cookie, 1)

        top = get_top_selling_items(Order.objects.all())

        self.assertEqual(top[0], {'name': 'Cookie', 'total_quantity': 4, 'total_revenue': Decimal('16.00')})
        self.assertEqual(top[1]['name'], 'Latte')


class ReportAPITests(APITestCase):

    def setUp(self):
        self.admin = make_staff('admin@cafe.test', StaffProfile.ROLE_ADMIN)
        self.cashier = make_staff('cashier@cafe.test')
        self.latte = make_product('Latte', '10.00', track_stock=True, stock_quantity=10)

    def test_most_frequent_table_without_data(self):
        self.client.force_authenticate(self.cashier)

        response = self.client.get(reverse('most-frequent-table'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.content, b'null')
        self.assertIsNone(response.json())

    def test_most_frequent_table(self):
        place(self.latte, table=6)
        self.client.force_authenticate(self.cashier)

        response = self.client.get(reverse('most-frequent-table'))

        self.assertEqual(response.json(), {'table_number': 6, 'order_count': 1})

    def test_reports_need_report_permission(self):
        self.client.force_authenticate(self.cashier)
        response = self.client.get(reverse('report-summary'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_summary(self):
        place(self.latte, 2, table=4)
        self.client.force_authenticate(self.admin)

        response = self.client.get(reverse('report-summary'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['orders_count'], 1)
        self.assertEqual(response.data['most_frequent_table']['table_number'], 4)

    def test_summary_bad_date(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('report-summary'), {'date': '31/12/2024'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_daybook_excel(self):
        order = place(self.latte, 2, table=4)
        today = timezone.localdate().isoformat()
        self.client.force_authenticate(self.admin)

        response = self.client.get(reverse('report-daybook'), {'start_date': today, 'end_date': today, 'format': 'excel'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
        self.assertIn(f'daybook_report_{today}_{today}.xlsx', response['Content-Disposition'])
        workbook = openpyxl.load_workbook(io.BytesIO(response.content))
        values = [cell.value for row in workbook.active.iter_rows() for cell in row]
        self.assertIn(order.short_id, values)

    def test_daybook_pdf(self):
        place(self.latte, 1)
        self.client.force_authenticate(self.admin)

        response = self.client.get(reverse('report-daybook'), {'format': 'pdf'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_daybook_rejects_bad_range_and_format(self):
        self.client.force_authenticate(self.admin)

        response = self.client.get(
            reverse('report-daybook'), {'start_date': '2024-05-02', 'end_date': '2024-05-01'}
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(reverse('report-daybook'), {'format': 'csv'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_history_export(self):
        place(self.latte, 3)
        self.client.force_authenticate(self.admin)

        response = self.client.get(reverse('report-stock-history'), {'product': self.latte.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
        workbook = openpyxl.load_workbook(io.BytesIO(response.content))
        values = [cell.value for row in workbook.active.iter_rows() for cell in row]
        self.assertIn('Latte', values)


class ExcelExportTests(TestCase):
    """Workbooks with merged title rows still get sized columns"""

    def load(self, response):
        return openpyxl.load_workbook(io.BytesIO(response.content)).active

    def test_empty_daybook(self):
        today = timezone.localdate()

        ws = self.load(generate_daybook_excel([], today, today))

        self.assertEqual(ws['B4'].value, 'Order ID')
        self.assertIn('A1:K1', [str(r) for r in ws.merged_cells.ranges])
        self.assertEqual(ws.column_dimensions['J'].width, len('Payment Method') + 2)

    def test_empty_stock_history(self):
        ws = self.load(generate_stock_history_excel(StockHistory.objects.none()))

        self.assertEqual(ws['B4'].value, 'Product')
        self.assertGreater(ws.column_dimensions['B'].width, 0)


class TableStatusTests(TestCase):

    def setUp(self):
        self.latte = make_product('Latte', '10.00')
        self.cashier = make_staff('cashier@cafe.test')

    def tables(self, now=None):
        with self.settings(CAFE_POS={**settings.CAFE_POS, 'TABLE_COUNT': 3}):
            return table_status(now)

    def test_all_tables_free(self):
        result = self.tables()

        self.assertEqual([t['table_number'] for t in result['tables']], [1, 2, 3])
        self.assertTrue(all(t['is_available'] for t in result['tables']))
        self.assertEqual(result['summary'], {'available': 3, 'occupied': 0, 'outstanding': 0})

    def test_paid_and_unpaid_tables(self):
        place(self.latte, 2, table=1, placed_by=self.cashier)
        place(self.latte, 1, table=1, placed_by=self.cashier)
        place(self.latte, 1, table=2)

        result = self.tables(now=timezone.now() + timedelta(minutes=20))
        by_number = {t['table_number']: t for t in result['tables']}

        self.assertEqual(by_number[1]['status'], 'occupied')
        self.assertEqual(by_number[1]['open_orders'], 2)
        self.assertEqual(by_number[1]['order_total'], Decimal('30.00'))
        self.assertEqual(by_number[1]['minutes_occupied'], 20)
        self.assertEqual(by_number[2]['status'], 'outstanding')
        self.assertEqual(by_number[2]['order_status'], OrderStatus.PENDING)
        self.assertTrue(by_number[3]['is_available'])
        self.assertEqual(result['summary'], {'available': 1, 'occupied': 1, 'outstanding': 1})

    def test_finished_orders_free_the_table(self):
        done = place(self.latte, table=1, placed_by=self.cashier)
        cancelled = place(self.latte, table=2)
        Order.objects.filter(pk=done.pk).update(status=OrderStatus.COMPLETED)
        Order.objects.filter(pk=cancelled.pk).update(status=OrderStatus.CANCELLED)

        result = self.tables()

        self.assertEqual(result['summary']['available'], 3)

    def test_tables_beyond_configured_count_are_listed(self):
        place(self.latte, table=9, placed_by=self.cashier)

        numbers = [t['table_number'] for t in self.tables()['tables']]

        self.assertEqual(numbers, [1, 2, 3, 9])

    def test_endpoint(self):
        place(self.latte, table=2)
        self.client.force_login(self.cashier)

        response = self.client.get(reverse('table-status'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['refresh_seconds'], 30)
        self.assertEqual(data['summary']['outstanding'], 1)

    def test_endpoint_requires_login(self):
        response = self.client.get(reverse('table-status'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
