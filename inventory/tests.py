from django.conf import settings
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from authentication.models import StaffProfile
from orders.tests.factories import make_product, make_staff
from .models import MenuPromo, Product, StockHistory
from .services import StockError, adjust_stock, low_stock_products, record_sale, set_stock


class StockLedgerTests(TestCase):
    """Every stock change writes a consistent ledger row"""

    def setUp(self):
        self.beans = make_product('Coffee beans', '45.00', track_stock=True, stock_quantity=10)

    def assertLedgerConsistent(self):
        for entry in StockHistory.objects.filter(product=self.beans):
            self.assertEqual(entry.new_quantity, entry.previous_quantity + entry.quantity_change)
            self.assertGreaterEqual(entry.new_quantity, 0)

    def test_initial_stock_recorded_on_create(self):
        entry = StockHistory.objects.get(product=self.beans)

        self.assertEqual(entry.change_type, StockHistory.CHANGE_INITIAL)
        self.assertEqual(entry.new_quantity, 10)

    def test_untracked_product_has_no_initial_row(self):
        cookie = make_product('Cookie', '4.00', stock_quantity=10)
        self.assertFalse(StockHistory.objects.filter(product=cookie).exists())

    def test_restock_and_waste(self):
        adjust_stock(self.beans, StockHistory.CHANGE_RESTOCK, 5, reason='Supplier delivery')
        entry = adjust_stock(self.beans, StockHistory.CHANGE_WASTE, -3, reason='Expired')

        self.beans.refresh_from_db()
        self.assertEqual(self.beans.stock_quantity, 12)
        self.assertEqual(entry.previous_quantity, 15)
        self.assertLedgerConsistent()

    def test_cannot_go_negative(self):
        with self.assertRaisesMessage(StockError, 'Stock quantity cannot be negative'):
            adjust_stock(self.beans, StockHistory.CHANGE_WASTE, -11)
        self.beans.refresh_from_db()
        self.assertEqual(self.beans.stock_quantity, 10)
        self.assertEqual(StockHistory.objects.filter(product=self.beans).count(), 1)

    def test_zero_change_rejected(self):
        with self.assertRaises(StockError):
            adjust_stock(self.beans, StockHistory.CHANGE_ADJUSTMENT, 0)

    def test_set_stock(self):
        entry = set_stock(self.beans, 4, notes='Stock take')

        self.assertEqual(entry.change_type, StockHistory.CHANGE_ADJUSTMENT)
        self.assertEqual(entry.quantity_change, -6)
        self.assertEqual(entry.reason, 'Set Stock')
        self.assertIsNone(set_stock(self.beans, 4))
        self.assertLedgerConsistent()

    def test_sale_floors_at_zero(self):
        entry = record_sale(self.beans.id, 25, reference='Order ABC')

        self.assertEqual(entry.new_quantity, 0)
        self.assertEqual(entry.quantity_change, -10)
        self.assertLedgerConsistent()
        self.assertIsNone(record_sale(self.beans.id, 1))

    def test_sale_of_missing_product_is_skipped(self):
        self.assertIsNone(record_sale(999999, 1))

    def test_low_stock_products(self):
        make_product('Milk', '6.00', track_stock=True, stock_quantity=2)
        make_product('Syrup', '8.00', track_stock=True, stock_quantity=0, active=False)

        names = [p.name for p in low_stock_products()]

        self.assertEqual(names, ['Milk'])
        self.assertEqual([p.name for p in low_stock_products(threshold=11)], ['Milk', 'Coffee beans'])

    def test_low_stock_boundary_matches_product_flag(self):
        at_threshold = make_product('Sugar', '3.00', track_stock=True, stock_quantity=5, low_stock_threshold=5)
        below = make_product('Cream', '7.00', track_stock=True, stock_quantity=4, low_stock_threshold=5)
        custom = make_product('Cups', '0.50', track_stock=True, stock_quantity=30, low_stock_threshold=50)

        listed = {p.name for p in low_stock_products()}

        self.assertFalse(at_threshold.is_low_stock)
        self.assertNotIn('Sugar', listed)
        self.assertTrue(below.is_low_stock)
        self.assertIn('Cream', listed)
        self.assertTrue(custom.is_low_stock)
        self.assertIn('Cups', listed)

    def test_new_products_take_configured_threshold(self):
        with self.settings(CAFE_POS={**settings.CAFE_POS, 'LOW_STOCK_THRESHOLD': 12}):
            flour = make_product('Flour', '9.00', track_stock=True, stock_quantity=11)

        self.assertEqual(flour.low_stock_threshold, 12)
        self.assertTrue(flour.is_low_stock)


class CatalogAPITests(APITestCase):

    def setUp(self):
        self.admin = make_staff('admin@cafe.test', StaffProfile.ROLE_ADMIN)
        self.cashier = make_staff('cashier@cafe.test')
        self.latte = make_product('Latte', '10.00')
        self.hidden = make_product('Seasonal', '12.00', active=False)

    def test_public_menu_hides_inactive_products(self):
        response = self.client.get(reverse('product-list-create'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Latte'])

    def test_staff_see_inactive_products(self):
        self.client.force_authenticate(self.cashier)
        response = self.client.get(reverse('product-list-create'))
        self.assertEqual(len(response.data), 2)

    def test_only_admins_create_products(self):
        payload = {'name': 'Mocha', 'price': '11.00', 'track_stock': True, 'stock_quantity': 8}

        self.client.force_authenticate(self.cashier)
        self.assertEqual(
            self.client.post(reverse('product-list-create'), payload, format='json').status_code,
            status.HTTP_403_FORBIDDEN,
        )

        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('product-list-create'), payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        mocha = Product.objects.get(name='Mocha')
        self.assertEqual(StockHistory.objects.get(product=mocha).change_type, StockHistory.CHANGE_INITIAL)

    def test_stock_edit_from_product_form_uses_ledger(self):
        beans = make_product('Beans', '40.00', track_stock=True, stock_quantity=5)
        self.client.force_authenticate(self.admin)

        response = self.client.patch(
            reverse('product-detail', kwargs={'pk': beans.pk}), {'stock_quantity': 9}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry = StockHistory.objects.filter(product=beans).first()
        self.assertEqual(entry.change_type, StockHistory.CHANGE_ADJUSTMENT)
        self.assertEqual(entry.quantity_change, 4)
        self.assertEqual(entry.staff, self.admin)

    def test_product_sizes(self):
        self.client.force_authenticate(self.admin)
        url = reverse('product-size-list-create', kwargs={'product_id': self.latte.pk})

        response = self.client.post(url, {'size_name': 'L', 'price_multiplier': '1.30'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['price'], '13.00')

    def test_add_ons(self):
        self.client.force_authenticate(self.admin)
        url = reverse('add-on-list-create', kwargs={'product_id': self.latte.pk})

        response = self.client.post(url, {'name': 'Extra shot', 'price': '2.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.client.force_authenticate(None)
        self.assertEqual(len(self.client.get(url).data), 1)


class StockAPITests(APITestCase):

    def setUp(self):
        self.admin = make_staff('admin@cafe.test', StaffProfile.ROLE_ADMIN)
        self.cashier = make_staff('cashier@cafe.test')
        self.milk = make_product('Milk', '6.00', track_stock=True, stock_quantity=3)

    def test_adjust(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse('product-stock-adjust', kwargs={'pk': self.milk.pk}),
            {'change_type': 'restock', 'quantity_change': 12, 'reason': 'Delivery'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stock_quantity'], 15)
        self.assertEqual(response.data['history']['staff_email'], 'admin@cafe.test')

    def test_adjust_below_zero(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse('product-stock-adjust', kwargs={'pk': self.milk.pk}),
            {'change_type': 'waste', 'quantity_change': -4},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'stock_error')

    def test_sale_is_not_a_manual_change_type(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse('product-stock-adjust', kwargs={'pk': self.milk.pk}),
            {'change_type': 'sale', 'quantity_change': -1},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_set_unchanged(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse('product-stock-set', kwargs={'pk': self.milk.pk}), {'new_quantity': 3}, format='json'
        )
        self.assertIsNone(response.data['history'])

    def test_cashier_cannot_change_stock(self):
        self.client.force_authenticate(self.cashier)
        response = self.client.post(
            reverse('product-stock-set', kwargs={'pk': self.milk.pk}), {'new_quantity': 1}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_low_stock_and_history(self):
        self.client.force_authenticate(self.cashier)

        response = self.client.get(reverse('product-low-stock'))
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(reverse('stock-history'), {'product': self.milk.pk})
        self.assertEqual(response.data[0]['change_type'], 'initial')

    def test_low_stock_list_agrees_with_product_detail(self):
        sugar = make_product('Sugar', '3.00', track_stock=True, stock_quantity=5, low_stock_threshold=5)
        self.client.force_authenticate(self.cashier)

        response = self.client.get(reverse('product-low-stock'))
        self.assertEqual([p['name'] for p in response.data['results']], ['Milk'])

        detail = self.client.get(reverse('product-detail', kwargs={'pk': sugar.pk}))
        self.assertFalse(detail.data['is_low_stock'])

        response = self.client.get(reverse('product-low-stock'), {'threshold': 6})
        self.assertEqual(response.data['count'], 2)


class MenuPromoTests(APITestCase):

    def setUp(self):
        self.admin = make_staff('admin@cafe.test', StaffProfile.ROLE_ADMIN)
        self.first = MenuPromo.objects.create(title='Happy hour', sort_order=0)
        self.second = MenuPromo.objects.create(title='Pastry week', sort_order=1)
        self.off = MenuPromo.objects.create(title='Old promo', sort_order=2, active=False)

    def test_public_list_is_active_only(self):
        response = self.client.get(reverse('menu-promo-list-create'))
        self.assertEqual([p['title'] for p in response.data], ['Happy hour', 'Pastry week'])

    def test_admin_sees_all(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('menu-promo-list-create'), {'all': 'true'})
        self.assertEqual(len(response.data), 3)

    def test_reorder(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse('menu-promo-reorder'), {'promo_ids': [self.second.id, self.first.id]}, format='json'
        )

        self.assertEqual([p['title'] for p in response.data], ['Pastry week', 'Happy hour'])
        self.second.refresh_from_db()
        self.assertEqual(self.second.sort_order, 0)

    def test_reorder_unknown_promo(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('menu-promo-reorder'), {'promo_ids': [999]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
