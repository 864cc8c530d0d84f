from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import CustomUser, StaffProfile
from .permissions import Permissions, user_has_permission

PASSWORD = 'Str0ng-Passw0rd!'


def make_staff(email, role=StaffProfile.ROLE_CASHIER, active=True):
    user = CustomUser.objects.create_user(email=email, password=PASSWORD, first_name='Test', last_name='User')
    StaffProfile.objects.create(user=user, role=role, is_active=active)
    return user


class PermissionMapTests(TestCase):
    """Role based permission checks"""

    def test_admin_has_everything(self):
        admin = make_staff('admin@cafe.test', StaffProfile.ROLE_ADMIN)
        self.assertTrue(user_has_permission(admin, Permissions.MANAGE_PRICING))
        self.assertTrue(user_has_permission(admin, Permissions.VIEW_REPORTS))

    def test_cashier(self):
        cashier = make_staff('cashier@cafe.test')
        self.assertTrue(user_has_permission(cashier, Permissions.CREATE_ORDERS))
        self.assertTrue(user_has_permission(cashier, Permissions.APPLY_DISCOUNTS))
        self.assertFalse(user_has_permission(cashier, Permissions.MANAGE_STOCK))

    def test_kitchen(self):
        kitchen = make_staff('kitchen@cafe.test', StaffProfile.ROLE_KITCHEN)
        self.assertTrue(user_has_permission(kitchen, Permissions.VIEW_KITCHEN))
        self.assertFalse(user_has_permission(kitchen, Permissions.CREATE_ORDERS))

    def test_inactive_profile_has_no_role(self):
        user = make_staff('former@cafe.test', active=False)
        self.assertIsNone(user.role)
        self.assertFalse(user_has_permission(user, Permissions.VIEW_ORDERS))


class LoginTests(APITestCase):

    def test_login_returns_role_and_permissions(self):
        make_staff('cashier@cafe.test')

        response = self.client.post(
            reverse('token_obtain_pair'), {'email': 'cashier@cafe.test', 'password': PASSWORD}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'cashier')
        self.assertIn(Permissions.CREATE_ORDERS, response.data['permissions'])
        self.assertIn('access', response.data)

    def test_wrong_password(self):
        make_staff('cashier@cafe.test')
        response = self.client.post(
            reverse('token_obtain_pair'), {'email': 'cashier@cafe.test', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_account_without_staff_profile(self):
        CustomUser.objects.create_user(email='guest@cafe.test', password=PASSWORD)
        response = self.client.post(
            reverse('token_obtain_pair'), {'email': 'guest@cafe.test', 'password': PASSWORD}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_access_token_authenticates(self):
        make_staff('cashier@cafe.test')
        login = self.client.post(
            reverse('token_obtain_pair'), {'email': 'cashier@cafe.test', 'password': PASSWORD}, format='json'
        )

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")
        response = self.client.get(reverse('my_profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'cashier@cafe.test')


class StaffUserManagementTests(APITestCase):

    def setUp(self):
        self.admin = make_staff('admin@cafe.test', StaffProfile.ROLE_ADMIN)
        self.cashier = make_staff('cashier@cafe.test')

    def test_admin_creates_kitchen_user(self):
        self.client.force_authenticate(self.admin)
        payload = {
            'email': 'kitchen@cafe.test', 'password': PASSWORD,
            'first_name': 'Kitchen', 'last_name': 'Staff', 'role': 'kitchen',
        }

        response = self.client.post(reverse('staff_user_list_create'), payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = CustomUser.objects.get(email='kitchen@cafe.test')
        self.assertEqual(user.role, StaffProfile.ROLE_KITCHEN)
        self.assertTrue(user.check_password(PASSWORD))

    def test_cashier_cannot_manage_users(self):
        self.client.force_authenticate(self.cashier)
        response = self.client.get(reverse('staff_user_list_create'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_filter_by_role(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('staff_user_list_create'), {'role': 'cashier'})
        self.assertEqual([u['email'] for u in response.data], ['cashier@cafe.test'])

    def test_admin_cannot_delete_self(self):
        self.client.force_authenticate(self.admin)
        response = self.client.delete(reverse('staff_user_detail', kwargs={'user_id': self.admin.id}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(CustomUser.objects.filter(pk=self.admin.pk).exists())

    def test_change_role(self):
        self.client.force_authenticate(self.admin)
        response = self.client.patch(
            reverse('staff_user_detail', kwargs={'user_id': self.cashier.id}), {'role': 'kitchen'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.cashier.refresh_from_db()
        self.assertEqual(self.cashier.staff_profile.role, StaffProfile.ROLE_KITCHEN)


class ProfileAndHealthTests(APITestCase):

    def test_profile_update_keeps_email(self):
        user = make_staff('cashier@cafe.test')
        self.client.force_authenticate(user)

        response = self.client.patch(
            reverse('my_profile'), {'first_name': 'Aina', 'email': 'other@cafe.test'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.first_name, 'Aina')
        self.assertEqual(user.email, 'cashier@cafe.test')

    def test_health_is_public(self):
        response = self.client.get(reverse('health_check'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')


class CreateStaffUserCommandTests(TestCase):

    def test_creates_user_with_role(self):
        out = StringIO()
        call_command('create_staff_user', 'kitchen@cafe.test', PASSWORD, '--role', 'kitchen', stdout=out)

        user = CustomUser.objects.get(email='kitchen@cafe.test')
        self.assertEqual(user.role, StaffProfile.ROLE_KITCHEN)
        self.assertIn('can now sign in as kitchen', out.getvalue())

    def test_existing_user_needs_update_flag(self):
        make_staff('cashier@cafe.test')

        with self.assertRaises(CommandError):
            call_command('create_staff_user', 'cashier@cafe.test', PASSWORD, stdout=StringIO())

        call_command(
            'create_staff_user', 'cashier@cafe.test', 'An0ther-Passw0rd!', '--role', 'admin', '--update',
            stdout=StringIO(),
        )
        user = CustomUser.objects.get(email='cashier@cafe.test')
        self.assertEqual(user.role, StaffProfile.ROLE_ADMIN)
        self.assertTrue(user.check_password('An0ther-Passw0rd!'))
