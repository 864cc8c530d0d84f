from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import RegexValidator
import uuid


class CustomUserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class TimeStampedModel(models.Model):
    """Base model with created_at and updated_at fields"""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============== USER MANAGEMENT ===============

class CustomUser(AbstractUser):
    """Staff login account, identified by email"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone_regex = RegexValidator(regex=r'^\+?\d{9,15}$')
    phone = models.CharField(validators=[phone_regex], max_length=17, blank=True)
    email = models.EmailField(unique=True)

    username = None
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']
    objects = CustomUserManager()

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.email

    @property
    def role(self):
        profile = getattr(self, 'staff_profile', None)
        if profile is None or not profile.is_active:
            return None
        return profile.role


class StaffProfile(TimeStampedModel):
    """Role assignment for a staff account"""
    ROLE_ADMIN = 'admin'
    ROLE_CASHIER = 'cashier'
    ROLE_KITCHEN = 'kitchen'
    ROLES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_CASHIER, 'Cashier'),
        (ROLE_KITCHEN, 'Kitchen'),
    ]

    user = models.OneToOneField(CustomUser, on_delete=models.CASCADE, related_name='staff_profile')
    role = models.CharField(max_length=20, choices=ROLES, default=ROLE_CASHIER)
    display_name = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'staff_profiles'

    def __str__(self):
        return f"{self.user.email} ({self.role})"
