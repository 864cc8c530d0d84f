from django.contrib import admin

from .models import CustomUser, StaffProfile


class StaffProfileInline(admin.StackedInline):
    model = StaffProfile
    can_delete = False


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'first_name', 'last_name', 'is_active', 'is_superuser']
    list_filter = ['is_active', 'is_superuser', 'staff_profile__role']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['email']
    fields = ['email', 'first_name', 'last_name', 'phone', 'is_active', 'is_staff', 'is_superuser', 'last_login', 'date_joined']
    readonly_fields = ['last_login', 'date_joined']
    inlines = [StaffProfileInline]


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'display_name', 'is_active']
    list_filter = ['role', 'is_active']
    search_fields = ['user__email', 'display_name']
