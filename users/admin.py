from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from medical.admin import LifecycleDeleteMixin
from .models import CustomUser


class CustomUserAdmin(LifecycleDeleteMixin, UserAdmin):
    entity_type = 'user'
    model = CustomUser

    fieldsets = (
        (None, {'fields': ('username', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name', 'email')}),
        ('Center', {'fields': ('role', 'health_center', 'phone')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )

    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Center', {'fields': ('role', 'health_center', 'phone')}),
    )

    list_display = ('username', 'role', 'health_center', 'is_staff')
    list_filter = ('role', 'health_center', 'is_staff', 'is_superuser')


admin.site.register(CustomUser, CustomUserAdmin)
