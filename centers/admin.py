from django import forms
from django.contrib import admin, messages
from django.contrib.auth import get_user_model

from medical.admin import LifecycleDeleteMixin
from .models import Country, HealthCenter, HealthStaff

User = get_user_model()


@admin.register(Country)
class CountryAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'country'
    list_display = ('name', 'demonym', 'state')
    search_fields = ('name', 'demonym')


class HealthCenterForm(forms.ModelForm):
    director_password = forms.CharField(
        label="Director password",
        widget=forms.PasswordInput,
        required=False,
        help_text="When adding a center, enter a password here to create its director account "
                  "(the username is the center's short name, or its name)."
    )

    class Meta:
        model = HealthCenter
        fields = '__all__'


class HealthStaffInline(admin.TabularInline):
    model = HealthStaff
    extra = 0


@admin.register(HealthCenter)
class HealthCenterAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'center'
    form = HealthCenterForm
    list_display = ('name', 'short_name', 'director', 'phone', 'state')
    list_filter = ('state',)
    search_fields = ('name', 'short_name')
    inlines = [HealthStaffInline]

    def save_model(self, request, obj, form, change):
        is_new = obj._state.adding
        super().save_model(request, obj, form, change)

        # Director account
        password = form.cleaned_data.get('director_password')

        if password:
            # only this center's own director is ever updated
            director = User.objects.filter(health_center=obj, role='DIRECTOR').first()
            if director:
                director.set_password(password)
                director.save()
                messages.success(request, f"Director password updated. Username: {director.username}")
            else:
                director = User.objects.create_director(obj, password)
                messages.success(request, f"Director account created. Username: {director.username}")
        elif is_new:
            messages.warning(request, "No director account was created because no password was given.")


@admin.register(HealthStaff)
class HealthStaffAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'staff'
    list_display = ('name', 'national_id', 'specialty', 'center', 'state')
    list_filter = ('center', 'state')
    search_fields = ('name', 'national_id')
