from django.contrib import admin, messages
from django.contrib.admin.utils import unquote
from django.http import HttpResponseRedirect
from django.urls import reverse

from medical.exceptions import LedgerError
from medical.services import lifecycle
from .models import (
    AdverseEvent, Alert, Appointment, Campaign, CampaignCenter, Child, Guardian,
    NationalCalendar, Supply, SupplyUsage, VaccinationEvent, Vaccine, VaccineLot, VaccineSchedule,
)


class LifecycleDeleteMixin:
    """
    Admin deletions go through the lifecycle manager instead of a plain
    DELETE, so referenced rows are deactivated or kept. Only a row that was
    really removed gets a deletion log entry and the "deleted" message.
    """
    entity_type = None

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop('delete_selected', None)
        return actions

    def get_deleted_objects(self, objs, request):
        deleted, model_count, perms_needed, protected = super().get_deleted_objects(objs, request)
        # referenced rows are handled by the lifecycle manager, not refused up front
        return deleted, model_count, perms_needed, []

    def delete_view(self, request, object_id, extra_context=None):
        obj = self.get_object(request, unquote(object_id)) if request.method == 'POST' else None
        if obj is None or not self.has_delete_permission(request, obj):
            return super().delete_view(request, object_id, extra_context)

        obj_display = str(obj)
        changelist = reverse(
            f'admin:{self.opts.app_label}_{self.opts.model_name}_changelist',
            current_app=self.admin_site.name,
        )
        try:
            result = lifecycle.deactivate_or_delete(self.entity_type, obj.pk, principal=request.user)
        except LedgerError as e:
            self.message_user(request, e.message, messages.ERROR)
            return HttpResponseRedirect(changelist)

        if result.outcome == lifecycle.DELETED:
            self.log_deletions(request, [obj])
            return self.response_delete(request, obj_display, obj.pk)

        if result.outcome == lifecycle.DEACTIVATED:
            self.message_user(request, f"{obj_display} is still referenced and was deactivated instead.",
                              messages.WARNING)
        else:
            self.message_user(request, f"{obj_display} was not deleted: {result.reason} "
                                       f"({', '.join(result.dependents)}).", messages.ERROR)
        return HttpResponseRedirect(changelist)


class VaccineScheduleInline(admin.TabularInline):
    model = VaccineSchedule
    extra = 1


class GuardianInline(admin.TabularInline):
    model = Guardian
    extra = 0
    autocomplete_fields = ['nationality']


@admin.register(Vaccine)
class VaccineAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'vaccine'
    list_display = ('name', 'manufacturer', 'vaccine_type', 'required_doses', 'state')
    search_fields = ('name', 'manufacturer')
    inlines = [VaccineScheduleInline]


@admin.register(NationalCalendar)
class NationalCalendarAdmin(admin.ModelAdmin):
    list_display = ('country', 'schedule')
    list_filter = ('country',)


@admin.register(VaccineLot)
class VaccineLotAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'lot'
    list_display = ('lot_number', 'vaccine', 'center', 'available_quantity', 'total_quantity', 'expiry_date')
    list_filter = ('vaccine', 'center', 'expiry_date')
    search_fields = ('lot_number', 'vaccine__name')
    # stock only moves through the ledger
    readonly_fields = ('available_quantity', 'created_at', 'updated_at')

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ('created_at', 'updated_at')
        return self.readonly_fields + ('total_quantity',)


@admin.register(Child)
class ChildAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'child'
    list_display = ('full_name', 'national_id', 'gender', 'birth_date', 'health_center', 'state')
    list_filter = ('gender', 'state', 'health_center')
    search_fields = ('full_name', 'national_id', 'guardians__name')
    autocomplete_fields = ['health_center', 'nationality', 'birth_country']
    inlines = [GuardianInline]


@admin.register(Appointment)
class AppointmentAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'appointment'
    list_display = ('child', 'center', 'vaccine', 'scheduled_at', 'status')
    list_filter = ('status', 'center')
    search_fields = ('child__full_name',)


@admin.register(VaccinationEvent)
class VaccinationEventAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    """Events are registered through the API so stock is consumed; the admin only reads them."""
    entity_type = 'event'
    list_display = ('child', 'lot', 'dose_number', 'administered_at', 'staff', 'center')
    list_filter = ('lot__vaccine', 'center', 'administered_at')
    search_fields = ('child__full_name', 'lot__lot_number')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Campaign)
class CampaignAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'campaign'
    list_display = ('name', 'vaccine', 'start_date', 'end_date', 'status')
    list_filter = ('status', 'vaccine')


admin.site.register(CampaignCenter)


@admin.register(AdverseEvent)
class AdverseEventAdmin(admin.ModelAdmin):
    list_display = ('child', 'event', 'severity', 'occurred_on', 'status')
    list_filter = ('severity', 'status')


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = ('child', 'alert_type', 'raised_at', 'status', 'assigned_user')
    list_filter = ('status', 'alert_type')


@admin.register(Supply)
class SupplyAdmin(LifecycleDeleteMixin, admin.ModelAdmin):
    entity_type = 'supply'
    list_display = ('name', 'supply_type', 'center', 'available_quantity', 'total_quantity', 'expiry_date')
    list_filter = ('center', 'supply_type')
    readonly_fields = ('available_quantity',)

    def get_readonly_fields(self, request, obj=None):
        return () if obj is None else self.readonly_fields


@admin.register(SupplyUsage)
class SupplyUsageAdmin(admin.ModelAdmin):
    list_display = ('supply', 'event', 'quantity', 'used_on')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
