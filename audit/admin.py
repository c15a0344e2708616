from django.contrib import admin
from .models import AuditRecord


@admin.register(AuditRecord)
class AuditRecordAdmin(admin.ModelAdmin):
    list_display = ('recorded_at', 'action', 'table_name', 'row_id', 'user')
    list_filter = ('action', 'table_name', 'recorded_at')
    search_fields = ('row_id', 'details', 'user__username')
    readonly_fields = [f.name for f in AuditRecord._meta.fields]

    # The trail is append-only, even for superusers
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
