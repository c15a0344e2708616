from django.conf import settings
from django.db import models


class AuditRecord(models.Model):
    """
    Append-only audit trail entry.
    Written by the audit sink after each mutating ledger operation; never updated.
    """
    ACTION_CHOICES = (
        ('INSERT', 'Insert'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('DEACTIVATE', 'Deactivate'),
    )

    table_name = models.CharField(max_length=100, db_index=True, verbose_name="Affected table")
    row_id = models.CharField(max_length=64, db_index=True, verbose_name="Affected row")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, null=True, blank=True,
        verbose_name="User", related_name="audit_records"
    )
    action = models.CharField(max_length=20, choices=ACTION_CHOICES, verbose_name="Action")
    details = models.CharField(max_length=500, blank=True, null=True, verbose_name="Details")
    source_ip = models.GenericIPAddressField(blank=True, null=True, verbose_name="Source IP")
    recorded_at = models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Recorded at")

    class Meta:
        ordering = ['-recorded_at']
        verbose_name = "Audit record"
        verbose_name_plural = "Audit trail"

    def __str__(self):
        return f"{self.action} {self.table_name}:{self.row_id}"
