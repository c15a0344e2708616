import logging

from django.db import transaction

from .models import AuditRecord

logger = logging.getLogger(__name__)


class DatabaseAuditSink:
    """
    Writes audit entries to the AuditRecord table.

    Each write runs in its own savepoint so a failing insert cannot poison the
    caller's transaction. Failures are logged and reported through the return
    value, never raised.
    """

    def record(self, table, row_id, user_id, action, details=None, source_ip=None):
        try:
            with transaction.atomic():
                AuditRecord.objects.create(
                    table_name=table,
                    row_id=str(row_id),
                    user_id=user_id,
                    action=action,
                    details=(details or '')[:500] or None,
                    source_ip=source_ip,
                )
            return True
        except Exception as e:
            logger.error(f"Audit write failed for {action} {table}:{row_id}: {e}")
            return False


def emit(sink, table, row_id, principal, action, details=None):
    """
    Hand one entry to the sink after the business transaction is done.
    Whatever the sink does, the caller's result stands.
    """
    if sink is None:
        sink = DatabaseAuditSink()

    user_id = getattr(principal, 'pk', None) if principal is not None else None
    try:
        sink.record(table, str(row_id), user_id, action, details)
    except Exception:
        logger.exception(f"Audit sink raised while recording {action} {table}:{row_id}; ignored")
