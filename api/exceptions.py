import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from medical.exceptions import LedgerError

logger = logging.getLogger(__name__)


def ledger_exception_handler(exc, context):
    """
    DRF exception handler: ledger errors become {"error", "detail", ...}
    with their own status; everything else is left to DRF.
    """
    if isinstance(exc, LedgerError):
        view = context.get('view')
        name = view.__class__.__name__ if view is not None else '-'
        if exc.status_code >= 500:
            logger.error(f"{name}: {exc.code}: {exc.message}")
        else:
            logger.info(f"{name}: {exc.code}: {exc.message}")

        headers = {'Retry-After': '1'} if exc.retryable else None
        return Response(exc.as_dict(), status=exc.status_code, headers=headers)

    return exception_handler(exc, context)
