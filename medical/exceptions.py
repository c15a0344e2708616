"""
Typed errors raised by the ledger services.

Each error carries the HTTP status the API layer answers with and a short
machine-readable code, so handlers never have to sniff database error numbers.
"""
import functools
import logging

from django.db import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    status_code = 500
    code = 'ledger_error'
    default_message = 'Ledger operation failed'
    retryable = False

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self):
        return {'error': self.code, 'detail': self.message}


class NotFound(LedgerError):
    status_code = 404
    code = 'not_found'
    default_message = 'Record not found'

    def __init__(self, entity_type, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class InsufficientStock(LedgerError):
    """Conditional decrement touched no row: lot missing or exhausted."""
    status_code = 409
    code = 'insufficient_stock'

    def __init__(self, lot_id, message=None):
        self.lot_id = lot_id
        super().__init__(message or f"Lot {lot_id} is unavailable or out of stock")


class ExcessReplenishment(LedgerError):
    status_code = 409
    code = 'excess_replenishment'

    def __init__(self, lot_id, quantity):
        self.lot_id = lot_id
        self.quantity = quantity
        super().__init__(f"Adding {quantity} doses would exceed the total quantity of lot {lot_id}")


class HasDependents(LedgerError):
    status_code = 409
    code = 'has_dependents'
    default_message = 'has dependent records'

    def __init__(self, entity_type, entity_id, dependents=()):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.dependents = list(dependents)
        super().__init__(f"{entity_type} {entity_id} has dependent records")

    def as_dict(self):
        data = super().as_dict()
        data['dependents'] = self.dependents
        return data


class InvalidReference(LedgerError):
    status_code = 400
    code = 'invalid_reference'

    def __init__(self, field, value=None):
        self.field = field
        self.value = value
        super().__init__(f"{field} does not reference an existing record")

    def as_dict(self):
        data = super().as_dict()
        data['field'] = self.field
        return data


class DuplicateSlot(LedgerError):
    status_code = 400
    code = 'duplicate_slot'

    def __init__(self, slot):
        self.slot = slot
        super().__init__(f"Only one guardian may occupy the {slot} slot")

    def as_dict(self):
        data = super().as_dict()
        data['slot'] = self.slot
        return data


class InvalidQuantity(LedgerError):
    status_code = 400
    code = 'invalid_quantity'
    default_message = 'Quantity out of range'


class TransientStoreFailure(LedgerError):
    """Connection or timeout problem; the whole operation was rolled back and may be retried."""
    status_code = 503
    code = 'transient_store_failure'
    default_message = 'The database is temporarily unavailable, retry the operation'
    retryable = True


def translate_store_errors(func):
    """Turn driver-level connection/timeout errors into TransientStoreFailure."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as e:
            logger.warning(f"{func.__name__}: store failure, operation rolled back: {e}")
            raise TransientStoreFailure() from e
    return wrapper
