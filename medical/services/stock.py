import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from audit.services import emit
from medical.exceptions import (
    ExcessReplenishment, HasDependents, InsufficientStock, InvalidQuantity,
    NotFound, translate_store_errors,
)
from medical.models import Supply, SupplyUsage, VaccineLot
from medical.services import lifecycle, registry

logger = logging.getLogger(__name__)


# ============== Vaccine lots ==============

@translate_store_errors
def consume_dose(lot_id):
    """
    Take one dose out of a lot.

    The decrement is a single conditional UPDATE, so two callers racing for
    the last dose cannot both win. Zero rows touched means the lot is gone or
    empty and the caller's transaction must be abandoned.
    """
    updated = VaccineLot.objects.filter(pk=lot_id, available_quantity__gt=0).update(
        available_quantity=F('available_quantity') - 1,
        updated_at=timezone.now(),
    )
    if updated == 0:
        logger.warning(f"Lot {lot_id}: no dose available")
        raise InsufficientStock(lot_id)


@translate_store_errors
def replenish(lot_id, quantity, *, principal=None, audit=None):
    """Add doses back to a lot without ever passing its total quantity."""
    if quantity is None or quantity < 1:
        raise InvalidQuantity("Replenish quantity must be at least 1")

    with transaction.atomic():
        updated = VaccineLot.objects.filter(
            pk=lot_id,
            available_quantity__lte=F('total_quantity') - quantity,
        ).update(
            available_quantity=F('available_quantity') + quantity,
            updated_at=timezone.now(),
        )
        if updated == 0:
            if not VaccineLot.objects.filter(pk=lot_id).exists():
                raise NotFound('lot', lot_id)
            raise ExcessReplenishment(lot_id, quantity)

    logger.info(f"Lot {lot_id}: replenished {quantity} doses")
    emit(audit, VaccineLot._meta.db_table, lot_id, principal, 'UPDATE', f"replenished {quantity}")
    return get_lot(lot_id)


def get_lot(lot_id):
    try:
        return VaccineLot.objects.select_related('vaccine', 'center').get(pk=lot_id)
    except (VaccineLot.DoesNotExist, ValueError, ValidationError):
        raise NotFound('lot', lot_id)


@translate_store_errors
def create_lot(vaccine_id, center_id, lot_number, total_quantity, manufacture_date, expiry_date,
               available_quantity=None, storage_conditions=None, recorded_temperature=None,
               last_checked_at=None, *, principal=None, audit=None):
    registry.require('vaccine', vaccine_id, 'vaccine')
    registry.require('center', center_id, 'center')

    if available_quantity is None:
        available_quantity = total_quantity
    if available_quantity < 0 or available_quantity > total_quantity:
        raise InvalidQuantity("Available quantity must be between 0 and the total quantity")

    with transaction.atomic():
        lot = VaccineLot.objects.create(
            vaccine_id=vaccine_id,
            center_id=center_id,
            lot_number=lot_number,
            total_quantity=total_quantity,
            available_quantity=available_quantity,
            manufacture_date=manufacture_date,
            expiry_date=expiry_date,
            storage_conditions=storage_conditions,
            recorded_temperature=recorded_temperature,
            last_checked_at=last_checked_at,
        )

    logger.info(f"Lot {lot.lot_number} created with {available_quantity}/{total_quantity} doses")
    emit(audit, VaccineLot._meta.db_table, lot.pk, principal, 'INSERT', f"lot {lot_number}")
    return lot


def delete_lot(lot_id, *, principal=None, audit=None):
    """Lots that have been administered from cannot be removed."""
    result = lifecycle.deactivate_or_delete('lot', lot_id, principal=principal, audit=audit)
    if result.blocked:
        raise HasDependents('lot', lot_id, result.dependents)
    return result


# ============== Supplies ==============

@translate_store_errors
def consume_supply(supply_id, quantity):
    if quantity is None or quantity < 1:
        raise InvalidQuantity("Usage quantity must be at least 1")

    updated = Supply.objects.filter(pk=supply_id, available_quantity__gte=quantity).update(
        available_quantity=F('available_quantity') - quantity,
    )
    if updated == 0:
        logger.warning(f"Supply {supply_id}: less than {quantity} units available")
        raise InsufficientStock(supply_id, f"Supply {supply_id} is unavailable or has fewer than {quantity} units")


@translate_store_errors
def register_supply_usage(event_id, supply_id, quantity, used_on=None, *, principal=None, audit=None):
    """Record supplies spent on a vaccination and take them out of inventory."""
    registry.require('event', event_id, 'event')
    if not registry.exists('supply', supply_id):
        raise InsufficientStock(supply_id, f"Supply {supply_id} is unavailable")

    with transaction.atomic():
        usage = SupplyUsage.objects.create(
            event_id=event_id,
            supply_id=supply_id,
            quantity=quantity,
            used_on=used_on or timezone.localdate(),
        )
        consume_supply(supply_id, quantity)

    emit(audit, SupplyUsage._meta.db_table, usage.pk, principal, 'INSERT', f"{quantity} of supply {supply_id}")
    return usage
