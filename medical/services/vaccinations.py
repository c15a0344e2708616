import logging

from django.db import transaction
from django.utils import timezone

from audit.services import emit
from medical.exceptions import HasDependents, InsufficientStock, NotFound, translate_store_errors
from medical.models import Appointment, VaccinationEvent
from medical.services import lifecycle, registry, stock

logger = logging.getLogger(__name__)


@translate_store_errors
def register_vaccination(child_id, lot_id, staff_id, administered_at, dose_number,
                         center_id=None, injection_site=None, notes=None,
                         appointment_id=None, campaign_id=None, *, principal=None, audit=None):
    """
    Record one administered dose and take it out of the lot, all or nothing.

    Returns the new event id. Raises InvalidReference for a dangling child,
    staff, center, appointment or campaign, and InsufficientStock when the lot
    is missing or empty; in both cases nothing is written.
    """
    with transaction.atomic():
        # 1. Referenced records must exist
        registry.require('child', child_id, 'child')
        registry.require('staff', staff_id, 'staff')
        registry.require_optional('center', center_id, 'center')
        registry.require_optional('appointment', appointment_id, 'appointment')
        registry.require_optional('campaign', campaign_id, 'campaign')
        if not registry.exists('lot', lot_id):
            raise InsufficientStock(lot_id)

        # 2. History row
        event = VaccinationEvent.objects.create(
            child_id=child_id,
            lot_id=lot_id,
            staff_id=staff_id,
            center_id=center_id,
            appointment_id=appointment_id,
            campaign_id=campaign_id,
            administered_at=administered_at,
            dose_number=dose_number,
            injection_site=injection_site,
            notes=notes,
        )

        # 3. Stock; raising here rolls back the insert above
        stock.consume_dose(lot_id)

        # 4. Close the appointment the dose was given for
        if appointment_id is not None:
            Appointment.objects.filter(pk=appointment_id).update(
                status=Appointment.STATUS_COMPLETED, updated_at=timezone.now()
            )

    logger.info(f"Vaccination {event.pk} registered: child {child_id}, lot {lot_id}, dose {dose_number}")
    emit(audit, VaccinationEvent._meta.db_table, event.pk, principal, 'INSERT',
         f"child {child_id} lot {lot_id} dose {dose_number}")
    return event.pk


def delete_event(event_id, *, principal=None, audit=None):
    """Remove a vaccination record. The lot is not restocked."""
    result = lifecycle.deactivate_or_delete('event', event_id, principal=principal, audit=audit)
    if result.blocked:
        raise HasDependents('event', event_id, result.dependents)
    return result


def child_history(child_id):
    if not registry.exists('child', child_id):
        raise NotFound('child', child_id)
    return (
        VaccinationEvent.objects
        .filter(child_id=child_id)
        .select_related('lot__vaccine', 'staff', 'center')
        .order_by('-administered_at', '-created_at')
    )
