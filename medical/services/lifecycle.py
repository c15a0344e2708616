"""
Dependency-aware deletion.

Every deletable entity type has one entry in DEPENDENCY_TABLE naming the
(model, foreign key) pairs that point at it, and the state field used for
soft deactivation when it has one. A referenced entity is never hard-deleted:
it is deactivated when it carries a state field, otherwise the request is
refused without touching anything.
"""
import logging
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

from django.apps import apps
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import ProtectedError

from audit.services import emit
from centers.models import STATE_INACTIVE
from medical.exceptions import NotFound, translate_store_errors
from medical.services import registry

logger = logging.getLogger(__name__)

DEACTIVATED = 'deactivated'
DELETED = 'deleted'
BLOCKED = 'blocked'

BLOCKED_REASON = 'has dependent records'


class Policy(NamedTuple):
    state_field: Optional[str]
    references: Tuple[Tuple[str, str], ...]
    # value written to state_field on deactivation
    inactive: object = STATE_INACTIVE


DEPENDENCY_TABLE = {
    'center': Policy('state', (
        ('medical.Child', 'health_center'),
        ('medical.VaccineLot', 'center'),
        ('centers.HealthStaff', 'center'),
        ('users.CustomUser', 'health_center'),
        ('medical.CampaignCenter', 'center'),
        ('medical.Appointment', 'center'),
        ('medical.VaccinationEvent', 'center'),
        ('medical.Supply', 'center'),
    )),
    'child': Policy('state', (
        ('medical.Guardian', 'child'),
        ('medical.Appointment', 'child'),
        ('medical.VaccinationEvent', 'child'),
        ('medical.AdverseEvent', 'child'),
        ('medical.Alert', 'child'),
    )),
    'vaccine': Policy(None, (
        ('medical.VaccineLot', 'vaccine'),
        ('medical.Campaign', 'vaccine'),
        ('medical.VaccineSchedule', 'vaccine'),
        ('medical.Appointment', 'vaccine'),
    )),
    'lot': Policy(None, (
        ('medical.VaccinationEvent', 'lot'),
    )),
    'staff': Policy(None, (
        ('medical.VaccinationEvent', 'staff'),
        ('medical.AdverseEvent', 'reporter'),
    )),
    'user': Policy('is_active', (
        ('audit.AuditRecord', 'user'),
        ('medical.Alert', 'assigned_user'),
        ('medical.Child', 'created_by'),
    ), inactive=False),
    'country': Policy(None, (
        ('medical.Child', 'nationality'),
        ('medical.Child', 'birth_country'),
        ('medical.Guardian', 'nationality'),
        ('medical.NationalCalendar', 'country'),
    )),
    'campaign': Policy(None, (
        ('medical.CampaignCenter', 'campaign'),
        ('medical.Appointment', 'campaign'),
        ('medical.VaccinationEvent', 'campaign'),
    )),
    'supply': Policy(None, (
        ('medical.SupplyUsage', 'supply'),
    )),
    'appointment': Policy(None, (
        ('medical.VaccinationEvent', 'appointment'),
    )),
    'event': Policy(None, (
        ('medical.AdverseEvent', 'event'),
        ('medical.SupplyUsage', 'event'),
    )),
    'schedule': Policy(None, (
        ('medical.NationalCalendar', 'schedule'),
    )),
    'guardian': Policy(None, ()),
}


@dataclass(frozen=True)
class LifecycleResult:
    outcome: str
    entity_type: str
    entity_id: object
    reason: str = ''
    dependents: List[str] = field(default_factory=list)

    @property
    def blocked(self):
        return self.outcome == BLOCKED


def policy_for(entity_type):
    try:
        return DEPENDENCY_TABLE[entity_type]
    except KeyError:
        raise ValueError(f"No lifecycle policy for entity type: {entity_type}")


def find_dependents(entity_type, entity_id):
    """Return the tables (as 'table.column') holding at least one reference to the entity."""
    found = []
    for label, fk in policy_for(entity_type).references:
        model = apps.get_model(label)
        if model.objects.filter(**{fk: entity_id}).exists():
            found.append(f"{model._meta.db_table}.{fk}")
    return found


@translate_store_errors
def deactivate_or_delete(entity_type, entity_id, *, principal=None, audit=None):
    """
    Remove an entity if nothing references it, otherwise deactivate or refuse.

    Raises NotFound when the target row does not exist. The outcome is
    reported in the returned LifecycleResult; BLOCKED means no mutation.
    """
    policy = policy_for(entity_type)
    model = registry.model_for(entity_type)
    table = model._meta.db_table

    with transaction.atomic():
        # Lock the target so no dependent can be attached while we decide
        try:
            target = model.objects.select_for_update().get(pk=entity_id)
        except (model.DoesNotExist, ValueError, ValidationError):
            raise NotFound(entity_type, entity_id)

        dependents = find_dependents(entity_type, entity_id)

        if dependents and policy.state_field:
            model.objects.filter(pk=entity_id).update(**{policy.state_field: policy.inactive})
            result = LifecycleResult(DEACTIVATED, entity_type, entity_id, BLOCKED_REASON, dependents)
        elif dependents:
            result = LifecycleResult(BLOCKED, entity_type, entity_id, BLOCKED_REASON, dependents)
        else:
            try:
                target.delete()
                result = LifecycleResult(DELETED, entity_type, entity_id)
            except ProtectedError as e:
                # a reference missing from DEPENDENCY_TABLE; PROTECT still holds
                protected = sorted({obj._meta.db_table for obj in e.protected_objects})
                logger.error(f"{entity_type} {entity_id}: unlisted references {protected}")
                result = LifecycleResult(BLOCKED, entity_type, entity_id, BLOCKED_REASON, protected)

    logger.info(f"Lifecycle {entity_type} {entity_id}: {result.outcome} {result.dependents or ''}".rstrip())

    if result.outcome == DEACTIVATED:
        emit(audit, table, entity_id, principal, 'DEACTIVATE', f"referenced by {', '.join(result.dependents)}")
    elif result.outcome == DELETED:
        emit(audit, table, entity_id, principal, 'DELETE')
    return result
