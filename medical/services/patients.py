"""
Children and their guardians are always written together.

The guardian set is validated and every country/center reference is checked
before the transaction opens, so a rejected request writes nothing.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from audit.services import emit
from medical.exceptions import NotFound, translate_store_errors
from medical.models import Child, Guardian
from medical.services import registry
from medical.services.guardians import slot_of, validate_guardian_set

logger = logging.getLogger(__name__)

CHILD_FIELDS = (
    'full_name', 'national_id', 'birth_date', 'gender', 'residence_address',
    'latitude', 'longitude', 'primary_contact', 'national_health_id', 'state',
)

# input key -> (entity type, model attribute)
CHILD_REFERENCES = {
    'nationality': ('country', 'nationality_id'),
    'birth_country': ('country', 'birth_country_id'),
    'health_center': ('center', 'health_center_id'),
}

GUARDIAN_FIELDS = ('name', 'relationship', 'national_id', 'phone', 'email', 'address')


def _child_values(data):
    values = {f: data[f] for f in CHILD_FIELDS if f in data}
    for key, (_, attr) in CHILD_REFERENCES.items():
        if key in data:
            values[attr] = data[key]
    return values


def _check_references(data, guardians, partial=False):
    for key, (entity_type, _) in CHILD_REFERENCES.items():
        if key == 'health_center' or (partial and key not in data):
            registry.require_optional(entity_type, data.get(key), key)
        else:
            registry.require(entity_type, data.get(key), key)

    for index, guardian in enumerate(guardians):
        registry.require('country', guardian.get('nationality'), f"guardians[{index}].nationality")


def _write_guardians(child, guardians):
    Guardian.objects.bulk_create([
        Guardian(
            child=child,
            nationality_id=g['nationality'],
            relationship_slot=slot_of(g),
            **{f: g[f] for f in GUARDIAN_FIELDS if f in g},
        )
        for g in guardians
    ])


def _principal_user(principal):
    if principal is not None and getattr(principal, 'is_authenticated', False):
        return principal
    return None


@translate_store_errors
def create_patient(data, guardians=(), *, principal=None, audit=None):
    guardians = list(guardians or ())
    validate_guardian_set(guardians)
    _check_references(data, guardians)

    with transaction.atomic():
        child = Child.objects.create(created_by=_principal_user(principal), **_child_values(data))
        _write_guardians(child, guardians)

    logger.info(f"Child {child.pk} registered with {len(guardians)} guardian(s)")
    emit(audit, Child._meta.db_table, child.pk, principal, 'INSERT', child.full_name)
    return child


@translate_store_errors
def update_patient(child_id, data, guardians=None, *, principal=None, audit=None):
    """
    Update a child's fields. A given guardian list replaces the current set;
    None leaves the guardians alone.
    """
    if guardians is not None:
        guardians = list(guardians)
        validate_guardian_set(guardians)
    _check_references(data, guardians or [], partial=True)

    with transaction.atomic():
        try:
            child = Child.objects.select_for_update().get(pk=child_id)
        except (Child.DoesNotExist, ValueError, ValidationError):
            raise NotFound('child', child_id)

        for attr, value in _child_values(data).items():
            setattr(child, attr, value)
        child.save()

        if guardians is not None:
            child.guardians.all().delete()
            _write_guardians(child, guardians)

    logger.info(f"Child {child.pk} updated")
    emit(audit, Child._meta.db_table, child.pk, principal, 'UPDATE',
         'guardians replaced' if guardians is not None else None)
    return child
