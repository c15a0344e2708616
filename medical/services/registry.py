"""
Identity registry: existence checks for the entities other records point at.

Callers get a field-attributed InvalidReference instead of an opaque
foreign-key violation from the database.
"""
from django.apps import apps
from django.core.exceptions import ValidationError

from medical.exceptions import InvalidReference

# entity type -> model label
ENTITY_MODELS = {
    'country': 'centers.Country',
    'center': 'centers.HealthCenter',
    'staff': 'centers.HealthStaff',
    'user': 'users.CustomUser',
    'vaccine': 'medical.Vaccine',
    'schedule': 'medical.VaccineSchedule',
    'lot': 'medical.VaccineLot',
    'campaign': 'medical.Campaign',
    'child': 'medical.Child',
    'guardian': 'medical.Guardian',
    'appointment': 'medical.Appointment',
    'event': 'medical.VaccinationEvent',
    'supply': 'medical.Supply',
}


def model_for(entity_type):
    try:
        return apps.get_model(ENTITY_MODELS[entity_type])
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity_type}")


def exists(entity_type, entity_id):
    model = model_for(entity_type)
    if entity_id is None:
        return False
    try:
        return model.objects.filter(pk=entity_id).exists()
    except (ValueError, ValidationError):
        # malformed identifiers cannot match a row
        return False


def require(entity_type, entity_id, field):
    """Raise InvalidReference(field) unless the referenced row exists."""
    if not exists(entity_type, entity_id):
        raise InvalidReference(field, entity_id)
    return entity_id


def require_optional(entity_type, entity_id, field):
    if entity_id is None:
        return None
    return require(entity_type, entity_id, field)
