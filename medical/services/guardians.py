from collections import Counter

from medical.exceptions import DuplicateSlot
from medical.models import Guardian


def slot_of(guardian):
    """Relationship slot of a guardian given as a dict or an object; unset means legal guardian."""
    if isinstance(guardian, dict):
        slot = guardian.get('relationship_slot')
    else:
        slot = getattr(guardian, 'relationship_slot', None)
    return slot or Guardian.SLOT_LEGAL_GUARDIAN


def validate_guardian_set(guardians):
    """
    A child has at most one guardian per slot (Parent1, Parent2, LegalGuardian).
    Raises DuplicateSlot for the first slot found more than once. Touches no storage.
    """
    counts = Counter(slot_of(g) for g in guardians or ())
    for slot, count in counts.items():
        if count > 1:
            raise DuplicateSlot(slot)
