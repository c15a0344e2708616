import datetime
import uuid

import pytest
from django.utils import timezone

from medical.exceptions import DuplicateSlot, InvalidReference, NotFound
from medical.models import Child, Guardian
from medical.services import patients

pytestmark = pytest.mark.django_db


@pytest.fixture
def patient_data(country, center):
    return {
        'full_name': 'Sofia Andrade',
        'national_id': '1720000099',
        'nationality': country.pk,
        'birth_country': country.pk,
        'birth_date': timezone.localdate() - datetime.timedelta(days=400),
        'gender': 'F',
        'health_center': center.pk,
        'primary_contact': 'Mother',
    }


@pytest.fixture
def parents(country):
    return [
        {'name': 'Carmen Andrade', 'relationship': 'Mother', 'relationship_slot': 'Parent1',
         'nationality': country.pk, 'phone': '+593 99 123 4567'},
        {'name': 'Pablo Andrade', 'relationship': 'Father', 'relationship_slot': 'Parent2',
         'nationality': country.pk},
    ]


def test_create_writes_child_and_guardians(patient_data, parents, doctor, audit_sink):
    child = patients.create_patient(patient_data, parents, principal=doctor, audit=audit_sink)

    assert child.created_by == doctor
    assert set(child.guardians.values_list('relationship_slot', flat=True)) == {'Parent1', 'Parent2'}
    assert audit_sink.entries[0]['action'] == 'INSERT'
    assert audit_sink.entries[0]['table'] == 'medical_child'


def test_guardian_without_slot_is_legal_guardian(patient_data, country):
    child = patients.create_patient(patient_data, [
        {'name': 'Elena Mora', 'relationship': 'LegalGuardian', 'nationality': country.pk},
    ])

    assert child.guardians.get().relationship_slot == Guardian.SLOT_LEGAL_GUARDIAN


def test_duplicate_slot_writes_nothing(patient_data, parents):
    parents[1]['relationship_slot'] = 'Parent1'

    with pytest.raises(DuplicateSlot):
        patients.create_patient(patient_data, parents)

    assert not Child.objects.exists()
    assert not Guardian.objects.exists()


def test_unknown_nationality(patient_data):
    patient_data['nationality'] = uuid.uuid4()

    with pytest.raises(InvalidReference) as exc:
        patients.create_patient(patient_data)

    assert exc.value.field == 'nationality'
    assert not Child.objects.exists()


def test_unknown_guardian_nationality(patient_data, parents):
    parents[0]['nationality'] = uuid.uuid4()

    with pytest.raises(InvalidReference) as exc:
        patients.create_patient(patient_data, parents)

    assert exc.value.field == 'guardians[0].nationality'


def test_health_center_is_optional(patient_data):
    patient_data['health_center'] = None

    child = patients.create_patient(patient_data)

    assert child.health_center is None


def test_update_replaces_guardian_set(patient_data, parents, country):
    child = patients.create_patient(patient_data, parents)

    patients.update_patient(child.pk, {'full_name': 'Sofia Andrade Mora'}, [
        {'name': 'Elena Mora', 'relationship': 'LegalGuardian', 'nationality': country.pk},
    ])

    child.refresh_from_db()
    assert child.full_name == 'Sofia Andrade Mora'
    assert list(child.guardians.values_list('name', flat=True)) == ['Elena Mora']


def test_update_without_guardians_keeps_them(patient_data, parents):
    child = patients.create_patient(patient_data, parents)

    patients.update_patient(child.pk, {'residence_address': 'Av. Amazonas 123'})

    child.refresh_from_db()
    assert child.residence_address == 'Av. Amazonas 123'
    assert child.guardians.count() == 2


def test_update_rejects_duplicate_slots_before_writing(patient_data, parents):
    child = patients.create_patient(patient_data, parents)
    doubled = [dict(parents[0]), dict(parents[0])]

    with pytest.raises(DuplicateSlot):
        patients.update_patient(child.pk, {'full_name': 'Changed'}, doubled)

    child.refresh_from_db()
    assert child.full_name == 'Sofia Andrade'
    assert child.guardians.count() == 2


def test_update_unknown_child(db):
    with pytest.raises(NotFound):
        patients.update_patient(uuid.uuid4(), {'full_name': 'Nobody'})
