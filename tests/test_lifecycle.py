import uuid

import pytest
from django.apps import apps
from django.utils import timezone

from centers.models import STATE_INACTIVE, Country, HealthCenter
from medical.exceptions import NotFound
from medical.models import Child, Guardian, Vaccine, VaccineLot
from medical.services import lifecycle, registry, vaccinations
from users.models import CustomUser


def test_every_policy_reference_is_a_real_foreign_key():
    for entity_type, policy in lifecycle.DEPENDENCY_TABLE.items():
        target = registry.model_for(entity_type)
        if policy.state_field:
            target._meta.get_field(policy.state_field)
        for label, fk in policy.references:
            field = apps.get_model(label)._meta.get_field(fk)
            assert field.related_model is target, f"{label}.{fk} does not point at {entity_type}"


def test_every_protected_reverse_relation_is_listed():
    # a foreign key missing from the table would turn a delete into a ProtectedError
    for entity_type, policy in lifecycle.DEPENDENCY_TABLE.items():
        target = registry.model_for(entity_type)
        listed = {(apps.get_model(label), fk) for label, fk in policy.references}
        for rel in target._meta.related_objects:
            if rel.one_to_many and rel.related_model._meta.app_label in ('centers', 'users', 'medical', 'audit'):
                assert (rel.related_model, rel.field.name) in listed, (
                    f"{entity_type}: {rel.related_model.__name__}.{rel.field.name} missing"
                )


def test_unknown_entity_type():
    with pytest.raises(ValueError):
        lifecycle.policy_for('planet')


@pytest.mark.django_db
class TestSoftEntities:
    def test_referenced_center_is_deactivated(self, center, child, audit_sink):
        result = lifecycle.deactivate_or_delete('center', center.pk, audit=audit_sink)

        assert result.outcome == lifecycle.DEACTIVATED
        assert 'medical_child.health_center' in result.dependents
        center.refresh_from_db()
        assert center.state == STATE_INACTIVE
        assert audit_sink.entries[0]['action'] == 'DEACTIVATE'
        assert audit_sink.entries[0]['table'] == 'centers_healthcenter'

    def test_unreferenced_center_is_deleted(self, db, audit_sink):
        center = HealthCenter.objects.create(name='Centro Sur')

        result = lifecycle.deactivate_or_delete('center', center.pk, audit=audit_sink)

        assert result.outcome == lifecycle.DELETED
        assert not HealthCenter.objects.filter(pk=center.pk).exists()
        assert audit_sink.entries[0]['action'] == 'DELETE'

    def test_child_with_guardian_is_deactivated(self, child, country):
        Guardian.objects.create(child=child, name='Maria Perez', relationship='Mother',
                                relationship_slot=Guardian.SLOT_PARENT_1, nationality=country)

        result = lifecycle.deactivate_or_delete('child', child.pk)

        assert result.outcome == lifecycle.DEACTIVATED
        assert result.dependents == ['medical_guardian.child']
        child.refresh_from_db()
        assert child.state == STATE_INACTIVE

    def test_child_without_history_is_deleted(self, child):
        result = lifecycle.deactivate_or_delete('child', child.pk)

        assert result.outcome == lifecycle.DELETED
        assert not Child.objects.filter(pk=child.pk).exists()


@pytest.mark.django_db
class TestHardEntities:
    def test_unreferenced_vaccine_is_deleted_then_not_found(self, db):
        vaccine = Vaccine.objects.create(name='MMR', manufacturer='Merck', vaccine_type='Live attenuated')

        result = lifecycle.deactivate_or_delete('vaccine', vaccine.pk)
        assert result.outcome == lifecycle.DELETED

        with pytest.raises(NotFound):
            lifecycle.deactivate_or_delete('vaccine', vaccine.pk)

    def test_vaccine_with_lots_is_blocked(self, vaccine, lot, audit_sink):
        result = lifecycle.deactivate_or_delete('vaccine', vaccine.pk, audit=audit_sink)

        assert result.blocked
        assert result.reason == 'has dependent records'
        assert result.dependents == ['medical_vaccinelot.vaccine']
        vaccine.refresh_from_db()
        assert vaccine.state == 'Active'
        assert audit_sink.entries == []

    def test_lot_with_events_is_blocked(self, lot, child, staff):
        vaccinations.register_vaccination(child.pk, lot.pk, staff.pk, timezone.now(), 1)

        result = lifecycle.deactivate_or_delete('lot', lot.pk)

        assert result.outcome == lifecycle.BLOCKED
        assert VaccineLot.objects.filter(pk=lot.pk).exists()

    def test_country_used_as_nationality_is_blocked(self, country, child):
        result = lifecycle.deactivate_or_delete('country', country.pk)

        assert result.outcome == lifecycle.BLOCKED
        assert 'medical_child.nationality' in result.dependents
        assert 'medical_child.birth_country' in result.dependents
        assert Country.objects.filter(pk=country.pk).exists()

    def test_staff_with_events_is_blocked(self, lot, child, staff):
        vaccinations.register_vaccination(child.pk, lot.pk, staff.pk, timezone.now(), 1)

        assert lifecycle.deactivate_or_delete('staff', staff.pk).blocked

    def test_guardian_is_always_deletable(self, child, country):
        guardian = Guardian.objects.create(child=child, name='Jose Perez', relationship='Father', nationality=country)

        result = lifecycle.deactivate_or_delete('guardian', guardian.pk)

        assert result.outcome == lifecycle.DELETED

    @pytest.mark.parametrize('entity_id', [uuid.uuid4(), 'not-a-uuid'])
    def test_missing_target(self, db, entity_id):
        with pytest.raises(NotFound):
            lifecycle.deactivate_or_delete('lot', entity_id)


@pytest.mark.django_db
class TestUsers:
    def test_user_referenced_by_audit_trail_is_deactivated(self, doctor, child, lot, staff, audit_sink):
        vaccinations.register_vaccination(child.pk, lot.pk, staff.pk, timezone.now(), 1, principal=doctor)

        result = lifecycle.deactivate_or_delete('user', doctor.pk, audit=audit_sink)

        assert result.outcome == lifecycle.DEACTIVATED
        assert result.dependents == ['audit_auditrecord.user']
        doctor.refresh_from_db()
        assert doctor.is_active is False
        assert audit_sink.entries[0]['action'] == 'DEACTIVATE'
        assert audit_sink.entries[0]['table'] == 'users_customuser'

    def test_unreferenced_user_is_deleted(self, doctor):
        result = lifecycle.deactivate_or_delete('user', doctor.pk)

        assert result.outcome == lifecycle.DELETED
        assert not CustomUser.objects.filter(pk=doctor.pk).exists()

    def test_soft_policies_write_their_own_inactive_value(self):
        assert lifecycle.policy_for('center').inactive == STATE_INACTIVE
        assert lifecycle.policy_for('child').inactive == STATE_INACTIVE
        assert lifecycle.policy_for('user').inactive is False
