import datetime
import uuid

import pytest
from django.utils import timezone

from medical.exceptions import (
    ExcessReplenishment, HasDependents, InsufficientStock, InvalidQuantity, InvalidReference, NotFound,
)
from medical.models import Supply, SupplyUsage, VaccineLot
from medical.services import lifecycle, stock, vaccinations

pytestmark = pytest.mark.django_db


def _register(child, lot, staff, **kwargs):
    return vaccinations.register_vaccination(child.pk, lot.pk, staff.pk, timezone.now(), 1, **kwargs)


class TestConsumeDose:
    def test_takes_exactly_one_dose(self, lot):
        stock.consume_dose(lot.pk)

        lot.refresh_from_db()
        assert lot.available_quantity == 9
        assert lot.total_quantity == 10

    def test_exhausted_lot_is_refused(self, make_lot):
        empty = make_lot(available=0, total=5)

        with pytest.raises(InsufficientStock):
            stock.consume_dose(empty.pk)

        empty.refresh_from_db()
        assert empty.available_quantity == 0

    def test_missing_lot_is_refused(self, db):
        with pytest.raises(InsufficientStock):
            stock.consume_dose(uuid.uuid4())

    def test_last_dose_goes_once(self, make_lot):
        last = make_lot(available=1, total=1)

        stock.consume_dose(last.pk)
        with pytest.raises(InsufficientStock):
            stock.consume_dose(last.pk)

        last.refresh_from_db()
        assert last.available_quantity == 0


class TestReplenish:
    def test_adds_doses_up_to_total(self, make_lot, audit_sink):
        partial = make_lot(available=4, total=10)

        result = stock.replenish(partial.pk, 6, audit=audit_sink)

        assert result.available_quantity == 10
        assert audit_sink.entries[0]['action'] == 'UPDATE'
        assert audit_sink.entries[0]['table'] == 'medical_vaccinelot'

    def test_never_passes_total(self, make_lot):
        partial = make_lot(available=8, total=10)

        with pytest.raises(ExcessReplenishment):
            stock.replenish(partial.pk, 3)

        partial.refresh_from_db()
        assert partial.available_quantity == 8

    def test_missing_lot(self, db):
        with pytest.raises(NotFound):
            stock.replenish(uuid.uuid4(), 1)

    @pytest.mark.parametrize('quantity', [0, -2])
    def test_quantity_must_be_positive(self, lot, quantity):
        with pytest.raises(InvalidQuantity):
            stock.replenish(lot.pk, quantity)


class TestLots:
    def test_create_defaults_available_to_total(self, vaccine, center, audit_sink):
        today = timezone.localdate()
        lot = stock.create_lot(
            vaccine.pk, center.pk, 'L-900', 50, today - datetime.timedelta(days=10),
            today + datetime.timedelta(days=300), audit=audit_sink,
        )

        assert lot.available_quantity == 50
        assert audit_sink.entries[0]['action'] == 'INSERT'

    def test_create_rejects_available_above_total(self, vaccine, center):
        today = timezone.localdate()
        with pytest.raises(InvalidQuantity):
            stock.create_lot(vaccine.pk, center.pk, 'L-901', 5, today, today + datetime.timedelta(days=30),
                             available_quantity=6)
        assert not VaccineLot.objects.filter(lot_number='L-901').exists()

    def test_create_checks_vaccine(self, center):
        today = timezone.localdate()
        with pytest.raises(InvalidReference) as exc:
            stock.create_lot(uuid.uuid4(), center.pk, 'L-902', 5, today, today + datetime.timedelta(days=30))
        assert exc.value.field == 'vaccine'

    def test_get_lot_missing(self, db):
        with pytest.raises(NotFound):
            stock.get_lot(uuid.uuid4())

    def test_delete_unused_lot(self, lot):
        result = stock.delete_lot(lot.pk)

        assert result.outcome == lifecycle.DELETED
        assert not VaccineLot.objects.filter(pk=lot.pk).exists()

    def test_delete_used_lot_is_refused(self, lot, child, staff):
        _register(child, lot, staff)

        with pytest.raises(HasDependents) as exc:
            stock.delete_lot(lot.pk)

        assert 'medical_vaccinationevent.lot' in exc.value.dependents
        assert VaccineLot.objects.filter(pk=lot.pk).exists()


class TestSupplies:
    @pytest.fixture
    def supply(self, center):
        return Supply.objects.create(
            name='Syringe 0.5ml', supply_type='Syringe', total_quantity=20, available_quantity=20,
            center=center, received_on=timezone.localdate(),
        )

    def test_usage_consumes_supply(self, supply, lot, child, staff):
        event_id = _register(child, lot, staff)

        usage = stock.register_supply_usage(event_id, supply.pk, 3)

        supply.refresh_from_db()
        assert supply.available_quantity == 17
        assert usage.used_on == timezone.localdate()

    def test_usage_beyond_stock_writes_nothing(self, supply, lot, child, staff):
        event_id = _register(child, lot, staff)

        with pytest.raises(InsufficientStock):
            stock.register_supply_usage(event_id, supply.pk, 21)

        supply.refresh_from_db()
        assert supply.available_quantity == 20
        assert not SupplyUsage.objects.exists()

    def test_usage_needs_existing_event(self, supply):
        with pytest.raises(InvalidReference) as exc:
            stock.register_supply_usage(uuid.uuid4(), supply.pk, 1)
        assert exc.value.field == 'event'
