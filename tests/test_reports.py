import datetime
import uuid
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from medical.exceptions import NotFound
from medical.models import Appointment, Child, VaccineSchedule
from medical.services import reports, vaccinations

pytestmark = pytest.mark.django_db


def test_coverage_by_center_counts_doses_and_children(child, lot, staff, center, country):
    sibling = Child.objects.create(
        full_name='Diego Perez', national_id='1720000003', nationality=country, birth_country=country,
        birth_date=timezone.localdate() - datetime.timedelta(days=500), gender='M', health_center=center,
    )
    now = timezone.now()
    for who, dose, when in [(child, 1, now), (child, 2, now), (sibling, 1, now),
                            (sibling, 2, now - datetime.timedelta(days=400))]:
        vaccinations.register_vaccination(who.pk, lot.pk, staff.pk, when, dose, center_id=center.pk)

    today = timezone.localdate()
    rows = reports.coverage_by_center(center.pk, today - datetime.timedelta(days=30), today)

    assert rows == [{'vaccine': 'BCG', 'total_vaccinations': 3, 'children_vaccinated': 2}]


def test_coverage_unknown_center(db):
    today = timezone.localdate()
    with pytest.raises(NotFound):
        reports.coverage_by_center(uuid.uuid4(), today, today)


def test_expired_lots_with_stock_only(make_lot):
    today = timezone.localdate()
    expired = make_lot(available=5, lot_number='OLD-1', expiry_date=today - datetime.timedelta(days=1))
    make_lot(available=0, total=5, lot_number='OLD-EMPTY', expiry_date=today - datetime.timedelta(days=1))
    make_lot(available=5, lot_number='FRESH', expiry_date=today + datetime.timedelta(days=30))

    assert list(reports.expired_lots(today=today)) == [expired]


def test_expired_lots_by_center(make_lot, db):
    from centers.models import HealthCenter

    today = timezone.localdate()
    other = HealthCenter.objects.create(name='Centro Sur')
    make_lot(available=5, lot_number='OLD-N', expiry_date=today - datetime.timedelta(days=3))
    south = make_lot(available=5, lot_number='OLD-S', expiry_date=today - datetime.timedelta(days=3),
                     lot_center=other)

    assert list(reports.expired_lots(center_id=other.pk, today=today)) == [south]


def test_pending_appointments_are_future_and_open(child, center):
    now = timezone.now()
    upcoming = Appointment.objects.create(child=child, center=center, scheduled_at=now + datetime.timedelta(days=2))
    confirmed = Appointment.objects.create(child=child, center=center, scheduled_at=now + datetime.timedelta(days=5),
                                           status=Appointment.STATUS_CONFIRMED)
    Appointment.objects.create(child=child, center=center, scheduled_at=now - datetime.timedelta(days=1))
    Appointment.objects.create(child=child, center=center, scheduled_at=now + datetime.timedelta(days=3),
                               status=Appointment.STATUS_CANCELLED)

    assert list(reports.pending_appointments(child.pk, now=now)) == [upcoming, confirmed]


def test_incomplete_schedules_skip_given_doses(child, lot, staff, vaccine):
    VaccineSchedule.objects.create(vaccine=vaccine, dose_order=1, age_in_months=0)
    second = VaccineSchedule.objects.create(vaccine=vaccine, dose_order=2, age_in_months=1.5)
    vaccinations.register_vaccination(child.pk, lot.pk, staff.pk, timezone.now(), 1)

    missing = reports.incomplete_schedules(child.pk)

    assert [m['schedule_id'] for m in missing] == [second.pk]
    assert missing[0]['due_date'] == reports.due_date(child.birth_date, 1.5)
    # the fixture child is about 200 days old
    assert missing[0]['overdue'] is True


def test_due_date_handles_fractional_months():
    birth = datetime.date(2024, 1, 31)
    assert reports.due_date(birth, 0) == birth
    assert reports.due_date(birth, 1) == datetime.date(2024, 2, 29)
    assert reports.due_date(birth, 1.5) == datetime.date(2024, 3, 15)


def test_incomplete_schedules_unknown_child(db):
    with pytest.raises(NotFound):
        reports.incomplete_schedules(uuid.uuid4())


def test_report_expired_lots_command(make_lot):
    today = timezone.localdate()
    make_lot(available=7, lot_number='OLD-CMD', expiry_date=today - datetime.timedelta(days=10))
    out = StringIO()

    call_command('report_expired_lots', stdout=out)

    output = out.getvalue()
    assert 'OLD-CMD' in output
    assert '1 expired lots still hold 7 doses.' in output


def test_populate_vaccines_command_is_idempotent(db):
    call_command('populate_vaccines', stdout=StringIO())
    count = VaccineSchedule.objects.count()

    call_command('populate_vaccines', stdout=StringIO())

    assert count > 0
    assert VaccineSchedule.objects.count() == count
