import datetime

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from centers.models import Country, HealthCenter, HealthStaff
from medical.models import Child, Vaccine, VaccineLot
from users.models import CustomUser


class RecordingSink:
    """Audit sink that keeps entries in memory."""

    def __init__(self):
        self.entries = []

    def record(self, table, row_id, user_id, action, details=None, source_ip=None):
        self.entries.append({
            'table': table,
            'row_id': row_id,
            'user_id': user_id,
            'action': action,
            'details': details,
        })
        return True


class ExplodingSink:
    def record(self, *args, **kwargs):
        raise RuntimeError("audit store is down")


@pytest.fixture
def audit_sink():
    return RecordingSink()


@pytest.fixture
def exploding_sink():
    return ExplodingSink()


@pytest.fixture
def country(db):
    return Country.objects.create(name='Ecuador', demonym='Ecuadorian')


@pytest.fixture
def center(db):
    return HealthCenter.objects.create(name='Centro de Salud Norte', short_name='CSN', phone='+593 2 555 0101')


@pytest.fixture
def vaccine(db):
    return Vaccine.objects.create(name='BCG', manufacturer='Serum Institute', vaccine_type='Live attenuated')


@pytest.fixture
def staff(center):
    return HealthStaff.objects.create(name='Ana Torres', national_id='0102030405', center=center, specialty='Nurse')


@pytest.fixture
def child(country, center):
    return Child.objects.create(
        full_name='Lucia Perez',
        national_id='1720000001',
        nationality=country,
        birth_country=country,
        birth_date=timezone.localdate() - datetime.timedelta(days=200),
        gender='F',
        health_center=center,
    )


@pytest.fixture
def make_lot(vaccine, center):
    def _make(available=10, total=None, lot_number='L-001', expiry_date=None, lot_vaccine=None, lot_center=None):
        today = timezone.localdate()
        return VaccineLot.objects.create(
            vaccine=lot_vaccine or vaccine,
            center=lot_center or center,
            lot_number=lot_number,
            total_quantity=available if total is None else total,
            available_quantity=available,
            manufacture_date=today - datetime.timedelta(days=90),
            expiry_date=expiry_date or today + datetime.timedelta(days=365),
        )
    return _make


@pytest.fixture
def lot(make_lot):
    return make_lot(available=10)


@pytest.fixture
def manager(center):
    return CustomUser.objects.create_user(
        username='director', password='secret-pass-1', role='DIRECTOR', health_center=center
    )


@pytest.fixture
def doctor(center):
    return CustomUser.objects.create_user(
        username='doctor', password='secret-pass-2', role='DOCTOR', health_center=center
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def manager_client(manager):
    client = APIClient()
    client.force_authenticate(user=manager)
    return client


@pytest.fixture
def doctor_client(doctor):
    client = APIClient()
    client.force_authenticate(user=doctor)
    return client
