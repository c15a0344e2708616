from types import SimpleNamespace

import pytest
from django.contrib import admin
from django.contrib.admin.models import DELETION, LogEntry
from django.contrib.messages import get_messages
from django.contrib.messages.storage.cookie import CookieStorage

from centers.admin import HealthCenterAdmin
from centers.models import STATE_INACTIVE, HealthCenter
from medical.models import Vaccine
from users.models import CustomUser

pytestmark = pytest.mark.django_db


def delete_url(obj):
    return f'/admin/{obj._meta.app_label}/{obj._meta.model_name}/{obj.pk}/delete/'


def messages_of(response):
    return [str(m) for m in get_messages(response.wsgi_request)]


class TestLifecycleDelete:
    def test_unreferenced_row_is_deleted_and_logged(self, admin_client):
        vaccine = Vaccine.objects.create(name='MMR', manufacturer='Merck', vaccine_type='Live attenuated')

        response = admin_client.post(delete_url(vaccine), {'post': 'yes'})

        assert response.status_code == 302
        assert not Vaccine.objects.filter(pk=vaccine.pk).exists()
        assert LogEntry.objects.filter(action_flag=DELETION, object_id=str(vaccine.pk)).count() == 1
        assert any('deleted successfully' in m for m in messages_of(response))

    def test_referenced_row_is_kept_without_a_deletion_entry(self, admin_client, vaccine, lot):
        response = admin_client.post(delete_url(vaccine), {'post': 'yes'})

        assert response.status_code == 302
        assert Vaccine.objects.filter(pk=vaccine.pk).exists()
        assert not LogEntry.objects.filter(action_flag=DELETION).exists()
        messages = messages_of(response)
        assert any('was not deleted' in m and 'medical_vaccinelot.vaccine' in m for m in messages)
        assert not any('deleted successfully' in m for m in messages)

    def test_referenced_center_is_deactivated(self, admin_client, center, child):
        response = admin_client.post(delete_url(center), {'post': 'yes'})

        assert response.status_code == 302
        center.refresh_from_db()
        assert center.state == STATE_INACTIVE
        assert not LogEntry.objects.filter(action_flag=DELETION).exists()
        messages = messages_of(response)
        assert any('deactivated instead' in m for m in messages)
        assert not any('deleted successfully' in m for m in messages)

    def test_confirmation_page_is_offered_for_referenced_rows(self, admin_client, vaccine, lot):
        response = admin_client.get(delete_url(vaccine))

        assert response.status_code == 200
        assert response.context['protected'] == []


class TestDirectorAccount:
    def save_center(self, rf, admin_user, center, password):
        request = rf.post('/admin/centers/healthcenter/add/')
        request.user = admin_user
        request._messages = CookieStorage(request)
        form = SimpleNamespace(cleaned_data={'director_password': password})
        HealthCenterAdmin(HealthCenter, admin.site).save_model(request, center, form, change=False)
        return request

    def test_existing_account_with_the_same_name_is_left_alone(self, rf, admin_user):
        existing = CustomUser.objects.create_user(username='CSN', password='old-pass-123', role='ADMINISTRATOR')
        center = HealthCenter(name='Centro de Salud Norte', short_name='CSN')

        self.save_center(rf, admin_user, center, 'director-pass-1')

        existing.refresh_from_db()
        assert existing.role == 'ADMINISTRATOR'
        assert existing.health_center is None
        assert existing.check_password('old-pass-123')

        director = CustomUser.objects.get(health_center=center, role='DIRECTOR')
        assert director.pk != existing.pk
        assert director.username.startswith('CSN_')
        assert director.check_password('director-pass-1')

    def test_new_center_gets_its_short_name_as_username(self, rf, admin_user):
        center = HealthCenter(name='Centro Sur', short_name='CS')

        self.save_center(rf, admin_user, center, 'director-pass-2')

        assert CustomUser.objects.get(username='CS').health_center == center

    def test_own_director_password_is_updated(self, rf, admin_user, center, manager):
        self.save_center(rf, admin_user, center, 'new-director-pass')

        manager.refresh_from_db()
        assert manager.check_password('new-director-pass')
        assert CustomUser.objects.filter(health_center=center, role='DIRECTOR').count() == 1

    def test_api_create_does_not_reuse_an_existing_username(self, manager_client):
        existing = CustomUser.objects.create_user(username='CE', password='old-pass-123', role='DOCTOR')

        response = manager_client.post('/api/health-centers/', {
            'name': 'Centro Este', 'short_name': 'CE', 'password': 'director-pass-3',
        }, format='json')

        assert response.status_code == 201
        existing.refresh_from_db()
        assert existing.role == 'DOCTOR'
        assert existing.check_password('old-pass-123')
        assert CustomUser.objects.filter(health_center_id=response.data['id'], role='DIRECTOR').exists()
