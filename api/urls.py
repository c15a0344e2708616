"""
API URLs
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework.authtoken.views import obtain_auth_token
from .views import (
    CountryViewSet, HealthCenterViewSet, HealthStaffViewSet, UserViewSet,
    VaccineViewSet, VaccineScheduleViewSet, NationalCalendarViewSet,
    VaccineLotViewSet, SupplyViewSet, SupplyUsageViewSet,
    ChildViewSet, GuardianViewSet, AppointmentViewSet, VaccinationViewSet,
    CampaignViewSet, CampaignCenterViewSet, AdverseEventViewSet, AlertViewSet,
    AuditRecordViewSet, CoverageReportView, ExpiredLotsReportView,
)

router = DefaultRouter()
router.register(r'countries', CountryViewSet)
router.register(r'health-centers', HealthCenterViewSet)
router.register(r'health-staff', HealthStaffViewSet)
router.register(r'users', UserViewSet, basename='user')
router.register(r'vaccines', VaccineViewSet)
router.register(r'vaccine-schedules', VaccineScheduleViewSet)
router.register(r'national-calendars', NationalCalendarViewSet)
router.register(r'vaccine-lots', VaccineLotViewSet)
router.register(r'supplies', SupplyViewSet)
router.register(r'supply-usage', SupplyUsageViewSet)
router.register(r'children', ChildViewSet)
router.register(r'guardians', GuardianViewSet)
router.register(r'appointments', AppointmentViewSet)
router.register(r'vaccinations', VaccinationViewSet)
router.register(r'campaigns', CampaignViewSet)
router.register(r'campaign-assignments', CampaignCenterViewSet)
router.register(r'adverse-events', AdverseEventViewSet)
router.register(r'alerts', AlertViewSet)
router.register(r'audits', AuditRecordViewSet)

app_name = 'api'

urlpatterns = [
    # Authentication
    path('auth/token/', obtain_auth_token, name='api_token_auth'),

    # API Routes
    path('', include(router.urls)),

    # Reports
    path('reports/coverage/', CoverageReportView.as_view(), name='report_coverage'),
    path('reports/expired-lots/', ExpiredLotsReportView.as_view(), name='report_expired_lots'),
]
