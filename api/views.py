"""
ViewSets for the Django REST API.

Viewsets stay thin: ledger writes and every delete go through
medical.services, and LedgerError subclasses are turned into responses by
api.exceptions.ledger_exception_handler.
"""
import logging

from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.authentication import SessionAuthentication, TokenAuthentication
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.models import AuditRecord
from audit.services import emit
from centers.models import Country, HealthCenter, HealthStaff
from medical.exceptions import HasDependents
from medical.models import (
    AdverseEvent, Alert, Appointment, Campaign, CampaignCenter, Child, Guardian,
    NationalCalendar, Supply, SupplyUsage, VaccinationEvent, Vaccine, VaccineLot, VaccineSchedule,
)
from medical.services import lifecycle, patients, reports, stock, vaccinations
from users.models import CustomUser
from .permissions import IsManager, IsManagerOrReadOnly
from .serializers import (
    AdverseEventSerializer, AlertSerializer, AppointmentSerializer, AuditRecordSerializer,
    CampaignCenterSerializer, CampaignSerializer, ChildDetailSerializer, ChildListSerializer,
    CountrySerializer, CoverageQuerySerializer, ExpiredLotsQuerySerializer, GuardianSerializer,
    HealthCenterCreateUpdateSerializer, HealthCenterDetailSerializer, HealthCenterListSerializer,
    HealthStaffSerializer, NationalCalendarSerializer, PatientWriteSerializer, ReplenishSerializer,
    SupplySerializer, SupplyUsageCreateSerializer, SupplyUsageSerializer,
    UserCreateSerializer, UserDetailSerializer, UserListSerializer, UserUpdateSerializer,
    VaccinationEventDetailSerializer, VaccinationEventListSerializer, VaccinationRegisterSerializer,
    VaccineLotCreateSerializer, VaccineLotSerializer, VaccineLotUpdateSerializer,
    VaccineScheduleSerializer, VaccineSerializer,
)

logger = logging.getLogger(__name__)


# ============== Shared behaviour ==============

class LedgerViewMixin:
    authentication_classes = [TokenAuthentication, SessionAuthentication]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]


class AuditTrailMixin:
    """Plain model writes still leave an audit entry."""

    def perform_create(self, serializer):
        instance = serializer.save()
        emit(None, instance._meta.db_table, instance.pk, self.request.user, 'INSERT')

    def perform_update(self, serializer):
        instance = serializer.save()
        emit(None, instance._meta.db_table, instance.pk, self.request.user, 'UPDATE')


class LifecycleDestroyMixin:
    """
    DELETE goes through the lifecycle manager:
    204 when the row is removed, 200 with the dependents when it was
    deactivated, 409 when it is referenced and cannot be deactivated.
    """
    entity_type = None

    def destroy(self, request, *args, **kwargs):
        entity_id = kwargs[self.lookup_field]
        result = lifecycle.deactivate_or_delete(self.entity_type, entity_id, principal=request.user)

        if result.outcome == lifecycle.BLOCKED:
            raise HasDependents(self.entity_type, entity_id, result.dependents)
        if result.outcome == lifecycle.DEACTIVATED:
            return Response({
                'outcome': result.outcome,
                'reason': result.reason,
                'dependents': result.dependents,
            }, status=status.HTTP_200_OK)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============== Reference data ==============

class CountryViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = Country.objects.all()
    serializer_class = CountrySerializer
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'country'
    filterset_fields = ['state']
    search_fields = ['name', 'demonym']


class HealthCenterViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    """
    Health centers. Deleting a referenced center deactivates it.
    """
    queryset = HealthCenter.objects.all()
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'center'
    filterset_fields = ['state']
    search_fields = ['name', 'short_name']

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return HealthCenterDetailSerializer
        elif self.action in ['create', 'update', 'partial_update']:
            return HealthCenterCreateUpdateSerializer
        return HealthCenterListSerializer

    @action(detail=True, methods=['get'])
    def staff(self, request, pk=None):
        """Health staff working at the center"""
        center = self.get_object()
        serializer = HealthStaffSerializer(center.staff.all(), many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def children(self, request, pk=None):
        """Children registered at the center"""
        center = self.get_object()
        serializer = ChildListSerializer(center.children.all(), many=True)
        return Response(serializer.data)


class HealthStaffViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = HealthStaff.objects.select_related('center')
    serializer_class = HealthStaffSerializer
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'staff'
    filterset_fields = ['center', 'state', 'specialty']
    search_fields = ['name', 'national_id']


class UserViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    """
    Users. Administrators see everyone, directors the users of their center.
    """
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'user'
    filterset_fields = ['role', 'is_active', 'health_center']
    search_fields = ['username', 'first_name', 'last_name']

    def get_queryset(self):
        user = self.request.user

        # 1. Administrators: everyone
        if user.is_administrator:
            return CustomUser.objects.all()

        # 2. Directors: users of their own center
        if user.role == 'DIRECTOR' and user.health_center:
            return CustomUser.objects.filter(health_center=user.health_center)

        # 3. Everybody else only gets /me/
        return CustomUser.objects.none()

    def get_serializer_class(self):
        if self.action in ['retrieve', 'me']:
            return UserDetailSerializer
        elif self.action == 'create':
            return UserCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return UserUpdateSerializer
        return UserListSerializer

    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated])
    def me(self, request):
        """Current user"""
        serializer = UserDetailSerializer(request.user)
        return Response(serializer.data)

    def perform_create(self, serializer):
        # Directors can only add users to their own center
        user = self.request.user
        if not user.is_administrator and user.health_center:
            instance = serializer.save(health_center=user.health_center)
        else:
            instance = serializer.save()
        emit(None, instance._meta.db_table, instance.pk, user, 'INSERT')

    def destroy(self, request, *args, **kwargs):
        # only users visible to the caller can be removed
        self.get_object()
        return super().destroy(request, *args, **kwargs)


class VaccineViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = Vaccine.objects.all()
    serializer_class = VaccineSerializer
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'vaccine'
    filterset_fields = ['state', 'vaccine_type']
    search_fields = ['name', 'manufacturer']


class VaccineScheduleViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = VaccineSchedule.objects.select_related('vaccine')
    serializer_class = VaccineScheduleSerializer
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'schedule'
    filterset_fields = ['vaccine']


class NationalCalendarViewSet(LedgerViewMixin, AuditTrailMixin, viewsets.ModelViewSet):
    queryset = NationalCalendar.objects.select_related('country', 'schedule')
    serializer_class = NationalCalendarSerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['country', 'schedule']


# ============== Stock ==============

class VaccineLotViewSet(LedgerViewMixin, viewsets.ModelViewSet):
    """
    Vaccine lots. Quantities change only through registrations and /replenish/.
    """
    queryset = VaccineLot.objects.select_related('vaccine', 'center')
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['vaccine', 'center']
    search_fields = ['lot_number', 'vaccine__name']

    def get_serializer_class(self):
        if self.action == 'create':
            return VaccineLotCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return VaccineLotUpdateSerializer
        elif self.action == 'replenish':
            return ReplenishSerializer
        return VaccineLotSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        lot = stock.create_lot(
            data.pop('vaccine'), data.pop('center'), principal=request.user, **data
        )
        return Response(VaccineLotSerializer(lot).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        instance = serializer.save()
        emit(None, instance._meta.db_table, instance.pk, self.request.user, 'UPDATE')

    def update(self, request, *args, **kwargs):
        super().update(request, *args, **kwargs)
        return Response(VaccineLotSerializer(stock.get_lot(kwargs['pk'])).data)

    def destroy(self, request, *args, **kwargs):
        stock.delete_lot(kwargs['pk'], principal=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], permission_classes=[IsManager])
    def replenish(self, request, pk=None):
        """Add doses back to the lot, up to its total quantity"""
        serializer = ReplenishSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lot = stock.replenish(pk, serializer.validated_data['quantity'], principal=request.user)
        return Response(VaccineLotSerializer(lot).data)


class SupplyViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = Supply.objects.select_related('center')
    serializer_class = SupplySerializer
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'supply'
    filterset_fields = ['center', 'supply_type', 'state']
    search_fields = ['name', 'supplier']


class SupplyUsageViewSet(LedgerViewMixin, mixins.CreateModelMixin, mixins.ListModelMixin,
                         mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = SupplyUsage.objects.all()
    permission_classes = [IsAuthenticated]
    filterset_fields = ['event', 'supply']

    def get_serializer_class(self):
        if self.action == 'create':
            return SupplyUsageCreateSerializer
        return SupplyUsageSerializer

    def create(self, request, *args, **kwargs):
        serializer = SupplyUsageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        usage = stock.register_supply_usage(
            data['event'], data['supply'], data['quantity'], data.get('used_on'), principal=request.user
        )
        return Response(SupplyUsageSerializer(usage).data, status=status.HTTP_201_CREATED)


# ============== Patients ==============

class ChildViewSet(LedgerViewMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    """
    Children, written together with their guardians.
    Deleting a child with any history deactivates it.
    """
    queryset = Child.objects.select_related('health_center', 'nationality', 'birth_country')
    permission_classes = [IsAuthenticated]
    entity_type = 'child'
    filterset_fields = ['health_center', 'gender', 'state']
    search_fields = ['full_name', 'national_id', 'guardians__name']

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ChildDetailSerializer
        elif self.action in ['create', 'update', 'partial_update']:
            return PatientWriteSerializer
        return ChildListSerializer

    def create(self, request, *args, **kwargs):
        serializer = PatientWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        guardians = data.pop('guardians', [])

        # 1. Children default to the center of the user registering them
        if 'health_center' not in data and request.user.health_center_id:
            data['health_center'] = request.user.health_center_id

        child = patients.create_patient(data, guardians, principal=request.user)
        return Response(ChildDetailSerializer(child).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = PatientWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        guardians = data.pop('guardians', None)

        child = patients.update_patient(kwargs['pk'], data, guardians, principal=request.user)
        return Response(ChildDetailSerializer(child).data)

    @action(detail=True, methods=['get'])
    def vaccinations(self, request, pk=None):
        """Vaccination history, newest first"""
        events = vaccinations.child_history(pk)
        return Response(VaccinationEventListSerializer(events, many=True).data)

    @action(detail=True, methods=['get'], url_path='pending-appointments')
    def pending_appointments(self, request, pk=None):
        child = self.get_object()
        appointments = reports.pending_appointments(child.pk)
        return Response(AppointmentSerializer(appointments, many=True).data)

    @action(detail=True, methods=['get'], url_path='incomplete-schedules')
    def incomplete_schedules(self, request, pk=None):
        """Schedule entries still missing a dose, with due dates"""
        return Response(reports.incomplete_schedules(pk))


class GuardianViewSet(LedgerViewMixin, LifecycleDestroyMixin, mixins.ListModelMixin,
                      mixins.RetrieveModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    """Guardians are created and replaced through the child endpoints."""
    queryset = Guardian.objects.select_related('nationality')
    serializer_class = GuardianSerializer
    permission_classes = [IsAuthenticated]
    entity_type = 'guardian'
    filterset_fields = ['child', 'relationship_slot']
    search_fields = ['name', 'national_id']


class AppointmentViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = Appointment.objects.select_related('child', 'center')
    serializer_class = AppointmentSerializer
    permission_classes = [IsAuthenticated]
    entity_type = 'appointment'
    filterset_fields = ['child', 'center', 'status']


# ============== Vaccinations ==============

class VaccinationViewSet(LedgerViewMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                         mixins.DestroyModelMixin, viewsets.GenericViewSet):
    """
    Vaccination events. POST registers a dose and consumes stock in one
    transaction; DELETE removes the record without restocking.
    """
    queryset = VaccinationEvent.objects.select_related('child', 'lot__vaccine', 'staff')
    permission_classes = [IsAuthenticated]
    filterset_fields = ['child', 'lot', 'center', 'staff', 'campaign']
    search_fields = ['child__full_name', 'lot__lot_number']

    def get_permissions(self):
        if self.action == 'destroy':
            permission_classes = [IsManager]
        else:
            permission_classes = [IsAuthenticated]
        return [permission() for permission in permission_classes]

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return VaccinationEventDetailSerializer
        elif self.action == 'create':
            return VaccinationRegisterSerializer
        return VaccinationEventListSerializer

    def create(self, request, *args, **kwargs):
        serializer = VaccinationRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        event_id = vaccinations.register_vaccination(
            data['child'], data['lot'], data['staff'], data['administered_at'], data['dose_number'],
            center_id=data.get('center'),
            injection_site=data.get('injection_site'),
            notes=data.get('notes'),
            appointment_id=data.get('appointment'),
            campaign_id=data.get('campaign'),
            principal=request.user,
        )
        event = self.get_queryset().get(pk=event_id)
        return Response(VaccinationEventDetailSerializer(event).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        vaccinations.delete_event(kwargs['pk'], principal=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        """Vaccination counts"""
        today = timezone.localdate()
        return Response({
            'total_vaccinations': VaccinationEvent.objects.count(),
            'today_vaccinations': VaccinationEvent.objects.filter(administered_at__date=today).count(),
        })


class CampaignViewSet(LedgerViewMixin, AuditTrailMixin, LifecycleDestroyMixin, viewsets.ModelViewSet):
    queryset = Campaign.objects.select_related('vaccine')
    serializer_class = CampaignSerializer
    permission_classes = [IsManagerOrReadOnly]
    entity_type = 'campaign'
    filterset_fields = ['status', 'vaccine']
    search_fields = ['name']


class CampaignCenterViewSet(LedgerViewMixin, AuditTrailMixin, viewsets.ModelViewSet):
    queryset = CampaignCenter.objects.all()
    serializer_class = CampaignCenterSerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['campaign', 'center']


class AdverseEventViewSet(LedgerViewMixin, AuditTrailMixin, viewsets.ModelViewSet):
    queryset = AdverseEvent.objects.all()
    serializer_class = AdverseEventSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['child', 'event', 'severity', 'status']


class AlertViewSet(LedgerViewMixin, AuditTrailMixin, viewsets.ModelViewSet):
    queryset = Alert.objects.all()
    serializer_class = AlertSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['child', 'status', 'assigned_user']


# ============== Audit & Reports ==============

class AuditRecordViewSet(LedgerViewMixin, viewsets.ReadOnlyModelViewSet):
    queryset = AuditRecord.objects.select_related('user')
    serializer_class = AuditRecordSerializer
    permission_classes = [IsManager]
    filterset_fields = ['table_name', 'row_id', 'action', 'user']


class CoverageReportView(APIView):
    """
    Vaccinations per vaccine at one center over a date range.
    Endpoint: /api/reports/coverage/?center=<id>&start=YYYY-MM-DD&end=YYYY-MM-DD
    """
    authentication_classes = [TokenAuthentication, SessionAuthentication]
    permission_classes = [IsManager]

    def get(self, request):
        query = CoverageQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        return Response(reports.coverage_by_center(params['center'], params['start'], params['end']))


class ExpiredLotsReportView(APIView):
    """
    Expired lots that still hold doses.
    Endpoint: /api/reports/expired-lots/?center=<id>
    """
    authentication_classes = [TokenAuthentication, SessionAuthentication]
    permission_classes = [IsManager]

    def get(self, request):
        query = ExpiredLotsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        lots = reports.expired_lots(center_id=query.validated_data.get('center'))
        return Response(VaccineLotSerializer(lots, many=True).data)
