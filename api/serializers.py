"""
Serializers for the Django REST API.

Ledger writes (lots, vaccinations, patients, supply usage) use plain
Serializers that only validate shape; existence checks and stock moves
happen in medical.services.
"""
from datetime import date

from rest_framework import serializers

from audit.models import AuditRecord
from centers.models import Country, HealthCenter, HealthStaff
from medical.models import (
    AdverseEvent, Alert, Appointment, Campaign, CampaignCenter, Child, Guardian,
    NationalCalendar, Supply, SupplyUsage, VaccinationEvent, Vaccine, VaccineLot, VaccineSchedule,
)
from users.models import CustomUser
from .validators import (
    validate_child_age, validate_name, validate_not_future_datetime, validate_past_date,
    validate_phone_number,
)


# ============== Country ==============

class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = ['id', 'name', 'demonym', 'state']
        read_only_fields = ['state']


# ============== Health Center ==============

class HealthCenterListSerializer(serializers.ModelSerializer):
    class Meta:
        model = HealthCenter
        fields = ['id', 'name', 'short_name', 'director', 'phone', 'state', 'created_at']


class HealthCenterDetailSerializer(serializers.ModelSerializer):
    staff_count = serializers.SerializerMethodField()
    children_count = serializers.SerializerMethodField()

    class Meta:
        model = HealthCenter
        fields = ['id', 'name', 'short_name', 'address', 'latitude', 'longitude', 'phone',
                  'director', 'website', 'state', 'staff_count', 'children_count', 'created_at']

    def get_staff_count(self, obj):
        return obj.staff.count()

    def get_children_count(self, obj):
        return obj.children.count()


class HealthCenterCreateUpdateSerializer(serializers.ModelSerializer):

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        help_text="Password of the center director account (used to log in)",
        required=False
    )

    class Meta:
        model = HealthCenter
        fields = ['id', 'name', 'short_name', 'address', 'latitude', 'longitude', 'phone',
                  'director', 'website', 'password']
        extra_kwargs = {
            'phone': {'validators': [validate_phone_number]},
        }

    def create(self, validated_data):
        password = validated_data.pop('password', None)
        center = super().create(validated_data)

        # Director account for the new center
        if password:
            CustomUser.objects.create_director(center, password)
        return center

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        center = super().update(instance, validated_data)

        if password:
            director = CustomUser.objects.filter(health_center=center, role='DIRECTOR').first()
            if director:
                director.set_password(password)
                director.save()
            else:
                CustomUser.objects.create_director(center, password)
        return center


class HealthStaffSerializer(serializers.ModelSerializer):
    center_name = serializers.CharField(source='center.name', read_only=True)

    class Meta:
        model = HealthStaff
        fields = ['id', 'name', 'national_id', 'phone', 'email', 'center', 'center_name', 'specialty', 'state']
        read_only_fields = ['state']
        extra_kwargs = {
            'name': {'validators': [validate_name]},
            'phone': {'validators': [validate_phone_number]},
        }


# ============== User ==============

class UserListSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    health_center_name = serializers.CharField(source='health_center.name', read_only=True, default=None)

    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'first_name', 'last_name', 'role',
                  'role_display', 'health_center_name', 'is_active', 'date_joined']


class UserDetailSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    health_center = HealthCenterListSerializer(read_only=True)

    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'first_name', 'last_name', 'email', 'phone',
                  'role', 'role_display', 'health_center', 'is_active']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'first_name', 'last_name', 'email', 'phone', 'password',
                  'role', 'health_center', 'is_active']
        extra_kwargs = {
            'first_name': {'validators': [validate_name]},
            'last_name': {'validators': [validate_name]},
            'phone': {'validators': [validate_phone_number]},
        }

    def create(self, validated_data):
        password = validated_data.pop('password')
        return CustomUser.objects.create_user(password=password, **validated_data)


class UserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = ['first_name', 'last_name', 'email', 'phone', 'role', 'health_center', 'is_active']
        extra_kwargs = {
            'first_name': {'validators': [validate_name]},
            'last_name': {'validators': [validate_name]},
            'phone': {'validators': [validate_phone_number]},
        }


# ============== Vaccine & Schedule ==============

class VaccineSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vaccine
        fields = ['id', 'name', 'manufacturer', 'vaccine_type', 'required_doses', 'state']


class VaccineScheduleSerializer(serializers.ModelSerializer):
    vaccine_name = serializers.CharField(source='vaccine.name', read_only=True)

    class Meta:
        model = VaccineSchedule
        fields = ['id', 'vaccine', 'vaccine_name', 'dose_order', 'age_in_months', 'description']


class NationalCalendarSerializer(serializers.ModelSerializer):
    class Meta:
        model = NationalCalendar
        fields = ['id', 'country', 'schedule', 'description']


# ============== Vaccine Lot ==============

class VaccineLotSerializer(serializers.ModelSerializer):
    vaccine_name = serializers.CharField(source='vaccine.name', read_only=True)
    center_name = serializers.CharField(source='center.name', read_only=True)

    class Meta:
        model = VaccineLot
        fields = ['id', 'vaccine', 'vaccine_name', 'lot_number', 'total_quantity', 'available_quantity',
                  'manufacture_date', 'expiry_date', 'center', 'center_name', 'storage_conditions',
                  'recorded_temperature', 'last_checked_at', 'created_at', 'updated_at']
        read_only_fields = fields


class VaccineLotCreateSerializer(serializers.Serializer):
    vaccine = serializers.UUIDField()
    center = serializers.UUIDField()
    lot_number = serializers.CharField(max_length=50)
    total_quantity = serializers.IntegerField(min_value=0)
    available_quantity = serializers.IntegerField(min_value=0, required=False)
    manufacture_date = serializers.DateField(validators=[validate_past_date])
    expiry_date = serializers.DateField()
    storage_conditions = serializers.CharField(max_length=200, required=False, allow_null=True, allow_blank=True)
    recorded_temperature = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    last_checked_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['expiry_date'] <= attrs['manufacture_date']:
            raise serializers.ValidationError({'expiry_date': "Expiry date must be after the manufacture date."})
        return attrs


class VaccineLotUpdateSerializer(serializers.ModelSerializer):
    """Metadata only; quantities move through the stock ledger."""

    class Meta:
        model = VaccineLot
        fields = ['lot_number', 'manufacture_date', 'expiry_date', 'storage_conditions',
                  'recorded_temperature', 'last_checked_at']


class ReplenishSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


# ============== Campaign ==============

class CampaignSerializer(serializers.ModelSerializer):
    vaccine_name = serializers.CharField(source='vaccine.name', read_only=True)

    class Meta:
        model = Campaign
        fields = ['id', 'name', 'start_date', 'end_date', 'goal', 'vaccine', 'vaccine_name', 'status']

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': "End date cannot be before the start date."})
        return attrs


class CampaignCenterSerializer(serializers.ModelSerializer):
    class Meta:
        model = CampaignCenter
        fields = ['id', 'campaign', 'center', 'assigned_on']


# ============== Child & Guardians ==============

class GuardianSerializer(serializers.ModelSerializer):
    nationality_name = serializers.CharField(source='nationality.name', read_only=True)

    class Meta:
        model = Guardian
        fields = ['id', 'child', 'name', 'relationship', 'relationship_slot', 'nationality',
                  'nationality_name', 'national_id', 'phone', 'email', 'address', 'state']


class GuardianInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, validators=[validate_name])
    relationship = serializers.ChoiceField(choices=Guardian.RELATIONSHIP_CHOICES)
    relationship_slot = serializers.ChoiceField(choices=Guardian.SLOT_CHOICES, required=False)
    nationality = serializers.UUIDField()
    national_id = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_null=True, validators=[validate_phone_number])
    email = serializers.EmailField(max_length=100, required=False, allow_null=True)
    address = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)


class ChildListSerializer(serializers.ModelSerializer):
    health_center_name = serializers.CharField(source='health_center.name', read_only=True, default=None)
    age = serializers.SerializerMethodField()

    class Meta:
        model = Child
        fields = ['id', 'full_name', 'national_id', 'birth_date', 'age', 'gender',
                  'health_center', 'health_center_name', 'state', 'created_at']

    def get_age(self, obj):
        today = date.today()
        age = today.year - obj.birth_date.year
        if (today.month, today.day) < (obj.birth_date.month, obj.birth_date.day):
            age -= 1
        return age


class ChildDetailSerializer(ChildListSerializer):
    guardians = GuardianSerializer(many=True, read_only=True)
    nationality_name = serializers.CharField(source='nationality.name', read_only=True)
    birth_country_name = serializers.CharField(source='birth_country.name', read_only=True)

    class Meta(ChildListSerializer.Meta):
        fields = ChildListSerializer.Meta.fields + [
            'nationality', 'nationality_name', 'birth_country', 'birth_country_name',
            'residence_address', 'latitude', 'longitude', 'primary_contact',
            'national_health_id', 'created_by', 'guardians',
        ]


class PatientWriteSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=200, validators=[validate_name])
    national_id = serializers.CharField(max_length=20)
    nationality = serializers.UUIDField()
    birth_country = serializers.UUIDField()
    birth_date = serializers.DateField(validators=[validate_child_age])
    gender = serializers.ChoiceField(choices=Child.GENDER_CHOICES)
    residence_address = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    health_center = serializers.UUIDField(required=False, allow_null=True)
    primary_contact = serializers.ChoiceField(choices=Child.CONTACT_CHOICES, required=False, allow_null=True)
    national_health_id = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)
    guardians = GuardianInputSerializer(many=True, required=False)


# ============== Appointment ==============

class AppointmentSerializer(serializers.ModelSerializer):
    child_name = serializers.CharField(source='child.full_name', read_only=True)

    class Meta:
        model = Appointment
        fields = ['id', 'child', 'child_name', 'center', 'vaccine', 'campaign', 'scheduled_at', 'status', 'updated_at']


# ============== Vaccination Event ==============

class VaccinationEventListSerializer(serializers.ModelSerializer):
    child_name = serializers.CharField(source='child.full_name', read_only=True)
    vaccine_name = serializers.CharField(source='lot.vaccine.name', read_only=True)
    lot_number = serializers.CharField(source='lot.lot_number', read_only=True)
    staff_name = serializers.CharField(source='staff.name', read_only=True)

    class Meta:
        model = VaccinationEvent
        fields = ['id', 'child', 'child_name', 'lot', 'lot_number', 'vaccine_name', 'dose_number',
                  'staff', 'staff_name', 'center', 'administered_at', 'created_at']


class VaccinationEventDetailSerializer(VaccinationEventListSerializer):
    class Meta(VaccinationEventListSerializer.Meta):
        fields = VaccinationEventListSerializer.Meta.fields + [
            'appointment', 'campaign', 'injection_site', 'notes',
        ]


class VaccinationRegisterSerializer(serializers.Serializer):
    child = serializers.UUIDField()
    lot = serializers.UUIDField()
    staff = serializers.UUIDField()
    center = serializers.UUIDField(required=False, allow_null=True)
    appointment = serializers.UUIDField(required=False, allow_null=True)
    campaign = serializers.UUIDField(required=False, allow_null=True)
    administered_at = serializers.DateTimeField(validators=[validate_not_future_datetime])
    dose_number = serializers.IntegerField(min_value=1)
    injection_site = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)


# ============== Supplies ==============

class SupplySerializer(serializers.ModelSerializer):
    available_quantity = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = Supply
        fields = ['id', 'name', 'supply_type', 'total_quantity', 'available_quantity', 'center',
                  'received_on', 'expiry_date', 'supplier', 'storage_conditions', 'state']
        read_only_fields = ['state']

    def validate(self, attrs):
        if self.instance is not None:
            # stock only moves through supply usage
            attrs.pop('available_quantity', None)
            attrs.pop('total_quantity', None)
            return attrs
        attrs.setdefault('available_quantity', attrs['total_quantity'])
        if attrs['available_quantity'] > attrs['total_quantity']:
            raise serializers.ValidationError({'available_quantity': "Cannot exceed the total quantity."})
        return attrs


class SupplyUsageSerializer(serializers.ModelSerializer):
    class Meta:
        model = SupplyUsage
        fields = ['id', 'event', 'supply', 'quantity', 'used_on']


class SupplyUsageCreateSerializer(serializers.Serializer):
    event = serializers.UUIDField()
    supply = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    used_on = serializers.DateField(required=False, validators=[validate_past_date])


# ============== Adverse events & Alerts ==============

class AdverseEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdverseEvent
        fields = ['id', 'child', 'event', 'description', 'occurred_on', 'severity',
                  'reporter', 'actions_taken', 'status']
        extra_kwargs = {
            'occurred_on': {'validators': [validate_past_date]},
        }


class AlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = Alert
        fields = ['id', 'child', 'alert_type', 'raised_at', 'description', 'status', 'assigned_user']


# ============== Audit ==============

class AuditRecordSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditRecord
        fields = ['id', 'table_name', 'row_id', 'user', 'username', 'action', 'details', 'source_ip', 'recorded_at']
        read_only_fields = fields


# ============== Reports ==============

class CoverageQuerySerializer(serializers.Serializer):
    center = serializers.UUIDField()
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs):
        if attrs['end'] < attrs['start']:
            raise serializers.ValidationError({'end': "End date cannot be before the start date."})
        return attrs


class ExpiredLotsQuerySerializer(serializers.Serializer):
    center = serializers.UUIDField(required=False)
