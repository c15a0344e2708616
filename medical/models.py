import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from centers.models import Country, HealthCenter, HealthStaff, STATE_CHOICES, STATE_ACTIVE


class Vaccine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, verbose_name="Vaccine name")
    manufacturer = models.CharField(max_length=100, verbose_name="Manufacturer")
    vaccine_type = models.CharField(max_length=50, verbose_name="Type")
    required_doses = models.PositiveIntegerField(default=1, verbose_name="Required doses")
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE, verbose_name="State")

    class Meta:
        ordering = ['name']
        verbose_name = "Vaccine"
        verbose_name_plural = "Vaccines"

    def __str__(self):
        return f"{self.name} ({self.manufacturer})"


class VaccineSchedule(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vaccine = models.ForeignKey(Vaccine, on_delete=models.PROTECT, related_name='schedules')
    dose_order = models.PositiveIntegerField(verbose_name="Dose number")
    age_in_months = models.FloatField(verbose_name="Recommended age (months)", help_text="0 means at birth")
    description = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        ordering = ['age_in_months', 'dose_order']
        verbose_name = "Vaccination schedule entry"
        verbose_name_plural = "Vaccination schedule"

    def __str__(self):
        return f"{self.vaccine.name} - dose {self.dose_order} (month {self.age_in_months})"


class NationalCalendar(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    country = models.ForeignKey(Country, on_delete=models.PROTECT, related_name='calendars')
    schedule = models.ForeignKey(VaccineSchedule, on_delete=models.PROTECT, related_name='calendars')
    description = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        verbose_name = "National calendar entry"
        verbose_name_plural = "National calendars"

    def __str__(self):
        return f"{self.country.name}: {self.schedule}"


class VaccineLot(models.Model):
    """
    A manufactured batch of one vaccine held at one center.

    available_quantity is only ever changed by the stock ledger through
    conditional UPDATEs; the check constraints are the last line of defence.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vaccine = models.ForeignKey(Vaccine, on_delete=models.PROTECT, related_name='lots')
    lot_number = models.CharField(max_length=50, verbose_name="Lot number")
    total_quantity = models.PositiveIntegerField(verbose_name="Total doses")
    available_quantity = models.PositiveIntegerField(verbose_name="Available doses")
    manufacture_date = models.DateField(verbose_name="Manufacture date")
    expiry_date = models.DateField(verbose_name="Expiry date")
    center = models.ForeignKey(HealthCenter, on_delete=models.PROTECT, related_name='lots')
    storage_conditions = models.CharField(max_length=200, blank=True, null=True)
    recorded_temperature = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    last_checked_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['expiry_date', 'lot_number']
        verbose_name = "Vaccine lot"
        verbose_name_plural = "Vaccine lots"
        constraints = [
            models.CheckConstraint(
                condition=Q(available_quantity__gte=0),
                name='lot_available_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(available_quantity__lte=F('total_quantity')),
                name='lot_available_within_total',
            ),
        ]

    def __str__(self):
        return f"{self.lot_number} - {self.vaccine.name} ({self.available_quantity}/{self.total_quantity})"


class Campaign(models.Model):
    STATUS_CHOICES = (
        ('Planned', 'Planned'),
        ('Ongoing', 'Ongoing'),
        ('Finished', 'Finished'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200, verbose_name="Campaign name")
    start_date = models.DateField(verbose_name="Start date")
    end_date = models.DateField(blank=True, null=True, verbose_name="End date")
    goal = models.CharField(max_length=500, blank=True, null=True, verbose_name="Goal")
    vaccine = models.ForeignKey(Vaccine, on_delete=models.PROTECT, related_name='campaigns')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Planned')

    class Meta:
        ordering = ['-start_date']
        verbose_name = "Vaccination campaign"
        verbose_name_plural = "Vaccination campaigns"

    def __str__(self):
        return self.name


class CampaignCenter(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    campaign = models.ForeignKey(Campaign, on_delete=models.PROTECT, related_name='assignments')
    center = models.ForeignKey(HealthCenter, on_delete=models.PROTECT, related_name='campaign_assignments')
    assigned_on = models.DateField(verbose_name="Assignment date")

    class Meta:
        unique_together = ('campaign', 'center')
        verbose_name = "Campaign assignment"
        verbose_name_plural = "Campaign assignments"

    def __str__(self):
        return f"{self.campaign.name} @ {self.center.name}"


class Child(models.Model):
    GENDER_CHOICES = (
        ('M', 'Male'),
        ('F', 'Female'),
        ('O', 'Other'),
    )
    CONTACT_CHOICES = (
        ('Mother', 'Mother'),
        ('Father', 'Father'),
        ('Guardian', 'Guardian'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # 1. Identity
    full_name = models.CharField(max_length=200, verbose_name="Full name")
    national_id = models.CharField(max_length=20, verbose_name="Identification")
    nationality = models.ForeignKey(Country, on_delete=models.PROTECT, related_name='nationals', verbose_name="Nationality")
    birth_country = models.ForeignKey(Country, on_delete=models.PROTECT, related_name='births', verbose_name="Birth country")
    birth_date = models.DateField(verbose_name="Birth date")
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES, verbose_name="Gender")

    # 2. Residence and registration
    residence_address = models.CharField(max_length=500, blank=True, null=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, blank=True, null=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, blank=True, null=True)
    health_center = models.ForeignKey(
        HealthCenter, on_delete=models.PROTECT, related_name='children',
        verbose_name="Registration center", null=True, blank=True
    )
    primary_contact = models.CharField(max_length=20, choices=CONTACT_CHOICES, blank=True, null=True)
    national_health_id = models.CharField(max_length=20, blank=True, null=True)

    # 3. State
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE, verbose_name="State")

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
        related_name='created_children', null=True, blank=True
    )

    class Meta:
        ordering = ['full_name']
        verbose_name = "Child"
        verbose_name_plural = "Children"

    def __str__(self):
        return self.full_name


class Guardian(models.Model):
    RELATIONSHIP_CHOICES = (
        ('Mother', 'Mother'),
        ('Father', 'Father'),
        ('LegalGuardian', 'Legal guardian'),
    )
    # A child has at most one guardian per slot
    SLOT_PARENT_1 = 'Parent1'
    SLOT_PARENT_2 = 'Parent2'
    SLOT_LEGAL_GUARDIAN = 'LegalGuardian'
    SLOT_CHOICES = (
        (SLOT_PARENT_1, 'Parent 1'),
        (SLOT_PARENT_2, 'Parent 2'),
        (SLOT_LEGAL_GUARDIAN, 'Legal guardian'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.PROTECT, related_name='guardians')
    name = models.CharField(max_length=200, verbose_name="Name")
    relationship = models.CharField(max_length=20, choices=RELATIONSHIP_CHOICES)
    relationship_slot = models.CharField(max_length=20, choices=SLOT_CHOICES, default=SLOT_LEGAL_GUARDIAN)
    nationality = models.ForeignKey(Country, on_delete=models.PROTECT, related_name='guardians')
    national_id = models.CharField(max_length=20, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(max_length=100, blank=True, null=True)
    address = models.CharField(max_length=500, blank=True, null=True)
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['child', 'relationship_slot'],
                name='unique_guardian_slot_per_child'
            )
        ]
        verbose_name = "Guardian"
        verbose_name_plural = "Guardians"

    def __str__(self):
        return f"{self.name} ({self.relationship}) -> {self.child.full_name}"


class Appointment(models.Model):
    STATUS_PENDING = 'Pending'
    STATUS_CONFIRMED = 'Confirmed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_COMPLETED = 'Completed'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_COMPLETED, 'Completed'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.PROTECT, related_name='appointments')
    center = models.ForeignKey(HealthCenter, on_delete=models.PROTECT, related_name='appointments')
    vaccine = models.ForeignKey(Vaccine, on_delete=models.PROTECT, related_name='appointments', null=True, blank=True)
    campaign = models.ForeignKey(Campaign, on_delete=models.PROTECT, related_name='appointments', null=True, blank=True)
    scheduled_at = models.DateTimeField(verbose_name="Appointment date")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['scheduled_at']
        verbose_name = "Appointment"
        verbose_name_plural = "Appointments"

    def __str__(self):
        return f"{self.child.full_name} @ {self.center.name} ({self.scheduled_at:%Y-%m-%d %H:%M})"


class VaccinationEvent(models.Model):
    """
    One administered dose. Created only together with a successful
    decrement of the lot's stock; keeps pointing at the lot even after the
    lot is exhausted.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.PROTECT, related_name='vaccinations')
    lot = models.ForeignKey(VaccineLot, on_delete=models.PROTECT, related_name='vaccinations')
    staff = models.ForeignKey(HealthStaff, on_delete=models.PROTECT, related_name='vaccinations')
    center = models.ForeignKey(HealthCenter, on_delete=models.PROTECT, related_name='vaccinations', null=True, blank=True)
    appointment = models.ForeignKey(Appointment, on_delete=models.PROTECT, related_name='vaccinations', null=True, blank=True)
    campaign = models.ForeignKey(Campaign, on_delete=models.PROTECT, related_name='vaccinations', null=True, blank=True)

    administered_at = models.DateTimeField(verbose_name="Administered at")
    dose_number = models.PositiveIntegerField(verbose_name="Dose number")
    injection_site = models.CharField(max_length=100, blank=True, null=True)
    notes = models.CharField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-administered_at']
        verbose_name = "Vaccination record"
        verbose_name_plural = "Vaccination history"
        constraints = [
            models.CheckConstraint(condition=Q(dose_number__gte=1), name='event_dose_number_positive'),
        ]

    def __str__(self):
        return f"{self.child.full_name} - {self.lot.vaccine.name} dose {self.dose_number}"


class AdverseEvent(models.Model):
    SEVERITY_CHOICES = (
        ('Mild', 'Mild'),
        ('Moderate', 'Moderate'),
        ('Severe', 'Severe'),
    )
    STATUS_CHOICES = (
        ('Reported', 'Reported'),
        ('UnderInvestigation', 'Under investigation'),
        ('Resolved', 'Resolved'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.PROTECT, related_name='adverse_events')
    event = models.ForeignKey(VaccinationEvent, on_delete=models.PROTECT, related_name='adverse_events')
    description = models.CharField(max_length=500)
    occurred_on = models.DateField()
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES)
    reporter = models.ForeignKey(HealthStaff, on_delete=models.PROTECT, related_name='reported_adverse_events')
    actions_taken = models.CharField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Reported')

    class Meta:
        verbose_name = "Adverse event"
        verbose_name_plural = "Adverse events"

    def __str__(self):
        return f"{self.child.full_name}: {self.severity}"


class Alert(models.Model):
    STATUS_CHOICES = (
        ('Pending', 'Pending'),
        ('Resolved', 'Resolved'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.PROTECT, related_name='alerts')
    alert_type = models.CharField(max_length=100)
    raised_at = models.DateTimeField()
    description = models.CharField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Pending')
    assigned_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
        related_name='assigned_alerts', null=True, blank=True
    )

    class Meta:
        ordering = ['-raised_at']
        verbose_name = "Alert"
        verbose_name_plural = "Alerts"

    def __str__(self):
        return f"{self.alert_type} - {self.child.full_name}"


class Supply(models.Model):
    """Non-vaccine inventory (syringes, cotton, cold boxes) held by a center."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    supply_type = models.CharField(max_length=50, blank=True, null=True)
    total_quantity = models.PositiveIntegerField()
    available_quantity = models.PositiveIntegerField()
    center = models.ForeignKey(HealthCenter, on_delete=models.PROTECT, related_name='supplies')
    received_on = models.DateField()
    expiry_date = models.DateField(blank=True, null=True)
    supplier = models.CharField(max_length=200, blank=True, null=True)
    storage_conditions = models.CharField(max_length=200, blank=True, null=True)
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE)

    class Meta:
        ordering = ['name']
        verbose_name = "Supply"
        verbose_name_plural = "Supplies"
        constraints = [
            models.CheckConstraint(
                condition=Q(available_quantity__lte=F('total_quantity')),
                name='supply_available_within_total',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.available_quantity}/{self.total_quantity})"


class SupplyUsage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(VaccinationEvent, on_delete=models.PROTECT, related_name='supply_usages')
    supply = models.ForeignKey(Supply, on_delete=models.PROTECT, related_name='usages')
    quantity = models.PositiveIntegerField()
    used_on = models.DateField()

    class Meta:
        verbose_name = "Supply usage"
        verbose_name_plural = "Supply usages"

    def __str__(self):
        return f"{self.supply.name} x{self.quantity}"
