import uuid

from django.db import models

# Shared by every entity that can be soft-deactivated.
STATE_ACTIVE = 'Active'
STATE_INACTIVE = 'Inactive'
STATE_CHOICES = (
    (STATE_ACTIVE, 'Active'),
    (STATE_INACTIVE, 'Inactive'),
)


class Country(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True, verbose_name="Country name")
    demonym = models.CharField(max_length=100, verbose_name="Demonym")
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE, verbose_name="State")

    class Meta:
        ordering = ['name']
        verbose_name = "Country"
        verbose_name_plural = "Countries"

    def __str__(self):
        return self.name


class HealthCenter(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Basic data
    name = models.CharField(max_length=200, verbose_name="Center name")
    short_name = models.CharField(max_length=50, blank=True, null=True, verbose_name="Short name")
    address = models.CharField(max_length=500, blank=True, null=True, verbose_name="Address")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, blank=True, null=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, blank=True, null=True)

    # Contact
    phone = models.CharField(max_length=20, blank=True, null=True, verbose_name="Phone")
    director = models.CharField(max_length=200, blank=True, null=True, verbose_name="Director")
    website = models.URLField(max_length=200, blank=True, null=True, verbose_name="Website")

    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE, verbose_name="State")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Vaccination center"
        verbose_name_plural = "Vaccination centers"

    def __str__(self):
        if self.short_name:
            return f"{self.name} ({self.short_name})"
        return self.name

    @property
    def is_active(self):
        return self.state == STATE_ACTIVE


class HealthStaff(models.Model):
    """
    Health personnel who administer doses and report adverse events.
    Kept apart from login accounts: not every vaccinator has a user.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200, verbose_name="Full name")
    national_id = models.CharField(max_length=20, verbose_name="National ID")
    phone = models.CharField(max_length=20, blank=True, null=True, verbose_name="Phone")
    email = models.EmailField(max_length=100, blank=True, null=True, verbose_name="Email")
    center = models.ForeignKey(HealthCenter, on_delete=models.PROTECT, related_name='staff', verbose_name="Center")
    specialty = models.CharField(max_length=100, blank=True, null=True, verbose_name="Specialty")
    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=STATE_ACTIVE, verbose_name="State")

    class Meta:
        ordering = ['name']
        verbose_name = "Health staff member"
        verbose_name_plural = "Health staff"

    def __str__(self):
        return f"{self.name} - {self.center.name}"
