from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class CustomUserManager(UserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', 'ADMINISTRATOR')
        return super().create_superuser(username, email, password, **extra_fields)

    def create_director(self, center, password):
        """
        New DIRECTOR account for a center. The username is the center's short
        name (or name); when that is taken a suffix from the center id is added,
        so an existing account is never reused.
        """
        username = (center.short_name or center.name).strip().replace(' ', '_')
        if self.filter(username=username).exists():
            username = f"{username}_{center.pk.hex[:8]}"
        return self.create_user(username=username, password=password, role='DIRECTOR', health_center=center)


class CustomUser(AbstractUser):
    objects = CustomUserManager()

    USER_TYPE_CHOICES = (
        ('ADMINISTRATOR', 'Administrator'),  # program-wide
        ('DIRECTOR', 'Center director'),
        ('RESPONSIBLE', 'Responsible officer'),
        ('DOCTOR', 'Doctor'),
    )

    role = models.CharField(max_length=20, choices=USER_TYPE_CHOICES, default='DOCTOR', verbose_name="Role")

    # A user belongs to at most one center
    health_center = models.ForeignKey(
        'centers.HealthCenter', on_delete=models.PROTECT, null=True, blank=True,
        verbose_name="Health center", related_name="users"
    )

    phone = models.CharField(max_length=20, blank=True, null=True, verbose_name="Phone")

    def __str__(self):
        if self.health_center:
            return f"{self.username} - {self.health_center.name}"
        return self.username

    @property
    def is_administrator(self):
        return self.is_superuser or self.role == 'ADMINISTRATOR'

    @property
    def is_manager(self):
        # directors and administrators manage centers, stock and reports
        return self.is_administrator or self.role == 'DIRECTOR'
