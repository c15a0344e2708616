from datetime import timedelta

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.db.models import Count, Exists, OuterRef
from django.utils import timezone

from medical.exceptions import NotFound
from medical.models import Appointment, Child, VaccinationEvent, VaccineLot, VaccineSchedule
from medical.services import registry


def coverage_by_center(center_id, start, end):
    """Administrations and distinct children per vaccine at one center, dates inclusive."""
    if not registry.exists('center', center_id):
        raise NotFound('center', center_id)

    rows = (
        VaccinationEvent.objects
        .filter(center_id=center_id, administered_at__date__gte=start, administered_at__date__lte=end)
        .values('lot__vaccine__name')
        .annotate(total_vaccinations=Count('id'), children_vaccinated=Count('child', distinct=True))
        .order_by('lot__vaccine__name')
    )
    return [
        {
            'vaccine': row['lot__vaccine__name'],
            'total_vaccinations': row['total_vaccinations'],
            'children_vaccinated': row['children_vaccinated'],
        }
        for row in rows
    ]


def expired_lots(center_id=None, today=None):
    """Lots past their expiry date that still hold doses."""
    today = today or timezone.localdate()
    lots = VaccineLot.objects.filter(expiry_date__lt=today, available_quantity__gt=0)
    if center_id is not None:
        lots = lots.filter(center_id=center_id)
    return lots.select_related('vaccine', 'center').order_by('expiry_date', 'lot_number')


def pending_appointments(child_id, now=None):
    now = now or timezone.now()
    return (
        Appointment.objects
        .filter(
            child_id=child_id,
            status__in=(Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED),
            scheduled_at__gte=now,
        )
        .select_related('center', 'vaccine')
        .order_by('scheduled_at')
    )


def due_date(birth_date, age_in_months):
    # fractional months (e.g. 1.5) become extra days
    months = int(age_in_months)
    days = int((age_in_months - months) * 30)
    return birth_date + relativedelta(months=months) + timedelta(days=days)


def incomplete_schedules(child_id, today=None):
    """
    Schedule entries the child has no matching dose for (same vaccine, same
    dose number), each with its due date and whether it is overdue.
    """
    try:
        child = Child.objects.get(pk=child_id)
    except (Child.DoesNotExist, ValueError, ValidationError):
        raise NotFound('child', child_id)
    today = today or timezone.localdate()

    given = VaccinationEvent.objects.filter(
        child_id=child_id,
        lot__vaccine_id=OuterRef('vaccine_id'),
        dose_number=OuterRef('dose_order'),
    )
    schedules = (
        VaccineSchedule.objects
        .filter(~Exists(given))
        .select_related('vaccine')
        .order_by('age_in_months', 'vaccine__name', 'dose_order')
    )

    result = []
    for schedule in schedules:
        due = due_date(child.birth_date, schedule.age_in_months)
        result.append({
            'schedule_id': schedule.pk,
            'vaccine': schedule.vaccine.name,
            'dose_order': schedule.dose_order,
            'due_date': due,
            'overdue': due < today,
        })
    return result
