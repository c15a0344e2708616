import re
from datetime import date

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

PHONE_RE = re.compile(r'^\+?[\d\s\-()]{7,15}$')


def validate_phone_number(value):
    """
    Phone numbers: optional leading +, then 7 to 15 digits, spaces, dashes or
    parentheses (e.g. +1-809-532-0001).
    """
    if not PHONE_RE.match(value):
        raise ValidationError("Phone must be a valid number (e.g. +1-809-532-0001).")


def validate_name(value):
    if len(value.strip()) < 2:
        raise ValidationError("Name is too short.")
    if any(ch.isdigit() for ch in value):
        raise ValidationError("Name must not contain digits.")


def validate_past_date(value):
    """
    The date cannot be in the future.
    """
    if value > date.today():
        raise ValidationError("Date cannot be in the future.")


def validate_not_future_datetime(value):
    if value > timezone.now():
        raise ValidationError("Date cannot be in the future.")


def validate_child_age(birth_date):
    """Children are registered up to CHILD_MAX_AGE_YEARS years of age."""
    validate_past_date(birth_date)
    max_years = settings.CHILD_MAX_AGE_YEARS
    if birth_date + relativedelta(years=max_years) < date.today():
        raise ValidationError(f"Child must be at most {max_years} years old.")
