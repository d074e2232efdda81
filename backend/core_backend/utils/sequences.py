"""
Human-readable daily sequence numbers (e.g. TAB-20250314-007).

The sequence restarts every local calendar day. Numbers are derived from the
highest existing value with today's prefix, so callers must save inside a retry
loop that handles the unique constraint on the number field.
"""

from django.db import IntegrityError, transaction
from django.db.models import IntegerField, Max
from django.db.models.functions import Cast, Substr
from django.utils import timezone

MAX_RETRIES = 5


def daily_prefix(prefix: str, day=None) -> str:
    day = day or timezone.localdate()
    return f"{prefix}-{day:%Y%m%d}-"


def next_daily_number(model, field: str, prefix: str, width: int, day=None) -> str:
    """Next number for `model.field` under today's `prefix`."""
    stem = daily_prefix(prefix, day)
    # Compare the numeric suffix; text order puts -999 above -1000
    last_number = (
        model.objects.filter(**{f"{field}__startswith": stem})
        .annotate(sequence=Cast(Substr(field, len(stem) + 1), IntegerField()))
        .aggregate(last=Max("sequence"))["last"]
    )

    return f"{stem}{(last_number or 0) + 1:0{width}d}"


def save_with_sequence(instance, field: str, prefix: str, width: int, save):
    """
    Assign the next daily number to `instance.field` and save, retrying when a
    concurrent writer took the same number first.
    """
    for _ in range(MAX_RETRIES):
        setattr(instance, field, next_daily_number(type(instance), field, prefix, width))
        try:
            with transaction.atomic():
                save()
            return
        except IntegrityError as e:
            # Only a clash on the number itself is worth retrying.
            if field not in str(e).lower():
                raise
            continue
    raise IntegrityError(
        f"Failed to generate a unique {type(instance).__name__} {field} after {MAX_RETRIES} retries."
    )
