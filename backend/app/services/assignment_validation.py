"""Pre-commit validation of a user's weekly split schedule."""

from collections.abc import Collection, Iterable

from app.db.models import DayOfWeek

MIN_TRAINING_DAYS = 2


def validate_weekly_schedule(
    assigned_days: Iterable[DayOfWeek],
    available_weekdays: Collection[DayOfWeek],
    weekly_frequency: int,
) -> list[str]:
    """
    Check a weekly schedule against the user's training preferences.

    Returns a list of human-readable errors; an empty list means valid.
    The assigned day count is bounded by the stated weekly frequency.
    """
    if not available_weekdays:
        return ["No available training days are configured; set them before assigning splits"]

    days = list(assigned_days)
    errors: list[str] = []

    for day in days:
        if day not in available_weekdays:
            errors.append(f"{day.value} is not one of your available training days")

    if len(days) < MIN_TRAINING_DAYS:
        errors.append(f"At least {MIN_TRAINING_DAYS} training days must be assigned")

    if len(days) > weekly_frequency:
        errors.append(
            f"Cannot assign {len(days)} days for a weekly frequency of {weekly_frequency} days"
        )

    return errors
