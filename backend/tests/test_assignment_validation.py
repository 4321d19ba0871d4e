"""Weekly schedule validation rules."""

from app.db.models import DayOfWeek
from app.services.assignment_validation import validate_weekly_schedule

MON, TUE, WED, THU, FRI = (
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
)


def test_valid_schedule_has_no_errors():
    assert validate_weekly_schedule([MON, WED, FRI], [MON, WED, FRI], 3) == []


def test_day_outside_available_days_is_rejected():
    errors = validate_weekly_schedule([MON, TUE], [MON, WED], 2)
    assert errors == ["tuesday is not one of your available training days"]


def test_fewer_than_two_days_is_rejected():
    errors = validate_weekly_schedule([MON], [MON, WED], 3)
    assert errors == ["At least 2 training days must be assigned"]


def test_more_days_than_weekly_frequency_is_rejected():
    errors = validate_weekly_schedule([MON, TUE, WED], [MON, TUE, WED, THU], 2)
    assert errors == ["Cannot assign 3 days for a weekly frequency of 2 days"]


def test_all_problems_are_reported_together():
    errors = validate_weekly_schedule([THU], [MON], 3)
    assert len(errors) == 2


def test_missing_available_days_is_a_configuration_error():
    errors = validate_weekly_schedule([MON, WED], [], 2)
    assert len(errors) == 1
    assert "No available training days" in errors[0]
