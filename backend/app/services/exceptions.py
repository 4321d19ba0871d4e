"""Domain errors raised by the plan cache services."""

from datetime import date


class ScheduleValidationError(Exception):
    """A weekly schedule was rejected before anything was written."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class GenerationFailure(Exception):
    """Plan content for one date could not be produced or stored."""

    def __init__(self, plan_date: date, message: str):
        self.plan_date = plan_date
        self.message = message
        super().__init__(f"{plan_date.isoformat()}: {message}")
