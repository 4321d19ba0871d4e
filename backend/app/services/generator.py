"""Plan content generation via the Anthropic API."""

import asyncio
import json
import logging
from datetime import date
from typing import Protocol

from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic, RateLimitError
from pydantic import ValidationError

from app.config import get_settings
from app.db.models import DayOfWeek, SplitAssignment
from app.schemas.plans import PLAN_CONTENT_VERSION, PlanContent
from app.services.exceptions import GenerationFailure

logger = logging.getLogger(__name__)
settings = get_settings()

# Transient error types that warrant retrying
_RETRYABLE_ERRORS = (APIConnectionError, RateLimitError)


class PlanGenerator(Protocol):
    """
    Turns a weekday assignment into concrete plan content.

    Repeat calls with the same (user, date, assignment) must yield equivalent
    content; the cache relies on that when two writers race for one key.
    """

    async def generate(
        self, user_id: int, plan_date: date, assignment: SplitAssignment
    ) -> PlanContent:
        ...


async def _retry_anthropic(coro_factory, *, max_attempts: int = 3, base_delay: float = 1.0):
    """
    Retry an Anthropic API call with exponential backoff.

    Args:
        coro_factory: Callable that returns a new coroutine each invocation.
        max_attempts: Maximum number of attempts.
        base_delay: Base delay in seconds (doubles each retry).

    Returns:
        The result of the coroutine.
    """
    for attempt in range(max_attempts):
        last_attempt = attempt == max_attempts - 1
        try:
            return await coro_factory()
        except _RETRYABLE_ERRORS as e:
            if last_attempt:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Anthropic API transient error (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1, max_attempts, delay, str(e),
            )
            await asyncio.sleep(delay)
        except APIStatusError as e:
            if e.status_code != 529 or last_attempt:  # 529 = overloaded
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Anthropic API overloaded (attempt %d/%d), retrying in %.1fs",
                attempt + 1, max_attempts, delay,
            )
            await asyncio.sleep(delay)
    raise RuntimeError("max_attempts must be at least 1")


def _extract_json(text: str) -> str:
    """Strip a markdown code fence around the model's JSON answer, if any."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class AnthropicPlanGenerator:
    """Generates a day's workout for a split using Claude."""

    def __init__(self, client: AsyncAnthropic | None = None):
        """Initialize Anthropic client."""
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def generate(
        self, user_id: int, plan_date: date, assignment: SplitAssignment
    ) -> PlanContent:
        message = await _retry_anthropic(
            lambda: self.client.messages.create(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                temperature=0,
                system=self._build_system_prompt(),
                messages=[{"role": "user", "content": self._build_prompt(plan_date, assignment)}],
            ),
            max_attempts=settings.llm_max_attempts,
        )

        text = message.content[0].text
        try:
            return PlanContent.model_validate_json(_extract_json(text))
        except ValidationError as e:
            logger.warning(
                "Generator returned invalid plan for user_id=%s on %s: %s",
                user_id, plan_date, e.error_count(),
            )
            raise GenerationFailure(plan_date, "generator returned an invalid plan") from e

    def _build_system_prompt(self) -> str:
        """Build system prompt for LLM"""
        schema = json.dumps(PlanContent.model_json_schema(), indent=2)
        return f"""You are a strength coach writing a single day's workout for a predefined split.

Respond with ONLY a JSON object (no prose, no markdown) matching this JSON schema:
{schema}

Rules:
- schema_version must be {PLAN_CONTENT_VERSION}
- Only include exercises that train the muscle groups of the split
- 4 to 8 exercises, sets between 1 and 6
- estimated_minutes is the total session length including rest"""

    def _build_prompt(self, plan_date: date, assignment: SplitAssignment) -> str:
        """Build the per-day request."""
        weekday = DayOfWeek.from_date(plan_date).value
        split_name = assignment.split_name or assignment.split_type
        return (
            f"Date: {plan_date.isoformat()} ({weekday})\n"
            f"Split: {split_name} (type: {assignment.split_type}, id: {assignment.split_id})\n"
            f"Training days per week: {assignment.weekly_frequency}\n\n"
            "Write the workout for this day."
        )
