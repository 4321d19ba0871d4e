"""AnthropicPlanGenerator against a stubbed client."""

import json
from datetime import date
from types import SimpleNamespace

import httpx
import pytest
from anthropic import APIConnectionError

from app.db.models import SplitAssignment
from app.services.exceptions import GenerationFailure
from app.services.generator import AnthropicPlanGenerator, _extract_json, _retry_anthropic
from conftest import make_content

ASSIGNMENT = SplitAssignment(
    user_id=7, weekday="monday", split_id=1, split_type="push", split_name="Push A", weekly_frequency=3
)


class StubMessages:
    def __init__(self, text: str):
        self.text = text
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        return SimpleNamespace(content=[SimpleNamespace(text=self.text)])


def stub_client(text: str) -> SimpleNamespace:
    return SimpleNamespace(messages=StubMessages(text))


def test_extract_json_strips_code_fences():
    assert _extract_json('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert _extract_json('  {"a": 1}  ') == '{"a": 1}'


async def test_generate_parses_plan_content():
    payload = make_content("push").model_dump_json()
    client = stub_client(f"```json\n{payload}\n```")

    content = await AnthropicPlanGenerator(client=client).generate(7, date(2025, 3, 10), ASSIGNMENT)

    assert content == make_content("push")
    [request] = client.messages.requests
    assert request["temperature"] == 0
    assert "Push A" in request["messages"][0]["content"]
    assert "2025-03-10 (monday)" in request["messages"][0]["content"]


async def test_generate_rejects_invalid_plan():
    client = stub_client(json.dumps({"split_name": "Push", "exercises": []}))

    with pytest.raises(GenerationFailure) as exc_info:
        await AnthropicPlanGenerator(client=client).generate(7, date(2025, 3, 10), ASSIGNMENT)

    assert exc_info.value.plan_date == date(2025, 3, 10)


async def test_generate_rejects_non_json_answer():
    client = stub_client("Here is your workout: bench press.")

    with pytest.raises(GenerationFailure):
        await AnthropicPlanGenerator(client=client).generate(7, date(2025, 3, 10), ASSIGNMENT)


async def test_retry_recovers_from_connection_error():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
        return "ok"

    assert await _retry_anthropic(flaky, max_attempts=3, base_delay=0) == "ok"
    assert len(attempts) == 3


async def test_retry_gives_up_after_max_attempts():
    async def down():
        raise APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))

    with pytest.raises(APIConnectionError):
        await _retry_anthropic(down, max_attempts=2, base_delay=0)
