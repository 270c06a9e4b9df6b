import json

import httpx
import openai
import pytest

from conftest import openai_response
from fitplan.api.api_ai import PlanGenerationClient, PlanSuggestionClient, parse_json_payload
from fitplan.domain.Candidate import ConversationTurn
from fitplan.utilities.errors import GenerationFailure, TransportFailure, ValidationError

WORKOUT = {
    "planName": "30 Minute Beginner HIIT",
    "planDescription": "A gentle introduction to intervals.",
    "category": "HIIT",
    "difficulty": "Beginner",
    "duration": "30 minutes",
    "exercises": [
        {"name": "Jumping Jacks", "details": "3 sets of 30 seconds"},
        {"name": "Squats", "details": "3 sets of 12 reps"},
    ],
}


class FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeOpenAI:
    def __init__(self, result):
        self.completions = FakeCompletions(result)
        self.chat = self

    @property
    def calls(self):
        return self.completions.calls


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", ["", "   \n"])
async def test_empty_prompt_rejected_before_any_call(prompt):
    fake = FakeOpenAI(openai_response(json.dumps(WORKOUT)))
    client = PlanGenerationClient("workout", client=fake)
    with pytest.raises(ValidationError):
        await client.generate(prompt)
    assert fake.calls == []


@pytest.mark.asyncio
async def test_generate_workout_candidate():
    fake = FakeOpenAI(openai_response(json.dumps(WORKOUT)))
    client = PlanGenerationClient("workout", client=fake, model="test-model")

    candidate = await client.generate("  30 min beginner HIIT ")

    assert candidate.kind == "workout"
    assert candidate.plan_name == "30 Minute Beginner HIIT"
    assert [item.name for item in candidate.line_items] == ["Jumping Jacks", "Squats"]
    call = fake.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][-1] == {"role": "user", "content": "30 min beginner HIIT"}


@pytest.mark.asyncio
async def test_generate_diet_candidate_from_fenced_output():
    diet = {
        "name": "Vegan Reset",
        "description": "Plant based week.",
        "category": "Vegan",
        "instructions": "Breakfast: Tofu scramble\nLunch: Lentil soup\nDinner: Chickpea curry",
        "caloriesPerDay": "1800 kcal",
    }
    content = "Here is your plan:\n```json\n" + json.dumps(diet) + "\n```"
    client = PlanGenerationClient("diet", client=FakeOpenAI(openai_response(content)))

    candidate = await client.generate("vegan week")

    assert len(candidate.line_items) == 3
    assert candidate.metadata == {"caloriesPerDay": "1800 kcal"}


@pytest.mark.asyncio
async def test_history_is_sent_as_context():
    fake = FakeOpenAI(openai_response(json.dumps(WORKOUT)))
    client = PlanGenerationClient("workout", client=fake)
    history = [ConversationTurn("user", "beginner HIIT"), ConversationTurn("model", json.dumps(WORKOUT))]

    await client.generate("make it harder", history)

    roles = [m["role"] for m in fake.calls[0]["messages"]]
    assert roles == ["system", "user", "assistant", "user"]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    json.dumps({"planName": "Incomplete"}),
    json.dumps(dict(WORKOUT, exercises=[])),
    json.dumps(dict(WORKOUT, category="Yoga")),
    "I cannot help with that.",
    "",
])
async def test_invalid_output_is_generation_failure(content):
    client = PlanGenerationClient("workout", client=FakeOpenAI(openai_response(content)))
    with pytest.raises(GenerationFailure):
        await client.generate("anything")


@pytest.mark.asyncio
async def test_refusal_is_generation_failure():
    client = PlanGenerationClient("workout", client=FakeOpenAI(openai_response(None, refusal="Not allowed")))
    with pytest.raises(GenerationFailure):
        await client.generate("anything")


@pytest.mark.asyncio
async def test_connection_error_is_transport_failure():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    client = PlanGenerationClient("workout", client=FakeOpenAI(error))
    with pytest.raises(TransportFailure):
        await client.generate("anything")


@pytest.mark.asyncio
async def test_unconfigured_client_is_transport_failure(monkeypatch):
    monkeypatch.setattr("fitplan.api.api_ai.OPENAI_API_KEY", None)
    client = PlanGenerationClient("workout")
    with pytest.raises(TransportFailure):
        await client.generate("anything")


def test_parse_json_payload_tolerates_noise():
    assert parse_json_payload('{"a": 1}') == {"a": 1}
    assert parse_json_payload('```json\n{"a": [1, 2,],}\n```') == {"a": [1, 2]}
    assert parse_json_payload('Sure! {"a": "x}y", "b": {"c": "\\"q\\""}} Enjoy.') == {"a": "x}y", "b": {"c": '"q"'}}
    assert parse_json_payload("no json here") is None


VEGAN_DIET = {
    "name": "Vegan Reset",
    "description": "Plant based week.",
    "category": "Vegan",
    "instructions": "Breakfast: Oats\nDinner: Lentil curry",
    "protein": "90g",
}
STRENGTH_WORKOUT = {
    "name": "Upper Body Strength",
    "description": "Push and pull.",
    "category": "Strength Training",
    "instructions": "Push-ups: 3 sets of 12 reps\nPull-ups: 3 sets of 6 reps\n\nCool down",
    "difficulty": "Intermediate",
}


@pytest.mark.asyncio
async def test_detected_diet_becomes_diet_candidate():
    fake = FakeOpenAI(openai_response(json.dumps({"planType": "diet", "diet": VEGAN_DIET})))
    client = PlanSuggestionClient(client=fake, model="test-model")

    candidate = await client.generate(" a vegan week ")

    assert candidate.kind == "diet"
    assert [item.name for item in candidate.line_items] == ["Breakfast: Oats", "Dinner: Lentil curry"]
    assert candidate.metadata == {"protein": "90g"}
    messages = fake.calls[0]["messages"]
    assert '"planType"' in messages[0]["content"]
    assert messages[-1] == {"role": "user", "content": "a vegan week"}


@pytest.mark.asyncio
async def test_detected_workout_lines_are_split_into_items():
    fake = FakeOpenAI(openai_response(json.dumps({"planType": "workout", "workout": STRENGTH_WORKOUT})))

    candidate = await PlanSuggestionClient(client=fake).generate("upper body")

    assert candidate.kind == "workout"
    assert candidate.line_items[0].name == "Push-ups"
    assert candidate.line_items[0].details == "3 sets of 12 reps"
    assert candidate.line_items[-1].name == "Cool down"
    assert candidate.metadata == {"difficulty": "Intermediate"}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"planType": "diet", "workout": STRENGTH_WORKOUT},
    {"planType": "yoga", "workout": STRENGTH_WORKOUT},
    {"planType": "workout", "workout": dict(STRENGTH_WORKOUT, instructions=" \n ")},
])
async def test_plan_type_mismatch_is_generation_failure(payload):
    client = PlanSuggestionClient(client=FakeOpenAI(openai_response(json.dumps(payload))))
    with pytest.raises(GenerationFailure):
        await client.generate("anything")


@pytest.mark.asyncio
async def test_suggestions_of_detected_kind():
    payload = {"planType": "workout", "workouts": [STRENGTH_WORKOUT, dict(STRENGTH_WORKOUT, name="Leg Day")],
               "diets": [VEGAN_DIET]}
    fake = FakeOpenAI(openai_response(json.dumps(payload)))

    suggestions = await PlanSuggestionClient(client=fake, count=2).suggest("strength plans")

    assert [s.plan_name for s in suggestions] == ["Upper Body Strength", "Leg Day"]
    assert {s.kind for s in suggestions} == {"workout"}
    assert "suggest 2 distinct" in fake.calls[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_empty_suggestion_list_is_generation_failure():
    fake = FakeOpenAI(openai_response(json.dumps({"planType": "diet", "diets": []})))
    with pytest.raises(GenerationFailure):
        await PlanSuggestionClient(client=fake).suggest("vegan")


@pytest.mark.asyncio
async def test_suggestion_client_checks_prompt_and_configuration(monkeypatch):
    fake = FakeOpenAI(openai_response("{}"))
    with pytest.raises(ValidationError):
        await PlanSuggestionClient(client=fake).suggest("  ")
    assert fake.calls == []

    monkeypatch.setattr("fitplan.api.api_ai.OPENAI_API_KEY", None)
    with pytest.raises(TransportFailure):
        await PlanSuggestionClient().generate("anything")
