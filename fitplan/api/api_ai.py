import re
import json
import logging
from json import JSONDecodeError
from typing import Any, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError as SchemaError
from fastapi import APIRouter, Depends

from fitplan.api.dependencies import get_session, plan_kind
from fitplan.domain.Candidate import ConversationTurn, GeneratedPlanCandidate, MODEL_ROLE
from fitplan.logic.session import PlanSession
from fitplan.utilities.config import OPENAI_API_KEY, OPENAI_MODEL
from fitplan.utilities.constants import (
    WORKOUT, DIET, WORKOUT_PROMPT_TEMPLATE, WORKOUT_JSON_FORMAT, DIET_PROMPT_TEMPLATE, DIET_JSON_FORMAT,
    PLAN_TYPE_PROMPT_TEMPLATE, PLAN_TYPE_JSON_FORMAT, SUGGESTIONS_PROMPT_TEMPLATE, SUGGESTIONS_JSON_FORMAT,
    SUGGESTION_COUNT,
)
from fitplan.utilities.errors import GenerationFailure, TransportFailure, ValidationError
from fitplan.utilities.validators import (
    DietCandidateSchema, GenerateInput, PlanTypeOutputSchema, PromptInput, SuggestionsOutputSchema,
    WorkoutCandidateSchema,
)

logger = logging.getLogger(__name__)


# === Helper: Get OpenAI Client ===
def _get_openai_client() -> Optional[AsyncOpenAI]:
    """Return an async OpenAI client if OPENAI_API_KEY is set, otherwise None."""
    if not OPENAI_API_KEY:
        return None
    return AsyncOpenAI(api_key=OPENAI_API_KEY)


_SCHEMAS = {
    WORKOUT: (WorkoutCandidateSchema, WORKOUT_PROMPT_TEMPLATE + WORKOUT_JSON_FORMAT,
              GeneratedPlanCandidate.from_workout_schema),
    DIET: (DietCandidateSchema, DIET_PROMPT_TEMPLATE + DIET_JSON_FORMAT,
           GeneratedPlanCandidate.from_diet_schema),
}


# === Plan Generation ===
class PlanGenerationClient:
    """Turns a prompt (plus earlier turns) into a schema-checked plan candidate.

    Every call is independent: no caching and no retries. Transport problems raise
    TransportFailure; output that is not a valid plan raises GenerationFailure.
    """

    def __init__(self, kind: str, client: Optional[Any] = None, model: str = OPENAI_MODEL):
        if kind not in _SCHEMAS:
            raise ValidationError(f"Unknown plan kind: '{kind}'")
        self.kind = kind
        self.model = model
        self._client = client if client is not None else _get_openai_client()

    def build_messages(self, prompt: str, history: Optional[List[ConversationTurn]] = None) -> List[dict]:
        _, instructions, _ = _SCHEMAS[self.kind]
        messages = [{"role": "system", "content": instructions.strip()}]
        for turn in history or []:
            role = "assistant" if turn.role == MODEL_ROLE else "user"
            messages.append({"role": role, "content": turn.content})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str, history: Optional[List[ConversationTurn]] = None) -> GeneratedPlanCandidate:
        prompt = _check_prompt(prompt)
        content = await _complete_json(self._client, self.model, self.build_messages(prompt, history),
                                       f"{self.kind} plan")
        return self.parse(content)

    def parse(self, content: str) -> GeneratedPlanCandidate:
        """Validate raw model output against the plan schema."""
        schema, _, factory = _SCHEMAS[self.kind]
        return factory(_validate_payload(content, schema, f"{self.kind} plan"))


class PlanSuggestionClient:
    """Prompts where the service decides the plan type itself.

    generate() returns one candidate of the detected kind; suggest() returns several
    whole plans of one kind for the user to pick from.
    """

    def __init__(self, client: Optional[Any] = None, model: str = OPENAI_MODEL, count: int = SUGGESTION_COUNT):
        self.model = model
        self.count = count
        self._client = client if client is not None else _get_openai_client()

    async def generate(self, prompt: str) -> GeneratedPlanCandidate:
        prompt = _check_prompt(prompt)
        messages = [{"role": "system", "content": (PLAN_TYPE_PROMPT_TEMPLATE + PLAN_TYPE_JSON_FORMAT).strip()},
                    {"role": "user", "content": prompt}]
        content = await _complete_json(self._client, self.model, messages, "plan")
        return self.parse_plan(content)

    async def suggest(self, prompt: str) -> List[GeneratedPlanCandidate]:
        prompt = _check_prompt(prompt)
        instructions = SUGGESTIONS_PROMPT_TEMPLATE.format(count=self.count) + SUGGESTIONS_JSON_FORMAT
        messages = [{"role": "system", "content": instructions.strip()},
                    {"role": "user", "content": prompt}]
        content = await _complete_json(self._client, self.model, messages, "plan suggestions")
        return self.parse_suggestions(content)

    def parse_plan(self, content: str) -> GeneratedPlanCandidate:
        data = _validate_payload(content, PlanTypeOutputSchema, "plan")
        if data.planType == WORKOUT:
            return GeneratedPlanCandidate.from_workout_suggestion(data.workout)
        return GeneratedPlanCandidate.from_diet_schema(data.diet)

    def parse_suggestions(self, content: str) -> List[GeneratedPlanCandidate]:
        data = _validate_payload(content, SuggestionsOutputSchema, "plan suggestions")
        factory = (GeneratedPlanCandidate.from_workout_suggestion if data.planType == WORKOUT
                   else GeneratedPlanCandidate.from_diet_schema)
        return [factory(plan) for plan in data.plans()]


def _check_prompt(prompt: str) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Prompt cannot be empty")
    return prompt.strip()


# === OpenAI Call ===
async def _complete_json(client: Optional[Any], model: str, messages: List[dict], what: str) -> str:
    """Run one JSON-mode chat completion and return the raw answer text."""
    if client is None:
        logger.warning("OPENAI_API_KEY not set - cannot generate %s.", what)
        raise TransportFailure("The plan generation service is not configured")
    try:
        response = await client.chat.completions.create(
            model=model,
            response_format={"type": "json_object"},
            messages=messages,
        )
    except openai.APIConnectionError as e:
        logger.error("Plan generation service unreachable: %s", e)
        raise TransportFailure(f"Plan generation service unreachable: {e}") from e
    except openai.APIStatusError as e:
        logger.error("Plan generation service returned %s", e.status_code)
        raise TransportFailure(f"Plan generation service returned {e.status_code}") from e

    message = response.choices[0].message if response.choices else None
    if message is None:
        raise GenerationFailure("The AI returned no answer")
    refusal = getattr(message, "refusal", None)
    if refusal:
        raise GenerationFailure(f"The AI could not create this plan: {refusal}")
    content = (message.content or "").strip()
    if not content:
        logger.warning("AI returned empty %s data", what)
        raise GenerationFailure("The AI returned an empty plan")
    return content


def _validate_payload(content: str, schema, what: str):
    data = parse_json_payload(content)
    if data is None:
        logger.error("AI output is not valid JSON and no JSON substring found")
        raise GenerationFailure("The AI answer was not a readable plan")
    try:
        return schema.model_validate(data)
    except SchemaError as e:
        logger.error("AI output does not match the %s schema: %s", what, e)
        raise GenerationFailure(f"The AI answer did not match the {what} format") from e


# === JSON Parsing ===
def parse_json_payload(text: str) -> Optional[Any]:
    """Decode model output, tolerating code fences, trailing commas and surrounding prose."""
    try:
        return json.loads(text)
    except JSONDecodeError:
        pass
    cleaned = _remove_trailing_commas(_strip_code_fences(text))
    candidate = _extract_json_by_balancing(cleaned)
    for attempt in (cleaned, candidate):
        if not attempt:
            continue
        try:
            return json.loads(_remove_trailing_commas(attempt))
        except JSONDecodeError:
            continue
    return None


# === Text Cleaning Helpers ===
def _strip_code_fences(text: str) -> str:
    """Remove common markdown code fences and leading/trailing whitespace."""
    text = re.sub(r"```(?:json)?\n(.*?)```", r"\1", text, flags=re.S)
    text = re.sub(r"^```|```$", "", text)
    return text.strip()


def _remove_trailing_commas(text: str) -> str:
    """Remove trailing commas before a closing brace/bracket."""
    return re.sub(r",\s*(\}|\])", r"\1", text)


def _extract_json_by_balancing(text: str) -> Optional[str]:
    """Extract the first JSON object/array by balancing braces/brackets."""
    start = None
    stack = []
    in_string = False
    escape = False

    for i, ch in enumerate(text):
        if escape:
            escape = False
            continue
        if in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            if start is None:
                start = i
            stack.append(ch)
        elif ch in "}]":
            if not stack:
                continue
            opening = stack.pop()
            if (opening == "{") != (ch == "}"):
                return None
            if not stack and start is not None:
                return text[start:i + 1]
    return None


# === FastAPI Endpoints ===
router = APIRouter(prefix="/api/ai")


@router.post("/generate")
async def generate_any_plan_ai(body: PromptInput, session: PlanSession = Depends(get_session)):
    """The service decides whether the prompt asks for a workout or a diet."""
    candidate = await session.generate_any(body.prompt)
    if candidate is None:
        return {"status": "stale", "kind": None, "editor": None}
    return {"status": "ready", "kind": candidate.kind, "editor": session.editor(candidate.kind).to_dict()}


@router.post("/suggestions")
async def generate_suggestions(body: PromptInput, session: PlanSession = Depends(get_session)):
    suggestions = await session.suggest(body.prompt)
    return {"status": "stale" if suggestions is None else "ready", "suggestions": session.suggestions.to_dict()}


@router.get("/suggestions")
async def get_suggestions(session: PlanSession = Depends(get_session)):
    return session.suggestions.to_dict()


@router.post("/suggestions/commit")
async def commit_suggestions(session: PlanSession = Depends(get_session)):
    plans = await session.commit_suggestions()
    return {"status": "success", "plans": [plan.to_dict() for plan in plans]}


@router.post("/suggestions/{index}/toggle")
async def toggle_suggestion(index: int, session: PlanSession = Depends(get_session)):
    selected = session.suggestions.toggle(index)
    return {"index": index, "selected": selected, "suggestions": session.suggestions.to_dict()}


@router.post("/suggestions/{index}/review")
async def review_suggestion(index: int, session: PlanSession = Depends(get_session)):
    return session.review_suggestion(index).to_dict()


@router.delete("/suggestions")
async def discard_suggestions(session: PlanSession = Depends(get_session)):
    session.suggestions.clear()
    return {"status": "success"}


@router.post("/{kind}/generate")
async def generate_plan_ai(body: GenerateInput, kind: str = Depends(plan_kind),
                           session: PlanSession = Depends(get_session)):
    candidate = await session.generate(kind, body.prompt, follow_up=body.follow_up)
    if candidate is None:
        # A newer request was issued meanwhile; its response owns the editor
        return {"status": "stale", "editor": session.editor(kind).to_dict()}
    return {"status": "ready", "editor": session.editor(kind).to_dict()}


@router.get("/{kind}/candidate")
async def get_candidate(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    return session.editor(kind).to_dict()


@router.post("/{kind}/candidate/{index}/toggle")
async def toggle_candidate_item(index: int, kind: str = Depends(plan_kind),
                                session: PlanSession = Depends(get_session)):
    editor = session.editor(kind)
    included = editor.toggle_include(index)
    return {"index": index, "included": included, "editor": editor.to_dict()}


@router.post("/{kind}/candidate/commit")
async def commit_candidate(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    plan = await session.editor(kind).commit()
    return {"status": "success", "plan": plan.to_dict()}


@router.post("/{kind}/edit/{plan_id}")
async def edit_existing_plan(plan_id: str, kind: str = Depends(plan_kind),
                             session: PlanSession = Depends(get_session)):
    editor = session.editor(kind)
    editor.begin_update(plan_id)
    return editor.to_dict()


@router.delete("/{kind}/candidate")
async def discard_candidate(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    session.editor(kind).clear()
    return {"status": "success"}
