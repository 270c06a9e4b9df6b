import json
from types import SimpleNamespace

import pytest

from fitplan.events.Event_Bus import EventBus
from fitplan.infra.Document_Store import JsonFileDocumentStore
from fitplan.infra.Local_Cache import LocalCache
from fitplan.utilities.errors import TransportFailure


class FlakyDocumentStore(JsonFileDocumentStore):
    """File-backed document store whose writes can be made to fail per operation."""

    def __init__(self, path):
        super().__init__(path)
        self.fail = set()
        self.calls = []

    def _check(self, operation, collection):
        self.calls.append((operation, collection))
        if operation in self.fail:
            raise TransportFailure(f"simulated {operation} failure on {collection}")

    async def create(self, collection, data):
        self._check("create", collection)
        return await super().create(collection, data)

    async def read_all(self, collection):
        self._check("read_all", collection)
        return await super().read_all(collection)

    async def get(self, collection, key):
        self._check("get", collection)
        return await super().get(collection, key)

    async def update(self, collection, key, fields, merge=True):
        self._check("update", collection)
        await super().update(collection, key, fields, merge=merge)

    async def delete(self, collection, key):
        self._check("delete", collection)
        await super().delete(collection, key)


class FakeGenerator:
    """Stands in for PlanGenerationClient; returns queued candidates."""

    def __init__(self, *candidates):
        self.candidates = list(candidates)
        self.calls = []

    async def generate(self, prompt, history=None):
        self.calls.append((prompt, list(history) if history is not None else None))
        result = self.candidates.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeSuggester:
    """Stands in for PlanSuggestionClient; answers from queued results."""

    def __init__(self, plans=(), suggestions=()):
        self.plans = list(plans)
        self.suggestions = list(suggestions)
        self.calls = []

    async def generate(self, prompt):
        self.calls.append(("generate", prompt))
        return _answer(self.plans.pop(0))

    async def suggest(self, prompt):
        self.calls.append(("suggest", prompt))
        return _answer(self.suggestions.pop(0))


def _answer(result):
    if isinstance(result, Exception):
        raise result
    return result


class EventRecorder:
    def __init__(self, bus):
        self.events = []
        for name in ("plan.added", "plan.updated", "plan.deleted", "favorite.toggled",
                     "sync.failed", "generation.failed", "session.changed"):
            bus.subscribe(name, self)

    def __call__(self, event_name, payload):
        self.events.append((event_name, payload))

    def names(self):
        return [name for name, _ in self.events]


def openai_response(content, refusal=None):
    """Minimal object shaped like a chat completion."""
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({
        "categories": [
            {"id": "strength", "name": "Strength Training", "imageUrl": ""},
            {"id": "hiit", "name": "HIIT", "imageUrl": ""},
        ],
        "dietCategories": [
            {"id": "vegan", "name": "Vegan", "imageUrl": ""},
        ],
        "workoutPlans": [
            {"id": "plan1", "name": "Full Body Blast", "description": "", "category": "strength",
             "instructions": ["Squats: 3 sets of 10-12 reps."], "imageUrl": "",
             "duration": "60 minutes", "difficulty": "Intermediate"},
            {"id": "plan2", "name": "HIIT Power Intervals", "description": "", "category": "hiit",
             "instructions": ["Sprint in place: 30 seconds."], "imageUrl": ""},
        ],
        "dietPlans": [
            {"id": "diet1", "name": "Vegan Weight Management", "description": "", "category": "vegan",
             "instructions": ["Breakfast: Tofu scramble."], "imageUrl": "", "protein": "70-90g"},
        ],
    }), encoding="utf-8")
    return path


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache.json")


@pytest.fixture
def remote(tmp_path):
    return FlakyDocumentStore(tmp_path / "documents.json")
