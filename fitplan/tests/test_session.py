import asyncio

import pytest

from conftest import FakeGenerator
from fitplan.domain.Candidate import GeneratedPlanCandidate, LineItem
from fitplan.domain.User import User
from fitplan.logic.session import PlanSession
from fitplan.utilities.errors import GenerationFailure, ValidationError


def candidate(name, kind="workout", n=2):
    return GeneratedPlanCandidate(kind, name, "", "HIIT", [LineItem(f"Step {i}") for i in range(n)])


def make_session(cache, seed_file, workout=None, diet=None, **kwargs):
    generators = {"workout": workout or FakeGenerator(), "diet": diet or FakeGenerator()}
    return PlanSession(cache, generators, seed_file=seed_file, **kwargs)


class GatedGenerator:
    """First call blocks until released; later calls answer immediately."""

    def __init__(self, first, second):
        self.results = [first, second]
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.count = 0

    async def generate(self, prompt, history=None):
        self.count += 1
        result = self.results[self.count - 1]
        if self.count == 1:
            self.entered.set()
            await self.gate.wait()
        return result


@pytest.mark.asyncio
async def test_start_loads_both_kinds(cache, seed_file):
    session = make_session(cache, seed_file)
    await session.start()
    assert [p.id for p in session.store("workout").list()] == ["plan1", "plan2"]
    assert [p.id for p in session.store("diet").list()] == ["diet1"]
    assert not session.loading
    with pytest.raises(ValidationError):
        session.store("yoga")


@pytest.mark.asyncio
async def test_generate_hands_candidate_to_editor(cache, seed_file):
    session = make_session(cache, seed_file, workout=FakeGenerator(candidate("First"), candidate("Second")))
    await session.start()

    await session.generate("workout", "beginner HIIT")
    editor = session.editor("workout")
    assert editor.candidate.plan_name == "First"
    assert [t.role for t in editor.history()] == ["user", "model"]

    # Follow-up sends the conversation so far
    await session.generate("workout", "make it harder", follow_up=True)
    _, history = session.generators["workout"].calls[1]
    assert [t.content for t in history][0] == "beginner HIIT"
    assert len(editor.history()) == 4

    # A fresh request starts a new conversation
    session.generators["workout"].candidates.append(candidate("Third"))
    await session.generate("workout", "something else")
    assert session.generators["workout"].calls[2][1] is None
    assert len(editor.history()) == 2


@pytest.mark.asyncio
async def test_stale_response_is_discarded(cache, seed_file):
    gated = GatedGenerator(candidate("Slow"), candidate("Fast"))
    session = make_session(cache, seed_file, workout=gated)
    await session.start()

    slow = asyncio.create_task(session.generate("workout", "first prompt"))
    await gated.entered.wait()
    fast = await session.generate("workout", "second prompt")
    gated.gate.set()
    stale = await slow

    assert stale is None
    assert fast.plan_name == "Fast"
    assert session.editor("workout").candidate.plan_name == "Fast"


@pytest.mark.asyncio
async def test_empty_prompt_does_not_supersede_pending_request(cache, seed_file):
    gated = GatedGenerator(candidate("Slow"), candidate("Unused"))
    session = make_session(cache, seed_file, workout=gated)

    slow = asyncio.create_task(session.generate("workout", "first prompt"))
    await gated.entered.wait()
    with pytest.raises(ValidationError):
        await session.generate("workout", "  ")
    gated.gate.set()

    assert (await slow).plan_name == "Slow"


@pytest.mark.asyncio
async def test_generation_failure_is_published(cache, seed_file):
    session = make_session(cache, seed_file, diet=FakeGenerator(GenerationFailure("bad output")))
    with pytest.raises(GenerationFailure):
        await session.generate("diet", "vegan week")
    events = session.notifications.get_events()["events"]
    assert events[-1]["type"] == "generation.failed"
    assert events[-1]["reason"] == "generation"
    assert events[-1]["level"] == "error"


@pytest.mark.asyncio
async def test_identity_change_resets_editors_and_favorites(cache, seed_file):
    session = make_session(cache, seed_file, workout=FakeGenerator(candidate("Draft")))
    await session.start()
    await session.toggle_favorite("workout", "plan1")
    await session.generate("workout", "beginner HIIT")

    await session.sign_in(User("alice", "alice@example.com"))

    assert session.editor("workout").candidate is None
    assert session.favorite_plans("workout") == []
    await session.toggle_favorite("workout", "plan2")
    assert [p.id for p in session.favorite_plans("workout")] == ["plan2"]

    await session.sign_out()
    assert [p.id for p in session.favorite_plans("workout")] == ["plan1"]
    types = [e["type"] for e in session.notifications.get_events()["events"]]
    assert types.count("session.changed") == 2


@pytest.mark.asyncio
async def test_delete_clears_favorite_through_session(cache, seed_file):
    session = make_session(cache, seed_file)
    await session.start()
    await session.toggle_favorite("diet", "diet1")

    await session.store("diet").delete("diet1")

    assert not session.ledger("diet").is_favorite("diet1")
    assert session.favorite_plans("diet") == []
