"""Plan session: the state owned by one signed-in (or anonymous) user context.

Created at session start and handed to whoever needs it; nothing here is a
module-level singleton. Owns, per plan kind, a PlanStore, a FavoritesLedger and a
SelectiveMergeEditor, plus the generation clients and the session's EventBus. One
SuggestionPicker holds multi-plan suggestions, whose kind the service decides.
"""
from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from fitplan.domain.Candidate import GeneratedPlanCandidate
from fitplan.domain.Plan import Plan
from fitplan.domain.User import User
from fitplan.events.Event_Bus import EventBus
from fitplan.events.event_helpers import publish_generation_failed, publish_session_changed
from fitplan.events.web_observers import NotificationFeed
from fitplan.infra.Document_Store import DocumentStore
from fitplan.infra.Local_Cache import LocalCache
from fitplan.infra.Plan_Repository import PlanStore
from fitplan.infra.paths import SEED_FILE
from fitplan.logic.editor.selective_merge import SelectiveMergeEditor
from fitplan.logic.editor.suggestions import SuggestionPicker
from fitplan.logic.favorites.ledger import FavoritesLedger
from fitplan.utilities.config import NOTIFICATION_BUFFER
from fitplan.utilities.constants import AUTO, PLAN_KINDS
from fitplan.utilities.errors import GenerationFailure, TransportFailure, ValidationError

if TYPE_CHECKING:
    from fitplan.api.api_ai import PlanGenerationClient, PlanSuggestionClient

logger = logging.getLogger(__name__)

__all__ = ["PlanSession"]


class PlanSession:
    def __init__(self, cache: LocalCache, generators: Dict[str, "PlanGenerationClient"],
                 document_store: Optional[DocumentStore] = None, event_bus: Optional[EventBus] = None,
                 local_kinds=(), seed_file=SEED_FILE, suggester: Optional["PlanSuggestionClient"] = None):
        """
        Args:
            cache: local durable cache (anonymous favorites)
            generators: one generation client per plan kind
            document_store: remote store; None keeps every collection local-only
            local_kinds: plan kinds kept local-only even when a document store is given
            suggester: client for prompts whose plan type the service detects
        """
        self.bus = event_bus or EventBus()
        self.notifications = NotificationFeed(NOTIFICATION_BUFFER).attach(self.bus)
        self.document_store = document_store
        self.user: Optional[User] = None
        self.stores: Dict[str, PlanStore] = {}
        self.ledgers: Dict[str, FavoritesLedger] = {}
        self.editors: Dict[str, SelectiveMergeEditor] = {}
        self.generators = dict(generators)
        self.suggester = suggester
        self.suggestions = SuggestionPicker()
        self._generation_seq: Dict[str, int] = {}
        self._suggestion_seq = 0
        for kind in PLAN_KINDS:
            remote = None if kind in local_kinds else document_store
            store = PlanStore(kind, remote, self.bus, seed_file=seed_file)
            ledger = FavoritesLedger(kind, cache, document_store, self.bus)
            store.register_ledger(ledger)
            self.stores[kind] = store
            self.ledgers[kind] = ledger
            self.editors[kind] = SelectiveMergeEditor(store)
            self._generation_seq[kind] = 0

    def _check_kind(self, kind: str) -> str:
        if kind not in self.stores:
            raise ValidationError(f"Unknown plan kind: '{kind}'")
        return kind

    def store(self, kind: str) -> PlanStore:
        return self.stores[self._check_kind(kind)]

    def ledger(self, kind: str) -> FavoritesLedger:
        return self.ledgers[self._check_kind(kind)]

    def editor(self, kind: str) -> SelectiveMergeEditor:
        return self.editors[self._check_kind(kind)]

    @property
    def loading(self) -> bool:
        return any(s.loading for s in self.stores.values()) or any(l.loading for l in self.ledgers.values())

    # --- lifecycle ----------------------------------------------------------
    async def start(self) -> None:
        """Load both plan collections and the current identity's favorites."""
        for kind in PLAN_KINDS:
            await self.stores[kind].load()
            await self.ledgers[kind].load(self.user)

    async def sign_in(self, user: User) -> None:
        await self._change_identity(user)

    async def sign_out(self) -> None:
        await self._change_identity(None)

    async def _change_identity(self, user: Optional[User]) -> None:
        previous, self.user = self.user, user
        if previous == user:
            return
        logger.info("Session identity changed: %s -> %s",
                    getattr(previous, "id", "anonymous"), getattr(user, "id", "anonymous"))
        for kind in PLAN_KINDS:
            # Candidates and conversation belong to the previous identity
            self.editors[kind].clear()
            self._generation_seq[kind] += 1
        self.suggestions.clear()
        self._suggestion_seq += 1
        publish_session_changed(self.bus, user)
        for kind in PLAN_KINDS:
            await self.ledgers[kind].load(user)

    async def close(self) -> None:
        if self.document_store is not None:
            await self.document_store.aclose()

    # --- favorites ----------------------------------------------------------
    async def toggle_favorite(self, kind: str, plan_id: str) -> bool:
        return await self.ledger(kind).toggle(plan_id)

    def favorite_plans(self, kind: str) -> List[Plan]:
        return self.store(kind).favorite_plans(self.ledger(kind))

    # --- generation ---------------------------------------------------------
    async def generate(self, kind: str, prompt: str, follow_up: bool = False) -> Optional[GeneratedPlanCandidate]:
        """Request a candidate and hand it to the editor.

        Each request gets a sequence number; a response that arrives after a newer
        request for the same kind was issued is discarded and None is returned.
        """
        editor = self.editor(kind)
        generator = self.generators[kind]
        _check_prompt(prompt)
        history = editor.history() if (follow_up or editor.target_plan_id is not None) else None
        self._generation_seq[kind] += 1
        seq = self._generation_seq[kind]
        try:
            candidate = await generator.generate(prompt, history)
        except (GenerationFailure, TransportFailure) as e:
            if seq == self._generation_seq[kind]:
                publish_generation_failed(self.bus, kind, e, _failure_reason(e))
                raise
            logger.info("Ignoring failure of superseded %s generation request #%d: %s", kind, seq, e)
            return None
        if seq != self._generation_seq[kind]:
            logger.info("Discarding stale %s generation response #%d (latest #%d)",
                        kind, seq, self._generation_seq[kind])
            return None
        if history is None:
            editor.start_conversation()
        editor.receive(candidate, prompt.strip())
        return candidate

    # --- plan type detection and suggestions --------------------------------
    def _require_suggester(self) -> "PlanSuggestionClient":
        if self.suggester is None:
            raise TransportFailure("Plan type detection is not configured")
        return self.suggester

    async def generate_any(self, prompt: str) -> Optional[GeneratedPlanCandidate]:
        """Let the service pick workout or diet, then hand the candidate to that kind's editor.

        The request supersedes pending requests of both kinds. Its response is
        discarded (None) when a newer request for the kind it lands in was issued.
        """
        _check_prompt(prompt)
        suggester = self._require_suggester()
        for kind in PLAN_KINDS:
            self._generation_seq[kind] += 1
        issued = dict(self._generation_seq)
        try:
            candidate = await suggester.generate(prompt)
        except (GenerationFailure, TransportFailure) as e:
            if any(issued[kind] == self._generation_seq[kind] for kind in PLAN_KINDS):
                publish_generation_failed(self.bus, AUTO, e, _failure_reason(e))
                raise
            logger.info("Ignoring failure of superseded plan request: %s", e)
            return None
        if issued[candidate.kind] != self._generation_seq[candidate.kind]:
            logger.info("Discarding stale %s plan response", candidate.kind)
            return None
        editor = self.editors[candidate.kind]
        editor.clear()
        editor.receive(candidate, prompt.strip())
        return candidate

    async def suggest(self, prompt: str) -> Optional[List[GeneratedPlanCandidate]]:
        """Replace the suggestions with several plans of the kind the service detected."""
        _check_prompt(prompt)
        suggester = self._require_suggester()
        self._suggestion_seq += 1
        seq = self._suggestion_seq
        self.suggestions.clear()
        try:
            suggestions = await suggester.suggest(prompt)
        except (GenerationFailure, TransportFailure) as e:
            if seq == self._suggestion_seq:
                publish_generation_failed(self.bus, AUTO, e, _failure_reason(e))
                raise
            logger.info("Ignoring failure of superseded suggestion request #%d: %s", seq, e)
            return None
        if seq != self._suggestion_seq:
            logger.info("Discarding stale suggestions #%d (latest #%d)", seq, self._suggestion_seq)
            return None
        self.suggestions.receive(suggestions, prompt.strip())
        return suggestions

    async def commit_suggestions(self) -> List[Plan]:
        return await self.suggestions.commit(self.stores)

    def review_suggestion(self, index: int) -> SelectiveMergeEditor:
        """Open one suggestion in its kind's editor for item-by-item review."""
        suggestion = self.suggestions.get(index)
        editor = self.editors[suggestion.kind]
        # a pending generation for this kind must not replace the opened suggestion
        self._generation_seq[suggestion.kind] += 1
        editor.clear()
        editor.receive(suggestion, self.suggestions.prompt)
        return editor


def _check_prompt(prompt: str) -> None:
    if not isinstance(prompt, str) or not prompt.strip():
        # rejected before it can supersede a pending request
        raise ValidationError("Prompt cannot be empty")


def _failure_reason(error: Exception) -> str:
    return "generation" if isinstance(error, GenerationFailure) else "transport"
