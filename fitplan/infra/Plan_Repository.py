import json
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

from fitplan.domain.Category import Category
from fitplan.domain.Plan import Plan, plan_class
from fitplan.events.Event_Bus import EventBus
from fitplan.events.event_helpers import (
    publish_plan_added, publish_plan_updated, publish_plan_deleted, publish_sync_failed,
)
from fitplan.infra.Document_Store import DocumentStore
from fitplan.infra.paths import SEED_FILE
from fitplan.utilities.constants import PLAN_COLLECTIONS, CATEGORY_COLLECTIONS, PLACEHOLDER_IMAGE_URL
from fitplan.utilities.errors import NotFound, StoreWriteFailure, TransportFailure, ValidationError

logger = logging.getLogger(__name__)


def placeholder_image_url(name: str) -> str:
    # Same escaping as encodeURIComponent, so "Leg Day" -> "Leg%20Day"
    return PLACEHOLDER_IMAGE_URL.format(text=quote(name, safe="!~*'()"))


def read_seed(kind: str, seed_file=SEED_FILE) -> Tuple[List[dict], List[dict]]:
    """Plans and categories of one kind from the built-in catalogue."""
    try:
        with open(seed_file, "r", encoding="utf-8") as f:
            seed = json.load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Seed file not found: {seed_file}. Starting with an empty catalogue.")
        return [], []
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in seed file: {e}")
        return [], []
    return seed.get(PLAN_COLLECTIONS[kind], []), seed.get(CATEGORY_COLLECTIONS[kind], [])


class PlanStore:
    """Plans and categories of one kind (workout or diet).

    Local state is updated as part of every mutation, so reads in the same
    session see the write immediately. Remote write policy: when the document
    store rejects a write, the local change is rolled back with its paired
    inverse and StoreWriteFailure is raised. Without a document store the
    collection is local-only, seeded from the built-in catalogue, and ids are
    client timestamp tokens ("workout1718000000000").

    Concurrent edits from other sessions are last-write-wins; there is no
    version check.
    """

    def __init__(self, kind: str, document_store: Optional[DocumentStore] = None,
                 event_bus: Optional[EventBus] = None, seed_file=SEED_FILE,
                 clock: Callable[[], float] = time.time):
        self.kind = kind
        self._cls = plan_class(kind)
        self._store = document_store
        self._bus = event_bus or EventBus()
        self._seed_file = seed_file
        self._clock = clock
        self._plans: List[Plan] = []
        self._categories: List[Category] = []
        self._ledgers = []
        self._last_token = 0
        self.loading = False
        self.loaded = False

    @property
    def collection(self) -> str:
        return PLAN_COLLECTIONS[self.kind]

    @property
    def category_collection(self) -> str:
        return CATEGORY_COLLECTIONS[self.kind]

    @property
    def is_remote(self) -> bool:
        return self._store is not None

    def register_ledger(self, ledger) -> None:
        """Ledgers listed here are purged of a plan id when the plan is deleted."""
        if ledger not in self._ledgers:
            self._ledgers.append(ledger)

    # --- reads --------------------------------------------------------------
    def list(self) -> List[Plan]:
        return [plan.copy() for plan in self._plans]

    def get_by_id(self, plan_id: str) -> Optional[Plan]:
        plan = self._find(plan_id)
        return plan.copy() if plan is not None else None

    def categories(self) -> List[Category]:
        return [Category.from_dict(c.to_dict()) for c in self._categories]

    def favorite_plans(self, ledger) -> List[Plan]:
        """Plans the ledger marks favorite; favorites of unknown ids are skipped."""
        return [plan.copy() for plan in self._plans if ledger.is_favorite(plan.id)]

    def resolve_category(self, value: str) -> str:
        """Category id for a category id or display name; unknown values pass through."""
        for category in self._categories:
            if category.matches(value):
                return category.id
        return value

    def _find(self, plan_id: str) -> Optional[Plan]:
        for plan in self._plans:
            if plan.id == plan_id:
                return plan
        return None

    def _index_of(self, plan_id: str) -> int:
        for i, plan in enumerate(self._plans):
            if plan.id == plan_id:
                return i
        return -1

    # --- load ---------------------------------------------------------------
    async def load(self) -> None:
        """Fetch plans and categories; local state is replaced only on success."""
        self.loading = True
        try:
            if self._store is None:
                if self.loaded:
                    return
                plan_docs, category_docs = read_seed(self.kind, self._seed_file)
            else:
                try:
                    category_docs = await self._store.read_all(self.category_collection)
                    plan_docs = await self._store.read_all(self.collection)
                except TransportFailure:
                    logger.exception("Error fetching %s data from the document store", self.kind)
                    raise
            self._categories = [Category.from_dict(doc) for doc in category_docs]
            self._plans = [self._cls.from_dict(doc) for doc in plan_docs]
            self.loaded = True
            logger.info("Loaded %d %s plans and %d categories", len(self._plans), self.kind, len(self._categories))
        finally:
            self.loading = False

    # --- mutations ----------------------------------------------------------
    def _client_token(self) -> str:
        token = max(int(self._clock() * 1000), self._last_token + 1)
        self._last_token = token
        return f"{self.kind}{token}"

    async def add(self, draft: Plan) -> Plan:
        """Assign id and placeholder image, then insert at the head of the list."""
        if not isinstance(draft, self._cls):
            raise ValidationError(f"Expected a {self.kind} plan draft, got {type(draft).__name__}")
        if not draft.name or not draft.name.strip():
            raise ValidationError("Plan name cannot be empty")
        plan = draft.copy()
        plan.image_url = placeholder_image_url(plan.name)
        if self._store is None:
            plan.id = self._client_token()
        else:
            try:
                plan.id = await self._store.create(self.collection, plan.to_dict(include_id=False))
            except TransportFailure as e:
                logger.error("Error adding %s plan '%s': %s", self.kind, plan.name, e)
                publish_sync_failed(self._bus, self.kind, "add", None, e)
                raise StoreWriteFailure(f"Could not save plan '{plan.name}': {e}") from e
        self._plans.insert(0, plan)
        publish_plan_added(self._bus, self.kind, plan.copy())
        return plan.copy()

    async def update(self, plan_id: str, fields: Dict) -> Plan:
        """Replace only the named fields. An absent id raises NotFound."""
        attrs = self._cls.normalize_fields(fields)
        if "name" in attrs and not (attrs["name"] or "").strip():
            raise ValidationError("Plan name cannot be empty")
        plan = self._find(plan_id)
        if plan is None:
            raise NotFound(f"No {self.kind} plan with id '{plan_id}'")
        if not attrs:
            return plan.copy()
        previous = plan.values(attrs)
        plan.apply(attrs)
        if self._store is not None:
            keys = self._cls.editable_fields()
            try:
                await self._store.update(self.collection, plan_id,
                                         {keys[attr]: value for attr, value in attrs.items()}, merge=True)
            except TransportFailure as e:
                self._revert_update(plan_id, attrs, previous)
                logger.error("Error updating %s plan %s, change rolled back: %s", self.kind, plan_id, e)
                publish_sync_failed(self._bus, self.kind, "update", plan_id, e)
                raise StoreWriteFailure(f"Could not update plan '{plan_id}': {e}") from e
        publish_plan_updated(self._bus, self.kind, plan.copy(), attrs.keys())
        return plan.copy()

    def _revert_update(self, plan_id: str, attempted: Dict, previous: Dict) -> None:
        plan = self._find(plan_id)
        if plan is None:
            return
        # Fields changed again by a later call while this write was pending keep the newer value
        plan.apply({attr: previous[attr] for attr, value in attempted.items()
                    if getattr(plan, attr) == value})

    async def delete(self, plan_id: str) -> None:
        """Remove the plan and purge it from favorites. Deleting an unknown id is a no-op."""
        index = self._index_of(plan_id)
        if index >= 0:
            plan = self._plans.pop(index)
            if self._store is not None:
                try:
                    await self._store.delete(self.collection, plan_id)
                except TransportFailure as e:
                    self._plans.insert(min(index, len(self._plans)), plan)
                    logger.error("Error deleting %s plan %s, restored: %s", self.kind, plan_id, e)
                    publish_sync_failed(self._bus, self.kind, "delete", plan_id, e)
                    raise StoreWriteFailure(f"Could not delete plan '{plan_id}': {e}") from e
            publish_plan_deleted(self._bus, self.kind, plan_id)
        for ledger in self._ledgers:
            await ledger.purge(plan_id)
