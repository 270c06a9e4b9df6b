"""Favorites ledger: the set of plan ids a user marked favorite, for one plan kind.

Persistence depends on the identity:
  - anonymous: local cache, key 'fitplanFavorites' / 'fitdeedFavoriteDietPlanIds',
    value is a JSON list of ids;
  - signed in, with a document store: 'favorites' collection, document key = user id,
    field 'workouts' / 'diets' written with merge semantics;
  - signed in, local-only: local cache under '<key>:<user id>'.

Toggling is optimistic: the flip is applied in memory first and reverted exactly
when the write fails. Ids are not checked against existing plans; readers filter
them (PlanStore.favorite_plans).

Every write replaces the whole stored list, so mutations wait for a pending load
and retry a failed one before touching the set.
"""
from __future__ import annotations
import asyncio
import json
import logging
from typing import List, Optional

from fitplan.domain.User import User
from fitplan.events.Event_Bus import EventBus
from fitplan.events.event_helpers import publish_favorite_toggled, publish_sync_failed
from fitplan.infra.Document_Store import DocumentStore
from fitplan.infra.Local_Cache import LocalCache
from fitplan.utilities.constants import FAVORITES_CACHE_KEYS, FAVORITES_COLLECTION, FAVORITES_FIELDS
from fitplan.utilities.errors import StoreWriteFailure, TransportFailure

logger = logging.getLogger(__name__)

__all__ = ["FavoritesLedger"]


class FavoritesLedger:
    def __init__(self, kind: str, cache: LocalCache, document_store: Optional[DocumentStore] = None,
                 event_bus: Optional[EventBus] = None):
        self.kind = kind
        self._cache = cache
        self._store = document_store
        self._bus = event_bus or EventBus()
        self._ids: List[str] = []
        self.user: Optional[User] = None
        self._generation = 0  # bumped on every identity (re)load
        self.loading = False
        self._synced = False
        self._ready = asyncio.Event()
        self._ready.set()

    def _cache_key(self, user: Optional[User]) -> str:
        key = FAVORITES_CACHE_KEYS[self.kind]
        return key if user is None else f"{key}:{user.id}"

    def is_favorite(self, plan_id: str) -> bool:
        return plan_id in self._ids

    def ids(self) -> List[str]:
        return list(self._ids)

    # --- identity -----------------------------------------------------------
    async def load(self, user: Optional[User] = None) -> None:
        """Reset to an empty set for the identity, then read its stored favorites.

        A load overtaken by a newer load (identity changed again meanwhile) is discarded.
        """
        self._generation += 1
        generation = self._generation
        self.user = user
        self._ids = []
        self.loading = True
        self._synced = False
        self._ready.clear()
        try:
            ids = await self._read(user)
        except TransportFailure:
            if generation == self._generation:
                logger.exception("Error loading %s favorites", self.kind)
                raise
            return
        finally:
            if generation == self._generation:
                self.loading = False
                self._ready.set()
        if generation != self._generation:
            logger.info("Discarding stale %s favorites load", self.kind)
            return
        self._ids = ids
        self._synced = True

    async def _settled(self) -> None:
        """Wait until the current identity's favorites are in memory, loading them if needed.

        Raises TransportFailure when they cannot be read.
        """
        while not (self._ready.is_set() and self._synced):
            if self._ready.is_set():
                await self.load(self.user)
            else:
                await self._ready.wait()

    async def _read(self, user: Optional[User]) -> List[str]:
        if user is not None and self._store is not None:
            doc = await self._store.get(FAVORITES_COLLECTION, user.id)
            raw = (doc or {}).get(FAVORITES_FIELDS[self.kind], [])
        else:
            stored = self._cache.get(self._cache_key(user))
            try:
                raw = json.loads(stored) if stored else []
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable cached favorites under %s", self._cache_key(user))
                raw = []
        seen = []
        for plan_id in raw if isinstance(raw, list) else []:
            if isinstance(plan_id, str) and plan_id not in seen:
                seen.append(plan_id)
        return seen

    async def _write(self, user: Optional[User], ids: List[str]) -> None:
        if user is not None and self._store is not None:
            await self._store.update(FAVORITES_COLLECTION, user.id, {FAVORITES_FIELDS[self.kind]: ids}, merge=True)
        elif ids:
            self._cache.set(self._cache_key(user), json.dumps(ids))
        else:
            self._cache.remove(self._cache_key(user))

    # --- mutations ----------------------------------------------------------
    def _set(self, plan_id: str, favorite: bool) -> None:
        if favorite and plan_id not in self._ids:
            self._ids.append(plan_id)
        elif not favorite and plan_id in self._ids:
            self._ids.remove(plan_id)

    async def toggle(self, plan_id: str) -> bool:
        """Flip membership, persist, and return the new value.

        On a failed write the flip is reverted and StoreWriteFailure is raised.
        """
        try:
            await self._settled()
        except TransportFailure as e:
            publish_sync_failed(self._bus, self.kind, "toggle", plan_id, e)
            raise StoreWriteFailure(f"Could not load favorites before updating them: {e}") from e
        user, generation = self.user, self._generation
        before = self.is_favorite(plan_id)
        self._set(plan_id, not before)
        try:
            await self._write(user, list(self._ids))
        except TransportFailure as e:
            # Revert only if nothing else changed this id (or the identity) meanwhile
            if generation == self._generation and self.is_favorite(plan_id) != before:
                self._set(plan_id, before)
            logger.error("Error saving %s favorite %s, reverted: %s", self.kind, plan_id, e)
            publish_sync_failed(self._bus, self.kind, "toggle", plan_id, e)
            raise StoreWriteFailure(f"Could not update favorites: {e}") from e
        publish_favorite_toggled(self._bus, self.kind, plan_id, not before)
        return not before

    async def purge(self, plan_id: str) -> None:
        """Drop a deleted plan's id.

        The id is dropped from memory even when the write fails: a stale id left in
        storage is only a dangling favorite, filtered at read time and removed by the
        next successful write.
        """
        try:
            await self._settled()
        except TransportFailure as e:
            logger.warning("Could not load favorites to drop deleted plan %s: %s", plan_id, e)
            return
        if plan_id not in self._ids:
            return
        self._set(plan_id, False)
        try:
            await self._write(self.user, list(self._ids))
        except TransportFailure as e:
            logger.warning("Could not persist removal of deleted plan %s from favorites: %s", plan_id, e)
            publish_sync_failed(self._bus, self.kind, "purge", plan_id, e)
