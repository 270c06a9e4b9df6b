"""Simple Event Bus / Observer implementation for plan state changes.

Event names:
  plan.added          -> payload {"kind", "plan": Plan}
  plan.updated        -> payload {"kind", "plan": Plan, "fields": [attr, ...]}
  plan.deleted        -> payload {"kind", "plan_id"}
  favorite.toggled    -> payload {"kind", "plan_id", "favorite": bool}
  sync.failed         -> payload {"kind", "operation", "plan_id", "error": str}
  generation.failed   -> payload {"kind", "error": str, "reason": "generation" | "transport"}
  session.changed     -> payload {"user": User | None}

Subscribers are callables taking (event_name, payload). Each PlanSession owns its bus.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Callable, Any, Dict, List

logger = logging.getLogger(__name__)

# --- Event name constants (used across modules) ---
PLAN_ADDED = "plan.added"
PLAN_UPDATED = "plan.updated"
PLAN_DELETED = "plan.deleted"
FAVORITE_TOGGLED = "favorite.toggled"
SYNC_FAILED = "sync.failed"
GENERATION_FAILED = "generation.failed"
SESSION_CHANGED = "session.changed"

ALL_EVENTS = (PLAN_ADDED, PLAN_UPDATED, PLAN_DELETED, FAVORITE_TOGGLED,
              SYNC_FAILED, GENERATION_FAILED, SESSION_CHANGED)


class EventBus:
	def __init__(self):
		self._subscribers: Dict[str, List[Callable[[str, Any], None]]] = defaultdict(list)

	def subscribe(self, event_name: str, callback: Callable[[str, Any], None]):
		if callback not in self._subscribers[event_name]:
			self._subscribers[event_name].append(callback)

	def unsubscribe(self, event_name: str, callback: Callable[[str, Any], None]):
		try:
			self._subscribers[event_name].remove(callback)
		except (ValueError, KeyError):
			pass

	def publish(self, event_name: str, payload: Any = None):
		for cb in list(self._subscribers.get(event_name, [])):
			try:
				cb(event_name, payload)
			except Exception:  # a failing observer never breaks the state change
				logger.exception("Error delivering %s to %r", event_name, cb)


__all__ = [
	'EventBus', 'ALL_EVENTS',
	'PLAN_ADDED', 'PLAN_UPDATED', 'PLAN_DELETED', 'FAVORITE_TOGGLED',
	'SYNC_FAILED', 'GENERATION_FAILED', 'SESSION_CHANGED',
]
