"""Web-facing observer for plan state events.

A NotificationFeed subscribes to a session's EventBus and stores a lightweight
in-memory ring buffer of recent events that the web layer serves at
GET /api/events, so the UI can show toasts (saved, favorited, sync failed,
generation failed) without a full page reload.

Design:
  * Each event stored with an auto-increment integer id (cursor) so clients
    can request only newer events (since=<last_id_seen>).
  * A Lock guards the buffer; uvicorn may run sync endpoints in a threadpool.
  * max_events caps memory growth.
"""
from __future__ import annotations
from typing import List, Dict, Any, Optional
from threading import Lock
from datetime import datetime, timezone

from .Event_Bus import (
    EventBus, ALL_EVENTS, SYNC_FAILED, GENERATION_FAILED,
)

_ERROR_EVENTS = (SYNC_FAILED, GENERATION_FAILED)


class NotificationFeed:
    def __init__(self, max_events: int = 300):
        self.max_events = max_events
        self._lock = Lock()
        self._events: List[Dict[str, Any]] = []
        self._next_id = 1
        self._bus: Optional[EventBus] = None

    def attach(self, bus: EventBus) -> "NotificationFeed":
        """Idempotent: subscribe to every plan event of the given bus."""
        if self._bus is bus:
            return self
        if self._bus is not None:
            self.detach()
        for name in ALL_EVENTS:
            bus.subscribe(name, self.record)
        self._bus = bus
        return self

    def detach(self) -> None:
        if self._bus is None:
            return
        for name in ALL_EVENTS:
            self._bus.unsubscribe(name, self.record)
        self._bus = None

    def record(self, event_name: str, payload: Any):  # signature expected by EventBus
        evt: Dict[str, Any] = {
            'type': event_name,
            'level': 'error' if event_name in _ERROR_EVENTS else 'info',
            'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        }
        if isinstance(payload, dict):
            plan = payload.get('plan')
            if plan is not None:
                evt['plan_id'] = getattr(plan, 'id', '')
                evt['name'] = getattr(plan, 'name', '')
            for k in ('kind', 'plan_id', 'favorite', 'operation', 'error', 'reason', 'fields'):
                if k in payload and k not in evt:
                    evt[k] = payload[k]
            user = payload.get('user')
            if 'user' in payload:
                evt['user_id'] = getattr(user, 'id', None)
        with self._lock:
            evt['id'] = self._next_id
            self._next_id += 1
            self._events.append(evt)
            if len(self._events) > self.max_events:
                del self._events[: len(self._events) - self.max_events]

    def get_events(self, since: int | None = None) -> Dict[str, Any]:
        """Return events newer than 'since' (exclusive).

        If since is None, returns the buffered events. Response includes
        next_cursor (largest id) so the client can poll with since=next_cursor.
        """
        with self._lock:
            if since is None:
                data = list(self._events)
            else:
                data = [e for e in self._events if e['id'] > since]
            next_cursor = self._events[-1]['id'] if self._events else since or 0
        return {'events': data, 'next_cursor': next_cursor}


__all__ = ['NotificationFeed']
