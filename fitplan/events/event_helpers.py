"""Event helper utilities.

Publishing helpers used by the stores, the ledger and the session, so payload
shapes stay in one place.

Quick import:
    from fitplan.events.event_helpers import (
        publish_plan_added, publish_plan_updated, publish_plan_deleted,
        publish_favorite_toggled, publish_sync_failed, publish_generation_failed,
    )
"""
from __future__ import annotations
from typing import Any, Iterable, Optional
from .Event_Bus import (
    EventBus,
    PLAN_ADDED, PLAN_UPDATED, PLAN_DELETED, FAVORITE_TOGGLED,
    SYNC_FAILED, GENERATION_FAILED, SESSION_CHANGED,
)

__all__ = [
    'publish_plan_added', 'publish_plan_updated', 'publish_plan_deleted',
    'publish_favorite_toggled', 'publish_sync_failed', 'publish_generation_failed',
    'publish_session_changed',
]


def publish_plan_added(bus: EventBus, kind: str, plan: Any):
    bus.publish(PLAN_ADDED, {'kind': kind, 'plan': plan})


def publish_plan_updated(bus: EventBus, kind: str, plan: Any, fields: Iterable[str]):
    bus.publish(PLAN_UPDATED, {'kind': kind, 'plan': plan, 'fields': sorted(fields)})


def publish_plan_deleted(bus: EventBus, kind: str, plan_id: str):
    bus.publish(PLAN_DELETED, {'kind': kind, 'plan_id': plan_id})


def publish_favorite_toggled(bus: EventBus, kind: str, plan_id: str, favorite: bool):
    bus.publish(FAVORITE_TOGGLED, {'kind': kind, 'plan_id': plan_id, 'favorite': favorite})


def publish_sync_failed(bus: EventBus, kind: str, operation: str, plan_id: Optional[str], error: Exception):
    """Publish a sync.failed event after a rolled back write.

    Payload structure:
        {'kind': 'workout', 'operation': 'toggle', 'plan_id': 'plan1', 'error': 'message'}
    """
    bus.publish(SYNC_FAILED, {
        'kind': kind,
        'operation': operation,
        'plan_id': plan_id,
        'error': str(error),
    })


def publish_generation_failed(bus: EventBus, kind: str, error: Exception, reason: str):
    bus.publish(GENERATION_FAILED, {'kind': kind, 'error': str(error), 'reason': reason})


def publish_session_changed(bus: EventBus, user: Any):
    bus.publish(SESSION_CHANGED, {'user': user})
