"""
Dispatch event bus.

In-process pub/sub that receives a fire-and-forget event whenever a dispatch
request or quote changes status. Services queue events on their session and
``commit_and_publish`` releases them only once the transaction commits.
Consumed by the SSE stream endpoint; a real notification sink (push, SMS,
e-mail) would subscribe the same way.
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class DispatchEventBus:
    """
    Simple in-process pub/sub for dispatch events.

    Late subscribers receive the last few events so a client that reconnects
    does not miss the transition that triggered the reconnect.
    """

    def __init__(self, max_recent: int = 100) -> None:
        self._subscribers: List[asyncio.Queue] = []
        self._lock = asyncio.Lock()
        self._recent_events: List[Dict[str, Any]] = []
        self._max_recent = max_recent

    async def subscribe(self) -> AsyncIterator[Dict[str, Any]]:
        """Async generator yielding events as they are published."""
        queue: asyncio.Queue = asyncio.Queue()

        async with self._lock:
            self._subscribers.append(queue)
            for event in self._recent_events[-20:]:
                await queue.put(event)

        try:
            while True:
                event = await queue.get()
                yield event
        finally:
            async with self._lock:
                if queue in self._subscribers:
                    self._subscribers.remove(queue)

    async def publish(self, event: Dict[str, Any]) -> None:
        """Publish an event to all subscribers."""
        async with self._lock:
            self._recent_events.append(event)
            if len(self._recent_events) > self._max_recent:
                self._recent_events = self._recent_events[-self._max_recent:]

            for queue in self._subscribers:
                queue.put_nowait(event)

    def get_recent_events(
        self,
        entity_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """Recent events, optionally only those for one request or quote."""
        events = self._recent_events
        if entity_id:
            events = [e for e in events if e.get("entity_id") == entity_id]
        return events[-limit:]

    def clear(self) -> None:
        self._recent_events = []


# Global singleton
dispatch_event_bus = DispatchEventBus()


def make_status_event(
    entity_type: str,
    entity_id: str,
    from_status: Optional[str],
    to_status: str,
    payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a standardized status-change event.

    Args:
        entity_type: "dispatch_request" or "quote"
        entity_id: UUID string of the entity
        from_status: Previous status (None on creation)
        to_status: New status
        payload: Extra data (assignee, order number, ...)
    """
    return {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "from_status": from_status,
        "to_status": to_status,
        "payload": payload or {},
    }


async def _publish(event: Dict[str, Any]) -> None:
    try:
        await dispatch_event_bus.publish(event)
    except Exception:
        logger.exception("Failed to publish %s event for %s", event["entity_type"], event["entity_id"])


async def publish_status_change(
    entity_type: str,
    entity_id: str,
    from_status: Optional[str],
    to_status: str,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Fire-and-forget publish. A failing sink is logged and never surfaces
    to the operation that changed the status.
    """
    await _publish(make_status_event(entity_type, entity_id, from_status, to_status, payload))


# ==================== Transactional publishing ====================

_PENDING_EVENTS_KEY = "pending_status_events"


def queue_status_change(
    session: AsyncSession,
    entity_type: str,
    entity_id: str,
    from_status: Optional[str],
    to_status: str,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Hold a status event on the session until its transaction commits."""
    event = make_status_event(entity_type, entity_id, from_status, to_status, payload)
    session.info.setdefault(_PENDING_EVENTS_KEY, []).append(event)


@sa_event.listens_for(Session, "after_soft_rollback")
def _discard_rolled_back_events(session: Session, previous_transaction) -> None:
    if previous_transaction.parent is None:
        session.info.pop(_PENDING_EVENTS_KEY, None)


async def commit_and_publish(session: AsyncSession) -> None:
    """
    Commit the session, then publish the events queued during the
    transaction. A failed commit publishes nothing.
    """
    await session.commit()
    for queued in session.info.pop(_PENDING_EVENTS_KEY, []):
        await _publish(queued)
