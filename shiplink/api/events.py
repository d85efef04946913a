"""
Dispatch events SSE endpoint.

Streams status changes of dispatch requests and quotes to dashboards and
driver apps as Server-Sent Events.
"""

import json
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from shiplink.core.events import dispatch_event_bus

router = APIRouter(prefix="/events", tags=["Events"])


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


@router.get("/stream")
async def dispatch_events_stream(
    entity_id: Optional[str] = Query(None, description="Only events for this request or quote id"),
):
    """
    Server-Sent Events stream of status changes.

    When filtered, recent events for the entity are replayed first.
    """

    async def event_generator():
        yield _sse({
            "type": "connected",
            "message": "SSE connection established",
            "filter_entity_id": entity_id,
        })

        if entity_id:
            for event in dispatch_event_bus.get_recent_events(entity_id=entity_id):
                yield _sse(event)

        async for event in dispatch_event_bus.subscribe():
            if entity_id and event.get("entity_id") != entity_id:
                continue
            yield _sse(event)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/recent")
async def get_recent_events(
    entity_id: Optional[str] = Query(None, description="Only events for this request or quote id"),
    limit: int = Query(50, ge=1, le=200),
):
    """Recent events without streaming, for initial page loads."""
    events = dispatch_event_bus.get_recent_events(entity_id=entity_id, limit=limit)
    return {"events": events, "count": len(events)}
