"""Hub event stream endpoints."""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from arlo_cloud.api.v1.devices import get_client
from arlo_cloud.core.exceptions import CommandTimeoutError
from arlo_cloud.models.device import NotifyPayload
from arlo_cloud.models.event import (
    Closed,
    DoorbellAlert,
    MotionAlert,
    Notification,
    Opened,
    Pong,
    StreamError,
    StreamEvent,
)
from arlo_cloud.services.basestation import Basestation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])

KEEPALIVE_INTERVAL = 30.0

EVENT_NAMES = {
    Opened: "opened",
    Closed: "closed",
    Notification: "notification",
    DoorbellAlert: "doorbell_alert",
    MotionAlert: "motion_alert",
    Pong: "pong",
    StreamError: "stream_error",
}


class NotifyRequest(BaseModel):
    """Command to relay to a hub."""
    action: str = Field(..., description="Vendor action, e.g. 'get' or 'set'")
    resource: str = Field(..., description="Target resource, e.g. 'basestation' or 'cameras/<id>'")
    publish_response: bool = Field(default=False)
    properties: Optional[Dict[str, Any]] = None
    timeout: Optional[float] = Field(default=None, gt=0, description="Seconds to wait for the reply")


def event_payload(event: StreamEvent) -> Dict[str, Any]:
    """JSON-safe body for an SSE frame."""
    if isinstance(event, Notification):
        return event.data
    if isinstance(event, (DoorbellAlert, MotionAlert)):
        return event.notification.data
    if isinstance(event, StreamError):
        return {"error": type(event.error).__name__, "message": str(event.error)}
    if isinstance(event, Closed):
        return {"reason": event.reason}
    if isinstance(event, Opened):
        return {"message": event.message}
    if isinstance(event, Pong):
        return event.data
    return {}


def format_event(event: StreamEvent) -> str:
    """Format a channel event as an SSE frame."""
    name = EVENT_NAMES.get(type(event), "event")
    return f"event: {name}\ndata: {json.dumps(event_payload(event), default=str)}\n\n"


async def get_hub(request: Request, hub_id: str) -> Basestation:
    """
    Get the handle for a hub, opening its event stream on first use.

    Handles are kept on app.state so every request shares one channel per hub.
    """
    hubs: Dict[str, Basestation] = request.app.state.hubs
    hub = hubs.get(hub_id)

    if hub is None:
        client = get_client(request)
        device = await client.get_device(device_id=hub_id)
        hub = client.basestation(device)
        hubs[hub_id] = hub
        logger.info(f"Created handle for hub {hub_id}")

    if not hub.events.is_open:
        await hub.start_stream()
    return hub


async def event_generator(hub: Basestation) -> AsyncGenerator[str, None]:
    """
    Relay a hub's channel events as SSE frames.

    Ends after the channel reports Closed.
    """
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribers = [hub.subscribe(event_type, queue.put_nowait) for event_type in EVENT_NAMES]

    try:
        yield f"event: connected\ndata: {json.dumps({'hub_id': hub.device_id, 'state': hub.state.value})}\n\n"

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_INTERVAL)
            except asyncio.TimeoutError:
                # Send keepalive ping
                yield f"event: ping\ndata: {json.dumps({'timestamp': datetime.now(timezone.utc).isoformat()})}\n\n"
                continue

            yield format_event(event)
            if isinstance(event, Closed):
                break

    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()


@router.get("/{hub_id}/stream")
async def stream_events(hub_id: str, request: Request):
    """
    Stream a hub's events using Server-Sent Events (SSE).

    Event types: connected, opened, notification, doorbell_alert,
    motion_alert, pong, stream_error, closed, ping (keepalive).
    """
    hub = await get_hub(request, hub_id)

    return StreamingResponse(
        event_generator(hub),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )


@router.post("/{hub_id}/notify")
async def notify_hub(hub_id: str, body: NotifyRequest, request: Request):
    """Send a command to a hub and return its correlated reply."""
    hub = await get_hub(request, hub_id)
    payload = NotifyPayload(
        action=body.action,
        resource=body.resource,
        publish_response=body.publish_response,
        properties=body.properties
    )

    try:
        reply = await hub.notify(payload, timeout=body.timeout)
    except CommandTimeoutError as e:
        raise HTTPException(status_code=504, detail=e.message)

    return {"hub_id": hub_id, "reply": reply}
