"""Event stream message variants and channel state."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ChannelState(str, Enum):
    """Lifecycle of a hub event stream connection."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    FAULTED = "faulted"
    CLOSED = "closed"


class StreamEvent:
    """Base class for everything the event stream channel emits."""


@dataclass
class Opened(StreamEvent):
    """The vendor confirmed the subscription ('connected' frame)."""
    message: str = "Event stream opened"


@dataclass
class Closed(StreamEvent):
    """The stream ended: remote disconnect/logout, end of stream or local close."""
    reason: Optional[str] = None


@dataclass
class Notification(StreamEvent):
    """A device notification, including replies to hub commands."""
    action: Optional[str] = None
    resource: Optional[str] = None
    trans_id: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Notification":
        properties = payload.get("properties")
        return cls(
            action=payload.get("action"),
            resource=payload.get("resource"),
            trans_id=payload.get("transId"),
            properties=properties if isinstance(properties, dict) else {},
            data=payload
        )


@dataclass
class StreamError(StreamEvent):
    """A malformed frame or a transport failure on the stream."""
    error: Exception


@dataclass
class DoorbellAlert(StreamEvent):
    """A notification reporting a doorbell press."""
    notification: Notification


@dataclass
class MotionAlert(StreamEvent):
    """A notification reporting detected motion."""
    notification: Notification


@dataclass
class Pong(StreamEvent):
    """Reply to a heartbeat ping."""
    data: Dict[str, Any] = field(default_factory=dict)
