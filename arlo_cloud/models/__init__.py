"""Data models."""
from arlo_cloud.models.auth import (
    AuthToken,
    Credentials,
    MfaSubmitResult,
    SecondFactorChallenge,
    SecondFactorOption,
    SessionToken,
)
from arlo_cloud.models.device import DeviceDescriptor, NotifyPayload, StartStreamResponse
from arlo_cloud.models.event import (
    ChannelState,
    Closed,
    DoorbellAlert,
    MotionAlert,
    Notification,
    Opened,
    Pong,
    StreamError,
    StreamEvent,
)

__all__ = [
    "AuthToken",
    "ChannelState",
    "Closed",
    "Credentials",
    "DeviceDescriptor",
    "DoorbellAlert",
    "MfaSubmitResult",
    "MotionAlert",
    "Notification",
    "NotifyPayload",
    "Opened",
    "Pong",
    "SecondFactorChallenge",
    "SecondFactorOption",
    "SessionToken",
    "StartStreamResponse",
    "StreamError",
    "StreamEvent",
]
