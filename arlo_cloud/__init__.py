"""Async client for the Arlo camera cloud: MFA login, devices and hub event streams."""
from arlo_cloud.services import (
    ArloClient,
    Basestation,
    Camera,
    EventStreamChannel,
)

__version__ = "1.0.0"

__all__ = [
    "ArloClient",
    "Basestation",
    "Camera",
    "EventStreamChannel",
]
