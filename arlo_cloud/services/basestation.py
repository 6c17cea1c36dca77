"""Basestation (hub) handle.

A hub is addressed over its event stream: commands are posted to the notify
endpoint and answered on the stream. The handle owns one
:class:`EventStreamChannel` and wraps the hub commands Arlo's web client uses.
"""
import logging
from typing import Any, Callable, Dict, Optional, Type, TYPE_CHECKING

from arlo_cloud.core import constants
from arlo_cloud.core.exceptions import ConfigurationError
from arlo_cloud.models.device import DeviceDescriptor, NotifyPayload
from arlo_cloud.models.event import ChannelState, StreamEvent
from arlo_cloud.services.event_stream import EventCallback, EventStreamChannel

if TYPE_CHECKING:
    from arlo_cloud.services.camera import Camera
    from arlo_cloud.services.client import ArloClient

logger = logging.getLogger(__name__)

BRIGHTNESS_RANGE = range(-2, 3)


class Basestation:
    """Hub handle: event stream plus hub commands."""

    def __init__(self, client: "ArloClient", device: DeviceDescriptor, **channel_options: Any):
        """
        Initialize the handle.

        Args:
            client: Logged-in client
            device: Descriptor of type 'basestation'
            **channel_options: Passed through to EventStreamChannel

        Raises:
            ConfigurationError: If the device is not a basestation
            AuthenticationError: If the client is not logged in
        """
        if device.device_type != constants.DEVICE_TYPE_BASESTATION:
            raise ConfigurationError(
                "Device is not a basestation",
                {"device_id": device.device_id, "device_type": device.device_type}
            )
        client.authenticated_headers()

        self.client = client
        self.device = device
        self.events = EventStreamChannel(client, device, **channel_options)

    @property
    def device_id(self) -> str:
        return self.device.device_id

    @property
    def state(self) -> ChannelState:
        return self.events.state

    def subscribe(self, event_type: Type[StreamEvent], callback: EventCallback) -> Callable[[], None]:
        """Subscribe to hub events. Returns the unsubscribe function."""
        return self.events.subscribe(event_type, callback)

    async def start_stream(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Open the hub's event stream."""
        await self.events.open(wait=wait, timeout=timeout)

    async def close(self) -> None:
        """Unsubscribe from the hub's event stream."""
        await self.events.close()

    async def notify(self, payload: NotifyPayload, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a command over the open stream and return the reply data."""
        return await self.events.notify(payload, timeout=timeout)

    # ==================== Commands ====================

    async def get_state(self) -> Dict[str, Any]:
        """Get the current basestation state."""
        return await self.notify(NotifyPayload(action="get", resource="basestation"))

    async def get_cameras_state(self) -> Dict[str, Any]:
        """Get the state of the cameras attached to the basestation."""
        return await self.notify(NotifyPayload(action="get", resource="cameras"))

    async def set_mode(self, mode: str) -> Dict[str, Any]:
        """
        Activate an automation mode.

        Args:
            mode: Mode id, e.g. 'mode0' (disarmed) or 'mode1' (armed)
        """
        logger.info(f"Setting mode {mode} on hub {self.device_id}")
        return await self.notify(NotifyPayload(
            action="set",
            resource="modes",
            publish_response=True,
            properties={"active": mode}
        ))

    async def arm(self) -> Dict[str, Any]:
        return await self.set_mode(constants.MODE_ARMED)

    async def disarm(self) -> Dict[str, Any]:
        return await self.set_mode(constants.MODE_DISARMED)

    async def set_brightness(self, camera: "Camera", brightness: int) -> Dict[str, Any]:
        """
        Adjust the brightness of an attached camera.

        Args:
            camera: Camera handle
            brightness: Level between -2 and 2

        Raises:
            ValueError: If the level is out of range
        """
        if brightness not in BRIGHTNESS_RANGE:
            raise ValueError(f"Brightness must be between -2 and 2, got {brightness}")

        return await self.notify(NotifyPayload(
            action="set",
            resource=f"cameras/{camera.device_id}",
            publish_response=True,
            properties={"brightness": brightness}
        ))

    async def set_camera_on(self, camera: "Camera", on: bool) -> Dict[str, Any]:
        """Toggle an attached camera's privacy mode (the vendor's 'privacyActive')."""
        return await self.notify(NotifyPayload(
            action="set",
            resource=f"cameras/{camera.device_id}",
            publish_response=True,
            properties={"privacyActive": on}
        ))

    async def restart(self) -> Any:
        """Restart the basestation. Plain HTTP, the stream need not be open."""
        logger.info(f"Restarting hub {self.device_id}")
        return await self.client.request(
            "POST",
            constants.RESTART_DEVICE,
            {"deviceId": self.device_id}
        )
