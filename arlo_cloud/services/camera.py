"""Camera handle (cameras and doorbells)."""
import logging
from typing import Any, Dict, TYPE_CHECKING

from pydantic import ValidationError

from arlo_cloud.core import constants
from arlo_cloud.core.exceptions import ConfigurationError, ParseError
from arlo_cloud.core.helpers import create_transaction_id
from arlo_cloud.models.device import DeviceDescriptor, NotifyPayload, StartStreamResponse

if TYPE_CHECKING:
    from arlo_cloud.services.client import ArloClient

logger = logging.getLogger(__name__)

CAMERA_TYPES = (constants.DEVICE_TYPE_CAMERA, constants.DEVICE_TYPE_DOORBELL)


class Camera:
    """
    Camera handle.

    Camera calls are plain authenticated HTTP; the hub's event stream is only
    needed to observe the resulting events.
    """

    def __init__(self, client: "ArloClient", device: DeviceDescriptor):
        """
        Initialize the handle.

        Raises:
            ConfigurationError: If the device is not a camera or doorbell
            AuthenticationError: If the client is not logged in
        """
        if device.device_type not in CAMERA_TYPES:
            raise ConfigurationError(
                "Device is not a camera",
                {"device_id": device.device_id, "device_type": device.device_type}
            )
        client.authenticated_headers()

        self.client = client
        self.device = device

    @property
    def device_id(self) -> str:
        return self.device.device_id

    @property
    def name(self):
        return self.device.device_name

    def _device_url(self, path: str) -> str:
        return f"{constants.DEVICES}/{self.device.unique_id}/{path}"

    def _hub_command(self, properties: Dict[str, Any]) -> Dict[str, Any]:
        return NotifyPayload(
            action="set",
            resource=f"cameras/{self.device_id}",
            publish_response=True,
            properties=properties,
            from_=f"{self.client.user_id}_web",
            to=self.device.parent_id,
            trans_id=create_transaction_id(),
            response_url=""
        ).to_wire()

    async def set_name(self, name: str) -> Any:
        """Rename the camera; the local descriptor follows on success."""
        response = await self.client.request(
            "PUT",
            constants.RENAME_DEVICE,
            {
                "deviceId": self.device_id,
                "deviceName": name,
                "parentId": self.device.parent_id,
            }
        )
        self.device.device_name = name
        logger.info(f"Camera {self.device_id} renamed to {name}")
        return response

    async def get_smart_alerts(self) -> Any:
        return await self.client.request("GET", self._device_url("smartalerts"))

    async def get_automation_activity_zones(self) -> Any:
        return await self.client.request("GET", self._device_url("automation/activityzones"))

    async def push_to_talk(self) -> Any:
        """Get the push-to-talk session for the camera's speaker."""
        return await self.client.request("GET", self._device_url("pushtotalk"))

    async def start_stream(self) -> StartStreamResponse:
        """
        Ask the cloud to start a live stream.

        Only the signaling exchange is done here; the media itself is out of
        scope.

        Returns:
            Response carrying the stream URL
        """
        data = await self.client.request(
            "POST",
            constants.START_STREAM,
            self._hub_command({"activityState": "startUserStream", "cameraId": self.device_id}),
            headers={"xcloudId": self.device.xcloud_id or ""}
        )
        try:
            return StartStreamResponse.model_validate(data)
        except ValidationError as e:
            raise ParseError(
                "Unexpected start stream response",
                {"errors": e.errors(include_url=False)}
            )

    async def take_snapshot(self) -> Any:
        """Request a full frame snapshot; the URL arrives on the hub's event stream."""
        return await self.client.request(
            "POST",
            constants.SNAPSHOT,
            self._hub_command({"activityState": "fullFrameSnapshot"}),
            headers={"xcloudId": self.device.xcloud_id or ""}
        )
