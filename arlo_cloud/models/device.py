"""Device and command models."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from arlo_cloud.models.auth import VendorModel


class DeviceDescriptor(VendorModel):
    """
    Device as returned by the devices endpoint.

    Only the fields the client relies on are declared; everything else the
    vendor sends is kept as model extras.
    """

    device_id: str = Field(..., alias="deviceId")
    device_type: str = Field(..., alias="deviceType", description="basestation, camera, doorbell, ...")
    parent_id: Optional[str] = Field(None, alias="parentId", description="Hub owning the device")
    xcloud_id: Optional[str] = Field(None, alias="xCloudId", description="Cloud routing id")
    device_name: Optional[str] = Field(None, alias="deviceName")
    state: Optional[str] = Field(None, description="Provisioning state")
    unique_id: Optional[str] = Field(None, alias="uniqueId")
    user_id: Optional[str] = Field(None, alias="userId")
    properties: Dict[str, Any] = Field(default_factory=dict)

    def matches(self, criteria: Dict[str, Any]) -> bool:
        """Return True when every criterion equals the device field exactly.

        Criteria keys may be attribute names (``device_type``) or vendor
        keys (``deviceType``).
        """
        by_name = self.model_dump()
        by_alias = self.model_dump(by_alias=True)
        missing = object()

        for key, expected in criteria.items():
            actual = by_alias.get(key, by_name.get(key, missing))
            if actual is missing or actual != expected:
                return False
        return True


class NotifyPayload(BaseModel):
    """Command body posted to a hub's notify endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    action: str
    resource: str
    publish_response: bool = Field(False, alias="publishResponse")
    properties: Optional[Dict[str, Any]] = None
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    trans_id: Optional[str] = Field(None, alias="transId")
    response_url: Optional[str] = Field(None, alias="responseUrl")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class StartStreamResponse(VendorModel):
    """Signaling result of a start stream request."""

    url: str
