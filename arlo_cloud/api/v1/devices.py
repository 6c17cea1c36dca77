"""Device endpoints."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from arlo_cloud.models.device import DeviceDescriptor
from arlo_cloud.services.client import ArloClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices", tags=["Devices"])


class DeviceListResponse(BaseModel):
    """Device list response model."""
    devices: List[Dict[str, Any]] = Field(..., description="Devices as returned by Arlo")
    total: int = Field(..., description="Total number of devices")


def get_client(request: Request) -> ArloClient:
    """The logged-in client created at startup."""
    return request.app.state.client


def _dump(device: DeviceDescriptor) -> Dict[str, Any]:
    return device.model_dump(by_alias=True)


@router.get("", response_model=DeviceListResponse)
async def list_devices(
    request: Request,
    device_type: Optional[List[str]] = Query(default=None, description="Keep only these device types"),
    provisioned: Optional[bool] = Query(default=None, description="Filter on provisioning state")
):
    """
    List the account's devices.

    Repeat ``device_type`` to keep several types, e.g.
    ``?device_type=basestation&device_type=camera``.
    """
    client = get_client(request)
    devices = await client.list_devices(device_types=device_type, provisioned=provisioned)
    logger.info(f"Listed {len(devices)} device(s)")
    return DeviceListResponse(devices=[_dump(d) for d in devices], total=len(devices))


@router.get("/{device_id}")
async def get_device(device_id: str, request: Request):
    """Get a single device by its id (404 when unknown)."""
    client = get_client(request)
    device = await client.get_device(device_id=device_id)
    return _dump(device)
