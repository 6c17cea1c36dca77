import pytest

from arlo_cloud.core import constants
from arlo_cloud.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DeviceNotFoundError,
    NotFoundError,
    ParseError,
    RemoteError,
)
from arlo_cloud.models.auth import SessionToken
from arlo_cloud.services.basestation import Basestation
from arlo_cloud.services.camera import Camera
from arlo_cloud.services.client import ArloClient

from fakes import DEVICES, USER_ID


@pytest.fixture
def devices_route(transport):
    transport.responses[("GET", constants.DEVICES)] = DEVICES
    return transport


def test_authenticated_headers_rebuilt_per_call(client):
    headers = client.authenticated_headers()
    assert headers["Authorization"] == "session-token"
    for name, value in constants.BASE_HEADERS.items():
        assert headers[name] == value

    headers["Authorization"] = "tampered"
    assert client.authenticated_headers()["Authorization"] == "session-token"

    client.restore_session(SessionToken(token="new-token", userId=USER_ID))
    assert client.authenticated_headers()["Authorization"] == "new-token"


async def test_requires_login(credentials, transport):
    client = ArloClient(credentials=credentials, transport=transport)

    assert client.is_authenticated is False
    with pytest.raises(AuthenticationError):
        client.authenticated_headers()
    with pytest.raises(AuthenticationError):
        await client.list_devices()
    assert transport.requests == []


async def test_login_stores_session(credentials, transport):
    session = SessionToken(token="from-login", userId=USER_ID)

    class _Authenticator:
        async def login(self):
            return session

    client = ArloClient(credentials=credentials, transport=transport, authenticator=_Authenticator())

    assert await client.login() is session
    assert client.session is session
    assert client.user_id == USER_ID


async def test_list_devices_preserves_server_order(client, devices_route):
    devices = await client.list_devices()

    assert [d.device_id for d in devices] == ["HUB1", "CAM1", "CAM2", "DOOR1"]
    assert devices[0].xcloud_id == "XC-1"
    verb, url, headers, body = devices_route.requests[0]
    assert (verb, url) == ("GET", constants.DEVICES)
    assert headers["Authorization"] == "session-token"


@pytest.mark.parametrize(
    "device_types, provisioned, expected",
    [
        (["camera"], None, ["CAM1", "CAM2"]),
        (["camera", "doorbell"], True, ["CAM1", "DOOR1"]),
        (None, False, ["CAM2"]),
        (["basestation"], True, ["HUB1"]),
        (["siren"], None, []),
    ],
)
async def test_list_devices_filters(client, devices_route, device_types, provisioned, expected):
    devices = await client.list_devices(device_types=device_types, provisioned=provisioned)

    assert [d.device_id for d in devices] == expected


async def test_list_devices_rejects_unexpected_payload(client, transport):
    transport.responses[("GET", constants.DEVICES)] = {"devices": []}

    with pytest.raises(ParseError):
        await client.list_devices()


async def test_list_devices_rejects_record_without_device_type(client, transport):
    transport.responses[("GET", constants.DEVICES)] = [{"deviceId": "x"}]

    with pytest.raises(ParseError) as exc_info:
        await client.list_devices()

    assert exc_info.value.message == "Unexpected devices response"
    assert exc_info.value.details["errors"][0]["loc"] == ("deviceType",)


async def test_remote_errors_propagate(client, transport):
    transport.responses[("GET", constants.DEVICES)] = RemoteError(500, "Internal error")

    with pytest.raises(RemoteError) as exc_info:
        await client.list_devices()
    assert exc_info.value.code == 500


async def test_get_device_matches_all_criteria(client, devices_route):
    device = await client.get_device(device_type="camera", state="removed")
    assert device.device_id == "CAM2"

    device = await client.get_device(deviceType="basestation")
    assert device.device_id == "HUB1"

    device = await client.get_device(device_type="camera")
    assert device.device_id == "CAM1"


async def test_get_device_without_match_raises(client, devices_route):
    with pytest.raises(DeviceNotFoundError) as exc_info:
        await client.get_device(device_type="camera", device_name="Attic")

    assert isinstance(exc_info.value, NotFoundError)
    assert exc_info.value.details == {"criteria": {"device_type": "camera", "device_name": "Attic"}}


async def test_unknown_criterion_never_matches(client, devices_route):
    with pytest.raises(DeviceNotFoundError):
        await client.get_device(colour="red")


async def test_logout_clears_session(client, transport):
    await client.logout()

    assert transport.calls("PUT", constants.LOGOUT)
    assert client.is_authenticated is False


async def test_context_manager_closes_transport(client, transport):
    async with client:
        pass
    assert transport.closed is True


def test_missing_credentials_raise_configuration_error(transport):
    from arlo_cloud.core.config import Settings

    settings = Settings(
        _env_file=None,
        ARLO_USER="user@example.com",
        ARLO_PASSWORD=None,
        EMAIL_USER="mfa@example.com",
        EMAIL_PASSWORD="x",
        EMAIL_SERVER="imap.example.com",
    )

    with pytest.raises(ConfigurationError) as exc_info:
        ArloClient(transport=transport, settings=settings)
    assert exc_info.value.message == "arlo_password is not defined"


async def test_handle_factories_check_device_type(client, devices_route):
    hub = await client.get_device(device_id="HUB1")
    camera = await client.get_device(device_id="CAM1")
    doorbell = await client.get_device(device_id="DOOR1")

    assert isinstance(client.basestation(hub), Basestation)
    assert isinstance(client.camera(camera), Camera)
    assert isinstance(client.camera(doorbell), Camera)
    with pytest.raises(ConfigurationError):
        client.basestation(camera)
    with pytest.raises(ConfigurationError):
        client.camera(hub)
