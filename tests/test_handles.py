import pytest

from arlo_cloud.core import constants
from arlo_cloud.core.exceptions import ParseError, StreamNotOpenError
from arlo_cloud.models.device import StartStreamResponse
from arlo_cloud.models.event import ChannelState, DoorbellAlert

from fakes import HUB_ID, USER_ID, wait_until

NOTIFY_URL = f"{constants.NOTIFY}/{HUB_ID}"


@pytest.fixture
def hub(client, hub_device):
    return client.basestation(hub_device)


@pytest.fixture
def camera(client, camera_device):
    return client.camera(camera_device)


async def _start(hub, stream):
    await hub.start_stream(wait=False)
    stream.content.feed_frame({"status": "connected"})
    await hub.events.wait_open(timeout=1)


def _last_notify_body(transport):
    return transport.calls("POST", NOTIFY_URL)[-1][3]


# ==================== Basestation ====================

async def test_commands_need_open_stream(hub):
    with pytest.raises(StreamNotOpenError):
        await hub.get_state()


async def test_get_state_and_cameras_state(hub, transport, stream, auto_reply):
    await _start(hub, stream)

    reply = await hub.get_state()
    assert reply["resource"] == "basestation"
    body = _last_notify_body(transport)
    assert (body["action"], body["resource"], body["publishResponse"]) == ("get", "basestation", False)

    await hub.get_cameras_state()
    assert _last_notify_body(transport)["resource"] == "cameras"

    await hub.close()
    assert hub.state is ChannelState.CLOSED


@pytest.mark.parametrize("method, mode", [("arm", "mode1"), ("disarm", "mode0")])
async def test_arm_and_disarm_set_mode(hub, transport, stream, auto_reply, method, mode):
    await _start(hub, stream)

    await getattr(hub, method)()

    body = _last_notify_body(transport)
    assert body["action"] == "set"
    assert body["resource"] == "modes"
    assert body["publishResponse"] is True
    assert body["properties"] == {"active": mode}
    assert body["from"] == f"{USER_ID}_web"
    assert body["to"] == HUB_ID

    await hub.close()


async def test_set_brightness(hub, camera, transport, stream, auto_reply):
    await _start(hub, stream)

    await hub.set_brightness(camera, -2)

    body = _last_notify_body(transport)
    assert body["resource"] == "cameras/CAM1"
    assert body["properties"] == {"brightness": -2}

    await hub.close()


@pytest.mark.parametrize("level", [-3, 3, 10])
async def test_set_brightness_out_of_range(hub, camera, transport, level):
    with pytest.raises(ValueError):
        await hub.set_brightness(camera, level)
    assert transport.requests == []


async def test_set_camera_on(hub, camera, transport, stream, auto_reply):
    await _start(hub, stream)

    await hub.set_camera_on(camera, False)

    assert _last_notify_body(transport)["properties"] == {"privacyActive": False}

    await hub.close()


async def test_restart_is_plain_http(hub, transport):
    await hub.restart()

    verb, url, headers, body = transport.requests[0]
    assert (verb, url) == ("POST", constants.RESTART_DEVICE)
    assert body == {"deviceId": HUB_ID}


async def test_subscribe_receives_alerts(hub, stream):
    alerts = []
    unsubscribe = hub.subscribe(DoorbellAlert, alerts.append)
    await _start(hub, stream)

    stream.content.feed_frame({"resource": "doorbells/DOOR1", "properties": {"buttonPressed": True}})
    await wait_until(lambda: alerts)
    unsubscribe()
    stream.content.feed_frame({"resource": "doorbells/DOOR1", "properties": {"buttonPressed": True}})
    await hub.close()

    assert len(alerts) == 1
    assert alerts[0].notification.resource == "doorbells/DOOR1"


# ==================== Camera ====================

async def test_set_name_updates_descriptor(camera, transport):
    await camera.set_name("Back yard")

    verb, url, headers, body = transport.requests[0]
    assert (verb, url) == ("PUT", constants.RENAME_DEVICE)
    assert body == {"deviceId": "CAM1", "deviceName": "Back yard", "parentId": HUB_ID}
    assert camera.name == "Back yard"


@pytest.mark.parametrize(
    "method, path",
    [
        ("get_smart_alerts", "smartalerts"),
        ("get_automation_activity_zones", "automation/activityzones"),
        ("push_to_talk", "pushtotalk"),
    ],
)
async def test_device_scoped_gets_use_unique_id(camera, transport, method, path):
    await getattr(camera, method)()

    verb, url, headers, body = transport.requests[0]
    assert verb == "GET"
    assert url == f"{constants.DEVICES}/{USER_ID}_CAM1/{path}"


async def test_start_stream_returns_url(camera, transport):
    transport.responses[("POST", constants.START_STREAM)] = {"url": "rtsps://example/stream"}

    response = await camera.start_stream()

    assert response == StartStreamResponse(url="rtsps://example/stream")
    verb, url, headers, body = transport.requests[0]
    assert headers["xcloudId"] == "XC-1"
    assert body["to"] == HUB_ID
    assert body["from"] == f"{USER_ID}_web"
    assert body["resource"] == "cameras/CAM1"
    assert body["properties"] == {"activityState": "startUserStream", "cameraId": "CAM1"}
    assert body["responseUrl"] == ""


async def test_start_stream_without_url_raises(camera, transport):
    transport.responses[("POST", constants.START_STREAM)] = {}

    with pytest.raises(ParseError):
        await camera.start_stream()


async def test_take_snapshot(camera, transport):
    await camera.take_snapshot()

    verb, url, headers, body = transport.requests[0]
    assert url == constants.SNAPSHOT
    assert body["properties"] == {"activityState": "fullFrameSnapshot"}
