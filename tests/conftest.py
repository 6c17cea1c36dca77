import pytest

from arlo_cloud.core.constants import NOTIFY
from arlo_cloud.models.auth import Credentials, SessionToken
from arlo_cloud.models.device import DeviceDescriptor
from arlo_cloud.services.client import ArloClient

from fakes import DEVICES, HUB_ID, USER_ID, FakeStreamResponse, FakeTransport


@pytest.fixture
def credentials():
    return Credentials(
        arlo_user="user@example.com",
        arlo_password="s3cret!",
        email_user="mfa@example.com",
        email_password="mail-pass",
        email_server="imap.example.com",
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(credentials, transport):
    client = ArloClient(credentials=credentials, transport=transport)
    client.restore_session(SessionToken(token="session-token", userId=USER_ID))
    return client


@pytest.fixture
def hub_device():
    return DeviceDescriptor.model_validate(DEVICES[0])


@pytest.fixture
def camera_device():
    return DeviceDescriptor.model_validate(DEVICES[1])


@pytest.fixture
def stream(transport):
    response = FakeStreamResponse()
    transport.stream_response = response
    return response


@pytest.fixture
def auto_reply(transport, stream):
    """Answer every notify POST to the hub with a reply carrying its transId."""

    def reply(body):
        stream.content.feed_frame({
            "transId": body["transId"],
            "action": "is",
            "resource": body["resource"],
            "from": HUB_ID,
            "properties": {"echo": body.get("properties")},
        })

    transport.responses[("POST", f"{NOTIFY}/{HUB_ID}")] = reply
    return reply
