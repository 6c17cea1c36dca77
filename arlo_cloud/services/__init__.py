"""Services for the Arlo cloud client."""
from arlo_cloud.services.authenticator import Authenticator
from arlo_cloud.services.basestation import Basestation
from arlo_cloud.services.camera import Camera
from arlo_cloud.services.client import ArloClient
from arlo_cloud.services.event_stream import EventBus, EventStreamChannel, parse_frame
from arlo_cloud.services.http_transport import HttpTransport
from arlo_cloud.services.mailbox import MailboxScanner

__all__ = [
    "ArloClient",
    "Authenticator",
    "Basestation",
    "Camera",
    "EventBus",
    "EventStreamChannel",
    "HttpTransport",
    "MailboxScanner",
    "parse_frame",
]
