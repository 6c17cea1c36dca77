"""Arlo cloud session client.

Owns the session token and the cookie-carrying transport after login and
exposes device enumeration plus generic authenticated dispatch. Device-scoped
handles (:class:`Basestation`, :class:`Camera`) are created from here.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from pydantic import ValidationError

from arlo_cloud.core import constants
from arlo_cloud.core.config import Settings, settings as default_settings
from arlo_cloud.core.exceptions import (
    AuthenticationError,
    DeviceNotFoundError,
    ParseError,
)
from arlo_cloud.models.auth import Credentials, SessionToken
from arlo_cloud.models.device import DeviceDescriptor
from arlo_cloud.services.authenticator import Authenticator
from arlo_cloud.services.http_transport import HttpTransport

if TYPE_CHECKING:
    from arlo_cloud.services.basestation import Basestation
    from arlo_cloud.services.camera import Camera

logger = logging.getLogger(__name__)


class ArloClient:
    """
    Client for the Arlo cloud API.

    Handles:
    - Login (delegated to Authenticator)
    - Session token and cookie ownership
    - Device listing and lookup
    - Generic authenticated requests for device handles
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        transport: Optional[HttpTransport] = None,
        authenticator: Optional[Authenticator] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the client.

        Args:
            credentials: Account and mailbox credentials. Loaded from settings
                when omitted.
            transport: HTTP transport; a new one is created when omitted
            authenticator: Override the login driver (tests, custom mailbox)
            settings: Settings used when credentials are omitted

        Raises:
            ConfigurationError: If a required credential is missing
        """
        self.credentials = credentials or Credentials.from_settings(settings or default_settings)
        self.transport = transport or HttpTransport()
        self._authenticator = authenticator
        self._session: Optional[SessionToken] = None

    async def __aenter__(self) -> "ArloClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def session(self) -> Optional[SessionToken]:
        """Current session token, None until login."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def user_id(self) -> str:
        return self._require_session().user_id

    def _require_session(self) -> SessionToken:
        if self._session is None:
            raise AuthenticationError("Client must be logged in first")
        return self._session

    @property
    def authenticator(self) -> Authenticator:
        if self._authenticator is None:
            self._authenticator = Authenticator(self.credentials, self.transport)
        return self._authenticator

    async def login(self) -> SessionToken:
        """
        Log in to Arlo (MFA via the configured mailbox).

        Returns:
            The session token, also kept on the client
        """
        session = await self.authenticator.login()
        self._session = session
        return session

    def restore_session(self, session: SessionToken) -> None:
        """Adopt a previously obtained session token without running MFA."""
        logger.info(f"Restoring session for user id {session.user_id}")
        self._session = session

    async def logout(self) -> None:
        """Log out of Arlo and forget the session."""
        if self._session is None:
            return
        await self.request("PUT", constants.LOGOUT)
        logger.info(f"Logged out user id {self._session.user_id}")
        self._session = None

    async def close(self) -> None:
        """Close the HTTP transport."""
        await self.transport.close()

    def authenticated_headers(self) -> Dict[str, str]:
        """Base headers plus the current bearer token. Rebuilt on every call."""
        session = self._require_session()
        headers = dict(constants.BASE_HEADERS)
        headers["Authorization"] = session.token
        return headers

    async def request(
        self,
        verb: str,
        url: str,
        body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Send an authenticated request through the transport.

        Args:
            verb: HTTP method
            url: Absolute URL
            body: JSON body
            headers: Extra headers merged over the authenticated set

        Returns:
            The unwrapped envelope data
        """
        merged = self.authenticated_headers()
        if headers:
            merged.update(headers)
        return await self.transport.request(verb, url, merged, body)

    async def list_devices(
        self,
        device_types: Optional[Iterable[str]] = None,
        provisioned: Optional[bool] = None
    ) -> List[DeviceDescriptor]:
        """
        Get the account's devices in server order.

        Args:
            device_types: Keep only these types, e.g. ["basestation", "camera"]
            provisioned: True keeps provisioned devices, False the others,
                None keeps all

        Returns:
            List of device descriptors (never cached)
        """
        data = await self.request("GET", constants.DEVICES)
        if not isinstance(data, list):
            raise ParseError("Unexpected devices response", {"response": str(data)[:200]})

        try:
            devices = [DeviceDescriptor.model_validate(item) for item in data]
        except ValidationError as e:
            raise ParseError(
                "Unexpected devices response",
                {"errors": e.errors(include_url=False)}
            )

        types = list(device_types or [])
        if types:
            devices = [d for d in devices if d.device_type in types]

        if provisioned is True:
            devices = [d for d in devices if d.state == constants.DEVICE_STATE_PROVISIONED]
        elif provisioned is False:
            devices = [d for d in devices if d.state != constants.DEVICE_STATE_PROVISIONED]

        logger.debug(f"Fetched {len(devices)} device(s)")
        return devices

    async def get_device(self, **criteria: Any) -> DeviceDescriptor:
        """
        Get the first device whose fields equal every criterion.

        Example: ``await client.get_device(device_type="basestation")``

        Raises:
            DeviceNotFoundError: If no device matches
        """
        devices = await self.list_devices()
        for device in devices:
            if device.matches(criteria):
                return device

        raise DeviceNotFoundError(
            "Failed to get device with given properties",
            {"criteria": criteria}
        )

    def basestation(self, device: DeviceDescriptor) -> "Basestation":
        """Create a hub handle (owns the event stream) for a device."""
        from arlo_cloud.services.basestation import Basestation
        return Basestation(self, device)

    def camera(self, device: DeviceDescriptor) -> "Camera":
        """Create a camera handle for a device."""
        from arlo_cloud.services.camera import Camera
        return Camera(self, device)
