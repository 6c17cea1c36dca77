"""Event stream channel for an Arlo basestation.

Arlo pushes device changes, and the replies to hub commands, over a long-lived
``text/event-stream`` GET. Frames look like::

    event: message
    data: {"resource": "cameras/ABC", "action": "is", "transId": "web!...", ...}

The channel reads the stream in a background task, classifies each frame,
keeps the subscription alive with a heartbeat and matches command replies to
their callers by transaction id. One channel per hub.
"""
import asyncio
import codecs
import json
import logging
from collections import defaultdict
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    Type,
    TYPE_CHECKING,
)

import async_timeout

from arlo_cloud.core import constants
from arlo_cloud.core.config import settings
from arlo_cloud.core.exceptions import (
    ArloBaseException,
    CommandTimeoutError,
    ParseError,
    StreamClosedError,
    StreamNotOpenError,
)
from arlo_cloud.core.helpers import create_transaction_id
from arlo_cloud.models.device import DeviceDescriptor, NotifyPayload
from arlo_cloud.models.event import (
    ChannelState,
    Closed,
    DoorbellAlert,
    MotionAlert,
    Notification,
    Opened,
    Pong,
    StreamError,
    StreamEvent,
)

if TYPE_CHECKING:
    from arlo_cloud.services.client import ArloClient

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], Any]

# The vendor sometimes emits typographic quotes inside its JSON.
QUOTE_TRANSLATION = str.maketrans({
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
})

FRAME_DELIMITER = "\n\n"


def parse_frame(text: str) -> StreamEvent:
    """
    Classify one event stream frame.

    Returns:
        Opened for a 'connected' status, Closed for a 'disconnected' status or
        a 'logout' action, Notification for any other JSON object

    Raises:
        ParseError: If the frame carries no data or the data is not JSON
    """
    message = text.replace("\r\n", "\n").replace(constants.EVENT_STREAM_PREFIX, "", 1).strip()
    if message.startswith("data:"):
        message = message[len("data:"):].strip()
    message = message.translate(QUOTE_TRANSLATION)

    if not message:
        raise ParseError("Unable to parse message as no data was found")

    try:
        data = json.loads(message)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Unable to parse event data: {e}",
            {"frame": message[:200]}
        )

    if not isinstance(data, dict):
        raise ParseError("Event data is not an object", {"frame": message[:200]})

    if data.get("status") == constants.STATUS_CONNECTED:
        return Opened()
    if data.get("action") == constants.ACTION_LOGOUT or data.get("status") == constants.STATUS_DISCONNECTED:
        return Closed(reason=data.get("reason"))
    return Notification.from_payload(data)


def split_frames(buffer: str) -> Tuple[List[str], str]:
    """
    Split buffered stream text into complete frames and the unfinished tail.

    CRLF and bare CR line endings are folded to LF first. A trailing CR is
    kept in the tail since its LF may arrive with the next chunk.
    """
    held = "\r" if buffer.endswith("\r") else ""
    if held:
        buffer = buffer[:-1]
    buffer = buffer.replace("\r\n", "\n").replace("\r", "\n")

    *frames, rest = buffer.split(FRAME_DELIMITER)
    return [frame for frame in frames if frame.strip()], rest + held


class EventBus:
    """
    Typed publish/subscribe surface.

    Callbacks are registered per event class and invoked for events of exactly
    that class, so a notification that also yields a DoorbellAlert reaches
    both the Notification and the DoorbellAlert subscribers. Coroutine
    callbacks are scheduled as tasks.
    """

    def __init__(self):
        """Initialize the bus."""
        self._subscribers: Dict[Type[StreamEvent], List[EventCallback]] = defaultdict(list)
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, event_type: Type[StreamEvent], callback: EventCallback) -> Callable[[], None]:
        """
        Register a callback for one event class.

        Returns:
            A function that removes the subscription
        """
        self._subscribers[event_type].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[event_type]:
                self._subscribers[event_type].remove(callback)

        return unsubscribe

    def emit(self, event: StreamEvent) -> None:
        """Deliver an event to every subscriber of its class."""
        for callback in list(self._subscribers.get(type(event), ())):
            try:
                result = callback(event)
            except Exception as e:
                logger.error(f"Error in {type(event).__name__} subscriber: {e}")
                continue

            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error in async event subscriber: {task.exception()}")


def _consume_exception(future: asyncio.Future) -> None:
    # Failures of unobserved futures are expected on teardown.
    if not future.cancelled():
        future.exception()


class EventStreamChannel:
    """
    Push connection for one hub.

    States: IDLE -> CONNECTING -> OPEN -> (CLOSING | FAULTED) -> CLOSED.
    A CLOSED channel can be opened again; nothing reconnects automatically.
    """

    def __init__(
        self,
        client: "ArloClient",
        hub: DeviceDescriptor,
        heartbeat_interval: Optional[float] = None,
        command_timeout: Optional[float] = None,
        open_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """Initialize the channel."""
        self._client = client
        self._hub = hub
        self.heartbeat_interval = heartbeat_interval or settings.HEARTBEAT_INTERVAL
        self.command_timeout = command_timeout or settings.COMMAND_TIMEOUT
        self.open_timeout = open_timeout or settings.STREAM_OPEN_TIMEOUT
        self._sleep = sleep

        self.bus = EventBus()
        self._state = ChannelState.IDLE
        self._pending: Dict[str, asyncio.Future] = {}
        self._opened: Optional[asyncio.Future] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ChannelState.OPEN

    @property
    def hub_id(self) -> str:
        return self._hub.device_id

    @property
    def pending_count(self) -> int:
        """Number of commands still waiting for their reply."""
        return len(self._pending)

    def subscribe(self, event_type: Type[StreamEvent], callback: EventCallback) -> Callable[[], None]:
        """Subscribe to one event class. Returns the unsubscribe function."""
        return self.bus.subscribe(event_type, callback)

    def _set_state(self, state: ChannelState) -> None:
        if state is not self._state:
            logger.debug(f"Hub {self.hub_id} event stream: {self._state.value} -> {state.value}")
            self._state = state

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {"xcloudId": self._hub.xcloud_id or ""}
        headers.update(extra)
        return headers

    # ==================== Lifecycle ====================

    async def open(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Subscribe to the hub's event stream.

        Args:
            wait: Block until the vendor confirms the subscription
            timeout: Seconds to wait for the confirmation

        Raises:
            AuthenticationError: If the client is not logged in
            StreamClosedError: If the stream ends before it opens
            CommandTimeoutError: If the confirmation does not arrive in time
        """
        if self._state in (ChannelState.IDLE, ChannelState.CLOSED):
            headers = self._client.authenticated_headers()
            headers.update(self._headers(Accept=constants.EVENT_STREAM_ACCEPT))

            self._set_state(ChannelState.CONNECTING)
            self._opened = asyncio.get_running_loop().create_future()
            self._opened.add_done_callback(_consume_exception)
            self._reader_task = asyncio.create_task(self._read_loop(headers))
            logger.info(f"Opening event stream for hub {self.hub_id}")

        if wait:
            await self.wait_open(timeout)

    async def wait_open(self, timeout: Optional[float] = None) -> None:
        """Wait until the channel is OPEN."""
        if self._state is ChannelState.OPEN:
            return
        if self._opened is None:
            raise StreamNotOpenError(f"Event stream for hub {self.hub_id} was never opened")

        timeout = self.open_timeout if timeout is None else timeout
        try:
            async with async_timeout.timeout(timeout):
                await asyncio.shield(self._opened)
        except asyncio.TimeoutError:
            raise CommandTimeoutError(
                f"Event stream for hub {self.hub_id} did not open within {timeout}s"
            )

        if self._state is not ChannelState.OPEN:
            raise StreamClosedError(f"Event stream for hub {self.hub_id} closed right after opening")

    async def close(self) -> None:
        """
        Unsubscribe and tear the channel down.

        The local state becomes CLOSED even when the vendor's disconnect frame
        never arrives or the unsubscribe call fails (the error still
        propagates).
        """
        if self._state in (ChannelState.IDLE, ChannelState.CLOSED):
            return

        logger.info(f"Closing event stream for hub {self.hub_id}")
        try:
            await self._client.request("GET", constants.UNSUBSCRIBE, headers=self._headers())
        finally:
            self._shutdown(ChannelState.CLOSING, "closed by client")

            reader = self._reader_task
            if reader:
                # asyncio.wait leaves the caller's own cancellation intact.
                await asyncio.wait({reader})
                if not reader.cancelled():
                    reader.result()

    def _shutdown(self, via: ChannelState, reason: Optional[str], error: Optional[Exception] = None) -> None:
        """Stop heartbeat and reader, release every waiter, emit Closed."""
        if self._state is ChannelState.CLOSED:
            return

        self._set_state(via)
        if error is not None:
            self.bus.emit(StreamError(error))

        current = asyncio.current_task()
        if self._heartbeat_task and self._heartbeat_task is not current:
            self._heartbeat_task.cancel()
        self._heartbeat_task = None

        closed_error = StreamClosedError(
            f"Event stream for hub {self.hub_id} closed: {reason}",
            {"reason": reason}
        )
        if self._opened and not self._opened.done():
            self._opened.set_exception(closed_error)
        for waiter in list(self._pending.values()):
            if not waiter.done():
                waiter.set_exception(closed_error)
        self._pending.clear()

        if self._reader_task and self._reader_task is not current and not self._reader_task.done():
            self._reader_task.cancel()

        self._set_state(ChannelState.CLOSED)
        logger.info(f"Event stream for hub {self.hub_id} closed: {reason}")
        self.bus.emit(Closed(reason=reason))

    # ==================== Reader ====================

    async def _read_loop(self, headers: Dict[str, str]) -> None:
        """Read the stream until it ends or fails or a close frame arrives."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""

        try:
            async with self._client.transport.stream(constants.SUBSCRIBE, headers) as response:
                logger.debug(f"Event stream connected for hub {self.hub_id}, waiting for confirmation")

                async for chunk in response.content.iter_any():
                    buffer += decoder.decode(chunk)
                    frames, buffer = split_frames(buffer)
                    for frame in frames:
                        self._handle_frame(frame)
                        if self._state is ChannelState.CLOSED:
                            return

                buffer += decoder.decode(b"", final=True)
                if buffer.strip():
                    self._handle_frame(buffer)

        except asyncio.CancelledError:
            raise
        except ArloBaseException as e:
            logger.warning(f"Event stream for hub {self.hub_id} failed: {e.message}")
            self._shutdown(ChannelState.FAULTED, e.message, error=e)
            return

        self._shutdown(ChannelState.CLOSING, "stream ended")

    def _handle_frame(self, frame: str) -> None:
        try:
            event = parse_frame(frame)
        except ParseError as e:
            logger.warning(f"Malformed event stream frame: {e.message}")
            self.bus.emit(StreamError(e))
            return

        if isinstance(event, Opened):
            self._on_opened(event)
        elif isinstance(event, Closed):
            self._shutdown(ChannelState.CLOSING, event.reason)
        else:
            self._on_notification(event)

    def _on_opened(self, event: Opened) -> None:
        if self._state is not ChannelState.CONNECTING:
            logger.debug(f"Ignoring duplicate 'connected' frame for hub {self.hub_id}")
            return

        self._set_state(ChannelState.OPEN)
        if self._opened and not self._opened.done():
            self._opened.set_result(None)
        logger.info(f"Event stream opened for hub {self.hub_id}")
        self.bus.emit(event)
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    def _on_notification(self, notification: Notification) -> None:
        if notification.trans_id:
            waiter = self._pending.pop(notification.trans_id, None)
            if waiter is not None and not waiter.done():
                waiter.set_result(notification.data)

        self.bus.emit(notification)

        if notification.properties.get(constants.PROPERTY_BUTTON_PRESSED):
            self.bus.emit(DoorbellAlert(notification))
        if notification.properties.get(constants.PROPERTY_MOTION_DETECTED):
            self.bus.emit(MotionAlert(notification))

    # ==================== Heartbeat ====================

    async def _heartbeat_loop(self) -> None:
        """Ping the hub while OPEN; each sleep starts after the previous ping."""
        while self._state is ChannelState.OPEN:
            await self._sleep(self.heartbeat_interval)
            if self._state is not ChannelState.OPEN:
                break
            try:
                await self.ping()
            except ArloBaseException as e:
                logger.warning(f"Heartbeat for hub {self.hub_id} failed: {e.message}")

        logger.debug(f"Heartbeat for hub {self.hub_id} stopped")

    async def ping(self) -> Dict[str, Any]:
        """Refresh the subscription so the vendor keeps the stream alive."""
        data = await self.notify(NotifyPayload(
            action="set",
            resource=f"subscriptions/{self._client.user_id}_web",
            publish_response=False,
            properties={"devices": [self.hub_id]}
        ))
        self.bus.emit(Pong(data=data or {}))
        return data

    # ==================== Commands ====================

    async def notify(self, payload: NotifyPayload, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Send a command to the hub and wait for its correlated reply.

        The channel must already be OPEN; this never opens it.

        Args:
            payload: Command body; from/to/transId are filled in here
            timeout: Seconds to wait for the reply

        Returns:
            The reply frame's data

        Raises:
            StreamNotOpenError: If the channel is not OPEN
            CommandTimeoutError: If no reply arrives in time
            StreamClosedError: If the channel closes while waiting
        """
        if self._state is not ChannelState.OPEN:
            raise StreamNotOpenError(
                f"Event stream for hub {self.hub_id} is {self._state.value}, open it first"
            )

        timeout = self.command_timeout if timeout is None else timeout
        trans_id = create_transaction_id()
        body = payload.model_copy(update={
            "from_": f"{self._client.user_id}_web",
            "to": self.hub_id,
            "trans_id": trans_id,
        }).to_wire()

        waiter = asyncio.get_running_loop().create_future()
        waiter.add_done_callback(_consume_exception)
        self._pending[trans_id] = waiter

        try:
            await self._client.request(
                "POST",
                f"{constants.NOTIFY}/{self.hub_id}",
                body,
                headers=self._headers()
            )
            try:
                async with async_timeout.timeout(timeout):
                    return await waiter
            except asyncio.TimeoutError:
                raise CommandTimeoutError(
                    f"No reply to '{payload.action} {payload.resource}' within {timeout}s",
                    {"transId": trans_id}
                )
        finally:
            self._pending.pop(trans_id, None)
