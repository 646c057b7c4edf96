"""TCP transport for MagicHome controllers.

Keeps one connection open to the controller and closes it after it has
been idle for the disconnect delay.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from . import protocol
from .const import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DISCONNECT_DELAY,
    DEFAULT_PORT,
    DEFAULT_STATE_TIMEOUT,
    OPCODE_STATE_QUERY,
    STATE_RESPONSE_LEN,
)
from .models import DeviceState

_LOGGER = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
BACKOFF_TIME = 0.25
RETRY_BACKOFF_EXCEPTIONS = (ConnectionResetError, BrokenPipeError)

WrapFuncType = TypeVar("WrapFuncType", bound=Callable[..., Any])


class MagicHomeError(Exception):
    """Base error for the MagicHome integration."""


class TransportError(MagicHomeError):
    """Raised when talking to the controller fails."""


class InvalidStateResponse(TransportError):
    """Raised when the state response is malformed or fails its checksum."""


RETRY_EXCEPTIONS = (
    OSError,
    asyncio.TimeoutError,
    asyncio.IncompleteReadError,
    InvalidStateResponse,
)


def retry_connection_error(func: WrapFuncType) -> WrapFuncType:
    """Retry a transport call, dropping the connection between attempts."""

    async def _async_wrap_retry_connection_error(
        self: "MagicHomeTransport", *args: Any, **kwargs: Any
    ) -> Any:
        attempts = DEFAULT_ATTEMPTS
        max_attempts = attempts - 1

        for attempt in range(attempts):
            try:
                return await func(self, *args, **kwargs)
            except RETRY_EXCEPTIONS as err:
                await self.disconnect()
                if attempt >= max_attempts:
                    _LOGGER.debug(
                        "%s: %s error calling %s, reach max attempts (%s/%s): %s",
                        self.host,
                        type(err),
                        func.__name__,
                        attempt,
                        max_attempts,
                        err,
                    )
                    if isinstance(err, TransportError):
                        raise
                    raise TransportError(
                        f"{self.host}: {func.__name__} failed: {err!r}"
                    ) from err
                if isinstance(err, RETRY_BACKOFF_EXCEPTIONS):
                    _LOGGER.debug(
                        "%s: %s error calling %s, backing off %ss, retrying (%s/%s)...",
                        self.host,
                        type(err),
                        func.__name__,
                        BACKOFF_TIME,
                        attempt,
                        max_attempts,
                    )
                    await asyncio.sleep(BACKOFF_TIME)
                else:
                    _LOGGER.debug(
                        "%s: %s error calling %s, retrying (%s/%s)...: %s",
                        self.host,
                        type(err),
                        func.__name__,
                        attempt,
                        max_attempts,
                        err,
                    )

    return cast(WrapFuncType, _async_wrap_retry_connection_error)


class MagicHomeTransport:
    """Sends command frames to a controller and reads its state."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        disconnect_delay: float = DEFAULT_DISCONNECT_DELAY,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._host = host
        self._port = port
        self._disconnect_delay = disconnect_delay
        self._connect_timeout = connect_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._lock = asyncio.Lock()
        self._disconnect_timer: asyncio.TimerHandle | None = None
        self._disconnect_task: asyncio.Task | None = None

    @property
    def host(self) -> str:
        """Return the controller host."""
        return self._host

    @property
    def port(self) -> int:
        """Return the controller port."""
        return self._port

    @property
    def is_connected(self) -> bool:
        """Return True while a connection is open."""
        return self._writer is not None and not self._writer.is_closing()

    @retry_connection_error
    async def send(self, data: bytes, use_checksum: bool = True) -> bool:
        """Send one command frame, appending the checksum if asked to."""
        packet = protocol.append_checksum(data) if use_checksum else bytearray(data)
        async with self._lock:
            writer = await self._ensure_connected()
            _LOGGER.debug(
                "Sending to %s: %s", self._host, " ".join(f"0x{b:02X}" for b in packet)
            )
            writer.write(packet)
            await writer.drain()
        return True

    @retry_connection_error
    async def get_state(self, timeout: float = DEFAULT_STATE_TIMEOUT) -> DeviceState:
        """Query the controller and return its parsed state."""
        async with self._lock:
            writer = await self._ensure_connected()
            writer.write(protocol.append_checksum(protocol.build_state_query()))
            await writer.drain()
            data = await asyncio.wait_for(self._read_state_response(), timeout=timeout)

        _LOGGER.debug(
            "State response from %s: %s", self._host, " ".join(f"{b:02X}" for b in data)
        )
        state = protocol.parse_state_response(data)
        if state is None:
            raise InvalidStateResponse(
                f"{self._host}: invalid state response {data.hex()}"
            )
        return state

    async def _read_state_response(self) -> bytes:
        """Skip anything buffered before the 0x81 header, then read the response."""
        assert self._reader is not None
        while True:
            head = await self._reader.readexactly(1)
            if head[0] == OPCODE_STATE_QUERY:
                break
            _LOGGER.debug("%s: discarding byte 0x%02X", self._host, head[0])
        return head + await self._reader.readexactly(STATE_RESPONSE_LEN - 1)

    async def _ensure_connected(self) -> asyncio.StreamWriter:
        """Ensure connection to the controller is established."""
        if self._writer is not None and not self._writer.is_closing():
            self._reset_disconnect_timer()
            return self._writer

        _LOGGER.debug("%s: Not connected yet, connecting on port %s", self._host, self._port)
        self._reader, self._writer = await asyncio.wait_for(
            asyncio.open_connection(self._host, self._port),
            timeout=self._connect_timeout,
        )
        _LOGGER.debug("%s: Connected", self._host)
        self._reset_disconnect_timer()
        return self._writer

    def _reset_disconnect_timer(self) -> None:
        """Reset disconnect timer."""
        if self._disconnect_timer:
            self._disconnect_timer.cancel()
            self._disconnect_timer = None
        if self._disconnect_delay:
            self._disconnect_timer = asyncio.get_running_loop().call_later(
                self._disconnect_delay, self._timed_disconnect
            )

    def _timed_disconnect(self) -> None:
        self._disconnect_timer = None
        _LOGGER.debug("%s: Disconnecting after %ss idle", self._host, self._disconnect_delay)
        self._disconnect_task = asyncio.create_task(self._idle_disconnect())

    async def _idle_disconnect(self) -> None:
        """Disconnect unless the connection was used while waiting for the lock."""
        async with self._lock:
            if self._disconnect_timer is not None:
                _LOGGER.debug("%s: Connection used again, staying connected", self._host)
                return
            await self._close()

    async def disconnect(self) -> None:
        """Close the connection if one is open."""
        async with self._lock:
            await self._close()

    async def _close(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as ex:
            _LOGGER.debug("%s: Error while closing connection: %s", self._host, ex)
        _LOGGER.debug("%s: Disconnected", self._host)

    async def stop(self) -> None:
        """Cancel the idle timer and close the connection."""
        if self._disconnect_timer:
            self._disconnect_timer.cancel()
            self._disconnect_timer = None
        task, self._disconnect_task = self._disconnect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.disconnect()
