"""
Client-side connection session for the /ws dispatch channel.

One DispatchSession per client process keeps a single WebSocket open to
the hub, using aiohttp instead of a blocking client so it fits into any
asyncio program (responder simulator, dispatcher console, tests).

Responsibilities:
- Announce the requester identity (AUTH) first thing on every connection
- Parse each inbound frame into a ServerMessage and hand it to on_message;
  malformed frames are logged and skipped, never fatal
- Reconnect after an unexpected close, waiting
  min(reconnect_interval * (attempts + 1), max_reconnect_delay) seconds,
  with the attempt counter reset after every successful connection
- send() reports failure with False instead of raising
- close() is final: no reconnect after an explicit close

open_session() / get_session() / close_session() manage the canonical
session for the process; opening a new one closes the previous one so the
hub never sees duplicate AUTH registrations from the same process.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

import aiohttp
from pydantic import ValidationError

from swiftaid.models.entities import CamelModel
from swiftaid.models.messages import AuthMessage, ServerMessage, encode_message, parse_server_message

_LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[ServerMessage], Union[None, Awaitable[None]]]


def reconnect_delay(attempts: int, interval: float, max_delay: float) -> float:
    """Linear backoff: interval, 2*interval, 3*interval, … capped at max_delay."""
    return min(interval * (attempts + 1), max_delay)


class DispatchSession:
    """A self-healing WebSocket connection to the dispatch hub."""

    def __init__(
        self,
        url: str,
        requester_id: int,
        on_message: Optional[MessageHandler] = None,
        reconnect_interval: float = 3.0,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self.url = url
        self.requester_id = requester_id
        self.on_message = on_message
        self.reconnect_interval = reconnect_interval
        self.max_reconnect_delay = max_reconnect_delay

        self.reconnect_count = 0  # consecutive failed / dropped connections
        self._http: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._task: Optional[asyncio.Task] = None
        self._closing = False
        self._connected = asyncio.Event()

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        """Connectivity flag for the UI; the only place transport faults show up."""
        return self._ws is not None and not self._ws.closed

    @property
    def closed(self) -> bool:
        return self._closing

    async def wait_connected(self, timeout: Optional[float] = None) -> bool:
        """Wait until a connection is up (and AUTH sent). False on timeout."""
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
            return True
        except (asyncio.TimeoutError, TimeoutError):
            return False

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def open(self) -> None:
        """Start the background connect / read / reconnect loop."""
        if self._task is not None and not self._task.done():
            return
        self._closing = False
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession()
        self._task = asyncio.create_task(self._run(), name=f"dispatch-session-{self.requester_id}")

    async def close(self) -> None:
        """Disconnect and suppress automatic reconnect."""
        self._closing = True
        self._connected.clear()
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._http is not None:
            await self._http.close()
            self._http = None
        self._ws = None
        _LOGGER.info("Dispatch session closed (requester %d)", self.requester_id)

    async def reconnect(self) -> None:
        """Drop the current socket and connect again right away."""
        if self._closing:
            return
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        self._connected.clear()
        self.reconnect_count = 0
        await self.open()

    # ── Sending ───────────────────────────────────────────────────────────────

    async def send(self, message: Union[CamelModel, dict[str, Any], str]) -> bool:
        """
        Send one frame. Returns False (and logs) when no connection is open
        or the write fails; never raises for transport problems.
        """
        if not self.connected:
            _LOGGER.warning("WebSocket not connected, message not sent")
            return False

        if isinstance(message, CamelModel):
            payload = encode_message(message)
        elif isinstance(message, dict):
            payload = json.dumps(message)
        else:
            payload = message

        try:
            await self._ws.send_str(payload)
            return True
        except (ConnectionResetError, aiohttp.ClientError, RuntimeError) as e:
            _LOGGER.warning("WebSocket send failed: %s", e)
            return False

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _run(self) -> None:
        while not self._closing:
            try:
                async with self._http.ws_connect(self.url) as ws:
                    self._ws = ws
                    self.reconnect_count = 0
                    await ws.send_str(encode_message(AuthMessage(requester_id=self.requester_id)))
                    self._connected.set()
                    _LOGGER.info("WebSocket connected to %s (requester %d)", self.url, self.requester_id)
                    await self._read(ws)
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
                _LOGGER.warning("WebSocket connection to %s failed: %s", self.url, e)
            finally:
                self._ws = None
                self._connected.clear()

            if self._closing:
                break

            delay = reconnect_delay(self.reconnect_count, self.reconnect_interval, self.max_reconnect_delay)
            self.reconnect_count += 1
            _LOGGER.info("Reconnecting in %.1fs (attempt %d)", delay, self.reconnect_count)
            await asyncio.sleep(delay)

    async def _read(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                await self._dispatch(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                _LOGGER.warning("WebSocket error: %s", ws.exception())
                break
        _LOGGER.info("WebSocket disconnected (requester %d)", self.requester_id)

    async def _dispatch(self, raw: str) -> None:
        try:
            message = parse_server_message(raw)
        except ValidationError as e:
            _LOGGER.error("Error parsing WebSocket message: %s", e.errors()[0]["msg"])
            return

        if self.on_message is None:
            return
        try:
            result = self.on_message(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            _LOGGER.error("Message handler failed on %s: %s", message.type, e)


# ── Process-wide canonical session ────────────────────────────────────────────

class SessionHolder:
    """Holds the one canonical session of this process."""

    session: Optional[DispatchSession] = None


# Module-level singleton: go through the functions below
session_holder = SessionHolder()


async def open_session(
    url: str,
    requester_id: int,
    on_message: Optional[MessageHandler] = None,
    reconnect_interval: float = 3.0,
    max_reconnect_delay: float = 30.0,
) -> DispatchSession:
    """Open a new canonical session, closing (superseding) any previous one."""
    previous = session_holder.session
    if previous is not None:
        _LOGGER.info("Superseding previous dispatch session (requester %d)", previous.requester_id)
        await previous.close()

    session = DispatchSession(
        url,
        requester_id,
        on_message=on_message,
        reconnect_interval=reconnect_interval,
        max_reconnect_delay=max_reconnect_delay,
    )
    session_holder.session = session
    await session.open()
    return session


def get_session() -> Optional[DispatchSession]:
    """The canonical session, or None when none is open."""
    return session_holder.session


async def close_session() -> None:
    session = session_holder.session
    session_holder.session = None
    if session is not None:
        await session.close()
