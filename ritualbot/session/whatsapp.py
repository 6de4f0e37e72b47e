"""WhatsApp session over a Node.js bridge (whatsapp-web.js), spoken to via WebSocket.

Bridge frames are JSON objects with a "type". Lifecycle frames (qr, loading,
authenticated, auth_failure, ready, disconnected) and group messages become
events on the bus. Requests (initialize, destroy, send, get_chat, get_state)
carry a request_id and are answered by a "result" frame.
Deduplication by message id stops the same inbound event being handled twice.
"""

import asyncio
import json
import time
import uuid
from typing import Any

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed

from ritualbot.bus.events import GROUP_SUFFIX, Chat, GroupMessage, LifecycleEvent
from ritualbot.bus.queue import EventBus
from ritualbot.config.schema import WhatsAppConfig
from ritualbot.errors import ConnectionLostError, TransportError
from ritualbot.session.base import BaseSession

# Ignore messages whose id was already seen in the last N seconds
_DEDUP_SECONDS = 120


class WhatsAppSession(BaseSession):
    """Session backed by the WhatsApp websocket bridge."""

    name = "whatsapp"

    def __init__(self, config: WhatsAppConfig, bus: EventBus):
        super().__init__(bus)
        self.config = config
        self.wid: str | None = None
        self._ws = None
        self._reader_task: asyncio.Task | None = None
        self._ready = False
        self._closing = False
        self._pending: dict[str, asyncio.Future] = {}
        self._processed_ids: dict[str, float] = {}

    async def initialize(self) -> None:
        """Connect to the bridge (if needed) and ask it to start the WhatsApp client."""
        if self._ws is None:
            logger.info(f"Connecting to WhatsApp bridge at {self.config.bridge_url}...")
            self._ws = await websockets.connect(self.config.bridge_url)
            self._closing = False
            self._reader_task = asyncio.create_task(self._read_loop(self._ws), name="bridge-reader")
            logger.info("Connected to WhatsApp bridge")
        await self._request("initialize")

    async def destroy(self) -> None:
        self._ready = False
        if self._ws is None:
            return
        self._closing = True
        try:
            await self._request("destroy")
        except TransportError as e:
            logger.debug(f"Bridge destroy request failed: {e}")
        ws, self._ws = self._ws, None
        try:
            await ws.close()
        finally:
            if self._reader_task and not self._reader_task.done():
                self._reader_task.cancel()
                try:
                    await self._reader_task
                except asyncio.CancelledError:
                    pass
            self._reader_task = None
            self._fail_pending(ConnectionLostError("Session destroyed"))

    def is_ready(self) -> bool:
        return self._ready and self._ws is not None

    async def get_state(self) -> str | None:
        data = await self._request("get_state")
        if isinstance(data, dict):
            return data.get("state")
        return data

    async def get_chat(self, chat_id: str) -> Chat | None:
        data = await self._request("get_chat", chat_id=chat_id)
        if not data:
            return None
        return Chat(
            id=data.get("id") or chat_id,
            name=data.get("name") or "",
            is_group=bool(data.get("isGroup")),
        )

    async def send_message(self, chat_id: str, text: str) -> None:
        logger.info(f"WhatsApp send: to={chat_id[:30]} len={len(text)}")
        await self._request("send", to=chat_id, text=text)

    async def _request(self, kind: str, **fields: Any) -> Any:
        """Send a request frame and wait for its result frame."""
        if self._ws is None:
            raise ConnectionLostError("WhatsApp bridge not connected")
        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        timeout = self.config.request_timeout_s
        try:
            await self._ws.send(json.dumps({"type": kind, "request_id": request_id, **fields}))
            result = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"No reply to '{kind}' within {timeout:.0f}s") from e
        except (ConnectionClosed, OSError) as e:
            raise ConnectionLostError(f"Bridge connection lost during '{kind}': {e}") from e
        finally:
            self._pending.pop(request_id, None)
        if not result.get("ok", True):
            raise TransportError(result.get("error") or f"Bridge request '{kind}' failed")
        return result.get("data")

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    async def _read_loop(self, ws) -> None:
        try:
            async for raw in ws:
                try:
                    await self._handle_bridge_message(raw)
                except Exception as e:
                    logger.error(f"Error handling bridge message: {e}")
        except ConnectionClosed as e:
            logger.warning(f"WhatsApp bridge connection closed: {e}")
        if self._closing or ws is not self._ws:
            return
        self._ws = None
        self._ready = False
        self._fail_pending(ConnectionLostError("Bridge connection lost"))
        await self._emit(LifecycleEvent(kind="disconnected", detail="bridge connection lost"))

    def _is_duplicate(self, msg_id: str) -> bool:
        if not msg_id:
            return False
        now = time.time()
        for k in [k for k, t in self._processed_ids.items() if now - t > _DEDUP_SECONDS]:
            del self._processed_ids[k]
        if msg_id in self._processed_ids:
            return True
        self._processed_ids[msg_id] = now
        return False

    async def _handle_bridge_message(self, raw: str) -> None:
        """Handle a frame from the bridge."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {raw[:100]}")
            return

        msg_type = data.get("type")

        if msg_type == "result":
            future = self._pending.get(data.get("request_id") or "")
            if future and not future.done():
                future.set_result(data)
            return

        if msg_type == "message":
            msg_id = (data.get("id") or "").strip()
            if self._is_duplicate(msg_id):
                logger.debug(f"Ignoring duplicate message id={msg_id!r}")
                return
            sender = (data.get("from") or "").strip()
            is_group = bool(data.get("isGroup")) or sender.endswith(GROUP_SUFFIX)
            chat = Chat(id=sender, name=data.get("chatName") or "", is_group=is_group)
            await self._emit(GroupMessage(
                chat=chat,
                sender_chat_id=sender,
                text=data.get("body") or "",
                from_group=is_group,
                message_id=msg_id or None,
            ))
            return

        if msg_type == "ready":
            self._ready = True
            self.wid = data.get("wid")
            await self._emit(LifecycleEvent(kind="ready"))
        elif msg_type == "disconnected":
            self._ready = False
            await self._emit(LifecycleEvent(kind="disconnected", detail=data.get("reason") or ""))
        elif msg_type == "auth_failure":
            await self._emit(LifecycleEvent(kind="auth_failure", detail=data.get("message") or ""))
        elif msg_type == "authenticated":
            await self._emit(LifecycleEvent(kind="authenticated"))
        elif msg_type == "loading":
            await self._emit(LifecycleEvent(kind="loading", percent=int(data.get("percent") or 0)))
        elif msg_type == "qr":
            await self._emit(LifecycleEvent(kind="qr", detail=data.get("qr") or ""))
        elif msg_type == "error":
            logger.error(f"WhatsApp bridge error: {data.get('error')}")
        else:
            logger.debug(f"Unhandled bridge frame type: {msg_type!r}")
