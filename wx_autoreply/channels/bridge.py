"""Device notification channel using a WebSocket bridge."""

import asyncio
import json
from functools import partial
from typing import Any

from loguru import logger

from wx_autoreply.bus.events import NotificationEvent, ReplyAction
from wx_autoreply.bus.queue import NotificationBus
from wx_autoreply.channels.base import BaseChannel
from wx_autoreply.config.schema import BridgeConfig


class NotificationBridgeChannel(BaseChannel):
    """
    Channel that connects to a device-side notification bridge.

    The bridge forwards posted notifications (with their reply actions) as JSON
    frames and fires a reply action when it receives a matching ``reply`` frame.
    """

    name = "bridge"

    def __init__(self, config: BridgeConfig, bus: NotificationBus):
        super().__init__(config, bus)
        self.config: BridgeConfig = config
        self._ws = None
        self._connected = False

    async def start(self) -> None:
        """Start the channel by connecting to the bridge."""
        import websockets

        bridge_url = self.config.bridge_url

        logger.info(f"Connecting to notification bridge at {bridge_url}...")

        self._running = True
        self.bus.bind_loop()

        while self._running:
            try:
                async with websockets.connect(bridge_url) as ws:
                    self._ws = ws
                    self._connected = True
                    logger.info("Connected to notification bridge")

                    if self.config.bridge_token:
                        await ws.send(json.dumps({"type": "auth", "token": self.config.bridge_token}))
                        logger.info("Sent bridge auth token")

                    async for message in ws:
                        try:
                            self._handle_bridge_message(message)
                        except Exception as e:
                            logger.error(f"Error handling bridge message: {e}")

            except asyncio.CancelledError:
                break
            except Exception as e:
                self._connected = False
                self._ws = None
                logger.warning(f"Notification bridge connection error: {e}")

                if self._running:
                    logger.info("Reconnecting in 5 seconds...")
                    await asyncio.sleep(5)

    async def stop(self) -> None:
        """Stop the bridge channel."""
        self._running = False
        self._connected = False

        if self._ws:
            await self._ws.close()
            self._ws = None

    async def send_reply(self, key: str, action_id: str, results: dict[str, str]) -> None:
        """Ask the bridge to fire a notification reply action."""
        if not self._ws or not self._connected:
            raise RuntimeError("Notification bridge not connected")

        payload = {
            "type": "reply",
            "key": key,
            "actionId": action_id,
            "results": results,
        }
        await self._ws.send(json.dumps(payload, ensure_ascii=False))

    def _handle_bridge_message(self, raw: str) -> None:
        """Handle a frame from the bridge."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {raw[:100]}")
            return

        msg_type = data.get("type")

        if msg_type == "notification":
            self._handle_notification(self._to_event(data))

        elif msg_type == "status":
            status = data.get("status")
            logger.info(f"Bridge status: {status}")

            if status == "connected":
                self._connected = True
            elif status == "disconnected":
                self._connected = False

        elif msg_type == "error":
            logger.error(f"Notification bridge error: {data.get('error')}")

    def _to_event(self, data: dict[str, Any]) -> NotificationEvent:
        key = str(data.get("key", ""))
        actions: list[ReplyAction] = []
        for item in data.get("actions") or []:
            if not isinstance(item, dict):
                continue
            action_id = str(item.get("id", ""))
            inputs = [str(k) for k in item.get("inputs") or [] if str(k)]
            actions.append(
                ReplyAction(
                    title=str(item.get("title", "")),
                    input_keys=inputs,
                    send=partial(self.send_reply, key, action_id),
                )
            )
        return NotificationEvent(
            package=str(data.get("package", "")),
            title=data.get("title"),
            text=data.get("text"),
            actions=actions,
            key=key,
            metadata={"posted_at": data.get("postedAt")},
        )
