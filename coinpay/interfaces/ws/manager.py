"""Connection manager for browser clients watching order updates."""
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from fastapi import WebSocket

from coinpay.modules.orders.models import OrderStatus

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self) -> None:
        self.order_connections: Dict[str, Set[WebSocket]] = {}

    async def connect(self, order_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.register(order_id, websocket)

    def register(self, order_id: str, websocket: WebSocket) -> None:
        self.order_connections.setdefault(order_id, set()).add(websocket)
        logger.info("Client subscribed to order %s", order_id)

    async def disconnect(self, order_id: str, websocket: WebSocket) -> None:
        sockets = self.order_connections.get(order_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            self.order_connections.pop(order_id, None)
        logger.info("Client unsubscribed from order %s", order_id)

    async def send_message(self, order_id: str, message: dict) -> int:
        delivered = 0
        for websocket in list(self.order_connections.get(order_id, ())):
            try:
                await websocket.send_text(json.dumps(message))
                delivered += 1
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Sending update for order %s failed: %s", order_id, exc)
                await self.disconnect(order_id, websocket)
        return delivered

    def subscriber_count(self, order_id: Optional[str] = None) -> int:
        if order_id is not None:
            return len(self.order_connections.get(order_id, ()))
        return sum(len(sockets) for sockets in self.order_connections.values())


class WebSocketNotifier:
    """Reconciliation notifier pushing updates to subscribed browsers."""

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager

    async def on_order_update(self, order_id: str, status: OrderStatus, detail: Optional[str]) -> None:
        await self._manager.send_message(
            order_id,
            {
                "type": "order_update",
                "data": {
                    "order_id": order_id,
                    "status": status.value,
                    "confirmation": status.confirmation,
                    "detail": detail,
                    "sent_at": datetime.now(timezone.utc).isoformat(),
                },
            },
        )
