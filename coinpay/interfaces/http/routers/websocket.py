"""WebSocket endpoint pushing order updates to the browser."""
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from coinpay.core.container import ApplicationContainer
from coinpay.interfaces.http.deps import get_container
from coinpay.modules.orders import OrderNotFound
from coinpay.schemas import OrderResponse, WSMessage

logger = logging.getLogger(__name__)

router = APIRouter()

MESSAGE_SNAPSHOT = "order_snapshot"
MESSAGE_HEARTBEAT = "heartbeat"
MESSAGE_ERROR = "error"


@router.websocket("/ws/orders/{order_id}")
async def order_socket(websocket: WebSocket, order_id: str, container: ApplicationContainer = Depends(get_container)):
    manager = container.connections
    try:
        order = await container.orders.get_order(order_id)
    except OrderNotFound:
        await websocket.close(code=1008, reason="unknown order")
        return

    await manager.connect(order_id, websocket)
    try:
        snapshot = WSMessage(type=MESSAGE_SNAPSHOT, data=OrderResponse.from_order(order).model_dump(mode="json"))
        await websocket.send_text(snapshot.model_dump_json())
        while True:
            raw = await websocket.receive_text()
            try:
                message = WSMessage.model_validate(json.loads(raw))
            except ValueError:
                await websocket.send_text(WSMessage(type=MESSAGE_ERROR, data={"message": "invalid message"}).model_dump_json())
                continue
            if message.type == MESSAGE_HEARTBEAT:
                await websocket.send_text(WSMessage(type=MESSAGE_HEARTBEAT).model_dump_json())
    except WebSocketDisconnect:
        logger.info("Order %s watcher disconnected", order_id)
    finally:
        await manager.disconnect(order_id, websocket)
