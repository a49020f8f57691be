from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from core.state import get_simulator
from services.simulator import OrderSimulator
from utils.broadcast import order_connections
import json

router = APIRouter()

class ConnectionManager:
    def __init__(self, connections: list):
        self.active_connections: list[WebSocket] = connections

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

orders_manager = ConnectionManager(order_connections)

@router.websocket("/ws/orders")
async def websocket_orders(websocket: WebSocket, simulator: OrderSimulator = Depends(get_simulator)):
    await orders_manager.connect(websocket)

    try:
        # Send initial snapshot, stage changes follow as order_update events
        active = [order.model_dump(mode="json") for order in simulator.list_active()]
        await websocket.send_text(json.dumps({"event": "active_orders", "data": active}))

        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        orders_manager.disconnect(websocket)
