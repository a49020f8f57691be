from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api.cart import router as cart_router
from api.orders import router as orders_router
from api.websocket import router as websocket_router
from core.redis_client import test_connection
from core.state import simulator
from utils.broadcast import broadcast_orders
import asyncio
import logging
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()

    def push_update(order):
        # tick() may run off the event loop thread
        asyncio.run_coroutine_threadsafe(
            broadcast_orders("order_update", order.model_dump(mode="json")), loop
        )

    unsubscribe = simulator.subscribe_all(push_update)
    logger.info("Order updates bridged to websocket clients")
    try:
        yield
    finally:
        unsubscribe()
        await simulator.stop()

app = FastAPI(
    title="DishDash Order Simulation API",
    description="Simulated order lifecycle, cart and live tracking",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(cart_router, prefix="/api/v1", tags=["cart"])
app.include_router(orders_router, prefix="/api/v1", tags=["orders"])
app.include_router(websocket_router, prefix="/api/v1", tags=["websocket"])

@app.get("/")
async def root():
    return {"message": "DishDash Order Simulation Running ✅"}

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "redis": test_connection(),
        "active_orders": len(simulator.list_active()),
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
