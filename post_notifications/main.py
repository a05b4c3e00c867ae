# post_notifications/main.py
from dotenv import load_dotenv

# 1) load environment from .env before reading config
load_dotenv()

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from post_notifications import config
from post_notifications.api.events import router as events_router
from post_notifications.api.notifications import router as notifications_router
from post_notifications.api.websocket import router as ws_router
from post_notifications.infra.servicebus_consumer import consume_interactions
from post_notifications.infra.store import NotificationStore
from post_notifications.infra.table_client import build_store
from post_notifications.services.dispatch import NotificationDispatcher
from post_notifications.services.notification_service import NotificationService
from post_notifications.services.websocket_manager import WebSocketManager

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(store: Optional[NotificationStore] = None, consume_queue: bool = True) -> FastAPI:
    app = FastAPI(title="Post Notification Service")

    # 2) CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 3) one service instance per app, reached through app.state
    service = NotificationService(store if store is not None else build_store())
    app.state.notification_service = service
    app.state.dispatcher = NotificationDispatcher(service)
    app.state.ws_manager = WebSocketManager(service)
    app.state.consumer_task = None

    # 4) REST + WebSocket routes
    app.include_router(notifications_router)
    app.include_router(events_router)
    app.include_router(ws_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.on_event("startup")
    async def startup_event():
        # 5) Service Bus consumer in the background
        if consume_queue:
            app.state.consumer_task = asyncio.create_task(consume_interactions(app.state.dispatcher))

    @app.on_event("shutdown")
    async def shutdown_event():
        task = app.state.consumer_task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await service.drain()
        await service.store.close()

    return app


app = create_app()
