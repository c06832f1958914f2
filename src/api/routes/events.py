"""Websocket stream of an owner's job events."""

import asyncio
import contextlib

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from src.infrastructure.broadcasting.progress_broadcaster import (
    BroadcastEvent,
    ProgressBroadcaster,
)
from ..dependencies import get_broadcaster

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["events"])

# Events buffered per connection before the oldest are dropped
QUEUE_SIZE = 256


@router.websocket("/events/{owner_id}")
async def owner_events(
    websocket: WebSocket,
    owner_id: str,
    broadcaster: ProgressBroadcaster = Depends(get_broadcaster),
):
    await websocket.accept()
    queue: asyncio.Queue[BroadcastEvent] = asyncio.Queue(maxsize=QUEUE_SIZE)

    async def enqueue(event: BroadcastEvent) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(event)

    async def forward() -> None:
        while True:
            event = await queue.get()
            await websocket.send_json(event.to_dict())

    unsubscribe = broadcaster.subscribe(owner_id, enqueue)
    sender = asyncio.create_task(forward())
    logger.info("Event stream opened", owner_id=owner_id)
    try:
        # Client messages are ignored; reading surfaces the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Event stream closed", owner_id=owner_id)
    finally:
        unsubscribe()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
