"""
Realtime redemption updates for the child's device.

The socket first confirms the subscription, then forwards one message per
redemption status change until the client goes away.
"""
import asyncio
import logging

from fastapi import APIRouter, WebSocket

from habit_tracker.domain.services.notifier import notifier
from habit_tracker.security.token import CHILD_MODE, verify_token

logger = logging.getLogger(__name__)

router = APIRouter()

POLICY_VIOLATION = 1008


@router.websocket("/api/child/{child_id}/redemptions/ws")
async def redemption_updates(websocket: WebSocket, child_id: int, token: str = ""):
    actor = verify_token(token)
    if actor is None or actor.mode != CHILD_MODE or actor.child_id != child_id:
        logger.warning("redemption socket refused child_id=%s", child_id)
        await websocket.close(code=POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    # Publishers run in worker threads.
    unsubscribe = notifier.subscribe(child_id, lambda event: loop.call_soon_threadsafe(queue.put_nowait, event))
    receive_task = asyncio.ensure_future(websocket.receive())
    get_task = None
    try:
        await websocket.send_json({"event": "subscribed", "child_id": child_id})
        while True:
            get_task = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({receive_task, get_task}, return_when=asyncio.FIRST_COMPLETED)
            if get_task in done:
                await websocket.send_json(get_task.result())
                get_task = None
            if receive_task in done:
                if receive_task.result()["type"] == "websocket.disconnect":
                    break
                receive_task = asyncio.ensure_future(websocket.receive())
            if get_task is not None:
                get_task.cancel()
                get_task = None
    finally:
        unsubscribe()
        for task in (receive_task, get_task):
            if task is not None and not task.done():
                task.cancel()
        logger.info("redemption socket closed child_id=%s", child_id)
