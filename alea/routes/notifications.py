# alea/routes/notifications.py
import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..schemas import Notification
from ..services import Services, get_services
from .auth import AuthError, AuthUser, current_user, verify_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
def list_notifications(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    notifications = services.channel.list(user.user_id)
    return {
        "notifications": [n.to_payload() for n in notifications],
        "unread_count": sum(1 for n in notifications if not n.is_read),
    }


@router.post("/read-all")
def mark_all_read(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    return {"marked_read": services.channel.mark_all_read(user.user_id)}


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: str,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    services.channel.mark_read(user.user_id, notification_id)
    return {"id": notification_id, "isRead": True}


@router.delete("")
def clear_all(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    return {"cleared": services.channel.clear_all(user.user_id)}


@router.delete("/{notification_id}")
def clear_notification(
    notification_id: str,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    services.channel.clear(user.user_id, notification_id)
    return {"cleared": 1}


@router.websocket("/ws")
async def notification_stream(websocket: WebSocket, token: str = ""):
    """
    Live notification list. Sends the full list, newest first, on connect
    and after every change. Browsers cannot set headers on WebSockets, so
    the bearer token comes as a query parameter.
    """
    services: Services = websocket.app.state.services
    try:
        user = verify_token(services.settings, token)
    except AuthError as e:
        logger.warning(f"Notification stream rejected: {e}")
        await websocket.close(code=1008)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(notifications: List[Notification]):
        # Store listeners fire on whichever thread committed the write
        payload = [n.to_payload() for n in notifications]
        loop.call_soon_threadsafe(queue.put_nowait, payload)

    async def pump():
        while True:
            await websocket.send_json(await queue.get())

    unsubscribe = services.channel.subscribe(user.user_id, on_change)
    sender = asyncio.create_task(pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Notification stream closed for user {user.user_id}")
    finally:
        unsubscribe()
        sender.cancel()
