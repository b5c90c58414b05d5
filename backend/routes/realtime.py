# backend/routes/realtime.py
"""Live views over WebSockets.

Each connection owns one view subscribed to the change feed. The feed calls
back on whatever thread committed, so events are queued onto this loop and
the view re-fetches here before pushing the fresh state to the client.
"""
import asyncio
import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from database import get_db
from services import guards
from services.admin_console import AdminConsole
from services.auth_modal import AuthModalController
from services.auth_session import AuthSession
from services.catalog import CatalogView, menu_card
from services.order_tracking import OrderTrackingView, order_to_out
from utils.realtime import ChangeEvent, change_feed, queue_forwarder

router = APIRouter(prefix="/realtime", tags=["Realtime"])
logger = logging.getLogger(__name__)


def _authorize(db: Session, token: Optional[str], admin: bool = False) -> Optional[AuthSession]:
    session = AuthSession(db).restore(token)
    modal = AuthModalController()
    result = guards.require_admin(session, modal) if admin else guards.require_auth(session, modal)
    return result.session if isinstance(result, guards.Authorized) else None


async def _serve(websocket: WebSocket, view, snapshot: Callable[[], dict],
                 render: Callable[[ChangeEvent], dict]):
    queue: asyncio.Queue = asyncio.Queue()
    view.subscribe(change_feed, queue_forwarder(asyncio.get_running_loop(), queue))

    async def push():
        while True:
            change = await queue.get()
            await websocket.send_json(jsonable_encoder(render(change)))

    async def listen():
        # Client messages are ignored; this only notices the disconnect
        while True:
            await websocket.receive_text()

    try:
        await websocket.send_json(jsonable_encoder({"type": "snapshot", **snapshot()}))
        tasks = [asyncio.create_task(push()), asyncio.create_task(listen())]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    except WebSocketDisconnect:
        pass
    finally:
        view.close()
        logger.debug("Realtime view closed")


@router.websocket("/menu")
async def menu_updates(websocket: WebSocket, db: Session = Depends(get_db)):
    await websocket.accept()
    view = CatalogView(db)
    view.fetch()

    def snapshot():
        return {"categories": view.categories, "items": [menu_card(i) for i in view.filtered]}

    def render(change: ChangeEvent):
        message = view.handle_change(change)
        return {"type": "change", "event": change.as_dict(), "notification": message, **snapshot()}

    await _serve(websocket, view, snapshot, render)


@router.websocket("/orders")
async def order_updates(websocket: WebSocket, token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    session = _authorize(db, token)
    if session is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()
    view = OrderTrackingView(db, session.user.id)
    view.fetch()

    def snapshot():
        return {
            "active": [order_to_out(o) for o in view.active],
            "past": [order_to_out(o) for o in view.past],
        }

    def render(change: ChangeEvent):
        view.handle_change(change)
        return {"type": "change", "event": change.as_dict(), **snapshot()}

    await _serve(websocket, view, snapshot, render)


@router.websocket("/admin")
async def admin_updates(websocket: WebSocket, token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    session = _authorize(db, token, admin=True)
    if session is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()
    console = AdminConsole(db, user_id=session.user.id)
    console.refresh()

    def snapshot():
        return {
            "stats": console.stats,
            "orders": console.orders,
            "items": [menu_card(i) for i in console.items],
        }

    def render(change: ChangeEvent):
        channel = console.handle_change(change)
        payload = {"type": "change", "event": change.as_dict(), "channel": channel}
        if channel == "orders":
            payload.update(orders=console.orders, stats=console.stats)
        elif channel == "items":
            payload["items"] = [menu_card(i) for i in console.items]
        else:
            payload["variants"] = [
                {"id": v.id, "food_item_id": v.food_item_id, "label": v.label, "price": v.price}
                for v in console.variants
            ]
        return payload

    await _serve(websocket, view=console, snapshot=snapshot, render=render)
