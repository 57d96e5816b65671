"""
WebSocket endpoints for live updates.

/ws/reports/mine      - the caller's own reports
/ws/reports/all       - every report (administrators)
/ws/reports/{id}      - one report (owner or administrator)
/ws/notifications     - the caller's notifications

Report streams send {"type": "snapshot", "view": ..., "data": ...} on connect
and after every committed change to a matching report. The notification
stream sends {"type": "notification", "data": ...}.

The token is passed as ?token=<jwt>. Unauthenticated connections are closed
with 4001 before accept; forbidden streams with 4003.
"""
import asyncio
import json
from typing import Any, Callable, Optional, Tuple

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from database.models import UserType
from auth.dependencies import extract_token_from_websocket, resolve_user_from_token, user_type_of
from core.context import AppContext
from services.live_updates import AllReportsQuery, OwnReportsQuery, ReportQuery, SingleReportQuery
from services.report_service import ReportService
from core.logger import logger


router = APIRouter()

# Server-side ping interval (seconds), kept under common proxy idle timeouts
SERVER_PING_INTERVAL = 30

Push = Callable[[dict], None]


async def _authenticate(websocket: WebSocket) -> Optional[Tuple[AppContext, str, Optional[UserType]]]:
    """Resolve the caller before accept(). Closes with 4001 and returns None on failure."""
    ctx: Optional[AppContext] = getattr(websocket.app.state, "ctx", None)
    if ctx is None:
        await websocket.close(code=1011, reason="Database not initialized")
        return None

    token = extract_token_from_websocket(websocket)
    with ctx.db.get_session() as session:
        user = resolve_user_from_token(session, token)
        identity = (user.id, user_type_of(user)) if user else None

    if identity is None:
        await websocket.close(code=4001, reason="Invalid or expired token")
        return None
    return ctx, identity[0], identity[1]


async def _server_ping_loop(websocket: WebSocket, stop_event: asyncio.Event):
    """Send periodic pings from server to keep connection alive through proxies"""
    try:
        while not stop_event.is_set():
            await asyncio.sleep(SERVER_PING_INTERVAL)
            if stop_event.is_set():
                break
            try:
                await websocket.send_json({"type": "ping"})
            except Exception:
                break
    except asyncio.CancelledError:
        pass


async def _receive_loop(websocket: WebSocket, stop_event: asyncio.Event):
    """Handle incoming messages from client (only ping/pong)."""
    try:
        while not stop_event.is_set():
            try:
                data = await websocket.receive_text()
                message = json.loads(data)
                if message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON received: {e}")
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Receive loop error: {e}")
    finally:
        stop_event.set()


async def _send_loop(websocket: WebSocket, queue: asyncio.Queue, stop_event: asyncio.Event):
    """Forward queued messages to the client."""
    try:
        while not stop_event.is_set():
            message = await queue.get()
            await websocket.send_json(message)
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"Send loop error: {e}")
    finally:
        stop_event.set()


async def _serve(
    websocket: WebSocket,
    register: Callable[[Push], Any],
    unregister: Callable[[Any], None],
):
    """
    Run an accepted connection until either side goes away.

    `register` is called (in a worker thread) with a thread-safe push function
    and returns a handle that is passed to `unregister` on disconnect.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(message: dict) -> None:
        # Called from whichever thread committed the write
        loop.call_soon_threadsafe(queue.put_nowait, message)

    handle = await run_in_threadpool(register, push)

    stop_event = asyncio.Event()
    send_task = asyncio.create_task(_send_loop(websocket, queue, stop_event))
    ping_task = asyncio.create_task(_server_ping_loop(websocket, stop_event))
    receive_task = asyncio.create_task(_receive_loop(websocket, stop_event))

    try:
        done, pending = await asyncio.wait(
            [send_task, ping_task, receive_task],
            return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        stop_event.set()
        for task in (send_task, ping_task, receive_task):
            task.cancel()
        unregister(handle)


async def _serve_reports(websocket: WebSocket, ctx: AppContext, query: ReportQuery, loader):
    """Follow one report view over the connection."""
    def register(push: Push):
        def on_snapshot(snapshot):
            push({"type": "snapshot", "view": query.view, "data": snapshot})
        return ctx.live.subscribe(query, on_snapshot, loader=loader)

    logger.info(f"WebSocket subscribed to {query.describe()}")
    await _serve(websocket, register, ctx.live.unsubscribe)
    logger.info(f"WebSocket unsubscribed from {query.describe()}")


@router.websocket("/ws/reports/mine")
async def websocket_own_reports(websocket: WebSocket):
    """Live view of the caller's own reports, newest first."""
    identity = await _authenticate(websocket)
    if identity is None:
        return
    ctx, user_id, _ = identity
    await websocket.accept()

    def load():
        with ctx.db.get_session() as session:
            return [r.to_dict() for r in ReportService.list_own(session, user_id)]

    await _serve_reports(websocket, ctx, OwnReportsQuery(user_id), load)


@router.websocket("/ws/reports/all")
async def websocket_all_reports(websocket: WebSocket):
    """Live view of every report (administrators only)."""
    identity = await _authenticate(websocket)
    if identity is None:
        return
    ctx, _, user_type = identity
    if user_type != UserType.ADMIN:
        await websocket.close(code=4003, reason="Administrators only")
        return
    await websocket.accept()

    def load():
        with ctx.db.get_session() as session:
            return [r.to_dict() for r in ReportService.list_all(session, user_type)]

    await _serve_reports(websocket, ctx, AllReportsQuery(), load)


@router.websocket("/ws/reports/{report_id}")
async def websocket_single_report(websocket: WebSocket, report_id: str):
    """
    Live view of one report. The snapshot is null while the report does not
    exist (or is not visible to the caller).
    """
    identity = await _authenticate(websocket)
    if identity is None:
        return
    ctx, user_id, user_type = identity
    await websocket.accept()

    owner_id = None if user_type == UserType.ADMIN else user_id

    def load():
        with ctx.db.get_session() as session:
            report = ReportService.get_visible_report(session, report_id, user_id, user_type)
            return [report.to_dict()] if report else []

    await _serve_reports(websocket, ctx, SingleReportQuery(report_id, owner_id=owner_id), load)


@router.websocket("/ws/notifications")
async def websocket_notifications(websocket: WebSocket):
    """Live notifications for the caller (pending ones are delivered first)."""
    identity = await _authenticate(websocket)
    if identity is None:
        return
    ctx, user_id, _ = identity
    await websocket.accept()

    def register(push: Push):
        return ctx.notifications.listen(
            user_id, lambda n: push({"type": "notification", "data": n.to_dict()})
        )

    await _serve(websocket, register, lambda token: ctx.notifications.unlisten(user_id, token))
