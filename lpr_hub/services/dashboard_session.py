# lpr_hub/services/dashboard_session.py
"""
Dashboard WebSocket sessions.

Each connected client gets its own DashboardSession:
  Connecting → Open → Closing → Closed

While Open, the session pushes a full snapshot immediately, then every
DASHBOARD_PUSH_INTERVAL_SECONDS, and additionally once per burst of change
notifications. Clients only ever receive `dashboard_update` snapshots; the
internal *_update cues never leave the process.

Each session runs in its own tasks, so a slow or dead client cannot hold up
the others or the ingestion path (publishing only sets a flag).
"""

import asyncio
import enum
from typing import Optional
from fastapi import WebSocket
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState
from lpr_hub.config import settings
from lpr_hub.schemas.dashboard import DashboardUpdate
from lpr_hub.services.change_notifier import ChangeNotifier, Subscription
from lpr_hub.services.entity_store import EntityStore
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)


class SessionState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class DashboardSession:
    def __init__(self, websocket: WebSocket, store: EntityStore, notifier: ChangeNotifier,
                 interval: float, debounce: float = 0.0, send_timeout: Optional[float] = None):
        self.websocket = websocket
        self.state = SessionState.CONNECTING
        self.pushes = 0
        self._store = store
        self._notifier = notifier
        self._interval = interval
        self._debounce = debounce
        self._send_timeout = send_timeout
        self._subscription: Optional[Subscription] = None
        self._tasks: list[asyncio.Task] = []

    @property
    def client(self) -> str:
        c = self.websocket.client
        return f"{c.host}:{c.port}" if c else "unknown"

    async def run(self):
        """Serve the client until it disconnects or the session is closed."""
        await self.websocket.accept()
        self._subscription = self._notifier.subscribe()
        self.state = SessionState.OPEN
        logger.info(f"Dashboard client connected: {self.client}")

        try:
            self._tasks = [
                asyncio.create_task(self._push_loop(), name=f"dashboard-push-{self.client}"),
                asyncio.create_task(self._receive_loop(), name=f"dashboard-recv-{self.client}"),
            ]
            done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.info(f"Dashboard client {self.client} dropped: {task.exception()!r}")
        finally:
            await self.close()

    async def close(self):
        """Idempotent: only the first call tears down, later calls return at once."""
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self.state = SessionState.CLOSING

        if self._subscription is not None:
            self._subscription.close()
        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if self.websocket.client_state == WebSocketState.CONNECTED \
                and self.websocket.application_state == WebSocketState.CONNECTED:
            try:
                await self.websocket.close()
            except Exception as e:
                logger.debug(f"WebSocket close failed for {self.client}: {e!r}")

        self.state = SessionState.CLOSED
        logger.info(f"Dashboard client disconnected: {self.client} ({self.pushes} snapshots sent)")

    async def _receive_loop(self):
        # Clients never send anything meaningful; reading is how a disconnect is seen.
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    async def _push_loop(self):
        loop = asyncio.get_running_loop()
        await self.push_snapshot()
        next_tick = loop.time() + self._interval

        while self.state == SessionState.OPEN:
            topics = await self._subscription.wait(timeout=max(0.0, next_tick - loop.time()))
            if not self._subscription.active:
                return
            if topics:
                if self._debounce:
                    await asyncio.sleep(self._debounce)
                    topics += self._subscription.drain()
                logger.debug(f"Snapshot for {self.client} triggered by {sorted(set(topics))}")
            else:
                now = loop.time()
                while next_tick <= now:
                    next_tick += self._interval
            await self.push_snapshot()

    async def push_snapshot(self) -> bool:
        """
        Fetch and send one snapshot. A failed fetch is logged and skipped (the
        next tick retries); a failed send propagates and ends the session.
        """
        try:
            snapshot = await run_in_threadpool(self._store.get_dashboard_snapshot)
        except Exception as e:
            logger.warning(f"Dashboard snapshot fetch failed, retrying next tick: {e}")
            return False

        message = DashboardUpdate.from_snapshot(snapshot).to_message()
        await asyncio.wait_for(self.websocket.send_json(message), self._send_timeout)
        self.pushes += 1
        return True


class DashboardSessionManager:
    """Owns every live DashboardSession; closes them all on shutdown."""

    def __init__(self, store: EntityStore, notifier: ChangeNotifier, interval: float = None,
                 debounce: float = None, send_timeout: float = None):
        self._store = store
        self._notifier = notifier
        self._interval = interval if interval is not None else settings.DASHBOARD_PUSH_INTERVAL_SECONDS
        self._debounce = debounce if debounce is not None else settings.DASHBOARD_DEBOUNCE_SECONDS
        self._send_timeout = send_timeout if send_timeout is not None else settings.DASHBOARD_SEND_TIMEOUT_SECONDS
        self._sessions: set[DashboardSession] = set()

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    async def serve(self, websocket: WebSocket):
        session = DashboardSession(websocket, self._store, self._notifier,
                                   self._interval, self._debounce, self._send_timeout)
        self._sessions.add(session)
        try:
            await session.run()
        finally:
            self._sessions.discard(session)

    async def shutdown(self):
        sessions = list(self._sessions)
        if sessions:
            logger.info(f"Closing {len(sessions)} dashboard session(s)")
        await asyncio.gather(*(s.close() for s in sessions), return_exceptions=True)
