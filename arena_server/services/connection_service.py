# arena_server/services/connection_service.py
"""WebSocket connection registry and non-blocking outbound delivery."""

import asyncio
from typing import Dict, Optional

from fastapi import WebSocket
from loguru import logger

from arena_server.models.messages import Outbox


class Session:
    """One client connection with its own outbound queue and writer task.

    Game code only ever enqueues; the writer task is the single place that
    awaits the socket, so a slow client only delays itself.
    """

    def __init__(self, player_id: str, websocket: WebSocket, queue_size: int = 256):
        self.player_id = player_id
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.joined = False
        self.closing = False
        self.failed = False
        self._writer: Optional[asyncio.Task] = None

    def start(self):
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop())

    async def stop(self):
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None

    def enqueue(self, frame: str) -> bool:
        if self.failed:
            return False
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Send queue full for player {self.player_id}, dropping frame")
            return False
        return True

    async def _write_loop(self):
        while True:
            frame = await self.queue.get()
            try:
                if not self.failed:
                    await self.websocket.send_text(frame)
            except Exception as e:
                logger.warning(f"Failed to send to player {self.player_id}: {e}")
                self.failed = True
            finally:
                self.queue.task_done()


class ConnectionManager:
    """Maps player ids to sessions and delivers outboxes."""

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        self.sessions: Dict[str, Session] = {}

    def connect(self, player_id: str, websocket: WebSocket) -> Session:
        session = Session(player_id, websocket, self.queue_size)
        self.sessions[player_id] = session
        session.start()
        logger.info(f"WebSocket connected. Total connections: {len(self.sessions)}")
        return session

    async def disconnect(self, player_id: str):
        session = self.sessions.pop(player_id, None)
        if session is not None:
            await session.stop()
        logger.info(f"WebSocket disconnected. Total connections: {len(self.sessions)}")

    def mark_joined(self, player_id: str):
        session = self.sessions.get(player_id)
        if session is not None:
            session.joined = True

    def dispatch(self, outbox: Outbox):
        """Queue every envelope for its recipients. Never awaits."""
        for envelope in outbox:
            frame = envelope.message.model_dump_json()

            if envelope.recipient is not None:
                session = self.sessions.get(envelope.recipient)
                if session is not None and session.joined:
                    session.enqueue(frame)
                continue

            for player_id, session in self.sessions.items():
                if player_id == envelope.exclude or not session.joined:
                    continue
                session.enqueue(frame)

    def close(self, player_id: str):
        """Start a server-side close; later calls for the same session are no-ops."""
        session = self.sessions.get(player_id)
        if session is None or session.closing:
            return
        session.closing = True
        logger.info(f"Closing idle connection for player {player_id}")
        asyncio.create_task(self._close(session))

    async def _close(self, session: Session):
        try:
            await session.websocket.close()
        except Exception as e:
            logger.warning(f"Error closing connection for player {session.player_id}: {e}")

    async def flush(self):
        """Wait until every queued frame has been handed to its socket."""
        for session in list(self.sessions.values()):
            await session.queue.join()
