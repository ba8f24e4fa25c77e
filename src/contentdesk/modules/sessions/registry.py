"""Process-local registry of open desk sessions."""

import asyncio
import contextlib
import secrets
import time

import structlog

from contentdesk.config import settings
from contentdesk.core.auth.gate import TenantGate
from contentdesk.core.constants import SESSION_ID_BYTES
from contentdesk.core.errors import UnauthorizedError
from contentdesk.integrations.captioning import CaptionGenerator
from contentdesk.modules.records.publisher import AutoPublisher
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.sessions.session import DeskSession
from contentdesk.modules.tenants.services import TenantDirectory


logger = structlog.get_logger()


class SessionRegistry:
    """Creates, finds and ends desk sessions.

    Session ids are random and carry no claims; holding one is the only
    proof of having entered a valid secret. Sessions nobody has used for
    ``idle_seconds`` are suspended: their edits are written and their
    change feed subscription released until the next request.
    """

    def __init__(
        self,
        gate: TenantGate,
        store: RecordStore,
        tenants: TenantDirectory,
        publisher: AutoPublisher,
        captioner: CaptionGenerator | None = None,
        quiet_period: float | None = None,
        max_media_bytes: int | None = None,
        idle_seconds: float | None = None,
    ) -> None:
        self.gate = gate
        self.store = store
        self.tenants = tenants
        self.publisher = publisher
        self.captioner = captioner
        self.quiet_period = quiet_period if quiet_period is not None else settings.quiet_period
        self.max_media_bytes = max_media_bytes or settings.max_media_bytes
        self.idle_seconds = (
            idle_seconds if idle_seconds is not None else settings.session_idle_seconds
        )
        self._sessions: dict[str, DeskSession] = {}
        self._last_seen: dict[str, float] = {}
        self._sweeper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, secret: str) -> DeskSession:
        """Start a session for whoever knows ``secret``.

        Raises:
            AuthenticationFailed: If the secret matches no tenant
        """
        grant = await self.gate.resolve(secret)
        session_id = secrets.token_urlsafe(SESSION_ID_BYTES)
        desk = DeskSession(
            session_id,
            grant,
            self.store,
            self.tenants,
            self.publisher,
            captioner=self.captioner,
            quiet_period=self.quiet_period,
            max_media_bytes=self.max_media_bytes,
        )
        await desk.open()
        self._sessions[session_id] = desk
        self._last_seen[session_id] = time.monotonic()
        return desk

    def find(self, session_id: str) -> DeskSession | None:
        return self._sessions.get(session_id)

    async def get(self, session_id: str | None) -> DeskSession:
        """Look up a session and mark it as used, resuming it if suspended.

        Raises:
            UnauthorizedError: If the id is missing or unknown
        """
        desk = self._sessions.get(session_id) if session_id else None
        if desk is None:
            raise UnauthorizedError("Unknown or ended session", error_code="invalid_session")
        self._last_seen[desk.id] = time.monotonic()
        if desk.is_suspended:
            await desk.resume()
        return desk

    async def close(self, session_id: str, flush: bool = True) -> int:
        """End one session; unknown ids are ignored.

        Returns:
            Number of pending edits the session settled
        """
        desk = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if desk is None:
            return 0
        return await desk.close(flush=flush)

    async def close_all(self, flush: bool = True) -> None:
        """End every session, e.g. at shutdown."""
        await self.stop_sweeping()
        count = len(self._sessions)
        for session_id in list(self._sessions):
            await self.close(session_id, flush=flush)
        if count:
            logger.info("sessions_closed", count=count)

    async def release_idle(self, now: float | None = None) -> int:
        """Suspend every session unused for longer than ``idle_seconds``.

        Returns:
            Number of sessions suspended by this call
        """
        now = time.monotonic() if now is None else now
        released = 0
        for session_id, desk in list(self._sessions.items()):
            if desk.is_suspended:
                continue
            if now - self._last_seen.get(session_id, now) < self.idle_seconds:
                continue
            await desk.suspend()
            released += 1
        if released:
            logger.info("idle_sessions_released", count=released, open=len(self._sessions))
        return released

    def start_sweeping(self, interval: float | None = None) -> None:
        """Release idle sessions in the background every ``interval`` seconds."""
        if self._sweeper is not None:
            return
        interval = interval if interval is not None else settings.session_sweep_seconds
        self._sweeper = asyncio.create_task(self._sweep(interval))

    async def stop_sweeping(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    async def _sweep(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.release_idle()
            except Exception as e:
                logger.error("idle_sweep_failed", error=str(e), error_type=type(e).__name__)
