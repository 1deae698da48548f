"""
Background token refresh. A periodic asyncio task refreshes the access token shortly before it
expires. At most one refresh is in flight; overlapping ticks are skipped, not queued.
No retry: a failed refresh clears the session.
"""
import asyncio
import contextlib
import logging
import time
from typing import Callable

from client_app.config import REFRESH_INTERVAL, REFRESH_THRESHOLD
from client_app.session import AuthSession
from client_app.token_store import TokenSet

logger = logging.getLogger(__name__)


def needs_refresh(tokens: TokenSet | None, now: float, threshold: float = REFRESH_THRESHOLD) -> bool:
    """Refresh token present and the access token expires within threshold seconds (not already expired)."""
    if tokens is None or not tokens.refresh_token:
        return False
    remaining = tokens.expires_at - now
    return 0 < remaining < threshold


class TokenRefreshScheduler:
    def __init__(
        self,
        session: AuthSession,
        *,
        interval: float = REFRESH_INTERVAL,
        threshold: float = REFRESH_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ):
        self._session = session
        self._interval = interval
        self._threshold = threshold
        self._clock = clock
        self._in_flight = False
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """One check. Returns True if a refresh was attempted."""
        if self._in_flight:
            logger.debug("Refresh already in flight; skipping tick")
            return False
        if not needs_refresh(self._session.tokens, self._clock(), self._threshold):
            return False
        self._in_flight = True
        try:
            ok = await self._session.refresh()
        finally:
            self._in_flight = False
        if ok:
            logger.info("Access token refreshed")
        else:
            logger.warning("Token refresh failed; session cleared")
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("Token refresh check failed")

    def start(self) -> None:
        """Schedule the periodic check on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
