"""Service for announcing winners to an external webhook."""

from __future__ import annotations

import asyncio
from typing import Optional, Set

import aiohttp

from core import HttpDefaults, get_logger
from database.models import Participant

logger = get_logger(__name__)


class WinnerNotifier:
    """Fire-and-forget POST of each round's winner.

    Failures are logged and never retried; the draw does not wait on them.
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = HttpDefaults.WEBHOOK_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize notifier.

        Args:
            webhook_url: Endpoint receiving ``{name, last_name, email}``;
                ``None`` disables notifications
            timeout: Total request timeout in seconds
            session: Optional shared client session
        """
        self.webhook_url = webhook_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def notify_winner(self, winner: Participant) -> bool:
        """Send the winner to the webhook.

        Args:
            winner: Participant the reel landed on

        Returns:
            True if the endpoint accepted the notification
        """
        if not self.webhook_url:
            return False

        try:
            session = self._get_session()
            async with session.post(self.webhook_url, json=winner.webhook_payload()) as response:
                if response.status >= 400:
                    body = await response.text()
                    logger.error(
                        f"Webhook rejected winner {winner.id}: {response.status} {body[:200]}",
                        extra={"participant_id": winner.id}
                    )
                    return False
            logger.info(
                f"Winner notification sent for {winner.id}",
                extra={"participant_id": winner.id}
            )
            return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                f"Failed to send winner notification for {winner.id}: {e!r}",
                extra={"participant_id": winner.id}
            )
            return False

    def schedule(self, winner: Participant) -> Optional[asyncio.Task]:
        """Send in the background without making the caller wait."""
        if not self.enabled:
            return None
        task = asyncio.create_task(self.notify_winner(winner), name=f"webhook-{winner.id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
