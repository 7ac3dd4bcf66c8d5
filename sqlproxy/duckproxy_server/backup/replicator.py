"""
Best-effort mirror of mutations to the backup webhook.

After a mutation succeeds on the primary store, the handler calls mirror()
and responds right away. The mirror runs as a detached task that sends

    GET <webhook>?action=<action>&data=<json payload>

and logs the outcome. The webhook answers {"success": bool, "message": str}.

Action names are a contract with the webhook: a verb prefix (save, update,
delete) followed by the singular table name (one trailing "s" dropped),
e.g. saveCompanie, updateBlog_Entrie, deleteContact. The webhook
matches these names verbatim.

Invariants:
    - mirror() never blocks and never raises
    - A delivery outcome never reaches the HTTP response
    - Transport failures are retried under RetryPolicy; an explicit
      {"success": false} answer is logged and not retried
    - Pending tasks are tracked so shutdown can drain them

How to change safely:
    - Do not rename actions or payload keys without changing the webhook
    - Keep the per-request timeout; an unbounded call leaks pending I/O
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from ..errors import BackupError
from ..sql.tables import singular

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for webhook delivery.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay after the first failed attempt, in seconds
        max_delay: Upper bound on any single delay, in seconds
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 5.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts


def backup_action(verb: str, table: str) -> str:
    """Webhook action name, e.g. backup_action("save", "Companies") -> "saveCompanie"."""
    return f"{verb}{singular(table)}"


def record_payload(table: str, record: dict[str, Any]) -> dict[str, Any]:
    """Save/update payload: the record keyed by the lowercased singular name."""
    return {singular(table).lower(): record}


def delete_payload(record_id: int) -> dict[str, Any]:
    return {"id": record_id}


class BackupReplicator:
    """Sends mutation events to the backup webhook in the background.

    Attributes:
        url: Webhook URL
        enabled: Whether mirroring is on
        retry: Retry policy for transport failures
        timeout_seconds: Timeout for one webhook call

    Example:
        >>> replicator = BackupReplicator("https://example.com/exec")
        >>> replicator.mirror("saveCompanie", {"companie": {"id": 1}})
        >>> await replicator.drain()
        >>> await replicator.close()
    """

    def __init__(
        self,
        url: str | None,
        enabled: bool = True,
        retry: RetryPolicy | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.url = url
        self.enabled = enabled and bool(url)
        self.retry = retry or RetryPolicy()
        self.timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of mirror tasks still running."""
        return len(self._pending)

    def mirror(self, action: str, payload: dict[str, Any]) -> asyncio.Task | None:
        """Schedule delivery of one event and return immediately.

        Returns:
            The detached task, or None when mirroring is disabled
        """
        if not self.enabled:
            return None

        try:
            task = asyncio.get_running_loop().create_task(self._deliver(action, payload))
        except RuntimeError as e:
            logger.warning(f"Backup {action} not scheduled: {e}")
            return None

        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, action: str, payload: dict[str, Any]) -> bool:
        """Deliver one event, retrying transport failures.

        Returns:
            True if the webhook reported success
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._send(action, payload)
            except BackupError as e:
                if self.retry.should_retry(attempt):
                    delay = self.retry.delay(attempt)
                    logger.info(
                        f"Backup {action} attempt {attempt} failed: {e.message}; "
                        f"retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.warning(f"Backup {action} failed after {attempt} attempts: {e.message}")
                return False
            except Exception as e:
                logger.warning(f"Backup {action} failed: {e}", exc_info=True)
                return False

            if result.get("success"):
                logger.info(f"Backup {action} successful")
                return True
            logger.warning(f"Backup {action} warning: {result.get('message')}")
            return False

    async def _send(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        """One webhook call.

        Raises:
            BackupError: On transport errors, timeouts, non-2xx statuses or
                a body that is not a JSON object
        """
        params = {"action": action, "data": json.dumps(payload, default=str)}
        try:
            session = self._get_session()
            async with session.get(self.url, params=params) as response:
                if response.status >= 400:
                    raise BackupError(f"Webhook returned HTTP {response.status}")
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise BackupError(f"{type(e).__name__}: {e}") from e

        if not isinstance(body, dict):
            raise BackupError("Webhook response is not a JSON object")
        return body

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
        return self._session

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for pending mirror tasks; cancel whatever is left at the timeout."""
        if not self._pending:
            return
        pending = set(self._pending)
        logger.info(f"Waiting for {len(pending)} pending backup task(s)")
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Cancelled {len(not_done)} backup task(s) at shutdown")
            await asyncio.gather(*not_done, return_exceptions=True)

    async def close(self) -> None:
        """Close the HTTP client session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
