"""Block event bridge contract and its streaming REST implementation."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from gateway.app.config import Settings
from gateway.app.models.events import BlockEvent

logger = logging.getLogger(__name__)

BlockEventSink = Callable[[BlockEvent], Awaitable[Any]]


class BlockEventBridge(Protocol):
    """Protocol for block event sources."""

    async def subscribe(
        self, channel: str, username: str, organization: str, sink: BlockEventSink
    ) -> None:
        """Start delivering the channel's new blocks to ``sink``.

        Returns once the subscription is registered; delivery continues in
        the background until process exit.
        """
        ...


class HttpBlockEventBridge:
    """Reads newline-delimited JSON block events from the ledger bridge."""

    def __init__(
        self,
        base_url: str,
        reconnect_delay_s: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=None)
        self._reconnect_delay_s = reconnect_delay_s
        self._tasks: set[asyncio.Task[None]] = set()

    async def subscribe(
        self, channel: str, username: str, organization: str, sink: BlockEventSink
    ) -> None:
        task = asyncio.create_task(self._pump(channel, username, organization, sink))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Block listener started on %s for %s@%s", channel, username, organization)

    async def _pump(
        self, channel: str, username: str, organization: str, sink: BlockEventSink
    ) -> None:
        params = {"username": username, "orgName": organization}
        while True:
            try:
                async with self._client.stream(
                    "GET", f"/channels/{channel}/blocks", params=params
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        await self._deliver(channel, line, sink)
            except httpx.HTTPError as e:
                logger.warning(
                    "Block stream on %s interrupted: %s; reconnecting in %.1fs",
                    channel,
                    e,
                    self._reconnect_delay_s,
                )
            await asyncio.sleep(self._reconnect_delay_s)

    async def _deliver(self, channel: str, line: str, sink: BlockEventSink) -> None:
        try:
            event = BlockEvent.model_validate(json.loads(line))
        except ValueError as e:
            logger.warning("Dropping malformed block event on %s: %s", channel, e)
            return
        try:
            await sink(event)
        except Exception:
            logger.exception("Block event sink failed on %s", channel)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._client.aclose()


def create_block_event_bridge(settings: Settings) -> HttpBlockEventBridge:
    """Build the streaming bridge from settings."""
    return HttpBlockEventBridge(settings.ledger_url)
