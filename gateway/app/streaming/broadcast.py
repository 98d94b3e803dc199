"""Push-socket fan-out of ledger block events.

The gateway starts IDLE. The first successful registration moves it to
STREAMING, which subscribes to the channel's block stream once; every block
received afterwards is sent to every socket connected at that moment. There
is no way back to IDLE and no replay for late joiners.
"""

import logging
from enum import Enum
from typing import Protocol

from gateway.app.ledger.events import BlockEventBridge
from gateway.app.models.events import BlockEvent
from gateway.app.session import IdentityContext
from gateway.app.utils.metrics import PrometheusLedgerMetrics

logger = logging.getLogger(__name__)


class PushSocket(Protocol):
    """Minimal socket surface the gateway needs (Starlette WebSocket fits)."""

    async def send_text(self, data: str) -> None: ...


class StreamState(str, Enum):
    """Broadcast gateway state."""

    IDLE = "idle"
    STREAMING = "streaming"


class EventBroadcastGateway:
    """Owns connected push sockets and the single block subscription."""

    def __init__(
        self,
        bridge: BlockEventBridge,
        metrics: PrometheusLedgerMetrics | None = None,
    ) -> None:
        self._bridge = bridge
        self._metrics = metrics or PrometheusLedgerMetrics()
        self._sockets: dict[int, PushSocket] = {}
        self._state = StreamState.IDLE
        self._subscription: tuple[str, IdentityContext] | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def subscription(self) -> tuple[str, IdentityContext] | None:
        """(channel, identity) of the active subscription, if streaming."""
        return self._subscription

    @property
    def connection_count(self) -> int:
        return len(self._sockets)

    def connect(self, socket: PushSocket) -> None:
        self._sockets[id(socket)] = socket
        self._metrics.set_connections(len(self._sockets))
        logger.info("Push socket connected (%d open)", len(self._sockets))

    def disconnect(self, socket: PushSocket) -> None:
        self._sockets.pop(id(socket), None)
        self._metrics.set_connections(len(self._sockets))
        logger.info("Push socket disconnected (%d open)", len(self._sockets))

    async def activate(self, channel: str, identity: IdentityContext) -> bool:
        """Move to STREAMING and subscribe to the channel's block stream.

        Only the first activation subscribes. Later registrations, including
        ones under a different identity, keep the original subscription.

        Returns:
            True if this call started streaming

        Raises:
            Exception: Whatever the bridge raised; the gateway stays IDLE
        """
        if self._subscription is not None:
            active_channel, active = self._subscription
            logger.info(
                "Block listener already running on %s for %s@%s; not subscribing %s@%s",
                active_channel,
                active.username,
                active.organization,
                identity.username,
                identity.organization,
            )
            return False

        # Claim the transition before awaiting so concurrent registrations
        # cannot subscribe twice.
        self._state = StreamState.STREAMING
        self._subscription = (channel, identity)
        try:
            await self._bridge.subscribe(
                channel, identity.username, identity.organization, self.broadcast
            )
        except Exception:
            self._state = StreamState.IDLE
            self._subscription = None
            raise

        logger.info(
            "Streaming block events from %s as %s@%s",
            channel,
            identity.username,
            identity.organization,
        )
        return True

    async def broadcast(self, event: BlockEvent) -> int:
        """Send one event to every connected socket.

        Returns:
            Number of sockets the event was delivered to
        """
        self._metrics.inc_block_event()
        frame = event.to_wire()
        delivered = 0

        # Snapshot: sockets may connect or drop while sends are suspended
        for socket in list(self._sockets.values()):
            try:
                await socket.send_text(frame)
            except Exception as e:
                logger.warning(
                    "Dropping push socket after failed send: %s",
                    e,
                    extra={"structured": {"block_number": event.block_number}},
                )
                self._metrics.inc_send("error")
                self.disconnect(socket)
                continue
            self._metrics.inc_send("success")
            delivered += 1

        logger.info(
            "Block %d on %s sent to %d socket(s)",
            event.block_number,
            event.channel,
            delivered,
        )
        return delivered
