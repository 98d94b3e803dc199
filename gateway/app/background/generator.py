"""Background spend generator.

Mimics an NGO spending funds allocated against donations: on a jittered
cadence it samples one existing donation and submits a spend record for the
NGO that received it. It runs independently of client traffic, never raises
to a caller, and keeps going after failures.
"""

import asyncio
import logging
import random
import uuid
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from gateway.app.config import Settings
from gateway.app.dispatch.dispatcher import OPERATIONS, Operation, RequestDispatcher
from gateway.app.models.spend import SyntheticTransaction
from gateway.app.session import IdentityStore
from gateway.app.utils.metrics import PrometheusLedgerMetrics

logger = logging.getLogger(__name__)

FOREIGN_KEY_FIELD = "ngoRegistrationNumber"


class CycleOutcome(str, Enum):
    """What one generator cycle did."""

    no_identity = "no_identity"
    no_records = "no_records"
    missing_key = "missing_key"
    submitted = "submitted"
    failed = "failed"


def _unwrap(record: Any) -> Any:
    """Records may come back as {"Key": ..., "Record": {...}} pairs."""
    if isinstance(record, dict) and isinstance(record.get("Record"), dict):
        return record["Record"]
    return record


class BackgroundTransactionGenerator:
    """Cancellable, self-rescheduling spend generator."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        identities: IdentityStore,
        settings: Settings,
        rng: random.Random | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        metrics: PrometheusLedgerMetrics | None = None,
    ) -> None:
        """Initialize generator.

        Args:
            dispatcher: Dispatcher used for the query and invoke calls
            identities: Process-wide identity slot, read every cycle
            settings: Delay, amount and spend text configuration
            rng: Random source (inject a seeded one for deterministic tests)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
            metrics: Metrics recorder
        """
        self._dispatcher = dispatcher
        self._identities = identities
        self._settings = settings
        self._rng = rng or random.Random()
        self._sleep = sleep_fn or asyncio.sleep
        self._metrics = metrics or PrometheusLedgerMetrics()
        self._task: asyncio.Task[None] | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_delay_ms(self) -> int:
        """Uniform delay in [min, max) whole milliseconds."""
        low = self._settings.generator_min_delay_ms
        high = self._settings.generator_max_delay_ms
        return low + int(self._rng.random() * (high - low))

    def next_amount(self) -> int:
        """Uniform integer amount in [min, max]."""
        return self._rng.randint(
            self._settings.generator_min_amount, self._settings.generator_max_amount
        )

    def build_transaction(self, source_record_key: str) -> SyntheticTransaction:
        return SyntheticTransaction(
            source_record_key=source_record_key,
            new_id=uuid.uuid4(),
            description=self._settings.spend_description,
            timestamp=self._settings.spend_date,
            amount=self.next_amount(),
        )

    async def run_cycle(self) -> CycleOutcome:
        """Run one query-then-invoke cycle. Never raises."""
        try:
            outcome = await self._cycle()
        except Exception as e:
            logger.warning(
                f"Spend generator cycle failed: {e}",
                extra={"structured": {"event": "generator_failure", "error_type": type(e).__name__}},
            )
            outcome = CycleOutcome.failed

        self._metrics.inc_generator_cycle(outcome.value)
        return outcome

    async def _cycle(self) -> CycleOutcome:
        identity = self._identities.current
        if identity is None:
            return CycleOutcome.no_identity

        # First, get the list of donations and randomly choose one
        records = await self._dispatcher.dispatch(Operation.list_donations, {}, identity)
        if not isinstance(records, list) or not records:
            logger.info("Spend generator: no donations available")
            return CycleOutcome.no_records

        index = self._rng.randrange(len(records))
        record = _unwrap(records[index])
        logger.info(
            "Spend generator: selected donation %d of %d: %s", index, len(records), record
        )

        ngo = record.get(FOREIGN_KEY_FIELD) if isinstance(record, dict) else None
        if not ngo:
            logger.warning("Spend generator: donation has no %s, skipping", FOREIGN_KEY_FIELD)
            return CycleOutcome.missing_key

        # Then create a spend record for the NGO that received the donation
        transaction = self.build_transaction(str(ngo))
        spec = OPERATIONS[Operation.create_spend]
        await self._dispatcher.dispatch_invoke(spec.function_name, transaction.to_args(), identity)
        logger.info(
            "Spend generator: submitted spend %s of %d for %s",
            transaction.new_id,
            transaction.amount,
            transaction.source_record_key,
        )
        return CycleOutcome.submitted

    async def run(self) -> None:
        """Sleep, run a cycle, repeat until stopped."""
        while not self._stopping:
            await self._sleep(self.next_delay_ms() / 1000)
            if self._stopping:
                break
            await self.run_cycle()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self.run())
        logger.info("Spend generator started")

    async def stop(self) -> None:
        self._stopping = True
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Spend generator stopped")
