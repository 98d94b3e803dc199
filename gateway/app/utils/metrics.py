"""Prometheus metrics for ledger operations, streaming and the spend generator."""

from prometheus_client import Counter, Gauge, Histogram

ledger_operation_latency_ms = Histogram(
    "ledger_operation_latency_ms",
    "Ledger operation latency in milliseconds",
    ["function", "path", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 16000],
)

ledger_operations_total = Counter(
    "ledger_operations_total",
    "Total ledger operations dispatched",
    ["function", "path", "outcome"],
)

registrations_total = Counter(
    "registrations_total",
    "Total user registration attempts",
    ["outcome"],
)

block_events_total = Counter(
    "block_events_total",
    "Total block events received from the ledger",
)

block_event_sends_total = Counter(
    "block_event_sends_total",
    "Total block event frames sent to sockets",
    ["outcome"],
)

websocket_connections = Gauge(
    "websocket_connections",
    "Currently connected push sockets",
)

generator_cycles_total = Counter(
    "generator_cycles_total",
    "Background spend generator cycles",
    ["outcome"],
)


class PrometheusLedgerMetrics:
    """Prometheus-based ledger metrics implementation."""

    def record_operation(self, function: str, path: str, outcome: str, latency_ms: float) -> None:
        """Record a dispatched ledger operation."""
        ledger_operation_latency_ms.labels(function=function, path=path, outcome=outcome).observe(
            latency_ms
        )
        ledger_operations_total.labels(function=function, path=path, outcome=outcome).inc()

    def inc_registration(self, outcome: str) -> None:
        """Increment registration counter."""
        registrations_total.labels(outcome=outcome).inc()

    def inc_block_event(self) -> None:
        """Increment received block event counter."""
        block_events_total.inc()

    def inc_send(self, outcome: str) -> None:
        """Increment per-socket send counter."""
        block_event_sends_total.labels(outcome=outcome).inc()

    def set_connections(self, count: int) -> None:
        """Set the connected socket gauge."""
        websocket_connections.set(count)

    def inc_generator_cycle(self, outcome: str) -> None:
        """Increment generator cycle counter."""
        generator_cycles_total.labels(outcome=outcome).inc()
