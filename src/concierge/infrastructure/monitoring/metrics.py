"""
Prometheus metrics collection.
"""

from prometheus_client import Counter, Gauge, Histogram

from shared.lifecycle import ConnectionRegistry, ShutdownCoordinator, ShutdownState

# ============================================================
# HTTP Metrics
# ============================================================

http_requests_total = Counter(
    "concierge_http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status_code"],
)

http_request_duration_seconds = Histogram(
    "concierge_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route", "status_code"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ============================================================
# Lifecycle Metrics
# ============================================================

open_connections = Gauge(
    "concierge_open_connections",
    "Inbound connections currently tracked for draining",
)

shutdown_state = Gauge(
    "concierge_shutdown_state",
    "Shutdown state (0=running, 1=draining, 2=terminating, 3=exited)",
)

SHUTDOWN_STATE_VALUES = {
    state: index for index, state in enumerate(ShutdownState)
}


def bind_connection_registry(registry: ConnectionRegistry) -> None:
    """
    Mirror registry size into the open connections gauge.

    Args:
        registry: Connection registry to observe
    """
    open_connections.set(len(registry))
    registry.add_size_listener(open_connections.set)


def bind_shutdown_coordinator(coordinator: ShutdownCoordinator) -> None:
    """
    Mirror coordinator state into the shutdown state gauge.

    Args:
        coordinator: Shutdown coordinator to observe
    """
    shutdown_state.set(SHUTDOWN_STATE_VALUES[coordinator.state])
    coordinator.add_state_listener(
        lambda state: shutdown_state.set(SHUTDOWN_STATE_VALUES[state])
    )
