"""Self-monitoring metrics for the reporting pipeline, via prometheus_client."""
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, start_http_server
import logging

from skelpo_metrics.config import SelfMetricsConfig

logger = logging.getLogger(__name__)


class SelfMetrics:
    """Counters describing how the client itself is doing."""

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            registry = CollectorRegistry()
        self.registry = registry

        self.operations_total = Counter(
            f"{prefix}operations_total",
            "Total number of executed metric operations",
            ["kind", "action", "outcome"],
            registry=registry
        )

        self.operation_duration_seconds = Histogram(
            f"{prefix}operation_duration_seconds",
            "Duration of each metric operation in seconds",
            ["kind"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry
        )

        self.queue_depth = Gauge(
            f"{prefix}queue_depth",
            "Operations waiting or running per metric handle",
            ["label"],
            registry=registry
        )

        self.events_sent_total = Counter(
            f"{prefix}events_sent_total",
            "Total number of standalone events sent",
            ["outcome"],
            registry=registry
        )

    def record_operation(self, kind: str, action: str, succeeded: bool, duration: float):
        """Record one executed operation."""
        outcome = "success" if succeeded else "failure"
        self.operations_total.labels(kind=kind, action=action, outcome=outcome).inc()
        self.operation_duration_seconds.labels(kind=kind).observe(duration)

    def set_queue_depth(self, label: str, depth: int):
        """Set queue depth for a handle."""
        self.queue_depth.labels(label=label).set(depth)

    def record_event(self, succeeded: bool):
        """Record one standalone event."""
        self.events_sent_total.labels(outcome="success" if succeeded else "failure").inc()


def create_self_metrics(config: SelfMetricsConfig):
    """Build self metrics from config, starting the HTTP server if asked to."""
    if not config.enabled:
        logger.info("Self metrics disabled")
        return None

    self_metrics = SelfMetrics(prefix=config.prefix)

    if config.serve:
        try:
            start_http_server(config.port, addr=config.bind_address, registry=self_metrics.registry)
            logger.info(f"Self metrics listening on {config.bind_address}:{config.port}/metrics")
        except Exception as e:
            logger.error(f"Failed to start self metrics HTTP server: {e}")
            raise

    return self_metrics
