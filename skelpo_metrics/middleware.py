"""Request timing middleware for FastAPI/Starlette applications."""
from time import perf_counter_ns
import logging

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from skelpo_metrics.event import Event
from skelpo_metrics.factory import MetricsFactory
from skelpo_metrics.metric import TimerMetric

logger = logging.getLogger(__name__)

REQUEST_EVENT_TYPE = "request"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Reports every handled request as a ``"request"`` event.

    The event carries the response status and the request URL as attributes
    and the handling time as a timer metric. Reporting never changes or delays
    the response; failures are only logged.
    """

    def __init__(self, app, factory: MetricsFactory):
        super().__init__(app)
        self.factory = factory

    async def dispatch(self, request: Request, call_next):
        event = Event.of_type(REQUEST_EVENT_TYPE)
        start = perf_counter_ns()

        response = await call_next(request)

        event.attributes["status"] = str(response.status_code)
        event.attributes["endpoint"] = str(request.url)
        event.metric = TimerMetric(durations=[perf_counter_ns() - start])

        try:
            self.factory.send_event(event)
        except Exception as e:
            logger.error(f"Metric event failed to save with error: {e}")

        return response


def install_metrics_middleware(app: FastAPI, factory: MetricsFactory):
    """Register :class:`MetricsMiddleware` on ``app``."""
    app.add_middleware(MetricsMiddleware, factory=factory)
    logger.info("Metrics middleware installed")
