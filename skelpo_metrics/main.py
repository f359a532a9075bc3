"""Command line entry point: send one event to the metrics API."""
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Dict, List, Optional
import argparse
import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from skelpo_metrics.config import load_config
from skelpo_metrics.errors import ConfigError, MetricsError
from skelpo_metrics.event import Event
from skelpo_metrics.factory import MetricsFactory
from skelpo_metrics.self_metrics import create_self_metrics


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def make_formatter(log_format: str) -> logging.Formatter:
    """Formatter for ``text`` or ``json`` log lines."""
    if log_format == "json":
        return JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "time", "levelname": "level", "name": "logger"},
            datefmt=DATE_FORMAT
        )
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(make_formatter(log_format))
    logging.basicConfig(level=level, handlers=[handler])

    # Reduce noise from some libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def parse_attributes(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``key=value`` strings into a dict."""
    attributes = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Attribute must look like key=value, got '{pair}'")
        attributes[key] = value
    return attributes


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Skelpo Metrics - send an event to the metrics API"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration YAML file (env vars are used otherwise)"
    )
    parser.add_argument(
        "--event",
        "-e",
        default="ping",
        help="Event type to send"
    )
    parser.add_argument(
        "--attribute",
        "-a",
        action="append",
        help="Event attribute as key=value, may be repeated"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for the API"
    )

    args = parser.parse_args(argv)

    try:
        attributes = parse_attributes(args.attribute)
    except ValueError as e:
        parser.error(str(e))

    # Load configuration
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    factory = MetricsFactory(config.client, self_metrics=create_self_metrics(config.self_metrics))

    logger.info(f"Sending '{args.event}' event to {config.client.url}")
    future = factory.send_event(Event.of_type(args.event, attributes))

    try:
        future.result(timeout=args.timeout)
    except MetricsError as e:
        logger.error(f"Event was not saved: {e.identifier}: {e}")
        return 1
    except FuturesTimeoutError:
        logger.error(f"No answer from the metrics API within {args.timeout}s")
        return 1
    finally:
        factory.shutdown(timeout=args.timeout)

    logger.info("Event saved")
    return 0


if __name__ == "__main__":
    sys.exit(main())
