#!/usr/bin/env python3
"""
CLI tool for sending one-off telemetry.

Usage:
    telemetry-client gauge cpu.usage 0.42 --attr host=web-1
    telemetry-client count requests 12 --interval-ms 10000
    telemetry-client event Deployment --attr version=1.2.3
    telemetry-client log "cache warmed" --level INFO --service billing
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Any

from colorama import Fore, Style, init as colorama_init

from .config import ClientConfig
from .delivery.client import TelemetryClient
from .telemetry.batch import EventBatch, LogBatch, MetricBatch, TelemetryBatch
from .telemetry.records import Count, Event, Gauge, Log, now_ms


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def parse_attributes(pairs: list[str] | None) -> dict[str, Any]:
    """Parse repeated key=value options. Numeric values become numbers."""
    attributes: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        attributes[key] = _coerce(value)
    return attributes


def _coerce(value: str) -> Any:
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def load_config(args) -> ClientConfig:
    """Config file first, then command-line overrides."""
    if args.config:
        if args.config.endswith((".yaml", ".yml")):
            config = ClientConfig.from_yaml(args.config)
        else:
            config = ClientConfig.from_json(args.config)
    else:
        config = ClientConfig()

    overrides = {}
    if args.api_key:
        overrides["api_key"] = args.api_key
    if args.region:
        overrides["region"] = args.region
    if args.audit:
        overrides["audit_logging_enabled"] = True
    if overrides:
        config = replace(config, sender=replace(config.sender, **overrides))
    return config


def build_batch(args) -> TelemetryBatch:
    attributes = parse_attributes(args.attr)
    if args.command == "gauge":
        return MetricBatch(items=(Gauge(args.name, args.value, attributes=attributes),))
    if args.command == "count":
        end = now_ms()
        return MetricBatch(items=(Count(args.name, args.value, end - args.interval_ms, end, attributes),))
    if args.command == "event":
        return EventBatch(items=(Event(args.event_type, attributes=attributes),))
    if args.command == "log":
        return LogBatch(items=(Log(args.message, level=args.level, service_name=args.service, attributes=attributes),))
    raise ValueError(f"Unknown command: {args.command}")


def cmd_send(args) -> int:
    """Send a single batch and wait for the client to drain."""
    config = load_config(args)
    client = TelemetryClient.create(config)
    batch = build_batch(args)

    client.send_batch(batch)
    finished = client.shutdown()

    stats = client.stats
    if stats["batches_delivered"]:
        print(colorize(f"Delivered {batch.type_name} with {batch.size} item(s)", Fore.GREEN))
        return 0
    if not finished:
        print(colorize("Timed out waiting for delivery", Fore.YELLOW), file=sys.stderr)
    else:
        print(colorize(f"Failed to deliver {batch.type_name}", Fore.RED), file=sys.stderr)
    return 1


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Send telemetry to the ingest APIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--config", help="YAML or JSON config file")
    parser.add_argument("--api-key", help="API key (default: $TELEMETRY_API_KEY)")
    parser.add_argument("--region", choices=["US", "EU"], help="Ingest region (default: $TELEMETRY_REGION or US)")
    parser.add_argument("--audit", action="store_true", help="Log every payload at debug level")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # gauge command
    gauge_parser = subparsers.add_parser("gauge", help="Send a gauge metric")
    gauge_parser.add_argument("name", help="Metric name")
    gauge_parser.add_argument("value", type=float, help="Metric value")

    # count command
    count_parser = subparsers.add_parser("count", help="Send a count metric")
    count_parser.add_argument("name", help="Metric name")
    count_parser.add_argument("value", type=float, help="Count accumulated over the interval")
    count_parser.add_argument("--interval-ms", type=int, default=60_000, help="Interval length")

    # event command
    event_parser = subparsers.add_parser("event", help="Send a custom event")
    event_parser.add_argument("event_type", help="Event type")

    # log command
    log_parser = subparsers.add_parser("log", help="Send a log entry")
    log_parser.add_argument("message", help="Log message")
    log_parser.add_argument("--level", default="INFO", help="Log level")
    log_parser.add_argument("--service", help="Service name")

    for sub in (gauge_parser, count_parser, event_parser, log_parser):
        sub.add_argument("--attr", action="append", metavar="KEY=VALUE", help="Attribute (repeatable)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    colorama_init()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return cmd_send(args)
    except (argparse.ArgumentTypeError, ValueError, OSError) as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
