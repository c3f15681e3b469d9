"""Command-line entrypoint — wires settings, probes, rules and sinks.

Usage::

    # One pass with default config
    healthwatch run

    # Custom config file, tighter CPU rule
    healthwatch run --config /etc/healthwatch.yaml --threshold-override cpu_high=90

    # Check every minute until interrupted
    healthwatch run --interval 60

Exit codes: 0 clean, 1 alert, 2 warning only, 3 failed (including bad
configuration).
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Sequence

import structlog

from healthwatch.core.config import Settings, load_settings
from healthwatch.core.exceptions import ConfigError
from healthwatch.core.logging import setup_logging
from healthwatch.core.types import ExitCode
from healthwatch.engine.evaluator import Evaluator
from healthwatch.engine.runner import Runner
from healthwatch.metrics.registry import build_registry
from healthwatch.probes.command import CommandRunner
from healthwatch.rules.loader import load_rules, parse_overrides
from healthwatch.sinks.factory import create_sinks

logger = structlog.get_logger(__name__)


def build_runner(
    settings: Settings,
    overrides: Sequence[str] = (),
    command_runner: CommandRunner | None = None,
) -> Runner:
    """Assemble a Runner from settings.

    Raises:
        ConfigError: The rule set or probe configuration is invalid.
    """
    registry = build_registry(
        settings.probes,
        runner=command_runner,
        fetch_timeout=settings.runner.fetch_timeout_secs,
    )
    rules = load_rules(settings.rules, registry, parse_overrides(overrides))
    evaluator = Evaluator(
        fetch_timeout=settings.runner.fetch_timeout_secs,
        retries=settings.runner.retries,
        backoff_base_secs=settings.runner.backoff_base_secs,
        backoff_cap_secs=settings.runner.backoff_cap_secs,
    )
    return Runner(
        rules=rules,
        registry=registry,
        dispatcher=create_sinks(settings.sinks),
        evaluator=evaluator,
        pass_timeout=settings.runner.pass_timeout_secs,
    )


async def run(args: argparse.Namespace) -> int:
    """Load configuration and run one pass or the periodic loop."""
    try:
        settings = load_settings(args.config)
        setup_logging(level=args.log_level, fmt=args.log_format)
        runner = build_runner(settings, args.threshold_override or ())
    except ConfigError as exc:
        print(f"healthwatch: configuration error: {exc}", file=sys.stderr)
        return int(ExitCode.FAILED)

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or outside the main thread.
            pass

    try:
        if args.interval is not None:
            logger.info("periodic_run_starting", interval_secs=args.interval)
            outcome = await runner.run_periodic(args.interval, stop_event)
        else:
            outcome = await runner.run_cancellable(stop_event)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await runner.dispatcher.close()

    if outcome.error:
        print(f"healthwatch: pass failed: {outcome.error}", file=sys.stderr)
    return int(outcome.exit_code)


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{text!r} is not a number") from None
    if value <= 0:
        raise argparse.ArgumentTypeError("interval must be positive")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthwatch",
        description="Threshold-based host health checks.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Evaluate the configured rules.")
    run_parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/healthwatch.yaml)",
    )
    run_parser.add_argument(
        "--threshold-override",
        action="append",
        metavar="NAME=VALUE",
        help="Replace the threshold of rule NAME (repeatable)",
    )
    mode = run_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run a single pass and exit (default)",
    )
    mode.add_argument(
        "--interval",
        type=_positive_float,
        default=None,
        metavar="SECONDS",
        help="Repeat passes every SECONDS until interrupted",
    )
    run_parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    run_parser.add_argument(
        "--log-format",
        choices=("console", "json"),
        default=None,
        help="Log renderer override",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        code = int(ExitCode.FAILED)
    sys.exit(code)


if __name__ == "__main__":
    main()
