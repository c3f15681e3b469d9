"""Rule loading — validation, threshold overrides, metric resolution."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence

import structlog
from pydantic import ValidationError

from healthwatch.core.config import RuleConfig
from healthwatch.core.exceptions import ConfigError
from healthwatch.core.types import Rule
from healthwatch.metrics.registry import MetricRegistry

logger = structlog.get_logger(__name__)


def parse_overrides(entries: Iterable[str]) -> dict[str, float]:
    """Parse ``NAME=VALUE`` threshold overrides from the command line."""
    overrides: dict[str, float] = {}
    for entry in entries:
        name, sep, raw = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ConfigError(f"threshold override must be NAME=VALUE, got {entry!r}")
        try:
            value = float(raw)
        except ValueError:
            raise ConfigError(f"threshold override {name!r}: {raw!r} is not a number") from None
        if not math.isfinite(value):
            raise ConfigError(f"threshold override {name!r} must be finite")
        overrides[name] = value
    return overrides


def load_rules(
    definitions: Sequence[RuleConfig],
    registry: MetricRegistry,
    overrides: Mapping[str, float] | None = None,
) -> list[Rule]:
    """Build the ordered, validated rule set.

    Args:
        definitions: Rule definitions in declaration order.
        registry: Sources each rule's metric must resolve to.
        overrides: Rule name to replacement threshold.

    Returns:
        Rules in declaration order.

    Raises:
        ConfigError: No rules, empty registry, an invalid or duplicate rule,
            an unknown metric, or an override naming no rule.
    """
    if not definitions:
        raise ConfigError("no rules configured")
    if len(registry) == 0:
        raise ConfigError("no metric sources registered")

    overrides = dict(overrides or {})
    rules: list[Rule] = []
    seen: set[str] = set()

    for index, definition in enumerate(definitions):
        label = definition.name or f"#{index}"
        threshold = overrides.pop(definition.name, definition.threshold)
        try:
            rule = Rule(
                name=definition.name,
                metric_name=definition.metric,
                comparator=definition.comparator,
                threshold=threshold,
                severity=definition.severity,
                message=definition.message,
            )
        except ValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigError(f"rule {label}: {errors}") from exc

        if rule.name in seen:
            raise ConfigError(f"rule {rule.name!r} defined twice")
        if rule.metric_name not in registry:
            raise ConfigError(
                f"rule {rule.name!r}: unknown metric {rule.metric_name!r}"
                f" (registered: {', '.join(sorted(registry.names()))})"
            )
        seen.add(rule.name)
        rules.append(rule)

    if overrides:
        raise ConfigError(f"threshold override for unknown rule(s): {', '.join(sorted(overrides))}")

    logger.info("rules_loaded", count=len(rules), rules=[r.name for r in rules])
    return rules
