"""Rule loading and validation."""

from healthwatch.rules.loader import load_rules, parse_overrides

__all__ = [
    "load_rules",
    "parse_overrides",
]
