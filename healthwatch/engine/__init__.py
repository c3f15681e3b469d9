"""Evaluation engine — evaluator and pass runner."""

from healthwatch.engine.evaluator import Evaluator, FetchResult
from healthwatch.engine.runner import Runner

__all__ = [
    "Evaluator",
    "FetchResult",
    "Runner",
]
