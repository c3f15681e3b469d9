"""healthwatch — threshold-based host health checks and alerting."""

__version__ = "0.1.0"
