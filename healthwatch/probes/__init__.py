"""Probe collaborators — command execution and tool-output parsing."""

from healthwatch.probes.command import CommandResult, CommandRunner, SubprocessRunner

__all__ = [
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
]
