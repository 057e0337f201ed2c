"""Errors raised while running a speedtest."""

from __future__ import annotations

from typing import Optional


class SpeedtestError(Exception):
    """Base class for measurement failures."""


class ExecutionFailed(SpeedtestError):
    """The speedtest CLI could not be started or exited with an error."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class DecodeFailed(SpeedtestError):
    """The speedtest CLI output did not match the expected JSON result."""
