"""Error types raised by the chain engine."""

from __future__ import annotations


class ChainError(Exception):
    """Base class for every error raised by cerebra_chain."""


class ConfigurationError(ChainError):
    """A chain or pipeline was set up in a way that cannot run."""


class ParseError(ChainError, ValueError):
    """Line-delimited JSON could not be read."""


class ExecutionError(ChainError, RuntimeError):
    """A prompt executor failed while running a unit."""


class AbortedError(ExecutionError):
    def __init__(self, message: str = "Aborted") -> None:
        super().__init__(message)
