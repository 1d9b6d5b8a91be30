"""Runs a pipeline one unit at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, TypeAlias

from cerebra_chain.errors import ConfigurationError
from cerebra_chain.pipeline import Pipeline
from cerebra_chain.promise import Promise


logger = logging.getLogger(__name__)

ErrorDelegate: TypeAlias = Callable[[str], object]


def log_error(message: str) -> None:
    logger.error("Pipeline failed: %s", message)


class AsyncScheduler:
    """
    Sequential scheduler: unit i+1 starts only after unit i has settled.
    A failure stops the pass and is reported once through the error delegate.
    """

    def __init__(self, on_error: ErrorDelegate | None = None) -> None:
        self._delegate_error: ErrorDelegate = on_error or log_error

    @property
    def delegate_error(self) -> ErrorDelegate:
        return self._delegate_error

    def set_delegate_error(self, on_error: ErrorDelegate) -> None:
        self._delegate_error = on_error

    def run(self, pipeline: Pipeline, on_error: ErrorDelegate | None = None) -> Promise[str]:
        if on_error is not None:
            self._delegate_error = on_error
        if not pipeline:
            raise ConfigurationError("No script defined.")
        try:
            asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ConfigurationError("AsyncScheduler.run needs a running event loop.") from exc
        logger.debug("Scheduling %s units", pipeline.count)
        start: Promise[None] = Promise.resolved(None)
        return start.then_compose(lambda _: self._execute(pipeline, 0)).catch(self._report)

    def _execute(self, pipeline: Pipeline, index: int) -> Promise[str]:
        if index >= pipeline.count:
            return Promise.resolved(pipeline.last_output)
        unit = pipeline[index]
        return unit.run().then_compose(lambda _output: self._execute(pipeline, index + 1))

    def _report(self, error: BaseException) -> None:
        self._delegate_error(str(error))
