"""Streaming adapter.

Produces an async iterator of aggregates. When iteration starts, every
mapper source is scheduled independently on the running event loop's
executor; the combine step fires only once all of them have produced
their result map. The first failure cancels the outstanding units and
is raised from the iterator.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from concurrent.futures import Executor
from typing import Any

from row_assembler.adapters.protocol import (
    AggregateBuilder,
    ErrorConverter,
    MapperSource,
    raise_converted,
)

logger = logging.getLogger(__name__)


async def _zip(tasks: list[asyncio.Future[Any]]) -> list[Any]:
    """Wait until every task produced its value, failing on the first error."""
    if not tasks:
        return []
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    failed = [task for task in tasks if task in done and task.exception() is not None]
    if failed:
        for task in pending:
            task.cancel()
        logger.warning(
            "Mapper source failed, cancelling pending work",
            extra={"failed": len(failed), "cancelled": len(pending)},
        )
        raise failed[0].exception()  # type: ignore[misc]
    return [task.result() for task in tasks]


class StreamAdapter:
    """Asyncio adapter emitting aggregates lazily as an async iterator.

    The returned stream is cold: nothing is dispatched until it is
    iterated, and each iteration is a fresh dispatch.

    Args:
        scheduler: Executor mapper sources run on. Defaults to the event
            loop's default executor.
        owns_scheduler: Shut ``scheduler`` down in :meth:`shutdown`.
    """

    def __init__(self, scheduler: Executor | None = None, *, owns_scheduler: bool = False) -> None:
        self._scheduler = scheduler
        self._owns_scheduler = owns_scheduler and scheduler is not None

    def convert(
        self,
        sources: Sequence[MapperSource],
        build: AggregateBuilder,
        error_converter: ErrorConverter,
    ) -> AsyncIterator[Any]:
        return self._stream(list(sources), build, error_converter)

    async def _stream(
        self,
        sources: list[MapperSource],
        build: AggregateBuilder,
        error_converter: ErrorConverter,
    ) -> AsyncIterator[Any]:
        loop = asyncio.get_running_loop()
        logger.debug("Scheduling mapper sources", extra={"sources": len(sources)})
        tasks = [loop.run_in_executor(self._scheduler, source) for source in sources]
        try:
            results = await _zip(tasks)
            aggregates = iter(build(results))
        except Exception as e:
            raise_converted(e, error_converter)
        finally:
            for task in tasks:
                task.cancel()

        while True:
            try:
                aggregate = next(aggregates)
            except StopIteration:
                return
            except Exception as e:
                raise_converted(e, error_converter)
            yield aggregate

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the scheduler if this adapter owns it."""
        if self._owns_scheduler and self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)

    def __enter__(self) -> StreamAdapter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def stream_adapter(scheduler: Executor | None = None) -> StreamAdapter:
    """Create a streaming adapter. The caller keeps ownership of ``scheduler``."""
    return StreamAdapter(scheduler)
