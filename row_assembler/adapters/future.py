"""Parallel future adapter.

Submits every mapper source to a ``concurrent.futures`` executor and
blocks the calling thread until all of them complete. The first failure
observed in completion order is surfaced immediately and work that has
not started yet is cancelled.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor, as_completed
from typing import Any

from row_assembler.adapters.protocol import (
    AggregateBuilder,
    ErrorConverter,
    MapperSource,
    raise_converted,
)

logger = logging.getLogger(__name__)

_default_executor: ThreadPoolExecutor | None = None
_default_executor_lock = threading.Lock()


def default_executor() -> ThreadPoolExecutor:
    """Shared pool used by adapters created without an executor."""
    global _default_executor
    with _default_executor_lock:
        if _default_executor is None:
            _default_executor = ThreadPoolExecutor(thread_name_prefix="row-assembler")
        return _default_executor


class FutureAdapter:
    """Thread-parallel adapter materializing aggregates into ``collection_factory``.

    Args:
        executor: Executor to submit mapper sources to. Defaults to a
            shared module-wide ``ThreadPoolExecutor``.
        collection_factory: Builds the output collection from an iterable
            of aggregates. Defaults to ``list``.
        owns_executor: Shut ``executor`` down in :meth:`shutdown`.
    """

    def __init__(
        self,
        executor: Executor | None = None,
        collection_factory: Callable[[Iterable[Any]], Any] = list,
        *,
        owns_executor: bool = False,
    ) -> None:
        self._executor = executor
        self._collection_factory = collection_factory
        self._owns_executor = owns_executor and executor is not None

    @property
    def executor(self) -> Executor:
        return self._executor if self._executor is not None else default_executor()

    def convert(
        self,
        sources: Sequence[MapperSource],
        build: AggregateBuilder,
        error_converter: ErrorConverter,
    ) -> Any:
        executor = self.executor
        logger.debug("Submitting mapper sources", extra={"sources": len(sources)})
        futures: list[Future[Any]] = [executor.submit(source) for source in sources]

        try:
            for completed in as_completed(futures):
                if completed.exception() is not None:
                    cancelled = sum(1 for f in futures if f.cancel())
                    logger.warning(
                        "Mapper source failed, cancelling pending work",
                        extra={"cancelled": cancelled},
                    )
                    completed.result()
            return self._collection_factory(build([f.result() for f in futures]))
        except Exception as e:
            raise_converted(e, error_converter)

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the executor if this adapter owns it."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> FutureAdapter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def future_adapter(
    executor: Executor | None = None,
    collection_factory: Callable[[Iterable[Any]], Any] = list,
) -> FutureAdapter:
    """Create a parallel future adapter. The caller keeps ownership of ``executor``."""
    return FutureAdapter(executor, collection_factory)
