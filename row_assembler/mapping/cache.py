"""Per-id memoizing mapper decorator.

Each id gets one ``Future`` cell. The first caller to see an id claims
the cell and fetches it; later or concurrent callers reuse the cell, so
an id is retrieved at most once for the lifetime of the decorator.
The lock only guards claiming cells, never the retrieval itself.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Collection
from concurrent.futures import Future
from typing import Any, Generic, TypeVar

from row_assembler.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ID = TypeVar("ID")
R = TypeVar("R")

# Marks an id the wrapped mapper was asked for but did not return.
_ABSENT = object()


class CachedMapper(Generic[ID, R]):
    """Thread-safe memoizing wrapper around any mapper."""

    def __init__(self, mapper: Callable[[Collection[ID]], dict[ID, R]]) -> None:
        if not callable(mapper):
            raise ConfigurationError(f"Mapper must be callable, got {mapper!r}")
        self._mapper = mapper
        self._cells: dict[ID, Future[Any]] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return getattr(self._mapper, "name", None) or repr(self._mapper)

    def __len__(self) -> int:
        """Number of ids resolved or in flight."""
        return len(self._cells)

    def __call__(self, entity_ids: Collection[ID]) -> dict[ID, R]:
        claimed: list[ID] = []
        cells: dict[ID, Future[Any]] = {}

        with self._lock:
            for entity_id in entity_ids:
                if entity_id in cells:
                    continue
                cell = self._cells.get(entity_id)
                if cell is None:
                    cell = Future()
                    self._cells[entity_id] = cell
                    claimed.append(entity_id)
                cells[entity_id] = cell

        logger.debug(
            "Cached mapper lookup",
            extra={
                "mapper": self.name,
                "hits": len(cells) - len(claimed),
                "misses": len(claimed),
            },
        )

        if claimed:
            self._resolve(claimed, cells)

        result: dict[ID, R] = {}
        for entity_id, cell in cells.items():
            value = cell.result()
            if value is not _ABSENT:
                result[entity_id] = value
        return result

    def _resolve(self, claimed: list[ID], cells: dict[ID, Future[Any]]) -> None:
        """Fetch the claimed ids and publish them to their cells."""
        try:
            fetched = self._mapper(claimed)
            values = [fetched.get(entity_id, _ABSENT) for entity_id in claimed]
        except BaseException as e:
            with self._lock:
                for entity_id in claimed:
                    if self._cells.get(entity_id) is cells[entity_id]:
                        del self._cells[entity_id]
            for entity_id in claimed:
                cells[entity_id].set_exception(e)
            logger.warning(
                "Cached mapper retrieval failed, evicting claimed ids",
                extra={"mapper": self.name, "evicted": len(claimed)},
            )
            raise

        for entity_id, value in zip(claimed, values, strict=True):
            cells[entity_id].set_result(value)


def cached(mapper: Callable[[Collection[ID]], dict[ID, R]]) -> CachedMapper[ID, R]:
    """Wrap a mapper so each distinct id is retrieved at most once.

    Usable as a function, ``cached(one_to_one(...))``, or as a decorator
    on a plain mapper function.
    """
    if isinstance(mapper, CachedMapper):
        return mapper
    return CachedMapper(mapper)
