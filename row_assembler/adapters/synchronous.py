"""Synchronous adapter.

Runs every mapper source on the calling thread, one after another.
The first failure aborts the remaining sources.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from row_assembler.adapters.protocol import (
    AggregateBuilder,
    ErrorConverter,
    MapperSource,
    raise_converted,
)

logger = logging.getLogger(__name__)


class SynchronousAdapter:
    """Sequential, blocking adapter producing a list of aggregates."""

    def convert(
        self,
        sources: Sequence[MapperSource],
        build: AggregateBuilder,
        error_converter: ErrorConverter,
    ) -> list[Any]:
        logger.debug("Running mapper sources sequentially", extra={"sources": len(sources)})
        try:
            return list(build([source() for source in sources]))
        except Exception as e:
            logger.warning(
                f"Synchronous assembly failed: {e}",
                extra={"error_type": type(e).__name__},
            )
            raise_converted(e, error_converter)

    def __repr__(self) -> str:
        return "SynchronousAdapter()"


def synchronous_adapter() -> SynchronousAdapter:
    """Create a synchronous adapter."""
    return SynchronousAdapter()
