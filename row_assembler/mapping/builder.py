"""Assembler DSL builder.

Provides a fluent builder for wiring entities, mappers and a combiner
into an Assembler.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

from row_assembler.adapters.future import FutureAdapter
from row_assembler.adapters.stream import StreamAdapter
from row_assembler.core.config import AdapterConfig, load_adapter
from row_assembler.core.engine import Assembler, EntitySource
from row_assembler.core.enums import ExecutionStrategy
from row_assembler.core.exceptions import ConfigurationError
from row_assembler.mapping.protocol import Mapper


def assembler_of(result_class: type) -> AssemblerBuilder:
    """Entry point for the assembler DSL.

    Args:
        result_class: The aggregate type. Used as the combiner unless
            ``combine_with`` overrides it.

    Returns:
        A builder for chaining assembly declarations.
    """
    return AssemblerBuilder(result_class)


class AssemblerBuilder:
    """Fluent builder for assembler definitions."""

    def __init__(self, result_class: type) -> None:
        self._result_class = result_class
        self._source: EntitySource[Any] | None = None
        self._id_extractor: Callable[[Any], Any] | None = None
        self._mappers: list[Mapper[Any, Any]] = []
        self._combiner: Callable[..., Any] | None = None
        self._error_converter: Callable[[Exception], Exception] | None = None

    def from_source(
        self,
        source: EntitySource[Any],
        id_extractor: Callable[[Any], Any],
    ) -> AssemblerBuilder:
        """Set the top-level entities (or a supplier of them) and their id extractor."""
        self._source = source
        self._id_extractor = id_extractor
        return self

    def with_mappers(self, *mappers: Mapper[Any, Any]) -> AssemblerBuilder:
        """Append mappers. Their results reach the combiner in this order."""
        self._mappers.extend(mappers)
        return self

    def combine_with(self, combiner: Callable[..., Any]) -> AssemblerBuilder:
        """Override the combiner (defaults to the result class)."""
        self._combiner = combiner
        return self

    def with_error_converter(
        self, error_converter: Callable[[Exception], Exception]
    ) -> AssemblerBuilder:
        """Map failures to a caller-defined exception type."""
        self._error_converter = error_converter
        return self

    def build(self) -> Assembler[Any, Any, Any]:
        """Validate the definition and create an Assembler."""
        if self._source is None or self._id_extractor is None:
            raise ConfigurationError(
                f"Assembler for {self._result_class.__name__} needs a source set via .from_source()"
            )
        return Assembler(
            self._source,
            self._id_extractor,
            self._mappers,
            self._combiner or self._result_class,
            error_converter=self._error_converter,
        )

    def using(self, adapter: Any = None) -> Any:
        """Build and run one pass.

        ``adapter`` may be an adapter instance, an ExecutionStrategy, a
        strategy name, or an AdapterConfig. Defaults to synchronous. An
        adapter loaded here is shut down once the pass completes; for the
        streaming strategy that happens when the stream is exhausted,
        fails, or is closed.
        """
        assembler = self.build()
        if not isinstance(adapter, (AdapterConfig, ExecutionStrategy, str)):
            return assembler.assemble(adapter)

        adapter = load_adapter(adapter)
        if isinstance(adapter, StreamAdapter):
            return _shutdown_after(assembler.assemble(adapter), adapter)
        if isinstance(adapter, FutureAdapter):
            with adapter:
                return assembler.assemble(adapter)
        return assembler.assemble(adapter)


async def _shutdown_after(stream: AsyncIterator[Any], adapter: StreamAdapter) -> AsyncIterator[Any]:
    try:
        async for aggregate in stream:
            yield aggregate
    finally:
        adapter.shutdown(wait=False)
