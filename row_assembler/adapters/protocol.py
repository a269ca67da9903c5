"""Execution adapter protocol.

Every adapter module MUST implement this protocol. The Assembler hands
an adapter one zero-argument unit of work per mapper plus a ``build``
callback; the adapter decides how the units are dispatched and awaited
and how the aggregates are packaged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, NoReturn, Protocol, runtime_checkable

MapperSource = Callable[[], Mapping[Any, Any]]
AggregateBuilder = Callable[[list[Mapping[Any, Any]]], Iterable[Any]]
ErrorConverter = Callable[[Exception], Exception]


@runtime_checkable
class AssemblerAdapter(Protocol):
    """Dispatch, await and package protocol shared by all strategies."""

    def convert(
        self,
        sources: Sequence[MapperSource],
        build: AggregateBuilder,
        error_converter: ErrorConverter,
    ) -> Any:
        """Run ``sources``, pass their result maps to ``build``, package the output.

        If any source fails, the whole conversion fails with the converted
        error. No partial output is ever returned.
        """
        ...


def raise_converted(error: Exception, error_converter: ErrorConverter) -> NoReturn:
    """Raise ``error_converter(error)`` chained to ``error``.

    Must be called from inside the ``except`` block handling ``error``.
    """
    converted = error_converter(error)
    if converted is error:
        raise error
    raise converted from error
