"""Assembly engine.

The Assembler materializes the top-level entities, derives the id batch
once, hands one unit of work per mapper to an execution adapter, and
correlates the resulting maps back to each entity by id before calling
the combiner.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from row_assembler.adapters.protocol import AssemblerAdapter, ErrorConverter
from row_assembler.adapters.synchronous import SynchronousAdapter
from row_assembler.core.exceptions import (
    AggregationFailure,
    CombinerArityError,
    ConfigurationError,
)

if TYPE_CHECKING:
    from row_assembler.mapping.protocol import Mapper

logger = logging.getLogger(__name__)

T = TypeVar("T")
ID = TypeVar("ID")
R = TypeVar("R")

EntitySource = Iterable[T] | Callable[[], Iterable[T]]


def default_error_converter(error: Exception) -> Exception:
    """Wrap any failure into an AggregationFailure."""
    if isinstance(error, AggregationFailure):
        return error
    return AggregationFailure(error)


def _callable_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)


def _check_arity(combiner: Callable[..., Any], expected: int) -> None:
    """Raise CombinerArityError if ``combiner`` cannot take ``expected`` positional args."""
    try:
        signature = inspect.signature(combiner)
    except (ValueError, TypeError):
        # Builtins without introspectable signatures are trusted.
        return
    try:
        signature.bind(*([None] * expected))
    except TypeError:
        raise CombinerArityError(_callable_name(combiner), expected) from None


class _AssemblyPass(Generic[T, ID]):
    """Entities and id batch of one pass, loaded on first use.

    Every mapper source and the build step go through :meth:`load`, so
    the entity source runs when the adapter dispatches the pass, at most
    once, on whichever thread gets there first. A load failure is kept
    and raised to every later caller.
    """

    def __init__(self, load: Callable[[], tuple[list[T], tuple[ID, ...]]]) -> None:
        self._load = load
        self._lock = threading.Lock()
        self._loaded: tuple[list[T], tuple[ID, ...]] | None = None
        self._error: Exception | None = None

    def load(self) -> tuple[list[T], tuple[ID, ...]]:
        with self._lock:
            if self._error is not None:
                raise self._error
            if self._loaded is None:
                try:
                    self._loaded = self._load()
                except Exception as e:
                    self._error = e
                    raise
            return self._loaded


class Assembler(Generic[T, ID, R]):
    """Joins top-level entities with the results of independent mappers.

    Args:
        source: The entities, or a zero-argument callable returning them.
            A callable is invoked exactly once per assembly pass.
        id_extractor: Pure function extracting the id of an entity.
        mappers: Ordered mappers; each result is passed positionally to
            the combiner.
        combiner: ``combiner(entity, result_1, ..., result_n) -> aggregate``.
        error_converter: Maps any failure to the exception raised to the
            caller. Defaults to wrapping into AggregationFailure.

    Raises:
        ConfigurationError: If any collaborator is not callable or the
            combiner arity does not match the mappers.
    """

    def __init__(
        self,
        source: EntitySource[T],
        id_extractor: Callable[[T], ID],
        mappers: Sequence[Mapper[ID, Any]],
        combiner: Callable[..., R],
        *,
        error_converter: ErrorConverter | None = None,
    ) -> None:
        if source is None:
            raise ConfigurationError("Entity source must not be None")
        if not callable(id_extractor):
            raise ConfigurationError(f"Id extractor must be callable, got {id_extractor!r}")
        for mapper in mappers:
            if not callable(mapper):
                raise ConfigurationError(f"Mapper must be callable, got {mapper!r}")
        if not callable(combiner):
            raise ConfigurationError(f"Combiner must be callable, got {combiner!r}")
        if error_converter is not None and not callable(error_converter):
            raise ConfigurationError(
                f"Error converter must be callable, got {error_converter!r}"
            )
        _check_arity(combiner, 1 + len(mappers))

        self._source = source
        self._id_extractor = id_extractor
        self._mappers = tuple(mappers)
        self._combiner = combiner
        self._error_converter = error_converter or default_error_converter

    @property
    def mappers(self) -> tuple[Mapper[ID, Any], ...]:
        return self._mappers

    def _load(self) -> tuple[list[T], tuple[ID, ...]]:
        """Materialize the entity source and derive the shared id batch."""
        entities = list(self._source() if callable(self._source) else self._source)
        entity_ids = tuple(self._id_extractor(entity) for entity in entities)
        logger.debug(
            "Starting assembly pass",
            extra={"entities": len(entities), "mappers": len(self._mappers)},
        )
        return entities, entity_ids

    @staticmethod
    def _run_mapper(mapper: Mapper[ID, Any], assembly_pass: _AssemblyPass[T, ID]) -> Any:
        _, entity_ids = assembly_pass.load()
        return mapper(entity_ids)

    def assemble(self, adapter: AssemblerAdapter | None = None) -> Any:
        """Run one assembly pass through ``adapter``.

        Returns whatever the adapter packages the aggregates into: a list
        for the synchronous adapter, ``collection_factory`` output for the
        future adapter, an async iterator for the stream adapter. The
        entity source is read when the adapter dispatches the pass, so
        failures anywhere in the pass go through the error converter, and
        a stream does not touch the source until it is iterated.
        """
        if adapter is None:
            adapter = SynchronousAdapter()
        elif not isinstance(adapter, AssemblerAdapter):
            raise ConfigurationError(f"Not an assembler adapter: {adapter!r}")

        assembly_pass: _AssemblyPass[T, ID] = _AssemblyPass(self._load)
        sources = [
            functools.partial(self._run_mapper, mapper, assembly_pass) for mapper in self._mappers
        ]

        def build(results: list[Mapping[ID, Any]]) -> Iterator[R]:
            entities, entity_ids = assembly_pass.load()
            for entity, entity_id in zip(entities, entity_ids, strict=True):
                yield self._combiner(entity, *(result.get(entity_id) for result in results))

        return adapter.convert(sources, build, self._error_converter)


def assemble(
    source: EntitySource[T],
    id_extractor: Callable[[T], ID],
    mappers: Sequence[Mapper[ID, Any]],
    combiner: Callable[..., R],
    *,
    adapter: AssemblerAdapter | None = None,
    error_converter: ErrorConverter | None = None,
) -> Any:
    """Build an Assembler and run a single pass.

    Uses the synchronous adapter unless ``adapter`` is given.
    """
    assembler: Assembler[T, ID, R] = Assembler(
        source, id_extractor, mappers, combiner, error_converter=error_converter
    )
    return assembler.assemble(adapter)
