"""Keyed lookup mappers.

One-to-one and one-to-many join semantics over a batched retrieval
function. Each mapper calls its query once per batch and keys the
results by id, so every requested id ends up with a value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable, MutableSequence, MutableSet
from typing import Any, Generic, TypeVar

from row_assembler.core.exceptions import ConfigurationError, RetrievalFailure

logger = logging.getLogger(__name__)

ID = TypeVar("ID")
R = TypeVar("R")

QueryFunction = Callable[[Collection[Any]], Iterable[Any]]


def _query_name(query: Callable[..., Any]) -> str:
    """Best-effort readable name for a retrieval function."""
    return getattr(query, "__qualname__", None) or getattr(query, "__name__", None) or repr(query)


def _adder(collection: Any) -> Callable[[Any], None]:
    """Return the insertion method for a supported collection shape."""
    if isinstance(collection, MutableSet):
        return collection.add
    if isinstance(collection, MutableSequence):
        return collection.append
    raise ConfigurationError(
        f"Unsupported collection type {type(collection).__name__}: "
        "expected a mutable sequence or mutable set"
    )


class _QueryMapper(Generic[ID, R]):
    """Shared retrieval plumbing for the concrete mappers."""

    def __init__(
        self,
        query: QueryFunction,
        id_extractor: Callable[[Any], ID],
        id_collection_factory: Callable[[Iterable[ID]], Collection[ID]],
        name: str | None,
    ) -> None:
        if not callable(query):
            raise ConfigurationError(f"Query function must be callable, got {query!r}")
        if not callable(id_extractor):
            raise ConfigurationError(f"Id extractor must be callable, got {id_extractor!r}")
        self._query = query
        self._id_extractor = id_extractor
        self._id_collection_factory = id_collection_factory
        self.name = name or _query_name(query)

    def _fetch(self, entity_ids: Collection[ID]) -> list[Any]:
        """Run the query against the batch in the declared id collection shape."""
        ids = self._id_collection_factory(entity_ids)
        logger.debug(
            "Running mapper query",
            extra={"mapper": self.name, "id_count": len(ids)},
        )
        try:
            return list(self._query(ids))
        except RetrievalFailure:
            raise
        except Exception as e:
            raise RetrievalFailure(self.name, e) from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class OneToOneMapper(_QueryMapper[ID, R]):
    """Maps each id to at most one result, substituting a default when absent.

    The first result seen for an id wins. Ids missing from the query
    results resolve through ``default``, which may return None.
    """

    def __init__(
        self,
        query: QueryFunction,
        id_extractor: Callable[[R], ID],
        default: Callable[[ID], R | None] | None = None,
        *,
        id_collection_factory: Callable[[Iterable[ID]], Collection[ID]] = list,
        name: str | None = None,
    ) -> None:
        super().__init__(query, id_extractor, id_collection_factory, name)
        if default is not None and not callable(default):
            raise ConfigurationError(f"Default provider must be callable, got {default!r}")
        self._default = default

    def __call__(self, entity_ids: Collection[ID]) -> dict[ID, R | None]:
        result: dict[ID, R | None] = {}
        for row in self._fetch(entity_ids):
            result.setdefault(self._id_extractor(row), row)

        for entity_id in entity_ids:
            if entity_id not in result:
                result[entity_id] = self._default(entity_id) if self._default else None
        return result


class OneToManyMapper(_QueryMapper[ID, Any]):
    """Groups results per id into a caller-chosen collection shape.

    Ids without results map to an empty collection, never to None.
    """

    def __init__(
        self,
        query: QueryFunction,
        id_extractor: Callable[[Any], ID],
        collection_factory: Callable[[], Any],
        *,
        id_collection_factory: Callable[[Iterable[ID]], Collection[ID]] = list,
        name: str | None = None,
    ) -> None:
        super().__init__(query, id_extractor, id_collection_factory, name)
        if not callable(collection_factory):
            raise ConfigurationError(
                f"Collection factory must be callable, got {collection_factory!r}"
            )
        probe = collection_factory()
        if probe is None:
            raise ConfigurationError(f"Collection factory for '{self.name}' returned None")
        _adder(probe)
        self._collection_factory = collection_factory

    def __call__(self, entity_ids: Collection[ID]) -> dict[ID, Any]:
        result: dict[ID, Any] = {}
        adders: dict[ID, Callable[[Any], None]] = {}
        for row in self._fetch(entity_ids):
            key = self._id_extractor(row)
            if key not in adders:
                result[key] = self._collection_factory()
                adders[key] = _adder(result[key])
            adders[key](row)

        for entity_id in entity_ids:
            if entity_id not in result:
                result[entity_id] = self._collection_factory()
        return result


def one_to_one(
    query: QueryFunction,
    id_extractor: Callable[[R], ID],
    default: Callable[[ID], R | None] | None = None,
    *,
    id_collection_factory: Callable[[Iterable[ID]], Collection[ID]] = list,
    name: str | None = None,
) -> OneToOneMapper[ID, R]:
    """Build a one-to-one mapper.

    Args:
        query: Batched retrieval function, ids -> iterable of results.
        id_extractor: Extracts the owning entity id from a result.
        default: Provides the value for ids with no result. Defaults to None.
        id_collection_factory: Shape of the id batch handed to ``query``
            (``list`` keeps duplicates, ``set`` de-duplicates).
        name: Name used in errors and logs. Defaults to the query's name.
    """
    return OneToOneMapper(
        query,
        id_extractor,
        default,
        id_collection_factory=id_collection_factory,
        name=name,
    )


def one_to_many(
    query: QueryFunction,
    id_extractor: Callable[[Any], ID],
    collection_factory: Callable[[], Any],
    *,
    id_collection_factory: Callable[[Iterable[ID]], Collection[ID]] = list,
    name: str | None = None,
) -> OneToManyMapper[ID]:
    """Build a one-to-many mapper grouping results into ``collection_factory()``.

    Raises:
        ConfigurationError: If the collection factory returns None or an
            unsupported collection type.
    """
    return OneToManyMapper(
        query,
        id_extractor,
        collection_factory,
        id_collection_factory=id_collection_factory,
        name=name,
    )


def one_to_many_as_list(
    query: QueryFunction,
    id_extractor: Callable[[Any], ID],
    *,
    id_collection_factory: Callable[[Iterable[ID]], Collection[ID]] = list,
    name: str | None = None,
) -> OneToManyMapper[ID]:
    """One-to-many mapper producing lists in query result order."""
    return one_to_many(
        query,
        id_extractor,
        list,
        id_collection_factory=id_collection_factory,
        name=name,
    )


def one_to_many_as_set(
    query: QueryFunction,
    id_extractor: Callable[[Any], ID],
    *,
    id_collection_factory: Callable[[Iterable[ID]], Collection[ID]] = list,
    name: str | None = None,
) -> OneToManyMapper[ID]:
    """One-to-many mapper producing sets. Results must be hashable."""
    return one_to_many(
        query,
        id_extractor,
        set,
        id_collection_factory=id_collection_factory,
        name=name,
    )
