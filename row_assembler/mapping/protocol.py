"""Mapper protocol.

A mapper resolves a batch of entity ids to a dict keyed by id. The
Assembler calls every configured mapper once per pass with the same
id batch. Plain functions with this signature are valid mappers.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Protocol, TypeVar, runtime_checkable

ID = TypeVar("ID")
R = TypeVar("R")


@runtime_checkable
class Mapper(Protocol[ID, R]):
    """Base mapper protocol."""

    def __call__(self, entity_ids: Collection[ID]) -> dict[ID, R]:
        """Resolve every id in the batch. Must not mutate ``entity_ids``."""
        ...
