"""Mapping layer - keyed lookups and the assembler DSL."""

from __future__ import annotations

from row_assembler.mapping.builder import AssemblerBuilder, assembler_of
from row_assembler.mapping.cache import CachedMapper, cached
from row_assembler.mapping.mapper import (
    OneToManyMapper,
    OneToOneMapper,
    one_to_many,
    one_to_many_as_list,
    one_to_many_as_set,
    one_to_one,
)
from row_assembler.mapping.protocol import Mapper

__all__ = [
    "Mapper",
    "OneToOneMapper",
    "OneToManyMapper",
    "one_to_one",
    "one_to_many",
    "one_to_many_as_list",
    "one_to_many_as_set",
    "CachedMapper",
    "cached",
    "AssemblerBuilder",
    "assembler_of",
]
