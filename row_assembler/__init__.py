"""RowAssembler - batched keyed-lookup join engine."""

from __future__ import annotations

import logging

from row_assembler.adapters.future import FutureAdapter, future_adapter
from row_assembler.adapters.protocol import AssemblerAdapter
from row_assembler.adapters.stream import StreamAdapter, stream_adapter
from row_assembler.adapters.synchronous import SynchronousAdapter, synchronous_adapter
from row_assembler.core.config import AdapterConfig, load_adapter
from row_assembler.core.engine import Assembler, assemble, default_error_converter
from row_assembler.core.enums import ExecutionStrategy
from row_assembler.core.exceptions import (
    AdapterError,
    AggregationFailure,
    CombinerArityError,
    ConfigurationError,
    MappingError,
    RetrievalFailure,
    RowAssemblerError,
)
from row_assembler.mapping import (
    AssemblerBuilder,
    CachedMapper,
    Mapper,
    OneToManyMapper,
    OneToOneMapper,
    assembler_of,
    cached,
    one_to_many,
    one_to_many_as_list,
    one_to_many_as_set,
    one_to_one,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Engine
    "Assembler",
    "assemble",
    "default_error_converter",
    # Builder
    "AssemblerBuilder",
    "assembler_of",
    # Mappers
    "Mapper",
    "OneToOneMapper",
    "OneToManyMapper",
    "one_to_one",
    "one_to_many",
    "one_to_many_as_list",
    "one_to_many_as_set",
    "CachedMapper",
    "cached",
    # Adapters
    "AssemblerAdapter",
    "SynchronousAdapter",
    "synchronous_adapter",
    "FutureAdapter",
    "future_adapter",
    "StreamAdapter",
    "stream_adapter",
    # Config
    "AdapterConfig",
    "ExecutionStrategy",
    "load_adapter",
    # Exceptions
    "RowAssemblerError",
    "MappingError",
    "RetrievalFailure",
    "ConfigurationError",
    "CombinerArityError",
    "AggregationFailure",
    "AdapterError",
]
