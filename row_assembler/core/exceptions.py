"""RowAssembler exception hierarchy.

Every failure surfaced by ``Assembler.assemble`` is a RowAssembler
exception or the product of a caller-supplied error converter. Raw
retrieval exceptions are never exposed to callers unconverted.
"""

from __future__ import annotations


class RowAssemblerError(Exception):
    """Base exception for all RowAssembler errors."""


# --- Mapping ---


class MappingError(RowAssemblerError):
    """Base for mapper errors."""


class RetrievalFailure(MappingError):
    """Raised when a mapper's retrieval function fails."""

    def __init__(self, query_name: str, cause: BaseException) -> None:
        self.query_name = query_name
        self.cause = cause
        super().__init__(f"Retrieval failed for '{query_name}': {cause!r}")


# --- Configuration ---


class ConfigurationError(RowAssemblerError):
    """Raised when an assembly is wired incorrectly."""


class CombinerArityError(ConfigurationError):
    """Raised when the combiner cannot accept one entity plus one result per mapper."""

    def __init__(self, combiner_name: str, expected: int) -> None:
        self.combiner_name = combiner_name
        self.expected = expected
        super().__init__(
            f"Combiner '{combiner_name}' must accept {expected} positional "
            f"arguments (entity + {expected - 1} mapper results)"
        )


# --- Assembly ---


class AggregationFailure(RowAssemblerError):
    """Raised when an assembly pass fails. Wraps the original cause."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Assembly failed: {cause}")


# --- Adapter ---


class AdapterError(RowAssemblerError):
    """Raised when an execution adapter cannot be resolved."""
