"""Execution strategy enumeration."""

from __future__ import annotations

from enum import Enum


class ExecutionStrategy(Enum):
    """Supported execution strategies."""

    SYNCHRONOUS = "synchronous"
    PARALLEL = "parallel"
    STREAMING = "streaming"
