"""Adapter configuration and loading.

AdapterConfig is a Pydantic model for type-safe adapter selection.
load_adapter resolves a strategy to a concrete adapter instance.
"""

from __future__ import annotations

import collections
import importlib
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Literal

from pydantic import BaseModel, field_validator

from row_assembler.core.enums import ExecutionStrategy
from row_assembler.core.exceptions import AdapterError


class AdapterConfig(BaseModel):
    """Configuration for execution adapters."""

    strategy: ExecutionStrategy = ExecutionStrategy.SYNCHRONOUS
    max_workers: int | None = None
    thread_name_prefix: str = "row-assembler"
    collection: Literal["list", "set", "tuple", "deque"] = "list"

    @field_validator("max_workers")
    @classmethod
    def _positive_workers(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("max_workers must be positive")
        return value


# Adapter module mapping: strategy → (module_path, adapter_class)
_ADAPTER_MAP: dict[ExecutionStrategy, tuple[str, str]] = {
    ExecutionStrategy.SYNCHRONOUS: ("row_assembler.adapters.synchronous", "SynchronousAdapter"),
    ExecutionStrategy.PARALLEL: ("row_assembler.adapters.future", "FutureAdapter"),
    ExecutionStrategy.STREAMING: ("row_assembler.adapters.stream", "StreamAdapter"),
}

_COLLECTIONS: dict[str, Any] = {
    "list": list,
    "set": set,
    "tuple": tuple,
    "deque": collections.deque,
}


def _to_config(target: AdapterConfig | ExecutionStrategy | str) -> AdapterConfig:
    if isinstance(target, AdapterConfig):
        return target
    if isinstance(target, ExecutionStrategy):
        return AdapterConfig(strategy=target)
    try:
        return AdapterConfig(strategy=ExecutionStrategy(target.lower()))
    except (ValueError, AttributeError):
        raise AdapterError(f"Unsupported execution strategy: {target!r}") from None


def load_adapter(target: AdapterConfig | ExecutionStrategy | str) -> Any:
    """Load an adapter from a config, a strategy, or a strategy name.

    A positive ``max_workers`` gives the adapter its own thread pool,
    released by the adapter's ``shutdown()``.
    """
    config = _to_config(target)
    module_path, cls_name = _ADAPTER_MAP[config.strategy]

    try:
        module = importlib.import_module(module_path)
        adapter_cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{config.strategy.value}': {e}") from e

    if config.strategy is ExecutionStrategy.SYNCHRONOUS:
        return adapter_cls()

    executor = None
    if config.max_workers is not None:
        executor = ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix=config.thread_name_prefix,
        )

    if config.strategy is ExecutionStrategy.PARALLEL:
        return adapter_cls(
            executor,
            _COLLECTIONS[config.collection],
            owns_executor=executor is not None,
        )
    return adapter_cls(executor, owns_scheduler=executor is not None)
