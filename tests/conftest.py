"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable

import pytest


@pytest.fixture
def recording_query():
    """Factory for batched query functions that record every call.

    Usage:
        query = recording_query(rows, "customer_id")
        query([1, 2])  # rows whose customer_id is 1 or 2
        query.calls    # [[1, 2]]
    """

    def _make(
        rows: Iterable[object],
        key: str,
        *,
        fail_with: Exception | None = None,
        delay: float = 0.0,
    ):
        rows = list(rows)
        calls: list[list[object]] = []
        lock = threading.Lock()

        def query(ids):
            with lock:
                calls.append(list(ids))
            if delay:
                time.sleep(delay)
            if fail_with is not None:
                raise fail_with
            wanted = set(ids)
            return [row for row in rows if getattr(row, key) in wanted]

        query.calls = calls  # type: ignore[attr-defined]
        return query

    return _make
