"""Unit tests for the Assembler."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import pytest

from row_assembler.adapters.future import future_adapter
from row_assembler.adapters.stream import stream_adapter
from row_assembler.core.engine import Assembler, assemble, default_error_converter
from row_assembler.core.exceptions import (
    AggregationFailure,
    CombinerArityError,
    ConfigurationError,
    RetrievalFailure,
)
from row_assembler.mapping.cache import cached
from row_assembler.mapping.mapper import one_to_many_as_list, one_to_one


@dataclass(frozen=True)
class Customer:
    customer_id: int
    name: str


@dataclass(frozen=True)
class BillingInfo:
    customer_id: int
    address: str


@dataclass(frozen=True)
class OrderItem:
    order_id: int
    customer_id: int
    product: str


@dataclass
class Transaction:
    customer: Customer
    billing_info: BillingInfo | None
    order_items: list[OrderItem] = field(default_factory=list)


class UserDefinedError(Exception):
    pass


CUSTOMERS = [Customer(1, "Alice"), Customer(2, "Bob"), Customer(3, "Carol")]
BILLING = [BillingInfo(1, "1 Main St"), BillingInfo(3, "3 Elm St")]
ORDERS = [
    OrderItem(10, 1, "lamp"),
    OrderItem(11, 1, "desk"),
    OrderItem(20, 2, "chair"),
    OrderItem(30, 3, "rug"),
]


@pytest.fixture
def billing_mapper(recording_query):
    return one_to_one(recording_query(BILLING, "customer_id"), lambda b: b.customer_id)


@pytest.fixture
def orders_mapper(recording_query):
    return one_to_many_as_list(recording_query(ORDERS, "customer_id"), lambda o: o.customer_id)


class TestAssembler:
    def test_customer_transactions(self, billing_mapper, orders_mapper) -> None:
        transactions = assemble(
            CUSTOMERS,
            lambda c: c.customer_id,
            [billing_mapper, orders_mapper],
            Transaction,
        )

        assert transactions == [
            Transaction(CUSTOMERS[0], BILLING[0], [ORDERS[0], ORDERS[1]]),
            Transaction(CUSTOMERS[1], None, [ORDERS[2]]),
            Transaction(CUSTOMERS[2], BILLING[1], [ORDERS[3]]),
        ]

    def test_order_and_duplicates_preserved(self, billing_mapper, orders_mapper) -> None:
        customers = [CUSTOMERS[2], CUSTOMERS[0], CUSTOMERS[2], CUSTOMERS[1]]

        transactions = assemble(
            customers,
            lambda c: c.customer_id,
            [billing_mapper, orders_mapper],
            Transaction,
        )

        assert [t.customer for t in transactions] == customers

    def test_mappers_share_one_id_batch(self, recording_query) -> None:
        billing_query = recording_query(BILLING, "customer_id")
        orders_query = recording_query(ORDERS, "customer_id")

        assemble(
            CUSTOMERS + [CUSTOMERS[0]],
            lambda c: c.customer_id,
            [
                one_to_one(billing_query, lambda b: b.customer_id),
                one_to_many_as_list(orders_query, lambda o: o.customer_id),
            ],
            Transaction,
        )

        assert billing_query.calls == [[1, 2, 3, 1]]
        assert orders_query.calls == billing_query.calls

    def test_default_provider_substitution(self, recording_query, orders_mapper) -> None:
        billing = one_to_one(
            recording_query(BILLING, "customer_id"),
            lambda b: b.customer_id,
            lambda customer_id: BillingInfo(customer_id, "n/a"),
        )

        transactions = assemble(CUSTOMERS, lambda c: c.customer_id, [billing, orders_mapper], Transaction)

        assert transactions[1].billing_info == BillingInfo(2, "n/a")

    def test_zero_mappers(self) -> None:
        names = assemble(CUSTOMERS, lambda c: c.customer_id, [], lambda c: c.name)

        assert names == ["Alice", "Bob", "Carol"]

    def test_empty_source_still_invokes_mappers(self, recording_query) -> None:
        query = recording_query(BILLING, "customer_id")

        result = assemble(
            [],
            lambda c: c.customer_id,
            [one_to_one(query, lambda b: b.customer_id)],
            lambda c, b: (c, b),
        )

        assert result == []
        assert query.calls == [[]]

    def test_source_supplier_evaluated_once_per_pass(self, billing_mapper, orders_mapper) -> None:
        loads = []

        def load_customers():
            loads.append(1)
            return iter(CUSTOMERS)

        assembler = Assembler(
            load_customers,
            lambda c: c.customer_id,
            [billing_mapper, orders_mapper],
            Transaction,
        )

        assert len(assembler.assemble()) == 3
        assert len(loads) == 1
        assembler.assemble()
        assert len(loads) == 2

    async def test_stream_pass_reads_source_on_iteration(
        self, billing_mapper, orders_mapper
    ) -> None:
        loads = []

        def load_customers():
            loads.append(1)
            return CUSTOMERS

        assembler = Assembler(
            load_customers,
            lambda c: c.customer_id,
            [billing_mapper, orders_mapper],
            Transaction,
        )

        stream = assembler.assemble(stream_adapter())
        assert loads == []

        transactions = [t async for t in stream]
        assert [t.customer for t in transactions] == CUSTOMERS
        assert loads == [1]

        assert [t async for t in stream] == []
        assert [t async for t in assembler.assemble(stream_adapter())] == transactions
        assert loads == [1, 1]

    def test_parallel_pass_loads_source_once(self, billing_mapper, orders_mapper) -> None:
        loads = []

        def load_customers():
            loads.append(1)
            return CUSTOMERS

        with ThreadPoolExecutor(max_workers=2) as pool:
            result = Assembler(
                load_customers,
                lambda c: c.customer_id,
                [billing_mapper, orders_mapper],
                Transaction,
            ).assemble(future_adapter(pool))

        assert len(result) == 3
        assert loads == [1]

    def test_cached_mapper_reused_across_passes(self, recording_query, orders_mapper) -> None:
        billing_query = recording_query(BILLING, "customer_id")
        billing = cached(one_to_one(billing_query, lambda b: b.customer_id))
        assembler = Assembler(
            CUSTOMERS,
            lambda c: c.customer_id,
            [billing, orders_mapper],
            Transaction,
        )

        first = assembler.assemble()
        second = assembler.assemble()

        assert first == second
        assert billing_query.calls == [[1, 2, 3]]


class TestAssemblerErrors:
    def test_retrieval_failure_wrapped_in_aggregation_failure(self, recording_query) -> None:
        cause = OSError("disk")
        failing = one_to_one(recording_query([], "customer_id", fail_with=cause), lambda b: b.customer_id)

        with pytest.raises(AggregationFailure) as exc_info:
            assemble(CUSTOMERS, lambda c: c.customer_id, [failing], lambda c, b: c)

        retrieval = exc_info.value.cause
        assert isinstance(retrieval, RetrievalFailure)
        assert retrieval.cause is cause

    def test_failure_aborts_remaining_mappers(self, recording_query) -> None:
        failing = one_to_one(
            recording_query([], "customer_id", fail_with=OSError("disk")), lambda b: b.customer_id
        )
        orders_query = recording_query(ORDERS, "customer_id")
        orders = one_to_many_as_list(orders_query, lambda o: o.customer_id)

        with pytest.raises(AggregationFailure):
            assemble(CUSTOMERS, lambda c: c.customer_id, [failing, orders], Transaction)

        assert orders_query.calls == []

    def test_custom_error_converter(self, recording_query, orders_mapper) -> None:
        failing = one_to_one(
            recording_query([], "customer_id", fail_with=OSError("disk")), lambda b: b.customer_id
        )

        with pytest.raises(UserDefinedError) as exc_info:
            assemble(
                CUSTOMERS,
                lambda c: c.customer_id,
                [failing, orders_mapper],
                Transaction,
                error_converter=lambda e: UserDefinedError(str(e)),
            )

        assert isinstance(exc_info.value.__cause__, RetrievalFailure)

    def test_source_failure_converted(self, billing_mapper) -> None:
        def load_customers():
            raise ConnectionError("no db")

        with pytest.raises(AggregationFailure, match="no db"):
            assemble(load_customers, lambda c: c.customer_id, [billing_mapper], lambda c, b: c)

    def test_id_extractor_failure_converted(self, billing_mapper) -> None:
        def bad_id(customer):
            raise KeyError("id")

        with pytest.raises(AggregationFailure) as exc_info:
            assemble(CUSTOMERS, bad_id, [billing_mapper], lambda c, b: c)

        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_id_extractor_failure_converted_without_mappers(self) -> None:
        def bad_id(customer):
            raise KeyError("id")

        with pytest.raises(AggregationFailure):
            Assembler([1], bad_id, [], lambda e: e).assemble()

    def test_combiner_failure_converted(self, billing_mapper) -> None:
        def combine(customer, billing):
            raise KeyError(customer.customer_id)

        with pytest.raises(AggregationFailure):
            assemble(CUSTOMERS, lambda c: c.customer_id, [billing_mapper], combine)

    def test_default_converter_passes_aggregation_failure_through(self) -> None:
        failure = AggregationFailure(ValueError("x"))

        assert default_error_converter(failure) is failure

    def test_arity_mismatch_detected_eagerly(self, recording_query, billing_mapper) -> None:
        query = recording_query(ORDERS, "customer_id")
        orders = one_to_many_as_list(query, lambda o: o.customer_id)

        with pytest.raises(CombinerArityError, match="3 positional"):
            Assembler(CUSTOMERS, lambda c: c.customer_id, [billing_mapper, orders], lambda c, b: c)

        assert query.calls == []

    def test_variadic_combiner_accepted(self, billing_mapper, orders_mapper) -> None:
        result = assemble(
            CUSTOMERS,
            lambda c: c.customer_id,
            [billing_mapper, orders_mapper],
            lambda *parts: len(parts),
        )

        assert result == [3, 3, 3]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"id_extractor": "customer_id"},
            {"mappers": [object()]},
            {"combiner": None},
            {"source": None},
        ],
    )
    def test_invalid_configuration(self, kwargs) -> None:
        args = {
            "source": CUSTOMERS,
            "id_extractor": lambda c: c.customer_id,
            "mappers": [],
            "combiner": lambda c: c,
        }
        args.update(kwargs)

        with pytest.raises(ConfigurationError):
            Assembler(**args)

    def test_non_adapter_rejected(self) -> None:
        assembler = Assembler(CUSTOMERS, lambda c: c.customer_id, [], lambda c: c)

        with pytest.raises(ConfigurationError, match="Not an assembler adapter"):
            assembler.assemble(object())  # type: ignore[arg-type]
