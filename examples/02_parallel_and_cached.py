"""
Example 02: Parallel Lookups and Cached Mappers

This example demonstrates running lookups on a thread pool through the
fluent builder, and reusing a cached mapper across passes so ids that
were already resolved are not queried again.
"""

import logging
import time
from dataclasses import dataclass

from row_assembler import AdapterConfig, assembler_of, cached, one_to_many_as_set, one_to_one


@dataclass(frozen=True)
class Customer:
    customer_id: int
    name: str


@dataclass(frozen=True)
class Profile:
    customer_id: int
    tier: str


@dataclass(frozen=True)
class Tag:
    customer_id: int
    label: str


@dataclass
class CustomerView:
    customer: Customer
    profile: Profile | None
    tags: set[Tag]


def get_profiles(customer_ids):
    time.sleep(0.2)
    print(f"  profiles fetched for {sorted(customer_ids)}")
    return [Profile(i, "gold" if i % 2 else "silver") for i in customer_ids]


def get_tags(customer_ids):
    time.sleep(0.2)
    return [Tag(i, label) for i in customer_ids for label in ("new", "newsletter")]


def main():
    logging.basicConfig(level=logging.INFO)

    profiles = cached(one_to_one(get_profiles, lambda p: p.customer_id))
    tags = one_to_many_as_set(get_tags, lambda t: t.customer_id)
    config = AdapterConfig(strategy="parallel", max_workers=4)

    print("=== Parallel Assembly ===\n")

    for batch in ([1, 2, 3], [2, 3, 4]):
        customers = [Customer(i, f"customer-{i}") for i in batch]
        started = time.perf_counter()
        views = (
            assembler_of(CustomerView)
            .from_source(customers, lambda c: c.customer_id)
            .with_mappers(profiles, tags)
            .using(config)
        )
        elapsed = time.perf_counter() - started
        print(f"Batch {batch} assembled in {elapsed:.2f}s")
        for view in views:
            print(f"  {view.customer.name}: {view.profile.tier}, {len(view.tags)} tags")
        print()


if __name__ == "__main__":
    main()
