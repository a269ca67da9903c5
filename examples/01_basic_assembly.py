"""
Example 01: Basic Assembly

This example demonstrates joining customers with their billing info and
orders using batched lookups and the synchronous adapter.
"""

from dataclasses import dataclass

from row_assembler import assemble, one_to_many_as_list, one_to_one


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
    order_items: list[OrderItem]


BILLING = [BillingInfo(1, "1 Main St"), BillingInfo(3, "3 Elm St")]
ORDERS = [
    OrderItem(10, 1, "lamp"),
    OrderItem(11, 1, "desk"),
    OrderItem(20, 2, "chair"),
    OrderItem(30, 3, "rug"),
]


def get_billing_info(customer_ids):
    """Stand-in for a batched query: SELECT ... WHERE customer_id IN (...)"""
    print(f"  billing query for ids {list(customer_ids)}")
    return [b for b in BILLING if b.customer_id in customer_ids]


def get_order_items(customer_ids):
    print(f"  orders query for ids {list(customer_ids)}")
    return [o for o in ORDERS if o.customer_id in customer_ids]


def main():
    customers = [Customer(1, "Alice"), Customer(2, "Bob"), Customer(3, "Carol")]

    print("=== Basic Assembly ===\n")

    transactions = assemble(
        customers,
        lambda c: c.customer_id,
        [
            one_to_one(
                get_billing_info,
                lambda b: b.customer_id,
                lambda customer_id: BillingInfo(customer_id, "no billing address"),
            ),
            one_to_many_as_list(get_order_items, lambda o: o.customer_id),
        ],
        Transaction,
    )

    print(f"\nAssembled {len(transactions)} transactions:\n")
    for transaction in transactions:
        print(f"{transaction.customer.name}: {transaction.billing_info.address}")
        for item in transaction.order_items:
            print(f"    - order #{item.order_id}: {item.product}")


if __name__ == "__main__":
    main()
