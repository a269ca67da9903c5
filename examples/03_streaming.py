"""
Example 03: Streaming Assembly

This example demonstrates consuming aggregates as an async stream and
mapping retrieval failures to a domain exception.
"""

import asyncio
from dataclasses import dataclass

from row_assembler import Assembler, one_to_many_as_list, one_to_one, stream_adapter


@dataclass(frozen=True)
class Author:
    author_id: int
    name: str


@dataclass(frozen=True)
class Book:
    author_id: int
    title: str


@dataclass(frozen=True)
class Agent:
    author_id: int
    agency: str


class CatalogUnavailable(Exception):
    pass


def get_books(author_ids):
    books = [Book(1, "First Light"), Book(1, "Second Wind"), Book(2, "Low Tide")]
    return [b for b in books if b.author_id in author_ids]


def get_agents(author_ids):
    return [Agent(2, "North & Co")]


def get_agents_offline(author_ids):
    raise ConnectionError("agency service unavailable")


async def main():
    authors = [Author(1, "Ada"), Author(2, "Ben"), Author(3, "Cy")]

    def build(agents):
        return Assembler(
            authors,
            lambda a: a.author_id,
            [
                one_to_many_as_list(get_books, lambda b: b.author_id),
                one_to_one(agents, lambda a: a.author_id),
            ],
            lambda author, books, agent: (author.name, [b.title for b in books], agent),
            error_converter=lambda e: CatalogUnavailable(str(e)),
        )

    print("=== Streaming Assembly ===\n")

    async for name, titles, agent in build(get_agents).assemble(stream_adapter()):
        print(f"{name}: {titles or 'no books'} (agent: {agent.agency if agent else 'none'})")

    print("\n=== Failure Handling ===\n")
    try:
        async for _ in build(get_agents_offline).assemble(stream_adapter()):
            pass
    except CatalogUnavailable as e:
        print(f"Catalog unavailable: {e}")


if __name__ == "__main__":
    asyncio.run(main())
