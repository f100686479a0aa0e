#!/usr/bin/env python3
"""
Demo script for the SWR cache.

Runs the cache against a simulated production-order API (httpx.MockTransport)
and an in-memory mirror, showing deduplication, optimistic writes and
stale-while-revalidate on failure.
"""

import asyncio
import json

import httpx

from swr_cache import (
    CollectionWriter,
    HttpResourceRepository,
    InMemoryMirrorRepository,
    SyncService,
)
from swr_cache.dto import DEFAULT_SCHEMAS


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


class FakeOrderApi:
    """Tiny in-process stand-in for the /ops REST API."""

    def __init__(self) -> None:
        self.orders = [
            {"id": "1", "op_number": "1001", "status": "Entrega pendente"},
            {"id": "2", "op_number": "1002", "status": "Entregue"},
        ]
        self.reads = 0
        self.fail_reads = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if request.method == "GET":
            self.reads += 1
            if self.fail_reads:
                return httpx.Response(503, json={"message": "maintenance"})
            return httpx.Response(200, json=self.orders)
        if request.method == "POST":
            body = json.loads(request.content)
            order = {"id": str(len(self.orders) + 1), **body}
            self.orders.append(order)
            return httpx.Response(201, json=order)
        if request.method == "PUT":
            body = json.loads(request.content)
            for order in self.orders:
                if order["id"] == parts[1]:
                    order.update(body)
            return httpx.Response(204)
        if request.method == "DELETE":
            self.orders = [o for o in self.orders if o["id"] != parts[1]]
            return httpx.Response(204)
        return httpx.Response(405)


def show(entry) -> None:
    rows = ", ".join(f"{o.op_number}:{o.status}" for o in entry.data or [])
    error = f" (error: {entry.error})" if entry.error else ""
    print(f"  [{entry.status.value}] {rows}{error}")


async def main() -> None:
    api = FakeOrderApi()
    repository = HttpResourceRepository(
        base_url="http://demo.local",
        schemas=DEFAULT_SCHEMAS,
        transport=httpx.MockTransport(api.handle),
    )
    mirror = InMemoryMirrorRepository(namespace="@Demo")

    async with SyncService(fetcher=repository, mirror=mirror, interval=60) as cache:
        print_section("Deduplicated first load")
        subs = [cache.subscribe("ops", show)]
        subs += [cache.subscribe("ops", lambda entry: None) for _ in range(2)]
        await cache.revalidate("ops")
        print(f"\n  Remote reads for 3 subscribers: {api.reads}")
        print(f"  Mirror record: {mirror.records['@Demo:ops'][:60]!r}...")

        print_section("Optimistic writes")
        writer = CollectionWriter(cache, repository)
        created = await writer.create("ops", {"op_number": "1003"})
        await writer.update("ops", created.id, {"status": "Entregue"})
        await writer.delete("ops", "2")
        print(f"\n  Remote reads after writes: {api.reads}")

        print_section("Stale-while-revalidate on failure")
        api.fail_reads = True
        entry = await cache.revalidate("ops")
        print(f"\n  Still serving {len(entry.data)} orders, error={entry.error}")

        for sub in subs:
            sub.close()

        print_section("Stats")
        for name, value in cache.stats()["metrics"].items():
            print(f"  {name}: {value}")


if __name__ == "__main__":
    asyncio.run(main())
