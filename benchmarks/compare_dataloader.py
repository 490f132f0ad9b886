#!/usr/bin/env python3
"""Benchmark single-user-cache against Strawberry's DataLoader.

Each round issues N concurrent loads drawn from M distinct ids against a
fresh loader, with a batch function that simulates a slow backend.

Usage:
    python benchmarks/compare_dataloader.py
    python benchmarks/compare_dataloader.py --requests 10000 --items 1000 --rounds 20
    python benchmarks/compare_dataloader.py --delay-ms 0 --max-batch-size 100
"""

from __future__ import annotations

import argparse
import asyncio
import random
import statistics
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from strawberry.dataloader import DataLoader

from single_user_cache import Factory


@dataclass
class BenchmarkResult:
    """Timings from a benchmark run."""

    name: str
    rounds: int
    batch_calls: int = 0
    latencies_ms: list[float] = field(default_factory=list)

    @property
    def mean_ms(self) -> float:
        return statistics.mean(self.latencies_ms) if self.latencies_ms else 0.0

    @property
    def p50_ms(self) -> float:
        if not self.latencies_ms:
            return 0.0
        sorted_latencies = sorted(self.latencies_ms)
        return sorted_latencies[int(len(sorted_latencies) * 0.5)]

    @property
    def p95_ms(self) -> float:
        if not self.latencies_ms:
            return 0.0
        sorted_latencies = sorted(self.latencies_ms)
        idx = int(len(sorted_latencies) * 0.95)
        return sorted_latencies[min(idx, len(sorted_latencies) - 1)]


def make_backend(delay_s: float) -> tuple[Callable[[list[int]], Awaitable[list[dict]]], list[int]]:
    """Return a simulated bulk fetch and its call counter."""
    calls = [0]

    async def fetch_items(keys: list[int]) -> list[dict]:
        calls[0] += 1
        if delay_s:
            await asyncio.sleep(delay_s)
        return [{"id": key} for key in keys]

    return fetch_items, calls


async def bench_single_user_cache(
    ids: list[int], rounds: int, delay_s: float, max_batch_size: int | None
) -> BenchmarkResult:
    fetch_items, calls = make_backend(delay_s)

    async def batch_fn(keys: list[int], context: Any) -> list[dict]:
        return await fetch_items(keys)

    factory = Factory().add("get_items", batch_fn, max_batch_size=max_batch_size)
    result = BenchmarkResult(name="single-user-cache", rounds=rounds)

    for _ in range(rounds):
        cache = factory.create({})
        start = time.perf_counter()
        await asyncio.gather(*(cache.get_items(item_id) for item_id in ids))
        result.latencies_ms.append((time.perf_counter() - start) * 1000)

    result.batch_calls = calls[0]
    return result


async def bench_dataloader(
    ids: list[int], rounds: int, delay_s: float, max_batch_size: int | None
) -> BenchmarkResult:
    fetch_items, calls = make_backend(delay_s)
    result = BenchmarkResult(name="strawberry DataLoader", rounds=rounds)

    for _ in range(rounds):
        loader: DataLoader[int, dict] = DataLoader(
            load_fn=fetch_items, cache=True, max_batch_size=max_batch_size
        )
        start = time.perf_counter()
        await asyncio.gather(*(loader.load(item_id) for item_id in ids))
        result.latencies_ms.append((time.perf_counter() - start) * 1000)

    result.batch_calls = calls[0]
    return result


def print_report(results: list[BenchmarkResult]) -> None:
    print()
    print(f"{'Loader':<24} {'mean ms':>10} {'p50 ms':>10} {'p95 ms':>10} {'batches':>10}")
    print("-" * 68)
    for result in results:
        print(
            f"{result.name:<24} {result.mean_ms:>10.2f} {result.p50_ms:>10.2f} "
            f"{result.p95_ms:>10.2f} {result.batch_calls:>10}"
        )


async def run(args: argparse.Namespace) -> list[BenchmarkResult]:
    rng = random.Random(args.seed)
    ids = [rng.randrange(args.items) for _ in range(args.requests)]
    delay_s = args.delay_ms / 1000.0

    print(
        f"Benchmarking {args.requests} loads over {args.items} ids, "
        f"{args.rounds} rounds, {args.delay_ms}ms backend delay"
    )
    return [
        await bench_dataloader(ids, args.rounds, delay_s, args.max_batch_size),
        await bench_single_user_cache(ids, args.rounds, delay_s, args.max_batch_size),
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--requests", type=int, default=10000, help="Loads per round")
    parser.add_argument("--items", type=int, default=1000, help="Distinct ids")
    parser.add_argument("--rounds", type=int, default=10, help="Rounds per loader")
    parser.add_argument("--delay-ms", type=float, default=10.0, help="Simulated backend delay")
    parser.add_argument("--max-batch-size", type=int, default=None, help="Chunk size")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for ids")
    args = parser.parse_args()

    print_report(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
