#!/usr/bin/env python3
"""
ZK-SNARK Benchmark Script
=========================

Times key setup, proving and verification for the balance threshold
relation.

Usage:
    python scripts/benchmark_zk.py [--iterations N] [--bit-width B] [--stage NAME]
"""

import argparse
import json
import random
import statistics
import sys
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.zk import (  # noqa: E402
    BalanceThresholdRelation,
    KeyPair,
    VerificationStatus,
    ZKError,
    prove,
    setup,
    verify,
)


# Configuration
TARGET_TIME_MS = {"setup": 120_000, "prove": 10_000, "verify": 5_000}
DEFAULT_ITERATIONS = 5
DEFAULT_BIT_WIDTH = 32


@dataclass
class BenchmarkResult:
    """Result of a benchmark run."""

    stage: str
    bit_width: int
    iterations: int
    min_ms: int
    max_ms: int
    mean_ms: float
    median_ms: float
    p95_ms: int
    p99_ms: int
    success_rate: float
    pass_target: bool


def percentile(data: list[int], p: int) -> int:
    """Calculate percentile."""
    sorted_data = sorted(data)
    index = int(len(sorted_data) * p / 100)
    return sorted_data[min(index, len(sorted_data) - 1)]


def run_stage(
    stage: str,
    bit_width: int,
    iterations: int,
    step: Callable[[int], str],
) -> BenchmarkResult:
    """Time ``step`` ``iterations`` times; ``step`` returns a short label for the log line."""
    times: list[int] = []
    target = TARGET_TIME_MS[stage]

    print(f"\n{'=' * 60}")
    print(f"Benchmarking: {stage} (bit width {bit_width})")
    print(f"Iterations: {iterations}")
    print(f"{'=' * 60}")

    for i in range(iterations):
        try:
            start = time.perf_counter()
            label = step(i)
            duration_ms = int((time.perf_counter() - start) * 1000)
        except ZKError as e:
            print(f"  [{i + 1}/{iterations}] FAILED ({e.error_code}): {e.message}")
            continue

        times.append(duration_ms)
        mark = "ok" if duration_ms < target else "slow"
        print(f"  [{i + 1}/{iterations}] {mark:>4} {duration_ms}ms {label}")

    if not times:
        return BenchmarkResult(stage, bit_width, iterations, 0, 0, 0, 0, 0, 0, 0, False)

    return BenchmarkResult(
        stage=stage,
        bit_width=bit_width,
        iterations=iterations,
        min_ms=min(times),
        max_ms=max(times),
        mean_ms=statistics.mean(times),
        median_ms=statistics.median(times),
        p95_ms=percentile(times, 95),
        p99_ms=percentile(times, 99),
        success_rate=len(times) / iterations,
        pass_target=percentile(times, 95) < target,
    )


def random_statement(bit_width: int) -> tuple[int, int]:
    """A (balance, threshold) pair with threshold <= balance."""
    balance = random.randrange(1 << bit_width)
    return balance, random.randint(0, balance)


def print_results(results: list[BenchmarkResult]) -> bool:
    """Print benchmark results summary."""
    print(f"\n{'=' * 70}")
    print("BENCHMARK SUMMARY")
    print(f"{'=' * 70}")

    print(f"\n{'Stage':<10} | {'Bits':>4} | {'P95':>9} | {'Mean':>9} | {'Target':>10} | Status")
    print("-" * 70)

    for r in results:
        status = "PASS" if r.pass_target else "FAIL"
        print(
            f"{r.stage:<10} | {r.bit_width:>4} | {r.p95_ms:>7}ms | {r.mean_ms:>7.0f}ms | "
            f"<{TARGET_TIME_MS[r.stage]:>7}ms | {status}"
        )

    for r in results:
        print(f"\n{r.stage}:")
        print(f"  Success rate: {r.success_rate * 100:.1f}%")
        print(f"  Min / Max:    {r.min_ms}ms / {r.max_ms}ms")
        print(f"  Median:       {r.median_ms:.0f}ms")
        print(f"  P99:          {r.p99_ms}ms")

    print()
    return all(r.pass_target for r in results)


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark balance threshold proofs")
    parser.add_argument(
        "--iterations", "-n", type=int, default=DEFAULT_ITERATIONS,
        help=f"Number of iterations (default: {DEFAULT_ITERATIONS})",
    )
    parser.add_argument(
        "--bit-width", "-b", type=int, default=DEFAULT_BIT_WIDTH,
        help=f"Relation bit width (default: {DEFAULT_BIT_WIDTH})",
    )
    parser.add_argument(
        "--stage", "-s", choices=["setup", "prove", "verify"],
        help="Benchmark one stage only",
    )
    parser.add_argument("--output", "-o", type=str, help="Output JSON file for results")
    args = parser.parse_args()

    relation = BalanceThresholdRelation(bit_width=args.bit_width)
    results: list[BenchmarkResult] = []

    keys: list[KeyPair] = []

    def setup_step(_: int) -> str:
        keys.append(setup(relation))
        return f"key_id={keys[-1].key_id[:12]}"

    setup_runs = args.iterations if args.stage in (None, "setup") else 1
    setup_result = run_stage("setup", args.bit_width, setup_runs, setup_step)
    if args.stage in (None, "setup"):
        results.append(setup_result)
    if not keys:
        print("\nSetup failed; nothing to prove with.")
        sys.exit(1)
    key_pair = keys[-1]

    proofs = []

    def prove_step(_: int) -> str:
        balance, threshold = random_statement(args.bit_width)
        proofs.append((threshold, prove(key_pair.proving_key, relation, balance, threshold)))
        return f"(threshold={threshold})"

    if args.stage in (None, "prove", "verify"):
        prove_result = run_stage("prove", args.bit_width, args.iterations, prove_step)
        if args.stage in (None, "prove"):
            results.append(prove_result)

    def verify_step(i: int) -> str:
        threshold, proof = proofs[i % len(proofs)]
        status = verify(key_pair.verifying_key, threshold, proof)
        if status is not VerificationStatus.VALID:
            raise SystemExit(f"proof {i} did not verify")
        return status.value

    if args.stage in (None, "verify") and proofs:
        results.append(run_stage("verify", args.bit_width, args.iterations, verify_step))

    all_pass = print_results(results)

    if args.output:
        output_data = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "relation_id": relation.shape_digest,
            "results": [asdict(r) for r in results],
            "all_pass": all_pass,
        }
        Path(args.output).write_text(json.dumps(output_data, indent=2))
        print(f"Results saved to: {args.output}")

    sys.exit(0 if all_pass else 1)


if __name__ == "__main__":
    main()
