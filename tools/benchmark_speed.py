"""
Performance Benchmark
=====================

Measures game and environment step throughput for performance tuning.

Usage:
    python -m tools.benchmark_speed [--steps S] [--seed N] [--quick]
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

import numpy as np

from kube_tetris.engine.config_loader import load_config
from kube_tetris.engine.env_gym import KubeTetrisEnv
from kube_tetris.engine.game import Command, CoreGame


def benchmark_single_env(
    num_steps: int = 1000,
    seed: int = 42
) -> dict:
    """
    Benchmark Gymnasium environment performance.

    Args:
        num_steps: Number of steps to run.
        seed: Random seed.

    Returns:
        Dict with timing results.
    """
    env = KubeTetrisEnv()
    rng = np.random.default_rng(seed)

    # Warmup
    env.reset(seed=seed)
    for _ in range(10):
        _, _, terminated, truncated, _ = env.step(int(rng.integers(0, 4)))
        if terminated or truncated:
            env.reset()

    env.reset(seed=seed)
    episodes = 0
    start = time.perf_counter()

    for _ in range(num_steps):
        _, _, terminated, truncated, _ = env.step(int(rng.integers(0, 4)))
        if terminated or truncated:
            episodes += 1
            env.reset()

    elapsed = time.perf_counter() - start
    env.close()

    return {
        "mode": "env",
        "num_steps": num_steps,
        "episodes": episodes,
        "elapsed_seconds": elapsed,
        "steps_per_second": num_steps / elapsed,
        "ms_per_step": (elapsed * 1000) / num_steps
    }


def benchmark_core_game(
    num_steps: int = 1000,
    seed: int = 42
) -> dict:
    """
    Benchmark raw CoreGame without Gym overhead.

    Each step issues a random command followed by a gravity tick.

    Args:
        num_steps: Number of steps.
        seed: Random seed.

    Returns:
        Dict with timing results.
    """
    config = load_config()
    game = CoreGame(config=config, seed=seed)
    rng = np.random.default_rng(seed)
    commands = [Command.MOVE_LEFT, Command.MOVE_RIGHT, Command.HARD_DROP]

    game.reset(seed=seed)
    game.start()
    episodes = 0
    start = time.perf_counter()

    for _ in range(num_steps):
        game.handle(commands[int(rng.integers(0, len(commands)))])
        if not game.is_over:
            game.tick()
        if game.is_over:
            episodes += 1
            game.reset()
            game.start()

    elapsed = time.perf_counter() - start

    return {
        "mode": "core_game",
        "num_steps": num_steps,
        "episodes": episodes,
        "elapsed_seconds": elapsed,
        "steps_per_second": num_steps / elapsed,
        "ms_per_step": (elapsed * 1000) / num_steps
    }


def run_all_benchmarks(steps: int = 500, seed: int = 42) -> list:
    """Run both benchmarks and print a summary."""
    results = []

    print("=" * 60)
    print("KUBE TETRIS PERFORMANCE BENCHMARK")
    print("=" * 60)
    print()

    print("Benchmarking CoreGame (raw)...")
    result = benchmark_core_game(num_steps=steps, seed=seed)
    results.append(result)
    print(f"  Steps/sec: {result['steps_per_second']:.1f}")
    print(f"  ms/step:   {result['ms_per_step']:.3f}")
    print()

    print("Benchmarking KubeTetrisEnv...")
    result = benchmark_single_env(num_steps=steps, seed=seed)
    results.append(result)
    print(f"  Steps/sec: {result['steps_per_second']:.1f}")
    print(f"  ms/step:   {result['ms_per_step']:.3f}")
    print()

    print("=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print()
    print(f"{'Mode':<20} {'Episodes':>8} {'Steps/s':>12} {'ms/step':>10}")
    print("-" * 52)

    for r in results:
        print(f"{r['mode']:<20} {r['episodes']:>8} {r['steps_per_second']:>12.1f} {r['ms_per_step']:>10.3f}")

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark Kube Tetris performance")
    parser.add_argument("--steps", type=int, default=500, help="Steps per benchmark")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--quick", action="store_true", help="Quick benchmark (fewer steps)")
    parser.add_argument("--verbose", action="store_true", help="Show engine log output")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    steps = 100 if args.quick else args.steps
    run_all_benchmarks(steps=steps, seed=args.seed)

    return 0


if __name__ == "__main__":
    sys.exit(main())
