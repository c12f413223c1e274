#!/usr/bin/env python3
"""Training script for Kuhn Poker with Monte-Carlo CFR.

Trains a PolicyTable with chance or robust sampling and logs the exact value
of the average strategy against the known game value (-1/18).

Example usage:
    python scripts/train_kuhn.py --scheme robust --k 2 --iterations 40000
    python scripts/train_kuhn.py --config experiment.yaml --output kuhn.csv
"""

import argparse
import csv
import logging
import time
from pathlib import Path

from mccfr.config import SolverConfig
from mccfr.games.kuhn import CARD_NAMES, GAME_VALUE, new_kuhn_game
from mccfr.metrics.evaluator import average_strategy_fn, expected_value
from mccfr.solver import Solver


def main():
    parser = argparse.ArgumentParser(description="Train MCCFR on Kuhn Poker")
    parser.add_argument("--config", type=str, default=None, help="YAML SolverConfig to load")
    parser.add_argument(
        "--scheme",
        choices=["chance", "robust"],
        default=None,
        help="Sampling scheme (overrides config)",
    )
    parser.add_argument("--k", type=int, default=None, help="Robust sampling k (overrides config)")
    parser.add_argument(
        "--discount",
        choices=["vanilla", "cfr_plus", "linear", "discounted"],
        default=None,
        help="Discount scheme (overrides config)",
    )
    parser.add_argument("--iterations", type=int, default=None, help="Number of iterations")
    parser.add_argument(
        "--eval-every",
        type=int,
        default=1000,
        help="Evaluate the average strategy every N iterations (default: 1000)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--checkpoint", type=str, default=None, help="Save the table here at the end")
    parser.add_argument("--resume", type=str, default=None, help="Resume from a saved table")
    parser.add_argument(
        "--output",
        type=str,
        default="kuhn_mccfr_training.csv",
        help="Output CSV file for metrics (default: kuhn_mccfr_training.csv)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SolverConfig.from_yaml(args.config) if args.config else SolverConfig(name="kuhn_mccfr")
    if args.scheme is not None:
        config.sampling.scheme = args.scheme
    if args.k is not None:
        config.sampling.k = args.k
    if args.discount is not None:
        config.discount.scheme = args.discount
    if args.iterations is not None:
        config.training.iterations = args.iterations
    if args.seed is not None:
        config.seed = args.seed
    # The evaluation loop below reports progress
    config.training.log_every = 0

    print(f"MCCFR: {config}")
    print("=" * 60)

    if args.resume:
        solver = Solver.resume(config, args.resume)
    else:
        solver = Solver.from_config(config)

    output_path = Path(args.output)
    start_time = time.time()
    value = float("nan")
    with open(output_path, "w", newline="") as csv_file:
        csv_writer = csv.DictWriter(
            csv_file, fieldnames=["iteration", "value", "value_error", "infosets", "elapsed_time"]
        )
        csv_writer.writeheader()

        remaining = config.training.iterations
        while remaining > 0:
            chunk = min(args.eval_every, remaining)
            solver.train(iterations=chunk)
            remaining -= chunk

            value = expected_value(new_kuhn_game(), average_strategy_fn(solver.strategy_profile))
            elapsed = time.time() - start_time
            iteration = solver.iteration - 1
            csv_writer.writerow(
                {
                    "iteration": iteration,
                    "value": value,
                    "value_error": abs(value - GAME_VALUE),
                    "infosets": len(solver.strategy_profile),
                    "elapsed_time": elapsed,
                }
            )
            csv_file.flush()
            print(
                f"[{iteration:7d}] value={value:+.5f} "
                f"(error {abs(value - GAME_VALUE):.5f}), elapsed {elapsed:.2f}s"
            )

    if args.checkpoint:
        solver.save_checkpoint(args.checkpoint)

    print()
    print("=" * 60)
    print(f"Final average strategy value: {value:+.6f} (game value {GAME_VALUE:+.6f})")
    print(f"Results saved to: {output_path}")
    print()

    print("Learned Strategies (Average):")
    print("-" * 60)
    table = solver.strategy_profile
    for history in ["", "c", "b", "cb"]:
        for card in CARD_NAMES:
            key = (card + history).encode("ascii")
            if key in table:
                strat = table[key].get_average_strategy()
                print(f"  {key.decode():4s}: Check={strat[0]:.3f}, Bet={strat[1]:.3f}")
    print("=" * 60)


if __name__ == "__main__":
    main()
