#!/usr/bin/env python3
"""
Train a small sigmoid network on the XOR truth table.

Usage:
    python scripts/train_xor.py --epochs 10000 --seed 7
    python scripts/train_xor.py --epochs 2000 --log-every 100

The script will:
1. Build the XOR dataset and a network (2-2-1 by default)
2. Randomize the parameters and report the untrained outputs
3. Train with gradient descent
4. Report the trained outputs and the cost before and after
"""

import argparse
import logging
import sys
from typing import List, Optional

import numpy as np

from densenn.costs import COSTS, get_cost
from densenn.dataset import xor_dataset
from densenn.matrix import MatrixError
from densenn.network import Network


def parse_sizes(spec: str) -> List[int]:
    """Parse a comma-separated size list such as ``2,2,1``."""
    try:
        return [int(token) for token in spec.split(',') if token.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid layer sizes: {spec!r}") from None


def report(net: Network, title: str) -> None:
    print(f"\n{title}")
    for result in net.evaluate(xor_dataset()):
        predicted = float(result.predicted.get(0, 0))
        expected = float(result.expected.get(0, 0))
        print(f"   Case {result.index}: result {predicted:.4f} | expected {expected:.0f}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Train a feedforward sigmoid network on XOR."
    )
    parser.add_argument(
        "--sizes",
        type=parse_sizes,
        default=[2, 2, 1],
        help="Comma-separated layer sizes, input first (default: 2,2,1)",
    )
    parser.add_argument(
        "--epochs",
        type=int,
        default=10000,
        help="Number of training epochs (default: 10000)",
    )
    parser.add_argument(
        "--learning-rate",
        type=float,
        default=0.5,
        help="Learning rate for gradient descent (default: 0.5)",
    )
    parser.add_argument(
        "--mini-batch-size",
        type=int,
        default=1,
        help="Examples per update, 0 for full-batch updates (default: 1)",
    )
    parser.add_argument(
        "--cost",
        choices=sorted(COSTS),
        default="quadratic",
        help="Cost function (default: quadratic)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: unseeded)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show training progress about every tenth of the epochs",
    )
    parser.add_argument(
        "--log-every",
        type=int,
        default=None,
        metavar="N",
        help="Log the training cost every N epochs (implies --verbose)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose or args.log_every is not None else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    cost = get_cost(args.cost)
    dataset = xor_dataset()
    mini_batch_size = args.mini_batch_size or None

    try:
        net = Network(args.sizes)
        net.randomize_parameters(np.random.default_rng(args.seed))

        report(net, "Untrained network:")
        initial_cost = net.total_cost(dataset, cost)

        net.train(
            dataset,
            args.epochs,
            learning_rate=args.learning_rate,
            mini_batch_size=mini_batch_size,
            cost=cost,
            log_interval=args.log_every
        )
    except (MatrixError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report(net, "Trained network:")
    final_cost = net.total_cost(dataset, cost)

    print(f"\nCost: {initial_cost:.4f} -> {final_cost:.4f}")
    print(
        f"Config: sizes={args.sizes}, {args.epochs} epochs, "
        f"lr={args.learning_rate}, batch={mini_batch_size or 'full'}, cost={args.cost}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
