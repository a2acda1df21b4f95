#!/usr/bin/env python3
"""Export demo directory data as a seed file.

Writes the deterministic demo branches, products and delivery partners to
JSON so they can be edited and loaded through the SEED_FILE setting.

Usage:
    python scripts/export_demo_seed.py --output seed.json
    python scripts/export_demo_seed.py --branches 3 --partners-per-branch 2 --seed 7
"""

import argparse
from pathlib import Path

from dailycart.catalog.seed import DemoSeedConfig, generate_demo_seed


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Export demo seed data for DailyCart")
    parser.add_argument("--output", default="seed.json", help="Path of the JSON file to write")
    parser.add_argument("--branches", type=int, default=2, help="Number of branches (default: 2)")
    parser.add_argument(
        "--partners-per-branch",
        type=int,
        default=2,
        help="Delivery partners per branch (default: 2)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    config = DemoSeedConfig(seed=args.seed, branches=args.branches, partners_per_branch=args.partners_per_branch)
    data = generate_demo_seed(config)

    output = Path(args.output)
    output.write_text(data.to_seed_file().model_dump_json(indent=2), encoding="utf-8")

    print(f"Wrote {output}")
    print(f"  Branches: {len(data.branches)}")
    print(f"  Products: {len(data.products)}")
    print(f"  Partners: {len(data.partners)}")


if __name__ == "__main__":
    main()
