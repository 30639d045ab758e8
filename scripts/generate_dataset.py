"""
TheLook Dataset Generator
Writes a synthetic raw extract (five CSV files) for local runs.
"""

import argparse
from pathlib import Path

from thelook.config.logging import configure_logging
from thelook.data.generators import DataGenerator

OUTPUT_DIR = Path(__file__).parent.parent / "data" / "raw"


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic TheLook raw extract")
    parser.add_argument("--output", default=str(OUTPUT_DIR), help="Output directory")
    parser.add_argument("--users", type=int, default=10000, help="Number of users")
    parser.add_argument("--products", type=int, default=2000, help="Number of products")
    parser.add_argument("--orders", type=int, default=50000, help="Number of orders")
    parser.add_argument("--dirty-rows", type=int, default=0, help="Defective order items to append")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    configure_logging()

    print("=" * 60)
    print("TheLook Dataset Generator")
    print("=" * 60 + "\n")

    data = DataGenerator(output_dir=args.output, seed=args.seed).generate_all(
        n_users=args.users,
        n_products=args.products,
        n_orders=args.orders,
        dirty_rows=args.dirty_rows,
    )

    print(f"\nOutput: {args.output}\n")
    total = 0
    for name, df in data.items():
        total += len(df)
        print(f"   {name}.csv: {len(df):,} rows")

    print(f"\nTotal: {total:,} rows")


if __name__ == "__main__":
    main()
