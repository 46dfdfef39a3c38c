"""
Check stock levels for one branch - how many products are oversold, out of
stock or running low.

Usage:
    python scripts/check_stock_levels.py <tenant_id> <branch_id> [--low 10]
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.context import RequestContext
from domain.errors import PersistenceError
from repositories.product_repository import list_active_products


def check_stock_levels(tenant_id: str, branch_id: str, low_threshold: int) -> int:
    """Print a stock summary for the branch. Returns a process exit code."""

    ctx = RequestContext(tenant_id=tenant_id, branch_id=branch_id, user_id="stock-check")
    try:
        products = list_active_products(ctx)
    except PersistenceError as e:
        print(f"Failed to load products: {e.message}")
        return 1

    oversold = [p for p in products if p.stock_quantity < 0]
    out_of_stock = [p for p in products if p.stock_quantity == 0]
    low = [p for p in products if 0 < p.stock_quantity <= low_threshold]

    print("=" * 50)
    print("STOCK LEVELS")
    print("=" * 50)
    print(f"Active products checked:   {len(products)}")
    print(f"Oversold (negative):       {len(oversold)}")
    print(f"Out of stock:              {len(out_of_stock)}")
    low_label = f"Low (<= {low_threshold}):"
    print(f"{low_label:<27}{len(low)}")
    print("=" * 50)

    if oversold:
        print("\nOversold products:")
        print("-" * 50)
        for product in oversold:
            print(f"  {product.name:<35} {product.stock_quantity:>6}")

    if low:
        print("\nRunning low:")
        print("-" * 50)
        for product in sorted(low, key=lambda p: p.stock_quantity):
            print(f"  {product.name:<35} {product.stock_quantity:>6}")

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Summarise stock levels for a branch")
    parser.add_argument("tenant_id")
    parser.add_argument("branch_id")
    parser.add_argument("--low", type=int, default=10, help="Low-stock threshold (default 10)")
    args = parser.parse_args()

    sys.exit(check_stock_levels(args.tenant_id, args.branch_id, args.low))
