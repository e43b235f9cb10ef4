#!/usr/bin/env python3
"""
Recompute the cached cost of every active recipe.

Recipes that cannot be costed (cycles, missing items, unit mismatches) are
reported and skipped; the rest are still updated.

Usage:
    python3 scripts/recompute_recipe_costs.py
    python3 scripts/recompute_recipe_costs.py --seed-units
    python3 scripts/recompute_recipe_costs.py --recipe-id <uuid>
"""

import argparse
import logging
import os
import sys
from uuid import UUID

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import get_settings  # noqa: E402
from app.database import get_session  # noqa: E402
from app.services.cost_calculator import (  # noqa: E402
    recompute_all_recipe_costs,
    refresh_dependent_costs,
)
from app.services.units import seed_default_units  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Recompute cached recipe costs")
    parser.add_argument("--recipe-id", type=UUID, help="Refresh one recipe and the recipes that use it")
    parser.add_argument("--seed-units", action="store_true", help="Insert missing default units first")
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    db = get_session()
    try:
        if args.seed_units:
            created = seed_default_units(db)
            db.commit()
            print(f"Seeded {len(created)} units")

        if args.recipe_id:
            refreshed = refresh_dependent_costs(db, args.recipe_id)
            for recipe_id, cost in refreshed.items():
                print(f"  ✓ {recipe_id}  {cost:.4f}")
            return 0

        updated, failed = recompute_all_recipe_costs(db)
        for recipe_id, cost in updated.items():
            print(f"  ✓ {recipe_id}  {cost:.4f}")
        for recipe_id, error in failed.items():
            print(f"  ✗ {recipe_id}  {error}")
        print(f"\n{len(updated)} updated, {len(failed)} failed")
        return 1 if failed else 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
