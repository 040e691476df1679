"""Generate a fake catalog and interaction log for testing and development.

This module creates a synthetic product catalog in the fake-store JSON shape
and a browsing log of click/view/time_spent events grouped into visits, so
the training pipeline sees realistic sessions.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        catalog = generate_fake_catalog(num_products=20)
"""

import json
import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_PRODUCTS = 12
DEFAULT_NUM_VISITS = 20
DEFAULT_MAX_EVENTS_PER_VISIT = 6
DEFAULT_DAYS_BACK = 30
CATEGORIES = ["electronics", "jewelery", "men's clothing", "women's clothing"]
MS_PER_SECOND = 1000


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    random_seed: Optional[int] = None,
) -> List[Dict]:
    """Generate synthetic product records.

    Args:
        num_products: Number of products. Must be positive.
        random_seed: Seed for reproducible output.

    Returns:
        Product dicts with ids 1..num_products.

    Raises:
        ValueError: If num_products is not positive.
    """
    if num_products <= 0:
        raise ValueError("num_products must be positive")

    rng = random.Random(random_seed)
    products = []
    for product_id in range(1, num_products + 1):
        category = rng.choice(CATEGORIES)
        products.append({
            "id": product_id,
            "title": f"{category.title()} item {product_id}",
            "price": round(rng.uniform(5, 500), 2),
            "description": f"Synthetic {category} product",
            "category": category,
            "image": f"https://example.com/img/{product_id}.jpg",
            "rating": {
                "rate": round(rng.uniform(1, 5), 1),
                "count": rng.randint(0, 500),
            },
        })
    return products


def generate_fake_interactions(
    product_ids: List[int],
    num_visits: int = DEFAULT_NUM_VISITS,
    max_events_per_visit: int = DEFAULT_MAX_EVENTS_PER_VISIT,
    end_date: Optional[datetime] = None,
    random_seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate a browsing log made of separate visits.

    Events within a visit are seconds to minutes apart; visits are hours to
    days apart, so session segmentation recovers them.

    Args:
        product_ids: Products the user can interact with.
        num_visits: Number of visits. Must be positive.
        max_events_per_visit: Upper bound on events per visit.
        end_date: Latest possible visit start. Defaults to now.
        random_seed: Seed for reproducible output.

    Returns:
        DataFrame with columns product_id, timestamp (ms), kind, value,
        sorted by timestamp.

    Raises:
        ValueError: If there are no products or num_visits is not positive.
    """
    if not product_ids:
        raise ValueError("product_ids must not be empty")
    if num_visits <= 0 or max_events_per_visit <= 0:
        raise ValueError("num_visits and max_events_per_visit must be positive")

    rng = random.Random(random_seed)
    if end_date is None:
        end_date = datetime.now()
    clock = end_date - timedelta(days=DEFAULT_DAYS_BACK)

    events = []
    for _ in range(num_visits):
        # Next visit starts after a gap of 1 hour to 2 days
        clock += timedelta(seconds=rng.randint(3600, 2 * 86400))
        for _ in range(rng.randint(1, max_events_per_visit)):
            clock += timedelta(seconds=rng.randint(5, 600))
            product_id = rng.choice(product_ids)
            timestamp = int(clock.timestamp() * MS_PER_SECOND)

            events.append({
                "product_id": product_id,
                "timestamp": timestamp,
                "kind": rng.choice(["click", "view"]),
                "value": None,
            })
            if rng.random() < 0.3:
                dwell = rng.randint(5, 120)
                events.append({
                    "product_id": product_id,
                    "timestamp": timestamp + dwell * MS_PER_SECOND,
                    "kind": "time_spent",
                    "value": float(dwell),
                })
                clock += timedelta(seconds=dwell)

    df = pd.DataFrame(events, columns=["product_id", "timestamp", "kind", "value"])
    df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)
    return df


def main() -> None:
    """Main entry point for the data generation script.

    Writes data/fake_catalog.json and data/fake_interactions.csv and prints
    summary statistics.
    """
    print(f"Generating {DEFAULT_NUM_PRODUCTS} products and {DEFAULT_NUM_VISITS} visits...")

    try:
        catalog = generate_fake_catalog(random_seed=42)
        df = generate_fake_interactions(
            [p["id"] for p in catalog],
            random_seed=42,
        )
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    catalog_path = data_dir / "fake_catalog.json"
    catalog_path.write_text(json.dumps(catalog, indent=2), encoding="utf-8")

    log_path = data_dir / "fake_interactions.csv"
    df.to_csv(log_path, index=False)

    print(f"\nData generated successfully!")
    print(f"Catalog saved to: {catalog_path}")
    print(f"Interactions saved to: {log_path}")
    print(f"\nData preview:")
    print(df.head(10))
    print(f"\nData summary:")
    print(f"  Total interactions: {len(df)}")
    print(f"  Unique products: {df['product_id'].nunique()}")
    print(f"  Event kinds: {df['kind'].value_counts().to_dict()}")


if __name__ == "__main__":
    main()
