"""Loading catalogs and interaction logs supplied by external sources.

The catalog source speaks the fake-store product JSON shape
(``id, title, price, description, category, image, rating{rate, count}``).
Interaction logs exported by the storefront are read from CSV.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping

import pandas as pd

from storerec.recommender.models import Interaction, Product

# Configure module logger
logger = logging.getLogger(__name__)

INTERACTION_COLUMNS = {"product_id", "timestamp", "kind"}


def parse_catalog(payload: Iterable[Mapping[str, Any]]) -> List[Product]:
    """Validate raw product records into a catalog.

    Args:
        payload: Product dicts as returned by the catalog source.

    Returns:
        Products in payload order.

    Raises:
        pydantic.ValidationError: If a record is malformed.
        ValueError: If two records share an id.
    """
    catalog = [Product.model_validate(record) for record in payload]

    seen = set()
    for product in catalog:
        if product.id in seen:
            raise ValueError(f"Duplicate product id in catalog: {product.id}")
        seen.add(product.id)

    logger.info(f"Parsed catalog with {len(catalog)} products")
    return catalog


def load_catalog_json(json_path: str) -> List[Product]:
    """Load a catalog snapshot from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON is not a list of products.
    """
    path = Path(json_path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {json_path}")

    with path.open(encoding="utf-8") as f:
        payload = json.load(f)

    if not isinstance(payload, list):
        raise ValueError(f"Catalog file must contain a JSON list, got {type(payload).__name__}")

    return parse_catalog(payload)


def load_interactions_csv(csv_path: str) -> List[Interaction]:
    """Load an interaction log from CSV.

    Expected columns: ``product_id``, ``timestamp`` (milliseconds), ``kind``
    and optionally ``value``. Rows keep file order.

    Args:
        csv_path: Path to the CSV file.

    Returns:
        The interaction log.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns.

    Example:
        >>> log = load_interactions_csv("data/interactions.csv")
        >>> log[0].kind
        <InteractionKind.VIEW: 'view'>
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading interactions from {csv_path}")
    df = pd.read_csv(csv_path)

    if not INTERACTION_COLUMNS.issubset(df.columns):
        missing = INTERACTION_COLUMNS - set(df.columns)
        raise ValueError(f"CSV missing required columns: {missing}")

    has_value = "value" in df.columns
    interactions = []
    for row in df.itertuples(index=False):
        value = getattr(row, "value") if has_value else None
        interactions.append(
            Interaction(
                product_id=int(row.product_id),
                timestamp=int(row.timestamp),
                kind=row.kind,
                value=None if value is None or pd.isna(value) else float(value),
            )
        )

    logger.info(f"Loaded {len(interactions)} interaction records")
    return interactions
