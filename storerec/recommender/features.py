"""Product feature vectors for the next-product classifier.

A feature vector is a category one-hot block followed by four normalized
numeric features: price, rating, review count and popularity rank. The
category order is the first-seen order over the catalog snapshot, so every
vector built from the same catalog has the same layout.
"""

import logging
from typing import Dict, List, Sequence

import numpy as np

from storerec.recommender.models import Product

# Configure module logger
logger = logging.getLogger(__name__)

NUM_NUMERIC_FEATURES = 4
MAX_RATING = 5.0


def category_order(catalog: Sequence[Product]) -> List[str]:
    """Return distinct categories in first-seen order."""
    return list(dict.fromkeys(product.category for product in catalog))


def feature_width(catalog: Sequence[Product]) -> int:
    """Length of every feature vector built against ``catalog``."""
    return len(category_order(catalog)) + NUM_NUMERIC_FEATURES


def _popularity_ranks(catalog: Sequence[Product]) -> Dict[int, int]:
    # sorted() is stable, so equal ratings keep catalog order
    by_rating = sorted(catalog, key=lambda p: p.rating.rate, reverse=True)
    ranks: Dict[int, int] = {}
    for position, product in enumerate(by_rating):
        ranks.setdefault(product.id, position)
    return ranks


def build_feature_vector(product: Product, catalog: Sequence[Product]) -> np.ndarray:
    """Build the feature vector of one product within a catalog snapshot.

    Args:
        product: Product to encode.
        catalog: Full catalog snapshot that fixes the category order and the
            normalization constants.

    Returns:
        Float32 array of length ``len(categories) + 4``:
            - one-hot category block
            - price / max catalog price (0 if the max is 0)
            - rating / 5
            - review count / max catalog review count (0 if the max is 0)
            - rating rank position / catalog size (0 is the best rated)

    Example:
        >>> vector = build_feature_vector(catalog[0], catalog)
        >>> len(vector) == feature_width(catalog)
        True
    """
    return build_feature_matrix([product], catalog)[0]


def build_feature_matrix(
    products: Sequence[Product],
    catalog: Sequence[Product],
) -> np.ndarray:
    """Build feature vectors for several products sharing one catalog snapshot.

    The catalog-wide statistics are computed once, which keeps pair building
    linear in the number of pairs.

    Args:
        products: Products to encode, one row each.
        catalog: Catalog snapshot fixing layout and normalization.

    Returns:
        Float32 array of shape ``(len(products), feature_width(catalog))``.
    """
    categories = category_order(catalog)
    category_index = {category: idx for idx, category in enumerate(categories)}
    n_categories = len(categories)

    max_price = max((p.price for p in catalog), default=0.0)
    max_reviews = max((p.rating.count for p in catalog), default=0)
    ranks = _popularity_ranks(catalog)
    catalog_size = len(catalog)

    matrix = np.zeros((len(products), n_categories + NUM_NUMERIC_FEATURES), dtype=np.float32)

    for row, product in enumerate(products):
        if product.category in category_index:
            matrix[row, category_index[product.category]] = 1.0
        else:
            logger.debug(
                "Product category not in catalog snapshot",
                extra={"product_id": product.id, "category": product.category},
            )

        matrix[row, n_categories] = product.price / max_price if max_price > 0 else 0.0
        matrix[row, n_categories + 1] = product.rating.rate / MAX_RATING
        matrix[row, n_categories + 2] = (
            product.rating.count / max_reviews if max_reviews > 0 else 0.0
        )
        if catalog_size > 0:
            # Products outside the snapshot rank last
            matrix[row, n_categories + 3] = ranks.get(product.id, catalog_size - 1) / catalog_size

    return matrix
