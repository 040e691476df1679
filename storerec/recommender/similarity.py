"""Content similarity between two products.

Similarity is a fixed blend of category match (40%), price closeness (30%)
and rating closeness (30%), bounded to [0, 1].
"""

from storerec.recommender.models import Product

CATEGORY_WEIGHT = 0.4
PRICE_WEIGHT = 0.3
RATING_WEIGHT = 0.3
MAX_RATING = 5.0


def product_similarity(product1: Product, product2: Product) -> float:
    """Compute content similarity between two products.

    Args:
        product1: First product.
        product2: Second product.

    Returns:
        Similarity in [0, 1]. Equals 1.0 for a product compared with itself
        whenever its price is positive.

    Example:
        >>> product_similarity(product, product)
        1.0
    """
    similarity = 0.0

    if product1.category == product2.category:
        similarity += CATEGORY_WEIGHT

    max_price = max(product1.price, product2.price)
    if max_price > 0:
        price_score = 1 - abs(product1.price - product2.price) / max_price
    else:
        # Two free products are priced identically
        price_score = 1.0
    similarity += price_score * PRICE_WEIGHT

    rating_score = 1 - abs(product1.rating.rate - product2.rating.rate) / MAX_RATING
    similarity += rating_score * RATING_WEIGHT

    return min(similarity, 1.0)
