"""Hybrid recommendation module.

Combines popularity, interaction history, category affinity, content
similarity and an exploration term into one score per catalog product.
Scoring is rule-based and never consults the trained classifier.
"""

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from storerec.config import EngineConfig
from storerec.recommender.models import (
    COLD_START_REASON,
    FALLBACK_REASON,
    SIMILARITY_REASON,
    Interaction,
    Product,
    RecommendationScore,
    index_catalog,
)
from storerec.recommender.similarity import product_similarity

# Configure module logger
logger = logging.getLogger(__name__)

MAX_RATING = 5.0


@dataclass
class InteractionStats:
    """Per-product interaction counts and per-category affinity.

    ``view_counts`` counts every interaction, including ones whose product is
    no longer in the catalog. ``category_affinity`` only counts interactions
    that resolve to a catalog product.
    """

    view_counts: Counter = field(default_factory=Counter)
    category_affinity: Counter = field(default_factory=Counter)


def aggregate_interactions(
    catalog: Sequence[Product],
    interactions: Sequence[Interaction],
) -> InteractionStats:
    """Tally interactions per product and per category."""
    products_by_id = index_catalog(catalog)
    stats = InteractionStats()

    for interaction in interactions:
        stats.view_counts[interaction.product_id] += 1
        product = products_by_id.get(interaction.product_id)
        if product is not None:
            stats.category_affinity[product.category] += 1

    return stats


class HybridRecommender:
    """Scores every catalog product for one user.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the recommender.

        Args:
            rng: Source of the cold-start and exploration draws. Anything with
                a ``random()`` method returning floats in [0, 1) works.
            config: Scoring weights. Defaults to ``EngineConfig()``.
        """
        self.rng = rng if rng is not None else random.Random()
        self.config = config or EngineConfig()

    def recommend(
        self,
        catalog: Sequence[Product],
        interactions: Sequence[Interaction],
    ) -> List[RecommendationScore]:
        """Get recommendation scores for every product in the catalog.

        Args:
            catalog: Current catalog snapshot.
            interactions: Snapshot of the user's interaction log.

        Returns:
            One score per product, best first. Equal scores keep catalog order.
        """
        start_time = time.time()

        if not catalog:
            logger.warning("Empty catalog, nothing to recommend")
            return []

        if not interactions:
            logger.info(
                "No interaction history, using cold-start",
                extra={"num_products": len(catalog), "strategy": "cold_start"},
            )
            scores = self._cold_start(catalog)
        else:
            scores = self._score_warm(catalog, interactions)

        # sorted() is stable, ties keep catalog order
        ranked = sorted(scores, key=lambda s: s.score, reverse=True)

        logger.info(
            "Recommendations generated",
            extra={
                "num_products": len(catalog),
                "num_interactions": len(interactions),
                "top_product_ids": [s.product_id for s in ranked[:3]],
                "scoring_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return ranked

    def _cold_start(self, catalog: Sequence[Product]) -> List[RecommendationScore]:
        """Handle users without history.

        Returns an unbiased shuffle: content signals are ignored on purpose.
        """
        return [
            RecommendationScore(
                product_id=product.id,
                score=self.rng.random(),
                reasons=[COLD_START_REASON],
            )
            for product in catalog
        ]

    def _score_warm(
        self,
        catalog: Sequence[Product],
        interactions: Sequence[Interaction],
    ) -> List[RecommendationScore]:
        cfg = self.config
        stats = aggregate_interactions(catalog, interactions)

        # Distinct logged products that still exist in the catalog
        products_by_id = index_catalog(catalog)
        viewed_products = [
            products_by_id[pid]
            for pid in dict.fromkeys(i.product_id for i in interactions)
            if pid in products_by_id
        ]

        scores = []
        for product in catalog:
            score = 0.0
            reasons: List[str] = []

            score += (product.rating.rate / MAX_RATING) * cfg.popularity_weight

            view_count = stats.view_counts.get(product.id, 0)
            if view_count > 0:
                score += min(view_count * cfg.interaction_weight, cfg.interaction_cap)
                reasons.append(f"You viewed this {view_count} time(s)")

            affinity = stats.category_affinity.get(product.category, 0)
            category_bonus = min(affinity * cfg.category_weight, cfg.category_cap)
            if category_bonus > 0:
                score += category_bonus
                reasons.append(f"You like products in {product.category}")

            max_similarity = max(
                (
                    product_similarity(product, viewed)
                    for viewed in viewed_products
                    if viewed.id != product.id
                ),
                default=0.0,
            )
            if max_similarity > cfg.similarity_threshold:
                score += max_similarity * cfg.similarity_weight
                reasons.append(SIMILARITY_REASON)

            # Exploration
            score += self.rng.random() * cfg.exploration_scale

            if not reasons:
                reasons.append(FALLBACK_REASON)

            scores.append(
                RecommendationScore(
                    product_id=product.id,
                    score=min(score, 1.0),
                    reasons=reasons,
                )
            )

        return scores


def order_products(
    catalog: Sequence[Product],
    scores: Sequence[RecommendationScore],
) -> List[Product]:
    """Reorder a catalog by recommendation score.

    Products without a score count as 0. Equal scores keep catalog order.
    An empty score list leaves the catalog as it is.
    """
    if not scores:
        return list(catalog)

    score_by_id: Dict[int, float] = {s.product_id: s.score for s in scores}
    return sorted(catalog, key=lambda p: score_by_id.get(p.id, 0.0), reverse=True)
