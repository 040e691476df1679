"""Recommendation engine service.

Wires the rule-based hybrid recommender and the online learner behind one
object built from injected collaborators. Hosts create one engine per user
context and pass it where it is needed; there is no module-level instance.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence

from storerec.config import EngineConfig
from storerec.recommender.hybrid import HybridRecommender, order_products
from storerec.recommender.learner import LearnerState, OnlineLearner
from storerec.recommender.models import Interaction, Product, RecommendationScore
from storerec.recommender.store import ModelStore

# Configure module logger
logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Scores catalogs for a user and keeps the next-product model trained.

    Example:
        >>> engine = RecommendationEngine(InMemoryModelStore(), rng=random.Random(7))
        >>> await engine.initialize(catalog)
        >>> scores = engine.recommend(catalog, log)
        >>> await engine.train(catalog, log)
    """

    def __init__(
        self,
        store: ModelStore,
        rng: Optional[random.Random] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = (config or EngineConfig()).validate()
        self.recommender = HybridRecommender(rng=rng, config=self.config)
        self.learner = OnlineLearner(store, config=self.config)

    @property
    def state(self) -> LearnerState:
        return self.learner.state

    def recommend(
        self,
        catalog: Sequence[Product],
        interactions: Sequence[Interaction],
    ) -> List[RecommendationScore]:
        """Rank the catalog. Safe to call while the learner is training."""
        # Snapshot the log so appends during scoring are not observed
        return self.recommender.recommend(catalog, tuple(interactions))

    def ordered_catalog(
        self,
        catalog: Sequence[Product],
        interactions: Sequence[Interaction],
    ) -> List[Product]:
        """Catalog reordered for display, best recommendation first."""
        return order_products(catalog, self.recommend(catalog, interactions))

    async def initialize(self, catalog: Sequence[Product]) -> None:
        await self.learner.initialize(catalog)

    async def train(
        self,
        catalog: Sequence[Product],
        interactions: Sequence[Interaction],
    ) -> Optional[Dict[str, List[float]]]:
        return await self.learner.train(catalog, tuple(interactions))
