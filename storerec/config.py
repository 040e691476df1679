"""Engine configuration.

All tunable constants of the recommender and the online learner live here.
The module-level defaults are the production values; tests and hosts build
an ``EngineConfig`` to override individual fields.
"""

from dataclasses import dataclass
from typing import Optional

# Hybrid scoring weights
DEFAULT_POPULARITY_WEIGHT = 0.2
DEFAULT_INTERACTION_WEIGHT = 0.3
DEFAULT_INTERACTION_CAP = 0.8
DEFAULT_CATEGORY_WEIGHT = 0.1
DEFAULT_CATEGORY_CAP = 0.4
DEFAULT_SIMILARITY_WEIGHT = 0.3
DEFAULT_SIMILARITY_THRESHOLD = 0.5
DEFAULT_EXPLORATION_SCALE = 0.1

# Sessions: 30 minutes in milliseconds
DEFAULT_SESSION_GAP_MS = 30 * 60 * 1000

# Online learner
DEFAULT_MIN_INTERACTIONS = 5
DEFAULT_EPOCHS = 3
DEFAULT_MAX_BATCH_SIZE = 32
DEFAULT_LEARNING_RATE = 0.001
DEFAULT_HIDDEN_UNITS = (64, 32)
DEFAULT_DROPOUT_RATE = 0.2
DEFAULT_MODEL_SLOT = "recommendation-model"


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for scoring, segmentation and training.

    Attributes:
        popularity_weight: Weight of the normalized product rating.
        interaction_weight: Boost per logged interaction with the product.
        interaction_cap: Upper bound on the interaction boost.
        category_weight: Bonus per logged interaction in the product's category.
        category_cap: Upper bound on the category bonus.
        similarity_weight: Multiplier applied to the best content similarity.
        similarity_threshold: Similarity must exceed this to earn a bonus.
        exploration_scale: Width of the uniform exploration addend.
        session_gap_ms: Largest gap that keeps two interactions in one session.
        min_interactions: Log size required before training runs.
        epochs: Fitting passes per training call.
        max_batch_size: Batch size cap; smaller logs use their pair count.
        learning_rate: Adam learning rate.
        hidden_units: Widths of the two hidden dense layers.
        dropout_rate: Dropout applied after the first hidden layer.
        model_slot: Store slot the model blob is written to.
        torch_seed: Seed for weight init and batch shuffling, None for entropy.
    """

    popularity_weight: float = DEFAULT_POPULARITY_WEIGHT
    interaction_weight: float = DEFAULT_INTERACTION_WEIGHT
    interaction_cap: float = DEFAULT_INTERACTION_CAP
    category_weight: float = DEFAULT_CATEGORY_WEIGHT
    category_cap: float = DEFAULT_CATEGORY_CAP
    similarity_weight: float = DEFAULT_SIMILARITY_WEIGHT
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    exploration_scale: float = DEFAULT_EXPLORATION_SCALE
    session_gap_ms: int = DEFAULT_SESSION_GAP_MS
    min_interactions: int = DEFAULT_MIN_INTERACTIONS
    epochs: int = DEFAULT_EPOCHS
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    learning_rate: float = DEFAULT_LEARNING_RATE
    hidden_units: tuple = DEFAULT_HIDDEN_UNITS
    dropout_rate: float = DEFAULT_DROPOUT_RATE
    model_slot: str = DEFAULT_MODEL_SLOT
    torch_seed: Optional[int] = None

    def validate(self) -> "EngineConfig":
        """Check that the training parameters are usable.

        Returns:
            The config itself, so construction and validation can be chained.

        Raises:
            ValueError: If any parameter is out of range.
        """
        if self.epochs <= 0 or self.max_batch_size <= 0:
            raise ValueError("epochs and max_batch_size must be positive")
        if self.session_gap_ms < 0:
            raise ValueError("session_gap_ms must not be negative")
        if not 0.0 <= self.dropout_rate < 1.0:
            raise ValueError(f"dropout_rate must be in [0, 1), got {self.dropout_rate}")
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if len(self.hidden_units) != 2 or any(u <= 0 for u in self.hidden_units):
            raise ValueError(f"hidden_units must be two positive widths, got {self.hidden_units}")
        if not self.model_slot:
            raise ValueError("model_slot must not be empty")
        return self
