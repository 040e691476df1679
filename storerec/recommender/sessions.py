"""Session segmentation and training-pair synthesis.

Interactions are grouped into sessions separated by idle gaps, and each
session is turned into (current product features, next product one-hot)
pairs for the next-product classifier.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from storerec.config import DEFAULT_SESSION_GAP_MS
from storerec.recommender.features import build_feature_matrix, feature_width
from storerec.recommender.models import Interaction, Product, Session

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class TrainingPairs:
    """Parallel input and target matrices.

    Attributes:
        inputs: Float32 array of shape (n_pairs, feature width).
        outputs: Float32 one-hot array of shape (n_pairs, catalog size).
    """

    inputs: np.ndarray
    outputs: np.ndarray

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


def segment_sessions(
    interactions: Sequence[Interaction],
    gap_ms: int = DEFAULT_SESSION_GAP_MS,
) -> List[Session]:
    """Split an interaction log into time-contiguous sessions.

    Args:
        interactions: Interaction log in any order.
        gap_ms: Largest gap, in milliseconds, between two consecutive
            interactions of the same session.

    Returns:
        Sessions in chronological order, trailing singletons included.

    Example:
        >>> sessions = segment_sessions(log)
        >>> [len(s) for s in sessions]
        [3, 1]
    """
    sessions: List[Session] = []
    current: Session = []

    for interaction in sorted(interactions, key=lambda i: i.timestamp):
        if current and interaction.timestamp - current[-1].timestamp > gap_ms:
            sessions.append(current)
            current = []
        current.append(interaction)

    if current:
        sessions.append(current)

    logger.debug(
        "Segmented interaction log",
        extra={"num_interactions": len(interactions), "num_sessions": len(sessions)},
    )
    return sessions


def build_training_pairs(
    catalog: Sequence[Product],
    sessions: Sequence[Session],
) -> TrainingPairs:
    """Turn sessions into supervised next-product pairs.

    Every consecutive pair within a session yields one example, unless
    either side references a product missing from the catalog.

    Args:
        catalog: Catalog snapshot fixing feature layout and output indices.
        sessions: Output of ``segment_sessions``.

    Returns:
        TrainingPairs with one row per usable consecutive pair.
    """
    index_by_id = {}
    for idx, product in enumerate(catalog):
        index_by_id.setdefault(product.id, idx)

    current_products: List[Product] = []
    next_indices: List[int] = []
    skipped = 0

    for session in sessions:
        for current, following in zip(session, session[1:]):
            current_idx = index_by_id.get(current.product_id)
            next_idx = index_by_id.get(following.product_id)
            if current_idx is None or next_idx is None:
                skipped += 1
                continue
            current_products.append(catalog[current_idx])
            next_indices.append(next_idx)

    if skipped:
        logger.debug("Skipped pairs with stale product ids", extra={"skipped_pairs": skipped})

    outputs = np.zeros((len(next_indices), len(catalog)), dtype=np.float32)
    if current_products:
        outputs[np.arange(len(next_indices)), next_indices] = 1.0
        inputs = build_feature_matrix(current_products, catalog)
    else:
        inputs = np.zeros((0, feature_width(catalog)), dtype=np.float32)

    logger.info(
        "Built training pairs",
        extra={"num_sessions": len(sessions), "num_pairs": len(next_indices)},
    )
    return TrainingPairs(inputs=inputs, outputs=outputs)
