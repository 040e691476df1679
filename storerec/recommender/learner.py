"""Online learner for the next-product classifier.

The learner owns the only classifier instance. It moves through an explicit
state machine:

    UNINITIALIZED -> TRAINING -> READY -> TRAINING -> READY ...

TRAINING also marks a pending ``initialize``. Calls to ``initialize`` or
``train`` that arrive while the learner is busy are dropped, not queued.
Blocking work (fitting, store I/O) runs in a worker thread so the awaiting
coroutine suspends and other tasks on the loop keep running.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import torch

from storerec.config import EngineConfig
from storerec.exceptions import IllegalStateTransition, ModelShapeMismatchError
from storerec.recommender.features import feature_width
from storerec.recommender.models import Interaction, Product
from storerec.recommender.sessions import build_training_pairs, segment_sessions
from storerec.recommender.store import ModelStore
from storerec.recommender.train import (
    NextProductClassifier,
    build_classifier,
    export_model,
    fit_classifier,
    restore_model,
)

# Configure module logger
logger = logging.getLogger(__name__)


class LearnerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    TRAINING = "training"


ALLOWED_TRANSITIONS = {
    LearnerState.UNINITIALIZED: {LearnerState.TRAINING, LearnerState.READY},
    LearnerState.TRAINING: {LearnerState.READY, LearnerState.UNINITIALIZED},
    LearnerState.READY: {LearnerState.TRAINING},
}


class OnlineLearner:
    """Incrementally trains and persists the next-product classifier.
    """

    def __init__(self, store: ModelStore, config: Optional[EngineConfig] = None):
        """Initialize the learner.

        Args:
            store: Key/value store the model blob is persisted to.
            config: Training parameters and slot name.
        """
        self.store = store
        self.config = (config or EngineConfig()).validate()
        self._state = LearnerState.UNINITIALIZED
        self._model: Optional[NextProductClassifier] = None
        self._optimizer: Optional[torch.optim.Optimizer] = None
        self.last_load_error: Optional[ModelShapeMismatchError] = None

    @property
    def state(self) -> LearnerState:
        return self._state

    @property
    def has_model(self) -> bool:
        return self._model is not None

    def _transition(self, target: LearnerState) -> None:
        if target not in ALLOWED_TRANSITIONS[self._state]:
            raise IllegalStateTransition(self._state.value, target.value)
        logger.debug(
            "Learner state change",
            extra={"from_state": self._state.value, "to_state": target.value},
        )
        self._state = target

    # Input width follows the feature vector (categories + 4), not catalog size + 4,
    # so the session pairs always match the network.
    @staticmethod
    def _catalog_shape(catalog: Sequence[Product]) -> Tuple[int, int]:
        return feature_width(catalog), len(catalog)

    async def initialize(self, catalog: Sequence[Product]) -> None:
        """Adopt the persisted model, or build a fresh one for this catalog.

        A no-op unless the learner is UNINITIALIZED. Construction failures are
        logged and leave the learner UNINITIALIZED so the next call retries.
        """
        if self._state is not LearnerState.UNINITIALIZED:
            logger.debug(f"Initialize skipped, learner is {self._state.value}")
            return

        self._transition(LearnerState.TRAINING)
        try:
            loaded = False
            try:
                loaded = await self._load_blob(catalog)
            except ModelShapeMismatchError as e:
                self.last_load_error = e
                logger.warning(
                    "Persisted model does not fit the catalog, building a fresh one",
                    extra=e.details,
                )

            if not loaded:
                input_dim, output_dim = self._catalog_shape(catalog)
                self._model, self._optimizer = build_classifier(
                    input_dim, output_dim, self.config
                )
                logger.info("Created new recommendation model")
        except Exception as e:
            logger.error(
                "Failed to initialize recommendation model",
                extra={"error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            self._model = None
            self._optimizer = None
            self._transition(LearnerState.UNINITIALIZED)
            return

        self._transition(LearnerState.READY)

    async def train(
        self,
        catalog: Sequence[Product],
        interactions: Sequence[Interaction],
    ) -> Optional[Dict[str, List[float]]]:
        """Fit the classifier on the sessions in the interaction log, then persist it.

        Requires READY and at least ``min_interactions`` interactions;
        otherwise nothing happens. Fit and save failures are logged, and the
        learner always ends up READY again.

        Returns:
            Per-epoch ``loss``/``accuracy`` history, or None if nothing was fitted.
        """
        if self._state is not LearnerState.READY:
            logger.debug(f"Training skipped, learner is {self._state.value}")
            return None
        if len(interactions) < self.config.min_interactions:
            logger.info(
                "Training skipped, not enough interactions",
                extra={
                    "num_interactions": len(interactions),
                    "min_interactions": self.config.min_interactions,
                },
            )
            return None

        self._transition(LearnerState.TRAINING)
        start_time = time.time()
        try:
            sessions = segment_sessions(interactions, self.config.session_gap_ms)
            pairs = build_training_pairs(catalog, sessions)
            if len(pairs) == 0:
                logger.info("No usable training pairs, skipping fit")
                return None

            history = await asyncio.to_thread(
                fit_classifier, self._model, self._optimizer, pairs, self.config
            )
            await self._save_blob()

            logger.info(
                "Model trained",
                extra={
                    "num_pairs": len(pairs),
                    "final_loss": round(history["loss"][-1], 4),
                    "training_time_ms": round((time.time() - start_time) * 1000, 2),
                },
            )
            return history
        except Exception as e:
            logger.error(
                "Model training failed",
                extra={"error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            return None
        finally:
            self._transition(LearnerState.READY)

    async def save(self) -> bool:
        """Persist the current model under the configured slot.

        Returns:
            True if the blob was written.
        """
        if self._state is LearnerState.TRAINING:
            logger.debug("Save skipped, learner is busy")
            return False
        return await self._save_blob()

    async def load(self, catalog: Sequence[Product]) -> bool:
        """Adopt the persisted model if there is one for this catalog.

        Returns:
            True if a model was loaded, False if the slot is empty or unreadable.

        Raises:
            ModelShapeMismatchError: If the stored model was built for a
                catalog of a different shape.
        """
        if self._state is LearnerState.TRAINING:
            logger.debug("Load skipped, learner is busy")
            return False
        loaded = await self._load_blob(catalog)
        if loaded and self._state is LearnerState.UNINITIALIZED:
            self._transition(LearnerState.READY)
        return loaded

    def predict(self, vector: np.ndarray) -> np.ndarray:
        """Next-product probability distribution for one feature vector.

        Raises:
            RuntimeError: If no model has been initialized or loaded, or the
                model is being fitted.
        """
        if self._model is None:
            raise RuntimeError("Learner has no model; call initialize() first")
        if self._state is LearnerState.TRAINING:
            raise RuntimeError("Learner is training; predict once it is ready")
        x = torch.as_tensor(np.asarray(vector, dtype=np.float32)).reshape(1, -1)
        return self._model.predict_proba(x)[0].numpy()

    async def _save_blob(self) -> bool:
        if self._model is None:
            logger.warning("Attempted to save a model that does not exist")
            return False

        slot = self.config.model_slot
        try:
            blob = export_model(self._model, self._optimizer)
            await asyncio.to_thread(self.store.save, slot, blob)
        except Exception as e:
            logger.error(
                "Failed to save model",
                extra={"slot_name": slot, "error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            return False

        logger.info("Model saved", extra={"slot_name": slot})
        return True

    async def _load_blob(self, catalog: Sequence[Product]) -> bool:
        slot = self.config.model_slot
        try:
            blob = await asyncio.to_thread(self.store.load, slot)
        except Exception as e:
            logger.warning(
                "Failed to read persisted model",
                extra={"slot_name": slot, "error": str(e), "error_type": type(e).__name__},
            )
            return False

        if blob is None:
            logger.info("No saved model found", extra={"slot_name": slot})
            return False

        input_dim, output_dim = self._catalog_shape(catalog)
        try:
            model, optimizer = restore_model(blob, input_dim, output_dim, slot, self.config)
        except ModelShapeMismatchError:
            raise
        except Exception as e:
            logger.warning(
                "Persisted model is unreadable",
                extra={"slot_name": slot, "error": str(e), "error_type": type(e).__name__},
            )
            return False

        self._model, self._optimizer = model, optimizer
        self.last_load_error = None
        logger.info("Model loaded", extra={"slot_name": slot})
        return True
