"""Key/value stores for persisted model blobs.

The online learner writes one blob under one fixed slot name. Each save
overwrites the previous blob; there is no versioning. A missing slot loads
as ``None``.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import joblib

from storerec.exceptions import ModelStoreError

# Configure module logger
logger = logging.getLogger(__name__)

BLOB_SUFFIX = ".joblib"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class ModelStore(Protocol):
    """Persistence collaborator used by the online learner."""

    def save(self, slot_name: str, blob: Any) -> None:
        ...

    def load(self, slot_name: str) -> Optional[Any]:
        ...


class InMemoryModelStore:
    """Process-local store, for tests and hosts without durable storage."""

    def __init__(self) -> None:
        self._slots: Dict[str, Any] = {}

    def save(self, slot_name: str, blob: Any) -> None:
        self._slots[slot_name] = blob
        logger.debug("Saved blob in memory", extra={"slot_name": slot_name})

    def load(self, slot_name: str) -> Optional[Any]:
        return self._slots.get(slot_name)

    def __contains__(self, slot_name: str) -> bool:
        return slot_name in self._slots


class JoblibModelStore:
    """Store that keeps one joblib file per slot under a directory.

    Example:
        >>> store = JoblibModelStore("models")
        >>> store.save("recommendation-model", blob)
        >>> store.load("recommendation-model") is not None
        True
    """

    def __init__(self, model_dir: str):
        self.model_dir = Path(model_dir)

    def path_for(self, slot_name: str) -> Path:
        """File path backing a slot."""
        return self.model_dir / f"{_UNSAFE_CHARS.sub('_', slot_name)}{BLOB_SUFFIX}"

    def save(self, slot_name: str, blob: Any) -> None:
        """Write a blob, replacing whatever the slot held.

        Raises:
            ModelStoreError: If the directory or file cannot be written.
        """
        path = self.path_for(slot_name)
        try:
            self.model_dir.mkdir(parents=True, exist_ok=True)
            # Write then rename so a crash never leaves a half-written slot
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            joblib.dump(blob, tmp_path)
            tmp_path.replace(path)
        except OSError as e:
            raise ModelStoreError(slot_name, e) from e
        logger.info(f"Saved model blob to {path}")

    def load(self, slot_name: str) -> Optional[Any]:
        """Read a blob.

        Returns:
            The stored blob, or None if the slot was never written.

        Raises:
            ModelStoreError: If the file exists but cannot be read.
        """
        path = self.path_for(slot_name)
        if not path.exists():
            logger.debug(f"No model blob at {path}")
            return None
        try:
            blob = joblib.load(path)
        except Exception as e:
            raise ModelStoreError(slot_name, e) from e
        logger.info(f"Loaded model blob from {path}")
        return blob
