"""Next-product classifier: construction, fitting and serialization.

The classifier is a small feed-forward network mapping a product feature
vector to a probability distribution over the catalog. It is trained
incrementally on session pairs and serialized into a plain dict blob that
records its widths, so an incompatible blob is detected on restore.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.optim as optim
from torch.utils.data import DataLoader, TensorDataset

from storerec.config import EngineConfig
from storerec.exceptions import ModelShapeMismatchError
from storerec.recommender.sessions import TrainingPairs

# Configure module logger
logger = logging.getLogger(__name__)


class NextProductClassifier(nn.Module):
    """
    Feed-forward next-product classifier:
    - Linear(input -> 64) + ReLU
    - Dropout(0.2), active in train mode only
    - Linear(64 -> 32) + ReLU
    - Linear(32 -> n_products), softmax over the catalog

    ``forward`` returns logits; the softmax is applied by ``predict_proba``
    and folded into the cross-entropy loss during fitting.
    """

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        hidden_units: Tuple[int, int] = (64, 32),
        dropout_rate: float = 0.2,
    ) -> None:
        super().__init__()
        if input_dim <= 0 or output_dim <= 0:
            raise ValueError(
                f"input_dim and output_dim must be positive, got {input_dim}x{output_dim}"
            )

        self.input_dim = input_dim
        self.output_dim = output_dim
        self.hidden_units = tuple(hidden_units)
        self.dropout_rate = dropout_rate

        first, second = self.hidden_units
        self.layers = nn.Sequential(
            nn.Linear(input_dim, first),
            nn.ReLU(),
            nn.Dropout(dropout_rate),
            nn.Linear(first, second),
            nn.ReLU(),
            nn.Linear(second, output_dim),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.layers(x)

    @torch.no_grad()
    def predict_proba(self, x: torch.Tensor) -> torch.Tensor:
        was_training = self.training
        self.eval()
        try:
            return F.softmax(self.forward(x), dim=-1)
        finally:
            self.train(was_training)


def build_classifier(
    input_dim: int,
    output_dim: int,
    config: Optional[EngineConfig] = None,
) -> Tuple[NextProductClassifier, optim.Optimizer]:
    """Create a fresh classifier and its Adam optimizer.

    Args:
        input_dim: Feature-vector width.
        output_dim: Catalog size.
        config: Layer widths, dropout and learning rate.

    Returns:
        The untrained model and an Adam optimizer bound to its parameters.
    """
    config = config or EngineConfig()
    if config.torch_seed is not None:
        torch.manual_seed(config.torch_seed)

    model = NextProductClassifier(
        input_dim=input_dim,
        output_dim=output_dim,
        hidden_units=config.hidden_units,
        dropout_rate=config.dropout_rate,
    )
    optimizer = optim.Adam(model.parameters(), lr=config.learning_rate)

    n_params = sum(p.numel() for p in model.parameters())
    logger.info(
        "Built next-product classifier",
        extra={
            "input_dim": input_dim,
            "output_dim": output_dim,
            "hidden_units": list(config.hidden_units),
            "num_parameters": n_params,
        },
    )
    return model, optimizer


def fit_classifier(
    model: NextProductClassifier,
    optimizer: optim.Optimizer,
    pairs: TrainingPairs,
    config: Optional[EngineConfig] = None,
) -> Dict[str, List[float]]:
    """Run a few incremental fitting passes over the training pairs.

    Uses categorical cross-entropy against the one-hot targets, a batch size
    of ``min(max_batch_size, len(pairs))`` and a fresh shuffle every epoch.

    Args:
        model: Classifier to update in place.
        optimizer: Optimizer bound to ``model``'s parameters.
        pairs: Training pairs; must not be empty.
        config: Epoch count and batch size cap.

    Returns:
        History with per-epoch mean ``loss`` and ``accuracy``.

    Raises:
        ValueError: If there are no pairs or their widths do not match the model.
    """
    config = config or EngineConfig()
    n_pairs = len(pairs)
    if n_pairs == 0:
        raise ValueError("Cannot fit classifier on empty training pairs")
    if pairs.inputs.shape[1] != model.input_dim or pairs.outputs.shape[1] != model.output_dim:
        raise ValueError(
            f"Training pairs are {pairs.inputs.shape[1]}->{pairs.outputs.shape[1]}, "
            f"model is {model.input_dim}->{model.output_dim}"
        )

    batch_size = min(config.max_batch_size, n_pairs)
    dataset = TensorDataset(
        torch.from_numpy(np.ascontiguousarray(pairs.inputs, dtype=np.float32)),
        torch.from_numpy(np.ascontiguousarray(pairs.outputs, dtype=np.float32)),
    )
    generator = None
    if config.torch_seed is not None:
        generator = torch.Generator().manual_seed(config.torch_seed)
    loader = DataLoader(dataset, batch_size=batch_size, shuffle=True, generator=generator)

    history: Dict[str, List[float]] = {"loss": [], "accuracy": []}
    model.train()

    for epoch in range(config.epochs):
        total_loss = 0.0
        correct = 0

        for xb, yb in loader:
            logits = model(xb)
            # Probability targets make this categorical cross-entropy
            loss = F.cross_entropy(logits, yb)

            optimizer.zero_grad()
            loss.backward()
            optimizer.step()

            total_loss += float(loss.item()) * xb.shape[0]
            correct += int((logits.argmax(dim=1) == yb.argmax(dim=1)).sum().item())

        history["loss"].append(total_loss / n_pairs)
        history["accuracy"].append(correct / n_pairs)
        logger.debug(
            "Epoch finished",
            extra={
                "epoch": epoch + 1,
                "loss": round(history["loss"][-1], 4),
                "accuracy": round(history["accuracy"][-1], 4),
            },
        )

    model.eval()
    logger.info(
        "Classifier fitted",
        extra={
            "num_pairs": n_pairs,
            "batch_size": batch_size,
            "epochs": config.epochs,
            "final_loss": round(history["loss"][-1], 4),
        },
    )
    return history


def export_model(
    model: NextProductClassifier,
    optimizer: Optional[optim.Optimizer] = None,
) -> Dict[str, Any]:
    """Serialize a classifier into a store blob.

    Tensors are cloned so later training does not mutate a stored blob.
    """
    blob: Dict[str, Any] = {
        "input_dim": model.input_dim,
        "output_dim": model.output_dim,
        "hidden_units": list(model.hidden_units),
        "dropout_rate": model.dropout_rate,
        "model_state_dict": {
            key: value.detach().clone() for key, value in model.state_dict().items()
        },
    }
    if optimizer is not None:
        blob["optimizer_state_dict"] = copy.deepcopy(optimizer.state_dict())
    return blob


def restore_model(
    blob: Dict[str, Any],
    input_dim: int,
    output_dim: int,
    slot_name: str,
    config: Optional[EngineConfig] = None,
) -> Tuple[NextProductClassifier, optim.Optimizer]:
    """Rebuild a classifier from a store blob.

    Args:
        blob: Output of ``export_model``.
        input_dim: Feature-vector width of the current catalog.
        output_dim: Size of the current catalog.
        slot_name: Slot the blob came from, for error reporting.
        config: Learning rate for the rebuilt optimizer.

    Returns:
        The restored model (in eval mode) and its optimizer.

    Raises:
        ModelShapeMismatchError: If the blob was built for another catalog shape.
        KeyError: If the blob lacks required entries.
    """
    config = config or EngineConfig()
    expected = {"input_dim": input_dim, "output_dim": output_dim}
    found = {"input_dim": blob.get("input_dim"), "output_dim": blob.get("output_dim")}
    if found != expected:
        raise ModelShapeMismatchError(slot_name, expected=expected, found=found)

    model = NextProductClassifier(
        input_dim=input_dim,
        output_dim=output_dim,
        hidden_units=tuple(blob.get("hidden_units", config.hidden_units)),
        dropout_rate=blob.get("dropout_rate", config.dropout_rate),
    )
    model.load_state_dict(blob["model_state_dict"])
    model.eval()

    optimizer = optim.Adam(model.parameters(), lr=config.learning_rate)
    if blob.get("optimizer_state_dict"):
        # The blob must not share tensors with the live optimizer state
        optimizer.load_state_dict(copy.deepcopy(blob["optimizer_state_dict"]))

    return model, optimizer
