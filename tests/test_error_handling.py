"""Tests for error handling in StoreRec.

Tests the error taxonomy: infra failures absorbed by the learner, contract
violations surfaced as distinct exceptions, and oracle unavailability
reported instead of being read as "not toxic".
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import pytest
from pydantic import ValidationError

from storerec.config import EngineConfig
from storerec.exceptions import (
    IllegalStateTransition,
    ModelShapeMismatchError,
    ModelStoreError,
    OracleUnavailableError,
    StoreRecException,
)
from storerec.logging_config import JSONFormatter
from storerec.moderation import TOXIC_WARNING, CommentModerator
from storerec.recommender.catalog import (
    load_catalog_json,
    load_interactions_csv,
    parse_catalog,
)
from storerec.recommender.features import feature_width
from storerec.recommender.learner import LearnerState, OnlineLearner
from storerec.recommender.models import Interaction, InteractionKind, Product, Rating
from storerec.recommender.store import InMemoryModelStore, JoblibModelStore

SLOT = "recommendation-model"

FAKE_STORE_RECORD = {
    "id": 1,
    "title": "Fjallraven Backpack",
    "price": 109.95,
    "description": "Your perfect pack for everyday use",
    "category": "men's clothing",
    "image": "https://fakestoreapi.com/img/81fPKd-2AYL._AC_SL1500_.jpg",
    "rating": {"rate": 3.9, "count": 120},
}


class BrokenStore:
    """Store whose every operation fails."""

    def save(self, slot_name: str, blob: Any) -> None:
        raise ModelStoreError(slot_name, OSError("disk full"))

    def load(self, slot_name: str) -> Optional[Any]:
        raise ModelStoreError(slot_name, OSError("disk unreadable"))


class StaticOracle:
    def __init__(self, toxic: bool):
        self.toxic = toxic
        self.calls: List[str] = []

    def classify(self, text: str) -> bool:
        self.calls.append(text)
        return self.toxic


class CrashingOracle:
    def classify(self, text: str) -> bool:
        raise RuntimeError("model weights not downloaded")


def make_catalog(n: int) -> List[Product]:
    return [
        Product(id=pid, title=f"P{pid}", price=float(pid), category=f"c{pid % 2}",
                rating=Rating(rate=4.0, count=pid))
        for pid in range(1, n + 1)
    ]


def session_log(ids: List[int]) -> List[Interaction]:
    return [
        Interaction(product_id=pid, timestamp=k * 1000, kind=InteractionKind.CLICK)
        for k, pid in enumerate(ids)
    ]


# ===== Model Store and Shape Tests =====


def test_shape_mismatch_is_distinct_from_absence():
    """Loading a model built for another catalog size raises, absence does not."""
    store = InMemoryModelStore()
    small, large = make_catalog(3), make_catalog(5)

    async def scenario():
        first = OnlineLearner(store, EngineConfig(torch_seed=0))
        await first.initialize(small)
        await first.save()

        second = OnlineLearner(store, EngineConfig(torch_seed=0))
        with pytest.raises(ModelShapeMismatchError) as exc_info:
            await second.load(large)
        return second, exc_info.value

    second, error = asyncio.run(scenario())

    assert second.state is LearnerState.UNINITIALIZED
    assert error.details["expected"] == {"input_dim": feature_width(large), "output_dim": 5}
    assert error.details["found"]["output_dim"] == 3
    assert isinstance(error, StoreRecException)


def test_initialize_discards_mismatched_model():
    """initialize builds a fresh model and records the mismatch."""
    store = InMemoryModelStore()
    small, large = make_catalog(3), make_catalog(5)

    async def scenario():
        first = OnlineLearner(store)
        await first.initialize(small)
        await first.save()

        second = OnlineLearner(store)
        await second.initialize(large)
        return second

    second = asyncio.run(scenario())

    assert second.state is LearnerState.READY
    assert isinstance(second.last_load_error, ModelShapeMismatchError)
    assert second.predict([0.0] * feature_width(large)).shape == (5,)


def test_corrupt_blob_counts_as_no_model():
    """An unreadable blob is treated as absent."""
    store = InMemoryModelStore()
    store.save(SLOT, {"input_dim": 6, "output_dim": 3, "model_state_dict": {"junk": 1}})
    catalog = make_catalog(3)
    learner = OnlineLearner(store)

    assert asyncio.run(learner.load(catalog)) is False

    asyncio.run(learner.initialize(catalog))
    assert learner.state is LearnerState.READY
    assert learner.last_load_error is None


def test_broken_store_is_absorbed():
    """Store failures never escape initialize or train."""
    catalog = make_catalog(4)
    learner = OnlineLearner(BrokenStore(), EngineConfig(torch_seed=0))

    async def scenario():
        await learner.initialize(catalog)
        history = await learner.train(catalog, session_log([1, 2, 3, 4, 1]))
        saved = await learner.save()
        return history, saved

    history, saved = asyncio.run(scenario())

    assert learner.state is LearnerState.READY
    assert history is not None
    assert saved is False


def test_joblib_store_corrupt_file(tmp_path: Path):
    """A garbage file raises ModelStoreError from the file store."""
    store = JoblibModelStore(str(tmp_path))
    store.path_for(SLOT).write_bytes(b"not a pickle")

    with pytest.raises(ModelStoreError) as exc_info:
        store.load(SLOT)

    assert exc_info.value.details["slot_name"] == SLOT


# ===== State Machine Tests =====


def test_illegal_transition_raises():
    """Transitions outside the state machine are errors, not silent no-ops."""
    learner = OnlineLearner(InMemoryModelStore())
    learner._transition(LearnerState.TRAINING)

    with pytest.raises(IllegalStateTransition) as exc_info:
        learner._transition(LearnerState.TRAINING)

    assert exc_info.value.details == {"current": "training", "target": "training"}


def test_predict_without_model():
    """Inference before initialize is a caller error."""
    with pytest.raises(RuntimeError, match="initialize"):
        OnlineLearner(InMemoryModelStore()).predict([0.0] * 5)


# ===== Config Tests =====


@pytest.mark.parametrize(
    "overrides",
    [
        {"epochs": 0},
        {"max_batch_size": -1},
        {"dropout_rate": 1.0},
        {"learning_rate": 0.0},
        {"hidden_units": (64,)},
        {"model_slot": ""},
        {"session_gap_ms": -5},
    ],
)
def test_invalid_config_rejected(overrides):
    """Unusable training parameters fail fast."""
    with pytest.raises(ValueError):
        EngineConfig(**overrides).validate()


def test_learner_validates_config():
    """The learner refuses an invalid config at construction."""
    with pytest.raises(ValueError):
        OnlineLearner(InMemoryModelStore(), EngineConfig(epochs=0))


# ===== Moderation Tests =====


def test_clean_comment_allowed():
    """A non-toxic verdict lets the comment through."""
    oracle = StaticOracle(toxic=False)

    result = CommentModerator(oracle).check("Great product!")

    assert result.allowed and not result.toxic
    assert oracle.calls == ["Great product!"]


def test_toxic_comment_rejected():
    """A toxic verdict blocks the comment with a warning."""
    result = CommentModerator(StaticOracle(toxic=True)).check("awful words")

    assert not result.allowed
    assert result.toxic
    assert result.warning == TOXIC_WARNING


def test_oracle_failure_is_reported():
    """An oracle exception surfaces as OracleUnavailableError."""
    with pytest.raises(OracleUnavailableError) as exc_info:
        CommentModerator(CrashingOracle()).check("hello")

    assert exc_info.value.details["error_type"] == "RuntimeError"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_missing_oracle_is_reported():
    """An oracle that is not loaded yet is unavailable, not permissive."""
    with pytest.raises(OracleUnavailableError):
        CommentModerator(None).check("hello")


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_comment_rejected_before_oracle(text):
    """Blank comments never reach the oracle."""
    oracle = StaticOracle(toxic=False)

    with pytest.raises(ValueError):
        CommentModerator(oracle).check(text)

    assert oracle.calls == []


# ===== Catalog Loading Tests =====


def test_parse_fake_store_record():
    """The catalog source's product shape parses into a Product."""
    (product,) = parse_catalog([FAKE_STORE_RECORD])

    assert product.id == 1
    assert product.rating.rate == pytest.approx(3.9)
    assert product.category == "men's clothing"


def test_parse_catalog_rejects_duplicates():
    """Product ids must be unique."""
    with pytest.raises(ValueError, match="Duplicate"):
        parse_catalog([FAKE_STORE_RECORD, FAKE_STORE_RECORD])


@pytest.mark.parametrize(
    "field,value",
    [("price", -1.0), ("rating", {"rate": 5.5, "count": 1}), ("rating", {"rate": 3, "count": -1})],
)
def test_parse_catalog_rejects_invalid_values(field, value):
    """Negative prices and out-of-range ratings fail validation."""
    with pytest.raises(ValidationError):
        parse_catalog([{**FAKE_STORE_RECORD, field: value}])


def test_load_catalog_json(tmp_path: Path):
    """A JSON file with a product list loads as a catalog."""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([FAKE_STORE_RECORD]), encoding="utf-8")

    assert [p.id for p in load_catalog_json(str(path))] == [1]


def test_load_catalog_json_missing(tmp_path: Path):
    """A missing catalog file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_catalog_json(str(tmp_path / "nope.json"))


def test_load_catalog_json_not_a_list(tmp_path: Path):
    """A JSON object is not a catalog."""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(FAKE_STORE_RECORD), encoding="utf-8")

    with pytest.raises(ValueError, match="list"):
        load_catalog_json(str(path))


def test_load_interactions_csv(tmp_path: Path):
    """CSV rows become interactions; empty values become None."""
    path = tmp_path / "log.csv"
    path.write_text(
        "product_id,timestamp,kind,value\n"
        "1,1000,view,\n"
        "1,5000,time_spent,4.0\n"
        "2,9000,click,\n",
        encoding="utf-8",
    )

    log = load_interactions_csv(str(path))

    assert [i.kind for i in log] == [
        InteractionKind.VIEW, InteractionKind.TIME_SPENT, InteractionKind.CLICK,
    ]
    assert log[0].value is None
    assert log[1].value == pytest.approx(4.0)
    assert log[2].timestamp == 9000


def test_load_interactions_csv_missing_columns(tmp_path: Path):
    """A CSV without the required columns is rejected."""
    path = tmp_path / "bad.csv"
    path.write_text("id,name\n1,test\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing required columns"):
        load_interactions_csv(str(path))


def test_load_interactions_csv_missing_file(tmp_path: Path):
    """A missing CSV raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_interactions_csv(str(tmp_path / "nope.csv"))


def test_interaction_accepts_storefront_keys():
    """camelCase keys from the storefront map onto the model."""
    interaction = Interaction.model_validate(
        {"productId": 3, "timestamp": 42, "type": "time_spent", "value": 12.5}
    )

    assert interaction.product_id == 3
    assert interaction.kind is InteractionKind.TIME_SPENT


def test_unknown_interaction_kind_rejected():
    """Only click, view and time_spent are valid kinds."""
    with pytest.raises(ValidationError):
        Interaction(product_id=1, timestamp=0, kind="purchase")


# ===== Logging Tests =====


def test_json_formatter_includes_extra_fields():
    """Structured extras land in the JSON record."""
    record = logging.LogRecord(
        name="storerec.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg="Model trained", args=(), exc_info=None,
    )
    record.num_pairs = 7

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "Model trained"
    assert data["level"] == "INFO"
    assert data["num_pairs"] == 7
