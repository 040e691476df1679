"""Data model for catalogs, interaction logs and recommendation scores.

Products and interactions are immutable once built. Field aliases accept
the camelCase keys used by the storefront (``productId``, ``type``).
"""

from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Reasons attached to scores
COLD_START_REASON = "Featured product"
FALLBACK_REASON = "Trending now"
SIMILARITY_REASON = "Similar to products you viewed"


class InteractionKind(str, Enum):
    CLICK = "click"
    VIEW = "view"
    TIME_SPENT = "time_spent"


class Rating(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: float = Field(ge=0, le=5)
    count: int = Field(ge=0)


class Product(BaseModel):
    """A catalog product as supplied by the catalog source."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    price: float = Field(ge=0)
    category: str
    rating: Rating
    description: str = ""
    image: Optional[str] = None


class Interaction(BaseModel):
    """One user action against a product.

    ``product_id`` may reference a product that is no longer in the catalog.
    ``timestamp`` is in milliseconds. ``value`` is the dwell time in seconds
    and only carries meaning for ``time_spent`` events.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: int = Field(alias="productId")
    timestamp: int
    kind: InteractionKind = Field(alias="type")
    value: Optional[float] = None


class RecommendationScore(BaseModel):
    product_id: int
    score: float
    reasons: List[str] = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return min(max(value, 0.0), 1.0)


# A session is an ordered run of interactions; kept as a plain list
Session = List[Interaction]


def index_catalog(catalog: Sequence[Product]) -> dict:
    """Map product id to product for constant-time lookups."""
    return {product.id: product for product in catalog}
