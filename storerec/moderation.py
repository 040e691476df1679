"""Comment moderation against an external toxicity oracle.

The oracle is opaque: it answers whether a text matches any toxicity label.
When it cannot answer, moderation fails loudly with
``OracleUnavailableError`` instead of letting the comment through.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from storerec.exceptions import OracleUnavailableError

# Configure module logger
logger = logging.getLogger(__name__)

TOXIC_WARNING = "Comment contains inappropriate content. Please revise your message."


class ToxicityOracle(Protocol):
    def classify(self, text: str) -> bool:
        ...


@dataclass(frozen=True)
class ModerationResult:
    allowed: bool
    toxic: bool
    warning: Optional[str] = None


class CommentModerator:
    """Gatekeeper for user comments."""

    def __init__(self, oracle: Optional[ToxicityOracle]):
        """Initialize with an oracle; None means the oracle is not loaded yet."""
        self.oracle = oracle

    def check(self, text: str) -> ModerationResult:
        """Decide whether a comment may be posted.

        Args:
            text: Comment text.

        Returns:
            ModerationResult; ``allowed`` is False for toxic comments.

        Raises:
            ValueError: If the comment is blank.
            OracleUnavailableError: If the oracle is missing or fails.
        """
        if not text or not text.strip():
            raise ValueError("Comment text must not be empty")

        if self.oracle is None:
            logger.error("Toxicity oracle not loaded")
            raise OracleUnavailableError()

        try:
            toxic = bool(self.oracle.classify(text))
        except Exception as e:
            logger.error(
                "Toxicity check failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise OracleUnavailableError(e) from e

        if toxic:
            logger.info("Comment rejected as toxic", extra={"text_length": len(text)})
            return ModerationResult(allowed=False, toxic=True, warning=TOXIC_WARNING)

        return ModerationResult(allowed=True, toxic=False)
