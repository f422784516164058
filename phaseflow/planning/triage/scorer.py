# phaseflow/planning/triage/scorer.py
"""
Backlog-to-phase fit scoring.

score(item, phase) is a pure, deterministic sum of three components,
capped at 1.0:

- keyword: keyword_weight per distinct token shared by the item and the
  phase scope, counting at most keyword_max_matches tokens
- goal: goal_weight when the item shares at least goal_min_shared tokens
  with the phase goal
- category: category_weight when both sides carry the same category tag

Adding a shared token to either side can only keep or raise the score.
"""

import logging
import re
from enum import Enum

from phaseflow.config.schema import TriageConfig
from phaseflow.models.roadmap import BacklogItem, PhaseRecord

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in", "into",
        "is", "it", "its", "of", "on", "or", "so", "that", "the", "this", "to",
        "was", "were", "will", "with", "we", "our", "all", "any", "should", "must",
    }
)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class ConfidenceBand(str, Enum):
    """Named score ranges; lower bounds inclusive."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NONE = "None"


def tokenize(text: str, extra_stop_words: frozenset[str] | set[str] = frozenset()) -> set[str]:
    """Lowercase alphanumeric tokens with stop words removed."""
    return {
        token
        for token in _TOKEN_RE.findall(text.lower())
        if token not in STOP_WORDS and token not in extra_stop_words
    }


class TriageScorer:
    """
    Scores how well a backlog item fits a phase.

    Args:
        config: Weights and band thresholds (default: TriageConfig())
    """

    def __init__(self, config: TriageConfig | None = None) -> None:
        self.config = config or TriageConfig()
        self._stop = frozenset(w.lower() for w in self.config.extra_stop_words)

    def _tokens(self, text: str) -> set[str]:
        return tokenize(text, self._stop)

    def score(self, item: BacklogItem, phase: PhaseRecord) -> float:
        """
        Score item against phase on a 0.0-1.0 scale.

        Returns:
            Score rounded to two decimals
        """
        cfg = self.config
        item_tokens = self._tokens(item.description)

        scope_tokens: set[str] = set()
        for bullet in phase.scope:
            scope_tokens |= self._tokens(bullet)
        keyword_matches = min(len(item_tokens & scope_tokens), cfg.keyword_max_matches)
        total = keyword_matches * cfg.keyword_weight

        goal_shared = len(item_tokens & self._tokens(phase.goal))
        if goal_shared >= cfg.goal_min_shared:
            total += cfg.goal_weight

        if item.category and phase.category:
            if item.category.strip().lower() == phase.category.strip().lower():
                total += cfg.category_weight

        return round(min(1.0, total), 2)

    def band(self, score: float) -> ConfidenceBand:
        """Map a score to its confidence band."""
        cfg = self.config
        if score >= cfg.high:
            return ConfidenceBand.HIGH
        if score >= cfg.medium:
            return ConfidenceBand.MEDIUM
        if score >= cfg.low:
            return ConfidenceBand.LOW
        return ConfidenceBand.NONE

    def rank(
        self, item: BacklogItem, phases: list[PhaseRecord]
    ) -> list[tuple[PhaseRecord, float]]:
        """
        Score item against each phase, best first.

        Ties are broken by smallest phase number.
        """
        scored = [(phase, self.score(item, phase)) for phase in phases]
        scored.sort(key=lambda pair: (-pair[1], int(pair[0].number)))
        if scored:
            best, best_score = scored[0]
            logger.debug(f"Item {item.id}: best phase {best.number} scored {best_score:.2f}")
        return scored
