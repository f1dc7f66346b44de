"""Vote weighting from proof-of-work and trust

A vote's weight comes from two optional, independent signals:

- Work: the leading-zero-bit difficulty a voter mined for the opinion,
  mapped onto an ordered tier table (quadratic-voting style: more votes
  cost more computation).
- Trust: an externally supplied reputation score, bucketed into levels
  and mapped to a multiplier in [0.1, 1.0].

combined_weight() multiplies the two and floors the result at 1, so a
recorded opinion never weighs less than a plain vote.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from config import get_logger
from deliberation.models import Opinion, VoteValue
from exceptions import InvalidWeightError

logger = get_logger(__name__).bind(component="vote_weights")

MIN_WEIGHT = 1.0


@dataclass(frozen=True)
class DifficultyLevel:
    """One tier of the work-based weight table"""

    min_difficulty: int  # Leading zero bits required
    votes: int
    label: str
    estimated_time: str


DIFFICULTY_LEVELS: List[DifficultyLevel] = [
    DifficultyLevel(min_difficulty=0, votes=1, label="none", estimated_time="instant"),
    DifficultyLevel(min_difficulty=8, votes=2, label="easy", estimated_time="seconds"),
    DifficultyLevel(min_difficulty=12, votes=3, label="moderate", estimated_time="tens of seconds"),
    DifficultyLevel(min_difficulty=16, votes=4, label="hard", estimated_time="minutes"),
    DifficultyLevel(min_difficulty=20, votes=5, label="very hard", estimated_time="tens of minutes"),
]


def difficulty_level(difficulty: int) -> DifficultyLevel:
    """Highest tier whose min_difficulty the achieved difficulty reaches"""
    for level in reversed(DIFFICULTY_LEVELS):
        if difficulty >= level.min_difficulty:
            return level
    return DIFFICULTY_LEVELS[0]


def vote_weight_from_pow(difficulty: int) -> int:
    """Number of votes granted for an achieved difficulty (1-5)"""
    return difficulty_level(difficulty).votes


def recommended_difficulty(desired_votes: int) -> int:
    """Lowest difficulty that grants at least desired_votes.

    Requests above the top tier get the top tier's difficulty.
    """
    for level in DIFFICULTY_LEVELS:
        if level.votes >= desired_votes:
            return level.min_difficulty
    return DIFFICULTY_LEVELS[-1].min_difficulty


# -----------------------------------------------------------------------------
# Trust
# -----------------------------------------------------------------------------


class TrustLevel(str, Enum):
    NO_DATA = "no_data"
    SELF = "self"
    HIGH = "high"
    MODERATE = "moderate"
    NEUTRAL = "neutral"
    LOW = "low"


TRUST_HIGH_THRESHOLD = 5
TRUST_MODERATE_THRESHOLD = 1
DEFAULT_MAX_TRUST = 10
MIN_TRUST_WEIGHT = 0.1


@dataclass(frozen=True)
class TrustAssessment:
    """A trust score with its bucket and multiplier

    score stays None when the provider had no data, so callers can tell
    "absent" apart from "present but low".
    """

    score: Optional[float]
    level: TrustLevel
    weight: float


def trust_level(score: Optional[float]) -> TrustLevel:
    """Bucket a raw trust score for weight lookup and display"""
    if score is None:
        return TrustLevel.NO_DATA
    if math.isinf(score) and score > 0:
        return TrustLevel.SELF
    if score >= TRUST_HIGH_THRESHOLD:
        return TrustLevel.HIGH
    if score >= TRUST_MODERATE_THRESHOLD:
        return TrustLevel.MODERATE
    if score == 0:
        return TrustLevel.NEUTRAL
    return TrustLevel.LOW


def vote_weight_from_trust(score: Optional[float], max_trust: float = DEFAULT_MAX_TRUST) -> float:
    """Map a trust score to a multiplier in [0.1, 1.0].

    - No data or the viewer themselves: 1.0 (no penalty)
    - Zero or negative: 0.1
    - Positive: 0.1 + min(score / max_trust, 1) * 0.9
    """
    if score is None or (math.isinf(score) and score > 0):
        return 1.0
    if score <= 0:
        return MIN_TRUST_WEIGHT

    normalized = min(score / max_trust, 1.0)
    return MIN_TRUST_WEIGHT + normalized * (1.0 - MIN_TRUST_WEIGHT)


def assess_trust(score: Optional[float], max_trust: float = DEFAULT_MAX_TRUST) -> TrustAssessment:
    return TrustAssessment(
        score=score,
        level=trust_level(score),
        weight=vote_weight_from_trust(score, max_trust),
    )


# -----------------------------------------------------------------------------
# Combination
# -----------------------------------------------------------------------------


def combined_weight(pow_weight: float, trust_weight: float = 1.0) -> float:
    """Combine work and trust weights into a vote weight.

    Rule: pow_weight * trust_weight, floored at 1.0.

    A low trust multiplier can only reduce the extra votes earned through
    work, never push a vote below a plain single vote.

    Raises:
        InvalidWeightError: pow_weight below 1, or a non-finite or
            non-positive trust_weight
    """
    if not math.isfinite(pow_weight) or pow_weight < MIN_WEIGHT:
        raise InvalidWeightError(
            f"Work weight must be a finite number >= {MIN_WEIGHT}",
            pow_weight=pow_weight,
        )
    if not math.isfinite(trust_weight) or trust_weight <= 0:
        raise InvalidWeightError(
            "Trust weight must be a finite positive number",
            trust_weight=trust_weight,
        )

    weight = pow_weight * trust_weight
    if weight < MIN_WEIGHT:
        logger.debug("clamped vote weight", raw_weight=weight, pow_weight=pow_weight, trust_weight=trust_weight)
        return MIN_WEIGHT
    return weight


def opinion_weight(difficulty: int = 0, trust_score: Optional[float] = None) -> float:
    """Weight to record on a new opinion from its mined difficulty and author trust"""
    return combined_weight(
        float(vote_weight_from_pow(difficulty)),
        vote_weight_from_trust(trust_score),
    )


def calculate_weighted_votes(opinions: Iterable[Opinion]) -> Dict[str, float]:
    """Weighted agree/disagree/pass totals for a list of opinions.

    Returns:
        {"agree", "disagree", "pass", "total"}
    """
    totals = {VoteValue.AGREE: 0.0, VoteValue.DISAGREE: 0.0, VoteValue.PASS: 0.0}
    for opinion in opinions:
        totals[opinion.value] += opinion.weight

    return {
        "agree": totals[VoteValue.AGREE],
        "disagree": totals[VoteValue.DISAGREE],
        "pass": totals[VoteValue.PASS],
        "total": sum(totals.values()),
    }
