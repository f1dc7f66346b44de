"""Deliberation module - opinion clustering and consensus

Core engine for deliberation on statements:
- Vote matrix construction (agree/disagree/pass, latest vote wins)
- Opinion clustering via power-iteration PCA + k-means
- Consensus detection across all participants
- Per-cluster leaning profiles
- Vote weighting from proof of work and web of trust
"""

from deliberation.clustering import analyze_opinions
from deliberation.consensus import CONSENSUS_MIN_AGREE_RATE, CONSENSUS_MIN_VOTES
from deliberation.models import (
    AnalysisOptions,
    AnalysisResult,
    ClusterProfile,
    ConsensusEntry,
    Opinion,
    Statement,
    VoteValue,
)
from deliberation.pow import MinedVote, mine_event, mine_weight, verify_pow
from deliberation.weights import DIFFICULTY_LEVELS, assess_trust, combined_weight

__all__ = [
    "analyze_opinions",
    "AnalysisOptions",
    "AnalysisResult",
    "ClusterProfile",
    "ConsensusEntry",
    "Opinion",
    "Statement",
    "VoteValue",
    "CONSENSUS_MIN_AGREE_RATE",
    "CONSENSUS_MIN_VOTES",
    "DIFFICULTY_LEVELS",
    "MinedVote",
    "mine_event",
    "mine_weight",
    "verify_pow",
    "assess_trust",
    "combined_weight",
]
