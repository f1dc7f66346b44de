"""
Deliberation Models

Pydantic dataclasses with runtime validation for the input records
(statements and opinions), plus the typed results of an analysis run.

Matrix-shaped intermediates (VoteMatrix, PCAResult, KMeansResult) carry
numpy arrays and are plain dataclasses; everything that crosses the
engine boundary is a pydantic model.
"""

import dataclasses
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.dataclasses import dataclass


class VoteValue(str, Enum):
    """A participant's reaction to a statement"""

    AGREE = "agree"
    DISAGREE = "disagree"
    PASS = "pass"

    @property
    def matrix_value(self) -> int:
        """Cell value used in the vote matrix (agree=-1, pass=0, disagree=+1)"""
        return VOTE_MATRIX_VALUES[self]


VOTE_MATRIX_VALUES = {
    VoteValue.AGREE: -1,
    VoteValue.PASS: 0,
    VoteValue.DISAGREE: 1,
}


# --- Input records ---


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC so every created_at is comparable
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Statement:
    """A proposition participants vote on. Never mutated once created."""

    id: str
    author_id: str
    text: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return _as_utc(v)


@dataclass(frozen=True)
class Opinion:
    """One participant's vote on one statement

    weight is the multiplier earned through proof-of-work and/or trust.
    Absent those signals it is 1, and it can never drop below 1.
    """

    id: str
    statement_id: str
    participant_id: str
    value: VoteValue
    created_at: datetime
    weight: Annotated[float, Field(ge=1.0)] = 1.0

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return _as_utc(v)


# --- Matrix-shaped intermediates ---


@dataclasses.dataclass
class VoteMatrix:
    """Participant x statement vote table

    values holds -1 (agree), 0 (pass), +1 (disagree) or NaN (no vote).
    Rows are aligned with participant_ids, columns with statement_ids.
    """

    values: np.ndarray
    participant_ids: List[str]
    statement_ids: List[str]

    @property
    def shape(self):
        return self.values.shape

    def vote_counts(self) -> np.ndarray:
        """Number of non-missing cells per participant row"""
        if self.values.size == 0:
            return np.zeros(len(self.participant_ids), dtype=int)
        return np.sum(~np.isnan(self.values), axis=1)


@dataclasses.dataclass
class PCAResult:
    components: np.ndarray  # (K, m)
    projections: np.ndarray  # (n, K)
    means: np.ndarray  # (m,)


@dataclasses.dataclass
class KMeansResult:
    labels: np.ndarray  # (n,)
    centroids: np.ndarray  # (k', K)
    iterations: int = 0


# --- Analysis options and results ---


class AnalysisOptions(BaseModel):
    """Tunables for a single analyze_opinions run

    Invalid values (e.g. cluster_count < 1) are programmer errors and raise
    pydantic.ValidationError. cluster_count=None picks a count from the
    number of qualifying participants.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    components: int = Field(default=2, ge=1)
    cluster_count: Optional[int] = Field(default=3, ge=1)
    min_votes_per_participant: int = Field(default=2, ge=1)
    max_pca_iterations: int = Field(default=100, ge=1)
    pca_tolerance: float = Field(default=1e-6, gt=0)
    max_kmeans_iterations: int = Field(default=50, ge=1)


class ConsensusEntry(BaseModel):
    """A statement with broad agreement across all participants"""
    model_config = ConfigDict(extra="forbid")

    statement_id: str
    agree_rate: float = Field(ge=0.0, le=1.0)
    sample_size: int = Field(ge=0)


class StatementScore(BaseModel):
    """Net agreement (agrees - disagrees) of one cluster on one statement"""
    model_config = ConfigDict(extra="forbid")

    statement_id: str
    score: float
    total: float  # agrees + disagrees (weighted when tallying weights)


class ClusterProfile(BaseModel):
    """Statements that best characterise one cluster's leaning"""
    model_config = ConfigDict(extra="forbid")

    cluster_id: int
    size: int
    top_agree: List[StatementScore] = Field(default_factory=list)
    top_disagree: List[StatementScore] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """
    Output bundle of analyze_opinions.

    projections, participant_ids and clusters are index-aligned.
    insufficient_data=True means clustering was declined: components,
    projections, clusters, centroids and cluster_profiles are empty.
    Consensus does not depend on clustering and is always computed.
    """
    model_config = ConfigDict(extra="forbid")

    components: List[List[float]] = Field(default_factory=list)
    projections: List[List[float]] = Field(default_factory=list)
    participant_ids: List[str] = Field(default_factory=list)
    clusters: List[int] = Field(default_factory=list)
    centroids: List[List[float]] = Field(default_factory=list)
    consensus: List[ConsensusEntry] = Field(default_factory=list)
    cluster_profiles: List[ClusterProfile] = Field(default_factory=list)
    insufficient_data: bool = False
    silhouette: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return self.model_dump()
