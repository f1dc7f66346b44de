"""Per-cluster leanings

For each opinion group, ranks statements by the group's net agreement
so the group can be described by what it tends to agree and disagree with.
"""

from typing import Iterable, List, Optional, Sequence

from config import get_logger
from deliberation.matrix import latest_opinions
from deliberation.models import ClusterProfile, Opinion, Statement, StatementScore, VoteValue

logger = get_logger(__name__).bind(component="cluster_profiles")

PROFILE_TOP_N = 2  # Statements reported per direction


def score_statements(
    statements: Sequence[Statement],
    opinions: Iterable[Opinion],
    weighted: bool = False,
) -> List[StatementScore]:
    """Score statements by agrees - disagrees for one group of opinions.

    Statements without agree/disagree votes in the group are excluded.
    Result is ordered by |score| descending, statement order breaking ties.
    """
    agrees = {s.id: 0.0 for s in statements}
    disagrees = {s.id: 0.0 for s in statements}

    for opinion in opinions:
        if opinion.statement_id not in agrees:
            continue
        amount = opinion.weight if weighted else 1
        if opinion.value == VoteValue.AGREE:
            agrees[opinion.statement_id] += amount
        elif opinion.value == VoteValue.DISAGREE:
            disagrees[opinion.statement_id] += amount

    scores = [
        StatementScore(
            statement_id=s.id,
            score=agrees[s.id] - disagrees[s.id],
            total=agrees[s.id] + disagrees[s.id],
        )
        for s in statements
        if agrees[s.id] + disagrees[s.id] > 0
    ]
    scores.sort(key=lambda s: abs(s.score), reverse=True)
    return scores


def profile_clusters(
    statements: Sequence[Statement],
    opinions: Iterable[Opinion],
    participant_ids: Sequence[str],
    labels: Sequence[int],
    n_clusters: Optional[int] = None,
    top_n: int = PROFILE_TOP_N,
    weighted: bool = False,
) -> List[ClusterProfile]:
    """Describe each cluster by its most distinctive statements.

    Args:
        statements: Statements to score
        opinions: Full opinion set; superseded votes are ignored
        participant_ids: Participant per clustered row
        labels: Cluster label per row, aligned with participant_ids
        n_clusters: Number of clusters (defaults to max label + 1)
        top_n: Statements reported as top_agree / top_disagree
        weighted: Tally opinion weights instead of counts

    Returns:
        One ClusterProfile per cluster id, in id order. Clusters with no
        members or no scoring statements get empty lists.
    """
    labels = [int(label) for label in labels]
    if n_clusters is None:
        n_clusters = max(labels) + 1 if labels else 0

    cluster_of = dict(zip(participant_ids, labels))
    votes = latest_opinions(statements, opinions)

    profiles = []
    for cluster_id in range(n_clusters):
        members = [o for o in votes if cluster_of.get(o.participant_id) == cluster_id]
        scores = score_statements(statements, members, weighted=weighted)

        profiles.append(
            ClusterProfile(
                cluster_id=cluster_id,
                size=sum(1 for label in labels if label == cluster_id),
                top_agree=[s for s in scores if s.score > 0][:top_n],
                top_disagree=[s for s in scores if s.score < 0][:top_n],
            )
        )

    logger.debug("profiled clusters", n_clusters=n_clusters, n_participants=len(participant_ids))

    return profiles
