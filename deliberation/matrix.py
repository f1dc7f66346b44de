"""Vote matrix construction

Turns a snapshot of opinions into a dense participant x statement matrix.
The matrix is a pure function of the opinion set: input order never
changes the result.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from config import get_logger
from deliberation.models import Opinion, Statement, VoteMatrix

logger = get_logger(__name__).bind(component="vote_matrix")

# Rows with fewer non-missing cells carry too little signal to place
MIN_VOTES_PER_PARTICIPANT = 2


def _supersedes(candidate: Opinion, current: Opinion) -> bool:
    # Latest created_at wins; equal timestamps fall back to the larger id
    return (candidate.created_at, candidate.id) > (current.created_at, current.id)


def dedupe_opinions(opinions: Iterable[Opinion]) -> Dict[Tuple[str, str], Opinion]:
    """Keep one logical vote per (participant, statement).

    Earlier votes are superseded by the most recent one. Ties on
    created_at are broken by opinion id so the outcome is independent
    of input order.

    Args:
        opinions: All opinions, in any order

    Returns:
        Dict mapping (participant_id, statement_id) -> surviving Opinion
    """
    latest: Dict[Tuple[str, str], Opinion] = {}
    for opinion in opinions:
        key = (opinion.participant_id, opinion.statement_id)
        current = latest.get(key)
        if current is None or _supersedes(opinion, current):
            latest[key] = opinion
    return latest


def latest_opinions(
    statements: Sequence[Statement],
    opinions: Iterable[Opinion],
) -> List[Opinion]:
    """Deduplicated opinions restricted to the given statements"""
    statement_ids = {s.id for s in statements}
    return [
        o for o in dedupe_opinions(opinions).values()
        if o.statement_id in statement_ids
    ]


def build_vote_matrix(
    statements: Sequence[Statement],
    opinions: Iterable[Opinion],
) -> VoteMatrix:
    """Build the vote matrix for clustering.

    Returns matrix where:
    - Rows = participants with at least one vote on the statements, sorted by id
    - Columns = statements, in the given order
    - Values = -1 (agree), 0 (pass), +1 (disagree) or NaN for unvoted

    Opinions on statements outside the list are ignored. Vote weight is
    not applied: every cell is a unit value.

    Args:
        statements: Statement-ordered list defining the columns
        opinions: Full opinion set

    Returns:
        VoteMatrix with aligned participant and statement ids
    """
    statement_ids = [s.id for s in statements]
    votes = latest_opinions(statements, opinions)

    participant_ids = sorted({o.participant_id for o in votes})

    if not statement_ids or not participant_ids:
        return VoteMatrix(
            values=np.full((len(participant_ids), len(statement_ids)), np.nan),
            participant_ids=participant_ids,
            statement_ids=statement_ids,
        )

    participant_idx = {pid: i for i, pid in enumerate(participant_ids)}
    statement_idx = {sid: j for j, sid in enumerate(statement_ids)}

    values = np.full((len(participant_ids), len(statement_ids)), np.nan)
    for opinion in votes:
        values[participant_idx[opinion.participant_id], statement_idx[opinion.statement_id]] = (
            opinion.value.matrix_value
        )

    logger.debug(
        "built vote matrix",
        n_participants=len(participant_ids),
        n_statements=len(statement_ids),
        n_votes=len(votes),
    )

    return VoteMatrix(values=values, participant_ids=participant_ids, statement_ids=statement_ids)


def filter_sparse_participants(
    matrix: VoteMatrix,
    min_votes: int = MIN_VOTES_PER_PARTICIPANT,
) -> VoteMatrix:
    """Drop participant rows with fewer than min_votes non-missing cells.

    Args:
        matrix: Vote matrix from build_vote_matrix
        min_votes: Minimum votes a participant needs to be placed

    Returns:
        New VoteMatrix containing only qualifying rows (order preserved)
    """
    keep = matrix.vote_counts() >= min_votes
    dropped = int(np.sum(~keep))

    if dropped:
        logger.debug("dropped sparse participants", dropped=dropped, min_votes=min_votes)

    return VoteMatrix(
        values=matrix.values[keep],
        participant_ids=[pid for pid, k in zip(matrix.participant_ids, keep) if k],
        statement_ids=list(matrix.statement_ids),
    )
