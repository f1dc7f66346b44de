"""Consensus detection

Surfaces statements where agreement is broad rather than polarizing,
measured over every participant regardless of cluster.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from config import get_logger
from deliberation.matrix import latest_opinions
from deliberation.models import ConsensusEntry, Opinion, Statement, VoteValue

logger = get_logger(__name__).bind(component="consensus")

CONSENSUS_MIN_AGREE_RATE = 0.7  # Fraction of agree votes a statement needs
CONSENSUS_MIN_VOTES = 3         # Votes needed before a rate is meaningful
CONSENSUS_LIMIT = 5             # Entries reported


def tally_statement_votes(
    opinions: Iterable[Opinion],
    weighted: bool = False,
) -> Dict[str, Dict[VoteValue, float]]:
    """Count agree/disagree/pass per statement.

    Args:
        opinions: Already-deduplicated opinions
        weighted: Sum opinion weights instead of counting votes

    Returns:
        {statement_id: {VoteValue: tally}}
    """
    tallies: Dict[str, Dict[VoteValue, float]] = defaultdict(
        lambda: {VoteValue.AGREE: 0, VoteValue.DISAGREE: 0, VoteValue.PASS: 0}
    )
    for opinion in opinions:
        tallies[opinion.statement_id][opinion.value] += opinion.weight if weighted else 1
    return tallies


def find_consensus(
    statements: Sequence[Statement],
    opinions: Iterable[Opinion],
    min_agree_rate: float = CONSENSUS_MIN_AGREE_RATE,
    min_votes: int = CONSENSUS_MIN_VOTES,
    limit: int = CONSENSUS_LIMIT,
    weighted: bool = False,
) -> List[ConsensusEntry]:
    """Find statements with broad cross-participant agreement.

    agree_rate = agrees / total votes (passes count toward the total).
    A statement qualifies when agree_rate >= min_agree_rate and it has at
    least min_votes votes. Statements without votes are skipped.

    Args:
        statements: Candidate statements (order breaks rate ties)
        opinions: Full opinion set; superseded votes are ignored
        min_agree_rate: Agreement threshold in [0, 1]
        min_votes: Minimum number of votes on the statement
        limit: Maximum entries returned
        weighted: Weight agree_rate by opinion weight. sample_size and the
            min_votes gate always count votes, not weight.

    Returns:
        Up to limit ConsensusEntry, highest agree_rate first
    """
    votes = latest_opinions(statements, opinions)
    counts = tally_statement_votes(votes)
    rates = tally_statement_votes(votes, weighted=True) if weighted else counts

    entries = []
    for statement in statements:
        count = counts.get(statement.id)
        if count is None:
            continue

        sample_size = int(sum(count.values()))
        if sample_size < min_votes or sample_size == 0:
            continue

        tally = rates[statement.id]
        agree_rate = tally[VoteValue.AGREE] / sum(tally.values())
        if agree_rate >= min_agree_rate:
            entries.append(
                ConsensusEntry(
                    statement_id=statement.id,
                    agree_rate=agree_rate,
                    sample_size=sample_size,
                )
            )

    entries.sort(key=lambda e: e.agree_rate, reverse=True)

    logger.debug("found consensus statements", qualifying=len(entries), limit=limit)

    return entries[:limit]
