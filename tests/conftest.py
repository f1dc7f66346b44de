"""Shared factories for deliberation tests"""

from datetime import datetime, timedelta, timezone

import pytest

from deliberation.models import Opinion, Statement, VoteValue

BASE_TIME = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

SYMBOLS = {"a": VoteValue.AGREE, "d": VoteValue.DISAGREE, "p": VoteValue.PASS}


@pytest.fixture
def make_statements():
    """make_statements(n) -> [s1 .. sn]"""

    def _make(n):
        return [
            Statement(
                id=f"s{i}",
                author_id="author",
                text=f"Statement number {i}",
                created_at=BASE_TIME + timedelta(minutes=i),
            )
            for i in range(1, n + 1)
        ]

    return _make


@pytest.fixture
def vote():
    """vote(participant, statement, value, minutes=0, weight=1.0) -> Opinion"""
    counter = {"n": 0}

    def _vote(participant_id, statement_id, value, minutes=0, weight=1.0):
        counter["n"] += 1
        if isinstance(value, str) and value in SYMBOLS:
            value = SYMBOLS[value]
        return Opinion(
            id=f"o{counter['n']:04d}",
            statement_id=statement_id,
            participant_id=participant_id,
            value=value,
            created_at=BASE_TIME + timedelta(hours=1, minutes=minutes),
            weight=weight,
        )

    return _vote


@pytest.fixture
def ballots(vote):
    """ballots({"p1": "aadd-"}) -> opinions on s1..sN, '-' means no vote"""

    def _ballots(rows):
        opinions = []
        for participant_id, pattern in rows.items():
            for j, symbol in enumerate(pattern, start=1):
                if symbol == "-":
                    continue
                opinions.append(vote(participant_id, f"s{j}", symbol))
        return opinions

    return _ballots
