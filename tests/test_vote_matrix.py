"""
Tests for vote matrix construction

Covers value mapping, missing markers, latest-vote-wins supersession,
insertion-order independence and the sparse participant filter.
"""

import random
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from deliberation.matrix import (
    MIN_VOTES_PER_PARTICIPANT,
    build_vote_matrix,
    dedupe_opinions,
    filter_sparse_participants,
)
from deliberation.models import Opinion, VoteValue


class TestBuildVoteMatrix:
    """Matrix layout and cell values"""

    def test_values_map_agree_pass_disagree(self, make_statements, ballots):
        """Agree is -1, pass is 0, disagree is +1, no vote is NaN"""
        statements = make_statements(4)
        opinions = ballots({"p1": "apd-"})

        matrix = build_vote_matrix(statements, opinions)

        assert matrix.participant_ids == ["p1"]
        assert matrix.statement_ids == ["s1", "s2", "s3", "s4"]
        assert matrix.values[0, 0] == -1
        assert matrix.values[0, 1] == 0
        assert matrix.values[0, 2] == 1
        assert np.isnan(matrix.values[0, 3])

    def test_pass_distinct_from_missing(self, make_statements, ballots):
        """A pass is a zero cell, never a missing one"""
        matrix = build_vote_matrix(make_statements(2), ballots({"p1": "p-"}))
        assert matrix.vote_counts().tolist() == [1]

    def test_rows_sorted_by_participant_id(self, make_statements, ballots):
        matrix = build_vote_matrix(make_statements(2), ballots({"zed": "aa", "amy": "dd", "kim": "pa"}))
        assert matrix.participant_ids == ["amy", "kim", "zed"]
        assert matrix.values[0].tolist() == [1, 1]

    def test_opinions_on_unselected_statements_ignored(self, make_statements, vote):
        """Participants who only voted elsewhere get no row"""
        statements = make_statements(2)
        opinions = [vote("p1", "s1", "a"), vote("p2", "s99", "d")]

        matrix = build_vote_matrix(statements, opinions)

        assert matrix.participant_ids == ["p1"]
        assert matrix.shape == (1, 2)

    def test_empty_inputs(self, make_statements):
        matrix = build_vote_matrix(make_statements(3), [])
        assert matrix.shape == (0, 3)
        assert matrix.participant_ids == []

        matrix = build_vote_matrix([], [])
        assert matrix.shape == (0, 0)


class TestSupersession:
    """Only the most recent vote per participant and statement counts"""

    def test_later_vote_wins(self, make_statements, vote):
        statements = make_statements(1)
        opinions = [
            vote("p1", "s1", "a", minutes=0),
            vote("p1", "s1", "d", minutes=5),
        ]

        matrix = build_vote_matrix(statements, opinions)
        assert matrix.values[0, 0] == 1

    def test_later_vote_wins_regardless_of_order(self, make_statements, vote):
        statements = make_statements(1)
        earlier = vote("p1", "s1", "d", minutes=0)
        later = vote("p1", "s1", "a", minutes=5)

        matrix = build_vote_matrix(statements, [later, earlier])
        assert matrix.values[0, 0] == -1

    def test_equal_timestamps_break_on_id(self, vote):
        first = vote("p1", "s1", "a", minutes=3)
        second = vote("p1", "s1", "d", minutes=3)

        forward = dedupe_opinions([first, second])
        backward = dedupe_opinions([second, first])

        assert forward[("p1", "s1")] == backward[("p1", "s1")] == second

    def test_distinct_participants_not_merged(self, vote):
        latest = dedupe_opinions([vote("p1", "s1", "a"), vote("p2", "s1", "d")])
        assert len(latest) == 2

    def test_naive_and_aware_timestamps_compare(self, make_statements):
        """Naive created_at is read as UTC, so mixed inputs still supersede"""
        statements = make_statements(1)
        naive = Opinion(
            id="o1", statement_id="s1", participant_id="p1",
            value=VoteValue.AGREE, created_at=datetime(2025, 1, 1),
        )
        aware = Opinion(
            id="o2", statement_id="s1", participant_id="p1",
            value=VoteValue.DISAGREE, created_at=datetime(2025, 1, 2, tzinfo=timezone.utc),
        )

        assert naive.created_at == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert dedupe_opinions([aware, naive])[("p1", "s1")] == aware
        assert build_vote_matrix(statements, [naive, aware]).values[0, 0] == 1

    def test_offset_timestamps_normalized_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        opinion = Opinion(
            id="o1", statement_id="s1", participant_id="p1",
            value=VoteValue.PASS, created_at=datetime(2025, 1, 1, 12, tzinfo=plus_two),
        )
        assert opinion.created_at == datetime(2025, 1, 1, 10, tzinfo=timezone.utc)
        assert opinion.created_at.tzinfo == timezone.utc


class TestIdempotentConstruction:
    """Same opinion set in any order yields an identical matrix"""

    def test_shuffled_input_same_matrix(self, make_statements, ballots, vote):
        statements = make_statements(5)
        opinions = ballots({
            "p1": "aad-p",
            "p2": "dda-a",
            "p3": "-paad",
            "p4": "ad-da",
        })
        opinions.append(vote("p1", "s1", "d", minutes=30))

        reference = build_vote_matrix(statements, opinions)

        shuffled = list(opinions)
        random.Random(7).shuffle(shuffled)
        again = build_vote_matrix(statements, shuffled)

        assert again.participant_ids == reference.participant_ids
        np.testing.assert_array_equal(again.values, reference.values)

    def test_build_twice_identical(self, make_statements, ballots):
        statements = make_statements(3)
        opinions = ballots({"p1": "adp", "p2": "-da"})

        first = build_vote_matrix(statements, opinions)
        second = build_vote_matrix(statements, opinions)

        np.testing.assert_array_equal(first.values, second.values)


class TestSparseFilter:
    """Participants with too few votes are dropped before PCA"""

    def test_default_threshold_is_two(self):
        assert MIN_VOTES_PER_PARTICIPANT == 2

    def test_drops_rows_below_threshold(self, make_statements, ballots):
        matrix = build_vote_matrix(make_statements(3), ballots({
            "p1": "a--",
            "p2": "ad-",
            "p3": "pdp",
        }))

        filtered = filter_sparse_participants(matrix)

        assert filtered.participant_ids == ["p2", "p3"]
        assert filtered.shape == (2, 3)

    def test_custom_threshold(self, make_statements, ballots):
        matrix = build_vote_matrix(make_statements(3), ballots({"p1": "ad-", "p2": "pdp"}))
        filtered = filter_sparse_participants(matrix, min_votes=3)
        assert filtered.participant_ids == ["p2"]

    def test_all_dropped(self, make_statements, ballots):
        matrix = build_vote_matrix(make_statements(3), ballots({"p1": "a--"}))
        filtered = filter_sparse_participants(matrix)
        assert filtered.shape == (0, 3)


class TestOpinionValidation:
    """Opinion weight can never drop below 1"""

    def test_default_weight_is_one(self, vote):
        assert vote("p1", "s1", "a").weight == 1.0

    def test_weight_below_one_rejected(self, vote):
        with pytest.raises(ValueError):
            vote("p1", "s1", "a", weight=0.5)

    def test_value_accepts_string(self, vote):
        opinion = Opinion(
            id="x",
            statement_id="s1",
            participant_id="p1",
            value="disagree",
            created_at=vote("p1", "s1", "a").created_at,
        )
        assert opinion.value is VoteValue.DISAGREE
        assert opinion.value.matrix_value == 1
