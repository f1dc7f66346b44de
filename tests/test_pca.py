"""
Tests for power-iteration PCA

Checks centering with missing cells, zero-mean projections, orthogonal
components, seeded determinism and the empty/degenerate edge cases.
"""

import numpy as np
import pytest

from deliberation.pca import center_votes, power_iteration_pca


def sparse_vote_matrix(n=12, m=6, seed=3, missing=0.25):
    """Random -1/0/+1 matrix with a share of NaN cells"""
    rng = np.random.RandomState(seed)
    values = rng.choice([-1.0, 0.0, 1.0], size=(n, m))
    values[rng.random_sample((n, m)) < missing] = np.nan
    return values


class TestCentering:
    """Column means ignore missing cells; missing cells become 0"""

    def test_means_ignore_missing(self):
        values = np.array([
            [-1.0, np.nan],
            [1.0, 1.0],
            [1.0, np.nan],
        ])

        centered, means = center_votes(values)

        np.testing.assert_allclose(means, [1 / 3, 1.0])
        np.testing.assert_allclose(centered[:, 0], [-4 / 3, 2 / 3, 2 / 3])
        np.testing.assert_allclose(centered[:, 1], [0.0, 0.0, 0.0])

    def test_column_without_votes_has_zero_mean(self):
        values = np.array([[1.0, np.nan], [-1.0, np.nan]])
        centered, means = center_votes(values)

        assert means[1] == 0.0
        assert not np.any(np.isnan(centered))


class TestPowerIterationPCA:
    """Component and projection properties"""

    def test_shapes(self):
        result = power_iteration_pca(sparse_vote_matrix(), n_components=2, random_state=0)

        assert result.components.shape == (2, 6)
        assert result.projections.shape == (12, 2)
        assert result.means.shape == (6,)

    def test_projections_are_centered(self):
        """Mean of each projected coordinate is ~0"""
        result = power_iteration_pca(sparse_vote_matrix(), n_components=2, random_state=1)
        np.testing.assert_allclose(result.projections.mean(axis=0), [0.0, 0.0], atol=1e-9)

    def test_components_orthogonal(self):
        """Deflation makes later components orthogonal to earlier ones"""
        result = power_iteration_pca(sparse_vote_matrix(seed=11), n_components=3, random_state=2)

        for a in range(3):
            for b in range(a + 1, 3):
                assert abs(np.dot(result.components[a], result.components[b])) < 1e-6

    def test_components_unit_length(self):
        result = power_iteration_pca(sparse_vote_matrix(), n_components=2, random_state=4)
        np.testing.assert_allclose(np.linalg.norm(result.components, axis=1), [1.0, 1.0], atol=1e-9)

    def test_rank_one_data_recovers_direction(self):
        """Two mirrored voting blocs: first component is the bloc pattern"""
        pattern = np.array([-1.0, -1.0, -1.0, 1.0, 1.0])
        values = np.vstack([pattern, pattern, pattern, -pattern, -pattern, -pattern])

        result = power_iteration_pca(values, n_components=2, random_state=5)

        alignment = abs(np.dot(result.components[0], pattern / np.linalg.norm(pattern)))
        assert alignment == pytest.approx(1.0, abs=1e-6)
        np.testing.assert_allclose(np.abs(result.projections[:, 0]), np.sqrt(5), atol=1e-6)

    def test_seeded_runs_identical(self):
        values = sparse_vote_matrix()

        first = power_iteration_pca(values, random_state=42)
        second = power_iteration_pca(values, random_state=42)

        np.testing.assert_array_equal(first.components, second.components)
        np.testing.assert_array_equal(first.projections, second.projections)

    def test_accepts_random_state_instance(self):
        rng = np.random.RandomState(9)
        result = power_iteration_pca(sparse_vote_matrix(), random_state=rng)
        assert result.components.shape == (2, 6)


class TestEdgeCases:
    """Empty and zero-variance inputs never raise"""

    def test_no_rows(self):
        result = power_iteration_pca(np.zeros((0, 4)))
        assert result.components.shape == (0, 4)
        assert result.projections.shape == (0, 0)

    def test_no_columns(self):
        result = power_iteration_pca(np.zeros((3, 0)))
        assert len(result.components) == 0
        assert result.projections.shape == (3, 0)

    def test_identical_voters(self):
        """No variance: components are accepted as-is, projections are zero"""
        values = np.tile([1.0, -1.0, 0.0], (4, 1))

        result = power_iteration_pca(values, n_components=2, random_state=0)

        assert result.components.shape == (2, 3)
        np.testing.assert_allclose(result.projections, 0.0)

    def test_all_missing(self):
        values = np.full((3, 3), np.nan)
        result = power_iteration_pca(values, random_state=0)
        np.testing.assert_allclose(result.projections, 0.0)
