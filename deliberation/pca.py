"""Power-iteration PCA for sparse vote matrices

Extracts the dominant variance directions one at a time via repeated
matrix-vector products and deflation, the iterative approach Polis uses
for survey matrices. No covariance eigendecomposition is computed.

Missing votes (NaN) are imputed as the column mean, which is 0 after
centering. This biases unvoted cells toward neutral.
"""

import numpy as np
from sklearn.utils import check_random_state

from config import get_logger
from deliberation.models import PCAResult

logger = get_logger(__name__).bind(component="pca")

DEFAULT_COMPONENTS = 2
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-6


def center_votes(values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Mean-center each column over its non-missing cells.

    Args:
        values: Vote matrix with NaN for missing votes

    Returns:
        Tuple of (centered matrix with missing cells set to 0, column means).
        A column with no votes has mean 0.
    """
    missing = np.isnan(values)
    counts = np.sum(~missing, axis=0)
    sums = np.where(missing, 0.0, values).sum(axis=0)

    means = np.zeros(values.shape[1])
    voted = counts > 0
    means[voted] = sums[voted] / counts[voted]

    centered = np.where(missing, 0.0, values - means)
    return centered, means


def _random_unit_vector(size: int, rng: np.random.RandomState) -> np.ndarray:
    vector = rng.random_sample(size) - 0.5
    norm = np.linalg.norm(vector)
    if norm == 0:
        vector = np.ones(size)
        norm = np.linalg.norm(vector)
    return vector / norm


def _power_iterate(
    residual: np.ndarray,
    vector: np.ndarray,
    max_iterations: int,
    tolerance: float,
) -> tuple[np.ndarray, int, bool]:
    """Run power iteration on residual^T residual from a unit start vector.

    Returns:
        Tuple of (vector, iterations run, degenerate flag). A degenerate
        direction (norm below tolerance) keeps the current iterate.
    """
    for iteration in range(1, max_iterations + 1):
        temp = residual @ vector
        candidate = residual.T @ temp

        norm = np.linalg.norm(candidate)
        if norm < tolerance:
            return vector, iteration, True

        normalized = candidate / norm
        diff = np.sum(np.abs(vector - normalized))
        vector = normalized

        if diff < tolerance:
            return vector, iteration, False

    return vector, max_iterations, False


def power_iteration_pca(
    values: np.ndarray,
    n_components: int = DEFAULT_COMPONENTS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    random_state=None,
) -> PCAResult:
    """Reduce a vote matrix to its top principal directions.

    Algorithm:
    1. Center columns over non-missing cells, missing cells become 0
    2. For each component: power-iterate from a random unit vector,
       then deflate the residual so later components are orthogonal
    3. Project the centered rows onto the components

    When a direction has no remaining variance the current iterate is
    accepted as-is. Later components on an exhausted residual are then
    arbitrary; callers tolerate this for very small inputs.

    Args:
        values: Vote matrix (n_participants, n_statements), NaN = missing
        n_components: Number of components K to extract
        max_iterations: Power iteration cap per component
        tolerance: Convergence (L1 change) and zero-norm threshold
        random_state: None, int seed or numpy RandomState for start vectors

    Returns:
        PCAResult with components (K, m), projections (n, K), means (m).
        Empty arrays when the matrix has no rows or no columns.
    """
    n, m = values.shape if values.ndim == 2 else (0, 0)

    if n < 1 or m < 1:
        return PCAResult(
            components=np.zeros((0, m)),
            projections=np.zeros((n, 0)),
            means=np.zeros(m),
        )

    rng = check_random_state(random_state)
    centered, means = center_votes(values)
    residual = centered.copy()

    components = []
    for component in range(n_components):
        start = _random_unit_vector(m, rng)
        vector, iterations, degenerate = _power_iterate(
            residual, start, max_iterations, tolerance
        )

        if degenerate:
            logger.debug("degenerate variance direction", component=component, iterations=iterations)

        components.append(vector)

        # Deflate: remove this direction from every residual row
        residual = residual - np.outer(residual @ vector, vector)

    components = np.vstack(components)
    projections = centered @ components.T

    logger.debug(
        "extracted principal components",
        n_components=n_components,
        n_participants=n,
        n_statements=m,
    )

    return PCAResult(components=components, projections=projections, means=means)
