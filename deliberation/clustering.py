"""Deliberation clustering pipeline

Clusters participants by their voting patterns on statements.
Uses power-iteration PCA for dimensionality reduction and k-means for
clustering, then summarises consensus and per-cluster leanings.

Algorithm:
1. Build vote matrix (participants x statements), latest vote wins
2. Drop participants with too few votes
3. PCA to K dimensions (missing votes imputed as column mean)
4. K-means clustering on the projections
5. Consensus statements across all participants
6. Leaning profile per cluster

The pipeline is a pure function of its inputs: no I/O, no caching.
"""

from typing import Iterable, Optional, Sequence

import numpy as np
from sklearn.utils import check_random_state

from config import get_logger
from deliberation.consensus import find_consensus
from deliberation.kmeans import cluster_silhouette, kmeans, suggest_cluster_count
from deliberation.matrix import build_vote_matrix, filter_sparse_participants
from deliberation.models import AnalysisOptions, AnalysisResult, Opinion, Statement
from deliberation.pca import power_iteration_pca
from deliberation.profiles import profile_clusters

logger = get_logger(__name__).bind(component="deliberation_clustering")

MIN_STATEMENTS = 2
MIN_PARTICIPANTS = 3


def analyze_opinions(
    statements: Sequence[Statement],
    opinions: Iterable[Opinion],
    options: Optional[AnalysisOptions] = None,
    random_state=None,
    **overrides,
) -> AnalysisResult:
    """Compute opinion clusters, consensus and cluster profiles.

    Args:
        statements: Statement-ordered list; defines matrix columns
        opinions: Opinion snapshot (superseded votes are ignored)
        options: Tunables; keyword overrides are applied on top
        random_state: None, int seed or numpy RandomState shared by PCA
            and k-means initialization

    Returns:
        AnalysisResult. With fewer than 2 statements or fewer than 3
        qualifying participants, insufficient_data is True and the
        clustering fields are empty; consensus is still reported.

    Raises:
        pydantic.ValidationError: invalid option values (e.g. cluster_count < 1)
    """
    if options is None:
        options = AnalysisOptions(**overrides)
    elif overrides:
        options = AnalysisOptions(**{**options.model_dump(), **overrides})

    opinions = list(opinions)
    consensus = find_consensus(statements, opinions)

    # 1-2. Vote matrix, sparse participants dropped
    matrix = filter_sparse_participants(
        build_vote_matrix(statements, opinions),
        min_votes=options.min_votes_per_participant,
    )
    n_participants, n_statements = matrix.shape

    # Edge case: insufficient data
    if n_statements < MIN_STATEMENTS:
        logger.debug("insufficient statements for clustering", n=n_statements)
        return AnalysisResult(consensus=consensus, insufficient_data=True)

    if n_participants < MIN_PARTICIPANTS:
        logger.debug("insufficient participants for clustering", n=n_participants)
        return AnalysisResult(consensus=consensus, insufficient_data=True)

    rng = check_random_state(random_state)

    # 3. PCA
    pca = power_iteration_pca(
        matrix.values,
        n_components=options.components,
        max_iterations=options.max_pca_iterations,
        tolerance=options.pca_tolerance,
        random_state=rng,
    )

    # 4. K-means
    k = options.cluster_count
    if k is None:
        k = suggest_cluster_count(n_participants)

    clustering = kmeans(
        pca.projections,
        k=k,
        max_iterations=options.max_kmeans_iterations,
        random_state=rng,
    )
    labels = clustering.labels

    # 5-6. Consensus already computed; profiles per cluster
    profiles = profile_clusters(
        statements,
        opinions,
        matrix.participant_ids,
        labels,
        n_clusters=len(clustering.centroids),
    )

    silhouette = cluster_silhouette(pca.projections, labels)

    logger.info(
        "computed deliberation clusters",
        n_participants=n_participants,
        n_statements=n_statements,
        k=len(clustering.centroids),
        kmeans_iterations=clustering.iterations,
        n_consensus=len(consensus),
    )

    return AnalysisResult(
        components=pca.components.tolist(),
        projections=pca.projections.tolist(),
        participant_ids=list(matrix.participant_ids),
        clusters=[int(label) for label in labels],
        centroids=np.asarray(clustering.centroids).tolist(),
        consensus=consensus,
        cluster_profiles=profiles,
        insufficient_data=False,
        silhouette=silhouette,
    )
