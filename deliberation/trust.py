"""Web-of-trust scores and read-through caching

Score = (people the viewer follows who follow the target)
      - (people the viewer follows who mute the target)

Follow and mute lists come from injected lookups; fetching them from the
network is the caller's concern. Lookups are usually wrapped in a
ReadThroughCache so each list is fetched once per TTL window.
"""

import time
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Optional, Protocol, Tuple, TypeVar

from config import config, get_logger

logger = get_logger(__name__).bind(component="trust")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

ListLookup = Callable[[str], Iterable[str]]


class TrustScoreSource(Protocol):
    """Anything that answers get(key) with a value or None when absent"""

    def get(self, key): ...


class ReadThroughCache(Generic[K, V]):
    """TTL cache that loads missing keys through a loader callable

    The loader returning None means "absent"; absences are cached too so
    a missing participant is not re-fetched on every lookup.
    """

    def __init__(
        self,
        loader: Callable[[K], Optional[V]],
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.TRUST_CACHE_TTL
        self.clock = clock
        self._entries: Dict[K, Tuple[float, Optional[V]]] = {}

    def get(self, key: K) -> Optional[V]:
        now = self.clock()
        cached = self._entries.get(key)
        if cached is not None and now - cached[0] < self.ttl_seconds:
            return cached[1]

        value = self.loader(key)
        self._evict_expired(now)
        self._entries[key] = (now, value)
        return value

    def _evict_expired(self, now: float) -> None:
        # Runs on every load so keys never looked up again do not pile up
        expired = [k for k, (loaded_at, _) in self._entries.items() if now - loaded_at >= self.ttl_seconds]
        for k in expired:
            del self._entries[k]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def trust_score(
    viewer: str,
    target: str,
    follows: ListLookup,
    mutes: ListLookup,
) -> Dict[str, float]:
    """Trust score of target as seen by viewer.

    Args:
        viewer: Participant whose network is used
        target: Participant being scored
        follows: Lookup returning the ids a participant follows
        mutes: Lookup returning the ids a participant mutes

    Returns:
        {"score", "follows_who_follow", "follows_who_mute"}. The viewer
        scoring themselves gets an infinite score.
    """
    return trust_scores_batch(viewer, [target], follows, mutes)[target]


def trust_scores_batch(
    viewer: str,
    targets: Iterable[str],
    follows: ListLookup,
    mutes: ListLookup,
) -> Dict[str, Dict[str, float]]:
    """Trust scores for many targets, loading each follow's lists once"""
    my_follows: List[str] = list(follows(viewer) or [])

    follow_sets = {pk: set(follows(pk) or []) for pk in my_follows}
    mute_sets = {pk: set(mutes(pk) or []) for pk in my_follows}

    results = {}
    for target in targets:
        if target == viewer:
            results[target] = {"score": float("inf"), "follows_who_follow": 0, "follows_who_mute": 0}
            continue

        follows_who_follow = sum(1 for pk in my_follows if target in follow_sets[pk])
        follows_who_mute = sum(1 for pk in my_follows if target in mute_sets[pk])

        results[target] = {
            "score": follows_who_follow - follows_who_mute,
            "follows_who_follow": follows_who_follow,
            "follows_who_mute": follows_who_mute,
        }

    logger.debug("computed trust scores", viewer=viewer, n_targets=len(results), n_follows=len(my_follows))

    return results


def passes_trust_threshold(score: Optional[float], min_trust: float = 0) -> bool:
    """Whether a score clears min_trust. Absent scores never pass."""
    if score is None:
        return False
    return score >= min_trust
