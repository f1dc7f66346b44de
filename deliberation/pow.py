"""NIP-13 proof of work for weighted opinions

Difficulty is the number of leading zero bits of an event id (the
sha256 of its canonical serialization). Mining appends a
["nonce", <counter>, <target>] tag and searches counters until the id
reaches the target.

Mining is a coroutine: it yields to the event loop at every progress
tick so the caller can render feedback and request cancellation through
an asyncio.Event. Cancellation raises MiningAborted; running out of
attempts raises MiningExhausted.
"""

import asyncio
import copy
import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config import config, get_logger
from deliberation.weights import vote_weight_from_pow
from exceptions import MiningAborted, MiningExhausted, ValidationError

logger = get_logger(__name__).bind(component="pow")

NONCE_TAG = "nonce"
TIMESTAMP_REFRESH_INTERVAL = 100_000  # Attempts between created_at refreshes

ProgressCallback = Callable[[int, float], None]


def count_leading_zero_bits(hex_digest: str) -> int:
    """Count leading zero bits of a hex string.

    Args:
        hex_digest: Hexadecimal digest (event id)

    Returns:
        Number of leading zero bits
    """
    count = 0
    for char in hex_digest:
        try:
            nibble = int(char, 16)
        except ValueError:
            raise ValidationError("Invalid hex digest", field="id", value=hex_digest)

        if nibble == 0:
            count += 4
            continue

        count += 4 - nibble.bit_length()
        break

    return count


def serialize_event(event: Dict[str, Any]) -> str:
    """Canonical NIP-01 serialization used for the event id"""
    try:
        payload = [
            0,
            event["pubkey"],
            event["created_at"],
            event["kind"],
            event["tags"],
            event["content"],
        ]
    except KeyError as e:
        raise ValidationError("Event payload missing required field", field=str(e.args[0]))

    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def event_hash(event: Dict[str, Any]) -> str:
    """Event id: hex sha256 of the canonical serialization"""
    return hashlib.sha256(serialize_event(event).encode("utf-8")).hexdigest()


def event_difficulty(event: Dict[str, Any]) -> int:
    """Leading zero bits of the event's id (0 when it has none)"""
    event_id = event.get("id")
    if not event_id:
        return 0
    return count_leading_zero_bits(event_id)


def target_difficulty(event: Dict[str, Any]) -> Optional[int]:
    """Difficulty committed in the nonce tag, or None if not set"""
    for tag in event.get("tags", []):
        if tag and tag[0] == NONCE_TAG:
            if len(tag) < 3:
                return None
            try:
                return int(tag[2])
            except (TypeError, ValueError):
                return None
    return None


def verify_pow(event: Dict[str, Any]) -> bool:
    """Check that an event meets the difficulty it commits to.

    Events without a nonce tag have no requirement and always pass.
    """
    target = target_difficulty(event)
    if target is None:
        return True
    return event_difficulty(event) >= target


@dataclass
class MinedVote:
    """Result of mining an opinion payload"""

    event: Dict[str, Any]
    difficulty: int
    votes: int


async def mine_event(
    event: Dict[str, Any],
    target_bits: int,
    max_iterations: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    progress_interval: Optional[int] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """Mine an unsigned event until its id has target_bits leading zero bits.

    Args:
        event: Unsigned event (pubkey, created_at, kind, tags, content)
        target_bits: Target number of leading zero bits
        max_iterations: Attempt budget (default from config)
        on_progress: Called as on_progress(iteration, hash_rate) every
            progress_interval attempts
        cancel_event: Set it to abort mining
        progress_interval: Attempts between progress reports and yields
            (default from config)
        clock: Monotonic clock for hash-rate measurement

    Returns:
        New event with the nonce tag and a qualifying id. With a target of
        0 the event is returned unmodified.

    Raises:
        ValidationError: negative target_bits or max_iterations, or a
            progress_interval below 1
        MiningAborted: cancel_event was set
        MiningExhausted: max_iterations attempts without reaching the target
    """
    if target_bits < 0:
        raise ValidationError("Target difficulty must be non-negative", field="target_bits", value=target_bits)
    if max_iterations is not None and max_iterations < 0:
        raise ValidationError("Attempt budget must be non-negative", field="max_iterations", value=max_iterations)
    if progress_interval is not None and progress_interval < 1:
        raise ValidationError("Progress interval must be positive", field="progress_interval", value=progress_interval)

    if target_bits == 0:
        return event

    if max_iterations is None:
        max_iterations = config.MINING_MAX_ITERATIONS
    if progress_interval is None:
        progress_interval = config.MINING_PROGRESS_INTERVAL

    candidate = copy.deepcopy(event)
    candidate["tags"] = [tag for tag in candidate.get("tags", []) if not tag or tag[0] != NONCE_TAG]
    nonce_tag = [NONCE_TAG, "0", str(target_bits)]
    candidate["tags"].append(nonce_tag)

    last_progress = clock()

    for nonce in range(max_iterations):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("mining aborted", target_bits=target_bits, iterations=nonce)
            raise MiningAborted(
                "Mining aborted", target_difficulty=target_bits, iterations=nonce
            )

        nonce_tag[1] = str(nonce)

        if nonce % TIMESTAMP_REFRESH_INTERVAL == 0:
            candidate["created_at"] = int(time.time())

        event_id = event_hash(candidate)

        if count_leading_zero_bits(event_id) >= target_bits:
            logger.debug("mined event", target_bits=target_bits, iterations=nonce + 1)
            candidate["id"] = event_id
            return candidate

        if nonce > 0 and nonce % progress_interval == 0:
            now = clock()
            elapsed = now - last_progress
            rate = progress_interval / elapsed if elapsed > 0 else float("inf")
            last_progress = now

            if on_progress is not None:
                on_progress(nonce, rate)

            # Yield so the caller can cancel or repaint
            await asyncio.sleep(0)

    logger.info("mining exhausted", target_bits=target_bits, iterations=max_iterations)
    raise MiningExhausted(
        f"Failed to mine event after {max_iterations} iterations",
        target_difficulty=target_bits,
        iterations=max_iterations,
    )


async def mine_weight(
    payload: Dict[str, Any],
    target_difficulty_bits: int,
    max_iterations: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    progress_interval: Optional[int] = None,
) -> MinedVote:
    """Mine an opinion payload and report the vote weight it earned.

    Raises:
        MiningAborted, MiningExhausted: see mine_event
    """
    mined = await mine_event(
        payload,
        target_difficulty_bits,
        max_iterations=max_iterations,
        on_progress=on_progress,
        cancel_event=cancel_event,
        progress_interval=progress_interval,
    )

    difficulty = event_difficulty(mined) if target_difficulty_bits > 0 else 0
    return MinedVote(event=mined, difficulty=difficulty, votes=vote_weight_from_pow(difficulty))
