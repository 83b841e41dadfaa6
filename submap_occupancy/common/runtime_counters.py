"""
Lightweight per-cycle counters for the occupancy grid assembler.

Reset once per render cycle and consumed by the node for its debug summary.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading


@dataclass
class CycleCounters:
    fetch_requests: int = 0
    fetch_failures: int = 0
    fetch_cache_hits: int = 0
    cycles_published: int = 0
    cycles_skipped: int = 0


_lock = threading.Lock()
_counters = CycleCounters()


def reset_cycle_counters() -> None:
    global _counters
    with _lock:
        _counters = CycleCounters()


def record_fetch_request(count: int = 1) -> None:
    with _lock:
        _counters.fetch_requests += max(0, int(count))


def record_fetch_failure(count: int = 1) -> None:
    with _lock:
        _counters.fetch_failures += max(0, int(count))


def record_cache_hit(count: int = 1) -> None:
    with _lock:
        _counters.fetch_cache_hits += max(0, int(count))


def record_cycle(published: bool) -> None:
    with _lock:
        if published:
            _counters.cycles_published += 1
        else:
            _counters.cycles_skipped += 1


def snapshot_cycle_counters() -> CycleCounters:
    """Return a snapshot of the current counters (no reset)."""
    with _lock:
        return CycleCounters(**vars(_counters))


def consume_cycle_counters() -> CycleCounters:
    """Return counters and reset."""
    global _counters
    with _lock:
        snapshot = CycleCounters(**vars(_counters))
        _counters = CycleCounters()
    return snapshot
