"""Circuit breaker for edges that repeatedly fail at runtime.

Every reported failure adds a permanent penalty to the connection in both
directions. Once an edge reaches ``max_failures`` it is blocked and gets a
larger one-time penalty; the block lapses ``block_duration`` ticks after
the last failure, while the penalties stay.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .graph import AreaGraph
from .options import NavOptions

LOGGER = logging.getLogger(__name__)

EdgeKey = Tuple[int, int]
Clock = Callable[[], int]


@dataclass(slots=True)
class FailureRecord:
    count: int
    last_failure: int
    blocked: bool = False

    def to_json_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CircuitBreaker:
    """Per directed edge failure table."""

    def __init__(self, options: Optional[NavOptions] = None, clock: Optional[Clock] = None) -> None:
        self.options = options or NavOptions()
        self._clock: Clock = clock or (lambda: 0)
        self._records: "OrderedDict[EdgeKey, FailureRecord]" = OrderedDict()
        self._last_cleanup = self._clock()

    def __len__(self) -> int:
        return len(self._records)

    def record(self, from_id: int, to_id: int) -> Optional[FailureRecord]:
        return self._records.get((from_id, to_id))

    def records(self) -> List[Tuple[EdgeKey, FailureRecord]]:
        return list(self._records.items())

    def add_failure(self, graph: Optional[AreaGraph], from_id: int, to_id: int) -> bool:
        """Record a traversal failure; returns ``True`` when the edge is now blocked."""

        now = self._clock()
        key = (from_id, to_id)
        rec = self._records.get(key)
        if rec is None:
            rec = FailureRecord(count=0, last_failure=now)
            self._records[key] = rec
        self._records.move_to_end(key)
        rec.count += 1
        rec.last_failure = now

        if graph is not None:
            graph.add_failure_penalty(from_id, to_id, self.options.failure_penalty)

        if not rec.blocked and rec.count >= self.options.max_failures:
            rec.blocked = True
            if graph is not None:
                graph.add_failure_penalty(from_id, to_id, self.options.block_penalty)
            LOGGER.info("Edge %d -> %d blocked after %d failures", from_id, to_id, rec.count)
        else:
            LOGGER.debug("Edge %d -> %d failure %d/%d", from_id, to_id, rec.count, self.options.max_failures)

        self._enforce_cap()
        return rec.blocked

    def is_blocked(self, from_id: int, to_id: int) -> bool:
        """Return whether the edge is blocked, releasing expired blocks."""

        rec = self._records.get((from_id, to_id))
        if rec is None or not rec.blocked:
            return False
        if self._clock() - rec.last_failure > self.options.block_duration:
            rec.blocked = False
            rec.count = 0 if self.options.unblock_policy == "reset" else rec.count // 2
            LOGGER.info("Edge %d -> %d unblocked after timeout", from_id, to_id)
            return False
        return True

    def block(self, graph: Optional[AreaGraph], from_id: int, to_id: int) -> None:
        """Manually block an edge, applying the block penalty once."""

        now = self._clock()
        key = (from_id, to_id)
        rec = self._records.get(key)
        if rec is None:
            rec = FailureRecord(count=0, last_failure=now)
            self._records[key] = rec
        self._records.move_to_end(key)
        rec.last_failure = now
        rec.count = max(rec.count, self.options.max_failures)
        if not rec.blocked:
            rec.blocked = True
            if graph is not None:
                graph.add_failure_penalty(from_id, to_id, self.options.block_penalty)
        self._enforce_cap()

    def unblock(self, from_id: int, to_id: int) -> bool:
        """Release an edge and reset its count; returns ``False`` if it was not tracked."""

        rec = self._records.get((from_id, to_id))
        if rec is None:
            return False
        rec.blocked = False
        rec.count = 0
        return True

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count

    def cleanup(self, force: bool = False) -> int:
        """Prune stale unblocked records and enforce the entry cap.

        Runs at most once per ``cleanup_interval`` ticks unless ``force``.
        Returns the number of records removed.
        """

        now = self._clock()
        if not force and now - self._last_cleanup < self.options.cleanup_interval:
            return 0
        self._last_cleanup = now

        # Releases expired blocks first so they can age out below.
        for from_id, to_id in list(self._records):
            self.is_blocked(from_id, to_id)

        max_age = self.options.block_duration * self.options.stale_factor
        stale = [k for k, rec in self._records.items() if not rec.blocked and now - rec.last_failure > max_age]
        for key in stale:
            del self._records[key]
        removed = len(stale) + self._enforce_cap()
        if removed:
            LOGGER.debug("Circuit breaker cleanup removed %d records", removed)
        return removed

    def _enforce_cap(self) -> int:
        removed = 0
        while len(self._records) > self.options.max_entries:
            self._records.popitem(last=False)
            removed += 1
        return removed

    def status(self) -> Dict[str, Any]:
        blocked = [k for k in list(self._records) if self.is_blocked(*k)]
        return {
            "tracked": len(self._records),
            "blocked": len(blocked),
            "blocked_edges": [list(k) for k in blocked],
            "max_failures": self.options.max_failures,
            "block_duration": self.options.block_duration,
        }
