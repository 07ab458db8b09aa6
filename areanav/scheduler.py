"""Tick-based debouncing scheduler for recurring work."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]


@dataclass(slots=True)
class _Work:
    func: Callable[..., Any]
    args: Tuple[Any, ...]
    delay: int
    last_run: Optional[int] = None
    result: Any = None
    pending: bool = False


class WorkScheduler:
    """Runs keyed work no more often than each key's delay.

    ``add_work`` runs the function immediately when the per-tick limit
    allows and the delay has passed; otherwise it queues the call and
    returns the previous result. ``process`` runs queued calls once their
    delay has passed, longest delay first.
    """

    def __init__(self, clock: Clock, work_limit: int = 1) -> None:
        self._clock = clock
        self.work_limit = work_limit
        self._works: Dict[str, _Work] = {}
        self._tick: Optional[int] = None
        self._ran_this_tick = 0

    def _budget_left(self) -> bool:
        now = self._clock()
        if now != self._tick:
            self._tick = now
            self._ran_this_tick = 0
        return self._ran_this_tick < self.work_limit

    def _ready(self, work: _Work) -> bool:
        return work.last_run is None or self._clock() - work.last_run >= work.delay

    def _run(self, work_id: str, work: _Work) -> Any:
        work.last_run = self._clock()
        work.pending = False
        self._ran_this_tick += 1
        work.result = work.func(*work.args)
        LOGGER.debug("Work %r ran at tick %d", work_id, work.last_run)
        return work.result

    def add_work(self, func: Callable[..., Any], args: Tuple[Any, ...] = (), delay: int = 1, work_id: Optional[str] = None) -> Any:
        key = work_id or getattr(func, "__name__", repr(func))
        work = self._works.get(key)
        if work is None:
            work = _Work(func=func, args=tuple(args), delay=delay)
            self._works[key] = work
        else:
            work.func = func
            work.args = tuple(args)
            work.delay = delay
        if self._ready(work) and self._budget_left():
            return self._run(key, work)
        work.pending = True
        return work.result

    def process(self) -> int:
        """Run ready pending work within the per-tick limit; returns items run."""

        ran = 0
        pending: List[Tuple[str, _Work]] = [(k, w) for k, w in self._works.items() if w.pending]
        pending.sort(key=lambda kw: kw[1].delay, reverse=True)
        for key, work in pending:
            if not self._budget_left():
                break
            if self._ready(work):
                self._run(key, work)
                ran += 1
        return ran

    def result(self, work_id: str) -> Any:
        work = self._works.get(work_id)
        return work.result if work is not None else None

    def clear(self) -> None:
        self._works.clear()
