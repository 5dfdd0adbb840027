"""Mapping of symbolic job priorities onto work queue ranks.

Lower ranks run sooner. ``next`` is resolved at enqueue time against the
queue's current minimum so the job jumps ahead of everything already waiting;
it is never re-evaluated afterwards.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from transporter_service.infra.tasks.jobs.enums import JobPriority

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

PRIORITY_RANKS: dict[JobPriority, int] = {
    JobPriority.HIGH: -1,
    JobPriority.NORMAL: 0,
    JobPriority.LOW: 1,
}

DEFAULT_RANK = PRIORITY_RANKS[JobPriority.NORMAL]


async def rank(
    priority: JobPriority | str | None,
    current_minimum_rank: Callable[[], Awaitable[int]],
) -> int:
    """Return the queue rank for ``priority``.

    Args:
        priority: Symbolic priority; unknown values rank like ``normal``.
        current_minimum_rank: Returns the lowest rank currently queued. Only
            awaited for ``next``.

    Returns:
        Integer rank for the work queue.
    """
    level = JobPriority.coerce(priority)
    if level is JobPriority.NEXT:
        return min(await current_minimum_rank(), 0) - 1
    return PRIORITY_RANKS.get(level, DEFAULT_RANK)


__all__ = ["DEFAULT_RANK", "PRIORITY_RANKS", "rank"]
