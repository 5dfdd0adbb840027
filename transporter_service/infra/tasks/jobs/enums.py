"""Transporter job enumerations.

Defines the lifecycle state machine and the symbolic priority levels.

State Machine:
    (none) → QUEUED → RUNNING → SUCCESS
                │        │
                │        └→ FAILURE
                └────────────→ FAILURE (abort)

    SUCCESS / FAILURE → QUEUED (manual re-run)

Priority Levels:
    NEXT < HIGH (-1) < NORMAL (0) < LOW (1)
    Lower ranks are worked off first; NEXT jumps ahead of everything queued.
"""

from __future__ import annotations

import enum


class JobState(str, enum.Enum):
    """Lifecycle state of a transporter job.

    A freshly built job has no state at all; ``None`` is a valid pre-state
    distinct from every member below.
    """

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def terminal_states(cls) -> set[JobState]:
        """Return states that represent job completion."""
        return {cls.SUCCESS, cls.FAILURE}

    def is_terminal(self) -> bool:
        return self in self.terminal_states()


class JobPriority(str, enum.Enum):
    """Symbolic job priority as chosen on the submission form."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"
    NEXT = "next"

    @classmethod
    def default(cls) -> JobPriority:
        """Return the priority used for unset or unrecognized values."""
        return cls.NORMAL

    @classmethod
    def coerce(cls, value: object) -> JobPriority:
        """Map any stored value onto a member, falling back to NORMAL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.default()


class JobEvent(str, enum.Enum):
    """Triggers that drive a job through its lifecycle."""

    ENQUEUE = "enqueue"
    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"


# (current state, event) -> next state. Missing pairs are illegal.
TRANSITIONS: dict[tuple[JobState | None, JobEvent], JobState] = {
    (None, JobEvent.ENQUEUE): JobState.QUEUED,
    (None, JobEvent.START): JobState.RUNNING,
    (JobState.QUEUED, JobEvent.ENQUEUE): JobState.QUEUED,
    (JobState.QUEUED, JobEvent.START): JobState.RUNNING,
    (JobState.QUEUED, JobEvent.FAIL): JobState.FAILURE,
    (JobState.RUNNING, JobEvent.START): JobState.RUNNING,
    (JobState.RUNNING, JobEvent.SUCCEED): JobState.SUCCESS,
    (JobState.RUNNING, JobEvent.FAIL): JobState.FAILURE,
    (JobState.SUCCESS, JobEvent.ENQUEUE): JobState.QUEUED,
    (JobState.SUCCESS, JobEvent.SUCCEED): JobState.SUCCESS,
    (JobState.FAILURE, JobEvent.ENQUEUE): JobState.QUEUED,
    (JobState.FAILURE, JobEvent.FAIL): JobState.FAILURE,
}


def next_state(current: JobState | None, event: JobEvent) -> JobState | None:
    """Look up the state ``event`` leads to from ``current``.

    Returns:
        The next state, or None if the transition is not allowed.
    """
    return TRANSITIONS.get((current, event))


def is_valid_transition(current: JobState | None, event: JobEvent) -> bool:
    """Check if ``event`` may be applied to a job in state ``current``."""
    return (current, event) in TRANSITIONS


__all__ = [
    "TRANSITIONS",
    "JobEvent",
    "JobPriority",
    "JobState",
    "is_valid_transition",
    "next_state",
]
