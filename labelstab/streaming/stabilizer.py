from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from labelstab.streaming.protocol import Observation


class ResetPolicy(str, Enum):
    """Where the time-out clear happens relative to appending the new sample.

    CLEAR_AFTER_APPEND is the long-standing behavior: the sample that arrives
    after the gap is dropped together with the stale window.
    CLEAR_BEFORE_APPEND keeps that sample as the first entry of the new window.
    """

    CLEAR_AFTER_APPEND = "clear_after_append"
    CLEAR_BEFORE_APPEND = "clear_before_append"


@dataclass
class StabilizerConfig:
    queue_size: int = 1
    queue_time_out_s: float | None = None
    reset_policy: ResetPolicy = ResetPolicy.CLEAR_AFTER_APPEND
    # True drops the oldest entry as soon as the window fills, so every vote
    # covers queue_size - 1 entries.
    drop_oldest_before_vote: bool = False


def majority_vote(window: Iterable[Observation]) -> Observation:
    """Most frequent label in `window`, scored with that label's mean score.

    The leader only changes when another label's running count becomes
    strictly greater, so on a tie the label that reached the count first wins.
    """

    counts: dict[int, int] = {}
    sum_scores: dict[int, float] = {}
    best_label: int | None = None
    best_count = 0

    for obs in window:
        counts[obs.label] = counts.get(obs.label, 0) + 1
        sum_scores[obs.label] = sum_scores.get(obs.label, 0.0) + obs.score
        if counts[obs.label] > best_count:
            best_label = obs.label
            best_count = counts[obs.label]

    if best_label is None:
        raise ValueError("Cannot vote over an empty window.")
    return Observation(label=best_label, score=sum_scores[best_label] / best_count)


class LabelStabilizer:
    """Fixed-capacity majority-vote stabilizer for a stream of (label, score) observations."""

    def __init__(self, *, config: StabilizerConfig):
        if config.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if config.queue_time_out_s is not None and config.queue_time_out_s <= 0.0:
            raise ValueError("queue_time_out_s must be > 0 when set")
        self.config = config
        self.reset_policy = ResetPolicy(config.reset_policy)

        self._window: deque[Observation] = deque()
        self._last_t: float | None = None

    @classmethod
    def configure(
        cls,
        queue_size: int,
        queue_time_out_s: float | None = None,
        *,
        reset_policy: ResetPolicy | str = ResetPolicy.CLEAR_AFTER_APPEND,
        drop_oldest_before_vote: bool = False,
    ) -> "LabelStabilizer":
        return cls(
            config=StabilizerConfig(
                queue_size=int(queue_size),
                queue_time_out_s=None if queue_time_out_s is None else float(queue_time_out_s),
                reset_policy=ResetPolicy(reset_policy),
                drop_oldest_before_vote=bool(drop_oldest_before_vote),
            )
        )

    @property
    def enabled(self) -> bool:
        return self.config.queue_size > 1

    @property
    def window(self) -> tuple[Observation, ...]:
        return tuple(self._window)

    @property
    def last_timestamp(self) -> float | None:
        return self._last_t

    def reset(self) -> None:
        self._window.clear()
        self._last_t = None

    def _timed_out(self, t: float) -> bool:
        timeout = self.config.queue_time_out_s
        if timeout is None or self._last_t is None:
            return False
        return (t - self._last_t) >= timeout

    def update(self, observation: Observation, *, t: float) -> Observation:
        if not self.enabled:
            return observation

        timed_out = self._timed_out(t)
        if timed_out and self.reset_policy is ResetPolicy.CLEAR_BEFORE_APPEND:
            self._window.clear()
        self._window.append(observation)
        if timed_out and self.reset_policy is ResetPolicy.CLEAR_AFTER_APPEND:
            self._window.clear()
        self._last_t = t

        queue_size = self.config.queue_size
        # Below capacity: passthrough while the window fills up.
        if len(self._window) < queue_size:
            return observation

        if self.config.drop_oldest_before_vote or len(self._window) > queue_size:
            self._window.popleft()
        return majority_vote(self._window)

    def update_label(self, label: int, score: float, *, t: float) -> tuple[int, float]:
        out = self.update(Observation(label=int(label), score=float(score)), t=t)
        return out.label, out.score
