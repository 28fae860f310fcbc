"""Cooperative render loop driving the poller and the player.

One thread runs everything that touches the pose: each iteration drains
finished status requests, starts a new request when the poll period has
elapsed, then ticks the player. Only the network round trip itself runs on
the poller's worker thread.
"""

from __future__ import annotations
import time
import logging
from typing import Any, Dict, Callable
from dataclasses import dataclass

from saxis_viewer.player import MotionPlayer
from saxis_viewer.poller import StatusPoller
from saxis_viewer.session import PlaybackSession


logger = logging.getLogger(__name__)

DEFAULT_RENDER_FPS = 60.0


@dataclass
class LoopFrequencyStats:
    """Track rolling loop frequency statistics."""

    mean: float = 0.0
    m2: float = 0.0
    min_freq: float = float("inf")
    count: int = 0
    last_freq: float = 0.0
    potential_freq: float = 0.0

    def update(self, period: float) -> None:
        """Fold one measured loop period into the running statistics."""
        if period <= 0:
            return
        self.last_freq = 1.0 / period
        self.count += 1
        delta = self.last_freq - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (self.last_freq - self.mean)
        self.min_freq = min(self.min_freq, self.last_freq)

    def reset(self) -> None:
        """Reset accumulators while keeping the last potential frequency."""
        self.mean = 0.0
        self.m2 = 0.0
        self.min_freq = float("inf")
        self.count = 0


class PlaybackLoop:
    """Render-rate loop: poll completions, poll when due, tick."""

    def __init__(
        self,
        session: PlaybackSession,
        player: MotionPlayer,
        poller: StatusPoller,
        fps: float = DEFAULT_RENDER_FPS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the loop.

        Args:
            session: Shared session; the loop exits once it is stopped
            player: Ticked once per iteration
            poller: Drained and re-armed once per iteration
            fps: Target iterations per second
            clock: Monotonic time source, shared with the player
            sleep: Sleep function, replaceable in tests

        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.session = session
        self.player = player
        self.poller = poller
        self.target_frequency = fps
        self.target_period = 1.0 / fps
        self._now = clock
        self._sleep = sleep
        self._freq_stats = LoopFrequencyStats()
        self.ticks = 0

    def step(self, now: float) -> None:
        """Run one iteration at time `now`."""
        self.poller.process_responses(now=now)
        self.poller.poll_if_due(now)
        self.player.tick(now)
        self.ticks += 1

    def request_stop(self, reason: str = "shutdown requested") -> None:
        """Ask the loop to exit at the end of the current iteration."""
        self.session.stop(reason, fatal=False)

    def run(self, max_duration: float | None = None) -> None:
        """Loop until the session stops or `max_duration` seconds elapse."""
        logger.info("Starting playback loop (%.0fHz)", self.target_frequency)

        started = self._now()
        prev_loop_start = started
        print_interval_loops = max(1, int(self.target_frequency * 5))
        stats = self._freq_stats

        while not self.session.stopped:
            loop_start = self._now()
            if max_duration is not None and loop_start - started >= max_duration:
                logger.info("Playback loop reached its %.1fs limit", max_duration)
                break
            if self.ticks > 0:
                stats.update(loop_start - prev_loop_start)
            prev_loop_start = loop_start

            self.step(loop_start)

            computation_time = self._now() - loop_start
            stats.potential_freq = 1.0 / computation_time if computation_time > 0 else float("inf")
            if self.ticks % print_interval_loops == 0 and stats.count:
                self._log_frequency(stats)

            sleep_time = max(0.0, self.target_period - computation_time)
            if sleep_time > 0:
                self._sleep(sleep_time)

        logger.debug("Playback loop stopped after %d ticks", self.ticks)

    def _log_frequency(self, stats: LoopFrequencyStats) -> None:
        variance = stats.m2 / stats.count if stats.count > 0 else 0.0
        lowest = stats.min_freq if stats.min_freq != float("inf") else 0.0
        logger.debug(
            "Loop freq - avg: %.2fHz, variance: %.4f, min: %.2fHz, last: %.2fHz, potential: %.2fHz, target: %.1fHz",
            stats.mean,
            variance,
            lowest,
            stats.last_freq,
            stats.potential_freq,
            self.target_frequency,
        )
        stats.reset()

    def get_status(self) -> Dict[str, Any]:
        """Return a lightweight status snapshot for observability."""
        program = self.player.program
        return {
            "phase": self.player.state.value,
            "program": program.sequence_number if program is not None else None,
            "segment": self.player.segment_index,
            "last_sequence": self.player.last_sequence,
            "poll_in_flight": self.poller.in_flight,
            "stopped": self.session.stopped,
            "stop_reason": self.session.stop_reason,
            "pose": self.session.pose.snapshot().tolist(),
            "loop_frequency": {
                "last": self._freq_stats.last_freq,
                "mean": self._freq_stats.mean,
                "potential": self._freq_stats.potential_freq,
            },
        }
