"""Motion program playback against a monotonic clock.

Design overview
- A program is a list of segments; each segment is a list of waypoints whose
  `fraction` is measured in seconds from the start of that segment.
- `tick(now)` is called once per rendered frame. It first applies every
  segment end that has already passed (catch-up), then linearly interpolates
  between the last attained waypoint (`baseline`) and the next one.
- The segment clock advances by each segment's nominal duration rather than
  being reset to `now`, so a late frame delays the following segments by that
  lateness only and never accumulates.

State machine
- IDLE -> PLAYING on `load`; PLAYING <-> HELD via `hold`/`resume`;
  PLAYING -> DONE when the last segment completes (the player is then held
  until the next `load`).

Preconditions
- Segments are non-empty and fractions never decrease. Programs built with
  `Program.from_wire` are validated; hand-built ones are trusted.
"""

from __future__ import annotations
import time
import logging
from enum import Enum
from typing import Callable

import numpy as np

from saxis_viewer.pose import Pose
from saxis_viewer.program import Program, Segment
from saxis_viewer.session import PlaybackSession


logger = logging.getLogger(__name__)


class PlayerPhase(Enum):
    """Observable playback phase."""

    IDLE = "idle"
    PLAYING = "playing"
    HELD = "held"
    DONE = "done"


class MotionPlayer:
    """Segment-advancing, drift-correcting interpolation of a motion program."""

    def __init__(self, session: PlaybackSession, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an idle, held player.

        Args:
            session: Owner of the pose being driven
            clock: Monotonic time source in seconds, used when `now` is omitted

        """
        self.session = session
        self._now = clock

        self._program: Program | None = None
        self._segment_index = 0
        self._clock = 0.0
        self._baseline: Pose = session.pose.snapshot()
        self._done = False
        self._held = True
        self._last_sequence: int | None = None

    @property
    def program(self) -> Program | None:
        return self._program

    @property
    def segment_index(self) -> int:
        return self._segment_index

    @property
    def clock(self) -> float:
        """Instant at which the current segment is considered to have started."""
        return self._clock

    @property
    def baseline(self) -> Pose:
        """Copy of the most recently attained keyframe."""
        return self._baseline.copy()

    @property
    def done(self) -> bool:
        return self._done

    @property
    def held(self) -> bool:
        return self._held

    @property
    def last_sequence(self) -> int | None:
        """Sequence number of the last adopted program, None before the first."""
        return self._last_sequence

    @property
    def state(self) -> PlayerPhase:
        """Current phase of the playback state machine."""
        if self._done:
            return PlayerPhase.DONE
        if self._program is None:
            return PlayerPhase.IDLE
        if self._held:
            return PlayerPhase.HELD
        return PlayerPhase.PLAYING

    def status_pcount(self) -> int:
        """Value to report as ``Pcount`` in the next status request.

        The last adopted sequence number once its playback has finished, 0
        otherwise, so the server knows when to hand out the next program.
        """
        if self._done and self._last_sequence is not None:
            return self._last_sequence
        return 0

    def load(self, program: Program, now: float | None = None) -> bool:
        """Adopt `program` if it is newer than the last adopted one.

        Any program in progress is abandoned. Returns False, leaving the
        player untouched, for stale programs.
        """
        if self._last_sequence is not None and program.sequence_number <= self._last_sequence:
            logger.debug(
                "Ignoring stale program %d (last adopted %d)",
                program.sequence_number,
                self._last_sequence,
            )
            return False
        joint_count = self.session.pose.joint_count
        for segment in program.segments:
            for waypoint in segment.waypoints:
                if waypoint.joints.size != joint_count:
                    raise ValueError(
                        f"program {program.sequence_number} has {waypoint.joints.size} joints, "
                        f"expected {joint_count}"
                    )

        if self._program is not None and not self._done:
            logger.info(
                "Program %d supersedes program %d at segment %d",
                program.sequence_number,
                self._program.sequence_number,
                self._segment_index,
            )
        self._program = program
        self._last_sequence = program.sequence_number
        self._segment_index = 0
        self._clock = self._now() if now is None else now
        self._baseline = self.session.pose.snapshot()
        self._done = False
        self._held = False
        logger.info(
            "Loaded program %d: %d segments, %.2fs",
            program.sequence_number,
            len(program),
            program.duration,
        )
        return True

    def hold(self) -> None:
        """Freeze the pose; ticks become no-ops until `resume`."""
        if not self._held:
            logger.debug("Playback held")
        self._held = True

    def resume(self) -> None:
        """Leave hold mode. Harmless when nothing is loaded."""
        if self._held:
            logger.debug("Playback resumed")
        self._held = False

    def tick(self, now: float | None = None) -> None:
        """Advance playback to `now` and push the resulting pose."""
        program = self._program
        if program is None or self._held or self._done or self.session.stopped:
            return
        if now is None:
            now = self._now()

        # A frame stamped before the program was loaded renders its start.
        elapsed = max(0.0, now - self._clock)
        segment = program.segments[self._segment_index]

        # Catch-up: apply every segment end we have already passed.
        while segment.duration <= elapsed:
            last = segment.last
            self._baseline = last.joints.copy()
            self.session.pose.apply(last.joints)

            self._clock += segment.duration
            elapsed -= segment.duration
            self._segment_index += 1
            if self._segment_index >= len(program):
                self._finish()
                return
            segment = program.segments[self._segment_index]

        self._interpolate(segment, elapsed)

    def _interpolate(self, segment: Segment, elapsed: float) -> None:
        low_fraction = 0.0
        target = segment.last
        for waypoint in segment.waypoints:
            if waypoint.fraction > elapsed:
                target = waypoint
                break
            low_fraction = waypoint.fraction
            self._baseline = waypoint.joints.copy()

        t = (elapsed - low_fraction) / (target.fraction - low_fraction)
        assert 0.0 <= t < 1.0, f"interpolation factor {t} out of range, waypoint fractions are not monotonic"

        current = self._baseline * (1.0 - t) + t * np.asarray(target.joints)
        self.session.pose.apply(current)

    def _finish(self) -> None:
        program = self._program
        self._program = None
        self._segment_index = 0
        self._done = True
        self._held = True
        logger.info("Program %d finished", program.sequence_number if program else -1)
