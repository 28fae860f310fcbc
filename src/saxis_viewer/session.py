"""Per-run state shared by the player, the poller and the render loop."""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from saxis_viewer.pose import JointSpec, PoseState


logger = logging.getLogger(__name__)


@dataclass
class PlaybackSession:
    """Robot geometry, live pose and the permanent stop signal.

    Once `stop` has been called the session never restarts: polling ceases and
    the player stops advancing.
    """

    joints: JointSpec
    pose: PoseState
    path: NDArray[np.float64] = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float64))
    stop_event: threading.Event = field(default_factory=threading.Event)
    stop_reason: str | None = None
    fatal: bool = False

    @property
    def stopped(self) -> bool:
        """True once a fatal condition or shutdown was signalled."""
        return self.stop_event.is_set()

    def stop(self, reason: str, fatal: bool = True) -> None:
        """Set the stop signal, keeping the first reason given.

        Args:
            reason: Human readable cause, kept in `stop_reason`
            fatal: False for an orderly shutdown requested by the user

        """
        if self.stop_event.is_set():
            logger.debug("Session already stopped, ignoring: %s", reason)
            return
        self.stop_reason = reason
        self.fatal = fatal
        self.stop_event.set()
        if fatal:
            logger.error("Playback stopped: %s", reason)
        else:
            logger.info("Playback stopped: %s", reason)
