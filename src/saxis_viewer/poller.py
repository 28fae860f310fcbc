"""Periodic status polling with at most one request in flight.

Threading model
- `poll()` hands the request to a short-lived daemon thread so the render
  loop never blocks on the network.
- The worker only posts its outcome to `_responses`; the outcome is applied
  by `process_responses()` on the thread that owns the player, one at a time.
- The in-flight flag is only touched by the owning thread.

Failures (transport, protocol or server errors) set the session's stop
signal. Nothing is retried, and outcomes that arrive after the stop signal
are dropped.
"""

from __future__ import annotations
import logging
import threading
from queue import Empty, Queue
from typing import Callable, Optional, Protocol, Tuple
from dataclasses import dataclass

from saxis_viewer.errors import CommunicationError
from saxis_viewer.player import MotionPlayer
from saxis_viewer.program import StatusResponse
from saxis_viewer.session import PlaybackSession


logger = logging.getLogger(__name__)

DEFAULT_POLL_PERIOD = 0.213  # seconds

Outcome = Tuple[Optional[StatusResponse], Optional[BaseException]]


class StatusSource(Protocol):
    """Anything that can answer a status request (normally `RpcClient`)."""

    def fetch_status(self, pcount: int, joint_count: int) -> StatusResponse:
        """Return the parsed status for `pcount`."""
        ...


@dataclass(frozen=True)
class RecordingSignals:
    """Sequence numbers whose adoption starts or stops frame capture."""

    start_pcount: int | None = None
    stop_pcount: int | None = None


class StatusPoller:
    """Fetch new programs and the bootstrap pose from the server."""

    def __init__(
        self,
        session: PlaybackSession,
        player: MotionPlayer,
        source: StatusSource,
        period: float = DEFAULT_POLL_PERIOD,
        recording: RecordingSignals | None = None,
        on_recording: Callable[[bool], None] | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            session: Shared session; its stop signal ends polling for good
            player: Receiver of newly adopted programs
            source: Status transport
            period: Seconds between polls
            recording: Sequence numbers that toggle frame capture
            on_recording: Called with True/False when capture should start/stop

        """
        if period <= 0:
            raise ValueError(f"poll period must be positive, got {period}")
        self.session = session
        self.player = player
        self.source = source
        self.period = period
        self.recording = recording or RecordingSignals()
        self.on_recording = on_recording

        self._in_flight = False
        self._next_poll: float | None = None
        self._responses: "Queue[Outcome]" = Queue()
        self._worker: threading.Thread | None = None

    @property
    def in_flight(self) -> bool:
        """True while a request is outstanding."""
        return self._in_flight

    def poll(self) -> bool:
        """Issue a status request unless one is outstanding or the session stopped.

        Returns True when a request was started.
        """
        if self.session.stopped or self._in_flight:
            return False
        self._in_flight = True
        pcount = self.player.status_pcount()
        joint_count = self.session.pose.joint_count
        self._worker = threading.Thread(
            target=self._request,
            args=(pcount, joint_count),
            name="status-poll",
            daemon=True,
        )
        self._worker.start()
        return True

    def poll_if_due(self, now: float) -> bool:
        """Poll when the period has elapsed since the previous attempt."""
        if self.session.stopped:
            return False
        if self._next_poll is not None and now < self._next_poll:
            return False
        self._next_poll = now + self.period
        return self.poll()

    def _request(self, pcount: int, joint_count: int) -> None:
        try:
            response = self.source.fetch_status(pcount, joint_count)
        except Exception as e:
            self._responses.put((None, e))
            return
        self._responses.put((response, None))

    def process_responses(self, now: float | None = None, timeout: float | None = None) -> int:
        """Apply completed requests on the calling thread.

        Args:
            now: Timestamp used as the start of a newly adopted program
            timeout: Wait up to this many seconds for the first outcome

        Returns:
            Number of outcomes consumed.

        """
        processed = 0
        while True:
            try:
                if timeout is not None and processed == 0:
                    response, error = self._responses.get(timeout=timeout)
                else:
                    response, error = self._responses.get_nowait()
            except Empty:
                break
            processed += 1
            self._complete(response, error, now)
        return processed

    def close(self, timeout: float | None = None) -> bool:
        """Wait for an outstanding request to finish.

        Returns False if the worker is still running after `timeout` seconds.
        """
        worker = self._worker
        if worker is None or not worker.is_alive():
            return True
        worker.join(timeout)
        if worker.is_alive():
            logger.warning("Status request still running after %.1fs", timeout)
            return False
        return True

    def _complete(self, response: StatusResponse | None, error: BaseException | None, now: float | None) -> None:
        self._in_flight = False
        if self.session.stopped:
            logger.debug("Discarding status outcome received after stop")
            return
        if error is not None:
            if not isinstance(error, CommunicationError):
                logger.error("Unexpected failure while polling status", exc_info=error)
            self.session.stop(f"{type(error).__name__}: {error}")
            return
        if response is not None:
            self.handle_response(response, now)

    def handle_response(self, response: StatusResponse, now: float | None = None) -> None:
        """Adopt a newer program, or bootstrap the pose before any program."""
        program = response.program
        if program is not None and self.player.load(program, now):
            self._signal_recording(program.sequence_number)

        if response.pose is not None:
            if self.player.last_sequence is None:
                logger.debug("Adopting server pose")
                self.session.pose.apply(response.pose)
            else:
                logger.debug("Ignoring server pose, program %d owns the pose", self.player.last_sequence)

    def _signal_recording(self, sequence_number: int) -> None:
        if sequence_number == self.recording.start_pcount:
            logger.info("Program %d starts recording", sequence_number)
            if self.on_recording is not None:
                self.on_recording(True)
        elif sequence_number == self.recording.stop_pcount:
            logger.info("Program %d stops recording", sequence_number)
            if self.on_recording is not None:
                self.on_recording(False)
