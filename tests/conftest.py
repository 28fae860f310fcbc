"""Pytest configuration and shared fixtures for all tests."""

import sys
from pathlib import Path
from typing import Callable, Sequence, Tuple
from unittest.mock import MagicMock

import pytest
import numpy as np


# Ensure src is in path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


from saxis_viewer.pose import Axis, Joint, JointSpec, PoseState  # noqa: E402
from saxis_viewer.program import Program, Segment, Waypoint  # noqa: E402
from saxis_viewer.session import PlaybackSession  # noqa: E402


SegmentSpec = Sequence[Tuple[float, Sequence[float]]]


def build_program(segments: Sequence[SegmentSpec], sequence_number: int = 1) -> Program:
    """Build a program from ``[[(fraction, joints), ...], ...]``."""
    return Program(
        segments=tuple(
            Segment(tuple(Waypoint(float(frac), np.array(joints, dtype=np.float64)) for frac, joints in segment))
            for segment in segments
        ),
        sequence_number=sequence_number,
    )


# ---------------------------------------------------------------------------
# Geometry Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def saxis_joints() -> JointSpec:
    """Six-axis geometry served by the saxis demo server."""
    return JointSpec(
        (
            Joint(Axis.Z, width=1.5, length=1.0, min_deg=-170, max_deg=170),
            Joint(Axis.X, width=0.8, length=2.0, min_deg=-120, max_deg=120),
            Joint(Axis.X, width=0.7, length=1.5, min_deg=-120, max_deg=120),
            Joint(Axis.Z, width=0.6, length=1.0, min_deg=-170, max_deg=170),
            Joint(Axis.X, width=0.4, length=0.5, min_deg=-120, max_deg=120),
            Joint(Axis.Z, width=0.3, length=0.0, min_deg=-360, max_deg=360),
        )
    )


@pytest.fixture
def single_joint() -> JointSpec:
    """One z-axis joint, enough for scalar playback checks."""
    return JointSpec((Joint(Axis.Z, width=1.0, length=1.0),))


# ---------------------------------------------------------------------------
# Session Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_sink() -> MagicMock:
    """Create a mock PoseSink."""
    sink = MagicMock()
    sink.set_joint = MagicMock()
    return sink


@pytest.fixture
def session(single_joint: JointSpec, mock_sink: MagicMock) -> PlaybackSession:
    """Single-joint session starting at 0 rad, with the initial render cleared."""
    pose = PoseState(mock_sink, [0.0])
    mock_sink.reset_mock()
    return PlaybackSession(joints=single_joint, pose=pose)


@pytest.fixture
def make_program() -> Callable[..., Program]:
    """Return the program builder."""
    return build_program

