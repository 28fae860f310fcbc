"""Motion programs and the server's status/scene payloads.

Wire format (JSON, as sent by the saxis server):

- program: ``[[{"Frac": 0.25, "J": [...]}, ...], ...]``, one inner list per
  segment, ``Frac`` in seconds from the start of that segment.
- status: ``{"Program": <program>|null, "Pcount": int, "Pose": {"J": [...]}}``
- scene: ``{"Robot": [<joint>...], "Pose": {"J": [...]}, "Hilbert": [[x, y, z]...]}``

Malformed programs are rejected here with `ProtocolError` so the player can
assume non-empty segments with non-decreasing fractions.
"""

from __future__ import annotations
import math
from typing import Any, Tuple
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from saxis_viewer.pose import Pose, JointSpec
from saxis_viewer.errors import ProtocolError


@dataclass(frozen=True)
class Waypoint:
    """Joint target that must be reached `fraction` seconds into its segment."""

    fraction: float
    joints: Pose


@dataclass(frozen=True)
class Segment:
    """Non-empty run of waypoints sorted by fraction."""

    waypoints: Tuple[Waypoint, ...]

    @property
    def duration(self) -> float:
        """Fraction of the final waypoint."""
        return self.waypoints[-1].fraction

    @property
    def last(self) -> Waypoint:
        return self.waypoints[-1]


@dataclass(frozen=True)
class Program:
    """Segments to play back in order, tagged with the server's sequence number."""

    segments: Tuple[Segment, ...]
    sequence_number: int

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def duration(self) -> float:
        """Nominal playback time of the whole program."""
        return sum(segment.duration for segment in self.segments)

    @classmethod
    def from_wire(cls, raw: Any, sequence_number: int, joint_count: int) -> "Program":
        """Parse and validate a program received from the server.

        Args:
            raw: List of segments, each a list of ``{"Frac", "J"}`` records
            sequence_number: The response's ``Pcount``
            joint_count: Expected length of every joint vector

        Raises:
            ProtocolError: if the program is empty or any segment is malformed

        """
        if not isinstance(raw, list) or not raw:
            raise ProtocolError(f"program {sequence_number} has no segments")
        segments = tuple(
            _parse_segment(item, joint_count, f"program {sequence_number} segment {index}")
            for index, item in enumerate(raw)
        )
        return cls(segments=segments, sequence_number=sequence_number)


def _parse_segment(raw: Any, joint_count: int, where: str) -> Segment:
    if not isinstance(raw, list) or not raw:
        raise ProtocolError(f"{where} is empty")
    waypoints = []
    previous = 0.0
    for record in raw:
        if not isinstance(record, dict):
            raise ProtocolError(f"{where} has a non-object waypoint: {record!r}")
        fraction = _parse_float(record.get("Frac"), where)
        if fraction < previous:
            raise ProtocolError(f"{where} fractions go backwards ({previous} -> {fraction})")
        previous = fraction
        waypoints.append(Waypoint(fraction, parse_joints(record.get("J"), joint_count, where)))
    return Segment(tuple(waypoints))


def _parse_float(raw: Any, where: str) -> float:
    if isinstance(raw, bool):
        raise ProtocolError(f"{where} has a non-numeric fraction: {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"{where} has a non-numeric fraction: {raw!r}") from e
    if not math.isfinite(value) or value < 0.0:
        raise ProtocolError(f"{where} has an invalid fraction: {raw!r}")
    return value


def parse_joints(raw: Any, joint_count: int | None, where: str = "pose") -> Pose:
    """Parse a joint vector, optionally checking its length.

    The returned array is read-only.
    """
    if not isinstance(raw, list):
        raise ProtocolError(f"{where} joints must be a list, got {raw!r}")
    try:
        joints = np.array(raw, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"{where} joints are not numeric: {raw!r}") from e
    if joints.ndim != 1 or joints.size == 0:
        raise ProtocolError(f"{where} joints must be a flat non-empty list")
    if not np.all(np.isfinite(joints)):
        raise ProtocolError(f"{where} joints must be finite: {raw!r}")
    if joint_count is not None and joints.size != joint_count:
        raise ProtocolError(f"{where} has {joints.size} joints, expected {joint_count}")
    joints.flags.writeable = False
    return joints


def _parse_pose_section(raw: Any, joint_count: int | None) -> Pose | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ProtocolError(f"pose must be an object, got {raw!r}")
    if raw.get("J") is None:
        return None
    return parse_joints(raw["J"], joint_count)


def _parse_pcount(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ProtocolError(f"Pcount must be an integer, got {raw!r}")
    if isinstance(raw, float) and (not math.isfinite(raw) or not raw.is_integer()):
        raise ProtocolError(f"Pcount must be an integer, got {raw!r}")
    return int(raw)


@dataclass(frozen=True)
class StatusResponse:
    """Parsed answer to a ``status`` request. Any section may be missing."""

    program: Program | None = None
    pose: Pose | None = None
    pcount: int | None = None


def parse_status_response(raw: Any, joint_count: int) -> StatusResponse:
    """Parse a successful status payload."""
    if not isinstance(raw, dict):
        raise ProtocolError(f"status response must be an object, got {type(raw).__name__}")

    pcount = _parse_pcount(raw["Pcount"]) if raw.get("Pcount") is not None else None
    program = None
    if raw.get("Program") is not None:
        if pcount is None:
            raise ProtocolError("status response has a program but no Pcount")
        program = Program.from_wire(raw["Program"], pcount, joint_count)
    pose = _parse_pose_section(raw.get("Pose"), joint_count)
    return StatusResponse(program=program, pose=pose, pcount=pcount)


@dataclass(frozen=True)
class Scene:
    """Robot geometry, starting pose and the traced path from the scene request."""

    joints: JointSpec
    pose: Pose
    path: NDArray[np.float64]


def parse_path(raw: Any) -> NDArray[np.float64]:
    """Parse a list of ``[x, y, z]`` points into an ``(N, 3)`` array."""
    if raw is None:
        return np.zeros((0, 3), dtype=np.float64)
    try:
        path = np.array(raw, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ProtocolError("path points are not numeric") from e
    if path.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    if path.ndim != 2 or path.shape[1] != 3:
        raise ProtocolError(f"path must be a list of 3D points, got shape {path.shape}")
    if not np.all(np.isfinite(path)):
        raise ProtocolError("path points must be finite")
    return path


def parse_scene(raw: Any) -> Scene:
    """Parse the scene payload."""
    if not isinstance(raw, dict):
        raise ProtocolError(f"scene response must be an object, got {type(raw).__name__}")
    joints = JointSpec.from_wire(raw.get("Robot"))
    pose = _parse_pose_section(raw.get("Pose"), len(joints))
    if pose is None:
        raise ProtocolError("scene has no initial pose")
    return Scene(joints=joints, pose=pose, path=parse_path(raw.get("Hilbert")))
