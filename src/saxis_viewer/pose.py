"""Robot geometry and the live joint pose.

The geometry (`JointSpec`) comes from the server's scene record and never
changes afterwards. `PoseState` owns the rendered joint vector and is the
only path by which joint values reach a `PoseSink`.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Iterator, Protocol, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from saxis_viewer.errors import ProtocolError


Pose = NDArray[np.float64]


class Axis(Enum):
    """Rotation axis of a joint."""

    X = "x"
    Y = "y"
    Z = "z"

    @classmethod
    def parse(cls, raw: Any) -> "Axis":
        """Map the server's axis letter to an `Axis`."""
        try:
            return cls(str(raw).lower())
        except ValueError as e:
            raise ProtocolError(f"unknown joint axis: {raw!r}") from e


@dataclass(frozen=True)
class Joint:
    """One link of the robot as described by the scene record.

    `width` and `length` are only used for drawing; `min_deg`/`max_deg` are
    the mechanical limits in degrees.
    """

    axis: Axis
    width: float = 0.0
    length: float = 0.0
    min_deg: float = -180.0
    max_deg: float = 180.0

    @classmethod
    def from_wire(cls, raw: Any) -> "Joint":
        """Build a joint from a `{Axis, Width, Length, Min, Max}` record."""
        if not isinstance(raw, dict) or "Axis" not in raw:
            raise ProtocolError(f"malformed joint record: {raw!r}")
        try:
            return cls(
                axis=Axis.parse(raw["Axis"]),
                width=float(raw.get("Width", 0.0)),
                length=float(raw.get("Length", 0.0)),
                min_deg=float(raw.get("Min", -180.0)),
                max_deg=float(raw.get("Max", 180.0)),
            )
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"malformed joint record: {raw!r}") from e


@dataclass(frozen=True)
class JointSpec:
    """Ordered, immutable description of every joint of the robot."""

    joints: tuple[Joint, ...]

    @classmethod
    def from_wire(cls, raw: Any) -> "JointSpec":
        """Parse the scene's `Robot` list."""
        if not isinstance(raw, list) or not raw:
            raise ProtocolError("scene has no joints")
        return cls(tuple(Joint.from_wire(item) for item in raw))

    def __len__(self) -> int:
        return len(self.joints)

    def __getitem__(self, index: int) -> Joint:
        return self.joints[index]

    def __iter__(self) -> Iterator[Joint]:
        return iter(self.joints)


class PoseSink(Protocol):
    """Anything that renders joint angles."""

    def set_joint(self, index: int, angle: float) -> None:
        """Set joint `index` to `angle` radians."""
        ...


def as_pose(values: Sequence[float] | NDArray[np.float64]) -> Pose:
    """Return a fresh float64 vector copied from `values`."""
    return np.array(values, dtype=np.float64, copy=True).reshape(-1)


class PoseState:
    """Current joint values, mirrored to a `PoseSink` on every write.

    Callers only ever get copies of the internal vector so the player's
    baseline can never alias the rendered pose.
    """

    def __init__(self, sink: PoseSink, initial: Sequence[float] | NDArray[np.float64]) -> None:
        """Initialize with the server-supplied starting pose and render it once.

        Args:
            sink: Receiver of every joint write
            initial: Starting joint angles (radians)

        """
        self._sink = sink
        self._current = as_pose(initial)
        if self._current.size == 0:
            raise ValueError("initial pose has no joints")
        self.apply(self._current)

    @property
    def joint_count(self) -> int:
        """Number of joints in the pose."""
        return int(self._current.size)

    def set(self, index: int, value: float) -> None:
        """Store joint `index` and forward it to the sink."""
        self._current[index] = value
        self._sink.set_joint(index, float(value))

    def apply(self, joints: Sequence[float] | NDArray[np.float64]) -> None:
        """Write every joint, including ones whose value did not change."""
        values = as_pose(joints)
        if values.size != self._current.size:
            raise ValueError(f"pose has {values.size} joints, expected {self._current.size}")
        for index, value in enumerate(values):
            self.set(index, value)

    def snapshot(self) -> Pose:
        """Return a copy of the current pose."""
        return self._current.copy()
