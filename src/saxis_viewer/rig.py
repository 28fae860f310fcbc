"""Kinematic chain that mirrors joint writes, for headless rendering.

Each joint rotates about its own axis and sits at the end of the previous
link, ``length`` units up that link's z axis.
"""

from __future__ import annotations
from typing import List

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation as R

from saxis_viewer.pose import Axis, JointSpec


class AxisRig:
    """`PoseSink` holding one rotation per joint and a degree readout."""

    def __init__(self, joints: JointSpec) -> None:
        """Initialize every joint at zero rotation."""
        self.joints = joints
        self.angles = np.zeros(len(joints), dtype=np.float64)
        self._rotations: List[NDArray[np.float64]] = [np.eye(3) for _ in range(len(joints))]
        self.writes = 0

    def set_joint(self, index: int, angle: float) -> None:
        """Rotate joint `index` to `angle` radians about its axis."""
        axis = self.joints[index].axis
        if axis is Axis.X:
            rotation = R.from_euler("x", angle)
        elif axis is Axis.Y:
            rotation = R.from_euler("y", angle)
        else:
            rotation = R.from_euler("z", angle)
        self._rotations[index] = rotation.as_matrix()
        self.angles[index] = angle
        self.writes += 1

    def readout(self) -> List[str]:
        """Joint angles in degrees, two decimals, as shown next to the model."""
        return [f"{np.rad2deg(angle):.2f}" for angle in self.angles]

    def link_transforms(self) -> List[NDArray[np.float64]]:
        """World transform (4x4) of every joint frame."""
        transforms = []
        world = np.eye(4)
        for index, rotation in enumerate(self._rotations):
            local = np.eye(4)
            local[:3, :3] = rotation
            if index > 0:
                local[2, 3] = self.joints[index - 1].length
            world = world @ local
            transforms.append(world.copy())
        return transforms

    def tip_position(self) -> NDArray[np.float64]:
        """Position of the end of the last link."""
        tip = np.array([0.0, 0.0, self.joints[len(self.joints) - 1].length, 1.0])
        return (self.link_transforms()[-1] @ tip)[:3]
