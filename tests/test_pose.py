"""Unit tests for the pose module."""

from unittest.mock import MagicMock, call

import pytest
import numpy as np

from saxis_viewer.pose import Axis, Joint, JointSpec, PoseState
from saxis_viewer.errors import ProtocolError


class TestAxis:
    """Tests for axis parsing."""

    @pytest.mark.parametrize("raw, expected", [("x", Axis.X), ("y", Axis.Y), ("z", Axis.Z), ("Z", Axis.Z)])
    def test_parse_known_axes(self, raw: str, expected: Axis) -> None:
        """Test the server's axis letters map to the enum."""
        assert Axis.parse(raw) is expected

    def test_parse_unknown_axis(self) -> None:
        """Test an unknown axis is a protocol error."""
        with pytest.raises(ProtocolError, match="axis"):
            Axis.parse("w")


class TestJointSpec:
    """Tests for geometry parsing."""

    def test_from_wire(self) -> None:
        """Test a scene joint list is parsed in order."""
        joints = JointSpec.from_wire(
            [
                {"Width": 1.5, "Length": 1, "Min": -170, "Max": 170, "Axis": "z"},
                {"Width": 0.8, "Length": 2, "Min": -120, "Max": 120, "Axis": "x"},
            ]
        )

        assert len(joints) == 2
        assert joints[0] == Joint(Axis.Z, width=1.5, length=1.0, min_deg=-170.0, max_deg=170.0)
        assert joints[1].axis is Axis.X
        assert [joint.length for joint in joints] == [1.0, 2.0]

    def test_from_wire_rejects_empty(self) -> None:
        """Test a robot without joints is refused."""
        with pytest.raises(ProtocolError):
            JointSpec.from_wire([])

    def test_from_wire_rejects_missing_axis(self) -> None:
        """Test a joint record must name its axis."""
        with pytest.raises(ProtocolError, match="malformed"):
            JointSpec.from_wire([{"Width": 1.0}])

    def test_from_wire_rejects_non_numeric_extent(self) -> None:
        """Test extents must be numbers."""
        with pytest.raises(ProtocolError, match="malformed"):
            JointSpec.from_wire([{"Axis": "x", "Length": "long"}])

    def test_spec_is_immutable(self, saxis_joints: JointSpec) -> None:
        """Test geometry cannot be modified after load."""
        with pytest.raises(AttributeError):
            saxis_joints.joints = ()  # type: ignore[misc]


class TestPoseState:
    """Tests for the live pose."""

    def test_initial_pose_is_rendered(self) -> None:
        """Test creating the state pushes every joint to the sink."""
        sink = MagicMock()

        PoseState(sink, [0.1, 0.2, 0.3])

        assert sink.set_joint.call_args_list == [call(0, 0.1), call(1, 0.2), call(2, 0.3)]

    def test_set_forwards_to_sink(self) -> None:
        """Test set stores the value and forwards it."""
        sink = MagicMock()
        state = PoseState(sink, [0.0, 0.0])
        sink.reset_mock()

        state.set(1, 0.5)

        sink.set_joint.assert_called_once_with(1, 0.5)
        np.testing.assert_array_equal(state.snapshot(), [0.0, 0.5])

    def test_apply_writes_unchanged_joints(self) -> None:
        """Test apply writes every joint even when the value is unchanged."""
        sink = MagicMock()
        state = PoseState(sink, [1.0, 2.0])
        sink.reset_mock()

        state.apply([1.0, 2.0])

        assert sink.set_joint.call_count == 2

    def test_apply_rejects_wrong_length(self) -> None:
        """Test a vector for another robot is refused."""
        state = PoseState(MagicMock(), [1.0, 2.0])

        with pytest.raises(ValueError, match="expected 2"):
            state.apply([1.0])

    def test_snapshot_is_a_copy(self) -> None:
        """Test snapshots never alias the internal vector."""
        state = PoseState(MagicMock(), [1.0, 2.0])

        snap = state.snapshot()
        snap[0] = 99.0

        assert state.snapshot()[0] == 1.0

    def test_initial_vector_is_copied(self) -> None:
        """Test the caller's array is not used as internal storage."""
        initial = np.array([1.0, 2.0])
        state = PoseState(MagicMock(), initial)

        initial[0] = 5.0

        assert state.snapshot()[0] == 1.0
        assert state.joint_count == 2

    def test_empty_initial_pose_rejected(self) -> None:
        """Test a pose needs at least one joint."""
        with pytest.raises(ValueError):
            PoseState(MagicMock(), [])
