"""
Tests for the NAOqi adapters using MagicMock proxies.
"""

import math
import unittest
from unittest.mock import MagicMock

import numpy as np

from core.errors import CommunicationError
from core.execution_tracker import ExecutionSlot
from core.pose import Pose, Space
from hardware.naoqi_impl import (
    NaoqiActuation, NaoqiKinematics, NaoqiOdometryLocalization, SonarObstacleSignal
)
from motion.commands import LookAt, MoveJoint, MoveTo, MoveVelocity, PointArm, Rest, TakePosture
from motion.frames import FrameService
from motion.topology import JointTopology, Posture


class TestNaoqiActuation(unittest.TestCase):
    """Test command kind to ALMotion / ALRobotPosture / ALTracker mapping."""

    def setUp(self):
        self.motion = MagicMock()
        self.posture = MagicMock()
        self.tracker = MagicMock()
        self.actuation = NaoqiActuation(self.motion, self.posture, self.tracker)

    def test_move_velocity(self):
        outcome = self.actuation.execute_motion(MoveVelocity(0.1, 0.0, 0.3))
        self.assertTrue(outcome.success)
        self.motion.move.assert_called_once_with(0.1, 0.0, 0.3)

    def test_move_to(self):
        self.motion.moveTo.return_value = True
        outcome = self.actuation.execute_motion(MoveTo(Pose.planar(0.4, 0.1, 0.0)))
        self.assertTrue(outcome.success)
        x, y, theta = self.motion.moveTo.call_args[0]
        self.assertEqual((x, y), (0.4, 0.1))
        self.assertAlmostEqual(theta, 0.0)

    def test_move_to_not_reached(self):
        self.motion.moveTo.return_value = False
        outcome = self.actuation.execute_motion(MoveTo(Pose.planar(0.4, 0.0, 0.0)))
        self.assertFalse(outcome.success)

    def test_move_joint(self):
        self.actuation.execute_motion(MoveJoint(("HeadYaw", "HeadPitch"), (0.2, 0.1), 0.4))
        self.motion.angleInterpolationWithSpeed.assert_called_once_with(
            ["HeadYaw", "HeadPitch"], [0.2, 0.1], 0.4
        )

    def test_take_posture(self):
        self.posture.goToPosture.return_value = True
        self.assertTrue(self.actuation.execute_motion(TakePosture(Posture.STAND_INIT, 0.5)).success)
        self.posture.goToPosture.assert_called_once_with("StandInit", 0.5)

    def test_rest_removes_stiffness_after_posture(self):
        self.posture.goToPosture.return_value = True
        self.assertTrue(self.actuation.execute_motion(Rest(Posture.CROUCH, 0.5)).success)
        self.posture.goToPosture.assert_called_once_with("Crouch", 0.5)
        self.motion.setStiffnesses.assert_called_once_with("Body", 0.0)

    def test_rest_keeps_stiffness_if_posture_fails(self):
        self.posture.goToPosture.return_value = False
        self.assertFalse(self.actuation.execute_motion(Rest(Posture.SIT, 0.5)).success)
        self.motion.setStiffnesses.assert_not_called()

    def test_look_and_point(self):
        self.actuation.execute_motion(LookAt(1.0, 0.0, 0.5, 0.2))
        self.actuation.execute_motion(PointArm("RArm", 1.0, -0.3, 0.5, 0.3))
        self.tracker.lookAt.assert_called_once_with([1.0, 0.0, 0.5], 2, 0.2, False)
        self.tracker.pointAt.assert_called_once_with("RArm", [1.0, -0.3, 0.5], 2, 0.3)

    def test_pointing_without_tracker(self):
        actuation = NaoqiActuation(self.motion, self.posture)
        self.assertFalse(actuation.execute_motion(LookAt(1.0, 0.0, 0.5, 0.2)).success)

    def test_transport_failure(self):
        self.motion.moveTo.side_effect = RuntimeError("connection reset")
        with self.assertRaises(CommunicationError):
            self.actuation.execute_motion(MoveTo(Pose.planar(1.0, 0.0, 0.0)))

    def test_stop_slots(self):
        self.actuation.stop(ExecutionSlot.LOCOMOTION)
        self.actuation.stop(ExecutionSlot.HEAD)
        self.motion.stopMove.assert_called_once_with()
        self.motion.killTasksUsingResources.assert_called_once_with(["Head"])

    def test_holonomic_flag(self):
        self.assertTrue(self.actuation.holonomic_capable())
        self.assertFalse(NaoqiActuation(self.motion, self.posture, holonomic=False).holonomic_capable())


class TestNaoqiKinematics(unittest.TestCase):
    """Test getTransform forwarding."""

    def test_transform_through_frame_service(self):
        motion = MagicMock()
        motion.getTransform.return_value = [1.0, 0, 0, 0.1, 0, 1.0, 0, 0, 0, 0, 1.0, 0.3, 0, 0, 0, 1.0]
        frames = FrameService(JointTopology(), kinematics=NaoqiKinematics(motion))

        matrix = frames.get_transform("Head", Space.ROBOT)

        motion.getTransform.assert_called_once_with("Head", 2, True)
        self.assertEqual(matrix[2, 3], 0.3)
        np.testing.assert_array_equal(matrix[3], [0.0, 0.0, 0.0, 1.0])

    def test_transport_failure(self):
        motion = MagicMock()
        motion.getTransform.side_effect = RuntimeError("timeout")
        with self.assertRaises(CommunicationError):
            NaoqiKinematics(motion).transform("Head", Space.TORSO)


class TestNaoqiOdometryLocalization(unittest.TestCase):
    """Test odometry plus correction offset."""

    def setUp(self):
        self.motion = MagicMock()
        self.motion.getRobotPosition.return_value = [0.5, 0.2, 0.3]
        self.localization = NaoqiOdometryLocalization(self.motion)

    def test_unavailable_before_correction(self):
        self.assertIsNone(self.localization.current_global_pose())

    def test_correction_round_trip(self):
        target = Pose.planar(4.0, -2.0, 1.0)
        self.assertTrue(self.localization.set_global_pose(target))
        self.assertTrue(self.localization.current_global_pose().is_close(target, 1e-9))

    def test_follows_odometry_after_correction(self):
        self.localization.set_global_pose(Pose.planar(0.0, 0.0, math.pi / 2))
        # Walk 1 m forward in odometry (odometry heading 0.3)
        self.motion.getRobotPosition.return_value = [0.5 + math.cos(0.3), 0.2 + math.sin(0.3), 0.3]

        pose = self.localization.current_global_pose()

        self.assertAlmostEqual(pose.x, 0.0)
        self.assertAlmostEqual(pose.y, 1.0)


class TestSonarObstacleSignal(unittest.TestCase):
    """Test sonar thresholding."""

    def make_signal(self, left, right):
        memory = MagicMock()
        memory.getData.side_effect = lambda key: left if "Left" in key else right
        return SonarObstacleSignal(memory, threshold_m=0.3)

    def test_clear(self):
        self.assertFalse(self.make_signal(1.2, 2.5).obstacle_present())

    def test_close_echo(self):
        self.assertTrue(self.make_signal(1.2, 0.25).obstacle_present())

    def test_zero_means_no_echo(self):
        self.assertFalse(self.make_signal(0.0, 0.0).obstacle_present())


if __name__ == '__main__':
    unittest.main()
