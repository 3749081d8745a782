"""
Integration tests for the Navigation call surface.

Every public operation returns a bool (or a value / None); these tests
drive the whole stack with mock collaborators.
"""

import math
import threading
import unittest
from unittest.mock import MagicMock

import numpy as np

from config.settings import NavigationConfig
from core.execution_tracker import ExecutionSlot
from core.pose import Frame, Pose, PoseStamped, Space
from hardware.mock_hardware import MockActuation, MockKinematics, MockLocalization, MockObstacleSignal
from motion.path_follower import PathStatus
from navigation import Navigation


def make_navigation(body_type="H25", holonomic=True, localized=True):
    config = NavigationConfig()
    config.robot.body_type = body_type
    localization = MockLocalization(Pose() if localized else None)
    actuation = MockActuation(holonomic=holonomic, localization=localization)
    obstacles = MockObstacleSignal()
    kinematics = MockKinematics()
    nav = Navigation(actuation, localization, obstacles, kinematics, config)
    return nav, actuation, localization, obstacles, kinematics


class TestJointOperations(unittest.TestCase):
    """Test move_joint, postures and rest."""

    def setUp(self):
        self.nav, self.actuation, _, _, _ = make_navigation("H21")

    def tearDown(self):
        self.nav.close()

    def test_absent_joint_returns_false_without_actuation(self):
        self.assertFalse(self.nav.move_joint(["LHand"], [0.5], 0.3))
        self.assertFalse(self.nav.move_joint(["HeadYaw", "RWristYaw"], [0.1, 0.2], 0.3))
        self.assertEqual(self.actuation.command_history, [])

    def test_coupled_hip_resolves_to_left(self):
        self.assertTrue(self.nav.move_joint(["LHipYawPitch", "RHipYawPitch"], [-0.4, 0.2], 0.1))
        sent = self.actuation.commands_of("move_joint")[0]
        self.assertEqual(dict(zip(sent.names, sent.angles))["RHipYawPitch"], -0.4)

    def test_default_speed(self):
        self.assertTrue(self.nav.move_joint("HeadYaw", 0.5))
        sent = self.actuation.commands_of("move_joint")[0]
        self.assertEqual(sent.speed, self.nav.config.motion.default_joint_speed)
        self.assertEqual(sent.names, ("HeadYaw",))

    def test_numpy_scalar_angle(self):
        self.assertTrue(self.nav.move_joint("HeadYaw", np.float32(0.1)))
        sent = self.actuation.commands_of("move_joint")[0]
        self.assertEqual(len(sent.angles), 1)
        self.assertAlmostEqual(sent.angles[0], 0.1, places=6)

    def test_missing_angles_return_false(self):
        self.assertFalse(self.nav.move_joint("HeadYaw", None))
        self.assertFalse(self.nav.move_joint(None, [0.1]))
        self.assertFalse(self.nav.move_joint("HeadYaw", "up"))
        self.assertEqual(self.actuation.command_history, [])

    def test_mismatched_angle_count(self):
        self.assertFalse(self.nav.move_joint(["RArm"], [0.1, 0.2], 0.3))

    def test_take_predefined_posture(self):
        self.assertTrue(self.nav.take_predefined_posture("Stand", 0.6))
        self.assertFalse(self.nav.take_predefined_posture("Handstand", 0.6))
        self.assertEqual(self.actuation.kinds(), ["take_posture"])

    def test_rest_rejects_unsafe_postures(self):
        for posture in ("Stand", "StandInit", "StandZero", "Handstand"):
            self.assertFalse(self.nav.rest(posture))
        self.assertEqual(self.actuation.command_history, [])

    def test_rest_in_safe_posture(self):
        for posture in ("Crouch", "Sit", "SitRelax", "LyingBelly", "LyingBack"):
            self.assertTrue(self.nav.rest(posture))
        self.assertEqual(len(self.actuation.commands_of("rest")), 5)


class TestLocomotion(unittest.TestCase):
    """Test move_to, move_vel and move_stop."""

    def test_move_to(self):
        nav, actuation, localization, _, _ = make_navigation()
        self.assertTrue(nav.move_to(0.5, 0.0, math.pi / 2))
        self.assertAlmostEqual(actuation.commands_of("move_to")[0].goal.theta, math.pi / 2)
        self.assertAlmostEqual(localization.pose.x, 0.5)

    def test_move_to_failure(self):
        nav, actuation, _, _, _ = make_navigation()
        actuation.fail_next("fell down")
        self.assertFalse(nav.move_to(1.0, 0.0, 0.0))
        self.assertTrue(nav.session.tracker.is_idle())

    def test_move_vel_three_args_on_differential_base(self):
        nav, actuation, _, _, _ = make_navigation(holonomic=False)
        self.assertFalse(nav.move_vel(0.1, 0.1, 0.0))
        self.assertEqual(actuation.command_history, [])

    def test_move_vel_forms(self):
        nav, _, _, _, _ = make_navigation(holonomic=True)
        self.assertTrue(nav.move_vel(0.1, 0.0, 0.2))
        self.assertFalse(nav.move_vel(0.1, 0.2))

        nav, actuation, _, _, _ = make_navigation(holonomic=False)
        self.assertTrue(nav.move_vel(0.1, 0.2))
        sent = actuation.commands_of("move_vel")[0]
        self.assertEqual((sent.x, sent.y, sent.theta), (0.1, 0.0, 0.2))

    def test_move_vel_arity(self):
        nav, _, _, _, _ = make_navigation()
        with self.assertRaises(TypeError):
            nav.move_vel(0.1)

    def test_move_stop_idempotent(self):
        nav, _, _, _, _ = make_navigation()
        self.assertTrue(nav.move_stop())
        self.assertTrue(nav.move_stop())
        self.assertEqual(nav.status()["locomotion"], "idle")

    def test_move_stop_after_velocity(self):
        nav, _, _, _, _ = make_navigation()
        nav.move_vel(0.2, 0.0, 0.0)
        self.assertEqual(nav.status()["locomotion"], "background")
        self.assertTrue(nav.move_stop())
        self.assertEqual(nav.status()["locomotion"], "idle")

    def test_failed_velocity_replacement_is_still_stopped_on_close(self):
        nav, actuation, _, _, _ = make_navigation()
        self.assertTrue(nav.move_vel(0.1, 0.0, 0.0))
        actuation.fail_next("velocity rejected")

        self.assertFalse(nav.move_vel(0.2, 0.0, 0.0))
        self.assertEqual(nav.status()["locomotion"], "background")

        nav.close()
        self.assertEqual(actuation.stop_history, [ExecutionSlot.LOCOMOTION])

    def test_move_stop_unreachable(self):
        nav, actuation, _, _, _ = make_navigation()
        actuation.unreachable = True
        self.assertFalse(nav.move_stop())

    def test_busy_and_cross_slot(self):
        """Second blocking command on a busy slot fails, another slot succeeds."""
        nav, actuation, _, _, _ = make_navigation()
        actuation.hold_motions()
        results = {}
        walker = threading.Thread(target=lambda: results.update(walk=nav.move_to(1.0, 0.0, 0.0)))
        walker.start()
        self.assertTrue(actuation.motion_started.wait(2.0))

        self.assertFalse(nav.move_to(0.5, 0.0, 0.0))
        self.assertEqual(nav.status()["locomotion"], "blocking")

        actuation.motion_started.clear()
        looker = threading.Thread(target=lambda: results.update(look=nav.move_joint("Head", [0.2, 0.1], 0.5)))
        looker.start()
        self.assertTrue(actuation.motion_started.wait(2.0))
        self.assertEqual(nav.status()["head"], "blocking")

        actuation.release_motions()
        walker.join(2.0)
        looker.join(2.0)
        self.assertEqual(results, {"walk": True, "look": True})
        self.assertEqual(len(actuation.commands_of("move_to")), 1)


class TestPathOperation(unittest.TestCase):
    """Test move_along_path."""

    def setUp(self):
        self.nav, self.actuation, self.localization, self.obstacles, _ = make_navigation()

    def test_empty_path(self):
        self.assertFalse(self.nav.move_along_path([]))
        self.assertEqual(self.actuation.command_history, [])

    def test_completed(self):
        path = [Pose.planar(1.0, 0.0, 0.0), Pose.planar(1.0, 1.0, math.pi / 2)]

        self.assertTrue(self.nav.move_along_path(path))

        self.assertIs(self.nav.last_path_result.status, PathStatus.COMPLETED)
        self.assertTrue(self.localization.pose.is_close(path[1], 1e-9))

    def test_aborted_by_obstacle(self):
        path = [
            PoseStamped(Pose.planar(0.3, 0.0, 0.0), seq=seq, frame=Frame.ROBOT)
            for seq in range(3)
        ]
        self.obstacles.script([False, False, True])

        self.assertFalse(self.nav.move_along_path(path))

        result = self.nav.last_path_result
        self.assertTrue(result.aborted)
        self.assertIs(result.last_reached_waypoint, path[1])
        self.assertEqual(self.nav.status()["locomotion"], "idle")

    def test_failure_clears_last_result(self):
        self.nav.move_along_path([Pose.planar(1.0, 0.0, 0.0)])
        self.actuation.fail_next()
        self.assertFalse(self.nav.move_along_path([Pose.planar(2.0, 0.0, 0.0)]))
        self.assertIsNone(self.nav.last_path_result)

    def test_move_stop_cancels_running_path(self):
        path = [
            PoseStamped(Pose.planar(0.3, 0.0, 0.0), seq=seq, frame=Frame.ROBOT)
            for seq in range(3)
        ]
        self.actuation.hold_motions()
        results = {}
        walker = threading.Thread(target=lambda: results.update(path=self.nav.move_along_path(path)))
        walker.start()
        self.assertTrue(self.actuation.motion_started.wait(2.0))

        self.assertTrue(self.nav.move_stop())
        self.actuation.release_motions()
        walker.join(2.0)

        self.assertEqual(results, {"path": False})
        self.assertEqual(len(self.actuation.commands_of("move_to")), 1)
        self.assertTrue(self.nav.last_path_result.aborted)
        self.assertIsNone(self.nav.last_path_result.last_reached)
        self.assertEqual(self.nav.status()["locomotion"], "idle")


class TestPointing(unittest.TestCase):
    """Test point_arm and look_at_point frame handling."""

    def setUp(self):
        self.nav, self.actuation, self.localization, _, _ = make_navigation()
        self.localization.pose = Pose.planar(1.0, 0.0, math.pi / 2)

    def test_point_left_of_robot(self):
        # Robot faces +Y, so global -X is on its left
        self.assertTrue(self.nav.point_arm(0.0, 1.0, 0.5))
        sent = self.actuation.commands_of("point_arm")[0]
        self.assertEqual(sent.chain, "LArm")
        self.assertAlmostEqual(sent.x, 1.0)
        self.assertAlmostEqual(sent.y, 1.0)
        self.assertAlmostEqual(sent.z, 0.5)

    def test_point_right_of_robot(self):
        self.assertTrue(self.nav.point_arm(2.0, 1.0, 0.5))
        self.assertEqual(self.actuation.commands_of("point_arm")[0].chain, "RArm")

    def test_look_at_point(self):
        self.assertTrue(self.nav.look_at_point(1.0, 3.0, 0.0))
        sent = self.actuation.commands_of("look_at")[0]
        self.assertAlmostEqual(sent.x, 3.0)
        self.assertAlmostEqual(sent.y, 0.0)

    def test_without_localization(self):
        self.localization.set_unavailable()
        self.assertFalse(self.nav.point_arm(1.0, 1.0, 1.0))
        self.assertFalse(self.nav.look_at_point(1.0, 1.0, 1.0))
        self.assertEqual(self.actuation.command_history, [])


class TestPoseAndTransforms(unittest.TestCase):
    """Test pose round trip and transform queries."""

    def setUp(self):
        self.nav, _, self.localization, _, self.kinematics = make_navigation()

    def test_global_pose_round_trip(self):
        target = Pose.planar(2.5, -0.7, 1.2)

        self.assertTrue(self.nav.set_global_pose(target))
        stamped = self.nav.get_global_pose()

        self.assertTrue(stamped.pose.is_close(target, self.nav.config.localization.pose_tolerance))

    def test_set_global_pose_accepts_stamped(self):
        target = PoseStamped(Pose.planar(1.0, 1.0, 0.0))
        self.assertTrue(self.nav.set_global_pose(target))
        self.assertEqual(self.localization.pose, target.pose)

    def test_rejected_correction(self):
        self.localization.accept_corrections = False
        self.assertFalse(self.nav.set_global_pose(Pose()))

    def test_get_global_pose_unavailable(self):
        self.localization.set_unavailable()
        self.assertIsNone(self.nav.get_global_pose())

    def test_get_transform(self):
        matrix = np.eye(4)
        matrix[0, 3] = 0.05
        self.kinematics.set_transform("LArm", Space.TORSO, matrix)

        result = self.nav.get_transform("LArm", 0)

        self.assertEqual(result.shape, (4, 4))
        self.assertEqual(result[0, 3], 0.05)

    def test_get_transform_failure(self):
        self.assertIsNone(self.nav.get_transform("Tail", Space.TORSO))
        self.kinematics.unreachable = True
        self.assertIsNone(self.nav.get_transform("Head", Space.ROBOT))


class TestSessionLifecycle(unittest.TestCase):
    """Test close and context manager behavior."""

    def test_context_manager_stops_base(self):
        nav, actuation, _, _, _ = make_navigation()
        with nav:
            nav.move_vel(0.1, 0.0, 0.0)
        self.assertEqual(actuation.stop_history, [ExecutionSlot.LOCOMOTION])
        self.assertTrue(nav.session.closed)

    def test_commands_after_close_fail(self):
        nav, actuation, _, _, _ = make_navigation()
        nav.close()
        self.assertFalse(nav.move_to(1.0, 0.0, 0.0))
        self.assertFalse(nav.move_stop())
        self.assertEqual(actuation.command_history, [])

    def test_unexpected_error_collapses_to_false(self):
        nav, actuation, _, _, _ = make_navigation()

        def explode(command):
            raise RuntimeError("driver crashed")

        actuation.execute_motion = explode
        with self.assertLogs("navigation", level="ERROR"):
            self.assertFalse(nav.move_to(1.0, 0.0, 0.0))
        self.assertTrue(nav.session.tracker.is_idle())


class TestFromNaoqi(unittest.TestCase):
    """Test wiring onto a NAOqi session."""

    def setUp(self):
        self.services = {
            name: MagicMock() for name in ("ALMotion", "ALRobotPosture", "ALTracker", "ALMemory")
        }
        self.qi_session = MagicMock()
        self.qi_session.service.side_effect = self.services.__getitem__

    def test_config_reaches_adapters(self):
        config = NavigationConfig()
        config.robot.holonomic = False
        config.safety.obstacle_distance_m = 0.5

        nav = Navigation.from_naoqi(self.qi_session, config)

        self.assertFalse(nav.session.actuation.holonomic_capable())
        self.assertEqual(nav.safety.obstacle_signal.threshold_m, 0.5)
        self.assertTrue(nav.move_vel(0.1, 0.2))
        self.services["ALMotion"].move.assert_called_once_with(0.1, 0.0, 0.2)

    def test_odometry_pose_round_trip(self):
        nav = Navigation.from_naoqi(self.qi_session, NavigationConfig())
        self.services["ALMotion"].getRobotPosition.return_value = [0.0, 0.0, 0.0]

        self.assertTrue(nav.set_global_pose(Pose.planar(1.0, 2.0, 0.0)))
        stamped = nav.get_global_pose()

        self.assertAlmostEqual(stamped.pose.x, 1.0)
        self.assertAlmostEqual(stamped.pose.y, 2.0)


if __name__ == '__main__':
    unittest.main()
