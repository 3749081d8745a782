"""
Hardware subsystem for navigation.

Provides collaborator abstractions plus NAOqi and mock implementations.
"""

from hardware.interfaces import ActuationOutcome, IActuation, ILocalization, IObstacleSignal, IKinematics
from hardware.naoqi_impl import NaoqiActuation, NaoqiKinematics, NaoqiOdometryLocalization, SonarObstacleSignal
from hardware.mock_hardware import MockActuation, MockLocalization, MockObstacleSignal, MockKinematics

__all__ = [
    'ActuationOutcome',
    'IActuation',
    'ILocalization',
    'IObstacleSignal',
    'IKinematics',
    'NaoqiActuation',
    'NaoqiKinematics',
    'NaoqiOdometryLocalization',
    'SonarObstacleSignal',
    'MockActuation',
    'MockLocalization',
    'MockObstacleSignal',
    'MockKinematics',
]
