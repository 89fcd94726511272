"""Motion-capture odometry handling and NWU-to-NED orientation conversion.

Quaternions are ordered ``(w, x, y, z)``.
"""

import logging
import math
import time
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

TOPIC = "/optitrackKYJLJW"
LOG_INTERVAL_S = 1.0

_NWU_TO_NED = np.diag([1.0, -1.0, -1.0])


@dataclass
class Odometry:
    """A pose and twist sample with its timestamp."""

    position: tuple = (0.0, 0.0, 0.0)
    orientation: tuple = (1.0, 0.0, 0.0, 0.0)
    linear_velocity: tuple = (0.0, 0.0, 0.0)
    angular_velocity: tuple = (0.0, 0.0, 0.0)
    stamp_sec: int = 0
    stamp_nanosec: int = 0


def _quaternion(q):
    array = np.asarray(q, dtype=float)
    if array.shape != (4,):
        raise ValueError(f"expected a quaternion of 4 components, got shape {array.shape}")
    return array


def quaternion_to_rotation_matrix(q):
    """Return the rotation matrix of the quaternion ``(w, x, y, z)``."""
    w, x, y, z = _quaternion(q)
    return np.array(
        [
            [1 - 2 * y * y - 2 * z * z, 2 * x * y - 2 * w * z, 2 * x * z + 2 * w * y],
            [2 * x * y + 2 * w * z, 1 - 2 * x * x - 2 * z * z, 2 * y * z - 2 * w * x],
            [2 * x * z - 2 * w * y, 2 * y * z + 2 * w * x, 1 - 2 * x * x - 2 * y * y],
        ]
    )


def rotation_matrix_to_quaternion(rotation):
    """Return the quaternion ``(w, x, y, z)`` of a rotation matrix."""
    r = np.asarray(rotation, dtype=float)
    if r.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, got shape {r.shape}")

    diagonal_sum = r[0, 0] + r[1, 1] + r[2, 2]
    if diagonal_sum > 0:
        s = 0.5 / math.sqrt(diagonal_sum + 1.0)
        return np.array(
            [
                0.25 / s,
                (r[2, 1] - r[1, 2]) * s,
                (r[0, 2] - r[2, 0]) * s,
                (r[1, 0] - r[0, 1]) * s,
            ]
        )
    if r[0, 0] > r[1, 1] and r[0, 0] > r[2, 2]:
        s = 2.0 * math.sqrt(1.0 + r[0, 0] - r[1, 1] - r[2, 2])
        return np.array(
            [
                (r[2, 1] - r[1, 2]) / s,
                0.25 * s,
                (r[0, 1] + r[1, 0]) / s,
                (r[0, 2] + r[2, 0]) / s,
            ]
        )
    if r[1, 1] > r[2, 2]:
        s = 2.0 * math.sqrt(1.0 + r[1, 1] - r[0, 0] - r[2, 2])
        return np.array(
            [
                (r[0, 2] - r[2, 0]) / s,
                (r[0, 1] + r[1, 0]) / s,
                0.25 * s,
                (r[1, 2] + r[2, 1]) / s,
            ]
        )
    s = 2.0 * math.sqrt(1.0 + r[2, 2] - r[0, 0] - r[1, 1])
    return np.array(
        [
            (r[1, 0] - r[0, 1]) / s,
            (r[0, 2] + r[2, 0]) / s,
            (r[1, 2] + r[2, 1]) / s,
            0.25 * s,
        ]
    )


def convert_nwu_to_ned(q_nwu):
    """Re-express an orientation given in the NWU frame in the NED frame."""
    r_nwu = quaternion_to_rotation_matrix(q_nwu)
    r_ned = _NWU_TO_NED @ r_nwu @ _NWU_TO_NED
    return rotation_matrix_to_quaternion(r_ned)


class OptitrackOdometryListener:
    """Keeps the latest motion-capture odometry, with orientation in NED."""

    def __init__(self):
        self.position = np.zeros(3)
        self.orientation_nwu = np.array([1.0, 0.0, 0.0, 0.0])
        self.orientation_ned = np.array([1.0, 0.0, 0.0, 0.0])
        self.velocity = np.zeros(3)
        self.angular_velocity = np.zeros(3)
        self._last_log = None
        logger.info("OptiTrack odometry subscriber initialized")

    def update(self, odometry):
        """Store a new odometry sample and log it at most once per second."""
        self.position = np.asarray(odometry.position, dtype=float).copy()
        self.orientation_nwu = _quaternion(odometry.orientation).copy()
        self.orientation_ned = convert_nwu_to_ned(self.orientation_nwu)
        self.velocity = np.asarray(odometry.linear_velocity, dtype=float).copy()
        self.angular_velocity = np.asarray(odometry.angular_velocity, dtype=float).copy()

        now = time.monotonic()
        if self._last_log is None or now - self._last_log >= LOG_INTERVAL_S:
            self._last_log = now
            logger.info(
                "Position: [%.2f, %.2f, %.2f], Velocity: [%.2f, %.2f, %.2f]\n"
                "NWU Quaternion: [%.2f, %.2f, %.2f, %.2f]\n"
                "NED Quaternion: [%.2f, %.2f, %.2f, %.2f]",
                *self.position,
                *self.velocity,
                *self.orientation_nwu,
                *self.orientation_ned,
            )