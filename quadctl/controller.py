"""Geometric position and attitude controller on SO(3)."""

import logging
import math
from dataclasses import dataclass, field

import numpy as np
from scipy.linalg import logm

from quadctl.so3 import hat, vee

logger = logging.getLogger(__name__)

FIRST_STEP_DT = 0.01
_E3 = np.array([0.0, 0.0, 1.0])


@dataclass
class VehicleState:
    """Measured vehicle state in the NED frame."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    stamp_sec: int = 0
    stamp_nanosec: int = 0


@dataclass(frozen=True)
class ControlOutput:
    """Collective thrust, body torques and normalised per-motor thrusts."""

    thrust: float
    torque: np.ndarray
    motor_thrusts: np.ndarray
    desired_rotation: np.ndarray


def _unit(vector):
    return vector / math.sqrt(float(vector @ vector))


class GeometricController:
    """Tracks a desired position and heading with a geometric SO(3) law."""

    def __init__(self, params):
        self.params = params
        self._mixer_inverse = params.mixer_inverse()

        self.desired_position = np.zeros(3)
        self.desired_velocity = np.zeros(3)
        self.heading = np.array([0.0, 1.0, 0.0])

        self.desired_rotation = np.eye(3)
        self.previous_desired_rotation = np.eye(3)
        self.desired_angular_velocity = np.zeros(3)
        self.desired_angular_acceleration = np.zeros(3)
        self.previous_desired_angular_velocity = np.zeros(3)
        self.integral_error = np.zeros(3)

        self.thrust_torque = np.zeros(4)
        self.motor_thrusts = np.zeros(4)

        self._prev_sec = 0.0
        self._prev_nsec = 0.0

    def reset_desired(self, position, rotation):
        """Hold the given position and take the heading from the body x axis."""
        self.desired_position = np.asarray(position, dtype=float).reshape(3).copy()
        self.heading = np.asarray(rotation, dtype=float)[:, 0].copy()

    def compute(self, state):
        """Run one control step; returns ``None`` if the sample is not new."""
        p = self.params
        sec, nsec = float(state.stamp_sec), float(state.stamp_nanosec)
        timestamp = sec + nsec * 1e-9
        prev_timestamp = self._prev_sec + self._prev_nsec * 1e-9
        if timestamp == prev_timestamp:
            return None

        first = prev_timestamp == 0
        if first:
            dt = FIRST_STEP_DT
        else:
            dt = (sec - self._prev_sec) + (nsec - self._prev_nsec) * 1e-9

        position = np.asarray(state.position, dtype=float).reshape(3)
        velocity = np.asarray(state.velocity, dtype=float).reshape(3)
        rotation = np.asarray(state.rotation, dtype=float)
        omega = np.asarray(state.angular_velocity, dtype=float).reshape(3)

        e_pos = position - self.desired_position
        e_vel = velocity - self.desired_velocity
        self.integral_error = self.integral_error + e_pos * dt

        b3_nume = (
            -p.position_gain @ e_pos
            - p.velocity_gain @ e_vel
            - p.integral_gain @ self.integral_error
            - p.mass * p.gravity * _E3
        )
        b3 = -_unit(b3_nume)
        b2 = _unit(np.cross(b3, self.heading))
        b1 = _unit(np.cross(b2, b3))
        new_desired = np.column_stack([b1, b2, b3])

        if first:
            self.previous_desired_rotation = new_desired.copy()
        else:
            if dt == 0:
                logger.warning("DT: %.3f, ts:%f", dt * 1000, timestamp)
            self.previous_desired_rotation = self.desired_rotation

        self._prev_sec, self._prev_nsec = sec, nsec
        self.desired_rotation = new_desired

        relative = self.previous_desired_rotation.T @ self.desired_rotation
        with np.errstate(divide="ignore", invalid="ignore"):
            self.desired_angular_velocity = vee(np.real(logm(relative)) / dt)

        # The feed-forward angular acceleration is deliberately held at zero.
        self.desired_angular_acceleration = np.zeros(3)
        self.previous_desired_angular_velocity = self.desired_angular_velocity

        r_des = self.desired_rotation
        omega_des = self.desired_angular_velocity
        e_rot = vee(0.5 * (r_des.T @ rotation - rotation.T @ r_des))
        e_omega = omega - rotation.T @ r_des @ omega_des

        thrust = float(-b3_nume @ (rotation @ _E3))
        inertia = p.inertia_matrix
        torque = (
            -p.rotation_gain @ e_rot
            - p.rate_gain @ e_omega
            + np.cross(omega, inertia @ omega)
            - inertia
            @ (
                hat(omega) @ rotation.T @ r_des @ omega_des
                - rotation.T @ r_des @ self.desired_angular_acceleration
            )
        )
        logger.info(
            "Thrust : %.3f, Torque : %.3f %.3f %.3f", thrust, torque[0], torque[1], torque[2]
        )

        self.thrust_torque = np.concatenate([[thrust], torque])
        self.motor_thrusts = (self._mixer_inverse @ self.thrust_torque) / p.max_motor_thrust
        if np.isnan(self.motor_thrusts).any():
            logger.warning("PWM: %.3f, %.3f, %.3f, %.3f", *self.motor_thrusts)
        logger.info("PWM: %.3f, %.3f, %.3f, %.3f", *self.motor_thrusts)

        return ControlOutput(
            thrust=thrust,
            torque=torque.copy(),
            motor_thrusts=self.motor_thrusts.copy(),
            desired_rotation=r_des.copy(),
        )

    def thrust_setpoint(self):
        """Return the normalised thrust setpoint ``(x, y, z)``; z points down."""
        return np.array([0.0, 0.0, -self.thrust_torque[0] / self.params.max_thrust])

    def torque_setpoint(self):
        """Return the body torques normalised by their maxima."""
        return self.thrust_torque[1:] / np.asarray(self.params.max_torque, dtype=float)