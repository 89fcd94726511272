"""Controller parameters and the motor mixing matrix."""

import math
from dataclasses import dataclass, fields

import numpy as np


def _gains(name, values):
    gains = [float(v) for v in values]
    if len(gains) < 3:
        raise ValueError(f"parameter {name!r} needs 3 values, got {len(gains)}")
    return tuple(gains[:3])


_SCALARS = {
    "m_b": "mass",
    "g": "gravity",
    "T_max": "max_thrust",
    "d": "arm_length",
    "c_tau_f": "torque_coefficient",
    "t_max": "max_motor_thrust",
    "dz_takeoff": "takeoff_step",
    "dxy": "xy_step",
    "dz": "z_step",
}

_GAINS = {
    "K_pos": "k_pos",
    "K_vel": "k_vel",
    "K_int": "k_int",
    "K_Rot": "k_rot",
    "K_omega": "k_omega",
}

_INERTIA = ("J_bx", "J_by", "J_bz")
_MAX_TORQUE = ("Tau_max_x", "Tau_max_y", "Tau_max_z")


@dataclass(frozen=True)
class ControllerParameters:
    """Physical constants, gains and command step sizes of the controller.

    ``rotation_step`` is in radians; the ``drot`` parameter of
    :meth:`from_mapping` is given in degrees.
    """

    mass: float = 1.0
    gravity: float = 9.81
    inertia: tuple = (0.01, 0.01, 0.01)
    max_thrust: float = 1.0
    max_torque: tuple = (1.0, 1.0, 1.0)
    arm_length: float = 1.0
    torque_coefficient: float = 1.0
    max_motor_thrust: float = 1.0
    k_pos: tuple = (1.0, 1.0, 1.0)
    k_vel: tuple = (1.0, 1.0, 1.0)
    k_int: tuple = (1.0, 1.0, 1.0)
    k_rot: tuple = (1.0, 1.0, 1.0)
    k_omega: tuple = (1.0, 1.0, 1.0)
    takeoff_step: float = 1.0
    xy_step: float = 1.0
    z_step: float = 1.0
    rotation_step: float = math.radians(1.0)

    @classmethod
    def from_mapping(cls, values):
        """Build parameters from launch-file names such as ``m_b`` and ``K_pos``.

        Missing names keep their defaults; unknown names raise ``ValueError``.
        """
        defaults = cls()
        known = set(_SCALARS) | set(_GAINS) | set(_INERTIA) | set(_MAX_TORQUE) | {"drot"}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"unknown parameters: {', '.join(unknown)}")

        kwargs = {}
        for key, attr in _SCALARS.items():
            if key in values:
                kwargs[attr] = float(values[key])
        for key, attr in _GAINS.items():
            if key in values:
                kwargs[attr] = _gains(key, values[key])
        kwargs["inertia"] = tuple(
            float(values.get(key, default)) for key, default in zip(_INERTIA, defaults.inertia)
        )
        kwargs["max_torque"] = tuple(
            float(values.get(key, default))
            for key, default in zip(_MAX_TORQUE, defaults.max_torque)
        )
        if "drot" in values:
            kwargs["rotation_step"] = float(values["drot"]) * math.pi / 180.0
        return cls(**kwargs)

    def as_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def inertia_matrix(self):
        return np.diag(self.inertia).astype(float)

    @property
    def position_gain(self):
        return np.diag(self.k_pos).astype(float)

    @property
    def velocity_gain(self):
        return np.diag(self.k_vel).astype(float)

    @property
    def integral_gain(self):
        return np.diag(self.k_int).astype(float)

    @property
    def rotation_gain(self):
        return np.diag(self.k_rot).astype(float)

    @property
    def rate_gain(self):
        return np.diag(self.k_omega).astype(float)

    def mixer(self):
        """Return the 4x4 matrix mapping motor thrusts to total thrust and torques."""
        d = self.arm_length
        c = self.torque_coefficient
        return np.array(
            [
                [1.0, 1.0, 1.0, 1.0],
                [-d, d, d, -d],
                [d, -d, d, -d],
                [c, c, -c, -c],
            ]
        )

    def mixer_inverse(self):
        """Return the inverse of :meth:`mixer`; raises ``LinAlgError`` if singular."""
        return np.linalg.inv(self.mixer())