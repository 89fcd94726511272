"""Rotation-group helpers: quaternions, Euler angles and the hat/vee maps.

Quaternions are ``numpy`` arrays ordered ``(w, x, y, z)``.  Euler angles follow
the roll-pitch-yaw (``phi``, ``theta``, ``psi``) convention with
``R = Rz(psi) @ Ry(theta) @ Rx(phi)``.
"""

import math

import numpy as np


def _matrix3(matrix):
    array = np.asarray(matrix, dtype=float)
    if array.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, got shape {array.shape}")
    return array


def _vector3(vector):
    array = np.asarray(vector, dtype=float)
    if array.shape not in ((3,), (3, 1)):
        raise ValueError(f"expected a 3-vector, got shape {array.shape}")
    return array.reshape(3)


def _sqrt(value):
    # A slightly negative square (rounding) yields NaN rather than an exception.
    return math.sqrt(value) if value >= 0.0 else math.nan


def r2q(rotation):
    """Return the unit quaternion ``(w, x, y, z)`` of a rotation matrix.

    The component of largest magnitude is non-negative; the signs of the
    others follow from the off-diagonal entries.
    """
    (r11, r12, r13), (r21, r22, r23), (r31, r32, r33) = _matrix3(rotation).tolist()

    q0 = _sqrt(0.25 * (r11 + r22 + r33 + 1.0))
    q1 = _sqrt(0.25 * (r11 - r22 - r33 + 1.0))
    q2 = _sqrt(0.25 * (-r11 + r22 - r33 + 1.0))
    q3 = _sqrt(0.25 * (-r11 - r22 + r33 + 1.0))

    if q0 >= q1 and q0 >= q2 and q0 >= q3:
        q1 = math.copysign(q1, r32 - r23)
        q2 = math.copysign(q2, r13 - r31)
        q3 = math.copysign(q3, r21 - r12)
    elif q1 >= q0 and q1 >= q2 and q1 >= q3:
        q0 = math.copysign(q0, r32 - r23)
        q2 = math.copysign(q2, r21 + r12)
        q3 = math.copysign(q3, r13 + r31)
    elif q2 >= q0 and q2 >= q1 and q2 >= q3:
        q0 = math.copysign(q0, r13 - r31)
        q1 = math.copysign(q1, r21 + r12)
        q3 = math.copysign(q3, r32 + r23)
    elif q3 >= q0 and q3 >= q1 and q3 >= q2:
        q0 = math.copysign(q0, r21 - r12)
        q1 = math.copysign(q1, r31 + r13)
        q2 = math.copysign(q2, r32 + r23)

    return np.array([q0, q1, q2, q3])


def r2rpy(rotation):
    """Return ``(roll, pitch, yaw)`` in radians for a rotation matrix."""
    m = _matrix3(rotation)
    roll = math.atan2(m[2, 1], m[2, 2])
    pitch = math.atan2(-m[2, 0], math.sqrt(m[2, 1] ** 2 + m[2, 2] ** 2))
    yaw = math.atan2(m[1, 0], m[0, 0])
    return np.array([roll, pitch, yaw])


def rpy2r(phi, theta, psi):
    """Return the rotation matrix for roll ``phi``, pitch ``theta``, yaw ``psi``."""
    sphi, cphi = math.sin(phi), math.cos(phi)
    sth, cth = math.sin(theta), math.cos(theta)
    spsi, cpsi = math.sin(psi), math.cos(psi)
    return np.array(
        [
            [cpsi * cth, cpsi * sphi * sth - cphi * spsi, sphi * spsi + cphi * cpsi * sth],
            [cth * spsi, cphi * cpsi + sphi * spsi * sth, cphi * spsi * sth - cpsi * sphi],
            [-sth, cth * sphi, cphi * cth],
        ]
    )


def euler_rate_matrix(phi, theta):
    """Return the matrix mapping Euler-angle rates to body angular rates."""
    sphi, cphi = math.sin(phi), math.cos(phi)
    sth, cth = math.sin(theta), math.cos(theta)
    return np.array(
        [
            [1.0, 0.0, -sth],
            [0.0, cphi, sphi * cth],
            [0.0, -sphi, cphi * cth],
        ]
    )


def euler_rate_matrix_dot(phi, theta, phidot, thetadot):
    """Return the time derivative of :func:`euler_rate_matrix`."""
    sphi, cphi = math.sin(phi), math.cos(phi)
    sth, cth = math.sin(theta), math.cos(theta)
    return np.array(
        [
            [0.0, 0.0, -cth * thetadot],
            [0.0, -sphi * phidot, cphi * cth * phidot - sphi * sth * thetadot],
            [0.0, -cphi * phidot, -sphi * cth * phidot - cphi * sth * thetadot],
        ]
    )


def hat(p):
    """Return the skew-symmetric matrix ``P`` with ``P @ v == cross(p, v)``."""
    x, y, z = _vector3(p)
    return np.array(
        [
            [0.0, -z, y],
            [z, 0.0, -x],
            [-y, x, 0.0],
        ]
    )


def vee(matrix):
    """Return the vector of a skew-symmetric matrix; the inverse of :func:`hat`."""
    m = _matrix3(matrix)
    return np.array([m[2, 1], m[0, 2], m[1, 0]])