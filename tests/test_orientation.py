import logging

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from quadctl.orientation import (
    Odometry,
    OptitrackOdometryListener,
    convert_nwu_to_ned,
    quaternion_to_rotation_matrix,
    rotation_matrix_to_quaternion,
)


def _unit(q):
    q = np.asarray(q, dtype=float)
    return q / np.linalg.norm(q)


QUATERNIONS = [
    _unit((0.9, 0.1, 0.2, 0.3)),
    _unit((0.1, 0.9, 0.2, 0.1)),
    _unit((0.1, 0.2, 0.9, 0.1)),
    _unit((0.1, 0.1, 0.2, 0.9)),
    _unit((0.0, 1.0, 0.0, 0.0)),
    _unit((-0.3, 0.5, -0.6, 0.2)),
]


@pytest.mark.parametrize("q", QUATERNIONS)
def test_rotation_matrix_is_proper(q):
    r = quaternion_to_rotation_matrix(q)
    assert np.allclose(r.T @ r, np.eye(3))
    assert np.linalg.det(r) == pytest.approx(1.0)


@pytest.mark.parametrize("q", QUATERNIONS)
def test_rotation_matrix_matches_scipy(q):
    w, x, y, z = q
    assert np.allclose(
        quaternion_to_rotation_matrix(q), Rotation.from_quat([x, y, z, w]).as_matrix()
    )


@pytest.mark.parametrize("q", QUATERNIONS)
def test_quaternion_round_trip(q):
    back = rotation_matrix_to_quaternion(quaternion_to_rotation_matrix(q))
    assert np.linalg.norm(back) == pytest.approx(1.0)
    assert abs(float(np.dot(back, q))) == pytest.approx(1.0)


def test_identity_round_trip():
    assert np.allclose(rotation_matrix_to_quaternion(np.eye(3)), [1.0, 0.0, 0.0, 0.0])


@pytest.mark.parametrize("q", QUATERNIONS)
def test_nwu_to_ned_flips_y_and_z(q):
    w, x, y, z = q
    ned = convert_nwu_to_ned(q)
    assert np.linalg.norm(ned) == pytest.approx(1.0)
    assert abs(float(np.dot(ned, [w, x, -y, -z]))) == pytest.approx(1.0)


@pytest.mark.parametrize("q", QUATERNIONS)
def test_nwu_to_ned_is_an_involution(q):
    twice = convert_nwu_to_ned(convert_nwu_to_ned(q))
    assert np.linalg.norm(twice) == pytest.approx(1.0)
    assert abs(float(np.dot(twice, q))) == pytest.approx(1.0)


def test_nwu_to_ned_keeps_identity():
    assert np.allclose(convert_nwu_to_ned([1.0, 0.0, 0.0, 0.0]), [1.0, 0.0, 0.0, 0.0])


def test_quaternion_rejects_wrong_shape():
    with pytest.raises(ValueError):
        quaternion_to_rotation_matrix([1.0, 0.0, 0.0])


def test_rotation_matrix_rejects_wrong_shape():
    with pytest.raises(ValueError):
        rotation_matrix_to_quaternion(np.eye(4))


def test_listener_stores_latest_sample():
    listener = OptitrackOdometryListener()
    q = QUATERNIONS[0]
    odometry = Odometry(
        position=(1.0, 2.0, 3.0),
        orientation=tuple(q),
        linear_velocity=(0.1, 0.2, 0.3),
        angular_velocity=(0.01, 0.02, 0.03),
    )
    listener.update(odometry)
    assert np.allclose(listener.position, odometry.position)
    assert np.allclose(listener.velocity, odometry.linear_velocity)
    assert np.allclose(listener.angular_velocity, odometry.angular_velocity)
    assert np.allclose(listener.orientation_nwu, q)
    assert np.allclose(listener.orientation_ned, convert_nwu_to_ned(q))


def test_listener_rejects_bad_orientation():
    listener = OptitrackOdometryListener()
    with pytest.raises(ValueError):
        listener.update(Odometry(orientation=(1.0, 0.0, 0.0)))


def test_listener_throttles_logging(caplog):
    caplog.set_level(logging.INFO, logger="quadctl.orientation")
    listener = OptitrackOdometryListener()
    caplog.clear()
    listener.update(Odometry(position=(1.0, 2.0, 3.0)))
    listener.update(Odometry(position=(4.0, 5.0, 6.0)))
    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 1
    assert messages[0].startswith("Position: [1.00, 2.00, 3.00]")