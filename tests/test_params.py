import math

import numpy as np
import pytest

from quadctl.params import ControllerParameters


def test_empty_mapping_gives_defaults():
    assert ControllerParameters.from_mapping({}) == ControllerParameters()


def test_default_values_match_declared_defaults():
    params = ControllerParameters()
    assert params.mass == 1.0
    assert params.gravity == 9.81
    assert params.inertia == (0.01, 0.01, 0.01)


def test_from_mapping_reads_launch_names():
    params = ControllerParameters.from_mapping(
        {
            "m_b": 2.15,
            "J_bx": 0.023847,
            "J_by": 0.023950,
            "J_bz": 0.044,
            "T_max": 34.0,
            "Tau_max_x": 2.97,
            "Tau_max_y": 2.97,
            "Tau_max_z": 0.274,
            "t_max": 10.0,
            "K_pos": [5.0, 5.0, 15.0],
        }
    )
    assert params.mass == 2.15
    assert params.inertia == (0.023847, 0.023950, 0.044)
    assert params.max_thrust == 34.0
    assert params.max_torque == (2.97, 2.97, 0.274)
    assert params.max_motor_thrust == 10.0
    assert params.k_pos == (5.0, 5.0, 15.0)
    np.testing.assert_allclose(params.position_gain, np.diag([5.0, 5.0, 15.0]))


def test_drot_is_converted_to_radians():
    params = ControllerParameters.from_mapping({"drot": 180.0})
    assert params.rotation_step == pytest.approx(math.pi)


def test_unknown_parameter_rejected():
    with pytest.raises(ValueError):
        ControllerParameters.from_mapping({"not_a_parameter": 1.0})


def test_short_gain_vector_rejected():
    with pytest.raises(ValueError):
        ControllerParameters.from_mapping({"K_vel": [1.0, 2.0]})


def test_long_gain_vector_uses_first_three():
    params = ControllerParameters.from_mapping({"K_Rot": [0.5, 0.5, 0.1, 9.0]})
    assert params.k_rot == (0.5, 0.5, 0.1)


def test_mixer_layout():
    params = ControllerParameters.from_mapping({"d": 0.2, "c_tau_f": 0.016})
    w = params.mixer()
    np.testing.assert_allclose(w[0], [1.0, 1.0, 1.0, 1.0])
    np.testing.assert_allclose(w[1], [-0.2, 0.2, 0.2, -0.2])
    np.testing.assert_allclose(w[2], [0.2, -0.2, 0.2, -0.2])
    np.testing.assert_allclose(w[3], [0.016, 0.016, -0.016, -0.016])


def test_mixer_inverse_is_inverse():
    params = ControllerParameters.from_mapping({"d": 0.2, "c_tau_f": 0.016})
    np.testing.assert_allclose(params.mixer() @ params.mixer_inverse(), np.eye(4), atol=1e-12)


def test_singular_mixer_raises():
    params = ControllerParameters(arm_length=0.0)
    with pytest.raises(np.linalg.LinAlgError):
        params.mixer_inverse()