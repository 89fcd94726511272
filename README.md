# quadctl

This package has a geometric tracking controller for quadrotors on SO(3). It
also has the offboard flight state machine that drives the controller, and
helpers for rotations and attitude.

## Installation

```
pip install .
```

To install the test tools as well:

```
pip install ".[test]"
```

## Modules

- `quadctl.so3` has the rotation helpers.
  - `rpy2r(phi, theta, psi)` builds a rotation matrix from roll, pitch and yaw,
    and `r2rpy` goes the other way.
  - `r2q` gives the quaternion `(w, x, y, z)` of a rotation matrix.
  - `hat` and `vee` convert between 3-vectors and skew-symmetric matrices.
  - `euler_rate_matrix` and `euler_rate_matrix_dot` give the matrix that maps
    Euler-angle rates to body rates, and its time derivative.
- `quadctl.orientation` has the quaternion and frame conversions.
  - `quaternion_to_rotation_matrix`, `rotation_matrix_to_quaternion` and
    `convert_nwu_to_ned` convert orientations.
  - `Odometry` is a dataclass that holds a pose and twist sample.
  - `OptitrackOdometryListener.update(odometry)` stores the latest sample. It
    keeps the orientation both in NWU and in NED, and it logs at most once per
    second.
- `quadctl.rpy` has `RpyPublisher`. Each call to `tick()` builds a
  `Vector3Stamped` from the held `roll`, `pitch` and `yaw`. It passes the
  message to the `publish` callable you supplied and also returns it.
- `quadctl.params` has `ControllerParameters`, a frozen dataclass. It holds the
  mass, gravity, inertia, gains, thrust and torque limits and the command step
  sizes.
  - `from_mapping` reads parameter names such as `m_b`, `K_pos`, `J_bx`,
    `Tau_max_x` and `drot`. `drot` is given in degrees. Any name it does not
    know raises `ValueError`.
  - `mixer()` returns the 4×4 motor mixing matrix and `mixer_inverse()` returns
    its inverse.
- `quadctl.controller` has `GeometricController`.
  - `compute(state)` takes a `VehicleState` and returns a `ControlOutput`. The
    output holds the collective thrust, the body torque, the normalised motor
    thrusts and the desired rotation.
  - If the sample's timestamp is the same as the previous one, `compute`
    returns `None`.
  - `thrust_setpoint()` and `torque_setpoint()` give the last output
    normalised by its limits.
- `quadctl.node` has `MotorControl`, the flight state machine. Its states
  (`FlightState`) run in order: init, offboard requested, offboard entered,
  waiting for stable offboard mode, arm requested, armed, flight.
  - It reacts to UI commands (`UiCommand`) and to replies to vehicle commands
    (`CommandResult`).
  - `tick()` raises `RuntimeError` when a request to enter offboard mode or to
    arm is refused.

## Example

```python
import numpy as np
from quadctl.params import ControllerParameters
from quadctl.controller import GeometricController, VehicleState

params = ControllerParameters.from_mapping({"m_b": 2.15, "T_max": 34.0})
controller = GeometricController(params)
controller.reset_desired(np.zeros(3), np.eye(3))

output = controller.compute(VehicleState(stamp_sec=1))
print(output.thrust, output.torque, output.motor_thrusts)
print(controller.thrust_setpoint(), controller.torque_setpoint())
```

You connect `MotorControl` to the outside world with three callables:

- `send_command` receives each `VehicleCommand`.
- `publish` receives `(topic, message)` pairs.
- `clock` returns the current time in nanoseconds.

Feed the node with these calls:

- `on_optitrack_odometry(odometry)` for motion-capture samples.
- `on_vehicle_odometry(angular_velocity)` for body rates.
- `on_ui_command(command)` for UI commands.
- `on_command_response(result)` for replies to vehicle commands.

Then call `tick()` every 5 ms.

## What the package does not do

The package has no command-line program. It has no messaging middleware, and
it opens no network connections. Nothing here runs a timer loop on its own, and
nothing subscribes to or publishes on real topics. Moving messages between the
callables described above and a real vehicle or motion-capture system is up to
the code that embeds the package.

## Tests

```
pytest
```