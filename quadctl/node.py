"""Flight-mode state machine that drives the geometric controller.

The node talks to the outside world through three callables: ``send_command``
receives each :class:`VehicleCommand`, ``publish`` receives ``(topic, message)``
pairs and ``clock`` returns the current time in nanoseconds.  Replies to
commands are fed back through :meth:`MotorControl.on_command_response`.
"""

import enum
import logging
import math
import time
from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np

from quadctl.controller import GeometricController, VehicleState
from quadctl.orientation import quaternion_to_rotation_matrix
from quadctl.params import ControllerParameters
from quadctl.rpy import Vector3Stamped
from quadctl.so3 import r2rpy

logger = logging.getLogger(__name__)

NAMESPACE = "/fmu/"
OFFBOARD_CONTROL_MODE_TOPIC = NAMESPACE + "in/offboard_control_mode"
THRUST_TOPIC = NAMESPACE + "in/vehicle_thrust_setpoint"
TORQUE_TOPIC = NAMESPACE + "in/vehicle_torque_setpoint"
RPY_TOPIC = "/rpy"
RPY_DES_TOPIC = "/rpy_des"
FRAME_ID = "base_link"
TIMER_PERIOD_S = 0.005
STABLE_STEPS = 10


class FlightState(enum.Enum):
    INIT = "init"
    OFFBOARD_REQUESTED = "offboard_requested"
    OFFBOARD_ENTERED = "offboard_entered"
    WAIT_FOR_STABLE_OFFBOARD_MODE = "wait_for_stable_offboard_mode"
    ARM_REQUESTED = "arm_requested"
    ARMED = "armed"
    FLIGHT = "flight"


class CommandResult(enum.IntEnum):
    ACCEPTED = 0
    TEMPORARILY_REJECTED = 1
    DENIED = 2
    UNSUPPORTED = 3
    FAILED = 4
    IN_PROGRESS = 5
    CANCELLED = 6


class UiCommand(enum.IntEnum):
    KILL = 1
    OFFBOARD = 2
    ARM = 3
    TAKEOFF = 4
    FORWARD = 11
    BACKWARD = 12
    LEFT = 13
    RIGHT = 14
    UP = 15
    DOWN = 16
    CW = 17
    CCW = 18


@dataclass(frozen=True)
class VehicleCommand:
    """A command request for the flight stack; ``timestamp`` is in microseconds."""

    DO_SET_MODE: ClassVar[int] = 176
    DO_FLIGHTTERMINATION: ClassVar[int] = 185
    COMPONENT_ARM_DISARM: ClassVar[int] = 400

    command: int
    param1: float = 0.0
    param2: float = 0.0
    target_system: int = 1
    target_component: int = 1
    source_system: int = 1
    source_component: int = 1
    from_external: bool = True
    timestamp: int = 0


@dataclass(frozen=True)
class OffboardControlMode:
    """Which setpoint kinds the offboard stream carries; ``timestamp`` in microseconds."""

    position: bool = False
    velocity: bool = False
    acceleration: bool = False
    attitude: bool = False
    body_rate: bool = False
    thrust_and_torque: bool = False
    direct_actuator: bool = False
    timestamp: int = 0


@dataclass(frozen=True)
class _Setpoint:
    timestamp: int
    xyz: tuple = field(default=(0.0, 0.0, 0.0))


_RESULT_MESSAGES = {
    CommandResult.ACCEPTED: "command accepted",
    CommandResult.TEMPORARILY_REJECTED: "command temporarily rejected",
    CommandResult.DENIED: "command denied",
    CommandResult.UNSUPPORTED: "command unsupported",
    CommandResult.FAILED: "command failed",
    CommandResult.IN_PROGRESS: "command in progress",
    CommandResult.CANCELLED: "command cancelled",
}


def _yaw_rotation(angle):
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _ignore(*_args):
    return None


class MotorControl:
    """Sequences offboard entry, arming and flight, and publishes setpoints."""

    def __init__(self, params=None, send_command=None, publish=None, clock=time.time_ns):
        self.params = params if params is not None else ControllerParameters()
        self.send_command = send_command or _ignore
        self.publish = publish or _ignore
        self.clock = clock

        self.state = FlightState.INIT
        self.service_result = CommandResult.ACCEPTED
        self.service_done = False
        self.flight_requested = False
        self.offboard_cm = 0

        self.vehicle = VehicleState()
        self.controller = GeometricController(self.params)

        self._steps = 0
        self._arm_steps = 0
        logger.info("Starting Motor Control Node")

    # -- commands -----------------------------------------------------------

    def _request(self, command, param1=0.0, param2=0.0):
        msg = VehicleCommand(
            command=command,
            param1=float(param1),
            param2=float(param2),
            timestamp=self.clock() // 1000,
        )
        self.service_done = False
        self.send_command(msg)
        logger.info("Command send")
        return msg

    def switch_to_offboard_mode(self):
        logger.info("requesting switch to Offboard mode")
        return self._request(VehicleCommand.DO_SET_MODE, 1, 6)

    def arm(self):
        logger.info("requesting arm")
        return self._request(VehicleCommand.COMPONENT_ARM_DISARM, 1.0)

    def disarm(self):
        logger.info("requesting disarm")
        return self._request(VehicleCommand.COMPONENT_ARM_DISARM, 0.0)

    def initialize_des(self):
        """Hold the current pose; returns ``False`` if no pose has arrived yet."""
        logger.info("Initializing desired position and attitude")
        if self.vehicle.stamp_sec == 0:
            logger.warning("Odometry data not yet received. Waiting for valid data...")
            return False
        self.controller.reset_desired(self.vehicle.position, self.vehicle.rotation)
        return True

    # -- inputs -------------------------------------------------------------

    def on_vehicle_odometry(self, angular_velocity):
        self.vehicle.angular_velocity = np.asarray(angular_velocity, dtype=float).reshape(3).copy()

    def on_optitrack_odometry(self, odometry):
        """Take a motion-capture sample, flipping the y and z axes."""
        x, y, z = odometry.position
        self.vehicle.position = np.array([x, -y, -z], dtype=float)
        w, qx, qy, qz = odometry.orientation
        self.vehicle.rotation = quaternion_to_rotation_matrix([w, qx, -qy, -qz])
        vx, vy, vz = odometry.linear_velocity
        self.vehicle.velocity = np.array([vx, -vy, -vz], dtype=float)
        self.vehicle.stamp_sec = odometry.stamp_sec
        self.vehicle.stamp_nanosec = odometry.stamp_nanosec

    def on_ui_command(self, command):
        try:
            command = UiCommand(int(command))
        except ValueError:
            return
        p = self.params
        desired = self.controller.desired_position
        if command is UiCommand.KILL:
            logger.warning("UI_COMMAND: Kill-Switch Engaged")
            self._request(VehicleCommand.DO_FLIGHTTERMINATION, 1.0, 0.0)
        elif command is UiCommand.OFFBOARD:
            logger.info("UI_COMMAND: Switch to Offboard Mode")
            self.switch_to_offboard_mode()
            self.state = FlightState.OFFBOARD_REQUESTED
        elif command is UiCommand.ARM:
            logger.info("UI_COMMAND: Arming")
            self.state = FlightState.WAIT_FOR_STABLE_OFFBOARD_MODE
        elif command is UiCommand.TAKEOFF:
            logger.info("UI_COMMAND: Takeoff")
            self.flight_requested = True
            desired[2] -= p.takeoff_step
        elif command is UiCommand.FORWARD:
            logger.info("UI_COMMAND: Forward")
            desired[0] += p.xy_step
        elif command is UiCommand.BACKWARD:
            logger.info("UI_COMMAND: Backward")
            desired[0] -= p.xy_step
        elif command is UiCommand.LEFT:
            logger.info("UI_COMMAND: Left")
            desired[1] -= p.xy_step
        elif command is UiCommand.RIGHT:
            logger.info("UI_COMMAND: Right")
            desired[1] += p.xy_step
        elif command is UiCommand.UP:
            logger.info("UI_COMMAND: Up")
            desired[2] -= p.z_step
        elif command is UiCommand.DOWN:
            logger.info("UI_COMMAND: Down")
            desired[2] += p.z_step
        elif command is UiCommand.CW:
            logger.info("UI_COMMAND: CW")
            self.controller.heading = _yaw_rotation(p.rotation_step) @ self.controller.heading
        elif command is UiCommand.CCW:
            logger.info("UI_COMMAND: CCW")
            self.controller.heading = _yaw_rotation(-p.rotation_step) @ self.controller.heading

    def on_command_response(self, result):
        """Record a command reply; ``None`` means the reply is still pending."""
        if result is None:
            logger.info("Service In-Progress...")
            return
        self.service_result = int(result)
        try:
            message = _RESULT_MESSAGES[CommandResult(self.service_result)]
        except ValueError:
            message = "command reply unknown"
        if self.service_result == CommandResult.ACCEPTED:
            logger.info(message)
        else:
            logger.warning(message)
        self.service_done = True

    # -- outputs ------------------------------------------------------------

    def _publish_offboard_control_mode(self):
        position = self.offboard_cm == 0
        msg = OffboardControlMode(
            position=position,
            thrust_and_torque=not position,
            timestamp=self.clock() // 1000,
        )
        self.publish(OFFBOARD_CONTROL_MODE_TOPIC, msg)

    def _publish_setpoints(self):
        stamp = self.clock() // 1000
        thrust = tuple(float(v) for v in self.controller.thrust_setpoint())
        torque = tuple(float(v) for v in self.controller.torque_setpoint())
        self.publish(THRUST_TOPIC, _Setpoint(timestamp=stamp, xyz=thrust))
        self.publish(TORQUE_TOPIC, _Setpoint(timestamp=stamp, xyz=torque))
        for topic, rotation in (
            (RPY_TOPIC, self.vehicle.rotation),
            (RPY_DES_TOPIC, self.controller.desired_rotation),
        ):
            roll, pitch, yaw = np.degrees(r2rpy(rotation))
            self.publish(
                topic,
                Vector3Stamped(
                    stamp=self.clock(),
                    frame_id=FRAME_ID,
                    x=float(roll),
                    y=float(pitch),
                    z=float(yaw),
                ),
            )

    def _check_reply(self, failure):
        if self.service_result != CommandResult.ACCEPTED:
            logger.error("%s, exiting", failure)
            raise RuntimeError(failure)

    def tick(self):
        """Run one timer step of the state machine.

        Raises ``RuntimeError`` when the flight stack refuses offboard mode or arming.
        """
        if self.state is not FlightState.INIT:
            self._publish_offboard_control_mode()

        if self.state is FlightState.OFFBOARD_REQUESTED:
            if self.service_done:
                self._check_reply("Failed to enter offboard mode")
                logger.info("Entered offboard mode")
                self.state = FlightState.OFFBOARD_ENTERED
        elif self.state is FlightState.WAIT_FOR_STABLE_OFFBOARD_MODE:
            self._steps = (self._steps + 1) % 256
            if self._steps > STABLE_STEPS:
                self.arm()
                self.state = FlightState.ARM_REQUESTED
        elif self.state is FlightState.ARM_REQUESTED:
            if self.service_done:
                self._check_reply("Failed to arm")
                logger.info("Vehicle is armed")
                self.initialize_des()
                self.state = FlightState.ARMED
        elif self.state is FlightState.ARMED:
            self._arm_steps = (self._arm_steps + 1) % 256
            if self._arm_steps > STABLE_STEPS:
                if self._arm_steps == STABLE_STEPS + 1:
                    logger.info("Switch to Offboard Arming")
                self.offboard_cm = 1
                self._publish_setpoints()
                if self.flight_requested:
                    self.state = FlightState.FLIGHT
        elif self.state is FlightState.FLIGHT:
            self.controller.compute(self.vehicle)
            self._publish_setpoints()