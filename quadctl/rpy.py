"""Periodic publisher of roll, pitch and yaw values."""

import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TOPIC = "/rpy_values"
FRAME_ID = "base_link"
PERIOD_S = 0.01
LOG_INTERVAL_NS = 1_000_000_000


@dataclass(frozen=True)
class Vector3Stamped:
    """A timestamped 3-vector; ``stamp`` is in nanoseconds."""

    stamp: int
    frame_id: str
    x: float
    y: float
    z: float

    @property
    def vector(self):
        return (self.x, self.y, self.z)


class RpyPublisher:
    """Publishes the held roll, pitch and yaw (radians) on every tick.

    ``publish`` receives each :class:`Vector3Stamped`; ``clock`` returns the
    current time in nanoseconds.
    """

    def __init__(self, publish, clock=time.time_ns, roll=0.0, pitch=0.0, yaw=0.0):
        self.publish = publish
        self.clock = clock
        self.roll = roll
        self.pitch = pitch
        self.yaw = yaw
        self._last_log = None
        logger.info("RPY publisher initialized")

    def tick(self):
        """Publish one message and return it."""
        now = self.clock()
        msg = Vector3Stamped(
            stamp=now, frame_id=FRAME_ID, x=self.roll, y=self.pitch, z=self.yaw
        )
        self.publish(msg)

        if self._last_log is None or now - self._last_log >= LOG_INTERVAL_NS:
            self._last_log = now
            logger.info(
                "Published RPY: [%.2f, %.2f, %.2f] (rad)", self.roll, self.pitch, self.yaw
            )
        return msg