"""Geometric quadrotor control on SO(3), rotation helpers and an offboard flight state machine."""

__version__ = "0.1.0"

__all__ = ["controller", "node", "orientation", "params", "rpy", "so3"]