"""Drive the shooter and trigger wheels from set points, guarded by motor health."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

_DIAG_OK = 0
_RAMP_TIME_MS = 5000

DEFAULT_PARAMETERS: dict[str, Any] = {
    "update_freq": 100.0,
    "shooter_wheel_receive_topic": "/shooter_wheel_controller_pid_set",
    "trigger_wheel_receive_topic": "/trigger_wheel_controller_pid_set",
    "left_shooter_wheel_send_topic": "/fric_left_pid/cmd",
    "right_shooter_wheel_send_topic": "/fric_right_pid/cmd",
    "trigger_wheel_send_topic": "/trigger_pid/cmd",
    "left_shooter_wheel_diag_name": "fric_left",
    "right_shooter_wheel_diag_name": "fric_right",
    "trigger_wheel_diag_name": "trigger",
    "diagnostic_topic": "/diagnostics_agg",
}

_STRING_PARAMETERS = tuple(name for name in DEFAULT_PARAMETERS if name != "update_freq")

Sink = Callable[[str, float], None]


def double_equal(a: float, b: float) -> bool:
    """True if two floats differ by less than the double machine epsilon."""
    return abs(a - b) < sys.float_info.epsilon


@dataclass(frozen=True)
class WheelCommands:
    """Set points sent to the two shooter wheels and the trigger wheel."""

    left: float
    right: float
    trigger: float


def _check(params: Mapping[str, Any]) -> None:
    if not isinstance(params["update_freq"], float):
        raise TypeError("update_freq type must be double")
    for name in _STRING_PARAMETERS:
        if not isinstance(params[name], str):
            raise TypeError(f'"{name}" must be a string.')


class ShooterController:
    """Ramps the shooter wheels up to their target and runs the trigger with them.

    Everything is held at zero while any watched motor is missing from, or
    reported unhealthy in, the latest diagnostics.
    """

    def __init__(self, sink: Optional[Sink] = None) -> None:
        self.sink = sink
        self.configured = False
        self.update_freq = DEFAULT_PARAMETERS["update_freq"]
        self.shooter_wheel_receive_topic = DEFAULT_PARAMETERS["shooter_wheel_receive_topic"]
        self.trigger_wheel_receive_topic = DEFAULT_PARAMETERS["trigger_wheel_receive_topic"]
        self.left_wheel_send_topic = DEFAULT_PARAMETERS["left_shooter_wheel_send_topic"]
        self.right_wheel_send_topic = DEFAULT_PARAMETERS["right_shooter_wheel_send_topic"]
        self.trigger_wheel_send_topic = DEFAULT_PARAMETERS["trigger_wheel_send_topic"]
        self.diagnostic_topic = DEFAULT_PARAMETERS["diagnostic_topic"]
        self.shooter_wheel_pid_target = 0.0
        self.trigger_wheel_pid_target = 0.0
        self.shooter_wheel_current_set = 0.0
        self.trigger_wheel_current_set = 0.0
        self.shooter_on = False
        self.trigger_on = False
        self.motor_offline = True
        self.diag_objs: dict[str, bool] = {}
        self._offline_warned = False

    @property
    def period(self) -> float:
        """Seconds between two publications."""
        return 1.0 / self.update_freq

    def configure(self, params: Optional[Mapping[str, Any]] = None) -> None:
        """Apply parameters over the defaults; raise TypeError on a wrong type."""
        params = dict(params or {})
        unknown = set(params) - set(DEFAULT_PARAMETERS)
        if unknown:
            raise ValueError(f"undeclared parameters: {', '.join(sorted(unknown))}")
        merged = {**DEFAULT_PARAMETERS, **params}
        _check(merged)
        self.update_freq = merged["update_freq"]
        self.left_wheel_send_topic = merged["left_shooter_wheel_send_topic"]
        self.right_wheel_send_topic = merged["right_shooter_wheel_send_topic"]
        self.trigger_wheel_send_topic = merged["trigger_wheel_send_topic"]
        self.shooter_wheel_receive_topic = merged["shooter_wheel_receive_topic"]
        self.trigger_wheel_receive_topic = merged["trigger_wheel_receive_topic"]
        self.diagnostic_topic = merged["diagnostic_topic"]
        for name in ("trigger_wheel_diag_name", "left_shooter_wheel_diag_name",
                     "right_shooter_wheel_diag_name"):
            self.diag_objs.setdefault(merged[name], False)
        self.configured = True
        logger.info("configured")

    def cleanup(self) -> None:
        """Drop the configuration and the watched motors."""
        self.configured = False
        self.diag_objs.clear()
        logger.info("cleaned up")

    def _set_point(self, value: float) -> Optional[float]:
        if value > 0:
            return value
        if not double_equal(value, 0.0):
            logger.warning("Received Negative settings!")
        return None

    def on_shooter(self, value: float) -> None:
        """A positive value sets the shooter target and turns it on; otherwise off."""
        target = self._set_point(value)
        if target is not None:
            self.shooter_wheel_pid_target = target
        self.shooter_on = target is not None

    def on_trigger(self, value: float) -> None:
        """A positive value sets the trigger target and turns it on; otherwise off."""
        target = self._set_point(value)
        if target is not None:
            self.trigger_wheel_pid_target = target
        self.trigger_on = target is not None

    def on_diagnostics(self, statuses: Iterable[Any]) -> None:
        """Update motor health from statuses carrying ``name`` and ``level``."""
        for name in self.diag_objs:
            self.diag_objs[name] = False
        for status in statuses:
            if status.name not in self.diag_objs:
                continue
            if status.level != _DIAG_OK:
                if not self.motor_offline:
                    logger.error("[%s] on status ERROR!", status.name)
                self.diag_objs[status.name] = False
            else:
                self.diag_objs[status.name] = True
        self.motor_offline = not all(self.diag_objs.values())

    def publish(self) -> WheelCommands:
        """Advance the ramp and send the wheel set points."""
        if not self.configured:
            raise RuntimeError("shooter controller is not configured")
        if not self.motor_offline:
            if self.trigger_on and self.shooter_on:
                self.trigger_wheel_current_set = self.trigger_wheel_pid_target
            else:
                self.trigger_wheel_current_set = 0.0
            if self.shooter_on:
                if self.shooter_wheel_current_set < self.shooter_wheel_pid_target:
                    step = (1000 / self.update_freq) / _RAMP_TIME_MS
                    self.shooter_wheel_current_set += step * self.shooter_wheel_pid_target
                else:
                    self.shooter_wheel_current_set = self.shooter_wheel_pid_target
            else:
                self.shooter_wheel_current_set = 0.0
            if self._offline_warned:
                logger.info("Motor reconnected")
            self._offline_warned = False
        else:
            if not self._offline_warned:
                logger.warning("Shooter shut down due to motor offline.")
                self._offline_warned = True
            self.trigger_wheel_current_set = 0.0
            self.shooter_wheel_current_set = 0.0

        commands = WheelCommands(
            left=0 - self.shooter_wheel_current_set,
            right=self.shooter_wheel_current_set,
            trigger=self.trigger_wheel_current_set,
        )
        logger.debug("L:%f, R:%f, P:%f", commands.left, commands.right, commands.trigger)
        if self.sink is not None:
            self.sink(self.left_wheel_send_topic, commands.left)
            self.sink(self.right_wheel_send_topic, commands.right)
            self.sink(self.trigger_wheel_send_topic, commands.trigger)
        return commands