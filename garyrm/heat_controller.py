"""Shooter control driven by the remote control's switches, with a spin-up ramp."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

_SW_UP = 1
_SW_DOWN = 2
_SW_MID = 3

DEFAULT_PARAMETERS: dict[str, Any] = {
    "update_freq": 100.0,
    "remote_control_topic": "/remote_control",
    "left_shooter_wheel_topic": "/fric_left_pid/cmd",
    "right_shooter_wheel_topic": "/fric_right_pid/cmd",
    "shooter_wheel_pid_target": 8500.0,
    "trigger_wheel_topic": "/trigger_pid/cmd",
    "trigger_wheel_pid_target": 3000.0,
}

_FLOAT_PARAMETERS = ("update_freq",)
_STRING_PARAMETERS = (
    "left_shooter_wheel_topic",
    "right_shooter_wheel_topic",
    "trigger_wheel_topic",
)
_TARGET_PARAMETERS = ("shooter_wheel_pid_target", "trigger_wheel_pid_target")

Sink = Callable[[str, float], None]


@dataclass(frozen=True)
class WheelCommands:
    """Set points for both shooter wheels and the trigger wheel."""

    left: float
    right: float
    trigger: float


def _check(params: Mapping[str, Any]) -> None:
    for name in _FLOAT_PARAMETERS:
        if not isinstance(params[name], float):
            raise TypeError(f"{name} type must be double")
    for name in _STRING_PARAMETERS:
        if not isinstance(params[name], str):
            raise TypeError(f'"{name}" must be a string.')
    for name in _TARGET_PARAMETERS:
        if not isinstance(params[name], float):
            raise TypeError(f'"{name}" must be double.')
    if not isinstance(params["remote_control_topic"], str):
        raise TypeError('"remote_control_topic" must be a string.')


class HeatController:
    """Toggles shooter and trigger from the left switch; the right switch down stops all.

    With the left switch leaving the middle position, up toggles the shooter
    and down toggles the trigger. The trigger can only run with the shooter.
    """

    def __init__(self, sink: Optional[Sink] = None) -> None:
        self.sink = sink
        self.configured = False
        self.update_freq = DEFAULT_PARAMETERS["update_freq"]
        self.remote_control_topic = DEFAULT_PARAMETERS["remote_control_topic"]
        self.left_wheel_topic = DEFAULT_PARAMETERS["left_shooter_wheel_topic"]
        self.right_wheel_topic = DEFAULT_PARAMETERS["right_shooter_wheel_topic"]
        self.trigger_wheel_topic = DEFAULT_PARAMETERS["trigger_wheel_topic"]
        self.shooter_wheel_pid_target = DEFAULT_PARAMETERS["shooter_wheel_pid_target"]
        self.trigger_wheel_pid_target = DEFAULT_PARAMETERS["trigger_wheel_pid_target"]
        self.shooter_wheel_current_set = 0.0
        self.trigger_wheel_current_set = 0.0
        self.prev_switch_state = 0
        self.shooter_on = False
        self.trigger_on = False

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
        self.left_wheel_topic = merged["left_shooter_wheel_topic"]
        self.right_wheel_topic = merged["right_shooter_wheel_topic"]
        self.trigger_wheel_topic = merged["trigger_wheel_topic"]
        self.shooter_wheel_pid_target = abs(merged["shooter_wheel_pid_target"])
        self.trigger_wheel_pid_target = abs(merged["trigger_wheel_pid_target"])
        self.remote_control_topic = merged["remote_control_topic"]
        self.configured = True
        logger.info("configured")

    def cleanup(self) -> None:
        """Drop the configuration; publishing needs a new configure call."""
        self.configured = False
        logger.info("cleaned up")

    def on_remote_control(self, msg: Any) -> None:
        """Handle a remote control message carrying sw_left and sw_right."""
        switch_state = msg.sw_left
        if self.prev_switch_state == _SW_MID:
            if switch_state == _SW_DOWN:
                self.trigger_on = not self.trigger_on
                logger.info("Trigger on!" if self.trigger_on else "Trigger off!")
            elif switch_state == _SW_UP:
                self.shooter_on = not self.shooter_on
                logger.info("Shooter on!" if self.shooter_on else "Shooter off!")
            if self.trigger_on and not self.shooter_on:
                self.trigger_on = False
                logger.warning("Trigger off!: cannot turn trigger on while shooter is off!")
        if msg.sw_right == _SW_DOWN:
            if self.shooter_on:
                self.shooter_on = False
                logger.warning("Shooter off! Zero force!")
            if self.trigger_on:
                self.trigger_on = False
                logger.warning("Trigger off! Zero force!")
        self.prev_switch_state = switch_state

    def publish(self) -> WheelCommands:
        """Advance the ramp one step and send the wheel set points."""
        if not self.configured:
            raise RuntimeError("controller is not configured")
        if self.trigger_on and self.shooter_on:
            self.trigger_wheel_current_set = self.trigger_wheel_pid_target
        else:
            self.trigger_wheel_current_set = 0.0
        if self.shooter_on:
            if self.shooter_wheel_current_set <= self.shooter_wheel_pid_target:
                step = (1000.0 / self.update_freq) / 5000.0 * self.shooter_wheel_pid_target
                self.shooter_wheel_current_set += step
            else:
                self.shooter_wheel_current_set = self.shooter_wheel_pid_target
        else:
            self.shooter_wheel_current_set = 0.0

        commands = WheelCommands(
            left=0.0 - self.shooter_wheel_current_set,
            right=self.shooter_wheel_current_set,
            trigger=self.trigger_wheel_current_set,
        )
        logger.debug("L:%f, R:%f, P:%f", commands.left, commands.right, commands.trigger)
        if self.sink is not None:
            self.sink(self.left_wheel_topic, commands.left)
            self.sink(self.right_wheel_topic, commands.right)
            self.sink(self.trigger_wheel_topic, commands.trigger)
        return commands