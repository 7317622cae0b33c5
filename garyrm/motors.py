"""Models of the CAN-driven motors: command encoding and feedback decoding."""

from __future__ import annotations

import enum
import math
import struct
from dataclasses import dataclass


def _f32(value: float) -> float:
    """Round a value to single precision, as the motor constants are stored."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _int16(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


class MotorType(enum.Enum):
    """Supported motor models, keyed by their configuration name."""

    M3508 = "m3508"
    M2006 = "m2006"
    M6020 = "m6020"
    M3508_GEARLESS = "m3508_gearless"

    @classmethod
    def from_name(cls, name: str) -> "MotorType":
        """Look up a motor type by its configuration name."""
        try:
            return cls(name)
        except ValueError:
            raise ValueError("invalid motor type") from None


@dataclass(frozen=True)
class _MotorSpec:
    id_base: int
    id_ranges: tuple[tuple[int, int, int], ...]
    max_ecd: int
    max_rpm: int
    max_current_raw: int
    max_temperature: int
    has_temperature_sensor: bool
    gear_ratio: float
    torque_constant: float
    max_current: float


_LOW_IDS = ((0x201, 0x204, 0x200), (0x205, 0x208, 0x1FF))

_SPECS: dict[MotorType, _MotorSpec] = {
    MotorType.M3508: _MotorSpec(
        id_base=0x200,
        id_ranges=_LOW_IDS,
        max_ecd=8192,
        max_rpm=10000,
        max_current_raw=16384,
        max_temperature=125,
        has_temperature_sensor=True,
        gear_ratio=_f32(3591.0 / 187.0),
        torque_constant=_f32(0.3),
        max_current=20.0,
    ),
    MotorType.M2006: _MotorSpec(
        id_base=0x200,
        id_ranges=_LOW_IDS,
        max_ecd=8192,
        max_rpm=18000,
        max_current_raw=10000,
        max_temperature=255,
        has_temperature_sensor=False,
        gear_ratio=36.0,
        torque_constant=_f32(0.18),
        max_current=10.0,
    ),
    MotorType.M6020: _MotorSpec(
        id_base=0x204,
        id_ranges=((0x205, 0x208, 0x1FF), (0x209, 0x20B, 0x2FF)),
        max_ecd=8192,
        max_rpm=320,
        max_current_raw=30000,
        max_temperature=125,
        has_temperature_sensor=True,
        gear_ratio=1.0,
        torque_constant=_f32(0.741),
        max_current=_f32(2.7),
    ),
    MotorType.M3508_GEARLESS: _MotorSpec(
        id_base=0x200,
        id_ranges=_LOW_IDS,
        max_ecd=8192,
        max_rpm=15000,
        max_current_raw=16384,
        max_temperature=125,
        has_temperature_sensor=True,
        gear_ratio=1.0,
        torque_constant=_f32(0.015622),
        max_current=20.0,
    ),
}

_RPM_TO_RAD_S = 2.0 * math.pi / 60.0


class RMMotor:
    """One motor on a CAN bus.

    ``feedback_data`` maps state names (sorted) to the latest decoded values;
    ``control_cmd`` holds the two big-endian bytes of the last command.
    """

    def __init__(self, motor_type: MotorType, motor_id: int) -> None:
        if not isinstance(motor_type, MotorType):
            raise ValueError("invalid motor type")
        spec = _SPECS[motor_type]
        self.motor_type = motor_type
        self.motor_id = motor_id
        self.feedback_id = motor_id + spec.id_base
        for low, high, cmd_id in spec.id_ranges:
            if low <= self.feedback_id <= high:
                self.cmd_id = cmd_id
                break
        else:
            raise ValueError(f"invalid motor feedback id{self.feedback_id}")

        self._spec = spec
        self.cmd_ratio = spec.max_current_raw / spec.max_current / spec.torque_constant
        self.position_ratio = 1.0 / spec.gear_ratio / spec.max_ecd * 2 * math.pi
        self.velocity_ratio = 1.0 / spec.gear_ratio * _RPM_TO_RAD_S
        self.effort_ratio = 1.0 / spec.max_current_raw * spec.max_current * spec.torque_constant

        names = ["position", "encoder", "encoder_raw", "velocity", "rpm", "effort", "effort_raw"]
        if spec.has_temperature_sensor:
            names.append("temperature")
        self.feedback_data: dict[str, float] = {name: 0.0 for name in sorted(names)}
        self.control_cmd = bytes(2)

        self._last_ecd = 0
        self._first_data = True

    @property
    def has_temperature_sensor(self) -> bool:
        return self._spec.has_temperature_sensor

    def cmd(self, effort_set: float) -> bool:
        """Encode an effort into ``control_cmd``; return True if it was clamped."""
        raw = _int16(int(effort_set * self.cmd_ratio))
        limit = self._spec.max_current_raw
        out_of_range = False
        if raw > limit:
            raw = limit
            out_of_range = True
        elif raw < -limit:
            raw = -limit
            out_of_range = True
        self.control_cmd = bytes(((raw >> 8) & 0xFF, raw & 0xFF))
        return out_of_range

    def feedback(self, data: bytes) -> bool:
        """Decode an 8-byte feedback frame; return False if it fails validation."""
        if len(data) < 8:
            raise ValueError("feedback frame must hold 8 bytes")
        ecd = (data[0] << 8) | data[1]
        rpm = _int16((data[2] << 8) | data[3])
        current = _int16((data[4] << 8) | data[5])
        temperature = data[6]

        spec = self._spec
        if (
            ecd > spec.max_ecd
            or not -spec.max_rpm <= rpm <= spec.max_rpm
            or not -spec.max_current_raw <= current <= spec.max_current_raw
            or temperature > spec.max_temperature
        ):
            return False

        # the first frame only seeds the encoder reference
        if self._first_data:
            self._last_ecd = ecd
            self._first_data = False
            return True

        delta = ecd - self._last_ecd
        self._last_ecd = ecd
        half = spec.max_ecd // 2
        if delta < -half:
            delta += spec.max_ecd
        if delta > half:
            delta -= spec.max_ecd

        values = self.feedback_data
        values["position"] += delta * self.position_ratio
        values["encoder"] = ecd * self.position_ratio
        values["encoder_raw"] = float(ecd)
        values["velocity"] = rpm * self.velocity_ratio
        values["rpm"] = float(rpm)
        values["effort"] = current * self.effort_ratio
        values["effort_raw"] = float(current)
        if spec.has_temperature_sensor:
            values["temperature"] = float(temperature)
        return True