"""Receiver for the DR16 remote control link on a serial port.

Each 18-byte packet carries four stick channels, two three-way switches,
the mouse, the keyboard and a wheel. Decoded packets are published as
:class:`DR16Message` values together with a periodic diagnostic status.
"""

from __future__ import annotations

import argparse
import enum
import json
import logging
import sys
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

import serial

logger = logging.getLogger(__name__)

PACKET_SIZE = 18
_CHANNEL_OFFSET = 1024
_CHANNEL_RANGE = 660
_FLUSH_THRESHOLD = PACKET_SIZE * 2
_RETRY_DELAY = 0.001
_RECEIVER_TIMEOUT = 0.5
_JAM_LIMIT = 10
_JAM_PERIOD = 1.0

_KEYS = ("w", "s", "a", "d", "shift", "ctrl", "q", "e", "r", "f", "g", "z", "x", "c", "v", "b")

DEFAULT_PARAMETERS: dict[str, Any] = {
    "send_topic": "/remote_control",
    "diagnostic_topic": "/diagnostics",
    "update_freq": 100.0,
    "diag_freq": 10.0,
    "serial_port": "/dev/ttyDBUS0",
    "baudrate": 100000,
    "override_diag_device_name": "",
}

_STRING_PARAMETERS = ("send_topic", "diagnostic_topic", "serial_port", "override_diag_device_name")
_FLOAT_PARAMETERS = ("update_freq", "diag_freq")


class SwitchPosition(enum.IntEnum):
    """Position of a three-way switch on the remote control."""

    UP = 1
    DOWN = 2
    MID = 3


class DecodeError(ValueError):
    """A packet does not hold values within the remote control's ranges."""


class DiagnosticLevel(enum.IntEnum):
    """Severity of a diagnostic status."""

    OK = 0
    WARN = 1
    ERROR = 2
    STALE = 3


@dataclass
class DiagnosticStatus:
    """Health report for the receiving device."""

    name: str
    hardware_id: str
    level: DiagnosticLevel = DiagnosticLevel.OK
    message: str = ""
    stamp: float = 0.0


@dataclass
class DR16Message:
    """One decoded remote control packet; sticks and wheel are scaled to [-1, 1]."""

    ch_right_x: float = 0.0
    ch_right_y: float = 0.0
    ch_left_x: float = 0.0
    ch_left_y: float = 0.0
    ch_wheel: float = 0.0
    sw_left: int = 0
    sw_right: int = 0
    mouse_x: float = 0.0
    mouse_y: float = 0.0
    mouse_z: float = 0.0
    mouse_press_l: int = 0
    mouse_press_r: int = 0
    key_w: bool = False
    key_s: bool = False
    key_a: bool = False
    key_d: bool = False
    key_shift: bool = False
    key_ctrl: bool = False
    key_q: bool = False
    key_e: bool = False
    key_r: bool = False
    key_f: bool = False
    key_g: bool = False
    key_z: bool = False
    key_x: bool = False
    key_c: bool = False
    key_v: bool = False
    key_b: bool = False
    stamp: float = 0.0
    frame_id: str = field(default="")


def decode_frame(buff: bytes) -> DR16Message:
    """Decode one 18-byte packet; raise DecodeError if it is malformed or out of range."""
    if len(buff) != PACKET_SIZE:
        raise DecodeError(f"a packet holds {PACKET_SIZE} bytes, got {len(buff)}")
    b = bytes(buff)

    ch0 = ((b[0] | (b[1] << 8)) & 0x07FF) - _CHANNEL_OFFSET
    ch1 = (((b[1] >> 3) | (b[2] << 5)) & 0x07FF) - _CHANNEL_OFFSET
    ch2 = (((b[2] >> 6) | (b[3] << 2) | (b[4] << 10)) & 0x07FF) - _CHANNEL_OFFSET
    ch3 = (((b[4] >> 1) | (b[5] << 7)) & 0x07FF) - _CHANNEL_OFFSET
    s1 = ((b[5] >> 4) & 0x0C) >> 2
    s2 = (b[5] >> 4) & 0x03
    mouse_x = b[6] | (b[7] << 8)
    mouse_y = b[8] | (b[9] << 8)
    mouse_z = b[10] | (b[11] << 8)
    press_l = b[12]
    press_r = b[13]
    key = b[14] | (b[15] << 8)
    wheel = (b[16] | (b[17] << 8)) - _CHANNEL_OFFSET

    if (
        any(abs(ch) > _CHANNEL_RANGE for ch in (ch0, ch1, ch2, ch3, wheel))
        or not 1 <= s1 <= 3
        or not 1 <= s2 <= 3
        or press_l > 1
        or press_r > 1
    ):
        raise DecodeError("packet values out of range")

    keys = {f"key_{name}": bool((key >> bit) & 1) for bit, name in enumerate(_KEYS)}
    return DR16Message(
        ch_right_x=ch0 / _CHANNEL_RANGE,
        ch_right_y=ch1 / _CHANNEL_RANGE,
        ch_left_x=ch2 / _CHANNEL_RANGE,
        ch_left_y=ch3 / _CHANNEL_RANGE,
        ch_wheel=wheel / _CHANNEL_RANGE,
        sw_left=SwitchPosition(s1),
        sw_right=SwitchPosition(s2),
        mouse_x=float(mouse_x),
        mouse_y=float(mouse_y),
        mouse_z=float(mouse_z),
        mouse_press_l=press_l,
        mouse_press_r=press_r,
        **keys,
    )


class SerialPort(Protocol):
    """The part of a serial port the receiver uses."""

    @property
    def in_waiting(self) -> int: ...

    def read(self, size: int) -> bytes: ...

    def close(self) -> None: ...


PortFactory = Callable[[str, int], SerialPort]
Sink = Callable[[str, Any], None]


def _open_serial(port: str, baudrate: int) -> SerialPort:
    return serial.Serial(
        port=port,
        baudrate=baudrate,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_EVEN,
        stopbits=serial.STOPBITS_ONE,
        timeout=0,
        xonxoff=False,
        rtscts=False,
        dsrdtr=False,
    )


def _check(params: Mapping[str, Any]) -> None:
    for name in _STRING_PARAMETERS:
        if not isinstance(params[name], str):
            raise TypeError(f"{name} type must be string")
    for name in _FLOAT_PARAMETERS:
        if not isinstance(params[name], float):
            raise TypeError(f"{name} type must be double")
    baudrate = params["baudrate"]
    if not isinstance(baudrate, int) or isinstance(baudrate, bool):
        raise TypeError("baudrate type must be integer")


class DR16Receiver:
    """Reads, decodes and publishes remote control packets and reports link health."""

    def __init__(
        self,
        port_factory: PortFactory = _open_serial,
        sink: Optional[Sink] = None,
        diag_sink: Optional[Sink] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._port_factory = port_factory
        self.sink = sink
        self.diag_sink = diag_sink
        self._clock = clock
        self._sleep = sleep

        self.send_topic = DEFAULT_PARAMETERS["send_topic"]
        self.diagnostic_topic = DEFAULT_PARAMETERS["diagnostic_topic"]
        self.update_freq = DEFAULT_PARAMETERS["update_freq"]
        self.diag_freq = DEFAULT_PARAMETERS["diag_freq"]
        self.serial_port = DEFAULT_PARAMETERS["serial_port"]
        self.baudrate = DEFAULT_PARAMETERS["baudrate"]
        self.override_diag_device_name = DEFAULT_PARAMETERS["override_diag_device_name"]

        self.configured = False
        self.active = False
        self.diag_status: Optional[DiagnosticStatus] = None
        self.dr16_msg = DR16Message()
        self.buff: Optional[bytes] = None
        self.decode_fail_cnt = 0
        self.transmission_jammed = False
        self.last_update_timestamp = 0.0
        self._port: Optional[SerialPort] = None

    @property
    def is_opened(self) -> bool:
        return self._port is not None

    @property
    def update_period(self) -> float:
        return 1.0 / self.update_freq

    @property
    def diag_period(self) -> float:
        return 1.0 / self.diag_freq

    def configure(self, params: Optional[Mapping[str, Any]] = None) -> None:
        """Apply parameters over the defaults; raise TypeError on a wrong type."""
        params = dict(params or {})
        unknown = set(params) - set(DEFAULT_PARAMETERS)
        if unknown:
            raise ValueError(f"undeclared parameters: {', '.join(sorted(unknown))}")
        merged = {**DEFAULT_PARAMETERS, **params}
        _check(merged)

        if merged["override_diag_device_name"]:
            device_name = merged["override_diag_device_name"]
        else:
            # the device name without its /dev/ prefix
            if len(merged["serial_port"]) < 5:
                raise ValueError(f"serial port path too short: {merged['serial_port']!r}")
            device_name = merged["serial_port"][5:]

        self.send_topic = merged["send_topic"]
        self.diagnostic_topic = merged["diagnostic_topic"]
        self.update_freq = merged["update_freq"]
        self.diag_freq = merged["diag_freq"]
        self.serial_port = merged["serial_port"]
        self.baudrate = merged["baudrate"]
        self.override_diag_device_name = merged["override_diag_device_name"]
        self.diag_status = DiagnosticStatus(name=device_name, hardware_id=device_name)
        self.configured = True
        logger.info("configured")

    def cleanup(self) -> None:
        """Drop the configuration and the diagnostic status."""
        self.configured = False
        self.diag_status = None
        logger.info("cleaning up")

    def activate(self) -> None:
        """Open the serial port and start the receiver-offline clock."""
        if not self.configured:
            raise RuntimeError("receiver is not configured")
        self.active = True
        self.open()
        self.last_update_timestamp = self._clock()
        logger.info("activated")

    def deactivate(self) -> None:
        """Stop receiving and close the port."""
        self.active = False
        self.close()
        logger.info("deactivated")

    def shutdown(self) -> None:
        """Close the port and drop the configuration."""
        self.active = False
        self.configured = False
        self.close()
        logger.info("shutdown")

    def open(self) -> bool:
        """(Re)open the serial port; return False if it cannot be opened."""
        if self.is_opened:
            self.close()
        try:
            self._port = self._port_factory(self.serial_port, self.baudrate)
        except (OSError, ValueError) as exc:
            logger.debug("failed to open %s: %s", self.serial_port, exc)
            self._port = None
            return False
        return True

    def close(self) -> None:
        """Close the serial port if it is open."""
        if self._port is not None:
            try:
                self._port.close()
            except OSError:
                pass
        self._port = None

    def _available(self) -> Optional[int]:
        if self._port is None:
            return None
        try:
            return self._port.in_waiting
        except OSError:
            logger.debug("serial port disconnect")
            return None

    def read(self) -> Optional[bytes]:
        """Read the next whole packet, or return None if none is ready.

        A backlog of more than two packets is flushed; after a packet is read
        the next one is discarded so that the data stays fresh.
        """
        if not self.is_opened and not self.open():
            logger.debug("failed to reopen serial port")
            return None
        assert self._port is not None

        available = self._available()
        if available is None:
            self.close()
            logger.debug("failed to get available length")
            return None

        try:
            if available > _FLUSH_THRESHOLD:
                logger.debug("too many data in buffer %d", available)
                while self._port.read(PACKET_SIZE):
                    logger.debug("flushing")
                return None

            if available < PACKET_SIZE:
                logger.debug("sleep 1ms and retry")
                self._sleep(_RETRY_DELAY)
                available = self._available()
                if available is None:
                    self.close()
                    logger.debug("failed to get available length")
                    return None
                if available < PACKET_SIZE:
                    logger.debug("waiting 1ms but still less than packet %d", available)
                    return None

            packet = self._port.read(PACKET_SIZE)
            if len(packet) != PACKET_SIZE:
                logger.debug("read length mismatch")
                return None
            self._port.read(PACKET_SIZE)
        except OSError:
            self.close()
            logger.debug("serial read failed")
            return None

        logger.debug("read 1 packet succ")
        self.buff = bytes(packet)
        return self.buff

    def decode(self) -> DR16Message:
        """Decode the last packet read; raise DecodeError and count it if it is invalid."""
        if self.buff is None:
            raise DecodeError("no packet has been read")
        try:
            message = decode_frame(self.buff)
        except DecodeError:
            logger.debug("failed to decode")
            self.decode_fail_cnt += 1
            raise
        self.dr16_msg = message
        logger.debug("decode succ")
        return message

    def update(self) -> Optional[DR16Message]:
        """Read, decode and publish one packet; return it, or None if there was none."""
        logger.debug("update")
        if self.read() is None:
            logger.debug("read() failed")
            return None
        try:
            message = self.decode()
        except DecodeError:
            logger.debug("decode() failed")
            return None
        message.stamp = self._clock()
        if self.sink is not None:
            self.sink(self.send_topic, message)
        self.last_update_timestamp = self._clock()
        return message

    def publish_diag(self) -> DiagnosticStatus:
        """Assess the link and publish a diagnostic status."""
        if self.diag_status is None:
            raise RuntimeError("receiver is not configured")
        status = self.diag_status
        now = self._clock()
        status.stamp = now
        if not self.is_opened:
            status.level = DiagnosticLevel.ERROR
            status.message = "serial device offline"
            logger.error("[%s] serial device offline", status.name)
        elif now - self.last_update_timestamp > _RECEIVER_TIMEOUT:
            status.level = DiagnosticLevel.ERROR
            status.message = "receiver offline"
            logger.error("[%s] receiver offline", status.name)
        elif self.transmission_jammed:
            status.level = DiagnosticLevel.WARN
            status.message = "transmission jammed"
            logger.warning("[%s] transmission jammed", status.name)
        else:
            status.level = DiagnosticLevel.OK
            status.message = "ok"
        if self.diag_sink is not None:
            self.diag_sink(self.diagnostic_topic, status)
        return status

    def detect_jammed(self) -> bool:
        """Flag the link jammed if more than ten packets failed since the last check."""
        self.transmission_jammed = self.decode_fail_cnt > _JAM_LIMIT
        self.decode_fail_cnt = 0
        return self.transmission_jammed


def _print_json(topic: str, payload: Any) -> None:
    print(json.dumps({"topic": topic, **asdict(payload)}), flush=True)


def _run(receiver: DR16Receiver) -> None:
    tasks = [
        (receiver.update_period, receiver.update),
        (receiver.diag_period, receiver.publish_diag),
        (_JAM_PERIOD, receiver.detect_jammed),
    ]
    start = time.monotonic()
    due = [start + period for period, _ in tasks]
    while True:
        now = time.monotonic()
        for index, (period, task) in enumerate(tasks):
            if now >= due[index]:
                task()
                due[index] = max(due[index] + period, now)
        time.sleep(max(0.0, min(due) - time.monotonic()))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the receiver, printing messages and diagnostics as JSON lines."""
    parser = argparse.ArgumentParser(description="Read a DR16 remote control receiver.")
    parser.add_argument("--serial-port", dest="serial_port")
    parser.add_argument("--baudrate", type=int)
    parser.add_argument("--update-freq", dest="update_freq", type=float)
    parser.add_argument("--diag-freq", dest="diag_freq", type=float)
    parser.add_argument("--send-topic", dest="send_topic")
    parser.add_argument("--diagnostic-topic", dest="diagnostic_topic")
    parser.add_argument("--diag-name", dest="override_diag_device_name")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)
    params = {
        name: value
        for name, value in vars(args).items()
        if name != "verbose" and value is not None
    }

    receiver = DR16Receiver(sink=_print_json, diag_sink=_print_json)
    try:
        receiver.configure(params)
    except (TypeError, ValueError) as exc:
        parser.error(str(exc))
    receiver.activate()
    try:
        _run(receiver)
    except KeyboardInterrupt:
        pass
    finally:
        receiver.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())