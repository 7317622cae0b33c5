# garyrm

Building blocks for a RoboMaster-style robot: models of the CAN-driven
motors, a DR16 remote-control receiver read over a serial port, an offline
detector, and the shooter control logic that turns remote input or set
points into friction-wheel and trigger-wheel targets.

## Installation

```
pip install garyrm
```

For running the tests:

```
pip install "garyrm[test]"
pytest
```

## What is inside

- `garyrm.motors`: `MotorType` and `RMMotor` for the M3508, M2006, M6020 and
  gearless M3508 motors. `MotorType.from_name("m3508")` looks a type up by its
  configuration name. An `RMMotor` works out its `cmd_id` and `feedback_id`
  from the motor id and raises `ValueError` for an id outside the motor's
  range. `cmd(effort)` encodes an effort into the two bytes of
  `control_cmd` and returns `True` if the value had to be clamped.
  `feedback(data)` decodes an 8-byte feedback frame into `feedback_data`:
  position, encoder, encoder_raw, velocity, rpm, effort, effort_raw and, where
  the motor has a sensor, temperature. It returns `False` for a frame out of
  range. The first good frame only seeds the encoder reference.
- `garyrm.offline`: `OfflineDetector(duration)` marks a source offline when a
  whole window passes without a successful `update(True)`. `config(duration)`
  changes the window. A clock function can be passed in for testing.
- `garyrm.dr16`: `decode_frame(packet)` turns an 18-byte packet into a
  `DR16Message`. Sticks and wheel are scaled to [-1, 1], and switches are
  `SwitchPosition` values. It also carries mouse and keyboard state. A
  malformed or out-of-range packet raises `DecodeError`. `DR16Receiver` opens
  the serial port (8 data bits, even parity, one stop bit) and reads the
  freshest packet. It counts decode failures, and `detect_jammed()` flags the
  link jammed after more than ten. `publish_diag()` reports a
  `DiagnosticStatus` whose `DiagnosticLevel` is `ERROR` for "serial device
  offline" or "receiver offline" (no packet for 0.5 s). It is `WARN` for
  "transmission jammed" and `OK` otherwise.
- `garyrm.heat_controller`: `HeatController`. Moving the left switch out of
  the middle position toggles the shooter (up) or the trigger (down), and the
  right switch down stops both. `publish()` ramps the shooter wheels up to
  their target over about five seconds and returns the wheel set points.
- `garyrm.shooter_controller`: `ShooterController` takes shooter and trigger
  set points through `on_shooter(value)` and `on_trigger(value)`. A positive
  value turns the wheel on, while zero or a negative value turns it off. The
  controller watches the statuses given to `on_diagnostics(statuses)` and
  holds every output at zero while a watched motor is missing or unhealthy.
  `double_equal(a, b)` compares floats within machine epsilon.

The controllers and the receiver take their settings through
`configure(params)`. It applies a mapping over the defaults, raises
`TypeError` for a value of the wrong type and `ValueError` for an unknown
name. Their output goes to an optional `sink(topic, value)` callback.

## Example

```python
from garyrm.motors import MotorType, RMMotor

motor = RMMotor(MotorType.from_name("m3508"), 1)
print(hex(motor.cmd_id), hex(motor.feedback_id))   # 0x200 0x201
clamped = motor.cmd(1.5)
print(motor.control_cmd, clamped)
```

Decoding a DR16 packet and feeding it to the heat controller:

```python
from garyrm.dr16 import decode_frame
from garyrm.heat_controller import HeatController

controller = HeatController(sink=lambda topic, value: print(topic, value))
controller.configure({"update_freq": 100.0})

message = decode_frame(packet)   # packet: 18 bytes from the receiver
controller.on_remote_control(message)
print(controller.publish())
```

## Command line

The DR16 receiver can be run on its own. It reads the serial port and prints
each decoded packet and each diagnostic status as a JSON line:

```
garyrm-dr16 --serial-port /dev/ttyDBUS0 --baudrate 100000
```

Other options: `--update-freq`, `--diag-freq`, `--send-topic`,
`--diagnostic-topic`, `--diag-name` and `-v` for debug logging.

## What it does not do

The package does not read from or write to a CAN bus. `RMMotor` encodes
commands and decodes feedback frames, but the caller moves those frames
to and from the bus. The controllers do not subscribe to or publish on any
message bus of their own. Messages are passed in through method calls, and
set points leave through the `sink` callback or the `WheelCommands` that
`publish()` returns.