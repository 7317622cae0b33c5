import pytest

from garyrm.motors import MotorType, RMMotor


def frame(ecd=0, rpm=0, current=0, temperature=0):
    return bytes(
        [
            (ecd >> 8) & 0xFF,
            ecd & 0xFF,
            (rpm >> 8) & 0xFF,
            rpm & 0xFF,
            (current >> 8) & 0xFF,
            current & 0xFF,
            temperature,
            0,
        ]
    )


def test_from_name_known():
    assert MotorType.from_name("m6020") is MotorType.M6020
    assert MotorType.from_name("m3508_gearless") is MotorType.M3508_GEARLESS


def test_from_name_unknown():
    with pytest.raises(ValueError, match="invalid motor type"):
        MotorType.from_name("bogus")


@pytest.mark.parametrize(
    "motor_type, motor_id, feedback_id, cmd_id",
    [
        (MotorType.M3508, 1, 0x201, 0x200),
        (MotorType.M3508, 5, 0x205, 0x1FF),
        (MotorType.M2006, 4, 0x204, 0x200),
        (MotorType.M6020, 1, 0x205, 0x1FF),
        (MotorType.M6020, 5, 0x209, 0x2FF),
        (MotorType.M3508_GEARLESS, 8, 0x208, 0x1FF),
    ],
)
def test_ids(motor_type, motor_id, feedback_id, cmd_id):
    motor = RMMotor(motor_type, motor_id)
    assert motor.feedback_id == feedback_id
    assert motor.cmd_id == cmd_id


@pytest.mark.parametrize(
    "motor_type, motor_id",
    [(MotorType.M3508, 9), (MotorType.M3508, 0), (MotorType.M6020, 8), (MotorType.M2006, -1)],
)
def test_invalid_id(motor_type, motor_id):
    with pytest.raises(ValueError, match="invalid motor feedback id"):
        RMMotor(motor_type, motor_id)


def test_feedback_keys_sorted_and_temperature():
    with_temp = RMMotor(MotorType.M3508, 1)
    without_temp = RMMotor(MotorType.M2006, 1)
    assert list(with_temp.feedback_data) == sorted(with_temp.feedback_data)
    assert "temperature" in with_temp.feedback_data
    assert "temperature" not in without_temp.feedback_data
    assert set(with_temp.feedback_data) - set(without_temp.feedback_data) == {"temperature"}


def test_cmd_zero():
    motor = RMMotor(MotorType.M3508, 1)
    assert motor.cmd(0.0) is False
    assert motor.control_cmd == b"\x00\x00"


def test_cmd_clamps_positive_and_negative():
    motor = RMMotor(MotorType.M3508, 1)
    assert motor.cmd(10.0) is True
    assert motor.control_cmd == bytes([0x40, 0x00])  # 16384
    assert motor.cmd(-10.0) is True
    assert motor.control_cmd == bytes([0xC0, 0x00])  # -16384


def test_cmd_feedback_effort_round_trip():
    motor = RMMotor(MotorType.M3508, 2)
    assert motor.cmd(2.5) is False
    raw = int.from_bytes(motor.control_cmd, "big", signed=True)
    assert motor.feedback(frame(ecd=100, current=raw & 0xFFFF))
    assert motor.feedback(frame(ecd=100, current=raw & 0xFFFF))
    assert motor.feedback_data["effort_raw"] == raw
    assert motor.feedback_data["effort"] == pytest.approx(2.5, abs=1e-3)


def test_first_frame_only_seeds():
    motor = RMMotor(MotorType.M3508, 1)
    assert motor.feedback(frame(ecd=1000, rpm=50, current=10, temperature=40))
    assert all(value == 0.0 for value in motor.feedback_data.values())


def test_second_frame_fills_values():
    motor = RMMotor(MotorType.M3508, 1)
    motor.feedback(frame(ecd=1000))
    assert motor.feedback(frame(ecd=1200, rpm=-50 & 0xFFFF, current=300, temperature=40))
    data = motor.feedback_data
    assert data["encoder_raw"] == 1200
    assert data["rpm"] == -50
    assert data["effort_raw"] == 300
    assert data["temperature"] == 40
    assert data["velocity"] < 0
    assert data["position"] == pytest.approx(data["encoder"] * 200 / 1200)


def test_position_wraps_and_returns():
    motor = RMMotor(MotorType.M3508_GEARLESS, 1)
    motor.feedback(frame(ecd=8000))
    motor.feedback(frame(ecd=100))
    forward = motor.feedback_data["position"]
    assert 0 < forward < motor.feedback_data["encoder"] * 3
    motor.feedback(frame(ecd=8000))
    assert motor.feedback_data["position"] == pytest.approx(0.0, abs=1e-12)


def test_feedback_rejects_out_of_range():
    motor = RMMotor(MotorType.M6020, 1)
    assert motor.feedback(frame(ecd=8193)) is False
    assert motor.feedback(frame(rpm=321)) is False
    assert motor.feedback(frame(current=30001)) is False
    assert motor.feedback(frame(temperature=126)) is False
    assert motor.feedback(frame(ecd=8192, rpm=320, current=30000, temperature=125)) is True


def test_m2006_accepts_any_temperature():
    motor = RMMotor(MotorType.M2006, 1)
    assert motor.feedback(frame(temperature=255)) is True


def test_short_frame_rejected():
    motor = RMMotor(MotorType.M3508, 1)
    with pytest.raises(ValueError):
        motor.feedback(b"\x00\x01")