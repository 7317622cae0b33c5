from collections import namedtuple

import pytest

from garyrm.heat_controller import HeatController

Msg = namedtuple("Msg", "sw_left sw_right")

UP, DOWN, MID = 1, 2, 3


def configured(**params):
    sent = []
    controller = HeatController(sink=lambda topic, value: sent.append((topic, value)))
    controller.configure(params)
    return controller, sent


def feed(controller, *left_positions, right=UP):
    for position in left_positions:
        controller.on_remote_control(Msg(position, right))


def test_default_configuration():
    controller, _ = configured()
    assert controller.left_wheel_topic == "/fric_left_pid/cmd"
    assert controller.right_wheel_topic == "/fric_right_pid/cmd"
    assert controller.trigger_wheel_topic == "/trigger_pid/cmd"
    assert controller.remote_control_topic == "/remote_control"
    assert controller.shooter_wheel_pid_target == 8500.0
    assert controller.trigger_wheel_pid_target == 3000.0


def test_targets_are_made_positive():
    controller, _ = configured(shooter_wheel_pid_target=-8500.0)
    assert controller.shooter_wheel_pid_target == 8500.0


@pytest.mark.parametrize(
    "name, value",
    [
        ("update_freq", 100),
        ("left_shooter_wheel_topic", 1.0),
        ("trigger_wheel_pid_target", "fast"),
        ("remote_control_topic", None),
    ],
)
def test_wrong_parameter_type_is_rejected(name, value):
    controller = HeatController()
    with pytest.raises(TypeError):
        controller.configure({name: value})
    assert controller.configured is False


def test_undeclared_parameter_is_rejected():
    with pytest.raises(ValueError):
        HeatController().configure({"nonsense": 1.0})


def test_publish_requires_configuration():
    controller, _ = configured()
    controller.cleanup()
    with pytest.raises(RuntimeError):
        controller.publish()


def test_idle_publishes_zero():
    controller, sent = configured()
    commands = controller.publish()
    assert (commands.left, commands.right, commands.trigger) == (0.0, 0.0, 0.0)
    assert [topic for topic, _ in sent] == [
        "/fric_left_pid/cmd",
        "/fric_right_pid/cmd",
        "/trigger_pid/cmd",
    ]


def test_first_message_does_not_toggle():
    controller, _ = configured()
    feed(controller, UP)
    assert controller.shooter_on is False


def test_up_from_middle_toggles_shooter():
    controller, _ = configured()
    feed(controller, MID, UP)
    assert controller.shooter_on is True
    feed(controller, MID, UP)
    assert controller.shooter_on is False


def test_trigger_needs_shooter():
    controller, _ = configured()
    feed(controller, MID, DOWN)
    assert controller.trigger_on is False
    feed(controller, MID, UP, MID, DOWN)
    assert controller.shooter_on is True
    assert controller.trigger_on is True


def test_right_switch_down_stops_everything():
    controller, _ = configured()
    feed(controller, MID, UP, MID, DOWN)
    controller.on_remote_control(Msg(DOWN, DOWN))
    assert controller.shooter_on is False
    assert controller.trigger_on is False


def test_ramp_overshoots_once_then_clamps():
    controller, _ = configured(update_freq=0.2)
    feed(controller, MID, UP)
    first = controller.publish()
    assert first.right == 8500.0
    assert first.left == -8500.0
    second = controller.publish()
    assert second.right > 8500.0
    third = controller.publish()
    assert third.right == 8500.0


def test_ramp_rises_monotonically_to_target():
    controller, _ = configured()
    feed(controller, MID, UP)
    previous = 0.0
    for _ in range(40):
        value = controller.publish().right
        if previous < controller.shooter_wheel_pid_target:
            assert value > previous
        previous = value
    assert previous == pytest.approx(controller.shooter_wheel_pid_target)


def test_trigger_published_only_with_shooter():
    controller, sent = configured()
    feed(controller, MID, UP, MID, DOWN)
    commands = controller.publish()
    assert commands.trigger == 3000.0
    assert sent[-1] == ("/trigger_pid/cmd", 3000.0)
    assert commands.left == -commands.right


def test_shooter_off_resets_ramp():
    controller, _ = configured()
    feed(controller, MID, UP)
    controller.publish()
    feed(controller, MID, UP)
    assert controller.publish().right == 0.0