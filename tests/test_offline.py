from garyrm.offline import OfflineDetector


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make(duration=0.1):
    clock = FakeClock()
    return OfflineDetector(duration, clock=clock), clock


def test_starts_online():
    detector, _ = make()
    assert detector.offline is False


def test_success_within_window_keeps_online():
    detector, clock = make()
    clock.now = 0.05
    detector.update(True)
    clock.now = 0.15
    detector.update(False)
    assert detector.offline is False


def test_window_without_success_goes_offline():
    detector, clock = make()
    clock.now = 0.05
    detector.update(False)
    clock.now = 0.15
    detector.update(True)
    assert detector.offline is True


def test_state_of_closing_update_is_not_counted():
    detector, clock = make()
    clock.now = 0.2
    detector.update(True)
    assert detector.offline is True
    clock.now = 0.25
    detector.update(True)
    clock.now = 0.35
    detector.update(False)
    assert detector.offline is False


def test_flag_does_not_change_inside_window():
    detector, clock = make()
    clock.now = 0.05
    detector.update(False)
    clock.now = 0.09
    detector.update(False)
    assert detector.offline is False


def test_config_changes_window():
    detector, clock = make(duration=0.1)
    detector.config(1.0)
    assert detector.duration == 1.0
    clock.now = 0.5
    detector.update(False)
    assert detector.offline is False
    clock.now = 1.2
    detector.update(False)
    assert detector.offline is True