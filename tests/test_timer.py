import os
import time
from unittest.mock import patch

import pytest

from sparselu.timer import Timer

MS = 1000.0


def _times(user, system):
    return os.times_result((user, system, 0.0, 0.0, 0.0))


def test_not_started_raises():
    timer = Timer()
    with pytest.raises(RuntimeError):
        timer.elapsed_wallclock()
    with pytest.raises(RuntimeError):
        timer.elapsed_user()
    with pytest.raises(RuntimeError):
        timer.elapsed()


def test_wallclock_after_sleep():
    timer = Timer()
    timer.start()
    time.sleep(0.02)
    assert timer.elapsed_wallclock() >= 15.0


def test_wallclock_mocked():
    with patch("sparselu.timer.time.perf_counter", side_effect=[10.0, 10.25]):
        with patch("sparselu.timer.os.times", return_value=_times(0.0, 0.0)):
            timer = Timer()
            timer.start()
            assert timer.elapsed_wallclock() == pytest.approx(250.0)


def test_user_and_system_mocked():
    start, end = _times(1.0, 0.5), _times(1.5, 0.75)
    with patch("sparselu.timer.time.perf_counter", return_value=0.0):
        with patch("sparselu.timer.os.times", side_effect=[start, end, end]):
            timer = Timer()
            timer.start()
            assert timer.elapsed_user() == pytest.approx((end.user - start.user) * MS)
            assert timer.elapsed_system() == pytest.approx(
                (end.system - start.system) * MS
            )


def test_elapsed_mocked():
    start, end = _times(2.0, 1.0), _times(2.5, 1.25)
    with patch("sparselu.timer.time.perf_counter", side_effect=[5.0, 6.0]):
        with patch("sparselu.timer.os.times", side_effect=[start, end]):
            timer = Timer()
            timer.start()
            wall, user, system = timer.elapsed()
    assert wall == pytest.approx(MS)
    assert user == pytest.approx((end.user - start.user) * MS)
    assert system == pytest.approx((end.system - start.system) * MS)


def test_elapsed_non_negative_and_monotonic():
    with Timer() as timer:
        first = timer.elapsed()
        sum(range(10000))
        second = timer.elapsed()
    assert all(v >= 0.0 for v in first)
    assert second[0] >= first[0]
    assert second[1] >= first[1]


def test_restart_resets():
    timer = Timer()
    timer.start()
    time.sleep(0.02)
    before = timer.elapsed_wallclock()
    timer.start()
    after = timer.elapsed_wallclock()
    assert after < before