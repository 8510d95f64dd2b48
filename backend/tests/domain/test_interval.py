from datetime import datetime, timedelta

from sportsclub.domain.interval import TimeInterval, overlaps

BASE = datetime(2030, 6, 1, 10, 0)


def _window(start_min: int, end_min: int) -> TimeInterval:
    return TimeInterval(BASE + timedelta(minutes=start_min), BASE + timedelta(minutes=end_min))


def test_overlap_is_symmetric() -> None:
    pairs = [
        (_window(0, 60), _window(30, 90)),
        (_window(0, 60), _window(60, 120)),
        (_window(0, 120), _window(30, 60)),
        (_window(0, 30), _window(90, 120)),
    ]
    for a, b in pairs:
        assert overlaps(a, b) == overlaps(b, a)


def test_touching_windows_do_not_overlap() -> None:
    assert not _window(0, 60).overlaps(_window(60, 120))
    assert not _window(60, 120).overlaps(_window(0, 60))


def test_partial_and_nested_windows_overlap() -> None:
    assert _window(0, 60).overlaps(_window(30, 90))
    assert _window(0, 120).overlaps(_window(30, 60))
    assert _window(30, 60).overlaps(_window(0, 120))


def test_contains_is_half_open() -> None:
    window = _window(0, 60)
    assert window.contains(BASE)
    assert window.contains(BASE + timedelta(minutes=59, seconds=59))
    assert not window.contains(BASE + timedelta(minutes=60))
    assert not window.contains(BASE - timedelta(seconds=1))


def test_empty_window() -> None:
    assert _window(60, 60).is_empty
    assert _window(60, 0).is_empty
    assert not _window(0, 1).is_empty
    assert _window(0, 90).duration == timedelta(minutes=90)
