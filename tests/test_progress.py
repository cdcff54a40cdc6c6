import signal
import threading

import pytest

from wpprobe.progress import MSG_WIDTH, ProgressManager, pad_or_trunc


@pytest.fixture
def make_bar():
    bars = []

    def factory(total, description):
        bar = ProgressManager(total, description)
        bars.append(bar)
        return bar

    yield factory
    for bar in bars:
        bar.finish()


def test_new_progress_bar(make_bar):
    pm = make_bar(10, "Testing Progress Bar")
    assert pm.total == 10
    assert pm.current == 0
    assert pm.description == "Testing Progress Bar".ljust(MSG_WIDTH)


def test_increment_reaches_full(make_bar):
    pm = make_bar(5, "Increment Test")
    for _ in range(5):
        pm.increment()
    assert pm.percent == 1.0


def test_finish(make_bar):
    pm = make_bar(3, "Finish Test")
    pm.increment()
    pm.finish()
    assert pm.finished is True
    assert pm.current == 3


def test_render_blank_keeps_state(make_bar):
    pm = make_bar(3, "Render Blank Test")
    pm.render_blank()
    assert pm.current == 0
    assert pm.finished is False


def test_write(make_bar):
    pm = make_bar(5, "Write Test")
    data = b"12345"
    assert pm.write(data) == len(data)
    assert pm.current == 5


def test_bprintln(make_bar, capsys):
    pm = make_bar(3, "Bprintln Test")
    n = pm.bprintln("This is a test line")
    assert n == len("This is a test line") + 1
    assert "This is a test line" in capsys.readouterr().err


def test_bprintf(make_bar, capsys):
    pm = make_bar(3, "Bprintf Test")
    n = pm.bprintf("Test %d %s", 123, "format")
    assert n == len("Test 123 format")
    assert "Test 123 format" in capsys.readouterr().err


def test_clear_line(make_bar, capsys):
    pm = make_bar(3, "Clear Test")
    capsys.readouterr()
    pm.clear_line()
    assert capsys.readouterr().err.endswith("\r\x1b[2K")


def test_set_total(make_bar):
    pm = make_bar(3, "Total Test")
    pm.set_total(8)
    pm.increment()
    pm.increment()
    assert pm.total == 8
    assert pm.percent == 0.25


def test_set_message(make_bar):
    pm = make_bar(3, "Message Test")
    pm.set_message("x" * 80)
    assert pm.description == "x" * 47 + "..."


def test_signal_handlers_installed_and_restored():
    before = signal.getsignal(signal.SIGTERM)
    pm = ProgressManager(5, "Signal Handling Test")
    assert signal.getsignal(signal.SIGTERM) == pm._on_signal
    pm.finish()
    assert signal.getsignal(signal.SIGTERM) == before


def test_signal_handler_finishes_and_exits(make_bar):
    pm = make_bar(5, "Signal Exit Test")
    with pytest.raises(SystemExit) as info:
        pm._on_signal(signal.SIGINT, None)
    assert info.value.code == 1
    assert pm.finished is True


def test_thread_safety(make_bar):
    pm = make_bar(100, "Thread Safety Test")

    def work():
        for _ in range(10):
            pm.increment()

    threads = [threading.Thread(target=work) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert pm.current == 100
    assert pm.percent == 1.0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", " " * 50),
        ("abc", "abc" + " " * 47),
        ("y" * 50, "y" * 50),
        ("z" * 51, "z" * 47 + "..."),
        ("é" * 60, "é" * 47 + "..."),
    ],
)
def test_pad_or_trunc(text, expected):
    assert pad_or_trunc(text) == expected